"""Rate-limit pacing derived from response headers."""

from __future__ import annotations

import re
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping

import structlog

from .session import RATE_LIMIT_REMAINING_HEADER, RATE_LIMIT_RESET_HEADER, ExportSession

_FRACTION = re.compile(r"\.(\d+)")


def parse_reset_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 reset timestamp; naive values are taken as UTC."""

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # fromisoformat on 3.10 only takes 3 or 6 fractional digits
    text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestPacer:
    """Record the wait announced by rate-limit headers and enforce it once."""

    def __init__(
        self,
        session: ExportSession,
        *,
        max_wait: float | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.session = session
        self.max_wait = max_wait
        self._clock = clock or _utcnow
        self._sleep = sleep or time.sleep
        self.logger = logger or structlog.get_logger("favro_exporter.pacer")

    def observe(self, headers: Mapping[str, str]) -> None:
        """Update the session's pending wait from one response's headers."""

        self.session.pending_wait = self._delay_from(headers)

    def _delay_from(self, headers: Mapping[str, str]) -> float:
        remaining_raw = headers.get(RATE_LIMIT_REMAINING_HEADER)
        if not remaining_raw:
            return 0.0
        try:
            remaining = int(str(remaining_raw).strip())
        except ValueError:
            self.logger.warning("rate_limit_remaining_invalid", value=remaining_raw)
            return 0.0
        if remaining >= 1:
            return 0.0
        reset_raw = headers.get(RATE_LIMIT_RESET_HEADER)
        if not reset_raw:
            return 0.0
        try:
            reset_at = parse_reset_timestamp(str(reset_raw))
        except ValueError:
            self.logger.warning("rate_limit_reset_invalid", value=reset_raw)
            return 0.0
        # Positive when the window resets in the future; zero or negative means no wait.
        delay = (reset_at - self._clock()).total_seconds()
        self.logger.debug(
            "rate_limit_exhausted",
            reset_at=reset_at.isoformat(),
            delay=round(delay, 3),
        )
        return delay

    def wait_if_needed(self) -> float:
        """Block for the pending wait if positive, then clear it. Return seconds slept."""

        delay = self.session.pending_wait
        self.session.pending_wait = 0.0
        if delay <= 0:
            return 0.0
        if self.max_wait is not None and delay > self.max_wait:
            self.logger.warning("rate_limit_wait_capped", requested=delay, capped=self.max_wait)
            delay = self.max_wait
        if delay <= 0:
            return 0.0
        resume_at = self._clock() + timedelta(seconds=delay)
        self.logger.info(
            "rate_limit_wait",
            seconds=round(delay, 3),
            resume_at=resume_at.isoformat(),
        )
        self._sleep(delay)
        self.session.rate_limit_waits += 1
        return delay


__all__ = ["RequestPacer", "parse_reset_timestamp"]
