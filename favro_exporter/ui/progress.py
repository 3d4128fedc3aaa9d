"""Terminal progress helpers built on Rich."""

from __future__ import annotations

from rich.console import Console
from rich.status import Status


class ExportActivity:
    """Indeterminate activity indicator using a Rich status spinner."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self.console = console or Console(stderr=True)
        self._status: Status | None = None

    def start(self, message: str) -> None:
        if not self.enabled or self._status is not None:
            return
        if not self.console.is_terminal:
            # Non-interactive output falls back to silence
            self.enabled = False
            return
        self._status = self.console.status(message)
        self._status.start()

    def update(self, message: str) -> None:
        if self._status is not None:
            self._status.update(message)

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def __enter__(self) -> "ExportActivity":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ExportActivity"]
