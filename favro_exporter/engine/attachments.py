"""Download binary attachments referenced by cards."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Iterable
from urllib.parse import unquote, urlparse

import httpx
import structlog


def attachments_dir_name(parent_id: str) -> str:
    return f"attachments-{parent_id}"


def safe_file_name(name: str | None, url: str) -> str:
    """Reduce an attachment name to a bare file name inside its directory."""

    candidate = PurePosixPath(str(name or "").replace("\\", "/")).name
    if candidate in ("", ".", ".."):
        candidate = PurePosixPath(unquote(urlparse(url).path)).name
    if candidate in ("", ".", ".."):
        candidate = "attachment"
    return candidate


@dataclass(slots=True)
class DownloadReport:
    """Outcome of downloading the attachments of one parent resource."""

    parent_id: str
    directory: Path | None = None
    downloaded: list[Path] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.downloaded) + len(self.failed)


class AttachmentDownloader:
    """Fetch attachment files one by one into a per-parent directory."""

    def __init__(
        self,
        destination: Path,
        *,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.destination = destination
        self.timeout = httpx.Timeout(timeout, connect=timeout, read=timeout)
        self.logger = logger or structlog.get_logger("favro_exporter.attachments")
        self._owns_client = client is None
        # Attachment URLs point at file storage, not the API: no credentials are attached
        self._client = client or httpx.Client(follow_redirects=True, timeout=self.timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def download_all(self, parent_id: str, attachments: Iterable[dict[str, Any]] | None) -> DownloadReport:
        report = DownloadReport(parent_id=parent_id)
        items = list(attachments or [])
        if not items:
            return report
        directory = self.destination / attachments_dir_name(parent_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as exc:
            self.logger.error(
                "attachment_dir_failed",
                card_id=parent_id,
                directory=str(directory),
                error=str(exc),
            )
            return report
        report.directory = directory
        for attachment in items:
            url = str(attachment.get("fileURL") or "") if isinstance(attachment, dict) else ""
            name = attachment.get("name") if isinstance(attachment, dict) else None
            if not url:
                self.logger.error("attachment_missing_url", card_id=parent_id, name=name)
                report.failed.append(str(name or ""))
                continue
            target = directory / safe_file_name(name, url)
            if self._download(url, target, parent_id):
                report.downloaded.append(target)
            else:
                report.failed.append(url)
        return report

    def _download(self, url: str, target: Path, parent_id: str) -> bool:
        created = False
        try:
            with self._client.stream("GET", url, timeout=self.timeout) as response:
                response.raise_for_status()
                with target.open("wb") as stream:
                    created = True
                    for chunk in response.iter_bytes():
                        stream.write(chunk)
        except (httpx.HTTPError, OSError, ValueError) as exc:
            # ValueError covers names pathlib cannot represent, e.g. embedded NUL bytes
            self.logger.error(
                "attachment_download_failed",
                card_id=parent_id,
                url=url,
                target=str(target),
                error=str(exc),
            )
            if created:
                self._discard_partial(target, parent_id)
            return False
        self.logger.info("attachment_downloaded", card_id=parent_id, target=str(target))
        return True

    def _discard_partial(self, target: Path, parent_id: str) -> None:
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            self.logger.warning(
                "attachment_partial_not_removed",
                card_id=parent_id,
                target=str(target),
                error=str(exc),
            )


__all__ = ["AttachmentDownloader", "DownloadReport", "attachments_dir_name", "safe_file_name"]
