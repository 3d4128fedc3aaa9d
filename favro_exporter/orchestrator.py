"""Export traversal wiring together fetching, persisting and attachment downloads."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import httpx
import structlog

from .config import ExportConfig
from .engine import (
    AttachmentDownloader,
    BaseSink,
    EntityCollection,
    ExportSession,
    JsonSink,
    PaginatedFetcher,
    RequestPacer,
    ResourceGraph,
    ResourceKind,
    default_graph,
)
from .ui import ExportActivity


@dataclass(slots=True)
class ExportSummary:
    """Counters describing what one run managed to export."""

    fetches: int = 0
    truncated_fetches: int = 0
    entities: int = 0
    files_written: int = 0
    write_failures: int = 0
    attachments_downloaded: int = 0
    attachments_failed: int = 0
    requests: int = 0
    rate_limit_waits: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class ExportTraversal:
    """Walk the resource graph depth-first, one request at a time.

    Every level is fetched, persisted, and then used to discover the ids of
    the next level. Failures only shrink what a step returns: the walk always
    moves on with whatever data it has.
    """

    def __init__(
        self,
        session: ExportSession,
        destination: Path,
        fetcher: PaginatedFetcher,
        sink: BaseSink | None = None,
        downloader: AttachmentDownloader | None = None,
        graph: ResourceGraph | None = None,
        activity: ExportActivity | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.session = session
        self.destination = destination
        self.fetcher = fetcher
        self.sink = sink or JsonSink()
        self.downloader = downloader
        self.graph = graph or default_graph()
        self.activity = activity
        self.logger = logger or structlog.get_logger("favro_exporter.traversal")
        self.summary = ExportSummary()

    @classmethod
    def from_config(
        cls,
        config: ExportConfig,
        destination: Path,
        *,
        client: httpx.Client | None = None,
        attachment_client: httpx.Client | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], datetime] | None = None,
        activity: ExportActivity | None = None,
    ) -> "ExportTraversal":
        session = ExportSession.from_config(config)
        pacer = RequestPacer(session, max_wait=config.max_rate_limit_wait, clock=clock, sleep=sleep)
        fetcher = PaginatedFetcher(session, pacer, timeout=config.request_timeout, client=client)
        downloader = None
        if config.download_attachments:
            downloader = AttachmentDownloader(
                destination, timeout=config.attachment_timeout, client=attachment_client
            )
        return cls(session, destination, fetcher, downloader=downloader, activity=activity)

    def close(self) -> None:
        self.fetcher.close()
        if self.downloader is not None:
            self.downloader.close()

    # ------------------------------------------------------------------
    def run(self) -> ExportSummary:
        """Export the whole account reachable from the graph root."""

        root = self.graph.root
        self.logger.info("export_started", destination=str(self.destination))
        if self.activity is not None:
            self.activity.start(f"Fetching {root.name}…")
        try:
            # Discovery call: no organization scope header
            organizations = self._export(root, parent_id=None, organization=None, params={})
            for entity in organizations:
                organization_id = root.entity_id(entity)
                if organization_id is None:
                    self.logger.warning("entity_without_id", resource=root.name, key=root.id_key)
                    continue
                if self.session.organization_id and organization_id != self.session.organization_id:
                    self.logger.info("organization_skipped", organization_id=organization_id)
                    continue
                self._descend(root, entity, organization_id, organization=organization_id)
        finally:
            if self.activity is not None:
                self.activity.close()
        self.summary.requests = self.session.request_count
        self.summary.rate_limit_waits = self.session.rate_limit_waits
        self.logger.info("export_finished", **self.summary.as_dict())
        return self.summary

    def _export(
        self,
        kind: ResourceKind,
        parent_id: str | None,
        organization: str | None,
        params: dict[str, str],
    ) -> EntityCollection:
        """Fetch one collection and persist it, whatever its completeness."""

        if self.activity is not None:
            label = kind.name if parent_id is None else f"{kind.name} of {parent_id}"
            self.activity.update(f"Fetching {label}…")
        collection = self.fetcher.fetch_all(kind.endpoint, organization_scope=organization, params=params)
        self.summary.fetches += 1
        self.summary.entities += len(collection)
        if not collection.complete:
            self.summary.truncated_fetches += 1
            self.logger.warning(
                "export_truncated",
                resource=kind.name,
                parent_id=parent_id,
                count=len(collection),
                pages=collection.pages_fetched,
            )
        result = self.sink.write(self.destination, kind.file_name(parent_id), collection)
        if result.ok:
            self.summary.files_written += 1
        else:
            self.summary.write_failures += 1
            self.logger.warning("export_write_skipped", resource=kind.name, path=str(result.path))
        self.logger.info("exported", resource=kind.name, parent_id=parent_id, count=len(collection))
        return collection

    def _descend(
        self,
        kind: ResourceKind,
        entity: dict[str, Any],
        entity_id: str,
        organization: str,
    ) -> None:
        if kind.attachments_key is not None:
            self._download_attachments(entity_id, entity.get(kind.attachments_key))
        for edge in self.graph.children(kind):
            if not edge.allows(entity):
                continue
            children = self._export(edge.child, entity_id, organization, edge.params_for(entity_id))
            if not self._has_descendants(edge.child):
                continue
            for child in children:
                child_id = edge.child.entity_id(child)
                if child_id is None:
                    self.logger.warning(
                        "entity_without_id", resource=edge.child.name, key=edge.child.id_key
                    )
                    continue
                self._descend(edge.child, child, child_id, organization)

    def _has_descendants(self, kind: ResourceKind) -> bool:
        return kind.attachments_key is not None or bool(self.graph.children(kind))

    def _download_attachments(self, card_id: str, attachments: Any) -> None:
        if self.downloader is None or not attachments:
            return
        if not isinstance(attachments, list):
            self.logger.warning("attachments_not_a_list", card_id=card_id)
            return
        if self.activity is not None:
            self.activity.update(f"Downloading {len(attachments)} attachments of {card_id}…")
        report = self.downloader.download_all(card_id, attachments)
        self.summary.attachments_downloaded += len(report.downloaded)
        self.summary.attachments_failed += len(report.failed)
        if report.directory is None:
            # Directory creation failed: nothing was attempted
            self.summary.attachments_failed += len(attachments)


__all__ = ["ExportSummary", "ExportTraversal"]
