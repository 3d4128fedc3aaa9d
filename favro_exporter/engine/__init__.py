"""Engine components: session state, pacing, paginated fetch, attachments, sinks."""

from .attachments import AttachmentDownloader, DownloadReport
from .exporter import BaseSink, JsonSink, WriteResult
from .fetcher import ACCEPTED_STATUSES, PaginatedFetcher
from .pacer import RequestPacer
from .resources import ResourceEdge, ResourceGraph, ResourceKind, default_graph
from .session import EntityCollection, ExportSession, PageCursor

__all__ = [
    "ACCEPTED_STATUSES",
    "AttachmentDownloader",
    "BaseSink",
    "DownloadReport",
    "EntityCollection",
    "ExportSession",
    "JsonSink",
    "PageCursor",
    "PaginatedFetcher",
    "RequestPacer",
    "ResourceEdge",
    "ResourceGraph",
    "ResourceKind",
    "WriteResult",
    "default_graph",
]
