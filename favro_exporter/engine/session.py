"""Mutable per-run state shared by the pacer, fetcher and traversal."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import ExportConfig

ORGANIZATION_HEADER = "organizationId"
BACKEND_HEADER = "X-Favro-Backend-Identifier"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"


@dataclass
class ExportSession:
    """State threaded through every request of an export.

    Execution is strictly sequential: the backend id and pending wait learned
    from response N are applied before request N+1 is built.
    """

    base_url: str
    user: str
    api_token: str
    organization_id: str | None = None
    backend_id: str | None = None
    # Seconds to wait before the next request; only positive values block.
    pending_wait: float = 0.0
    request_count: int = 0
    rate_limit_waits: int = 0

    @classmethod
    def from_config(cls, config: ExportConfig) -> "ExportSession":
        return cls(
            base_url=config.base_url,
            user=config.user,
            api_token=config.api_token,
            organization_id=config.organization_id,
        )

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def pin_backend(self, backend_id: str | None) -> bool:
        """Record the backend id once; return False if a different id shows up later."""

        if not backend_id:
            return True
        if self.backend_id is None:
            self.backend_id = backend_id
            return True
        return self.backend_id == backend_id


@dataclass
class PageCursor:
    """Position within one paginated query.

    Pages are 0-indexed: ``page`` is the last page received and ``pages`` the
    declared total, so more pages remain while ``page + 1 < pages``.
    """

    page: int = 0
    pages: int = 1
    request_id: str | None = None
    fetched: int = 0

    @property
    def started(self) -> bool:
        return self.fetched > 0

    @property
    def next_page(self) -> int:
        return self.page + 1 if self.started else 0

    def query_params(self) -> dict[str, str]:
        # The first page carries no cursor; every later page carries both values.
        if not self.started:
            return {}
        if self.request_id is None:
            raise ValueError("a request id is required for follow-up pages")
        return {"requestId": self.request_id, "page": str(self.next_page)}

    def advance(self, page: int, pages: int, request_id: str | None) -> None:
        self.page = page
        self.pages = pages
        if request_id:
            self.request_id = request_id
        self.fetched += 1

    def has_more(self) -> bool:
        return self.started and self.page + 1 < self.pages


@dataclass
class EntityCollection:
    """Ordered resources gathered by one paginated fetch."""

    endpoint: str
    entities: list[dict] = field(default_factory=list)
    pages_fetched: int = 0
    complete: bool = False

    def extend(self, page_entities: list[dict]) -> None:
        self.entities.extend(page_entities)

    def __iter__(self):
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def __bool__(self) -> bool:
        return bool(self.entities)


__all__ = [
    "BACKEND_HEADER",
    "EntityCollection",
    "ExportSession",
    "ORGANIZATION_HEADER",
    "PageCursor",
    "RATE_LIMIT_REMAINING_HEADER",
    "RATE_LIMIT_RESET_HEADER",
]
