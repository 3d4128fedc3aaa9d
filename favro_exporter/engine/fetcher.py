"""Paginated HTTP fetching with backend pinning and rate-limit pacing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx
import structlog

from .pacer import RequestPacer
from .session import (
    BACKEND_HEADER,
    ORGANIZATION_HEADER,
    EntityCollection,
    ExportSession,
    PageCursor,
)

ACCEPTED_STATUSES = frozenset({200, 201, 202, 204})


class EnvelopeError(ValueError):
    """Raised when a response body does not look like a paginated envelope."""


@dataclass(slots=True)
class PageEnvelope:
    """One decoded page of a paginated response."""

    page: int
    pages: int
    request_id: str | None
    entities: list[Any] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any, expected_page: int) -> "PageEnvelope":
        if not isinstance(payload, dict):
            raise EnvelopeError(f"expected a JSON object, got {type(payload).__name__}")
        try:
            page = int(payload.get("page", expected_page))
            pages = int(payload.get("pages", page + 1))
        except (TypeError, ValueError) as exc:
            raise EnvelopeError(f"invalid page counters: {exc}") from exc
        entities = payload.get("entities") or []
        if not isinstance(entities, list):
            raise EnvelopeError("'entities' must be a list")
        request_id = payload.get("requestId")
        return cls(
            page=page,
            pages=pages,
            request_id=str(request_id) if request_id else None,
            entities=entities,
        )


class PaginatedFetcher:
    """Fetch every page of one logical query and accumulate the entities."""

    def __init__(
        self,
        session: ExportSession,
        pacer: RequestPacer,
        *,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.session = session
        self.pacer = pacer
        self.timeout = timeout
        self.logger = logger or structlog.get_logger("favro_exporter.fetcher")
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=True, timeout=timeout)
        self._auth = httpx.BasicAuth(session.user, session.api_token)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "PaginatedFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def fetch_all(
        self,
        endpoint: str,
        organization_scope: str | None = None,
        params: Mapping[str, str] | None = None,
    ) -> EntityCollection:
        """Return every entity of ``endpoint``; a failed page truncates the result."""

        collection = EntityCollection(endpoint=endpoint)
        cursor = PageCursor()
        url = self.session.url_for(endpoint)
        while True:
            # Wait learned from the previous response applies before this request
            self.pacer.wait_if_needed()
            query = dict(params or {})
            query.update(cursor.query_params())
            try:
                response = self._client.get(
                    url,
                    params=query,
                    headers=self._build_headers(organization_scope),
                    auth=self._auth,
                    timeout=self.timeout,
                )
            except httpx.HTTPError as exc:
                self.logger.error(
                    "fetch_transport_error",
                    endpoint=endpoint,
                    page=cursor.next_page,
                    error=str(exc),
                )
                return collection
            self.session.request_count += 1
            self._record_session(response)

            if response.status_code not in ACCEPTED_STATUSES:
                self.logger.error(
                    "fetch_status_error",
                    endpoint=endpoint,
                    page=cursor.next_page,
                    status=response.status_code,
                    collected=len(collection),
                )
                return collection

            if response.status_code == 204 or not response.content:
                collection.pages_fetched += 1
                collection.complete = True
                return collection

            try:
                envelope = PageEnvelope.from_payload(response.json(), cursor.next_page)
            except ValueError as exc:
                self.logger.error(
                    "fetch_invalid_body",
                    endpoint=endpoint,
                    page=cursor.next_page,
                    error=str(exc),
                )
                return collection

            if cursor.started and envelope.page <= cursor.page:
                self.logger.error(
                    "fetch_page_not_advancing",
                    endpoint=endpoint,
                    expected=cursor.next_page,
                    received=envelope.page,
                )
                return collection

            cursor.advance(envelope.page, envelope.pages, envelope.request_id)
            collection.extend(envelope.entities)
            collection.pages_fetched += 1
            self.logger.debug(
                "fetch_page",
                endpoint=endpoint,
                page=envelope.page,
                pages=envelope.pages,
                entities=len(envelope.entities),
            )

            if not cursor.has_more():
                collection.complete = True
                return collection
            if cursor.request_id is None:
                self.logger.error(
                    "fetch_missing_request_id",
                    endpoint=endpoint,
                    page=envelope.page,
                    pages=envelope.pages,
                )
                return collection

    # ------------------------------------------------------------------
    def _build_headers(self, organization_scope: str | None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if organization_scope:
            headers[ORGANIZATION_HEADER] = organization_scope
        if self.session.backend_id:
            headers[BACKEND_HEADER] = self.session.backend_id
        return headers

    def _record_session(self, response: httpx.Response) -> None:
        backend_id = response.headers.get(BACKEND_HEADER)
        if not self.session.pin_backend(backend_id):
            self.logger.warning(
                "backend_id_changed",
                pinned=self.session.backend_id,
                received=backend_id,
            )
        self.pacer.observe(response.headers)


__all__ = ["ACCEPTED_STATUSES", "EnvelopeError", "PageEnvelope", "PaginatedFetcher"]
