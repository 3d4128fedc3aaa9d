"""Resource kinds and the parent/child graph that drives the export order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class ResourceKind:
    """One API collection and the key its entities expose to their children."""

    name: str
    endpoint: str
    id_key: str | None = None
    attachments_key: str | None = None

    def file_name(self, parent_id: str | None = None) -> str:
        if parent_id is None:
            return f"{self.name}.json"
        return f"{self.name}-{parent_id}.json"

    def entity_id(self, entity: Any) -> str | None:
        if self.id_key is None or not isinstance(entity, dict):
            return None
        value = entity.get(self.id_key)
        if value in (None, ""):
            return None
        return str(value)


def _positive(value: Any) -> bool:
    try:
        return int(value) > 0
    except (TypeError, ValueError):
        return False


@dataclass(frozen=True, slots=True)
class ResourceEdge:
    """Fetch ``child`` for each entity of ``parent``.

    ``query_param`` carries the parent id; when it is None the child is scoped
    by the organization header only. ``gate_key`` names a count on the parent
    entity that must be positive for the child to be fetched.
    """

    parent: ResourceKind
    child: ResourceKind
    query_param: str | None = None
    gate_key: str | None = None

    def allows(self, entity: Any) -> bool:
        if self.gate_key is None:
            return True
        if not isinstance(entity, dict):
            return False
        return _positive(entity.get(self.gate_key))

    def params_for(self, parent_id: str) -> dict[str, str]:
        if self.query_param is None:
            return {}
        return {self.query_param: parent_id}


class ResourceGraph:
    """Small directed graph of resource kinds rooted at the organizations."""

    def __init__(self, root: ResourceKind, edges: Iterable[ResourceEdge]) -> None:
        self.root = root
        self.edges = list(edges)

    def children(self, kind: ResourceKind) -> list[ResourceEdge]:
        return [edge for edge in self.edges if edge.parent == kind]


ORGANIZATIONS = ResourceKind("organizations", "/organizations", id_key="organizationId")
USERS = ResourceKind("users", "/users")
COLLECTIONS = ResourceKind("collections", "/collections")
TAGS = ResourceKind("tags", "/tags")
WIDGETS = ResourceKind("widgets", "/widgets", id_key="widgetCommonId")
COLUMNS = ResourceKind("columns", "/columns")
CARDS = ResourceKind("cards", "/cards", id_key="cardCommonId", attachments_key="attachments")
TASKLISTS = ResourceKind("tasklists", "/tasklists")
TASKS = ResourceKind("tasks", "/tasks")
COMMENTS = ResourceKind("comments", "/comments")


def default_graph() -> ResourceGraph:
    """Return the organization → widget → card hierarchy of the API."""

    return ResourceGraph(
        ORGANIZATIONS,
        [
            ResourceEdge(ORGANIZATIONS, USERS),
            ResourceEdge(ORGANIZATIONS, COLLECTIONS),
            ResourceEdge(ORGANIZATIONS, TAGS),
            ResourceEdge(ORGANIZATIONS, WIDGETS),
            ResourceEdge(WIDGETS, COLUMNS, query_param="widgetCommonId"),
            ResourceEdge(WIDGETS, CARDS, query_param="widgetCommonId"),
            ResourceEdge(CARDS, TASKLISTS, query_param="cardCommonId", gate_key="tasksTotal"),
            ResourceEdge(CARDS, TASKS, query_param="cardCommonId", gate_key="tasksTotal"),
            ResourceEdge(CARDS, COMMENTS, query_param="cardCommonId", gate_key="numComments"),
        ],
    )


__all__ = [
    "CARDS",
    "COLLECTIONS",
    "COLUMNS",
    "COMMENTS",
    "ORGANIZATIONS",
    "ResourceEdge",
    "ResourceGraph",
    "ResourceKind",
    "TAGS",
    "TASKLISTS",
    "TASKS",
    "USERS",
    "WIDGETS",
    "default_graph",
]
