"""Sink interface for persisting fetched collections."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable


@dataclass(slots=True)
class WriteResult:
    """Status of one write; failures are reported here instead of raised."""

    path: Path
    ok: bool
    count: int = 0
    error: str | None = None


class BaseSink(ABC):
    """Uniform sink contract so the traversal does not care about formats."""

    @abstractmethod
    def write(self, directory: Path, file_name: str, collection: Iterable[dict]) -> WriteResult:
        """Persist a whole collection under ``directory / file_name``."""


__all__ = ["BaseSink", "WriteResult"]
