"""Pretty-printed JSON file sink."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

import structlog

from .base import BaseSink, WriteResult


class JsonSink(BaseSink):
    """Write each collection as an indented JSON array, overwriting old files."""

    def __init__(self, indent: int = 2, logger: structlog.BoundLogger | None = None) -> None:
        self.indent = indent
        self.logger = logger or structlog.get_logger("favro_exporter.sink")

    def write(self, directory: Path, file_name: str, collection: Iterable[dict]) -> WriteResult:
        path = directory / file_name
        entities = list(collection)
        try:
            payload = json.dumps(entities, indent=self.indent, ensure_ascii=False)
            path.write_text(payload + "\n", encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            self.logger.error("json_write_failed", path=str(path), error=str(exc))
            return WriteResult(path=path, ok=False, count=len(entities), error=str(exc))
        self.logger.debug("json_written", path=str(path), count=len(entities))
        return WriteResult(path=path, ok=True, count=len(entities))


__all__ = ["JsonSink"]
