"""User interaction helpers."""

from .progress import ExportActivity

__all__ = ["ExportActivity"]
