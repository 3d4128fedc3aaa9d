"""Infra layer utilities (destination directory handling)."""

from .storage import DestinationError, clean_directory, prepare_destination

__all__ = ["DestinationError", "clean_directory", "prepare_destination"]
