"""Sink SPI and implementations."""

from .base import BaseSink, WriteResult
from .json_sink import JsonSink

__all__ = ["BaseSink", "JsonSink", "WriteResult"]
