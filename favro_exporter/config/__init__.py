"""Configuration package exports."""

from .loader import ConfigError, ConfigLocator, ConfigRepository
from .models import DEFAULT_BASE_URL, ExportConfig

__all__ = [
    "ConfigError",
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_BASE_URL",
    "ExportConfig",
]
