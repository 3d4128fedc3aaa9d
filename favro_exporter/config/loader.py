"""Configuration loading helpers for favro-exporter."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml
from pydantic import ValidationError

from .models import ExportConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json", ".properties")
DEFAULT_CONFIG_FILENAME = "favro_export.yaml"

# Keys understood in Java-style .properties files.
PROPERTY_KEYS = {
    "favro.base.url": "base_url",
    "favro.user": "user",
    "favro.api.token": "api_token",
    "favro.organization.id": "organization_id",
}

ENV_OVERRIDES = {
    "FAVRO_USER": "user",
    "FAVRO_API_TOKEN": "api_token",
    "FAVRO_ORGANIZATION_ID": "organization_id",
}


class ConfigError(ValueError):
    """Raised when a configuration file is unreadable or incomplete."""


def _parse_properties(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        separators = [idx for idx in (line.find("="), line.find(":")) if idx != -1]
        if not separators:
            values[line] = ""
            continue
        cut = min(separators)
        values[line[:cut].strip()] = line[cut + 1 :].strip()
    return values


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    elif path.suffix == ".properties":
        props = _parse_properties(text)
        data = {field: props[key] for key, field in PROPERTY_KEYS.items() if key in props}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from the project home."""

    project_root: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("FAVRO_EXPORTER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root

    def default_config_path(self) -> Path:
        return self.project_root / DEFAULT_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(
        self,
        locator: ConfigLocator | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.locator = locator or ConfigLocator()
        self._environ = os.environ if environ is None else environ

    def load(self, path: Path | None = None) -> ExportConfig:
        """Read, merge environment overrides and validate a configuration."""

        path = path or self.locator.default_config_path()
        if path.suffix not in CONFIG_EXTENSIONS:
            raise ConfigError(f"Unsupported configuration format: {path.suffix or path.name}")
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        try:
            payload = _read_file(path)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise ConfigError(f"Could not read the configuration file {path}: {exc}") from exc
        payload.update(self._env_overrides())
        try:
            config = ExportConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
        missing = config.missing_required()
        if missing:
            raise ConfigError(
                f"The configuration file {path} is missing: {', '.join(missing)}"
            )
        return config

    def save(self, config: ExportConfig, path: Path | None = None) -> Path:
        path = path or self.locator.default_config_path()
        if path.suffix == ".properties":
            raise ConfigError("Writing .properties files is not supported; use YAML or JSON")
        _write_file(path, config.model_dump(mode="json"))
        return path

    def _env_overrides(self) -> dict[str, str]:
        overrides: dict[str, str] = {}
        for env_name, field in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                overrides[field] = value
        return overrides


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigError",
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_CONFIG_FILENAME",
]
