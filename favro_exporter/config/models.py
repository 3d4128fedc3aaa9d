"""Pydantic models used across the favro-exporter configuration flow."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_BASE_URL = "https://favro.com/api/v1"


class ExportConfig(BaseModel):
    """Connection and behaviour settings for one export run."""

    base_url: str = DEFAULT_BASE_URL
    user: str = ""
    api_token: str = ""
    # Restrict the export to a single organization when set.
    organization_id: str | None = None
    request_timeout: float = 30.0
    attachment_timeout: float = 30.0
    download_attachments: bool = True
    max_rate_limit_wait: float | None = Field(
        default=None,
        description="Upper bound in seconds for a single rate-limit wait; None means unbounded.",
    )
    clean_destination: bool = True

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalise_base_url(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip().rstrip("/")

    @field_validator("user", "api_token", mode="before")
    @classmethod
    def _strip_credentials(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("organization_id", mode="before")
    @classmethod
    def _blank_organization(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @model_validator(mode="after")
    def _validate_limits(self) -> "ExportConfig":
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.attachment_timeout <= 0:
            raise ValueError("attachment_timeout must be > 0")
        if self.max_rate_limit_wait is not None and self.max_rate_limit_wait < 0:
            raise ValueError("max_rate_limit_wait must be >= 0")
        return self

    def missing_required(self) -> list[str]:
        """Return the names of required settings that are still empty."""

        missing = []
        if not self.base_url:
            missing.append("base_url")
        if not self.api_token:
            missing.append("api_token")
        return missing


__all__ = ["DEFAULT_BASE_URL", "ExportConfig"]
