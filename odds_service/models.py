"""Pydantic models for data validation."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import (
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_SPORTS,
    MAX_REFRESH_INTERVAL,
    MIN_REFRESH_INTERVAL,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_refresh_interval(value: Any) -> int:
    """Clamp a refresh interval into the allowed range; junk falls back to the default."""
    try:
        interval = int(value)
    except (TypeError, ValueError):
        interval = DEFAULT_REFRESH_INTERVAL
    return max(MIN_REFRESH_INTERVAL, min(MAX_REFRESH_INTERVAL, interval))


class SportConfig(BaseModel):
    """Polling policy for a single sport key."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = Field(default=True, description="Whether the sport may be queried")
    refresh_interval: int = Field(
        default=DEFAULT_REFRESH_INTERVAL,
        alias="refreshInterval",
        description="Polling interval in seconds, within [1, 3600]",
    )

    @field_validator("enabled", mode="before")
    @classmethod
    def _coerce_enabled(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("refresh_interval", mode="before")
    @classmethod
    def _clamp_interval(cls, value: Any) -> int:
        return clamp_refresh_interval(value)


def default_sports() -> dict[str, SportConfig]:
    """Fresh copy of the built-in sport set."""
    return {key: SportConfig(**value) for key, value in DEFAULT_SPORTS.items()}


class OddsConfiguration(BaseModel):
    """Process-wide odds configuration, persisted as a single document."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(default="", alias="apiKey")
    sports: dict[str, SportConfig] = Field(default_factory=default_sports)
    is_active: bool = Field(default=False, alias="isActive")
    last_updated: datetime = Field(default_factory=utcnow, alias="lastUpdated")

    def to_document(self) -> dict:
        """Serialize with the persisted (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


class Caller(BaseModel):
    """Authenticated identity performing a configuration write."""

    uid: str = Field(..., min_length=1)


class LoadStatus(str, Enum):
    LOADED = "loaded"
    DEFAULTED = "defaulted"
    DEGRADED = "degraded"


class LoadResult(BaseModel):
    """Outcome of reading the persisted configuration."""

    config: OddsConfiguration
    status: LoadStatus


class SaveStatus(str, Enum):
    SAVED = "saved"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    ROLE_LOOKUP_FAILED = "role_lookup_failed"


class SaveResult(BaseModel):
    """Outcome of a configuration write; config is what was actually written."""

    status: SaveStatus
    config: Optional[OddsConfiguration] = None

    @property
    def saved(self) -> bool:
        return self.status is SaveStatus.SAVED


class ApiUsage(BaseModel):
    """Quota counters reported by the odds API response headers."""

    requests_remaining: Optional[int] = None
    requests_used: Optional[int] = None


class ApiKeyRequest(BaseModel):
    """Request to replace the odds API key."""

    api_key: str = Field(..., min_length=1, description="The Odds API key")


class SportConfigRequest(BaseModel):
    """Request to update a sport's polling policy."""

    enabled: bool = Field(..., description="Whether the sport may be queried")
    refresh_interval: int = Field(..., description="Polling interval in seconds (clamped)")


class ConfigUpdateResponse(BaseModel):
    """Result of a configuration mutation."""

    save_status: SaveStatus
    is_active: bool
    sports: dict[str, SportConfig]


class ServiceStatus(BaseModel):
    """Readiness of the odds client and its store."""

    configured: bool
    store_online: bool
    requests_remaining: Optional[int] = None
    requests_used: Optional[int] = None
