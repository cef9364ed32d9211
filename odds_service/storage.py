"""Persistence of the odds configuration with admin-gated writes."""

from typing import Optional

import structlog
from pydantic import ValidationError

from .config import (
    ADMIN_ROLE,
    CONFIG_COLLECTION,
    CONFIG_DOCUMENT_ID,
    DEFAULT_SPORTS,
    USERS_COLLECTION,
)
from .database import Database
from .models import (
    Caller,
    LoadResult,
    LoadStatus,
    OddsConfiguration,
    SaveResult,
    SaveStatus,
    SportConfig,
    utcnow,
)

logger = structlog.get_logger()


class ConfigStore:
    """Loads and saves the single OddsConfiguration document."""

    def __init__(
        self,
        database: Database,
        collection: str = CONFIG_COLLECTION,
        document_id: str = CONFIG_DOCUMENT_ID,
    ):
        self.database = database
        self.collection = collection
        self.document_id = document_id
        self.logger = logger.bind(component="config_store")

    async def load(self) -> LoadResult:
        """
        Read the persisted configuration, merged over the default sports.

        Never raises: a missing document or an unreachable store both yield
        the inactive default configuration, distinguished by the status.
        """
        try:
            document = await self.database.get_document(self.collection, self.document_id)
        except Exception as e:
            self.logger.warning("Config store unreachable, using defaults", error=str(e))
            return LoadResult(config=OddsConfiguration(), status=LoadStatus.DEGRADED)

        if document is None:
            self.logger.info("No persisted configuration, using defaults")
            return LoadResult(config=OddsConfiguration(), status=LoadStatus.DEFAULTED)

        try:
            config = self._merge(document)
        except (ValidationError, TypeError, ValueError, AttributeError) as e:
            self.logger.warning("Persisted configuration unreadable, using defaults", error=str(e))
            return LoadResult(config=OddsConfiguration(), status=LoadStatus.DEGRADED)

        self.logger.info("Loaded configuration", has_api_key=bool(config.api_key))
        return LoadResult(config=config, status=LoadStatus.LOADED)

    @staticmethod
    def _merge(document: dict) -> OddsConfiguration:
        """Overlay persisted sport fields on the defaults, field by field."""
        persisted_sports = document.get("sports") or {}

        sports = {}
        for key, defaults in DEFAULT_SPORTS.items():
            fields = dict(defaults)
            fields.update(persisted_sports.get(key) or {})
            sports[key] = SportConfig(**fields)

        api_key = document.get("apiKey") or ""
        merged = {
            "apiKey": api_key,
            "sports": sports,
            "isActive": bool(api_key),
        }
        if document.get("lastUpdated"):
            merged["lastUpdated"] = document["lastUpdated"]

        return OddsConfiguration(**merged)

    async def save(self, config: OddsConfiguration, caller: Optional[Caller]) -> SaveResult:
        """
        Overwrite the persisted configuration if the caller is an admin.

        Unauthenticated and non-admin callers are rejected without an
        exception; the status says why. Errors writing the document propagate.
        """
        if caller is None:
            self.logger.warning("Caller not authenticated, skipping save")
            return SaveResult(status=SaveStatus.UNAUTHENTICATED)

        try:
            user = await self.database.get_document(USERS_COLLECTION, caller.uid)
        except Exception as e:
            self.logger.warning("Error checking user role, skipping save", uid=caller.uid, error=str(e))
            return SaveResult(status=SaveStatus.ROLE_LOOKUP_FAILED)

        if not user or user.get("role") != ADMIN_ROLE:
            self.logger.warning("Caller is not admin, skipping save", uid=caller.uid)
            return SaveResult(status=SaveStatus.FORBIDDEN)

        sanitized = self.sanitize(config)
        await self.database.set_document(
            self.collection, self.document_id, sanitized.to_document()
        )

        self.logger.info("Configuration saved", uid=caller.uid)
        return SaveResult(status=SaveStatus.SAVED, config=sanitized)

    @staticmethod
    def sanitize(config: OddsConfiguration) -> OddsConfiguration:
        """Keep only default sport keys, normalize their fields, restamp."""
        sports = {
            key: SportConfig(enabled=value.enabled, refresh_interval=value.refresh_interval)
            for key, value in config.sports.items()
            if key in DEFAULT_SPORTS
        }
        return OddsConfiguration(
            api_key=config.api_key or "",
            sports=sports,
            is_active=bool(config.is_active),
            last_updated=utcnow(),
        )
