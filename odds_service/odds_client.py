"""Async client for The Odds API."""

import asyncio
from typing import Any, Optional
import httpx
import structlog

from .cache import TTLCache, make_cache_key
from .config import (
    DATE_FORMAT,
    DEFAULT_MARKETS,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REGIONS,
    ODDS_API_BASE_URL,
    REQUEST_TIMEOUT_SECONDS,
    VALIDATION_TIMEOUT_SECONDS,
)
from .errors import ErrorCode, OddsAPIError
from .models import (
    ApiUsage,
    Caller,
    LoadStatus,
    OddsConfiguration,
    SaveResult,
    SportConfig,
    default_sports,
)
from .storage import ConfigStore

logger = structlog.get_logger()


class OddsClient:
    """
    Sport-gated, cached access to The Odds API.

    Owns the in-memory configuration for the lifetime of the process. The
    client starts inactive; call ``start()`` (or await ``initialize()``) to
    load the persisted configuration and validate its API key.

    Usage:
        client = OddsClient(ConfigStore(Database()))
        await client.start()

        if client.is_configured():
            events = await client.get_odds("soccer_epl")
    """

    def __init__(
        self,
        store: ConfigStore,
        *,
        base_url: str = ODDS_API_BASE_URL,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.base_url = base_url
        self.cache = cache if cache is not None else TTLCache()
        self._transport = transport

        self._config = OddsConfiguration()
        self._initialized = False
        self._ready: Optional[asyncio.Task] = None
        self.load_status: Optional[LoadStatus] = None

        self._requests_remaining: Optional[int] = None
        self._requests_used: Optional[int] = None

        self.logger = logger.bind(component="odds_client")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> asyncio.Task:
        """Schedule initialization without blocking; returns the readiness task."""
        if self._ready is None:
            self._ready = asyncio.get_running_loop().create_task(self.initialize())
        return self._ready

    async def _wait_for_start(self):
        """Let a pending start() finish so it cannot overwrite a newer change."""
        if self._ready is not None and not self._ready.done():
            await asyncio.wait({self._ready})

    async def initialize(self) -> bool:
        """Load the persisted configuration and validate its API key."""
        try:
            result = await self.store.load()
            self.load_status = result.status

            config = result.config
            config.sports = {**default_sports(), **config.sports}
            self._config = config

            if config.api_key:
                is_valid = await self.validate_api_key(config.api_key)
                self._initialized = is_valid
                self._config.is_active = is_valid
            else:
                self._config.is_active = False

        except Exception as e:
            self._config.is_active = False
            self.logger.error("Initialization failed", error=str(e))
            raise OddsAPIError(ErrorCode.INITIALIZATION_ERROR) from e

        self.logger.info(
            "Odds client initialized",
            load_status=self.load_status.value,
            configured=self.is_configured(),
        )
        return self.is_configured()

    # =========================================================================
    # Configuration
    # =========================================================================

    def is_configured(self) -> bool:
        return self._initialized and bool(self._config.api_key) and self._config.is_active

    @property
    def api_key(self) -> str:
        return self._config.api_key

    @property
    def configuration(self) -> OddsConfiguration:
        """Snapshot of the in-memory configuration."""
        return self._config.model_copy(deep=True)

    @property
    def usage(self) -> ApiUsage:
        """Quota counters from the most recent API response."""
        return ApiUsage(
            requests_remaining=self._requests_remaining,
            requests_used=self._requests_used,
        )

    def get_sport_config(self, sport_key: str) -> SportConfig:
        """Configured policy, else the built-in default, else enabled every 30 s."""
        config = self._config.sports.get(sport_key) or default_sports().get(sport_key)
        if config is None:
            config = SportConfig(enabled=True, refresh_interval=DEFAULT_REFRESH_INTERVAL)
        return config

    async def validate_api_key(self, api_key: str) -> bool:
        """Check a key with a lightweight authenticated request."""
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/sports",
                    params={"apiKey": api_key},
                    timeout=VALIDATION_TIMEOUT_SECONDS,
                )
            except httpx.HTTPError as e:
                self.logger.warning("API key validation request failed", error=str(e))
                return False

        self._update_usage(response.headers)
        return response.status_code == 200

    async def set_api_key(self, api_key: str, caller: Optional[Caller] = None) -> SaveResult:
        """
        Validate and activate a new API key, then persist the configuration.

        Raises:
            OddsAPIError: API_KEY_INVALID if the key is rejected. Store write
                errors propagate unchanged.
        """
        await self._wait_for_start()

        try:
            if not await self.validate_api_key(api_key):
                raise OddsAPIError(ErrorCode.API_KEY_INVALID)

            self._config.api_key = api_key
            self._config.is_active = True
            self._initialized = True
            # Results fetched under the previous key must not be served
            self.cache.clear()

            result = await self.store.save(self._config, caller)
        except Exception:
            self._config.is_active = False
            raise

        self.logger.info("API key updated", save_status=result.status.value)
        return result

    async def set_sport_config(
        self,
        sport_key: str,
        enabled: bool,
        refresh_interval: int,
        caller: Optional[Caller] = None,
    ) -> SaveResult:
        """Update a sport's policy (interval clamped to [1, 3600]) and persist it."""
        await self._wait_for_start()

        self._config.sports[sport_key] = SportConfig(
            enabled=enabled,
            refresh_interval=refresh_interval,
        )
        self.cache.invalidate_sport(sport_key)

        result = await self.store.save(self._config, caller)
        self.logger.info(
            "Sport configuration updated",
            sport=sport_key,
            enabled=enabled,
            save_status=result.status.value,
        )
        return result

    # =========================================================================
    # Requests
    # =========================================================================

    def _update_usage(self, headers: httpx.Headers):
        """Update rate limit tracking from response headers."""
        remaining = headers.get("x-requests-remaining")
        used = headers.get("x-requests-used")

        try:
            if remaining is not None:
                self._requests_remaining = int(float(remaining))
            if used is not None:
                self._requests_used = int(float(used))
        except ValueError:
            self.logger.debug("Unparseable quota headers", remaining=remaining, used=used)

    def _ensure_enabled(self, sport_key: str):
        if not self.get_sport_config(sport_key).enabled:
            raise OddsAPIError(ErrorCode.SPORT_DISABLED)

    async def _request(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        sport_key: Optional[str] = None,
    ) -> Any:
        """Serve from cache, else make one authenticated request and cache the result."""
        params = params or {}
        cache_key = make_cache_key(endpoint, params)
        generation = self.cache.generation(sport_key)

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if not self._config.api_key:
            raise OddsAPIError(ErrorCode.API_KEY_REQUIRED)

        url = f"{self.base_url}{endpoint}"
        query = {"apiKey": self._config.api_key, **params}

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.get(url, params=query, timeout=REQUEST_TIMEOUT_SECONDS)
            except httpx.HTTPError as e:
                self.logger.warning("Odds API request failed", endpoint=endpoint, error=str(e))
                raise OddsAPIError(ErrorCode.API_CONNECTION_ERROR) from e

        self._update_usage(response.headers)

        if response.status_code != 200:
            self.logger.warning(
                "Odds API error response",
                endpoint=endpoint,
                status_code=response.status_code,
            )
            raise OddsAPIError.from_status(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise OddsAPIError(ErrorCode.API_CONNECTION_ERROR, response.status_code) from e

        # Dropped if the key changed or the sport was reconfigured mid-request
        self.cache.set(cache_key, data, sport_key=sport_key, generation=generation)
        return data

    async def get_sports(self) -> list[dict]:
        """Fetch available sports from the API."""
        return await self._request("/sports")

    async def get_odds(self, sport_key: str, regions: str = DEFAULT_REGIONS) -> list[dict]:
        """
        Fetch upcoming events with head-to-head odds for a sport.

        Args:
            sport_key: The sport key (e.g., 'soccer_epl')
            regions: Comma-separated bookmaker regions (us, uk, eu, au)

        Raises:
            OddsAPIError: SPORT_DISABLED before any lookup if the sport is
                disabled, otherwise whatever the request classifies.
        """
        self._ensure_enabled(sport_key)
        return await self._request(
            f"/sports/{sport_key}/odds",
            {"regions": regions, "markets": DEFAULT_MARKETS, "dateFormat": DATE_FORMAT},
            sport_key=sport_key,
        )

    async def get_live_events(self, sport_key: str) -> list[dict]:
        """Fetch in-play events with odds for a sport."""
        self._ensure_enabled(sport_key)
        return await self._request(
            f"/sports/{sport_key}/odds-live",
            {"markets": DEFAULT_MARKETS, "dateFormat": DATE_FORMAT},
            sport_key=sport_key,
        )

    async def get_scores(self, sport_key: str) -> list[dict]:
        """Fetch live and recent scores for a sport."""
        self._ensure_enabled(sport_key)
        return await self._request(
            f"/sports/{sport_key}/scores",
            {"dateFormat": DATE_FORMAT},
            sport_key=sport_key,
        )
