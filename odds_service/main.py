"""FastAPI application entry point."""

import asyncio
from datetime import datetime, timezone
from typing import Optional
import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import DATABASE_PATH, DEFAULT_REGIONS
from .database import Database
from .errors import ErrorCode, OddsAPIError
from .logging import configure_logging
from .models import (
    ApiKeyRequest,
    Caller,
    ConfigUpdateResponse,
    SaveResult,
    ServiceStatus,
    SportConfigRequest,
)
from .odds_client import OddsClient
from .storage import ConfigStore

logger = structlog.get_logger()

ERROR_STATUS_CODES = {
    ErrorCode.API_KEY_REQUIRED: 503,
    ErrorCode.API_KEY_INVALID: 401,
    ErrorCode.API_RATE_LIMIT: 429,
    ErrorCode.API_CONNECTION_ERROR: 502,
    ErrorCode.SPORT_DISABLED: 403,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.INITIALIZATION_ERROR: 500,
}

app = FastAPI(
    title="Sports Odds Service",
    description="Cached, sport-gated access to The Odds API",
    version="1.0.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def log_initialization_failure(task: asyncio.Task):
    """Collect the outcome of the background initialization task."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "Odds client initialization failed",
            code=getattr(error, "code", ErrorCode.INITIALIZATION_ERROR).value,
            error=str(error.__cause__ or error),
        )


@app.on_event("startup")
async def startup_event():
    """Wire the store and client, then start initialization in the background."""
    configure_logging()

    database = Database(DATABASE_PATH)
    await database.initialize()

    client = OddsClient(ConfigStore(database))
    client.start().add_done_callback(log_initialization_failure)

    app.state.database = database
    app.state.odds_client = client


def get_odds_client(request: Request) -> OddsClient:
    return request.app.state.odds_client


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_caller(x_user_id: Optional[str] = Header(default=None)) -> Optional[Caller]:
    """Identity of the caller; no header means unauthenticated."""
    if not x_user_id:
        return None
    return Caller(uid=x_user_id)


def to_http_error(error: OddsAPIError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS_CODES.get(error.code, 500),
        detail=error.to_dict(),
    )


def update_response(client: OddsClient, result: SaveResult) -> ConfigUpdateResponse:
    config = client.configuration
    return ConfigUpdateResponse(
        save_status=result.status,
        is_active=config.is_active,
        sports=config.sports,
    )


@app.get("/api/status", response_model=ServiceStatus)
async def get_status(
    client: OddsClient = Depends(get_odds_client),
    database: Database = Depends(get_database),
):
    """Report whether the odds API is configured and the store reachable."""
    usage = client.usage
    return ServiceStatus(
        configured=client.is_configured(),
        store_online=await database.ping(),
        requests_remaining=usage.requests_remaining,
        requests_used=usage.requests_used,
    )


@app.get("/api/config")
async def get_config(client: OddsClient = Depends(get_odds_client)):
    """Current configuration with the API key masked."""
    config = client.configuration
    api_key = config.api_key
    return {
        "api_key": f"{'*' * max(len(api_key) - 4, 0)}{api_key[-4:]}" if api_key else "",
        "is_active": config.is_active,
        "configured": client.is_configured(),
        "last_updated": config.last_updated.isoformat(),
        "sports": {
            key: sport.model_dump() for key, sport in config.sports.items()
        },
    }


@app.put("/api/config/api-key", response_model=ConfigUpdateResponse)
async def update_api_key(
    body: ApiKeyRequest,
    client: OddsClient = Depends(get_odds_client),
    caller: Optional[Caller] = Depends(get_caller),
):
    """Validate and activate a new API key."""
    try:
        result = await client.set_api_key(body.api_key, caller)
    except OddsAPIError as e:
        raise to_http_error(e)
    return update_response(client, result)


@app.put("/api/config/sports/{sport_key}", response_model=ConfigUpdateResponse)
async def update_sport_config(
    sport_key: str,
    body: SportConfigRequest,
    client: OddsClient = Depends(get_odds_client),
    caller: Optional[Caller] = Depends(get_caller),
):
    """Enable or disable a sport and set its refresh interval."""
    result = await client.set_sport_config(
        sport_key, body.enabled, body.refresh_interval, caller
    )
    return update_response(client, result)


@app.get("/api/sports")
async def get_sports(client: OddsClient = Depends(get_odds_client)):
    """List sports offered by the odds API."""
    try:
        return await client.get_sports()
    except OddsAPIError as e:
        raise to_http_error(e)


@app.get("/api/odds/{sport_key}")
async def get_odds(
    sport_key: str,
    regions: str = Query(default=DEFAULT_REGIONS),
    client: OddsClient = Depends(get_odds_client),
):
    """Upcoming events with odds for a sport."""
    try:
        return await client.get_odds(sport_key, regions=regions)
    except OddsAPIError as e:
        raise to_http_error(e)


@app.get("/api/live/{sport_key}")
async def get_live_events(sport_key: str, client: OddsClient = Depends(get_odds_client)):
    """In-play events for a sport."""
    try:
        return await client.get_live_events(sport_key)
    except OddsAPIError as e:
        raise to_http_error(e)


@app.get("/api/scores/{sport_key}")
async def get_scores(sport_key: str, client: OddsClient = Depends(get_odds_client)):
    """Scores for a sport."""
    try:
        return await client.get_scores(sport_key)
    except OddsAPIError as e:
        raise to_http_error(e)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
