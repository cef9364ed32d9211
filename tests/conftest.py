"""Shared fixtures: a fake odds API, a temp document store and a controllable clock."""

import asyncio
from typing import Any, Optional

import httpx
import pytest

from odds_service.cache import TTLCache
from odds_service.config import ADMIN_ROLE, USERS_COLLECTION
from odds_service.database import Database
from odds_service.models import Caller
from odds_service.odds_client import OddsClient
from odds_service.storage import ConfigStore

BASE_URL = "https://odds.test/v4"
GOOD_KEY = "good-key-1234"
OTHER_GOOD_KEY = "good-key-5678"

SPORTS_PAYLOAD = [
    {"key": "soccer_epl", "group": "Soccer", "title": "EPL", "active": True},
    {"key": "soccer_spain_la_liga", "group": "Soccer", "title": "La Liga", "active": True},
]


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class Gate:
    """Holds a matching request until released."""

    def __init__(self, path: str, api_key: Optional[str] = None):
        self.path = path
        self.api_key = api_key
        self.arrived = asyncio.Event()
        self.released = asyncio.Event()

    def matches(self, path: str, api_key: Optional[str]) -> bool:
        return path == self.path and self.api_key in (None, api_key)


class FakeOddsAPI:
    """MockTransport handler imitating The Odds API v4."""

    def __init__(self, valid_keys=(GOOD_KEY, OTHER_GOOD_KEY)):
        self.valid_keys = set(valid_keys)
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, tuple[int, Any]] = {}
        self.failures: dict[str, type] = {}
        self.headers = {"x-requests-remaining": "480", "x-requests-used": "20"}
        self.gates: list[Gate] = []

    def hold(self, path: str, api_key: Optional[str] = None) -> Gate:
        gate = Gate(path, api_key)
        self.gates.append(gate)
        return gate

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v4")
        api_key = request.url.params.get("apiKey")

        for gate in self.gates:
            if gate.matches(path, api_key):
                gate.arrived.set()
                await gate.released.wait()

        if path in self.failures:
            raise self.failures[path]("simulated failure", request=request)

        if path in self.responses:
            status_code, body = self.responses[path]
            return httpx.Response(status_code, json=body, headers=self.headers)

        if api_key not in self.valid_keys:
            return httpx.Response(401, json={"message": "Invalid API key"})

        if path == "/sports":
            return httpx.Response(200, json=SPORTS_PAYLOAD, headers=self.headers)

        return httpx.Response(
            200,
            json=[{
                "id": f"event-{path}",
                "home_team": "Arsenal",
                "away_team": "Chelsea",
                "fetched_with": api_key,
            }],
            headers=self.headers,
        )

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path.removeprefix("/v4") == path)

    def reset(self):
        self.requests.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_api():
    return FakeOddsAPI()


@pytest.fixture
def database(tmp_path):
    return Database(str(tmp_path / "odds_test.db"))


@pytest.fixture
def store(database):
    return ConfigStore(database)


async def seed_user(database: Database, uid: str, role: str) -> Caller:
    await database.set_document(USERS_COLLECTION, uid, {"uid": uid, "role": role})
    return Caller(uid=uid)


@pytest.fixture
async def admin(database):
    return await seed_user(database, "admin-1", ADMIN_ROLE)


@pytest.fixture
async def staff(database):
    return await seed_user(database, "staff-1", "staffuser")


def make_client(store: ConfigStore, fake_api: FakeOddsAPI, clock: Optional[FakeClock] = None) -> OddsClient:
    cache = TTLCache(clock=clock) if clock is not None else TTLCache()
    return OddsClient(
        store,
        base_url=BASE_URL,
        cache=cache,
        transport=httpx.MockTransport(fake_api),
    )


@pytest.fixture
def client(store, fake_api, clock):
    return make_client(store, fake_api, clock)


@pytest.fixture
async def configured_client(client, admin, fake_api):
    await client.initialize()
    await client.set_api_key(GOOD_KEY, admin)
    fake_api.reset()
    return client
