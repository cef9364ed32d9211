"""Tests for the TTL result cache."""

import pytest

from odds_service.cache import TTLCache, make_cache_key


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=30, max_entries=3, clock=clock)


def test_hit_within_ttl(cache, clock):
    cache.set("k", [1, 2])
    clock.advance(30)
    assert cache.get("k") == [1, 2]


def test_expired_entry_is_evicted_on_lookup(cache, clock):
    cache.set("k", [1, 2])
    clock.advance(30.5)

    assert cache.get("k") is None
    assert "k" not in cache


def test_empty_payload_is_still_a_hit(cache):
    cache.set("k", [])
    assert cache.get("k") == []


def test_oldest_entry_evicted_when_full(cache):
    for key in ("a", "b", "c", "d"):
        cache.set(key, key)

    assert len(cache) == 3
    assert cache.get("a") is None
    assert cache.get("d") == "d"


def test_overwrite_does_not_evict(cache):
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    cache.set("a", 10)

    assert len(cache) == 3
    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_invalidate_sport_matches_exact_key_only(clock):
    cache = TTLCache(clock=clock)
    cache.set("/sports/soccer_epl/odds:{}", "epl", sport_key="soccer_epl")
    cache.set("/sports/soccer_epl/scores:{}", "epl-scores", sport_key="soccer_epl")
    cache.set("/sports/soccer_epl_cup/odds:{}", "cup", sport_key="soccer_epl_cup")
    cache.set("/sports:{}", "sports")

    assert cache.invalidate_sport("soccer_epl") == 2
    assert cache.get("/sports/soccer_epl_cup/odds:{}") == "cup"
    assert cache.get("/sports:{}") == "sports"


def test_clear(cache):
    cache.set("a", 1, sport_key="x")
    cache.set("b", 2)
    cache.clear()
    assert len(cache) == 0


def test_cache_key_ignores_param_order():
    first = make_cache_key("/sports/x/odds", {"regions": "eu", "markets": "h2h"})
    second = make_cache_key("/sports/x/odds", {"markets": "h2h", "regions": "eu"})
    assert first == second
    assert make_cache_key("/sports") == make_cache_key("/sports", {})


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        TTLCache(max_entries=0)


def test_result_started_before_clear_is_discarded(cache):
    generation = cache.generation("soccer_epl")
    cache.clear()

    assert cache.set("k", "stale", sport_key="soccer_epl", generation=generation) is False
    assert "k" not in cache


def test_result_started_before_sport_invalidation_is_discarded(cache):
    epl = cache.generation("soccer_epl")
    liga = cache.generation("soccer_spain_la_liga")
    cache.invalidate_sport("soccer_epl")

    assert cache.set("epl", 1, sport_key="soccer_epl", generation=epl) is False
    assert cache.set("liga", 2, sport_key="soccer_spain_la_liga", generation=liga) is True
    assert cache.get("liga") == 2
