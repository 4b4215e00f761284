from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.config import Settings
from app.db import build_engine, build_session_factory
from app.schemas.market import HistoryPoint, MarketHistory
from app.services.history_cache import HistoryCache, MemoryCacheStore, SqlCacheStore

WINDOW = timedelta(hours=1)


def _history(last: str = "2024-05-31") -> MarketHistory:
    daily = [HistoryPoint(date="2024-05-30", value=527.4), HistoryPoint(date=last, value=529.1)]
    return MarketHistory(
        spy_daily=daily,
        spy_weekly=daily[-1:],
        spy_monthly=daily[-1:],
        vix_daily=[HistoryPoint(date=last, value=12.9)],
        breadth=[],
        pe_ratio=23.1,
        last_updated=last,
    )


class BrokenStore(MemoryCacheStore):
    async def get(self, key):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    async def set(self, key, value):
        raise OSError("No space left on device")


async def test_read_within_window_returns_dataset(clock):
    cache = HistoryCache(MemoryCacheStore(), freshness_window=WINDOW, clock=clock)
    history = _history()

    assert await cache.write(history) is True
    clock.advance(WINDOW - timedelta(seconds=1))

    assert await cache.read() == history


async def test_read_after_window_is_stale(clock):
    cache = HistoryCache(MemoryCacheStore(), freshness_window=WINDOW, clock=clock)
    await cache.write(_history())

    clock.advance(WINDOW + timedelta(seconds=1))

    assert await cache.read() is None


async def test_missing_entry_reads_as_none(clock):
    cache = HistoryCache(MemoryCacheStore(), clock=clock)

    assert await cache.read() is None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[]",
        '{"timestamp": "2024-06-03T14:00:00Z"}',
        '{"timestamp": "yesterday", "data": {"pe_ratio": 20, "last_updated": "2024-05-31"}}',
    ],
)
async def test_corrupt_entry_reads_as_none(clock, raw):
    store = MemoryCacheStore()
    await store.set("market_data_history_full_v3", raw)
    cache = HistoryCache(store, clock=clock)

    assert await cache.read() is None


async def test_store_failures_are_absorbed(clock):
    cache = HistoryCache(BrokenStore(), clock=clock)

    assert await cache.read() is None
    assert await cache.write(_history()) is False


async def test_from_settings_uses_key_and_window(clock):
    settings = Settings(_env_file=None, cache_key="custom_key", cache_ttl_seconds=60)
    store = MemoryCacheStore()
    cache = HistoryCache.from_settings(store, settings, clock=clock)

    await cache.write(_history())

    assert cache.freshness_window == timedelta(seconds=60)
    assert await store.get("custom_key") is not None
    clock.advance(timedelta(seconds=61))
    assert await cache.read() is None


async def test_sql_store_round_trip_and_overwrite(tmp_path, clock):
    settings = Settings(_env_file=None, database_url=f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    engine = build_engine(settings)
    store = SqlCacheStore(build_session_factory(engine), engine)
    try:
        await store.create_schema()
        assert await store.get("history") is None

        await store.set("history", "first")
        await store.set("history", "second")
        assert await store.get("history") == "second"

        cache = HistoryCache(store, key="history", clock=clock)
        history = _history()
        assert await cache.write(history) is True
        assert await cache.read() == history
    finally:
        await engine.dispose()
