"""Persist the last assembled market history and serve it back while fresh."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
import logging
from typing import Callable, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.config import Settings
from app.models import Base, HistoryCacheEntry
from app.schemas.market import CacheEntry, MarketHistory


DEFAULT_CACHE_KEY = "market_data_history_full_v3"
DEFAULT_FRESHNESS_WINDOW = timedelta(hours=1)
logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheStore(ABC):
    """String key/value storage backing the history cache."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...


class MemoryCacheStore(CacheStore):
    """Process-local store; contents die with the process."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set(self, key: str, value: str) -> None:
        self._items[key] = value


class SqlCacheStore(CacheStore):
    """One row per key in ``history_cache``. Concurrent writers: last one wins."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], engine: Optional[AsyncEngine] = None) -> None:
        self.session_factory = session_factory
        self.engine = engine

    async def create_schema(self) -> None:
        if self.engine is None:
            raise RuntimeError("SqlCacheStore.create_schema needs an engine")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def get(self, key: str) -> Optional[str]:
        async with self.session_factory() as session:
            row = await session.get(HistoryCacheEntry, key)
            return row.payload if row is not None else None

    async def set(self, key: str, value: str) -> None:
        async with self.session_factory() as session:
            await session.merge(HistoryCacheEntry(key=key, payload=value))
            await session.commit()


class HistoryCache:
    """
    Freshness-checked view over a ``CacheStore``.

    An entry is served while ``now - timestamp < freshness_window``. Missing,
    stale, corrupt or unreadable entries all read as None; failed writes are
    logged and reported as False.
    """

    def __init__(
        self,
        store: CacheStore,
        key: str = DEFAULT_CACHE_KEY,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.key = key
        self.freshness_window = freshness_window
        self._clock = clock or _utcnow

    @classmethod
    def from_settings(cls, store: CacheStore, settings: Settings, **kwargs) -> "HistoryCache":
        return cls(
            store,
            key=settings.cache_key,
            freshness_window=timedelta(seconds=settings.cache_ttl_seconds),
            **kwargs,
        )

    def _now(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo else now.replace(tzinfo=timezone.utc)

    async def read(self) -> Optional[MarketHistory]:
        try:
            raw = await self.store.get(self.key)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("history_cache_read_failed", extra={"key": self.key, "detail": str(exc)[:200]})
            return None

        if raw is None:
            logger.info("history_cache_miss", extra={"key": self.key})
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("history_cache_corrupt", extra={"key": self.key, "errors": exc.error_count()})
            return None

        stamp = entry.timestamp if entry.timestamp.tzinfo else entry.timestamp.replace(tzinfo=timezone.utc)
        age = self._now() - stamp
        if age >= self.freshness_window:
            logger.info("history_cache_stale", extra={"key": self.key, "age_seconds": age.total_seconds()})
            return None
        logger.info("history_cache_hit", extra={"key": self.key, "age_seconds": age.total_seconds()})
        return entry.data

    async def write(self, history: MarketHistory) -> bool:
        entry = CacheEntry(timestamp=self._now(), data=history)
        try:
            await self.store.set(self.key, entry.model_dump_json())
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("history_cache_write_failed", extra={"key": self.key, "detail": str(exc)[:200]})
            return False
        return True
