"""Assemble the market history dataset from sequential provider calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.config import Settings
from app.schemas.market import HistoryPoint, MarketHistory
from app.services.history_cache import HistoryCache
from app.services.providers import AlphaVantageProvider
from app.services.series import parse_time_series, resample_monthly, resample_weekly, safe_float


logger = logging.getLogger(__name__)

PE_FIELDS = ("ForwardPE", "PERatio")


def _pe_from_overview(overview: Optional[Dict[str, Any]]) -> Optional[float]:
    if not overview:
        return None
    for field in PE_FIELDS:
        value = safe_float(overview.get(field))
        if value is not None and value > 0:
            return value
    return None


class MarketHistoryAggregator:
    """
    Runs one fetch cycle: cache check, then provider calls one at a time with a
    fixed pause between them, then resampling, assembly and cache write.

    A missing primary series fails the whole cycle (returns None, caches
    nothing). Missing secondary series become empty lists and a missing
    valuation falls back to the configured default.
    """

    def __init__(
        self,
        provider: AlphaVantageProvider,
        cache: HistoryCache,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.settings = settings or Settings()
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._calls = 0

    async def get_market_history(self) -> Optional[MarketHistory]:
        # Overlapping requests wait for the running cycle and then hit its cache entry.
        async with self._lock:
            cached = await self.cache.read()
            if cached is not None:
                return cached

            if not self.provider.configured:
                logger.warning("market_history_unconfigured", extra={"provider": self.provider.name})
                return None

            return await self._fetch_cycle()

    async def _call(self, fetch: Awaitable[Optional[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
        if self._calls:
            await self._sleep(self.settings.request_delay_seconds)
        self._calls += 1
        return await fetch

    async def _fetch_series(self, symbol: str) -> List[HistoryPoint]:
        payload = await self._call(self.provider.fetch_daily(symbol))
        points = parse_time_series(payload)
        if not points:
            logger.warning("market_history_series_empty", extra={"symbol": symbol})
        return points

    async def _fetch_pe_ratio(self) -> float:
        if not self.settings.fetch_valuation:
            return self.settings.default_pe_ratio
        overview = await self._call(self.provider.fetch_overview(self.settings.valuation_symbol))
        pe_ratio = _pe_from_overview(overview)
        if pe_ratio is None:
            logger.warning("market_history_valuation_default", extra={"symbol": self.settings.valuation_symbol})
            return self.settings.default_pe_ratio
        return pe_ratio

    async def _fetch_cycle(self) -> Optional[MarketHistory]:
        settings = self.settings
        self._calls = 0
        logger.info("market_history_fetch", extra={"symbol": settings.primary_symbol})

        spy_daily = await self._fetch_series(settings.primary_symbol)
        if not spy_daily:
            return None

        vix_daily = await self._fetch_series(settings.volatility_symbol)
        breadth = await self._fetch_series(settings.breadth_symbol)
        pe_ratio = await self._fetch_pe_ratio()

        history = MarketHistory(
            spy_daily=spy_daily,
            spy_weekly=resample_weekly(spy_daily),
            spy_monthly=resample_monthly(spy_daily),
            vix_daily=vix_daily,
            breadth=breadth,
            pe_ratio=pe_ratio,
            last_updated=spy_daily[-1].date,
            is_mock=False,
        )
        await self.cache.write(history)
        logger.info(
            "market_history_assembled",
            extra={
                "daily_points": len(spy_daily),
                "vix_points": len(vix_daily),
                "breadth_points": len(breadth),
                "provider_calls": self._calls,
            },
        )
        return history
