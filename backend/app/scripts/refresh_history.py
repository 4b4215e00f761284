"""Run one fetch cycle against the configured cache and print the result."""

import asyncio
import logging
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../../")))

from dotenv import load_dotenv  # noqa: E402

from app.config import get_settings  # noqa: E402
from app.db import build_engine, build_session_factory  # noqa: E402
from app.services.aggregator import MarketHistoryAggregator  # noqa: E402
from app.services.dashboard import build_dashboard  # noqa: E402
from app.services.history_cache import HistoryCache, SqlCacheStore  # noqa: E402
from app.services.providers import AlphaVantageProvider  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def refresh() -> None:
    settings = get_settings()
    engine = build_engine(settings)
    store = SqlCacheStore(build_session_factory(engine), engine)
    try:
        await store.create_schema()
        aggregator = MarketHistoryAggregator(
            AlphaVantageProvider.from_settings(settings),
            HistoryCache.from_settings(store, settings),
            settings,
        )
        history = await aggregator.get_market_history()
        payload = build_dashboard(history, settings)

        if history is None:
            logger.warning(payload.message)
            return
        logger.info("-" * 50)
        logger.info(f"Last close:      {history.last_updated}")
        logger.info(f"Daily points:    {len(history.spy_daily)}")
        logger.info(f"Weekly points:   {len(history.spy_weekly)}")
        logger.info(f"Monthly points:  {len(history.spy_monthly)}")
        logger.info(f"VIX points:      {len(history.vix_daily)}")
        logger.info(f"Breadth points:  {len(history.breadth)}")
        logger.info(f"P/E ratio:       {history.pe_ratio}")
        logger.info("-" * 50)
        for card in payload.short_term + payload.medium_term + payload.long_term:
            logger.info(f"{card.title:<20} {card.value:>10}  ({card.trend})")
        logger.info("-" * 50)
        logger.info(f"Leverage score:  {payload.leverage.score} / 100")
        logger.info(f"Signals:         {payload.leverage.signals}")
        if payload.leverage.safety_warning:
            logger.warning("Safety warning: high P/E")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(refresh())
