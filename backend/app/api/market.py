import logging
from typing import Callable, Dict, List, Literal

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_aggregator, get_app_settings
from app.config import Settings
from app.schemas import HistoryPoint, IndicatorResponse, MarketHistory, MarketHistoryResponse
from app.services.aggregator import MarketHistoryAggregator
from app.services.indicators import calculate_ema, calculate_rsi, calculate_sma

router = APIRouter(prefix="/market", tags=["market"])
logger = logging.getLogger(__name__)

Granularity = Literal["daily", "weekly", "monthly"]
Indicator = Literal["sma", "ema", "rsi"]

INDICATORS: Dict[str, Callable[[List[HistoryPoint], int], List[HistoryPoint]]] = {
    "sma": calculate_sma,
    "ema": calculate_ema,
    "rsi": calculate_rsi,
}


def _series_for(history: MarketHistory, granularity: str) -> List[HistoryPoint]:
    if granularity == "weekly":
        return history.spy_weekly
    if granularity == "monthly":
        return history.spy_monthly
    return history.spy_daily


@router.get("/history", response_model=MarketHistoryResponse)
async def get_history(aggregator: MarketHistoryAggregator = Depends(get_aggregator)) -> MarketHistoryResponse:
    history = await aggregator.get_market_history()
    if history is None:
        return MarketHistoryResponse(status="unavailable")
    return MarketHistoryResponse(status="ok", history=history)


@router.get("/indicators", response_model=IndicatorResponse)
async def get_indicator(
    indicator: Indicator = Query("ema"),
    granularity: Granularity = Query("daily"),
    period: int = Query(50, ge=1, le=400),
    aggregator: MarketHistoryAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_app_settings),
) -> IndicatorResponse:
    """
    Compute one indicator over the primary symbol's cached series.
    Indicators are recomputed per request and never cached.
    """
    history = await aggregator.get_market_history()
    if history is None:
        return IndicatorResponse(
            symbol=settings.primary_symbol,
            granularity=granularity,
            indicator=indicator,
            period=period,
            status="unavailable",
        )

    points = INDICATORS[indicator](_series_for(history, granularity), period)
    if not points:
        logger.info(
            "indicator_insufficient_history",
            extra={"indicator": indicator, "granularity": granularity, "period": period},
        )
    return IndicatorResponse(
        symbol=settings.primary_symbol,
        granularity=granularity,
        indicator=indicator,
        period=period,
        points=points,
        status="ok",
    )
