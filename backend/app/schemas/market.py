from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Trend = Literal["up", "down", "neutral"]


class HistoryPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    value: float


class MarketHistory(BaseModel):
    """One assembled fetch cycle. Replaced, never mutated, by the next cycle."""

    model_config = ConfigDict(frozen=True)

    spy_daily: List[HistoryPoint] = Field(default_factory=list)
    spy_weekly: List[HistoryPoint] = Field(default_factory=list)
    spy_monthly: List[HistoryPoint] = Field(default_factory=list)
    vix_daily: List[HistoryPoint] = Field(default_factory=list)
    # Proxy: equal-weight S&P 500 ETF closes.
    breadth: List[HistoryPoint] = Field(default_factory=list)
    pe_ratio: float
    last_updated: str
    is_mock: bool = False


class CacheEntry(BaseModel):
    timestamp: datetime
    data: MarketHistory


class MetricCard(BaseModel):
    title: str
    value: str
    trend: Trend = "neutral"
    data: List[HistoryPoint] = Field(default_factory=list)
    sub_label: Optional[str] = None


class LeverageScore(BaseModel):
    score: int
    raw_score: int
    safety_warning: bool = False
    signals: Dict[str, int] = Field(default_factory=dict)


class DashboardPayload(BaseModel):
    status: Literal["ok", "unavailable"]
    last_updated: Optional[str] = None
    is_mock: bool = False
    short_term: List[MetricCard] = Field(default_factory=list)
    medium_term: List[MetricCard] = Field(default_factory=list)
    long_term: List[MetricCard] = Field(default_factory=list)
    leverage: LeverageScore
    message: Optional[str] = None


class MarketHistoryResponse(BaseModel):
    status: Literal["ok", "unavailable"]
    history: Optional[MarketHistory] = None


class IndicatorResponse(BaseModel):
    symbol: str
    granularity: str
    indicator: str
    period: int
    points: List[HistoryPoint] = Field(default_factory=list)
    status: Literal["ok", "unavailable"]
