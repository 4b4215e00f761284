from .market import (
    CacheEntry,
    DashboardPayload,
    HistoryPoint,
    IndicatorResponse,
    LeverageScore,
    MarketHistory,
    MarketHistoryResponse,
    MetricCard,
)

__all__ = [
    "CacheEntry",
    "DashboardPayload",
    "HistoryPoint",
    "IndicatorResponse",
    "LeverageScore",
    "MarketHistory",
    "MarketHistoryResponse",
    "MetricCard",
]
