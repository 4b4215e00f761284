from .aggregator import MarketHistoryAggregator
from .dashboard import build_dashboard
from .leverage_score import compute_leverage_score

__all__ = ["MarketHistoryAggregator", "build_dashboard", "compute_leverage_score"]
