from fastapi import APIRouter, Depends

from app.api.deps import get_aggregator, get_app_settings
from app.config import Settings
from app.schemas import DashboardPayload
from app.services.aggregator import MarketHistoryAggregator
from app.services.dashboard import build_dashboard

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardPayload)
async def get_dashboard(
    aggregator: MarketHistoryAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_app_settings),
) -> DashboardPayload:
    """
    Cards for the short, medium and long-term panels plus the leverage gauge.
    Missing data comes back as status "unavailable", never as an HTTP error.
    """
    history = await aggregator.get_market_history()
    return build_dashboard(history, settings)
