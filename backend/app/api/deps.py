from fastapi import Request

from app.config import Settings
from app.services.aggregator import MarketHistoryAggregator


def get_aggregator(request: Request) -> MarketHistoryAggregator:
    return request.app.state.aggregator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
