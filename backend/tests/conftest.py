from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Sequence

import httpx
import pytest

from app.config import Settings
from app.schemas.market import HistoryPoint
from app.services.providers import AlphaVantageProvider


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        alpha_vantage_api_key="demo",
        request_delay_seconds=1.0,
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def make_points() -> Callable[..., List[HistoryPoint]]:
    def _make(values: Sequence[float], start: date = date(2024, 1, 1)) -> List[HistoryPoint]:
        return [
            HistoryPoint(date=(start + timedelta(days=i)).isoformat(), value=float(v))
            for i, v in enumerate(values)
        ]

    return _make


@pytest.fixture
def daily_payload() -> Callable[[Dict[str, float]], dict]:
    def _payload(closes: Dict[str, float]) -> dict:
        return {
            "Meta Data": {"1. Information": "Daily Prices (open, high, low, close) and Volumes"},
            "Time Series (Daily)": {
                day: {"1. open": f"{value:.4f}", "4. close": f"{value:.4f}", "5. volume": "1000"}
                for day, value in closes.items()
            },
        }

    return _payload


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 3, 14, 0, tzinfo=timezone.utc))


@pytest.fixture
def mock_provider() -> Callable[..., AlphaVantageProvider]:
    def _build(handler: Callable[[httpx.Request], httpx.Response], api_key: str = "demo") -> AlphaVantageProvider:
        return AlphaVantageProvider(api_key=api_key, transport=httpx.MockTransport(handler))

    return _build
