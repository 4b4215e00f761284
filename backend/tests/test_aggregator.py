from datetime import date, timedelta

import httpx
import pytest

from app.services.aggregator import MarketHistoryAggregator
from app.services.history_cache import HistoryCache, MemoryCacheStore


def _closes(start_value: float, days: int = 40):
    start = date(2024, 1, 1)
    return {(start + timedelta(days=i)).isoformat(): start_value + i for i in range(days)}


class Recorder:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        self.calls.append((params["function"], params["symbol"]))
        body = self.responses.get((params["function"], params["symbol"]), {"Note": "rate limit"})
        return httpx.Response(200, json=body)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def build(settings, clock, mock_provider, sleeps):
    def _build(recorder, store=None):
        async def fake_sleep(seconds):
            sleeps.append(seconds)

        cache = HistoryCache.from_settings(store or MemoryCacheStore(), settings, clock=clock)
        return MarketHistoryAggregator(mock_provider(recorder), cache, settings, sleep=fake_sleep)

    return _build


@pytest.fixture
def full_responses(daily_payload):
    return {
        ("TIME_SERIES_DAILY", "SPY"): daily_payload(_closes(470.0)),
        ("TIME_SERIES_DAILY", "VIX"): daily_payload(_closes(13.0)),
        ("TIME_SERIES_DAILY", "RSP"): daily_payload(_closes(160.0)),
    }


async def test_fetch_cycle_is_sequential_with_delays(build, full_responses, sleeps):
    recorder = Recorder(full_responses)
    aggregator = build(recorder)

    history = await aggregator.get_market_history()

    assert recorder.calls == [
        ("TIME_SERIES_DAILY", "SPY"),
        ("TIME_SERIES_DAILY", "VIX"),
        ("TIME_SERIES_DAILY", "RSP"),
    ]
    assert sleeps == [1.0, 1.0]
    assert history is not None
    assert len(history.spy_daily) == 40
    assert history.last_updated == "2024-02-09"
    assert history.spy_daily[-1].value == pytest.approx(509.0)
    assert history.vix_daily[0].value == pytest.approx(13.0)
    assert len(history.breadth) == 40
    assert history.pe_ratio == 23.1
    assert history.is_mock is False


async def test_weekly_and_monthly_are_resampled_from_daily(build, full_responses):
    history = await build(Recorder(full_responses)).get_market_history()

    assert [p.date for p in history.spy_monthly] == ["2024-01-31", "2024-02-09"]
    assert history.spy_weekly[0].date == "2024-01-07"
    assert history.spy_weekly[-1].date == "2024-02-09"
    daily_values = {p.value for p in history.spy_daily}
    assert all(p.value in daily_values for p in history.spy_weekly)


async def test_fresh_cache_skips_network(build, full_responses, clock):
    store = MemoryCacheStore()
    first = Recorder(full_responses)
    history = await build(first, store).get_market_history()

    clock.advance(timedelta(minutes=59))
    second = Recorder(full_responses)
    cached = await build(second, store).get_market_history()

    assert cached == history
    assert second.calls == []


async def test_stale_cache_triggers_new_cycle(build, full_responses, clock):
    store = MemoryCacheStore()
    await build(Recorder(full_responses), store).get_market_history()

    clock.advance(timedelta(hours=1, seconds=1))
    second = Recorder(full_responses)
    history = await build(second, store).get_market_history()

    assert history is not None
    assert len(second.calls) == 3


async def test_primary_failure_returns_none_and_caches_nothing(build, full_responses):
    responses = dict(full_responses)
    responses.pop(("TIME_SERIES_DAILY", "SPY"))
    recorder = Recorder(responses)
    store = MemoryCacheStore()

    assert await build(recorder, store).get_market_history() is None
    assert recorder.calls == [("TIME_SERIES_DAILY", "SPY")]
    assert await store.get("market_data_history_full_v3") is None


async def test_secondary_failures_become_empty_series(build, full_responses):
    responses = {("TIME_SERIES_DAILY", "SPY"): full_responses[("TIME_SERIES_DAILY", "SPY")]}
    recorder = Recorder(responses)

    history = await build(recorder).get_market_history()

    assert history is not None
    assert history.vix_daily == []
    assert history.breadth == []
    assert len(recorder.calls) == 3


async def test_non_date_keys_are_dropped_from_series(build, full_responses, daily_payload):
    responses = dict(full_responses)
    primary = daily_payload(_closes(470.0))
    primary["Time Series (Daily)"]["latest"] = {"4. close": "999.0"}
    responses[("TIME_SERIES_DAILY", "SPY")] = primary

    history = await build(Recorder(responses)).get_market_history()

    assert history is not None
    assert len(history.spy_daily) == 40
    assert history.last_updated == "2024-02-09"
    assert all(p.value != 999.0 for p in history.spy_weekly)


async def test_empty_primary_body_returns_none(settings, clock, mock_provider):
    aggregator = MarketHistoryAggregator(
        mock_provider(lambda request: httpx.Response(200, content=b"")),
        HistoryCache(MemoryCacheStore(), clock=clock),
        settings,
    )

    assert await aggregator.get_market_history() is None


async def test_missing_api_key_returns_none_without_calls(settings, clock, mock_provider):
    def handler(request):
        raise AssertionError("network call without API key")

    aggregator = MarketHistoryAggregator(
        mock_provider(handler, api_key=""),
        HistoryCache(MemoryCacheStore(), clock=clock),
        settings,
    )

    assert await aggregator.get_market_history() is None


async def test_valuation_fetched_when_enabled(build, full_responses, settings, sleeps):
    settings.fetch_valuation = True
    responses = dict(full_responses)
    responses[("OVERVIEW", "SPY")] = {"Symbol": "SPY", "PERatio": "None", "ForwardPE": "21.4"}
    recorder = Recorder(responses)

    history = await build(recorder).get_market_history()

    assert recorder.calls[-1] == ("OVERVIEW", "SPY")
    assert sleeps == [1.0, 1.0, 1.0]
    assert history.pe_ratio == pytest.approx(21.4)


async def test_valuation_failure_uses_default(build, full_responses, settings):
    settings.fetch_valuation = True
    recorder = Recorder(full_responses)

    history = await build(recorder).get_market_history()

    assert len(recorder.calls) == 4
    assert history.pe_ratio == settings.default_pe_ratio
