"""Turn a market history into the card and gauge payload the front end renders."""

from __future__ import annotations

from typing import List, Optional

from app.config import Settings
from app.schemas.market import DashboardPayload, HistoryPoint, LeverageScore, MarketHistory, MetricCard, Trend
from app.services.indicators import calculate_ema, calculate_rsi, calculate_sma, latest_value, percent_above
from app.services.leverage_score import compute_leverage_score


RSI_PERIOD = 14
TREND_EMA_PERIOD = 50
BREADTH_SHORT_SMA = 20
BREADTH_LONG_SMA = 200
NO_VALUE = "N/A"
UNAVAILABLE_MESSAGE = "No market data: check the API key or wait for the provider rate limit to reset."


def _fmt_pct(value: Optional[float]) -> str:
    if value is None:
        return NO_VALUE
    return f"{'+' if value > 0 else ''}{value:.2f}%"


def _fmt_num(value: Optional[float]) -> str:
    return NO_VALUE if value is None else f"{value:.2f}"


def _direction(value: Optional[float]) -> Trend:
    if value is None:
        return "neutral"
    return "up" if value > 0 else "down"


def _pct_card(title: str, series: List[HistoryPoint], sub_label: Optional[str] = None) -> MetricCard:
    current = latest_value(series)
    return MetricCard(title=title, value=_fmt_pct(current), trend=_direction(current), data=series, sub_label=sub_label)


def _rsi_card(title: str, series: List[HistoryPoint]) -> MetricCard:
    return MetricCard(title=title, value=_fmt_num(latest_value(series)), trend="neutral", data=series)


def _distance_from_ema(points: List[HistoryPoint], period: int) -> List[HistoryPoint]:
    return percent_above(points, calculate_ema(points, period))


def _distance_from_sma(points: List[HistoryPoint], period: int) -> List[HistoryPoint]:
    return percent_above(points, calculate_sma(points, period))


def _unavailable(message: str) -> DashboardPayload:
    def empty(title: str) -> MetricCard:
        return MetricCard(title=title, value=NO_VALUE)

    return DashboardPayload(
        status="unavailable",
        short_term=[empty("SPY % > 50d EMA"), empty("Daily RSI"), empty("RSP % > 20d SMA")],
        medium_term=[empty("SPY % > 50w EMA"), empty("Weekly RSI"), empty("VIX Index")],
        long_term=[empty("Monthly RSI"), empty("RSP % > 200d SMA"), empty("NTM P/E Multiple")],
        leverage=LeverageScore(score=0, raw_score=0),
        message=message,
    )


def build_dashboard(history: Optional[MarketHistory], settings: Optional[Settings] = None) -> DashboardPayload:
    if history is None:
        return _unavailable(UNAVAILABLE_MESSAGE)
    settings = settings or Settings()

    daily_ema = calculate_ema(history.spy_daily, TREND_EMA_PERIOD)
    daily_distance = percent_above(history.spy_daily, daily_ema)
    daily_rsi = calculate_rsi(history.spy_daily, RSI_PERIOD)
    weekly_distance = _distance_from_ema(history.spy_weekly, TREND_EMA_PERIOD)
    weekly_rsi = calculate_rsi(history.spy_weekly, RSI_PERIOD)
    monthly_rsi = calculate_rsi(history.spy_monthly, RSI_PERIOD)
    breadth_short = _distance_from_sma(history.breadth, BREADTH_SHORT_SMA)
    breadth_long = _distance_from_sma(history.breadth, BREADTH_LONG_SMA)

    vix = latest_value(history.vix_daily)
    breadth_now = latest_value(breadth_short)
    pe_is_default = history.pe_ratio == settings.default_pe_ratio

    short_term = [
        _pct_card("SPY % > 50d EMA", daily_distance),
        _rsi_card("Daily RSI", daily_rsi),
        _pct_card("RSP % > 20d SMA", breadth_short, sub_label="Breadth proxy"),
    ]
    medium_term = [
        _pct_card("SPY % > 50w EMA", weekly_distance),
        _rsi_card("Weekly RSI", weekly_rsi),
        MetricCard(
            title="VIX Index",
            value=_fmt_num(vix),
            trend="down" if vix is not None and vix > 20 else "neutral",
            data=history.vix_daily,
        ),
    ]
    long_term = [
        _rsi_card("Monthly RSI", monthly_rsi),
        _pct_card("RSP % > 200d SMA", breadth_long, sub_label="Breadth proxy"),
        MetricCard(
            title="NTM P/E Multiple",
            value=_fmt_num(history.pe_ratio),
            trend="up",
            sub_label="Static estimate" if pe_is_default else None,
        ),
    ]

    leverage = compute_leverage_score(
        price=latest_value(history.spy_daily),
        trend_average=latest_value(daily_ema),
        rsi=latest_value(daily_rsi),
        vix=vix,
        breadth_positive=None if breadth_now is None else breadth_now > 0,
        pe_ratio=history.pe_ratio,
        thresholds=settings.score_thresholds,
    )

    return DashboardPayload(
        status="ok",
        last_updated=history.last_updated,
        is_mock=history.is_mock,
        short_term=short_term,
        medium_term=medium_term,
        long_term=long_term,
        leverage=leverage,
    )
