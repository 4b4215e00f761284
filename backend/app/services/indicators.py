"""
Trend and momentum indicators over date-ordered point series.

Every function is pure: same input, same output, nothing cached. Output
points keep the date of the input point they were computed at. Too little
history gives an empty list, never an error.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

import pandas as pd

from app.schemas.market import HistoryPoint


def _to_series(points: List[HistoryPoint]) -> pd.Series:
    return pd.Series([p.value for p in points], index=[p.date for p in points], dtype=float)


def _to_points(series: pd.Series) -> List[HistoryPoint]:
    return [HistoryPoint(date=str(day), value=float(value)) for day, value in series.items()]


def _seeded(seed: float, label: str, rest: pd.Series) -> pd.Series:
    head = pd.Series([seed], index=[label], dtype=float)
    return pd.concat([head, rest]) if not rest.empty else head


def calculate_sma(points: Iterable[HistoryPoint], period: int) -> List[HistoryPoint]:
    data = list(points)
    if period <= 0 or len(data) < period:
        return []
    values = _to_series(data)
    return _to_points(values.rolling(window=period).mean().iloc[period - 1 :])


def calculate_ema(points: Iterable[HistoryPoint], period: int) -> List[HistoryPoint]:
    """
    EMA seeded with the SMA of the first ``period`` values.

    ``ema[i] = (value[i] - ema[i-1]) * k + ema[i-1]`` with ``k = 2 / (period + 1)``,
    which is pandas' ``ewm(span=period, adjust=False)`` once the seed is in place.
    """
    data = list(points)
    if period <= 0 or len(data) < period:
        return []
    values = _to_series(data)
    seed = float(values.iloc[:period].mean())
    seeded = _seeded(seed, values.index[period - 1], values.iloc[period:])
    return _to_points(seeded.ewm(span=period, adjust=False).mean())


def calculate_rsi(points: Iterable[HistoryPoint], period: int = 14) -> List[HistoryPoint]:
    """
    Wilder RSI.

    The first window averages gains and losses over deltas 1..period; later
    points smooth with ``avg = (avg * (period - 1) + current) / period``.
    A zero average loss reads exactly 100.
    """
    data = list(points)
    if period <= 0 or len(data) < period + 1:
        return []
    values = _to_series(data)
    deltas = values.diff().iloc[1:]
    gains = deltas.clip(lower=0.0)
    losses = (-deltas).clip(lower=0.0)

    label = values.index[period]
    alpha = 1.0 / period
    avg_gain = _seeded(float(gains.iloc[:period].mean()), label, gains.iloc[period:]).ewm(
        alpha=alpha, adjust=False
    ).mean()
    avg_loss = _seeded(float(losses.iloc[:period].mean()), label, losses.iloc[period:]).ewm(
        alpha=alpha, adjust=False
    ).mean()

    rsi = 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
    rsi = rsi.where(avg_loss > 0, 100.0)
    return _to_points(rsi)


def percent_above(points: Iterable[HistoryPoint], reference: Iterable[HistoryPoint]) -> List[HistoryPoint]:
    """Percent distance of ``points`` from ``reference`` on the dates both share."""
    ref_by_date = {p.date: p.value for p in reference}
    result: List[HistoryPoint] = []
    for point in points:
        ref = ref_by_date.get(point.date)
        if ref is None or ref == 0:
            continue
        result.append(HistoryPoint(date=point.date, value=(point.value - ref) / ref * 100.0))
    return result


def latest_value(points: Iterable[HistoryPoint]) -> Optional[float]:
    data = list(points)
    if not data:
        return None
    value = data[-1].value
    return value if math.isfinite(value) else None
