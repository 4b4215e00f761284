"""Normalize provider payloads into date-ordered series and resample them."""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from app.schemas.market import HistoryPoint


DAILY_KEY = "Time Series (Daily)"
CLOSE_FIELD = "4. close"


def safe_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_time_series(
    payload: Optional[Mapping[str, Any]],
    key: str = DAILY_KEY,
    field: str = CLOSE_FIELD,
) -> List[HistoryPoint]:
    """
    Turn ``{key: {"YYYY-MM-DD": {field: "123.4", ...}}}`` into an ascending series.

    A missing or malformed payload gives an empty series. Rows without an
    ISO calendar date or a parseable close are dropped.
    """
    if not isinstance(payload, Mapping):
        return []
    series = payload.get(key)
    if not isinstance(series, Mapping):
        return []

    points: List[HistoryPoint] = []
    for day, row in series.items():
        day_iso = _iso_date(day)
        value = safe_float(row.get(field)) if isinstance(row, Mapping) else None
        if day_iso is None or value is None:
            continue
        points.append(HistoryPoint(date=day_iso, value=value))
    # ISO dates sort correctly as strings.
    return sorted(points, key=lambda p: p.date)


def _iso_date(value: Any) -> Optional[str]:
    if not isinstance(value, str) or len(value) != 10:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        return None


def normalize_points(points: Iterable[HistoryPoint]) -> List[HistoryPoint]:
    """Sort by date; the last point seen for a date wins."""
    by_date: Dict[str, HistoryPoint] = {}
    for point in points:
        by_date[point.date] = point
    return [by_date[day] for day in sorted(by_date)]


def _last_per_bucket(points: Iterable[HistoryPoint], bucket: Callable[[str], Hashable]) -> List[HistoryPoint]:
    latest: Dict[Hashable, HistoryPoint] = {}
    for point in normalize_points(points):
        latest[bucket(point.date)] = point
    return sorted(latest.values(), key=lambda p: p.date)


def _iso_week(day: str) -> Tuple[int, int]:
    iso = date.fromisoformat(day).isocalendar()
    return iso[0], iso[1]


def resample_weekly(points: Iterable[HistoryPoint]) -> List[HistoryPoint]:
    """Keep the last observed point of each ISO-8601 week."""
    return _last_per_bucket(points, _iso_week)


def resample_monthly(points: Iterable[HistoryPoint]) -> List[HistoryPoint]:
    """Keep the last observed point of each calendar month."""
    return _last_per_bucket(points, lambda day: day[:7])
