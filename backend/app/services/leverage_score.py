from __future__ import annotations

import math
from typing import Dict, Optional

from app.config import ScoreThresholds
from app.schemas.market import LeverageScore


def _usable(value: Optional[float]) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


def compute_leverage_score(
    *,
    price: Optional[float],
    trend_average: Optional[float],
    rsi: Optional[float],
    vix: Optional[float],
    breadth_positive: Optional[bool],
    pe_ratio: Optional[float],
    thresholds: Optional[ScoreThresholds] = None,
) -> LeverageScore:
    """
    Rule-based 0-100 score. Rules apply in a fixed order: baseline, signal
    adjustments, clamp, then the valuation cap. A missing input skips its rule.
    """
    t = thresholds or ScoreThresholds()
    signals: Dict[str, int] = {}

    if _usable(price) and _usable(trend_average) and price > trend_average:
        signals["trend"] = t.trend_bonus
    if _usable(rsi):
        if rsi < t.oversold_rsi:
            signals["oversold"] = t.oversold_bonus
        elif rsi > t.overbought_rsi:
            signals["overbought"] = -t.overbought_penalty
    if _usable(vix):
        if vix < t.calm_vix:
            signals["calm_volatility"] = t.calm_bonus
        elif vix > t.stressed_vix:
            signals["high_volatility"] = -t.stressed_penalty
    if breadth_positive:
        signals["breadth"] = t.breadth_bonus

    raw = t.baseline + sum(signals.values())
    raw = max(0, min(100, raw))

    safety_warning = _usable(pe_ratio) and pe_ratio > t.pe_safety_threshold
    score = min(raw, t.pe_safety_cap) if safety_warning else raw
    return LeverageScore(
        score=int(round(score)),
        raw_score=int(round(raw)),
        safety_warning=bool(safety_warning),
        signals=signals,
    )
