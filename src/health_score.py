"""
Composite health score.

    score = Σ wᵢ·sᵢ / Σ wᵢ     over the components that have data

Weights: recovery 30%, sleep efficiency 25%, training-load balance 20%,
strength consistency 15%, HRV stability 10%.  Dropping absent weights
from the denominator keeps the score on 0-100 for partial data, e.g.
recovery 80 alone scores 80 rather than 24.  Descriptive only.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from constants import (
    CONSISTENCY_TARGET_SESSIONS,
    HEALTH_SCORE_WEIGHTS,
    HRV_WINDOW,
    STRAIN_SCORE_PEAK,
)
from insight_engine import strength_sessions_last_week, weekly_strain
from metric_aligner import DailyMetricRecord, latest_value, trailing_values
from models import HealthScore

log = logging.getLogger("health_score")


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def training_balance_score(strain: float) -> float:
    """100 around a weekly strain of ~67-70, falling off on either side."""
    if strain > STRAIN_SCORE_PEAK:
        return max(0.0, 100.0 - (strain - STRAIN_SCORE_PEAK))
    return min(100.0, strain * 1.5)


def consistency_score(sessions: int) -> float:
    return min(100.0, sessions / CONSISTENCY_TARGET_SESSIONS * 100.0)


def hrv_stability_score(latest: float, avg: float) -> float:
    if avg <= 0 or latest >= avg:
        return 100.0
    return max(0.0, latest / avg * 100.0)


def component_scores(records: Iterable[DailyMetricRecord]) -> Dict[str, float]:
    """0-100 score for every component with enough data."""
    records = list(records)
    out: Dict[str, float] = {}

    recovery = latest_value(records, "recovery_score")
    if recovery is not None:
        out["recovery"] = _clamp(recovery)

    efficiency = latest_value(records, "sleep_efficiency")
    if efficiency is not None:
        out["sleep"] = _clamp(efficiency)

    strain = weekly_strain(records)
    if strain is not None:
        out["training"] = training_balance_score(strain)

    sessions = strength_sessions_last_week(records)
    if sessions is not None:
        out["consistency"] = consistency_score(sessions)

    hrvs = trailing_values(records, "hrv", HRV_WINDOW)
    if len(hrvs) > 1:
        out["hrv"] = hrv_stability_score(hrvs[-1], sum(hrvs) / len(hrvs))

    return out


def compute_health_score(records: Iterable[DailyMetricRecord],
                         weights: Optional[Dict[str, float]] = None) -> HealthScore:
    weights = weights or HEALTH_SCORE_WEIGHTS
    components = component_scores(records)
    available = sum(weights[name] for name in components if name in weights)
    if available <= 0:
        log.info("   Health score: no components with data")
        return HealthScore(score=0.0, components={}, available_weight=0.0)

    weighted = sum(weights[name] * value for name, value in components.items() if name in weights)
    score = round(weighted / available, 1)
    log.info("   Health score: %.1f over %d component(s) (weight %.2f)",
             score, len(components), available)
    return HealthScore(score=score, components=components, available_weight=round(available, 4))
