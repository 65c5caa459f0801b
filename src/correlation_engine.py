"""
Correlation Engine
==================
Computes statistical relationships over aligned daily health records.

Architecture (3 layers):
  Layer 0 - Frame:  DailyMetricRecord list -> one row per date, NaN for
            absent metrics.
  Layer 1 - Pearson:  every unordered pair of candidate metrics over the
            pairwise-complete days, classified by strength/direction,
            with a two-sided t-test p-value.
  Layer 2 - Relationships:  the three named relationships surfaced to the
            user (sleep efficiency -> recovery, training load -> sleep,
            HRV -> recovery) plus the recommendations they imply.

Data sufficiency rules:
  - A pair needs >= 3 paired days, otherwise it is absent (never 0).
  - A pair where either side has zero variance is absent.
  - Only pairs with |r| > min_abs_correlation are returned, sorted by |r|.
"""

from __future__ import annotations

import math
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats as sp_stats

import config
from constants import (
    CORRELATION_METRICS,
    METRIC_LABELS,
    MIN_PAIRED_OBSERVATIONS,
    MODERATE_CORRELATION,
    STRONG_CORRELATION,
)
from metric_aligner import DailyMetricRecord, records_to_frame
from models import CorrelationResult, Insight, Recommendation

log = logging.getLogger("correlation_engine")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

# Named relationships: minimum matched days and minimum |r|
SLEEP_RECOVERY_MIN_DAYS = 5
TRAINING_SLEEP_MIN_DAYS = 7
HRV_RECOVERY_MIN_DAYS = 10
HRV_RECOVERY_WINDOW = 14
RELATIONSHIP_MIN_ABS = 0.3
HRV_RECOVERY_MIN_ABS = 0.4
HRV_DECLINE_TREND = -0.3


# ═══════════════════════════════════════════════════════════════
#  MATH
# ═══════════════════════════════════════════════════════════════

def pearson(xs: Sequence[Optional[float]], ys: Sequence[Optional[float]]) -> Optional[float]:
    """Pearson r over the positions where both values are present.

        r = Σ(x - x̄)(y - ȳ) / sqrt(Σ(x - x̄)² · Σ(y - ȳ)²)

    Both sides are centred before the sums.
    Returns None when fewer than 3 pairs remain or either side is
    constant.  The result is clamped to [-1, 1] against rounding drift.
    """
    pairs = [
        (float(x), float(y)) for x, y in zip(xs, ys)
        if x is not None and y is not None
        and not (isinstance(x, float) and math.isnan(x))
        and not (isinstance(y, float) and math.isnan(y))
    ]
    if len(pairs) < MIN_PAIRED_OBSERVATIONS:
        return None
    x = np.array([p[0] for p in pairs], dtype=np.float64)
    y = np.array([p[1] for p in pairs], dtype=np.float64)
    if np.all(x == x[0]) or np.all(y == y[0]):
        return None

    dx = x - x.mean()
    dy = y - y.mean()
    num = float(np.dot(dx, dy))
    var_x = float(np.dot(dx, dx))
    var_y = float(np.dot(dy, dy))
    if var_x <= 0 or var_y <= 0:
        return None
    r = num / math.sqrt(var_x * var_y)
    return float(max(-1.0, min(1.0, r)))


def p_value(r: float, n: int) -> float:
    """Two-sided p-value for H0: rho = 0 via the t distribution (df = n - 2)."""
    if n <= 2:
        return 1.0
    if abs(r) >= 1.0:
        return 0.0
    t_stat = r * math.sqrt(n - 2) / math.sqrt(1 - r * r + 1e-15)
    return float(2 * sp_stats.t.sf(abs(t_stat), n - 2))


def classify_strength(r: float) -> str:
    a = abs(r)
    if a >= STRONG_CORRELATION:
        return "strong"
    if a >= MODERATE_CORRELATION:
        return "moderate"
    return "weak"


def classify_direction(r: float) -> str:
    return "positive" if r >= 0 else "negative"


def explain(metric1: str, metric2: str, r: float) -> str:
    verb = "increases" if r >= 0 else "decreases"
    adverb = {"strong": "strongly", "moderate": "moderately", "weak": "weakly"}[classify_strength(r)]
    m1 = METRIC_LABELS.get(metric1, metric1)
    m2 = METRIC_LABELS.get(metric2, metric2).lower()
    return f"{m1} {adverb} {verb} with {m2} (r={r:.3f})"


# ═══════════════════════════════════════════════════════════════
#  ENGINE
# ═══════════════════════════════════════════════════════════════

class CorrelationEngine:
    """
    Pairwise correlation over a DailyMetricRecord snapshot.
    Stateless between runs: every call recomputes from its input.
    """

    def __init__(self, min_abs_correlation: Optional[float] = None,
                 notable_min_abs: Optional[float] = None,
                 top_n: Optional[int] = None,
                 metrics: Optional[Sequence[str]] = None):
        self.min_abs_correlation = (
            config.MIN_ABS_CORRELATION if min_abs_correlation is None else min_abs_correlation
        )
        self.notable_min_abs = (
            config.NOTABLE_MIN_ABS_CORRELATION if notable_min_abs is None else notable_min_abs
        )
        self.top_n = config.NOTABLE_TOP_N if top_n is None else top_n
        self.metrics = list(metrics or CORRELATION_METRICS)

    # ─── MAIN ENTRY ───────────────────────────────────────────

    def compute(self, records: Iterable[DailyMetricRecord]) -> List[CorrelationResult]:
        """All retained pairs, strongest first."""
        records = list(records)
        if not records:
            log.info("   Layer 1: no records, skipping correlations")
            return []
        df = records_to_frame(records)
        return self._layer1_pearson(df)

    def notable(self, results: Sequence[CorrelationResult]) -> List[CorrelationResult]:
        """Top-N results whose |r| clears the notable cutoff."""
        picked = [c for c in results if abs(c.correlation) > self.notable_min_abs]
        picked.sort(key=lambda c: abs(c.correlation), reverse=True)
        return picked[: self.top_n]

    # ─── LAYER 1: Pearson ─────────────────────────────────────

    def _layer1_pearson(self, df) -> List[CorrelationResult]:
        log.info("   Layer 1: Pearson correlations...")
        metrics = [m for m in self.metrics if m in df.columns]
        results: List[CorrelationResult] = []
        n_skipped = 0
        for i, ci in enumerate(metrics):
            for j, cj in enumerate(metrics):
                if i >= j:
                    continue
                pair = df[[ci, cj]].dropna()
                n = len(pair)
                r = pearson(pair[ci].tolist(), pair[cj].tolist())
                if r is None:
                    n_skipped += 1
                    continue
                if abs(r) <= self.min_abs_correlation:
                    continue
                results.append(CorrelationResult(
                    metric1=ci,
                    metric2=cj,
                    correlation=r,
                    strength=classify_strength(r),
                    direction=classify_direction(r),
                    n=n,
                    p_value=p_value(r, n),
                    explanation=explain(ci, cj, r),
                ))
        results.sort(key=lambda c: abs(c.correlation), reverse=True)
        log.info("   %d pairs above |r|>%.2f, %d not computable",
                 len(results), self.min_abs_correlation, n_skipped)
        return results

    # ─── LAYER 2: Named relationships ─────────────────────────

    def relationship_insights(
        self, records: Iterable[DailyMetricRecord]
    ) -> Tuple[List[Insight], List[Recommendation]]:
        """Sleep->recovery, training->sleep and HRV->recovery findings."""
        records = list(records)
        insights: List[Insight] = []
        recommendations: List[Recommendation] = []
        for analyze in (self._sleep_recovery, self._training_sleep, self._hrv_recovery):
            found = analyze(records)
            if found is None:
                continue
            insight, rec = found
            insights.append(insight)
            if rec is not None:
                recommendations.append(rec)
        log.info("   Layer 2: %d relationship insight(s)", len(insights))
        return insights, recommendations

    @staticmethod
    def hrv_trend(records: Iterable[DailyMetricRecord]) -> Optional[float]:
        """Correlation of day index vs HRV over the last 14 readings (needs 10)."""
        hrv = [r.hrv for r in records if r.hrv is not None][-HRV_RECOVERY_WINDOW:]
        if len(hrv) < HRV_RECOVERY_MIN_DAYS:
            return None
        return pearson(list(range(len(hrv))), hrv)

    def _sleep_recovery(self, records):
        matched = [(r.sleep_efficiency, r.recovery_score) for r in records
                   if r.sleep_efficiency is not None and r.recovery_score is not None]
        if len(matched) < SLEEP_RECOVERY_MIN_DAYS:
            return None
        r = pearson([m[0] for m in matched], [m[1] for m in matched])
        if r is None or abs(r) < RELATIONSHIP_MIN_ABS:
            return None
        strength, direction = classify_strength(r), classify_direction(r)
        if direction == "positive":
            insight = Insight(
                kind="info",
                title="Sleep-Recovery Connection",
                message=(f"Your sleep efficiency shows a {strength} positive correlation "
                         f"with recovery ({r * 100:.0f}%). Continue prioritizing sleep "
                         "quality to maintain good recovery."),
                metric="sleep_efficiency",
                value=r,
            )
        else:
            insight = Insight(
                kind="warning",
                title="Sleep-Recovery Connection",
                message=("Poor sleep efficiency is significantly impacting your recovery "
                         "scores. Focus on improving sleep efficiency to boost recovery."),
                metric="sleep_efficiency",
                value=r,
            )
        rec = None
        if direction == "negative" or abs(r) < 0.5:
            rec = Recommendation(
                category="sleep",
                priority="high" if strength == "strong" else "medium",
                title="Optimize Sleep for Better Recovery",
                description=("Your sleep quality is directly impacting recovery. "
                             "Focus on sleep hygiene and consistency."),
                action="Aim for 7-9 hours of sleep with consistent bedtime routine",
                based_on=["sleep-recovery correlation"],
            )
        return insight, rec

    def _training_sleep(self, records):
        # Rest days count as zero strain
        matched = [(r.workout_strain or 0.0, r.sleep_efficiency) for r in records
                   if r.sleep_efficiency is not None]
        if len(matched) < TRAINING_SLEEP_MIN_DAYS:
            return None
        r = pearson([m[0] for m in matched], [m[1] for m in matched])
        if r is None or abs(r) < RELATIONSHIP_MIN_ABS:
            return None
        strength, direction = classify_strength(r), classify_direction(r)
        if direction == "negative":
            insight = Insight(
                kind="warning",
                title="Training Impact on Sleep",
                message=(f"High training loads are negatively affecting your sleep "
                         f"efficiency ({abs(r) * 100:.0f}% correlation). Consider adjusting "
                         "training intensity or timing to improve sleep quality."),
                metric="workout_strain",
                value=r,
            )
        else:
            insight = Insight(
                kind="success",
                title="Training Impact on Sleep",
                message=("Your training load has a positive relationship with sleep "
                         "quality. Your current training approach supports good sleep patterns."),
                metric="workout_strain",
                value=r,
            )
        rec = None
        if direction == "negative" and strength != "weak":
            rec = Recommendation(
                category="training",
                priority="high",
                title="Adjust Training Load for Better Sleep",
                description="High training loads are negatively affecting your sleep quality.",
                action="Consider reducing training intensity or allowing more recovery time",
                based_on=["training-sleep correlation"],
            )
        return insight, rec

    def _hrv_recovery(self, records):
        window = [r for r in records
                  if r.hrv is not None and r.recovery_score is not None][-HRV_RECOVERY_WINDOW:]
        if len(window) < HRV_RECOVERY_MIN_DAYS:
            return None
        hrv = [r.hrv for r in window]
        r = pearson(hrv, [w.recovery_score for w in window])
        if r is None or abs(r) < HRV_RECOVERY_MIN_ABS:
            return None
        trend = self.hrv_trend(window) or 0.0
        avg_hrv = sum(hrv) / len(hrv)
        recent_hrv = sum(hrv[-3:]) / 3

        rec = None
        if trend < HRV_DECLINE_TREND:
            insight = Insight(
                kind="warning",
                title="HRV-Recovery Relationship",
                message=("Declining HRV trend indicates increasing stress or overreaching. "
                         "Consider reducing training intensity and focusing on stress management."),
                metric="hrv",
                value=r,
            )
            rec = Recommendation(
                category="recovery",
                priority="high",
                title="Address Declining HRV Trend",
                description="Your HRV trend indicates increasing stress or potential overreaching.",
                action="Focus on stress management, sleep, and reduce training intensity",
                based_on=["hrv-recovery correlation"],
            )
        elif recent_hrv > avg_hrv:
            insight = Insight(
                kind="success",
                title="HRV-Recovery Relationship",
                message="Your HRV shows positive adaptation and good recovery capacity.",
                metric="hrv",
                value=r,
            )
        else:
            insight = Insight(
                kind="info",
                title="HRV-Recovery Relationship",
                message=("HRV patterns suggest stable but potentially stressed state. "
                         "Continue current training approach while monitoring HRV trends."),
                metric="hrv",
                value=r,
            )
        return insight, rec
