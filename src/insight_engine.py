"""
Rule-based insights, notifications and recommendations.

A fixed battery of threshold checks runs against the latest reading of
each metric and short trailing windows.  Checks that lack data are
skipped; nothing here raises for missing or sparse input.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, List, Optional, Sequence

from constants import (
    CONSISTENCY_TARGET_SESSIONS,
    CONSISTENCY_WINDOW_DAYS,
    HRV_ALERT_RATIO,
    HRV_HIGH_RATIO,
    HRV_LOW_RATIO,
    HRV_WINDOW,
    PRIORITY_ORDER,
    RECOVERY_AVG_MARGIN,
    RECOVERY_AVG_WINDOW,
    RECOVERY_CRITICAL,
    RECOVERY_RECOMMENDATION,
    RECOVERY_WARNING,
    SLEEP_EFFICIENCY_CRITICAL,
    SLEEP_EFFICIENCY_INSIGHT,
    SLEEP_EFFICIENCY_TARGET,
    SLEEP_EFFICIENCY_WARNING,
    SLEEP_HOURS_CRITICAL,
    SLEEP_HOURS_INSIGHT,
    SLEEP_HOURS_TARGET,
    SLEEP_HOURS_WARNING,
    STRAIN_BAND_HIGH,
    STRAIN_BAND_LOW,
    STRAIN_CRITICAL,
    STRAIN_WINDOW,
)
from metric_aligner import DailyMetricRecord, metric_series, trailing_values
from models import Insight, Notification, Recommendation

log = logging.getLogger("insight_engine")


# ─── Window helpers ─────────────────────────────────────────

def _mean(values: Sequence[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def weekly_strain(records: Iterable[DailyMetricRecord]) -> Optional[float]:
    """Sum of strain over the trailing 7 workout entries."""
    strains = trailing_values(records, "workout_strain", STRAIN_WINDOW)
    return sum(strains) if strains else None


def strength_sessions_last_week(records: Iterable[DailyMetricRecord]) -> Optional[int]:
    """Strength sessions in the 7 days ending at the latest record.

    None when no strength data exists at all, so the consistency
    checks stay silent for users who do not log strength work.
    """
    records = list(records)
    sessions = metric_series(records, "strength_sessions")
    if not sessions:
        return None
    ref = records[-1].date
    start = ref - timedelta(days=CONSISTENCY_WINDOW_DAYS - 1)
    return int(sum(v for d, v in sessions if start <= d <= ref))


def _latest(records: Sequence[DailyMetricRecord], name: str):
    series = metric_series(records, name)
    return series[-1] if series else (None, None)


# ═══════════════════════════════════════════════════════════════
#  NOTIFICATIONS
# ═══════════════════════════════════════════════════════════════

def generate_notifications(records: Iterable[DailyMetricRecord]) -> List[Notification]:
    """Alerts for thresholds crossed by the most recent readings.

    Notification ids are derived from metric and date, so re-running on
    the same data yields the same ids (dismissals stay valid).
    """
    records = list(records)
    out: List[Notification] = []

    day, recovery = _latest(records, "recovery_score")
    if recovery is not None and recovery < RECOVERY_WARNING:
        out.append(Notification(
            id=f"recovery-{day.isoformat()}",
            kind="critical" if recovery < RECOVERY_CRITICAL else "warning",
            title="Low Recovery Alert",
            message=(f"Your recovery score is {recovery:.0f}%. Consider taking a rest day "
                     "or reducing training intensity."),
            metric="Recovery Score",
            value=recovery,
            threshold=RECOVERY_WARNING,
        ))

    hrv_series = metric_series(records, "hrv")
    if len(hrv_series) > HRV_WINDOW:
        day, latest_hrv = hrv_series[-1]
        avg_hrv = _mean([v for _, v in hrv_series[-HRV_WINDOW:]])
        floor = avg_hrv * HRV_ALERT_RATIO
        if latest_hrv < floor:
            out.append(Notification(
                id=f"hrv-{day.isoformat()}",
                kind="warning",
                title="HRV Below Average",
                message=(f"Your HRV ({latest_hrv:.1f}ms) is more than 20% below your 7-day "
                         "average. This may indicate increased stress or fatigue."),
                metric="HRV",
                value=latest_hrv,
                threshold=floor,
            ))

    day, efficiency = _latest(records, "sleep_efficiency")
    if efficiency is not None and efficiency < SLEEP_EFFICIENCY_WARNING:
        out.append(Notification(
            id=f"sleep-{day.isoformat()}",
            kind="critical" if efficiency < SLEEP_EFFICIENCY_CRITICAL else "warning",
            title="Poor Sleep Efficiency",
            message=(f"Your sleep efficiency was only {efficiency:.0f}%. Aim for 85%+ "
                     "for optimal recovery."),
            metric="Sleep Efficiency",
            value=efficiency,
            threshold=SLEEP_EFFICIENCY_WARNING,
        ))

    day, hours = _latest(records, "sleep_duration")
    if hours is not None and hours < SLEEP_HOURS_WARNING:
        out.append(Notification(
            id=f"sleep-duration-{day.isoformat()}",
            kind="critical" if hours < SLEEP_HOURS_CRITICAL else "warning",
            title="Insufficient Sleep",
            message=(f"You only got {hours:.1f} hours of sleep. Aim for 7-9 hours for "
                     "optimal performance and recovery."),
            metric="Sleep Duration",
            value=hours,
            threshold=SLEEP_HOURS_WARNING,
        ))

    strain = weekly_strain(records)
    if strain is not None and strain > STRAIN_BAND_HIGH:
        day, _ = _latest(records, "workout_strain")
        out.append(Notification(
            id=f"strain-{day.isoformat()}",
            kind="critical" if strain > STRAIN_CRITICAL else "warning",
            title="High Training Load",
            message=(f"Your weekly strain is {strain:.1f}. Risk of overtraining - "
                     "consider adding recovery days."),
            metric="Weekly Strain",
            value=strain,
            threshold=STRAIN_BAND_HIGH,
        ))

    sessions = strength_sessions_last_week(records)
    if sessions is not None and sessions < CONSISTENCY_TARGET_SESSIONS:
        out.append(Notification(
            id=f"consistency-{records[-1].date.isoformat()}",
            kind="info",
            title="Strength Training Consistency",
            message=(f"Only {sessions} strength session(s) in the last 7 days. "
                     f"Aim for {CONSISTENCY_TARGET_SESSIONS} per week."),
            metric="Strength Sessions",
            value=float(sessions),
            threshold=CONSISTENCY_TARGET_SESSIONS,
        ))

    log.info("   Rules: %d notification(s)", len(out))
    return out


def dismiss(notifications: Iterable[Notification], notification_id: str) -> List[Notification]:
    """New list with the matching notification flagged as dismissed."""
    return [n.dismiss() if n.id == notification_id else n for n in notifications]


def active(notifications: Iterable[Notification]) -> List[Notification]:
    return [n for n in notifications if not n.dismissed]


# ═══════════════════════════════════════════════════════════════
#  INSIGHTS
# ═══════════════════════════════════════════════════════════════

def generate_insights(records: Iterable[DailyMetricRecord]) -> List[Insight]:
    records = list(records)
    out: List[Insight] = []

    recoveries = trailing_values(records, "recovery_score", RECOVERY_AVG_WINDOW)
    if recoveries:
        latest = recoveries[-1]
        avg = _mean(recoveries)
        if latest > avg + RECOVERY_AVG_MARGIN:
            out.append(Insight(
                kind="success",
                title="Excellent Recovery",
                message=(f"Your latest recovery score of {latest:.0f}% is "
                         f"{latest - avg:.0f}% above your average. Great job!"),
                metric="Recovery",
                value=latest,
            ))
        elif latest < avg - RECOVERY_AVG_MARGIN:
            out.append(Insight(
                kind="warning",
                title="Recovery Needs Attention",
                message=(f"Your latest recovery score of {latest:.0f}% is below your average. "
                         "Consider prioritizing sleep and stress management."),
                metric="Recovery",
                value=latest,
            ))

    hrvs = trailing_values(records, "hrv", HRV_WINDOW)
    if hrvs:
        latest = hrvs[-1]
        avg = _mean(hrvs)
        if latest > avg * HRV_HIGH_RATIO:
            out.append(Insight(
                kind="success",
                title="High HRV",
                message=("Your heart rate variability is above average, indicating good "
                         "autonomic nervous system balance."),
                metric="HRV",
                value=latest,
            ))
        elif latest < avg * HRV_LOW_RATIO:
            out.append(Insight(
                kind="warning",
                title="HRV Below Baseline",
                message=(f"Your HRV of {latest:.1f}ms is below your 7-day average of "
                         f"{avg:.1f}ms. Watch for accumulated fatigue."),
                metric="HRV",
                value=latest,
            ))

    _, efficiency = _latest(records, "sleep_efficiency")
    if efficiency is not None and efficiency < SLEEP_EFFICIENCY_INSIGHT:
        out.append(Insight(
            kind="warning",
            title="Sleep Efficiency Low",
            message=(f"Your sleep efficiency of {efficiency:.0f}% is below optimal. "
                     "Aim for 85%+ for better recovery."),
            metric="Sleep Efficiency",
            value=efficiency,
        ))

    _, hours = _latest(records, "sleep_duration")
    if hours is not None and hours < SLEEP_HOURS_INSIGHT:
        out.append(Insight(
            kind="warning",
            title="Insufficient Sleep",
            message=(f"You only got {hours:.1f} hours of sleep. Aim for 7-9 hours for "
                     "optimal performance."),
            metric="Sleep Duration",
            value=hours,
        ))

    strain = weekly_strain(records)
    if strain is not None:
        if strain > STRAIN_BAND_HIGH:
            out.append(Insight(
                kind="warning",
                title="High Training Load",
                message=(f"Your weekly strain of {strain:.1f} is quite high. Consider "
                         "adding more recovery days."),
                metric="Weekly Strain",
                value=strain,
            ))
        elif strain < STRAIN_BAND_LOW:
            out.append(Insight(
                kind="info",
                title="Light Training Week",
                message=(f"Your weekly strain of {strain:.1f} is below the "
                         f"{STRAIN_BAND_LOW}-{STRAIN_BAND_HIGH} range that drives adaptation."),
                metric="Weekly Strain",
                value=strain,
            ))

    log.info("   Rules: %d insight(s)", len(out))
    return out


# ═══════════════════════════════════════════════════════════════
#  RECOMMENDATIONS
# ═══════════════════════════════════════════════════════════════

def sort_recommendations(recs: Iterable[Recommendation]) -> List[Recommendation]:
    """High -> medium -> low; ties keep their generation order."""
    return sorted(recs, key=lambda r: PRIORITY_ORDER.get(r.priority, 0), reverse=True)


def generate_recommendations(records: Iterable[DailyMetricRecord]) -> List[Recommendation]:
    records = list(records)
    out: List[Recommendation] = []

    _, recovery = _latest(records, "recovery_score")
    if recovery is not None and recovery < RECOVERY_RECOMMENDATION:
        out.append(Recommendation(
            category="recovery",
            priority="high",
            title="Focus on Active Recovery",
            description="Your recovery is low. Prioritize rest and gentle movement.",
            action="Take a rest day or do light yoga/walking",
            based_on=["recovery_score"],
        ))

    hrvs = trailing_values(records, "hrv", HRV_WINDOW)
    if hrvs and hrvs[-1] < _mean(hrvs) * HRV_LOW_RATIO:
        out.append(Recommendation(
            category="recovery",
            priority="medium",
            title="Improve HRV",
            description="Your HRV is below average, indicating potential stress.",
            action="Practice deep breathing or meditation for 10 minutes",
            based_on=["hrv"],
        ))

    _, efficiency = _latest(records, "sleep_efficiency")
    if efficiency is not None and efficiency < SLEEP_EFFICIENCY_TARGET:
        out.append(Recommendation(
            category="sleep",
            priority="high",
            title="Optimize Sleep Environment",
            description=f"Sleep efficiency is {efficiency:.0f}%. Aim for 85%+.",
            action="Keep room cool (65-68F), dark, and limit screens 1hr before bed",
            based_on=["sleep_efficiency"],
        ))

    _, hours = _latest(records, "sleep_duration")
    if hours is not None and hours < SLEEP_HOURS_TARGET:
        out.append(Recommendation(
            category="sleep",
            priority="medium",
            title="Extend Sleep Duration",
            description=f"You got {hours:.1f} hours. Aim for 7.5-9 hours.",
            action="Go to bed 30 minutes earlier tonight",
            based_on=["sleep_duration"],
        ))

    strain = weekly_strain(records)
    if strain is not None:
        if strain > STRAIN_BAND_HIGH:
            out.append(Recommendation(
                category="training",
                priority="high",
                title="Reduce Training Intensity",
                description=f"Weekly strain is {strain:.1f}. Risk of overtraining.",
                action="Take 1-2 easy days or complete rest",
                based_on=["workout_strain"],
            ))
        elif strain < STRAIN_BAND_LOW:
            out.append(Recommendation(
                category="training",
                priority="low",
                title="Increase Activity",
                description="Your training load is quite low this week.",
                action="Add 1-2 moderate intensity workouts",
                based_on=["workout_strain"],
            ))

    sessions = strength_sessions_last_week(records)
    if sessions is not None and sessions < CONSISTENCY_TARGET_SESSIONS:
        out.append(Recommendation(
            category="training",
            priority="medium",
            title="Maintain Strength Training",
            description=f"Only {sessions} strength sessions this week.",
            action="Aim for 3 strength sessions per week for optimal results",
            based_on=["strength_sessions"],
        ))

    if any(r.workout_strain is not None or r.calories is not None for r in records):
        out.append(Recommendation(
            category="nutrition",
            priority="low",
            title="Pre/Post Workout Nutrition",
            description="Optimize performance and recovery with proper timing.",
            action="Eat protein within 30min post-workout, carbs 1-2hr pre-workout",
            based_on=["workout_strain", "calories"],
        ))

    log.info("   Rules: %d recommendation(s)", len(out))
    return sort_recommendations(out)
