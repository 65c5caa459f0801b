"""
Metric Aligner
==============
Merges independently sourced health time series (recovery, sleep,
workouts, nutrition, body/adherence, strength logs) into one sequence of
DailyMetricRecord, one entry per calendar date present in any source.

Merge rules:
  - Nutrition entries on the same date are summed field by field.
  - Strength logs and strength-type workouts mark the day as one
    strength session.
  - Every other source is last-write-wins: a later record for the same
    date replaces the earlier one as a whole.
  - Durations arrive in milliseconds and are stored in hours.

Nothing here raises for missing data.  Absent fields stay None and the
downstream layers skip that day for that metric.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, asdict, fields
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from constants import MS_PER_HOUR, STRENGTH_WORKOUT_TYPES

log = logging.getLogger("metric_aligner")


# ═══════════════════════════════════════════════════════════════
#  SOURCE RECORDS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RecoveryRecord:
    date: Any
    recovery_score: Optional[float] = None
    hrv_rmssd_milli: Optional[float] = None
    resting_heart_rate: Optional[float] = None


@dataclass(frozen=True)
class SleepRecord:
    date: Any
    sleep_efficiency_percentage: Optional[float] = None
    total_sleep_time_milli: Optional[float] = None
    sleep_score: Optional[float] = None


@dataclass(frozen=True)
class WorkoutRecord:
    date: Any
    strain_score: Optional[float] = None
    duration: Optional[float] = None  # milliseconds
    workout_type: Optional[str] = None


@dataclass(frozen=True)
class NutritionRecord:
    date: Any
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fats: Optional[float] = None


@dataclass(frozen=True)
class BodyRecord:
    date: Any
    weight: Optional[float] = None
    adherence_score: Optional[float] = None


@dataclass(frozen=True)
class StrengthRecord:
    date: Any
    exercise: Optional[str] = None
    sets: Optional[float] = None
    reps: Optional[float] = None
    weight: Optional[float] = None
    volume: Optional[float] = None


SOURCE_TYPES = {
    "recovery": RecoveryRecord,
    "sleep": SleepRecord,
    "workouts": WorkoutRecord,
    "nutrition": NutritionRecord,
    "body": BodyRecord,
    "strength": StrengthRecord,
}

# Alternate keys seen in device exports / API payloads
FIELD_ALIASES = {
    "workouts": {"duration_milli": "duration"},
}

_TEXT_FIELDS = {"date", "workout_type", "exercise"}


# ═══════════════════════════════════════════════════════════════
#  ALIGNED RECORD
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DailyMetricRecord:
    """All metrics known for one calendar date."""
    date: date
    sleep_score: Optional[float] = None
    sleep_efficiency: Optional[float] = None
    sleep_duration: Optional[float] = None  # hours
    recovery_score: Optional[float] = None
    hrv: Optional[float] = None
    resting_hr: Optional[float] = None
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fats: Optional[float] = None
    workout_strain: Optional[float] = None
    workout_duration: Optional[float] = None  # hours
    weight: Optional[float] = None
    adherence_score: Optional[float] = None
    strength_sessions: Optional[int] = None

    def to_dict(self) -> dict:
        out = asdict(self)
        out["date"] = self.date.isoformat()
        return out


METRIC_FIELDS = [f.name for f in fields(DailyMetricRecord) if f.name != "date"]

# Source field -> (daily field, divisor)
RECOVERY_MAP = {
    "recovery_score": ("recovery_score", 1),
    "hrv_rmssd_milli": ("hrv", 1),
    "resting_heart_rate": ("resting_hr", 1),
}
SLEEP_MAP = {
    "sleep_score": ("sleep_score", 1),
    "sleep_efficiency_percentage": ("sleep_efficiency", 1),
    "total_sleep_time_milli": ("sleep_duration", MS_PER_HOUR),
}
WORKOUT_MAP = {
    "strain_score": ("workout_strain", 1),
    "duration": ("workout_duration", MS_PER_HOUR),
}
NUTRITION_MAP = {
    "calories": ("calories", 1),
    "protein": ("protein", 1),
    "carbs": ("carbs", 1),
    "fats": ("fats", 1),
}
BODY_MAP = {
    "weight": ("weight", 1),
    "adherence_score": ("adherence_score", 1),
}


# ─── Coercion ─────────────────────────────────────────────────

def _num(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def to_calendar_date(value: Any) -> Optional[date]:
    """Reduce a date / datetime / ISO string to its calendar date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(str(value).strip(), errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def records_from_dicts(kind: str, rows: Iterable[Mapping[str, Any]]) -> list:
    """Coerce plain mappings (API payloads, parsed CSV rows) into typed records."""
    if kind not in SOURCE_TYPES:
        raise ValueError(f"Unknown source kind: {kind!r}")
    cls = SOURCE_TYPES[kind]
    aliases = FIELD_ALIASES.get(kind, {})
    names = [f.name for f in fields(cls)]
    out = []
    for row in rows or []:
        if not isinstance(row, Mapping):
            out.append(row)
            continue
        data = {aliases.get(k, k): v for k, v in row.items()}
        kwargs = {}
        for name in names:
            val = data.get(name)
            kwargs[name] = val if name in _TEXT_FIELDS else _num(val)
        out.append(cls(**kwargs))
    return out


# ─── Per-source frames ────────────────────────────────────────

def _source_frame(records: Optional[Iterable[Any]], mapping: Dict[str, Tuple[str, float]],
                  label: str) -> pd.DataFrame:
    """One row per input record, daily-field columns, NaN for absent."""
    columns = [dst for dst, _ in mapping.values()]
    rows = []
    n_bad = 0
    for rec in records or []:
        d = to_calendar_date(_get(rec, "date"))
        if d is None:
            n_bad += 1
            continue
        row: Dict[str, Any] = {"date": d}
        for src, (dst, divisor) in mapping.items():
            val = _num(_get(rec, src))
            row[dst] = val / divisor if val is not None else np.nan
        rows.append(row)
    if n_bad:
        log.warning("   Dropped %d %s record(s) with unparseable dates", n_bad, label)
    df = pd.DataFrame(rows, columns=["date", *columns])
    for col in columns:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def _last_write_wins(df: pd.DataFrame, label: str) -> pd.DataFrame:
    n_dupes = int(df["date"].duplicated().sum())
    if n_dupes:
        log.info("   %s: %d duplicate date(s), keeping the last record", label, n_dupes)
    return df.drop_duplicates(subset="date", keep="last").set_index("date")


def _summed(df: pd.DataFrame) -> pd.DataFrame:
    return df.groupby("date").sum(min_count=1)


def _strength_days(workouts: Iterable[Any], strength: Iterable[Any]) -> pd.DataFrame:
    days = set()
    for rec in strength or []:
        d = to_calendar_date(_get(rec, "date"))
        if d is not None:
            days.add(d)
    for rec in workouts or []:
        wtype = _get(rec, "workout_type")
        if wtype and str(wtype).strip().lower() in STRENGTH_WORKOUT_TYPES:
            d = to_calendar_date(_get(rec, "date"))
            if d is not None:
                days.add(d)
    df = pd.DataFrame({"date": sorted(days), "strength_sessions": 1})
    return df.set_index("date")


# ═══════════════════════════════════════════════════════════════
#  ALIGNMENT
# ═══════════════════════════════════════════════════════════════

def align_daily_metrics(
    recovery: Optional[Iterable[Any]] = None,
    sleep: Optional[Iterable[Any]] = None,
    workouts: Optional[Iterable[Any]] = None,
    nutrition: Optional[Iterable[Any]] = None,
    body: Optional[Iterable[Any]] = None,
    strength: Optional[Iterable[Any]] = None,
) -> List[DailyMetricRecord]:
    """Join every source on calendar date; return records sorted by date.

    Each argument accepts typed records or plain mappings with the same
    keys.  Inputs are never mutated.
    """
    recovery = records_from_dicts("recovery", recovery or [])
    sleep = records_from_dicts("sleep", sleep or [])
    workouts = records_from_dicts("workouts", workouts or [])
    nutrition = records_from_dicts("nutrition", nutrition or [])
    body = records_from_dicts("body", body or [])
    strength = records_from_dicts("strength", strength or [])

    frames = [
        _last_write_wins(_source_frame(recovery, RECOVERY_MAP, "recovery"), "recovery"),
        _last_write_wins(_source_frame(sleep, SLEEP_MAP, "sleep"), "sleep"),
        _last_write_wins(_source_frame(workouts, WORKOUT_MAP, "workout"), "workout"),
        _summed(_source_frame(nutrition, NUTRITION_MAP, "nutrition")),
        _last_write_wins(_source_frame(body, BODY_MAP, "body"), "body"),
        _strength_days(workouts, strength),
    ]
    frames = [f for f in frames if not f.empty]
    if not frames:
        log.info("   No source records to align.")
        return []

    merged = pd.concat(frames, axis=1, join="outer").sort_index()
    records = []
    for d, row in merged.iterrows():
        values: Dict[str, Any] = {}
        for name in METRIC_FIELDS:
            val = row.get(name) if name in merged.columns else None
            if val is None or pd.isna(val):
                continue
            values[name] = int(val) if name == "strength_sessions" else float(val)
        records.append(DailyMetricRecord(date=d, **values))

    log.info("   Aligned %d day(s) (%s -> %s)", len(records), records[0].date, records[-1].date)
    return records


def records_to_frame(records: Iterable[DailyMetricRecord]) -> pd.DataFrame:
    """Tabular view for the numeric layers: one row per date, NaN for absent."""
    rows = [r.to_dict() for r in records]
    df = pd.DataFrame(rows, columns=["date", *METRIC_FIELDS])
    for col in METRIC_FIELDS:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df["date"] = pd.to_datetime(df["date"])
    return df.sort_values("date").reset_index(drop=True)


# ─── Series helpers for the rule layers ───────────────────────

def metric_series(records: Iterable[DailyMetricRecord], name: str) -> List[Tuple[date, float]]:
    """(date, value) pairs for the days on which *name* is present, oldest first."""
    out = []
    for r in records:
        val = getattr(r, name)
        if val is not None:
            out.append((r.date, val))
    return out


def trailing_values(records: Iterable[DailyMetricRecord], name: str, n: int) -> List[float]:
    """Last *n* present values of *name* (the latest reading included)."""
    return [v for _, v in metric_series(records, name)[-n:]]


def latest_value(records: Iterable[DailyMetricRecord], name: str) -> Optional[float]:
    series = metric_series(records, name)
    return series[-1][1] if series else None
