"""
Whoop / StrongLifts CSV export loader.

Turns one exported CSV file into typed source records for the Metric
Aligner.  The export type is detected from the header row:

  recovery     physiological_cycles.csv  (Recovery score %, HRV, RHR)
  sleep        sleeps.csv                (Sleep efficiency %, Asleep duration)
  workout      workouts.csv              (Activity Strain, Duration)
  stronglifts  StrongLifts export        (Exercise, Sets, Reps, Weight)

Rows that fail to parse are skipped and counted, never raised.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import pandas as pd

from metric_aligner import (
    RecoveryRecord,
    SleepRecord,
    StrengthRecord,
    WorkoutRecord,
    _num,
    to_calendar_date,
)

log = logging.getLogger("whoop_export")

# Header keywords per export type, checked in this order
TYPE_KEYWORDS = [
    ("recovery", ("recovery", "hrv", "heart rate variability", "resting heart rate",
                  "rhr", "readiness", "skin temp")),
    ("sleep", ("sleep", "bed time", "wake time", "rem", "deep sleep", "light sleep")),
    ("stronglifts", ("stronglifts", "reps", "1rm")),
    ("workout", ("strain", "workout", "activity", "kilojoule", "max heart rate",
                 "average heart rate")),
]

_MINUTES_RE = re.compile(r"\((min|mins|minutes)\)")


@dataclass
class ExportParseResult:
    data_type: str
    records: list = field(default_factory=list)
    rows_processed: int = 0
    rows_skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "data_type": self.data_type,
            "records": [vars(r) for r in self.records],
            "rows_processed": self.rows_processed,
            "rows_skipped": self.rows_skipped,
        }


# ─── Header helpers ─────────────────────────────────────────

def detect_data_type(headers: Sequence[str]) -> str:
    header_str = ",".join(str(h) for h in headers).lower()
    for data_type, keywords in TYPE_KEYWORDS:
        if any(k in header_str for k in keywords):
            return data_type
    return "unknown"


def _find_column(columns: Sequence[str], *needles: str) -> Optional[str]:
    """First column matching the earliest needle (needles in priority order)."""
    lowered = [(c, str(c).lower()) for c in columns]
    for needle in needles:
        for col, low in lowered:
            if needle in low:
                return col
    return None


def parse_duration_ms(value, column: Optional[str] = None) -> Optional[float]:
    """Duration cell -> milliseconds.

    "H:MM:SS" / "MM:SS" strings are parsed directly.  Bare numbers use the
    column's "(min)" suffix when present; otherwise values above 24 are
    taken as minutes and smaller ones as hours.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if ":" in text:
        parts = [int(p) if p.strip().isdigit() else 0 for p in text.split(":")]
        if len(parts) == 3:
            return float((parts[0] * 3600 + parts[1] * 60 + parts[2]) * 1000)
        if len(parts) == 2:
            return float((parts[0] * 60 + parts[1]) * 1000)
        return None
    num = _num(text)
    if num is None:
        return None
    if column is not None and _MINUTES_RE.search(str(column).lower()):
        return num * 60 * 1000
    if num > 24:
        return num * 60 * 1000
    return num * 3600 * 1000


def _cell(row: pd.Series, column: Optional[str]):
    if column is None:
        return None
    val = row.get(column)
    if val is None or (isinstance(val, str) and not val.strip()):
        return None
    return val


# ─── Per-type parsers ───────────────────────────────────────

def _parse_recovery(df: pd.DataFrame) -> List[RecoveryRecord]:
    cols = list(df.columns)
    date_col = _find_column(cols, "cycle start time", "date", "day", "time")
    score_col = _find_column(cols, "recovery score", "recovery", "readiness")
    hrv_col = _find_column(cols, "heart rate variability", "hrv", "rmssd", "variability")
    rhr_col = _find_column(cols, "resting heart rate", "rhr", "rest hr")
    return [
        RecoveryRecord(
            date=_cell(row, date_col),
            recovery_score=_num(_cell(row, score_col)),
            hrv_rmssd_milli=_num(_cell(row, hrv_col)),
            resting_heart_rate=_num(_cell(row, rhr_col)),
        )
        for _, row in df.iterrows()
    ]


def _parse_sleep(df: pd.DataFrame) -> List[SleepRecord]:
    cols = list(df.columns)
    date_col = _find_column(cols, "sleep onset", "cycle start time", "date", "day")
    total_col = _find_column(cols, "asleep duration", "total sleep")
    eff_col = _find_column(cols, "sleep efficiency")
    score_col = _find_column(cols, "sleep performance", "sleep score")
    return [
        SleepRecord(
            date=_cell(row, date_col),
            sleep_efficiency_percentage=_num(_cell(row, eff_col)),
            total_sleep_time_milli=parse_duration_ms(_cell(row, total_col), total_col),
            sleep_score=_num(_cell(row, score_col)),
        )
        for _, row in df.iterrows()
    ]


def _parse_workouts(df: pd.DataFrame) -> List[WorkoutRecord]:
    cols = list(df.columns)
    date_col = _find_column(cols, "workout start time", "cycle start time", "date", "day")
    strain_col = _find_column(cols, "activity strain", "strain")
    duration_col = _find_column(cols, "duration")
    type_col = _find_column(cols, "activity name", "type", "activity")
    return [
        WorkoutRecord(
            date=_cell(row, date_col),
            strain_score=_num(_cell(row, strain_col)),
            duration=parse_duration_ms(_cell(row, duration_col), duration_col),
            workout_type=_cell(row, type_col),
        )
        for _, row in df.iterrows()
    ]


def _parse_stronglifts(df: pd.DataFrame) -> List[StrengthRecord]:
    cols = list(df.columns)
    date_col = _find_column(cols, "date", "day", "time")
    exercise_col = _find_column(cols, "exercise", "name")
    weight_col = _find_column(cols, "weight", "load")
    reps_col = _find_column(cols, "reps", "repetitions")
    sets_col = _find_column(cols, "sets")
    volume_col = _find_column(cols, "volume", "total")
    out = []
    for _, row in df.iterrows():
        weight = _num(_cell(row, weight_col))
        reps = _num(_cell(row, reps_col))
        sets = _num(_cell(row, sets_col))
        volume = _num(_cell(row, volume_col))
        if not volume and weight and reps and sets:
            volume = weight * reps * sets
        out.append(StrengthRecord(
            date=_cell(row, date_col),
            exercise=_cell(row, exercise_col),
            sets=sets,
            reps=reps,
            weight=weight,
            volume=volume,
        ))
    return out


PARSERS = {
    "recovery": _parse_recovery,
    "sleep": _parse_sleep,
    "workout": _parse_workouts,
    "stronglifts": _parse_stronglifts,
}

# Export type -> align_daily_metrics keyword
ALIGNER_KIND = {
    "recovery": "recovery",
    "sleep": "sleep",
    "workout": "workouts",
    "stronglifts": "strength",
}


# ═══════════════════════════════════════════════════════════════
#  ENTRY
# ═══════════════════════════════════════════════════════════════

def parse_export(csv_text: str) -> ExportParseResult:
    """Parse one CSV export; unknown or empty files yield no records."""
    text = (csv_text or "").strip()
    if not text:
        return ExportParseResult(data_type="unknown")

    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False,
                         skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        log.warning("Could not read CSV export: %s", e)
        return ExportParseResult(data_type="unknown")
    df.columns = [str(c).strip() for c in df.columns]
    data_type = detect_data_type(df.columns)
    log.info("   Export headers -> %s (%d rows)", data_type, len(df))
    if data_type == "unknown" or df.empty:
        if data_type == "unknown":
            log.warning("Could not detect export type from headers: %s", ", ".join(df.columns))
        return ExportParseResult(data_type=data_type, rows_processed=len(df))

    parsed = PARSERS[data_type](df)
    records = [r for r in parsed if to_calendar_date(r.date) is not None]
    skipped = len(parsed) - len(records)
    if skipped:
        log.warning("   Skipped %d %s row(s) without a usable date", skipped, data_type)
    return ExportParseResult(
        data_type=data_type,
        records=records,
        rows_processed=len(df),
        rows_skipped=skipped,
    )
