"""
Tests for the metric aligner.

Covers: date merging, nutrition summing, last-write-wins for the other
sources, unit conversion, strength-day detection and bad-date handling.
"""
import copy
from datetime import date, datetime

import pytest

from metric_aligner import (
    DailyMetricRecord,
    NutritionRecord,
    RecoveryRecord,
    SleepRecord,
    StrengthRecord,
    WorkoutRecord,
    align_daily_metrics,
    latest_value,
    records_from_dicts,
    records_to_frame,
    to_calendar_date,
    trailing_values,
)


# ─── Calendar dates ──────────────────────────────────────────


class TestToCalendarDate:

    def test_iso_string(self):
        assert to_calendar_date("2024-03-05") == date(2024, 3, 5)

    def test_datetime_string_drops_time(self):
        assert to_calendar_date("2024-03-05T23:30:00") == date(2024, 3, 5)

    def test_datetime_object(self):
        assert to_calendar_date(datetime(2024, 3, 5, 6, 0)) == date(2024, 3, 5)

    def test_garbage_is_none(self):
        assert to_calendar_date("not-a-date") is None
        assert to_calendar_date(None) is None


# ─── Merge rules ─────────────────────────────────────────────


class TestAlignDailyMetrics:

    def test_empty_sources_give_no_records(self):
        assert align_daily_metrics() == []

    def test_nutrition_entries_are_summed(self):
        out = align_daily_metrics(nutrition=[
            NutritionRecord(date="2024-01-01", calories=300, protein=20),
            NutritionRecord(date="2024-01-01", calories=500, protein=None),
        ])
        assert len(out) == 1
        assert out[0].calories == 800
        assert out[0].protein == 20

    def test_duplicate_recovery_is_last_write_wins(self):
        out = align_daily_metrics(recovery=[
            RecoveryRecord(date="2024-01-01", recovery_score=40, hrv_rmssd_milli=55),
            RecoveryRecord(date="2024-01-01", recovery_score=70),
        ])
        assert len(out) == 1
        assert out[0].recovery_score == 70
        # the later record replaces the earlier one as a whole
        assert out[0].hrv is None

    def test_union_of_dates_sorted_ascending(self):
        out = align_daily_metrics(
            recovery=[RecoveryRecord(date="2024-01-03", recovery_score=60)],
            sleep=[SleepRecord(date="2024-01-01", sleep_efficiency_percentage=88)],
            body=[{"date": "2024-01-02", "weight": 81.5}],
        )
        assert [r.date for r in out] == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert out[0].sleep_efficiency == 88
        assert out[0].recovery_score is None
        assert out[1].weight == 81.5

    def test_durations_converted_to_hours(self):
        out = align_daily_metrics(
            sleep=[SleepRecord(date="2024-01-01", total_sleep_time_milli=27_000_000)],
            workouts=[{"date": "2024-01-01", "strain_score": 12.5, "duration_milli": 3_600_000}],
        )
        assert out[0].sleep_duration == pytest.approx(7.5)
        assert out[0].workout_duration == pytest.approx(1.0)
        assert out[0].workout_strain == 12.5

    def test_field_mapping(self):
        out = align_daily_metrics(recovery=[
            {"date": "2024-01-01", "recovery_score": 66, "hrv_rmssd_milli": 48.2,
             "resting_heart_rate": 51},
        ])
        rec = out[0]
        assert (rec.recovery_score, rec.hrv, rec.resting_hr) == (66, 48.2, 51)

    def test_strength_days_counted_once(self):
        out = align_daily_metrics(
            strength=[
                StrengthRecord(date="2024-01-01", exercise="Squat", sets=5, reps=5, weight=100),
                StrengthRecord(date="2024-01-01", exercise="Bench", sets=5, reps=5, weight=70),
            ],
            workouts=[
                WorkoutRecord(date="2024-01-02", strain_score=10, workout_type="Weightlifting"),
                WorkoutRecord(date="2024-01-03", strain_score=14, workout_type="Running"),
            ],
        )
        by_day = {r.date: r.strength_sessions for r in out}
        assert by_day[date(2024, 1, 1)] == 1
        assert by_day[date(2024, 1, 2)] == 1
        assert by_day[date(2024, 1, 3)] is None

    def test_unparseable_dates_are_dropped(self):
        out = align_daily_metrics(recovery=[
            {"date": "garbage", "recovery_score": 10},
            {"date": "2024-01-01", "recovery_score": 50},
        ])
        assert len(out) == 1
        assert out[0].recovery_score == 50

    def test_non_numeric_values_become_absent(self):
        out = align_daily_metrics(recovery=[
            {"date": "2024-01-01", "recovery_score": "n/a", "hrv_rmssd_milli": 40},
        ])
        assert out[0].recovery_score is None
        assert out[0].hrv == 40

    def test_inputs_are_not_mutated(self):
        rows = [{"date": "2024-01-01", "calories": 300}, {"date": "2024-01-01", "calories": 500}]
        before = copy.deepcopy(rows)
        align_daily_metrics(nutrition=rows)
        assert rows == before


# ─── Helpers ─────────────────────────────────────────────────


class TestHelpers:

    def test_records_from_dicts_unknown_kind(self):
        with pytest.raises(ValueError):
            records_from_dicts("steps", [{"date": "2024-01-01"}])

    def test_records_from_dicts_applies_alias(self):
        out = records_from_dicts("workouts", [{"date": "2024-01-01", "duration_milli": 1000}])
        assert out[0].duration == 1000

    def test_records_to_frame_one_row_per_record(self, make_days):
        records = make_days(recovery_score=[50, None, 70])
        df = records_to_frame(records)
        assert len(df) == 3
        assert df["recovery_score"].isna().sum() == 1

    def test_trailing_and_latest_skip_absent(self, make_days):
        records = make_days(hrv=[40, 42, None, 44, None])
        assert trailing_values(records, "hrv", 2) == [42, 44]
        assert latest_value(records, "hrv") == 44
        assert latest_value(records, "weight") is None

    def test_daily_record_to_dict_iso_date(self):
        d = DailyMetricRecord(date=date(2024, 1, 2), hrv=50.0).to_dict()
        assert d["date"] == "2024-01-02"
        assert d["hrv"] == 50.0
