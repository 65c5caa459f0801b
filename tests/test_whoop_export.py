"""
Tests for the Whoop / StrongLifts CSV export loader.

Covers: header detection, column matching, duration conversion,
volume defaulting, bad-row skipping and hand-off to the aligner.
"""
from datetime import date

import pytest

from metric_aligner import RecoveryRecord, SleepRecord, WorkoutRecord, align_daily_metrics
from whoop_export import detect_data_type, parse_duration_ms, parse_export

RECOVERY_CSV = """Cycle start time,Cycle end time,Recovery score %,Resting heart rate (bpm),Heart rate variability (ms),Skin temp (celsius)
2024-01-01 22:10:00,2024-01-02 22:40:00,65,52,48.5,33.1
2024-01-02 22:40:00,2024-01-03 23:05:00,40,55,39,33.4
"""

SLEEP_CSV = """Cycle start time,Sleep onset,Wake onset,Sleep performance %,Asleep duration (min),Sleep efficiency %
2024-01-01 22:10:00,2024-01-01 23:02:00,2024-01-02 07:01:00,88,450,91
"""

WORKOUT_CSV = """Cycle start time,Workout start time,Duration (min),Activity name,Activity Strain,Max HR (bpm)
2024-01-01 22:10:00,2024-01-02 07:30:00,45,Running,11.2,171
2024-01-02 22:40:00,2024-01-03 18:00:00,60,Weightlifting,8.4,150
"""

STRONGLIFTS_CSV = """Date,Exercise,Sets,Reps,Weight
2024-01-02,Squat,5,5,100
2024-01-02,Bench Press,5,5,70
"""


class TestDetectDataType:

    def test_recovery(self):
        assert detect_data_type(["Cycle start time", "Recovery score %", "HRV"]) == "recovery"

    def test_sleep(self):
        assert detect_data_type(["Sleep onset", "Asleep duration (min)"]) == "sleep"

    def test_workout(self):
        assert detect_data_type(["Workout start time", "Activity Strain"]) == "workout"

    def test_stronglifts_not_mistaken_for_workout(self):
        assert detect_data_type(["Date", "Exercise", "Sets", "Reps", "Weight"]) == "stronglifts"

    def test_unknown(self):
        assert detect_data_type(["foo", "bar"]) == "unknown"


class TestParseDuration:

    @pytest.mark.parametrize("value,column,expected", [
        ("1:30:00", None, 5_400_000),
        ("30:00", None, 1_800_000),
        ("45", "Duration (min)", 2_700_000),
        ("10", "Duration (min)", 600_000),
        ("45", None, 2_700_000),
        ("7.5", None, 27_000_000),
    ])
    def test_conversion(self, value, column, expected):
        assert parse_duration_ms(value, column) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [None, "", "abc"])
    def test_unparseable(self, value):
        assert parse_duration_ms(value) is None


class TestParseExport:

    def test_recovery_rows(self):
        result = parse_export(RECOVERY_CSV)
        assert result.data_type == "recovery"
        assert result.rows_processed == 2
        assert result.rows_skipped == 0
        first = result.records[0]
        assert isinstance(first, RecoveryRecord)
        assert first.recovery_score == 65
        assert first.resting_heart_rate == 52
        assert first.hrv_rmssd_milli == 48.5

    def test_sleep_rows(self):
        result = parse_export(SLEEP_CSV)
        rec = result.records[0]
        assert isinstance(rec, SleepRecord)
        assert rec.total_sleep_time_milli == pytest.approx(450 * 60 * 1000)
        assert rec.sleep_efficiency_percentage == 91
        assert rec.sleep_score == 88
        assert rec.date.startswith("2024-01-01 23:02")

    def test_workout_rows(self):
        result = parse_export(WORKOUT_CSV)
        assert result.data_type == "workout"
        run, lift = result.records
        assert isinstance(run, WorkoutRecord)
        assert run.strain_score == 11.2
        assert run.duration == pytest.approx(45 * 60 * 1000)
        assert lift.workout_type == "Weightlifting"

    def test_stronglifts_volume_defaults(self):
        result = parse_export(STRONGLIFTS_CSV)
        assert result.data_type == "stronglifts"
        assert [r.volume for r in result.records] == [2500, 1750]

    def test_rows_without_date_skipped(self):
        text = RECOVERY_CSV + "not a date,x,70,50,45,33\n"
        result = parse_export(text)
        assert result.rows_processed == 3
        assert result.rows_skipped == 1
        assert len(result.records) == 2

    def test_empty_and_unknown(self):
        assert parse_export("").data_type == "unknown"
        assert parse_export("   ").records == []
        unknown = parse_export("foo,bar\n1,2\n")
        assert unknown.data_type == "unknown"
        assert unknown.records == []

    def test_feeds_aligner(self):
        recovery = parse_export(RECOVERY_CSV).records
        sleep = parse_export(SLEEP_CSV).records
        workouts = parse_export(WORKOUT_CSV).records
        days = align_daily_metrics(recovery=recovery, sleep=sleep, workouts=workouts)
        assert days[0].date == date(2024, 1, 1)
        assert days[0].recovery_score == 65
        assert days[0].sleep_duration == pytest.approx(7.5)
        by_day = {d.date: d for d in days}
        assert by_day[date(2024, 1, 3)].strength_sessions == 1
        assert by_day[date(2024, 1, 2)].workout_strain == 11.2

    def test_to_dict_is_plain(self):
        d = parse_export(STRONGLIFTS_CSV).to_dict()
        assert d["data_type"] == "stronglifts"
        assert d["records"][0]["exercise"] == "Squat"
