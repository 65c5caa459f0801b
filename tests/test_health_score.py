"""Tests for the composite health score."""

import pytest

from health_score import (
    component_scores,
    compute_health_score,
    consistency_score,
    hrv_stability_score,
    training_balance_score,
)


class TestComponents:

    @pytest.mark.parametrize("strain,expected", [
        (0, 0.0),
        (20, 30.0),
        (70, 100.0),
        (100, 70.0),
        (250, 0.0),
    ])
    def test_training_balance(self, strain, expected):
        assert training_balance_score(strain) == pytest.approx(expected)

    def test_consistency(self):
        assert consistency_score(3) == 100.0
        assert consistency_score(5) == 100.0
        assert consistency_score(1) == pytest.approx(33.333, rel=1e-3)

    def test_hrv_stability(self):
        assert hrv_stability_score(60, 50) == 100.0
        assert hrv_stability_score(40, 50) == pytest.approx(80.0)

    def test_hrv_needs_two_readings(self, make_days):
        assert "hrv" not in component_scores(make_days(hrv=[50]))
        assert "hrv" in component_scores(make_days(hrv=[50, 45]))

    def test_scores_are_clamped(self, make_days):
        comps = component_scores(make_days(recovery_score=[130], sleep_efficiency=[-5]))
        assert comps["recovery"] == 100.0
        assert comps["sleep"] == 0.0


class TestComputeHealthScore:

    def test_recovery_only_scores_its_own_value(self, make_days):
        hs = compute_health_score(make_days(recovery_score=[80]))
        assert hs.score == 80.0
        assert hs.components == {"recovery": 80.0}
        assert hs.available_weight == pytest.approx(0.30)

    def test_no_data_scores_zero(self):
        hs = compute_health_score([])
        assert hs.score == 0.0
        assert hs.components == {}

    def test_weighted_over_available_components(self, make_days):
        hs = compute_health_score(make_days(recovery_score=[80], sleep_efficiency=[90]))
        # (0.30*80 + 0.25*90) / 0.55
        assert hs.score == 84.5

    def test_all_components(self, make_days):
        records = make_days(
            recovery_score=[70] * 7,
            sleep_efficiency=[84] * 7,
            workout_strain=[10] * 7,
            strength_sessions=[1, None, 1, None, 1, None, None],
            hrv=[50] * 7,
        )
        hs = compute_health_score(records)
        assert set(hs.components) == {"recovery", "sleep", "training", "consistency", "hrv"}
        assert hs.available_weight == pytest.approx(1.0)
        # 0.30*70 + 0.25*84 + 0.20*100 + 0.15*100 + 0.10*100
        assert hs.score == pytest.approx(87.0)

    def test_custom_weights(self, make_days):
        hs = compute_health_score(make_days(recovery_score=[60], sleep_efficiency=[100]),
                                  weights={"recovery": 1.0, "sleep": 1.0})
        assert hs.score == 80.0

    def test_to_dict(self, make_days):
        d = compute_health_score(make_days(recovery_score=[80])).to_dict()
        assert d["score"] == 80.0
        assert d["components"] == {"recovery": 80.0}
