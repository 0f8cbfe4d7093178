import numpy as np
import pytest

from engine.results import HeartRateEstimate, OxygenationEstimate
from features.alerts import vital_alerts
from features.hrv import compute_hrv

FS = 30.0


def _hr(bpm):
    return HeartRateEstimate(bpm=bpm, confidence_pct=90, irregularity_pct=2, method="optical", quality_tier="excellent")


def test_too_few_intervals():
    assert compute_hrv(np.array([24.0] * 4), FS) is None


def test_steady_rhythm():
    hrv = compute_hrv(np.array([24.0] * 10), FS)
    assert hrv["mean_rr_ms"] == pytest.approx(800.0)
    assert hrv["sdnn_ms"] == 0.0
    assert hrv["rmssd_ms"] == 0.0
    assert hrv["pnn50"] == 0.0
    assert hrv["num_intervals"] == 10


def test_alternating_rhythm():
    hrv = compute_hrv(np.array([24.0, 27.0] * 5), FS)       # 800 / 900 ms
    assert hrv["rmssd_ms"] == pytest.approx(100.0)
    assert hrv["pnn50"] == pytest.approx(100.0)
    assert hrv["mean_rr_ms"] == pytest.approx(850.0)


@pytest.mark.parametrize(
    "bpm, spo2, expected",
    [
        (75, 97, []),
        (151, 97, ["tachycardia"]),
        (39, 97, ["bradycardia"]),
        (75, 88, ["low_spo2"]),
        (160, 85, ["tachycardia", "low_spo2"]),
    ],
)
def test_alerts(bpm, spo2, expected):
    oxygenation = OxygenationEstimate(percentage=spo2, confidence_pct=80, ratio_of_ratios=0.6)
    assert vital_alerts(_hr(bpm), oxygenation) == expected


def test_alerts_boundaries_and_missing_values():
    assert vital_alerts(_hr(150)) == []
    assert vital_alerts(_hr(40)) == []
    assert vital_alerts(None, None) == []
