import numpy as np
import pytest

from engine.errors import NoPeaksDetected
from features.spo2 import calibrate_spo2, estimate_spo2

FS = 30.0


def _channels(red_depth=20.0, ir_depth=11.0, n=360, freq_hz=1.25):
    t = np.arange(n) / FS
    wave = np.sin(2.0 * np.pi * freq_hz * t)
    return 150.0 + red_depth * wave, 50.0 + ir_depth * wave


@pytest.mark.parametrize("ratio", np.linspace(0.0, 10.0, 201))
def test_calibration_always_within_band(ratio):
    assert 70.0 <= calibrate_spo2(ratio) <= 100.0


def test_calibration_is_monotonic_non_increasing():
    ratios = np.linspace(0.0, 10.0, 1001)
    values = np.array([calibrate_spo2(r) for r in ratios])
    assert np.all(np.diff(values) <= 1e-9)


@pytest.mark.parametrize(
    "ratio, expected",
    [(0.2, 100.0), (0.4, 100.0), (0.7, 92.5), (1.0, 85.0), (1.5, 75.0), (5.0, 70.0)],
)
def test_calibration_breakpoints(ratio, expected):
    assert calibrate_spo2(ratio) == pytest.approx(expected)


def test_healthy_ratio_maps_to_normal_saturation():
    red, ir = _channels()
    est = estimate_spo2(red, ir, FS, coverage=1.0)
    # (20/√2/150) / (11/√2/50) ≈ 0.61
    assert est.ratio_of_ratios == pytest.approx(0.606, abs=0.03)
    assert 93 <= est.percentage <= 97
    assert 0 <= est.confidence_pct <= 100


def test_confidence_tracks_coverage():
    red, ir = _channels()
    high = estimate_spo2(red, ir, FS, coverage=1.0).confidence_pct
    low = estimate_spo2(red, ir, FS, coverage=0.3).confidence_pct
    assert high > low


def test_flat_ir_channel_rejected():
    red, _ = _channels()
    with pytest.raises(NoPeaksDetected):
        estimate_spo2(red, np.full(red.size, 50.0), FS, coverage=1.0)


def test_low_perfusion_rejected():
    red, ir = _channels(red_depth=0.01)
    with pytest.raises(NoPeaksDetected):
        estimate_spo2(red, ir, FS, coverage=1.0)


def test_zero_dc_rejected():
    t = np.arange(360) / FS
    wave = np.sin(2.0 * np.pi * 1.25 * t)
    with pytest.raises(NoPeaksDetected):
        estimate_spo2(wave, 50.0 + wave, FS, coverage=1.0)


def test_mismatched_channels_rejected():
    with pytest.raises(ValueError):
        estimate_spo2(np.ones(100), np.ones(90), FS, coverage=1.0)


def test_pathological_ratio_still_clamped():
    # Red pulses far harder than IR → R ≫ 2
    red, ir = _channels(red_depth=40.0, ir_depth=1.0)
    est = estimate_spo2(red, ir, FS, coverage=1.0)
    assert est.ratio_of_ratios > 2.0
    assert est.percentage == 70
