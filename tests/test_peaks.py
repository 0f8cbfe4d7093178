import numpy as np
import pytest

from dsp.filters import condition_signal
from dsp.peaks import detect_peaks, local_statistics, prominence_quality

FS = 30.0


def test_finds_one_peak_per_cycle(sine):
    x = condition_signal(sine(1.25, duration_s=10.0), FS)
    peaks = detect_peaks(x, FS, refractory_s=0.5)
    intervals = np.diff(peaks)
    assert 11 <= peaks.size <= 13
    assert np.median(intervals) == 24
    assert np.all(np.abs(intervals - 24) <= 2)


def test_constant_signal_has_no_peaks():
    assert detect_peaks(np.zeros(300), FS, refractory_s=0.6).size == 0
    assert detect_peaks(np.full(300, 150.0), FS, refractory_s=0.6).size == 0


def test_empty_signal_has_no_peaks():
    assert detect_peaks(np.array([]), FS, refractory_s=0.6).size == 0


@pytest.mark.parametrize("refractory_s", [0.3, 0.6, 1.0])
def test_refractory_spacing_is_enforced(refractory_s):
    rng = np.random.default_rng(3)
    x = condition_signal(rng.standard_normal(600), FS)
    peaks = detect_peaks(x, FS, refractory_s=refractory_s)
    assert np.all(np.diff(peaks) >= round(refractory_s * FS))


def test_refractory_suppresses_dicrotic_notch():
    # Each beat is followed 8 samples later by a smaller secondary bump
    i = np.arange(300)
    beats = 5 + 30 * np.arange(10)
    x = np.zeros(300)
    for c in beats:
        x += np.exp(-((i - c) ** 2) / 8.0) + 0.5 * np.exp(-((i - c - 8) ** 2) / 8.0)
    peaks = detect_peaks(x, FS, refractory_s=0.6)
    np.testing.assert_array_equal(peaks, beats)


def test_peaks_are_strict_local_maxima(sine):
    x = condition_signal(sine(1.5), FS)
    for p in detect_peaks(x, FS, refractory_s=0.4):
        lo, hi = max(0, p - 3), min(x.size, p + 4)
        neighbours = np.delete(x[lo:hi], p - lo)
        assert np.all(x[p] > neighbours)


def test_local_statistics_match_direct_computation():
    rng = np.random.default_rng(0)
    x = rng.standard_normal(50)
    mean, std, mean_abs = local_statistics(x, 4)
    i = 20
    window = x[i - 4:i + 4]
    assert mean[i] == pytest.approx(window.mean())
    assert std[i] == pytest.approx(window.std())
    assert mean_abs[i] == pytest.approx(np.abs(window).mean())


def test_prominence_quality_high_for_clean_pulse(sine):
    x = condition_signal(sine(1.2), FS)
    peaks = detect_peaks(x, FS, refractory_s=0.5)
    assert prominence_quality(x, peaks) > 0.9


def test_prominence_quality_degenerate_cases():
    assert prominence_quality(np.zeros(100), np.array([10, 50])) == 0.0
    assert prominence_quality(np.sin(np.arange(100) / 3.0), np.array([5])) == 0.0
