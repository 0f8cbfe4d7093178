import numpy as np
import pytest

from engine.errors import NoPeaksDetected, TooFewCleanIntervals
from features.intervals import validate_intervals


def test_regular_rhythm_all_clean():
    report = validate_intervals(np.arange(0, 240, 24))
    assert report.intervals.size == 9
    assert report.rejected == 0
    assert report.median == 24.0
    assert report.irregularity_pct == 0


def test_missed_beat_rejected():
    peaks = np.array([0, 24, 48, 96, 120, 144, 168])   # beat at 72 missed
    report = validate_intervals(peaks)
    assert report.rejected == 1
    assert np.all(report.clean == 24)


def test_extra_beat_rejected():
    peaks = np.array([0, 24, 48, 58, 72, 96, 120, 144])
    report = validate_intervals(peaks)
    assert report.rejected == 2
    assert report.clean.mean() == pytest.approx(24.0)


def test_irregularity_reflects_variability():
    steady = validate_intervals(np.cumsum([0, 24, 24, 24, 24, 24]))
    varied = validate_intervals(np.cumsum([0, 20, 28, 21, 27, 22, 26]))
    assert steady.irregularity_pct == 0
    assert 5 <= varied.irregularity_pct <= 20


@pytest.mark.parametrize("peaks", [np.array([]), np.array([10])])
def test_fewer_than_two_peaks(peaks):
    with pytest.raises(NoPeaksDetected):
        validate_intervals(peaks)


def test_too_few_raw_intervals():
    with pytest.raises(TooFewCleanIntervals):
        validate_intervals(np.array([0, 24, 48]))


def test_too_few_clean_intervals():
    # Wildly scattered "beats": nothing near the median survives
    with pytest.raises(TooFewCleanIntervals):
        validate_intervals(np.cumsum([0, 5, 40, 12, 70, 20]))


def test_live_thresholds_accept_two_intervals():
    report = validate_intervals(np.array([0, 24, 48]), min_raw=2, min_clean=2)
    assert report.clean.size == 2
