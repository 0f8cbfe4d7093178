import numpy as np
import pytest

from acquisition.profiles import PROFILES
from acquisition.samples import Modality
from config import MIN_BEAT_CONTRAST, MIN_PERIODICITY
from dsp.filters import condition_signal
from dsp.peaks import detect_peaks
from dsp.spectral import beat_contrast, dominant_frequency, periodicity, spectral_snr
from engine.errors import EstimationError, OutOfPhysiologicalRange, TooFewCleanIntervals
from engine.pipeline import ModalityPipeline
from features.hr import (
    bpm_from_interval,
    composite_confidence,
    estimate_rate,
    interval_stability,
    weighted_mean_interval,
)
from features.intervals import validate_intervals
from utils.synthetic import optical_samples

FS = 30.0


def _analyse_optical(samples):
    pipeline = ModalityPipeline(PROFILES[Modality.OPTICAL])
    for s in samples:
        pipeline.add_sample(s)
    return pipeline.analyse().heart_rate


# ── BPM conversion ───────────────────────────────────────────────────────────


def test_bpm_from_interval():
    assert bpm_from_interval(24.0, FS) == 75
    assert bpm_from_interval(30.0, FS) == 60


@pytest.mark.parametrize("interval", [5.0, 60.0, 0.0])
def test_out_of_range_rejected_not_clamped(interval):
    with pytest.raises(OutOfPhysiologicalRange):
        bpm_from_interval(interval, FS)


def test_equal_weighting_by_default():
    assert weighted_mean_interval(np.array([20.0, 20.0, 30.0])) == pytest.approx(70.0 / 3)


def test_recency_weighting_favours_latest():
    clean = np.array([20.0, 20.0, 30.0])
    weighted = weighted_mean_interval(clean, half_life=1.0)
    assert weighted > clean.mean()
    assert weighted < 30.0


def test_invalid_half_life():
    with pytest.raises(ValueError):
        weighted_mean_interval(np.array([24.0, 24.0]), half_life=0.0)


# ── Confidence components ────────────────────────────────────────────────────


def test_interval_stability():
    assert interval_stability(np.array([24.0, 24.0, 24.0])) == 1.0
    assert interval_stability(np.array([24.0])) == 0.0
    assert 0.0 < interval_stability(np.array([20.0, 28.0, 22.0])) < 1.0


def test_bare_minimum_evidence_caps_confidence():
    assert composite_confidence(1.0, 1.0, 1.0, 1.0, n_clean=3) < 50
    assert composite_confidence(1.0, 1.0, 1.0, 1.0, n_clean=10) == 100


def test_zero_components_give_zero_confidence():
    assert composite_confidence(0.0, 0.0, 0.0, 0.0, n_clean=10) == 0


# ── Spectral helpers ─────────────────────────────────────────────────────────


def test_dominant_frequency(sine):
    assert dominant_frequency(sine(1.5), FS) == pytest.approx(1.5, abs=0.05)
    assert dominant_frequency(np.zeros(300), FS) is None


def test_spectral_snr_clean_vs_noise(sine):
    rng = np.random.default_rng(1)
    assert spectral_snr(sine(1.2), FS, beat_hz=1.2) > 0.8
    assert spectral_snr(rng.standard_normal(360), FS, beat_hz=1.2) < 0.5
    assert spectral_snr(np.zeros(360), FS, beat_hz=1.2) == 0.0


def test_periodicity_clean_vs_noise(sine):
    rng = np.random.default_rng(2)
    assert periodicity(sine(1.25), 24) > 0.9
    assert periodicity(rng.standard_normal(360), 24) < 0.3
    assert periodicity(sine(1.25), 0) == 0.0


def test_beat_contrast_separates_pulse_from_drift(sine):
    drift = np.linspace(0.0, 50.0, 360)
    assert periodicity(drift, 24) > MIN_PERIODICITY
    assert beat_contrast(drift, 24) < MIN_BEAT_CONTRAST
    assert beat_contrast(sine(1.25), 24) > 1.5


def test_drifting_window_rejected_despite_high_periodicity():
    t = np.arange(360) / FS
    x = 40.0 * t + 0.5 * np.sin(2.0 * np.pi * 1.25 * t)
    peaks = np.arange(12, 360, 24)
    report = validate_intervals(peaks)
    with pytest.raises(TooFewCleanIntervals):
        estimate_rate(x, peaks, report, FS, coverage=1.0)


# ── End-to-end rate recovery ─────────────────────────────────────────────────


@pytest.mark.parametrize("freq_hz", [0.8, 1.0, 1.25, 1.5, 2.0, 2.5])
def test_recovers_sinusoid_rate_with_low_noise(freq_hz):
    samples = optical_samples(bpm=freq_hz * 60.0, duration_s=12.0, noise=0.5, seed=7)
    hr = _analyse_optical(samples)
    assert abs(hr.bpm - freq_hz * 60.0) <= 3
    assert isinstance(hr.bpm, int)
    assert 35 <= hr.bpm <= 220


def test_confidence_non_decreasing_as_noise_falls(sine):
    rng = np.random.default_rng(11)
    base = sine(1.25, duration_s=12.0, amplitude=20.0)
    noise = rng.standard_normal(base.size)

    confidences = []
    for level in (16.0, 8.0, 4.0, 1.0, 0.0):       # decreasing noise
        x = condition_signal(150.0 + base + level * noise, FS)
        try:
            peaks = detect_peaks(x, FS, refractory_s=0.55)
            report = validate_intervals(peaks)
            confidences.append(estimate_rate(x, peaks, report, FS, coverage=1.0).confidence_pct)
        except EstimationError:
            confidences.append(0)

    for noisier, cleaner in zip(confidences, confidences[1:]):
        assert cleaner >= noisier - 1
    assert confidences[-1] >= 80


def test_clean_window_is_confident():
    hr = _analyse_optical(optical_samples(bpm=75.0, duration_s=12.0))
    assert 72 <= hr.bpm <= 78
    assert hr.confidence_pct >= 80
    assert hr.quality_tier in ("good", "excellent")
    assert hr.method == "optical"
    assert hr.hrv is not None and hr.hrv["num_intervals"] >= 5
