"""
utils/synthetic.py — Deterministic synthetic sample streams
============================================================
Used by the demo CLI and the test suite in place of real sensors.  Every
generator is a pure function of its arguments: the same seed yields the
same samples, so replays are reproducible.

    optical_samples(bpm=75)          fingertip PPG: red ≈ 150 ± 20, brightness 160
    acoustic_samples(bpm=78)         chest microphone envelope
    motion_samples(bpm=70)           seismocardiography on the accelerometer
    random_walk_optical()            contact is fine but nothing is periodic
"""

import numpy as np

from acquisition.samples import AcousticSample, MotionSample, OpticalSample
from config import ACOUSTIC_SAMPLE_RATE_HZ, MOTION_SAMPLE_RATE_HZ, OPTICAL_SAMPLE_RATE_HZ


def timestamps_ms(
    n: int,
    fs: float,
    start_ms: float = 0.0,
    jitter_ms: float = 0.0,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Nominal i·1000/fs timestamps, optionally jittered (kept strictly increasing)."""
    period_ms = 1000.0 / fs
    ts = start_ms + np.arange(n) * period_ms
    if jitter_ms > 0:
        if jitter_ms >= period_ms / 2:
            raise ValueError("jitter_ms must be less than half the sample period.")
        rng = rng or np.random.default_rng(0)
        ts = ts + rng.uniform(-jitter_ms, jitter_ms, size=n)
    return ts


def _pulse(bpm: float, t_s: np.ndarray) -> np.ndarray:
    return np.sin(2.0 * np.pi * (bpm / 60.0) * t_s)


def optical_samples(
    bpm: float = 75.0,
    duration_s: float = 12.0,
    fs: float = OPTICAL_SAMPLE_RATE_HZ,
    amplitude: float = 20.0,
    dc: float = 150.0,
    brightness: float = 160.0,
    noise: float = 0.0,
    seed: int = 0,
    start_ms: float = 0.0,
    jitter_ms: float = 0.0,
) -> list[OpticalSample]:
    """
    Fingertip-over-flash frames.  Red carries the pulse; blue (the IR
    proxy) pulses with a relative depth that puts the ratio-of-ratios
    near 0.6, i.e. SpO₂ ≈ 95 % on the placeholder calibration.
    """
    rng = np.random.default_rng(seed)
    n = int(round(duration_s * fs))
    ts = timestamps_ms(n, fs, start_ms, jitter_ms, rng)
    wave = _pulse(bpm, (ts - start_ms) / 1000.0)

    red = dc + amplitude * wave + noise * rng.standard_normal(n)
    green = np.full(n, 60.0) + 0.25 * amplitude * wave
    blue = np.full(n, 50.0) + 0.55 * amplitude * wave
    return [
        OpticalSample(float(r), float(g), float(b), float(brightness), float(t))
        for r, g, b, t in zip(red, green, blue, ts)
    ]


def random_walk_optical(
    duration_s: float = 12.0,
    fs: float = OPTICAL_SAMPLE_RATE_HZ,
    step: float = 0.5,
    seed: int = 0,
    start_ms: float = 0.0,
) -> list[OpticalSample]:
    """Good-contact optical frames whose red channel is a Gaussian random walk."""
    rng = np.random.default_rng(seed)
    n = int(round(duration_s * fs))
    ts = timestamps_ms(n, fs, start_ms)
    red = 150.0 + np.cumsum(step * rng.standard_normal(n))
    return [
        OpticalSample(float(r), 60.0, 50.0, 160.0, float(t))
        for r, t in zip(red, ts)
    ]


def acoustic_samples(
    bpm: float = 75.0,
    duration_s: float = 12.0,
    fs: float = ACOUSTIC_SAMPLE_RATE_HZ,
    amplitude: float = 30.0,
    baseline: float = 100.0,
    dominant_frequency_hz: float = 60.0,
    noise: float = 0.0,
    seed: int = 0,
    start_ms: float = 0.0,
) -> list[AcousticSample]:
    """Low-frequency envelope of heart sounds, one value per frame."""
    rng = np.random.default_rng(seed)
    n = int(round(duration_s * fs))
    ts = timestamps_ms(n, fs, start_ms)
    amp = baseline + amplitude * _pulse(bpm, (ts - start_ms) / 1000.0) + noise * rng.standard_normal(n)
    return [AcousticSample(float(a), float(dominant_frequency_hz), float(t)) for a, t in zip(amp, ts)]


def motion_samples(
    bpm: float = 75.0,
    duration_s: float = 15.0,
    fs: float = MOTION_SAMPLE_RATE_HZ,
    amplitude: float = 0.05,
    gravity: float = 9.81,
    noise: float = 0.0,
    seed: int = 0,
    start_ms: float = 0.0,
) -> list[MotionSample]:
    """Accelerometer magnitude of a phone lying on the chest."""
    rng = np.random.default_rng(seed)
    n = int(round(duration_s * fs))
    ts = timestamps_ms(n, fs, start_ms)
    mag = gravity + amplitude * _pulse(bpm, (ts - start_ms) / 1000.0) + noise * rng.standard_normal(n)
    return [MotionSample(float(m), float(t)) for m, t in zip(mag, ts)]


def interleave(*streams) -> list:
    """Merge several sample lists into one stream ordered by timestamp (stable)."""
    merged = [s for stream in streams for s in stream]
    return sorted(merged, key=lambda s: s.timestamp_ms)
