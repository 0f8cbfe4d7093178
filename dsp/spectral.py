"""
dsp/spectral.py — Frequency-domain SNR and periodicity checks
==============================================================
Two measures of "is this really a pulse?" that complement the
time-domain peak picking:

* **Spectral SNR** — share of in-band power that sits near the beat
  frequency found by the peak detector (and its first harmonic, since
  pulse waveforms are not pure sinusoids).  A clean pulse concentrates
  almost all power there; broadband noise spreads it across the band.

* **Periodicity** — normalised autocorrelation of the waveform at the
  beat lag.  A periodic signal repeats itself one beat later (≈ 1);
  filtered noise decorrelates within a fraction of a beat (≈ 0).

* **Beat contrast** — periodicity at the beat lag minus periodicity at
  half of it.  A pulse is out of phase with itself half a beat later, so
  the contrast is large; drift and low-pass noise have a decaying
  autocorrelation and score at or below zero.
"""

import numpy as np

from config import CARDIAC_BAND_HIGH_HZ, CARDIAC_BAND_LOW_HZ, SPECTRAL_PEAK_HALF_WIDTH_HZ

_EPS = 1e-12


def power_spectrum(signal: np.ndarray, fs: float) -> tuple[np.ndarray, np.ndarray]:
    """Hann-windowed, zero-padded power spectrum → (freqs, power)."""
    n = signal.size
    # Zero-pad to next power of 2 for efficient FFT and finer bin spacing
    n_fft = max(1024, 1 << (n - 1).bit_length())
    freqs = np.fft.rfftfreq(n_fft, d=1.0 / fs)
    power = np.abs(np.fft.rfft(signal * np.hanning(n), n=n_fft)) ** 2
    return freqs, power


def dominant_frequency(
    signal: np.ndarray,
    fs: float,
    band: tuple[float, float] = (CARDIAC_BAND_LOW_HZ, CARDIAC_BAND_HIGH_HZ),
) -> float | None:
    """
    Frequency (Hz) of the strongest in-band spectral component, or None
    when the band holds no power.  Used to scale the peak detector's
    refractory distance to the rate actually present.
    """
    signal = np.asarray(signal, dtype=np.float64)
    if signal.size < 4:
        return None
    freqs, power = power_spectrum(signal, fs)
    in_band = (freqs >= band[0]) & (freqs <= band[1])
    if not in_band.any() or power[in_band].sum() <= _EPS:
        return None
    band_power = np.where(in_band, power, 0.0)
    return float(freqs[np.argmax(band_power)])


def spectral_snr(
    signal: np.ndarray,
    fs: float,
    beat_hz: float,
    half_width_hz: float = SPECTRAL_PEAK_HALF_WIDTH_HZ,
    band: tuple[float, float] = (CARDIAC_BAND_LOW_HZ, CARDIAC_BAND_HIGH_HZ),
) -> float:
    """
    Fraction of cardiac-band power within ±`half_width_hz` of `beat_hz`
    or of its first harmonic.  Returns a value in [0, 1]; 0 for a flat
    or too-short signal.
    """
    signal = np.asarray(signal, dtype=np.float64)
    if signal.size < 4 or beat_hz <= 0:
        return 0.0

    freqs, power = power_spectrum(signal, fs)
    in_band = (freqs >= band[0]) & (freqs <= band[1])
    total = power[in_band].sum()
    if total <= _EPS:
        return 0.0

    near_beat = (np.abs(freqs - beat_hz) <= half_width_hz) | (
        np.abs(freqs - 2.0 * beat_hz) <= half_width_hz
    )
    return float(np.clip(power[in_band & near_beat].sum() / total, 0.0, 1.0))


def periodicity(signal: np.ndarray, lag: float) -> float:
    """Normalised autocorrelation at `lag` samples (rounded), in [−1, 1]."""
    signal = np.asarray(signal, dtype=np.float64)
    lag = int(round(lag))
    if lag <= 0 or lag >= signal.size - 1:
        return 0.0
    head, tail = signal[:-lag], signal[lag:]
    denom = np.sqrt(np.dot(head, head) * np.dot(tail, tail))
    if denom <= _EPS:
        return 0.0
    return float(np.dot(head, tail) / denom)


def beat_contrast(signal: np.ndarray, lag: float) -> float:
    """periodicity(lag) − periodicity(lag / 2), in [−2, 2]."""
    return periodicity(signal, lag) - periodicity(signal, lag / 2.0)
