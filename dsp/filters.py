"""
dsp/filters.py — Signal conditioning (detrend + single-pole band-pass)
=======================================================================
Turns one raw channel into a quasi-periodic waveform restricted to the
cardiac band:

    1. subtract the global mean           (detrend)
    2. first-order high-pass  @ ~0.75 Hz  (baseline drift: finger pressure,
                                           auto-exposure, breathing)
    3. first-order low-pass   @ ~3.5 Hz   (sensor noise above any plausible
                                           heart rate)

Why single-pole IIR instead of a higher-order Butterworth?
-----------------------------------------------------------
* O(n), causal and state-carrying, so the same filter can run on a live
  sub-window as well as on the full window.
* Gentle roll-off is enough here: the peak detector and interval
  validator downstream reject what the filter lets through.

Each filter is expressed as (b, a) coefficients and applied with
`scipy.signal.lfilter`, with the state initialised to the steady-state
response of the first sample so there is no start-up transient.
"""

import math
import warnings

import numpy as np
from scipy.signal import lfilter, lfilter_zi

from config import HIGHPASS_CUTOFF_HZ, LOWPASS_CUTOFF_HZ


def _rc_alpha(cutoff_hz: float, fs: float) -> tuple[float, float]:
    """Return (rc, dt) for an RC filter with the given cut-off."""
    if cutoff_hz <= 0 or fs <= 0:
        raise ValueError(f"Cut-off ({cutoff_hz} Hz) and fs ({fs} Hz) must be positive.")
    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    dt = 1.0 / fs
    return rc, dt


def design_highpass(cutoff_hz: float, fs: float) -> tuple[np.ndarray, np.ndarray]:
    """
    First-order high-pass:  y[i] = α · (y[i−1] + x[i] − x[i−1]),
    α = RC / (RC + dt).
    """
    rc, dt = _rc_alpha(cutoff_hz, fs)
    alpha = rc / (rc + dt)
    return np.array([alpha, -alpha]), np.array([1.0, -alpha])


def design_lowpass(cutoff_hz: float, fs: float) -> tuple[np.ndarray, np.ndarray]:
    """
    First-order low-pass (exponential smoother):  y[i] = α·x[i] + (1 − α)·y[i−1],
    α = dt / (RC + dt).
    """
    nyq = fs / 2.0
    if cutoff_hz >= nyq:
        # Safety: a cut-off above Nyquist is meaningless at this rate.
        clamped = 0.95 * nyq
        warnings.warn(
            f"Sample rate ({fs:.1f} Hz) is too low for the requested low-pass "
            f"cut-off ({cutoff_hz} Hz).  Clamping to {clamped:.2f} Hz.",
            stacklevel=2,
        )
        cutoff_hz = clamped
    rc, dt = _rc_alpha(cutoff_hz, fs)
    alpha = dt / (rc + dt)
    return np.array([alpha]), np.array([1.0, -(1.0 - alpha)])


def _apply(b: np.ndarray, a: np.ndarray, signal: np.ndarray) -> np.ndarray:
    zi = lfilter_zi(b, a) * signal[0]
    filtered, _ = lfilter(b, a, signal, zi=zi)
    return filtered


def detrend(signal: np.ndarray) -> np.ndarray:
    """Subtract the global mean."""
    return signal - signal.mean()


def condition_signal(
    signal: np.ndarray,
    fs: float,
    highpass_hz: float = HIGHPASS_CUTOFF_HZ,
    lowpass_hz: float = LOWPASS_CUTOFF_HZ,
) -> np.ndarray:
    """
    Detrend and band-limit one channel.

    Parameters
    ----------
    signal      : ndarray, shape (N,)   Raw channel values.
    fs          : float                 Sampling frequency in Hz.
    highpass_hz : float                 High-pass cut-off.
    lowpass_hz  : float                 Low-pass cut-off.

    Returns
    -------
    filtered : ndarray, shape (N,)
    """
    signal = np.asarray(signal, dtype=np.float64)
    if signal.ndim != 1 or signal.size < 2:
        raise ValueError(
            f"Need a 1-D signal of at least 2 samples, got shape {signal.shape}."
        )

    centred = detrend(signal)
    b, a = design_highpass(highpass_hz, fs)
    high_passed = _apply(b, a, centred)
    b, a = design_lowpass(lowpass_hz, fs)
    return _apply(b, a, high_passed)
