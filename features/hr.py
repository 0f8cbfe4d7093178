"""
features/hr.py — Heart rate & confidence from validated intervals
==================================================================
BPM = round(60 · fs / mean_clean_interval)

Interval weighting
------------------
By default every clean interval counts equally.  When a recency
half-life `h` (in intervals) is given, interval k-from-the-end gets
weight 0.5^(k / h), so the estimate follows a rate that drifts during a
longer session.  Both modes are deterministic.

Range check
-----------
Results outside [35, 220] BPM are REJECTED (`OutOfPhysiologicalRange`),
never clamped: an implausible rate means an artefact, not a reading.

Confidence
----------
Weighted sum (weights in `config.py`, summing to 1.0) of four scores in
[0, 1]:

    spectral SNR      power near the beat frequency / in-band power
    stability         1 − coefficient of variation of clean intervals
    coverage          contact predicate pass rate (SampleWindow)
    prominence        typical peak prominence / robust amplitude

The composite is then scaled by an evidence factor
min(1, n_clean / FULL_EVIDENCE_INTERVALS), so a window with the bare
minimum of clean intervals can never claim near-100 % confidence.  A
flat or degenerate window never reaches this point (no peaks), and every
ratio is guarded against a near-zero denominator.

There is deliberately NO artificial confidence floor: weak evidence must
be allowed to show up as low confidence.
"""

from dataclasses import dataclass

import numpy as np

from config import (
    BPM_MAX,
    BPM_MIN,
    CONFIDENCE_WEIGHT_COVERAGE,
    CONFIDENCE_WEIGHT_PROMINENCE,
    CONFIDENCE_WEIGHT_SNR,
    CONFIDENCE_WEIGHT_STABILITY,
    FULL_EVIDENCE_INTERVALS,
    MIN_BEAT_CONTRAST,
    MIN_PERIODICITY,
    RECENCY_HALF_LIFE,
)
from dsp.peaks import prominence_quality
from dsp.spectral import beat_contrast, periodicity, spectral_snr
from engine.errors import OutOfPhysiologicalRange, TooFewCleanIntervals
from features.intervals import IntervalReport
from utils.logger import get_logger

logger = get_logger("features.hr")

_EPS = 1e-9


@dataclass(frozen=True)
class RateEstimate:
    bpm: int
    confidence_pct: int
    irregularity_pct: int
    mean_interval: float          # samples
    snr: float
    stability: float
    coverage: float
    prominence: float
    periodicity: float


def weighted_mean_interval(clean: np.ndarray, half_life: float | None = RECENCY_HALF_LIFE) -> float:
    """Mean of the clean intervals, optionally weighted towards the most recent."""
    clean = np.asarray(clean, dtype=np.float64)
    if half_life is None:
        return float(clean.mean())
    if half_life <= 0:
        raise ValueError(f"half_life must be positive, got {half_life}.")
    ages = np.arange(clean.size)[::-1]          # 0 → most recent interval
    weights = 0.5 ** (ages / half_life)
    return float(np.average(clean, weights=weights))


def bpm_from_interval(mean_interval: float, fs: float) -> int:
    """
    Convert a mean interval (samples) to an integer BPM.

    Raises
    ------
    OutOfPhysiologicalRange  If the result falls outside [BPM_MIN, BPM_MAX].
    """
    if mean_interval <= _EPS:
        raise OutOfPhysiologicalRange(f"Degenerate beat interval ({mean_interval}).")
    bpm = int(round(60.0 * fs / mean_interval))
    if not BPM_MIN <= bpm <= BPM_MAX:
        raise OutOfPhysiologicalRange(
            f"{bpm} BPM is outside the plausible range [{BPM_MIN}, {BPM_MAX}]."
        )
    return bpm


def interval_stability(clean: np.ndarray) -> float:
    """1 − coefficient of variation, clipped to [0, 1]."""
    clean = np.asarray(clean, dtype=np.float64)
    if clean.size < 2:
        return 0.0
    mean = clean.mean()
    if mean <= _EPS:
        return 0.0
    return float(np.clip(1.0 - clean.std() / mean, 0.0, 1.0))


def composite_confidence(
    snr: float,
    stability: float,
    coverage: float,
    prominence: float,
    n_clean: int,
) -> int:
    """Weighted 0–100 confidence, scaled down when evidence is thin."""
    composite = (
        CONFIDENCE_WEIGHT_SNR * snr
        + CONFIDENCE_WEIGHT_STABILITY * stability
        + CONFIDENCE_WEIGHT_COVERAGE * coverage
        + CONFIDENCE_WEIGHT_PROMINENCE * prominence
    )
    composite = float(np.clip(composite, 0.0, 1.0))
    evidence = min(1.0, n_clean / FULL_EVIDENCE_INTERVALS)
    return int(round(100.0 * composite * evidence))


def estimate_rate(
    conditioned: np.ndarray,
    peaks: np.ndarray,
    report: IntervalReport,
    fs: float,
    coverage: float,
    half_life: float | None = RECENCY_HALF_LIFE,
) -> RateEstimate:
    """
    Turn a validated beat sequence into a BPM with a calibrated confidence.

    Parameters
    ----------
    conditioned : ndarray   Output of `condition_signal`.
    peaks       : ndarray   Beat indices used to build `report`.
    report      : IntervalReport
    fs          : float     Effective sample rate of the window (Hz).
    coverage    : float     Contact coverage ratio in [0, 1].
    half_life   : float | None   Recency weighting (None → equal weights).

    Raises
    ------
    OutOfPhysiologicalRange  BPM outside [35, 220].
    TooFewCleanIntervals     The waveform does not repeat at the beat lag, or
                             repeats just as well at half of it (drift).
    """
    mean_interval = weighted_mean_interval(report.clean, half_life)
    bpm = bpm_from_interval(mean_interval, fs)

    repeat_score = periodicity(conditioned, report.clean.mean())
    if repeat_score < MIN_PERIODICITY:
        raise TooFewCleanIntervals(
            f"Waveform is not periodic at the beat lag "
            f"(autocorrelation {repeat_score:.2f} < {MIN_PERIODICITY})."
        )
    # Slow drift repeats at the beat lag too, but also at half of it
    contrast = beat_contrast(conditioned, report.clean.mean())
    if contrast < MIN_BEAT_CONTRAST:
        raise TooFewCleanIntervals(
            f"Waveform does not alternate within a beat "
            f"(half-lag contrast {contrast:.2f} < {MIN_BEAT_CONTRAST})."
        )

    snr = spectral_snr(conditioned, fs, beat_hz=fs / mean_interval)
    stability = interval_stability(report.clean)
    prominence = prominence_quality(conditioned, peaks)
    coverage = float(np.clip(coverage, 0.0, 1.0))
    confidence = composite_confidence(snr, stability, coverage, prominence, report.clean.size)

    logger.debug(
        "Rate %d BPM  conf=%d%%  (snr=%.2f, stab=%.2f, cov=%.2f, prom=%.2f, "
        "period=%.2f, contrast=%.2f, clean=%d/%d)",
        bpm, confidence, snr, stability, coverage, prominence,
        repeat_score, contrast, report.clean.size, report.intervals.size,
    )

    return RateEstimate(
        bpm=bpm,
        confidence_pct=confidence,
        irregularity_pct=report.irregularity_pct,
        mean_interval=mean_interval,
        snr=snr,
        stability=stability,
        coverage=coverage,
        prominence=prominence,
        periodicity=repeat_score,
    )
