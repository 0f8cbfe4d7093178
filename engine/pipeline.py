"""
engine/pipeline.py — One modality's end-to-end analysis chain
==============================================================
Orchestrates the full signal-processing chain for a single modality:

    samples  →  SampleWindow  →  condition  →  peaks  →  intervals
             →  rate + confidence  (+ SpO₂ on the optical channel)

It also produces the "live preliminary" BPM from the trailing ~3 s of
the window, smoothed by `RealtimeSmoother`, so a display can show a
number long before the full window is available.

Which channel carries the pulse, how long the window is, and how far
apart beats must be all come from the `ModalityProfile`; the code path
is the same for optical, acoustic and motion input.

Failures are raised as `EstimationError` subclasses; `ScanSession`
turns them into typed results.
"""

from dataclasses import dataclass

import numpy as np

from acquisition.buffer import SampleWindow
from acquisition.profiles import ModalityProfile
from acquisition.quality import tier_for
from acquisition.samples import Sample
from config import (
    ANALYSIS_INTERVAL_S,
    FULL_EVIDENCE_INTERVALS,
    LIVE_MIN_CLEAN_INTERVALS,
    LIVE_UPDATE_INTERVAL_S,
    LIVE_WINDOW_S,
    MIN_ANALYSIS_COVERAGE,
    RECENCY_HALF_LIFE,
    REFRACTORY_PERIOD_FRACTION,
    SPO2_IR_CHANNEL,
    SPO2_RED_CHANNEL,
)
from dsp.filters import condition_signal
from dsp.peaks import detect_peaks
from dsp.spectral import dominant_frequency
from engine.errors import (
    EstimationError,
    Failure,
    InsufficientCoverage,
    InsufficientWindow,
    NoPeaksDetected,
)
from engine.results import HeartRateEstimate, OxygenationEstimate
from features.hr import bpm_from_interval, estimate_rate, interval_stability
from features.hrv import compute_hrv
from features.intervals import validate_intervals
from features.smoother import RealtimeSmoother
from features.spo2 import estimate_spo2
from utils.logger import get_logger

logger = get_logger("engine.pipeline")


@dataclass(frozen=True)
class AnalysisResult:
    heart_rate: HeartRateEstimate
    oxygenation: OxygenationEstimate | None = None
    oxygenation_failure: Failure | None = None


class ModalityPipeline:
    """
    Stateful per-modality track: owns one `SampleWindow`, one smoother and
    the latest valid analysis.

    Parameters
    ----------
    profile   : ModalityProfile
    half_life : float | None   Recency weighting for the rate estimate.
    """

    def __init__(self, profile: ModalityProfile, half_life: float | None = RECENCY_HALF_LIFE):
        self._profile = profile
        self._half_life = half_life
        self._window = SampleWindow(profile)
        self._smoother = RealtimeSmoother()
        self._last_analysis_ms: float | None = None
        self._last_live_ms: float | None = None
        self.latest: AnalysisResult | None = None

    # ── Public API ───────────────────────────────────────────────────────────

    @property
    def profile(self) -> ModalityProfile:
        return self._profile

    @property
    def window(self) -> SampleWindow:
        return self._window

    def add_sample(self, sample: Sample) -> float:
        """Push one sample and return the window's coverage ratio afterwards."""
        self._window.push(sample)
        return self._window.coverage_ratio()

    def analysis_due(self, now_ms: float) -> bool:
        """Window long enough and the analysis cadence has elapsed."""
        if not self._window.is_ready():
            return False
        return (
            self._last_analysis_ms is None
            or now_ms - self._last_analysis_ms >= ANALYSIS_INTERVAL_S * 1000.0
        )

    def live_due(self, now_ms: float) -> bool:
        if self._window.duration_s < LIVE_WINDOW_S:
            return False
        return (
            self._last_live_ms is None
            or now_ms - self._last_live_ms >= LIVE_UPDATE_INTERVAL_S * 1000.0
        )

    def analyse(self, now_ms: float | None = None) -> AnalysisResult:
        """
        Run the full chain on the current window.

        Raises
        ------
        InsufficientWindow, InsufficientCoverage, NoPeaksDetected,
        TooFewCleanIntervals, OutOfPhysiologicalRange
        """
        self._last_analysis_ms = now_ms if now_ms is not None else self._window.last_timestamp_ms

        if not self._window.is_ready():
            raise InsufficientWindow(
                f"{self._window.duration_s:.1f} s of {self._profile.modality.value} data; "
                f"need {self._profile.min_window_s:.1f} s."
            )
        coverage = self._window.coverage_ratio()
        if coverage < MIN_ANALYSIS_COVERAGE:
            raise InsufficientCoverage(
                f"Coverage {coverage:.2f} below {MIN_ANALYSIS_COVERAGE:.2f}."
            )

        fs = self._window.effective_rate_hz
        conditioned = condition_signal(self._window.channel(self._profile.hr_channel), fs)
        peaks = detect_peaks(conditioned, fs, self._refractory_s(conditioned, fs))
        if peaks.size == 0:
            raise NoPeaksDetected("No beats detected in the analysis window.")

        report = validate_intervals(peaks)
        rate = estimate_rate(conditioned, peaks, report, fs, coverage, self._half_life)

        heart_rate = HeartRateEstimate(
            bpm=rate.bpm,
            confidence_pct=rate.confidence_pct,
            irregularity_pct=rate.irregularity_pct,
            method=self._profile.modality.value,
            quality_tier=tier_for(rate.confidence_pct),
            hrv=compute_hrv(report.clean, fs),
        )

        oxygenation, oxygenation_failure = None, None
        if self._profile.supports_spo2:
            try:
                oxygenation = estimate_spo2(
                    self._window.channel(SPO2_RED_CHANNEL),
                    self._window.channel(SPO2_IR_CHANNEL),
                    fs,
                    coverage,
                )
            except EstimationError as e:
                oxygenation_failure = e.to_failure()
                logger.info("SpO2 unavailable: %s", e)

        logger.info(
            "%s analysis: %d BPM (conf=%d%%, irregularity=%d%%, %d beats, fs=%.2f Hz)",
            self._profile.modality.value, heart_rate.bpm, heart_rate.confidence_pct,
            heart_rate.irregularity_pct, peaks.size, fs,
        )
        self.latest = AnalysisResult(heart_rate, oxygenation, oxygenation_failure)
        return self.latest

    def live_estimate(self, now_ms: float | None = None) -> HeartRateEstimate:
        """
        Quick BPM from the trailing `LIVE_WINDOW_S` seconds, folded into the
        Kalman smoother.  Cheaper and looser than `analyse`: two clean
        intervals suffice and no periodicity gate is applied.
        """
        self._last_live_ms = now_ms if now_ms is not None else self._window.last_timestamp_ms

        if self._window.duration_s < LIVE_WINDOW_S:
            raise InsufficientWindow(
                f"{self._window.duration_s:.1f} s buffered; live estimate needs {LIVE_WINDOW_S} s."
            )
        fs = self._window.effective_rate_hz
        raw = self._window.channel(self._profile.hr_channel, last_s=LIVE_WINDOW_S)
        conditioned = condition_signal(raw, fs)
        peaks = detect_peaks(conditioned, fs, self._refractory_s(conditioned, fs))
        report = validate_intervals(
            peaks,
            min_raw=LIVE_MIN_CLEAN_INTERVALS,
            min_clean=LIVE_MIN_CLEAN_INTERVALS,
        )
        instantaneous = bpm_from_interval(report.clean.mean(), fs)
        smoothed = self._smoother.update(instantaneous)

        evidence = min(1.0, report.clean.size / FULL_EVIDENCE_INTERVALS)
        confidence = int(round(
            100.0 * interval_stability(report.clean) * self._window.coverage_ratio() * evidence
        ))
        return HeartRateEstimate(
            bpm=smoothed,
            confidence_pct=confidence,
            irregularity_pct=report.irregularity_pct,
            method=self._profile.modality.value,
            quality_tier=tier_for(confidence),
            preliminary=True,
        )

    def reset(self) -> None:
        """Clear the window and all derived state — call between scans."""
        self._window.clear()
        self._smoother.reset()
        self._last_analysis_ms = None
        self._last_live_ms = None
        self.latest = None

    # ── Internals ────────────────────────────────────────────────────────────

    def _refractory_s(self, conditioned: np.ndarray, fs: float) -> float:
        """Profile refractory distance, shortened for rhythms faster than it allows."""
        dominant_hz = dominant_frequency(conditioned, fs)
        if dominant_hz is None:
            return self._profile.refractory_s
        return min(self._profile.refractory_s, REFRACTORY_PERIOD_FRACTION / dominant_hz)
