"""
engine/session.py — Scan session lifecycle
===========================================
One `ScanSession` per scan.  It is push-driven and single-threaded: the
caller feeds samples through `ingest`, reads the state through `poll`,
and may `cancel` at any time.  No timers or background threads exist;
the hard timeout is re-checked on every `ingest` / `poll` call against
an injectable `clock`.

State machine
-------------

    Idle ──start──▶ Acquiring ──valid result──▶ Completed
                     │    ▲
       poor contact  │    │ contact recovered / fallback modality
       for 5 s       ▼    │
                 InsufficientSignal
                     │
                     └──timeout without a valid result──▶ Failed

Analysis cost is bounded: the full chain runs at most once per second
per modality track once its window is long enough, and the live
preliminary BPM at most once per second from the trailing 3 s.

Failures raised by the signal chain never leave this class as
exceptions; the latest one is stored as a `Failure` value.
"""

import time
from dataclasses import dataclass
from typing import Callable

from acquisition.quality import QualityAssessment, assess_sample
from acquisition.samples import SAMPLE_TYPES, Modality, Sample
from config import (
    COMBINE_GRACE_S,
    COMBINE_TOLERANCE_BPM,
    COVERAGE_THRESHOLD,
    DEFAULT_FALLBACK_ORDER,
    INSUFFICIENT_SIGNAL_AFTER_S,
    PROGRESS_CAP_PCT,
    RECENCY_HALF_LIFE,
    SESSION_TIMEOUT_S,
    SHADOW_ACTIVE_WITHIN_S,
)
from engine.coordinator import ModalityCoordinator
from engine.errors import EstimationError, Failure, InsufficientCoverage, SessionTimeout
from engine.pipeline import ModalityPipeline
from engine.results import (
    TERMINAL_STATES,
    HeartRateEstimate,
    IngestResult,
    OxygenationEstimate,
    SessionState,
    SessionStatus,
)
from features.alerts import vital_alerts
from utils.logger import get_logger

logger = get_logger("engine.session")

OUT_OF_ORDER_ISSUE = "Out-of-order sample dropped"


@dataclass
class SessionOptions:
    """
    Per-session overrides; unset fields fall back to `config.py`.

    Parameters
    ----------
    modality              : Modality        Primary modality.
    min_window_s          : float | None    Duration needed before a full analysis.
    max_window_s          : float | None    Retained window duration.
    timeout_s             : float           Hard limit, seconds since start.
    allow_fallback        : bool            Auto-switch modality on sustained poor contact.
    fallback_order        : tuple           Modality preference order.
    recency_half_life     : float | None    None → clean intervals weighted equally.
    combine_tolerance_bpm : int             Max disagreement for a "combined" result.
    """
    modality: Modality = Modality.OPTICAL
    min_window_s: float | None = None
    max_window_s: float | None = None
    timeout_s: float = SESSION_TIMEOUT_S
    allow_fallback: bool = True
    fallback_order: tuple = DEFAULT_FALLBACK_ORDER
    recency_half_life: float | None = RECENCY_HALF_LIFE
    combine_tolerance_bpm: int = COMBINE_TOLERANCE_BPM

    def __post_init__(self):
        self.modality = Modality(self.modality)
        self.fallback_order = tuple(Modality(m) for m in self.fallback_order)
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive.")
        if self.min_window_s is not None and self.min_window_s <= 0:
            raise ValueError("min_window_s must be positive.")
        if self.max_window_s is not None and self.max_window_s <= 0:
            raise ValueError("max_window_s must be positive.")
        if (
            self.min_window_s is not None
            and self.max_window_s is not None
            and self.max_window_s < self.min_window_s
        ):
            raise ValueError("max_window_s must be >= min_window_s.")
        if self.recency_half_life is not None and self.recency_half_life <= 0:
            raise ValueError("recency_half_life must be positive.")
        if self.combine_tolerance_bpm < 0:
            raise ValueError("combine_tolerance_bpm must be non-negative.")


class ScanSession:
    """
    Parameters
    ----------
    options : SessionOptions | None
    clock   : callable   Returns seconds on a monotonic clock; injectable for tests.
    """

    def __init__(
        self,
        options: SessionOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._options = options or SessionOptions()
        self._clock = clock
        self._started_at = clock()
        self._ended_at: float | None = None

        self._coordinator = ModalityCoordinator(
            self._options.modality,
            fallback_order=self._options.fallback_order,
            min_window_s=self._options.min_window_s,
            max_window_s=self._options.max_window_s,
            half_life=self._options.recency_half_life,
        )
        self._state = SessionState.ACQUIRING
        self._failure: Failure | None = None
        self._low_coverage_since_ms: float | None = None
        self._first_result_ms: float | None = None

        self._heart_rate: HeartRateEstimate | None = None
        self._oxygenation: OxygenationEstimate | None = None
        self._track_results: dict[Modality, HeartRateEstimate] = {}
        self._alerts: list[str] = []

        logger.info(
            "Session started (primary=%s, timeout=%.0f s, fallback=%s).",
            self._options.modality.value, self._options.timeout_s,
            "on" if self._options.allow_fallback else "off",
        )

    # ── Public API ───────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def options(self) -> SessionOptions:
        return self._options

    @property
    def elapsed_s(self) -> float:
        end = self._ended_at if self._ended_at is not None else self._clock()
        return max(0.0, end - self._started_at)

    def ingest(self, sample: Sample) -> IngestResult:
        """
        Feed one sample of any modality.  Samples of the primary modality
        drive contact tracking and the live BPM; others feed shadow tracks.
        """
        if not isinstance(sample, tuple(SAMPLE_TYPES.values())):
            raise TypeError(f"Unsupported sample type: {type(sample).__name__}")

        if self._state in TERMINAL_STATES or self._check_timeout():
            return self._ingest_result(quality=None)

        track = self._coordinator.track(sample.modality)
        last_ms = track.window.last_timestamp_ms
        if last_ms is not None and sample.timestamp_ms <= last_ms:
            logger.warning(
                "Dropped %s sample at %.1f ms (last accepted %.1f ms).",
                sample.modality.value, sample.timestamp_ms, last_ms,
            )
            quality = assess_sample(sample, track.window.coverage_ratio())
            quality.issues.append(OUT_OF_ORDER_ISSUE)
            return self._ingest_result(quality)

        coverage = track.add_sample(sample)
        quality = assess_sample(sample, coverage)
        now_ms = sample.timestamp_ms

        switched_to, preliminary = None, None
        if sample.modality == self._coordinator.primary:
            switched_to = self._track_contact(coverage, now_ms)
            if (
                switched_to is None
                and self._state is SessionState.ACQUIRING
                and track.live_due(now_ms)
            ):
                preliminary = self._live(track, now_ms)

        if track.analysis_due(now_ms):
            self._analyse(track, now_ms)
        self._maybe_complete(now_ms)

        return self._ingest_result(quality, preliminary, switched_to)

    def poll(self) -> SessionStatus:
        self._check_timeout()
        if self._state is SessionState.COMPLETED:
            progress = 100.0
        elif self._state is SessionState.IDLE:
            progress = 0.0
        else:
            progress = min(
                self.elapsed_s / self._options.timeout_s * 100.0, PROGRESS_CAP_PCT
            )

        if self._state in TERMINAL_STATES:
            track_results = dict(self._track_results)
        else:
            track_results = {
                m: r.heart_rate for m, r in self._coordinator.valid_results().items()
            }

        return SessionStatus(
            state=self._state,
            active_modality=None if self._state is SessionState.IDLE else self._coordinator.primary,
            progress_pct=round(progress, 1),
            elapsed_s=round(self.elapsed_s, 2),
            heart_rate=self._heart_rate,
            oxygenation=self._oxygenation,
            failure=self._failure,
            alerts=list(self._alerts),
            modality_history=list(self._coordinator.history),
            track_results=track_results,
        )

    def cancel(self) -> None:
        """Release every window and return to Idle.  Safe from any state."""
        self._coordinator.release()
        self._state = SessionState.IDLE
        self._ended_at = self._clock()
        self._failure = None
        self._heart_rate = None
        self._oxygenation = None
        self._track_results = {}
        self._alerts = []
        logger.info("Session cancelled after %.1f s.", self.elapsed_s)

    # ── Internals ────────────────────────────────────────────────────────────

    def _ingest_result(
        self,
        quality: QualityAssessment | None,
        preliminary: HeartRateEstimate | None = None,
        switched_to: Modality | None = None,
    ) -> IngestResult:
        return IngestResult(
            state=self._state,
            quality=quality,
            preliminary=preliminary,
            active_modality=None if self._state is SessionState.IDLE else self._coordinator.primary,
            switched_to=switched_to,
            failure=self._failure,
        )

    def _track_contact(self, coverage: float, now_ms: float) -> Modality | None:
        """
        Follow the primary's coverage.  Returns the new primary when a
        fallback switch happened on this sample.
        """
        if coverage >= COVERAGE_THRESHOLD:
            self._low_coverage_since_ms = None
            if self._state is SessionState.INSUFFICIENT_SIGNAL:
                logger.info("Contact recovered on %s.", self._coordinator.primary.value)
                self._state = SessionState.ACQUIRING
            return None

        if self._low_coverage_since_ms is None:
            self._low_coverage_since_ms = now_ms
            return None
        if now_ms - self._low_coverage_since_ms < INSUFFICIENT_SIGNAL_AFTER_S * 1000.0:
            return None

        if self._state is SessionState.ACQUIRING:
            self._state = SessionState.INSUFFICIENT_SIGNAL
            self._failure = InsufficientCoverage(
                f"{self._coordinator.primary.value} coverage below {COVERAGE_THRESHOLD:.2f} "
                f"for {INSUFFICIENT_SIGNAL_AFTER_S:.0f} s."
            ).to_failure()
            logger.warning("Insufficient signal: %s", self._failure.message)

        if not self._options.allow_fallback:
            return None
        switched_to = self._coordinator.switch_to_fallback()
        if switched_to is not None:
            self._low_coverage_since_ms = None
            self._state = SessionState.ACQUIRING
        return switched_to

    def _live(self, track: ModalityPipeline, now_ms: float) -> HeartRateEstimate | None:
        try:
            return track.live_estimate(now_ms)
        except EstimationError as e:
            logger.debug("No live estimate yet: %s", e)
            return None

    def _analyse(self, track: ModalityPipeline, now_ms: float) -> None:
        try:
            track.analyse(now_ms)
        except EstimationError as e:
            self._failure = e.to_failure()
            logger.warning("%s analysis rejected: %s", track.profile.modality.value, e)

    def _maybe_complete(self, now_ms: float) -> None:
        """
        Complete once any track holds a valid result, but give shadow tracks
        that are still being fed up to `COMBINE_GRACE_S` to catch up so
        concordant modalities can be combined.
        """
        valid = self._coordinator.valid_results()
        if not valid:
            return
        if self._first_result_ms is None:
            self._first_result_ms = now_ms

        pending = self._coordinator.pending_tracks(now_ms, SHADOW_ACTIVE_WITHIN_S * 1000.0)
        if pending and now_ms - self._first_result_ms < COMBINE_GRACE_S * 1000.0:
            return
        self._complete(valid)

    def _complete(self, valid: dict) -> None:
        self._track_results = {m: r.heart_rate for m, r in valid.items()}
        self._heart_rate = self._coordinator.merge(
            self._track_results, self._options.combine_tolerance_bpm
        )
        optical = valid.get(Modality.OPTICAL)
        self._oxygenation = optical.oxygenation if optical is not None else None
        self._alerts = vital_alerts(self._heart_rate, self._oxygenation)
        self._failure = None
        self._state = SessionState.COMPLETED
        self._ended_at = self._clock()
        self._coordinator.release()

        logger.info(
            "Session completed: %d BPM (%s, conf=%d%%)%s after %.1f s.",
            self._heart_rate.bpm, self._heart_rate.method, self._heart_rate.confidence_pct,
            f", SpO2 {self._oxygenation.percentage}%" if self._oxygenation else "",
            self.elapsed_s,
        )
        if self._alerts:
            logger.warning("Alerts: %s", ", ".join(self._alerts))

    def _check_timeout(self) -> bool:
        """True when the session is (now) in a terminal state because of the timeout."""
        if self._state in TERMINAL_STATES:
            return False
        if self.elapsed_s < self._options.timeout_s:
            return False

        valid = self._coordinator.valid_results()
        if valid:
            self._complete(valid)
            return True

        message = f"No valid result within {self._options.timeout_s:.0f} s"
        if self._failure is not None:
            message += f" (last: {self._failure.reason.value}: {self._failure.message})"
        self._failure = SessionTimeout(message).to_failure()
        self._state = SessionState.FAILED
        self._ended_at = self._clock()
        self._coordinator.release()
        logger.error("Session failed: %s", message)
        return True
