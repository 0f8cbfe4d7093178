"""
engine/coordinator.py — Modality selection, fallback & result merging
======================================================================
A scan can draw on more than one modality:

* the **primary** modality (optical by default) drives the session state
  and the live preliminary BPM;
* any other modality the caller feeds runs as an independent **shadow**
  track (its own window, smoother and results; nothing shared);
* when the primary's contact stays poor, the coordinator can **fall back**
  to the next modality in `fallback_order`, starting it from an empty
  window.

When a scan finishes, `merge` folds the per-track results into one
estimate: concordant rates (within `tolerance_bpm`) are reported as
``method="combined"``, otherwise the most confident single result wins.
"""

from typing import Sequence

import numpy as np

from acquisition.profiles import PROFILES
from acquisition.quality import tier_for
from acquisition.samples import Modality
from config import COMBINE_TOLERANCE_BPM
from engine.pipeline import ModalityPipeline
from engine.results import HeartRateEstimate
from utils.logger import get_logger

logger = get_logger("engine.coordinator")


class ModalityCoordinator:
    """
    Owns every per-modality `ModalityPipeline` of one scan session.

    Parameters
    ----------
    primary        : Modality             Modality the scan starts with.
    fallback_order : sequence of Modality Preference order for fallback.
    min_window_s   : float | None         Per-session override of the analysis window.
    max_window_s   : float | None         Per-session override of the retained window.
    half_life      : float | None         Recency weighting passed to each track.
    """

    def __init__(
        self,
        primary: Modality,
        fallback_order: Sequence[Modality] = tuple(Modality),
        min_window_s: float | None = None,
        max_window_s: float | None = None,
        half_life: float | None = None,
    ):
        self._fallback_order = [Modality(m) for m in fallback_order]
        self._min_window_s = min_window_s
        self._max_window_s = max_window_s
        self._half_life = half_life
        self._tracks: dict[Modality, ModalityPipeline] = {}
        self._primary = Modality(primary)
        self.history: list[Modality] = [self._primary]
        self.track(self._primary)

    # ── Tracks ───────────────────────────────────────────────────────────────

    @property
    def primary(self) -> Modality:
        return self._primary

    @property
    def tracks(self) -> dict[Modality, ModalityPipeline]:
        return self._tracks

    def track(self, modality: Modality) -> ModalityPipeline:
        """Return the track for `modality`, creating an empty one on first use."""
        modality = Modality(modality)
        if modality not in self._tracks:
            profile = PROFILES[modality].with_windows(self._min_window_s, self._max_window_s)
            self._tracks[modality] = ModalityPipeline(profile, half_life=self._half_life)
            if modality != self._primary:
                logger.info("Shadow track started for %s.", modality.value)
        return self._tracks[modality]

    def next_fallback(self) -> Modality | None:
        """First modality in the fallback order not yet used as primary."""
        for modality in self._fallback_order:
            if modality not in self.history:
                return modality
        return None

    def switch_to_fallback(self) -> Modality | None:
        """
        Make the next fallback modality primary with a fresh window.
        Returns the new primary, or None when every option is exhausted.
        """
        nxt = self.next_fallback()
        if nxt is None:
            return None
        previous, self._primary = self._primary, nxt
        self.history.append(nxt)
        self.track(nxt).reset()
        logger.info("Falling back from %s to %s.", previous.value, nxt.value)
        return nxt

    def valid_results(self) -> dict:
        return {m: t.latest for m, t in self._tracks.items() if t.latest is not None}

    def pending_tracks(self, now_ms: float, active_within_ms: float) -> list[Modality]:
        """
        Tracks without a valid result that are still receiving samples, so
        a result from them may yet arrive.
        """
        pending = []
        for modality, t in self._tracks.items():
            last = t.window.last_timestamp_ms
            if t.latest is not None or last is None:
                continue
            if now_ms - last <= active_within_ms:
                pending.append(modality)
        return pending

    def release(self) -> None:
        """Drop every window and derived state."""
        for t in self._tracks.values():
            t.reset()
        self._tracks.clear()

    # ── Merging ──────────────────────────────────────────────────────────────

    def merge(
        self,
        estimates: dict[Modality, HeartRateEstimate],
        tolerance_bpm: int = COMBINE_TOLERANCE_BPM,
    ) -> HeartRateEstimate:
        """
        Fold per-track estimates into one.  Ties in confidence are broken by
        the fallback order so the outcome is deterministic.
        """
        if not estimates:
            raise ValueError("merge() needs at least one estimate.")

        order = {m: i for i, m in enumerate(self._fallback_order)}
        ranked = sorted(
            estimates.items(),
            key=lambda item: (-item[1].confidence_pct, order.get(item[0], len(order))),
        )
        best = ranked[0][1]
        concordant = [e for _, e in ranked if abs(e.bpm - best.bpm) <= tolerance_bpm]
        if len(concordant) < 2:
            return best

        weights = np.array([e.confidence_pct for e in concordant], dtype=np.float64)
        if weights.sum() <= 0:
            weights = np.ones_like(weights)
        bpm = int(round(np.average([e.bpm for e in concordant], weights=weights)))
        confidence = max(e.confidence_pct for e in concordant)

        logger.info(
            "Combined %s → %d BPM (conf=%d%%)",
            ", ".join(f"{e.method}={e.bpm}" for e in concordant), bpm, confidence,
        )
        return HeartRateEstimate(
            bpm=bpm,
            confidence_pct=confidence,
            irregularity_pct=best.irregularity_pct,
            method="combined",
            quality_tier=tier_for(confidence),
            hrv=best.hrv,
        )
