"""
acquisition/buffer.py — Sliding sample window for one modality
================================================================
Append-only ring buffer of timestamped samples bounded by a maximum
retained *duration* (not a fixed count), so producers with jittery
cadence keep roughly the same time span.  Oldest samples are evicted on
overflow.

A window is owned by exactly one scan session and is never shared.
"""

import math
from collections import deque
from itertools import islice

import numpy as np

from acquisition.profiles import ModalityProfile
from acquisition.samples import SAMPLE_TYPES, Sample
from config import COVERAGE_RECENT_SAMPLES

# Float slack when comparing accumulated durations against a limit
_EPS_S = 1e-6


class SampleWindow:
    """
    Bounded sliding window of samples for a single modality.

    Parameters
    ----------
    profile : ModalityProfile   Supplies the sample type, durations and the
                                contact predicate used by `coverage_ratio`.
    """

    def __init__(self, profile: ModalityProfile):
        self._profile = profile
        self._sample_type = SAMPLE_TYPES[profile.modality]
        # Hard count bound as a backstop against a runaway producer rate
        hard_cap = math.ceil(profile.max_window_s * profile.sample_rate_hz * 4) + 1
        self._samples: deque[Sample] = deque(maxlen=hard_cap)

    # ── Mutation ─────────────────────────────────────────────────────────────

    def push(self, sample: Sample) -> None:
        """
        Append a sample, evicting the oldest ones once the retained duration
        exceeds `profile.max_window_s`.

        Raises
        ------
        TypeError   If the sample belongs to a different modality.
        ValueError  If the timestamp does not strictly increase.
        """
        if not isinstance(sample, self._sample_type):
            raise TypeError(
                f"{type(sample).__name__} cannot be pushed into a "
                f"{self._profile.modality.value} window."
            )
        if self._samples and sample.timestamp_ms <= self._samples[-1].timestamp_ms:
            raise ValueError(
                f"Timestamps must strictly increase: {sample.timestamp_ms} "
                f"<= {self._samples[-1].timestamp_ms}."
            )

        self._samples.append(sample)
        while len(self._samples) > 2 and self.duration_s > self._profile.max_window_s + _EPS_S:
            self._samples.popleft()

    def clear(self) -> None:
        self._samples.clear()

    # ── Introspection ────────────────────────────────────────────────────────

    @property
    def profile(self) -> ModalityProfile:
        return self._profile

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def last_timestamp_ms(self) -> float | None:
        return self._samples[-1].timestamp_ms if self._samples else None

    @property
    def duration_s(self) -> float:
        """
        Time covered by the window, counting the last sample's own period
        (n samples at rate fs cover n / fs seconds, not (n − 1) / fs).
        """
        n = len(self._samples)
        if n < 2:
            return 0.0
        span_s = (self._samples[-1].timestamp_ms - self._samples[0].timestamp_ms) / 1000.0
        return span_s * n / (n - 1)

    @property
    def effective_rate_hz(self) -> float:
        """Sample rate estimated from timestamps; nominal rate when undetermined."""
        n = len(self._samples)
        if n < 2:
            return self._profile.sample_rate_hz
        span_s = (self._samples[-1].timestamp_ms - self._samples[0].timestamp_ms) / 1000.0
        return (n - 1) / span_s

    def is_ready(self) -> bool:
        """True once the window spans at least `profile.min_window_s`."""
        return self.duration_s + _EPS_S >= self._profile.min_window_s

    def samples(self, last_s: float | None = None) -> list[Sample]:
        """All retained samples, or only those within the trailing `last_s` seconds."""
        if last_s is None or not self._samples:
            return list(self._samples)
        cutoff = self._samples[-1].timestamp_ms - last_s * 1000.0
        return [s for s in self._samples if s.timestamp_ms > cutoff]

    def channel(self, name: str, last_s: float | None = None) -> np.ndarray:
        """One channel as a float64 array, e.g. ``window.channel("red")``."""
        return np.array([s.channel(name) for s in self.samples(last_s)], dtype=np.float64)

    def coverage_ratio(self, recent: int = COVERAGE_RECENT_SAMPLES) -> float:
        """
        Fraction of the most recent `recent` samples passing the modality's
        contact predicate.  Uses whatever is available when fewer samples
        are held; an empty window has zero coverage.
        """
        if not self._samples:
            return 0.0
        count = min(recent, len(self._samples))
        tail = islice(reversed(self._samples), count)
        good = sum(1 for s in tail if self._profile.contact(s))
        return good / count
