"""
features/intervals.py — Inter-beat interval validation
=======================================================
Beat indices → intervals (in samples) → outlier rejection against the
median → rhythm-irregularity score.

A missed beat produces one interval about twice the median; an ectopic
or noise-induced extra beat produces two short ones.  Both fall outside
±30 % of the median and are dropped; the remaining *clean* intervals feed
the rate and HRV estimates.

Irregularity = std / mean of the clean intervals.  It reports how
variable the rhythm was during the scan; it is NOT an arrhythmia
diagnosis.
"""

from dataclasses import dataclass

import numpy as np

from config import INTERVAL_TOLERANCE, MIN_CLEAN_INTERVALS, MIN_RAW_INTERVALS
from engine.errors import NoPeaksDetected, TooFewCleanIntervals


@dataclass(frozen=True)
class IntervalReport:
    intervals: np.ndarray      # All consecutive peak distances (samples)
    clean: np.ndarray          # Those within tolerance of the median
    median: float
    irregularity: float        # std / mean of `clean`, as a fraction

    @property
    def irregularity_pct(self) -> int:
        return int(round(min(self.irregularity, 1.0) * 100))

    @property
    def rejected(self) -> int:
        return int(self.intervals.size - self.clean.size)


def validate_intervals(
    peaks: np.ndarray,
    tolerance: float = INTERVAL_TOLERANCE,
    min_raw: int = MIN_RAW_INTERVALS,
    min_clean: int = MIN_CLEAN_INTERVALS,
) -> IntervalReport:
    """
    Parameters
    ----------
    peaks     : ndarray of int   Ascending beat indices from `detect_peaks`.
    tolerance : float            Keep |interval − median| < tolerance · median.
    min_raw   : int              Raw intervals needed before judging.
    min_clean : int              Clean intervals needed to proceed.

    Raises
    ------
    NoPeaksDetected        Fewer than two beats (no interval at all).
    TooFewCleanIntervals   Not enough intervals survive validation.
    """
    peaks = np.asarray(peaks)
    if peaks.size < 2:
        raise NoPeaksDetected(f"Found {peaks.size} beat(s); need at least 2.")

    intervals = np.diff(peaks).astype(np.float64)
    if intervals.size < min_raw:
        raise TooFewCleanIntervals(
            f"Only {intervals.size} interval(s) from {peaks.size} beats; need {min_raw}."
        )

    median = float(np.median(intervals))
    clean = intervals[np.abs(intervals - median) < tolerance * median]
    if clean.size < min_clean:
        raise TooFewCleanIntervals(
            f"{clean.size} of {intervals.size} intervals within "
            f"{tolerance:.0%} of the median; need {min_clean}."
        )

    mean = clean.mean()
    irregularity = float(clean.std() / mean) if mean > 0 else 1.0
    return IntervalReport(
        intervals=intervals,
        clean=clean,
        median=median,
        irregularity=irregularity,
    )
