"""
features/hrv.py — Beat-to-beat variability summary
=====================================================
Only intervals that passed `features.intervals` validation are used:

    sdnn_ms   spread of the interval series (sample std)
    rmssd_ms  RMS of consecutive interval changes
    pnn50     share of consecutive changes above 50 ms, in %

⚠️  A 10–20 s scan holds roughly 10–30 beats, far short of the clinical
    5-minute standard.  Treat these as trend indicators only.
"""

import numpy as np

from config import HRV_MIN_INTERVALS
from utils.logger import get_logger

logger = get_logger("features.hrv")


def compute_hrv(clean_intervals: np.ndarray, fs: float) -> dict | None:
    """
    Parameters
    ----------
    clean_intervals : ndarray   Validated inter-beat intervals in **samples**.
    fs              : float     Sample rate used to convert them to time.

    Returns
    -------
    dict with keys sdnn_ms, rmssd_ms, pnn50, mean_rr_ms, num_intervals —
    or None when fewer than HRV_MIN_INTERVALS intervals are available.
    """
    num = len(clean_intervals)
    if num < HRV_MIN_INTERVALS:
        logger.debug("Only %d clean intervals (need %d for HRV).", num, HRV_MIN_INTERVALS)
        return None

    rr_ms = np.asarray(clean_intervals, dtype=np.float64) / fs * 1000.0

    successive = np.diff(rr_ms)
    sdnn_ms = float(np.std(rr_ms, ddof=1))
    rmssd_ms = float(np.sqrt(np.mean(successive ** 2)))
    pnn50 = float(np.mean(np.abs(successive) > 50.0) * 100.0)

    return {
        "sdnn_ms": round(sdnn_ms, 2),
        "rmssd_ms": round(rmssd_ms, 2),
        "pnn50": round(pnn50, 2),
        "mean_rr_ms": round(float(rr_ms.mean()), 2),
        "num_intervals": num,
    }
