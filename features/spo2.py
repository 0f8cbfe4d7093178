"""
features/spo2.py — Blood-oxygen estimate from two colour channels
==================================================================
Ratio-of-ratios method:

    R = (AC_red / DC_red) / (AC_ir / DC_ir)

    AC  standard deviation of the band-passed channel (pulsatile part)
    DC  mean of the raw channel (non-pulsatile baseline)

A phone camera has no infrared LED, so the blue channel stands in as
the IR proxy (`config.SPO2_IR_CHANNEL`).

Calibration curve
-----------------
Monotonic piecewise-linear in R (`config.SPO2_CALIBRATION_*`):

    R ≤ 0.4        → 100 %
    0.4 … 1.0      → 110 − 25·R
    1.0 … 2.0      → 105 − 20·R
    R ≥ 2.0        → lower plateau (65 %, i.e. the 70 % clamp)

and the result is clamped to [70, 100].

⚠️  This curve is a PLACEHOLDER.  It is not derived from a clinical
    calibration study and must be validated against reference oximetry
    before any use beyond demonstration.
"""

import numpy as np

from config import (
    SPO2_CALIBRATION_PCT,
    SPO2_CALIBRATION_R,
    SPO2_MAX_PCT,
    SPO2_MIN_PCT,
    SPO2_MIN_PERFUSION_INDEX,
    SPO2_SEGMENT_S,
)
from dsp.filters import condition_signal
from engine.errors import NoPeaksDetected, OutOfPhysiologicalRange
from engine.results import OxygenationEstimate
from utils.logger import get_logger

logger = get_logger("features.spo2")

_EPS = 1e-9


def calibrate_spo2(ratio: float) -> float:
    """Map a ratio-of-ratios to SpO₂ %, always within [70, 100]."""
    pct = float(np.interp(ratio, SPO2_CALIBRATION_R, SPO2_CALIBRATION_PCT))
    return float(np.clip(pct, SPO2_MIN_PCT, SPO2_MAX_PCT))


def _ratio(red_ac: float, red_dc: float, ir_ac: float, ir_dc: float) -> float | None:
    if min(abs(red_dc), abs(ir_dc), red_ac, ir_ac) <= _EPS:
        return None
    return (red_ac / red_dc) / (ir_ac / ir_dc)


def _segment_stability(
    red: np.ndarray,
    red_ac_wave: np.ndarray,
    ir: np.ndarray,
    ir_ac_wave: np.ndarray,
    fs: float,
) -> float:
    """
    1 − CV of R computed over consecutive ~3 s segments.  A steady
    oxygenation gives the same R segment after segment.
    """
    seg = max(4, int(round(SPO2_SEGMENT_S * fs)))
    ratios = []
    for start in range(0, red.size - seg + 1, seg):
        stop = start + seg
        r = _ratio(
            red_ac_wave[start:stop].std(), red[start:stop].mean(),
            ir_ac_wave[start:stop].std(), ir[start:stop].mean(),
        )
        if r is not None:
            ratios.append(r)
    if len(ratios) < 2:
        return 0.0
    ratios = np.array(ratios)
    return float(np.clip(1.0 - ratios.std() / ratios.mean(), 0.0, 1.0))


def estimate_spo2(
    red: np.ndarray,
    ir: np.ndarray,
    fs: float,
    coverage: float,
) -> OxygenationEstimate:
    """
    Parameters
    ----------
    red, ir  : ndarray, shape (N,)   Raw red-proxy and IR-proxy channels.
    fs       : float                 Effective sample rate (Hz).
    coverage : float                 Contact coverage ratio in [0, 1].

    Raises
    ------
    NoPeaksDetected          No usable pulsatile component in either channel.
    OutOfPhysiologicalRange  The ratio-of-ratios is not a finite number.
    """
    red = np.asarray(red, dtype=np.float64)
    ir = np.asarray(ir, dtype=np.float64)
    if red.size != ir.size or red.size < 2:
        raise ValueError(f"Channel lengths differ or are too short: {red.size} vs {ir.size}.")

    red_wave = condition_signal(red, fs)
    ir_wave = condition_signal(ir, fs)
    red_ac, red_dc = float(red_wave.std()), float(red.mean())
    ir_ac, ir_dc = float(ir_wave.std()), float(ir.mean())

    ratio = _ratio(red_ac, red_dc, ir_ac, ir_dc)
    if ratio is None:
        raise NoPeaksDetected("No usable pulsatile component for SpO2 (AC or DC ~ 0).")

    red_pi = red_ac / abs(red_dc) * 100.0
    ir_pi = ir_ac / abs(ir_dc) * 100.0
    if red_pi < SPO2_MIN_PERFUSION_INDEX or ir_pi < SPO2_MIN_PERFUSION_INDEX:
        raise NoPeaksDetected(
            f"Insufficient perfusion for SpO2 (red PI={red_pi:.3f}%, IR PI={ir_pi:.3f}%)."
        )
    if not np.isfinite(ratio):
        raise OutOfPhysiologicalRange(f"Ratio-of-ratios is not finite ({ratio}).")

    percentage = calibrate_spo2(ratio)

    perfusion_quality = min(red_pi + ir_pi, 10.0) / 10.0
    stability = _segment_stability(red, red_wave, ir, ir_wave, fs)
    confidence = 50.0 * float(np.clip(coverage, 0.0, 1.0)) + 30.0 * perfusion_quality + 20.0 * stability

    logger.debug(
        "SpO2 %.1f%%  R=%.3f  PI red=%.2f%% ir=%.2f%%  stability=%.2f",
        percentage, ratio, red_pi, ir_pi, stability,
    )
    return OxygenationEstimate(
        percentage=int(round(percentage)),
        confidence_pct=int(round(np.clip(confidence, 0.0, 100.0))),
        ratio_of_ratios=round(float(ratio), 4),
    )
