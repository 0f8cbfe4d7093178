"""
config.py — Centralised configuration & hyper-parameters
=========================================================
Every tunable constant in the engine lives here so that the rest of the
codebase can import from a single source of truth.  Per-modality values
are bundled into `ModalityProfile` objects by `acquisition/profiles.py`.

⚠️  Several values below (confidence weights, SpO₂ calibration breakpoints)
    are empirical placeholders, NOT a clinically validated calibration.
"""

import os

# ─── Logging ─────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.environ.get("VITALS_LOG_LEVEL", "INFO").upper()

# ─── Sampling ────────────────────────────────────────────────────────────────
# Nominal rates; the effective rate of a window is re-estimated from its
# timestamps so jittery producers are tolerated.
OPTICAL_SAMPLE_RATE_HZ: float = 30.0
ACOUSTIC_SAMPLE_RATE_HZ: float = 30.0
MOTION_SAMPLE_RATE_HZ: float = 30.0

# ─── Sample windows (seconds) ────────────────────────────────────────────────
OPTICAL_MAX_WINDOW_S: float = 15.0
OPTICAL_MIN_WINDOW_S: float = 10.0
ACOUSTIC_MAX_WINDOW_S: float = 15.0
ACOUSTIC_MIN_WINDOW_S: float = 10.0
MOTION_MAX_WINDOW_S: float = 20.0
MOTION_MIN_WINDOW_S: float = 12.0

# Coverage is judged over the most recent N samples
COVERAGE_RECENT_SAMPLES: int = 30

# ─── Contact / signal predicates ─────────────────────────────────────────────
# Optical: finger over lens + flash → bright, red-dominant frame
OPTICAL_BRIGHTNESS_MIN: float = 120.0
OPTICAL_BRIGHTNESS_MAX: float = 220.0
OPTICAL_RED_FLOOR: float = 100.0
OPTICAL_WEAK_PULSE_DELTA: float = 10.0     # |red − green| below this → weak pulse

# Acoustic: microphone pressed against the chest
ACOUSTIC_AMPLITUDE_MIN: float = 20.0
ACOUSTIC_AMPLITUDE_MAX: float = 250.0
ACOUSTIC_MAX_DOMINANT_HZ: float = 200.0

# Motion: phone resting on the chest; ~gravity with small ballistic wobble
MOTION_MAGNITUDE_MIN: float = 8.0
MOTION_MAGNITUDE_MAX: float = 12.0

# ─── Signal conditioning ─────────────────────────────────────────────────────
# Single-pole high-pass + low-pass ≈ band-pass over the cardiac band.
# 0.75 Hz  →  45 BPM   |   3.5 Hz  →  210 BPM
HIGHPASS_CUTOFF_HZ: float = 0.75
LOWPASS_CUTOFF_HZ: float = 3.5

# Cardiac band used by the spectral checks (Hz)
CARDIAC_BAND_LOW_HZ: float = 0.7
CARDIAC_BAND_HIGH_HZ: float = 4.0

# ─── Peak detection ──────────────────────────────────────────────────────────
PEAK_LOCAL_WINDOW_S: float = 0.4      # Half-width of the adaptive-threshold window
PEAK_THRESHOLD_K: float = 0.6         # threshold = local mean + k · local std
PEAK_NEIGHBOURHOOD: int = 3           # Strict max over ±3 samples
PEAK_STRENGTH_FRACTION: float = 0.1   # |x| must exceed this × local mean magnitude
OPTICAL_REFRACTORY_S: float = 0.6     # ≥ 18 samples at 30 Hz
ACOUSTIC_REFRACTORY_S: float = 0.6
MOTION_REFRACTORY_S: float = 0.5
# The refractory distance never exceeds this fraction of the dominant
# spectral period, so fast rhythms are not cut off at 60 / refractory BPM
REFRACTORY_PERIOD_FRACTION: float = 0.7

# ─── Interval validation ─────────────────────────────────────────────────────
INTERVAL_TOLERANCE: float = 0.3       # Keep intervals within ±30 % of the median
MIN_RAW_INTERVALS: int = 3
MIN_CLEAN_INTERVALS: int = 3
LIVE_MIN_CLEAN_INTERVALS: int = 2

# ─── Rate estimation ─────────────────────────────────────────────────────────
BPM_MIN: int = 35
BPM_MAX: int = 220

# Confidence weights, summing to 1.0
CONFIDENCE_WEIGHT_SNR: float = 0.3
CONFIDENCE_WEIGHT_STABILITY: float = 0.3
CONFIDENCE_WEIGHT_COVERAGE: float = 0.2
CONFIDENCE_WEIGHT_PROMINENCE: float = 0.2

# Below this many clean intervals the confidence is scaled down linearly
FULL_EVIDENCE_INTERVALS: int = 8

# Normalised autocorrelation at the beat lag must reach this value
MIN_PERIODICITY: float = 0.5

# Periodicity at the beat lag must exceed that at half the lag by this much
MIN_BEAT_CONTRAST: float = 0.4

# Half-width (Hz) of the spectral window around the beat frequency / harmonic
SPECTRAL_PEAK_HALF_WIDTH_HZ: float = 0.15

# None → equal weighting of clean intervals; otherwise half-life in intervals
RECENCY_HALF_LIFE: float | None = None

# ─── HRV ─────────────────────────────────────────────────────────────────────
HRV_MIN_INTERVALS: int = 5

# ─── SpO₂ estimation ─────────────────────────────────────────────────────────
# Placeholder calibration: continuous extension of the empirical
# 110 − 25·R  (R < 1)  and  105 − 20·R  (1 ≤ R < 2)  segments, flat outside.
SPO2_CALIBRATION_R: tuple[float, ...] = (0.4, 1.0, 2.0)
SPO2_CALIBRATION_PCT: tuple[float, ...] = (100.0, 85.0, 65.0)
SPO2_MIN_PCT: float = 70.0
SPO2_MAX_PCT: float = 100.0
SPO2_MIN_PERFUSION_INDEX: float = 0.1    # AC/DC × 100, per channel
SPO2_SEGMENT_S: float = 3.0              # Sub-window for R-value stability
SPO2_RED_CHANNEL: str = "red"
SPO2_IR_CHANNEL: str = "blue"            # Camera has no IR → blue as proxy

# ─── Real-time smoothing ─────────────────────────────────────────────────────
LIVE_WINDOW_S: float = 3.0
LIVE_UPDATE_INTERVAL_S: float = 1.0
KALMAN_PROCESS_NOISE: float = 0.1
KALMAN_MEASUREMENT_NOISE: float = 4.0

# ─── Coordinator ─────────────────────────────────────────────────────────────
SESSION_TIMEOUT_S: float = 20.0
ANALYSIS_INTERVAL_S: float = 1.0          # Full analysis cadence per track
COVERAGE_THRESHOLD: float = 0.5           # Below → poor contact
MIN_ANALYSIS_COVERAGE: float = 0.7        # Required to attempt a full analysis
INSUFFICIENT_SIGNAL_AFTER_S: float = 5.0  # Sustained poor contact → InsufficientSignal
COMBINE_TOLERANCE_BPM: int = 8
COMBINE_GRACE_S: float = 2.0              # Wait this long for a shadow track to finish
SHADOW_ACTIVE_WITHIN_S: float = 1.0       # A shadow track counts as live if fed this recently
DEFAULT_FALLBACK_ORDER: tuple[str, ...] = ("optical", "acoustic", "motion")
PROGRESS_CAP_PCT: float = 95.0

# ─── Alerts (informational, not diagnostic) ──────────────────────────────────
ALERT_TACHYCARDIA_BPM: int = 150
ALERT_BRADYCARDIA_BPM: int = 40
ALERT_LOW_SPO2_PCT: int = 90

# ─── Quality tiers ───────────────────────────────────────────────────────────
TIER_EXCELLENT: int = 85
TIER_GOOD: int = 70
TIER_FAIR: int = 50

# ─── API ─────────────────────────────────────────────────────────────────────
API_TITLE = "Vital-Signs Estimation Engine API"
API_VERSION = "0.1.0"

# Comma-separated; "*" keeps the API open for local demos
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.environ.get("VITALS_CORS_ORIGINS", "*").split(",") if o.strip()
]
