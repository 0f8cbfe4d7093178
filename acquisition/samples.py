"""
acquisition/samples.py — Timestamped sensor samples
====================================================
One dataclass per modality.  Hardware acquisition is outside the engine;
the caller hands in already-reduced observations:

    optical   mean R, G, B and brightness of the fingertip ROI
    acoustic  low-frequency amplitude + dominant frequency of the mic frame
    motion    accelerometer magnitude (gravity included)

Timestamps are milliseconds on any monotonic clock.
"""

from dataclasses import dataclass
from enum import Enum


class Modality(str, Enum):
    OPTICAL = "optical"
    ACOUSTIC = "acoustic"
    MOTION = "motion"


@dataclass(frozen=True)
class OpticalSample:
    red_mean: float
    green_mean: float
    blue_mean: float
    brightness_mean: float
    timestamp_ms: float

    modality = Modality.OPTICAL

    def channel(self, name: str) -> float:
        """Look up a colour channel by short name ('red', 'green', 'blue', 'brightness')."""
        return getattr(self, f"{name}_mean")


@dataclass(frozen=True)
class AcousticSample:
    amplitude: float
    dominant_frequency_hz: float
    timestamp_ms: float

    modality = Modality.ACOUSTIC

    def channel(self, name: str) -> float:
        return getattr(self, name)


@dataclass(frozen=True)
class MotionSample:
    magnitude: float
    timestamp_ms: float

    modality = Modality.MOTION

    def channel(self, name: str) -> float:
        return getattr(self, name)


Sample = OpticalSample | AcousticSample | MotionSample

SAMPLE_TYPES: dict[Modality, type] = {
    Modality.OPTICAL: OpticalSample,
    Modality.ACOUSTIC: AcousticSample,
    Modality.MOTION: MotionSample,
}


def sample_from_dict(modality: Modality, payload: dict) -> Sample:
    """Build the modality's sample type from a plain mapping (API / CSV rows)."""
    return SAMPLE_TYPES[Modality(modality)](**payload)
