"""
acquisition/profiles.py — Per-modality parameter objects
=========================================================
The signal chain is identical for every modality; what differs is which
channel carries the pulse, the nominal sample rate, how long a window
is kept, how far apart two beats must be, and what counts as "good
contact".  Those differences are captured here as data.
"""

from dataclasses import dataclass, replace
from typing import Callable

from acquisition.quality import acoustic_contact, motion_contact, optical_contact
from acquisition.samples import Modality, Sample
from config import (
    ACOUSTIC_MAX_WINDOW_S,
    ACOUSTIC_MIN_WINDOW_S,
    ACOUSTIC_REFRACTORY_S,
    ACOUSTIC_SAMPLE_RATE_HZ,
    MOTION_MAX_WINDOW_S,
    MOTION_MIN_WINDOW_S,
    MOTION_REFRACTORY_S,
    MOTION_SAMPLE_RATE_HZ,
    OPTICAL_MAX_WINDOW_S,
    OPTICAL_MIN_WINDOW_S,
    OPTICAL_REFRACTORY_S,
    OPTICAL_SAMPLE_RATE_HZ,
)


@dataclass(frozen=True)
class ModalityProfile:
    """
    Parameters
    ----------
    modality       : Modality
    sample_rate_hz : float    Nominal rate; used when timestamps cannot tell.
    hr_channel     : str      Sample attribute that carries the pulse.
    max_window_s   : float    Retained duration; older samples are evicted.
    min_window_s   : float    Duration required before a full analysis.
    refractory_s   : float    Minimum spacing between accepted peaks.
    contact        : callable Per-sample "usable signal" predicate.
    supports_spo2  : bool     Only the optical modality has two colour channels.
    """
    modality: Modality
    sample_rate_hz: float
    hr_channel: str
    max_window_s: float
    min_window_s: float
    refractory_s: float
    contact: Callable[[Sample], bool]
    supports_spo2: bool = False

    def with_windows(
        self,
        min_window_s: float | None = None,
        max_window_s: float | None = None,
    ) -> "ModalityProfile":
        """
        Copy with per-session window overrides applied.  A one-sided
        override drags the other bound of this profile along when needed.
        """
        min_s = self.min_window_s if min_window_s is None else min_window_s
        max_s = self.max_window_s if max_window_s is None else max_window_s
        if max_window_s is None:
            max_s = max(max_s, min_s)
        elif min_window_s is None:
            min_s = min(min_s, max_s)
        if max_s < min_s:
            raise ValueError(
                f"max_window_s ({max_s}) must be >= min_window_s ({min_s})."
            )
        return replace(self, min_window_s=min_s, max_window_s=max_s)


PROFILES: dict[Modality, ModalityProfile] = {
    Modality.OPTICAL: ModalityProfile(
        modality=Modality.OPTICAL,
        sample_rate_hz=OPTICAL_SAMPLE_RATE_HZ,
        hr_channel="red",
        max_window_s=OPTICAL_MAX_WINDOW_S,
        min_window_s=OPTICAL_MIN_WINDOW_S,
        refractory_s=OPTICAL_REFRACTORY_S,
        contact=optical_contact,
        supports_spo2=True,
    ),
    Modality.ACOUSTIC: ModalityProfile(
        modality=Modality.ACOUSTIC,
        sample_rate_hz=ACOUSTIC_SAMPLE_RATE_HZ,
        hr_channel="amplitude",
        max_window_s=ACOUSTIC_MAX_WINDOW_S,
        min_window_s=ACOUSTIC_MIN_WINDOW_S,
        refractory_s=ACOUSTIC_REFRACTORY_S,
        contact=acoustic_contact,
    ),
    Modality.MOTION: ModalityProfile(
        modality=Modality.MOTION,
        sample_rate_hz=MOTION_SAMPLE_RATE_HZ,
        hr_channel="magnitude",
        max_window_s=MOTION_MAX_WINDOW_S,
        min_window_s=MOTION_MIN_WINDOW_S,
        refractory_s=MOTION_REFRACTORY_S,
        contact=motion_contact,
    ),
}
