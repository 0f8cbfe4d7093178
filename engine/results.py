"""
engine/results.py — Result objects returned to the caller
==========================================================
Plain dataclasses; the API layer converts them to pydantic models.

⚠️  These are best-effort ESTIMATES, not readings from a certified
    medical device.  `confidence_pct` and `quality_tier` exist so the
    caller can show how much to trust each number.
"""

from dataclasses import dataclass, field
from enum import Enum

from acquisition.quality import QualityAssessment
from acquisition.samples import Modality
from engine.errors import Failure


class SessionState(str, Enum):
    IDLE = "Idle"
    ACQUIRING = "Acquiring"
    INSUFFICIENT_SIGNAL = "InsufficientSignal"
    COMPLETED = "Completed"
    FAILED = "Failed"


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.FAILED, SessionState.IDLE})


@dataclass(frozen=True)
class HeartRateEstimate:
    bpm: int
    confidence_pct: int
    irregularity_pct: int
    method: str                    # optical | acoustic | motion | combined
    quality_tier: str
    preliminary: bool = False
    hrv: dict | None = None


@dataclass(frozen=True)
class OxygenationEstimate:
    percentage: int
    confidence_pct: int
    ratio_of_ratios: float


@dataclass
class IngestResult:
    """What `ingest` hands back for every sample."""
    state: SessionState
    quality: QualityAssessment | None
    preliminary: HeartRateEstimate | None = None
    active_modality: Modality | None = None
    switched_to: Modality | None = None
    failure: Failure | None = None


@dataclass
class SessionStatus:
    """What `poll` hands back."""
    state: SessionState
    active_modality: Modality | None
    progress_pct: float
    elapsed_s: float
    heart_rate: HeartRateEstimate | None = None
    oxygenation: OxygenationEstimate | None = None
    failure: Failure | None = None
    alerts: list[str] = field(default_factory=list)
    modality_history: list[Modality] = field(default_factory=list)
    track_results: dict[Modality, HeartRateEstimate] = field(default_factory=dict)
