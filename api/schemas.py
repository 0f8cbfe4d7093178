"""
api/schemas.py — Pydantic request & response models
=====================================================
Data-transfer objects for the HTTP wrapper around `SessionRegistry`.
FastAPI validates requests against them and renders them in the
OpenAPI docs.  Engine dataclasses are converted by the `from_*`
helpers so the engine itself has no pydantic dependency.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from acquisition.quality import QualityAssessment
from acquisition.samples import AcousticSample, Modality, MotionSample, OpticalSample
from config import (
    COMBINE_TOLERANCE_BPM,
    DEFAULT_FALLBACK_ORDER,
    RECENCY_HALF_LIFE,
    SESSION_TIMEOUT_S,
)
from engine.errors import Failure
from engine.results import HeartRateEstimate, OxygenationEstimate
from engine.session import SessionOptions


# ── Request Models ───────────────────────────────────────────────────────────


class SessionRequest(BaseModel):
    """Options for POST /sessions; every field is optional."""
    modality: Modality = Modality.OPTICAL
    min_window_s: Optional[float] = Field(None, gt=0, le=120)
    max_window_s: Optional[float] = Field(None, gt=0, le=120)
    timeout_s: float = Field(SESSION_TIMEOUT_S, gt=0, le=600)
    allow_fallback: bool = True
    fallback_order: list[Modality] = Field(default_factory=lambda: list(DEFAULT_FALLBACK_ORDER))
    recency_half_life: Optional[float] = Field(RECENCY_HALF_LIFE, gt=0)
    combine_tolerance_bpm: int = Field(COMBINE_TOLERANCE_BPM, ge=0, le=50)

    @model_validator(mode="after")
    def _windows_ordered(self):
        if (
            self.min_window_s is not None
            and self.max_window_s is not None
            and self.max_window_s < self.min_window_s
        ):
            raise ValueError("max_window_s must be >= min_window_s.")
        return self

    def to_options(self) -> SessionOptions:
        return SessionOptions(
            modality=self.modality,
            min_window_s=self.min_window_s,
            max_window_s=self.max_window_s,
            timeout_s=self.timeout_s,
            allow_fallback=self.allow_fallback,
            fallback_order=tuple(self.fallback_order),
            recency_half_life=self.recency_half_life,
            combine_tolerance_bpm=self.combine_tolerance_bpm,
        )


class OpticalSampleIn(BaseModel):
    red_mean: float = Field(..., ge=0, le=255)
    green_mean: float = Field(..., ge=0, le=255)
    blue_mean: float = Field(..., ge=0, le=255)
    brightness_mean: float = Field(..., ge=0, le=255)
    timestamp_ms: float


class AcousticSampleIn(BaseModel):
    amplitude: float = Field(..., ge=0)
    dominant_frequency_hz: float = Field(..., ge=0)
    timestamp_ms: float


class MotionSampleIn(BaseModel):
    magnitude: float = Field(..., ge=0)
    timestamp_ms: float


class SampleBatch(BaseModel):
    """
    Samples for POST /sessions/{handle}/samples.  Lists of different
    modalities may be sent together; they are ingested in timestamp order.
    """
    optical: list[OpticalSampleIn] = Field(default_factory=list)
    acoustic: list[AcousticSampleIn] = Field(default_factory=list)
    motion: list[MotionSampleIn] = Field(default_factory=list)

    def to_samples(self) -> list:
        samples = (
            [OpticalSample(**s.model_dump()) for s in self.optical]
            + [AcousticSample(**s.model_dump()) for s in self.acoustic]
            + [MotionSample(**s.model_dump()) for s in self.motion]
        )
        return sorted(samples, key=lambda s: s.timestamp_ms)


# ── Response Models ──────────────────────────────────────────────────────────


class QualityData(BaseModel):
    score: int
    quality_tier: str
    issues: list[str]

    @classmethod
    def from_assessment(cls, q: QualityAssessment | None) -> Optional["QualityData"]:
        if q is None:
            return None
        return cls(score=q.score, quality_tier=q.quality_tier, issues=list(q.issues))


class HRVData(BaseModel):
    sdnn_ms: Optional[float] = None
    rmssd_ms: Optional[float] = None
    pnn50: Optional[float] = None
    mean_rr_ms: Optional[float] = None
    num_intervals: int


class HeartRateData(BaseModel):
    bpm: int
    confidence_pct: int
    irregularity_pct: int
    method: str
    quality_tier: str
    preliminary: bool = False
    hrv: Optional[HRVData] = None

    @classmethod
    def from_estimate(cls, e: HeartRateEstimate | None) -> Optional["HeartRateData"]:
        if e is None:
            return None
        return cls(
            bpm=e.bpm,
            confidence_pct=e.confidence_pct,
            irregularity_pct=e.irregularity_pct,
            method=e.method,
            quality_tier=e.quality_tier,
            preliminary=e.preliminary,
            hrv=HRVData(**e.hrv) if e.hrv else None,
        )


class OxygenationData(BaseModel):
    percentage: int
    confidence_pct: int
    ratio_of_ratios: float

    @classmethod
    def from_estimate(cls, e: OxygenationEstimate | None) -> Optional["OxygenationData"]:
        if e is None:
            return None
        return cls(
            percentage=e.percentage,
            confidence_pct=e.confidence_pct,
            ratio_of_ratios=e.ratio_of_ratios,
        )


class FailureData(BaseModel):
    reason: str
    message: str

    @classmethod
    def from_failure(cls, f: Failure | None) -> Optional["FailureData"]:
        if f is None:
            return None
        return cls(reason=f.reason.value, message=f.message)


class SessionCreated(BaseModel):
    disclaimer: str
    handle: str
    state: str
    active_modality: str


class IngestResponse(BaseModel):
    """Summary of one batch: state after the last sample plus its quality."""
    disclaimer: str
    accepted: int
    ignored: int = 0                     # Arrived after the scan had ended
    state: str
    active_modality: Optional[str] = None
    quality: Optional[QualityData] = None
    preliminary: Optional[HeartRateData] = None
    switched_to: Optional[str] = None
    failure: Optional[FailureData] = None


class StatusResponse(BaseModel):
    disclaimer: str
    state: str                           # Acquiring | InsufficientSignal | Completed | Failed
    active_modality: Optional[str] = None
    progress_pct: float
    elapsed_s: float
    heart_rate: Optional[HeartRateData] = None
    oxygenation: Optional[OxygenationData] = None
    failure: Optional[FailureData] = None
    alerts: list[str] = Field(default_factory=list)
    modality_history: list[str] = Field(default_factory=list)
    track_results: dict[str, HeartRateData] = Field(default_factory=dict)
