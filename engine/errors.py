"""
engine/errors.py — Typed estimation failures
=============================================
Every way an analysis attempt can fail without it being a bug.  The
signal chain raises these; `ScanSession` catches them and stores a
`Failure` value, so callers only ever see typed results from
`ingest` / `poll` and the host process is never taken down.

    InsufficientWindow        keep feeding samples
    InsufficientCoverage      poor contact; prompt the user or fall back
    NoPeaksDetected           signal present but no beats found
    TooFewCleanIntervals      beats found but not plausibly periodic
    OutOfPhysiologicalRange   BPM / SpO₂ implausible; discarded, never clamped
    SessionTimeout            hard wall-clock limit reached
"""

from dataclasses import dataclass
from enum import Enum


class FailureReason(str, Enum):
    INSUFFICIENT_WINDOW = "InsufficientWindow"
    INSUFFICIENT_COVERAGE = "InsufficientCoverage"
    NO_PEAKS_DETECTED = "NoPeaksDetected"
    TOO_FEW_CLEAN_INTERVALS = "TooFewCleanIntervals"
    OUT_OF_PHYSIOLOGICAL_RANGE = "OutOfPhysiologicalRange"
    SESSION_TIMEOUT = "SessionTimeout"


class EstimationError(ValueError):
    """Base class; subclasses pin down `reason`."""

    reason: FailureReason

    def to_failure(self) -> "Failure":
        return Failure(reason=self.reason, message=str(self))


class InsufficientWindow(EstimationError):
    reason = FailureReason.INSUFFICIENT_WINDOW


class InsufficientCoverage(EstimationError):
    reason = FailureReason.INSUFFICIENT_COVERAGE


class NoPeaksDetected(EstimationError):
    reason = FailureReason.NO_PEAKS_DETECTED


class TooFewCleanIntervals(EstimationError):
    reason = FailureReason.TOO_FEW_CLEAN_INTERVALS


class OutOfPhysiologicalRange(EstimationError):
    reason = FailureReason.OUT_OF_PHYSIOLOGICAL_RANGE


class SessionTimeout(EstimationError):
    reason = FailureReason.SESSION_TIMEOUT


@dataclass(frozen=True)
class Failure:
    """A failure as returned to callers (value, not exception)."""
    reason: FailureReason
    message: str
