"""
acquisition/quality.py — Contact predicates & per-sample quality
=================================================================
Two related judgements live here:

* **Contact predicates** — a yes/no "is this sample usable?" test per
  modality.  `SampleWindow.coverage_ratio()` counts how many of the
  recent samples pass it.
* **QualityAssessment** — a 0–100 score with a tier and a list of
  human-readable issues, recomputed for every ingested sample and never
  persisted.  The UI layer decides how to phrase prompts from `issues`.

Optical scoring (start at 100, subtract per issue):

    too dark  (brightness < 120)          −30
    too bright (brightness > 220)         −20
    no red dominance                       −25
    weak pulse (|red − green| < 10)       −20
    incomplete coverage (< 0.7)            −30
"""

from dataclasses import dataclass, field

from acquisition.samples import AcousticSample, MotionSample, OpticalSample, Sample
from config import (
    ACOUSTIC_AMPLITUDE_MAX,
    ACOUSTIC_AMPLITUDE_MIN,
    ACOUSTIC_MAX_DOMINANT_HZ,
    MIN_ANALYSIS_COVERAGE,
    MOTION_MAGNITUDE_MAX,
    MOTION_MAGNITUDE_MIN,
    OPTICAL_BRIGHTNESS_MAX,
    OPTICAL_BRIGHTNESS_MIN,
    OPTICAL_RED_FLOOR,
    OPTICAL_WEAK_PULSE_DELTA,
    TIER_EXCELLENT,
    TIER_FAIR,
    TIER_GOOD,
)


@dataclass
class QualityAssessment:
    score: int
    quality_tier: str                       # poor | fair | good | excellent
    issues: list[str] = field(default_factory=list)


def tier_for(score: float) -> str:
    """Map a 0–100 score (quality or confidence) to a tier name."""
    if score >= TIER_EXCELLENT:
        return "excellent"
    if score >= TIER_GOOD:
        return "good"
    if score >= TIER_FAIR:
        return "fair"
    return "poor"


# ── Contact predicates ───────────────────────────────────────────────────────


def optical_contact(sample: OpticalSample) -> bool:
    brightness_ok = OPTICAL_BRIGHTNESS_MIN < sample.brightness_mean < OPTICAL_BRIGHTNESS_MAX
    red_dominant = sample.red_mean > sample.green_mean and sample.red_mean > sample.blue_mean
    return brightness_ok and red_dominant and sample.red_mean > OPTICAL_RED_FLOOR


def acoustic_contact(sample: AcousticSample) -> bool:
    return (
        ACOUSTIC_AMPLITUDE_MIN <= sample.amplitude <= ACOUSTIC_AMPLITUDE_MAX
        and sample.dominant_frequency_hz <= ACOUSTIC_MAX_DOMINANT_HZ
    )


def motion_contact(sample: MotionSample) -> bool:
    return MOTION_MAGNITUDE_MIN <= sample.magnitude <= MOTION_MAGNITUDE_MAX


# ── Per-sample assessment ────────────────────────────────────────────────────


def _optical_issues(sample: OpticalSample) -> list[tuple[str, int]]:
    issues = []
    if sample.brightness_mean < OPTICAL_BRIGHTNESS_MIN:
        issues.append(("Too dark - ensure flash is on", 30))
    elif sample.brightness_mean > OPTICAL_BRIGHTNESS_MAX:
        issues.append(("Too bright - adjust finger pressure", 20))

    if sample.red_mean <= sample.green_mean or sample.red_mean <= sample.blue_mean:
        issues.append(("Poor blood flow detection", 25))

    if abs(sample.red_mean - sample.green_mean) < OPTICAL_WEAK_PULSE_DELTA:
        issues.append(("Weak pulse signal", 20))
    return issues


def _acoustic_issues(sample: AcousticSample) -> list[tuple[str, int]]:
    issues = []
    if sample.amplitude < ACOUSTIC_AMPLITUDE_MIN:
        issues.append(("Press microphone firmly against chest", 40))
    elif sample.amplitude > ACOUSTIC_AMPLITUDE_MAX:
        issues.append(("Audio clipping - reduce pressure or background noise", 25))
    if sample.dominant_frequency_hz > ACOUSTIC_MAX_DOMINANT_HZ:
        issues.append(("Background noise dominates heart sounds", 25))
    return issues


def _motion_issues(sample: MotionSample) -> list[tuple[str, int]]:
    if sample.magnitude > MOTION_MAGNITUDE_MAX:
        return [("Too much movement - lie still", 40)]
    if sample.magnitude < MOTION_MAGNITUDE_MIN:
        return [("Place phone flat on your chest", 40)]
    return []


_ISSUE_RULES = {
    OpticalSample: _optical_issues,
    AcousticSample: _acoustic_issues,
    MotionSample: _motion_issues,
}


def assess_sample(sample: Sample, coverage: float) -> QualityAssessment:
    """
    Score one sample given the current coverage ratio of its window.

    Parameters
    ----------
    sample   : Sample   The sample just ingested.
    coverage : float    `SampleWindow.coverage_ratio()` after the push.
    """
    penalties = _ISSUE_RULES[type(sample)](sample)
    if coverage < MIN_ANALYSIS_COVERAGE:
        penalties.append(("Incomplete sensor coverage", 30))

    score = 100 - sum(p for _, p in penalties)
    score = max(0, min(100, score))
    return QualityAssessment(
        score=score,
        quality_tier=tier_for(score),
        issues=[msg for msg, _ in penalties],
    )
