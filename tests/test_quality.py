import pytest

from acquisition.quality import (
    acoustic_contact,
    assess_sample,
    motion_contact,
    optical_contact,
    tier_for,
)
from acquisition.samples import AcousticSample, Modality, MotionSample, OpticalSample, sample_from_dict


def _optical(red=150.0, green=60.0, blue=50.0, brightness=160.0):
    return OpticalSample(red, green, blue, brightness, 0.0)


@pytest.mark.parametrize(
    "score, tier",
    [(100, "excellent"), (85, "excellent"), (84, "good"), (70, "good"), (50, "fair"), (49, "poor"), (0, "poor")],
)
def test_tiers(score, tier):
    assert tier_for(score) == tier


def test_optical_contact_predicate():
    assert optical_contact(_optical())
    assert not optical_contact(_optical(brightness=120.0))     # bounds are exclusive
    assert not optical_contact(_optical(brightness=230.0))
    assert not optical_contact(_optical(red=55.0))             # green dominates
    assert not optical_contact(_optical(red=95.0, green=40.0, blue=30.0))   # below red floor


def test_acoustic_and_motion_predicates():
    assert acoustic_contact(AcousticSample(100.0, 60.0, 0.0))
    assert not acoustic_contact(AcousticSample(5.0, 60.0, 0.0))
    assert not acoustic_contact(AcousticSample(100.0, 800.0, 0.0))
    assert motion_contact(MotionSample(9.81, 0.0))
    assert not motion_contact(MotionSample(14.0, 0.0))


def test_good_optical_sample_scores_full_marks():
    q = assess_sample(_optical(), coverage=1.0)
    assert q.score == 100
    assert q.quality_tier == "excellent"
    assert q.issues == []


def test_optical_penalties_accumulate():
    q = assess_sample(_optical(brightness=100.0), coverage=0.5)
    assert q.score == 100 - 30 - 30
    assert q.quality_tier == "poor"
    assert len(q.issues) == 2


def test_no_red_dominance_and_weak_pulse():
    q = assess_sample(_optical(red=65.0, green=60.0, blue=70.0), coverage=1.0)
    assert q.score == 100 - 25 - 20
    assert "Poor blood flow detection" in q.issues
    assert "Weak pulse signal" in q.issues


def test_score_clamped_at_zero():
    q = assess_sample(_optical(red=10.0, green=10.0, blue=20.0, brightness=10.0), coverage=0.0)
    assert q.score == 0


def test_motion_issue_reported():
    q = assess_sample(MotionSample(15.0, 0.0), coverage=1.0)
    assert q.score == 60
    assert q.issues == ["Too much movement - lie still"]


def test_sample_from_dict():
    s = sample_from_dict("motion", {"magnitude": 9.8, "timestamp_ms": 10.0})
    assert isinstance(s, MotionSample)
    assert s.modality is Modality.MOTION
    with pytest.raises(TypeError):
        sample_from_dict(Modality.OPTICAL, {"magnitude": 9.8, "timestamp_ms": 10.0})
