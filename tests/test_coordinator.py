import pytest

from acquisition.samples import Modality
from engine.coordinator import ModalityCoordinator
from engine.errors import FailureReason
from engine.results import HeartRateEstimate, SessionState
from engine.session import OUT_OF_ORDER_ISSUE, ScanSession, SessionOptions
from utils.synthetic import (
    acoustic_samples,
    interleave,
    optical_samples,
    random_walk_optical,
)


def _hr(bpm, confidence, method):
    return HeartRateEstimate(
        bpm=bpm, confidence_pct=confidence, irregularity_pct=3,
        method=method, quality_tier="good",
    )


# ── ModalityCoordinator ──────────────────────────────────────────────────────


def test_merge_concordant_results_is_combined():
    coordinator = ModalityCoordinator(Modality.OPTICAL)
    merged = coordinator.merge({
        Modality.OPTICAL: _hr(76, 90, "optical"),
        Modality.ACOUSTIC: _hr(78, 70, "acoustic"),
    })
    assert merged.method == "combined"
    assert 76 <= merged.bpm <= 78
    assert merged.confidence_pct == 90


def test_merge_discordant_prefers_most_confident():
    coordinator = ModalityCoordinator(Modality.OPTICAL)
    merged = coordinator.merge({
        Modality.OPTICAL: _hr(60, 55, "optical"),
        Modality.ACOUSTIC: _hr(90, 75, "acoustic"),
    })
    assert merged.method == "acoustic"
    assert merged.bpm == 90


def test_merge_tie_broken_by_fallback_order():
    coordinator = ModalityCoordinator(Modality.OPTICAL)
    merged = coordinator.merge({
        Modality.ACOUSTIC: _hr(90, 70, "acoustic"),
        Modality.OPTICAL: _hr(60, 70, "optical"),
    })
    assert merged.method == "optical"


def test_merge_single_and_empty():
    coordinator = ModalityCoordinator(Modality.OPTICAL)
    single = _hr(70, 80, "optical")
    assert coordinator.merge({Modality.OPTICAL: single}) is single
    with pytest.raises(ValueError):
        coordinator.merge({})


def test_fallback_order_and_exhaustion():
    coordinator = ModalityCoordinator(Modality.OPTICAL)
    assert coordinator.switch_to_fallback() is Modality.ACOUSTIC
    assert coordinator.primary is Modality.ACOUSTIC
    assert coordinator.switch_to_fallback() is Modality.MOTION
    assert coordinator.switch_to_fallback() is None
    assert coordinator.history == [Modality.OPTICAL, Modality.ACOUSTIC, Modality.MOTION]


def test_shadow_tracks_are_independent():
    coordinator = ModalityCoordinator(Modality.OPTICAL)
    optical = coordinator.track(Modality.OPTICAL)
    acoustic = coordinator.track(Modality.ACOUSTIC)
    assert optical.window is not acoustic.window
    coordinator.release()
    assert coordinator.tracks == {}


# ── ScanSession scenarios ────────────────────────────────────────────────────


def test_clean_75_bpm_optical_completes(run_session):
    session, results = run_session(optical_samples(bpm=75.0, duration_s=12.0))
    status = session.poll()

    assert status.state is SessionState.COMPLETED
    assert 72 <= status.heart_rate.bpm <= 78
    assert status.heart_rate.confidence_pct >= 80
    assert status.heart_rate.method == "optical"
    assert status.oxygenation is not None
    assert 70 <= status.oxygenation.percentage <= 100
    assert status.progress_pct == 100.0
    assert status.failure is None
    assert status.alerts == []

    live = [r.preliminary for r in results if r.preliminary is not None]
    assert live and all(e.preliminary for e in live)
    assert results[0].quality.score == 100


def test_constant_signal_never_completes(run_session):
    session, _ = run_session(optical_samples(amplitude=0.0, duration_s=12.0))
    status = session.poll()
    assert status.state is SessionState.ACQUIRING
    assert status.heart_rate is None
    assert status.failure.reason is FailureReason.NO_PEAKS_DETECTED


@pytest.mark.parametrize("seed", range(200))
def test_random_walk_never_completes(run_session, seed):
    session, _ = run_session(random_walk_optical(duration_s=12.0, seed=seed))
    status = session.poll()
    assert status.state is not SessionState.COMPLETED
    assert status.heart_rate is None


def test_concordant_modalities_combined(run_session):
    samples = interleave(
        optical_samples(bpm=76.0, duration_s=12.0),
        acoustic_samples(bpm=78.0, duration_s=12.0),
    )
    session, _ = run_session(samples)
    status = session.poll()

    assert status.state is SessionState.COMPLETED
    assert status.heart_rate.method == "combined"
    per_track = [e.bpm for e in status.track_results.values()]
    assert len(per_track) == 2
    assert min(per_track) <= status.heart_rate.bpm <= max(per_track)
    assert 74 <= status.heart_rate.bpm <= 80
    assert status.heart_rate.confidence_pct == max(
        e.confidence_pct for e in status.track_results.values()
    )


def test_timeout_without_valid_result_fails(run_session):
    session, _ = run_session(optical_samples(amplitude=0.0, duration_s=22.0))
    status = session.poll()
    assert status.state is SessionState.FAILED
    assert status.failure.reason is FailureReason.SESSION_TIMEOUT
    assert "NoPeaksDetected" in status.failure.message
    assert status.heart_rate is None


def test_timeout_checked_on_poll(clock):
    session = ScanSession(SessionOptions(timeout_s=20.0), clock=clock)
    clock.advance(10.0)
    assert session.poll().progress_pct == pytest.approx(50.0)
    clock.advance(10.5)
    status = session.poll()
    assert status.state is SessionState.FAILED
    assert status.failure.reason is FailureReason.SESSION_TIMEOUT


def test_progress_capped_before_completion(clock):
    session = ScanSession(SessionOptions(timeout_s=20.0), clock=clock)
    clock.advance(19.9)
    assert session.poll().progress_pct == 95.0


def test_cancel_returns_to_idle(run_session, feed):
    session, _ = run_session(optical_samples(duration_s=5.0))
    session.cancel()
    status = session.poll()
    assert status.state is SessionState.IDLE
    assert status.active_modality is None
    assert status.progress_pct == 0.0

    after = feed(session, optical_samples(duration_s=1.0, start_ms=6000.0))
    assert all(r.state is SessionState.IDLE and r.quality is None for r in after)


def test_sustained_poor_contact_switches_modality(run_session, feed):
    session, results = run_session(optical_samples(duration_s=6.0, brightness=80.0))
    switched = [r.switched_to for r in results if r.switched_to is not None]
    assert switched == [Modality.ACOUSTIC]
    assert session.state is SessionState.ACQUIRING

    feed(session, acoustic_samples(bpm=70.0, duration_s=12.0, start_ms=6000.0))
    status = session.poll()
    assert status.state is SessionState.COMPLETED
    assert status.heart_rate.method == "acoustic"
    assert status.oxygenation is None
    assert status.modality_history == [Modality.OPTICAL, Modality.ACOUSTIC]


def test_poor_contact_without_fallback_is_insufficient_signal(run_session, feed):
    session, _ = run_session(
        optical_samples(duration_s=6.0, brightness=80.0), allow_fallback=False
    )
    status = session.poll()
    assert status.state is SessionState.INSUFFICIENT_SIGNAL
    assert status.failure.reason is FailureReason.INSUFFICIENT_COVERAGE

    # Contact restored → back to acquiring
    feed(session, optical_samples(duration_s=2.0, start_ms=6000.0))
    assert session.state is SessionState.ACQUIRING


def test_out_of_order_sample_dropped(clock):
    session = ScanSession(clock=clock)
    first, second = optical_samples(duration_s=0.1)[:2]
    session.ingest(second)
    result = session.ingest(first)
    assert OUT_OF_ORDER_ISSUE in result.quality.issues
    assert result.state is SessionState.ACQUIRING


def test_unsupported_sample_type(clock):
    with pytest.raises(TypeError):
        ScanSession(clock=clock).ingest({"red_mean": 1.0})


def test_replay_is_deterministic(clock, feed):
    samples = optical_samples(bpm=82.0, duration_s=12.0, noise=3.0, seed=5)
    outcomes = []
    for _ in range(2):
        clock.now = 0.0
        session = ScanSession(clock=clock)
        feed(session, samples)
        status = session.poll()
        outcomes.append((status.state, status.heart_rate, status.oxygenation))
    assert outcomes[0] == outcomes[1]
    assert outcomes[0][0] is SessionState.COMPLETED


@pytest.mark.parametrize("bpm", [45.0, 60.0, 90.0, 120.0, 150.0])
def test_completed_bpm_is_integer_in_range(run_session, bpm):
    session, _ = run_session(optical_samples(bpm=bpm, duration_s=12.0, noise=1.0, seed=3))
    status = session.poll()
    assert status.state is SessionState.COMPLETED
    assert isinstance(status.heart_rate.bpm, int)
    assert 35 <= status.heart_rate.bpm <= 220


def test_invalid_options_rejected():
    with pytest.raises(ValueError):
        SessionOptions(timeout_s=0)
    with pytest.raises(ValueError):
        SessionOptions(min_window_s=12.0, max_window_s=8.0)
    with pytest.raises(ValueError):
        SessionOptions(modality="sonar")


def test_long_minimum_window_waits_for_it(run_session):
    session, results = run_session(
        optical_samples(bpm=75.0, duration_s=19.5), min_window_s=18.0, timeout_s=25.0,
    )
    completed_at = next(i for i, r in enumerate(results) if r.state is SessionState.COMPLETED)
    assert completed_at / 30.0 >= 17.9
    assert 72 <= session.poll().heart_rate.bpm <= 78


def test_window_override_applies_to_shadow_tracks(clock):
    session = ScanSession(SessionOptions(modality="motion", min_window_s=16.0), clock=clock)
    result = session.ingest(optical_samples(duration_s=0.1)[0])
    assert result.state is SessionState.ACQUIRING
    assert result.quality is not None
