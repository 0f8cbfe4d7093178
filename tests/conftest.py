"""Shared fixtures: a controllable session clock and a sample replayer."""

import numpy as np
import pytest

from engine.session import ScanSession, SessionOptions

FS = 30.0


class FakeClock:
    """Stands in for time.monotonic; tests move it explicitly."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def replay(session: ScanSession, samples, clock: FakeClock) -> list:
    """Ingest samples with the clock following their timestamps."""
    results = []
    for sample in samples:
        clock.now = sample.timestamp_ms / 1000.0
        results.append(session.ingest(sample))
    return results


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def run_session(clock):
    """run_session(samples, **options) → (session, ingest results)."""

    def _run(samples, **options):
        session = ScanSession(SessionOptions(**options), clock=clock)
        return session, replay(session, samples, clock)

    return _run


@pytest.fixture
def sine():
    """sine(freq_hz, duration_s, amplitude=1.0) sampled at 30 Hz."""

    def _sine(freq_hz: float, duration_s: float = 12.0, amplitude: float = 1.0) -> np.ndarray:
        t = np.arange(int(round(duration_s * FS))) / FS
        return amplitude * np.sin(2.0 * np.pi * freq_hz * t)

    return _sine


@pytest.fixture
def feed(clock):
    """feed(session, samples) → ingest results, clock following timestamps."""

    def _feed(session, samples):
        return replay(session, samples, clock)

    return _feed
