import numpy as np
import pytest

from features.smoother import RealtimeSmoother


def test_seeded_with_first_measurement():
    smoother = RealtimeSmoother()
    assert smoother.value is None
    assert smoother.update(72.4) == 72
    assert smoother.value == 72


def test_moves_gradually_towards_new_level():
    smoother = RealtimeSmoother()
    smoother.update(60)
    outputs = [smoother.update(80) for _ in range(40)]
    assert outputs[0] < 70
    assert all(b >= a for a, b in zip(outputs, outputs[1:]))
    assert outputs[-1] > outputs[0]


def test_damps_jitter():
    smoother = RealtimeSmoother()
    raw = [70, 80] * 20
    out = np.array([smoother.update(m) for m in raw])
    assert np.ptp(out[5:]) < 5


def test_variance_converges():
    smoother = RealtimeSmoother()
    smoother.update(70)
    for _ in range(50):
        smoother.update(70)
    assert 0.0 < smoother.variance < 1.0


def test_reset_clears_state():
    smoother = RealtimeSmoother()
    smoother.update(90)
    smoother.reset()
    assert smoother.value is None
    assert smoother.update(60) == 60


@pytest.mark.parametrize("q, r", [(-0.1, 4.0), (0.1, 0.0)])
def test_invalid_noise(q, r):
    with pytest.raises(ValueError):
        RealtimeSmoother(process_noise=q, measurement_noise=r)
