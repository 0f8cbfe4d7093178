"""
features/smoother.py — Live BPM smoothing (scalar Kalman filter)
=================================================================
Instantaneous BPM values from a short trailing window jump around by
several beats per minute.  A one-state Kalman filter with a random-walk
model smooths them for display without waiting for the full window:

    predict:  P ← P + Q
    update:   K = P / (P + R);  x ← x + K·(z − x);  P ← (1 − K)·P

Q (process noise) small → heart rate assumed to change slowly;
R (measurement noise) larger → each raw estimate trusted only partly.
The state is seeded with the first measurement.
"""

from config import KALMAN_MEASUREMENT_NOISE, KALMAN_PROCESS_NOISE


class RealtimeSmoother:
    """Scalar Kalman filter over a stream of BPM measurements."""

    def __init__(
        self,
        process_noise: float = KALMAN_PROCESS_NOISE,
        measurement_noise: float = KALMAN_MEASUREMENT_NOISE,
        initial_variance: float = 1.0,
    ):
        if process_noise < 0 or measurement_noise <= 0:
            raise ValueError("Noise variances must be non-negative (measurement > 0).")
        self._q = process_noise
        self._r = measurement_noise
        self._p0 = initial_variance
        self._x: float | None = None
        self._p = initial_variance

    def update(self, measurement: float) -> int:
        """Fold in one measurement and return the smoothed, rounded BPM."""
        if self._x is None:
            self._x = float(measurement)
            self._p = self._p0
            return round(self._x)

        predicted_p = self._p + self._q
        gain = predicted_p / (predicted_p + self._r)
        self._x = self._x + gain * (measurement - self._x)
        self._p = (1.0 - gain) * predicted_p
        return round(self._x)

    @property
    def value(self) -> int | None:
        return None if self._x is None else round(self._x)

    @property
    def variance(self) -> float:
        return self._p

    def reset(self) -> None:
        self._x = None
        self._p = self._p0
