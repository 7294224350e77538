from typing import Iterable, Sequence, Tuple
import numpy as np


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    EPLEY_DIVISOR: float = 30.0

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @classmethod
    def epley_1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max using the Epley formula."""
        if reps < 0:
            raise ValueError("reps must be non-negative")
        return weight * (1 + reps / cls.EPLEY_DIVISOR)

    @staticmethod
    def mean(values: Iterable[float]) -> float:
        """Return the arithmetic mean or ``0.0`` for an empty input."""
        data = list(values)
        if not data:
            return 0.0
        return float(np.mean(np.array(data, dtype=float)))

    @staticmethod
    def percent_change(current: float, previous: float) -> float:
        """Return the change from ``previous`` to ``current`` in percent."""
        if previous <= 0:
            return 0.0
        return (current - previous) / previous * 100

    @staticmethod
    def linear_fit(
        x: Sequence[float], y: Sequence[float]
    ) -> Tuple[float, float, float]:
        """Return ``(slope, intercept, r_squared)`` of an OLS fit of y on x.

        Degenerate inputs (fewer than two points, a single distinct x or a
        constant y) yield a zero slope and an R² of zero.
        """
        if len(x) != len(y):
            raise ValueError("x and y must have the same length")
        if not y:
            return 0.0, 0.0, 0.0
        x_arr = np.asarray(x, dtype=float)
        y_arr = np.asarray(y, dtype=float)
        y_mean = float(np.mean(y_arr))
        if len(x_arr) < 2 or np.ptp(x_arr) == 0 or np.ptp(y_arr) == 0:
            return 0.0, y_mean, 0.0
        x_mean = float(np.mean(x_arr))
        num = np.sum((x_arr - x_mean) * (y_arr - y_mean))
        den = np.sum((x_arr - x_mean) ** 2)
        slope = float(num / den)
        intercept = y_mean - slope * x_mean
        pred = slope * x_arr + intercept
        ss_tot = np.sum((y_arr - y_mean) ** 2)
        ss_res = np.sum((y_arr - pred) ** 2)
        return slope, intercept, float(1 - ss_res / ss_tot)

    @staticmethod
    def coefficient_of_variation(values: Iterable[float]) -> float:
        """Return the coefficient of variation for ``values``."""
        data = list(values)
        if len(data) < 2:
            return 0.0
        arr = np.array(data, dtype=float)
        mean = float(np.mean(arr))
        if mean == 0:
            return 0.0
        std = float(np.std(arr))
        return std / mean

    @staticmethod
    def weeks_between(days: float) -> float:
        """Return ``days`` expressed in weeks, never less than one week."""
        return max(1.0, days / 7)
