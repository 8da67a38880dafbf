"""Instantaneous curve price k(x) over the collateral domain [0, 3T].

The base segment k1 is a raw polynomial on [0, T]; the windows [T, 2T] and
[2T, 3T] repeat the same shape by shifting x only.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.curve.constants import PRICE_FLOOR, CurveConfig


def horner(x: float, coeffs: Sequence[float]) -> float:
    """Evaluate sum(coeffs[i] * x**i)."""
    acc = 0.0
    for c in reversed(coeffs):
        acc = acc * x + c
    return acc


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


class PolynomialCurve:
    """Pure price function. Safe to share between tasks."""

    def __init__(self, config: CurveConfig) -> None:
        self._config = config
        self._t = config.period
        self._x_max = config.x_max
        self._coeffs = tuple(config.coefficients)

    @property
    def config(self) -> CurveConfig:
        return self._config

    def reduce(self, x: float) -> float:
        """Map a clamped position into [0, T] of its active window."""
        xx = clamp(x, 0.0, self._x_max)
        if xx <= self._t:
            return xx
        if xx <= 2 * self._t:
            return xx - self._t
        return xx - 2 * self._t

    def price(self, x: float) -> float:
        """Raw k(x). May dip to <= 0 near window edges from float error."""
        return horner(self.reduce(x), self._coeffs)

    def guarded_price(self, x: float) -> float:
        return max(self.price(x), PRICE_FLOOR)

    def inverse_price(self, x: float) -> float:
        """1/k(x): whole tokens issued per unit of collateral at x."""
        return 1.0 / self.guarded_price(x)
