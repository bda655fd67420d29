"""
Null-proportion curves.

A curve maps covariate values (typically in ``[0,1]``) to the probability that each hypothesis is null. A constant
curve yields an uninformative covariate; the others make the null proportion vary systematically with it.
"""
from .base import Pi0Curve

from fdrbench.types import FloatArray, FloatDType
from fdrbench._validators import validate_bounded_value, validate_finite_array, validate_int_value
from typing import Sequence

import numpy as np


class ConstantPi0(Pi0Curve):
    """
    Constant null proportion, independent of the covariate.

    Parameters
    ----------
    pi0
        Null proportion in :math:`[0,1]`.
    """
    def __init__(self, pi0: float) -> None:
        self._pi0: float = validate_bounded_value(name="pi0", value=pi0, min_value=0.0, max_value=1.0)

    @property
    def pi0(self) -> float:
        return self._pi0

    def _evaluate(self, covariate: FloatArray) -> FloatArray:
        return np.full(shape=covariate.shape, fill_value=self._pi0, dtype=FloatDType)


class SinePi0(Pi0Curve):
    """
    Sine-shaped curve oscillating between *low* and *high*:
    :math:`\\pi_0(x) = low + (high - low)\\,(1 + \\sin(2\\pi\\,c\\,x)) / 2`.

    Parameters
    ----------
    low
        Minimum null proportion.
    high
        Maximum null proportion.
    cycles
        Number of full periods over the unit interval.
    """
    def __init__(self, low: float = 0.5, high: float = 0.95, cycles: float = 1.0) -> None:
        self._low: float = validate_bounded_value(name="low", value=low, min_value=0.0, max_value=1.0)
        self._high: float = validate_bounded_value(name="high", value=high, min_value=self._low, max_value=1.0)
        self._cycles: float = validate_bounded_value(name="cycles", value=cycles, min_value=0.0, min_inclusive=False)

    def _wave(self, covariate: FloatArray) -> FloatArray:
        return np.sin(2.0 * np.pi * self._cycles * covariate)

    def _evaluate(self, covariate: FloatArray) -> FloatArray:
        return self._low + (self._high - self._low) * (1.0 + self._wave(covariate=covariate)) / 2.0


class CosinePi0(SinePi0):
    """
    Cosine-shaped variant of ``SinePi0`` (maximum null proportion at the left end of the unit interval).
    """
    def _wave(self, covariate: FloatArray) -> FloatArray:
        return np.cos(2.0 * np.pi * self._cycles * covariate)


class CubicPi0(Pi0Curve):
    """
    Cubic decrease from *high* at ``x = 0`` to *low* at ``x = 1``: :math:`\\pi_0(x) = high - (high - low)\\,x^3`.

    Most non-null hypotheses concentrate at large covariate values.
    """
    def __init__(self, low: float = 0.5, high: float = 0.95) -> None:
        self._low: float = validate_bounded_value(name="low", value=low, min_value=0.0, max_value=1.0)
        self._high: float = validate_bounded_value(name="high", value=high, min_value=self._low, max_value=1.0)

    def _evaluate(self, covariate: FloatArray) -> FloatArray:
        return self._high - (self._high - self._low) * np.power(covariate, 3)


class StepPi0(Pi0Curve):
    """
    Piecewise-constant curve.

    Parameters
    ----------
    breakpoints
        Strictly ascending covariate values where the curve jumps.
    values
        Null proportion on each piece; one more entry than *breakpoints*. A covariate equal to a breakpoint belongs to
        the piece on its right.
    """
    def __init__(self, breakpoints: Sequence[float], values: Sequence[float]) -> None:
        bps: FloatArray = validate_finite_array(name="breakpoints", value=np.atleast_1d(breakpoints)).astype(
            dtype=FloatDType
        )
        vals: FloatArray = validate_finite_array(name="values", value=np.atleast_1d(values)).astype(dtype=FloatDType)
        if bps.ndim != 1 or vals.ndim != 1:
            raise ValueError("breakpoints and values must be one-dimensional.")
        validate_int_value(name="len(values)", value=vals.size, min_value=bps.size + 1, max_value=bps.size + 1)
        if bps.size > 1 and np.any(a=np.diff(bps) <= 0.0):
            raise ValueError("breakpoints must be strictly ascending.")
        if np.any(a=vals < 0.0) or np.any(a=vals > 1.0):
            raise ValueError("values must be in [0, 1].")
        self._breakpoints: tuple[float, ...] = tuple(float(b) for b in bps)
        self._values: tuple[float, ...] = tuple(float(v) for v in vals)

    def _evaluate(self, covariate: FloatArray) -> FloatArray:
        pieces = np.digitize(covariate, np.asarray(self._breakpoints, dtype=FloatDType), right=False)
        return np.asarray(self._values, dtype=FloatDType)[pieces]


#: Named curves used by the default simulation scenarios.
PI0_CURVES: dict[str, type[Pi0Curve]] = {
    "constant": ConstantPi0,
    "sine": SinePi0,
    "cosine": CosinePi0,
    "cubic": CubicPi0,
    "step": StepPi0,
}
