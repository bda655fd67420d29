"""
Samplers of the independent covariate.
"""
from .base import Sampler

from fdrbench.types import FloatArray
from fdrbench._validators import validate_bounded_value

import numpy as np


class UniformCovariate(Sampler):
    """
    Uniform covariate on :math:`[low, high)`, the unit interval by default.
    """
    def __init__(self, low: float = 0.0, high: float = 1.0) -> None:
        self._low: float = validate_bounded_value(name="low", value=low)
        self._high: float = validate_bounded_value(name="high", value=high, min_value=self._low, min_inclusive=False)

    def _sample(self, size: int, rng: np.random.Generator) -> FloatArray:
        return rng.uniform(low=self._low, high=self._high, size=size)


class BetaCovariate(Sampler):
    """
    :math:`\\mathrm{Beta}(a, b)` covariate on the unit interval.
    """
    def __init__(self, a: float = 1.0, b: float = 1.0) -> None:
        self._a: float = validate_bounded_value(name="a", value=a, min_value=0.0, min_inclusive=False)
        self._b: float = validate_bounded_value(name="b", value=b, min_value=0.0, min_inclusive=False)

    def _sample(self, size: int, rng: np.random.Generator) -> FloatArray:
        return rng.beta(a=self._a, b=self._b, size=size)
