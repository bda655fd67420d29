"""
Test-statistic perturbers: map true effect sizes (zero for null hypotheses) to observed statistics.
"""
from .base import Perturber

from fdrbench.types import FloatArray
from fdrbench._validators import validate_bounded_value

import numpy as np


class GaussianNoise(Perturber):
    """
    :math:`z = \\mu + \\varepsilon`, :math:`\\varepsilon\\sim\\mathcal{N}(0, sd^2)`.
    """
    def __init__(self, sd: float = 1.0) -> None:
        self._sd: float = validate_bounded_value(name="sd", value=sd, min_value=0.0, min_inclusive=False)

    @property
    def standard_error(self) -> float:
        return self._sd

    def _perturb(self, effect_size: FloatArray, rng: np.random.Generator) -> FloatArray:
        return effect_size + rng.normal(loc=0.0, scale=self._sd, size=effect_size.shape[0])


class StudentTNoise(Perturber):
    """
    :math:`t = (\\mu + Z) / \\sqrt{V/df}` with :math:`Z\\sim\\mathcal{N}(0,1)` and :math:`V\\sim\\chi^2_{df}`
    (non-central t with non-centrality :math:`\\mu`).
    """
    def __init__(self, df: float) -> None:
        self._df: float = validate_bounded_value(name="df", value=df, min_value=0.0, min_inclusive=False)

    def _perturb(self, effect_size: FloatArray, rng: np.random.Generator) -> FloatArray:
        m: int = effect_size.shape[0]
        z: FloatArray = rng.standard_normal(size=m)
        v: FloatArray = rng.chisquare(df=self._df, size=m)
        return (effect_size + z) / np.sqrt(v / self._df)


class ChiSquaredNoise(Perturber):
    """
    Non-central :math:`\\chi^2_{df}` statistic with non-centrality :math:`\\mu^2` (central for null hypotheses).
    """
    def __init__(self, df: float) -> None:
        self._df: float = validate_bounded_value(name="df", value=df, min_value=0.0, min_inclusive=False)

    def _perturb(self, effect_size: FloatArray, rng: np.random.Generator) -> FloatArray:
        ncp: FloatArray = np.square(effect_size)
        stat: FloatArray = rng.chisquare(df=self._df, size=effect_size.shape[0])
        shifted: np.ndarray = ncp > 0.0
        if np.any(a=shifted):
            stat[shifted] = rng.noncentral_chisquare(df=self._df, nonc=ncp[shifted])
        return stat
