"""
Effect-size distributions of non-null hypotheses.

Besides the elementary families, the module provides the six unimodal-ish normal mixtures that are customary in FDR
simulation studies (``spiky``, ``near_normal``, ``flat_top``, ``skew``, ``big_normal``, ``bimodal``), available
through ``named_effects``.
"""
from .base import Sampler

from fdrbench.types import FloatArray, FloatDType, IntArray
from fdrbench._validators import validate_bounded_value, validate_finite_array
from typing import Sequence

import numpy as np


class NormalEffects(Sampler):
    """
    Normal effect sizes :math:`\\mathcal{N}(mean, sd^2)`.
    """
    def __init__(self, mean: float = 0.0, sd: float = 1.0) -> None:
        self._mean: float = validate_bounded_value(name="mean", value=mean)
        self._sd: float = validate_bounded_value(name="sd", value=sd, min_value=0.0)

    def _sample(self, size: int, rng: np.random.Generator) -> FloatArray:
        return rng.normal(loc=self._mean, scale=self._sd, size=size)


class UniformEffects(Sampler):
    """
    Uniform effect sizes on :math:`[low, high)`.
    """
    def __init__(self, low: float, high: float) -> None:
        self._low: float = validate_bounded_value(name="low", value=low)
        self._high: float = validate_bounded_value(name="high", value=high, min_value=self._low)

    def _sample(self, size: int, rng: np.random.Generator) -> FloatArray:
        return rng.uniform(low=self._low, high=self._high, size=size)


class ConstantEffects(Sampler):
    """
    Every non-null hypothesis has the same effect size.
    """
    def __init__(self, value: float) -> None:
        self._value: float = validate_bounded_value(name="value", value=value)

    def _sample(self, size: int, rng: np.random.Generator) -> FloatArray:
        return np.full(shape=(size,), fill_value=self._value, dtype=FloatDType)


class MixtureEffects(Sampler):
    """
    Finite mixture of normals.

    Parameters
    ----------
    weights
        Non-negative component weights; normalised to sum to one.
    means
        Component means.
    sds
        Component standard deviations (non-negative).
    """
    def __init__(self, weights: Sequence[float], means: Sequence[float], sds: Sequence[float]) -> None:
        w: FloatArray = validate_finite_array(name="weights", value=np.atleast_1d(weights)).astype(dtype=FloatDType)
        mu: FloatArray = validate_finite_array(name="means", value=np.atleast_1d(means)).astype(dtype=FloatDType)
        sd: FloatArray = validate_finite_array(name="sds", value=np.atleast_1d(sds)).astype(dtype=FloatDType)
        if w.ndim != 1 or not (w.shape == mu.shape == sd.shape) or w.size == 0:
            raise ValueError("weights, means and sds must be non-empty 1-D sequences of the same length.")
        if np.any(a=w < 0.0) or w.sum() <= 0.0:
            raise ValueError("weights must be non-negative with a positive sum.")
        if np.any(a=sd < 0.0):
            raise ValueError("sds must be non-negative.")
        self._weights: tuple[float, ...] = tuple(float(x) for x in w / w.sum())
        self._means: tuple[float, ...] = tuple(float(x) for x in mu)
        self._sds: tuple[float, ...] = tuple(float(x) for x in sd)

    def _sample(self, size: int, rng: np.random.Generator) -> FloatArray:
        component: IntArray = rng.choice(a=len(self._weights), size=size, p=np.asarray(self._weights))
        loc: FloatArray = np.asarray(self._means, dtype=FloatDType)[component]
        scale: FloatArray = np.asarray(self._sds, dtype=FloatDType)[component]
        return rng.normal(loc=loc, scale=scale)


#: (weights, means, sds) of the named effect-size shapes.
EFFECT_SHAPES: dict[str, tuple[tuple[float, ...], tuple[float, ...], tuple[float, ...]]] = {
    "spiky": ((0.4, 0.2, 0.2, 0.2), (0.0, 0.0, 0.0, 0.0), (0.25, 0.5, 1.0, 2.0)),
    "near_normal": ((2.0 / 3.0, 1.0 / 3.0), (0.0, 0.0), (1.0, 2.0)),
    "flat_top": ((1.0 / 7.0,) * 7, (-1.5, -1.0, -0.5, 0.0, 0.5, 1.0, 1.5), (0.5,) * 7),
    "skew": ((0.25, 0.25, 1.0 / 3.0, 1.0 / 6.0), (-2.0, -1.0, 0.0, 1.0), (2.0, 1.5, 1.0, 1.0)),
    "big_normal": ((1.0,), (0.0,), (4.0,)),
    "bimodal": ((0.5, 0.5), (-2.0, 2.0), (1.0, 1.0)),
}


def named_effects(name: str, scale: float = 1.0) -> MixtureEffects:
    """
    Build one of the named effect-size shapes.

    Parameters
    ----------
    name
        Key of ``EFFECT_SHAPES``.
    scale
        Positive factor applied to every mean and standard deviation.

    Raises
    ------
    ValueError
        If *name* is unknown.
    """
    if name not in EFFECT_SHAPES:
        raise ValueError(f"Unknown effect-size shape {name!r}; expected one of {', '.join(EFFECT_SHAPES)}.")
    scale = validate_bounded_value(name="scale", value=scale, min_value=0.0, min_inclusive=False)
    weights, means, sds = EFFECT_SHAPES[name]
    return MixtureEffects(
        weights=weights, means=[scale * m for m in means], sds=[scale * s for s in sds]
    )
