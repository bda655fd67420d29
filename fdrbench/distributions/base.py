"""
Abstract bases of the pluggable simulation components.

Every component is a small, picklable value object: parameters are validated once in ``__init__`` and every draw
receives an explicit ``numpy.random.Generator``, so no component ever touches global random state. Subclasses only
implement the numerical kernel (``_sample``, ``_perturb``, ``_evaluate``, ...); the bases take care of argument
validation and of shaping the output as a one-dimensional ``float64`` vector.
"""
from fdrbench.types import BoolArray, FloatArray, FloatDType
from fdrbench._validators import validate_int_value
from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy.typing as npt
import numpy as np


def _as_vector(name: str, value: npt.ArrayLike, size: int) -> FloatArray:
    array: FloatArray = np.asarray(value, dtype=FloatDType)
    if array.ndim == 0:
        array = np.full(shape=(size,), fill_value=float(array), dtype=FloatDType)
    if array.shape != (size,):
        raise ValueError(f"{name} must return shape ({size},); got {array.shape}.")
    return array


def _check_rng(rng: Any) -> np.random.Generator:
    if not isinstance(rng, np.random.Generator):
        raise TypeError(f"rng must be a numpy.random.Generator. Got {type(rng).__name__}.")
    return rng


class _Component:
    """
    Shared ``__repr__``/``__eq__`` driven by the instance's public parameters.
    """
    def _params(self) -> dict[str, Any]:
        return {k.lstrip("_"): v for k, v in vars(self).items()}

    def __repr__(self) -> str:
        args: str = ", ".join(f"{k}={v!r}" for k, v in self._params().items())
        return f"{type(self).__name__}({args})"

    def __eq__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return repr(self) == repr(other)

    def __hash__(self) -> int:
        return hash(repr(self))


class Sampler(_Component, ABC):
    """
    Base of samplers of i.i.d. draws (effect sizes, covariates).
    """
    def __call__(self, size: int, rng: np.random.Generator) -> FloatArray:
        size = validate_int_value(name="size", value=size, min_value=0)
        return _as_vector(name=type(self).__name__, value=self._sample(size=size, rng=_check_rng(rng=rng)), size=size)

    @abstractmethod
    def _sample(self, size: int, rng: np.random.Generator) -> npt.ArrayLike: ...


class Pi0Curve(_Component, ABC):
    """
    Base of null-proportion curves ``pi0(covariate)``.

    Values are returned as computed; the simulation generator applies its own policy to values outside ``[0,1]``.
    """
    def __call__(self, covariate: npt.ArrayLike) -> FloatArray:
        cov: FloatArray = np.asarray(covariate, dtype=FloatDType)
        if cov.ndim != 1:
            raise ValueError(f"covariate must be one-dimensional; got shape {cov.shape}.")
        return _as_vector(name=type(self).__name__, value=self._evaluate(covariate=cov), size=cov.shape[0])

    @abstractmethod
    def _evaluate(self, covariate: FloatArray) -> npt.ArrayLike: ...


class Perturber(_Component, ABC):
    """
    Base of test-statistic generators: true effect sizes plus a noise family.
    """
    def __call__(self, effect_size: npt.ArrayLike, rng: np.random.Generator) -> FloatArray:
        effect: FloatArray = np.asarray(effect_size, dtype=FloatDType)
        if effect.ndim != 1:
            raise ValueError(f"effect_size must be one-dimensional; got shape {effect.shape}.")
        return _as_vector(
            name=type(self).__name__, value=self._perturb(effect_size=effect, rng=_check_rng(rng=rng)),
            size=effect.shape[0],
        )

    @property
    def standard_error(self) -> Optional[float]:
        """
        Standard error of the statistic around its effect, when the noise family has one.
        """
        return None

    @abstractmethod
    def _perturb(self, effect_size: FloatArray, rng: np.random.Generator) -> npt.ArrayLike: ...


class PValueMap(_Component, ABC):
    """
    Base of maps from test statistics to p-values under a reference null distribution.
    """
    def __call__(self, test_statistic: npt.ArrayLike, truth: Optional[BoolArray] = None) -> FloatArray:
        stat: FloatArray = np.asarray(test_statistic, dtype=FloatDType)
        if stat.ndim != 1:
            raise ValueError(f"test_statistic must be one-dimensional; got shape {stat.shape}.")
        p_values: FloatArray = _as_vector(
            name=type(self).__name__, value=self._evaluate(test_statistic=stat), size=stat.shape[0]
        )
        return np.clip(p_values, 0.0, 1.0)

    @abstractmethod
    def _evaluate(self, test_statistic: FloatArray) -> npt.ArrayLike: ...
