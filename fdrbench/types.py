"""
Utility type aliases and protocols used across *fdrbench*.

The file purposefully contains **no runtime logic** so it can be imported without triggering heavy scientific routines
during static-typing or documentation builds.
"""
from typing import Any, Optional, Protocol, TypeAlias, runtime_checkable

import numpy.typing as npt
import pandas as pd
import numpy as np

#: Alias for a NumPy dtype representing 64-bit floating-point numbers.
FloatDType: TypeAlias = np.float64

#: Alias for a NumPy dtype representing 64-bit integers.
IntDType: TypeAlias = np.int64

#: Alias for a NumPy array of ``float64`` with *any* shape.
FloatArray: TypeAlias = npt.NDArray[FloatDType]

#: Alias for a NumPy array of ``int64`` with *any* shape.
IntArray: TypeAlias = npt.NDArray[IntDType]

#: Alias for a NumPy boolean array with *any* shape.
BoolArray: TypeAlias = npt.NDArray[np.bool_]

#: Alias for a Python or NumPy scalar float.
ScalarFloat: TypeAlias = float | np.floating

#: Alias for a Python or NumPy scalar integer.
ScalarInt: TypeAlias = int | np.integer

#: A table of hypotheses, one row per test (see ``fdrbench.settings`` for the column names).
Dataset: TypeAlias = pd.DataFrame


@runtime_checkable
class Pi0Function(Protocol):
    """
    Null-proportion curve: maps covariate values to the probability that each hypothesis is null.

    The callable must be vectorised: an array of covariate values of shape ``(m,)`` maps to an array of the same shape.
    Values are expected in ``[0,1]``; the simulation generator decides what happens otherwise.
    """
    def __call__(self, covariate: FloatArray) -> npt.ArrayLike: ...


@runtime_checkable
class EffectSizeSampler(Protocol):
    """
    Sampler of true non-null effect sizes. Receives the number of draws and an explicit random source.
    """
    def __call__(self, size: int, rng: np.random.Generator) -> npt.ArrayLike: ...


@runtime_checkable
class StatisticPerturber(Protocol):
    """
    Maps true effect sizes (zero for null hypotheses) to observed test statistics by adding a noise family.
    """
    def __call__(self, effect_size: FloatArray, rng: np.random.Generator) -> npt.ArrayLike: ...


@runtime_checkable
class PValueFunction(Protocol):
    """
    Maps observed test statistics to p-values under a reference null distribution.

    The known null/non-null status is passed along so that custom maps can use it, but reference-null p-values do not
    depend on it.
    """
    def __call__(self, test_statistic: FloatArray, truth: Optional[BoolArray] = None) -> npt.ArrayLike: ...


@runtime_checkable
class CovariateSampler(Protocol):
    """
    Sampler of the independent covariate. Receives the number of draws and an explicit random source.
    """
    def __call__(self, size: int, rng: np.random.Generator) -> npt.ArrayLike: ...


@runtime_checkable
class CorrectionCallable(Protocol):
    """
    Signature of a multiple-testing correction procedure plugged into the registry.

    Dataset fields are passed by keyword (``p_value`` and, optionally, ``test_statistic``, ``effect_size``,
    ``standard_error``, ``ind_covariate``) together with the fixed parameters of the method. The return value is either
    a vector of adjusted p-values or any object from which the method's extractor can obtain one.
    """
    def __call__(self, **kwargs: Any) -> Any: ...


@runtime_checkable
class Extractor(Protocol):
    """
    Maps the raw return value of a correction procedure to a vector of adjusted p-values aligned to the input order.
    """
    def __call__(self, raw: Any) -> npt.ArrayLike: ...
