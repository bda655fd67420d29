"""
**Internal validation helpers** used across the *fdrbench* code-base. The module contains **only light-weight,
side-effect-free checks** so that importing it never triggers heavy numerical work.
"""
from fdrbench.settings import P_VALUE_COL, TRUTH_COL
from fdrbench.types import FloatArray, FloatDType, BoolArray
from typing import Any, Optional, Sequence

import numpy.typing as npt
import pandas as pd
import numpy as np

import numbers


FLOAT_TOL: float = 1e-12

def validate_int_value(name: str, value: Any, min_value: Optional[int] = None, max_value: Optional[int] = None) -> int:
    """
    Check that the given value is an integer within the defined bounds (inclusive).

    Parameters
    ----------
    name
        Human-readable name of the parameter – used verbatim in the error message to ease debugging.
    value
        Object to validate. Usually the raw argument received by a public API.
    min_value
        Optional lower bound (inclusive). If not provided, no lower bound is enforced.
    max_value
        Optional upper bound (inclusive). If not provided, no upper bound is enforced.

    Raises
    ------
    TypeError
        If *value* is not an ``int``.
    ValueError
        If *value* is outside the defined bounds.
    """
    if min_value is not None and max_value is not None and min_value > max_value:
        raise ValueError(f"Inconsistent bounds for {name}: min_value ({min_value}) > max_value ({max_value}).")
    if not isinstance(value, numbers.Integral) or isinstance(value, (bool, np.bool_)):
        # bool is a subclass of int, so we need to exclude it explicitly
        raise TypeError(f"{name} must be an integer. Got {type(value).__name__}.")
    value = int(value)
    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be at least {min_value}. Got {value!r}.")
    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be at most {max_value}. Got {value!r}.")
    return value

def validate_bounded_value(
    name: str, value: Any, min_value: Optional[float] = None, max_value: Optional[float] = None,
    min_inclusive: bool = True, max_inclusive: bool = True
) -> float:
    """
    Check that the given value is a finite real number within the defined bounds.

    Parameters
    ----------
    name
        Human-readable name of the parameter – used verbatim in the error message to ease debugging.
    value
        Object to validate.
    min_value
        Optional lower bound.
    max_value
        Optional upper bound.
    min_inclusive
        Whether the lower bound itself is admissible.
    max_inclusive
        Whether the upper bound itself is admissible.

    Raises
    ------
    TypeError
        If *value* is not a real number (booleans are rejected).
    ValueError
        If *value* is not finite or lies outside the defined bounds.

    Returns
    -------
    float
        The validated value as a Python float.
    """
    if min_value is not None and max_value is not None and min_value > max_value:
        raise ValueError(f"Inconsistent bounds for {name}: min_value ({min_value}) > max_value ({max_value}).")
    if not isinstance(value, numbers.Real) or isinstance(value, (bool, np.bool_)):
        raise TypeError(f"{name} must be a real number. Got {type(value).__name__}.")
    value = float(value)
    if not np.isfinite(value):
        raise ValueError(f"{name} must be finite. Got {value!r}.")
    if min_value is not None and (value < min_value or (not min_inclusive and value == min_value)):
        bound: str = "at least" if min_inclusive else "greater than"
        raise ValueError(f"{name} must be {bound} {min_value}. Got {value!r}.")
    if max_value is not None and (value > max_value or (not max_inclusive and value == max_value)):
        bound = "at most" if max_inclusive else "less than"
        raise ValueError(f"{name} must be {bound} {max_value}. Got {value!r}.")
    return value

def validate_finite_array(name: str, value: Any, allow_nan: bool = False) -> npt.NDArray:
    """
    Check that the given value is a numeric array-like object with finite entries.

    Parameters
    ----------
    name
        Human-readable name of the parameter – used verbatim in the error message to ease debugging.
    value
        Object to validate. Usually the raw argument received by a public API.
    allow_nan
        If True, NaN entries (missing values) are accepted; infinities are still rejected.

    Raises
    ------
    TypeError
        If *value* is not a numeric array-like object.
    ValueError
        If *value* contains non-finite values.

    Returns
    -------
    npt.NDArray
        The validated array, converted to a numpy array.
    """
    array: npt.NDArray = np.asarray(value)
    if array.dtype == np.bool_:
        raise TypeError(f"{name} must not be a boolean array-like object.")
    if not np.issubdtype(array.dtype, np.number):
        raise TypeError(f"{name} must be a numeric array-like object. Got {array.dtype.name}.")
    if np.issubdtype(array.dtype, np.complexfloating):
        raise TypeError(f"{name} must be real-valued, not complex.")
    if allow_nan:
        if np.any(a=np.isinf(array)):
            raise ValueError(f"{name} must not contain infinite values.")
    elif not np.all(a=np.isfinite(array)):
        raise ValueError(f"{name} must contain only finite values; not NaN or Inf.")
    return array

def validate_probability_values(name: str, value: Any, allow_nan: bool = True) -> FloatArray:
    """
    Check that the given value is a 1-D numeric array with entries in ``[0,1]`` (p-values or q-values).

    Parameters
    ----------
    name
        Human-readable name of the parameter – used verbatim in the error message to ease debugging.
    value
        Object to validate.
    allow_nan
        If True (default), missing values are accepted and kept as NaN.

    Raises
    ------
    TypeError
        If *value* is not a numeric array-like object.
    ValueError
        If *value* is not 1-D or has entries outside ``[0,1]``.

    Returns
    -------
    FloatArray
        The validated vector as ``float64``.
    """
    array: FloatArray = validate_finite_array(name=name, value=value, allow_nan=allow_nan).astype(dtype=FloatDType)
    if array.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional; got shape {array.shape}.")
    observed: FloatArray = array[~np.isnan(array)]
    if np.any(a=observed < -FLOAT_TOL) or np.any(a=observed > 1.0 + FLOAT_TOL):
        raise ValueError(f"{name} must contain values in [0, 1].")
    return np.clip(array, 0.0, 1.0)

def validate_truth_labels(name: str, value: Any, size: Optional[int] = None) -> BoolArray:
    """
    Check that the given value is a 1-D vector of boolean (or 0/1) non-null indicators without missing entries.

    Parameters
    ----------
    name
        Human-readable name of the parameter – used verbatim in the error message to ease debugging.
    value
        Object to validate.
    size
        Expected length, if known.

    Raises
    ------
    TypeError
        If *value* is neither boolean nor numeric.
    ValueError
        If *value* has missing entries, entries other than 0/1, the wrong shape, or the wrong length.

    Returns
    -------
    BoolArray
        The validated labels.
    """
    array: npt.NDArray = np.asarray(value)
    if array.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional; got shape {array.shape}.")
    if size is not None and array.shape[0] != size:
        raise ValueError(f"{name} must have length {size}; got {array.shape[0]}.")
    if array.dtype == np.bool_:
        return array.copy()
    if array.dtype == object:
        if np.any(a=pd.isna(array)):
            raise ValueError(f"{name} must not contain missing values.")
        try:
            array = array.astype(dtype=FloatDType)
        except (TypeError, ValueError):
            raise TypeError(f"{name} must contain boolean or 0/1 values.")
    if not np.issubdtype(array.dtype, np.number):
        raise TypeError(f"{name} must contain boolean or 0/1 values. Got {array.dtype.name}.")
    if np.any(a=np.isnan(array.astype(dtype=FloatDType))):
        raise ValueError(f"{name} must not contain missing values.")
    if not np.all(a=np.isin(element=array, test_elements=[0, 1])):
        raise ValueError(f"{name} must contain boolean or 0/1 values.")
    return array.astype(dtype=bool)

def validate_alpha_grid(name: str, value: Any) -> FloatArray:
    """
    Check that the given value is a non-empty, strictly ascending grid of thresholds in ``(0,1]``.

    Parameters
    ----------
    name
        Human-readable name of the parameter – used verbatim in the error message to ease debugging.
    value
        Scalar threshold or sequence of thresholds.

    Raises
    ------
    TypeError
        If *value* is not numeric.
    ValueError
        If *value* is empty, not strictly ascending, or has entries outside ``(0,1]``.

    Returns
    -------
    FloatArray
        The validated grid as a 1-D ``float64`` array.
    """
    array: FloatArray = validate_finite_array(name=name, value=np.atleast_1d(value)).astype(dtype=FloatDType)
    if array.ndim != 1 or array.size == 0:
        raise ValueError(f"{name} must be a non-empty 1-D sequence of thresholds.")
    if np.any(a=array <= 0.0) or np.any(a=array > 1.0):
        raise ValueError(f"{name} must contain thresholds in (0, 1].")
    if array.size > 1 and np.any(a=np.diff(array) <= 0.0):
        raise ValueError(f"{name} must be strictly ascending.")
    return array

def validate_method_id(name: str, value: Any) -> str:
    """
    Check that the given value is a non-empty string usable as a method identifier.

    Raises
    ------
    TypeError
        If *value* is not a string.
    ValueError
        If *value* is empty or only whitespace.
    """
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string. Got {type(value).__name__}.")
    if not value.strip():
        raise ValueError(f"{name} must be a non-empty string.")
    return value

def validate_dataset(
    name: str, value: Any, required_columns: Sequence[str] = (P_VALUE_COL,), truth_column: Optional[str] = TRUTH_COL
) -> pd.DataFrame:
    """
    Check that the given value is a table of hypotheses.

    The table must have a ``p_value`` column with entries in ``[0,1]`` or missing, and all the other
    *required_columns*. If *truth_column* is present, it must hold boolean (or 0/1) labels without missing entries.

    Parameters
    ----------
    name
        Human-readable name of the parameter – used verbatim in the error message to ease debugging.
    value
        Object to validate.
    required_columns
        Columns that must be present.
    truth_column
        Name of the optional ground-truth column, or None to skip its validation.

    Raises
    ------
    TypeError
        If *value* is not a ``pandas.DataFrame``.
    ValueError
        If a required column is absent or holds invalid values.

    Returns
    -------
    pd.DataFrame
        The validated table (not copied).
    """
    if not isinstance(value, pd.DataFrame):
        raise TypeError(f"{name} must be a pandas DataFrame. Got {type(value).__name__}.")
    missing: list[str] = [col for col in required_columns if col not in value.columns]
    if missing:
        raise ValueError(f"{name} is missing required column(s): {', '.join(missing)}.")
    if P_VALUE_COL in value.columns:
        p_values: FloatArray = pd.to_numeric(value[P_VALUE_COL], errors="raise").to_numpy(
            dtype=FloatDType, na_value=np.nan
        )
        validate_probability_values(name=f"{name}[{P_VALUE_COL!r}]", value=p_values, allow_nan=True)
    if truth_column is not None and truth_column in value.columns:
        validate_truth_labels(name=f"{name}[{truth_column!r}]", value=value[truth_column].to_numpy())
    return value
