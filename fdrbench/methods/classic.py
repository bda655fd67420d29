"""
Classic correction procedures exposed under the plug-in contract.

The adjustments delegate to ``statsmodels.stats.multitest.multipletests``. Missing p-values are kept missing and the
remaining entries are adjusted among themselves, so that the output stays aligned to the input order.

A covariate-stratified Benjamini-Hochberg procedure is included as a minimal covariate-aware baseline; like the
covariate-aware methods it stands for, it fails on degenerate covariates (zero variance, too few bins with data).
"""
from fdrbench.methods.extractors import item_extractor
from fdrbench.methods.registry import Registry
from fdrbench.settings import DEFAULT_COVARIATE_BINS
from fdrbench.types import BoolArray, FloatArray, FloatDType, IntArray
from fdrbench._validators import validate_bounded_value, validate_int_value, validate_probability_values
from statsmodels.stats.multitest import multipletests

import numpy.typing as npt
import pandas as pd
import numpy as np


def _adjust(p_value: npt.ArrayLike, method: str, alpha: float = 0.05) -> tuple[BoolArray, FloatArray]:
    """
    Run ``multipletests`` on the observed p-values and scatter the results back to the input positions.

    Parameters
    ----------
    p_value
        One-dimensional p-values, possibly with missing entries.
    method
        ``statsmodels`` method name (``"bonferroni"``, ``"holm"``, ``"fdr_bh"``, ...).
    alpha
        Level passed to ``multipletests``; only the two-stage procedures depend on it for their adjusted values.

    Returns
    -------
    tuple[BoolArray, FloatArray]
        Rejection flags at level *alpha* (False where missing) and adjusted p-values (NaN where missing).
    """
    p_arr: FloatArray = validate_probability_values(name="p_value", value=p_value, allow_nan=True)
    observed: BoolArray = ~np.isnan(p_arr)
    reject: BoolArray = np.zeros(shape=p_arr.shape, dtype=bool)
    adjusted: FloatArray = np.full(shape=p_arr.shape, fill_value=np.nan, dtype=FloatDType)
    if not np.any(a=observed):
        return reject, adjusted

    rejected, corrected, _, _ = multipletests(
        p_arr[observed],
        alpha=alpha,
        method=method,
        is_sorted=False,
        returnsorted=False,
    )
    reject[observed] = np.asarray(rejected, dtype=bool)
    adjusted[observed] = np.clip(np.asarray(corrected, dtype=FloatDType), 0.0, 1.0)
    return reject, adjusted


def unadjusted(p_value: npt.ArrayLike) -> FloatArray:
    """
    Uncorrected baseline: the q-values are the p-values themselves.
    """
    return validate_probability_values(name="p_value", value=p_value, allow_nan=True)


def bonferroni(p_value: npt.ArrayLike) -> FloatArray:
    """
    Bonferroni family-wise error correction.
    """
    return _adjust(p_value=p_value, method="bonferroni")[1]


def holm(p_value: npt.ArrayLike) -> FloatArray:
    """
    Holm step-down family-wise error correction.
    """
    return _adjust(p_value=p_value, method="holm")[1]


def benjamini_hochberg(p_value: npt.ArrayLike) -> FloatArray:
    """
    Benjamini-Hochberg step-up FDR correction.
    """
    return _adjust(p_value=p_value, method="fdr_bh")[1]


def benjamini_yekutieli(p_value: npt.ArrayLike) -> FloatArray:
    """
    Benjamini-Yekutieli FDR correction, valid under arbitrary dependence.
    """
    return _adjust(p_value=p_value, method="fdr_by")[1]


def two_stage_bh(p_value: npt.ArrayLike, alpha: float = 0.05) -> tuple[BoolArray, FloatArray]:
    """
    Two-stage adaptive Benjamini-Krieger-Yekutieli procedure.

    The adjusted values depend on the first-stage level *alpha*. The function returns the pair ``(reject, adjusted)``,
    so it is registered with ``item_extractor(1)``.
    """
    alpha = validate_bounded_value(name="alpha", value=alpha, min_value=0.0, max_value=1.0, min_inclusive=False)
    return _adjust(p_value=p_value, method="fdr_tsbky", alpha=alpha)


def stratified_bh(
    p_value: npt.ArrayLike, ind_covariate: npt.ArrayLike, n_bins: int = DEFAULT_COVARIATE_BINS
) -> FloatArray:
    """
    Benjamini-Hochberg applied separately within quantile bins of the independent covariate.

    Parameters
    ----------
    p_value
        One-dimensional p-values, possibly with missing entries.
    ind_covariate
        Independent covariate aligned with *p_value*.
    n_bins
        Number of covariate quantile bins.

    Raises
    ------
    ValueError
        If the covariate has zero variance, has missing values, or yields fewer than two bins with data.

    Returns
    -------
    FloatArray
        Adjusted p-values, BH-adjusted within each bin.
    """
    n_bins = validate_int_value(name="n_bins", value=n_bins, min_value=2)
    p_arr: FloatArray = validate_probability_values(name="p_value", value=p_value, allow_nan=True)
    cov: FloatArray = np.asarray(ind_covariate, dtype=FloatDType)
    if cov.shape != p_arr.shape:
        raise ValueError(f"ind_covariate must have shape {p_arr.shape}; got {cov.shape}.")
    if np.any(a=np.isnan(cov)):
        raise ValueError("ind_covariate must not contain missing values.")
    if np.ptp(a=cov) == 0.0:
        raise ValueError("ind_covariate has zero variance; cannot stratify.")

    bins: IntArray = pd.qcut(x=cov, q=n_bins, labels=False, duplicates="drop").astype(dtype=np.int64)
    levels: IntArray = np.unique(bins)
    if levels.size < 2:
        raise ValueError(f"Only {levels.size} covariate bin(s) with data; need at least 2.")

    adjusted: FloatArray = np.full(shape=p_arr.shape, fill_value=np.nan, dtype=FloatDType)
    for level in levels:
        in_bin: BoolArray = bins == level
        adjusted[in_bin] = _adjust(p_value=p_arr[in_bin], method="fdr_bh")[1]
    return adjusted


def default_registry() -> Registry:
    """
    Registry with the classic procedures, in the default comparison order.

    Identifiers: ``unadjusted``, ``bonf``, ``holm``, ``bh``, ``by``, ``bky``, ``stratified-bh``.
    """
    registry: Registry = Registry()
    registry.register(method_id="unadjusted", func=unadjusted, description="Uncorrected p-values.")
    registry.register(method_id="bonf", func=bonferroni, description="Bonferroni correction.")
    registry.register(method_id="holm", func=holm, description="Holm step-down correction.")
    registry.register(method_id="bh", func=benjamini_hochberg, description="Benjamini-Hochberg step-up.")
    registry.register(method_id="by", func=benjamini_yekutieli, description="Benjamini-Yekutieli.")
    registry.register(
        method_id="bky", func=two_stage_bh, params={"alpha": 0.05}, extractor=item_extractor(1),
        description="Two-stage adaptive Benjamini-Krieger-Yekutieli.",
    )
    registry.register(
        method_id="stratified-bh", func=stratified_bh, params={"n_bins": DEFAULT_COVARIATE_BINS},
        description="Benjamini-Hochberg within covariate quantile bins.",
    )
    return registry
