"""
Standardizer: threshold-indexed rejection metrics in long format.

For every replicate, method and threshold ``alpha`` of an ascending grid, a hypothesis is *rejected* when its q-value
is ``<= alpha`` (a missing q-value is never rejected). With ``m`` tests, ``R`` rejections, ``V`` false rejections
(rejected nulls), ``S`` true rejections, ``m1`` non-nulls and ``m0`` nulls:

- ``rejections`` = :math:`R`
- ``rejectprop`` = :math:`R / m`
- ``FDR`` = :math:`V / \\max(1, R)` (zero when nothing is rejected)
- ``TPR`` = :math:`S / \\max(1, m_1)`
- ``FWER`` = :math:`\\mathbb{1}[V > 0]`
- ``TNR`` = :math:`(m_0 - V) / \\max(1, m_0)`

Without ground truth, only ``rejections`` and ``rejectprop`` are emitted. Methods whose q-value column is entirely
missing in a replicate are skipped for that replicate. Output rows are ordered by replicate, method (registry order),
threshold (ascending) and metric (``METRIC_NAMES`` order); the functions are pure, so standardizing the same ensemble
twice gives identical tables.
"""
from fdrbench.exceptions import MissingGroundTruthWarning
from fdrbench.executor import BenchResult
from fdrbench.replication import PairedEnsemble, ReplicateEnsemble
from fdrbench.settings import DEFAULT_ALPHAS, METRIC_NAMES, RECORD_COLUMNS, TRUTH_METRICS
from fdrbench.types import BoolArray, FloatArray, FloatDType, IntArray
from fdrbench._validators import validate_alpha_grid, validate_truth_labels
from typing import Any, Iterable, Optional, Sequence

import numpy.typing as npt
import pandas as pd
import numpy as np

import warnings


def _rejection_matrix(qvalues: FloatArray, alphas: FloatArray) -> BoolArray:
    """
    Rejection matrix of shape ``(m, n_alphas)``; NaN compares False, so missing q-values are never rejected.
    """
    with np.errstate(invalid="ignore"):
        return qvalues[:, None] <= alphas[None, :]


def _metric_grid(
    qvalues: FloatArray, truth: Optional[BoolArray], alphas: FloatArray
) -> dict[str, FloatArray]:
    m: int = qvalues.shape[0]
    rejected: BoolArray = _rejection_matrix(qvalues=qvalues, alphas=alphas)
    n_rejected: IntArray = rejected.sum(axis=0)
    grid: dict[str, FloatArray] = {
        "rejections": n_rejected.astype(dtype=FloatDType),
        "rejectprop": n_rejected / float(m) if m else np.zeros(shape=alphas.shape, dtype=FloatDType),
    }
    if truth is None:
        return grid

    m1: int = int(np.count_nonzero(a=truth))
    m0: int = m - m1
    false_rej: IntArray = rejected[~truth].sum(axis=0)
    true_rej: IntArray = rejected[truth].sum(axis=0)
    grid["FDR"] = false_rej / np.maximum(1, n_rejected)
    grid["TPR"] = true_rej / float(max(1, m1))
    grid["FWER"] = (false_rej > 0).astype(dtype=FloatDType)
    grid["TNR"] = (m0 - false_rej) / float(max(1, m0))
    return grid


def rejection_metrics(
    qvalues: npt.ArrayLike, truth: Optional[npt.ArrayLike], alpha: float
) -> dict[str, float]:
    """
    Rejection-derived metrics of one q-value vector at one threshold.

    Parameters
    ----------
    qvalues
        Adjusted p-values; missing entries are never rejected.
    truth
        Boolean non-null indicators, or None when unknown.
    alpha
        Threshold in ``(0,1]``.

    Returns
    -------
    dict[str, float]
        Metric name to value, in ``METRIC_NAMES`` order, restricted to the computable metrics.
    """
    q: FloatArray = np.asarray(qvalues, dtype=FloatDType)
    if q.ndim != 1:
        raise ValueError(f"qvalues must be one-dimensional; got shape {q.shape}.")
    labels: Optional[BoolArray] = None if truth is None else validate_truth_labels(
        name="truth", value=truth, size=q.shape[0]
    )
    alphas: FloatArray = validate_alpha_grid(name="alpha", value=alpha)
    if alphas.size != 1:
        raise ValueError("alpha must be a single threshold; use standardize_result for a grid.")
    grid: dict[str, FloatArray] = _metric_grid(qvalues=q, truth=labels, alphas=alphas)
    return {name: float(grid[name][0]) for name in METRIC_NAMES if name in grid}


def standardize_result(
    result: BenchResult, alphas: npt.ArrayLike = DEFAULT_ALPHAS, replicate_id: Any = None,
    metrics: Optional[Sequence[str]] = None, method_ids: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Long-format metric records of one replicate.

    Parameters
    ----------
    result
        Executor output of one replicate.
    alphas
        Ascending threshold grid in ``(0,1]``.
    replicate_id
        Identifier written to the ``replicate`` column; defaults to the result's own replicate id.
    metrics
        Subset of ``METRIC_NAMES`` to emit; all by default.
    method_ids
        Method order; defaults to the result's column order.

    Returns
    -------
    pd.DataFrame
        Columns ``replicate, method, alpha, metric, value``.
    """
    grid_alphas: FloatArray = validate_alpha_grid(name="alphas", value=alphas)
    wanted: tuple[str, ...] = _validate_metrics(metrics=metrics)
    rid: Any = result.replicate_id if replicate_id is None else replicate_id
    truth: Optional[BoolArray] = None if result.truth is None else result.truth.to_numpy(dtype=bool)
    ordered: list[str] = result.method_ids if method_ids is None else [
        mid for mid in method_ids if mid in result.qvalues.columns
    ]

    frames: list[pd.DataFrame] = []
    for method_id in ordered:
        q: FloatArray = result.qvalues[method_id].to_numpy(dtype=FloatDType, na_value=np.nan)
        if q.size == 0 or np.all(a=np.isnan(q)):
            continue
        grid: dict[str, FloatArray] = _metric_grid(qvalues=q, truth=truth, alphas=grid_alphas)
        names: list[str] = [name for name in wanted if name in grid]
        if not names:
            continue
        values: FloatArray = np.column_stack([grid[name] for name in names]).ravel()
        frames.append(pd.DataFrame(data={
            "replicate": [rid] * values.size,
            "method": method_id,
            "alpha": np.repeat(grid_alphas, len(names)),
            "metric": np.tile(np.asarray(names, dtype=object), grid_alphas.size),
            "value": values,
        }))

    if not frames:
        return _empty_records()
    return pd.concat(objs=frames, ignore_index=True)


def _validate_metrics(metrics: Optional[Sequence[str]]) -> tuple[str, ...]:
    if metrics is None:
        return METRIC_NAMES
    unknown: list[str] = [name for name in metrics if name not in METRIC_NAMES]
    if unknown:
        raise ValueError(f"Unknown metric(s) {', '.join(unknown)}; expected among {', '.join(METRIC_NAMES)}.")
    return tuple(name for name in METRIC_NAMES if name in set(metrics))


def _empty_records() -> pd.DataFrame:
    return pd.DataFrame(data={
        "replicate": pd.Series(dtype=object),
        "method": pd.Series(dtype=object),
        "alpha": pd.Series(dtype=FloatDType),
        "metric": pd.Series(dtype=object),
        "value": pd.Series(dtype=FloatDType),
    })


def standardize(
    ensemble: ReplicateEnsemble | Iterable[BenchResult], alphas: npt.ArrayLike = DEFAULT_ALPHAS,
    metrics: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Long-format metric records of a whole replicate ensemble.

    Parameters
    ----------
    ensemble
        Replicate ensemble (or any iterable of results, numbered by position when they carry no replicate id).
    alphas
        Ascending threshold grid in ``(0,1]``.
    metrics
        Subset of ``METRIC_NAMES`` to emit; all by default.

    Warns
    -----
    MissingGroundTruthWarning
        Once, if any replicate lacks ground truth and truth-based metrics were requested.

    Returns
    -------
    pd.DataFrame
        Columns ``replicate, method, alpha, metric, value``.
    """
    if isinstance(ensemble, PairedEnsemble):
        raise TypeError("Standardize each arm of a PairedEnsemble separately.")
    grid_alphas: FloatArray = validate_alpha_grid(name="alphas", value=alphas)
    wanted: tuple[str, ...] = _validate_metrics(metrics=metrics)
    results: list[BenchResult] = list(ensemble)
    method_ids: Optional[list[str]] = ensemble.method_ids if isinstance(ensemble, ReplicateEnsemble) else None

    frames: list[pd.DataFrame] = []
    n_without_truth: int = 0
    for pos, result in enumerate(results):
        if result.truth is None and result.n_tests:
            n_without_truth += 1
        rid: Any = pos if result.replicate_id is None else result.replicate_id
        frames.append(standardize_result(
            result=result, alphas=grid_alphas, replicate_id=rid, metrics=wanted, method_ids=method_ids
        ))

    if n_without_truth and TRUTH_METRICS.intersection(wanted):
        warnings.warn(
            f"{n_without_truth} replicate(s) have no ground truth; only rejections and rejectprop were computed "
            "for them.",
            MissingGroundTruthWarning,
            stacklevel=2,
        )

    frames = [f for f in frames if not f.empty]
    if not frames:
        return _empty_records()
    records: pd.DataFrame = pd.concat(objs=frames, ignore_index=True)
    return records.loc[:, list(RECORD_COLUMNS)]


class Standardizer:
    """
    Holds a threshold grid (and optionally a metric subset) and standardizes ensembles with it.

    Parameters
    ----------
    alphas
        Ascending threshold grid in ``(0,1]``.
    metrics
        Subset of ``METRIC_NAMES``; all by default.
    """
    def __init__(self, alphas: npt.ArrayLike = DEFAULT_ALPHAS, metrics: Optional[Sequence[str]] = None) -> None:
        self._alphas: FloatArray = validate_alpha_grid(name="alphas", value=alphas)
        self._metrics: tuple[str, ...] = _validate_metrics(metrics=metrics)

    @property
    def alphas(self) -> FloatArray:
        return self._alphas.copy()

    @property
    def metrics(self) -> tuple[str, ...]:
        return self._metrics

    def __call__(self, ensemble: ReplicateEnsemble | Iterable[BenchResult]) -> pd.DataFrame:
        return standardize(ensemble=ensemble, alphas=self._alphas, metrics=self._metrics)

    def paired(self, ensemble: PairedEnsemble) -> dict[str, pd.DataFrame]:
        """
        Standardize both arms of a paired ensemble.
        """
        return {name: self(arm) for name, arm in ensemble.arms().items()}

    def __repr__(self) -> str:
        return f"Standardizer(alphas={self._alphas.tolist()}, metrics={list(self._metrics)})"
