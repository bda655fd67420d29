"""
Aggregator: reduces standardized records across replicates.

Two modes are supported:

- ``"mean"``: group records by ``(method, alpha, metric)`` and report the sample mean, the standard error (sample
  standard deviation with ``ddof=1`` divided by :math:`\\sqrt{n}`; NaN when a single replicate contributes) and the
  number of contributing replicates. Replicates lacking a combination are excluded from its group, never zero-filled.
- ``"paired-difference"``: join two record tables on ``(replicate, method, alpha, metric)``, take the per-replicate
  difference ``A - B`` first, then reduce the differences as in ``"mean"``. This yields the standard error of the
  paired difference.

The module also carries diagnostics used alongside the aggregated curves: per-method failure summaries, rejection
overlap patterns between methods, rejections per covariate bin, and stacking of tables across simulation settings.
"""
from fdrbench.executor import BenchResult
from fdrbench.replication import PairedEnsemble, ReplicateEnsemble
from fdrbench.settings import AGGREGATE_COLUMNS, COVARIATE_COL, DEFAULT_COVARIATE_BINS, RECORD_COLUMNS
from fdrbench.types import FloatDType
from fdrbench._validators import validate_alpha_grid, validate_int_value
from typing import Any, Iterable, Literal, Mapping, Optional

import pandas as pd
import numpy as np

AggregationMode = Literal["mean", "paired-difference"]

GROUP_KEYS: tuple[str, ...] = ("method", "alpha", "metric")
PAIR_KEYS: tuple[str, ...] = ("replicate", "method", "alpha", "metric")


def _check_records(name: str, records: Any) -> pd.DataFrame:
    if not isinstance(records, pd.DataFrame):
        raise TypeError(f"{name} must be a pandas DataFrame. Got {type(records).__name__}.")
    missing: list[str] = [c for c in RECORD_COLUMNS if c not in records.columns]
    if missing:
        raise ValueError(f"{name} is missing column(s): {', '.join(missing)}.")
    return records


def _exclude(records: pd.DataFrame, exclude_methods: Iterable[str]) -> pd.DataFrame:
    excluded: set[str] = set(exclude_methods)
    if not excluded:
        return records
    return records.loc[~records["method"].isin(excluded)]


def _summarise(records: pd.DataFrame) -> pd.DataFrame:
    """
    Mean, standard error and count of ``value`` per ``(method, alpha, metric)``, in order of first appearance.
    """
    observed: pd.DataFrame = records.loc[records["value"].notna()]
    if observed.empty:
        return pd.DataFrame(columns=list(AGGREGATE_COLUMNS))
    grouped = observed.groupby(by=list(GROUP_KEYS), sort=False)["value"]
    summary: pd.DataFrame = grouped.agg(["mean", "std", "count"]).reset_index()
    n: pd.Series = summary["count"].astype(dtype=np.int64)
    se: pd.Series = summary["std"] / np.sqrt(n.astype(dtype=FloatDType))
    se = se.where(n >= 2)
    out: pd.DataFrame = pd.DataFrame(data={
        "method": summary["method"],
        "alpha": summary["alpha"].astype(dtype=FloatDType),
        "metric": summary["metric"],
        "mean": summary["mean"].astype(dtype=FloatDType),
        "se": se.astype(dtype=FloatDType),
        "n_replicates": n,
    })
    return out.loc[:, list(AGGREGATE_COLUMNS)].reset_index(drop=True)


def paired_differences(records_a: pd.DataFrame, records_b: pd.DataFrame) -> pd.DataFrame:
    """
    Per-replicate differences ``A - B`` on the records present in both tables.

    Returns
    -------
    pd.DataFrame
        Record table (``replicate, method, alpha, metric, value``) of the differences, in the order of *records_a*.
    """
    a: pd.DataFrame = _check_records(name="records_a", records=records_a)
    b: pd.DataFrame = _check_records(name="records_b", records=records_b)
    for name, table in (("records_a", a), ("records_b", b)):
        if table.duplicated(subset=list(PAIR_KEYS)).any():
            raise ValueError(f"{name} has duplicated (replicate, method, alpha, metric) records.")
    joined: pd.DataFrame = a.loc[:, list(RECORD_COLUMNS)].merge(
        b.loc[:, list(RECORD_COLUMNS)], on=list(PAIR_KEYS), how="inner", suffixes=("_a", "_b"), sort=False
    )
    joined["value"] = joined["value_a"] - joined["value_b"]
    return joined.loc[:, list(RECORD_COLUMNS)]


def aggregate(
    records: pd.DataFrame, exclude_methods: Iterable[str] = (), mode: AggregationMode = "mean",
    other: Optional[pd.DataFrame] = None
) -> pd.DataFrame:
    """
    Aggregate standardized records across replicates.

    Parameters
    ----------
    records
        Standardized records (ensemble A in paired-difference mode).
    exclude_methods
        Methods dropped before aggregation.
    mode
        ``"mean"`` or ``"paired-difference"``.
    other
        Standardized records of ensemble B; required in paired-difference mode.

    Raises
    ------
    ValueError
        For an unknown mode, or when *other* is missing in paired-difference mode.

    Returns
    -------
    pd.DataFrame
        Columns ``method, alpha, metric, mean, se, n_replicates``.
    """
    records = _check_records(name="records", records=records)
    if mode == "mean":
        return _summarise(records=_exclude(records=records, exclude_methods=exclude_methods))
    if mode == "paired-difference":
        if other is None:
            raise ValueError("Paired-difference aggregation requires the records of the second ensemble (other).")
        diffs: pd.DataFrame = paired_differences(
            records_a=_exclude(records=records, exclude_methods=exclude_methods),
            records_b=_exclude(records=_check_records(name="other", records=other), exclude_methods=exclude_methods),
        )
        return _summarise(records=diffs)
    raise ValueError(f"Unsupported aggregation mode={mode!r}; expected 'mean' or 'paired-difference'.")


class Aggregator:
    """
    Aggregation with a fixed set of excluded methods.
    """
    def __init__(self, exclude_methods: Iterable[str] = ()) -> None:
        self.exclude_methods: tuple[str, ...] = tuple(exclude_methods)

    def mean(self, records: pd.DataFrame) -> pd.DataFrame:
        return aggregate(records=records, exclude_methods=self.exclude_methods, mode="mean")

    def paired_difference(self, records_a: pd.DataFrame, records_b: pd.DataFrame) -> pd.DataFrame:
        return aggregate(
            records=records_a, exclude_methods=self.exclude_methods, mode="paired-difference", other=records_b
        )

    def __repr__(self) -> str:
        return f"Aggregator(exclude_methods={list(self.exclude_methods)})"


def failure_summary(ensemble: ReplicateEnsemble | PairedEnsemble) -> pd.DataFrame:
    """
    Per-method failure counts of an ensemble.

    Returns
    -------
    pd.DataFrame
        One row per method (registry order) with ``n_replicates``, ``n_failed``, ``failure_rate`` and
        ``most_common_cause`` (None when the method never failed). For a paired ensemble, an ``arm`` column
        distinguishes the two ensembles.
    """
    if isinstance(ensemble, PairedEnsemble):
        frames: list[pd.DataFrame] = []
        for arm, sub in ensemble.arms().items():
            table: pd.DataFrame = failure_summary(ensemble=sub)
            table.insert(loc=0, column="arm", value=arm)
            frames.append(table)
        return pd.concat(objs=frames, ignore_index=True)

    n: int = len(ensemble)
    rows: list[dict[str, Any]] = []
    for method_id in ensemble.method_ids:
        causes: list[str] = [
            res.failures[method_id].cause for res in ensemble if method_id in res.failures
        ]
        # Entirely missing columns count as failures even without a failure record.
        n_failed: int = sum(1 for res in ensemble if method_id in res.failures or method_id not in res.succeeded)
        rows.append({
            "method": method_id,
            "n_replicates": n,
            "n_failed": n_failed,
            "failure_rate": n_failed / n if n else np.nan,
            "most_common_cause": pd.Series(causes).mode().iloc[0] if causes else None,
        })
    return pd.DataFrame(
        data=rows, columns=["method", "n_replicates", "n_failed", "failure_rate", "most_common_cause"]
    )


def rejection_overlap(result: BenchResult, alpha: float, method_ids: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """
    Intersection patterns of the rejection sets of several methods at one threshold.

    Parameters
    ----------
    result
        Executor output of one replicate.
    alpha
        Threshold in ``(0,1]``.
    method_ids
        Methods to compare; every method with at least one observed q-value by default.

    Returns
    -------
    pd.DataFrame
        One row per observed rejection pattern: a boolean column per method plus ``n_tests``, the number of tests with
        that pattern. Tests rejected by no method are included (all-False pattern). Rows are sorted by decreasing
        count.
    """
    threshold: float = float(validate_alpha_grid(name="alpha", value=alpha)[0])
    methods: list[str] = result.succeeded if method_ids is None else list(method_ids)
    if not methods:
        return pd.DataFrame(data={"n_tests": [result.n_tests]})
    indicators: pd.DataFrame = pd.DataFrame(
        data={mid: (result.qvalues[mid] <= threshold).fillna(False).astype(bool) for mid in methods},
        index=result.qvalues.index,
    )
    counts: pd.DataFrame = indicators.value_counts(sort=True, dropna=False).rename("n_tests").reset_index()
    return counts


def rejections_by_covariate(
    result: BenchResult, alpha: float, covariate_column: str = COVARIATE_COL, n_bins: int = DEFAULT_COVARIATE_BINS
) -> pd.DataFrame:
    """
    Rejections per quantile bin of a passthrough covariate.

    Parameters
    ----------
    result
        Executor output whose ``features`` include *covariate_column*.
    alpha
        Threshold in ``(0,1]``.
    covariate_column
        Feature column used for binning.
    n_bins
        Number of quantile bins (fewer when the covariate has ties; one when it is constant).

    Raises
    ------
    ValueError
        If the covariate column is absent or has no observed values.

    Returns
    -------
    pd.DataFrame
        Long table with ``bin`` (interval), ``method``, ``n_tests`` (tests in the bin) and ``rejections``. Methods
        whose column is entirely missing are skipped.
    """
    if covariate_column not in result.features.columns:
        raise ValueError(f"Result features lack the covariate column {covariate_column!r}.")
    n_bins = validate_int_value(name="n_bins", value=n_bins, min_value=1)
    threshold: float = float(validate_alpha_grid(name="alpha", value=alpha)[0])
    cov: pd.Series = result.features[covariate_column]
    distinct: np.ndarray = cov.dropna().unique()
    if distinct.size == 0:
        raise ValueError(f"Covariate column {covariate_column!r} has no observed values.")
    bins: pd.Series
    if distinct.size == 1:
        # Constant covariate: a single closed bin holding every test.
        single: pd.Interval = pd.Interval(left=float(distinct[0]), right=float(distinct[0]), closed="both")
        bins = pd.Series(data=pd.Categorical([single if ok else np.nan for ok in cov.notna()]), index=cov.index)
    else:
        bins = pd.qcut(x=cov, q=n_bins, duplicates="drop")
    frames: list[pd.DataFrame] = []
    for method_id in result.succeeded:
        rejected: pd.Series = (result.qvalues[method_id] <= threshold).fillna(False)
        per_bin: pd.DataFrame = rejected.groupby(bins, observed=True).agg(["size", "sum"]).reset_index()
        per_bin.columns = ["bin", "n_tests", "rejections"]
        per_bin.insert(loc=1, column="method", value=method_id)
        frames.append(per_bin)
    if not frames:
        return pd.DataFrame(columns=["bin", "method", "n_tests", "rejections"])
    out: pd.DataFrame = pd.concat(objs=frames, ignore_index=True)
    out["rejections"] = out["rejections"].astype(dtype=np.int64)
    return out


def summarize_settings(frames: Mapping[Any, pd.DataFrame], setting_column: str = "setting") -> pd.DataFrame:
    """
    Stack tables computed under different simulation settings, tagging each row with its setting.

    Parameters
    ----------
    frames
        Setting label (or tuple of labels) to table.
    setting_column
        Name of the tag column.
    """
    tagged: list[pd.DataFrame] = []
    for setting, frame in frames.items():
        table: pd.DataFrame = frame.copy()
        table.insert(loc=0, column=setting_column, value=[setting] * len(table))
        tagged.append(table)
    if not tagged:
        return pd.DataFrame(columns=[setting_column])
    return pd.concat(objs=tagged, ignore_index=True)
