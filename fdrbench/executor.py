"""
Benchmark executor: runs every registered method on one dataset with per-method fault isolation.

For each method, in registry order, the executor binds the dataset columns to the method's declared parameters, calls
it with its fixed parameters, extracts the adjusted p-values, and checks that they form a numeric vector of length
``m`` in ``[0,1]`` (missing entries allowed). Any exception, unsupported input, malformed output, or timeout is
recorded as a ``MethodExecutionFailure`` and the method's column is left entirely missing; the run itself never
raises because of a method.
"""
from fdrbench.exceptions import MethodExecutionFailure
from fdrbench.methods import MethodSpec, Registry
from fdrbench.settings import DATASET_FIELDS, TRUTH_COL
from fdrbench.types import BoolArray, Dataset, FloatArray, FloatDType
from fdrbench._logging import log_method_failure
from fdrbench._validators import validate_bounded_value, validate_dataset, validate_truth_labels
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import pandas as pd
import numpy as np

import threading
import logging
import time

logger = logging.getLogger(__name__)


class _MethodFailed(Exception):
    """
    Internal signal carrying the failure category of one method call.
    """
    def __init__(self, kind: str, cause: str, message: str) -> None:
        super().__init__(message)
        self.kind: str = kind
        self.cause: str = cause
        self.message: str = message


@dataclass
class BenchResult:
    """
    Adjusted p-values of every registered method on one dataset.

    Attributes
    ----------
    qvalues
        Table of shape ``(m, n_methods)``, one column per method in registry order. A failed method has an entirely
        missing column.
    truth
        Boolean non-null indicators carried over from the dataset, if present.
    features
        Passthrough columns requested for downstream diagnostics (e.g., the covariate).
    failures
        Per-method failure records, keyed by method id.
    metadata
        Run information: ``replicate_id``, ``n_tests``, ``runtime_s`` (seconds per method) and free-form tags. A
        replicate that failed as a whole carries ``replicate_failure``.
    """
    qvalues: pd.DataFrame
    truth: Optional[pd.Series] = None
    features: pd.DataFrame = field(default_factory=pd.DataFrame)
    failures: dict[str, MethodExecutionFailure] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def n_tests(self) -> int:
        return int(self.qvalues.shape[0])

    @property
    def method_ids(self) -> list[str]:
        return [str(c) for c in self.qvalues.columns]

    @property
    def replicate_id(self) -> Any:
        return self.metadata.get("replicate_id")

    @property
    def succeeded(self) -> list[str]:
        """
        Methods with at least one observed q-value.
        """
        observed: pd.Series = self.qvalues.notna().any(axis=0)
        return [str(c) for c in self.qvalues.columns if bool(observed[c])]

    @property
    def failed(self) -> list[str]:
        """
        Methods whose column is entirely missing.
        """
        succeeded: set[str] = set(self.succeeded)
        return [mid for mid in self.method_ids if mid not in succeeded]

    @property
    def has_truth(self) -> bool:
        return self.truth is not None

    @property
    def is_replicate_failure(self) -> bool:
        return "replicate_failure" in self.metadata

    def to_frame(self) -> pd.DataFrame:
        """
        Wide table: q-values, then the truth column (if any), then the passthrough features.
        """
        parts: list[pd.DataFrame | pd.Series] = [self.qvalues]
        if self.truth is not None:
            parts.append(self.truth.rename(TRUTH_COL))
        if len(self.features.columns):
            parts.append(self.features)
        return pd.concat(objs=parts, axis=1)


def empty_result(
    method_ids: Sequence[str], n_tests: int = 0, truth: Optional[pd.Series] = None, replicate_id: Any = None,
    cause: str = "replicate", message: str = ""
) -> BenchResult:
    """
    All-missing result standing in for a replicate whose whole task failed.

    Parameters
    ----------
    method_ids
        Columns of the result, in registry order.
    n_tests
        Number of rows (0 when the dataset could not even be built).
    truth
        Ground truth, if known.
    replicate_id
        Replicate the result stands for.
    cause
        Name of the underlying exception type.
    message
        Human-readable description of the failure.
    """
    qvalues: pd.DataFrame = pd.DataFrame(
        data=np.full(shape=(n_tests, len(method_ids)), fill_value=np.nan, dtype=FloatDType),
        columns=list(method_ids),
    )
    failures: dict[str, MethodExecutionFailure] = {
        mid: MethodExecutionFailure(
            method_id=mid, replicate_id=replicate_id, kind="replicate", cause=cause, message=message
        )
        for mid in method_ids
    }
    metadata: dict[str, Any] = {
        "replicate_id": replicate_id,
        "n_tests": n_tests,
        "runtime_s": {},
        "replicate_failure": f"{cause}: {message}",
    }
    return BenchResult(
        qvalues=qvalues, truth=truth, features=pd.DataFrame(index=qvalues.index), failures=failures,
        metadata=metadata,
    )


class BenchExecutor:
    """
    Runs a registry of correction methods against datasets.

    Parameters
    ----------
    registry
        Methods to run, in comparison order. Treated as read-only.
    ground_truth_column
        Name of the boolean ground-truth column. If absent from a dataset, the result simply has no truth. ``None``
        disables truth extraction.
    feature_columns
        Dataset columns carried into ``BenchResult.features`` (e.g., ``"ind_covariate"`` for covariate diagnostics).
    timeout
        Optional per-method wall-clock limit in seconds. A method exceeding it is recorded as failed; it keeps running
        in an abandoned daemon thread, which does not hold the process open at exit.
    """
    def __init__(
        self, registry: Registry, ground_truth_column: Optional[str] = TRUTH_COL, feature_columns: Sequence[str] = (),
        timeout: Optional[float] = None
    ) -> None:
        if not isinstance(registry, Registry):
            raise TypeError(f"registry must be a Registry. Got {type(registry).__name__}.")
        if isinstance(feature_columns, str):
            feature_columns = (feature_columns,)
        self._registry: Registry = registry
        self._ground_truth_column: Optional[str] = ground_truth_column
        self._feature_columns: tuple[str, ...] = tuple(feature_columns)
        self._timeout: Optional[float] = None if timeout is None else validate_bounded_value(
            name="timeout", value=timeout, min_value=0.0, min_inclusive=False
        )

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def method_ids(self) -> list[str]:
        return self._registry.list_ids()

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def _call(self, spec: MethodSpec, kwargs: dict[str, Any]) -> Any:
        if self._timeout is None:
            return spec.func(**kwargs)
        outcome: dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["value"] = spec.func(**kwargs)
            except BaseException as exc:
                outcome["error"] = exc

        # Daemon thread: an abandoned method must not hold the interpreter open at exit.
        worker: threading.Thread = threading.Thread(target=target, name=f"fdrbench-{spec.method_id}", daemon=True)
        worker.start()
        worker.join(timeout=self._timeout)
        if worker.is_alive():
            raise _MethodFailed(kind="timeout", cause="TimeoutError", message=f"exceeded {self._timeout:g} s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["value"]

    @staticmethod
    def _coerce(spec: MethodSpec, raw: Any, n_tests: int) -> FloatArray:
        try:
            extracted: Any = spec.extractor(raw)
        except Exception as exc:
            raise _MethodFailed(
                kind="invalid_output", cause=type(exc).__name__, message=f"extractor failed: {exc}"
            ) from exc
        if isinstance(extracted, (pd.Series, pd.DataFrame)):
            extracted = extracted.to_numpy()
        array: np.ndarray = np.asarray(extracted)
        if array.dtype == np.bool_ or not (
            np.issubdtype(array.dtype, np.number) or array.dtype == object
        ) or np.issubdtype(array.dtype, np.complexfloating):
            raise _MethodFailed(
                kind="invalid_output", cause="invalid_output",
                message=f"expected a numeric vector, got dtype {array.dtype.name}",
            )
        try:
            values: FloatArray = pd.to_numeric(pd.Series(array.ravel()), errors="raise").to_numpy(
                dtype=FloatDType, na_value=np.nan
            ).reshape(array.shape)
        except (TypeError, ValueError) as exc:
            raise _MethodFailed(
                kind="invalid_output", cause=type(exc).__name__, message=f"non-numeric output: {exc}"
            ) from exc
        if values.ndim > 1 and max(values.shape) == values.size:
            values = values.reshape(-1)
        if values.ndim != 1 or values.shape[0] != n_tests:
            raise _MethodFailed(
                kind="length_mismatch", cause="length_mismatch",
                message=f"expected {n_tests} adjusted p-values, got shape {values.shape}",
            )
        if np.any(a=np.isinf(values)):
            raise _MethodFailed(kind="invalid_output", cause="invalid_output", message="infinite adjusted p-values")
        observed: FloatArray = values[~np.isnan(values)]
        if np.any(a=observed < 0.0) or np.any(a=observed > 1.0):
            raise _MethodFailed(
                kind="invalid_output", cause="invalid_output", message="adjusted p-values outside [0, 1]"
            )
        return values

    def _run_method(self, spec: MethodSpec, columns: dict[str, Any], n_tests: int) -> FloatArray:
        missing: list[str] = [f for f in spec.required_fields if f not in columns]
        if missing:
            raise _MethodFailed(
                kind="unsupported", cause="unsupported",
                message=f"dataset lacks required field(s): {', '.join(missing)}",
            )
        try:
            raw: Any = self._call(spec=spec, kwargs=spec.build_kwargs(columns=columns))
        except _MethodFailed:
            raise
        except NotImplementedError as exc:
            raise _MethodFailed(kind="unsupported", cause=type(exc).__name__, message=str(exc)) from exc
        except Exception as exc:
            raise _MethodFailed(kind="exception", cause=type(exc).__name__, message=str(exc)) from exc
        return self._coerce(spec=spec, raw=raw, n_tests=n_tests)

    def _truth(self, dataset: Dataset, n_tests: int) -> Optional[pd.Series]:
        col: Optional[str] = self._ground_truth_column
        if col is None or col not in dataset.columns:
            return None
        labels: BoolArray = validate_truth_labels(
            name=f"dataset[{col!r}]", value=dataset[col].to_numpy(), size=n_tests
        )
        return pd.Series(data=labels, index=dataset.index, name=TRUTH_COL, dtype=bool)

    def run(self, dataset: Dataset, replicate_id: Any = None, tags: Optional[dict[str, Any]] = None) -> BenchResult:
        """
        Run every registered method on *dataset*.

        Parameters
        ----------
        dataset
            Table of hypotheses with at least a ``p_value`` column.
        replicate_id
            Identifier recorded in the metadata and in failure records.
        tags
            Extra metadata entries.

        Raises
        ------
        TypeError
            If *dataset* is not a ``pandas.DataFrame``.
        ValueError
            If the dataset itself is invalid (missing ``p_value`` column, p-values outside ``[0,1]``, malformed truth,
            missing feature columns). Method failures never raise.

        Returns
        -------
        BenchResult
            Adjusted p-values, truth, features, failures and metadata.
        """
        validate_dataset(name="dataset", value=dataset, truth_column=self._ground_truth_column)
        missing_features: list[str] = [c for c in self._feature_columns if c not in dataset.columns]
        if missing_features:
            raise ValueError(f"dataset is missing feature column(s): {', '.join(missing_features)}.")

        n_tests: int = int(dataset.shape[0])
        columns: dict[str, Any] = {
            name: dataset[name].to_numpy(copy=True) for name in DATASET_FIELDS if name in dataset.columns
        }

        qvalues: dict[str, FloatArray] = {}
        failures: dict[str, MethodExecutionFailure] = {}
        runtimes: dict[str, float] = {}
        for spec in self._registry:
            start: float = time.perf_counter()
            try:
                # Fresh column copies per method.
                method_columns: dict[str, Any] = {name: values.copy() for name, values in columns.items()}
                qvalues[spec.method_id] = self._run_method(spec=spec, columns=method_columns, n_tests=n_tests)
            except _MethodFailed as failure:
                qvalues[spec.method_id] = np.full(shape=(n_tests,), fill_value=np.nan, dtype=FloatDType)
                failures[spec.method_id] = MethodExecutionFailure(
                    method_id=spec.method_id, replicate_id=replicate_id, kind=failure.kind, cause=failure.cause,
                    message=failure.message,
                )
                log_method_failure(
                    method_id=spec.method_id, replicate_id=replicate_id, kind=failure.kind, cause=failure.cause,
                    message=failure.message, logger=logger,
                )
            runtimes[spec.method_id] = time.perf_counter() - start

        metadata: dict[str, Any] = {"replicate_id": replicate_id, "n_tests": n_tests, "runtime_s": runtimes}
        if tags:
            metadata.update(tags)
        return BenchResult(
            qvalues=pd.DataFrame(data=qvalues, index=dataset.index, columns=self.method_ids),
            truth=self._truth(dataset=dataset, n_tests=n_tests),
            features=dataset.loc[:, list(self._feature_columns)].copy(),
            failures=failures,
            metadata=metadata,
        )

    def empty_result(
        self, dataset: Optional[Dataset] = None, replicate_id: Any = None, cause: str = "replicate", message: str = ""
    ) -> BenchResult:
        """
        All-missing result for this executor's registry, shaped after *dataset* when it is available.
        """
        if dataset is None:
            return empty_result(method_ids=self.method_ids, replicate_id=replicate_id, cause=cause, message=message)
        truth: Optional[pd.Series] = None
        try:
            truth = self._truth(dataset=dataset, n_tests=int(dataset.shape[0]))
        except (TypeError, ValueError):
            truth = None
        result: BenchResult = empty_result(
            method_ids=self.method_ids, n_tests=int(dataset.shape[0]), truth=truth, replicate_id=replicate_id,
            cause=cause, message=message,
        )
        result.qvalues.index = dataset.index
        present: list[str] = [c for c in self._feature_columns if c in dataset.columns]
        result.features = dataset.loc[:, present].copy()
        return result

    def __call__(self, dataset: Dataset, replicate_id: Any = None) -> BenchResult:
        return self.run(dataset=dataset, replicate_id=replicate_id)

    def __repr__(self) -> str:
        return f"BenchExecutor(methods={self.method_ids}, timeout={self._timeout})"


def run_bench(
    dataset: Dataset, registry: Registry, ground_truth_column: Optional[str] = TRUTH_COL,
    feature_columns: Sequence[str] = (), timeout: Optional[float] = None, replicate_id: Any = None
) -> BenchResult:
    """
    Convenience wrapper: ``BenchExecutor(registry, ...).run(dataset, replicate_id)``.
    """
    executor: BenchExecutor = BenchExecutor(
        registry=registry, ground_truth_column=ground_truth_column, feature_columns=feature_columns, timeout=timeout
    )
    return executor.run(dataset=dataset, replicate_id=replicate_id)
