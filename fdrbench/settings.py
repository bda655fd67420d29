"""
Global settings, shared column names, and default configuration.

This module centralizes lightweight, import-safe constants that are reused across the codebase, including:

- Canonical dataset column names (``p_value``, ``ind_covariate``, ``truth``, ...).
- The metric names emitted by the standardizer and the default threshold grid.
- Default parallelism knobs used by the replication driver (jobs, backend, tqdm).
- A global reproducibility seed and the default retry cap of resampling routines.

Notes
-----
Because this module is imported broadly, keep it dependency-light and free of side effects beyond defining constants.
"""
from typing import Final, Literal

import numpy as np

# Dataset columns
P_VALUE_COL: Final[str] = "p_value"
TEST_STATISTIC_COL: Final[str] = "test_statistic"
EFFECT_SIZE_COL: Final[str] = "effect_size"
STANDARD_ERROR_COL: Final[str] = "standard_error"
COVARIATE_COL: Final[str] = "ind_covariate"
TRUTH_COL: Final[str] = "truth"

#: Dataset fields that can be bound to the parameters of a correction callable.
DATASET_FIELDS: Final[tuple[str, ...]] = (
    P_VALUE_COL, TEST_STATISTIC_COL, EFFECT_SIZE_COL, STANDARD_ERROR_COL, COVARIATE_COL
)

# Standardized record schema
RECORD_COLUMNS: Final[tuple[str, ...]] = ("replicate", "method", "alpha", "metric", "value")
AGGREGATE_COLUMNS: Final[tuple[str, ...]] = ("method", "alpha", "metric", "mean", "se", "n_replicates")

#: Metrics emitted per (replicate, method, alpha), in output order.
METRIC_NAMES: Final[tuple[str, ...]] = ("FDR", "TPR", "FWER", "TNR", "rejections", "rejectprop")

#: Metrics that need ground-truth labels.
TRUTH_METRICS: Final[frozenset[str]] = frozenset({"FDR", "TPR", "FWER", "TNR"})

#: Default threshold grid: 0.01, 0.02, ..., 0.10.
DEFAULT_ALPHAS: Final[tuple[float, ...]] = tuple(float(a) for a in np.round(np.arange(1, 11) / 100.0, 2))

# Parallelism (replication driver)
ParallelBackend = Literal["serial", "threads", "processes"]
MPStartMethod = Literal["spawn", "forkserver", "fork"]

N_JOBS: int = 1
PARALLEL_BACKEND: ParallelBackend = "serial"
MP_START_METHOD: MPStartMethod = "spawn"
SHOW_PROGRESS: bool = False

# Global reproducibility seed
GLOBAL_SEED: int = 1234

# Resampling and diagnostics
DEFAULT_MAX_RESAMPLE_ATTEMPTS: int = 100
DEFAULT_COVARIATE_BINS: int = 10
