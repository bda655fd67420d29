"""
fdrbench
========

Benchmarking engine for multiple-testing correction methods.

Public re-exports
-----------------
``Registry`` / ``MethodSpec``
    Declarative registry of correction methods (callable, fixed parameters, output extractor).
``BenchExecutor``
    Runs every registered method on a dataset with per-method fault isolation.
``SimulationConfig`` / ``SimulationGenerator``
    Synthetic replicates with informative and uninformative covariates.
``ReplicationDriver``
    Parallel replicate runs collected into ordered ensembles.
``Standardizer`` / ``standardize``
    Threshold-indexed rejection metrics in long format.
``Aggregator`` / ``aggregate``
    Mean and paired-difference aggregation across replicates.

Notes
-----
The sub-packages

* :pymod:`fdrbench.methods`
* :pymod:`fdrbench.distributions`

provide the method registry with classic defaults and the pluggable simulation components. Sub-modules are imported
lazily on first attribute access.

The package logs through :pymod:`logging` under the ``fdrbench`` logger and installs only a ``NullHandler``;
configure handlers and levels in the calling application.
"""
from typing import Any, TYPE_CHECKING

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

_EXPORTS: dict[str, str] = {
    "MethodSpec": "fdrbench.methods",
    "Registry": "fdrbench.methods",
    "default_registry": "fdrbench.methods",
    "BenchExecutor": "fdrbench.executor",
    "BenchResult": "fdrbench.executor",
    "run_bench": "fdrbench.executor",
    "SimulationConfig": "fdrbench.simulation",
    "SimulationGenerator": "fdrbench.simulation",
    "ReplicationDriver": "fdrbench.replication",
    "ReplicateEnsemble": "fdrbench.replication",
    "PairedEnsemble": "fdrbench.replication",
    "Standardizer": "fdrbench.metrics",
    "standardize": "fdrbench.metrics",
    "Aggregator": "fdrbench.aggregation",
    "aggregate": "fdrbench.aggregation",
    "failure_summary": "fdrbench.aggregation",
    "SettingsSweep": "fdrbench.sweep",
    "Scenario": "fdrbench.scenarios",
    "build_scenario": "fdrbench.scenarios",
}

__all__ = sorted(_EXPORTS)

if TYPE_CHECKING:
    from .aggregation import Aggregator, aggregate, failure_summary
    from .executor import BenchExecutor, BenchResult, run_bench
    from .methods import MethodSpec, Registry, default_registry
    from .metrics import Standardizer, standardize
    from .replication import PairedEnsemble, ReplicateEnsemble, ReplicationDriver
    from .scenarios import Scenario, build_scenario
    from .simulation import SimulationConfig, SimulationGenerator
    from .sweep import SettingsSweep


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        import importlib
        return getattr(importlib.import_module(_EXPORTS[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
