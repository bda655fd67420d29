"""
Simulation-setting sweeps.

A sweep varies some fields of a base ``SimulationConfig`` over a Cartesian grid (e.g., the number of tests, the
null-proportion curve, the effect-size distribution), runs the replication driver at every point, and reports the
standardized and aggregated metrics tagged with the setting values. Point ``i`` of the grid uses the base seed derived
with ``replicate_seed(base.seed, i)``, so points are independent of each other and of the grid size.
"""
from fdrbench.aggregation import aggregate, summarize_settings
from fdrbench.exceptions import InvalidSimulationConfigError
from fdrbench.metrics import Standardizer
from fdrbench.replication import PairedEnsemble, ReplicateEnsemble, ReplicationDriver
from fdrbench.settings import DEFAULT_ALPHAS
from fdrbench.simulation import SimulationConfig, SimulationGenerator
from fdrbench.utils import replicate_seed
from fdrbench._validators import validate_int_value
from dataclasses import dataclass, fields, replace
from typing import Any, Iterator, Mapping, Optional, Sequence

import numpy.typing as npt
import pandas as pd

import itertools
import logging

logger = logging.getLogger(__name__)

_SWEEPABLE: frozenset[str] = frozenset(f.name for f in fields(SimulationConfig)) - {"seed", "name"}


def setting_label(value: Any) -> str:
    """
    Short label of a grid value: its ``name`` attribute when it has one, its ``repr`` otherwise.
    """
    name: Any = getattr(value, "name", None)
    if isinstance(name, str) and name:
        return name
    return repr(value)


@dataclass
class SweepPoint:
    """
    One point of a settings grid.
    """
    index: int
    values: dict[str, Any]
    config: SimulationConfig

    @property
    def labels(self) -> dict[str, str]:
        return {k: setting_label(value=v) for k, v in self.values.items()}


@dataclass
class SweepResult:
    """
    Tables of a sweep, each tagged with one column per swept field.

    Attributes
    ----------
    records
        Standardized records of every point (and arm, for paired sweeps).
    aggregated
        Mean aggregation per point (and arm).
    paired_difference
        Informative minus uninformative aggregation per point; None for unpaired sweeps.
    ensembles
        Raw ensembles per point index.
    """
    records: pd.DataFrame
    aggregated: pd.DataFrame
    paired_difference: Optional[pd.DataFrame]
    ensembles: dict[int, ReplicateEnsemble | PairedEnsemble]


class SettingsSweep:
    """
    Cartesian grid of simulation settings around a base configuration.

    Parameters
    ----------
    base_config
        Configuration providing every field that is not swept, and the base seed.
    grid
        ``{field name: values}``; field names must be ``SimulationConfig`` fields other than ``seed`` and ``name``.

    Raises
    ------
    InvalidSimulationConfigError
        If a field is unknown or has no values, or a grid point yields an invalid configuration.
    """
    def __init__(self, base_config: SimulationConfig, grid: Mapping[str, Sequence[Any]]) -> None:
        if not isinstance(base_config, SimulationConfig):
            raise TypeError(f"base_config must be a SimulationConfig. Got {type(base_config).__name__}.")
        unknown: list[str] = [k for k in grid if k not in _SWEEPABLE]
        if unknown:
            raise InvalidSimulationConfigError(
                f"Unknown or non-sweepable field(s): {', '.join(unknown)}; "
                f"expected among {', '.join(sorted(_SWEEPABLE))}."
            )
        empty: list[str] = [k for k, v in grid.items() if len(v) == 0]
        if empty:
            raise InvalidSimulationConfigError(f"Field(s) with no values: {', '.join(empty)}.")
        self._base: SimulationConfig = base_config
        self._grid: dict[str, list[Any]] = {k: list(v) for k, v in grid.items()}
        self._points: list[SweepPoint] = self._build_points()

    def _build_points(self) -> list[SweepPoint]:
        keys: list[str] = list(self._grid)
        points: list[SweepPoint] = []
        for index, combo in enumerate(itertools.product(*(self._grid[k] for k in keys))):
            values: dict[str, Any] = dict(zip(keys, combo))
            seed: int = replicate_seed(base_seed=self._base.seed, replicate_index=index)
            label: str = ", ".join(f"{k}={setting_label(value=v)}" for k, v in values.items())
            config: SimulationConfig = replace(self._base, seed=seed, name=label, **values)
            points.append(SweepPoint(index=index, values=values, config=config))
        return points

    @property
    def swept_fields(self) -> list[str]:
        return list(self._grid)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[SweepPoint]:
        return iter(self._points)

    def run(
        self, driver: ReplicationDriver, n_replicates: int, alphas: npt.ArrayLike = DEFAULT_ALPHAS,
        paired: bool = True, exclude_methods: Sequence[str] = ()
    ) -> SweepResult:
        """
        Run every grid point and collect tagged tables.

        Parameters
        ----------
        driver
            Replication driver (holds the executor and the parallel backend).
        n_replicates
            Replicates per point.
        alphas
            Threshold grid of the standardizer.
        paired
            Whether to analyse the uninformative variant too and report the paired difference.
        exclude_methods
            Methods dropped before aggregation.
        """
        n_replicates = validate_int_value(name="n_replicates", value=n_replicates, min_value=1)
        standardizer: Standardizer = Standardizer(alphas=alphas)
        records: dict[int, pd.DataFrame] = {}
        aggregated: dict[int, pd.DataFrame] = {}
        differences: dict[int, pd.DataFrame] = {}
        ensembles: dict[int, ReplicateEnsemble | PairedEnsemble] = {}

        for point in self._points:
            logger.info("Sweep point %d/%d: %s", point.index + 1, len(self._points), point.config.name)
            ensemble = driver.run_simulation(
                generator=SimulationGenerator(config=point.config), n_replicates=n_replicates, paired=paired
            )
            ensembles[point.index] = ensemble
            if isinstance(ensemble, PairedEnsemble):
                arms: dict[str, pd.DataFrame] = standardizer.paired(ensemble=ensemble)
                records[point.index] = pd.concat(
                    objs=[table.assign(arm=arm) for arm, table in arms.items()], ignore_index=True
                )
                aggregated[point.index] = pd.concat(
                    objs=[
                        aggregate(records=table, exclude_methods=exclude_methods).assign(arm=arm)
                        for arm, table in arms.items()
                    ],
                    ignore_index=True,
                )
                differences[point.index] = aggregate(
                    records=arms["informative"], exclude_methods=exclude_methods, mode="paired-difference",
                    other=arms["uninformative"],
                )
            else:
                records[point.index] = standardizer(ensemble)
                aggregated[point.index] = aggregate(records=records[point.index], exclude_methods=exclude_methods)

        return SweepResult(
            records=self._tag(tables=records),
            aggregated=self._tag(tables=aggregated),
            paired_difference=self._tag(tables=differences) if paired else None,
            ensembles=ensembles,
        )

    def _tag(self, tables: dict[int, pd.DataFrame]) -> pd.DataFrame:
        stacked: pd.DataFrame = summarize_settings(frames=tables, setting_column="setting_index")
        for key in reversed(self.swept_fields):
            labels: dict[int, str] = {p.index: p.labels[key] for p in self._points}
            stacked.insert(loc=1, column=key, value=stacked["setting_index"].map(labels))
        return stacked

    def __repr__(self) -> str:
        return f"SettingsSweep(fields={self.swept_fields}, n_points={len(self)})"
