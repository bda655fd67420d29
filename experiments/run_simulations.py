"""
Simulation experiments over the built-in scenarios.

For each scenario, it:
1) runs paired replicates (informative and uninformative covariate) of the classic method registry,
2) standardizes the replicates over the default threshold grid,
3) aggregates the metrics (mean and informative-minus-uninformative paired difference), and
4) writes the tables and a per-method failure summary under `results/`.

Replicate ensembles are cached under `results/cache/`, so re-running the script only recomputes the tables.
"""
from fdrbench import (
    BenchExecutor, ReplicationDriver, Scenario, Standardizer, aggregate, build_scenario, default_registry,
    failure_summary
)
from fdrbench.cache import DirectoryCache
from fdrbench.replication import PairedEnsemble
from fdrbench.settings import COVARIATE_COL, GLOBAL_SEED, ParallelBackend
from fdrbench.simulation import SimulationGenerator
from fdrbench.utils import slug
from pathlib import Path

import logging

ROOT: Path = Path.cwd()
RESULTS_DIR: Path = ROOT / "results"

N_REPLICATES: int = 100
M_TESTS: int = 1000
N_JOBS: int = 4
PARALLEL_BACKEND: ParallelBackend = "processes"
SHOW_PROGRESS: bool = True

logger = logging.getLogger("experiments.run_simulations")


def run_scenario(scenario: Scenario, driver: ReplicationDriver, cache: DirectoryCache) -> None:
    """
    Run, standardize, aggregate and persist one scenario.
    """
    config = build_scenario(scenario=scenario, m=M_TESTS, seed=GLOBAL_SEED)
    scenario_slug: str = slug(config.label())
    key: str = f"{scenario_slug}_b{N_REPLICATES}"

    ensemble = cache.get_or_compute(
        key=key,
        compute_fn=lambda: driver.run_simulation(
            generator=SimulationGenerator(config=config), n_replicates=N_REPLICATES, paired=True
        ),
    )
    if not isinstance(ensemble, PairedEnsemble):
        raise TypeError(f"Cached entry {key!r} is not a paired ensemble. Got {type(ensemble).__name__}.")

    arms = Standardizer().paired(ensemble=ensemble)
    aggregate(records=arms["informative"]).to_csv(RESULTS_DIR / f"{scenario_slug}_informative.csv", index=False)
    aggregate(records=arms["uninformative"]).to_csv(RESULTS_DIR / f"{scenario_slug}_uninformative.csv", index=False)
    aggregate(
        records=arms["informative"], mode="paired-difference", other=arms["uninformative"]
    ).to_csv(RESULTS_DIR / f"{scenario_slug}_paired_difference.csv", index=False)
    failure_summary(ensemble=ensemble).to_csv(RESULTS_DIR / f"{scenario_slug}_failures.csv", index=False)
    logger.info("Wrote tables of %s under %s.", config.label(), RESULTS_DIR)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    cache: DirectoryCache = DirectoryCache(root=RESULTS_DIR / "cache")
    executor: BenchExecutor = BenchExecutor(registry=default_registry(), feature_columns=(COVARIATE_COL,))
    driver: ReplicationDriver = ReplicationDriver(
        executor=executor, n_jobs=N_JOBS, parallel_backend=PARALLEL_BACKEND, show_progress=SHOW_PROGRESS
    )
    for scenario in Scenario:
        run_scenario(scenario=scenario, driver=driver, cache=cache)


if __name__ == "__main__":
    main()
