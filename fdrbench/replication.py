"""
Replication driver: runs many independent replicates and collects them into ensembles.

A replicate is one simulated or resampled dataset analysed by the ``BenchExecutor``. Replicates are independent: each
one derives its random source from ``(base seed, replicate index)`` only, and tasks share nothing but read-only inputs
(the registry and the generator parameters). Output order is the replicate index order, whatever the completion order
of the worker pool.

Parallelism
-----------
- serial: always runs in the current process (default)
- threads: avoids pickling requirements, but may not speed up CPU-bound methods
- processes: true parallelism; the task (generator components, registry callables, resampling function) must be
  pickleable. Pools use the ``spawn`` start method by default.

Methods inside one replicate always run sequentially, so there is a single level of parallelism.

Failure policy
--------------
A replicate whose task raises (other than a configuration error, which is fatal) is kept in the ensemble as an
all-missing ``BenchResult`` with ``metadata["replicate_failure"]`` set, and logged at ERROR level.
"""
from __future__ import annotations

from fdrbench.exceptions import InvalidSimulationConfigError, MethodExecutionFailure
from fdrbench.executor import BenchExecutor, BenchResult
from fdrbench.settings import GLOBAL_SEED, MP_START_METHOD, N_JOBS, PARALLEL_BACKEND, SHOW_PROGRESS
from fdrbench.settings import MPStartMethod, ParallelBackend
from fdrbench.simulation import SimulatedReplicate, SimulationGenerator
from fdrbench.types import Dataset
from fdrbench.utils import replicate_generator, split_into_chunks
from fdrbench._logging import log_replicate_failure, log_run_completion, log_run_start
from fdrbench._validators import validate_int_value
from concurrent.futures import ThreadPoolExecutor, ProcessPoolExecutor, Future, as_completed
from dataclasses import dataclass
from tqdm.auto import tqdm
from typing import Any, Callable, Iterator, Optional, Sequence, cast, overload

import multiprocessing as mp
import pandas as pd
import numpy as np

import logging

logger = logging.getLogger(__name__)

#: Resampling function ``(replicate_id, rng) -> Dataset``.
ResampleFunction = Callable[[int, np.random.Generator], Dataset]

FAILURE_COLUMNS: tuple[str, ...] = ("replicate", "method", "kind", "cause", "message")


class ReplicateEnsemble(Sequence[BenchResult]):
    """
    Ordered, index-stable sequence of replicate results.

    Parameters
    ----------
    results
        One ``BenchResult`` per replicate, in replicate order.
    method_ids
        Registry order of the methods. Defaults to the union of the results' columns in order of appearance.
    label
        Free-text label of the ensemble (e.g., ``"informative"``).
    """
    def __init__(self, results: Sequence[BenchResult], method_ids: Optional[Sequence[str]] = None, label: str = ""):
        self._results: list[BenchResult] = list(results)
        for res in self._results:
            if not isinstance(res, BenchResult):
                raise TypeError(f"Ensemble items must be BenchResult instances. Got {type(res).__name__}.")
        if method_ids is None:
            seen: dict[str, None] = {}
            for res in self._results:
                seen.update(dict.fromkeys(res.method_ids))
            method_ids = list(seen)
        self._method_ids: list[str] = list(method_ids)
        self.label: str = label

    @overload
    def __getitem__(self, idx: int) -> BenchResult: ...
    @overload
    def __getitem__(self, idx: slice) -> ReplicateEnsemble: ...

    def __getitem__(self, idx: Any) -> BenchResult | ReplicateEnsemble:
        if isinstance(idx, slice):
            return ReplicateEnsemble(results=self._results[idx], method_ids=self._method_ids, label=self.label)
        return self._results[idx]

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[BenchResult]:
        return iter(self._results)

    @property
    def method_ids(self) -> list[str]:
        return list(self._method_ids)

    @property
    def replicate_ids(self) -> list[Any]:
        """
        Replicate identifiers, falling back to the position when a result carries none.
        """
        return [pos if res.replicate_id is None else res.replicate_id for pos, res in enumerate(self._results)]

    @property
    def n_failed_replicates(self) -> int:
        return sum(1 for res in self._results if res.is_replicate_failure)

    @property
    def n_method_failures(self) -> int:
        return sum(len(res.failures) for res in self._results if not res.is_replicate_failure)

    def failures(self) -> list[MethodExecutionFailure]:
        return [failure for res in self._results for failure in res.failures.values()]

    def failure_table(self) -> pd.DataFrame:
        """
        One row per recorded failure: replicate, method, kind, cause, message.
        """
        rows: list[dict[str, Any]] = [
            {
                "replicate": rid,
                "method": failure.method_id,
                "kind": failure.kind,
                "cause": failure.cause,
                "message": failure.message,
            }
            for rid, res in zip(self.replicate_ids, self._results)
            for failure in res.failures.values()
        ]
        return pd.DataFrame(data=rows, columns=list(FAILURE_COLUMNS))

    def __repr__(self) -> str:
        return f"ReplicateEnsemble(label={self.label!r}, n_replicates={len(self)}, methods={self._method_ids})"


@dataclass
class PairedEnsemble:
    """
    Informative and uninformative ensembles of a simulation, sharing replicate indices.
    """
    informative: ReplicateEnsemble
    uninformative: ReplicateEnsemble

    def __post_init__(self) -> None:
        if self.informative.replicate_ids != self.uninformative.replicate_ids:
            raise ValueError("Paired ensembles must share replicate indices.")

    def __len__(self) -> int:
        return len(self.informative)

    @property
    def replicate_ids(self) -> list[Any]:
        return self.informative.replicate_ids

    @property
    def method_ids(self) -> list[str]:
        return self.informative.method_ids

    def arms(self) -> dict[str, ReplicateEnsemble]:
        return {"informative": self.informative, "uninformative": self.uninformative}


@dataclass(frozen=True)
class _ReplicateFailure:
    cause: str
    message: str


class _SimulationTask:
    """
    Pickleable task: simulate one replicate and run the executor on its variant(s).
    """
    def __init__(self, generator: SimulationGenerator, executor: BenchExecutor, paired: bool) -> None:
        self.generator: SimulationGenerator = generator
        self.executor: BenchExecutor = executor
        self.paired: bool = paired

    def _bench(self, dataset: Dataset, replicate_id: int, replicate: SimulatedReplicate) -> BenchResult:
        tags: dict[str, Any] = {"seed": replicate.seed, "n_pi0_clipped": replicate.n_pi0_clipped}
        try:
            return self.executor.run(dataset=dataset, replicate_id=replicate_id, tags=tags)
        except Exception as exc:
            result: BenchResult = self.executor.empty_result(
                dataset=dataset, replicate_id=replicate_id, cause=type(exc).__name__, message=str(exc)
            )
            result.metadata.update(tags)
            return result

    def __call__(self, replicate_id: int) -> BenchResult | tuple[BenchResult, BenchResult]:
        replicate: SimulatedReplicate = self.generator.generate(replicate_id=replicate_id)
        informative: BenchResult = self._bench(
            dataset=replicate.informative, replicate_id=replicate_id, replicate=replicate
        )
        if not self.paired:
            return informative
        uninformative: BenchResult = self._bench(
            dataset=replicate.uninformative, replicate_id=replicate_id, replicate=replicate
        )
        return informative, uninformative


class _ResamplingTask:
    """
    Pickleable task: draw one resampled dataset and run the executor on it.
    """
    def __init__(self, resample_fn: ResampleFunction, executor: BenchExecutor, seed: int) -> None:
        self.resample_fn: ResampleFunction = resample_fn
        self.executor: BenchExecutor = executor
        self.seed: int = seed

    def __call__(self, replicate_id: int) -> BenchResult:
        rng = replicate_generator(base_seed=self.seed, replicate_index=replicate_id)
        dataset: Dataset = self.resample_fn(replicate_id, rng)
        try:
            return self.executor.run(dataset=dataset, replicate_id=replicate_id)
        except Exception as exc:
            return self.executor.empty_result(
                dataset=dataset, replicate_id=replicate_id, cause=type(exc).__name__, message=str(exc)
            )


def _run_replicate(task: Callable[[int], Any], replicate_id: int) -> Any:
    try:
        return task(replicate_id)
    except InvalidSimulationConfigError:
        raise
    except Exception as exc:
        return _ReplicateFailure(cause=type(exc).__name__, message=str(exc))


def _replicates_chunk_worker(task: Callable[[int], Any], replicate_ids: list[int]) -> list[tuple[int, Any]]:
    """
    Worker that runs a chunk of replicates sequentially.

    Intended for use with threads/processes to reduce per-task overhead.

    Parameters
    ----------
    task
        Replicate task, ``replicate_id -> output``.
    replicate_ids
        Replicate indices of the chunk.

    Returns
    -------
    List of ``(replicate_id, output)`` pairs, where a failed replicate's output is a failure marker.
    """
    return [(rid, _run_replicate(task=task, replicate_id=rid)) for rid in replicate_ids]


class ReplicationDriver:
    """
    Fans replicate tasks out over a worker pool and collects replicate ensembles.

    Parameters
    ----------
    executor
        Executor run on every replicate dataset.
    n_jobs
        Number of workers. If <= 1, runs serially.
    parallel_backend
        ``"serial"``, ``"threads"`` or ``"processes"``. See the module docstring.
    mp_start_method
        Start method for process pools.
    n_chunks
        Number of chunks the replicate indices are split into. If None, defaults to `n_jobs`.
    show_progress
        Whether to show a tqdm progress bar.
    """
    def __init__(
        self, executor: BenchExecutor, n_jobs: int = N_JOBS, parallel_backend: ParallelBackend = PARALLEL_BACKEND,
        mp_start_method: MPStartMethod = MP_START_METHOD, n_chunks: Optional[int] = None,
        show_progress: bool = SHOW_PROGRESS
    ) -> None:
        if not isinstance(executor, BenchExecutor):
            raise TypeError(f"executor must be a BenchExecutor. Got {type(executor).__name__}.")
        if parallel_backend not in ("serial", "threads", "processes"):
            raise ValueError(f"Unsupported parallel_backend={parallel_backend!r}.")
        if mp_start_method not in ("spawn", "forkserver", "fork"):
            raise ValueError(f"Unsupported mp_start_method={mp_start_method!r}.")
        self._executor: BenchExecutor = executor
        self._n_jobs: int = validate_int_value(name="n_jobs", value=n_jobs, min_value=1)
        self._parallel_backend: ParallelBackend = parallel_backend
        self._mp_start_method: MPStartMethod = mp_start_method
        self._n_chunks: Optional[int] = None if n_chunks is None else validate_int_value(
            name="n_chunks", value=n_chunks, min_value=1
        )
        self._show_progress: bool = bool(show_progress)

    @property
    def executor(self) -> BenchExecutor:
        return self._executor

    def _map(self, task: Callable[[int], Any], replicate_ids: list[int], desc: str) -> list[Any]:
        n: int = len(replicate_ids)
        outputs: dict[int, Any] = {}
        pbar: Optional[tqdm] = None
        if self._show_progress:
            pbar = tqdm(total=n, desc=desc or "Replicates", unit="replicates")

        try:
            if self._n_jobs <= 1 or self._parallel_backend == "serial" or n <= 1:
                for rid in replicate_ids:
                    outputs[rid] = _run_replicate(task=task, replicate_id=rid)
                    if pbar is not None:
                        pbar.update()
            else:
                n_workers: int = min(self._n_jobs, n)
                chunks: list[list[int]] = split_into_chunks(
                    items=replicate_ids, n_jobs=n_workers, n_chunks=self._n_chunks
                )
                pool: ThreadPoolExecutor | ProcessPoolExecutor
                if self._parallel_backend == "threads":
                    pool = ThreadPoolExecutor(max_workers=n_workers)
                else:
                    pool = ProcessPoolExecutor(max_workers=n_workers, mp_context=mp.get_context(self._mp_start_method))
                with pool as ex:
                    future_to_chunk: dict[Future, list[int]] = {
                        ex.submit(_replicates_chunk_worker, task, chunk): chunk for chunk in chunks
                    }
                    for future in as_completed(fs=future_to_chunk):
                        for rid, out in future.result():
                            outputs[rid] = out
                        if pbar is not None:
                            pbar.update(n=len(future_to_chunk[future]))
        finally:
            if pbar is not None:
                pbar.close()
        return [outputs[rid] for rid in replicate_ids]

    def _materialise(self, replicate_id: int, output: Any, paired: bool) -> list[BenchResult]:
        if isinstance(output, _ReplicateFailure):
            n_arms: int = 2 if paired else 1
            return [
                self._executor.empty_result(replicate_id=replicate_id, cause=output.cause, message=output.message)
                for _ in range(n_arms)
            ]
        if paired:
            is_pair: bool = isinstance(output, tuple) and len(output) == 2
            if not (is_pair and all(isinstance(o, BenchResult) for o in output)):
                raise TypeError(f"Paired task must return two BenchResult objects; got {type(output).__name__}.")
            return list(output)
        if not isinstance(output, BenchResult):
            raise TypeError(f"Task must return a BenchResult; got {type(output).__name__}.")
        return [output]

    def run(
        self, task_fn: Callable[[int], Any], n_replicates: int, paired: bool = False, label: str = ""
    ) -> ReplicateEnsemble | PairedEnsemble:
        """
        Run ``task_fn(replicate_id)`` for replicates ``0, ..., n_replicates - 1``.

        Parameters
        ----------
        task_fn
            Returns a ``BenchResult`` (or, if *paired*, a pair of them) for one replicate index. Must be pickleable
            for the process backend.
        n_replicates
            Number of replicates ``B``.
        paired
            Whether each task returns an (informative, uninformative) pair.
        label
            Label used in logs, progress bars and the ensemble.

        Raises
        ------
        InvalidSimulationConfigError
            If a task hits a configuration error; these are never absorbed.

        Returns
        -------
        ReplicateEnsemble | PairedEnsemble
            Results in replicate order.
        """
        n_replicates = validate_int_value(name="n_replicates", value=n_replicates, min_value=0)
        if not callable(task_fn):
            raise TypeError("task_fn must be callable.")
        method_ids: list[str] = self._executor.method_ids
        log_run_start(
            label=label, n_replicates=n_replicates, n_methods=len(method_ids), backend=self._parallel_backend,
            n_jobs=self._n_jobs, logger=logger,
        )

        replicate_ids: list[int] = list(range(n_replicates))
        outputs: list[Any] = self._map(task=task_fn, replicate_ids=replicate_ids, desc=label)
        arms: list[list[BenchResult]] = [[], []] if paired else [[]]
        for rid, output in zip(replicate_ids, outputs):
            results: list[BenchResult] = self._materialise(replicate_id=rid, output=output, paired=paired)
            for arm, res in zip(arms, results):
                arm.append(res)
            failed: list[BenchResult] = [res for res in results if res.is_replicate_failure]
            if failed:
                log_replicate_failure(replicate_id=rid, message=failed[0].metadata["replicate_failure"], logger=logger)

        ensembles: list[ReplicateEnsemble] = [
            ReplicateEnsemble(results=arm, method_ids=method_ids, label=name)
            for arm, name in zip(arms, ("informative", "uninformative") if paired else (label,))
        ]
        log_run_completion(
            label=label, n_replicates=n_replicates, n_failed_replicates=ensembles[0].n_failed_replicates,
            n_method_failures=sum(e.n_method_failures for e in ensembles), logger=logger,
        )
        if paired:
            return PairedEnsemble(informative=ensembles[0], uninformative=ensembles[1])
        return ensembles[0]

    def run_simulation(
        self, generator: SimulationGenerator, n_replicates: int, paired: bool = True, label: str = ""
    ) -> ReplicateEnsemble | PairedEnsemble:
        """
        Run ``n_replicates`` replicates of the simulation generator followed by the executor.

        With *paired* (default), both the informative and the uninformative variant of every draw are analysed and a
        ``PairedEnsemble`` is returned; otherwise only the informative variant is analysed.
        """
        if not isinstance(generator, SimulationGenerator):
            raise TypeError(f"generator must be a SimulationGenerator. Got {type(generator).__name__}.")
        task: _SimulationTask = _SimulationTask(generator=generator, executor=self._executor, paired=paired)
        return self.run(
            task_fn=task, n_replicates=n_replicates, paired=paired, label=label or generator.config.label()
        )

    def run_resampling(
        self, resample_fn: ResampleFunction, n_replicates: int, seed: int = GLOBAL_SEED, label: str = ""
    ) -> ReplicateEnsemble:
        """
        Run ``n_replicates`` replicates of a resampling function followed by the executor.

        Parameters
        ----------
        resample_fn
            ``(replicate_id, rng) -> Dataset``; the generator is derived from *seed* and the replicate index.
        n_replicates
            Number of replicates.
        seed
            Non-negative base seed.
        label
            Label used in logs, progress bars and the ensemble.
        """
        if not callable(resample_fn):
            raise TypeError("resample_fn must be callable.")
        seed = validate_int_value(name="seed", value=seed, min_value=0)
        task: _ResamplingTask = _ResamplingTask(resample_fn=resample_fn, executor=self._executor, seed=seed)
        return cast(ReplicateEnsemble, self.run(task_fn=task, n_replicates=n_replicates, paired=False, label=label))
