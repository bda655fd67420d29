"""
Resampling splits for in-silico case studies.

A case-study replicate is obtained by drawing a balanced sub-sample of a fixed set of samples (``n_per_group`` samples
from each group, e.g., cases and controls) and analysing it into a table of hypotheses. When a secondary factor must
be represented in every group (e.g., each batch present among both cases and controls), the draw is repeated until
the constraint holds, up to an explicit number of attempts.

The replication driver accepts any resampling function ``(replicate_id, rng) -> Dataset``; ``SubsampleResampler``
builds one from a ``BalancedSubsampler`` and an analysis callable.
"""
from fdrbench.exceptions import ResamplingError
from fdrbench.settings import DEFAULT_MAX_RESAMPLE_ATTEMPTS
from fdrbench.types import BoolArray, Dataset, IntArray
from fdrbench.utils import make_generator, replicate_generator
from fdrbench._validators import validate_int_value
from typing import Any, Callable, Iterator, Optional

import numpy.typing as npt
import numpy as np

import logging

logger = logging.getLogger(__name__)


class BalancedSubsampler:
    """
    Draws sub-samples with a fixed number of samples per group.

    Parameters
    ----------
    groups
        Group label of every sample.
    n_per_group
        Number of samples drawn (without replacement) from each group.
    balance
        Optional secondary factor of every sample. When given, each group of the sub-sample must contain at least
        *min_per_level* samples of every level of the factor.
    min_per_level
        Minimum count per (group, level) when *balance* is given.
    max_attempts
        Number of draws tried before giving up on the balance constraint.

    Raises
    ------
    ValueError
        If a group has fewer than *n_per_group* samples or the inputs are misaligned.
    """
    def __init__(
        self, groups: npt.ArrayLike, n_per_group: int, balance: Optional[npt.ArrayLike] = None, min_per_level: int = 1,
        max_attempts: int = DEFAULT_MAX_RESAMPLE_ATTEMPTS
    ) -> None:
        self._groups: np.ndarray = np.asarray(groups)
        if self._groups.ndim != 1 or self._groups.size == 0:
            raise ValueError("groups must be a non-empty 1-D sequence of labels.")
        self._n_per_group: int = validate_int_value(name="n_per_group", value=n_per_group, min_value=1)
        self._min_per_level: int = validate_int_value(name="min_per_level", value=min_per_level, min_value=1)
        self._max_attempts: int = validate_int_value(name="max_attempts", value=max_attempts, min_value=1)

        self._balance: Optional[np.ndarray] = None
        if balance is not None:
            self._balance = np.asarray(balance)
            if self._balance.shape != self._groups.shape:
                raise ValueError(f"balance must have shape {self._groups.shape}; got {self._balance.shape}.")

        self._members: dict[Any, IntArray] = {}
        for level in np.unique(self._groups):
            members: IntArray = np.flatnonzero(self._groups == level)
            if members.size < self._n_per_group:
                raise ValueError(
                    f"Group {level!r} has {members.size} sample(s); cannot draw {self._n_per_group} per group."
                )
            self._members[level] = members

    @property
    def n_samples(self) -> int:
        return int(self._groups.size)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def _is_balanced(self, index: IntArray) -> bool:
        if self._balance is None:
            return True
        levels: np.ndarray = np.unique(self._balance)
        for group in self._members:
            in_group: BoolArray = self._groups[index] == group
            drawn: np.ndarray = self._balance[index][in_group]
            for level in levels:
                if np.count_nonzero(a=drawn == level) < self._min_per_level:
                    return False
        return True

    def draw(self, rng: int | np.random.Generator | None = None) -> IntArray:
        """
        Draw one sub-sample.

        Parameters
        ----------
        rng
            Generator, or seed of a fresh one (non-deterministic when None).

        Raises
        ------
        ResamplingError
            If no draw satisfies the balance constraint within ``max_attempts`` attempts.

        Returns
        -------
        IntArray
            Sorted indices of the selected samples.
        """
        rng = make_generator(seed_or_rng=rng)
        for attempt in range(1, self._max_attempts + 1):
            index: IntArray = np.sort(np.concatenate([
                rng.choice(a=members, size=self._n_per_group, replace=False) for members in self._members.values()
            ]))
            if self._is_balanced(index=index):
                if attempt > 1:
                    logger.debug("Balanced sub-sample found after %d attempts.", attempt)
                return index
        raise ResamplingError(
            f"No balanced sub-sample found in {self._max_attempts} attempt(s) "
            f"(n_per_group={self._n_per_group}, min_per_level={self._min_per_level})."
        )

    def splits(self, n_replicates: int, seed: int) -> Iterator[tuple[int, IntArray]]:
        """
        Yield ``(replicate_id, sample_index)`` pairs, each drawn from the replicate's own generator.
        """
        n_replicates = validate_int_value(name="n_replicates", value=n_replicates, min_value=0)
        for replicate_id in range(n_replicates):
            yield replicate_id, self.draw(rng=replicate_generator(base_seed=seed, replicate_index=replicate_id))

    def __repr__(self) -> str:
        return (
            f"BalancedSubsampler(n_samples={self.n_samples}, groups={len(self._members)}, "
            f"n_per_group={self._n_per_group}, max_attempts={self._max_attempts})"
        )


class SubsampleResampler:
    """
    Resampling function ``(replicate_id, rng) -> Dataset`` for the replication driver.

    Parameters
    ----------
    subsampler
        Draws the sample indices of the replicate.
    analyze
        Turns the selected sample indices into a table of hypotheses (e.g., a differential test per feature). Must be
        picklable for the process backend.
    """
    def __init__(self, subsampler: BalancedSubsampler, analyze: Callable[[IntArray], Dataset]) -> None:
        if not callable(analyze):
            raise TypeError("analyze must be callable.")
        self.subsampler: BalancedSubsampler = subsampler
        self.analyze: Callable[[IntArray], Dataset] = analyze

    def __call__(self, replicate_id: int, rng: np.random.Generator) -> Dataset:
        return self.analyze(self.subsampler.draw(rng=rng))
