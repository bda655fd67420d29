"""
Tests for balanced sub-sampling and the resampling driver path.
"""
from fdrbench.exceptions import ResamplingError
from fdrbench.executor import BenchExecutor
from fdrbench.methods import default_registry
from fdrbench.replication import ReplicateEnsemble, ReplicationDriver
from fdrbench.resampling import BalancedSubsampler, SubsampleResampler
from fdrbench.types import IntArray
from scipy import stats

import pandas as pd
import numpy as np

import logging
import pytest

GROUPS: np.ndarray = np.array(object=["case"] * 10 + ["control"] * 12)
BATCHES: np.ndarray = np.array(object=(["b1"] * 5 + ["b2"] * 5) + (["b1"] * 6 + ["b2"] * 6))


class _TTestAnalysis:
    """
    Per-feature two-sample t-test between the drawn cases and controls.
    """
    def __init__(self, values: np.ndarray, groups: np.ndarray) -> None:
        self.values: np.ndarray = values
        self.groups: np.ndarray = groups

    def __call__(self, index: IntArray) -> pd.DataFrame:
        data: np.ndarray = self.values[index]
        labels: np.ndarray = self.groups[index]
        result = stats.ttest_ind(data[labels == "case"], data[labels == "control"], axis=0)
        return pd.DataFrame(data={"p_value": result.pvalue, "test_statistic": result.statistic})


def test_draw_takes_n_per_group_from_every_group() -> None:
    subsampler: BalancedSubsampler = BalancedSubsampler(groups=GROUPS, n_per_group=4)
    index: IntArray = subsampler.draw(rng=np.random.default_rng(seed=0))
    assert index.size == 8
    assert np.all(a=np.diff(index) > 0)
    assert np.count_nonzero(a=GROUPS[index] == "case") == 4
    assert np.count_nonzero(a=GROUPS[index] == "control") == 4


def test_draw_accepts_a_seed_or_a_generator() -> None:
    subsampler: BalancedSubsampler = BalancedSubsampler(groups=GROUPS, n_per_group=3)
    assert np.array_equal(subsampler.draw(rng=11), subsampler.draw(rng=np.random.default_rng(seed=11)))
    assert subsampler.draw().size == 6


def test_balance_constraint_holds_in_every_draw() -> None:
    subsampler: BalancedSubsampler = BalancedSubsampler(groups=GROUPS, n_per_group=4, balance=BATCHES)
    for _, index in subsampler.splits(n_replicates=20, seed=3):
        for group in ("case", "control"):
            drawn: np.ndarray = BATCHES[index][GROUPS[index] == group]
            assert set(drawn) == {"b1", "b2"}


def test_unsatisfiable_balance_raises_after_max_attempts() -> None:
    """
    Test that a constraint no draw can meet gives up after the configured number of attempts.
    """
    subsampler: BalancedSubsampler = BalancedSubsampler(
        groups=GROUPS, n_per_group=2, balance=BATCHES, min_per_level=2, max_attempts=5
    )
    assert subsampler.max_attempts == 5
    with pytest.raises(expected_exception=ResamplingError, match="5 attempt"):
        subsampler.draw(rng=np.random.default_rng(seed=1))


def test_splits_are_reproducible() -> None:
    subsampler: BalancedSubsampler = BalancedSubsampler(groups=GROUPS, n_per_group=3)
    first: list[list[int]] = [idx.tolist() for _, idx in subsampler.splits(n_replicates=4, seed=9)]
    again: list[list[int]] = [idx.tolist() for _, idx in subsampler.splits(n_replicates=4, seed=9)]
    assert first == again
    assert len({tuple(idx) for idx in first}) > 1


@pytest.mark.parametrize(
    argnames="kwargs",
    argvalues=[
        {"groups": GROUPS, "n_per_group": 11},
        {"groups": GROUPS, "n_per_group": 2, "balance": BATCHES[:5]},
        {"groups": [], "n_per_group": 1},
        {"groups": GROUPS, "n_per_group": 0},
    ],
    ids=["group-too-small", "misaligned-balance", "empty", "zero-per-group"],
)
def test_subsampler_validates_inputs(kwargs: dict) -> None:
    with pytest.raises(expected_exception=ValueError):
        BalancedSubsampler(**kwargs)


def test_resampling_replicates_through_the_driver(caplog: pytest.LogCaptureFixture) -> None:
    """
    Test a resampled null case study: no ground truth, reproducible per seed and one result per replicate.
    """
    rng: np.random.Generator = np.random.default_rng(seed=5)
    values: np.ndarray = rng.normal(size=(GROUPS.size, 40))
    resampler: SubsampleResampler = SubsampleResampler(
        subsampler=BalancedSubsampler(groups=GROUPS, n_per_group=5, balance=BATCHES),
        analyze=_TTestAnalysis(values=values, groups=GROUPS),
    )
    driver: ReplicationDriver = ReplicationDriver(
        executor=BenchExecutor(registry=default_registry().subset(["bh", "bonf"]))
    )
    with caplog.at_level(level=logging.INFO, logger="fdrbench.replication"):
        ensemble: ReplicateEnsemble = driver.run_resampling(resample_fn=resampler, n_replicates=3, seed=2)
    assert len(ensemble) == 3 and ensemble.n_failed_replicates == 0
    assert all(res.n_tests == 40 and not res.has_truth for res in ensemble)
    assert caplog.records

    again: ReplicateEnsemble = driver.run_resampling(resample_fn=resampler, n_replicates=3, seed=2)
    for a, b in zip(ensemble, again):
        pd.testing.assert_frame_equal(left=a.qvalues, right=b.qvalues)


def test_failed_balanced_draw_becomes_a_replicate_failure() -> None:
    resampler: SubsampleResampler = SubsampleResampler(
        subsampler=BalancedSubsampler(groups=GROUPS, n_per_group=2, balance=BATCHES, min_per_level=2, max_attempts=3),
        analyze=_TTestAnalysis(values=np.zeros(shape=(GROUPS.size, 5)), groups=GROUPS),
    )
    driver: ReplicationDriver = ReplicationDriver(executor=BenchExecutor(registry=default_registry().subset(["bh"])))
    ensemble: ReplicateEnsemble = driver.run_resampling(resample_fn=resampler, n_replicates=2, seed=0)
    assert ensemble.n_failed_replicates == 2
    assert {f.cause for f in ensemble.failures()} == {"ResamplingError"}
    with pytest.raises(expected_exception=TypeError):
        SubsampleResampler(subsampler=resampler.subsampler, analyze="ttest")  # type: ignore[arg-type]
