"""
Configuration and fixtures for tests.
"""
from fdrbench.distributions import ConstantPi0, CubicPi0, GaussianNoise, GaussianPValue, NormalEffects
from fdrbench.executor import BenchExecutor
from fdrbench.methods import Registry, default_registry
from fdrbench.simulation import SimulationConfig
from fdrbench.types import BoolArray, FloatArray
from hypothesis.extra import numpy as hnp
from hypothesis import strategies as st

import pandas as pd
import numpy as np

import pytest
import time


@st.composite
def _qvalues(draw: st.DrawFn, m: int = 20, allow_nan: bool = False) -> FloatArray:
    """
    Hypothesis strategy: generate a vector of m adjusted p-values in [0,1] (optionally with missing entries).
    """
    elements = st.floats(min_value=0.0, max_value=1.0, allow_nan=False, allow_infinity=False)
    if allow_nan:
        elements = st.one_of(elements, st.just(np.nan))
    return draw(hnp.arrays(dtype=np.float64, shape=(m,), elements=elements))


@st.composite
def _truth(draw: st.DrawFn, m: int = 20) -> BoolArray:
    """
    Hypothesis strategy: generate a vector of m boolean non-null indicators.
    """
    return draw(hnp.arrays(dtype=np.bool_, shape=(m,), elements=st.booleans()))


@st.composite
def _alpha_grid(draw: st.DrawFn, max_size: int = 6) -> FloatArray:
    """
    Hypothesis strategy: generate a strictly ascending grid of thresholds in (0,1].
    """
    values: list[float] = draw(
        st.lists(
            st.floats(min_value=1e-3, max_value=1.0, allow_nan=False, allow_infinity=False),
            min_size=1, max_size=max_size, unique=True,
        )
    )
    return np.sort(np.asarray(values, dtype=np.float64))


# Fake correction methods following the plug-in contract.

def identity_method(p_value: FloatArray) -> FloatArray:
    return np.asarray(p_value, dtype=np.float64)


def always_raise(p_value: FloatArray) -> FloatArray:
    raise RuntimeError("boom")


def reject_nothing(p_value: FloatArray) -> FloatArray:
    return np.ones_like(p_value, dtype=np.float64)


def reject_everything(p_value: FloatArray) -> FloatArray:
    return np.zeros_like(p_value, dtype=np.float64)


def wrong_length(p_value: FloatArray) -> FloatArray:
    return np.asarray(p_value, dtype=np.float64)[:-1]


def out_of_range(p_value: FloatArray) -> FloatArray:
    return np.asarray(p_value, dtype=np.float64) + 2.0


def not_implemented(p_value: FloatArray) -> FloatArray:
    raise NotImplementedError("this method does not handle the input")


def needs_covariate(p_value: FloatArray, ind_covariate: FloatArray) -> FloatArray:
    return np.asarray(p_value, dtype=np.float64)


def mutating_method(p_value: FloatArray) -> FloatArray:
    p_value[:] = 0.0
    return p_value


def slow_method(p_value: FloatArray, delay: float = 0.5) -> FloatArray:
    time.sleep(delay)
    return np.asarray(p_value, dtype=np.float64)


@pytest.fixture
def m_default() -> int:
    """
    Default number of tests in small datasets.
    """
    return 20


@pytest.fixture
def small_dataset(m_default: int) -> pd.DataFrame:
    """
    Small deterministic dataset with p-values, a covariate and ground truth (the first quarter is non-null).
    """
    rng: np.random.Generator = np.random.default_rng(seed=7)
    truth: BoolArray = np.arange(m_default) < m_default // 4
    p_value: FloatArray = np.where(truth, rng.uniform(0.0, 1e-4, m_default), rng.uniform(0.05, 1.0, m_default))
    return pd.DataFrame(data={
        "p_value": p_value,
        "ind_covariate": np.linspace(start=0.0, stop=1.0, num=m_default),
        "truth": truth,
    })


@pytest.fixture
def fake_registry() -> Registry:
    """
    Registry of well-behaved fake methods.
    """
    registry: Registry = Registry()
    registry.register(method_id="identity", func=identity_method)
    registry.register(method_id="none", func=reject_nothing)
    registry.register(method_id="all", func=reject_everything)
    return registry


@pytest.fixture
def classic_executor() -> BenchExecutor:
    """
    Executor running the classic procedures, with the covariate carried along.
    """
    return BenchExecutor(registry=default_registry(), feature_columns=("ind_covariate",))


@pytest.fixture
def null_config() -> SimulationConfig:
    """
    Global-null simulation configuration (every hypothesis is null).
    """
    return SimulationConfig(
        m=200, pi0_fn=ConstantPi0(pi0=1.0), effect_size_dist=NormalEffects(mean=3.0, sd=1.0),
        test_statistic_perturber=GaussianNoise(), null_to_pvalue_fn=GaussianPValue(), seed=11,
    )


@pytest.fixture
def cubic_config() -> SimulationConfig:
    """
    Informative-covariate simulation configuration.
    """
    return SimulationConfig(
        m=300, pi0_fn=CubicPi0(low=0.5, high=0.95), effect_size_dist=NormalEffects(mean=3.0, sd=1.0),
        test_statistic_perturber=GaussianNoise(), null_to_pvalue_fn=GaussianPValue(), seed=5,
    )


# Public strategies for reuse in tests
qvalues = _qvalues
truth_labels = _truth
alpha_grid = _alpha_grid
