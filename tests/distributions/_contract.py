from fdrbench.distributions import Sampler
from hypothesis import given, settings, strategies as st
from typing import Callable, TypeAlias

import numpy.typing as npt
import numpy as np

import pickle
import pytest

FloatArray: TypeAlias = npt.NDArray[np.float64]

# Public type for the sampler factory fixture each implementation must provide:
#     @pytest.fixture(params=[...])
#     def make_sampler(request):
#         return lambda: NormalEffects(mean=request.param, sd=1.0)
SamplerFactory: TypeAlias = Callable[[], Sampler]


def test_sampler_contract_shape_and_dtype(make_sampler: SamplerFactory) -> None:
    """
    Contract: a sampler returns a one-dimensional float64 vector of the requested size, finite everywhere.
    """
    sampler: Sampler = make_sampler()
    draws: FloatArray = sampler(50, np.random.default_rng(seed=0))
    assert isinstance(draws, np.ndarray)
    assert draws.dtype == np.float64
    assert draws.shape == (50,)
    assert np.all(a=np.isfinite(draws))


def test_sampler_contract_zero_size(make_sampler: SamplerFactory) -> None:
    assert make_sampler()(0, np.random.default_rng(seed=0)).shape == (0,)


def test_sampler_contract_deterministic_given_generator_state(make_sampler: SamplerFactory) -> None:
    """
    Contract: draws depend only on the generator's state, never on global random state.
    """
    sampler: Sampler = make_sampler()
    first: FloatArray = sampler(20, np.random.default_rng(seed=42))
    np.random.seed(0)
    second: FloatArray = sampler(20, np.random.default_rng(seed=42))
    assert np.array_equal(a1=first, a2=second)


def test_sampler_contract_rejects_bad_arguments(make_sampler: SamplerFactory) -> None:
    sampler: Sampler = make_sampler()
    with pytest.raises(expected_exception=TypeError):
        sampler(10, 42)  # type: ignore[arg-type]
    with pytest.raises(expected_exception=ValueError):
        sampler(-1, np.random.default_rng(seed=0))


def test_sampler_contract_value_semantics(make_sampler: SamplerFactory) -> None:
    """
    Contract: components have a readable repr, compare by parameters, and survive pickling.
    """
    sampler: Sampler = make_sampler()
    assert repr(sampler).startswith(type(sampler).__name__ + "(")
    assert sampler == make_sampler()
    assert hash(sampler) == hash(make_sampler())
    assert pickle.loads(pickle.dumps(sampler)) == sampler


@settings(max_examples=25)
@given(size=st.integers(min_value=0, max_value=200), seed=st.integers(min_value=0, max_value=2**32 - 1))
def test_sampler_contract_property_any_size(make_sampler: SamplerFactory, size: int, seed: int) -> None:
    """
    Property: for any size and seed, the output has the requested length.
    """
    assert make_sampler()(size, np.random.default_rng(seed=seed)).shape == (size,)
