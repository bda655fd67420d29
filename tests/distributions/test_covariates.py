from fdrbench.distributions import BetaCovariate, Sampler, UniformCovariate
from typing import Callable, TypeAlias

import numpy.typing as npt
import numpy as np

import pytest

FloatArray: TypeAlias = npt.NDArray[np.float64]


@pytest.fixture(
    scope="module",
    params=[
        lambda: UniformCovariate(), lambda: UniformCovariate(low=-2.0, high=3.0), lambda: BetaCovariate(a=2.0, b=5.0)
    ],
    ids=["unit", "shifted", "beta"],
)
def make_sampler(request: pytest.FixtureRequest) -> Callable[[], Sampler]:
    """
    Factory fixture that builds each covariate sampler.
    """
    return request.param


def test_uniform_covariate_support() -> None:
    draws: FloatArray = UniformCovariate(low=-2.0, high=3.0)(1000, np.random.default_rng(seed=0))
    assert draws.min() >= -2.0 and draws.max() < 3.0


def test_beta_covariate_mean() -> None:
    draws: FloatArray = BetaCovariate(a=2.0, b=6.0)(20_000, np.random.default_rng(seed=1))
    assert np.all(a=(draws >= 0.0) & (draws <= 1.0))
    assert abs(draws.mean() - 0.25) < 0.01


@pytest.mark.parametrize(
    argnames="factory",
    argvalues=[
        lambda: UniformCovariate(low=1.0, high=1.0), lambda: BetaCovariate(a=0.0), lambda: BetaCovariate(b=-1.0)
    ],
)
def test_covariate_parameters_are_validated(factory: Callable[[], Sampler]) -> None:
    with pytest.raises(expected_exception=ValueError):
        factory()


from tests.distributions._contract import *  # noqa
