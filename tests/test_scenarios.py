"""
Tests for the named simulation scenarios.
"""
from fdrbench.distributions import (
    ChiSquaredNoise, ConstantPi0, CubicPi0, GaussianNoise, MixtureEffects, NormalEffects, StudentTPValue
)
from fdrbench.exceptions import InvalidSimulationConfigError
from fdrbench.scenarios import Scenario, build_scenario
from fdrbench.simulation import SimulatedReplicate, SimulationConfig, simulate

import pytest


@pytest.mark.parametrize(argnames="scenario", argvalues=list(Scenario), ids=[s.name.lower() for s in Scenario])
def test_every_scenario_simulates(scenario: Scenario) -> None:
    config: SimulationConfig = build_scenario(scenario=scenario, m=200, seed=1)
    replicate: SimulatedReplicate = simulate(config=config)
    assert len(replicate.informative) == 200
    assert replicate.informative["p_value"].between(0.0, 1.0).all()
    assert config.name == f"{scenario.name.lower()} (m=200)"


def test_scenario_components() -> None:
    """
    Test that each scenario wires the expected curve and the matching noise and reference null.
    """
    assert build_scenario(scenario=Scenario.NULL).pi0_fn == ConstantPi0(pi0=1.0)
    assert build_scenario(scenario=Scenario.CONSTANT).pi0_fn == ConstantPi0(pi0=0.9)
    cubic: SimulationConfig = build_scenario(scenario=Scenario.CUBIC)
    assert cubic.pi0_fn == CubicPi0(low=0.5, high=0.95)
    assert cubic.test_statistic_perturber == GaussianNoise(sd=1.0)
    assert cubic.effect_size_dist == NormalEffects(mean=3.0, sd=1.0)
    student: SimulationConfig = build_scenario(scenario=Scenario.STUDENT_T)
    assert student.null_to_pvalue_fn == StudentTPValue(df=11.0)
    assert build_scenario(scenario=Scenario.CHI_SQUARED).test_statistic_perturber == ChiSquaredNoise(df=4.0)


def test_scenario_names_and_options() -> None:
    config: SimulationConfig = build_scenario(
        scenario=" Sine ", m=300, seed=4, effect_shape="bimodal", effect_scale=2.0, n_nonnull=30
    )
    assert isinstance(config.effect_size_dist, MixtureEffects)
    assert config.name == "sine (m=300, effects=bimodal)"
    assert config.seed == 4 and config.n_nonnull == 30
    assert simulate(config=config).n_nonnull == 30


def test_null_scenario_has_no_signal() -> None:
    assert simulate(config=build_scenario(scenario="null", m=500)).n_nonnull == 0


def test_unknown_scenarios_and_shapes_raise() -> None:
    with pytest.raises(expected_exception=ValueError, match="Unknown scenario"):
        build_scenario(scenario="quartic")
    with pytest.raises(expected_exception=ValueError, match="Unknown effect-size shape"):
        build_scenario(scenario=Scenario.CUBIC, effect_shape="lumpy")
    with pytest.raises(expected_exception=InvalidSimulationConfigError):
        build_scenario(scenario=Scenario.CUBIC, m=0)
