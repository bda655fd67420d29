"""
Named simulation scenarios.

Each scenario fixes a null-proportion curve, an effect-size distribution, and a noise family with its matching
reference null; the number of tests, the seed and (optionally) the effect-size shape are chosen at build time.
"""
from fdrbench.distributions import (
    ChiSquaredNoise, ChiSquaredPValue, ConstantPi0, CosinePi0, CubicPi0, GaussianNoise, GaussianPValue, NormalEffects,
    SinePi0, StudentTNoise, StudentTPValue, UniformCovariate, named_effects
)
from fdrbench.simulation import SimulationConfig
from fdrbench.settings import GLOBAL_SEED
from fdrbench.types import EffectSizeSampler
from enum import Enum, auto
from typing import Optional


class Scenario(Enum):
    """
    Built-in simulation scenarios.

    Members
    -------
    NULL
        Every hypothesis is null (``pi0 = 1``); FDR and FWER coincide.
    CONSTANT
        Constant ``pi0 = 0.9``: the covariate carries no information.
    SINE
        ``pi0`` oscillates between 0.5 and 0.95 along the covariate.
    COSINE
        Cosine variant of ``SINE``.
    CUBIC
        ``pi0`` decreases cubically from 0.95 to 0.5 along the covariate.
    STUDENT_T
        ``CUBIC`` null proportion with Student-t statistics (11 degrees of freedom).
    CHI_SQUARED
        ``CUBIC`` null proportion with chi-squared statistics (4 degrees of freedom).
    """
    NULL = auto()
    CONSTANT = auto()
    SINE = auto()
    COSINE = auto()
    CUBIC = auto()
    STUDENT_T = auto()
    CHI_SQUARED = auto()


STUDENT_T_DF: float = 11.0
CHI_SQUARED_DF: float = 4.0


def build_scenario(
    scenario: Scenario | str, m: int = 1000, seed: int = GLOBAL_SEED, effect_shape: Optional[str] = None,
    effect_scale: float = 1.0, n_nonnull: Optional[int] = None
) -> SimulationConfig:
    """
    Configuration of a named scenario.

    Parameters
    ----------
    scenario
        Scenario member, or its name (case-insensitive).
    m
        Number of tests.
    seed
        Base seed.
    effect_shape
        Optional name of an effect-size shape (see ``fdrbench.distributions.EFFECT_SHAPES``) replacing the default
        ``N(3, 1)`` effects.
    effect_scale
        Scale factor of the effect-size shape.
    n_nonnull
        Optional fixed number of non-null tests.

    Raises
    ------
    ValueError
        If the scenario or the effect-size shape is unknown.
    """
    if isinstance(scenario, str):
        try:
            scenario = Scenario[scenario.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown scenario {scenario!r}; expected one of {', '.join(s.name.lower() for s in Scenario)}."
            ) from None

    effects: EffectSizeSampler = NormalEffects(mean=3.0, sd=1.0)
    if effect_shape is not None:
        effects = named_effects(name=effect_shape, scale=effect_scale)

    pi0_curves = {
        Scenario.NULL: ConstantPi0(pi0=1.0),
        Scenario.CONSTANT: ConstantPi0(pi0=0.9),
        Scenario.SINE: SinePi0(low=0.5, high=0.95),
        Scenario.COSINE: CosinePi0(low=0.5, high=0.95),
    }
    pi0 = pi0_curves.get(scenario, CubicPi0(low=0.5, high=0.95))

    if scenario is Scenario.STUDENT_T:
        perturber, pvalue = StudentTNoise(df=STUDENT_T_DF), StudentTPValue(df=STUDENT_T_DF)
    elif scenario is Scenario.CHI_SQUARED:
        perturber, pvalue = ChiSquaredNoise(df=CHI_SQUARED_DF), ChiSquaredPValue(df=CHI_SQUARED_DF)
    else:
        perturber, pvalue = GaussianNoise(sd=1.0), GaussianPValue(two_sided=True)

    shape_tag: str = f", effects={effect_shape}" if effect_shape else ""
    return SimulationConfig(
        m=m, pi0_fn=pi0, effect_size_dist=effects, test_statistic_perturber=perturber, null_to_pvalue_fn=pvalue,
        covariate_sampler=UniformCovariate(), seed=seed, n_nonnull=n_nonnull,
        name=f"{scenario.name.lower()} (m={m}{shape_tag})",
    )
