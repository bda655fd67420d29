"""
distributions package
=====================

Pluggable components of the simulation generator: null-proportion curves, effect-size distributions, test-statistic
perturbers, p-value maps, and covariate samplers. Each component is a small value object whose draws take an explicit
``numpy.random.Generator``.
"""
from .base import Perturber, Pi0Curve, PValueMap, Sampler
from .covariates import BetaCovariate, UniformCovariate
from .effects import EFFECT_SHAPES, ConstantEffects, MixtureEffects, NormalEffects, UniformEffects, named_effects
from .noise import ChiSquaredNoise, GaussianNoise, StudentTNoise
from .pi0 import PI0_CURVES, ConstantPi0, CosinePi0, CubicPi0, SinePi0, StepPi0
from .pvalues import ChiSquaredPValue, GaussianPValue, StudentTPValue

__all__ = [
    "BetaCovariate",
    "ChiSquaredNoise",
    "ChiSquaredPValue",
    "ConstantEffects",
    "ConstantPi0",
    "CosinePi0",
    "CubicPi0",
    "EFFECT_SHAPES",
    "GaussianNoise",
    "GaussianPValue",
    "MixtureEffects",
    "NormalEffects",
    "PI0_CURVES",
    "PValueMap",
    "Perturber",
    "Pi0Curve",
    "Sampler",
    "SinePi0",
    "StepPi0",
    "StudentTNoise",
    "StudentTPValue",
    "UniformCovariate",
    "UniformEffects",
    "named_effects",
]
