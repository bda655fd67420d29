"""
Synthetic replicate generator.

One replicate is produced from a single explicit random source seeded by ``(config.seed, replicate_id)``:

1. Draw the covariate vector from the covariate sampler.
2. Evaluate the null-proportion curve on it and draw each hypothesis' non-null status with probability
   ``1 - pi0(covariate)`` (or draw a fixed number of non-nulls with probabilities proportional to it).
3. Draw effect sizes for the non-null hypotheses; null hypotheses have zero effect.
4. Perturb every effect with the noise family to get the observed test statistics.
5. Map the statistics to p-values under the reference null distribution.
6. Emit two datasets sharing statistics, p-values and truth: one with the true covariate (informative) and one with an
   independent fresh uniform covariate (uninformative).

The uninformative covariate is drawn after every other quantity, so both variants of a replicate are identical in all
columns but ``ind_covariate``.
"""
from fdrbench.distributions import UniformCovariate
from fdrbench.exceptions import InvalidSimulationConfigError
from fdrbench.settings import (
    COVARIATE_COL, EFFECT_SIZE_COL, GLOBAL_SEED, P_VALUE_COL, STANDARD_ERROR_COL, TEST_STATISTIC_COL, TRUTH_COL
)
from fdrbench.types import (
    BoolArray, CovariateSampler, Dataset, EffectSizeSampler, FloatArray, FloatDType, IntArray, Pi0Function,
    PValueFunction, StatisticPerturber
)
from fdrbench.utils import make_generator, replicate_seed
from fdrbench._validators import validate_int_value
from dataclasses import dataclass, field
from typing import Any, Iterator, Literal, Optional

import numpy.typing as npt
import pandas as pd
import numpy as np

import logging

logger = logging.getLogger(__name__)

Pi0Policy = Literal["clip", "raise"]


@dataclass(slots=True)
class SimulationConfig:
    """
    External configuration surface of the simulation generator.

    Parameters
    ----------
    m
        Number of hypotheses (positive).
    pi0_fn
        Null-proportion curve ``pi0(covariate)``.
    effect_size_dist
        Sampler of non-null effect sizes ``(size, rng) -> effects``.
    test_statistic_perturber
        Map ``(effect_size, rng) -> test_statistic`` applied to null (zero) and non-null effects alike.
    null_to_pvalue_fn
        Map ``(test_statistic, truth) -> p_value`` under the reference null distribution.
    covariate_sampler
        Sampler of the independent covariate; uniform on the unit interval by default.
    seed
        Non-negative base seed. Each replicate derives its own seed from it and the replicate index.
    n_nonnull
        Optional exact number of non-null hypotheses per replicate, in ``[0, m]``.
    pi0_policy
        What to do with null proportions outside ``[0,1]``: ``"clip"`` (clamp and continue) or ``"raise"``.
    name
        Free-text label of the setting.

    Raises
    ------
    InvalidSimulationConfigError
        On any invalid parameter.
    """
    m: int
    pi0_fn: Pi0Function
    effect_size_dist: EffectSizeSampler
    test_statistic_perturber: StatisticPerturber
    null_to_pvalue_fn: PValueFunction
    covariate_sampler: CovariateSampler = field(default_factory=UniformCovariate)
    seed: int = GLOBAL_SEED
    n_nonnull: Optional[int] = None
    pi0_policy: Pi0Policy = "clip"
    name: str = ""

    def __post_init__(self) -> None:
        try:
            self.m = validate_int_value(name="m", value=self.m, min_value=1)
            self.seed = validate_int_value(name="seed", value=self.seed, min_value=0)
            if self.n_nonnull is not None:
                self.n_nonnull = validate_int_value(name="n_nonnull", value=self.n_nonnull, min_value=0)
        except (TypeError, ValueError) as exc:
            raise InvalidSimulationConfigError(str(exc)) from exc
        if self.n_nonnull is not None and self.n_nonnull > self.m:
            raise InvalidSimulationConfigError(
                f"Requested {self.n_nonnull} non-null hypotheses but only m={self.m} tests."
            )
        if self.pi0_policy not in ("clip", "raise"):
            raise InvalidSimulationConfigError(f"pi0_policy must be 'clip' or 'raise'; got {self.pi0_policy!r}.")
        for attr in (
            "pi0_fn", "effect_size_dist", "test_statistic_perturber", "null_to_pvalue_fn", "covariate_sampler"
        ):
            if not callable(getattr(self, attr)):
                raise InvalidSimulationConfigError(f"{attr} must be callable.")

    def label(self) -> str:
        """
        Name of the setting, or a description built from its components.
        """
        if self.name:
            return self.name
        return f"m={self.m}, pi0={self.pi0_fn!r}, effects={self.effect_size_dist!r}"


@dataclass(slots=True)
class SimulatedReplicate:
    """
    One synthetic draw in its informative and uninformative variants.

    Attributes
    ----------
    informative
        Dataset carrying the true covariate.
    uninformative
        Same dataset with the covariate replaced by an independent uniform draw.
    replicate_id
        Replicate index.
    seed
        Seed of the replicate's random source.
    n_pi0_clipped
        Number of null proportions clamped to ``[0,1]``.
    """
    informative: Dataset
    uninformative: Dataset
    replicate_id: int
    seed: int
    n_pi0_clipped: int = 0

    @property
    def truth(self) -> BoolArray:
        return self.informative[TRUTH_COL].to_numpy(dtype=bool)

    @property
    def n_nonnull(self) -> int:
        return int(np.count_nonzero(a=self.truth))


class SimulationGenerator:
    """
    Composes the pluggable components of a ``SimulationConfig`` into synthetic replicates.

    Parameters
    ----------
    config
        Validated simulation configuration.
    """
    def __init__(self, config: SimulationConfig) -> None:
        if not isinstance(config, SimulationConfig):
            raise TypeError(f"config must be a SimulationConfig. Got {type(config).__name__}.")
        self._config: SimulationConfig = config

    @property
    def config(self) -> SimulationConfig:
        return self._config

    def _null_proportion(self, covariate: FloatArray) -> tuple[FloatArray, int]:
        m: int = self._config.m
        pi0: FloatArray = np.asarray(self._config.pi0_fn(covariate), dtype=FloatDType)
        if pi0.ndim == 0:
            pi0 = np.full(shape=(m,), fill_value=float(pi0), dtype=FloatDType)
        if pi0.shape != (m,):
            raise InvalidSimulationConfigError(f"pi0_fn must return shape ({m},); got {pi0.shape}.")
        if not np.all(a=np.isfinite(pi0)):
            raise InvalidSimulationConfigError("pi0_fn returned non-finite values.")
        out_of_range: int = int(np.count_nonzero(a=(pi0 < 0.0) | (pi0 > 1.0)))
        if out_of_range:
            if self._config.pi0_policy == "raise":
                raise InvalidSimulationConfigError(
                    f"pi0_fn returned {out_of_range} value(s) outside [0, 1] "
                    f"(range [{pi0.min():.4g}, {pi0.max():.4g}])."
                )
            logger.debug("Clamped %d null proportion(s) outside [0, 1].", out_of_range)
            pi0 = np.clip(pi0, 0.0, 1.0)
        return pi0, out_of_range

    def _draw_truth(self, pi0: FloatArray, rng: np.random.Generator) -> BoolArray:
        m: int = self._config.m
        nonnull_prob: FloatArray = 1.0 - pi0
        n_nonnull: Optional[int] = self._config.n_nonnull
        if n_nonnull is None:
            return rng.random(size=m) < nonnull_prob

        truth: BoolArray = np.zeros(shape=(m,), dtype=bool)
        if n_nonnull == 0:
            return truth
        eligible: int = int(np.count_nonzero(a=nonnull_prob > 0.0))
        if eligible < n_nonnull:
            raise InvalidSimulationConfigError(
                f"Requested {n_nonnull} non-null hypotheses but only {eligible} have a positive non-null probability."
            )
        chosen: IntArray = rng.choice(a=m, size=n_nonnull, replace=False, p=nonnull_prob / nonnull_prob.sum())
        truth[chosen] = True
        return truth

    def _vector(self, name: str, value: npt.ArrayLike) -> FloatArray:
        m: int = self._config.m
        array: FloatArray = np.asarray(value, dtype=FloatDType)
        if array.shape != (m,):
            raise InvalidSimulationConfigError(f"{name} must produce shape ({m},); got {array.shape}.")
        return array

    def generate(self, replicate_id: int) -> SimulatedReplicate:
        """
        Produce one replicate.

        Parameters
        ----------
        replicate_id
            Non-negative replicate index; with the base seed, it fully determines the draw.

        Raises
        ------
        InvalidSimulationConfigError
            If a component returns output of the wrong shape, ``pi0_fn`` returns non-finite values (or out-of-range
            values under the ``"raise"`` policy), or the fixed non-null count cannot be honoured.

        Returns
        -------
        SimulatedReplicate
            The informative and uninformative datasets of the replicate.
        """
        replicate_id = validate_int_value(name="replicate_id", value=replicate_id, min_value=0)
        cfg: SimulationConfig = self._config
        seed: int = replicate_seed(base_seed=cfg.seed, replicate_index=replicate_id)
        rng: np.random.Generator = make_generator(seed_or_rng=seed)
        m: int = cfg.m

        covariate: FloatArray = self._vector(name="covariate_sampler", value=cfg.covariate_sampler(m, rng))
        pi0, n_clipped = self._null_proportion(covariate=covariate)
        truth: BoolArray = self._draw_truth(pi0=pi0, rng=rng)

        effect_size: FloatArray = np.zeros(shape=(m,), dtype=FloatDType)
        n_nonnull: int = int(np.count_nonzero(a=truth))
        if n_nonnull:
            effects: FloatArray = np.asarray(cfg.effect_size_dist(n_nonnull, rng), dtype=FloatDType)
            if effects.shape != (n_nonnull,):
                raise InvalidSimulationConfigError(
                    f"effect_size_dist must produce shape ({n_nonnull},); got {effects.shape}."
                )
            effect_size[truth] = effects

        test_statistic: FloatArray = self._vector(
            name="test_statistic_perturber", value=cfg.test_statistic_perturber(effect_size, rng)
        )
        p_value: FloatArray = self._vector(
            name="null_to_pvalue_fn", value=cfg.null_to_pvalue_fn(test_statistic, truth)
        )
        if not np.all(a=(p_value >= 0.0) & (p_value <= 1.0)):
            raise InvalidSimulationConfigError("null_to_pvalue_fn must return p-values in [0, 1].")
        # Drawn last, so the informative draw does not depend on it.
        fresh_covariate: FloatArray = rng.uniform(low=0.0, high=1.0, size=m)

        columns: dict[str, Any] = {
            P_VALUE_COL: p_value,
            TEST_STATISTIC_COL: test_statistic,
            EFFECT_SIZE_COL: effect_size,
        }
        standard_error: Optional[float] = getattr(cfg.test_statistic_perturber, "standard_error", None)
        if standard_error is not None:
            columns[STANDARD_ERROR_COL] = np.full(shape=(m,), fill_value=float(standard_error), dtype=FloatDType)

        informative: Dataset = pd.DataFrame(data={**columns, COVARIATE_COL: covariate, TRUTH_COL: truth})
        uninformative: Dataset = pd.DataFrame(data={**columns, COVARIATE_COL: fresh_covariate, TRUTH_COL: truth})

        return SimulatedReplicate(
            informative=informative, uninformative=uninformative, replicate_id=replicate_id, seed=seed,
            n_pi0_clipped=n_clipped,
        )

    def generate_many(self, n_replicates: int, start: int = 0) -> Iterator[SimulatedReplicate]:
        """
        Lazily produce replicates ``start, start + 1, ..., start + n_replicates - 1``.
        """
        n_replicates = validate_int_value(name="n_replicates", value=n_replicates, min_value=0)
        start = validate_int_value(name="start", value=start, min_value=0)
        for replicate_id in range(start, start + n_replicates):
            yield self.generate(replicate_id=replicate_id)

    def __repr__(self) -> str:
        return f"SimulationGenerator({self._config.label()})"


def simulate(config: SimulationConfig, replicate_id: int = 0) -> SimulatedReplicate:
    """
    Function form of ``SimulationGenerator(config).generate(replicate_id)``.
    """
    return SimulationGenerator(config=config).generate(replicate_id=replicate_id)
