"""
Maps from test statistics to p-values under reference null distributions (``scipy.stats``).
"""
from .base import PValueMap

from fdrbench.types import FloatArray
from fdrbench._validators import validate_bounded_value
from scipy import stats

import numpy as np


class GaussianPValue(PValueMap):
    """
    Standard-normal reference null, two-sided by default (upper tail otherwise).

    Parameters
    ----------
    two_sided
        Whether to compute :math:`2\\,\\bar\\Phi(|z|/sd)` rather than :math:`\\bar\\Phi(z/sd)`.
    sd
        Null standard deviation of the statistic.
    """
    def __init__(self, two_sided: bool = True, sd: float = 1.0) -> None:
        self._two_sided: bool = bool(two_sided)
        self._sd: float = validate_bounded_value(name="sd", value=sd, min_value=0.0, min_inclusive=False)

    def _evaluate(self, test_statistic: FloatArray) -> FloatArray:
        z: FloatArray = test_statistic / self._sd
        if self._two_sided:
            return 2.0 * stats.norm.sf(np.abs(z))
        return stats.norm.sf(z)


class StudentTPValue(PValueMap):
    """
    Student-t reference null with *df* degrees of freedom, two-sided by default.
    """
    def __init__(self, df: float, two_sided: bool = True) -> None:
        self._df: float = validate_bounded_value(name="df", value=df, min_value=0.0, min_inclusive=False)
        self._two_sided: bool = bool(two_sided)

    def _evaluate(self, test_statistic: FloatArray) -> FloatArray:
        if self._two_sided:
            return 2.0 * stats.t.sf(np.abs(test_statistic), df=self._df)
        return stats.t.sf(test_statistic, df=self._df)


class ChiSquaredPValue(PValueMap):
    """
    Central :math:`\\chi^2_{df}` reference null (upper tail).
    """
    def __init__(self, df: float) -> None:
        self._df: float = validate_bounded_value(name="df", value=df, min_value=0.0, min_inclusive=False)

    def _evaluate(self, test_statistic: FloatArray) -> FloatArray:
        return stats.chi2.sf(test_statistic, df=self._df)
