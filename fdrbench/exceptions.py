"""
Error taxonomy of *fdrbench*.

Configuration-time errors (registry and generator setup) are raised immediately and never retried. Run-time failures
of a single correction method are **not** raised: they are captured as ``MethodExecutionFailure`` records attached to
the benchmark result, and the method's column is left missing.
"""
from dataclasses import dataclass
from typing import Any, Optional


class FDRBenchError(Exception):
    """
    Base class of every exception raised by *fdrbench*.
    """


class DuplicateMethodError(FDRBenchError, KeyError):
    """
    A method identifier is already present in the registry.
    """
    def __init__(self, method_id: str) -> None:
        super().__init__(method_id)
        self.method_id: str = method_id

    def __str__(self) -> str:
        return f"Method {self.method_id!r} is already registered."


class UnknownMethodError(FDRBenchError, KeyError):
    """
    A method identifier is not present in the registry.
    """
    def __init__(self, method_id: str) -> None:
        super().__init__(method_id)
        self.method_id: str = method_id

    def __str__(self) -> str:
        return f"Method {self.method_id!r} is not registered."


class MethodBindingError(FDRBenchError, TypeError):
    """
    A correction callable cannot be bound to the dataset fields or to its fixed parameters.
    """


class InvalidSimulationConfigError(FDRBenchError, ValueError):
    """
    The simulation configuration is inconsistent (e.g., more non-null hypotheses than tests).
    """


class ResamplingError(FDRBenchError, RuntimeError):
    """
    A resampling constraint could not be satisfied within the configured number of attempts.
    """


class MissingGroundTruthWarning(UserWarning):
    """
    Ground truth is absent; metrics that require it are not computed.
    """


@dataclass(frozen=True)
class MethodExecutionFailure:
    """
    Record of one method failing on one dataset.

    Attributes
    ----------
    method_id
        Identifier of the failing method.
    replicate_id
        Replicate on which the failure happened, if known.
    kind
        Failure category: ``"exception"``, ``"unsupported"``, ``"length_mismatch"``, ``"invalid_output"``,
        ``"timeout"`` or ``"replicate"`` (the whole replicate failed before the method could run).
    cause
        Name of the underlying exception type, or the failure category when no exception was involved.
    message
        Human-readable description.
    """
    method_id: str
    replicate_id: Optional[Any]
    kind: str
    cause: str
    message: str

    def __str__(self) -> str:
        return f"{self.method_id} (replicate {self.replicate_id}): {self.kind} [{self.cause}] {self.message}"
