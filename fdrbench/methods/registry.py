"""
Ordered registry of correction methods.

The registry is built once per benchmarking session, single-threaded, and treated as read-only while replicates run.
Variants (methods dropped, added, or with overridden parameters) are obtained as **new** registries so that the
original is never affected.
"""
from fdrbench.exceptions import DuplicateMethodError, UnknownMethodError
from fdrbench.methods.spec import MethodSpec
from fdrbench.types import CorrectionCallable, Extractor
from typing import Any, Iterable, Iterator, Mapping, Optional

import logging

logger = logging.getLogger(__name__)


class Registry:
    """
    Ordered mapping from method identifier to ``MethodSpec``.

    Identifiers are unique and insertion order is the default comparison order used by the executor and by every table
    produced downstream.

    Parameters
    ----------
    specs
        Optional initial specs, registered in the given order.

    Notes
    -----
    The registry is not thread-safe; build it completely before handing it to an executor.
    """
    def __init__(self, specs: Optional[Iterable[MethodSpec]] = None) -> None:
        self._specs: dict[str, MethodSpec] = {}
        for spec in specs or ():
            self.add(spec=spec)

    def add(self, spec: MethodSpec) -> MethodSpec:
        """
        Register an already-built spec.

        Raises
        ------
        TypeError
            If *spec* is not a ``MethodSpec``.
        DuplicateMethodError
            If its identifier is already registered.
        """
        if not isinstance(spec, MethodSpec):
            raise TypeError(f"spec must be a MethodSpec. Got {type(spec).__name__}.")
        if spec.method_id in self._specs:
            raise DuplicateMethodError(method_id=spec.method_id)
        self._specs[spec.method_id] = spec
        logger.debug("Registered method %r bound to %s.", spec.method_id, ", ".join(spec.bound_fields))
        return spec

    def register(
        self, method_id: str, func: CorrectionCallable, params: Optional[Mapping[str, Any]] = None,
        extractor: Optional[Extractor] = None, bindings: Optional[Mapping[str, str]] = None, description: str = ""
    ) -> MethodSpec:
        """
        Build a spec and register it.

        Parameters
        ----------
        method_id
            Unique identifier.
        func
            Correction callable.
        params
            Fixed parameters (parameter defaults of the method).
        extractor
            Output extractor; identity when omitted.
        bindings
            Optional explicit ``{parameter: dataset field}`` mapping.
        description
            Free-text description.

        Raises
        ------
        DuplicateMethodError
            If *method_id* is already registered. The check happens before binding resolution.
        MethodBindingError
            If the callable cannot be bound to the dataset fields or to *params*.

        Returns
        -------
        MethodSpec
            The registered spec.
        """
        if method_id in self._specs:
            raise DuplicateMethodError(method_id=method_id)
        spec: MethodSpec = MethodSpec(
            method_id=method_id, func=func, params=params or {}, extractor=extractor, bindings=bindings,
            description=description,
        )
        return self.add(spec=spec)

    def override(self, method_id: str, /, **params: Any) -> MethodSpec:
        """
        Return a new spec with merged parameters; the registry itself is unchanged.

        Raises
        ------
        UnknownMethodError
            If *method_id* is not registered.
        """
        return self.get(method_id=method_id).with_params(**params)

    def remove(self, method_id: str) -> MethodSpec:
        """
        Remove a method and return its spec.

        Raises
        ------
        UnknownMethodError
            If *method_id* is not registered.
        """
        if method_id not in self._specs:
            raise UnknownMethodError(method_id=method_id)
        return self._specs.pop(method_id)

    def get(self, method_id: str) -> MethodSpec:
        """
        Return the spec registered under *method_id*.

        Raises
        ------
        UnknownMethodError
            If *method_id* is not registered.
        """
        try:
            return self._specs[method_id]
        except KeyError:
            raise UnknownMethodError(method_id=method_id) from None

    def list_ids(self) -> list[str]:
        """
        Identifiers in insertion order.
        """
        return list(self._specs)

    def specs(self) -> list[MethodSpec]:
        """
        Specs in insertion order.
        """
        return list(self._specs.values())

    def copy(self) -> "Registry":
        """
        Shallow copy (specs are immutable and shared).
        """
        return Registry(specs=self._specs.values())

    def with_override(self, method_id: str, /, **params: Any) -> "Registry":
        """
        Return a new registry where the entry of *method_id* carries merged parameters, at the same position.

        Raises
        ------
        UnknownMethodError
            If *method_id* is not registered.
        """
        new_spec: MethodSpec = self.override(method_id, **params)
        return Registry(specs=(new_spec if mid == method_id else spec for mid, spec in self._specs.items()))

    def without(self, *method_ids: str) -> "Registry":
        """
        Return a new registry without the given methods.

        Raises
        ------
        UnknownMethodError
            If any identifier is not registered.
        """
        for method_id in method_ids:
            if method_id not in self._specs:
                raise UnknownMethodError(method_id=method_id)
        dropped: set[str] = set(method_ids)
        return Registry(specs=(spec for mid, spec in self._specs.items() if mid not in dropped))

    def subset(self, method_ids: Iterable[str]) -> "Registry":
        """
        Return a new registry with only the given methods, in the order given.

        Raises
        ------
        UnknownMethodError
            If any identifier is not registered.
        """
        return Registry(specs=[self.get(method_id=mid) for mid in method_ids])

    def __contains__(self, method_id: Any) -> bool:
        return method_id in self._specs

    def __getitem__(self, method_id: str) -> MethodSpec:
        return self.get(method_id=method_id)

    def __iter__(self) -> Iterator[MethodSpec]:
        return iter(list(self._specs.values()))

    def __len__(self) -> int:
        return len(self._specs)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Registry):
            return NotImplemented
        return list(self._specs.items()) == list(other._specs.items())

    def __repr__(self) -> str:
        return f"Registry({', '.join(self._specs)})"
