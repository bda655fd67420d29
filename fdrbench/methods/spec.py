"""
Declarative description of one correction method.

A ``MethodSpec`` couples a correction callable with its fixed parameters and with the extractor that turns the raw
return value into adjusted p-values. The mapping between the callable's parameters and the dataset fields is resolved
**once, at construction**, from the callable's signature, so that binding mistakes surface when the registry is built
rather than in the middle of a benchmarking run.

Binding rules
-------------
* A parameter whose name is one of the dataset fields (``p_value``, ``test_statistic``, ``effect_size``,
  ``standard_error``, ``ind_covariate``) is bound to that field, unless an explicit ``bindings`` mapping says
  otherwise.
* Bound fields without a default value in the callable are *required*: the executor records the method as
  unsupported on datasets lacking them.
* Every remaining fixed parameter must be accepted by the callable (by name, or through ``**kwargs``).
"""
from fdrbench.exceptions import MethodBindingError
from fdrbench.methods.extractors import identity_extractor
from fdrbench.settings import DATASET_FIELDS
from fdrbench.types import CorrectionCallable, Extractor
from fdrbench._validators import validate_method_id
from dataclasses import dataclass, field, replace
from typing import Any, Iterator, Mapping, Optional

import inspect


class FrozenParams(Mapping[str, Any]):
    """
    Read-only, picklable mapping of fixed method parameters.
    """
    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FrozenParams):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted((k, repr(v)) for k, v in self._data.items())))

    def __getstate__(self) -> dict[str, Any]:
        return self._data

    def __setstate__(self, state: dict[str, Any]) -> None:
        self._data = dict(state)

    def __repr__(self) -> str:
        return f"FrozenParams({self._data!r})"


def _signature(func: CorrectionCallable) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(func)
    except (TypeError, ValueError):
        # Some builtins and extension callables do not expose a signature.
        return None


def _resolve_bindings(
    method_id: str, func: CorrectionCallable, params: Mapping[str, Any], bindings: Optional[Mapping[str, str]]
) -> tuple[dict[str, str], tuple[str, ...]]:
    """
    Resolve the parameter-to-field binding schema of a correction callable.

    Parameters
    ----------
    method_id
        Identifier of the method, used in error messages.
    func
        Correction callable.
    params
        Fixed parameters of the method.
    bindings
        Optional explicit mapping ``{parameter name: dataset field}``. When given, it replaces the name-based
        resolution.

    Raises
    ------
    MethodBindingError
        If no dataset field can be bound, a fixed parameter collides with a bound parameter, a binding names an unknown
        field, or a parameter is not accepted by the callable.

    Returns
    -------
    tuple[dict[str, str], tuple[str, ...]]
        The resolved ``{parameter: field}`` mapping (in signature order where known) and the required fields.
    """
    sig: Optional[inspect.Signature] = _signature(func=func)
    accepts_var_kw: bool = sig is None or any(
        p.kind is inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values()
    )
    named: dict[str, inspect.Parameter] = {} if sig is None else {
        name: p for name, p in sig.parameters.items()
        if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    }

    resolved: dict[str, str]
    if bindings is not None:
        resolved = {}
        for param_name, field_name in bindings.items():
            if field_name not in DATASET_FIELDS:
                raise MethodBindingError(
                    f"Method {method_id!r}: parameter {param_name!r} is bound to unknown dataset field "
                    f"{field_name!r}; expected one of {', '.join(DATASET_FIELDS)}."
                )
            if param_name not in named and not accepts_var_kw:
                raise MethodBindingError(
                    f"Method {method_id!r}: callable does not accept parameter {param_name!r}."
                )
            resolved[param_name] = field_name
    elif sig is None:
        # Opaque callables receive the p-values by name.
        resolved = {DATASET_FIELDS[0]: DATASET_FIELDS[0]}
    else:
        resolved = {name: name for name in named if name in DATASET_FIELDS}

    if not resolved:
        raise MethodBindingError(
            f"Method {method_id!r}: callable accepts none of the dataset fields ({', '.join(DATASET_FIELDS)})."
        )

    collisions: list[str] = [name for name in params if name in resolved or name in DATASET_FIELDS]
    if collisions:
        raise MethodBindingError(
            f"Method {method_id!r}: fixed parameter(s) {', '.join(collisions)} collide with dataset fields."
        )
    if not accepts_var_kw:
        unknown: list[str] = [name for name in params if name not in named]
        if unknown:
            raise MethodBindingError(
                f"Method {method_id!r}: callable does not accept parameter(s) {', '.join(unknown)}."
            )

    required: tuple[str, ...] = tuple(
        field_name for param_name, field_name in resolved.items()
        if param_name not in named or named[param_name].default is inspect.Parameter.empty
    )
    return resolved, required


@dataclass(frozen=True)
class MethodSpec:
    """
    Immutable description of a correction method.

    Parameters
    ----------
    method_id
        Unique identifier of the method inside a registry.
    func
        Correction callable following the plug-in contract (dataset fields by keyword plus fixed parameters).
    params
        Fixed parameters passed to ``func`` on every call. Stored as a read-only mapping.
    extractor
        Maps the raw output of ``func`` to adjusted p-values. Defaults to the identity.
    bindings
        Optional explicit ``{parameter name: dataset field}`` mapping. By default, parameters named after dataset
        fields are bound to them.
    description
        Free-text description, reported in summaries.

    Attributes
    ----------
    field_bindings
        Resolved ``{parameter name: dataset field}`` mapping.
    required_fields
        Dataset fields that must be present for the method to run.
    """
    method_id: str
    func: CorrectionCallable
    params: Mapping[str, Any] = field(default_factory=FrozenParams)
    extractor: Extractor = identity_extractor
    bindings: Optional[Mapping[str, str]] = None
    description: str = ""
    field_bindings: Mapping[str, str] = field(init=False, repr=False, compare=False)
    required_fields: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        validate_method_id(name="method_id", value=self.method_id)
        if not callable(self.func):
            raise TypeError(f"func of method {self.method_id!r} must be callable.")
        if self.extractor is None:
            object.__setattr__(self, "extractor", identity_extractor)
        elif not callable(self.extractor):
            raise TypeError(f"extractor of method {self.method_id!r} must be callable.")
        if not isinstance(self.params, Mapping):
            raise TypeError(f"params of method {self.method_id!r} must be a mapping.")
        params: FrozenParams = FrozenParams(data=self.params)
        bindings: Optional[FrozenParams] = None if self.bindings is None else FrozenParams(data=self.bindings)
        resolved, required = _resolve_bindings(
            method_id=self.method_id, func=self.func, params=params, bindings=bindings
        )
        object.__setattr__(self, "params", params)
        object.__setattr__(self, "bindings", bindings)
        object.__setattr__(self, "field_bindings", FrozenParams(data=resolved))
        object.__setattr__(self, "required_fields", required)

    @property
    def bound_fields(self) -> tuple[str, ...]:
        """
        Dataset fields passed to the callable, required or optional.
        """
        return tuple(self.field_bindings.values())

    def with_params(self, **params: Any) -> "MethodSpec":
        """
        Return a new spec whose fixed parameters are merged with *params* (the new values win).

        The original spec is left untouched.
        """
        merged: dict[str, Any] = {**self.params, **params}
        return replace(self, params=merged)

    def with_id(self, method_id: str) -> "MethodSpec":
        """
        Return a copy of the spec under a different identifier.
        """
        return replace(self, method_id=method_id)

    def build_kwargs(self, columns: Mapping[str, Any]) -> dict[str, Any]:
        """
        Assemble the keyword arguments of one call.

        Parameters
        ----------
        columns
            Available dataset fields, ``{field name: column values}``. Optional fields that are absent are simply not
            passed, so the callable's own default applies.

        Raises
        ------
        KeyError
            If a required field is absent.
        """
        kwargs: dict[str, Any] = {}
        for param_name, field_name in self.field_bindings.items():
            if field_name in columns:
                kwargs[param_name] = columns[field_name]
            elif field_name in self.required_fields:
                raise KeyError(field_name)
        kwargs.update(self.params)
        return kwargs

    def __call__(self, **columns: Any) -> Any:
        """
        Invoke the callable on the given dataset fields and return its **raw** output.
        """
        return self.func(**self.build_kwargs(columns=columns))
