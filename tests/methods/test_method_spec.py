"""
Tests for MethodSpec binding resolution and FrozenParams.
"""
from fdrbench.exceptions import MethodBindingError
from fdrbench.methods import FrozenParams, MethodSpec, identity_extractor, item_extractor
from tests.conftest import identity_method, needs_covariate
from typing import Any

import numpy as np

import pickle
import pytest


def _with_optional_covariate(p_value: Any, ind_covariate: Any = None, n_bins: int = 5) -> Any:
    return p_value


def _with_kwargs(p_value: Any, **kwargs: Any) -> Any:
    return p_value


def _renamed(pvals: Any, x: Any, level: float = 0.1) -> Any:
    return pvals


def _no_fields(values: Any) -> Any:
    return values


def test_method_spec_binds_parameters_named_after_dataset_fields() -> None:
    spec: MethodSpec = MethodSpec(method_id="cov", func=needs_covariate)
    assert dict(spec.field_bindings) == {"p_value": "p_value", "ind_covariate": "ind_covariate"}
    assert spec.required_fields == ("p_value", "ind_covariate")
    assert spec.bound_fields == ("p_value", "ind_covariate")


def test_method_spec_fields_with_defaults_are_optional() -> None:
    spec: MethodSpec = MethodSpec(method_id="opt", func=_with_optional_covariate, params={"n_bins": 3})
    assert spec.required_fields == ("p_value",)
    kwargs: dict[str, Any] = spec.build_kwargs(columns={"p_value": [0.1]})
    assert kwargs == {"p_value": [0.1], "n_bins": 3}


def test_method_spec_explicit_bindings_replace_name_resolution() -> None:
    """
    Test that an explicit {parameter: field} mapping binds differently named parameters.
    """
    spec: MethodSpec = MethodSpec(
        method_id="renamed", func=_renamed, params={"level": 0.05}, bindings={"pvals": "p_value", "x": "ind_covariate"}
    )
    assert dict(spec.field_bindings) == {"pvals": "p_value", "x": "ind_covariate"}
    kwargs: dict[str, Any] = spec.build_kwargs(columns={"p_value": 1, "ind_covariate": 2, "effect_size": 3})
    assert kwargs == {"pvals": 1, "x": 2, "level": 0.05}


@pytest.mark.parametrize(
    argnames="func, params, bindings",
    argvalues=[
        (_no_fields, {}, None),
        (identity_method, {"p_value": 0.1}, None),
        (identity_method, {"alpha": 0.1}, None),
        (_renamed, {}, {"pvals": "pvalue"}),
        (_renamed, {}, {"unknown": "p_value"}),
    ],
)
def test_method_spec_binding_errors_surface_at_construction(
    func: Any, params: dict[str, Any], bindings: Any
) -> None:
    """
    Test that unbound callables, field collisions, unknown parameters and unknown fields raise at construction.
    """
    with pytest.raises(expected_exception=MethodBindingError):
        MethodSpec(method_id="bad", func=func, params=params, bindings=bindings)


def test_method_spec_var_keyword_callables_accept_any_parameter() -> None:
    spec: MethodSpec = MethodSpec(method_id="kw", func=_with_kwargs, params={"anything": 1})
    assert spec.build_kwargs(columns={"p_value": 0.5}) == {"p_value": 0.5, "anything": 1}


def test_method_spec_build_kwargs_raises_on_missing_required_field() -> None:
    spec: MethodSpec = MethodSpec(method_id="cov", func=needs_covariate)
    with pytest.raises(expected_exception=KeyError):
        spec.build_kwargs(columns={"p_value": [0.1]})


@pytest.mark.parametrize(argnames="method_id, func", argvalues=[("", identity_method), ("ok", 3)])
def test_method_spec_rejects_invalid_id_or_func(method_id: Any, func: Any) -> None:
    with pytest.raises(expected_exception=(TypeError, ValueError)):
        MethodSpec(method_id=method_id, func=func)


def test_method_spec_with_params_returns_a_new_spec() -> None:
    """
    Test that with_params merges parameters into a new spec and leaves the original untouched.
    """
    spec: MethodSpec = MethodSpec(method_id="opt", func=_with_optional_covariate, params={"n_bins": 3})
    other: MethodSpec = spec.with_params(n_bins=7)
    assert other.params["n_bins"] == 7
    assert spec.params["n_bins"] == 3
    assert other.method_id == spec.method_id
    assert spec.with_id("renamed").method_id == "renamed"


def test_method_spec_is_immutable_and_defaults_to_identity_extractor() -> None:
    spec: MethodSpec = MethodSpec(method_id="id", func=identity_method, extractor=None)
    assert spec.extractor is identity_extractor
    with pytest.raises(expected_exception=AttributeError):
        spec.method_id = "other"  # type: ignore[misc]
    with pytest.raises(expected_exception=TypeError):
        spec.params["x"] = 1  # type: ignore[index]


def test_method_spec_call_returns_raw_output() -> None:
    spec: MethodSpec = MethodSpec(
        method_id="pair", func=lambda p_value: (p_value, p_value * 2), extractor=item_extractor(1)
    )
    raw: Any = spec(p_value=np.array(object=[0.1, 0.2]))
    assert isinstance(raw, tuple)
    assert np.allclose(a=spec.extractor(raw), b=[0.2, 0.4])


def test_method_spec_round_trips_through_pickle() -> None:
    spec: MethodSpec = MethodSpec(
        method_id="opt", func=_with_optional_covariate, params={"n_bins": 3}, extractor=item_extractor(0)
    )
    restored: MethodSpec = pickle.loads(pickle.dumps(spec))
    assert restored == spec
    assert restored.required_fields == spec.required_fields


def test_frozen_params_behaves_like_a_read_only_mapping() -> None:
    params: FrozenParams = FrozenParams(data={"a": 1, "b": [2]})
    assert dict(params) == {"a": 1, "b": [2]}
    assert params == {"a": 1, "b": [2]}
    assert len(params) == 2 and "a" in params
    assert hash(params) == hash(FrozenParams(data={"b": [2], "a": 1}))
    assert pickle.loads(pickle.dumps(params)) == params
