"""
Tests for the method Registry.
"""
from fdrbench.exceptions import DuplicateMethodError, MethodBindingError, UnknownMethodError
from fdrbench.methods import MethodSpec, Registry, item_extractor
from tests.conftest import identity_method, needs_covariate, reject_nothing
from typing import Any

import logging
import pickle
import pytest


def _tunable(p_value: Any, alpha: float = 0.05, n_bins: int = 5) -> Any:
    return p_value


@pytest.fixture
def registry() -> Registry:
    reg: Registry = Registry()
    reg.register(method_id="a", func=identity_method)
    reg.register(method_id="b", func=_tunable, params={"alpha": 0.1})
    reg.register(method_id="c", func=needs_covariate, description="covariate-aware")
    return reg


def test_registry_preserves_insertion_order(registry: Registry) -> None:
    assert registry.list_ids() == ["a", "b", "c"]
    assert [spec.method_id for spec in registry] == ["a", "b", "c"]
    assert len(registry) == 3
    assert "b" in registry and "z" not in registry


def test_registry_register_returns_the_spec(registry: Registry) -> None:
    spec: MethodSpec = registry.register(method_id="d", func=reject_nothing, extractor=item_extractor(0))
    assert registry.get("d") is spec
    assert registry["d"].extractor == item_extractor(0)


def test_registry_rejects_duplicate_ids_before_binding(registry: Registry) -> None:
    """
    Test that a duplicate id raises DuplicateMethodError even when the callable could not be bound.
    """
    with pytest.raises(expected_exception=DuplicateMethodError) as excinfo:
        registry.register(method_id="a", func=lambda values: values)
    assert excinfo.value.method_id == "a"
    with pytest.raises(expected_exception=DuplicateMethodError):
        registry.add(spec=MethodSpec(method_id="b", func=identity_method))
    assert registry.list_ids() == ["a", "b", "c"]


def test_registry_binding_errors_leave_the_registry_unchanged(registry: Registry) -> None:
    with pytest.raises(expected_exception=MethodBindingError):
        registry.register(method_id="bad", func=identity_method, params={"unknown": 1})
    assert "bad" not in registry


def test_registry_unknown_ids_raise(registry: Registry) -> None:
    """
    Test that lookups, removals and overrides of unknown ids raise UnknownMethodError (a KeyError).
    """
    for call in (
        lambda: registry.get("z"), lambda: registry["z"], lambda: registry.remove("z"),
        lambda: registry.override("z", alpha=0.2), lambda: registry.without("a", "z"), lambda: registry.subset(["z"]),
    ):
        with pytest.raises(expected_exception=UnknownMethodError):
            call()
    with pytest.raises(expected_exception=KeyError):
        registry.get("z")


def test_registry_override_returns_new_spec_without_mutating(registry: Registry) -> None:
    original: MethodSpec = registry.get("b")
    overridden: MethodSpec = registry.override("b", alpha=0.2, n_bins=10)
    assert dict(overridden.params) == {"alpha": 0.2, "n_bins": 10}
    assert dict(registry.get("b").params) == {"alpha": 0.1}
    assert registry.get("b") is original


def test_registry_with_override_keeps_position(registry: Registry) -> None:
    updated: Registry = registry.with_override("b", alpha=0.3)
    assert updated.list_ids() == ["a", "b", "c"]
    assert updated["b"].params["alpha"] == 0.3
    assert registry["b"].params["alpha"] == 0.1
    assert updated["a"] is registry["a"]


def test_registry_remove_without_and_subset(registry: Registry) -> None:
    assert registry.without("b").list_ids() == ["a", "c"]
    assert registry.subset(["c", "a"]).list_ids() == ["c", "a"]
    removed: MethodSpec = registry.remove("a")
    assert removed.method_id == "a"
    assert registry.list_ids() == ["b", "c"]


def test_registry_copy_is_independent_and_equal(registry: Registry) -> None:
    clone: Registry = registry.copy()
    assert clone == registry
    clone.remove("c")
    assert clone != registry
    assert "c" in registry


def test_registry_specs_and_constructor(registry: Registry) -> None:
    rebuilt: Registry = Registry(specs=registry.specs())
    assert rebuilt == registry
    assert repr(rebuilt) == "Registry(a, b, c)"


def test_registry_add_rejects_non_specs() -> None:
    with pytest.raises(expected_exception=TypeError):
        Registry().add(spec=identity_method)  # type: ignore[arg-type]


def test_registry_logs_registrations(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(level=logging.DEBUG, logger="fdrbench.methods.registry"):
        Registry().register(method_id="a", func=identity_method)
    assert any("'a'" in record.getMessage() for record in caplog.records)


def test_registry_is_picklable(registry: Registry) -> None:
    restored: Registry = pickle.loads(pickle.dumps(registry))
    assert restored.list_ids() == registry.list_ids()
    assert restored["b"].params == registry["b"].params
