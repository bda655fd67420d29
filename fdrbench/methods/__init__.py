"""
Method registry: declarative specs of correction procedures, their output extractors, and classic defaults.
"""
from fdrbench.methods.extractors import (
    attribute_extractor, column_extractor, identity_extractor, item_extractor, tuple_extractor
)
from fdrbench.methods.spec import FrozenParams, MethodSpec
from fdrbench.methods.registry import Registry
from fdrbench.methods.classic import default_registry

__all__ = [
    "FrozenParams",
    "MethodSpec",
    "Registry",
    "attribute_extractor",
    "column_extractor",
    "default_registry",
    "identity_extractor",
    "item_extractor",
    "tuple_extractor",
]
