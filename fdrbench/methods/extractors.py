"""
Output extractors.

An extractor maps the raw return value of a correction procedure to a numeric vector of adjusted p-values aligned to
the input order. Procedures that return the vector directly use `identity_extractor`; procedures that return a
structured object (a tuple, a named result, a mapping, a data frame) are paired with one of the factories below.

All factories return small callable objects rather than closures so that registries remain picklable and can be
shipped to process pools.
"""
from typing import Any

import numpy.typing as npt


def identity_extractor(raw: Any) -> npt.ArrayLike:
    """
    Return the raw output unchanged (the procedure already returns adjusted p-values).
    """
    return raw


class attribute_extractor:
    """
    Extract an attribute of the raw output, e.g. ``attribute_extractor("qvalues")``.
    """
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name: str = name

    def __call__(self, raw: Any) -> npt.ArrayLike:
        return getattr(raw, self.name)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, attribute_extractor) and other.name == self.name

    def __hash__(self) -> int:
        return hash(("attribute", self.name))

    def __repr__(self) -> str:
        return f"attribute_extractor({self.name!r})"


class item_extractor:
    """
    Extract an item of the raw output by key or position, e.g. ``item_extractor(1)`` for the second element of the
    tuple returned by ``statsmodels.stats.multitest.multipletests``, or ``item_extractor("qvalue")`` for a mapping or
    a data-frame column.
    """
    __slots__ = ("key",)

    def __init__(self, key: Any) -> None:
        self.key: Any = key

    def __call__(self, raw: Any) -> npt.ArrayLike:
        return raw[self.key]

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, item_extractor) and other.key == self.key

    def __hash__(self) -> int:
        return hash(("item", self.key))

    def __repr__(self) -> str:
        return f"item_extractor({self.key!r})"


#: Aliases kept for readability at registration sites.
column_extractor = item_extractor
tuple_extractor = item_extractor
