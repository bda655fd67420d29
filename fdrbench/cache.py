"""
Cache collaborators for expensive intermediate results (replicate ensembles, standardized tables).

The core never reads or writes files itself; callers wrap a computation with ``cache.get_or_compute(key, compute_fn)``.
``DirectoryCache`` persists values with ``pandas.to_pickle`` and writes atomically: the blob goes to a temporary file
in the target directory, which then replaces the final path with ``os.replace``.
"""
from fdrbench.utils import slug
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Iterator

import pandas as pd

import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class Cache(ABC):
    """
    Abstract key-value cache with a ``get_or_compute`` entry point.
    """
    @abstractmethod
    def __contains__(self, key: str) -> bool: ...

    @abstractmethod
    def get(self, key: str) -> Any:
        """
        Return the cached value.

        Raises
        ------
        KeyError
            If *key* is not cached.
        """

    @abstractmethod
    def put(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    def get_or_compute(self, key: str, compute_fn: Callable[[], Any]) -> Any:
        """
        Return the cached value of *key*, computing and storing it first when absent.
        """
        if key in self:
            logger.debug("Cache hit for %r.", key)
            return self.get(key=key)
        logger.debug("Cache miss for %r; computing.", key)
        value: Any = compute_fn()
        self.put(key=key, value=value)
        return value


class MemoryCache(Cache):
    """
    In-process dictionary cache.
    """
    def __init__(self) -> None:
        self._store: dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def get(self, key: str) -> Any:
        return self._store[key]

    def put(self, key: str, value: Any) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._store))


class DirectoryCache(Cache):
    """
    One pickle file per key under a root directory.

    Parameters
    ----------
    root
        Directory holding the blobs; created if missing.
    suffix
        File extension of the blobs.
    """
    def __init__(self, root: str | os.PathLike, suffix: str = ".pkl") -> None:
        self._root: Path = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._suffix: str = suffix

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        """
        File path of *key*: the slugified key plus the suffix.
        """
        name: str = slug(key)
        if not name:
            raise ValueError(f"Cache key {key!r} has no filename-safe characters.")
        return self._root / f"{name}{self._suffix}"

    def __contains__(self, key: str) -> bool:
        return self.path_for(key=key).is_file()

    def get(self, key: str) -> Any:
        path: Path = self.path_for(key=key)
        if not path.is_file():
            raise KeyError(key)
        return pd.read_pickle(filepath_or_buffer=path)

    def put(self, key: str, value: Any) -> None:
        path: Path = self.path_for(key=key)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=self._root)
        os.close(fd)
        try:
            pd.to_pickle(obj=value, filepath_or_buffer=tmp_name)
            os.replace(src=tmp_name, dst=path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Cached %r at %s.", key, path)

    def delete(self, key: str) -> None:
        self.path_for(key=key).unlink(missing_ok=True)

    def __repr__(self) -> str:
        return f"DirectoryCache(root={str(self._root)!r})"
