"""
Small, shared utility helpers.

This module provides narrow, reusable helpers that are intentionally dependency-light and safe to import from anywhere
in the package. Current utilities include:

- `make_generator`: normalize "seed or RNG" inputs into a `numpy.random.Generator`.
- `replicate_seed`: derive a per-replicate seed from a base seed and a replicate index.
- `split_into_chunks`: split replicate indices into contiguous chunks for the worker pool.
- `slug`: filename-safe identifiers for cache keys and result tables.

Design
------
Every random draw in the package goes through an explicit generator; nothing touches NumPy's global random state. A
replicate's generator depends only on ``(base_seed, replicate_index)``, so results do not depend on the scheduling
order or on the size of the worker pool.
"""
from fdrbench._validators import validate_int_value
from typing import Sequence

import numpy as np

import re


def make_generator(seed_or_rng: int | np.random.Generator | None = None) -> np.random.Generator:
    """
    Create or normalize a numpy random number generator.

    Parameters
    ----------
    seed_or_rng
        - If an int, a new `np.random.default_rng(seed_or_rng)` is created.
        - If a `np.random.Generator`, it is returned as-is.
        - If None, a new `np.random.default_rng()` is created with non-deterministic seeding.

    Returns
    -------
    A `numpy.random.Generator` instance suitable for use in simulations.
    """
    if isinstance(seed_or_rng, np.random.Generator):
        return seed_or_rng
    return np.random.default_rng(seed=seed_or_rng)


def replicate_seed(base_seed: int, replicate_index: int) -> int:
    """
    Derive the seed of one replicate from a base seed and the replicate index.

    The derivation goes through `numpy.random.SeedSequence` with the replicate index as spawn key, so neighbouring
    indices give statistically independent streams.

    Parameters
    ----------
    base_seed
        Non-negative base seed of the run.
    replicate_index
        Non-negative replicate index.

    Returns
    -------
    int
        A non-negative 64-bit seed.
    """
    base_seed = validate_int_value(name="base_seed", value=base_seed, min_value=0)
    replicate_index = validate_int_value(name="replicate_index", value=replicate_index, min_value=0)
    seq: np.random.SeedSequence = np.random.SeedSequence(entropy=base_seed, spawn_key=(replicate_index,))
    return int(seq.generate_state(n_words=1, dtype=np.uint64)[0])


def replicate_generator(base_seed: int, replicate_index: int) -> np.random.Generator:
    """
    Fresh generator seeded with ``replicate_seed(base_seed, replicate_index)``.
    """
    return make_generator(seed_or_rng=replicate_seed(base_seed=base_seed, replicate_index=replicate_index))


def split_into_chunks(items: Sequence[int], n_jobs: int, n_chunks: int | None = None) -> list[list[int]]:
    """
    Split a sequence into contiguous chunks.

    Notes
    -----
    - The number of chunks is clamped to [1, len(items)].
    - It is also clamped to ``>= n_jobs`` so every worker has something to do.

    Parameters
    ----------
    items
        Items to split, typically replicate indices.
    n_jobs
        Number of workers.
    n_chunks
        Desired number of chunks. If None, defaults to `n_jobs`.

    Returns
    -------
    List of non-empty chunks whose concatenation is ``list(items)``.
    """
    seq: list[int] = list(items)
    if not seq:
        return []

    n_workers: int = max(1, min(int(n_jobs), len(seq)))
    if n_chunks is None:
        n_chunks = n_workers
    else:
        n_chunks = int(n_chunks)
        if n_chunks <= 0:
            raise ValueError(f"`n_chunks` must be >= 1; got {n_chunks}.")
        n_chunks = max(min(n_chunks, len(seq)), n_workers)

    chunks: list[np.ndarray] = np.array_split(ary=np.asarray(seq, dtype=np.int64), indices_or_sections=n_chunks)
    return [chunk.tolist() for chunk in chunks]


def slug(s: str) -> str:
    """
    Replace non-alphanumeric characters with underscores and truncate to 80 chars.

    Parameters
    ----------
    s
        String to slugify.

    Returns
    -------
    Slugified string
    """
    s = s.strip().lower()
    s = re.sub(pattern=r"[^a-z0-9]+", repl="_", string=s)
    return s.strip("_")[:80]
