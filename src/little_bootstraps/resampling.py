"""Multinomial reweighting — the resampling step of BLB.

Multinomial weights
-------------------
A plain bootstrap of a size-``n`` dataset draws ``n`` rows with
replacement.  Counting how often each row was drawn gives a weight
vector ``w ~ Multinomial(n, (1/n, …, 1/n))``, and fitting a weighted
model with ``w`` is equivalent to fitting on the materialised resample.

BLB applies the same trick to a *subsample* of ``n_sub`` rows but keeps
the total at ``n_true``, the row count of the full, unpartitioned
dataset:

    w ~ Multinomial(n_true, (1/n_sub, …, 1/n_sub)),   Σ w = n_true

Each replicate therefore behaves like a full-size bootstrap sample
(its estimator variability is on the scale of ``n_true``, not
``n_sub``) while only ``n_sub`` distinct rows ever need to be touched.

Random streams
--------------
Every partition owns an independent ``numpy.random.Generator``
derived from one root :class:`numpy.random.SeedSequence`.  Because the
streams are fixed before any work is scheduled, the draws for a given
partition are identical whether partitions run sequentially, on
threads, or in worker processes.
"""

from __future__ import annotations

import numpy as np

from .exceptions import InvalidArgument


def draw_weights(
    n_sub: int,
    n_true: int,
    rng: np.random.Generator | int | None = None,
) -> np.ndarray:
    """Draw one multinomial weight vector for a subsample.

    Args:
        n_sub: Number of rows in the partition (number of categories).
        n_true: Row count of the full dataset (number of trials).
        rng: A ``Generator``, a seed, or ``None`` for fresh entropy.

    Returns:
        Integer array of shape ``(n_sub,)`` with non-negative entries
        summing exactly to *n_true*.

    Raises:
        InvalidArgument: If ``n_sub <= 0`` or ``n_true <= 0``.
    """
    n_sub = _as_positive_int(n_sub, "n_sub")
    n_true = _as_positive_int(n_true, "n_true")
    rng = np.random.default_rng(rng)
    pvals = np.full(n_sub, 1.0 / n_sub)
    return rng.multinomial(n_true, pvals).astype(np.int64)


def spawn_generators(
    random_state: int | np.random.SeedSequence | None,
    count: int,
) -> list[np.random.SeedSequence]:
    """Derive *count* independent child seed sequences.

    The children (not generators) are returned because seed sequences
    are cheap to pickle and can be turned into a ``Generator`` inside
    whichever worker ends up running the partition.

    Args:
        random_state: Root seed, an existing ``SeedSequence``, or
            ``None`` for fresh OS entropy.
        count: Number of children, one per partition.

    Returns:
        List of *count* ``SeedSequence`` objects.
    """
    if count < 0:
        raise InvalidArgument(f"count must be non-negative, got {count}.")
    root = (
        random_state
        if isinstance(random_state, np.random.SeedSequence)
        else np.random.SeedSequence(random_state)
    )
    return root.spawn(count)


def _as_positive_int(value: int, name: str) -> int:
    """Validate that *value* is an integral number ``>= 1``."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}.")
    if value <= 0:
        raise InvalidArgument(f"{name} must be positive, got {value}.")
    return int(value)


__all__ = ["draw_weights", "spawn_generators"]
