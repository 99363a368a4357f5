"""Partitions and the data loader.

A :class:`Partition` is one disjoint subset of the full dataset.  The
core never mutates partition data; the dataclass is frozen and the
frame is only read through :func:`~little_bootstraps.spec.build_design`.

Partitions come from three places:

* :func:`load_partition` / :func:`load_partitions` — one partition per
  file (CSV, or Parquet when a Parquet engine is installed).  This is
  the natural layout for data that was too large to hold in one frame
  in the first place.
* :func:`split_data` — a random disjoint split of an in-memory frame
  into ``m`` nearly equal parts.
* :func:`as_partition` — wrap an existing pandas or Polars frame.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold

from ._backends import resolve_executor
from ._compat import DataFrameLike, _ensure_pandas_df
from .exceptions import InvalidArgument

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike


@dataclass(frozen=True, eq=False)
class Partition:
    """One subsample of the full dataset.

    Attributes:
        data: The partition's rows.
        label: Identifier used in results and error messages (the
            source path for loaded files).
    """

    data: pd.DataFrame
    label: str

    @property
    def row_count(self) -> int:
        """Number of rows, ``n_sub``."""
        return len(self.data)

    def __repr__(self) -> str:
        return f"Partition(label={self.label!r}, rows={self.row_count})"


def load_partition(path: PathLike, **read_kwargs: Any) -> Partition:
    """Read one file into a partition labelled with its path.

    ``.parquet`` / ``.pq`` files go through :func:`pandas.read_parquet`;
    everything else through :func:`pandas.read_csv`.  Extra keyword
    arguments are forwarded to the reader.
    """
    path = Path(path)
    if path.suffix.lower() in (".parquet", ".pq"):
        frame = pd.read_parquet(path, **read_kwargs)
    else:
        frame = pd.read_csv(path, **read_kwargs)
    logger.debug("Loaded %d rows from %s", len(frame), path)
    return Partition(data=frame, label=str(path))


def load_partitions(
    paths: Sequence[PathLike],
    *,
    n_jobs: int = 1,
    backend: str | None = None,
    **read_kwargs: Any,
) -> list[Partition]:
    """Load one partition per path, optionally in parallel.

    Reading runs through the same executor layer as fitting, so output
    order matches *paths* and a failing read aborts the whole load.
    """
    if not paths:
        raise InvalidArgument("At least one path is required.")
    executor = resolve_executor(backend, n_jobs=n_jobs)
    return list(executor.map(_PartitionReader(read_kwargs), list(paths)))


@dataclass(frozen=True)
class _PartitionReader:
    """Picklable ``load_partition`` closure for process-based executors."""

    read_kwargs: dict[str, Any]

    def __call__(self, path: PathLike) -> Partition:
        return load_partition(path, **self.read_kwargs)


def split_data(
    data: DataFrameLike,
    m: int,
    *,
    random_state: int | None = None,
) -> list[Partition]:
    """Randomly split *data* into *m* disjoint, nearly equal partitions.

    Uses scikit-learn's shuffled ``KFold``; partition ``i`` is the
    held-out fold ``i``, so every row lands in exactly one partition.
    Row order within a partition follows the original frame.

    Raises:
        InvalidArgument: If ``m < 1`` or *data* has fewer than *m* rows.
    """
    frame = _ensure_pandas_df(data, name="data")
    if isinstance(m, bool) or not isinstance(m, (int, np.integer)) or m < 1:
        raise InvalidArgument(f"m must be a positive integer, got {m!r}.")
    if m == 1:
        return [Partition(data=frame, label="partition-0")]
    if len(frame) < m:
        raise InvalidArgument(
            f"Cannot split {len(frame)} rows into {m} non-empty partitions."
        )

    folds = KFold(n_splits=int(m), shuffle=True, random_state=random_state)
    return [
        Partition(data=frame.iloc[np.sort(idx)], label=f"partition-{i}")
        for i, (_, idx) in enumerate(folds.split(np.arange(len(frame))))
    ]


def as_partition(obj: Partition | DataFrameLike | PathLike, label: str) -> Partition:
    """Normalise a partition, frame or file path into a :class:`Partition`.

    Frames are labelled with *label*; paths keep their own path label.
    """
    if isinstance(obj, Partition):
        return obj
    if isinstance(obj, (str, os.PathLike)):
        return load_partition(obj)
    return Partition(data=_ensure_pandas_df(obj, name=label), label=label)


__all__ = [
    "Partition",
    "as_partition",
    "load_partition",
    "load_partitions",
    "split_data",
]
