"""joblib-backed parallel executor.

Parallelism
~~~~~~~~~~~
``prefer="threads"`` (the default policy) runs partitions on a thread
pool.  The heavy work inside a replicate (LAPACK ``dgelsd`` for the
weighted least-squares solve and the BLAS calls inside statsmodels'
IRLS) releases the GIL, so threads overlap on multi-core hardware
without pickling partitions.

``prefer="processes"`` uses joblib's loky process pool.  Partitions,
the subsample estimator and any raised
:class:`~little_bootstraps.exceptions.FitError` are pickled across the
process boundary, which costs a copy of each partition but sidesteps
the GIL entirely for Python-heavy fits.

Either way ``joblib.Parallel`` returns results in submission order and
re-raises the first worker exception in the parent.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from joblib import Parallel, delayed

from ..exceptions import InvalidArgument

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class JoblibExecutor:
    """Ordered parallel ``map`` on a joblib worker pool.

    Attributes:
        n_jobs: Worker count (``-1`` = all CPUs).
        prefer: ``"threads"`` or ``"processes"``.
    """

    n_jobs: int = -1
    prefer: str = "threads"

    def __post_init__(self) -> None:
        if self.prefer not in ("threads", "processes"):
            raise InvalidArgument(
                f"prefer must be 'threads' or 'processes', got {self.prefer!r}."
            )
        if self.n_jobs == 0:
            raise InvalidArgument("n_jobs must be non-zero.")

    @property
    def name(self) -> str:
        return self.prefer

    def map(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        if not items:
            return []
        results = Parallel(n_jobs=self.n_jobs, prefer=self.prefer)(
            delayed(fn)(item) for item in items
        )
        return list(results)
