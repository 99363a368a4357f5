"""Execution backends for per-partition work.

Each backend implements the :class:`ExecutorProtocol` interface: an
ordered ``map`` over independent tasks.  The coordinator in
:mod:`little_bootstraps.core` hands every partition's subsample
estimate to the active executor via :func:`resolve_executor` rather
than branching on ``n_jobs`` at every call site.

Contract
~~~~~~~~
* ``map(fn, items)`` returns ``[fn(item) for item in items]`` — same
  length, same order as *items*.
* A failing task propagates its exception to the caller.  Partial
  results are discarded; there is no skip-and-continue mode.
* ``map`` is a barrier: it returns only after every task finished.

Resolution follows the policy set by :mod:`._config`:

1. ``n_jobs == 1`` always resolves to the sequential executor.
2. Otherwise the backend name (argument, then
   :func:`~little_bootstraps.set_backend`, then the
   ``LITTLE_BOOTSTRAPS_BACKEND`` environment variable, then
   ``"threads"``) selects the executor.

Adding a new backend (e.g. a Dask client) requires:

1. A new module ``_backends/_dask.py`` with a class implementing
   :class:`ExecutorProtocol`.
2. A branch in :func:`resolve_executor` mapping the name to the class.
3. Adding the name to ``_CONCRETE_BACKENDS`` in :mod:`._config`.

No changes to ``engine.py`` or ``core.py`` are needed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from .._config import get_backend
from ..exceptions import InvalidArgument

T = TypeVar("T")
R = TypeVar("R")

# ------------------------------------------------------------------ #
# ExecutorProtocol
# ------------------------------------------------------------------ #


@runtime_checkable
class ExecutorProtocol(Protocol):
    """Interface that every execution backend must implement.

    Attributes:
        name: Short identifier (e.g. ``"sequential"``, ``"threads"``).
        n_jobs: Worker count the executor was configured with.
    """

    @property
    def name(self) -> str: ...

    @property
    def n_jobs(self) -> int: ...

    def map(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        """Apply *fn* to every item, preserving input order.

        Exceptions raised by *fn* propagate to the caller.
        """
        ...


# ------------------------------------------------------------------ #
# Executor resolution
# ------------------------------------------------------------------ #


def resolve_executor(name: str | None = None, n_jobs: int = 1) -> ExecutorProtocol:
    """Return an :class:`ExecutorProtocol` instance.

    Args:
        name: ``"sequential"``, ``"threads"``, ``"processes"``, or
            ``None`` for the configured policy.
        n_jobs: Worker count; ``-1`` means one per CPU (joblib
            convention).  ``1`` always yields the sequential executor.

    Returns:
        An executor ready to map partition tasks.

    Raises:
        InvalidArgument: If *n_jobs* is 0 or not an integer, or *name*
            is not a recognised backend.
    """
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, int) or n_jobs == 0:
        raise InvalidArgument(f"n_jobs must be a non-zero integer, got {n_jobs!r}.")

    if name is None:
        name = get_backend()
    name = name.strip().lower()

    if name == "sequential" or n_jobs == 1:
        if name not in ("sequential", "threads", "processes"):
            raise InvalidArgument(_unknown(name))
        from ._sequential import SequentialExecutor

        return SequentialExecutor()

    if name in ("threads", "processes"):
        from ._joblib import JoblibExecutor

        return JoblibExecutor(n_jobs=n_jobs, prefer=name)

    raise InvalidArgument(_unknown(name))


def _unknown(name: str) -> str:
    return (
        f"Unknown backend {name!r}.  Choose 'sequential', 'threads' or 'processes'."
    )


def describe(executor: Any) -> str:
    """Short label for logs and run metadata."""
    return f"{getattr(executor, 'name', type(executor).__name__)}" + (
        f"(n_jobs={executor.n_jobs})" if hasattr(executor, "n_jobs") else ""
    )


__all__ = ["ExecutorProtocol", "describe", "resolve_executor"]
