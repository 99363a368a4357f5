"""In-process sequential executor (always available).

Runs tasks one after another in the calling thread.  This is the
reference behaviour every parallel backend must reproduce: because
each partition carries its own pre-spawned random stream, running the
same tasks through any other executor yields identical results.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class SequentialExecutor:
    """Ordered in-process ``map``.

    Stateless frozen dataclass that puts the plain loop
    behind the :class:`~little_bootstraps._backends.ExecutorProtocol`
    interface.
    """

    @property
    def name(self) -> str:
        return "sequential"

    @property
    def n_jobs(self) -> int:
        return 1

    def map(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        return [fn(item) for item in items]
