"""Run context — mutable accumulator for fit metadata.

A :class:`FitContext` travels through :func:`~little_bootstraps.fit_model`,
collecting run metadata at the point where it becomes known.  The
finished context is attached to the :class:`~little_bootstraps.FittedModel`
so display code can report how a fit was produced without re-deriving
it.

The context is **not** part of the result's identity: it is excluded
from ``FittedModel.__eq__`` (two fits with the same replicates are the
same fit, however long they took) and from
:meth:`~little_bootstraps.FittedModel.to_dict`.

Lifecycle::

    ┌──────────────────────────────────────────────┐
    │  fit_model()                                 │
    │  ├─ ctx = FitContext()                       │
    │  ├─ ctx.family / response / terms            │
    │  ├─ ctx.partition_labels / partition_sizes   │
    │  ├─ ctx.n_true / n_boot / random_state       │
    │  ├─ ctx.backend / n_jobs                     │
    │  ├─ executor.map(SubsampleEstimator, …)      │
    │  ├─ ctx.elapsed_seconds                      │
    │  └─ FittedModel(…, context=ctx)              │
    └──────────────────────────────────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class FitContext:
    """Mutable accumulator for run metadata.

    Every field defaults to ``None`` (or an empty container) so the
    context can be created empty and populated incrementally.
    """

    # ---- Model ---------------------------------------------------
    family: str | None = None
    """Family tag (``"continuous"`` / ``"binary"``)."""

    response: str | None = None
    """Response column name."""

    terms: list[str] = field(default_factory=list)
    """Predictor column names."""

    # ---- Partitions ----------------------------------------------
    partition_labels: list[str] = field(default_factory=list)
    """Partition labels in input order."""

    partition_sizes: list[int] = field(default_factory=list)
    """Row count ``n_sub`` of each partition."""

    # ---- Resampling ----------------------------------------------
    n_true: int | None = None
    """Multinomial total used for every replicate."""

    n_boot: int | None = None
    """Replicates per partition (B)."""

    random_state: int | None = None
    """Root seed, or ``None`` when fresh entropy was used."""

    # ---- Execution -----------------------------------------------
    backend: str | None = None
    """Executor name (``"sequential"``, ``"threads"``, ``"processes"``)."""

    n_jobs: int | None = None
    """Worker count of the executor."""

    elapsed_seconds: float | None = None
    """Wall time of the partition map, in seconds."""

    # ---- Warnings ------------------------------------------------
    warnings_captured: list[str] = field(default_factory=list)
    """Advisory messages issued while setting up the fit."""


__all__ = ["FitContext"]
