"""Subsample estimator — B resample-and-fit replicates for one partition.

The :class:`SubsampleEstimator` captures everything that is shared by
all partitions of a fit (spec, family, ``n_true``, B) and exposes one
operation, :meth:`~SubsampleEstimator.estimate`, that turns a single
partition plus its random stream into a
:class:`~little_bootstraps._results.SubsampleEstimate`:

1. **Design** — resolve the spec against the partition once.
2. **Validation** — reject a response the family cannot model.
3. **Replicate loop** — B times: draw multinomial weights with total
   ``n_true`` over the partition's ``n_sub`` rows, then solve the
   weighted fit.

Replicates share no state beyond the partition's generator, which is
advanced once per draw, so every replicate is an independent draw.
Any fit failure aborts the partition with the partition label and the
replicate index attached; the coordinator then aborts the whole fit.

The estimator is a frozen dataclass and is callable on ``(partition,
seed)`` tasks, which makes it picklable for process-based executors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from ._results import SubsampleEstimate
from .data import Partition
from .exceptions import FitError, InvalidArgument, SchemaMismatch
from .families import ModelFamily, resolve_family
from .resampling import draw_weights
from .spec import ModelSpec, build_design

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubsampleEstimator:
    """Run the BLB replicate loop on one partition at a time.

    Attributes:
        spec: The model specification.
        n_true: Multinomial total per replicate (full-data row count).
        n_boot: Number of replicates B.
        family: Resolved family; derived from ``spec.family`` when
            omitted.
    """

    spec: ModelSpec
    n_true: int
    n_boot: int
    family: ModelFamily = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.family is None:
            object.__setattr__(self, "family", resolve_family(self.spec.family))
        for name in ("n_true", "n_boot"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidArgument(f"{name} must be an integer, got {value!r}.")
            if value < 1:
                raise InvalidArgument(f"{name} must be >= 1, got {value}.")

    def estimate(
        self,
        partition: Partition,
        rng: np.random.Generator | np.random.SeedSequence | int | None = None,
    ) -> SubsampleEstimate:
        """Produce the B replicate estimates for *partition*.

        Args:
            partition: The partition to resample.
            rng: The partition's random stream (a ``Generator``, a
                ``SeedSequence``, a seed, or ``None``).

        Returns:
            A :class:`SubsampleEstimate` with exactly ``n_boot`` rows.

        Raises:
            InvalidArgument: If the partition is empty or its response
                does not suit the family.
            SchemaMismatch: If the partition lacks model columns.
            SingularFit, NonConvergence: If any replicate fit fails.
        """
        n_sub = partition.row_count
        if n_sub == 0:
            raise InvalidArgument(f"Partition {partition.label!r} is empty.")

        try:
            X, y = build_design(self.spec, partition.data)
        except SchemaMismatch as exc:
            raise SchemaMismatch(
                f"{exc} (partition {partition.label!r})", exc.columns
            ) from exc
        try:
            self.family.validate_y(y)
        except InvalidArgument as exc:
            raise InvalidArgument(f"{exc} (partition {partition.label!r})") from exc

        gen = np.random.default_rng(rng)
        p = X.shape[1]
        coefs = np.empty((self.n_boot, p))
        disp = np.empty(self.n_boot) if self.family.has_dispersion else None

        logger.debug(
            "Partition %s: %d rows, %d replicates, n_true=%d",
            partition.label,
            n_sub,
            self.n_boot,
            self.n_true,
        )
        for b in range(self.n_boot):
            weights = draw_weights(n_sub, self.n_true, gen)
            try:
                coefs[b], sigma = self.family.fit_weighted(X, y, weights)
            except FitError as exc:
                raise exc.with_location(partition.label, b) from exc
            if disp is not None:
                disp[b] = sigma
        logger.debug("Partition %s: done", partition.label)

        return SubsampleEstimate(
            label=partition.label,
            coef_names=self.spec.coef_names,
            coefs=coefs,
            dispersions=disp,
        )

    def __call__(
        self, task: tuple[Partition, np.random.SeedSequence]
    ) -> SubsampleEstimate:
        partition, seed = task
        return self.estimate(partition, seed)


__all__ = ["SubsampleEstimator"]
