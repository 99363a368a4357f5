"""Bag of Little Bootstraps — execution coordinator.

The bootstrap estimates the sampling distribution of a statistic by
refitting it on many resamples of the data.  On large data each
resample is as large as the data itself, which makes B refits
prohibitively expensive.  The Bag of Little Bootstraps (Kleiner,
Talwalkar, Sarkar & Jordan, 2014) sidesteps this:

    Split the n rows into M small partitions.  Within each partition
    of n_sub rows, simulate B full-size (n-row) bootstrap resamples by
    drawing multinomial frequency weights with total n over the n_sub
    rows, and fit a weighted model for each.  Summarise the B fits per
    partition, then average the M summaries.

Each weighted fit only touches n_sub distinct rows, yet its
variability is that of an n-row resample, so the averaged percentile
intervals have the width a full bootstrap would give.

This module implements the coordinator:

* :func:`fit_model` — map the :class:`~little_bootstraps.engine.SubsampleEstimator`
  over the partitions with a sequential or parallel executor and
  package the results into a :class:`~little_bootstraps.FittedModel`.
* :func:`blb_regression` — convenience front door that accepts a
  formula string and either a single frame (split into ``m`` random
  partitions) or a list of files/frames.

Parallelism
~~~~~~~~~~~
The unit of work is one partition's complete subsample estimate.
Partitions share nothing mutable; each owns its rows and a random
stream spawned up front from one root seed.  The executor's ``map`` is
a barrier, and aggregation only starts once every partition returned,
so a fit is all-or-nothing.  Because the streams are fixed before
scheduling, the sequential and parallel paths give identical fits.

References:
    Kleiner, A., Talwalkar, A., Sarkar, P. & Jordan, M. I. (2014).
    A scalable bootstrap for massive data.  *J. R. Stat. Soc. B*,
    76(4), 795–816.
"""

from __future__ import annotations

import logging
import os
import time
import warnings
from collections.abc import Sequence
from typing import Any

from ._backends import ExecutorProtocol, describe, resolve_executor
from ._compat import DataFrameLike
from ._context import FitContext
from ._results import FittedModel
from .data import Partition, PathLike, as_partition, load_partitions, split_data
from .engine import SubsampleEstimator
from .exceptions import InvalidArgument
from .families import ModelFamily, resolve_family, suppress_fit_warnings
from .resampling import spawn_generators
from .spec import ModelSpec

logger = logging.getLogger(__name__)

DEFAULT_N_BOOT = 2_000


def fit_model(
    spec: ModelSpec,
    partitions: Sequence[Partition | DataFrameLike | PathLike],
    n_boot: int = DEFAULT_N_BOOT,
    *,
    n_true: int | None = None,
    executor: ExecutorProtocol | None = None,
    backend: str | None = None,
    n_jobs: int = 1,
    random_state: int | None = None,
    family: ModelFamily | None = None,
) -> FittedModel:
    """Fit a model with the Bag of Little Bootstraps.

    Args:
        spec: Model specification (family, response, terms).
        partitions: The data partitions, in order.  Each item may be a
            :class:`~little_bootstraps.data.Partition`, a pandas or
            Polars frame, or a path to a file readable by
            :func:`~little_bootstraps.data.load_partition`.
        n_boot: Replicates per partition (B).
        n_true: Multinomial total per replicate.  Defaults to the sum of
            all partitions' row counts, i.e. the full-data size.
        executor: An explicit executor.  Overrides *backend* and
            *n_jobs* when given.
        backend: ``"sequential"``, ``"threads"`` or ``"processes"``;
            ``None`` uses the configured policy.
        n_jobs: Worker count for parallel backends (``-1`` = all CPUs).
        random_state: Root seed.  The same seed gives the same fit under
            every executor.
        family: A configured family instance (e.g. a
            ``LogisticFamily(max_iter=50)``); defaults to the registered
            family for ``spec.family``.

    Returns:
        A frozen :class:`~little_bootstraps.FittedModel`.

    Raises:
        InvalidArgument: For an empty partition list, a non-positive
            ``n_boot``/``n_true``, or a family that does not match
            ``spec.family``.
        SchemaMismatch: If a partition lacks model columns.
        SingularFit, NonConvergence: If any replicate fit fails.  The
            error names the partition and replicate.
    """
    ctx = FitContext(
        family=spec.family,
        response=spec.response,
        terms=list(spec.terms),
        random_state=random_state,
    )

    resolved_family = resolve_family(family if family is not None else spec.family)
    if resolved_family.name != spec.family:
        raise InvalidArgument(
            f"Family {resolved_family.name!r} does not match spec family "
            f"{spec.family!r}."
        )

    # ---- Partitions ------------------------------------------------
    if not partitions:
        raise InvalidArgument("At least one partition is required.")
    parts = [
        as_partition(p, label=f"partition-{i}") for i, p in enumerate(partitions)
    ]
    for part in parts:
        if part.row_count == 0:
            raise InvalidArgument(f"Partition {part.label!r} is empty.")
    ctx.partition_labels = [p.label for p in parts]
    ctx.partition_sizes = [p.row_count for p in parts]

    total_rows = sum(ctx.partition_sizes)
    estimator = SubsampleEstimator(
        spec=spec,
        n_true=total_rows if n_true is None else n_true,
        n_boot=n_boot,
        family=resolved_family,
    )
    n_true = int(estimator.n_true)
    if n_true < total_rows:
        msg = (
            f"n_true={n_true} is smaller than the {total_rows} rows across "
            f"all partitions; intervals will reflect a smaller dataset "
            f"than the one supplied."
        )
        warnings.warn(msg, UserWarning, stacklevel=2)
        ctx.warnings_captured.append(msg)
    ctx.n_true = n_true
    ctx.n_boot = estimator.n_boot

    # ---- Executor --------------------------------------------------
    if executor is None:
        sequential = backend is not None and backend.strip().lower() == "sequential"
        if sequential and n_jobs != 1:
            msg = (
                f"n_jobs={n_jobs} is ignored by the sequential backend.  "
                f"Use backend='threads' or 'processes' for parallel fits."
            )
            warnings.warn(msg, UserWarning, stacklevel=2)
            ctx.warnings_captured.append(msg)
        executor = resolve_executor(backend, n_jobs=n_jobs)
    elif not isinstance(executor, ExecutorProtocol):
        raise InvalidArgument(
            f"executor must implement ExecutorProtocol, "
            f"got {type(executor).__name__}."
        )
    ctx.backend = executor.name
    ctx.n_jobs = executor.n_jobs

    # ---- Map & join ------------------------------------------------
    seeds = spawn_generators(random_state, len(parts))
    logger.debug(
        "Fitting %s over %d partitions (n_true=%d, B=%d) on %s",
        spec.formula,
        len(parts),
        n_true,
        n_boot,
        describe(executor),
    )
    start = time.perf_counter()
    with suppress_fit_warnings():
        subsamples = executor.map(estimator, list(zip(parts, seeds)))
    ctx.elapsed_seconds = time.perf_counter() - start
    logger.debug("BLB fit finished in %.3fs", ctx.elapsed_seconds)

    return FittedModel(
        spec=spec,
        subsamples=tuple(subsamples),
        n_true=n_true,
        n_boot=n_boot,
        family=resolved_family,
        context=ctx,
    )


def blb_regression(
    data: DataFrameLike | Sequence[Partition | DataFrameLike | PathLike],
    model: ModelSpec | str,
    *,
    family: str = "continuous",
    m: int = 10,
    n_boot: int = DEFAULT_N_BOOT,
    n_true: int | None = None,
    backend: str | None = None,
    n_jobs: int = 1,
    random_state: int | None = None,
    **family_options: Any,
) -> FittedModel:
    """Fit a BLB linear or logistic regression from a formula.

    Args:
        data: A single frame, split into *m* random partitions, or a
            sequence of partitions / frames / file paths used as-is.
            Files are loaded through the same executor as the fit.
        model: A :class:`ModelSpec`, or a formula such as
            ``"y ~ x1 + x2"`` interpreted with *family*.
        family: ``"continuous"`` or ``"binary"`` (formula input only).
        m: Number of partitions when *data* is a single frame.
        n_boot: Replicates per partition (B).
        n_true: Multinomial total; defaults to the total row count.
        backend: Executor backend name (see :func:`fit_model`).
        n_jobs: Worker count.
        random_state: Root seed for the split and the resampling.
        **family_options: Forwarded to the family constructor, e.g.
            ``max_iter`` and ``tol`` for the binary family.

    Returns:
        A frozen :class:`~little_bootstraps.FittedModel`.

    Examples:
        >>> fit = blb_regression(df, "mpg ~ wt + hp", m=3, n_boot=100,
        ...                      random_state=0)  # doctest: +SKIP
        >>> fit.confidence_interval("wt")  # doctest: +SKIP
    """
    if isinstance(model, ModelSpec):
        spec = model
    else:
        spec = ModelSpec.from_formula(model, family)
    resolved = resolve_family(spec.family, **family_options)

    if isinstance(data, (list, tuple)):
        if data and all(isinstance(d, (str, os.PathLike)) for d in data):
            partitions: Sequence[Any] = load_partitions(
                data, n_jobs=n_jobs, backend=backend
            )
        else:
            partitions = data
    else:
        partitions = split_data(data, m, random_state=random_state)

    return fit_model(
        spec,
        partitions,
        n_boot,
        n_true=n_true,
        backend=backend,
        n_jobs=n_jobs,
        random_state=random_state,
        family=resolved,
    )


__all__ = ["DEFAULT_N_BOOT", "blb_regression", "fit_model"]
