"""Two-level reductions over bootstrap replicates.

Every BLB quantity (coefficients, dispersion, interval endpoints,
predictions) is produced by the same two steps:

1. :func:`reduce_replicates` collapses the B replicate values of one
   partition into a partition-level statistic (a mean, or the
   ``{α/2, 1−α/2}`` quantile pair).
2. :func:`reduce_partitions` averages the M partition-level statistics.

Interval endpoints are therefore the mean of each partition's own
percentile interval, not quantiles of the pooled replicates.  Means
and quantiles are symmetric functions of their inputs, so neither step
depends on partition order or on replicate order.

Quantiles use NumPy's default linear interpolation (Hyndman & Fan
type 7).
"""

from __future__ import annotations

import numbers
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from ._compat import _ensure_pandas_df
from .exceptions import InvalidArgument, UnknownTerm
from .spec import INTERCEPT, build_design

if TYPE_CHECKING:
    from ._compat import DataFrameLike
    from ._results import FittedModel, SubsampleEstimate

_STATS = ("mean", "interval")


# ------------------------------------------------------------------ #
# Reduction primitives
# ------------------------------------------------------------------ #


def validate_level(level: float) -> float:
    """Return *level* as a float, checking ``0 < level < 1``."""
    if isinstance(level, bool) or not isinstance(level, numbers.Real):
        raise InvalidArgument(f"level must be a real number, got {level!r}.")
    level = float(level)
    if not 0.0 < level < 1.0:
        raise InvalidArgument(f"level must lie strictly between 0 and 1, got {level}.")
    return level


def reduce_replicates(
    values: np.ndarray,
    stat: str = "mean",
    level: float | None = None,
) -> np.ndarray:
    """Reduce replicate values over axis 0.

    Args:
        values: Array whose first axis indexes the B replicates.
        stat: ``"mean"`` or ``"interval"``.
        level: Confidence level, required for ``"interval"``.

    Returns:
        For ``"mean"``, an array of shape ``values.shape[1:]``; for
        ``"interval"``, shape ``(2, *values.shape[1:])`` holding the
        lower and upper quantiles.
    """
    values = np.asarray(values, dtype=float)
    if values.shape[0] == 0:
        raise InvalidArgument("Cannot reduce an empty set of replicates.")
    if stat == "mean":
        return np.asarray(np.mean(values, axis=0))
    if stat == "interval":
        if level is None:
            raise InvalidArgument("stat='interval' requires a level.")
        alpha = 1.0 - validate_level(level)
        return np.asarray(np.quantile(values, [alpha / 2, 1 - alpha / 2], axis=0))
    raise InvalidArgument(f"Unknown statistic {stat!r}.  Choose from: {list(_STATS)}.")


def reduce_partitions(stats: Iterable[np.ndarray]) -> np.ndarray:
    """Arithmetic mean of partition-level statistics."""
    stacked = [np.asarray(s, dtype=float) for s in stats]
    if not stacked:
        raise InvalidArgument("Cannot reduce an empty set of partitions.")
    return np.asarray(np.mean(np.stack(stacked), axis=0))


def _two_level(
    model: FittedModel,
    extract: Callable[[SubsampleEstimate], np.ndarray],
    stat: str,
    level: float | None = None,
) -> np.ndarray:
    """Apply ``reduce_replicates`` per subsample, then ``reduce_partitions``."""
    return reduce_partitions(
        reduce_replicates(extract(sub), stat, level) for sub in model.subsamples
    )


# ------------------------------------------------------------------ #
# Coefficient & dispersion queries
# ------------------------------------------------------------------ #


def coefficients(model: FittedModel) -> dict[str, float]:
    """Mean over partitions of the within-partition mean coefficients."""
    est = _two_level(model, lambda sub: sub.coefs, "mean")
    return {name: float(v) for name, v in zip(model.coef_names, est)}


def partition_coefficients(model: FittedModel) -> pd.DataFrame:
    """Within-partition mean coefficients as a ``(M, p)`` frame."""
    rows = [reduce_replicates(sub.coefs, "mean") for sub in model.subsamples]
    return pd.DataFrame(
        np.vstack(rows),
        index=pd.Index([sub.label for sub in model.subsamples], name="partition"),
        columns=list(model.coef_names),
    )


def dispersion(
    model: FittedModel,
    confidence: bool = False,
    level: float = 0.95,
) -> float | tuple[float, float, float]:
    """BLB dispersion estimate, optionally with its interval.

    Raises:
        InvalidArgument: For the binary family, which has no free
            dispersion parameter, or for an invalid *level*.
    """
    if not model.family.has_dispersion:
        raise InvalidArgument(
            f"The {model.spec.family} family has no dispersion parameter."
        )

    def _extract(sub: SubsampleEstimate) -> np.ndarray:
        return sub.dispersions  # type: ignore[return-value]

    sigma = float(_two_level(model, _extract, "mean"))
    if not confidence:
        return sigma
    lwr, upr = _two_level(model, _extract, "interval", validate_level(level))
    return sigma, float(lwr), float(upr)


def confidence_interval(
    model: FittedModel,
    terms: str | Sequence[str] | None = None,
    level: float = 0.95,
) -> tuple[float, float] | dict[str, tuple[float, float]]:
    """BLB percentile interval for the named coefficient(s).

    Args:
        model: A fitted model.
        terms: A coefficient name, a sequence of names, or ``None``
            for every predictor term (the intercept is left out).
        level: Confidence level in ``(0, 1)``.

    Returns:
        ``(lwr, upr)`` for a single name, otherwise a dict mapping each
        requested name to its ``(lwr, upr)`` pair.

    Raises:
        UnknownTerm: If any requested name is not a model coefficient.
            Nothing is computed for the other names in that case.
    """
    level = validate_level(level)
    names = model.coef_names
    if terms is None:
        requested = [n for n in names if n != INTERCEPT]
    elif isinstance(terms, str):
        requested = [terms]
    else:
        requested = list(terms)

    for term in requested:
        if term not in names:
            raise UnknownTerm(term, names)

    idx = [names.index(t) for t in requested]
    bounds = _two_level(model, lambda sub: sub.coefs[:, idx], "interval", level)
    pairs = {
        t: (float(bounds[0, j]), float(bounds[1, j])) for j, t in enumerate(requested)
    }

    if isinstance(terms, str):
        return pairs[terms]
    return pairs


# ------------------------------------------------------------------ #
# Prediction
# ------------------------------------------------------------------ #
#
# The linear predictor of replicate b at new row i is ηᵢᵦ = xᵢ'βᵦ.
# For each partition the B × k matrix of linear predictors is reduced
# exactly like a coefficient column.
#
# Binary family: expit is applied to every replicate's linear predictor
# *before* the mean/quantile reductions, with or without intervals.  The
# point prediction is the mean probability and the bounds are quantiles
# on the probability scale, so ``predict(rows)`` equals
# ``predict(rows, confidence=True)["fit"]``.


def predict_rows(
    model: FittedModel,
    new_rows: DataFrameLike,
    confidence: bool = False,
    level: float = 0.95,
) -> np.ndarray | pd.DataFrame:
    """Predict on the response scale for *new_rows*.

    Raises:
        SchemaMismatch: If *new_rows* lacks a predictor column.
    """
    frame = _ensure_pandas_df(new_rows, name="new_rows")
    X, _ = build_design(model.spec, frame, require_response=False)
    family = model.family

    def _eta(sub: SubsampleEstimate) -> np.ndarray:
        return sub.coefs @ X.T  # shape: (B, k)

    def _response(sub: SubsampleEstimate) -> np.ndarray:
        return family.link_inverse(_eta(sub))

    fit = _two_level(model, _response, "mean")
    if not confidence:
        return fit

    level = validate_level(level)
    lwr, upr = _two_level(model, _response, "interval", level)
    return pd.DataFrame({"fit": fit, "lwr": lwr, "upr": upr}, index=frame.index)


__all__ = [
    "coefficients",
    "confidence_interval",
    "dispersion",
    "partition_coefficients",
    "predict_rows",
    "reduce_partitions",
    "reduce_replicates",
    "validate_level",
]
