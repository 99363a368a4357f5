"""Typed result objects for Bag of Little Bootstraps fits.

Three frozen dataclasses mirror the three levels of a BLB fit:

* :class:`BootstrapReplicate` — one weighted fit (coefficients and,
  for the continuous family, a dispersion estimate).
* :class:`SubsampleEstimate` — the B replicates of one partition,
  stored column-wise as a ``(B, p)`` coefficient matrix.
* :class:`FittedModel` — the model spec plus one subsample estimate
  per partition, in partition order.  This is the object callers query.

All three are frozen.  Every query is a pure reduction over the stored
replicates and nothing is cached or mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from . import aggregation
from .display import print_blb_summary
from .exceptions import InvalidArgument, SchemaMismatch
from .families import ModelFamily, resolve_family
from .spec import ModelSpec

if TYPE_CHECKING:
    from ._compat import DataFrameLike
    from ._context import FitContext

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types.

    Handles nested dicts, lists, tuples, np.ndarray, np.integer and
    np.floating so that :meth:`FittedModel.to_dict` returns a fully
    JSON-serialisable structure.
    """
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


# ------------------------------------------------------------------ #
# Replicate & subsample
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class BootstrapReplicate:
    """Output of one resample-and-fit step.

    Attributes:
        coefficients: Coefficient name → value, in design order.
        dispersion: Weighted residual scale (continuous family only).
    """

    coefficients: Mapping[str, float]
    dispersion: float | None = None


@dataclass(frozen=True, eq=False)
class SubsampleEstimate:
    """The B bootstrap replicates of one partition.

    Behaves as an ordered, read-only sequence of
    :class:`BootstrapReplicate` objects while storing the values as
    arrays, so the aggregator can reduce over axis 0 directly.

    Attributes:
        label: Partition label (source path or ``"partition-<i>"``).
        coef_names: Coefficient names shared by every replicate.
        coefs: Coefficient matrix of shape ``(B, p)``.
        dispersions: Dispersion vector ``(B,)`` or ``None``.
    """

    label: str
    coef_names: tuple[str, ...]
    coefs: np.ndarray
    dispersions: np.ndarray | None = None

    def __post_init__(self) -> None:
        coefs = np.array(self.coefs, dtype=float)
        if coefs.ndim != 2 or coefs.shape[1] != len(self.coef_names):
            raise InvalidArgument(
                f"coefs must have shape (B, {len(self.coef_names)}), "
                f"got {coefs.shape}."
            )
        coefs.flags.writeable = False
        object.__setattr__(self, "coefs", coefs)
        object.__setattr__(self, "coef_names", tuple(self.coef_names))

        if self.dispersions is not None:
            disp = np.array(self.dispersions, dtype=float)
            if disp.shape != (coefs.shape[0],):
                raise InvalidArgument(
                    f"dispersions must have shape ({coefs.shape[0]},), "
                    f"got {disp.shape}."
                )
            disp.flags.writeable = False
            object.__setattr__(self, "dispersions", disp)

    @classmethod
    def from_replicates(
        cls,
        label: str,
        replicates: Sequence[BootstrapReplicate],
    ) -> SubsampleEstimate:
        """Stack replicate objects into a subsample estimate.

        Raises:
            SchemaMismatch: If the replicates do not all share the same
                coefficient names, or only some carry a dispersion.
            InvalidArgument: If *replicates* is empty.
        """
        if not replicates:
            raise InvalidArgument("A subsample estimate needs at least one replicate.")
        names = tuple(replicates[0].coefficients)
        for i, rep in enumerate(replicates):
            if tuple(rep.coefficients) != names:
                raise SchemaMismatch(
                    f"Replicate {i} of {label!r} has coefficients "
                    f"{list(rep.coefficients)}; expected {list(names)}.",
                    sorted(set(rep.coefficients) ^ set(names)),
                )
        has_disp = [rep.dispersion is not None for rep in replicates]
        if any(has_disp) and not all(has_disp):
            raise SchemaMismatch(
                f"Replicates of {label!r} mix fits with and without dispersion."
            )
        coefs = np.array([[rep.coefficients[n] for n in names] for rep in replicates])
        disp = (
            np.array([rep.dispersion for rep in replicates], dtype=float)
            if all(has_disp)
            else None
        )
        return cls(label=label, coef_names=names, coefs=coefs, dispersions=disp)

    def __len__(self) -> int:
        return int(self.coefs.shape[0])

    def __getitem__(self, index: int) -> BootstrapReplicate:
        row = self.coefs[index]
        disp = None if self.dispersions is None else float(self.dispersions[index])
        return BootstrapReplicate(
            coefficients=dict(zip(self.coef_names, map(float, row))),
            dispersion=disp,
        )

    def __iter__(self) -> Iterator[BootstrapReplicate]:
        for b in range(len(self)):
            yield self[b]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubsampleEstimate):
            return NotImplemented
        if self.label != other.label or self.coef_names != other.coef_names:
            return False
        if not np.array_equal(self.coefs, other.coefs):
            return False
        if self.dispersions is None or other.dispersions is None:
            return self.dispersions is None and other.dispersions is None
        return bool(np.array_equal(self.dispersions, other.dispersions))

    __hash__ = None  # type: ignore[assignment]


# ------------------------------------------------------------------ #
# FittedModel
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class FittedModel:
    """Result of a Bag of Little Bootstraps fit.

    The query methods are thin wrappers over
    :mod:`little_bootstraps.aggregation`; each is a two-level
    reduction (within partition over B replicates, then a mean over
    partitions) and none depends on partition or replicate order.

    Attributes:
        spec: The model specification that was fitted.
        subsamples: One :class:`SubsampleEstimate` per partition, in
            partition input order.
        n_true: Total resample size used for every replicate.
        n_boot: Number of replicates per partition (B).
        family: Resolved ``ModelFamily`` (derived from ``spec`` when
            omitted).
        context: Run metadata (timings, backend, seeds).  Not part of
            equality and not serialised by :meth:`to_dict`.
    """

    spec: ModelSpec
    subsamples: tuple[SubsampleEstimate, ...]
    n_true: int
    n_boot: int
    family: ModelFamily | None = field(default=None, compare=False)
    context: FitContext | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        subsamples = tuple(self.subsamples)
        object.__setattr__(self, "subsamples", subsamples)
        if self.family is None:
            object.__setattr__(self, "family", resolve_family(self.spec.family))
        elif self.family.name != self.spec.family:
            raise InvalidArgument(
                f"Family {self.family.name!r} does not match spec family "
                f"{self.spec.family!r}."
            )

        if not subsamples:
            raise InvalidArgument("A fitted model needs at least one subsample.")
        expected = self.spec.coef_names
        for sub in subsamples:
            if sub.coef_names != expected:
                raise SchemaMismatch(
                    f"Subsample {sub.label!r} has coefficients "
                    f"{list(sub.coef_names)}; expected {list(expected)}.",
                    sorted(set(sub.coef_names) ^ set(expected)),
                )
            if len(sub) != self.n_boot:
                raise InvalidArgument(
                    f"Subsample {sub.label!r} holds {len(sub)} replicates; "
                    f"expected n_boot={self.n_boot}."
                )
            if self.family.has_dispersion and sub.dispersions is None:
                raise SchemaMismatch(
                    f"Subsample {sub.label!r} is missing dispersion estimates."
                )

    # ---- Convenience properties -----------------------------------

    @property
    def coef_names(self) -> tuple[str, ...]:
        return self.spec.coef_names

    @property
    def n_partitions(self) -> int:
        return len(self.subsamples)

    # ---- Queries ---------------------------------------------------

    def coefficients(self) -> dict[str, float]:
        """BLB point estimate of every coefficient."""
        return aggregation.coefficients(self)

    def dispersion(
        self,
        confidence: bool = False,
        level: float = 0.95,
    ) -> float | tuple[float, float, float]:
        """BLB estimate of the residual scale (continuous family only).

        Returns:
            The point estimate, or ``(estimate, lwr, upr)`` when
            *confidence* is true.
        """
        return aggregation.dispersion(self, confidence=confidence, level=level)

    def confidence_interval(
        self,
        terms: str | Sequence[str] | None = None,
        level: float = 0.95,
    ) -> tuple[float, float] | dict[str, tuple[float, float]]:
        """BLB percentile interval for one or more coefficients.

        A single term name returns ``(lwr, upr)``; a sequence (or
        ``None``, meaning every predictor term) returns a dict.
        """
        return aggregation.confidence_interval(self, terms, level=level)

    def predict(
        self,
        new_rows: DataFrameLike,
        confidence: bool = False,
        level: float = 0.95,
    ) -> np.ndarray | pd.DataFrame:
        """Predict on the response scale for *new_rows*.

        For the binary family every replicate's linear predictor is
        mapped to a probability before averaging, so the point
        prediction equals the ``fit`` column of the interval frame.

        Returns:
            An array ``(k,)`` of point predictions, or a DataFrame with
            columns ``fit``, ``lwr``, ``upr`` when *confidence* is true.
        """
        return aggregation.predict_rows(
            self, new_rows, confidence=confidence, level=level
        )

    def partition_coefficients(self) -> pd.DataFrame:
        """Within-partition mean coefficients, one row per partition."""
        return aggregation.partition_coefficients(self)

    # ---- Presentation ----------------------------------------------

    def summary(self, level: float = 0.95) -> None:
        """Print a statsmodels-style summary table."""
        print_blb_summary(self, level=level)

    def to_dict(self, level: float = 0.95) -> dict[str, Any]:
        """Plain-dict summary of the fit (JSON-serialisable)."""
        result: dict[str, Any] = {
            "family": self.spec.family,
            "formula": self.spec.formula,
            "response": self.spec.response,
            "terms": list(self.spec.terms),
            "n_partitions": self.n_partitions,
            "partition_labels": [s.label for s in self.subsamples],
            "n_true": self.n_true,
            "n_boot": self.n_boot,
            "level": level,
            "coefficients": self.coefficients(),
            "confidence_intervals": {
                name: list(bounds)
                for name, bounds in aggregation.confidence_interval(
                    self, list(self.coef_names), level=level
                ).items()
            },
        }
        if self.family.has_dispersion:
            sigma, lwr, upr = self.dispersion(confidence=True, level=level)
            result["dispersion"] = {"estimate": sigma, "lwr": lwr, "upr": upr}
        return _numpy_to_python(result)

    def __str__(self) -> str:
        return (
            f"BLB {self.spec.family} model: {self.spec.formula} "
            f"({self.n_partitions} partitions x {self.n_boot} replicates)"
        )


__all__ = ["BootstrapReplicate", "FittedModel", "SubsampleEstimate"]
