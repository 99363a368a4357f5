"""Model family protocol, weighted fitters and resolution logic.

The ``ModelFamily`` protocol isolates everything that differs between
the two response families (validating the response, solving a
weighted fit, mapping a linear predictor back to the response scale)
from the resampling engine and the aggregator, which only ever call
protocol methods.

Each concrete family is a frozen ``@dataclass`` with no mutable state.
The ``resolve_family`` helper maps the ``ModelSpec.family`` tag
(``"continuous"`` or ``"binary"``) to the registered family instance,
so the branch between linear and logistic behaviour happens exactly
once, on an explicit tag, rather than on whether a result happens to
carry a dispersion field.

Weighted fitting
~~~~~~~~~~~~~~~~
Both families receive the integer multinomial weights drawn by
:func:`~little_bootstraps.resampling.draw_weights` and treat them as
*frequency* weights: a weight of 3 means the row appears three times
in the simulated full-size resample.  Rows with weight 0 carry no
information and are dropped before solving.  The rank check runs on
the remaining rows: a predictor that is constant across the positively
weighted rows is unidentifiable even if it varies elsewhere in the
partition.
"""

from __future__ import annotations

import contextlib
import threading
import warnings
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import numpy as np
import statsmodels.api as sm
from scipy.special import expit
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning as SmConvergenceWarning,
)
from statsmodels.tools.sm_exceptions import (
    PerfectSeparationWarning,
)

from .exceptions import InvalidArgument, NonConvergence, SingularFit

# Fitted probabilities this close to the observed 0/1 labels mean the
# classes are perfectly separated.
_SEPARATION_ATOL = 1e-6

# ------------------------------------------------------------------ #
# ModelFamily protocol
# ------------------------------------------------------------------ #
#
# ``runtime_checkable`` enables isinstance() checks against the
# protocol at runtime, which resolve_family() and the tests use to
# reject objects that do not implement the interface.


@runtime_checkable
class ModelFamily(Protocol):
    """Interface that every response family must implement.

    Attributes:
        name: The ``ModelSpec.family`` tag this family serves
            (``"continuous"`` or ``"binary"``).
        has_dispersion: Whether :meth:`fit_weighted` returns a
            dispersion estimate alongside the coefficients.
        model_label: Human-readable model name for display headers.
    """

    @property
    def name(self) -> str: ...

    @property
    def has_dispersion(self) -> bool: ...

    @property
    def model_label(self) -> str: ...

    def validate_y(self, y: np.ndarray) -> None:
        """Raise ``InvalidArgument`` if *y* is unsuitable for this family.

        Called once per partition before the replicate loop, so that
        invalid data produces a clear message rather than B opaque
        solver failures.
        """
        ...

    def fit_weighted(
        self,
        X: np.ndarray,
        y: np.ndarray,
        weights: np.ndarray,
    ) -> tuple[np.ndarray, float | None]:
        """Fit the model under per-row frequency weights.

        Args:
            X: Design matrix ``(n, p)`` including the intercept column
                when the model has one.
            y: Response vector ``(n,)``.
            weights: Non-negative weights ``(n,)``.

        Returns:
            ``(coefs, dispersion)`` — coefficients of shape ``(p,)``
            in design-matrix column order, and the dispersion estimate
            (``None`` for families without a free scale parameter).

        Raises:
            SingularFit: If the positively weighted design is rank
                deficient.
            NonConvergence: If an iterative solver runs out of budget.
        """
        ...

    def link_inverse(self, eta: np.ndarray) -> np.ndarray:
        """Map linear predictors to the response scale."""
        ...


# ------------------------------------------------------------------ #
# Shared helpers
# ------------------------------------------------------------------ #


def _positive_rows(
    X: np.ndarray,
    y: np.ndarray,
    weights: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, int]:
    """Drop zero-weight rows and check the remaining column rank.

    Returns:
        ``(X_pos, y_pos, w_pos, rank)``.

    Raises:
        SingularFit: If the column rank of ``X_pos`` is below ``p``.
    """
    w = np.asarray(weights, dtype=float)
    if w.shape != (X.shape[0],):
        raise InvalidArgument(
            f"weights must have shape ({X.shape[0]},), got {w.shape}."
        )
    if np.any(w < 0) or not np.all(np.isfinite(w)):
        raise InvalidArgument("weights must be finite and non-negative.")

    keep = w > 0
    X_pos = X[keep]
    p = X.shape[1]
    rank = int(np.linalg.matrix_rank(X_pos)) if X_pos.size else 0
    if rank < p:
        raise SingularFit(
            f"Weighted design matrix is rank deficient (rank {rank} < {p} "
            f"columns over {int(keep.sum())} positively weighted rows)."
        )
    return X_pos, np.asarray(y, dtype=float)[keep], w[keep], rank


@contextlib.contextmanager
def suppress_fit_warnings() -> Iterator[None]:
    """Silence the solver warnings that replicate fits report as errors.

    Perfect separation, overflow in ``exp()`` and statsmodels'
    ConvergenceWarning are all surfaced as :class:`NonConvergence` by
    :meth:`LogisticFamily.fit_weighted` instead.
    """
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=PerfectSeparationWarning)
        warnings.filterwarnings("ignore", category=SmConvergenceWarning)
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        yield


# ------------------------------------------------------------------ #
# LinearFamily
# ------------------------------------------------------------------ #
#
# Weighted least squares minimises Σᵢ wᵢ (yᵢ − xᵢ'β)².  Scaling every
# row by √wᵢ turns it into ordinary least squares on (√w·X, √w·y), so
# the solve is a single LAPACK ``dgelsd`` call via ``np.linalg.lstsq``.
#
# The dispersion is the weighted residual scale
#
#   σ̂ = √( Σ wᵢ eᵢ² / (Σ wᵢ − rank) )
#
# With frequency weights Σw is the size of the simulated resample
# (n_true), so the degrees-of-freedom correction is applied to the
# full-size sample and not to the n_sub distinct rows.  With unit
# weights this reduces to the classical residual standard error
# √(RSS / (n − p)).


@dataclass(frozen=True)
class LinearFamily:
    """Weighted least-squares family for continuous responses."""

    @property
    def name(self) -> str:
        return "continuous"

    @property
    def has_dispersion(self) -> bool:
        return True

    @property
    def model_label(self) -> str:
        return "Linear (WLS)"

    def validate_y(self, y: np.ndarray) -> None:
        """Check that *y* is numeric and non-empty."""
        y = np.asarray(y)
        if not (np.issubdtype(y.dtype, np.number) or np.issubdtype(y.dtype, np.bool_)):
            msg = "The continuous family requires a numeric response."
            raise InvalidArgument(msg)
        if y.size == 0:
            msg = "The continuous family requires a non-empty response."
            raise InvalidArgument(msg)

    def fit_weighted(
        self,
        X: np.ndarray,
        y: np.ndarray,
        weights: np.ndarray,
    ) -> tuple[np.ndarray, float | None]:
        """Weighted least squares with the weighted residual scale."""
        X_pos, y_pos, w_pos, rank = _positive_rows(X, y, weights)

        df_resid = float(w_pos.sum()) - rank
        if df_resid <= 0:
            raise SingularFit(
                f"No residual degrees of freedom (sum of weights "
                f"{w_pos.sum():g} <= rank {rank})."
            )

        sw = np.sqrt(w_pos)
        coefs, _, _, _ = np.linalg.lstsq(X_pos * sw[:, None], y_pos * sw, rcond=None)
        resid = y_pos - X_pos @ coefs
        sigma = float(np.sqrt(np.sum(w_pos * resid**2) / df_resid))
        return np.asarray(coefs), sigma

    def link_inverse(self, eta: np.ndarray) -> np.ndarray:
        """Identity link."""
        return np.asarray(eta, dtype=float)


# ------------------------------------------------------------------ #
# LogisticFamily
# ------------------------------------------------------------------ #
#
# Logistic regression has no closed form; the MLE is found by IRLS,
# delegated to statsmodels' ``GLM(..., family=Binomial())``.  Each
# iteration solves the weighted normal equations
#
#   β_{t+1} = (X' W_t X)⁻¹ X' W_t z_t,   W_t = diag(f · μ_t (1 − μ_t))
#
# where f are the multinomial frequency weights passed as
# ``freq_weights``.  statsmodels stops when successive deviances agree
# to ``tol`` or after ``max_iter`` iterations; the latter is reported
# as NonConvergence instead of being returned as if it were an MLE.
#
# Perfect separation (a hyperplane splitting the positively weighted
# rows by class) means the MLE does not exist: the coefficients drift
# to ±∞ and IRLS only "converges" because the deviance flattens out.
# statsmodels' perfect-prediction test (fitted μ equal to y) is
# re-applied to the result and reported as NonConvergence as well.
# The Binomial family has no free dispersion, so only coefficients are
# returned.


@dataclass(frozen=True)
class LogisticFamily:
    """Weighted logistic-regression family for binary responses.

    Attributes:
        max_iter: IRLS iteration budget per replicate.
        tol: Absolute deviance-change tolerance for convergence.
    """

    max_iter: int = 100
    tol: float = 1e-8

    def __post_init__(self) -> None:
        if self.max_iter < 1:
            raise InvalidArgument(f"max_iter must be >= 1, got {self.max_iter}.")
        if self.tol <= 0:
            raise InvalidArgument(f"tol must be positive, got {self.tol}.")

    @property
    def name(self) -> str:
        return "binary"

    @property
    def has_dispersion(self) -> bool:
        return False

    @property
    def model_label(self) -> str:
        return "Logistic (IRLS)"

    def validate_y(self, y: np.ndarray) -> None:
        """Check that *y* only takes values in {0, 1}."""
        y = np.asarray(y)
        if not (np.issubdtype(y.dtype, np.number) or np.issubdtype(y.dtype, np.bool_)):
            msg = "The binary family requires a numeric 0/1 response."
            raise InvalidArgument(msg)
        if y.size == 0 or not np.all(np.isin(np.unique(y), [0, 1])):
            msg = "The binary family requires response values in {0, 1}."
            raise InvalidArgument(msg)

    def fit_weighted(
        self,
        X: np.ndarray,
        y: np.ndarray,
        weights: np.ndarray,
    ) -> tuple[np.ndarray, float | None]:
        """Frequency-weighted logistic MLE via statsmodels IRLS."""
        X_pos, y_pos, w_pos, _ = _positive_rows(X, y, weights)

        # warnings.filters is process-global.  Worker threads must not
        # save and restore it; they run under the suppression that
        # fit_model installs in the calling thread around the map.
        if threading.current_thread() is threading.main_thread():
            suppress = suppress_fit_warnings()
        else:
            suppress = contextlib.nullcontext()
        with suppress:
            model = sm.GLM(
                y_pos,
                X_pos,
                family=sm.families.Binomial(),
                freq_weights=w_pos,
            )
            result = model.fit(method="IRLS", maxiter=self.max_iter, tol=self.tol)

        # statsmodels' perfect-prediction test, re-applied to the result
        # with a looser tolerance since IRLS stops once the deviance
        # change drops below tol.
        mu = np.asarray(result.fittedvalues, dtype=float)
        if np.allclose(mu, y_pos, rtol=0.0, atol=_SEPARATION_ATOL):
            raise NonConvergence(
                "Perfect separation among positively weighted rows; "
                "the logistic MLE does not exist."
            )
        if not getattr(result, "converged", False):
            raise NonConvergence(
                f"Logistic IRLS did not converge within {self.max_iter} "
                f"iterations (tol={self.tol:g})."
            )
        coefs = np.asarray(result.params, dtype=float)
        if not np.all(np.isfinite(coefs)):
            raise NonConvergence("Logistic IRLS produced non-finite coefficients.")
        return coefs, None

    def link_inverse(self, eta: np.ndarray) -> np.ndarray:
        """Logistic function ``exp(η) / (1 + exp(η))``, overflow-safe."""
        return np.asarray(expit(eta), dtype=float)


# ------------------------------------------------------------------ #
# Family registry & resolution
# ------------------------------------------------------------------ #

_FAMILIES: dict[str, type] = {}


def register_family(name: str, cls: type) -> None:
    """Register a family class under *name*.

    Raises:
        TypeError: If instances of *cls* do not satisfy ``ModelFamily``.
    """
    if not isinstance(cls(), ModelFamily):
        msg = f"{cls.__name__} does not implement the ModelFamily protocol."
        raise TypeError(msg)
    _FAMILIES[name] = cls


def resolve_family(family: str | ModelFamily, **options: Any) -> ModelFamily:
    """Map a family tag (or an instance) to a ``ModelFamily``.

    Args:
        family: ``"continuous"``, ``"binary"``, or a ``ModelFamily``
            instance (returned unchanged).
        **options: Constructor options for the family class, e.g.
            ``max_iter`` / ``tol`` for the binary family.

    Raises:
        InvalidArgument: If *family* is not a registered name.
    """
    if isinstance(family, ModelFamily):
        return family

    key = str(family).strip().lower()
    if key not in _FAMILIES:
        available = ", ".join(sorted(_FAMILIES)) or "(none registered)"
        msg = f"Unknown family {family!r}.  Available families: {available}."
        raise InvalidArgument(msg)

    instance: ModelFamily = _FAMILIES[key](**options)
    return instance


register_family("continuous", LinearFamily)
register_family("binary", LogisticFamily)


__all__ = [
    "LinearFamily",
    "LogisticFamily",
    "ModelFamily",
    "register_family",
    "resolve_family",
    "suppress_fit_warnings",
]
