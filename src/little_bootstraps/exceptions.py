"""Error taxonomy for the Bag of Little Bootstraps pipeline.

Every error raised by the package derives from :class:`BLBError`, and
each concrete error also subclasses the closest built-in exception so
that callers who only know about ``ValueError`` / ``KeyError`` /
``RuntimeError`` still catch it.

Propagation policy
~~~~~~~~~~~~~~~~~~
Fit failures (:class:`SingularFit`, :class:`NonConvergence`) abort the
replicate that triggered them and then the whole fit.  Failed
replicates are never skipped or retried.

The location of the failure (partition label, replicate index) is
attached by the subsample estimator via :meth:`FitError.with_location`
so the message the caller sees names the offending partition.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class BLBError(Exception):
    """Base class for all errors raised by ``little_bootstraps``."""


class InvalidArgument(BLBError, ValueError):
    """Malformed argument (B, n_sub, n_true, level, family, ...)."""


class SchemaMismatch(BLBError, ValueError):
    """Input columns do not match the model specification.

    Attributes:
        columns: The offending column names (missing, non-numeric, or
            containing missing values).
    """

    def __init__(self, message: str, columns: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.columns: tuple[str, ...] = tuple(columns)

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.args[0], self.columns))


class UnknownTerm(BLBError, KeyError):
    """A term was requested that is not among the model's coefficients.

    Attributes:
        term: The requested term name.
        available: The coefficient names the model does know about.
    """

    def __init__(self, term: str, available: Sequence[str] = ()) -> None:
        super().__init__(term)
        self.term = term
        self.available: tuple[str, ...] = tuple(available)

    def __str__(self) -> str:
        known = ", ".join(repr(a) for a in self.available) or "(none)"
        return f"Unknown term {self.term!r}.  Model terms: {known}."

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.term, self.available))


class FitError(BLBError, RuntimeError):
    """Base class for failures of a single weighted fit.

    Attributes:
        partition: Label of the partition being fitted, or ``None``
            when the error was raised outside a subsample estimate.
        replicate: Zero-based replicate index within the partition,
            or ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        partition: str | None = None,
        replicate: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.partition = partition
        self.replicate = replicate

    def __str__(self) -> str:
        if self.partition is None:
            return self.message
        where = f"partition {self.partition!r}"
        if self.replicate is not None:
            where += f", replicate {self.replicate}"
        return f"{self.message} ({where})"

    # Exceptions with keyword-only constructor arguments do not survive
    # the default pickle protocol, which replays ``self.args`` only.
    # loky workers pickle exceptions on the way back to the parent.
    def __reduce__(self) -> tuple[Any, ...]:
        return (
            _rebuild_fit_error,
            (type(self), self.message, self.partition, self.replicate),
        )

    def with_location(self, partition: str, replicate: int | None = None) -> FitError:
        """Return a copy of this error tagged with where it happened."""
        return type(self)(self.message, partition=partition, replicate=replicate)


class SingularFit(FitError):
    """The weighted design matrix is rank-deficient."""


class NonConvergence(FitError):
    """The logistic IRLS solver exhausted its iteration budget."""


def _rebuild_fit_error(
    cls: type[FitError],
    message: str,
    partition: str | None,
    replicate: int | None,
) -> FitError:
    return cls(message, partition=partition, replicate=replicate)


__all__ = [
    "BLBError",
    "FitError",
    "InvalidArgument",
    "NonConvergence",
    "SchemaMismatch",
    "SingularFit",
    "UnknownTerm",
]
