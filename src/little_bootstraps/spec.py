"""Model specification and design-matrix construction.

A :class:`ModelSpec` is a self-contained value: the response family,
the response column, and the ordered predictor columns.  It never
captures variables from the caller's scope, so a term can only ever
resolve against the columns of the frame it is applied to.

:func:`build_design` turns a spec plus a pandas frame into the float
arrays consumed by the weighted fitters.  The intercept, when present,
is the first column and is named ``"(Intercept)"``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from .exceptions import InvalidArgument, SchemaMismatch

INTERCEPT = "(Intercept)"

FAMILIES = ("continuous", "binary")

# A bare column name: anything without formula operators or whitespace.
_TERM_RE = re.compile(r"^[^\s~+*:^()\-/|]+$")


@dataclass(frozen=True)
class ModelSpec:
    """Response family, response column and ordered predictor terms.

    Attributes:
        family: ``"continuous"`` (weighted least squares) or
            ``"binary"`` (weighted logistic regression).
        response: Name of the response column.
        terms: Ordered predictor column names.
        fit_intercept: Whether an ``"(Intercept)"`` column is
            prepended to the design matrix.
    """

    family: str
    response: str
    terms: tuple[str, ...] = field(default=())
    fit_intercept: bool = True

    def __post_init__(self) -> None:
        family = str(self.family).strip().lower()
        if family not in FAMILIES:
            raise InvalidArgument(
                f"Unknown family {self.family!r}.  Choose from: {list(FAMILIES)}."
            )
        object.__setattr__(self, "family", family)

        # Accept any iterable of names but store a tuple (hashable).
        terms = (self.terms,) if isinstance(self.terms, str) else tuple(self.terms)
        object.__setattr__(self, "terms", terms)

        if not terms and not self.fit_intercept:
            raise InvalidArgument("A model needs at least one term or an intercept.")
        if len(set(terms)) != len(terms):
            raise InvalidArgument(f"Duplicate predictor terms in {list(terms)}.")
        if self.response in terms:
            raise InvalidArgument(
                f"Response {self.response!r} cannot also be a predictor term."
            )
        if INTERCEPT in terms:
            raise InvalidArgument(
                f"{INTERCEPT!r} is reserved; use fit_intercept instead."
            )

    @property
    def coef_names(self) -> tuple[str, ...]:
        """Coefficient names in design-matrix column order."""
        if self.fit_intercept:
            return (INTERCEPT, *self.terms)
        return self.terms

    @property
    def formula(self) -> str:
        """Formula-style rendering, e.g. ``"y ~ x1 + x2"``."""
        rhs = " + ".join(self.terms) if self.terms else "1"
        if not self.fit_intercept:
            rhs += " - 1"
        return f"{self.response} ~ {rhs}"

    @classmethod
    def from_formula(cls, formula: str, family: str = "continuous") -> ModelSpec:
        """Parse ``"y ~ x1 + x2"`` into a spec.

        Only additive main effects are understood.  ``- 1`` or ``+ 0``
        drops the intercept and ``1`` keeps it explicitly; interactions,
        transforms and the ``.`` shorthand are rejected.

        Raises:
            InvalidArgument: If the formula uses anything beyond bare
                column names joined by ``+``.
        """
        if formula.count("~") != 1:
            raise InvalidArgument(f"Formula {formula!r} must contain exactly one '~'.")
        lhs, rhs = (part.strip() for part in formula.split("~"))
        if not _TERM_RE.match(lhs):
            raise InvalidArgument(f"Cannot parse response {lhs!r} in {formula!r}.")

        fit_intercept = True
        terms: list[str] = []
        # Normalise "- 1" into a "+ -1" token so the split below sees it.
        rhs = re.sub(r"-\s*1\b", "+ -1", rhs)
        for raw in rhs.split("+"):
            token = raw.strip()
            if token in ("0", "-1"):
                fit_intercept = False
            elif token == "1":
                continue
            elif _TERM_RE.match(token) and token != ".":
                terms.append(token)
            else:
                raise InvalidArgument(
                    f"Unsupported term {token!r} in {formula!r}; only bare "
                    f"column names joined by '+' are understood."
                )
        return cls(
            family=family, response=lhs, terms=tuple(terms), fit_intercept=fit_intercept
        )


def build_design(
    spec: ModelSpec,
    frame: pd.DataFrame,
    *,
    require_response: bool = True,
) -> tuple[np.ndarray, np.ndarray | None]:
    """Resolve *spec* against *frame* into ``(X, y)`` float arrays.

    Args:
        spec: The model specification.
        frame: Partition rows or prediction rows.
        require_response: When ``False`` (prediction), the response
            column is not looked up and ``y`` is ``None``.

    Returns:
        ``X`` of shape ``(n, p)`` with the intercept column first when
        ``spec.fit_intercept``, and ``y`` of shape ``(n,)`` or ``None``.

    Raises:
        SchemaMismatch: If a required column is missing, a predictor
            column is not numeric, or a used column holds missing values.
    """
    needed = list(spec.terms)
    if require_response:
        needed.append(spec.response)

    missing = [c for c in needed if c not in frame.columns]
    if missing:
        raise SchemaMismatch(f"Missing required columns: {missing}.", missing)

    non_numeric = [
        c
        for c in spec.terms
        if not (
            pd.api.types.is_numeric_dtype(frame[c])
            or pd.api.types.is_bool_dtype(frame[c])
        )
    ]
    if non_numeric:
        raise SchemaMismatch(
            f"Predictor columns must be numeric; got non-numeric {non_numeric}.",
            non_numeric,
        )

    with_na = [c for c in needed if frame[c].isna().any()]
    if with_na:
        raise SchemaMismatch(f"Columns contain missing values: {with_na}.", with_na)

    n = len(frame)
    columns = [frame[c].to_numpy(dtype=float) for c in spec.terms]
    if spec.fit_intercept:
        columns.insert(0, np.ones(n))
    X = np.column_stack(columns) if columns else np.empty((n, 0))

    y = None
    if require_response:
        response = frame[spec.response]
        if pd.api.types.is_bool_dtype(response):
            response = response.astype(int)
        y = response.to_numpy()
    return X, y


__all__ = ["FAMILIES", "INTERCEPT", "ModelSpec", "build_design"]
