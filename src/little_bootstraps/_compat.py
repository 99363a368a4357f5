"""Input compatibility layer for optional Polars support.

Partitions and prediction rows are handled internally as
``pandas.DataFrame`` objects.  This module converts Polars frames (and
plain column mappings) at the boundary so that the design-matrix code
only ever sees pandas.

Polars is **not** a required dependency.  If it is not installed, the
converter simply passes pandas objects through untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeAlias

import pandas as pd

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = (
        pd.DataFrame | pl.DataFrame | pl.LazyFrame | Mapping[str, Any]
    )
else:
    DataFrameLike: TypeAlias = pd.DataFrame | Mapping

# Runtime detection; Polars is optional.
try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _ensure_pandas_df(obj: DataFrameLike, *, name: str = "input") -> pd.DataFrame:
    """Convert *obj* to a :class:`pandas.DataFrame` if necessary.

    Accepted types:
        * ``pandas.DataFrame`` — returned as-is.
        * ``polars.DataFrame`` — converted via ``.to_pandas()``.
        * ``polars.LazyFrame`` — collected then converted.
        * any ``Mapping`` of column name to values — passed to the
          ``pandas.DataFrame`` constructor.  Scalar values become a
          single row.

    Args:
        obj: A pandas or Polars DataFrame (or LazyFrame), or a mapping.
        name: Label used in error messages (e.g. ``"new_rows"``).

    Returns:
        A pandas ``DataFrame``.

    Raises:
        TypeError: If *obj* is not a recognised DataFrame type.
    """
    if isinstance(obj, pd.DataFrame):
        return obj

    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            return obj.collect().to_pandas()
        if isinstance(obj, pl.DataFrame):
            return obj.to_pandas()

    if isinstance(obj, Mapping):
        if all(pd.api.types.is_scalar(v) for v in obj.values()):
            return pd.DataFrame({k: [v] for k, v in obj.items()})
        return pd.DataFrame(dict(obj))

    raise TypeError(
        f"'{name}' must be a pandas DataFrame or a column mapping"
        + (" or Polars DataFrame/LazyFrame" if _HAS_POLARS else "")
        + f", got {type(obj).__name__}."
    )
