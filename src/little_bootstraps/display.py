"""Formatted ASCII table display for BLB fits.

The summary mirrors the statsmodels layout: a header panel describing
the model and the resampling plan, then one row per coefficient with
the BLB point estimate and its percentile interval.  For the continuous
family the dispersion (residual scale) gets its own row beneath the
coefficients.
"""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

from .aggregation import validate_level

if TYPE_CHECKING:
    from ._results import FittedModel


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _fmt_level(level: float) -> str:
    """``0.95`` → ``"95%"``, ``0.975`` → ``"97.5%"``."""
    return f"{level * 100:g}%"


def print_blb_summary(
    model: FittedModel,
    *,
    level: float = 0.95,
    title: str = "Bag of Little Bootstraps Results",
) -> None:
    """Print a fitted BLB model as a formatted ASCII table.

    Args:
        model: The fitted model.
        level: Confidence level for the interval columns.
        title: Title for the output table.
    """
    level = validate_level(level)
    spec = model.spec
    ctx = model.context

    print("=" * 80)
    for line in textwrap.wrap(title, width=78):
        print(f"{line:^80}")
    print("=" * 80)

    col1 = 40
    col2 = 38
    print(
        f"{'Dep. Variable:':<16}{_truncate(spec.response, 22):<{col1 - 16}}"
        f"{'No. Partitions:':>{col2 - 11}} {model.n_partitions:>10}"
    )
    print(
        f"{'Model:':<16}{model.family.model_label:<{col1 - 16}}"
        f"{'Replicates (B):':>{col2 - 11}} {model.n_boot:>10}"
    )
    backend = ctx.backend if ctx is not None and ctx.backend else "N/A"
    print(
        f"{'Backend:':<16}{backend:<{col1 - 16}}"
        f"{'n_true:':>{col2 - 11}} {model.n_true:>10}"
    )
    if ctx is not None and ctx.elapsed_seconds is not None:
        print(f"{'Wall time:':<16}{ctx.elapsed_seconds:.2f}s")

    print("-" * 80)

    # ── Table geometry (W = 80 chars) ─────────────────────────── #
    #
    #   Term (fc=26, left) | Coef (14) | Lower (20) | Upper (20)
    #   Total: 26 + 14 + 20 + 20 = 80
    fc = 26
    pct = _fmt_level(level)
    print(f"{'Term':<{fc}}{'Coef':>14}{'[' + pct + ' lwr':>20}{pct + ' upr]':>20}")
    print("-" * 80)

    coefs = model.coefficients()
    intervals = model.confidence_interval(list(model.coef_names), level=level)
    for name in model.coef_names:
        lwr, upr = intervals[name]
        print(
            f"{_truncate(name, fc - 1):<{fc}}{coefs[name]:>14.4f}"
            f"{lwr:>20.4f}{upr:>20.4f}"
        )

    if model.family.has_dispersion:
        sigma, lwr, upr = model.dispersion(confidence=True, level=level)
        print("-" * 80)
        print(f"{'Dispersion (sigma)':<{fc}}{sigma:>14.4f}{lwr:>20.4f}{upr:>20.4f}")

    print("=" * 80)
    notes = [
        f"Intervals are the mean over {model.n_partitions} partitions of "
        f"each partition's {pct} percentile interval from {model.n_boot} "
        f"multinomial-reweighted replicates.",
    ]
    if ctx is not None:
        notes.extend(ctx.warnings_captured)
    for note in notes:
        for i, line in enumerate(textwrap.wrap(note, width=78)):
            print(("* " if i == 0 else "  ") + line)


__all__ = ["print_blb_summary"]
