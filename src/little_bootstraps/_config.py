"""Execution-backend configuration for the little_bootstraps package.

Controls which executor runs the per-partition subsample estimates
when a fit is requested with ``n_jobs != 1``.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_backend`.
    2. The ``LITTLE_BOOTSTRAPS_BACKEND`` environment variable.
    3. The default, ``"threads"``.

Valid backend names are ``"sequential"``, ``"threads"`` and
``"processes"`` (case-insensitive).  ``"auto"`` clears an override.

Examples:
    Force process-based workers from the shell::

        export LITTLE_BOOTSTRAPS_BACKEND=processes

    Run everything in-process regardless of ``n_jobs``::

        import little_bootstraps
        little_bootstraps.set_backend("sequential")

    Restore the default resolution::

        little_bootstraps.set_backend("auto")
"""

from __future__ import annotations

import os

_ENV_VAR = "LITTLE_BOOTSTRAPS_BACKEND"
_CONCRETE_BACKENDS = {"sequential", "threads", "processes"}
_VALID_BACKENDS = _CONCRETE_BACKENDS | {"auto"}
_DEFAULT_BACKEND = "threads"

# Sentinel indicating "no programmatic override has been set".
_backend_override: str | None = None


def get_backend() -> str:
    """Return the active backend name.

    Resolution order:
        1. Value set by :func:`set_backend` (unless ``"auto"``).
        2. ``LITTLE_BOOTSTRAPS_BACKEND`` environment variable.
        3. ``"threads"``.

    Returns:
        ``"sequential"``, ``"threads"`` or ``"processes"``.
    """
    if _backend_override is not None and _backend_override != "auto":
        return _backend_override

    env = os.environ.get(_ENV_VAR, "").strip().lower()
    if env in _CONCRETE_BACKENDS:
        return env

    return _DEFAULT_BACKEND


def set_backend(name: str) -> None:
    """Override the backend selection.

    Args:
        name: One of ``"sequential"``, ``"threads"``, ``"processes"``
            or ``"auto"`` (case-insensitive).  ``"auto"`` restores the
            default resolution order.

    Raises:
        ValueError: If *name* is not a recognised backend.
    """
    global _backend_override
    normalised = name.strip().lower()
    if normalised not in _VALID_BACKENDS:
        raise ValueError(
            f"Unknown backend '{name}'. Choose from: {sorted(_VALID_BACKENDS)}"
        )
    _backend_override = normalised
