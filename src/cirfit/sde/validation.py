# src/cirfit/sde/validation.py
"""
Boundary checks shared by the estimation, simulation and diagnostics entry
points. Every helper raises ``InvalidInputError`` and never returns a
partially cleaned value.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import pandas as pd

from cirfit.errors import InvalidInputError

MIN_OBSERVATIONS = 2


def require_positive_dt(dt: float) -> float:
    try:
        dt = float(dt)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"dt must be a real number, got {dt!r}") from e
    if not math.isfinite(dt) or dt <= 0.0:
        raise InvalidInputError(f"dt must be finite and positive, got {dt}")
    return dt


def require_steps(n: int, name: str = "n", minimum: int = 1) -> int:
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidInputError(f"{name} must be an integer, got {n!r}")
    if n < minimum:
        raise InvalidInputError(f"{name} must be >= {minimum}, got {n}")
    return int(n)


def require_initial_value(r0: float) -> float:
    try:
        r0 = float(r0)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"r0 must be a real number, got {r0!r}") from e
    if not math.isfinite(r0) or r0 < 0.0:
        raise InvalidInputError(f"r0 must be finite and non-negative, got {r0}")
    return r0


def to_float_array(
    x: Sequence[float] | np.ndarray | pd.Series, name: str = "series"
) -> np.ndarray:
    """
    Convert a 1D numeric input into a float array.

    Raises
    ------
    InvalidInputError
        If ``x`` is not 1D, is empty, or contains non-finite values.
    """
    try:
        arr = np.asarray(x, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{name} must be numeric: {e}") from e
    if arr.ndim != 1:
        raise InvalidInputError(f"{name} must be a 1D series, got shape {arr.shape}")
    if arr.size == 0:
        raise InvalidInputError(f"{name} is empty")
    if not np.isfinite(arr).all():
        raise InvalidInputError(f"{name} contains non-finite values")
    return arr


def to_observation_array(
    x: Sequence[float] | np.ndarray | pd.Series,
) -> np.ndarray:
    """Like ``to_float_array`` but also enforces the observation invariants."""
    arr = to_float_array(x, name="observation series")
    if arr.size < MIN_OBSERVATIONS:
        raise InvalidInputError(
            f"observation series needs at least {MIN_OBSERVATIONS} values, "
            f"got {arr.size}"
        )
    if np.any(arr < 0.0):
        raise InvalidInputError("observation series contains negative values")
    return arr


def require_seed(seed: int, name: str = "seed") -> int:
    """Non-negative integer seed, as accepted by ``numpy.random.SeedSequence``."""
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise InvalidInputError(f"{name} must be an integer, got {seed!r}")
    if seed < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {seed}")
    return int(seed)
