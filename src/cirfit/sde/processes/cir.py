# src/cirfit/sde/processes/cir.py
from __future__ import annotations

from functools import partial
from itertools import accumulate
from typing import Iterable, Mapping, Sequence

import numpy as np

from cirfit.errors import InvalidInputError
from cirfit.sde.integrators import cir_euler_step, standard_normal_draws
from cirfit.sde.schemas import ParameterSet, SeedKey, SimulatedPath
from cirfit.sde.validation import (
    require_initial_value,
    require_positive_dt,
    require_seed,
    require_steps,
)


def _step(
    r_prev: float, z: float, *, kappa: float, theta: float, sigma: float, dt: float
) -> float:
    return cir_euler_step(r_prev, float(z), kappa, theta, sigma, dt)


def cir_euler_path(
    params: ParameterSet, dt: float, r0: float, draws: Iterable[float]
) -> np.ndarray:
    """
    Fold the Euler-Maruyama step over ``draws``, starting from ``r0``.

    Returns r_0..r_n where n is the number of draws consumed.
    """
    step = partial(
        _step, kappa=params.kappa, theta=params.theta, sigma=params.sigma, dt=dt
    )
    return np.fromiter(accumulate(draws, step, initial=float(r0)), dtype=float)


def _normalize_seed(seed: SeedKey) -> SeedKey:
    if isinstance(seed, tuple):
        if len(seed) != 2:
            raise InvalidInputError(f"seed pair must have two entries, got {seed!r}")
        return (require_seed(seed[0], "master seed"), require_seed(seed[1], "run index"))
    return require_seed(seed)


def simulate(
    params: ParameterSet | Mapping[str, float] | Sequence[float],
    dt: float,
    n: int,
    r0: float,
    seed: SeedKey,
) -> SimulatedPath:
    """
    Simulate one CIR path with full-truncation Euler-Maruyama.

    Parameters
    ----------
    params : ParameterSet | mapping | (kappa, theta, sigma)
        Strictly positive model parameters.
    dt : float
        Step size in years.
    n : int
        Number of steps; the path has n + 1 points.
    r0 : float
        Non-negative starting value, returned unchanged as the first point.
    seed : int | (int, int)
        Seed key. Identical arguments give bit-identical paths.

    Raises
    ------
    InvalidInputError
        On non-positive parameters or dt, n < 1, negative or non-finite r0.
    """
    p = ParameterSet.coerce(params)
    dt = require_positive_dt(dt)
    n = require_steps(n)
    r0 = require_initial_value(r0)
    seed = _normalize_seed(seed)

    values = cir_euler_path(p, dt, r0, standard_normal_draws(seed, n))
    return SimulatedPath(values=values, seed=seed, params=p, dt=dt)


__all__ = ["cir_euler_path", "simulate"]
