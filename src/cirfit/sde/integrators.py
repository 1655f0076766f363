# src/cirfit/sde/integrators.py
from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from cirfit.sde.schemas import SeedKey


def derive_run_seed(master_seed: int, run_index: int) -> Tuple[int, int]:
    """Seed key of run ``run_index`` inside an ensemble seeded by ``master_seed``."""
    return (int(master_seed), int(run_index))


def rng_with_seed(seed: SeedKey) -> np.random.Generator:
    """
    Create a numpy Generator deterministically from a seed key.

    An int seeds the generator directly. A ``(master_seed, run_index)`` pair
    maps to ``SeedSequence(master_seed, spawn_key=(run_index,))``, the same
    child stream ``SeedSequence(master_seed).spawn(...)`` would hand out for
    that index, so distinct pairs never share a draw sequence.
    """
    if isinstance(seed, tuple):
        master, run_index = seed
        return np.random.default_rng(
            np.random.SeedSequence(int(master), spawn_key=(int(run_index),))
        )
    return np.random.default_rng(int(seed))


def standard_normal_draws(seed: SeedKey, n: int) -> np.ndarray:
    """
    Draws Z_1..Z_n for one path. Index ``i - 1`` of the result is always the
    draw used at step ``i``; regenerating with the same seed restarts the
    sequence exactly.
    """
    return rng_with_seed(seed).standard_normal(n)


def cir_euler_step(
    r_prev: float, z: float, kappa: float, theta: float, sigma: float, dt: float
) -> float:
    """
    Single full-truncation Euler-Maruyama step for CIR:
    r_{t+dt} = max(0, r_t + kappa (theta - r_t) dt + sigma sqrt(r_t^+) sqrt(dt) Z)
    """
    drift = kappa * (theta - r_prev) * dt
    diff = sigma * math.sqrt(max(r_prev, 0.0)) * math.sqrt(dt) * z
    return max(0.0, r_prev + drift + diff)
