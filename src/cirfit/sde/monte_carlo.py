# src/cirfit/sde/monte_carlo.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from cirfit.sde.integrators import derive_run_seed
from cirfit.sde.processes.cir import simulate
from cirfit.sde.schemas import MonteCarloEnsemble, ParameterSet, SimulatedPath
from cirfit.sde.validation import (
    require_initial_value,
    require_positive_dt,
    require_seed,
    require_steps,
)

LOGGER = logging.getLogger(__name__)

# Two-sided 95% normal quantile for the envelope.
ENVELOPE_Z = 1.96


def summarize_paths(values: np.ndarray, z: float = ENVELOPE_Z) -> pd.DataFrame:
    """
    Per-step ensemble statistics for an (M, n+1) array of path values.

    The standard deviation uses divisor M (ddof=0) so a single path is
    well defined (sd = 0). A step at which all paths share one value, such
    as the common start, gets that value as mean and an sd of exactly 0.
    """
    values = np.atleast_2d(np.asarray(values, dtype=float))
    mean = values.mean(axis=0)
    sd = values.std(axis=0, ddof=0)
    # steps where every path agrees are reported exactly
    agree = np.all(values == values[:1], axis=0)
    mean = np.where(agree, values[0], mean)
    sd = np.where(agree, 0.0, sd)
    summary = pd.DataFrame(
        {
            "mean": mean,
            "sd": sd,
            "lower": mean - z * sd,
            "upper": mean + z * sd,
        }
    )
    summary.index.name = "step"
    return summary


def monte_carlo(
    params: ParameterSet | Mapping[str, float] | Sequence[float],
    dt: float,
    n: int,
    r0: float,
    M: int,
    master_seed: int,
    *,
    max_workers: Optional[int] = None,
) -> MonteCarloEnsemble:
    """
    Simulate M independent CIR paths and summarize them per time step.

    Run k is seeded with the key (master_seed, k), so the ensemble is fully
    determined by ``master_seed``. With ``max_workers > 1`` runs execute on a
    thread pool; results are always collected by run index.
    """
    p = ParameterSet.coerce(params)
    dt = require_positive_dt(dt)
    n = require_steps(n)
    r0 = require_initial_value(r0)
    M = require_steps(M, name="M")
    master_seed = require_seed(master_seed, "master_seed")

    def run(k: int) -> SimulatedPath:
        return simulate(p, dt, n, r0, derive_run_seed(master_seed, k))

    LOGGER.info(
        "Running %d CIR paths of %d steps (master_seed=%d, workers=%s)",
        M,
        n,
        master_seed,
        max_workers or 1,
    )
    if max_workers is not None and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            # map preserves submission order, i.e. run index
            paths: List[SimulatedPath] = list(executor.map(run, range(M)))
    else:
        paths = [run(k) for k in range(M)]

    summary = summarize_paths(np.vstack([path.values for path in paths]))
    return MonteCarloEnsemble(
        paths=tuple(paths), master_seed=master_seed, statistics=summary.to_numpy()
    )


__all__ = ["ENVELOPE_Z", "summarize_paths", "monte_carlo"]
