# src/cirfit/sde/estimators/cir.py
from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from cirfit.errors import InvalidInputError
from cirfit.sde.estimators.likelihood import CIRObjective
from cirfit.sde.estimators.optimizer import (
    DEFAULT_MAX_ITER,
    LOWER_BOUND,
    minimize_bounded,
)
from cirfit.sde.schemas import EstimationResult, ObservationSeries, ParameterSet
from cirfit.sde.validation import require_positive_dt, to_observation_array

LOGGER = logging.getLogger(__name__)

_GUESS_FLOOR = 1e-6


def regression_guess(r: np.ndarray, dt: float) -> ParameterSet:
    """
    Regression starting point for the Euler scheme.

    r[i] = kappa * theta * dt + (1 - kappa * dt) * r[i-1] + eps_i gives
    phi = 1 - kappa * dt and alpha = kappa * theta * dt from OLS, and
    sigma^2 ~ mean(eps^2) / (mean(r) * dt).
    """
    r = np.asarray(r, dtype=float)
    x = r[:-1]
    y = r[1:]

    xm = float(x.mean())
    ym = float(y.mean())
    Sxy = float(np.sum((x - xm) * (y - ym)))
    Sxx = float(np.sum((x - xm) ** 2))

    phi = Sxy / Sxx if Sxx > 0 else 0.99
    phi = float(np.clip(phi, 1e-8, 1.0 - 1e-6))
    alpha = ym - phi * xm
    kappa = (1.0 - phi) / dt
    theta = alpha / (1.0 - phi)
    if theta <= 0:
        theta = float(r.mean())

    resid = y - (alpha + phi * x)
    sigma_sq = float(np.mean(resid**2)) / (max(xm, 1e-12) * dt)
    sigma = float(np.sqrt(max(sigma_sq, 0.0)))

    return ParameterSet(
        kappa=max(kappa, _GUESS_FLOOR),
        theta=max(theta, _GUESS_FLOOR),
        sigma=max(sigma, _GUESS_FLOOR),
    )


def estimate(
    series: ObservationSeries | Sequence[float] | np.ndarray | pd.Series,
    dt: Optional[float] = None,
    initial_guess: ParameterSet | Mapping[str, float] | Sequence[float] | None = None,
    *,
    max_iter: int = DEFAULT_MAX_ITER,
) -> EstimationResult:
    """
    Quasi-maximum-likelihood estimate of (kappa, theta, sigma).

    Parameters
    ----------
    series : ObservationSeries | array-like
        Observations r[0..n], non-negative and finite, at least 2 values.
    dt : float, optional
        Sampling interval in years. Taken from ``series`` when it is an
        ObservationSeries and ``dt`` is omitted.
    initial_guess : ParameterSet | mapping | triple, optional
        Starting point. Defaults to the regression guess.
    max_iter : int
        Iteration budget for the optimizer.

    Returns
    -------
    EstimationResult
        Always returned for valid input, whatever the convergence status.

    Raises
    ------
    InvalidInputError
        On invalid series, dt, or starting point.
    NumericalInstabilityError
        If the likelihood is not finite at the starting point.
    """
    if isinstance(series, ObservationSeries):
        # re-checked: model_construct skips the model's own validation
        r = to_observation_array(series.values)
        dt = require_positive_dt(series.dt if dt is None else dt)
    else:
        if dt is None:
            raise InvalidInputError("dt is required when series is not an ObservationSeries")
        dt = require_positive_dt(dt)
        r = to_observation_array(series)

    if initial_guess is None:
        start = regression_guess(r, dt)
    else:
        start = ParameterSet.coerce(initial_guess)

    LOGGER.info(
        "Estimating CIR parameters on %d observations (dt=%.6g) from %s",
        r.size,
        dt,
        start.model_dump(),
    )
    result = minimize_bounded(
        CIRObjective(r, dt), start, lower=LOWER_BOUND, max_iter=max_iter
    )
    LOGGER.info(
        "CIR estimate %s, nll=%.6g, status=%s",
        result.params.model_dump(),
        result.nll,
        result.status.value,
    )
    return result


__all__ = ["regression_guess", "estimate"]
