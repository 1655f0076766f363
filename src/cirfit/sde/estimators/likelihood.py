# src/cirfit/sde/estimators/likelihood.py
"""
Gaussian (Euler) quasi-likelihood for the CIR process.

For each step i = 1..n with x = r[i-1]:

    mu_i = kappa * (theta - x) * dt
    v_i  = sigma^2 * max(x, 0) * dt + VARIANCE_FLOOR
    nll_i = 0.5 * log(2 pi v_i) + (r[i] - x - mu_i)^2 / (2 v_i)

The floor is always added so that steps starting at (or near) zero keep a
strictly positive variance. Non-finite totals are replaced by
``NLL_PENALTY`` so a line search can reject the trial point.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

VARIANCE_FLOOR = 1e-8
NLL_PENALTY = 1e10

_LOG_2PI = float(np.log(2.0 * np.pi))


def _unpack(params: Sequence[float] | np.ndarray) -> Tuple[float, float, float]:
    kappa, theta, sigma = (float(p) for p in params)
    return kappa, theta, sigma


def _moments(
    r: np.ndarray, dt: float, params: Sequence[float] | np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Residual e_i, regressor x_i = r[i-1] and variance v_i for every step."""
    kappa, theta, sigma = _unpack(params)
    x = r[:-1]
    mu = kappa * (theta - x) * dt
    var = sigma * sigma * np.maximum(x, 0.0) * dt + VARIANCE_FLOOR
    resid = r[1:] - x - mu
    return resid, x, var


def raw_negative_log_likelihood(
    r: np.ndarray, dt: float, params: Sequence[float] | np.ndarray
) -> float:
    """Unclamped sum of per-step terms; may be inf or nan."""
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        resid, _, var = _moments(r, dt, params)
        terms = 0.5 * (_LOG_2PI + np.log(var)) + resid * resid / (2.0 * var)
        if not np.all(np.isfinite(terms)):
            return float("nan")
        return float(np.sum(terms))


def negative_log_likelihood(
    r: np.ndarray, dt: float, params: Sequence[float] | np.ndarray
) -> float:
    """Quasi negative log-likelihood, clamped to ``NLL_PENALTY`` when non-finite."""
    total = raw_negative_log_likelihood(r, dt, params)
    if not np.isfinite(total):
        return NLL_PENALTY
    return total


def nll_gradient(
    r: np.ndarray, dt: float, params: Sequence[float] | np.ndarray
) -> np.ndarray:
    """
    Analytic gradient of the quasi negative log-likelihood w.r.t.
    (kappa, theta, sigma). Returns zeros where the value itself is penalized.
    """
    kappa, theta, sigma = _unpack(params)
    if not np.isfinite(raw_negative_log_likelihood(r, dt, params)):
        return np.zeros(3, dtype=float)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        resid, x, var = _moments(r, dt, params)
        e_over_v = resid / var
        d_kappa = -np.sum(e_over_v * (theta - x) * dt)
        d_theta = -np.sum(e_over_v * kappa * dt)
        # d nll_i / d v_i times d v_i / d sigma
        d_var = 0.5 / var - resid * resid / (2.0 * var * var)
        d_sigma = np.sum(d_var * 2.0 * sigma * np.maximum(x, 0.0) * dt)
        grad = np.array([d_kappa, d_theta, d_sigma], dtype=float)
    if not np.all(np.isfinite(grad)):
        return np.zeros(3, dtype=float)
    return grad


def standardized_residuals(
    r: np.ndarray, dt: float, params: Sequence[float] | np.ndarray
) -> np.ndarray:
    """(r[i] - r[i-1] - mu_i) / sqrt(v_i) for i = 1..n."""
    resid, _, var = _moments(np.asarray(r, dtype=float), dt, params)
    return resid / np.sqrt(var)


class CIRObjective:
    """
    Objective interface consumed by the optimizer: parameters -> scalar,
    with an analytic gradient. Holds a private copy of the observations.
    """

    def __init__(self, r: Sequence[float] | np.ndarray, dt: float):
        self.r = np.array(r, dtype=float)
        self.dt = float(dt)
        self.n_evals = 0

    @property
    def n_obs(self) -> int:
        return int(self.r.size)

    def raw_value(self, params: Sequence[float] | np.ndarray) -> float:
        return raw_negative_log_likelihood(self.r, self.dt, params)

    def value(self, params: Sequence[float] | np.ndarray) -> float:
        self.n_evals += 1
        return negative_log_likelihood(self.r, self.dt, params)

    def gradient(self, params: Sequence[float] | np.ndarray) -> np.ndarray:
        return nll_gradient(self.r, self.dt, params)

    def value_and_gradient(
        self, params: Sequence[float] | np.ndarray
    ) -> Tuple[float, np.ndarray]:
        value = self.value(params)
        if value == NLL_PENALTY:
            return value, np.zeros(3, dtype=float)
        return value, self.gradient(params)

    __call__ = value


__all__ = [
    "VARIANCE_FLOOR",
    "NLL_PENALTY",
    "raw_negative_log_likelihood",
    "negative_log_likelihood",
    "nll_gradient",
    "standardized_residuals",
    "CIRObjective",
]
