# src/cirfit/sde/estimators/optimizer.py
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol, Sequence, Tuple

import numpy as np
from scipy.optimize import minimize

from cirfit.errors import InvalidInputError, NumericalInstabilityError
from cirfit.sde.estimators.likelihood import NLL_PENALTY
from cirfit.sde.schemas import (
    PARAM_NAMES,
    ConvergenceStatus,
    EstimationResult,
    ParameterSet,
)

LOGGER = logging.getLogger(__name__)

LOWER_BOUND = 1e-8
DEFAULT_MAX_ITER = 1000
HESSIAN_REL_STEP = 1e-5
PD_TOLERANCE = 1e-10
ACTIVE_BOUND_TOL = 1e-5


class Objective(Protocol):
    n_obs: int

    def raw_value(self, params: Sequence[float] | np.ndarray) -> float:
        ...

    def gradient(self, params: Sequence[float] | np.ndarray) -> np.ndarray:
        ...

    def value_and_gradient(
        self, params: Sequence[float] | np.ndarray
    ) -> Tuple[float, np.ndarray]:
        ...


def numerical_hessian(
    grad_fn: Callable[[np.ndarray], np.ndarray],
    x: Sequence[float] | np.ndarray,
    rel_step: float = HESSIAN_REL_STEP,
    lower: Optional[float] = None,
) -> np.ndarray:
    """
    Finite-difference Hessian built from an analytic gradient, symmetrized.

    Differences are central unless ``lower`` is given and the backward point
    would cross it; that point is then clamped to ``lower``.
    """
    x = np.asarray(x, dtype=float)
    k = x.size
    H = np.empty((k, k), dtype=float)
    for j in range(k):
        h = rel_step * max(abs(x[j]), 1.0)
        x_up = x.copy()
        x_dn = x.copy()
        x_up[j] += h
        x_dn[j] -= h
        if lower is not None:
            x_dn[j] = max(x_dn[j], lower)
        H[:, j] = (grad_fn(x_up) - grad_fn(x_dn)) / (x_up[j] - x_dn[j])
    return 0.5 * (H + H.T)


def pinned_at_bound(
    x: np.ndarray,
    grad: np.ndarray,
    lower: float = LOWER_BOUND,
    rel_tol: float = ACTIVE_BOUND_TOL,
) -> np.ndarray:
    """
    Mask of coordinates held by the lower bound.

    A coordinate is pinned when it sits within ``2 * lower`` of the bound, or
    when it is within ``rel_tol * max(|x|, 1)`` of it while the gradient still
    points into the bound (L-BFGS-B stops there once the projected gradient
    is below its tolerance).
    """
    x = np.asarray(x, dtype=float)
    grad = np.asarray(grad, dtype=float)
    gap = x - lower
    near = gap <= np.maximum(2.0 * lower, rel_tol * np.maximum(np.abs(x), 1.0))
    return (x <= 2.0 * lower) | (near & (grad > 0.0))


def standard_errors_from_hessian(
    H: np.ndarray, tol: float = PD_TOLERANCE
) -> Optional[np.ndarray]:
    """
    sqrt(diag(H^-1)) when H is positive definite within ``tol`` (smallest
    eigenvalue relative to the largest in magnitude), else None.
    """
    H = np.asarray(H, dtype=float)
    if not np.all(np.isfinite(H)):
        return None
    eig = np.linalg.eigvalsh(H)
    scale = float(np.max(np.abs(eig)))
    if scale == 0.0 or float(eig.min()) <= tol * scale:
        return None
    try:
        cov = np.linalg.inv(H)
    except np.linalg.LinAlgError:
        return None
    var = np.diag(cov)
    if not np.all(np.isfinite(var)) or np.any(var <= 0.0):
        return None
    return np.sqrt(var)


def _status_from_scipy(res) -> Tuple[ConvergenceStatus, str]:
    message = str(res.message)
    if res.status == 0:
        return ConvergenceStatus.CONVERGED, message
    if res.status == 1:
        return ConvergenceStatus.ITERATION_LIMIT, message
    return ConvergenceStatus.LINE_SEARCH_FAILURE, message


def minimize_bounded(
    objective: Objective,
    x0: ParameterSet | Sequence[float] | np.ndarray,
    lower: float = LOWER_BOUND,
    max_iter: int = DEFAULT_MAX_ITER,
) -> EstimationResult:
    """
    Minimize ``objective`` over (lower, inf)^3 with L-BFGS-B.

    Non-convergence is reported through ``EstimationResult.status``; the best
    point found is always returned. A converged point with any coordinate
    held by the bound (see ``pinned_at_bound``) is reported as ``BOUNDARY``
    rather than ``CONVERGED``.

    Raises
    ------
    NumericalInstabilityError
        If the objective is not finite at ``x0``; no search is attempted.
    InvalidInputError
        If ``lower`` is not positive or ``max_iter`` < 1.
    """
    if not lower > 0.0:
        raise InvalidInputError(f"lower bound must be positive, got {lower}")
    if max_iter < 1:
        raise InvalidInputError(f"max_iter must be >= 1, got {max_iter}")

    start = x0.as_array() if isinstance(x0, ParameterSet) else np.asarray(x0, dtype=float)
    start = np.maximum(start, lower)

    initial_value = objective.raw_value(start)
    if not np.isfinite(initial_value):
        raise NumericalInstabilityError(
            f"Negative log-likelihood is not finite at initial point {start.tolist()}"
        )
    LOGGER.debug("L-BFGS-B start at %s (nll=%.6g)", start.tolist(), initial_value)

    res = minimize(
        objective.value_and_gradient,
        start,
        jac=True,
        method="L-BFGS-B",
        bounds=[(lower, None)] * len(PARAM_NAMES),
        options={"maxiter": int(max_iter), "maxfun": 20 * int(max_iter)},
    )

    status, message = _status_from_scipy(res)
    x_hat = np.maximum(np.asarray(res.x, dtype=float), lower)
    nll = float(res.fun)

    if nll >= NLL_PENALTY:
        status = ConvergenceStatus.LINE_SEARCH_FAILURE
        message = "objective not finite at the returned point"
    elif status is ConvergenceStatus.CONVERGED:
        mask = pinned_at_bound(x_hat, objective.gradient(x_hat), lower)
        if np.any(mask):
            pinned = [name for name, hit in zip(PARAM_NAMES, mask) if hit]
            status = ConvergenceStatus.BOUNDARY
            message = f"estimate pinned at lower bound for {', '.join(pinned)}"

    ses = standard_errors_from_hessian(
        numerical_hessian(objective.gradient, x_hat, lower=lower)
    )
    std_errors = None if ses is None else dict(zip(PARAM_NAMES, map(float, ses)))

    if status is not ConvergenceStatus.CONVERGED:
        LOGGER.warning("Optimizer finished with status %s: %s", status.value, message)

    return EstimationResult(
        params=ParameterSet(kappa=x_hat[0], theta=x_hat[1], sigma=x_hat[2]),
        nll=nll,
        status=status,
        message=message,
        n_iter=int(getattr(res, "nit", 0)),
        n_fev=int(getattr(res, "nfev", 0)),
        n_obs=objective.n_obs,
        std_errors=std_errors,
    )


__all__ = [
    "LOWER_BOUND",
    "DEFAULT_MAX_ITER",
    "Objective",
    "numerical_hessian",
    "pinned_at_bound",
    "standard_errors_from_hessian",
    "minimize_bounded",
]
