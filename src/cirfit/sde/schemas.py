# src/cirfit/sde/schemas.py
from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cirfit.errors import InvalidInputError
from cirfit.sde.validation import require_positive_dt, to_observation_array

PARAM_NAMES: Tuple[str, str, str] = ("kappa", "theta", "sigma")

SeedKey = Union[int, Tuple[int, int]]

SUMMARY_COLUMNS: Tuple[str, str, str, str] = ("mean", "sd", "lower", "upper")


def _readonly(values: Any) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.flags.writeable = False
    return arr


class ParameterSet(BaseModel):
    """
    CIR parameters:

        dr_t = kappa * (theta - r_t) dt + sigma * sqrt(r_t) dW_t
    """

    model_config = ConfigDict(frozen=True)

    kappa: float = Field(..., gt=0.0, allow_inf_nan=False, description="Mean reversion speed.")
    theta: float = Field(..., gt=0.0, allow_inf_nan=False, description="Long-run mean level.")
    sigma: float = Field(..., gt=0.0, allow_inf_nan=False, description="Volatility coefficient.")

    @classmethod
    def coerce(
        cls, value: "ParameterSet | Mapping[str, float] | Sequence[float]"
    ) -> "ParameterSet":
        """
        Build a validated ParameterSet from a ParameterSet, mapping or triple.

        An existing ParameterSet is re-validated, so values smuggled in via
        ``model_construct`` are still rejected.
        """
        try:
            if isinstance(value, ParameterSet):
                raw: Dict[str, Any] = {k: getattr(value, k) for k in PARAM_NAMES}
            elif isinstance(value, Mapping):
                raw = dict(value)
            else:
                kappa, theta, sigma = value
                raw = {"kappa": kappa, "theta": theta, "sigma": sigma}
            return cls.model_validate(raw)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid CIR parameters: {e}") from e
        except (TypeError, ValueError) as e:
            raise InvalidInputError(
                f"Parameters must be (kappa, theta, sigma), got {value!r}"
            ) from e

    @property
    def feller_margin(self) -> float:
        return 2.0 * self.kappa * self.theta - self.sigma**2

    @property
    def is_feller_stable(self) -> bool:
        return self.feller_margin >= 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.kappa, self.theta, self.sigma], dtype=float)


class ObservationSeries(BaseModel):
    """
    Time-ordered observations r[0..n] sampled every ``dt`` (in years).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    values: np.ndarray
    dt: float = Field(..., gt=0.0, allow_inf_nan=False)

    @field_validator("values", mode="before")
    @classmethod
    def _check_values(cls, v: Any) -> np.ndarray:
        return _readonly(to_observation_array(v))

    @classmethod
    def from_values(
        cls, values: Sequence[float] | np.ndarray | pd.Series, dt: float
    ) -> "ObservationSeries":
        arr = to_observation_array(values)
        return cls(values=arr, dt=require_positive_dt(dt))

    @property
    def n_steps(self) -> int:
        return int(self.values.size - 1)

    def as_array(self) -> np.ndarray:
        return np.array(self.values, dtype=float)


class ConvergenceStatus(str, Enum):
    CONVERGED = "converged"
    ITERATION_LIMIT = "iteration_limit"
    LINE_SEARCH_FAILURE = "line_search_failure"
    BOUNDARY = "boundary"


class EstimationResult(BaseModel):
    """
    Outcome of a quasi-maximum-likelihood fit.

    ``std_errors`` is None whenever the curvature at the optimum is not
    positive definite; it never holds NaN.
    """

    model_config = ConfigDict(frozen=True)

    params: ParameterSet
    nll: float = Field(..., description="Negative log-likelihood at params.")
    status: ConvergenceStatus
    message: str = ""
    n_iter: int = Field(0, ge=0)
    n_fev: int = Field(0, ge=0)
    n_obs: int = Field(..., ge=2, description="Number of observations used.")
    std_errors: Optional[Dict[str, float]] = None

    @property
    def success(self) -> bool:
        return self.status is ConvergenceStatus.CONVERGED

    @property
    def log_likelihood(self) -> float:
        return -self.nll

    @property
    def aic(self) -> float:
        return 2.0 * len(PARAM_NAMES) + 2.0 * self.nll

    @property
    def bic(self) -> float:
        return len(PARAM_NAMES) * math.log(self.n_obs) + 2.0 * self.nll


class SimulatedPath(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    values: np.ndarray
    seed: SeedKey
    params: ParameterSet
    dt: float = Field(..., gt=0.0)

    @field_validator("values", mode="before")
    @classmethod
    def _freeze_values(cls, v: Any) -> np.ndarray:
        return _readonly(v)

    @property
    def n_steps(self) -> int:
        return int(self.values.size - 1)

    @property
    def r0(self) -> float:
        return float(self.values[0])


class MonteCarloEnsemble(BaseModel):
    """
    M simulated paths sharing (params, dt, n, r0) plus per-step statistics.

    ``statistics`` is a read-only (n+1, 4) array in ``SUMMARY_COLUMNS`` order;
    ``summary`` presents it as a fresh DataFrame indexed by step t = 0..n.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    paths: Tuple[SimulatedPath, ...]
    master_seed: int = Field(..., ge=0)
    statistics: np.ndarray

    @field_validator("statistics", mode="before")
    @classmethod
    def _freeze_statistics(cls, v: Any) -> np.ndarray:
        arr = _readonly(v)
        if arr.ndim != 2 or arr.shape[1] != len(SUMMARY_COLUMNS):
            raise ValueError(
                f"statistics must have shape (n+1, {len(SUMMARY_COLUMNS)}), got {arr.shape}"
            )
        return arr

    @property
    def summary(self) -> pd.DataFrame:
        frame = pd.DataFrame(np.array(self.statistics), columns=list(SUMMARY_COLUMNS))
        frame.index.name = "step"
        return frame

    @property
    def n_paths(self) -> int:
        return len(self.paths)

    @property
    def params(self) -> ParameterSet:
        return self.paths[0].params

    @property
    def dt(self) -> float:
        return self.paths[0].dt

    @property
    def values(self) -> np.ndarray:
        return np.vstack([p.values for p in self.paths])


class FellerCheck(NamedTuple):
    is_stable: bool
    margin: float


class FitMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    rmse: float = Field(..., ge=0.0)
    mae: float = Field(..., ge=0.0)

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump()


__all__ = [
    "PARAM_NAMES",
    "SeedKey",
    "SUMMARY_COLUMNS",
    "ParameterSet",
    "ObservationSeries",
    "ConvergenceStatus",
    "EstimationResult",
    "SimulatedPath",
    "MonteCarloEnsemble",
    "FellerCheck",
    "FitMetrics",
]
