# src/cirfit/sde/diagnostics.py
from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np
import pandas as pd

from cirfit.errors import DimensionMismatchError
from cirfit.sde.schemas import FellerCheck, FitMetrics, ParameterSet
from cirfit.sde.validation import to_float_array


def feller(
    params: ParameterSet | Mapping[str, float] | Sequence[float],
) -> FellerCheck:
    """
    Feller condition 2 * kappa * theta >= sigma^2 (boundary counts as stable).
    """
    p = ParameterSet.coerce(params)
    margin = p.feller_margin
    return FellerCheck(is_stable=bool(margin >= 0.0), margin=float(margin))


def fit_metrics(
    actual: Sequence[float] | np.ndarray | pd.Series,
    simulated: Sequence[float] | np.ndarray | pd.Series,
) -> FitMetrics:
    """RMSE and MAE between two aligned series."""
    a = to_float_array(actual, name="actual")
    s = to_float_array(simulated, name="simulated")
    if a.size != s.size:
        raise DimensionMismatchError(
            f"actual has {a.size} values but simulated has {s.size}"
        )
    err = a - s
    return FitMetrics(
        rmse=float(np.sqrt(np.mean(err**2))),
        mae=float(np.mean(np.abs(err))),
    )


__all__ = ["feller", "fit_metrics"]
