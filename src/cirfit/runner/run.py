from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from cirfit.data.ingestion import load_observation_series
from cirfit.runner.config.loader import load_config
from cirfit.runner.config.models import CalibrationConfig
from cirfit.sde.diagnostics import feller, fit_metrics
from cirfit.sde.estimators.cir import estimate
from cirfit.sde.estimators.likelihood import standardized_residuals
from cirfit.sde.monte_carlo import monte_carlo
from cirfit.sde.processes.cir import simulate
from cirfit.sde.schemas import (
    EstimationResult,
    FellerCheck,
    FitMetrics,
    MonteCarloEnsemble,
    ObservationSeries,
    SimulatedPath,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class CalibrationRunResult:
    config: CalibrationConfig
    series: ObservationSeries
    estimation: EstimationResult
    feller_check: FellerCheck
    validation_path: SimulatedPath
    fit: FitMetrics
    ensemble: MonteCarloEnsemble
    residuals: np.ndarray


# ======================================================================
# Main entrypoint
# ======================================================================


def run_calibration(cfg: CalibrationConfig) -> CalibrationRunResult:
    LOGGER.info("Loading observations…")
    series = load_observation_series(
        cfg.data.path,
        value_column=cfg.data.value_column,
        timestamp_column=cfg.data.timestamp_column,
        dt=cfg.data.dt,
        periods_per_year=cfg.data.periods_per_year,
    )

    # ======================================================================
    # Estimate
    # ======================================================================

    guess = cfg.estimation.initial_guess
    result = estimate(
        series,
        initial_guess=None if guess is None else guess.model_dump(),
        max_iter=cfg.estimation.max_iter,
    )
    params = result.params

    check = feller(params)
    if not check.is_stable:
        LOGGER.warning(
            "Fitted parameters violate the Feller condition (margin=%.6g)",
            check.margin,
        )

    # ======================================================================
    # Validate: one path from the first observation + ensemble
    # ======================================================================

    actual = series.as_array()
    r0 = float(actual[0])
    n = series.n_steps

    LOGGER.info("Simulating validation path (seed=%d)…", cfg.simulation.seed)
    path = simulate(params, series.dt, n, r0, cfg.simulation.seed)
    metrics = fit_metrics(actual, path.values)
    LOGGER.info("Validation fit: rmse=%.6g mae=%.6g", metrics.rmse, metrics.mae)

    ensemble = monte_carlo(
        params,
        series.dt,
        n,
        r0,
        cfg.simulation.n_paths,
        cfg.simulation.master_seed,
        max_workers=cfg.simulation.max_workers,
    )

    run_result = CalibrationRunResult(
        config=cfg,
        series=series,
        estimation=result,
        feller_check=check,
        validation_path=path,
        fit=metrics,
        ensemble=ensemble,
        residuals=standardized_residuals(actual, series.dt, params.as_array()),
    )

    if cfg.save.directory:
        _persist_results(cfg, run_result)

    return run_result


def run_from_config(
    path: str | Path,
    save_dir: Optional[str | Path] = None,
) -> CalibrationRunResult:
    LOGGER.info("Loading config: %s", path)
    cfg = load_config(path)

    if save_dir is not None:
        cfg = cfg.model_copy(
            update={"save": cfg.save.model_copy(update={"directory": str(save_dir)})}
        )

    return run_calibration(cfg)


# ======================================================================
# Save outputs
# ======================================================================


def _params_payload(result: CalibrationRunResult) -> dict:
    est = result.estimation
    return {
        "name": result.config.name,
        "params": est.params.model_dump(),
        "std_errors": est.std_errors,
        "nll": est.nll,
        "aic": est.aic,
        "bic": est.bic,
        "status": est.status.value,
        "message": est.message,
        "n_obs": est.n_obs,
        "dt": result.series.dt,
        "feller": {
            "is_stable": result.feller_check.is_stable,
            "margin": result.feller_check.margin,
        },
        "fit": result.fit.as_dict(),
        "residuals": {
            "mean": float(np.mean(result.residuals)),
            "std": float(np.std(result.residuals)),
        },
    }


def _persist_results(cfg: CalibrationConfig, result: CalibrationRunResult) -> None:
    out_dir = Path(cfg.save.directory)
    out_dir.mkdir(parents=True, exist_ok=True)

    LOGGER.info("Saving results to: %s", out_dir)

    if cfg.save.save_params:
        with open(out_dir / "params.json", "w") as f:
            json.dump(_params_payload(result), f, indent=2)

    if cfg.save.save_summary:
        result.ensemble.summary.to_csv(out_dir / "ensemble_summary.csv")

    if cfg.save.save_validation_path:
        pd.DataFrame(
            {
                "actual": result.series.as_array(),
                "simulated": result.validation_path.values,
            }
        ).rename_axis("step").to_csv(out_dir / "validation_path.csv")
