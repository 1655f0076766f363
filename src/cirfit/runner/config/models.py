from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Data source
# ============================================================


class DataSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    value_column: str = "close"
    timestamp_column: str = "timestamp"
    dt: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Sampling interval in years; defaults to 1 / periods_per_year.",
    )
    periods_per_year: int = Field(default=252, ge=1)


# ============================================================
# Estimation
# ============================================================


class InitialGuess(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kappa: float = Field(..., gt=0.0)
    theta: float = Field(..., gt=0.0)
    sigma: float = Field(..., gt=0.0)


class EstimationSettings(BaseModel):
    """
    Optimizer controls. Without ``initial_guess`` the regression guess is used.
    """

    model_config = ConfigDict(extra="forbid")

    initial_guess: Optional[InitialGuess] = None
    max_iter: int = Field(default=1000, ge=1)


# ============================================================
# Simulation / Monte Carlo
# ============================================================


class SimulationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    seed: int = Field(default=456, ge=0, description="Seed of the validation path.")
    n_paths: int = Field(default=100, ge=1)
    master_seed: int = Field(default=2024, ge=0, description="Seed of the ensemble.")
    max_workers: Optional[int] = Field(default=None, ge=1)


# ============================================================
# Save Settings
# ============================================================


class SaveSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    directory: Optional[str] = None
    save_params: bool = True
    save_summary: bool = True
    save_validation_path: bool = True


# ============================================================
# Top-level CalibrationConfig
# ============================================================


class CalibrationConfig(BaseModel):
    """
    Global calibration run configuration.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = "default_run"

    data: DataSettings
    estimation: EstimationSettings = Field(default_factory=EstimationSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    save: SaveSettings = Field(default_factory=SaveSettings)
