"""
cirfit: quasi-maximum-likelihood calibration, simulation and Monte Carlo
validation for the CIR square-root diffusion.
"""

from cirfit.errors import (
    CIRFitError,
    DimensionMismatchError,
    InvalidInputError,
    NumericalInstabilityError,
)
from cirfit.sde.diagnostics import feller, fit_metrics
from cirfit.sde.estimators.cir import estimate
from cirfit.sde.monte_carlo import monte_carlo
from cirfit.sde.processes.cir import simulate
from cirfit.sde.schemas import (
    ConvergenceStatus,
    EstimationResult,
    FellerCheck,
    FitMetrics,
    MonteCarloEnsemble,
    ObservationSeries,
    ParameterSet,
    SimulatedPath,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "estimate",
    "simulate",
    "monte_carlo",
    "feller",
    "fit_metrics",
    "ParameterSet",
    "ObservationSeries",
    "EstimationResult",
    "ConvergenceStatus",
    "SimulatedPath",
    "MonteCarloEnsemble",
    "FellerCheck",
    "FitMetrics",
    "CIRFitError",
    "InvalidInputError",
    "NumericalInstabilityError",
    "DimensionMismatchError",
]
