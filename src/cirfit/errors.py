# src/cirfit/errors.py
from __future__ import annotations


class CIRFitError(Exception):
    """Base class for all cirfit errors."""

    pass


class InvalidInputError(CIRFitError, ValueError):
    """Input rejected at a public boundary (bad dt, series, parameters, r0)."""

    pass


class DimensionMismatchError(InvalidInputError):
    """Two series that must align have different lengths."""

    pass


class NumericalInstabilityError(CIRFitError, ArithmeticError):
    """The likelihood is not finite at a point the optimizer needs."""

    pass


class DataSourceError(InvalidInputError):
    """Tabular source is missing, or lacks a usable numeric value column."""

    pass


class ConfigError(CIRFitError, ValueError):
    """Run configuration could not be parsed or validated."""

    pass


__all__ = [
    "CIRFitError",
    "InvalidInputError",
    "DimensionMismatchError",
    "NumericalInstabilityError",
    "DataSourceError",
    "ConfigError",
]
