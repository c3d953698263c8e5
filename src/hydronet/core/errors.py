"""Custom exceptions for the :mod:`hydronet` package."""
from __future__ import annotations


class HydroNetError(Exception):
    """Base exception for hydronet run errors."""


class ConfigurationError(HydroNetError, ValueError):
    """Invalid run parameters or command-line input."""


class PhysicsError(HydroNetError, ValueError):
    """A physics routine was handed an unphysical state."""


class NumericalError(HydroNetError, RuntimeError):
    """Loss of convergence or a non-finite result during integration."""


class RootFindingError(NumericalError):
    """The temperature root could not be bracketed or converged."""


class NetworkError(NumericalError):
    """The implicit network solve failed to converge."""


__all__ = [
    "HydroNetError",
    "ConfigurationError",
    "PhysicsError",
    "NumericalError",
    "RootFindingError",
    "NetworkError",
]
