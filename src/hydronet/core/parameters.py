"""
Run parameters and step-control settings.

`RunParameters` is the validated, immutable store of named run parameters.
It is built once from raw options (command line, response file or a plain
mapping) by `validate_and_store` and read many times by the trajectory
functions and the driver.

`StepControl` collects the timestep regulators and floors used by the
driver and the network limiter.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Tuple, Union

from hydronet.core.errors import ConfigurationError
from hydronet.network.nuclides import NUCLIDE_NAMES


@dataclass(frozen=True)
class StepControl:
    """Timestep regulation settings."""
    reg_t: float = 0.15        # Time step change regulator for dt update
    reg_y: float = 0.15        # Abundance change regulator for dt update
    x_reg_t: float = 0.15      # State change regulator for dt update
    y_min_dt: float = 1e-10    # Smallest abundance for dt update
    lim_cutoff: float = 1e-25  # Cutoff abundance for network limiter
    x_floors: Tuple[float, float, float] = (1e-10, 1.0, 1e-5)
    x_err_tol: float = 1e-3    # Step error estimate, relative to the state
    safety: float = 0.9        # Safety factor on the error-estimate step
    reject_factor: float = 0.5  # Step reduction after a rejected step
    max_reject: int = 25       # Consecutive rejections before giving up


@dataclass(frozen=True)
class RunParameters:
    """Validated run parameters.

    Densities are in g/cm^3, times in seconds and temperatures in 10^9 K.
    `rho_2` is derived as `rho_0 - rho_1` and cannot be set directly.
    """
    # Trajectory
    t9_0: float = 10.0           # Initial T (in 10^9 K)
    rho_0: float = 1.0e8         # Initial density
    rho_1: float = 9.0e7         # Exponentially decaying density component
    tau: float = 0.1             # Expansion timescale
    delta: float = 0.1           # Cutoff time
    root_factor: float = 1.001   # Root bracket expansion factor

    # Time integration
    time: float = 0.0
    dtime: float = 1.0e-15
    tend: float = 10.0
    steps: int = 20              # Frequency of time step dump

    # Switches
    t9_guess: bool = True
    observe: bool = False
    output_every_dump: bool = False

    # Composition and entropy-generation network selection
    mass_fractions: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({"he4": 1.0})
    )
    sdot_nuclides: Tuple[str, ...] = ()
    sdot_reactions: Tuple[str, ...] = ()

    rho_2: float = field(init=False)

    def __post_init__(self):
        if not self.rho_1 < self.rho_0:
            raise ConfigurationError(
                f"rho_1 ({self.rho_1:g}) must be less than rho_0 ({self.rho_0:g})."
            )
        if self.tau == 0.0:
            raise ConfigurationError("Expansion timescale tau must be non-zero.")
        if self.delta == 0.0:
            raise ConfigurationError("Cutoff time delta must be non-zero.")
        if self.root_factor <= 1.0:
            raise ConfigurationError("root_factor must be greater than 1.")
        if self.steps < 1:
            raise ConfigurationError("steps must be a positive integer.")
        if not self.dtime > 0.0:
            raise ConfigurationError("Initial timestep dtime must be positive.")

        object.__setattr__(self, "rho_2", self.rho_0 - self.rho_1)
        object.__setattr__(
            self, "mass_fractions", MappingProxyType(_normalize_mass_fractions(self.mass_fractions))
        )
        object.__setattr__(self, "sdot_nuclides", tuple(self.sdot_nuclides))
        object.__setattr__(self, "sdot_reactions", tuple(self.sdot_reactions))

    @property
    def restricted_view(self) -> bool:
        """True if a separate entropy-generation network view was selected."""
        return bool(self.sdot_nuclides or self.sdot_reactions)


# =============================================================================
# SETUP
# =============================================================================
_FLOAT_OPTIONS = ("t9_0", "rho_0", "rho_1", "tau", "delta", "root_factor",
                  "time", "dtime", "tend")
_BOOL_OPTIONS = ("t9_guess", "observe", "output_every_dump")


def default_options() -> dict:
    """Defaults of every settable run parameter, keyed by option name."""
    defaults = RunParameters()
    return {f.name: getattr(defaults, f.name) for f in fields(RunParameters) if f.init}


def validate_and_store(raw_options: Mapping[str, Any]) -> RunParameters:
    """
    Build the run parameters from raw options.

    Values may be given as strings (as read from a response file) and are
    coerced to the parameter's type. Options not present keep their default.

    Raises:
        ConfigurationError: unknown option, malformed value, or rho_1 >= rho_0.
    """
    known = set(default_options())
    unknown = sorted(set(raw_options) - known)
    if unknown:
        raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")

    kwargs = {}
    for name, value in raw_options.items():
        if value is None:
            continue
        try:
            if name in _FLOAT_OPTIONS:
                kwargs[name] = float(value)
            elif name == "steps":
                kwargs[name] = int(value)
            elif name in _BOOL_OPTIONS:
                kwargs[name] = parse_toggle(value)
            elif name == "mass_fractions":
                kwargs[name] = parse_mass_fractions(value)
            elif name == "sdot_reactions" and isinstance(value, str):
                kwargs[name] = (value,)
            else:
                kwargs[name] = tuple(_as_list(value))
        except (TypeError, ValueError) as exc:
            if isinstance(exc, ConfigurationError):
                raise
            raise ConfigurationError(f"Bad value for {name}: {value!r}") from exc

    return RunParameters(**kwargs)


def parse_toggle(value: Union[str, bool]) -> bool:
    """Accept True/False or the strings 'yes'/'no'."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("yes", "true", "1"):
        return True
    if text in ("no", "false", "0"):
        return False
    raise ConfigurationError(f"Expected 'yes' or 'no', got {value!r}")


def parse_mass_fractions(value: Union[Mapping[str, float], Iterable[str], str]) -> dict:
    """Parse `{'he4': 0.5}` or `['he4=0.5', 'c12=0.5']` into a mapping."""
    if isinstance(value, Mapping):
        return {str(k).lower(): float(v) for k, v in value.items()}

    result = {}
    for item in _as_list(value):
        name, sep, x = item.partition("=")
        if not sep:
            raise ConfigurationError(f"Mass fraction must be NAME=X, got {item!r}")
        result[name.strip().lower()] = float(x)
    return result


def _normalize_mass_fractions(mass_fractions: Mapping[str, float]) -> dict:
    unknown = sorted(set(mass_fractions) - set(NUCLIDE_NAMES))
    if unknown:
        raise ConfigurationError(f"Unknown nuclide(s) in composition: {', '.join(unknown)}")
    if any(x < 0.0 for x in mass_fractions.values()):
        raise ConfigurationError("Mass fractions must be non-negative.")

    total = sum(mass_fractions.values())
    if total <= 0.0:
        raise ConfigurationError("Mass fractions must sum to a positive value.")
    if abs(total - 1.0) > 1e-3:
        warnings.warn(f"Mass fractions sum to {total:.4f}; renormalizing.")
    return {name: x / total for name, x in mass_fractions.items()}


def _as_list(value) -> list:
    if isinstance(value, str):
        return value.split()
    return [str(v) for v in value]


__all__ = [
    "RunParameters",
    "StepControl",
    "default_options",
    "validate_and_store",
    "parse_toggle",
    "parse_mass_fractions",
]
