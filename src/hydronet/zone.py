"""
The computational zone.

A `Zone` is the single fluid element being followed. It holds the named
properties the trajectory functions read and write, the composition
(abundances and their changes over the last evolution step), the network
the composition burns in with its current evolution view, and the function
slots (`ZoneFunctions`) that supply density, temperature, entropy and so on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Tuple

import numpy as np

from hydronet.core.errors import ConfigurationError
from hydronet.core.parameters import RunParameters
from hydronet.network.alpha_chain import NetView, Network

# Property names
TIME = "time"
DTIME = "dtime"
T9 = "t9"
RHO = "rho"
ENTROPY = "entropy per nucleon"
PARTICLE = "particle"
X0 = "x0"
X1 = "x1"
EXPANSION_RATE = "expansion rate"

PROPERTY_NAMES = (TIME, DTIME, T9, RHO, ENTROPY, PARTICLE, X0, X1, EXPANSION_RATE)


# =============================================================================
# FUNCTION SLOTS
# =============================================================================
class AccelerationFunction(Protocol):
    def __call__(self, params: RunParameters, zone: "Zone", x: np.ndarray, t: float) -> float: ...


class DensityFunction(Protocol):
    def __call__(self, params: RunParameters, x: np.ndarray) -> float: ...


class TemperatureFunction(Protocol):
    def __call__(self, params: RunParameters, zone: "Zone", view: NetView) -> float: ...


class EntropyFunction(Protocol):
    def __call__(self, zone: "Zone", *, t9: Optional[float] = None) -> float: ...


class EntropyGenerationFunction(Protocol):
    def __call__(self, zone: "Zone", view: NetView) -> float: ...


class EvolutionFunction(Protocol):
    def __call__(self, zone: "Zone", view: NetView, dt: float) -> None: ...


class ObserverFunction(Protocol):
    def __call__(self, zone: "Zone", x: np.ndarray, dxdt: np.ndarray, t: float) -> None: ...


@dataclass
class ZoneFunctions:
    """Functions registered with a zone. `observer` is optional."""
    acceleration: AccelerationFunction
    density: DensityFunction
    temperature: TemperatureFunction
    entropy: EntropyFunction
    entropy_generation: EntropyGenerationFunction
    evolution: EvolutionFunction
    observer: Optional[ObserverFunction] = None


# =============================================================================
# ZONE
# =============================================================================
class Zone:
    """
    A fluid element with properties, composition and function slots.

    Properties are floats keyed by name (see PROPERTY_NAMES). `particle`
    names the gas component whose entropy the entropy function returns
    ("total" for the sum). Attribute shortcuts are provided for the
    properties the integration touches on every call.
    """

    def __init__(self, network: Network, functions: ZoneFunctions,
                 abundances: Optional[np.ndarray] = None):
        self.network = network
        self.functions = functions
        self.abundances = (np.zeros(network.n_nuclides) if abundances is None
                           else np.array(abundances, dtype=np.float64))
        self.abundance_changes = np.zeros(network.n_nuclides)
        self.evolution_view = network.full_view()
        self.properties: Dict[str, float] = {}
        self.particle = "total"

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    def __getitem__(self, name: str) -> float:
        try:
            return self.properties[name]
        except KeyError:
            raise KeyError(f"Zone property {name!r} has not been set") from None

    def __setitem__(self, name: str, value: float):
        self.properties[name] = float(value)

    def __contains__(self, name: str) -> bool:
        return name in self.properties

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self.properties.get(name, default)

    @property
    def time(self) -> float:
        return self[TIME]

    @time.setter
    def time(self, value: float):
        self[TIME] = value

    @property
    def t9(self) -> float:
        return self[T9]

    @t9.setter
    def t9(self, value: float):
        self[T9] = value

    @property
    def rho(self) -> float:
        return self[RHO]

    @rho.setter
    def rho(self, value: float):
        self[RHO] = value

    @property
    def entropy(self) -> float:
        return self[ENTROPY]

    @entropy.setter
    def entropy(self, value: float):
        self[ENTROPY] = value

    # -------------------------------------------------------------------------
    # Composition
    # -------------------------------------------------------------------------
    @property
    def mass_fractions(self) -> np.ndarray:
        return self.network.a * self.abundances

    def set_mass_fractions(self, mass_fractions: Dict[str, float]):
        """Set abundances Y_i = X_i / A_i from a name -> X mapping."""
        y = np.zeros(self.network.n_nuclides)
        for name, x in mass_fractions.items():
            try:
                i = self.network.index(name)
            except ConfigurationError:
                if x > 0.0:
                    raise
                continue
            y[i] = x / self.network.a[i]
        self.abundances = y
        self.abundance_changes = np.zeros_like(y)

    def electron_fraction(self) -> float:
        return float(np.sum(self.network.z * self.abundances))

    def snapshot_composition(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.abundances.copy(), self.abundance_changes.copy()

    def restore_composition(self, saved: Tuple[np.ndarray, np.ndarray]):
        abundances, changes = saved
        self.abundances = abundances.copy()
        self.abundance_changes = changes.copy()

    def mass_fractions_dict(self) -> Dict[str, float]:
        return dict(zip(self.network.names, self.mass_fractions.tolist()))


__all__ = [
    "Zone",
    "ZoneFunctions",
    "PROPERTY_NAMES",
    "TIME", "DTIME", "T9", "RHO", "ENTROPY", "PARTICLE", "X0", "X1", "EXPANSION_RATE",
]
