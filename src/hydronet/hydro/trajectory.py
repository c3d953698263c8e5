"""
Expansion Trajectory Functions

The fluid element follows the density history

    rho(t) = rho_1 exp(-t/tau) + rho_2 (1 + t/delta)^-2

(an exponential expansion that turns over into a power-law free expansion
after the cutoff time delta) with rho = rho_0 / x0^3 for the scale factor
x0. The state vector is (x0, x1 = dx0/dt, x2 = entropy per nucleon).

Differentiating x0 = (rho_0 / rho)^(1/3) twice gives the acceleration

    d^2 x0 / dt^2 = x0^3 [4 x1 R1(t) - x0 R2(t)] / (3 rho_0),
    R1 = rho_1/tau e^(-t/tau) + 2 rho_2/delta (1 + t/delta)^-3     (= -drho/dt)
    R2 = rho_1/tau^2 e^(-t/tau) + 6 rho_2/delta^2 (1 + t/delta)^-4 (= d^2rho/dt^2)

The functions here fill the zone's function slots; each receives the run
parameters and/or the zone explicitly.
"""

import math

import numpy as np

from hydronet.core.parameters import RunParameters
from hydronet.hydro.roots import compute_1d_root


def density_history(params: RunParameters, t: float) -> float:
    """Closed-form density rho(t) of the trajectory (g/cm^3)."""
    return (params.rho_1 * math.exp(-t / params.tau)
            + params.rho_2 * (1.0 + t / params.delta)**-2)


def initialize_state(params: RunParameters) -> np.ndarray:
    """
    Initial state (x0, x1, x2).

    x0 = 1 and x1 follows from -drho/dt at t = 0. The entropy x2 is left at
    zero; the driver fills it once the zone's t9 and rho are set.
    """
    x = np.zeros(3)
    x[0] = 1.0
    x[1] = (x[0]**4 * (params.rho_1 / params.tau + 2.0 * params.rho_2 / params.delta)
            / (3.0 * params.rho_0))
    return x


def density_function(params: RunParameters, x: np.ndarray) -> float:
    """Density slot: rho = rho_0 / x0^3."""
    return params.rho_0 / x[0]**3


def acceleration(params: RunParameters, zone, x: np.ndarray, t: float) -> float:
    """Acceleration slot: d^2 x0 / dt^2 along the density history."""
    decay = math.exp(-t / params.tau)
    power = 1.0 + t / params.delta

    r1 = params.rho_1 / params.tau * decay + 2.0 * params.rho_2 / params.delta * power**-3
    r2 = params.rho_1 / params.tau**2 * decay + 6.0 * params.rho_2 / params.delta**2 * power**-4

    return x[0]**3 * (4.0 * x[1] * r1 - x[0] * r2) / (3.0 * params.rho_0)


def expansion_rate(params: RunParameters, x: np.ndarray) -> float:
    """Expansion rate x1 / (3 tau), recorded as a zone property."""
    return x[1] / (3.0 * params.tau)


def t9_function(params: RunParameters, zone, view) -> float:
    """
    Temperature slot: T9 at which the entropy of the zone's gas equals the
    zone's entropy per nucleon.

    The root search starts from the zone's current T9 and widens its bracket
    by `params.root_factor`. The zone itself is not modified.

    `view` is not used: the gas entropy counts every nucleus present, not
    only those in a network view, so T9 is the same for any view. The
    argument keeps the slot signature shared with custom temperature
    functions that do depend on it.
    """
    target = zone.entropy
    entropy = zone.functions.entropy

    def residual(t9):
        return entropy(zone, t9=t9) - target

    return compute_1d_root(residual, zone.t9, params.root_factor)


def observer_function(zone, x: np.ndarray, dxdt: np.ndarray, t: float) -> None:
    """Observer slot: print the probed state and its derivative."""
    print(f"t = {t:.5e} dt = {t - zone.time:.5e}")
    print(f"x = {{{x[0]:.5e}, {x[1]:.5e}, {x[2]:.5e}}}")
    print(f"dxdt = {{{dxdt[0]:.5e}, {dxdt[1]:.5e}, {dxdt[2]:.5e}}}\n")
