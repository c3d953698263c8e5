"""
Entropy per Nucleon for Hot Stellar Matter

The gas is a mixture of ideal Boltzmann ions, blackbody photons and an
arbitrarily relativistic, arbitrarily degenerate electron-positron gas:

    s = s_ion + s_gamma + s_e- + s_e+       (k_B per nucleon)

Ions (Sackur-Tetrode):
    s_ion = sum_i Y_i [5/2 + ln(g_i n_Q,i / n_i)],
    n_Q,i = (m_i k T / 2 pi hbar^2)^(3/2)

Photons:
    s_gamma = 4 a T^3 / (3 k n_b)

Pairs, from the generalized Fermi-Dirac integrals
    F_k(eta, beta) = int_0^inf x^k sqrt(1 + beta x / 2) / (exp(x - eta) + 1) dx
with beta = kT / m_e c^2 and eta the kinetic degeneracy parameter:
    n = K beta^(3/2) [F_1/2 + beta F_3/2]
    s = K beta^(3/2) [(F_3/2 + beta F_5/2) + 2/3 (F_3/2 + beta/2 F_5/2)
                      - eta (F_1/2 + beta F_3/2)] / n_b
    K = sqrt(2) / pi^2 (m_e c / hbar)^3

Positrons have eta+ = -eta - 2/beta and eta follows from charge neutrality
n- - n+ = Ye n_b. The integrals use fixed Gauss quadrature so the entropy is
a smooth function of (T, rho) for the temperature root find.

Reference:
    - Timmes & Arnett (1999), ApJS 125, 277
    - Cox & Giuli (1968), Principles of Stellar Structure, ch. 24
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import TYPE_CHECKING, Dict, Optional, Tuple

import numpy as np
from scipy.optimize import brentq
from scipy.special import expit, roots_genlaguerre, roots_laguerre

from hydronet.core.constants import (
    A_RAD,
    C_LIGHT_CGS,
    HBAR,
    K_BOLTZMANN,
    M_AMU,
    M_ELECTRON,
    N_AVOGADRO,
)
from hydronet.core.errors import PhysicsError, RootFindingError

if TYPE_CHECKING:
    from hydronet.network.alpha_chain import NetView
    from hydronet.zone import Zone

# Pair number-density prefactor (cm^-3)
PAIR_DENSITY_SCALE = math.sqrt(2.0) / math.pi**2 * (M_ELECTRON * C_LIGHT_CGS / HBAR)**3

N_LAGUERRE = 48
N_LEGENDRE = 64

# Above this degeneracy the integrals are split at x = eta
ETA_SPLIT = 3.0

PARTICLES = ("total", "ion", "photon", "electron", "positron")


@lru_cache(maxsize=None)
def _quadrature() -> Tuple[np.ndarray, ...]:
    """Nodes and weights: x^(1/2) e^-x Laguerre, e^-x Laguerre, Legendre on [0, 1]."""
    x_half, w_half = roots_genlaguerre(N_LAGUERRE, 0.5)
    x_tail, w_tail = roots_laguerre(N_LAGUERRE)
    v, w_leg = np.polynomial.legendre.leggauss(N_LEGENDRE)
    return x_half, w_half, x_tail, w_tail, 0.5 * (v + 1.0), 0.5 * w_leg


# =============================================================================
# FERMI-DIRAC INTEGRALS
# =============================================================================
def fermi_dirac(k: float, eta: float, beta: float) -> float:
    """Generalized Fermi-Dirac integral F_k(eta, beta) for k >= 1/2."""
    x_half, w_half, x_tail, w_tail, v, w_leg = _quadrature()

    if eta <= ETA_SPLIT:
        # x^k / (e^(x-eta) + 1) = e^eta x^(1/2) e^-x * x^(k-1/2) expit(x - eta)
        integrand = x_half**(k - 0.5) * np.sqrt(1.0 + 0.5 * beta * x_half) * expit(x_half - eta)
        return math.exp(eta) * float(np.dot(w_half, integrand))

    # [0, eta] with x = eta v^2, then the tail x = eta + u
    x = eta * v**2
    head = 2.0 * eta**(k + 1.0) * v**(2.0 * k + 1.0) * np.sqrt(1.0 + 0.5 * beta * x) * expit(eta - x)
    u = eta + x_tail
    tail = u**k * np.sqrt(1.0 + 0.5 * beta * u) * expit(x_tail)
    return float(np.dot(w_leg, head) + np.dot(w_tail, tail))


def _pair_integrals(eta: float, beta: float) -> Tuple[float, float, float]:
    return fermi_dirac(0.5, eta, beta), fermi_dirac(1.5, eta, beta), fermi_dirac(2.5, eta, beta)


def pair_number_density(eta: float, beta: float) -> float:
    """Number density (cm^-3) of one pair species with degeneracy eta."""
    f12, f32 = fermi_dirac(0.5, eta, beta), fermi_dirac(1.5, eta, beta)
    return PAIR_DENSITY_SCALE * beta**1.5 * (f12 + beta * f32)


def _pair_entropy_density(eta: float, beta: float) -> float:
    """Entropy density (k_B cm^-3) of one pair species."""
    f12, f32, f52 = _pair_integrals(eta, beta)
    energy = f32 + beta * f52
    pressure = (2.0 / 3.0) * (f32 + 0.5 * beta * f52)
    number = f12 + beta * f32
    return PAIR_DENSITY_SCALE * beta**1.5 * (energy + pressure - eta * number)


def electron_degeneracy(ye: float, rho: float, beta: float) -> float:
    """
    Electron kinetic degeneracy parameter from n- - n+ = Ye rho N_A.

    The bracket starts at eta = -1/beta, where n- = n+, and extends above
    the zero-temperature Fermi level until the net density is exceeded.
    """
    n_net = ye * rho * N_AVOGADRO
    eta_lo = -1.0 / beta

    def net_excess(eta):
        return (pair_number_density(eta, beta)
                - pair_number_density(-eta - 2.0 / beta, beta)
                - n_net)

    if n_net <= 0.0:
        return eta_lo

    x_fermi = HBAR * (3.0 * math.pi**2 * n_net)**(1.0 / 3.0) / (M_ELECTRON * C_LIGHT_CGS)
    eta_hi = max((math.sqrt(1.0 + x_fermi**2) - 1.0) / beta, 0.0) + 10.0
    for _ in range(60):
        if net_excess(eta_hi) > 0.0:
            break
        eta_hi += eta_hi - eta_lo
    else:
        raise RootFindingError(f"Could not bracket electron degeneracy (Ye rho = {ye * rho:.3e})")

    return brentq(net_excess, eta_lo, eta_hi, xtol=1e-12, rtol=1e-12)


# =============================================================================
# ENTROPY
# =============================================================================
def entropy_components(t9: float, rho: float, abundances: np.ndarray,
                       a: np.ndarray, z: np.ndarray,
                       g: Optional[np.ndarray] = None) -> Dict[str, float]:
    """
    Entropy per nucleon (k_B) of each gas component.

    Args:
        t9: Temperature (10^9 K)
        rho: Density (g/cm^3)
        abundances: Abundances Y_i (mol/g)
        a, z: Mass and charge numbers of each nuclide
        g: Ground-state degeneracies (default 1)
    """
    if not (t9 > 0.0 and np.isfinite(t9)):
        raise PhysicsError(f"Temperature must be positive, got t9 = {t9!r}")
    if not (rho > 0.0 and np.isfinite(rho)):
        raise PhysicsError(f"Density must be positive, got rho = {rho!r}")

    T = t9 * 1.0e9
    kT = K_BOLTZMANN * T
    n_b = rho * N_AVOGADRO
    g = np.ones_like(a) if g is None else g

    present = abundances > 0.0
    y = abundances[present]
    n_i = n_b * y
    n_q = (a[present] * M_AMU * kT / (2.0 * math.pi * HBAR**2))**1.5
    s_ion = float(np.sum(y * (2.5 + np.log(g[present] * n_q / n_i))))

    s_photon = 4.0 * A_RAD * T**3 / (3.0 * K_BOLTZMANN * n_b)

    beta = kT / (M_ELECTRON * C_LIGHT_CGS**2)
    ye = float(np.sum(z * abundances))
    eta = electron_degeneracy(ye, rho, beta)
    s_electron = _pair_entropy_density(eta, beta) / n_b
    s_positron = _pair_entropy_density(-eta - 2.0 / beta, beta) / n_b

    return {
        "ion": s_ion,
        "photon": s_photon,
        "electron": s_electron,
        "positron": s_positron,
        "total": s_ion + s_photon + s_electron + s_positron,
    }


def entropy_per_nucleon(zone: "Zone", *, t9: Optional[float] = None) -> float:
    """
    Entropy function slot: entropy per nucleon (k_B) of the zone's gas.

    Uses the zone's temperature unless `t9` is given, and returns the
    component named by `zone.particle`.
    """
    if zone.particle not in PARTICLES:
        raise PhysicsError(f"Unknown particle {zone.particle!r}; expected one of {PARTICLES}")
    network = zone.network
    components = entropy_components(
        zone.t9 if t9 is None else t9,
        zone.rho,
        zone.abundances,
        network.a,
        network.z,
        np.array([nuc.g for nuc in network.nuclides]),
    )
    return components[zone.particle]


def entropy_generation_rate(zone: "Zone", view: "NetView") -> float:
    """
    Entropy generation rate (k_B per nucleon per second) from the reactions
    in the view:

        ds/dt = sum_r (f_r - b_r) ln(f_r / b_r)

    Each term is non-negative and vanishes at equilibrium.
    """
    f, b = zone.network.fluxes(zone.t9, zone.rho, zone.abundances, view)
    tiny = np.finfo(float).tiny
    active = view.reaction_mask & ((f > 0.0) | (b > 0.0))
    f, b = f[active], b[active]
    return float(np.sum((f - b) * (np.log(np.maximum(f, tiny)) - np.log(np.maximum(b, tiny)))))


__all__ = [
    "PARTICLES",
    "fermi_dirac",
    "pair_number_density",
    "electron_degeneracy",
    "entropy_components",
    "entropy_per_nucleon",
    "entropy_generation_rate",
]
