"""
Thermonuclear rates for the alpha-chain network.

Forward rates:
    3 He4 -> C12            Caughlan & Fowler (1988) resonant terms
    X + He4 -> Y            schematic non-resonant charged-particle form

        N_A<sigma v> = C_X * T9^(-2/3) * exp(-tau),
        tau = 4.2487 * (Z_X^2 Z_a^2 mu / T9)^(1/3)

Reverse (photodisintegration) rates follow from detailed balance, so that
forward and reverse fluxes balance exactly at equilibrium.

Reference:
    - Caughlan & Fowler (1988), Atomic Data Nuc. Data Tables 40, 283
    - Clayton (1968), Principles of Stellar Evolution, ch. 4
"""

import math

from hydronet.core.constants import KT9_MEV, SAHA_PREFACTOR
from hydronet.network.nuclides import NUCLIDES_BY_NAME, Nuclide

# Q/kT = Q_OVER_KT9 * Q[MeV] / T9
Q_OVER_KT9 = 1.0 / KT9_MEV

# Rate prefactors C_X (cm^3/mol/s) for X(alpha,gamma)
ALPHA_CAPTURE_PREFACTORS = {
    "c12":  1.0e9,
    "o16":  1.0e10,
    "ne20": 1.0e12,
    "mg24": 1.0e13,
    "si28": 1.0e15,
    "s32":  1.0e16,
    "ar36": 1.0e17,
    "ca40": 1.0e18,
    "ti44": 1.0e19,
    "cr48": 1.0e20,
    "fe52": 1.0e21,
}


def q_value(reactants, products) -> float:
    """Q-value in MeV from mass excesses."""
    return (sum(NUCLIDES_BY_NAME[r].mass_excess for r in reactants)
            - sum(NUCLIDES_BY_NAME[p].mass_excess for p in products))


def triple_alpha_rate(t9: float) -> float:
    """N_A^2 <sigma v> for 3 He4 -> C12 (cm^6/mol^2/s)."""
    if t9 <= 0.0:
        return 0.0
    t9_32 = t9**1.5
    return (2.79e-8 / t9**3 * math.exp(-4.4027 / t9)
            + 1.35e-8 / t9_32 * math.exp(-24.811 / t9))


def triple_alpha_reverse(t9: float) -> float:
    """Photodisintegration rate C12 -> 3 He4 (1/s)."""
    if t9 <= 0.0:
        return 0.0
    return 2.00e20 * t9**3 * math.exp(-84.424 / t9) * triple_alpha_rate(t9)


def alpha_capture_rate(t9: float, target: Nuclide) -> float:
    """N_A <sigma v> for target(alpha,gamma) (cm^3/mol/s)."""
    if t9 <= 0.0:
        return 0.0
    alpha = NUCLIDES_BY_NAME["he4"]
    mu = target.a * alpha.a / (target.a + alpha.a)
    tau = 4.2487 * (target.z**2 * alpha.z**2 * mu / t9)**(1.0 / 3.0)
    return ALPHA_CAPTURE_PREFACTORS[target.name] * t9**(-2.0 / 3.0) * math.exp(-tau)


def alpha_capture_reverse(t9: float, target: Nuclide, product: Nuclide) -> float:
    """
    Photodisintegration rate product(gamma,alpha)target (1/s) from detailed balance.

        lambda = 9.8685e9 T9^(3/2) (A_X A_a / A_Y)^(3/2) (g_X g_a / g_Y)
                 N_A<sigma v> exp(-Q/kT)
    """
    if t9 <= 0.0:
        return 0.0
    alpha = NUCLIDES_BY_NAME["he4"]
    q = q_value((target.name, alpha.name), (product.name,))
    mass_factor = (target.a * alpha.a / product.a)**1.5
    spin_factor = target.g * alpha.g / product.g
    return (SAHA_PREFACTOR * t9**1.5 * mass_factor * spin_factor
            * alpha_capture_rate(t9, target) * math.exp(-Q_OVER_KT9 * q / t9))
