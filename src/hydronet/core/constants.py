"""
Physical constants for hydronet (CGS units).

Import via:
    from hydronet.core.constants import K_BOLTZMANN, N_AVOGADRO
"""

# Fundamental
C_LIGHT_CGS = 2.99792458e10      # cm/s
HBAR = 1.054571817e-27           # erg s
K_BOLTZMANN = 1.380649e-16       # erg/K
A_RAD = 7.565723e-15             # erg/cm^3/K^4
N_AVOGADRO = 6.02214076e23       # mol^-1

# Particles
M_ELECTRON = 9.1093837015e-28    # g
M_AMU = 1.66053906660e-24        # g

# Conversions
K_B_MEV = 8.617333262e-11        # MeV/K
KT9_MEV = K_B_MEV * 1.0e9        # kT in MeV at T9 = 1

# Saha prefactor for reverse rates: (m_u k T / 2 pi hbar^2)^(3/2) / N_A at T9 = 1
SAHA_PREFACTOR = 9.8685e9

__all__ = [
    'C_LIGHT_CGS', 'HBAR', 'K_BOLTZMANN', 'A_RAD', 'N_AVOGADRO',
    'M_ELECTRON', 'M_AMU',
    'K_B_MEV', 'KT9_MEV', 'SAHA_PREFACTOR',
]
