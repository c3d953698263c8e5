from hydronet.eos.entropy import (
    PARTICLES,
    electron_degeneracy,
    entropy_components,
    entropy_generation_rate,
    entropy_per_nucleon,
    fermi_dirac,
)

__all__ = [
    "PARTICLES",
    "electron_degeneracy",
    "entropy_components",
    "entropy_generation_rate",
    "entropy_per_nucleon",
    "fermi_dirac",
]
