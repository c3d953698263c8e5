from hydronet.hydro.driver import HydroNetworkDriver, RunResult, build_zone, run_trajectory
from hydronet.hydro.rhs import EntropyGenerationRHS
from hydronet.hydro.roots import compute_1d_root
from hydronet.hydro.stepper import AdamsBashforth4, adams_bashforth_coefficients
from hydronet.hydro.timestep import next_timestep

__all__ = [
    "HydroNetworkDriver",
    "RunResult",
    "build_zone",
    "run_trajectory",
    "EntropyGenerationRHS",
    "compute_1d_root",
    "AdamsBashforth4",
    "adams_bashforth_coefficients",
    "next_timestep",
]
