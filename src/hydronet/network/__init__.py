from hydronet.network.alpha_chain import (
    NetView,
    Network,
    Reaction,
    alpha_chain_network,
    evolve_function,
)
from hydronet.network.nuclides import NUCLIDE_NAMES, NUCLIDES, Nuclide

__all__ = [
    "NetView",
    "Network",
    "Reaction",
    "alpha_chain_network",
    "evolve_function",
    "NUCLIDE_NAMES",
    "NUCLIDES",
    "Nuclide",
]
