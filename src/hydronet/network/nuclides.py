"""
Nuclide data for the 13-isotope alpha-chain network.

    He4, C12 -> O16 -> Ne20 -> Mg24 -> Si28 -> S32 -> Ar36 -> Ca40
         -> Ti44 -> Cr48 -> Fe52 -> Ni56

Mass excesses are from the AME2016 evaluation. All members are even-even
ground states, so the spin degeneracy g = 2J + 1 is 1 throughout.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Nuclide:
    """Properties of a nuclide."""
    name: str
    z: int
    a: int
    mass_excess: float   # MeV
    g: float = 1.0       # Ground-state spin degeneracy


NUCLIDES: Tuple[Nuclide, ...] = (
    Nuclide("he4",  2,  4,   2.42492),
    Nuclide("c12",  6,  12,  0.0),
    Nuclide("o16",  8,  16, -4.73700),
    Nuclide("ne20", 10, 20, -7.04193),
    Nuclide("mg24", 12, 24, -13.93357),
    Nuclide("si28", 14, 28, -21.49283),
    Nuclide("s32",  16, 32, -26.01598),
    Nuclide("ar36", 18, 36, -30.23154),
    Nuclide("ca40", 20, 40, -34.84609),
    Nuclide("ti44", 22, 44, -37.54849),
    Nuclide("cr48", 24, 48, -42.81915),
    Nuclide("fe52", 26, 52, -48.33164),
    Nuclide("ni56", 28, 56, -53.90358),
)

NUCLIDE_NAMES: Tuple[str, ...] = tuple(nuc.name for nuc in NUCLIDES)

NUCLIDES_BY_NAME: Dict[str, Nuclide] = {nuc.name: nuc for nuc in NUCLIDES}
