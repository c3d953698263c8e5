"""
Right-hand side of the coupled trajectory/network system.

Evaluating dx/dt at a trial (x, t) requires the temperature and the
reaction fluxes at that point, which in turn requires evolving the
composition from the zone's committed time to t. Every evaluation is a
probe: the composition and temperature are restored before returning, so
only the driver's commit step advances the zone.
"""

from typing import Optional

import numpy as np

from hydronet.core.errors import NumericalError
from hydronet.core.parameters import RunParameters
from hydronet.network.alpha_chain import NetView
from hydronet.zone import DTIME, Zone


class EntropyGenerationRHS:
    """
    dx/dt = (x1, acceleration, entropy generation rate) at (x, t).

    Args:
        zone: The zone, holding the committed state at `zone.time`
        params: Run parameters passed to the trajectory functions
        view: Network view for the temperature and entropy generation.
            None uses the zone's current evolution view at each call.
    """

    def __init__(self, zone: Zone, params: RunParameters, view: Optional[NetView] = None):
        self.zone = zone
        self.params = params
        self.view = view
        self.n_calls = 0

    def __call__(self, x: np.ndarray, t: float) -> np.ndarray:
        zone = self.zone
        functions = zone.functions
        view = self.view if self.view is not None else zone.evolution_view

        saved_composition = zone.snapshot_composition()
        saved_t9 = zone.t9
        self.n_calls += 1

        try:
            dt = t - zone.time
            zone[DTIME] = dt
            zone.entropy = x[2]
            zone.rho = functions.density(self.params, x)
            zone.t9 = functions.temperature(self.params, zone, view)

            functions.evolution(zone, view, dt)

            dxdt = np.empty(3)
            dxdt[0] = x[1]
            dxdt[1] = functions.acceleration(self.params, zone, x, t)
            dxdt[2] = functions.entropy_generation(zone, view)

            if not np.all(np.isfinite(dxdt)):
                raise NumericalError(
                    f"Non-finite derivative at t = {t:.6e}: dxdt = {dxdt.tolist()}"
                )

            if functions.observer is not None:
                functions.observer(zone, x, dxdt, t)
        finally:
            zone.restore_composition(saved_composition)
            zone.t9 = saved_t9

        return dxdt
