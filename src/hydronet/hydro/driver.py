"""
Coupled Trajectory and Network Driver

Integrates the state (x0, x1, entropy) of an expanding fluid element with
the fourth-order Adams-Bashforth method while the composition burns in the
reaction network. Each step:

    1. Probe: the integrator evaluates dx/dt, which evolves the composition
       to each trial time and restores it afterwards. A step whose error
       estimate is too large is undone and retried with a smaller dt
    2. Commit: time, density and entropy from the new state; T9 from the
       entropy root; composition evolved over the step; x0, x1 recorded
    3. Output: every `steps`-th step (and the final one) is dumped
    4. Limit the evolution network to the significant nuclides
    5. Next timestep from the state change and its error estimate, the
       network and the end time

Usage:
    params = validate_and_store({"tend": 1.0})
    result = HydroNetworkDriver(params, output_path="out.xml").run()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from hydronet.core.errors import ConfigurationError, NumericalError
from hydronet.core.parameters import RunParameters, StepControl
from hydronet.eos.entropy import entropy_generation_rate, entropy_per_nucleon
from hydronet.hydro.rhs import EntropyGenerationRHS
from hydronet.hydro.stepper import AdamsBashforth4
from hydronet.hydro.timestep import error_norm, next_timestep
from hydronet.hydro.trajectory import (
    acceleration,
    density_function,
    expansion_rate,
    initialize_state,
    observer_function,
    t9_function,
)
from hydronet.io.snapshots import SnapshotWriter, ZoneSnapshot
from hydronet.network.alpha_chain import Network, alpha_chain_network, evolve_function
from hydronet.zone import DTIME, EXPANSION_RATE, X0, X1, Zone, ZoneFunctions

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Final state and outputs of a run."""
    time: float
    steps: int
    state: np.ndarray
    zone: Zone
    snapshots: List[ZoneSnapshot]
    history: pd.DataFrame
    rhs_calls: int
    rejected_steps: int = 0
    rk4_steps: int = 0


def default_functions(observe: bool = False) -> ZoneFunctions:
    return ZoneFunctions(
        acceleration=acceleration,
        density=density_function,
        temperature=t9_function,
        entropy=entropy_per_nucleon,
        entropy_generation=entropy_generation_rate,
        evolution=evolve_function,
        observer=observer_function if observe else None,
    )


def build_zone(params: RunParameters, network: Optional[Network] = None,
               functions: Optional[ZoneFunctions] = None) -> Zone:
    """
    Zone with the initial composition, burning in `network` (default: the
    alpha chain) with isolated species removed.

    Raises:
        ConfigurationError: an isolated species has non-zero initial abundance.
    """
    network = network if network is not None else alpha_chain_network()

    isolated = network.isolated_species()
    if isolated:
        seeded = [name for name in isolated if params.mass_fractions.get(name, 0.0) > 0.0]
        if seeded:
            raise ConfigurationError(
                f"Isolated species with non-zero initial abundance: {', '.join(seeded)}"
            )
        logger.info("Removing isolated species: %s", ", ".join(isolated))
        network = network.remove_species(isolated)

    zone = Zone(network, functions if functions is not None else default_functions(params.observe))
    zone.set_mass_fractions(params.mass_fractions)
    return zone


class HydroNetworkDriver:
    """
    Runs one trajectory from `params.time` to `params.tend`.

    Args:
        params: Validated run parameters
        network: Reaction network (default: alpha chain)
        control: Timestep regulators (default: StepControl())
        output_path: Zone-data XML file for the dumps (None: keep in memory)
        functions: Zone function slots (default: the trajectory and EOS functions)
        max_steps: Abort with NumericalError after this many steps (None: no limit)
        verbose: Print progress at each dump and a summary
    """

    def __init__(self, params: RunParameters, network: Optional[Network] = None,
                 control: Optional[StepControl] = None,
                 output_path: Union[str, Path, None] = None,
                 functions: Optional[ZoneFunctions] = None,
                 max_steps: Optional[int] = None,
                 verbose: bool = True):
        self.params = params
        self.control = control if control is not None else StepControl()
        self.zone = build_zone(params, network, functions)
        self.writer = SnapshotWriter(output_path, write_every_dump=params.output_every_dump)
        self.stepper = AdamsBashforth4(non_decreasing=(2,))
        self.max_steps = max_steps
        self.verbose = verbose

        self.sdot_view = None
        if params.restricted_view:
            self.sdot_view = self.zone.network.view(params.sdot_nuclides or None,
                                                    params.sdot_reactions or None)

        self._history: List[dict] = []
        self.rejected_steps = 0

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------
    def initialize(self) -> np.ndarray:
        """Set the initial zone properties and return the initial state."""
        params, zone = self.params, self.zone

        zone.t9 = params.t9_0
        zone.rho = params.rho_0
        zone.particle = "total"
        zone.time = params.time
        zone[DTIME] = params.dtime

        x = initialize_state(params)
        x[2] = zone.functions.entropy(zone)
        zone.entropy = x[2]
        zone[X0] = x[0]
        zone[X1] = x[1]
        zone[EXPANSION_RATE] = expansion_rate(params, x)

        zone.network.limit_evolution_network(zone, self.control.lim_cutoff)
        self.stepper.reset()
        return x

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------
    def run(self) -> RunResult:
        params, zone, functions = self.params, self.zone, self.zone.functions

        x = self.initialize()
        t = params.time
        dt = min(params.dtime, params.tend - t)
        t9_old = zone.t9
        dt9dt = 0.0
        i_step = 0

        rhs = EntropyGenerationRHS(zone, params, self.sdot_view)

        if self.verbose:
            print(f"\nStarting trajectory (T9_0 = {params.t9_0:.3f}, rho_0 = {params.rho_0:.3e} g/cm^3, "
                  f"t_end = {params.tend:.3e} s)")
            print(f"  Initial entropy: {x[2]:.4f} k_B/nucleon")
            print("-" * 60)

        while t < params.tend:
            if self.max_steps is not None and i_step >= self.max_steps:
                raise NumericalError(f"Exceeded {self.max_steps} steps at t = {t:.6e}")
            if not dt > 0.0:
                raise NumericalError(f"Timestep collapsed to {dt!r} at t = {t:.6e}")

            zone.time = t
            x_old = x.copy()

            dt = self._advance(rhs, x, t, dt)

            # Commit
            t = params.tend if dt >= params.tend - t else t + dt
            zone.time = t
            zone[DTIME] = dt
            zone.rho = functions.density(params, x)
            zone.entropy = x[2]

            if params.t9_guess and t9_old + dt9dt * dt > 0.0:
                zone.t9 = t9_old + dt9dt * dt
            zone.t9 = functions.temperature(params, zone, zone.evolution_view)
            if params.t9_guess:
                dt9dt = (zone.t9 - t9_old) / dt
                t9_old = zone.t9

            functions.evolution(zone, zone.evolution_view, dt)

            zone[X0] = x[0]
            zone[X1] = x[1]
            zone[EXPANSION_RATE] = expansion_rate(params, x)

            if params.observe:
                print(f"t = {t:g}, x = {{{x[0]:g}, {x[1]:g}, {x[2]:g}}}\n")
                print("-----------\n")

            self._record(i_step, x, x_old, dt)

            if i_step % params.steps == 0 or t >= params.tend:
                self.writer.dump(zone)
                if self.verbose:
                    print(f"Step {i_step:6d}: t = {t:.4e} s, dt = {dt:.4e} s, "
                          f"T9 = {zone.t9:.4f}, rho = {zone.rho:.4e}, s = {x[2]:.4f}")
            i_step += 1

            zone.network.limit_evolution_network(zone, self.control.lim_cutoff)
            dt_next = next_timestep(x_old, x, dt, t, params.tend, zone, self.control,
                                    dxdt=self.stepper.derivative, error=self.stepper.error)
            # Hold the step while the derivative history refills
            dt = min(dt_next, dt) if self.stepper.bootstrapping else dt_next

        self.writer.write()
        history = pd.DataFrame(self._history)

        if self.verbose:
            print("\n" + "=" * 60)
            print("Trajectory Complete")
            print(f"  Final time: {t:.4e} s")
            print(f"  Total steps: {i_step}")
            print(f"  Rejected steps: {self.rejected_steps}")
            print(f"  Final T9: {zone.t9:.4f}, rho: {zone.rho:.4e} g/cm^3")
            print(f"  Output dumps: {len(self.writer.snapshots)}")
            print("=" * 60)

        return RunResult(
            time=t,
            steps=i_step,
            state=x.copy(),
            zone=zone,
            snapshots=list(self.writer.snapshots),
            history=history,
            rhs_calls=rhs.n_calls,
            rejected_steps=self.rejected_steps,
            rk4_steps=self.stepper.n_rk4_steps,
        )

    def _advance(self, rhs: EntropyGenerationRHS, x: np.ndarray, t: float, dt: float) -> float:
        """
        Advance x in place from t by the first accepted step, starting at dt.

        A step with a non-finite state or an error estimate above tolerance
        is undone; the derivative history is dropped and the step reduced.
        The RHS evaluations leave the zone at its committed state, so only
        x needs restoring. Returns the accepted step.
        """
        control = self.control
        x_start = x.copy()

        for _ in range(control.max_reject):
            self.stepper.do_step(rhs, x, t, dt)

            error = self.stepper.error
            norm = 0.0 if error is None else error_norm(x_start, x, error, control)
            if np.all(np.isfinite(x)) and norm <= 1.0:
                return dt

            logger.debug("Rejected step at t = %.6e, dt = %.6e: error norm %.3g", t, dt, norm)
            self.rejected_steps += 1
            x[:] = x_start
            self.stepper.reset()
            dt *= control.reject_factor

        raise NumericalError(
            f"{control.max_reject} rejected steps in a row at t = {t:.6e} (dt = {dt:.6e})"
        )

    def _record(self, step: int, x: np.ndarray, x_old: np.ndarray, dt: float):
        zone = self.zone
        row = {
            "step": step,
            "time": zone.time,
            "dtime": dt,
            "t9": zone.t9,
            "rho": zone.rho,
            "entropy": x[2],
            "x0": x[0],
            "x1": x[1],
            "dsdt_step": (x[2] - x_old[2]) / dt,
        }
        for name, mass_fraction in zone.mass_fractions_dict().items():
            row[f"X_{name}"] = mass_fraction
        self._history.append(row)


def run_trajectory(params: RunParameters, output_path: Union[str, Path, None] = None,
                   verbose: bool = True) -> RunResult:
    """Run the default alpha-chain trajectory for `params`."""
    return HydroNetworkDriver(params, output_path=output_path, verbose=verbose).run()
