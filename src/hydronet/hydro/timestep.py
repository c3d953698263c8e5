"""
Adaptive timestep control.

The next step is the smallest of four bounds:

    hydrodynamic:  min_i x_reg_t * dt / |(x_i - x_old_i) / x_i|
                   over components with |x_i| above their floor
    predicted:     min_i x_reg_t * |x_i| / |dx_i/dt|
                   from the newest derivative, same components
    error:         safety * dt * norm^(-1/4), where norm is the embedded
                   error estimate in units of x_err_tol * |x_i|
    network:       the network's own abundance-change regulated step

clamped so the step does not pass the end time. A step whose error norm
exceeds one is rejected by the driver before it is committed.
"""

from typing import Optional

import numpy as np

from hydronet.core.parameters import StepControl
from hydronet.network.alpha_chain import NetView
from hydronet.zone import Zone

# Bound when no component constrains the step
UNBOUNDED_STEP = 1.0e99


def hydro_timestep(x_old: np.ndarray, x_new: np.ndarray, dt: float,
                   control: StepControl) -> float:
    """Step that keeps the relative change of each state component near x_reg_t."""
    dt_hydro = UNBOUNDED_STEP
    for old, new, floor in zip(x_old, x_new, control.x_floors):
        if abs(new) <= floor:
            continue
        change = abs((new - old) / new)
        if change > 0.0:
            dt_hydro = min(dt_hydro, control.x_reg_t * dt / change)
    return dt_hydro


def predicted_timestep(x: np.ndarray, dxdt: np.ndarray, control: StepControl) -> float:
    """Step over which dx/dt changes each component by at most x_reg_t of itself."""
    dt_pred = UNBOUNDED_STEP
    for value, rate, floor in zip(x, dxdt, control.x_floors):
        if abs(value) <= floor or rate == 0.0:
            continue
        dt_pred = min(dt_pred, control.x_reg_t * abs(value / rate))
    return dt_pred


def error_norm(x_old: np.ndarray, x_new: np.ndarray, error: np.ndarray,
               control: StepControl) -> float:
    """Largest |error_i| / (x_err_tol * max(|x_old_i|, |x_new_i|, floor_i))."""
    norm = 0.0
    for old, new, err, floor in zip(x_old, x_new, error, control.x_floors):
        scale = control.x_err_tol * max(abs(old), abs(new), floor)
        norm = max(norm, abs(err) / scale)
    return norm


def error_timestep(dt: float, norm: float, control: StepControl) -> float:
    """Step for which a fourth-order error estimate of `norm` would become safety."""
    if norm == 0.0:
        return UNBOUNDED_STEP
    return control.safety * dt * norm**-0.25


def next_timestep(x_old: np.ndarray, x_new: np.ndarray, dt: float, t: float, t_end: float,
                  zone: Zone, control: StepControl,
                  network_view: Optional[NetView] = None,
                  dxdt: Optional[np.ndarray] = None,
                  error: Optional[np.ndarray] = None) -> float:
    """
    Timestep for the step after one of size dt that ended at time t.

    Args:
        x_old, x_new: State before and after the committed step
        dt: The committed step
        t: Time after the committed step
        t_end: End time of the run
        zone: Zone holding the abundance changes of the committed step
        control: Regulators and floors
        network_view: View for the network bound (default: evolution view)
        dxdt: Newest derivative of the state, for the predicted bound
        error: Error estimate of the committed step, for the error bound
    """
    dt_net = zone.network.update_timestep(
        zone, dt, control.reg_t, control.reg_y, control.y_min_dt, view=network_view
    )
    dt_next = min(dt_net, hydro_timestep(x_old, x_new, dt, control))
    if dxdt is not None:
        dt_next = min(dt_next, predicted_timestep(x_new, dxdt, control))
    if error is not None:
        dt_next = min(dt_next, error_timestep(dt, error_norm(x_old, x_new, error, control), control))

    if t + dt_next > t_end:
        dt_next = t_end - t
    return dt_next
