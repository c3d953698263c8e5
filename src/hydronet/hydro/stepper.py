"""
Fourth-order Adams-Bashforth integrator.

    x_{n+1} = x_n + dt sum_k b_k f(x_{n-k}, t_{n-k}),   k = 0..3

The b_k integrate the Lagrange interpolant through the last four
derivatives over [t_n, t_n + dt]. They are recomputed for the actual step
history, so the method stays fourth order when the step size changes
between steps. For equal steps they reduce to (55, -59, 37, -9) / 24.

The third-order formula through the three newest derivatives gives an
embedded estimate of the step error at no extra cost.

The first three steps are taken with classical Runge-Kutta while the
derivative history fills. After that each step costs exactly one
right-hand-side evaluation.
"""

from collections import deque
from typing import Callable, Optional, Sequence

import numpy as np
from numpy.polynomial import Polynomial

RHS = Callable[[np.ndarray, float], np.ndarray]


def adams_bashforth_coefficients(nodes: Sequence[float]) -> np.ndarray:
    """
    Weights b_k = int_0^1 L_k(s) ds for interpolation nodes s_k given in
    units of the step, with s_0 = 0 the current time.
    """
    nodes = np.asarray(nodes, dtype=np.float64)
    weights = np.empty(len(nodes))
    for k, s_k in enumerate(nodes):
        others = np.delete(nodes, k)
        basis = Polynomial.fromroots(others) * (1.0 / np.prod(s_k - others))
        antiderivative = basis.integ()
        weights[k] = antiderivative(1.0) - antiderivative(0.0)
    return weights


def rk4_step(rhs: RHS, x: np.ndarray, t: float, dt: float, k1: np.ndarray) -> np.ndarray:
    """Classical Runge-Kutta increment given the first stage k1."""
    k2 = rhs(x + 0.5 * dt * k1, t + 0.5 * dt)
    k3 = rhs(x + 0.5 * dt * k2, t + 0.5 * dt)
    k4 = rhs(x + dt * k3, t + dt)
    return dt / 6.0 * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


def _weighted_sum(weights: np.ndarray, derivatives: Sequence[np.ndarray]) -> np.ndarray:
    total = np.zeros_like(derivatives[0])
    for b_k, f_k in zip(weights, derivatives):
        total += b_k * f_k
    return total


class AdamsBashforth4:
    """
    Multistep integrator with an explicit derivative history.

    Args:
        non_decreasing: Indices of components whose derivative is never
            negative. An Adams-Bashforth step that would decrease one of
            them is taken with Runge-Kutta instead; its stage weights are
            all positive, so these components cannot decrease.

    Attributes:
        error: Embedded error estimate of the last step (None after a
            Runge-Kutta step)
        n_steps: Steps attempted
        n_rk4_steps: Steps taken with Runge-Kutta (three extra evaluations each)

    Methods:
        do_step(rhs, x, t, dt): advance x in place from t to t + dt
        reset(): forget the history (the next steps bootstrap again)
    """
    order = 4

    def __init__(self, non_decreasing: Sequence[int] = ()):
        self.non_decreasing = tuple(non_decreasing)
        self._times = deque(maxlen=self.order)
        self._derivatives = deque(maxlen=self.order)
        self.error: Optional[np.ndarray] = None
        self.n_steps = 0
        self.n_rk4_steps = 0

    def reset(self):
        self._times.clear()
        self._derivatives.clear()
        self.error = None

    @property
    def bootstrapping(self) -> bool:
        return len(self._times) < self.order - 1

    @property
    def derivative(self) -> Optional[np.ndarray]:
        """dx/dt at the start of the last step."""
        return self._derivatives[-1] if self._derivatives else None

    def do_step(self, rhs: RHS, x: np.ndarray, t: float, dt: float) -> None:
        if dt <= 0.0:
            raise ValueError(f"Step size must be positive, got {dt!r}")

        bootstrapping = self.bootstrapping
        f = np.asarray(rhs(x, t), dtype=np.float64)
        self._times.append(t)
        self._derivatives.append(f.copy())
        self.n_steps += 1

        if not bootstrapping:
            nodes = [(t_k - t) / dt for t_k in reversed(self._times)]
            derivatives = list(reversed(self._derivatives))
            increment = dt * _weighted_sum(adams_bashforth_coefficients(nodes), derivatives)
            if all(increment[i] >= 0.0 for i in self.non_decreasing):
                lower = dt * _weighted_sum(adams_bashforth_coefficients(nodes[:-1]),
                                           derivatives[:-1])
                self.error = increment - lower
                x += increment
                return

        self.error = None
        self.n_rk4_steps += 1
        x += rk4_step(rhs, x.copy(), t, dt, f)
