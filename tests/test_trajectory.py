"""
Tests for the expansion trajectory functions (hydro/trajectory.py)

Tests validate:
1. Initial state and the density slot
2. Acceleration consistent with the closed-form density history
3. Temperature recovered from the entropy per nucleon
4. Observer output

Run with: pytest tests/test_trajectory.py -v
"""

import math

import numpy as np
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hydronet.core.parameters import RunParameters
from hydronet.hydro.driver import build_zone
from hydronet.hydro.trajectory import (
    acceleration,
    density_function,
    density_history,
    expansion_rate,
    initialize_state,
    observer_function,
    t9_function,
)


def scale_factor(params, t):
    return (params.rho_0 / density_history(params, t))**(1.0 / 3.0)


class TestInitialState:
    """Test the initial state vector."""

    def test_default_state(self):
        x = initialize_state(RunParameters())
        assert x[0] == 1.0
        # x1 = (rho_1/tau + 2 rho_2/delta) / (3 rho_0) = 1.1e9 / 3e8
        assert x[1] == pytest.approx(11.0 / 3.0)
        assert x[2] == 0.0

    def test_initial_rate_matches_density_derivative(self):
        params = RunParameters(tau=0.3, delta=0.05, rho_1=6e7)
        h = 1e-7
        numeric = (scale_factor(params, h) - scale_factor(params, -h)) / (2 * h)
        assert initialize_state(params)[1] == pytest.approx(numeric, rel=1e-6)


class TestDensity:
    """Test the density history and the density slot."""

    def test_history_starts_at_rho_0(self):
        params = RunParameters()
        assert density_history(params, 0.0) == pytest.approx(params.rho_0)

    def test_history_decreasing(self):
        params = RunParameters()
        rho = [density_history(params, t) for t in np.linspace(0.0, 10.0, 50)]
        assert np.all(np.diff(rho) < 0.0)

    def test_density_slot(self):
        params = RunParameters()
        assert density_function(params, np.array([1.0, 0.0, 0.0])) == params.rho_0
        assert density_function(params, np.array([2.0, 0.0, 0.0])) == pytest.approx(params.rho_0 / 8.0)

    def test_density_slot_inverts_scale_factor(self):
        params = RunParameters()
        t = 0.37
        x = np.array([scale_factor(params, t), 0.0, 0.0])
        assert density_function(params, x) == pytest.approx(density_history(params, t), rel=1e-12)


class TestAcceleration:
    """Test the scale-factor acceleration."""

    @pytest.mark.parametrize("t", [0.0, 0.05, 0.5, 3.0])
    def test_matches_finite_differences(self, t):
        params = RunParameters()
        h = 1e-4 * max(t, 0.1)
        x_minus, x_mid, x_plus = (scale_factor(params, s) for s in (t - h, t, t + h))
        x = np.array([x_mid, (x_plus - x_minus) / (2 * h), 0.0])
        numeric = (x_plus - 2.0 * x_mid + x_minus) / h**2
        assert acceleration(params, None, x, t) == pytest.approx(numeric, rel=1e-5)

    def test_pure_exponential_expansion(self):
        """rho_2 -> 0 gives x0 = exp(t / (3 tau)) with x0'' = x0 / (9 tau^2)."""
        params = RunParameters(rho_0=1e8, rho_1=1e8 * (1 - 1e-12))
        t = 0.2
        x0 = math.exp(t / (3 * params.tau))
        x = np.array([x0, x0 / (3 * params.tau), 0.0])
        assert acceleration(params, None, x, t) == pytest.approx(x0 / (9 * params.tau**2), rel=1e-8)

    def test_expansion_rate(self):
        params = RunParameters(tau=0.2)
        assert expansion_rate(params, np.array([1.0, 1.2, 0.0])) == pytest.approx(2.0)


class TestTemperatureFunction:
    """Test T9 from the entropy per nucleon."""

    def test_recovers_temperature(self):
        params = RunParameters(root_factor=1.05)
        zone = build_zone(params)
        zone.rho = 1e7
        zone.t9 = 7.0
        zone.entropy = zone.functions.entropy(zone)

        zone.t9 = 5.0
        t9 = t9_function(params, zone, zone.evolution_view)
        assert t9 == pytest.approx(7.0, rel=1e-9)
        assert zone.t9 == 5.0

    def test_guess_above_root(self):
        params = RunParameters(root_factor=1.05)
        zone = build_zone(params)
        zone.rho = 1e8
        zone.t9 = 2.0
        zone.entropy = zone.functions.entropy(zone)

        zone.t9 = 3.0
        assert t9_function(params, zone, zone.evolution_view) == pytest.approx(2.0, rel=1e-9)

    def test_independent_of_view(self):
        params = RunParameters(root_factor=1.05, mass_fractions={"he4": 0.6, "c12": 0.3, "o16": 0.1})
        zone = build_zone(params)
        zone.rho = 1e8
        zone.t9 = 3.0
        zone.entropy = zone.functions.entropy(zone)
        zone.t9 = 2.5

        restricted = zone.network.view(["he4", "c12"], ["he4 + he4 + he4 -> c12"])
        assert (t9_function(params, zone, restricted)
                == t9_function(params, zone, zone.evolution_view))


class TestObserver:
    """Test the observer slot output."""

    def test_prints_state(self, capsys):
        zone = build_zone(RunParameters())
        zone.time = 1.0
        observer_function(zone, np.array([1.0, 2.0, 3.0]), np.array([2.0, 0.5, 0.0]), 1.5)
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "t = 1.50000e+00 dt = 5.00000e-01"
        assert lines[1] == "x = {1.00000e+00, 2.00000e+00, 3.00000e+00}"
        assert lines[2] == "dxdt = {2.00000e+00, 5.00000e-01, 0.00000e+00}"
