"""
Tests for the alpha-chain reaction network (network/alpha_chain.py, rates.py)

Tests validate:
1. Network construction and reaction strings
2. Views selected by nuclide names and reaction strings
3. Mass conservation and the analytic Jacobian
4. Implicit evolution, timestep update and the network limiter
5. Isolated-species removal

Run with: pytest tests/test_network.py -v
"""

import numpy as np
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hydronet.core.errors import ConfigurationError
from hydronet.hydro.driver import default_functions
from hydronet.network.alpha_chain import (
    Network,
    alpha_chain_network,
    normalize_reaction_string,
)
from hydronet.network.rates import (
    alpha_capture_rate,
    alpha_capture_reverse,
    q_value,
    triple_alpha_rate,
    triple_alpha_reverse,
)
from hydronet.network.nuclides import NUCLIDES_BY_NAME
from hydronet.zone import Zone


def make_zone(network, t9, rho, mass_fractions):
    zone = Zone(network, default_functions())
    zone.t9 = t9
    zone.rho = rho
    zone.set_mass_fractions(mass_fractions)
    return zone


@pytest.fixture(scope="module")
def network():
    return alpha_chain_network()


class TestRates:
    """Test forward and reverse rate functions."""

    def test_zero_temperature(self):
        c12, o16 = NUCLIDES_BY_NAME["c12"], NUCLIDES_BY_NAME["o16"]
        assert triple_alpha_rate(0.0) == 0.0
        assert triple_alpha_reverse(0.0) == 0.0
        assert alpha_capture_rate(0.0, c12) == 0.0
        assert alpha_capture_reverse(0.0, c12, o16) == 0.0

    def test_rates_increase_with_temperature(self):
        c12 = NUCLIDES_BY_NAME["c12"]
        assert triple_alpha_rate(2.0) > triple_alpha_rate(0.5)
        assert alpha_capture_rate(3.0, c12) > 1e3 * alpha_capture_rate(0.5, c12)

    def test_q_values_positive_along_chain(self):
        """Every alpha capture in the chain is exothermic."""
        assert q_value(("he4", "he4", "he4"), ("c12",)) == pytest.approx(7.27476, rel=1e-4)
        assert q_value(("c12", "he4"), ("o16",)) == pytest.approx(7.16192, rel=1e-4)
        assert q_value(("fe52", "he4"), ("ni56",)) > 0.0

    def test_photodisintegration_suppressed_when_cold(self):
        c12, o16 = NUCLIDES_BY_NAME["c12"], NUCLIDES_BY_NAME["o16"]
        forward = alpha_capture_rate(0.5, c12)
        reverse = alpha_capture_reverse(0.5, c12, o16)
        assert reverse < 1e-30 * forward


class TestConstruction:
    """Test the network layout."""

    def test_sizes(self, network):
        assert network.n_nuclides == 13
        assert network.n_reactions == 12
        assert network.names[0] == "he4"
        assert network.names[-1] == "ni56"

    def test_reaction_strings(self, network):
        strings = [reaction.string for reaction in network.reactions]
        assert strings[0] == "he4 + he4 + he4 -> c12"
        assert "c12 + he4 -> o16" in strings
        assert "fe52 + he4 -> ni56" in strings

    def test_normalize_reaction_string(self):
        assert normalize_reaction_string("C12+he4->  o16") == "c12 + he4 -> o16"
        with pytest.raises(ConfigurationError):
            normalize_reaction_string("c12 + he4")

    def test_stoichiometry_conserves_nucleons(self, network):
        np.testing.assert_allclose(network.a @ network.stoichiometry, 0.0, atol=1e-12)

    def test_stoichiometry_conserves_charge(self, network):
        np.testing.assert_allclose(network.z @ network.stoichiometry, 0.0, atol=1e-12)

    def test_unknown_nuclide_index(self, network):
        with pytest.raises(ConfigurationError):
            network.index("u238")


class TestViews:
    """Test nuclide and reaction selection."""

    def test_full_view(self, network):
        view = network.view()
        assert view.n_nuclides == 13
        assert view.n_reactions == 12

    def test_nuclide_selection_limits_reactions(self, network):
        view = network.view(nuclides=["he4", "c12", "o16"])
        assert view.n_nuclides == 3
        # 3 he4 -> c12 and c12 + he4 -> o16
        assert view.n_reactions == 2

    def test_reaction_selection(self, network):
        view = network.view(reactions=["c12 + he4 -> o16"])
        assert view.n_nuclides == 13
        assert view.n_reactions == 1
        assert view.reaction_mask[1]

    def test_unknown_reaction(self, network):
        with pytest.raises(ConfigurationError, match="not in the network"):
            network.view(reactions=["c12 + c12 -> mg24"])

    def test_view_without_reactions(self, network):
        view = network.view(nuclides=["ni56"])
        assert view.n_reactions == 0

    def test_fluxes_zero_outside_view(self, network):
        y = network.full_view().nuclide_mask / network.a / 13.0
        view = network.view(reactions=["c12 + he4 -> o16"])
        f, b = network.fluxes(5.0, 1e7, y, view)
        assert f[1] > 0.0 and b[1] > 0.0
        assert np.all(f[~view.reaction_mask] == 0.0)
        assert np.all(b[~view.reaction_mask] == 0.0)


class TestRatesOfChange:
    """Test dY/dt and its Jacobian."""

    def test_mass_conserved(self, network):
        rng = np.random.default_rng(3)
        y = rng.uniform(0.0, 1.0, network.n_nuclides)
        y /= np.sum(network.a * y)
        dydt = network.dydt(4.0, 1e7, y)
        assert np.sum(network.a * dydt) == pytest.approx(0.0, abs=1e-10 * np.max(np.abs(dydt)))

    def test_jacobian_matches_finite_differences(self, network):
        rng = np.random.default_rng(7)
        y = rng.uniform(0.01, 1.0, network.n_nuclides)
        y /= np.sum(network.a * y)
        t9, rho = 3.0, 1e7

        jac = network.jacobian(t9, rho, y)
        numeric = np.zeros_like(jac)
        for j in range(network.n_nuclides):
            h = 1e-6 * y[j]
            y_plus, y_minus = y.copy(), y.copy()
            y_plus[j] += h
            y_minus[j] -= h
            numeric[:, j] = (network.dydt(t9, rho, y_plus) - network.dydt(t9, rho, y_minus)) / (2 * h)

        scale = np.max(np.abs(jac))
        np.testing.assert_allclose(jac, numeric, rtol=1e-5, atol=1e-6 * scale)

    def test_pure_helium_makes_carbon(self, network):
        y = np.zeros(network.n_nuclides)
        y[0] = 0.25
        dydt = network.dydt(2.0, 1e8, y)
        assert dydt[0] < 0.0
        assert dydt[1] > 0.0
        assert dydt[0] == pytest.approx(-3.0 * dydt[1])


class TestEvolve:
    """Test the implicit abundance evolution."""

    def test_mass_conserved(self, network):
        zone = make_zone(network, 2.0, 1e6, {"he4": 0.6, "c12": 0.2, "o16": 0.2})
        network.evolve(zone, network.full_view(), 1e-3)
        assert np.sum(zone.mass_fractions) == pytest.approx(1.0, abs=1e-10)
        assert np.all(zone.abundances >= 0.0)

    def test_abundance_changes_recorded(self, network):
        zone = make_zone(network, 2.0, 1e6, {"he4": 1.0})
        y_old = zone.abundances.copy()
        network.evolve(zone, network.full_view(), 1e-3)
        np.testing.assert_allclose(zone.abundance_changes, zone.abundances - y_old)
        assert zone.abundances[1] > 0.0

    def test_nonpositive_step_leaves_zone(self, network):
        zone = make_zone(network, 3.0, 1e8, {"he4": 1.0})
        before = zone.abundances.copy()
        network.evolve(zone, network.full_view(), 0.0)
        network.evolve(zone, network.full_view(), -1.0)
        np.testing.assert_array_equal(zone.abundances, before)
        np.testing.assert_array_equal(zone.abundance_changes, 0.0)

    def test_stiff_step_hot(self, network):
        """Photodisintegration at T9 = 10 is stiff; a step much longer than its timescale is stable."""
        zone = make_zone(network, 10.0, 1e8, {"he4": 1.0})
        network.evolve(zone, network.full_view(), 1e-6)
        assert np.all(np.isfinite(zone.abundances))
        assert np.sum(zone.mass_fractions) == pytest.approx(1.0, abs=1e-8)

    def test_only_view_nuclides_change(self, network):
        zone = make_zone(network, 2.0, 1e6, {"he4": 0.5, "o16": 0.5})
        view = network.view(nuclides=["he4", "c12"])
        network.evolve(zone, view, 1e-3)
        outside = ~view.nuclide_mask
        np.testing.assert_array_equal(zone.abundance_changes[outside], 0.0)

    def test_evolve_function_slot(self, network):
        zone = make_zone(network, 2.0, 1e6, {"he4": 1.0})
        zone.functions.evolution(zone, network.full_view(), 1e-3)
        assert zone.abundances[1] > 0.0


class TestTimestepUpdate:
    """Test the abundance-regulated timestep."""

    def test_growth_capped_without_changes(self, network):
        zone = make_zone(network, 3.0, 1e8, {"he4": 1.0})
        assert network.update_timestep(zone, 1.0, 0.15, 0.15, 1e-10) == pytest.approx(1.15)

    def test_large_change_shrinks_step(self, network):
        zone = make_zone(network, 3.0, 1e8, {"he4": 1.0})
        # A 5% change allows 3x growth, so the (1 + reg_t) cap still applies
        zone.abundance_changes[0] = -0.05 * zone.abundances[0]
        dt = network.update_timestep(zone, 1.0, 0.15, 0.15, 1e-10)
        assert dt == pytest.approx(1.15)

        zone.abundance_changes[0] = -0.2 * zone.abundances[0]
        dt = network.update_timestep(zone, 1.0, 0.15, 0.15, 1e-10)
        assert dt == pytest.approx(0.15 / 0.2)

        zone.abundance_changes[0] = -0.5 * zone.abundances[0]
        dt = network.update_timestep(zone, 1.0, 0.15, 0.15, 1e-10)
        assert dt == pytest.approx(0.3)

    def test_trace_species_ignored(self, network):
        zone = make_zone(network, 3.0, 1e8, {"he4": 1.0})
        zone.abundances[1] = 1e-20
        zone.abundance_changes[1] = 1e-20
        assert network.update_timestep(zone, 1.0, 0.15, 0.15, 1e-10) == pytest.approx(1.15)


class TestLimiter:
    """Test the evolution-network limiter."""

    def test_pure_helium(self, network):
        zone = make_zone(network, 3.0, 1e8, {"he4": 1.0})
        view = network.limit_evolution_network(zone, 1e-25)
        assert list(np.array(network.names)[view.nuclide_mask]) == ["he4", "c12"]
        assert view.n_reactions == 1
        assert zone.evolution_view is view

    def test_grows_with_composition(self, network):
        zone = make_zone(network, 3.0, 1e8, {"he4": 0.5, "c12": 0.5})
        view = network.limit_evolution_network(zone, 1e-25)
        names = set(np.array(network.names)[view.nuclide_mask])
        assert names == {"he4", "c12", "o16"}

    def test_cutoff_excludes_trace(self, network):
        zone = make_zone(network, 3.0, 1e8, {"he4": 1.0})
        zone.abundances[5] = 1e-30
        view = network.limit_evolution_network(zone, 1e-25)
        assert not view.nuclide_mask[5]


class TestIsolatedSpecies:
    """Test detection and removal of species without reactions."""

    def test_alpha_chain_has_none(self, network):
        assert network.isolated_species() == []

    def test_subset_isolates_endpoint(self, network):
        sub = network.subset(nuclides=["he4", "c12", "o16", "ni56"])
        assert sub.isolated_species() == ["ni56"]
        trimmed = sub.remove_species(sub.isolated_species())
        assert trimmed.names == ("he4", "c12", "o16")
        assert trimmed.n_reactions == 2

    def test_reaction_with_unknown_nuclide(self, network):
        with pytest.raises(ConfigurationError):
            Network(network.nuclides[:2], network.reactions[:2])
