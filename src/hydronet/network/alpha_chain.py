"""
Alpha-Chain Nuclear Reaction Network

Solves the abundance equations

    dY_i/dt = sum_r S_ir (f_r - b_r)

for the 13-isotope alpha chain, where f_r and b_r are the forward and
reverse fluxes of reaction r and S is the stoichiometry matrix. Abundances
Y_i are mole fractions per nucleon, so mass fractions are X_i = A_i Y_i.

The network is stiff at the temperatures of interest (photodisintegration
rates reach 1e10 1/s at T9 ~ 10), so `evolve` uses a fully implicit
backward Euler step with Newton iteration, sub-cycling by halving the step
when the iteration fails.

A `NetView` selects a subset of nuclides and reactions. The zone keeps an
"evolution view" that `limit_evolution_network` restricts to the nuclides
with significant abundance plus their one-reaction neighbours.

Reference:
    - Timmes (1999), ApJS 124, 241
    - Hix & Meyer (2006), Nucl. Phys. A 777, 188
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from hydronet.core.errors import ConfigurationError, NetworkError
from hydronet.network.nuclides import NUCLIDES, NUCLIDES_BY_NAME, Nuclide
from hydronet.network.rates import (
    alpha_capture_rate,
    alpha_capture_reverse,
    triple_alpha_rate,
    triple_alpha_reverse,
)

if TYPE_CHECKING:
    from hydronet.zone import Zone

logger = logging.getLogger(__name__)

# Newton iteration for the implicit step
NEWTON_MAX_ITER = 20
NEWTON_RTOL = 1e-8
NEWTON_ATOL = 1e-20
MAX_SUBCYCLE_DEPTH = 24

# Negative abundances below this magnitude are clipped; larger ones reject the step
NEGATIVE_TOL = 1e-10


# =============================================================================
# REACTIONS AND VIEWS
# =============================================================================
@dataclass(frozen=True)
class Reaction:
    """
    A reaction with a rate-coefficient function for each direction.

    `forward(t9)` returns N_A^(n-1) <sigma v> for the n reactants and
    `reverse(t9)` the photodisintegration rate (1/s) of the single product.
    """
    reactants: Tuple[str, ...]
    products: Tuple[str, ...]
    forward: Callable[[float], float] = field(compare=False)
    reverse: Callable[[float], float] = field(compare=False)

    @property
    def string(self) -> str:
        return " + ".join(self.reactants) + " -> " + " + ".join(self.products)

    @property
    def nuclides(self) -> Tuple[str, ...]:
        return self.reactants + self.products

    def __str__(self) -> str:
        return self.string


def normalize_reaction_string(text: str) -> str:
    """Canonical spacing for a reaction string such as 'c12+he4->o16'."""
    left, sep, right = text.lower().partition("->")
    if not sep:
        raise ConfigurationError(f"Reaction must contain '->': {text!r}")

    def side(s):
        return " + ".join(part.strip() for part in s.split("+") if part.strip())

    return f"{side(left)} -> {side(right)}"


@dataclass(frozen=True, eq=False)
class NetView:
    """A subset of the network's nuclides and reactions."""
    nuclide_mask: np.ndarray
    reaction_mask: np.ndarray

    @property
    def n_nuclides(self) -> int:
        return int(np.count_nonzero(self.nuclide_mask))

    @property
    def n_reactions(self) -> int:
        return int(np.count_nonzero(self.reaction_mask))

    def same_as(self, other: "NetView") -> bool:
        return (np.array_equal(self.nuclide_mask, other.nuclide_mask)
                and np.array_equal(self.reaction_mask, other.reaction_mask))


# =============================================================================
# NETWORK
# =============================================================================
class Network:
    """
    Nuclides, reactions and the implicit abundance solver.

    Methods:
        view(): build a NetView from nuclide names and reaction strings
        fluxes(), dydt(), jacobian(): rates at fixed (T9, rho, Y)
        evolve(): advance the zone's abundances over a timestep
        update_timestep(): abundance-change regulated timestep
        limit_evolution_network(): restrict the zone's evolution view
    """

    def __init__(self, nuclides: Sequence[Nuclide], reactions: Sequence[Reaction]):
        self.nuclides = tuple(nuclides)
        self._index = {nuc.name: i for i, nuc in enumerate(self.nuclides)}

        for reaction in reactions:
            missing = [name for name in reaction.nuclides if name not in self._index]
            if missing:
                raise ConfigurationError(
                    f"Reaction {reaction} uses nuclides not in the network: {missing}"
                )
        self.reactions = tuple(reactions)

        self.a = np.array([nuc.a for nuc in self.nuclides], dtype=np.float64)
        self.z = np.array([nuc.z for nuc in self.nuclides], dtype=np.float64)

        n_nuc, n_reac = len(self.nuclides), len(self.reactions)
        self.stoichiometry = np.zeros((n_nuc, n_reac))
        self._reactant_terms: List[Tuple[Tuple[int, int], ...]] = []
        self._product_index: List[int] = []
        self._symmetry: List[float] = []

        for r, reaction in enumerate(self.reactions):
            counts = {}
            for name in reaction.reactants:
                counts[self._index[name]] = counts.get(self._index[name], 0) + 1
            for i, nu in counts.items():
                self.stoichiometry[i, r] -= nu
            for name in reaction.products:
                self.stoichiometry[self._index[name], r] += 1
            self._reactant_terms.append(tuple(counts.items()))
            self._product_index.append(self._index[reaction.products[0]])
            self._symmetry.append(float(np.prod([math.factorial(nu) for nu in counts.values()])))

        self._reaction_nuclide_mask = self.stoichiometry != 0
        self._reaction_lookup = {reaction.string: r for r, reaction in enumerate(self.reactions)}

    def __len__(self) -> int:
        return len(self.nuclides)

    @property
    def n_nuclides(self) -> int:
        return len(self.nuclides)

    @property
    def n_reactions(self) -> int:
        return len(self.reactions)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(nuc.name for nuc in self.nuclides)

    def index(self, name: str) -> int:
        try:
            return self._index[name.lower()]
        except KeyError:
            raise ConfigurationError(f"Nuclide {name!r} is not in the network") from None

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------
    def full_view(self) -> NetView:
        return NetView(
            nuclide_mask=np.ones(self.n_nuclides, dtype=bool),
            reaction_mask=np.ones(self.n_reactions, dtype=bool),
        )

    def view(self, nuclides: Optional[Iterable[str]] = None,
             reactions: Optional[Iterable[str]] = None) -> NetView:
        """
        Select nuclides by name and reactions by reaction string.

        Nuclides default to all. Reactions default to every reaction among
        the selected nuclides; an explicit reaction list is further limited
        to reactions whose nuclides are all selected.
        """
        nuclides = list(nuclides) if nuclides is not None else []
        reactions = list(reactions) if reactions is not None else []

        nuclide_mask = np.zeros(self.n_nuclides, dtype=bool)
        if not nuclides:
            nuclide_mask[:] = True
        else:
            for name in nuclides:
                nuclide_mask[self.index(name)] = True

        if not reactions:
            reaction_mask = np.ones(self.n_reactions, dtype=bool)
        else:
            reaction_mask = np.zeros(self.n_reactions, dtype=bool)
            for text in reactions:
                key = normalize_reaction_string(text)
                if key not in self._reaction_lookup:
                    raise ConfigurationError(f"Reaction {text!r} is not in the network")
                reaction_mask[self._reaction_lookup[key]] = True

        return NetView(nuclide_mask, reaction_mask & self._reactions_within(nuclide_mask))

    def _reactions_within(self, nuclide_mask: np.ndarray) -> np.ndarray:
        outside = self._reaction_nuclide_mask & ~nuclide_mask[:, None]
        return ~outside.any(axis=0)

    def subset(self, nuclides: Optional[Iterable[str]] = None,
               reactions: Optional[Iterable[str]] = None) -> "Network":
        """A new network holding only the selected nuclides and reactions."""
        selected = self.view(nuclides, reactions)
        return Network(
            [nuc for nuc, keep in zip(self.nuclides, selected.nuclide_mask) if keep],
            [reac for reac, keep in zip(self.reactions, selected.reaction_mask) if keep],
        )

    def isolated_species(self) -> List[str]:
        """Nuclides that take part in no reaction."""
        involved = self._reaction_nuclide_mask.any(axis=1)
        return [nuc.name for nuc, used in zip(self.nuclides, involved) if not used]

    def remove_species(self, names: Iterable[str]) -> "Network":
        drop = {name.lower() for name in names}
        return Network(
            [nuc for nuc in self.nuclides if nuc.name not in drop],
            [reac for reac in self.reactions if not drop.intersection(reac.nuclides)],
        )

    # -------------------------------------------------------------------------
    # Rates
    # -------------------------------------------------------------------------
    def rate_coefficients(self, t9: float) -> Tuple[np.ndarray, np.ndarray]:
        """Forward N_A^(n-1)<sigma v> and reverse (1/s) rate coefficients."""
        forward = np.array([reac.forward(t9) for reac in self.reactions])
        reverse = np.array([reac.reverse(t9) for reac in self.reactions])
        return forward, reverse

    def fluxes(self, t9: float, rho: float, y: np.ndarray,
               view: Optional[NetView] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Forward and reverse fluxes (1/s per nucleon) of each reaction.

        Reactions outside the view have zero flux.
        """
        forward, reverse = self.rate_coefficients(t9)
        f = np.zeros(self.n_reactions)
        b = np.zeros(self.n_reactions)
        mask = view.reaction_mask if view is not None else np.ones(self.n_reactions, dtype=bool)

        for r in np.flatnonzero(mask):
            terms = self._reactant_terms[r]
            order = sum(nu for _, nu in terms)
            product = 1.0
            for i, nu in terms:
                product *= y[i]**nu
            f[r] = forward[r] * rho**(order - 1) * product / self._symmetry[r]
            b[r] = reverse[r] * y[self._product_index[r]]
        return f, b

    def dydt(self, t9: float, rho: float, y: np.ndarray,
             view: Optional[NetView] = None) -> np.ndarray:
        f, b = self.fluxes(t9, rho, y, view)
        return self.stoichiometry @ (f - b)

    def jacobian(self, t9: float, rho: float, y: np.ndarray,
                 view: Optional[NetView] = None) -> np.ndarray:
        """d(dY_i/dt)/dY_j."""
        forward, reverse = self.rate_coefficients(t9)
        dflux = np.zeros((self.n_reactions, self.n_nuclides))
        mask = view.reaction_mask if view is not None else np.ones(self.n_reactions, dtype=bool)

        for r in np.flatnonzero(mask):
            terms = self._reactant_terms[r]
            order = sum(nu for _, nu in terms)
            coefficient = forward[r] * rho**(order - 1) / self._symmetry[r]
            for i, nu in terms:
                partial = nu * y[i]**(nu - 1)
                for k, nu_k in terms:
                    if k != i:
                        partial *= y[k]**nu_k
                dflux[r, i] += coefficient * partial
            dflux[r, self._product_index[r]] -= reverse[r]

        return self.stoichiometry @ dflux

    # -------------------------------------------------------------------------
    # Evolution
    # -------------------------------------------------------------------------
    def evolve(self, zone: "Zone", view: NetView, dt: float) -> None:
        """
        Advance the zone's abundances over dt at the zone's T9 and rho.

        Updates `zone.abundances` and sets `zone.abundance_changes` to the
        change over this step. A non-positive dt leaves the zone untouched.

        Raises:
            NetworkError: the implicit solve failed at the smallest substep.
        """
        if dt <= 0.0:
            return

        y_old = zone.abundances.copy()
        y_new = self._implicit_solve(zone.t9, zone.rho, y_old, dt, view, depth=0)

        negative = y_new < 0.0
        if negative.any():
            clipped = float(np.sum(self.a[negative] * -y_new[negative]))
            y_new[negative] = 0.0
            if clipped > 1e-12:
                warnings.warn(f"Clipped negative abundances (mass {clipped:.2e}); renormalizing.")
                y_new /= np.sum(self.a * y_new)

        zone.abundances = y_new
        zone.abundance_changes = y_new - y_old

    def _implicit_solve(self, t9, rho, y0, dt, view, depth):
        y = self._newton_step(t9, rho, y0, dt, view)
        if y is not None:
            return y

        if depth >= MAX_SUBCYCLE_DEPTH:
            raise NetworkError(
                f"Network solve failed to converge (T9 = {t9:.4e}, rho = {rho:.4e}, dt = {dt:.4e})"
            )
        logger.debug("Subcycling network step: depth %d, dt = %.4e", depth + 1, 0.5 * dt)
        y_half = self._implicit_solve(t9, rho, y0, 0.5 * dt, view, depth + 1)
        return self._implicit_solve(t9, rho, y_half, 0.5 * dt, view, depth + 1)

    def _newton_step(self, t9, rho, y0, dt, view) -> Optional[np.ndarray]:
        """Backward Euler: solve Y - Y0 - dt f(Y) = 0. Returns None on failure."""
        active = view.nuclide_mask
        if not active.any():
            return y0.copy()

        y = y0.copy()
        identity = np.eye(int(np.count_nonzero(active)))
        block = np.ix_(active, active)

        for _ in range(NEWTON_MAX_ITER):
            rhs = self.dydt(t9, rho, y, view)[active]
            jac = self.jacobian(t9, rho, y, view)[block]
            residual = y[active] - y0[active] - dt * rhs
            try:
                delta = np.linalg.solve(identity - dt * jac, -residual)
            except np.linalg.LinAlgError:
                return None

            y[active] += delta
            if not np.all(np.isfinite(y)):
                return None
            if np.all(np.abs(delta) <= NEWTON_RTOL * np.abs(y[active]) + NEWTON_ATOL):
                break
        else:
            return None

        if np.any(y < -NEGATIVE_TOL):
            return None
        return y

    # -------------------------------------------------------------------------
    # Timestep and network limiting
    # -------------------------------------------------------------------------
    def update_timestep(self, zone: "Zone", dt: float, reg_t: float, reg_y: float,
                        y_min: float, view: Optional[NetView] = None) -> float:
        """
        Next timestep from the last abundance changes.

        The step may grow by at most a factor (1 + reg_t). Each nuclide with
        abundance above y_min that changed limits the step so its relative
        change stays near reg_y.
        """
        view = view if view is not None else zone.evolution_view
        dt_new = (1.0 + reg_t) * dt

        y = zone.abundances
        dy = np.abs(zone.abundance_changes)
        mask = view.nuclide_mask & (y > y_min) & (dy > 0.0)
        if mask.any():
            dt_new = min(dt_new, reg_y * dt * float(np.min(y[mask] / dy[mask])))
        return dt_new

    def limit_evolution_network(self, zone: "Zone", cutoff: float) -> NetView:
        """
        Restrict the zone's evolution view to nuclides with Y > cutoff and
        the nuclides one reaction away from them.
        """
        keep = zone.abundances > cutoff
        grown = keep.copy()
        for r, reaction in enumerate(self.reactions):
            reactant_idx = [self._index[name] for name in reaction.reactants]
            product_idx = [self._index[name] for name in reaction.products]
            if keep[reactant_idx].all():
                grown[product_idx] = True
            if keep[product_idx].all():
                grown[reactant_idx] = True

        view = NetView(grown, self._reactions_within(grown))
        if not view.same_as(zone.evolution_view):
            logger.debug("Evolution network: %d nuclides, %d reactions",
                         view.n_nuclides, view.n_reactions)
        zone.evolution_view = view
        return view


# =============================================================================
# BUILDERS
# =============================================================================
def alpha_chain_network() -> Network:
    """The 13-isotope alpha chain with triple-alpha and (alpha,gamma) links."""
    reactions = [
        Reaction(("he4", "he4", "he4"), ("c12",), triple_alpha_rate, triple_alpha_reverse),
    ]
    chain = [nuc for nuc in NUCLIDES if nuc.name != "he4"]
    for target, product in zip(chain[:-1], chain[1:]):
        reactions.append(
            Reaction(
                (target.name, "he4"),
                (product.name,),
                lambda t9, target=target: alpha_capture_rate(t9, target),
                lambda t9, target=target, product=product: alpha_capture_reverse(t9, target, product),
            )
        )
    return Network(NUCLIDES, reactions)


def evolve_function(zone: "Zone", view: NetView, dt: float) -> None:
    """Evolution slot: advance the zone's composition in its own network."""
    zone.network.evolve(zone, view, dt)


__all__ = [
    "Reaction",
    "NetView",
    "Network",
    "alpha_chain_network",
    "evolve_function",
    "normalize_reaction_string",
    "NUCLIDES_BY_NAME",
]
