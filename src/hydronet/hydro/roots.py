"""
One-dimensional root finding with a warm-started bracket.

The bracket [guess, guess] is widened multiplicatively (lo /= factor,
hi *= factor) until the function changes sign, then Brent's method
(scipy.optimize.brentq) converges on the root. A factor close to 1 keeps
the bracket tight around a good guess.
"""

import logging
from typing import Callable

from scipy.optimize import brentq

from hydronet.core.errors import HydroNetError, RootFindingError

logger = logging.getLogger(__name__)

MAX_BRACKET_EXPANSIONS = 20000
XTOL = 1e-14
RTOL = 1e-12


def compute_1d_root(func: Callable[[float], float], guess: float, factor: float,
                    max_expansions: int = MAX_BRACKET_EXPANSIONS) -> float:
    """
    Root of `func` near a positive `guess`.

    Raises:
        RootFindingError: no sign change within `max_expansions` widenings,
            or Brent's method failed to converge.
    """
    if not guess > 0.0:
        raise RootFindingError(f"Root guess must be positive, got {guess!r}")
    if not factor > 1.0:
        raise RootFindingError(f"Bracket factor must exceed 1, got {factor!r}")

    lo = hi = guess
    f_guess = f_lo = f_hi = func(guess)
    if f_guess == 0.0:
        return guess

    expansions = 0
    while f_lo * f_hi > 0.0:
        if expansions >= max_expansions:
            raise RootFindingError(
                f"Could not bracket root after {max_expansions} expansions "
                f"(interval [{lo:.6e}, {hi:.6e}])"
            )
        lo /= factor
        hi *= factor
        f_lo = func(lo)
        f_hi = func(hi)
        expansions += 1

    if expansions > 100:
        logger.debug("Root bracket needed %d expansions: [%.6e, %.6e]", expansions, lo, hi)

    # Narrow to the half of the bracket holding the sign change
    if f_lo * f_guess <= 0.0:
        hi = guess
    else:
        lo = guess

    try:
        root, info = brentq(func, lo, hi, xtol=XTOL, rtol=RTOL, full_output=True)
    except HydroNetError:
        raise
    except (ValueError, RuntimeError) as exc:
        raise RootFindingError(f"Brent's method failed on [{lo:.6e}, {hi:.6e}]: {exc}") from exc
    if not info.converged:
        raise RootFindingError(f"Brent's method did not converge: {info.flag}")
    return root
