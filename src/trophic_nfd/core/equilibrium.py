"""Equilibrium solver.

Linear communities are solved directly from A @ N* = mu. General growth models
are solved with scipy's fsolve (Powell hybrid, a Newton-type method) from an
initial guess, with a bounded number of function evaluations.
"""
from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from scipy.optimize import fsolve

from trophic_nfd.core.errors import (
    EquilibriumError,
    EquilibriumNotFound,
    EquilibriumUndefined,
)
from trophic_nfd.core.growth import GrowthModel

logger = logging.getLogger(__name__)

# Systems with a condition number above 1/eps are treated as singular.
_MAX_CONDITION = 1.0 / np.finfo(np.float64).eps


def solve_equilibrium(
    mu: np.ndarray | Sequence[float],
    A: np.ndarray | Sequence,
    max_condition: float = _MAX_CONDITION,
) -> np.ndarray:
    """Solve A @ N* = mu for the Lotka-Volterra equilibrium.

    The result is returned as-is, including negative components; use
    is_feasible to check it.

    Raises:
        ValueError: If the shapes of mu and A do not match.
        EquilibriumUndefined: If A is singular or numerically singular, or the
            inputs or the solution are not finite.
    """
    mu = np.asarray(mu, dtype=np.float64)
    A = np.asarray(A, dtype=np.float64)
    if A.ndim != 2 or A.shape[0] != A.shape[1] or mu.shape != (A.shape[0],):
        raise ValueError(
            f"Growth rates {mu.shape} and interaction matrix {A.shape} are incompatible"
        )
    if A.shape[0] == 0:
        return np.zeros(0)
    if not (np.all(np.isfinite(A)) and np.all(np.isfinite(mu))):
        raise EquilibriumUndefined("Growth rates or interaction matrix are not finite")

    cond = np.linalg.cond(A)
    if not np.isfinite(cond) or cond > max_condition:
        raise EquilibriumUndefined(f"Interaction matrix is singular (condition number {cond:.3g})")

    try:
        N_star = np.linalg.solve(A, mu)
    except np.linalg.LinAlgError as e:
        raise EquilibriumUndefined(f"Linear equilibrium solve failed: {e}") from e

    if not np.all(np.isfinite(N_star)):
        raise EquilibriumUndefined("Equilibrium has non-finite components")
    return N_star


def find_equilibrium(
    model: GrowthModel,
    N0: np.ndarray | None = None,
    xtol: float = 1e-10,
    max_iter: int = 2000,
) -> np.ndarray:
    """Find a zero of a general per-capita growth model.

    Args:
        model: growth model f(N).
        N0: initial guess (default: ones).
        xtol: relative tolerance between iterates.
        max_iter: maximum number of function evaluations.

    Raises:
        EquilibriumNotFound: If the iteration does not converge or the residual
            at the returned point is not small.
    """
    n = model.n_species
    if n == 0:
        return np.zeros(0)
    if N0 is None:
        N0 = np.ones(n)
    N0 = np.asarray(N0, dtype=np.float64)

    N_star, info, ier, msg = fsolve(
        model, N0, fprime=model.jacobian, full_output=True, xtol=xtol, maxfev=max_iter,
    )
    if ier != 1:
        raise EquilibriumNotFound(f"Equilibrium iteration did not converge: {msg}")

    residual = float(np.max(np.abs(model(N_star))))
    if not np.isfinite(residual) or residual > np.sqrt(xtol):
        raise EquilibriumNotFound(f"Equilibrium residual too large: {residual:.3g}")
    return N_star


def model_equilibrium(
    model: GrowthModel,
    N0: np.ndarray | None = None,
    xtol: float = 1e-10,
    max_iter: int = 2000,
) -> np.ndarray:
    """Equilibrium of a growth model, linear solve when the model allows it."""
    if model.is_linear:
        return solve_equilibrium(model.mu, model.A)
    return find_equilibrium(model, N0=N0, xtol=xtol, max_iter=max_iter)


def is_feasible(N: np.ndarray, tol: float = 0.0) -> bool:
    """True if every component of N is at least -tol."""
    N = np.asarray(N, dtype=np.float64)
    return bool(np.all(np.isfinite(N)) and np.all(N >= -tol))


def resident_equilibria(
    model: GrowthModel,
    N0: np.ndarray | None = None,
    xtol: float = 1e-10,
    max_iter: int = 2000,
) -> np.ndarray:
    """Equilibria of the community with each species removed in turn.

    Returns:
        (n, n) array whose row i is N^{-i,*}: the equilibrium of all species
        except i, with a zero in column i.
    """
    n = model.n_species
    residents = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        idx = np.array([j for j in range(n) if j != i], dtype=int)
        if len(idx) == 0:
            continue
        guess = None if N0 is None else np.asarray(N0, dtype=np.float64)[idx]
        residents[i, idx] = model_equilibrium(
            model.restrict(idx), N0=guess, xtol=xtol, max_iter=max_iter,
        )
    return residents


def monoculture_equilibria(
    model: GrowthModel,
    xtol: float = 1e-10,
    max_iter: int = 2000,
) -> np.ndarray:
    """Single-species equilibrium density of every species.

    Species without a monoculture equilibrium get NaN; these values only seed
    the conversion-factor search.
    """
    mono = np.full(model.n_species, np.nan)
    for i in range(model.n_species):
        try:
            mono[i] = model_equilibrium(model.restrict([i]), xtol=xtol, max_iter=max_iter)[0]
        except EquilibriumError as e:
            logger.debug(f"No monoculture equilibrium for species {i}: {e}")
    return mono


def community_jacobian(model: GrowthModel, N: np.ndarray) -> np.ndarray:
    """Jacobian of dN/dt = N * f(N) at an equilibrium N, i.e. diag(N) @ df/dN."""
    N = np.asarray(N, dtype=np.float64)
    return np.diag(N) @ model.jacobian(N)


def is_stable(model: GrowthModel, N: np.ndarray) -> bool:
    """Local stability of equilibrium N: all eigenvalue real parts negative."""
    if model.n_species == 0:
        return True
    eigs = np.linalg.eigvals(community_jacobian(model, N))
    return bool(np.all(np.real(eigs) < 0))
