"""Numerical niche and fitness differences for multi-species communities.

For every species i of a computable community the decomposition compares three
growth rates of i:

    eta_i   = f_i(0)                       intrinsic growth, no competitors
    r_i     = f_i(N^{-i,*})                invasion growth into the residents
    f_i^c   = f_i(sum_j c_ij N_j^{-i,*})   no-niche growth: the residents'
                                           densities, converted into i's own

and defines

    NO_i = (eta_i - r_i) / (eta_i - f_i^c)      ND_i = 1 - NO_i
    FD_i = f_i^c / eta_i

The conversion factors c_ij = 1 / c_ji express one individual of j in units of
individuals of i. They are fixed pairwise by requiring |NO_ij| = |NO_ji|, with
the remaining residents held at their equilibrium, and found by bracketing and
Brent's method. The bracket assumes |NO_ij(c)| - |NO_ji(1/c)| is monotone in c,
which holds for growth functions that decrease monotonically with the density
of species i.

For two Lotka-Volterra competitors this reduces to the textbook result
ND = 1 - sqrt(a_ij a_ji / (a_ii a_jj)), and FD = 0 for symmetric species.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from scipy.optimize import brentq

from trophic_nfd.core.computability import ComputableSubset, SubEquilibria
from trophic_nfd.core.errors import DecompositionUndefined
from trophic_nfd.core.growth import GrowthModel, LotkaVolterra
from trophic_nfd.utils.config import EngineConfig

logger = logging.getLogger(__name__)

_MAX_CONDITION = 1.0 / np.finfo(np.float64).eps


@dataclass
class NFDResult:
    """Niche and fitness differences of a computable community.

    Arrays are indexed within the decomposed community. Species listed in
    `errors` have NaN for every per-species quantity.
    """

    nd: np.ndarray
    fd: np.ndarray
    no: np.ndarray
    eta: np.ndarray
    invasion_growth: np.ndarray
    no_niche_growth: np.ndarray
    c: np.ndarray
    pairwise_no: np.ndarray
    pairwise_fd: np.ndarray
    resident_stable: np.ndarray
    errors: dict[int, DecompositionUndefined] = field(default_factory=dict)
    subset: np.ndarray | None = None

    @property
    def n_species(self) -> int:
        return len(self.nd)

    @property
    def defined(self) -> np.ndarray:
        """Boolean mask of species with a defined decomposition."""
        mask = np.ones(self.n_species, dtype=bool)
        mask[list(self.errors)] = False
        return mask

    @property
    def transformed_fitness(self) -> np.ndarray:
        """FD' = 1 - 1/(1 - FD); species i invades iff ND_i > FD'_i."""
        return transform_fitness(self.fd)

    def predicted_coexistence(self) -> np.ndarray:
        """ND > FD' per species (False where undefined)."""
        with np.errstate(invalid="ignore"):
            return self.nd > self.transformed_fitness


def transform_fitness(fd: np.ndarray | float) -> np.ndarray:
    """FD' = 1 - 1/(1 - FD), the ND threshold above which a species invades."""
    fd = np.asarray(fd, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return 1.0 - 1.0 / (1.0 - fd)


def _switch_niche(
    N: np.ndarray,
    i: int,
    others: Sequence[int] | np.ndarray,
    c: np.ndarray | float,
) -> np.ndarray:
    """Remove species `others` and give their c-weighted density to species i."""
    N = N.copy()
    others = np.asarray(others, dtype=int)
    with np.errstate(invalid="ignore"):
        N[i] = np.nansum(np.asarray(c, dtype=np.float64) * N[others])
    N[others] = 0.0
    return N


def _growth_pair(
    model: GrowthModel,
    N_res: np.ndarray,
    i: int,
    others: Sequence[int] | np.ndarray,
    c: np.ndarray | float,
) -> tuple[float, float]:
    """Growth of i with `others` removed, without and with niche conversion."""
    f0 = model.safe(_switch_niche(N_res, i, others, 0.0))[i]
    fc = model.safe(_switch_niche(N_res, i, others, c))[i]
    return float(f0), float(fc)


def niche_overlap(
    model: GrowthModel,
    N_res: np.ndarray,
    r_i: float,
    i: int,
    others: Sequence[int] | np.ndarray,
    c: np.ndarray | float,
) -> float:
    """NO of species i with respect to `others` for conversion factors c."""
    f0, fc = _growth_pair(model, N_res, i, others, c)
    with np.errstate(invalid="ignore"):
        if f0 == r_i:
            return 0.0
        if f0 == fc:
            return float(np.sign(f0 - r_i) * np.inf)
        return (f0 - r_i) / (f0 - fc)


def fitness_difference(
    model: GrowthModel,
    N_res: np.ndarray,
    i: int,
    others: Sequence[int] | np.ndarray,
    c: np.ndarray | float,
) -> float:
    """FD of species i: no-niche growth relative to growth without `others`."""
    f0, fc = _growth_pair(model, N_res, i, others, c)
    with np.errstate(divide="ignore", invalid="ignore"):
        return fc / f0 if f0 != 0 else np.nan


def solve_conversion_factor(
    model: GrowthModel,
    residents: np.ndarray,
    invasion_growth: np.ndarray,
    i: int,
    j: int,
    guess: float = 1.0,
    config: EngineConfig | None = None,
) -> tuple[float, float]:
    """Conversion factors (c_ij, c_ji) equalising the pairwise niche overlaps.

    Raises:
        DecompositionUndefined: If the pairwise objective is not finite or not
            monotone over the bracket.
    """
    config = config or EngineConfig()

    def objective(c: float) -> float:
        with np.errstate(divide="ignore"):
            c_inv = np.divide(1.0, c)
        no_ij = abs(niche_overlap(model, residents[i], invasion_growth[i], i, [j], c))
        no_ji = abs(niche_overlap(model, residents[j], invasion_growth[j], j, [i], c_inv))
        return no_ij - no_ji

    a = float(guess)
    direction = np.sign(objective(a))
    if not np.isfinite(direction):
        raise DecompositionUndefined(
            f"Pairwise niche overlap of species {i} and {j} is not finite", species=i,
        )
    if direction == 0:
        return a, 1.0 / a

    # Overlap of i falls with c, so a positive objective means c must grow
    factor = 2.0 ** direction
    b = a * factor
    for _ in range(config.max_bracket_steps):
        value = objective(b)
        if np.isnan(value):
            raise DecompositionUndefined(
                f"Pairwise niche overlap of species {i} and {j} is not finite", species=i,
            )
        if np.sign(value) != direction:
            break
        a, b = b, b * factor
        if b == 0.0 or np.isinf(b):
            # The pair does not interact in one direction
            limit = 0.0 if b == 0.0 else np.inf
            with np.errstate(divide="ignore"):
                return limit, float(np.divide(1.0, limit))
    else:
        raise DecompositionUndefined(
            f"No bracket for conversion factor of species {i} and {j}", species=i,
        )

    lo, hi = min(a, b), max(a, b)
    try:
        c_ij = brentq(objective, lo, hi, xtol=config.c_xtol)
    except ValueError as e:
        raise DecompositionUndefined(
            f"Growth of species {i} and {j} is not monotone in density: {e}", species=i,
        ) from e
    return c_ij, 1.0 / c_ij


def _linearization(model: GrowthModel, N_res: np.ndarray, i: int) -> bool:
    """Check the resident linearisation of species i and return its stability.

    The per-capita Jacobian of the residents relates shifts in growth rates to
    shifts in resident equilibrium densities; when it is singular the resident
    equilibrium, and with it r_i, is not locally determined.
    """
    n = model.n_species
    residents = np.array([j for j in range(n) if j != i], dtype=int)
    if len(residents) == 0:
        return True
    J = model.jacobian(N_res)[np.ix_(residents, residents)]
    if not np.all(np.isfinite(J)):
        raise DecompositionUndefined(
            f"Resident Jacobian of species {i} is not finite", species=i,
        )
    cond = np.linalg.cond(J)
    if not np.isfinite(cond) or cond > _MAX_CONDITION:
        raise DecompositionUndefined(
            f"Resident Jacobian of species {i} is singular (condition number {cond:.3g})",
            species=i,
        )
    community = np.diag(N_res[residents]) @ J
    return bool(np.all(np.real(np.linalg.eigvals(community)) < 0))


def _initial_guess(monoculture: np.ndarray, i: int, j: int) -> float:
    """Monoculture density ratio, or 1 when it is not a positive number."""
    if monoculture is None:
        return 1.0
    ratio = monoculture[i] / monoculture[j] if monoculture[j] != 0 else np.nan
    if np.isfinite(ratio) and ratio > 0:
        return float(ratio)
    return 1.0


def decompose_model(
    model: GrowthModel,
    equilibria: SubEquilibria,
    config: EngineConfig | None = None,
) -> NFDResult:
    """Compute ND and FD for every species of a general growth model.

    Args:
        model: per-capita growth model of the computable community.
        equilibria: its sub-equilibria (from the computability filter or
            model_sub_equilibria).
        config: engine settings.

    Returns:
        NFDResult with per-species DecompositionUndefined collected in
        `errors` rather than raised.
    """
    config = config or EngineConfig()
    n = model.n_species
    residents = np.asarray(equilibria.residents, dtype=np.float64)
    if residents.shape != (n, n):
        raise ValueError(
            f"Resident equilibria of shape {residents.shape} do not match {n} species"
        )

    eta = model.intrinsic_growth()
    r = np.array([model.safe(residents[i])[i] for i in range(n)], dtype=np.float64)
    errors: dict[int, DecompositionUndefined] = {}

    stable = np.zeros(n, dtype=bool)
    for i in range(n):
        try:
            stable[i] = _linearization(model, residents[i], i)
        except DecompositionUndefined as e:
            errors[i] = e

    c = np.ones((n, n), dtype=np.float64)
    pairwise_no = np.full((n, n), np.nan)
    pairwise_fd = np.full((n, n), np.nan)
    for i in range(n):
        for j in range(i + 1, n):
            try:
                c_ij, c_ji = solve_conversion_factor(
                    model, residents, r, i, j,
                    guess=_initial_guess(equilibria.monoculture, i, j),
                    config=config,
                )
            except DecompositionUndefined as e:
                logger.debug(f"Conversion factor undefined for pair ({i}, {j}): {e}")
                errors.setdefault(i, e)
                errors.setdefault(j, DecompositionUndefined(str(e), species=j))
                c[i, j] = c[j, i] = np.nan
                continue
            c[i, j], c[j, i] = c_ij, c_ji
            pairwise_no[i, j] = niche_overlap(model, residents[i], r[i], i, [j], c_ij)
            pairwise_no[j, i] = niche_overlap(model, residents[j], r[j], j, [i], c_ji)
            pairwise_fd[i, j] = fitness_difference(model, residents[i], i, [j], c_ij)
            pairwise_fd[j, i] = fitness_difference(model, residents[j], j, [i], c_ji)

    no = np.full(n, np.nan)
    fd = np.full(n, np.nan)
    no_niche = np.full(n, np.nan)
    for i in range(n):
        if i in errors:
            continue
        others = np.array([j for j in range(n) if j != i], dtype=int)
        c_i = c[i, others]
        _, fc = _growth_pair(model, residents[i], i, others, c_i)
        if eta[i] == 0 or not np.isfinite(eta[i]):
            errors[i] = DecompositionUndefined(
                f"Species {i} has zero or non-finite intrinsic growth", species=i,
            )
            continue
        if np.all(c_i == 0):
            no_i = 0.0
        else:
            no_i = niche_overlap(model, residents[i], r[i], i, others, c_i)
        if not np.isfinite(no_i):
            errors[i] = DecompositionUndefined(
                f"No-niche growth of species {i} equals its intrinsic growth", species=i,
            )
            continue
        no[i] = no_i
        no_niche[i] = fc
        fd[i] = fc / eta[i]

    for i, e in sorted(errors.items()):
        logger.warning(f"Decomposition undefined for species {i}: {e}")

    undefined = list(errors)
    r_out = r.copy()
    r_out[undefined] = np.nan
    return NFDResult(
        nd=1.0 - no,
        fd=fd,
        no=no,
        eta=eta,
        invasion_growth=r_out,
        no_niche_growth=no_niche,
        c=c,
        pairwise_no=pairwise_no,
        pairwise_fd=pairwise_fd,
        resident_stable=stable,
        errors=errors,
    )


def decompose_nfd(
    A: np.ndarray | Sequence,
    mu: np.ndarray | Sequence[float],
    subset: ComputableSubset | np.ndarray | Sequence[int],
    sub_equilibria: SubEquilibria | None = None,
    config: EngineConfig | None = None,
) -> NFDResult:
    """Compute ND and FD for the Lotka-Volterra community on `subset`.

    Args:
        A: full interaction matrix.
        mu: full growth-rate vector.
        subset: ComputableSubset from the filter, or species indices.
        sub_equilibria: equilibria of the subset; taken from `subset` when it
            is a ComputableSubset.
        config: engine settings.
    """
    if isinstance(subset, ComputableSubset):
        if sub_equilibria is None:
            sub_equilibria = subset.equilibria
        idx = subset.indices
    else:
        idx = np.asarray(subset, dtype=int)
    if sub_equilibria is None:
        raise ValueError("Sub-equilibria are required when subset is an index array")

    A = np.asarray(A, dtype=np.float64)
    mu = np.asarray(mu, dtype=np.float64)
    A_sub = A[np.ix_(idx, idx)]
    model = LotkaVolterra(mu[idx], np.where(np.isfinite(A_sub), A_sub, 0.0))

    result = decompose_model(model, sub_equilibria, config=config)
    result.subset = idx
    return result
