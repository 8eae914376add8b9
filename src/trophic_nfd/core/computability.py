"""Computability filter: the largest species subset with a defined NFD.

The decomposition needs, for every retained species i, a feasible equilibrium
of the community without i. Species are pruned in passes:

1. static validity (finite growth rate, positive finite self-limitation, at
   least one realised interaction in each direction);
2. the induced equilibrium of the remaining species must be feasible;
3. each removed-competitor equilibrium N^{-i,*} must be feasible.

Every infeasible species of a pass is removed together, so the filter never
cycles on ties. The subset only shrinks, so the loop ends after at most
n_species + 1 passes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from trophic_nfd.core.equilibrium import (
    model_equilibrium,
    monoculture_equilibria,
    resident_equilibria,
)
from trophic_nfd.core.errors import NoComputableCommunity
from trophic_nfd.core.growth import GrowthModel, LotkaVolterra
from trophic_nfd.utils.config import EngineConfig

logger = logging.getLogger(__name__)


@dataclass
class SubEquilibria:
    """Equilibria of a computable community, indexed within the subset."""

    full: np.ndarray
    residents: np.ndarray  # row i is N^{-i,*}, zero at column i
    monoculture: np.ndarray


@dataclass
class ComputableSubset:
    """Result of the computability filter."""

    indices: np.ndarray
    equilibria: SubEquilibria
    n_passes: int = 0
    removed: list[np.ndarray] = field(default_factory=list)

    @property
    def n_species(self) -> int:
        return len(self.indices)


def validity_mask(
    A: np.ndarray,
    mu: np.ndarray,
    keep: np.ndarray | None = None,
) -> np.ndarray:
    """Single pass of the five static validity conditions.

    A species is valid if its growth rate is finite, its self-limitation is
    finite and positive, and it has at least one finite non-zero interaction
    with another retained species in its row (is affected) and in its column
    (affects).

    Args:
        A: full interaction matrix.
        mu: full growth-rate vector.
        keep: boolean mask of currently retained species (default: all).

    Returns:
        Boolean mask of species that are retained and valid.
    """
    A = np.asarray(A, dtype=np.float64)
    mu = np.asarray(mu, dtype=np.float64)
    n = len(mu)
    if keep is None:
        keep = np.ones(n, dtype=bool)

    diag = np.diag(A)
    realised = np.isfinite(A) & (A != 0)
    realised[np.diag_indices(n)] = False
    realised &= keep[np.newaxis, :] & keep[:, np.newaxis]

    return (
        keep
        & np.isfinite(mu)
        & np.isfinite(diag)
        & (diag > 0)
        & realised.any(axis=1)
        & realised.any(axis=0)
    )


def static_prune(
    A: np.ndarray,
    mu: np.ndarray,
    keep: np.ndarray | None = None,
) -> np.ndarray:
    """Apply validity_mask until no further species drop out."""
    mask = validity_mask(A, mu, keep)
    while True:
        new_mask = validity_mask(A, mu, mask)
        if np.array_equal(new_mask, mask):
            return mask
        mask = new_mask


def model_sub_equilibria(
    model: GrowthModel,
    config: EngineConfig | None = None,
    N0: np.ndarray | None = None,
) -> SubEquilibria:
    """Induced, removed-competitor and monoculture equilibria of a community."""
    config = config or EngineConfig()
    full = model_equilibrium(
        model, N0=N0, xtol=config.equilibrium_xtol, max_iter=config.equilibrium_max_iter,
    )
    residents = resident_equilibria(
        model, N0=full, xtol=config.equilibrium_xtol, max_iter=config.equilibrium_max_iter,
    )
    mono = monoculture_equilibria(
        model, xtol=config.equilibrium_xtol, max_iter=config.equilibrium_max_iter,
    )
    return SubEquilibria(full=full, residents=residents, monoculture=mono)


def _infeasible_species(model: GrowthModel, config: EngineConfig) -> tuple[np.ndarray, SubEquilibria | None]:
    """Species of the model that are infeasible in a required equilibrium.

    A density counts as negative only below -extinction_threshold, so species
    sitting at or just above zero are kept. The extinction cut itself belongs
    to the dynamical equilibrium (`surviving_species`).

    Returns a mask of offenders (within the model) and the equilibria when the
    community is computable.
    """
    threshold = config.extinction_threshold
    full = model_equilibrium(
        model, xtol=config.equilibrium_xtol, max_iter=config.equilibrium_max_iter,
    )
    negative_full = full < -threshold
    if negative_full.any():
        return negative_full, None

    residents = resident_equilibria(
        model, N0=full, xtol=config.equilibrium_xtol, max_iter=config.equilibrium_max_iter,
    )
    off_diagonal = ~np.eye(model.n_species, dtype=bool)
    negative_resident = ((residents < -threshold) & off_diagonal).any(axis=0)
    if negative_resident.any():
        return negative_resident, None

    mono = monoculture_equilibria(
        model, xtol=config.equilibrium_xtol, max_iter=config.equilibrium_max_iter,
    )
    return negative_resident, SubEquilibria(full=full, residents=residents, monoculture=mono)


def find_computable_subset(
    A: np.ndarray | Sequence,
    mu: np.ndarray | Sequence[float],
    config: EngineConfig | None = None,
) -> ComputableSubset:
    """Find the maximal species subset for which ND and FD are computable.

    Args:
        A: interaction matrix (n, n).
        mu: intrinsic growth rates (n,).
        config: engine settings (extinction threshold, pass cap).

    Returns:
        ComputableSubset with indices into the original species and the
        sub-equilibria the decomposer needs.

    Raises:
        NoComputableCommunity: If every species is pruned or the pass cap is hit.
        EquilibriumUndefined: If a required sub-system is singular.
    """
    config = config or EngineConfig()
    A = np.asarray(A, dtype=np.float64)
    mu = np.asarray(mu, dtype=np.float64)
    if A.ndim != 2 or A.shape[0] != A.shape[1] or mu.shape != (A.shape[0],):
        raise ValueError(
            f"Growth rates {mu.shape} and interaction matrix {A.shape} are incompatible"
        )
    n = len(mu)
    max_passes = config.max_filter_passes if config.max_filter_passes is not None else n + 1

    keep = np.ones(n, dtype=bool)
    removed: list[np.ndarray] = []

    for n_pass in range(1, max_passes + 1):
        valid = static_prune(A, mu, keep)
        dropped = np.flatnonzero(keep & ~valid)
        if len(dropped):
            removed.append(dropped)
            logger.debug(f"Pass {n_pass}: species fail validity: {dropped.tolist()}")
        keep = valid
        idx = np.flatnonzero(keep)
        if len(idx) == 0:
            raise NoComputableCommunity(f"No computable species left after {n_pass} passes")

        # Clean entries outside the retained block cannot leak into the sub-model
        A_sub = np.where(np.isfinite(A[np.ix_(idx, idx)]), A[np.ix_(idx, idx)], 0.0)
        model = LotkaVolterra(mu[idx], A_sub)
        offenders, equilibria = _infeasible_species(model, config)

        if equilibria is not None:
            logger.debug(f"Computable subset of {len(idx)}/{n} species after {n_pass} passes")
            return ComputableSubset(
                indices=idx, equilibria=equilibria, n_passes=n_pass, removed=removed,
            )

        dropped = idx[offenders]
        removed.append(dropped)
        logger.debug(f"Pass {n_pass}: removing infeasible species {dropped.tolist()}")
        keep[dropped] = False

    raise NoComputableCommunity(
        f"Computability filter did not settle within {max_passes} passes"
    )
