"""Engine facade: computability filter followed by the NFD decomposition."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from trophic_nfd.core.computability import ComputableSubset, find_computable_subset
from trophic_nfd.core.nfd import NFDResult, decompose_nfd, transform_fitness
from trophic_nfd.types.community import Community
from trophic_nfd.utils.config import EngineConfig

logger = logging.getLogger(__name__)


@dataclass
class CommunityNFD:
    """NFD results mapped back onto all species of the input community.

    Species pruned by the filter or with an undefined decomposition carry NaN.
    """

    names: list[str]
    eligible: np.ndarray
    nd: np.ndarray
    fd: np.ndarray
    subset: ComputableSubset
    result: NFDResult

    @property
    def n_species(self) -> int:
        return len(self.names)

    @property
    def transformed_fitness(self) -> np.ndarray:
        return transform_fitness(self.fd)

    @property
    def equilibrium(self) -> np.ndarray:
        """Equilibrium of the computable community, NaN for pruned species."""
        N = np.full(self.n_species, np.nan)
        N[self.subset.indices] = self.subset.equilibria.full
        return N

    def to_frame(self) -> pd.DataFrame:
        """One row per species of the input community."""
        defined = np.zeros(self.n_species, dtype=bool)
        defined[self.subset.indices[self.result.defined]] = True
        invasion = np.full(self.n_species, np.nan)
        invasion[self.subset.indices] = self.result.invasion_growth
        return pd.DataFrame({
            "species": self.names,
            "eligible": self.eligible,
            "defined": defined,
            "equilibrium": self.equilibrium,
            "invasion_growth": invasion,
            "ND": self.nd,
            "FD": self.fd,
            "FD_transformed": self.transformed_fitness,
        })


def compute_nfd(
    A: np.ndarray | Sequence,
    mu: np.ndarray | Sequence[float],
    names: list[str] | None = None,
    config: EngineConfig | None = None,
) -> CommunityNFD:
    """Filter a community to its computable subset and decompose it.

    Raises:
        EquilibriumUndefined: If a required equilibrium system is singular.
        NoComputableCommunity: If no species remain computable.
    """
    config = config or EngineConfig()
    A = np.asarray(A, dtype=np.float64)
    mu = np.asarray(mu, dtype=np.float64)
    n = len(mu)
    if names is None:
        names = [f"sp{i}" for i in range(n)]

    subset = find_computable_subset(A, mu, config=config)
    result = decompose_nfd(A, mu, subset, config=config)

    eligible = np.zeros(n, dtype=bool)
    eligible[subset.indices] = True
    nd = np.full(n, np.nan)
    fd = np.full(n, np.nan)
    nd[subset.indices] = result.nd
    fd[subset.indices] = result.fd

    logger.debug(
        f"NFD computed for {int(result.defined.sum())}/{n} species "
        f"({subset.n_species} eligible, {subset.n_passes} filter passes)"
    )
    return CommunityNFD(
        names=list(names), eligible=eligible, nd=nd, fd=fd, subset=subset, result=result,
    )


def compute_community_nfd(
    community: Community,
    config: EngineConfig | None = None,
) -> CommunityNFD:
    """compute_nfd for a Community."""
    return compute_nfd(community.A, community.mu, names=community.names, config=config)
