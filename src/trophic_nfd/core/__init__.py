"""NFD engine: equilibrium solver, computability filter and decomposer."""

from trophic_nfd.core.computability import (
    ComputableSubset,
    SubEquilibria,
    find_computable_subset,
    model_sub_equilibria,
    static_prune,
    validity_mask,
)
from trophic_nfd.core.engine import CommunityNFD, compute_community_nfd, compute_nfd
from trophic_nfd.core.equilibrium import (
    find_equilibrium,
    is_feasible,
    is_stable,
    solve_equilibrium,
)
from trophic_nfd.core.errors import (
    DecompositionUndefined,
    EquilibriumError,
    EquilibriumNotFound,
    EquilibriumUndefined,
    NFDError,
    NoComputableCommunity,
)
from trophic_nfd.core.growth import CallableGrowth, GrowthModel, LotkaVolterra
from trophic_nfd.core.nfd import NFDResult, decompose_model, decompose_nfd, transform_fitness

__all__ = [
    # equilibrium
    "solve_equilibrium",
    "find_equilibrium",
    "is_feasible",
    "is_stable",
    # computability
    "ComputableSubset",
    "SubEquilibria",
    "find_computable_subset",
    "model_sub_equilibria",
    "static_prune",
    "validity_mask",
    # nfd
    "NFDResult",
    "decompose_nfd",
    "decompose_model",
    "transform_fitness",
    # engine
    "CommunityNFD",
    "compute_nfd",
    "compute_community_nfd",
    # growth
    "GrowthModel",
    "LotkaVolterra",
    "CallableGrowth",
    # errors
    "NFDError",
    "EquilibriumError",
    "EquilibriumUndefined",
    "EquilibriumNotFound",
    "NoComputableCommunity",
    "DecompositionUndefined",
]
