"""Core data types for trophic-nfd."""

from trophic_nfd.types.community import Community
from trophic_nfd.types.simulation import RunStatus, SimulationConfig, TrophicLevel
from trophic_nfd.types.trajectory import TrajectoryData

__all__ = [
    # community
    "Community",
    # simulation
    "TrophicLevel",
    "RunStatus",
    "SimulationConfig",
    # trajectory
    "TrajectoryData",
]
