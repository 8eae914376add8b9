"""Simulation configuration and trophic classification types."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class TrophicLevel(str, Enum):
    BASAL = "basal"
    PREDATOR = "predator"


class RunStatus(str, Enum):
    """Outcome of one engine invocation in a sweep."""

    OK = "ok"
    EQUILIBRIUM_UNDEFINED = "equilibrium_undefined"
    EQUILIBRIUM_NOT_FOUND = "equilibrium_not_found"
    NO_COMPUTABLE_COMMUNITY = "no_computable_community"


class SimulationConfig(BaseModel):
    """Configuration for integrating community dynamics."""

    dt: float = 0.01
    n_steps: int = 20000
    seed: int = 42
