"""Error taxonomy for the NFD engine.

Solver and filter errors abort a single replicate. DecompositionUndefined is
raised per species and collected by the decomposer as a partial result.
"""

from __future__ import annotations


class NFDError(Exception):
    """Base class for all engine failures."""


class EquilibriumError(NFDError):
    """The equilibrium of a (sub-)community could not be determined."""


class EquilibriumUndefined(EquilibriumError):
    """The linear equilibrium system is singular or ill-posed."""


class EquilibriumNotFound(EquilibriumError):
    """A nonlinear equilibrium iteration did not converge."""


class NoComputableCommunity(NFDError):
    """Pruning removed every species, or did not settle within the pass cap."""


class DecompositionUndefined(NFDError):
    """ND/FD cannot be defined for one species."""

    def __init__(self, message: str, species: int | None = None) -> None:
        super().__init__(message)
        self.species = species
