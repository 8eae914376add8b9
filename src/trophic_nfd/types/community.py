"""Community parameter container."""

from __future__ import annotations

from typing import Any

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from trophic_nfd.types.simulation import TrophicLevel


class Community(BaseModel):
    """Growth rates, interaction matrix and species labels of one community.

    A[i, j] is the per-capita effect of species j on the growth of species i.
    """

    model_config = {"arbitrary_types_allowed": True}

    mu: np.ndarray
    A: np.ndarray
    names: list[str] = Field(default_factory=list)
    trophic_levels: list[TrophicLevel] = Field(default_factory=list)
    initial_densities: np.ndarray | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("mu", "A", "initial_densities", mode="before")
    @classmethod
    def _as_float_array(cls, value: Any) -> Any:
        if value is None:
            return None
        return np.asarray(value, dtype=np.float64)

    @model_validator(mode="after")
    def _check_shapes(self) -> Community:
        n = len(self.mu)
        if self.A.shape != (n, n):
            raise ValueError(f"Interaction matrix {self.A.shape} does not match {n} growth rates")
        if not self.names:
            self.names = [f"sp{i}" for i in range(n)]
        if len(self.names) != n:
            raise ValueError(f"Got {len(self.names)} names for {n} species")
        if self.trophic_levels and len(self.trophic_levels) != n:
            raise ValueError(f"Got {len(self.trophic_levels)} trophic levels for {n} species")
        if self.initial_densities is not None and self.initial_densities.shape != (n,):
            raise ValueError("Initial densities do not match the number of species")
        return self

    @property
    def n_species(self) -> int:
        return len(self.mu)

    def subset(self, idx: np.ndarray | list[int]) -> Community:
        """Community restricted to species idx (in the given order)."""
        idx = np.asarray(idx, dtype=int)
        return Community(
            mu=self.mu[idx],
            A=self.A[np.ix_(idx, idx)],
            names=[self.names[i] for i in idx],
            trophic_levels=[self.trophic_levels[i] for i in idx] if self.trophic_levels else [],
            initial_densities=(
                None if self.initial_densities is None else self.initial_densities[idx]
            ),
            metadata=dict(self.metadata),
        )
