"""Trajectory data types."""

from __future__ import annotations

import numpy as np
from pydantic import BaseModel, Field


class TrajectoryData(BaseModel):
    """A timestamped density sequence of one community."""

    model_config = {"arbitrary_types_allowed": True}

    id: str = ""
    names: list[str] = Field(default_factory=list)
    parameters: dict[str, float] = Field(default_factory=dict)

    # These hold the actual numerical data (not serialized via Pydantic)
    _states: np.ndarray | None = None
    _timestamps: np.ndarray | None = None

    @property
    def states(self) -> np.ndarray | None:
        return self._states

    @states.setter
    def states(self, value: np.ndarray) -> None:
        self._states = value

    @property
    def timestamps(self) -> np.ndarray | None:
        return self._timestamps

    @timestamps.setter
    def timestamps(self, value: np.ndarray) -> None:
        self._timestamps = value

    @property
    def n_steps(self) -> int:
        if self._states is not None:
            return len(self._states)
        return 0

    @property
    def final_state(self) -> np.ndarray | None:
        if self._states is None:
            return None
        return self._states[-1]

    def final_densities(self) -> dict[str, float]:
        """Last recorded density of each named species."""
        if self._states is None:
            return {}
        return {name: float(x) for name, x in zip(self.names, self._states[-1])}
