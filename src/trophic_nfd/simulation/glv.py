"""Generalized Lotka-Volterra community dynamics.

    dN_i/dt = N_i * (mu_i - sum_j A_ij * N_j)

Used to find the dynamical equilibrium of a community: species that fall below
the extinction threshold are treated as extinct and excluded before the NFD
decomposition.
"""
from __future__ import annotations

import logging

import numpy as np

from trophic_nfd.core.growth import LotkaVolterra
from trophic_nfd.simulation.base import SimulationEnvironment
from trophic_nfd.types.community import Community
from trophic_nfd.types.simulation import SimulationConfig

logger = logging.getLogger(__name__)

EXTINCTION_THRESHOLD = 1e-5


class GLVSimulation(SimulationEnvironment):
    """Generalized Lotka-Volterra dynamics for an arbitrary community.

    State vector: [N_1, ..., N_n] species densities.

    Initial densities come from community.initial_densities, or default to
    ones.
    """

    def __init__(self, config: SimulationConfig, community: Community) -> None:
        super().__init__(config)
        self.community = community
        self.names = list(community.names)
        self.model = LotkaVolterra(community.mu, np.nan_to_num(community.A))
        self.n_species = community.n_species
        if community.initial_densities is not None:
            self.N_init = community.initial_densities.copy()
        else:
            self.N_init = np.ones(self.n_species)

    def reset(self, seed: int | None = None) -> np.ndarray:
        """Initialize all species densities."""
        self._state = self.N_init.copy()
        self._step_count = 0
        return self._state

    def step(self) -> np.ndarray:
        """Advance one timestep using RK4 with non-negativity enforcement."""
        self._rk4_step()
        self._step_count += 1
        return self._state

    def observe(self) -> np.ndarray:
        """Return current densities [N_1, ..., N_n]."""
        return self._state

    def _rk4_step(self) -> None:
        """Classical Runge-Kutta 4th order step."""
        dt = self.config.dt
        y = self._state

        k1 = self._derivatives(y)
        k2 = self._derivatives(y + 0.5 * dt * k1)
        k3 = self._derivatives(y + 0.5 * dt * k2)
        k4 = self._derivatives(y + dt * k3)

        self._state = y + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)
        # Enforce non-negative densities
        self._state = np.maximum(self._state, 0.0)

    def _derivatives(self, y: np.ndarray) -> np.ndarray:
        """dN/dt = N * f(N)."""
        return y * self.model(y)

    def n_surviving(self, threshold: float = EXTINCTION_THRESHOLD) -> int:
        """Count species with density above threshold."""
        return int(np.sum(surviving_species(self._state, threshold)))


def surviving_species(N: np.ndarray, threshold: float = EXTINCTION_THRESHOLD) -> np.ndarray:
    """Boolean mask of species at or above the extinction threshold."""
    N = np.asarray(N, dtype=np.float64)
    return np.isfinite(N) & (N >= threshold)


def assemble_community(
    community: Community,
    config: SimulationConfig | None = None,
    threshold: float = EXTINCTION_THRESHOLD,
) -> tuple[np.ndarray, np.ndarray]:
    """Integrate a community to its dynamical equilibrium.

    Returns:
        (indices of surviving species, final densities of all species).
    """
    config = config or SimulationConfig()
    traj = GLVSimulation(config, community).run(config.n_steps)
    final = traj.final_state.copy()
    if not np.all(np.isfinite(final)):
        logger.warning("Community dynamics diverged; no species survive")
        return np.zeros(0, dtype=int), final
    survivors = np.flatnonzero(surviving_species(final, threshold))
    extinct = [name for name, x in traj.final_densities().items() if x < threshold]
    logger.debug(
        f"{len(survivors)}/{community.n_species} species survive assembly, extinct: {extinct}"
    )
    return survivors, final
