"""Per-capita growth models.

The decomposition only ever evaluates per-capita growth rates f_i(N) and their
derivatives, so every community is represented by a GrowthModel. The reference
model is generalized Lotka-Volterra:

    f_i(N) = mu_i - sum_j A_ij * N_j

CallableGrowth wraps any smooth per-capita growth function f(N, *args) with the
same interface; its Jacobian is taken by finite differences.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

import numpy as np


class GrowthModel(ABC):
    """Base class for per-capita growth functions of n_species species."""

    n_species: int

    @abstractmethod
    def __call__(self, N: np.ndarray) -> np.ndarray:
        """Per-capita growth rates at densities N."""

    @abstractmethod
    def restrict(self, idx: Sequence[int] | np.ndarray) -> GrowthModel:
        """Growth model of the sub-community idx (all other species absent)."""

    @property
    def is_linear(self) -> bool:
        return False

    def jacobian(self, N: np.ndarray, eps: float = 1e-7) -> np.ndarray:
        """Forward-difference Jacobian d f_i / d N_j at N."""
        N = np.asarray(N, dtype=np.float64)
        f0 = self(N)
        J = np.empty((self.n_species, self.n_species), dtype=np.float64)
        for j in range(self.n_species):
            h = eps * max(1.0, abs(N[j]))
            Nh = N.copy()
            Nh[j] += h
            J[:, j] = (self(Nh) - f0) / h
        return J

    def intrinsic_growth(self) -> np.ndarray:
        """Growth rates at zero density, f(0)."""
        return self(np.zeros(self.n_species))

    def safe(self, N: np.ndarray) -> np.ndarray:
        """Growth rates with negative densities clipped to zero.

        Infinite densities give -inf for every species; this is the limit the
        conversion-factor search relies on for non-interacting pairs.
        """
        N = np.asarray(N, dtype=np.float64)
        if np.isinf(N).any():
            return np.full(N.shape, -np.inf)
        return self(np.maximum(N, 0.0))


class LotkaVolterra(GrowthModel):
    """Generalized Lotka-Volterra growth f(N) = mu - A @ N.

    Args:
        mu: intrinsic growth rates (negative for consumers with mortality).
        A: interaction matrix, A[i, j] = per-capita effect of j on i.
    """

    def __init__(self, mu: np.ndarray | Sequence[float], A: np.ndarray | Sequence) -> None:
        self.mu = np.asarray(mu, dtype=np.float64)
        self.A = np.asarray(A, dtype=np.float64)
        if self.A.ndim != 2 or self.A.shape[0] != self.A.shape[1]:
            raise ValueError(f"Interaction matrix must be square, got shape {self.A.shape}")
        if self.mu.shape != (self.A.shape[0],):
            raise ValueError(
                f"Growth rates of shape {self.mu.shape} do not match "
                f"interaction matrix of shape {self.A.shape}"
            )
        self.n_species = self.A.shape[0]

    @property
    def is_linear(self) -> bool:
        return True

    def __call__(self, N: np.ndarray) -> np.ndarray:
        return self.mu - self.A @ np.asarray(N, dtype=np.float64)

    def jacobian(self, N: np.ndarray, eps: float = 1e-7) -> np.ndarray:
        return -self.A.copy()

    def restrict(self, idx: Sequence[int] | np.ndarray) -> LotkaVolterra:
        idx = np.asarray(idx, dtype=int)
        return LotkaVolterra(self.mu[idx], self.A[np.ix_(idx, idx)])

    def __repr__(self) -> str:
        return f"LotkaVolterra(n_species={self.n_species})"


class CallableGrowth(GrowthModel):
    """Wrap a per-capita growth function f(N, *args) -> array of length n."""

    def __init__(
        self,
        func: Callable[..., np.ndarray],
        n_species: int,
        args: tuple[Any, ...] = (),
    ) -> None:
        self.func = func
        self.n_species = int(n_species)
        self.args = args

    def __call__(self, N: np.ndarray) -> np.ndarray:
        return np.asarray(self.func(np.asarray(N, dtype=np.float64), *self.args),
                          dtype=np.float64)

    def restrict(self, idx: Sequence[int] | np.ndarray) -> CallableGrowth:
        idx = np.asarray(idx, dtype=int)
        parent = self

        def sub_growth(N_sub: np.ndarray) -> np.ndarray:
            N_full = np.zeros(parent.n_species)
            N_full[idx] = N_sub
            return parent(N_full)[idx]

        return CallableGrowth(sub_growth, len(idx))
