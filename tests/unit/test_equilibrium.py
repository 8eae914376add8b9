"""Tests for the equilibrium solver."""
from __future__ import annotations

import numpy as np
import pytest

from trophic_nfd.core.equilibrium import (
    community_jacobian,
    find_equilibrium,
    is_feasible,
    is_stable,
    model_equilibrium,
    monoculture_equilibria,
    resident_equilibria,
    solve_equilibrium,
)
from trophic_nfd.core.errors import EquilibriumNotFound, EquilibriumUndefined
from trophic_nfd.core.growth import CallableGrowth, LotkaVolterra


class TestSolveEquilibrium:
    def test_two_competitors(self):
        """N* solves A @ N* = mu."""
        A = np.array([[1.0, 0.5], [0.5, 1.0]])
        mu = np.array([1.0, 1.0])
        N = solve_equilibrium(mu, A)
        np.testing.assert_allclose(N, [2 / 3, 2 / 3])
        np.testing.assert_allclose(A @ N, mu)

    def test_negative_components_returned(self):
        """Infeasible equilibria are returned, not rejected."""
        A = np.array([[1.0, 2.0], [0.1, 1.0]])
        mu = np.array([1.0, 1.0])
        N = solve_equilibrium(mu, A)
        assert N[0] < 0
        assert not is_feasible(N)

    def test_singular_raises(self):
        """Duplicate rows make the system singular."""
        A = np.array([[1.0, 0.5], [1.0, 0.5]])
        with pytest.raises(EquilibriumUndefined):
            solve_equilibrium([1.0, 1.0], A)

    def test_non_finite_raises(self):
        A = np.array([[1.0, np.nan], [0.2, 1.0]])
        with pytest.raises(EquilibriumUndefined):
            solve_equilibrium([1.0, 1.0], A)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            solve_equilibrium([1.0, 1.0, 1.0], np.eye(2))

    def test_non_square(self):
        with pytest.raises(ValueError):
            solve_equilibrium([1.0, 1.0], np.ones((2, 3)))

    def test_empty_community(self):
        assert solve_equilibrium(np.zeros(0), np.zeros((0, 0))).shape == (0,)


class TestFindEquilibrium:
    def test_matches_linear_solve(self):
        """fsolve on an LV model recovers the linear solution."""
        A = np.array([[1.0, 0.3], [0.2, 1.0]])
        mu = np.array([1.0, 0.8])
        model = CallableGrowth(lambda N: mu - A @ N, 2)
        N = find_equilibrium(model)
        np.testing.assert_allclose(N, np.linalg.solve(A, mu), atol=1e-8)

    def test_saturating_growth(self):
        """Beverton-Holt style growth f(N) = r / (1 + N) - m has N* = r/m - 1."""
        model = CallableGrowth(lambda N: 2.0 / (1.0 + N) - 0.5, 1)
        N = find_equilibrium(model, N0=np.array([1.0]))
        assert N[0] == pytest.approx(3.0, rel=1e-8)

    def test_no_root_raises(self):
        """A growth rate that never vanishes has no equilibrium."""
        model = CallableGrowth(lambda N: 1.0 + N**2, 1)
        with pytest.raises(EquilibriumNotFound):
            find_equilibrium(model, max_iter=200)

    def test_model_equilibrium_dispatch(self):
        A = np.array([[1.0, 0.5], [0.5, 1.0]])
        model = LotkaVolterra([1.0, 1.0], A)
        np.testing.assert_allclose(model_equilibrium(model), [2 / 3, 2 / 3])


class TestSubEquilibria:
    def test_resident_equilibria(self, competitors):
        """Row i is the equilibrium without species i, zero at column i."""
        A, mu = competitors
        residents = resident_equilibria(LotkaVolterra(mu, A))
        assert residents.shape == (3, 3)
        np.testing.assert_array_equal(np.diag(residents), 0.0)
        idx = [0, 2]
        np.testing.assert_allclose(
            residents[1, idx], np.linalg.solve(A[np.ix_(idx, idx)], mu[idx]),
        )

    def test_monoculture(self):
        A = np.array([[2.0, 0.5], [0.5, 0.5]])
        mono = monoculture_equilibria(LotkaVolterra([1.0, 1.0], A))
        np.testing.assert_allclose(mono, [0.5, 2.0])

    def test_monoculture_undefined_is_nan(self):
        """A species without self-limitation has no monoculture equilibrium."""
        A = np.array([[0.0, 0.5], [0.5, 1.0]])
        mono = monoculture_equilibria(LotkaVolterra([1.0, 1.0], A))
        assert np.isnan(mono[0])
        assert mono[1] == pytest.approx(1.0)


class TestFeasibilityAndStability:
    def test_is_feasible(self):
        assert is_feasible([0.1, 0.2])
        assert is_feasible([0.0, 0.2])
        assert not is_feasible([-1e-9, 0.2])
        assert is_feasible([-1e-9, 0.2], tol=1e-6)
        assert not is_feasible([np.nan, 0.2])

    def test_competitive_equilibrium_stable(self):
        A = np.array([[1.0, 0.5], [0.5, 1.0]])
        model = LotkaVolterra([1.0, 1.0], A)
        N = solve_equilibrium(model.mu, model.A)
        assert is_stable(model, N)

    def test_priority_effect_unstable(self):
        """Interspecific above intraspecific competition gives a saddle."""
        A = np.array([[1.0, 1.5], [1.5, 1.0]])
        model = LotkaVolterra([1.0, 1.0], A)
        N = solve_equilibrium(model.mu, model.A)
        assert is_feasible(N)
        assert not is_stable(model, N)

    def test_community_jacobian(self):
        A = np.array([[1.0, 0.5], [0.5, 1.0]])
        model = LotkaVolterra([1.0, 1.0], A)
        N = np.array([0.5, 0.25])
        np.testing.assert_allclose(community_jacobian(model, N), -np.diag(N) @ A)
