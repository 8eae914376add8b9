"""Tests for the numerical niche and fitness difference decomposition.

Two-species Lotka-Volterra communities have closed forms:
    c_ij^2 = a_ij a_jj / (a_ii a_ji)
    NO     = sqrt(a_ij a_ji / (a_ii a_jj))
    FD_i   = 1 - a_ii c_ij N_j^{mono} / mu_i
"""
from __future__ import annotations

import numpy as np
import pytest

from trophic_nfd.core.computability import find_computable_subset, model_sub_equilibria
from trophic_nfd.core.errors import DecompositionUndefined
from trophic_nfd.core.growth import CallableGrowth, LotkaVolterra
from trophic_nfd.core.nfd import (
    decompose_model,
    decompose_nfd,
    solve_conversion_factor,
    transform_fitness,
)
from trophic_nfd.experiments.synthetic import generate_community
from trophic_nfd.utils.config import EngineConfig, SyntheticConfig


def _decompose(A, mu):
    A = np.asarray(A, dtype=float)
    mu = np.asarray(mu, dtype=float)
    return decompose_nfd(A, mu, find_computable_subset(A, mu))


class TestTwoSpecies:
    """Closed-form niche and fitness differences of two competitors."""

    @pytest.mark.parametrize("a", [0.1, 0.5, 0.9])
    def test_symmetric(self, a):
        result = _decompose([[1.0, a], [a, 1.0]], [1.0, 1.0])
        np.testing.assert_allclose(result.nd, [1 - a, 1 - a], atol=1e-8)
        np.testing.assert_allclose(result.fd, [0.0, 0.0], atol=1e-8)
        np.testing.assert_allclose(result.c, np.ones((2, 2)), atol=1e-8)
        assert result.errors == {}

    def test_asymmetric(self):
        A = np.array([[1.0, 0.4], [0.6, 1.2]])
        mu = np.array([1.0, 0.9])
        result = _decompose(A, mu)

        c01 = np.sqrt(A[0, 1] * A[1, 1] / (A[0, 0] * A[1, 0]))
        no = np.sqrt(A[0, 1] * A[1, 0] / (A[0, 0] * A[1, 1]))
        mono = mu / np.diag(A)
        fd0 = 1 - A[0, 0] * c01 * mono[1] / mu[0]
        fd1 = 1 - A[1, 1] / c01 * mono[0] / mu[1]

        np.testing.assert_allclose(result.c[0, 1], c01, rtol=1e-8)
        np.testing.assert_allclose(result.c[1, 0], 1 / c01, rtol=1e-8)
        np.testing.assert_allclose(result.nd, [1 - no, 1 - no], rtol=1e-8)
        np.testing.assert_allclose(result.fd, [fd0, fd1], rtol=1e-8)

    def test_growth_rates(self):
        A = np.array([[1.0, 0.4], [0.6, 1.2]])
        mu = np.array([1.0, 0.9])
        result = _decompose(A, mu)
        np.testing.assert_allclose(result.eta, mu)
        np.testing.assert_allclose(result.invasion_growth, [1.0 - 0.4 * 0.75, 0.9 - 0.6 * 1.0])
        np.testing.assert_allclose(result.no, 1 - result.nd)

    def test_pairwise_overlap_equal(self):
        result = _decompose([[1.0, 0.4], [0.6, 1.2]], [1.0, 0.9])
        assert abs(result.pairwise_no[0, 1]) == pytest.approx(abs(result.pairwise_no[1, 0]), rel=1e-8)

    def test_coexistence_prediction(self):
        """Both species invade when their equilibrium is feasible and stable."""
        result = _decompose([[1.0, 0.4], [0.6, 1.2]], [1.0, 0.9])
        assert result.predicted_coexistence().all()
        assert np.all(result.invasion_growth > 0)


class TestRescalingInvariance:
    @pytest.mark.parametrize("k,s", [(0, 2.0), (1, 3.0), (2, 0.25)])
    def test_species_rescaling(self, competitors, k, s):
        """Scaling mu_k, row k and column k of A by s leaves ND and FD unchanged."""
        A, mu = competitors
        base = _decompose(A, mu)

        A_s = A.copy()
        A_s[k, :] *= s
        A_s[:, k] *= s
        mu_s = mu.copy()
        mu_s[k] *= s
        scaled = _decompose(A_s, mu_s)

        np.testing.assert_allclose(scaled.nd, base.nd, rtol=1e-6, atol=1e-9)
        np.testing.assert_allclose(scaled.fd, base.fd, rtol=1e-6, atol=1e-9)


class TestTrophicCommunity:
    def test_two_basal_two_predators(self):
        """No-noise 2+2 community: all species retained with finite ND and FD."""
        community = generate_community(SyntheticConfig())
        subset = find_computable_subset(community.A, community.mu)
        np.testing.assert_array_equal(subset.indices, [0, 1, 2, 3])
        assert np.all(subset.equilibria.full > 0)

        result = decompose_nfd(community.A, community.mu, subset)
        assert result.errors == {}
        assert np.all(np.isfinite(result.nd))
        assert np.all(np.isfinite(result.fd))

    def test_symmetric_species_share_values(self):
        """Identical basal species have identical ND and FD, and c = 1 between them."""
        community = generate_community(SyntheticConfig())
        result = _decompose(community.A, community.mu)
        assert result.nd[0] == pytest.approx(result.nd[1], rel=1e-8)
        assert result.fd[2] == pytest.approx(result.fd[3], rel=1e-8)
        assert result.c[0, 1] == pytest.approx(1.0)


class TestGeneralGrowthModel:
    def test_callable_matches_lotka_volterra(self, competitors):
        """A callable LV model decomposes like the linear one."""
        A, mu = competitors
        lv = LotkaVolterra(mu, A)
        wrapped = CallableGrowth(lambda N: mu - A @ N, 3)

        expected = decompose_model(lv, model_sub_equilibria(lv))
        result = decompose_model(wrapped, model_sub_equilibria(wrapped))
        np.testing.assert_allclose(result.nd, expected.nd, rtol=1e-5)
        np.testing.assert_allclose(result.fd, expected.fd, rtol=1e-5, atol=1e-8)


class TestConversionFactor:
    def test_non_interacting_pair_limit(self):
        """Species 0 does not affect species 1 when the others are held fixed."""
        A = np.array([
            [1.0, 0.3, 0.2],
            [0.0, 1.0, 0.2],
            [0.2, 0.3, 1.0],
        ])
        mu = np.array([1.0, 1.0, 1.0])
        lv = LotkaVolterra(mu, A)
        eq = model_sub_equilibria(lv)
        r = np.array([lv(eq.residents[i])[i] for i in range(3)])
        c01, c10 = solve_conversion_factor(lv, eq.residents, r, 0, 1)
        assert c01 == np.inf
        assert c10 == 0.0

    def test_bracket_exhausted(self):
        A = np.array([[1.0, 0.4], [0.6, 1.2]])
        mu = np.array([1.0, 0.9])
        lv = LotkaVolterra(mu, A)
        eq = model_sub_equilibria(lv)
        r = np.array([lv(eq.residents[i])[i] for i in range(2)])
        with pytest.raises(DecompositionUndefined):
            solve_conversion_factor(
                lv, eq.residents, r, 0, 1, guess=1e-6, config=EngineConfig(max_bracket_steps=2),
            )


class TestTransformFitness:
    def test_values(self):
        np.testing.assert_allclose(transform_fitness([0.0, 0.5, -1.0]), [0.0, -1.0, 0.5])

    def test_pole(self):
        assert np.isinf(transform_fitness(1.0))
