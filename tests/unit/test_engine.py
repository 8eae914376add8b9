"""Tests for the engine facade."""
from __future__ import annotations

import numpy as np
import pytest

from trophic_nfd import compute_community_nfd, compute_nfd
from trophic_nfd.core.errors import (
    DecompositionUndefined,
    EquilibriumUndefined,
    NoComputableCommunity,
)
from trophic_nfd.types.community import Community


class TestComputeNFD:
    def test_pruned_species_are_nan(self):
        A = np.array([
            [1.0, 0.5, 0.5],
            [0.5, 1.0, 0.5],
            [0.5, 0.5, 1.0],
        ])
        mu = np.array([1.0, 1.0, 0.1])
        nfd = compute_nfd(A, mu, names=["a", "b", "weak"])

        np.testing.assert_array_equal(nfd.eligible, [True, True, False])
        np.testing.assert_allclose(nfd.nd[:2], [0.5, 0.5], atol=1e-8)
        assert np.isnan(nfd.nd[2])
        assert np.isnan(nfd.fd[2])
        assert np.isnan(nfd.equilibrium[2])
        np.testing.assert_allclose(nfd.equilibrium[:2], [2 / 3, 2 / 3])

    def test_default_names(self, competitors):
        A, mu = competitors
        nfd = compute_nfd(A, mu)
        assert nfd.names == ["sp0", "sp1", "sp2"]
        assert nfd.n_species == 3

    def test_to_frame(self, competitors):
        A, mu = competitors
        frame = compute_nfd(A, mu).to_frame()
        assert list(frame.columns) == [
            "species", "eligible", "defined", "equilibrium",
            "invasion_growth", "ND", "FD", "FD_transformed",
        ]
        assert len(frame) == 3
        assert frame["eligible"].all()
        assert frame["defined"].all()
        np.testing.assert_allclose(
            frame["FD_transformed"], 1 - 1 / (1 - frame["FD"]),
        )

    def test_undefined_species_keeps_others(self):
        """A species without intrinsic growth gets NaN; the rest are still decomposed."""
        A = [[1.0, 0.2, 0.3], [0.2, 1.0, 0.3], [-0.5, -0.5, 1.0]]
        nfd = compute_nfd(A, [1.0, 1.0, 0.0])

        assert nfd.eligible.all()
        assert list(nfd.result.errors) == [2]
        assert isinstance(nfd.result.errors[2], DecompositionUndefined)
        assert np.isnan(nfd.nd[2])
        assert np.isnan(nfd.fd[2])
        assert np.all(np.isfinite(nfd.nd[:2]))
        assert np.all(np.isfinite(nfd.fd[:2]))
        assert nfd.nd[0] == pytest.approx(nfd.nd[1])

        frame = nfd.to_frame()
        assert frame["defined"].tolist() == [True, True, False]
        assert frame["eligible"].all()

    def test_singular_propagates(self):
        with pytest.raises(EquilibriumUndefined):
            compute_nfd([[1.0, 0.5], [1.0, 0.5]], [1.0, 1.0])

    def test_nothing_computable_propagates(self):
        with pytest.raises(NoComputableCommunity):
            compute_nfd(np.eye(3), np.ones(3))

    def test_community_input(self, competitors):
        A, mu = competitors
        community = Community(mu=mu, A=A, names=["x", "y", "z"])
        nfd = compute_community_nfd(community)
        assert nfd.names == ["x", "y", "z"]
        np.testing.assert_allclose(nfd.nd, compute_nfd(A, mu).nd)

    def test_deterministic(self, competitors):
        A, mu = competitors
        first = compute_nfd(A, mu)
        second = compute_nfd(A, mu)
        np.testing.assert_array_equal(first.nd, second.nd)
        np.testing.assert_array_equal(first.fd, second.fd)
