"""Tests for Pydantic data types."""

import numpy as np
import pytest
from pydantic import ValidationError

from trophic_nfd.types.community import Community
from trophic_nfd.types.simulation import RunStatus, SimulationConfig, TrophicLevel
from trophic_nfd.types.trajectory import TrajectoryData


class TestCommunity:
    def test_arrays_converted(self):
        community = Community(mu=[1, 2], A=[[1, 0], [0, 1]])
        assert community.mu.dtype == np.float64
        assert community.A.shape == (2, 2)

    def test_default_names(self):
        community = Community(mu=[1.0, 2.0, 3.0], A=np.eye(3))
        assert community.names == ["sp0", "sp1", "sp2"]
        assert community.n_species == 3

    def test_shape_mismatch(self):
        with pytest.raises(ValidationError):
            Community(mu=[1.0, 2.0], A=np.eye(3))

    def test_name_count_mismatch(self):
        with pytest.raises(ValidationError):
            Community(mu=[1.0, 2.0], A=np.eye(2), names=["a"])

    def test_subset(self):
        community = Community(
            mu=[1.0, 2.0, 3.0],
            A=np.arange(9.0).reshape(3, 3),
            names=["a", "b", "c"],
            trophic_levels=[TrophicLevel.BASAL, TrophicLevel.BASAL, TrophicLevel.PREDATOR],
            initial_densities=[0.1, 0.2, 0.3],
        )
        sub = community.subset([2, 0])
        assert sub.names == ["c", "a"]
        np.testing.assert_array_equal(sub.mu, [3.0, 1.0])
        np.testing.assert_array_equal(sub.A, [[8.0, 6.0], [2.0, 0.0]])
        assert sub.trophic_levels == [TrophicLevel.PREDATOR, TrophicLevel.BASAL]
        np.testing.assert_array_equal(sub.initial_densities, [0.3, 0.1])


class TestSimulationTypes:
    def test_defaults(self):
        config = SimulationConfig()
        assert config.dt == 0.01
        assert config.n_steps == 20000

    def test_enums(self):
        assert TrophicLevel("basal") == TrophicLevel.BASAL
        assert RunStatus.OK.value == "ok"
        assert RunStatus("equilibrium_undefined") == RunStatus.EQUILIBRIUM_UNDEFINED


class TestTrajectoryData:
    def test_empty(self):
        traj = TrajectoryData()
        assert traj.n_steps == 0
        assert traj.final_state is None

    def test_states(self):
        traj = TrajectoryData()
        traj.states = np.zeros((5, 2))
        traj.timestamps = np.linspace(0, 1, 5)
        assert traj.n_steps == 5
        np.testing.assert_array_equal(traj.final_state, [0.0, 0.0])

    def test_final_densities(self):
        traj = TrajectoryData(names=["a", "b"])
        assert traj.final_densities() == {}
        traj.states = np.array([[1.0, 2.0], [0.5, 0.25]])
        assert traj.final_densities() == {"a": 0.5, "b": 0.25}
