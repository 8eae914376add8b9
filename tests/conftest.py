"""Shared test fixtures for trophic-nfd."""

from pathlib import Path

import numpy as np
import pytest

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def tmp_output_dir(tmp_path):
    """Temporary directory for test outputs."""
    out = tmp_path / "output"
    out.mkdir()
    return out


@pytest.fixture
def empirical_dir():
    """Directory holding the small empirical food-web tables."""
    return DATA_DIR / "empirical"


@pytest.fixture
def competitors():
    """Three competitors with feasible full and removed-competitor equilibria."""
    mu = np.array([1.0, 0.8, 0.9])
    A = np.array([
        [1.0, 0.3, 0.2],
        [0.25, 1.0, 0.3],
        [0.2, 0.35, 1.0],
    ])
    return A, mu
