"""Configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

# Default config directory relative to package root
_PACKAGE_ROOT = Path(__file__).resolve().parent.parent.parent.parent
_CONFIGS_DIR = _PACKAGE_ROOT / "configs"


class EngineConfig(BaseModel):
    """Numerical settings of the NFD engine."""

    # Densities below this count as extinct / infeasible
    extinction_threshold: float = 1e-5
    # Bound on filter passes; None means number of species + 1
    max_filter_passes: int | None = None
    # Brent's method absolute tolerance for conversion factors
    c_xtol: float = 1e-12
    # Doubling steps allowed when bracketing a conversion factor
    max_bracket_steps: int = 2100
    # Nonlinear equilibrium solve (fsolve)
    equilibrium_xtol: float = 1e-10
    equilibrium_max_iter: int = 2000


class SyntheticConfig(BaseModel):
    """Null-model community generator and sweep defaults.

    alpha holds the mean interaction strengths between trophic levels:
    alpha[0][0] basal on basal, alpha[0][1] predator on basal,
    alpha[1][0] basal on predator, alpha[1][1] predator on predator.
    """

    n_basal: int = 2
    n_predator: int = 2
    alpha: list[list[float]] = Field(
        default_factory=lambda: [[0.3, 0.3], [-0.3, 0.3]]
    )
    sigma: float = 0.0
    self_limitation: float = 1.0
    mu_basal: float = 1.0
    mu_predator: float = -0.1
    # When set, alpha[1][0] is replaced by -efficiency * alpha[0][1]
    efficiency: float | None = None
    n_replicates: int = 10
    sweep: dict[str, list[float]] = Field(default_factory=dict)
    assemble: bool = False
    seed: int = 42


class EmpiricalConfig(BaseModel):
    """Empirical food-web pipeline defaults."""

    data_dir: str = "data/empirical"
    season: str = "summer"
    efficiency: float = 1.0
    population_file: str = "population_parameters.csv"
    interaction_file: str = "interaction_parameters.csv"
    density_file: str = "densities.csv"


class TrophicNFDConfig(BaseModel):
    """Top-level configuration."""

    output_dir: str = "output"
    log_level: str = "INFO"
    n_workers: int = 1
    engine: EngineConfig = Field(default_factory=EngineConfig)
    synthetic: SyntheticConfig = Field(default_factory=SyntheticConfig)
    empirical: EmpiricalConfig = Field(default_factory=EmpiricalConfig)


def load_config(path: str | Path | None = None) -> TrophicNFDConfig:
    """Load global config from a YAML file.

    Falls back to configs/default.yaml if no path is given.
    """
    if path is None:
        path = _CONFIGS_DIR / "default.yaml"
    path = Path(path)

    if not path.exists():
        return TrophicNFDConfig()

    with open(path) as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    return TrophicNFDConfig(**raw)
