"""Empirical food-web pipeline: load tables, clean the matrix, decompose.

Input tables (CSV):

- population: taxon, growth_rate, mortality_rate, density_dependence
- interactions: predator, prey, interaction_strength, season
- densities (optional): taxon, density, body_mass

The per-capita effect of a predator on its prey enters A[prey, predator]
with the interaction strength; the prey's effect on the predator enters
A[predator, prey] with minus efficiency times that strength.
"""
from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from trophic_nfd.core.computability import static_prune
from trophic_nfd.core.engine import compute_community_nfd
from trophic_nfd.types.community import Community
from trophic_nfd.types.simulation import TrophicLevel
from trophic_nfd.utils.config import EmpiricalConfig, EngineConfig

logger = logging.getLogger(__name__)

POPULATION_COLUMNS = ["taxon", "growth_rate", "mortality_rate", "density_dependence"]
INTERACTION_COLUMNS = ["predator", "prey", "interaction_strength", "season"]
DENSITY_COLUMNS = ["taxon", "density", "body_mass"]


def _read_table(path: Path, columns: list[str]) -> pd.DataFrame:
    table = pd.read_csv(path)
    missing = set(columns) - set(table.columns)
    if missing:
        raise ValueError(f"{path.name} is missing columns: {sorted(missing)}")
    return table


def load_empirical_community(
    data_dir: str | Path,
    season: str = "summer",
    efficiency: float = 1.0,
    population_file: str = "population_parameters.csv",
    interaction_file: str = "interaction_parameters.csv",
    density_file: str = "densities.csv",
) -> Community:
    """Build the raw (uncleaned) community for one season.

    Species are the taxa of the population table, in file order. Interactions
    involving other taxa are dropped with a warning.
    """
    data_dir = Path(data_dir)
    population = _read_table(data_dir / population_file, POPULATION_COLUMNS)
    interactions = _read_table(data_dir / interaction_file, INTERACTION_COLUMNS)

    names = population["taxon"].astype(str).tolist()
    if len(set(names)) != len(names):
        raise ValueError("Duplicate taxa in population table")
    index = {name: i for i, name in enumerate(names)}
    n = len(names)

    growth = pd.to_numeric(population["growth_rate"], errors="coerce")
    mortality = pd.to_numeric(population["mortality_rate"], errors="coerce")
    mu = (growth - mortality).to_numpy(dtype=np.float64)

    A = np.zeros((n, n))
    A[np.diag_indices(n)] = pd.to_numeric(
        population["density_dependence"], errors="coerce",
    ).to_numpy(dtype=np.float64)

    rows = interactions[
        interactions["season"].astype(str).str.strip().str.lower() == season.lower()
    ].copy()
    rows["interaction_strength"] = pd.to_numeric(rows["interaction_strength"], errors="coerce")
    rows = rows.dropna(subset=["interaction_strength"])

    unknown = ~rows["predator"].astype(str).isin(index) | ~rows["prey"].astype(str).isin(index)
    if unknown.any():
        taxa = set(rows.loc[unknown, "predator"].astype(str)) | set(rows.loc[unknown, "prey"].astype(str))
        logger.warning(
            f"Dropping {int(unknown.sum())} interactions with unknown taxa: "
            f"{sorted(taxa - set(index))}"
        )
        rows = rows[~unknown]

    predators = set()
    for predator, prey, strength in rows[["predator", "prey", "interaction_strength"]].itertuples(index=False):
        p, q = index[str(predator)], index[str(prey)]
        if p == q:
            continue
        A[q, p] += strength
        A[p, q] -= efficiency * strength
        predators.add(p)

    levels = [
        TrophicLevel.PREDATOR if i in predators else TrophicLevel.BASAL for i in range(n)
    ]

    initial = None
    metadata: dict = {"season": season, "efficiency": efficiency}
    density_path = data_dir / density_file
    if density_path.exists():
        densities = _read_table(density_path, DENSITY_COLUMNS).set_index("taxon")
        densities.index = densities.index.astype(str)
        densities = densities.reindex(names)
        initial = pd.to_numeric(densities["density"], errors="coerce").to_numpy(dtype=np.float64)
        if np.isnan(initial).any():
            logger.warning("Densities missing for some taxa; no initial densities set")
            initial = None
        metadata["body_mass"] = pd.to_numeric(
            densities["body_mass"], errors="coerce",
        ).to_dict()

    logger.info(f"Loaded {n} taxa and {len(rows)} {season} interactions from {data_dir}")
    return Community(
        mu=mu, A=A, names=names, trophic_levels=levels,
        initial_densities=initial, metadata=metadata,
    )


def validity_table(community: Community) -> pd.DataFrame:
    """The five static validity conditions per taxon, evaluated once."""
    A = community.A
    n = community.n_species
    diag = np.diag(A)
    realised = np.isfinite(A) & (A != 0)
    realised[np.diag_indices(n)] = False
    table = pd.DataFrame({
        "finite_growth": np.isfinite(community.mu),
        "finite_self_limitation": np.isfinite(diag),
        "positive_self_limitation": np.isfinite(diag) & (diag > 0),
        "affected": realised.any(axis=1),
        "affects": realised.any(axis=0),
    }, index=pd.Index(community.names, name="taxon"))
    table["valid"] = table.all(axis=1)
    return table


def clean_community(community: Community) -> tuple[Community, list[str]]:
    """Drop taxa failing the validity conditions, repeated until stable.

    Returns:
        (cleaned community, names of pruned taxa in original order).
    """
    keep = static_prune(community.A, community.mu)
    pruned = [name for name, k in zip(community.names, keep) if not k]
    if pruned:
        logger.info(f"Pruned {len(pruned)}/{community.n_species} taxa: {pruned}")
    cleaned = community.subset(np.flatnonzero(keep))
    cleaned.A = np.where(np.isfinite(cleaned.A), cleaned.A, 0.0)
    return cleaned, pruned


def write_matrix(path: str | Path, A: np.ndarray, names: list[str]) -> Path:
    """Write an interaction matrix with taxa as row and column headers."""
    path = Path(path)
    A = np.asarray(A, dtype=np.float64)
    if A.shape != (len(names), len(names)):
        raise ValueError(f"Matrix {A.shape} does not match {len(names)} names")
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(A, index=names, columns=names).to_csv(path)
    return path


def read_matrix(path: str | Path) -> tuple[np.ndarray, list[str]]:
    """Read a matrix written by write_matrix."""
    frame = pd.read_csv(path, index_col=0)
    rows = [str(r) for r in frame.index]
    cols = [str(c) for c in frame.columns]
    if rows != cols:
        raise ValueError(f"Row and column headers of {path} differ")
    return frame.to_numpy(dtype=np.float64), rows


def run_empirical(
    config: EmpiricalConfig | None = None,
    engine_config: EngineConfig | None = None,
    output_dir: str | Path | None = None,
) -> pd.DataFrame:
    """Load, clean and decompose the empirical community.

    Returns:
        One row per taxon of the raw community with the five validity
        conditions, pruning, eligibility, ND, FD and FD' columns. If
        output_dir is given, the cleaned matrix and the table are written
        there.
    """
    config = config or EmpiricalConfig()
    raw = load_empirical_community(
        config.data_dir,
        season=config.season,
        efficiency=config.efficiency,
        population_file=config.population_file,
        interaction_file=config.interaction_file,
        density_file=config.density_file,
    )
    cleaned, pruned = clean_community(raw)
    nfd = compute_community_nfd(cleaned, config=engine_config)

    frame = nfd.to_frame()
    frame["trophic_level"] = [level.value for level in cleaned.trophic_levels]
    frame["coexists"] = frame["ND"] > frame["FD_transformed"]
    table = pd.DataFrame({"species": raw.names, "pruned": [name in pruned for name in raw.names]})
    validity = validity_table(raw).drop(columns="valid").rename_axis("species").reset_index()
    table = table.merge(validity, on="species", how="left")
    table = table.merge(frame, on="species", how="left")
    for column in ("eligible", "defined", "coexists"):
        table[column] = table[column].eq(True)

    logger.info(
        f"Empirical {config.season}: {len(pruned)} pruned, "
        f"{int(table['eligible'].sum())}/{raw.n_species} eligible"
    )

    if output_dir is not None:
        output_dir = Path(output_dir)
        write_matrix(output_dir / f"matrix_{config.season}.csv", cleaned.A, cleaned.names)
        table.to_csv(output_dir / f"nfd_{config.season}.csv", index=False)
    return table
