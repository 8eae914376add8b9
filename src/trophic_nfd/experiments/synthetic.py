"""Synthetic multitrophic communities and replicate sweeps.

Interaction matrices are built from block means between trophic levels:

    A[i, j] = alpha[level(i)][level(j)] + sigma * xi_ij,   xi_ij ~ N(0, 1)
    A[i, i] = self_limitation

so with sigma = 0 every basal species sees every other species identically
(and likewise for predators). Predators usually have negative intrinsic growth
(mortality) and benefit from basal species (alpha[1][0] < 0). When an
efficiency is given, alpha[1][0] = -efficiency * alpha[0][1]: a predator gains
a fraction `efficiency` of the per-capita effect it has on its prey.

A sweep expands a parameter grid, runs n_replicates independent replicates per
grid point, and collects one row per species and replicate. Replicates that
fail (singular matrix, nothing computable) are kept with a status and NaN
values.
"""
from __future__ import annotations

import itertools
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Any, Iterator

import numpy as np
import pandas as pd

from trophic_nfd.core.engine import compute_nfd
from trophic_nfd.core.equilibrium import is_feasible, solve_equilibrium
from trophic_nfd.core.errors import (
    EquilibriumNotFound,
    EquilibriumUndefined,
    NFDError,
    NoComputableCommunity,
)
from trophic_nfd.simulation.glv import assemble_community
from trophic_nfd.types.community import Community
from trophic_nfd.types.simulation import RunStatus, SimulationConfig, TrophicLevel
from trophic_nfd.utils.config import EngineConfig, SyntheticConfig

logger = logging.getLogger(__name__)

_STATUS: dict[type[NFDError], RunStatus] = {
    EquilibriumUndefined: RunStatus.EQUILIBRIUM_UNDEFINED,
    EquilibriumNotFound: RunStatus.EQUILIBRIUM_NOT_FOUND,
    NoComputableCommunity: RunStatus.NO_COMPUTABLE_COMMUNITY,
}


def trophic_alpha(config: SyntheticConfig) -> np.ndarray:
    """2x2 block-mean interaction strengths, with the efficiency rule applied."""
    alpha = np.array(config.alpha, dtype=np.float64)
    if alpha.shape != (2, 2):
        raise ValueError(f"alpha must be 2x2 (basal/predator blocks), got {alpha.shape}")
    if config.efficiency is not None:
        alpha[1, 0] = -config.efficiency * alpha[0, 1]
    return alpha


def generate_interaction_matrix(
    n_basal: int,
    n_predator: int,
    alpha: np.ndarray | list[list[float]],
    sigma: float = 0.0,
    self_limitation: float = 1.0,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Block-structured interaction matrix for basal and predator species.

    Basal species come first. Off-diagonal entries are the block mean plus
    Gaussian noise of standard deviation sigma; the diagonal is the
    self-limitation.
    """
    alpha = np.asarray(alpha, dtype=np.float64)
    levels = np.array([0] * n_basal + [1] * n_predator, dtype=int)
    A = alpha[levels[:, np.newaxis], levels[np.newaxis, :]].copy()
    if sigma > 0:
        if rng is None:
            raise ValueError("A random generator is required when sigma > 0")
        A += sigma * rng.normal(size=A.shape)
    A[np.diag_indices(len(levels))] = self_limitation
    return A


def generate_growth_rates(
    n_basal: int,
    n_predator: int,
    mu_basal: float = 1.0,
    mu_predator: float = -0.1,
) -> np.ndarray:
    """Intrinsic growth rates, basal species first."""
    return np.array([mu_basal] * n_basal + [mu_predator] * n_predator, dtype=np.float64)


def generate_community(
    config: SyntheticConfig,
    rng: np.random.Generator | None = None,
) -> Community:
    """One random community drawn from the null model in config."""
    A = generate_interaction_matrix(
        config.n_basal,
        config.n_predator,
        trophic_alpha(config),
        sigma=config.sigma,
        self_limitation=config.self_limitation,
        rng=rng,
    )
    mu = generate_growth_rates(
        config.n_basal, config.n_predator, config.mu_basal, config.mu_predator,
    )
    names = [f"B{i}" for i in range(config.n_basal)] + [f"P{i}" for i in range(config.n_predator)]
    levels = [TrophicLevel.BASAL] * config.n_basal + [TrophicLevel.PREDATOR] * config.n_predator
    return Community(mu=mu, A=A, names=names, trophic_levels=levels)


def iter_parameter_grid(sweep: dict[str, list[Any]]) -> Iterator[dict[str, Any]]:
    """Yield every combination of the swept parameter values."""
    keys = sorted(sweep)
    for values in itertools.product(*(sweep[k] for k in keys)):
        yield dict(zip(keys, values))


def iter_tasks(
    config: SyntheticConfig,
) -> Iterator[tuple[dict[str, Any], int, int]]:
    """Yield (parameters, replicate index, seed) for every replicate of a sweep.

    Seeds are spawned from config.seed, so each replicate's randomness is
    independent of execution order and worker count.
    """
    grid = list(iter_parameter_grid(config.sweep)) or [{}]
    root = np.random.SeedSequence(config.seed)
    children = root.spawn(len(grid) * config.n_replicates)
    for k, (params, replicate) in enumerate(
        itertools.product(grid, range(config.n_replicates))
    ):
        yield params, replicate, int(children[k].generate_state(1)[0])


def run_replicate(
    config: SyntheticConfig,
    seed: int,
    engine_config: EngineConfig | None = None,
    simulation_config: SimulationConfig | None = None,
) -> list[dict[str, Any]]:
    """Generate one community and decompose it; one row per species.

    Engine failures are recorded in the `status` column, never raised.
    """
    rng = np.random.default_rng(seed)
    community = generate_community(config, rng)
    n = community.n_species
    rows = [
        {
            "species": community.names[i],
            "trophic_level": community.trophic_levels[i].value,
            "seed": seed,
            "survived": True,
            "eligible": False,
            "equilibrium": np.nan,
            "ND": np.nan,
            "FD": np.nan,
            "FD_transformed": np.nan,
            "status": RunStatus.OK.value,
        }
        for i in range(n)
    ]

    idx = np.arange(n)
    if config.assemble:
        idx, _ = assemble_community(community, simulation_config)
        for i in set(range(n)) - set(idx.tolist()):
            rows[i]["survived"] = False
        if len(idx) == 0:
            for row in rows:
                row["status"] = RunStatus.NO_COMPUTABLE_COMMUNITY.value
            return rows
        community = community.subset(idx)

    try:
        nfd = compute_nfd(community.A, community.mu, names=community.names, config=engine_config)
    except NFDError as e:
        status = _STATUS.get(type(e), RunStatus.NO_COMPUTABLE_COMMUNITY)
        logger.debug(f"Replicate with seed {seed} failed: {e}")
        for row in rows:
            row["status"] = status.value
        return rows

    fd_t = nfd.transformed_fitness
    N = nfd.equilibrium
    for k, i in enumerate(idx):
        rows[i].update({
            "eligible": bool(nfd.eligible[k]),
            "equilibrium": N[k],
            "ND": nfd.nd[k],
            "FD": nfd.fd[k],
            "FD_transformed": fd_t[k],
        })
    return rows


def _run_task(
    config: SyntheticConfig,
    params: dict[str, Any],
    replicate: int,
    seed: int,
    engine_config: EngineConfig | None,
) -> list[dict[str, Any]]:
    """Worker entry point: apply parameters, run, and key rows by them."""
    replicate_config = SyntheticConfig(**{**config.model_dump(), **params})
    rows = run_replicate(replicate_config, seed, engine_config)
    for row in rows:
        row.update(params)
        row["replicate"] = replicate
    return rows


def run_sweep(
    config: SyntheticConfig,
    engine_config: EngineConfig | None = None,
    n_workers: int = 1,
) -> pd.DataFrame:
    """Run every replicate of the sweep in config.

    Args:
        config: null model, sweep grid, replicate count and batch seed.
        engine_config: engine settings.
        n_workers: worker processes; 1 runs in-process.

    Returns:
        Long table with one row per (parameters, replicate, species), sorted
        by parameters and replicate.
    """
    tasks = list(iter_tasks(config))
    logger.info(
        f"Running {len(tasks)} replicates "
        f"({len(tasks) // max(config.n_replicates, 1)} parameter combinations)"
    )

    rows: list[dict[str, Any]] = []
    if n_workers <= 1:
        for params, replicate, seed in tasks:
            rows.extend(_run_task(config, params, replicate, seed, engine_config))
    else:
        with ProcessPoolExecutor(max_workers=n_workers) as executor:
            futures = [
                executor.submit(_run_task, config, params, replicate, seed, engine_config)
                for params, replicate, seed in tasks
            ]
            for future in as_completed(futures):
                rows.extend(future.result())

    table = pd.DataFrame(rows)
    keys = sorted(config.sweep) + ["replicate"]
    table = table.sort_values(keys, kind="stable").reset_index(drop=True)

    n_failed = int((table.groupby(keys)["status"].first() != RunStatus.OK.value).sum())
    logger.info(f"Sweep done: {n_failed}/{len(tasks)} replicates not computable")
    return table


def summarize_sweep(table: pd.DataFrame, sweep_keys: list[str]) -> pd.DataFrame:
    """Per parameter combination and trophic level: computable fraction, mean ND/FD."""
    keys = list(sweep_keys) + ["trophic_level"]
    grouped = table.groupby(keys, dropna=False)
    summary = grouped.agg(
        n_rows=("species", "size"),
        fraction_ok=("status", lambda s: float(np.mean(s == RunStatus.OK.value))),
        fraction_eligible=("eligible", "mean"),
        mean_ND=("ND", "mean"),
        mean_FD=("FD", "mean"),
        mean_FD_transformed=("FD_transformed", "mean"),
    )
    return summary.reset_index()


def feasible_fraction(config: SyntheticConfig, n_samples: int = 100) -> float:
    """Fraction of null-model communities whose full equilibrium is feasible."""
    rng = np.random.default_rng(config.seed)
    n_feasible = 0
    for _ in range(n_samples):
        community = generate_community(config, rng)
        try:
            N = solve_equilibrium(community.mu, community.A)
        except EquilibriumUndefined:
            continue
        n_feasible += is_feasible(N)
    return n_feasible / n_samples
