"""CLI entry point for trophic-nfd.

Usage:
    trophic-nfd synthetic             Run the synthetic replicate sweep
    trophic-nfd empirical [data_dir]  Run the empirical food-web pipeline
    trophic-nfd figures               Generate figures from saved results
    trophic-nfd version               Show version

Settings are read from configs/default.yaml.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(0)

    command = sys.argv[1].lower()

    if command == "synthetic":
        _run_synthetic()
    elif command == "empirical":
        _run_empirical(sys.argv[2] if len(sys.argv) > 2 else None)
    elif command == "figures":
        _run_figures()
    elif command in ("version", "--version", "-v"):
        from trophic_nfd import __version__
        print(f"trophic-nfd {__version__}")
    elif command in ("help", "--help", "-h"):
        print(__doc__)
    else:
        print(f"Unknown command: {command}")
        print(__doc__)
        sys.exit(1)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def _run_synthetic() -> None:
    """Run the configured sweep and store the result table."""
    from trophic_nfd.experiments.synthetic import run_sweep, summarize_sweep
    from trophic_nfd.knowledge.result_store import ResultStore
    from trophic_nfd.utils.config import load_config

    config = load_config()
    _setup_logging(config.log_level)
    table = run_sweep(config.synthetic, config.engine, n_workers=config.n_workers)

    store = ResultStore(Path(config.output_dir) / "results")
    run_id = store.save(table, kind="synthetic", config=config.model_dump())

    summary = summarize_sweep(table, sorted(config.synthetic.sweep))
    print(f"\nSynthetic sweep saved as {run_id} ({len(table)} rows)")
    print(summary.to_string(index=False, float_format=lambda x: f"{x:.3f}"))


def _run_empirical(data_dir: str | None) -> None:
    """Run the empirical pipeline and store the result table."""
    from trophic_nfd.experiments.empirical import run_empirical
    from trophic_nfd.knowledge.result_store import ResultStore
    from trophic_nfd.utils.config import load_config

    config = load_config()
    _setup_logging(config.log_level)
    empirical = config.empirical
    if data_dir is not None:
        empirical = empirical.model_copy(update={"data_dir": data_dir})

    output_dir = Path(config.output_dir)
    table = run_empirical(empirical, config.engine, output_dir=output_dir / "empirical")
    store = ResultStore(output_dir / "results")
    run_id = store.save(table, kind="empirical", config=config.model_dump())

    print(f"\nEmpirical {empirical.season} run saved as {run_id}")
    print(f"  Taxa:      {len(table)}")
    print(f"  Pruned:    {int(table['pruned'].sum())}")
    print(f"  Eligible:  {int(table['eligible'].sum())}")
    print(f"  Coexisting: {int(table['coexists'].eq(True).sum())}")


def _run_figures() -> None:
    """Plot the latest stored synthetic and empirical results."""
    import matplotlib
    matplotlib.use("Agg")  # Non-interactive backend

    from trophic_nfd.experiments.synthetic import summarize_sweep
    from trophic_nfd.knowledge.result_store import ResultStore
    from trophic_nfd.utils.config import load_config
    from trophic_nfd.viz.figures import (
        plot_nd_fd,
        plot_sweep_summary,
        save_figure,
        setup_paper_style,
    )

    config = load_config()
    _setup_logging(config.log_level)
    output_dir = Path(config.output_dir)
    store = ResultStore(output_dir / "results")
    figures_dir = output_dir / "figures"
    setup_paper_style()

    n_saved = 0
    synthetic_id = store.latest("synthetic")
    if synthetic_id is not None:
        table = store.load(synthetic_id)
        save_figure(plot_nd_fd(table, title="Synthetic communities"), figures_dir, "synthetic_nd_fd")
        n_saved += 1
        sweep_keys = sorted(config.synthetic.sweep)
        if sweep_keys:
            summary = summarize_sweep(table, sweep_keys)
            for key in sweep_keys:
                save_figure(plot_sweep_summary(summary, key), figures_dir, f"sweep_{key}")
                n_saved += 1

    empirical_id = store.latest("empirical")
    if empirical_id is not None:
        table = store.load(empirical_id)
        save_figure(plot_nd_fd(table, title="Empirical food web"), figures_dir, "empirical_nd_fd")
        n_saved += 1

    if n_saved == 0:
        print("No stored results found. Run `trophic-nfd synthetic` or `trophic-nfd empirical` first.")
        sys.exit(1)
    print(f"Saved {n_saved} figures to {figures_dir}")


if __name__ == "__main__":
    main()
