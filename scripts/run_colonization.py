#!/usr/bin/env python3
"""Run one colonization simulation from YAML configuration.

Loads base config (+ optional scenario override), applies command-line
overrides, runs the generation loop and writes parameters, the generation
log and tracking matrices to the output directory.

Usage:
    python scripts/run_colonization.py
    python scripts/run_colonization.py --scenario configs/scenarios/saturation.yaml
    python scripts/run_colonization.py --seed 7 --cutoff 20000 --plot -v
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from colonization_sim.config import load_config
from colonization_sim.model import run_simulation


def build_overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    sim = {}
    if args.seed is not None:
        sim['seed'] = args.seed
    if args.cutoff is not None:
        sim['cutoff'] = args.cutoff
    if sim:
        overrides['simulation'] = sim
    if args.track:
        overrides['tracking'] = {'enabled': True}
    return overrides


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Radial colonization with local saturation tracking.",
    )
    parser.add_argument(
        "--config", type=str, default=str(PROJECT_ROOT / "configs" / "default.yaml"),
        help="Base config YAML (default: configs/default.yaml)",
    )
    parser.add_argument(
        "--scenario", type=str, default=None,
        help="Scenario override YAML",
    )
    parser.add_argument("--seed", type=int, default=None, help="Master seed")
    parser.add_argument("--cutoff", type=int, default=None, help="Size cutoff C")
    parser.add_argument(
        "--track", action="store_true",
        help="Enable saturation tracking regardless of config",
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Override output directory (default: from YAML)",
    )
    parser.add_argument(
        "--plot", action="store_true",
        help="Save trajectory / saturation figures next to the outputs",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="-v for run events, -vv for one line per generation",
    )
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = load_config(args.config, args.scenario, build_overrides(args))
    out_dir = Path(args.output_dir or config.output.directory)

    print("=" * 60)
    print("Colonization run")
    print("=" * 60)
    print(f"  seed={config.simulation.seed}  N0={config.simulation.n_initial}  "
          f"C={config.simulation.cutoff}  L={config.simulation.side}")
    print(f"  kernel: p={config.kernel.p_short}  r={config.kernel.boundary_radius}  "
          f"mu={config.kernel.mu}")
    print(f"  tracking: {'on' if config.tracking.enabled else 'off'}")

    t0 = time.time()
    result = run_simulation(config, output_dir=str(out_dir))
    elapsed = time.time() - t0

    print(f"\n  Outcome: {result.outcome.name}")
    print(f"  Generation {result.final_generation}, N = {result.final_size}")
    print(f"  Restarts: {result.n_restarts}  Failures: {result.n_failures}")
    if result.selected_at is not None:
        print(f"  Tracked {len(result.tracked_uids)} founders from generation "
              f"{result.selected_at} ({len(result.neighbor_matrix)} rows)")
    print(f"  Outputs: {out_dir}  ({elapsed:.1f}s)")

    if args.plot:
        from colonization_sim.viz import (
            plot_colony_map,
            plot_population_trajectory,
            plot_saturation_curves,
        )
        plot_population_trajectory(result, cutoff=config.simulation.cutoff,
                                   save_path=str(out_dir / "trajectory.png"))
        plot_colony_map(result.agents, config.simulation.side,
                        save_path=str(out_dir / "colony.png"))
        if result.selected_at is not None:
            plot_saturation_curves(result,
                                   carrying_capacity=config.population.carrying_capacity,
                                   save_path=str(out_dir / "saturation.png"))

    # All terminal outcomes are graceful exits
    return 0 if result.outcome.terminal else 1


if __name__ == "__main__":
    sys.exit(main())
