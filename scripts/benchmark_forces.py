#!/usr/bin/env python3
"""
Benchmark direct and Barnes-Hut force evaluation on generated galaxies.

Usage:
    uv run python scripts/benchmark_forces.py [--sizes N,...] [--thetas T,...]

Examples:
    uv run python scripts/benchmark_forces.py
    uv run python scripts/benchmark_forces.py --sizes 500,2000 --thetas 0.3,0.5,1.0
    uv run python scripts/benchmark_forces.py --scenario galaxy.json --steps 10
"""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path
from typing import Any

from nbody_sim import (
    BarnesHutForce,
    BoundingBox,
    DirectForce,
    Simulation,
    max_relative_error,
)
from nbody_sim.export import from_json

BOUNDS = BoundingBox(0.0, 500.0, 0.0, 500.0)


def load_scenario(filepath: Path, min_dist: float) -> Simulation:
    """Load a simulation from a JSON body list."""
    bodies, num_blackholes = from_json(filepath.read_text())
    return Simulation.from_bodies(
        bodies, bounds=BOUNDS, min_dist=min_dist, num_blackholes=num_blackholes
    )


def time_evaluator(evaluator, sim: Simulation, steps: int) -> tuple[float, Any]:
    """
    Time `steps` force evaluations.

    Returns:
        (seconds per evaluation, copy of the last acceleration field)
    """
    start = time.perf_counter()
    for _ in range(steps):
        evaluator.compute(sim)
    elapsed = (time.perf_counter() - start) / max(steps, 1)
    return elapsed, sim.acceleration.copy()


def run_benchmarks(
    sims: dict[str, Simulation],
    thetas: list[float],
    steps: int = 3,
    skip_direct_above: int = 5000,
) -> list[dict]:
    """Run benchmarks on every simulation."""
    results = []

    print(f"\nBenchmarking direct and {len(thetas)} Barnes-Hut settings on {len(sims)} systems")
    print(f"Evaluations per measurement: {steps}")
    print("=" * 80)

    for name, sim in sims.items():
        print(f"\n{name}: {sim.n} bodies")
        print("-" * 60)

        exact = None
        if sim.n <= skip_direct_above:
            elapsed, exact = time_evaluator(DirectForce(), sim, steps)
            print(f"  {'direct':12s}: {elapsed:.4f}s")
            results.append({"system": name, "method": "direct", "time_seconds": elapsed,
                            "num_bodies": sim.n})
        else:
            print(f"  {'direct':12s}: SKIPPED (O(n^2) too slow)")

        for theta in thetas:
            label = f"bh({theta:g})"
            elapsed, approx = time_evaluator(BarnesHutForce(theta=theta), sim, steps)
            result = {"system": name, "method": label, "time_seconds": elapsed,
                      "num_bodies": sim.n}
            line = f"  {label:12s}: {elapsed:.4f}s"
            if exact is not None:
                # Satellites only: the black holes feel a near-cancelling sum
                error = max_relative_error(approx[sim.num_blackholes:], exact[sim.num_blackholes:])
                result["max_relative_error"] = error
                line += f"   max rel. error {error:.2e}"
            print(line)
            results.append(result)

    # Summary
    print("\n" + "=" * 80)
    print("SUMMARY (times in seconds)")
    print("=" * 80)

    methods = ["direct"] + [f"bh({t:g})" for t in thetas]
    print(f"{'System':<20s}", end="")
    for method in methods:
        print(f"{method:>12s}", end="")
    print()
    print("-" * (20 + 12 * len(methods)))

    for name in sims:
        print(f"{name:<20s}", end="")
        for method in methods:
            matching = [r for r in results if r["system"] == name and r["method"] == method]
            if matching:
                print(f"{matching[0]['time_seconds']:>12.4f}", end="")
            else:
                print(f"{'--':>12s}", end="")
        print()

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark force evaluation")
    parser.add_argument("--sizes", default="100,500,2000", help="Comma-separated body counts")
    parser.add_argument("--thetas", default="0.5,1.0", help="Comma-separated Barnes-Hut thetas")
    parser.add_argument("--steps", type=int, default=3, help="Evaluations per measurement")
    parser.add_argument("--min-dist", type=float, default=10.0, help="Absorption radius")
    parser.add_argument("--center-mass", type=float, default=5e6, help="Black hole mass")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--scenario", type=Path, help="JSON body list to benchmark instead")
    parser.add_argument("--output", help="Output JSON file for results")

    args = parser.parse_args()

    if args.scenario:
        sims = {args.scenario.stem: load_scenario(args.scenario, args.min_dist)}
    else:
        sims = {
            f"galaxy_{n}": Simulation.initialize(
                n, args.center_mass, BOUNDS, args.min_dist, random_seed=args.seed
            )
            for n in (int(s) for s in args.sizes.split(","))
        }
    thetas = [float(t) for t in args.thetas.split(",")]

    results = run_benchmarks(sims, thetas, steps=args.steps)

    if args.output and results:
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
