#!/usr/bin/env python3
"""
Headless runner for the SPH fluid solver.

Usage:
    python -m fluidsph.main                        # Box tank, default settings
    python -m fluidsph.main --scenario sphere      # Spherical bowl
    python -m fluidsph.main --particles 4000       # Set particle count
    python -m fluidsph.main --backend numba        # Use Numba backend
    python -m fluidsph.main --snapshot out.png     # Save final particle positions
"""

import argparse
import time
import numpy as np

from . import scenarios
from .core.backend import print_backend_info
from .solver import SPHSolver


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SPH Fluid Simulation (Headless)")
    parser.add_argument("--scenario", default="box", choices=sorted(scenarios.SCENARIOS),
                        help="Container scenario (default: box)")
    parser.add_argument("--particles", type=int, default=1000,
                        help="Number of particles (default: 1000)")
    parser.add_argument("--backend", choices=["cpu", "numba", "auto"], default="auto",
                        help="Computation backend (default: auto)")
    parser.add_argument("--steps", type=int, default=100, help="Number of steps to run")
    parser.add_argument("--dt", type=float, default=0.005,
                        help="Elapsed time per step, clamped to the solver maximum")
    parser.add_argument("--viscosity", type=float, default=None)
    parser.add_argument("--pressure", type=float, default=None)
    parser.add_argument("--surface-tension", type=float, default=None)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for particle placement")
    parser.add_argument("--report-every", type=int, default=20,
                        help="Print timings every N steps (default: 20)")
    parser.add_argument("--surface", action="store_true",
                        help="Sample the implicit surface lattice after the run")
    parser.add_argument("--snapshot", default=None, help="Write a PNG of final particle positions")
    parser.add_argument("--log-level", default="INFO")
    return parser


def save_snapshot(solver: SPHSolver, path: str):
    """Scatter plot of particle positions colored by speed."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    positions = solver.particles.get_positions()
    speed = np.linalg.norm(solver.particles.get_velocities(), axis=1)
    box = solver.container.bounding_box()

    fig = plt.figure(figsize=(8, 8))
    ax = fig.add_subplot(projection="3d")
    sc = ax.scatter(positions[:, 0], positions[:, 2], positions[:, 1], c=speed, s=4, cmap="viridis")
    ax.set_xlim(box.minimum[0], box.maximum[0])
    ax.set_ylim(box.minimum[2], box.maximum[2])
    ax.set_zlim(box.minimum[1], box.maximum[1])
    ax.set_xlabel("x")
    ax.set_ylabel("z")
    ax.set_zlabel("y")
    ax.set_title(f"t = {solver.time:.3f} s, {solver.particles.count} particles")
    fig.colorbar(sc, ax=ax, label="speed (m/s)", shrink=0.6)
    fig.savefig(path, dpi=100, bbox_inches="tight")
    plt.close(fig)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {"backend": args.backend, "seed": args.seed}
    for name in ("viscosity", "pressure", "surface_tension"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value

    print(f"Loading scenario: {args.scenario}")
    container, config = scenarios.SCENARIOS[args.scenario](particle_count=args.particles, **overrides)
    solver = SPHSolver(container, config, log_level=args.log_level)

    print_backend_info()
    print("\nSimulation info:")
    print(f"  Particles: {solver.particles.count}")
    print(f"  Smoothing radius: {config.smoothing_radius:.4f} m")
    print(f"  Grid: {config.grid_cells}")
    print(f"  Backend: {solver.backend}")
    print(f"  Steps: {args.steps}")

    print("\nRunning simulation...")
    step_times = []

    for step in range(args.steps):
        t0 = time.perf_counter()
        solver.animate(args.dt)
        step_times.append(time.perf_counter() - t0)

        if args.report_every > 0 and (step + 1) % args.report_every == 0:
            avg_time = np.mean(step_times[-args.report_every:])
            stats = solver.statistics()
            print(f"  Step {step+1}/{args.steps}: {avg_time*1000:.1f} ms/step, "
                  f"max speed {stats['max_speed']:.3f} m/s, "
                  f"mean density {stats['mean_density']:.1f} kg/m3, "
                  f"collisions {stats['collisions']}")

    if step_times:
        avg_time = np.mean(step_times)
        print("\nSimulation complete!")
        print(f"Average: {avg_time*1000:.1f} ms/step ({1.0/avg_time:.1f} steps/s)")
        print(f"Total time: {sum(step_times):.1f} seconds")

    if args.surface:
        values, _ = solver.sample_lattice()
        print(f"Lattice {solver.lattice.cubes}: "
              f"{solver.lattice.inside_fraction(values)*100:.1f}% of vertices inside the fluid")

    if args.snapshot:
        save_snapshot(solver, args.snapshot)
        print(f"Snapshot written to {args.snapshot}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
