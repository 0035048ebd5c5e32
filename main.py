"""
Dinosaur Ecosystem Simulator - CLI Entry Point

Usage:
    python main.py --steps 500
    python main.py --config my_config.json --seed 42 --steps 2000 --snapshot-every 100
    python main.py --dump-config defaults.json
"""

import argparse
import logging
import sys
import time


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dinosaur Ecosystem Simulator - headless runs of the grid ecosystem",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --steps 500                                 Run 500 ticks with defaults
  python main.py --config cfg.json --seed 1 --steps 2000     Run from a JSON config
  python main.py --steps 1000 --snapshot-every 100           Also write grid snapshots
  python main.py --dump-config defaults.json                 Write the default config
        """,
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to JSON config file (default: built-in defaults)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override random seed (overrides config value)",
    )
    parser.add_argument(
        "--steps",
        type=int,
        default=1000,
        help="Maximum ticks to run; stops early if the ecosystem collapses (default: 1000)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Override output directory",
    )
    parser.add_argument(
        "--snapshot-every",
        type=int,
        default=None,
        help="Write a JSON snapshot every N ticks (0 = never)",
    )
    parser.add_argument(
        "--print-every",
        type=int,
        default=50,
        help="Print a status line every N ticks (default: 50)",
    )
    parser.add_argument(
        "--dump-config",
        type=str,
        default=None,
        help="Write the default config to this path and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def run_single(config_path: str | None, seed_override: int | None = None,
               steps: int = 1000, output_dir: str | None = None,
               snapshot_every: int | None = None, print_every: int = 50) -> dict:
    """Run one headless simulation and write its output directory."""
    from src.core.config import get_default_config, load_config
    from src.logging.run_manager import RunManager
    from src.simulation.engine import SimulationEngine
    from src.simulation.metrics import MetricsCollector

    config = load_config(config_path) if config_path else get_default_config()

    if seed_override is not None:
        config.world.seed = seed_override
    if output_dir is not None:
        config.run.output_dir = output_dir
    if snapshot_every is not None:
        config.run.snapshot_every = snapshot_every

    print("[Dinosaur Ecosystem Simulator] Single run")
    print(f"  Config: {config_path or '(defaults)'}")
    print(f"  Grid: {config.world.width}x{config.world.depth}")
    print(f"  Seed: {config.world.seed}")
    print(f"  Max steps: {steps}")
    print(f"  Output: {config.run.output_dir}")
    print()

    engine = SimulationEngine(config)
    metrics = MetricsCollector(keep_history=False)
    run_manager = RunManager(config)

    counts = engine.species_counts()
    print("  Initial population: " + ", ".join(f"{s.label} {n}" for s, n in counts.items()))

    def on_tick(step: int, eng: SimulationEngine) -> None:
        kpis = metrics.collect(eng)
        run_manager.log_tick(kpis)

        every = eng.config.run.snapshot_every
        if every > 0 and step % every == 0:
            run_manager.save_snapshot(eng)

        if print_every > 0 and step % print_every == 0:
            print(
                f"  Step {step:6d} | {kpis['time_of_day']:5s} | {kpis['weather']:8s} | "
                f"Herb: {kpis['herbivores']:5d} | Carn: {kpis['carnivores']:5d} | "
                f"Infected: {kpis['infected_count']:4d} | Veg: {kpis['avg_vegetation']:.1f}"
            )

    engine.on_tick = on_tick

    start_time = time.time()
    result = engine.run(steps)
    elapsed = time.time() - start_time

    print()
    print("[Result]")
    print(f"  Steps: {result.steps_run}")
    print(f"  Viable: {result.viable}")
    if result.extinction_step is not None:
        print(f"  Collapsed at step: {result.extinction_step}")
    for name, n in result.final_counts.items():
        print(f"  {name:15s} {n:6d}")
    print(f"  Elapsed: {elapsed:.1f}s")

    summary = {
        "seed": result.seed,
        "steps_requested": result.steps_requested,
        "steps_run": result.steps_run,
        "viable": result.viable,
        "extinction_step": result.extinction_step,
        "final_counts": result.final_counts,
        "births": sum(s.births for s in result.tick_stats_history),
        "deaths": sum(s.total_deaths for s in result.tick_stats_history),
        "elapsed_seconds": round(elapsed, 2),
    }
    run_manager.finalize(summary)
    print(f"  Output saved to: {run_manager.run_dir}")
    return summary


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.dump_config:
        from src.core.config import get_default_config, save_config
        save_config(get_default_config(), args.dump_config)
        print(f"Default config written to {args.dump_config}")
        return

    if args.steps < 0:
        print("Error: --steps must be >= 0")
        sys.exit(1)

    try:
        run_single(
            args.config,
            seed_override=args.seed,
            steps=args.steps,
            output_dir=args.output,
            snapshot_every=args.snapshot_every,
            print_every=args.print_every,
        )
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
