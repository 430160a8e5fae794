"""
Command-line interface for OpinionSim.

Runs a single bounded-confidence simulation, prints a summary report
and optionally renders the trajectory.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .analysis.convergence import ConvergenceAnalyzer, DEFAULT_EPSILON
from .analysis.metrics import MetricsCollector
from .exceptions import ConfigurationError, OpinionSimError
from .logging_config import configure_from_env, enable_console_logging
from .simulation.engine import SimulationEngine, SimulationConfig
from .simulation.trajectory import Trajectory

logger = logging.getLogger(__name__)


def dump_snapshots(trajectory: Trajectory) -> None:
    """Print every agent's opinion at the first and last step."""
    for agent_id, value in enumerate(trajectory.first.values()):
        print(f"T0 [{agent_id}] -> {value:f}")
    for agent_id, value in enumerate(trajectory.last.values()):
        print(f"TN [{agent_id}] -> {value:f}")


def build_config(args: argparse.Namespace) -> SimulationConfig:
    """Map parsed arguments onto a validated SimulationConfig."""
    config = SimulationConfig(
        num_agents=args.agents,
        edge_probability=args.edge_probability,
        confidence_threshold=args.confidence,
        adaptation_rate=args.alpha,
        num_update_nodes=args.update_nodes,
        max_steps=args.max_steps,
        min_stationary=args.min_stationary,
        epsilon=args.epsilon,
        seed=args.seed,
    )
    config.validate()
    return config


def run_simulation_command(args: argparse.Namespace) -> int:
    """Run one simulation and report on it."""
    config = build_config(args)

    if args.output_dir and not args.show:
        import matplotlib
        matplotlib.use("Agg")

    engine = SimulationEngine(config)

    metrics_collector = MetricsCollector()
    engine.on_interaction(metrics_collector.record_interaction)
    engine.on_step(metrics_collector.record_step)

    print(f"Running simulation with {config.num_agents} agents "
          f"(seed {engine.state.seed})...")
    trajectory = engine.run()

    analyzer = ConvergenceAnalyzer(cluster_threshold=config.confidence_threshold)
    convergence = analyzer.analyze(trajectory)

    final_metrics = metrics_collector.finalize(
        engine.pool.graph,
        stop_reason=trajectory.stop_reason.value,
        cluster_count=convergence.cluster_count,
        consensus_reached=convergence.consensus_reached,
        variance_reduction=convergence.variance_reduction,
    )

    from .visualization.plots import TrajectoryPlotter
    plotter = TrajectoryPlotter(args.output_dir)

    report = plotter.create_summary_report(
        config.to_dict(),
        final_metrics.to_dict(),
        convergence.to_dict(),
        save_path="simulation_report.txt" if args.output_dir else None,
    )
    print("\n" + report)

    if args.dump:
        dump_snapshots(trajectory)

    if args.output_dir or args.show:
        save = args.output_dir is not None
        plotter.plot_snapshots(trajectory, "snapshots.png" if save else None)
        plotter.plot_trajectory(trajectory, "trajectory.png" if save else None)
        plotter.plot_stationary(
            metrics_collector.get_timeline(),
            min_stationary=config.min_stationary,
            save_path="stationary.png" if save else None,
        )
        if save:
            print(f"\nOutputs saved to: {args.output_dir}")

    if args.output_dir or args.show:
        import matplotlib.pyplot as plt
        if args.show:
            plt.show()
        plt.close('all')

    return 0


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    defaults = SimulationConfig()
    parser.add_argument(
        "-n", "--agents",
        type=int,
        default=defaults.num_agents,
        help=f"Number of agents (default: {defaults.num_agents})",
    )
    parser.add_argument(
        "-p", "--edge-probability",
        type=float,
        default=defaults.edge_probability,
        help=f"Edge probability of the random network (default: {defaults.edge_probability})",
    )
    parser.add_argument(
        "-c", "--confidence",
        type=float,
        default=defaults.confidence_threshold,
        help=f"Confidence threshold (default: {defaults.confidence_threshold})",
    )
    parser.add_argument(
        "-a", "--alpha",
        type=float,
        default=defaults.adaptation_rate,
        help=f"Adaptation rate in (0, 1] (default: {defaults.adaptation_rate})",
    )
    parser.add_argument(
        "-q", "--update-nodes",
        type=int,
        default=defaults.num_update_nodes,
        help=f"Agents picked per step (default: {defaults.num_update_nodes})",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=defaults.max_steps,
        help=f"Step budget (default: {defaults.max_steps})",
    )
    parser.add_argument(
        "--min-stationary",
        type=int,
        default=defaults.min_stationary,
        help=f"Unchanged steps needed to stop (default: {defaults.min_stationary})",
    )
    parser.add_argument(
        "--epsilon",
        type=float,
        default=DEFAULT_EPSILON,
        help=f"Opinion change tolerance (default: {DEFAULT_EPSILON})",
    )
    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "-o", "--output-dir",
        type=str,
        default=None,
        help="Directory for the report and figures",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Open the figures in a window",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print first and last opinions of every agent",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) or every step and interaction (-vv)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opinion_sim",
        description="""
OpinionSim - Bounded-confidence opinion dynamics on random networks

Agents start with uniform random opinions in [0, 1) on a random graph
and move toward neighbors whose opinions are within the confidence
threshold. The run stops after enough unchanged steps or at the step
budget.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser(
        "run",
        help="Run one simulation",
    )
    _add_run_arguments(run_parser)

    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__
        print(f"OpinionSim v{__version__}")
        return 0

    # No subcommand runs the default simulation
    if args.command is None:
        args = parser.parse_args(["run"])

    if args.verbose >= 2:
        enable_console_logging(level="DEBUG")
    elif args.verbose == 1:
        enable_console_logging(level="INFO")
    else:
        configure_from_env()

    try:
        return run_simulation_command(args)
    except ConfigurationError as e:
        parser.error(str(e))
    except OpinionSimError as e:
        logger.error("Simulation failed: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
