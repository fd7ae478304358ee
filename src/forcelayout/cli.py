"""
Command-line interface for graph layout.

Usage:
    forcelayout --graph examples/small_graph.yaml --config examples/barnes_hut.yaml --out output/
"""

import argparse
import sys
from pathlib import Path

from .config import PhysicsConfig, load_config
from .engine import PhysicsEngine
from .exporters import export_results
from .graph_loader import load_graph
from .logger import Logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Force-directed graph layout with Barnes-Hut, repulsion and spring solvers"
    )
    parser.add_argument(
        "--graph", "-g",
        type=Path,
        required=True,
        help="Path to YAML graph file (nodes and edges)"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to YAML physics configuration (defaults apply if omitted)"
    )
    parser.add_argument(
        "--out", "-o",
        type=Path,
        default=Path("output"),
        help="Output directory"
    )
    parser.add_argument(
        "--name", "-n",
        type=str,
        default=None,
        help="Run name (defaults to the graph file name)"
    )
    parser.add_argument(
        "--iterations", "-i",
        type=int,
        default=None,
        help="Stabilization iteration budget (overrides config)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for initial positions and solver jitter"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress output except errors"
    )
    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    Logger.initialize()

    # Load and validate inputs
    try:
        config = load_config(args.config) if args.config else PhysicsConfig()
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        body = load_graph(args.graph)
    except FileNotFoundError:
        print(f"Error: Graph file not found: {args.graph}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    run_name = args.name or args.graph.stem

    if not args.quiet:
        print("Running layout stabilization...")
        print(f"  Solver: {config.solver}")
        print(f"  Nodes: {len(body.nodes)}, edges: {len(body.edges)}")
        print(f"  Budget: {args.iterations or config.stabilization.iterations} iterations")

    engine = PhysicsEngine(body, config, seed=args.seed)
    engine.data_changed()
    result = engine.run_stabilization(args.iterations)

    paths = export_results(engine, result, args.out, run_name)

    if not args.quiet:
        print()
        print("=" * 50)
        print("LAYOUT COMPLETE")
        print("=" * 50)
        print(f"  Iterations: {result.iterations} / {result.total}")
        print(f"  Converged: {'Yes' if result.converged else 'No (budget exhausted)'}")
        print(f"  Final timestep: {engine.state.timestep:.4f}")
        print()
        print("Output files:")
        print(f"  CSV: {paths['csv']}")
        print(f"  Metadata: {paths['metadata']}")

    sys.exit(0)


if __name__ == "__main__":
    main()
