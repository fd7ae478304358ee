"""
Export layout results to CSV and JSON.

CSV columns (exact schema):
    node_id, x, y, vx, vy, mass, fixed_x, fixed_y
"""

import csv
import json
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import config_to_dict
from .stabilization import StabilizationResult


CSV_COLUMNS = [
    "node_id",
    "x", "y",
    "vx", "vy",
    "mass",
    "fixed_x", "fixed_y",
]


def export_positions_csv(body, path: Path) -> None:
    """
    Export one row per node with its final position and velocity.

    Args:
        body: PhysicsBody after stabilization.
        path: Output CSV path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)

        for node_id, node in body.nodes.items():
            velocity = body.velocities.get(node_id)
            row = [
                node_id,
                node.x if node.x is not None else "",
                node.y if node.y is not None else "",
                velocity.x if velocity is not None else 0.0,
                velocity.y if velocity is not None else 0.0,
                node.mass,
                1 if node.fixed.x else 0,
                1 if node.fixed.y else 0,
            ]
            writer.writerow(row)


def get_git_commit() -> Optional[str]:
    """Get current git commit hash if available."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode == 0:
        return result.stdout.strip()[:12]
    return None


def export_metadata(engine, result: Optional[StabilizationResult], path: Path) -> None:
    """
    Export metadata JSON with config and stabilization summary.

    Args:
        engine: PhysicsEngine that produced the layout.
        result: Outcome of the stabilization run (None if none ran).
        path: Output JSON path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    body = engine.body
    metadata = {
        "timestamp": datetime.now().isoformat(),
        "git_commit": get_git_commit(),
        "seed": engine.seed,
        "config": config_to_dict(engine.config),
        "summary": {
            "n_nodes": len(body.nodes),
            "n_physics_nodes": len(body.physics_node_indices),
            "n_edges": len(body.edges),
            "iterations": result.iterations if result else 0,
            "iteration_budget": result.total if result else 0,
            "converged": result.converged if result else False,
            "phase": result.phase.value if result else engine.phase.value,
            "final_timestep": engine.state.timestep,
        }
    }

    with open(path, 'w') as f:
        json.dump(metadata, f, indent=2, default=str)


def export_results(engine, result: Optional[StabilizationResult], out_dir: Path, run_name: str) -> dict:
    """
    Export all results to output directory.

    Args:
        engine: PhysicsEngine that produced the layout.
        result: Outcome of the stabilization run.
        out_dir: Output directory.
        run_name: Base name for output files.

    Returns:
        Dict with paths to exported files.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    csv_path = out_dir / f"{run_name}.csv"
    json_path = out_dir / f"{run_name}_metadata.json"

    export_positions_csv(engine.body, csv_path)
    export_metadata(engine, result, json_path)

    return {
        "csv": str(csv_path),
        "metadata": str(json_path)
    }
