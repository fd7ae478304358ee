"""
Force solvers.

Each solver adds its contribution into body.forces. The engine runs them in
the order gravity -> nodes (repulsion) -> edges (springs) every step.

Usage:
    from forcelayout.solvers import create_solvers
    solvers = create_solvers(config, body, seed=7)
"""

from dataclasses import dataclass
from typing import Optional

from ..config import PhysicsConfig
from .base import ForceSolver
from .barnes_hut import BarnesHutSolver
from .force_atlas2 import ForceAtlas2BasedCentralGravitySolver, ForceAtlas2BasedRepulsionSolver
from .gravity import CentralGravitySolver
from .hierarchical import HierarchicalRepulsionSolver, HierarchicalSpringSolver
from .repulsion import RepulsionSolver
from .spring import SpringSolver


@dataclass
class SolverSet:
    """The three solvers of one configuration, in execution order."""
    gravity: ForceSolver
    nodes: ForceSolver
    edges: ForceSolver

    def __iter__(self):
        return iter((self.gravity, self.nodes, self.edges))


def create_solvers(config: PhysicsConfig, body, seed: Optional[int] = None) -> SolverSet:
    """
    Instantiate the solver set selected by config.solver.

    Args:
        config: Physics configuration; its model_options section parameterizes
            all three solvers.
        body: Physics body the solvers read from and write into.
        seed: Seed for the solvers' jitter generators.

    Returns:
        SolverSet(gravity, nodes, edges).
    """
    options = config.model_options

    if config.solver == "force_atlas2_based":
        return SolverSet(
            gravity=ForceAtlas2BasedCentralGravitySolver(body, options),
            nodes=ForceAtlas2BasedRepulsionSolver(body, options, seed=seed),
            edges=SpringSolver(body, options),
        )
    if config.solver == "repulsion":
        return SolverSet(
            gravity=CentralGravitySolver(body, options),
            nodes=RepulsionSolver(body, options, seed=seed),
            edges=SpringSolver(body, options),
        )
    if config.solver == "hierarchical_repulsion":
        return SolverSet(
            gravity=CentralGravitySolver(body, options),
            nodes=HierarchicalRepulsionSolver(body, options),
            edges=HierarchicalSpringSolver(body, options),
        )
    if config.solver == "barnes_hut":
        return SolverSet(
            gravity=CentralGravitySolver(body, options),
            nodes=BarnesHutSolver(body, options, seed=seed),
            edges=SpringSolver(body, options),
        )
    raise ValueError(f"Unknown solver: {config.solver}")


__all__ = [
    "ForceSolver",
    "SolverSet",
    "create_solvers",
    "BarnesHutSolver",
    "ForceAtlas2BasedRepulsionSolver",
    "ForceAtlas2BasedCentralGravitySolver",
    "RepulsionSolver",
    "HierarchicalRepulsionSolver",
    "HierarchicalSpringSolver",
    "SpringSolver",
    "CentralGravitySolver",
]
