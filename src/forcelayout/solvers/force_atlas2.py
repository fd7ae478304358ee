"""
ForceAtlas2-based repulsion and central gravity.

Repulsion falls off as 1/d instead of 1/d^2 and scales with node degree,
so hubs push harder:
    F = G * M_region * m_node * (degree + 1) / d^2 * (dx, dy)
"""

from typing import Optional, Tuple

from ..quadtree import Branch
from ..state import PhysicsNode
from .barnes_hut import BarnesHutSolver
from .base import ForceSolver
from .gravity import apply_central_gravity


class ForceAtlas2BasedRepulsionSolver(ForceSolver):
    """Barnes-Hut traversal with the degree-weighted ForceAtlas2 law."""

    def __init__(self, body, options, seed: Optional[int] = None):
        self._tree_solver = BarnesHutSolver(body, options, force_law=self._degree_weighted_law, seed=seed)
        super().__init__(body, options)

    def set_options(self, options):
        self.options = options
        self._tree_solver.set_options(options)

    @property
    def last_tree(self):
        return self._tree_solver.last_tree

    def solve(self):
        self._tree_solver.solve()

    def _degree_weighted_law(self, distance, dx, dy, node: PhysicsNode, branch: Branch) -> Tuple[float, float]:
        degree = self.body.degree(node.id) + 1
        gravity_force = (self.options.gravitational_constant * branch.mass * node.mass * degree
                         / distance ** 2)
        return dx * gravity_force, dy * gravity_force


class ForceAtlas2BasedCentralGravitySolver(ForceSolver):
    """Linear pull to the origin, scaled by mass and degree."""

    def solve(self):
        apply_central_gravity(self.body, self._calculate_forces)

    def _calculate_forces(self, distance, dx, dy, node: PhysicsNode) -> Tuple[float, float]:
        if distance > 0:
            degree = self.body.degree(node.id) + 1
            gravity_force = self.options.central_gravity * degree * node.mass
            return dx * gravity_force, dy * gravity_force
        return 0.0, 0.0
