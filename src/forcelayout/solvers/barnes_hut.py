"""
Barnes-Hut repulsion solver.

Builds a quadtree over the physics nodes each tick and, for every node,
treats sufficiently distant regions as a single mass at their center of mass.
A region is far enough when size / distance < theta, tested here as
distance * (1 / size) > 1 / theta.

Force law (gravitational_constant < 0 repels):
    F = G * M_region * m_node / d^3 * (dx, dy)    (magnitude falls off as 1/d^2)
"""

import math
from typing import Callable, Optional, Tuple

import numpy as np

from ..quadtree import BarnesHutTree, Branch
from ..state import PhysicsNode
from .base import ForceSolver


ForceLaw = Callable[[float, float, float, PhysicsNode, Branch], Tuple[float, float]]


class BarnesHutSolver(ForceSolver):
    """
    Quadtree-approximated N-body repulsion.

    The force law is pluggable: ForceAtlas2BasedRepulsionSolver reuses this
    traversal with its own law.
    """

    def __init__(self, body, options, force_law: Optional[ForceLaw] = None, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)
        self._force_law = force_law or self._inverse_square_law
        self.last_tree: Optional[BarnesHutTree] = None
        super().__init__(body, options)

    def set_options(self, options):
        self.options = options
        self.theta_inversed = 1.0 / options.theta
        self.overlap_avoidance_factor = 1.0 - max(0.0, min(1.0, options.avoid_overlap or 0.0))

    def solve(self):
        if self.options.gravitational_constant == 0:
            return
        nodes = [node for _, node in self.body.iter_physics_nodes()]
        if not nodes:
            return

        tree = BarnesHutTree.build(nodes, self._rng)
        self.last_tree = tree

        forces = self.body.forces
        for node in nodes:
            force = forces.get(node.id)
            if force is None:
                continue
            fx, fy = self._get_force_contributions(tree.root, node)
            force.x += fx
            force.y += fy

    def _get_force_contributions(self, branch: Branch, node: PhysicsNode) -> Tuple[float, float]:
        fx = 0.0
        fy = 0.0
        for child in branch.children:
            cfx, cfy = self._get_force_contribution(child, node)
            fx += cfx
            fy += cfy
        return fx, fy

    def _get_force_contribution(self, branch: Branch, node: PhysicsNode) -> Tuple[float, float]:
        if branch.children_count == 0:
            return 0.0, 0.0

        dx = branch.center_x - node.x
        dy = branch.center_y - node.y
        distance = math.sqrt(dx * dx + dy * dy)

        # far enough away: the whole region acts as one mass
        if distance * branch.calc_size > self.theta_inversed:
            return self._calculate_forces(distance, dx, dy, node, branch)
        if branch.children_count == 4:
            return self._get_force_contributions(branch, node)
        if branch.data is not node:
            return self._calculate_forces(distance, dx, dy, node, branch)
        return 0.0, 0.0

    def _calculate_forces(self, distance, dx, dy, node: PhysicsNode, branch: Branch) -> Tuple[float, float]:
        if distance == 0:
            distance = 0.1
            dx = distance

        if self.overlap_avoidance_factor < 1 and node.radius:
            distance = max(0.1 + self.overlap_avoidance_factor * node.radius, distance - node.radius)

        return self._force_law(distance, dx, dy, node, branch)

    def _inverse_square_law(self, distance, dx, dy, node: PhysicsNode, branch: Branch) -> Tuple[float, float]:
        gravity_force = self.options.gravitational_constant * branch.mass * node.mass / distance ** 3
        return dx * gravity_force, dy * gravity_force
