"""
Central gravity: keeps disconnected components from drifting apart forever.

Every physics node is pulled toward the origin with a constant-magnitude
force of central_gravity (direction (-x, -y) / d).
"""

import math
from typing import Callable, Tuple

from ..state import PhysicsNode
from .base import ForceSolver


def apply_central_gravity(body, law: Callable[[float, float, float, PhysicsNode], Tuple[float, float]]) -> None:
    """Add law(distance, dx, dy, node) to every physics node, with (dx, dy) pointing at the origin."""
    forces = body.forces
    for node_id, node in body.iter_physics_nodes():
        force = forces.get(node_id)
        if force is None:
            continue
        dx = -node.x
        dy = -node.y
        distance = math.sqrt(dx * dx + dy * dy)
        fx, fy = law(distance, dx, dy, node)
        force.x += fx
        force.y += fy


class CentralGravitySolver(ForceSolver):

    def solve(self):
        apply_central_gravity(self.body, self._calculate_forces)

    def _calculate_forces(self, distance, dx, dy, node: PhysicsNode) -> Tuple[float, float]:
        gravity_force = 0.0 if distance == 0 else self.options.central_gravity / distance
        return dx * gravity_force, dy * gravity_force
