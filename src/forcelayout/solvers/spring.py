"""
Spring (edge) forces.

For each connected physics edge:
    F = k * (L - d) / d * (x_from - x_to, y_from - y_to)
added to the from-node and subtracted from the to-node.
"""

import math

from ..logger import Logger
from ..state import PhysicsNode
from .base import ForceSolver


MIN_SPRING_DISTANCE = 0.01


class SpringSolver(ForceSolver):

    def solve(self):
        body = self.body
        nodes = body.nodes
        for edge_id in body.physics_edge_indices:
            edge = body.edges.get(edge_id)
            if edge is None or not edge.connected or edge.to_id == edge.from_id:
                continue
            from_node = nodes.get(edge.from_id)
            to_node = nodes.get(edge.to_id)
            if from_node is None or to_node is None:
                Logger.log(f"Skipping spring {edge_id!r}: endpoint missing until next re-index",
                           component=Logger.Component.SOLVER)
                continue

            edge_length = self.options.spring_length if edge.length is None else edge.length
            spring_constant = (self.options.spring_constant if edge.spring_constant is None
                               else edge.spring_constant)
            self._calculate_spring_force(from_node, to_node, edge_length, spring_constant)

    def _calculate_spring_force(self, node1: PhysicsNode, node2: PhysicsNode,
                                edge_length: float, spring_constant: float) -> None:
        dx = node1.x - node2.x
        dy = node1.y - node2.y
        distance = max(math.sqrt(dx * dx + dy * dy), MIN_SPRING_DISTANCE)

        spring_force = spring_constant * (edge_length - distance) / distance
        fx = dx * spring_force
        fy = dy * spring_force

        forces = self.body.forces
        force1 = forces.get(node1.id)
        if force1 is not None:
            force1.x += fx
            force1.y += fy
        force2 = forces.get(node2.id)
        if force2 is not None:
            force2.x -= fx
            force2.y -= fy
