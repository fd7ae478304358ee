"""
Solvers for hierarchical (levelled) layouts.

HierarchicalRepulsionSolver: only nodes on the same level push each other
apart, with a short-range quadratic falloff so levels keep their spacing.

HierarchicalSpringSolver: springs inside a level act at half strength;
springs that cross levels are summed per node and clamped to unit magnitude
per axis. The mean force is then removed so the hierarchy as a whole does not
drift.
"""

import math

import numpy as np

from ..logger import Logger
from .base import ForceSolver
from .repulsion import accumulate_pair_forces


STEEPNESS = 0.05
SAME_LEVEL_FACTOR = 0.5
MAX_CROSS_LEVEL_FORCE = 1.0


class HierarchicalRepulsionSolver(ForceSolver):

    def set_options(self, options):
        self.options = options
        self.overlap_avoidance_factor = max(0.0, min(1.0, options.avoid_overlap or 0.0))

    def solve(self):
        present = list(self.body.iter_physics_nodes())
        n = len(present)
        if n < 2:
            return

        node_ids = [node_id for node_id, _ in present]
        pos = np.array([(node.x, node.y) for _, node in present], dtype=np.float64)
        radii = np.array([node.radius or 0.0 for _, node in present], dtype=np.float64)
        levels = np.empty(n, dtype=object)
        levels[:] = [node.level for _, node in present]

        i_idx, j_idx = np.triu_indices(n, k=1)
        same_level = levels[i_idx] == levels[j_idx]

        these_nodes_distance = (self.options.node_distance
                                + self.overlap_avoidance_factor * (radii[i_idx] / 2 + radii[j_idx] / 2))

        dx = pos[j_idx, 0] - pos[i_idx, 0]
        dy = pos[j_idx, 1] - pos[i_idx, 1]
        distance = np.sqrt(dx * dx + dy * dy)

        repulsing_force = np.where(
            distance < these_nodes_distance,
            (STEEPNESS * these_nodes_distance) ** 2 - (STEEPNESS * distance) ** 2,
            0.0,
        )
        nonzero = distance != 0
        repulsing_force = np.where(nonzero, repulsing_force / np.where(nonzero, distance, 1.0), repulsing_force)
        repulsing_force = np.where(same_level.astype(bool), repulsing_force, 0.0)

        accumulate_pair_forces(self.body, node_ids, i_idx, j_idx,
                               dx * repulsing_force, dy * repulsing_force)


class HierarchicalSpringSolver(ForceSolver):

    def solve(self):
        body = self.body
        nodes = body.nodes
        forces = body.forces
        present_ids = [node_id for node_id, _ in body.iter_physics_nodes()]

        spring_fx = {node_id: 0.0 for node_id in present_ids}
        spring_fy = {node_id: 0.0 for node_id in present_ids}

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

            dx = from_node.x - to_node.x
            dy = from_node.y - to_node.y
            distance = math.sqrt(dx * dx + dy * dy)
            distance = 0.01 if distance == 0 else distance

            spring_force = spring_constant * (edge_length - distance) / distance
            fx = dx * spring_force
            fy = dy * spring_force

            if to_node.level != from_node.level:
                if edge.to_id in spring_fx:
                    spring_fx[edge.to_id] -= fx
                    spring_fy[edge.to_id] -= fy
                if edge.from_id in spring_fx:
                    spring_fx[edge.from_id] += fx
                    spring_fy[edge.from_id] += fy
            else:
                to_force = forces.get(edge.to_id)
                if to_force is not None:
                    to_force.x -= SAME_LEVEL_FACTOR * fx
                    to_force.y -= SAME_LEVEL_FACTOR * fy
                from_force = forces.get(edge.from_id)
                if from_force is not None:
                    from_force.x += SAME_LEVEL_FACTOR * fx
                    from_force.y += SAME_LEVEL_FACTOR * fy

        for node_id in present_ids:
            force = forces.get(node_id)
            if force is None:
                continue
            force.x += min(MAX_CROSS_LEVEL_FORCE, max(-MAX_CROSS_LEVEL_FORCE, spring_fx[node_id]))
            force.y += min(MAX_CROSS_LEVEL_FORCE, max(-MAX_CROSS_LEVEL_FORCE, spring_fy[node_id]))

        # retain energy balance
        tracked = [forces[node_id] for node_id in present_ids if node_id in forces]
        if not tracked:
            return
        correction_fx = sum(f.x for f in tracked) / len(tracked)
        correction_fy = sum(f.y for f in tracked) / len(tracked)
        for force in tracked:
            force.x -= correction_fx
            force.y -= correction_fy
