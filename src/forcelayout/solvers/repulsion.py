"""
Direct pairwise repulsion, vectorized with numpy over unordered pairs.

For node_distance D, a pair at distance d < 2D repels with
    1                       if d < D/2
    -2/(3D) * d + 4/3       otherwise (falls linearly from 1 to 0 at 2D)
divided by d, applied equal and opposite on both nodes.
"""

from typing import Optional

import numpy as np

from .base import ForceSolver


MIN_PAIR_DISTANCE = 1e-3


def accumulate_pair_forces(body, node_ids, i_idx, j_idx, fx, fy) -> None:
    """Apply -f to the first node and +f to the second node of every pair."""
    n = len(node_ids)
    net_x = np.zeros(n)
    net_y = np.zeros(n)
    np.subtract.at(net_x, i_idx, fx)
    np.subtract.at(net_y, i_idx, fy)
    np.add.at(net_x, j_idx, fx)
    np.add.at(net_y, j_idx, fy)

    forces = body.forces
    for k, node_id in enumerate(node_ids):
        force = forces.get(node_id)
        if force is None:
            continue
        force.x += float(net_x[k])
        force.y += float(net_y[k])


class RepulsionSolver(ForceSolver):

    def __init__(self, body, options, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)
        super().__init__(body, options)

    def solve(self):
        present = list(self.body.iter_physics_nodes())
        n = len(present)
        if n < 2:
            return

        node_ids = [node_id for node_id, _ in present]
        pos = np.array([(node.x, node.y) for _, node in present], dtype=np.float64)

        node_distance = self.options.node_distance
        a = -2.0 / 3.0 / node_distance
        b = 4.0 / 3.0

        i_idx, j_idx = np.triu_indices(n, k=1)
        dx = pos[j_idx, 0] - pos[i_idx, 0]
        dy = pos[j_idx, 1] - pos[i_idx, 1]
        distance = np.sqrt(dx * dx + dy * dy)

        coincident = distance == 0
        if coincident.any():
            floor = np.maximum(0.1 * self._rng.random(int(coincident.sum())), MIN_PAIR_DISTANCE)
            distance[coincident] = floor
            dx[coincident] = floor

        repulsing_force = np.where(distance < 0.5 * node_distance, 1.0, a * distance + b)
        repulsing_force = np.where(distance < 2 * node_distance, repulsing_force / distance, 0.0)

        accumulate_pair_forces(self.body, node_ids, i_idx, j_idx,
                               dx * repulsing_force, dy * repulsing_force)
