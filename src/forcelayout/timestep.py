"""
Adaptive timestep control.

Every adaptive_interval ticks the engine takes an exploratory step at twice
the timestep, reverts it, then takes two steps at the normal timestep. If the
two normal steps end within POSITION_THRESHOLD of where the double step went,
the timestep grows by GROWTH_FACTOR; otherwise it shrinks back toward the
configured base timestep.
"""

import numpy as np

from .config import PhysicsConfig
from .context import EngineState
from .logger import Logger


POSITION_THRESHOLD = 0.3
GROWTH_FACTOR = 1.2


class AdaptiveTimestepController:

    def __init__(self, config: PhysicsConfig):
        self.config = config

    def set_options(self, config: PhysicsConfig) -> None:
        self.config = config

    def revert(self, body, state: EngineState) -> None:
        """
        Undo the last step for every node that has a snapshot.

        The positions reached by the undone step are kept in
        state.reference_state for evaluate_step_quality(). Snapshots of nodes
        that no longer exist are dropped.
        """
        nodes = body.nodes
        velocities = body.velocities
        state.reference_state = {}

        for node_id in list(state.previous_states):
            node = nodes.get(node_id)
            if node is None:
                del state.previous_states[node_id]
                continue
            if not node.physics:
                continue
            previous = state.previous_states[node_id]
            state.reference_state[node_id] = (node.x, node.y)
            velocity = velocities.get(node_id)
            if velocity is not None:
                velocity.x = previous.vx
                velocity.y = previous.vy
            node.x = previous.x
            node.y = previous.y

    def evaluate_step_quality(self, body, state: EngineState) -> bool:
        """
        True when every node in the reference state is within
        POSITION_THRESHOLD of its reference position.

        Nodes that appeared after the reference was taken are not checked.
        """
        nodes = body.nodes
        pairs = [
            (nodes[node_id].x, nodes[node_id].y, ref_x, ref_y)
            for node_id, (ref_x, ref_y) in state.reference_state.items()
            if node_id in nodes
        ]
        if not pairs:
            return True
        data = np.array(pairs, dtype=np.float64)
        dpos = np.hypot(data[:, 0] - data[:, 2], data[:, 1] - data[:, 3])
        return bool(np.all(dpos <= POSITION_THRESHOLD))

    def adjust_timestep(self, body, state: EngineState) -> None:
        """Grow the timestep after a good step, shrink it toward the base after a bad one."""
        base_timestep = self.config.timestep

        if self.evaluate_step_quality(body, state):
            state.timestep = GROWTH_FACTOR * state.timestep
        else:
            if state.timestep / GROWTH_FACTOR < base_timestep:
                state.timestep = base_timestep
            else:
                # still well above the base: check again on the next tick
                state.adaptive_counter = -1
                state.timestep = max(base_timestep, state.timestep / GROWTH_FACTOR)
            Logger.log(f"Adaptive step rejected, timestep now {state.timestep:.4g}",
                       component=Logger.Component.TIMESTEP)
