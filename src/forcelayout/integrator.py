"""
Semi-implicit Euler integrator with viscous damping.

Per free axis:
    a = (f - damping * v) / m
    v_new = clamp(v + a * dt, -max_velocity, max_velocity)
    x_new = x + v_new * dt

A fixed axis is not integrated: its force and velocity are zeroed and its
position is left untouched.
"""

from dataclasses import dataclass

from .config import PhysicsConfig
from .context import EngineState
from .state import NodeSnapshot, PhysicsNode, Vector


# average speed below which the adaptive timestep may run
VELOCITY_ADAPTIVE_THRESHOLD = 5.0
DEFAULT_MAX_VELOCITY = 1e9


@dataclass
class MoveResult:
    """Speed statistics of one integration step over all physics nodes."""
    max_velocity: float
    average_velocity: float
    node_count: int


class Integrator:

    def __init__(self, config: PhysicsConfig):
        """
        Args:
            config: Physics configuration (damping comes from the selected
                solver section, velocity limits and wind from the top level).
        """
        self.set_options(config)

    def set_options(self, config: PhysicsConfig) -> None:
        self.config = config

    def calculate_component_velocity(self, v: float, f: float, m: float, timestep: float) -> float:
        """
        New velocity for one coordinate.

        Args:
            v: Current velocity component.
            f: Accumulated force component.
            m: Node mass (> 0).
            timestep: Step size.

        Returns:
            Updated, clamped velocity component.
        """
        df = self.config.model_options.damping * v
        a = (f - df) / m

        v += a * timestep

        max_v = self.config.max_velocity or DEFAULT_MAX_VELOCITY
        if abs(v) > max_v:
            v = max_v if v > 0 else -max_v
        return v

    def perform_step(self, node: PhysicsNode, force: Vector, velocity: Vector, state: EngineState) -> float:
        """
        Advance one node by state.timestep and return its resulting speed.

        The pre-step position and velocity are stored in state.previous_states
        so the step can be reverted.
        """
        wind = self.config.wind
        if wind:
            force.x += wind.x
            force.y += wind.y

        state.previous_states[node.id] = NodeSnapshot(x=node.x, y=node.y, vx=velocity.x, vy=velocity.y)

        if not node.fixed.x:
            velocity.x = self.calculate_component_velocity(velocity.x, force.x, node.mass, state.timestep)
            node.x += velocity.x * state.timestep
        else:
            force.x = 0.0
            velocity.x = 0.0

        if not node.fixed.y:
            velocity.y = self.calculate_component_velocity(velocity.y, force.y, node.mass, state.timestep)
            node.y += velocity.y * state.timestep
        else:
            force.y = 0.0
            velocity.y = 0.0

        return velocity.magnitude

    def move_nodes(self, body, state: EngineState) -> MoveResult:
        """
        Advance every physics node and update the convergence flags.

        Sets state.stabilized (max speed < min_velocity) and
        state.adaptive_timestep_enabled (average speed < 5, never with no
        nodes to average over).
        """
        max_node_velocity = 0.0
        total_velocity = 0.0
        count = 0

        for node_id, node in body.iter_physics_nodes():
            force = body.forces.setdefault(node_id, Vector())
            velocity = body.velocities.setdefault(node_id, Vector())
            node_velocity = self.perform_step(node, force, velocity, state)
            max_node_velocity = max(max_node_velocity, node_velocity)
            total_velocity += node_velocity
            count += 1

        average_velocity = total_velocity / count if count else 0.0
        state.adaptive_timestep_enabled = count > 0 and average_velocity < VELOCITY_ADAPTIVE_THRESHOLD
        state.stabilized = max_node_velocity < self.config.min_velocity

        return MoveResult(max_velocity=max_node_velocity, average_velocity=average_velocity, node_count=count)
