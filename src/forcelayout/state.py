"""
Node and edge state representation.

Positions and velocities are plain float64 scalars per node; they are owned by
the engine during a tick and read by renderers between ticks.
"""

from dataclasses import dataclass, field
from typing import Hashable, Optional


NodeId = Hashable
EdgeId = Hashable


@dataclass
class FixedAxes:
    """Per-axis pinning. A fixed axis is never integrated."""
    x: bool = False
    y: bool = False

    @property
    def both(self) -> bool:
        return self.x and self.y


@dataclass
class Vector:
    """Mutable 2-D accumulator used for forces and velocities."""
    x: float = 0.0
    y: float = 0.0

    @property
    def magnitude(self) -> float:
        return (self.x * self.x + self.y * self.y) ** 0.5


@dataclass
class PhysicsNode:
    """
    A graph node as seen by the physics engine.

    Attributes:
        id: Unique node identifier.
        x, y: Position; None until seeded by layout.seed_positions().
        mass: Inertial mass, must be > 0. Clusters carry the summed mass of
            the nodes they stand in for.
        fixed: Per-axis pinning.
        physics: Whether the node takes part in the simulation.
        hidden: Hidden nodes are excluded from the physics index.
        clustered: Set by the clustering collaborator when the node is
            represented by a cluster node.
        radius: Visual radius used by avoid-overlap terms (0 = unknown).
        level: Hierarchical level (hierarchical solvers only).
        predefined_position: True when both coordinates were given up front.
    """
    id: NodeId
    x: Optional[float] = None
    y: Optional[float] = None
    mass: float = 1.0
    fixed: FixedAxes = field(default_factory=FixedAxes)
    physics: bool = True
    hidden: bool = False
    clustered: bool = False
    radius: float = 0.0
    level: Optional[int] = None
    predefined_position: bool = False

    def __post_init__(self):
        if isinstance(self.fixed, bool):
            self.fixed = FixedAxes(self.fixed, self.fixed)
        if not self.mass > 0:
            raise ValueError(f"Node {self.id}: mass must be > 0 (got {self.mass})")
        if self.x is not None and self.y is not None:
            self.x = float(self.x)
            self.y = float(self.y)
            self.predefined_position = True

    @property
    def has_position(self) -> bool:
        return self.x is not None and self.y is not None

    @property
    def is_physics_relevant(self) -> bool:
        """Visible, not absorbed into a cluster, and not skipping physics."""
        return self.physics and not self.hidden and not self.clustered

    @property
    def is_visible(self) -> bool:
        return not self.hidden and not self.clustered


@dataclass
class PhysicsEdge:
    """
    A spring between two nodes.

    Attributes:
        id: Unique edge identifier.
        from_id, to_id: Endpoint node ids.
        length: Rest length override (None = solver spring_length).
        spring_constant: Stiffness override (None = solver spring_constant).
        physics: Whether the edge contributes spring forces.
        hidden, clustered: Visibility flags, as for nodes.
        connected: Both endpoints present and visible; maintained by
            PhysicsBody.update_physics_data().
    """
    id: EdgeId
    from_id: NodeId
    to_id: NodeId
    length: Optional[float] = None
    spring_constant: Optional[float] = None
    physics: bool = True
    hidden: bool = False
    clustered: bool = False
    connected: bool = False

    @property
    def is_physics_relevant(self) -> bool:
        return self.physics and not self.hidden and not self.clustered


@dataclass
class NodeSnapshot:
    """Position and velocity of a node before its last integration step."""
    x: float
    y: float
    vx: float
    vy: float
