"""
Physics body: the node/edge index shared by every solver.

Nodes and edges can have physics toggled on or off, be hidden, or be absorbed
into a cluster. update_physics_data() rebuilds the id lists of physics-relevant
entries so solvers never re-check those flags inside a tick.
"""

from typing import Dict, Iterable, Iterator, List, Tuple

import numpy as np

from .exceptions import EdgeNotFoundError, NodeNotFoundError
from .logger import Logger
from .state import EdgeId, NodeId, PhysicsEdge, PhysicsNode, Vector


class PhysicsBody:
    """
    Node/edge store plus the per-node force and velocity tables.

    Forces are rebuilt from scratch every tick. Velocities persist across
    ticks and across re-indexing; they are created lazily for new physics
    nodes and pruned once a node leaves the store.
    """

    def __init__(self):
        self.nodes: Dict[NodeId, PhysicsNode] = {}
        self.edges: Dict[EdgeId, PhysicsEdge] = {}
        self.physics_node_indices: List[NodeId] = []
        self.physics_edge_indices: List[EdgeId] = []
        self.forces: Dict[NodeId, Vector] = {}
        self.velocities: Dict[NodeId, Vector] = {}
        self._degrees: Dict[NodeId, int] = {}

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def add_node(self, node: PhysicsNode) -> PhysicsNode:
        self.nodes[node.id] = node
        return node

    def add_nodes(self, nodes: Iterable[PhysicsNode]) -> None:
        for node in nodes:
            self.add_node(node)

    def get_node(self, node_id: NodeId) -> PhysicsNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(f"Node {node_id!r} not found in physics body.") from None

    def remove_node(self, node_id: NodeId) -> PhysicsNode:
        """Remove a node. Edges touching it stay until the next re-index marks them disconnected."""
        if node_id not in self.nodes:
            raise NodeNotFoundError(f"Node {node_id!r} not found in physics body.")
        return self.nodes.pop(node_id)

    def add_edge(self, edge: PhysicsEdge) -> PhysicsEdge:
        self.edges[edge.id] = edge
        return edge

    def add_edges(self, edges: Iterable[PhysicsEdge]) -> None:
        for edge in edges:
            self.add_edge(edge)

    def get_edge(self, edge_id: EdgeId) -> PhysicsEdge:
        try:
            return self.edges[edge_id]
        except KeyError:
            raise EdgeNotFoundError(f"Edge {edge_id!r} not found in physics body.") from None

    def remove_edge(self, edge_id: EdgeId) -> PhysicsEdge:
        if edge_id not in self.edges:
            raise EdgeNotFoundError(f"Edge {edge_id!r} not found in physics body.")
        return self.edges.pop(edge_id)

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def update_physics_data(self) -> None:
        """
        Rebuild the physics-relevant id lists after nodes or edges changed.

        Forces are reset because they are recalculated; velocities persist.
        """
        self.forces = {}
        self.physics_node_indices = [
            node_id for node_id, node in self.nodes.items() if node.is_physics_relevant
        ]

        self.physics_edge_indices = []
        self._degrees = {}
        for edge_id, edge in self.edges.items():
            from_node = self.nodes.get(edge.from_id)
            to_node = self.nodes.get(edge.to_id)
            edge.connected = (
                from_node is not None and to_node is not None
                and from_node.is_visible and to_node.is_visible
            )
            if edge.is_physics_relevant:
                self.physics_edge_indices.append(edge_id)
                if edge.connected:
                    self._degrees[edge.from_id] = self._degrees.get(edge.from_id, 0) + 1
                    self._degrees[edge.to_id] = self._degrees.get(edge.to_id, 0) + 1

        for node_id in self.physics_node_indices:
            self.forces[node_id] = Vector()
            if node_id not in self.velocities:
                self.velocities[node_id] = Vector()

        stale = [node_id for node_id in self.velocities if node_id not in self.nodes]
        for node_id in stale:
            del self.velocities[node_id]

        Logger.log(f"Physics index rebuilt: {len(self.physics_node_indices)} nodes, "
                   f"{len(self.physics_edge_indices)} edges, {len(stale)} velocities pruned",
                   component=Logger.Component.BODY)

    def reset_forces(self) -> None:
        """Zero the accumulator of every physics node (once per tick, before any solver)."""
        for node_id in self.physics_node_indices:
            force = self.forces.get(node_id)
            if force is None:
                self.forces[node_id] = Vector()
            else:
                force.x = 0.0
                force.y = 0.0

    def iter_physics_nodes(self) -> Iterator[Tuple[NodeId, PhysicsNode]]:
        """Yield (id, node) for indexed nodes, skipping ids deleted since the last re-index."""
        nodes = self.nodes
        for node_id in self.physics_node_indices:
            node = nodes.get(node_id)
            if node is not None:
                yield node_id, node

    def degree(self, node_id: NodeId) -> int:
        """Number of connected physics edges touching the node."""
        return self._degrees.get(node_id, 0)

    def positions(self) -> np.ndarray:
        """Positions of the present physics nodes as a (n, 2) array, index order."""
        coords = [(node.x, node.y) for _, node in self.iter_physics_nodes()]
        return np.array(coords, dtype=np.float64).reshape(-1, 2)

    def clear_physics_state(self) -> None:
        self.forces.clear()
        self.velocities.clear()
