"""
Tests for node/edge state and the physics body index.
"""

import pytest

from forcelayout.body import PhysicsBody
from forcelayout.exceptions import EdgeNotFoundError, NodeNotFoundError
from forcelayout.state import FixedAxes, PhysicsEdge, PhysicsNode, Vector


def make_body(n_nodes=3, edges=((0, 1), (1, 2))):
    body = PhysicsBody()
    for i in range(n_nodes):
        body.add_node(PhysicsNode(id=i, x=float(i * 10), y=0.0))
    for k, (a, b) in enumerate(edges):
        body.add_edge(PhysicsEdge(id=f"e{k}", from_id=a, to_id=b))
    body.update_physics_data()
    return body


class TestPhysicsNode:
    """Node construction rules."""

    def test_mass_must_be_positive(self):
        with pytest.raises(ValueError, match="mass"):
            PhysicsNode(id="a", mass=0.0)
        with pytest.raises(ValueError):
            PhysicsNode(id="a", mass=-1.0)

    def test_bool_fixed_pins_both_axes(self):
        node = PhysicsNode(id="a", fixed=True)
        assert node.fixed == FixedAxes(True, True)
        assert node.fixed.both

    def test_predefined_position(self):
        assert PhysicsNode(id="a", x=1, y=2).predefined_position
        assert not PhysicsNode(id="b", x=1).predefined_position
        assert not PhysicsNode(id="c").has_position

    def test_relevance_flags(self):
        assert PhysicsNode(id="a").is_physics_relevant
        assert not PhysicsNode(id="a", hidden=True).is_physics_relevant
        assert not PhysicsNode(id="a", clustered=True).is_physics_relevant
        assert not PhysicsNode(id="a", physics=False).is_physics_relevant
        assert PhysicsNode(id="a", physics=False).is_visible


class TestStore:
    """Lookup and removal."""

    def test_get_unknown_node_raises(self):
        body = make_body()
        with pytest.raises(NodeNotFoundError):
            body.get_node("missing")
        with pytest.raises(NodeNotFoundError):
            body.remove_node("missing")

    def test_get_unknown_edge_raises(self):
        body = make_body()
        with pytest.raises(EdgeNotFoundError):
            body.get_edge("missing")
        with pytest.raises(EdgeNotFoundError):
            body.remove_edge("missing")

    def test_remove_returns_node(self):
        body = make_body()
        node = body.remove_node(0)
        assert node.id == 0
        assert 0 not in body.nodes


class TestUpdatePhysicsData:
    """Re-indexing lifecycle."""

    def test_indices_and_degrees(self):
        body = make_body()
        assert body.physics_node_indices == [0, 1, 2]
        assert body.physics_edge_indices == ["e0", "e1"]
        assert body.degree(0) == 1
        assert body.degree(1) == 2
        assert body.degree(99) == 0

    def test_forces_reset_velocities_kept(self):
        body = make_body()
        body.forces[0].x = 5.0
        body.velocities[0].x = 3.0
        body.update_physics_data()
        assert body.forces[0] == Vector()
        assert body.velocities[0].x == 3.0

    def test_hidden_and_clustered_excluded(self):
        body = make_body()
        body.nodes[1].clustered = True
        body.nodes[2].hidden = True
        body.update_physics_data()
        assert body.physics_node_indices == [0]
        assert not body.edges["e0"].connected
        assert not body.edges["e1"].connected
        assert body.degree(0) == 0

    def test_cluster_node_is_ordinary_mass(self):
        body = make_body()
        body.nodes[1].clustered = True
        body.nodes[2].clustered = True
        body.add_node(PhysicsNode(id="cluster", x=15.0, y=0.0, mass=2.0))
        body.add_edge(PhysicsEdge(id="ec", from_id=0, to_id="cluster"))
        body.update_physics_data()
        assert body.physics_node_indices == [0, "cluster"]
        assert body.edges["ec"].connected
        assert body.degree("cluster") == 1

    def test_deleted_node_velocity_pruned(self):
        body = make_body()
        body.remove_node(2)
        body.update_physics_data()
        assert 2 not in body.velocities
        assert 2 not in body.forces
        assert not body.edges["e1"].connected

    def test_non_physics_edge_not_indexed(self):
        body = make_body()
        body.edges["e0"].physics = False
        body.update_physics_data()
        assert body.physics_edge_indices == ["e1"]
        assert body.degree(0) == 0

    def test_stale_index_is_skipped(self):
        body = make_body()
        body.remove_node(1)
        ids = [node_id for node_id, _ in body.iter_physics_nodes()]
        assert ids == [0, 2]

    def test_positions_array(self):
        body = make_body()
        pos = body.positions()
        assert pos.shape == (3, 2)
        assert pos[2, 0] == 20.0

    def test_reset_forces_in_place(self):
        body = make_body()
        force = body.forces[0]
        force.x = 1.0
        body.reset_forces()
        assert body.forces[0] is force
        assert force.x == 0.0
