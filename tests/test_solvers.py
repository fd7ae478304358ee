"""
Tests for the force solvers.
"""

import math

import numpy as np
import pytest

from forcelayout.body import PhysicsBody
from forcelayout.config import (
    BarnesHutConfig, ForceAtlas2BasedConfig, HierarchicalRepulsionConfig,
    PhysicsConfig, RepulsionConfig,
)
from forcelayout.solvers import (
    BarnesHutSolver, CentralGravitySolver, ForceAtlas2BasedCentralGravitySolver,
    ForceAtlas2BasedRepulsionSolver, HierarchicalRepulsionSolver, HierarchicalSpringSolver,
    RepulsionSolver, SpringSolver, create_solvers,
)
from forcelayout.state import PhysicsEdge, PhysicsNode


def make_body(coords, edges=(), masses=None, levels=None):
    body = PhysicsBody()
    masses = masses or [1.0] * len(coords)
    levels = levels or [None] * len(coords)
    for i, ((x, y), m, level) in enumerate(zip(coords, masses, levels)):
        body.add_node(PhysicsNode(id=i, x=x, y=y, mass=m, level=level))
    for k, edge in enumerate(edges):
        if isinstance(edge, PhysicsEdge):
            body.add_edge(edge)
        else:
            body.add_edge(PhysicsEdge(id=f"e{k}", from_id=edge[0], to_id=edge[1]))
    body.update_physics_data()
    return body


def force_array(body):
    return np.array([(body.forces[i].x, body.forces[i].y) for i in sorted(body.forces)])


def direct_inverse_square(coords, masses, g):
    """Exact pairwise sum of the Barnes-Hut force law."""
    pos = np.asarray(coords, dtype=float)
    m = np.asarray(masses, dtype=float)
    out = np.zeros_like(pos)
    for i in range(len(pos)):
        for j in range(len(pos)):
            if i == j:
                continue
            d = pos[j] - pos[i]
            dist = math.hypot(*d)
            out[i] += g * m[j] * m[i] / dist ** 3 * d
    return out


class TestBarnesHut:
    """Quadtree repulsion."""

    def test_matches_direct_sum_for_small_theta(self):
        rng = np.random.default_rng(42)
        coords = [tuple(c) for c in rng.uniform(-200, 200, size=(20, 2))]
        masses = list(rng.uniform(0.5, 3.0, size=20))
        body = make_body(coords, masses=masses)

        solver = BarnesHutSolver(body, BarnesHutConfig(theta=1e-6), seed=0)
        solver.solve()

        expected = direct_inverse_square(coords, masses, -2000.0)
        np.testing.assert_allclose(force_array(body), expected, rtol=1e-3, atol=1e-9)

    def test_distant_cluster_is_one_mass(self):
        coords = [(0.0, 0.0), (1000.0, 1000.0), (1001.0, 1000.0), (1000.0, 1001.0)]
        body = make_body(coords)
        BarnesHutSolver(body, BarnesHutConfig(theta=0.5), seed=0).solve()

        cx, cy = 3001.0 / 3, 3001.0 / 3
        dist = math.hypot(cx, cy)
        factor = -2000.0 * 3.0 * 1.0 / dist ** 3
        assert body.forces[0].x == pytest.approx(cx * factor)
        assert body.forces[0].y == pytest.approx(cy * factor)

    def test_repulsion_points_away(self):
        body = make_body([(0.0, 0.0), (10.0, 0.0)])
        BarnesHutSolver(body, BarnesHutConfig(), seed=0).solve()
        assert body.forces[0].x < 0
        assert body.forces[1].x > 0
        assert body.forces[0].x == pytest.approx(-body.forces[1].x)

    def test_zero_gravitational_constant_skips(self):
        body = make_body([(0.0, 0.0), (10.0, 0.0)])
        solver = BarnesHutSolver(body, BarnesHutConfig(gravitational_constant=0.0))
        solver.solve()
        assert solver.last_tree is None
        assert body.forces[0].x == 0.0

    def test_avoid_overlap_strengthens_repulsion(self):
        plain = make_body([(0.0, 0.0), (20.0, 0.0)])
        BarnesHutSolver(plain, BarnesHutConfig(), seed=0).solve()

        padded = make_body([(0.0, 0.0), (20.0, 0.0)])
        for node in padded.nodes.values():
            node.radius = 8.0
        BarnesHutSolver(padded, BarnesHutConfig(avoid_overlap=0.5), seed=0).solve()

        assert abs(padded.forces[0].x) > abs(plain.forces[0].x)

    def test_tree_kept_for_inspection(self):
        body = make_body([(0.0, 0.0), (10.0, 5.0), (-3.0, 8.0)])
        solver = BarnesHutSolver(body, BarnesHutConfig(), seed=0)
        solver.solve()
        assert solver.last_tree is not None
        assert solver.last_tree.root.mass == pytest.approx(3.0)


class TestRepulsion:
    """Direct pairwise repulsion."""

    def test_short_range_unit_force(self):
        body = make_body([(0.0, 0.0), (30.0, 0.0)])
        RepulsionSolver(body, RepulsionConfig(node_distance=100.0)).solve()
        assert body.forces[0].x == pytest.approx(-1.0)
        assert body.forces[1].x == pytest.approx(1.0)

    def test_linear_falloff(self):
        body = make_body([(0.0, 0.0), (100.0, 0.0)])
        RepulsionSolver(body, RepulsionConfig(node_distance=100.0)).solve()
        assert body.forces[1].x == pytest.approx(2.0 / 3.0)

    def test_no_force_beyond_twice_node_distance(self):
        body = make_body([(0.0, 0.0), (250.0, 0.0)])
        RepulsionSolver(body, RepulsionConfig(node_distance=100.0)).solve()
        assert body.forces[0].x == 0.0
        assert body.forces[1].x == 0.0

    def test_coincident_pair_is_separated(self):
        body = make_body([(5.0, 5.0), (5.0, 5.0)])
        RepulsionSolver(body, RepulsionConfig(), seed=1).solve()
        assert body.forces[0].x != 0.0
        assert all(np.isfinite(force_array(body)).ravel())
        assert body.forces[0].x == pytest.approx(-body.forces[1].x)

    def test_newton_third_law(self):
        rng = np.random.default_rng(5)
        body = make_body([tuple(c) for c in rng.uniform(-80, 80, size=(8, 2))])
        RepulsionSolver(body, RepulsionConfig()).solve()
        np.testing.assert_allclose(force_array(body).sum(axis=0), [0.0, 0.0], atol=1e-9)


class TestForceAtlas2:
    """Degree-weighted repulsion and gravity."""

    def test_repulsion_scales_with_degree(self):
        body = make_body([(0.0, 0.0), (10.0, 0.0)], edges=[(0, 1)])
        ForceAtlas2BasedRepulsionSolver(body, ForceAtlas2BasedConfig(), seed=0).solve()
        # G * M * m * (degree + 1) / d^2 * dx = -50 * 2 / 100 * 10
        assert body.forces[0].x == pytest.approx(-10.0)
        assert body.forces[1].x == pytest.approx(10.0)

    def test_last_tree_exposed(self):
        body = make_body([(0.0, 0.0), (10.0, 0.0)])
        solver = ForceAtlas2BasedRepulsionSolver(body, ForceAtlas2BasedConfig(), seed=0)
        solver.solve()
        assert solver.last_tree is not None

    def test_central_gravity_linear(self):
        body = make_body([(3.0, 4.0)], masses=[2.0])
        ForceAtlas2BasedCentralGravitySolver(body, ForceAtlas2BasedConfig(central_gravity=0.01)).solve()
        assert body.forces[0].x == pytest.approx(-0.06)
        assert body.forces[0].y == pytest.approx(-0.08)


class TestCentralGravity:
    """Constant-magnitude pull to the origin."""

    def test_pull_toward_origin(self):
        body = make_body([(3.0, 4.0)])
        CentralGravitySolver(body, BarnesHutConfig(central_gravity=0.3)).solve()
        assert body.forces[0].x == pytest.approx(-0.18)
        assert body.forces[0].y == pytest.approx(-0.24)

    def test_zero_at_origin(self):
        body = make_body([(0.0, 0.0)])
        CentralGravitySolver(body, BarnesHutConfig()).solve()
        assert body.forces[0].x == 0.0
        assert body.forces[0].y == 0.0

    def test_isolated_node_still_pulled(self):
        body = make_body([(10.0, 0.0), (50.0, 0.0)], edges=[])
        CentralGravitySolver(body, BarnesHutConfig()).solve()
        assert body.forces[1].x < 0


class TestSpring:
    """Edge springs."""

    def test_stretched_spring_pulls_together(self):
        body = make_body([(0.0, 0.0), (200.0, 0.0)], edges=[(0, 1)])
        SpringSolver(body, BarnesHutConfig(spring_length=100.0, spring_constant=0.04)).solve()
        assert body.forces[0].x == pytest.approx(4.0)
        assert body.forces[1].x == pytest.approx(-4.0)

    def test_edge_overrides(self):
        edge = PhysicsEdge(id="long", from_id=0, to_id=1, length=200.0)
        body = make_body([(0.0, 0.0), (200.0, 0.0)], edges=[edge])
        SpringSolver(body, BarnesHutConfig()).solve()
        assert body.forces[0].x == pytest.approx(0.0)

        stiff = PhysicsEdge(id="stiff", from_id=0, to_id=1, spring_constant=0.1)
        body = make_body([(0.0, 0.0), (200.0, 0.0)], edges=[stiff])
        SpringSolver(body, BarnesHutConfig(spring_length=100.0)).solve()
        assert body.forces[0].x == pytest.approx(10.0)

    def test_missing_endpoint_skipped(self, memory_log):
        body = make_body([(0.0, 0.0), (200.0, 0.0)], edges=[(0, 1)])
        body.remove_node(1)
        SpringSolver(body, BarnesHutConfig()).solve()
        assert body.forces[0].x == 0.0
        assert any("endpoint missing" in m for m in memory_log.messages())

    def test_disconnected_edge_ignored(self):
        body = make_body([(0.0, 0.0), (200.0, 0.0)], edges=[(0, 1)])
        body.nodes[1].hidden = True
        body.update_physics_data()
        SpringSolver(body, BarnesHutConfig()).solve()
        assert body.forces[0].x == 0.0


class TestHierarchical:
    """Level-aware repulsion and springs."""

    def test_same_level_repel(self):
        body = make_body([(0.0, 0.0), (60.0, 0.0)], levels=[1, 1])
        HierarchicalRepulsionSolver(body, HierarchicalRepulsionConfig(node_distance=120.0)).solve()
        # ((0.05 * 120)^2 - (0.05 * 60)^2) / 60 * 60
        assert body.forces[0].x == pytest.approx(-27.0)
        assert body.forces[1].x == pytest.approx(27.0)

    def test_different_levels_do_not_repel(self):
        body = make_body([(0.0, 0.0), (60.0, 0.0)], levels=[0, 1])
        HierarchicalRepulsionSolver(body, HierarchicalRepulsionConfig()).solve()
        assert body.forces[0].x == 0.0

    def test_unlevelled_nodes_share_a_level(self):
        body = make_body([(0.0, 0.0), (60.0, 0.0)])
        HierarchicalRepulsionSolver(body, HierarchicalRepulsionConfig()).solve()
        assert body.forces[0].x < 0

    def test_cross_level_spring_clamped(self):
        body = make_body([(0.0, 0.0), (0.0, 1000.0)], edges=[(0, 1)], levels=[0, 1])
        HierarchicalSpringSolver(body, HierarchicalRepulsionConfig()).solve()
        assert body.forces[0].y == pytest.approx(1.0)
        assert body.forces[1].y == pytest.approx(-1.0)

    def test_same_level_spring_half_strength(self):
        body = make_body([(0.0, 0.0), (200.0, 0.0)], edges=[(0, 1)], levels=[2, 2])
        HierarchicalSpringSolver(body, HierarchicalRepulsionConfig(spring_length=100.0,
                                                                   spring_constant=0.04)).solve()
        assert body.forces[0].x == pytest.approx(2.0)
        assert body.forces[1].x == pytest.approx(-2.0)

    def test_net_force_is_zero(self):
        body = make_body([(0.0, 0.0), (0.0, 500.0), (300.0, 40.0)],
                         edges=[(0, 1), (1, 2)], levels=[0, 1, 1])
        body.forces[2].x = 5.0
        HierarchicalSpringSolver(body, HierarchicalRepulsionConfig()).solve()
        np.testing.assert_allclose(force_array(body).sum(axis=0), [0.0, 0.0], atol=1e-12)


class TestCreateSolvers:
    """Solver selection by name."""

    @pytest.mark.parametrize("solver, nodes_type, edges_type, gravity_type", [
        ("barnes_hut", BarnesHutSolver, SpringSolver, CentralGravitySolver),
        ("force_atlas2_based", ForceAtlas2BasedRepulsionSolver, SpringSolver,
         ForceAtlas2BasedCentralGravitySolver),
        ("repulsion", RepulsionSolver, SpringSolver, CentralGravitySolver),
        ("hierarchical_repulsion", HierarchicalRepulsionSolver, HierarchicalSpringSolver,
         CentralGravitySolver),
    ])
    def test_mapping(self, solver, nodes_type, edges_type, gravity_type):
        solvers = create_solvers(PhysicsConfig(solver=solver), PhysicsBody())
        assert isinstance(solvers.nodes, nodes_type)
        assert isinstance(solvers.edges, edges_type)
        assert isinstance(solvers.gravity, gravity_type)

    def test_execution_order(self):
        solvers = create_solvers(PhysicsConfig(), PhysicsBody())
        assert list(solvers) == [solvers.gravity, solvers.nodes, solvers.edges]

    def test_solvers_share_model_options(self):
        cfg = PhysicsConfig(solver="repulsion")
        solvers = create_solvers(cfg, PhysicsBody())
        assert solvers.nodes.options is cfg.repulsion

    def test_unknown_solver_raises(self):
        with pytest.raises(ValueError):
            create_solvers(PhysicsConfig(solver="nope"), PhysicsBody())
