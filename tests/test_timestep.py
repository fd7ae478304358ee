"""
Tests for step revert and the adaptive timestep.
"""

import copy

import pytest

from forcelayout.body import PhysicsBody
from forcelayout.config import BarnesHutConfig, PhysicsConfig
from forcelayout.context import EngineState
from forcelayout.engine import PhysicsEngine
from forcelayout.state import NodeSnapshot, PhysicsEdge, PhysicsNode
from forcelayout.timestep import AdaptiveTimestepController


def make_pair_engine(**overrides):
    body = PhysicsBody()
    body.add_node(PhysicsNode(id="a", x=-40.0, y=0.0))
    body.add_node(PhysicsNode(id="b", x=60.0, y=10.0))
    body.add_edge(PhysicsEdge(id="ab", from_id="a", to_id="b"))
    engine = PhysicsEngine(body, PhysicsConfig(**overrides), seed=1)
    engine.data_changed()
    return engine


class TestRevert:
    """Undoing the last step."""

    def test_restores_positions_and_velocities(self):
        engine = make_pair_engine()
        body = engine.body
        body.velocities["a"].x = 0.25
        before_pos = {i: (n.x, n.y) for i, n in body.nodes.items()}
        before_vel = copy.deepcopy(body.velocities)

        engine.physics_step()
        after_pos = {i: (n.x, n.y) for i, n in body.nodes.items()}
        assert after_pos != before_pos

        engine.revert()

        assert {i: (n.x, n.y) for i, n in body.nodes.items()} == before_pos
        assert body.velocities == before_vel
        assert engine.state.reference_state == after_pos

    def test_drops_snapshots_of_deleted_nodes(self):
        engine = make_pair_engine()
        engine.physics_step()
        engine.body.remove_node("b")

        engine.revert()

        assert "b" not in engine.state.previous_states
        assert "b" not in engine.state.reference_state
        assert "a" in engine.state.reference_state


class TestStepQuality:
    """Reference comparison."""

    def make(self, reference):
        body = PhysicsBody()
        body.add_node(PhysicsNode(id="a", x=0.0, y=0.0))
        body.add_node(PhysicsNode(id="b", x=10.0, y=0.0))
        state = EngineState(reference_state=reference)
        return AdaptiveTimestepController(PhysicsConfig()), body, state

    def test_close_positions_pass(self):
        controller, body, state = self.make({"a": (0.2, 0.0), "b": (10.0, 0.29)})
        assert controller.evaluate_step_quality(body, state)

    def test_far_position_fails(self):
        controller, body, state = self.make({"a": (0.0, 0.4), "b": (10.0, 0.0)})
        assert not controller.evaluate_step_quality(body, state)

    def test_nodes_without_reference_not_checked(self):
        controller, body, state = self.make({"a": (0.0, 0.0)})
        body.nodes["b"].x = 1000.0
        assert controller.evaluate_step_quality(body, state)

    def test_reference_of_deleted_node_ignored(self):
        controller, body, state = self.make({"a": (0.0, 0.0), "gone": (500.0, 500.0)})
        assert controller.evaluate_step_quality(body, state)


class TestAdjustTimestep:
    """Growth and shrink rules."""

    def test_good_step_grows(self):
        controller = AdaptiveTimestepController(PhysicsConfig(timestep=0.5))
        state = EngineState(timestep=0.5)
        controller.adjust_timestep(PhysicsBody(), state)
        assert state.timestep == pytest.approx(0.6)

    def test_bad_step_near_base_resets(self):
        controller = AdaptiveTimestepController(PhysicsConfig(timestep=0.5))
        body = PhysicsBody()
        body.add_node(PhysicsNode(id="a", x=0.0, y=0.0))
        state = EngineState(timestep=0.55, adaptive_counter=4, reference_state={"a": (5.0, 0.0)})

        controller.adjust_timestep(body, state)

        assert state.timestep == 0.5
        assert state.adaptive_counter == 4

    def test_bad_step_far_above_base_shrinks_and_rechecks(self):
        controller = AdaptiveTimestepController(PhysicsConfig(timestep=0.5))
        body = PhysicsBody()
        body.add_node(PhysicsNode(id="a", x=0.0, y=0.0))
        state = EngineState(timestep=1.2, adaptive_counter=4, reference_state={"a": (5.0, 0.0)})

        controller.adjust_timestep(body, state)

        assert state.timestep == pytest.approx(1.0)
        assert state.adaptive_counter == -1


class TestAdaptiveTicks:
    """Adaptive stepping driven through engine ticks."""

    def make_resting_engine(self):
        body = PhysicsBody()
        body.add_node(PhysicsNode(id="only", x=0.0, y=0.0))
        engine = PhysicsEngine(body, PhysicsConfig(min_velocity=0.0), seed=0)
        engine.data_changed()
        engine.state.adaptive_timestep = True
        return engine

    def test_timestep_grows_every_interval(self):
        engine = self.make_resting_engine()
        state = engine.state

        # first tick: adaptivity not yet enabled by a velocity measurement
        engine.physics_tick()
        assert state.timestep == 0.5
        assert state.adaptive_timestep_enabled

        engine.physics_tick()
        assert state.timestep == pytest.approx(0.6)

        engine.physics_tick()
        engine.physics_tick()
        assert state.timestep == pytest.approx(0.6)

        engine.physics_tick()
        assert state.timestep == pytest.approx(0.72)
        assert state.stabilization_iterations == 5

    def test_disabled_adaptivity_keeps_base_timestep(self):
        engine = self.make_resting_engine()
        engine.state.adaptive_timestep = False
        for _ in range(6):
            engine.physics_tick()
        assert engine.state.timestep == 0.5

    def test_live_simulation_is_not_adaptive(self):
        engine = self.make_resting_engine()
        engine.start_simulation()
        assert not engine.state.adaptive_timestep

    def test_exploratory_step_is_not_kept(self):
        body = PhysicsBody()
        body.add_node(PhysicsNode(id="a", x=-40.0, y=0.0))
        body.add_node(PhysicsNode(id="b", x=60.0, y=0.0))
        body.add_edge(PhysicsEdge(id="ab", from_id="a", to_id="b"))
        config = PhysicsConfig(min_velocity=0.0,
                               barnes_hut=BarnesHutConfig(gravitational_constant=0.0, central_gravity=0.0))
        engine = PhysicsEngine(body, config, seed=0)
        engine.data_changed()
        engine.state.adaptive_timestep = True
        engine.state.adaptive_timestep_enabled = True

        engine.physics_tick()

        # two normal steps were kept, so the last snapshot is the state after the first of them
        snapshot = engine.state.previous_states["a"]
        assert isinstance(snapshot, NodeSnapshot)
        assert snapshot.x != -40.0
        assert body.nodes["a"].x != snapshot.x
