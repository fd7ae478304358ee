"""
Physics engine: wires solvers, integrator, adaptive timestep and
stabilization together around one explicit EngineState.

Hosts talk to the engine with plain method calls (data_changed(),
init_physics(), simulation_step() once per frame, ...) and receive
notifications through the injected sink. Deferred work runs on the
injected CooperativeScheduler.

Usage:
    body = load_graph("graph.yaml")
    engine = PhysicsEngine(body, config, seed=7)
    engine.data_changed()
    result = engine.run_stabilization()
"""

import time
from typing import Callable, List, Optional, Union

import numpy as np

from .body import PhysicsBody
from .config import PhysicsConfig, config_from_dict
from .context import EngineState, StabilizationPhase
from .events import EventBus, Events, NotificationSink
from .exceptions import StateTransitionError
from .integrator import Integrator, MoveResult
from .layout import seed_positions
from .logger import Logger
from .scheduler import CooperativeScheduler, Handle
from .solvers import SolverSet, create_solvers
from .stabilization import StabilizationResult, Stabilizer
from .timestep import AdaptiveTimestepController


# frame budget of the live simulation
SIMULATION_INTERVAL = 1.0 / 60
# a tick faster than this share of the frame budget earns a second tick per frame
DOUBLE_SPEED_FRACTION = 0.4


class PhysicsEngine:

    def __init__(
        self,
        body: Optional[PhysicsBody] = None,
        config: Optional[PhysicsConfig] = None,
        sink: Optional[NotificationSink] = None,
        scheduler: Optional[CooperativeScheduler] = None,
        seed: Optional[int] = None,
    ):
        """
        Args:
            body: Node/edge index. A new empty body is created if omitted.
            config: Physics options (normalized and validated on entry).
            sink: Receives engine notifications. Defaults to an EventBus.
            scheduler: Runs deferred work. Defaults to a private
                CooperativeScheduler that the host pumps via run_until_idle().
            seed: Seed for initial positions and solver jitter.
        """
        self.body = body if body is not None else PhysicsBody()
        self.config = self._checked(config if config is not None else PhysicsConfig())
        self.sink = sink if sink is not None else EventBus()
        self.scheduler = scheduler if scheduler is not None else CooperativeScheduler()
        self.seed = seed
        self.simulation_interval = SIMULATION_INTERVAL
        self.layout_failed = False

        self.state = EngineState(timestep=self.config.timestep)
        self._rng = np.random.default_rng(seed)
        self._deferred: List[Handle] = []

        self.integrator = Integrator(self.config)
        self.timestep_controller = AdaptiveTimestepController(self.config)
        self.stabilizer = Stabilizer(self)
        self.solvers: SolverSet = create_solvers(self.config, self.body, seed=seed)

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    @staticmethod
    def _checked(config: PhysicsConfig) -> PhysicsConfig:
        config.normalize()
        is_valid, error = config.validate()
        if not is_valid:
            raise ValueError(f"Invalid configuration: {error}")
        return config

    @property
    def model_options(self):
        return self.config.model_options

    def set_options(self, options: Union[PhysicsConfig, dict, bool, None] = None) -> None:
        """
        Apply new physics options.

        True/False switch physics on (and start the live simulation) or off
        (and stop it). A PhysicsConfig or plain dict replaces the whole
        configuration; the solver set is rebuilt in every case.
        """
        self._ensure_alive()
        state = self.state

        if options is False:
            self.config.enabled = False
            state.physics_enabled = False
            self.stop_simulation()
        elif options is True:
            self.config.enabled = True
            state.physics_enabled = True
            self.start_simulation()
        elif options is not None:
            if isinstance(options, dict):
                options = config_from_dict(options)
            state.physics_enabled = True
            self.config = self._checked(options)
            if not self.config.enabled:
                state.physics_enabled = False
                self.stop_simulation()
            state.timestep = self.config.timestep
        self.init()

    def init(self) -> None:
        """Instantiate the solvers selected by the current options."""
        self.solvers = create_solvers(self.config, self.body, seed=self.seed)
        self.integrator.set_options(self.config)
        self.timestep_controller.set_options(self.config)
        Logger.log(f"Physics configured with solver {self.config.solver}")

    # ------------------------------------------------------------------
    # Host notifications
    # ------------------------------------------------------------------

    def data_changed(self) -> None:
        """Nodes and/or edges were added or removed: seed new nodes and re-index."""
        self._ensure_alive()
        seed_positions(self.body, rng=self._rng)
        self.body.update_physics_data()
        stale = [node_id for node_id in self.state.previous_states if node_id not in self.body.nodes]
        for node_id in stale:
            del self.state.previous_states[node_id]

    def init_physics(self) -> None:
        """Run the initial stabilization, or go straight to live simulation."""
        self._ensure_alive()
        state = self.state
        if state.physics_enabled and self.config.enabled:
            if self.config.stabilization.enabled:
                self.stabilize()
            else:
                state.stabilized = False
                state.ready = True
                self.sink.emit(Events.FIT, {"layout_failed": self.layout_failed})
                self.start_simulation()
        else:
            state.ready = True
            self.sink.emit(Events.FIT)

    def mark_layout_failed(self) -> None:
        self.layout_failed = True

    def reset_physics(self) -> None:
        self.stop_simulation()
        self.state.ready = False

    def disable_physics(self) -> None:
        self.state.physics_enabled = False
        self.stop_simulation()

    def restore_physics(self) -> None:
        self.set_options(self.config)
        if self.state.ready:
            self.start_simulation()

    def resume(self) -> None:
        """Restart the live simulation, but only once the initial layout is ready."""
        if self.state.ready:
            self.start_simulation()

    def destroy(self) -> None:
        """Stop everything and drop all per-node physics state. The engine is unusable afterwards."""
        if self.state.destroyed:
            return
        self.stop_simulation(emit=False)
        for handle in self._deferred:
            self.scheduler.cancel(handle)
        self._deferred = []
        self.body.clear_physics_state()
        self.state.clear_snapshots()
        self.state.freeze_cache = {}
        if isinstance(self.sink, EventBus):
            self.sink.off()
        self.state.destroyed = True
        Logger.log("Physics engine destroyed", Logger.LogPriority.INFO)

    def _ensure_alive(self) -> None:
        if self.state.destroyed:
            raise StateTransitionError("Physics engine has been destroyed.")

    # ------------------------------------------------------------------
    # Live simulation
    # ------------------------------------------------------------------

    def start_simulation(self) -> None:
        self._ensure_alive()
        state = self.state
        if state.physics_enabled and self.config.enabled:
            state.stabilized = False
            # adaptivity is for stabilization only, it jitters when visible
            state.adaptive_timestep = False
            self.sink.emit(Events.RESIZE_NODES)
            if not state.running:
                state.running = True
                self.sink.emit(Events.START_RENDERING)
        else:
            self.sink.emit(Events.REDRAW)

    def stop_simulation(self, emit: bool = True) -> None:
        """
        Stop the live loop and any stabilization in progress.

        Calling it again has no further effect: the stabilized event is only
        scheduled while a run is pending and the counters are reset with it.
        """
        state = self.state
        state.stabilized = True
        if state.stabilizing:
            self.stabilizer.cancel()
        if emit:
            self.emit_stabilized()
        if state.running:
            state.running = False
            if emit:
                self.sink.emit(Events.STOP_RENDERING)

    def simulation_step(self, clock: Callable[[], float] = time.perf_counter) -> bool:
        """
        One live frame. Returns True while the simulation keeps running.

        Small graphs get two ticks per frame. The decision is taken once and
        kept so the motion does not jitter between one and two ticks.
        """
        state = self.state
        if not state.running:
            return False

        start_time = clock()
        self.physics_tick()
        physics_time = clock() - start_time

        if ((physics_time < DOUBLE_SPEED_FRACTION * self.simulation_interval or state.run_double_speed)
                and not state.stabilized):
            self.physics_tick()
            state.run_double_speed = True

        if state.stabilized:
            self.stop_simulation()
        return state.running

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def physics_step(self) -> MoveResult:
        """Calculate the forces for one iteration and move the nodes."""
        self.body.reset_forces()
        for solver in self.solvers:
            solver.solve()
        return self.integrator.move_nodes(self.body, self.state)

    def physics_tick(self) -> None:
        """A single simulation tick, with the adaptive timestep when enabled."""
        state = self.state
        if state.in_tick:
            Logger.log("Nested physics tick ignored", Logger.LogPriority.WARNING)
            return
        state.in_tick = True
        try:
            self.start_stabilizing()
            if state.stabilized:
                return

            if state.adaptive_timestep and state.adaptive_timestep_enabled:
                if state.adaptive_counter % state.adaptive_interval == 0:
                    # exploratory double step, never kept
                    state.timestep = 2 * state.timestep
                    self.physics_step()
                    self.revert()

                    # two half-size steps replace it
                    state.timestep = 0.5 * state.timestep
                    self.physics_step()
                    self.physics_step()

                    self.timestep_controller.adjust_timestep(self.body, state)
                else:
                    self.physics_step()
                state.adaptive_counter += 1
            else:
                state.timestep = self.config.timestep
                self.physics_step()

            if state.stabilized:
                self.revert()
            state.stabilization_iterations += 1
        finally:
            state.in_tick = False

    def revert(self) -> None:
        self.timestep_controller.revert(self.body, self.state)

    # ------------------------------------------------------------------
    # Stabilization
    # ------------------------------------------------------------------

    def stabilize(self, iterations=None) -> bool:
        self._ensure_alive()
        return self.stabilizer.stabilize(iterations)

    def run_until_idle(self) -> int:
        return self.scheduler.run_until_idle()

    def run_stabilization(self, iterations=None) -> Optional[StabilizationResult]:
        """Stabilize and pump the scheduler until the run and its events are done."""
        self.stabilize(iterations)
        self.run_until_idle()
        return self.stabilizer.last_result

    @property
    def phase(self) -> StabilizationPhase:
        return self.state.phase

    def start_stabilizing(self) -> bool:
        """Emit the start event once per run. True when this call emitted it."""
        if self.state.started_stabilization:
            return False
        self.state.started_stabilization = True
        self.sink.emit(Events.START_STABILIZING)
        return True

    def emit_stabilized(self, iterations: Optional[int] = None) -> None:
        """Schedule the stabilized event if there is a run to report."""
        state = self.state
        if iterations is None:
            iterations = state.stabilization_iterations
        if state.stabilization_iterations > 1 or state.started_stabilization:
            self.defer_stabilized_event(iterations)

    def defer_stabilized_event(self, iterations: int) -> Handle:
        """
        Emit `stabilized` on the next scheduler turn so listeners attached
        right after the triggering call still receive it.
        """
        state = self.state
        state.started_stabilization = False
        state.stabilization_iterations = 0
        handle = self.scheduler.call_soon(self._deliver_stabilized, iterations, label="stabilized")
        self._deferred.append(handle)
        return handle

    def _deliver_stabilized(self, iterations: int) -> None:
        # handles run in FIFO order
        if self._deferred:
            self._deferred.pop(0)
        self.sink.emit(Events.STABILIZED, {"iterations": iterations})
