"""
Stabilization: the batched convergence run that precedes live simulation.

A run is a generator task. Every scheduled callback advances it by one batch
of up to `update_interval` ticks, so the host stays responsive between
batches and can cancel the run at any batch boundary.

    IDLE -> STABILIZING -> CONVERGED | BUDGET_EXHAUSTED

A converged run ends with a deferred `stabilized` event. An exhausted run
hands off to the live simulation, which emits `stabilized` once the layout
settles.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from .config import is_finite_number
from .context import StabilizationPhase
from .events import Events
from .logger import Logger
from .state import FixedAxes


@dataclass
class StabilizationProgress:
    iterations: int
    total: int


@dataclass
class StabilizationResult:
    """
    Outcome of one stabilization run.

    Attributes:
        iterations: Ticks actually executed (never above total).
        total: Iteration budget of the run.
        converged: True when max node speed dropped below min_velocity.
        phase: CONVERGED or BUDGET_EXHAUSTED.
    """
    iterations: int
    total: int
    converged: bool
    phase: StabilizationPhase


class Stabilizer:
    """Drives stabilization runs for one PhysicsEngine."""

    def __init__(self, engine):
        self.engine = engine
        self.last_result: Optional[StabilizationResult] = None
        self._task: Optional[Iterator[StabilizationProgress]] = None
        self._handle = None
        self._advancing = False

    # ------------------------------------------------------------------
    # Entry
    # ------------------------------------------------------------------

    def stabilize(self, iterations=None) -> bool:
        """
        Start a stabilization run.

        Args:
            iterations: Tick budget. None, a non-numeric or a non-finite
                value falls back to config.stabilization.iterations.

        Returns:
            True when a run was started or short-circuited, False when a run
            is already in progress.
        """
        engine = self.engine
        state = engine.state
        options = engine.config.stabilization

        if iterations is None:
            iterations = options.iterations
        elif not is_finite_number(iterations):
            Logger.log(f"stabilize() needs a finite number of iterations, got {iterations!r}; "
                       f"switching to default {options.iterations}",
                       Logger.LogPriority.WARNING, Logger.Component.STABILIZATION)
            iterations = options.iterations
        iterations = max(0, int(iterations))

        if state.stabilizing:
            Logger.log("Stabilization already in progress, request ignored",
                       Logger.LogPriority.WARNING, Logger.Component.STABILIZATION)
            return False

        if self._is_degenerate():
            self._short_circuit(iterations)
            return True

        state.adaptive_timestep = engine.config.adaptive_timestep

        # node widths are needed by avoid-overlap
        engine.sink.emit(Events.RESIZE_NODES)

        engine.stop_simulation()
        state.stabilized = False

        engine.sink.emit(Events.BLOCK_REDRAW)
        state.target_iterations = iterations

        if options.only_dynamic_edges:
            self._freeze_nodes()
        state.stabilization_iterations = 0
        state.stabilizing = True
        state.phase = StabilizationPhase.STABILIZING

        Logger.log(f"Stabilization started: budget {iterations} iterations, "
                   f"{len(engine.body.physics_node_indices)} physics nodes",
                   Logger.LogPriority.INFO, Logger.Component.STABILIZATION)

        self._task = self.batches()
        self._handle = engine.scheduler.call_soon(self._run_batch, label="stabilization_batch")
        return True

    def _is_degenerate(self) -> bool:
        """No physics nodes, or every physics node pinned on both axes."""
        nodes = [node for _, node in self.engine.body.iter_physics_nodes()]
        return not nodes or all(node.fixed.both for node in nodes)

    def _short_circuit(self, iterations: int) -> None:
        engine = self.engine
        state = engine.state
        state.ready = True
        state.stabilized = True
        state.phase = StabilizationPhase.CONVERGED
        self.last_result = StabilizationResult(
            iterations=0, total=iterations, converged=True, phase=StabilizationPhase.CONVERGED
        )
        Logger.log("Nothing to stabilize: no free physics nodes",
                   Logger.LogPriority.INFO, Logger.Component.STABILIZATION)
        engine.sink.emit(Events.STABILIZATION_ITERATIONS_DONE,
                         {"iterations": 0, "total": iterations, "converged": True})
        engine.defer_stabilized_event(0)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def running(self) -> bool:
        state = self.engine.state
        return not state.stabilized and state.stabilization_iterations < state.target_iterations

    def batches(self) -> Iterator[StabilizationProgress]:
        """
        Resumable stabilization task.

        Each step runs one batch of ticks and yields the progress reached.
        The generator returns once the run converged or ran out of budget.
        Events are emitted by the driver, never from inside the generator,
        so listeners may stop or restart the run.
        """
        engine = self.engine
        while True:
            count = 0
            while self.running() and count < engine.config.stabilization.update_interval:
                engine.physics_tick()
                count += 1

            yield self._progress()

            if not self.running():
                return

    def _progress(self) -> StabilizationProgress:
        state = self.engine.state
        return StabilizationProgress(iterations=state.stabilization_iterations,
                                     total=state.target_iterations)

    def _send_progress(self, progress: StabilizationProgress) -> None:
        self.engine.sink.emit(Events.STABILIZATION_PROGRESS,
                              {"iterations": progress.iterations, "total": progress.total})

    def _run_batch(self) -> None:
        self._handle = None
        task = self._task
        if task is None:
            return

        if self.engine.start_stabilizing():
            # guarantees at least one progress event after the start event
            if self._task is task:
                self._send_progress(self._progress())
            if self._task is not task:
                return

        self._advancing = True
        try:
            progress = next(task, None)
        finally:
            self._advancing = False

        if progress is not None and self._task is task:
            self._send_progress(progress)
        if self._task is not task:
            # cancelled (or restarted) by a listener
            task.close()
            return

        if progress is not None and self.running():
            self._handle = self.engine.scheduler.call_soon(self._run_batch, label="stabilization_batch")
            return
        task.close()
        self._task = None
        self.finalize()

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def finalize(self) -> StabilizationResult:
        """Wrap up the run, emit completion events and hand off if not converged."""
        engine = self.engine
        state = engine.state
        sink = engine.sink

        sink.emit(Events.ALLOW_REDRAW)
        if engine.config.stabilization.fit:
            sink.emit(Events.FIT)

        self._restore_frozen_nodes()

        converged = state.stabilized
        phase = StabilizationPhase.CONVERGED if converged else StabilizationPhase.BUDGET_EXHAUSTED
        state.phase = phase
        state.stabilizing = False
        result = StabilizationResult(
            iterations=state.stabilization_iterations,
            total=state.target_iterations,
            converged=converged,
            phase=phase,
        )
        self.last_result = result

        sink.emit(Events.STABILIZATION_ITERATIONS_DONE,
                  {"iterations": result.iterations, "total": result.total, "converged": converged})
        sink.emit(Events.REQUEST_REDRAW)

        if converged:
            engine.emit_stabilized()
        else:
            Logger.log(f"Stabilization budget of {result.total} iterations exhausted, "
                       f"continuing with live simulation",
                       Logger.LogPriority.INFO, Logger.Component.STABILIZATION)
            engine.start_simulation()

        state.ready = True
        Logger.log(f"Stabilization finished: {phase.value} after {result.iterations} iterations",
                   Logger.LogPriority.INFO, Logger.Component.STABILIZATION)
        return result

    def cancel(self) -> None:
        """Abort a run in progress at the current batch boundary."""
        engine = self.engine
        state = engine.state
        engine.scheduler.cancel(self._handle)
        self._handle = None
        task, self._task = self._task, None
        if task is not None and not self._advancing:
            # a task stopped mid-batch is closed by _run_batch once next() returns
            task.close()
        if state.stabilizing:
            self._restore_frozen_nodes()
            state.stabilizing = False
            state.phase = StabilizationPhase.IDLE
            engine.sink.emit(Events.ALLOW_REDRAW)
            Logger.log(f"Stabilization cancelled after {state.stabilization_iterations} iterations",
                       Logger.LogPriority.INFO, Logger.Component.STABILIZATION)

    # ------------------------------------------------------------------
    # Freezing
    # ------------------------------------------------------------------

    def _freeze_nodes(self) -> None:
        """Pin nodes that came with a position so only new nodes settle."""
        state = self.engine.state
        for node_id, node in self.engine.body.nodes.items():
            if node.predefined_position and node.has_position:
                state.freeze_cache[node_id] = FixedAxes(node.fixed.x, node.fixed.y)
                node.fixed.x = True
                node.fixed.y = True

    def _restore_frozen_nodes(self) -> None:
        state = self.engine.state
        nodes = self.engine.body.nodes
        for node_id, fixed in state.freeze_cache.items():
            node = nodes.get(node_id)
            if node is not None:
                node.fixed.x = fixed.x
                node.fixed.y = fixed.y
        state.freeze_cache = {}
