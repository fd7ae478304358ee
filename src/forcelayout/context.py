"""
Engine context.

All mutable simulation bookkeeping lives in one EngineState owned by the
PhysicsEngine and passed explicitly to the integrator, the timestep
controller and the stabilizer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple

from .state import FixedAxes, NodeId, NodeSnapshot


class StabilizationPhase(Enum):
    IDLE = "idle"
    STABILIZING = "stabilizing"
    CONVERGED = "converged"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass
class EngineState:
    """
    Attributes:
        timestep: Current integration step (adaptive during stabilization).
        stabilized: Max node speed of the last step was below min_velocity.
        started_stabilization: A start event has been emitted for this run.
        stabilization_iterations: Ticks since the run started.
        target_iterations: Tick budget of the current stabilization run.
        adaptive_timestep: Adaptive stepping requested (stabilization only).
        adaptive_timestep_enabled: System energy is low enough to adapt.
        adaptive_counter: Position within the adaptive interval.
        adaptive_interval: Ticks between exploratory double steps.
        previous_states: Per node state before the last step (for revert).
        reference_state: Positions reached by the exploratory step.
        freeze_cache: Original fixed flags of nodes frozen for stabilization.
    """
    timestep: float = 0.5
    stabilized: bool = False
    started_stabilization: bool = False
    stabilization_iterations: int = 0
    target_iterations: int = 0
    adaptive_timestep: bool = False
    adaptive_timestep_enabled: bool = False
    adaptive_counter: int = 0
    adaptive_interval: int = 3
    previous_states: Dict[NodeId, NodeSnapshot] = field(default_factory=dict)
    reference_state: Dict[NodeId, Tuple[float, float]] = field(default_factory=dict)
    freeze_cache: Dict[NodeId, FixedAxes] = field(default_factory=dict)
    physics_enabled: bool = True
    ready: bool = False
    running: bool = False
    stabilizing: bool = False
    run_double_speed: bool = False
    in_tick: bool = False
    destroyed: bool = False
    phase: StabilizationPhase = StabilizationPhase.IDLE

    def clear_snapshots(self) -> None:
        self.previous_states.clear()
        self.reference_state.clear()
