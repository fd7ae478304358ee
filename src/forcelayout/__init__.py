"""
forcelayout - force-directed graph layout engine.

Iterative physics simulation for 2-D graph layout: Barnes-Hut and pairwise
repulsion, springs, central gravity, a damped semi-implicit Euler
integrator, an adaptive timestep and a batched stabilization run.

Units:
    - Length: layout units (pixels in a typical host)
    - Time: integration steps scaled by `timestep`
    - Mass: dimensionless, > 0
"""

__version__ = "0.1.0"

from .state import FixedAxes, Vector, PhysicsNode, PhysicsEdge, NodeSnapshot
from .body import PhysicsBody
from .context import EngineState, StabilizationPhase
from .integrator import Integrator, MoveResult
from .timestep import AdaptiveTimestepController
from .events import Events, EventBus, NotificationSink, NullSink
from .scheduler import CooperativeScheduler
from .stabilization import Stabilizer, StabilizationProgress, StabilizationResult
from .engine import PhysicsEngine
from .layout import seed_positions
from .graph_loader import load_graph, graph_from_dict
from .exceptions import NodeNotFoundError, EdgeNotFoundError, StateTransitionError

# Config exports
from .config import (
    PhysicsConfig,
    BarnesHutConfig,
    ForceAtlas2BasedConfig,
    RepulsionConfig,
    HierarchicalRepulsionConfig,
    StabilizationConfig,
    WindConfig,
    config_from_dict,
    load_config
)
