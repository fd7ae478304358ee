"""
Configuration loading and validation for the layout physics engine.

Loads YAML config and validates every solver section. Numeric garbage that
can be repaired (NaN or infinite options, a non-numeric iteration budget) is
normalized instead of rejected, see PhysicsConfig.normalize().
"""

import math
import numbers
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Literal, Optional

import yaml

from .logger import Logger


SolverName = Literal["barnes_hut", "force_atlas2_based", "repulsion", "hierarchical_repulsion"]
SOLVER_NAMES = ("barnes_hut", "force_atlas2_based", "repulsion", "hierarchical_repulsion")

DEFAULT_STABILIZATION_ITERATIONS = 1000


def is_number(value) -> bool:
    """True for real numbers (numpy scalars included), False for bools, NaN and non-numerics."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return not math.isnan(value)


def is_finite_number(value) -> bool:
    return is_number(value) and math.isfinite(value)


def _numeric_fields(section) -> list[str]:
    """Names of the numeric option fields of a config dataclass (flags excluded)."""
    return [f.name for f in fields(section)
            if isinstance(f.default, (int, float)) and not isinstance(f.default, bool)]


def _check_finite(section) -> tuple[bool, Optional[str]]:
    for name in _numeric_fields(section):
        if not is_finite_number(getattr(section, name)):
            return False, f"{name} must be a finite number"
    return True, None


def _reset_non_finite(section, prefix: str = "") -> None:
    defaults = type(section)()
    for name in _numeric_fields(section):
        value = getattr(section, name)
        if not is_finite_number(value):
            default = getattr(defaults, name)
            Logger.log(f"{prefix}{name}={value!r} is not a finite number, using {default}",
                       Logger.LogPriority.WARNING, Logger.Component.CONFIG)
            setattr(section, name, default)


def _check_common(section) -> tuple[bool, Optional[str]]:
    is_valid, error = _check_finite(section)
    if not is_valid:
        return is_valid, error
    if section.damping < 0:
        return False, "damping must be non-negative"
    if section.spring_length < 0:
        return False, "spring_length must be non-negative"
    if section.spring_constant < 0:
        return False, "spring_constant must be non-negative"
    if section.central_gravity < 0:
        return False, "central_gravity must be non-negative"
    return True, None


@dataclass
class BarnesHutConfig:
    """Barnes-Hut repulsion with springs and central gravity."""
    theta: float = 0.5
    gravitational_constant: float = -2000.0
    central_gravity: float = 0.3
    spring_length: float = 95.0
    spring_constant: float = 0.04
    damping: float = 0.09
    avoid_overlap: float = 0.0

    def validate(self) -> tuple[bool, Optional[str]]:
        is_valid, error = _check_common(self)
        if not is_valid:
            return is_valid, error
        if self.theta <= 0:
            return False, "theta must be positive"
        return True, None


@dataclass
class ForceAtlas2BasedConfig:
    """ForceAtlas2-style repulsion: degree-weighted masses, 1/r falloff."""
    theta: float = 0.5
    gravitational_constant: float = -50.0
    central_gravity: float = 0.01
    spring_length: float = 100.0
    spring_constant: float = 0.08
    damping: float = 0.4
    avoid_overlap: float = 0.0

    def validate(self) -> tuple[bool, Optional[str]]:
        is_valid, error = _check_common(self)
        if not is_valid:
            return is_valid, error
        if self.theta <= 0:
            return False, "theta must be positive"
        return True, None


@dataclass
class RepulsionConfig:
    """Direct pairwise repulsion, O(n^2)."""
    central_gravity: float = 0.2
    spring_length: float = 200.0
    spring_constant: float = 0.05
    node_distance: float = 100.0
    damping: float = 0.09
    avoid_overlap: float = 0.0

    def validate(self) -> tuple[bool, Optional[str]]:
        is_valid, error = _check_common(self)
        if not is_valid:
            return is_valid, error
        if self.node_distance <= 0:
            return False, "node_distance must be positive"
        return True, None


@dataclass
class HierarchicalRepulsionConfig:
    """Level-gated repulsion for hierarchical layouts."""
    central_gravity: float = 0.0
    spring_length: float = 100.0
    spring_constant: float = 0.01
    node_distance: float = 120.0
    damping: float = 0.09
    avoid_overlap: float = 0.0

    def validate(self) -> tuple[bool, Optional[str]]:
        is_valid, error = _check_common(self)
        if not is_valid:
            return is_valid, error
        if self.node_distance <= 0:
            return False, "node_distance must be positive"
        return True, None


@dataclass
class StabilizationConfig:
    """Batch convergence run before the layout is shown."""
    enabled: bool = True
    iterations: int = DEFAULT_STABILIZATION_ITERATIONS
    update_interval: int = 50
    only_dynamic_edges: bool = False
    fit: bool = True

    def validate(self) -> tuple[bool, Optional[str]]:
        is_valid, error = _check_finite(self)
        if not is_valid:
            return is_valid, error
        if self.iterations < 0:
            return False, "iterations must be non-negative"
        if self.update_interval < 1:
            return False, "update_interval must be >= 1"
        return True, None


@dataclass
class WindConfig:
    """Constant force added to every free node each step."""
    x: float = 0.0
    y: float = 0.0

    def validate(self) -> tuple[bool, Optional[str]]:
        return _check_finite(self)


@dataclass
class PhysicsConfig:
    """Complete physics configuration."""
    enabled: bool = True
    solver: SolverName = "barnes_hut"
    barnes_hut: BarnesHutConfig = field(default_factory=BarnesHutConfig)
    force_atlas2_based: ForceAtlas2BasedConfig = field(default_factory=ForceAtlas2BasedConfig)
    repulsion: RepulsionConfig = field(default_factory=RepulsionConfig)
    hierarchical_repulsion: HierarchicalRepulsionConfig = field(
        default_factory=HierarchicalRepulsionConfig
    )
    max_velocity: float = 50.0
    min_velocity: float = 0.75
    timestep: float = 0.5
    adaptive_timestep: bool = True
    stabilization: StabilizationConfig = field(default_factory=StabilizationConfig)
    wind: WindConfig = field(default_factory=WindConfig)

    @property
    def model_options(self):
        """Parameter section of the selected solver."""
        if self.solver not in SOLVER_NAMES:
            raise ValueError(f"Unknown solver: {self.solver}")
        return getattr(self, self.solver)

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.solver not in SOLVER_NAMES:
            return False, f"Unknown solver: {self.solver}"
        is_valid, error = _check_finite(self)
        if not is_valid:
            return is_valid, error
        if self.timestep <= 0:
            return False, "timestep must be positive"
        if self.max_velocity < 0:
            return False, "max_velocity must be non-negative"
        if self.min_velocity < 0:
            return False, "min_velocity must be non-negative"
        for section_name in SOLVER_NAMES + ("stabilization", "wind"):
            is_valid, error = getattr(self, section_name).validate()
            if not is_valid:
                return False, f"{section_name}: {error}"
        return True, None

    def normalize(self) -> "PhysicsConfig":
        """
        Repair numeric options in place and return self.

        - Non-numeric, NaN or infinite options fall back to their defaults
          (wind components become 0, the stabilization budget becomes
          DEFAULT_STABILIZATION_ITERATIONS).
        - update_interval below 1 becomes 1 (a batch must make progress).
        """
        _reset_non_finite(self)
        for section_name in SOLVER_NAMES + ("stabilization", "wind"):
            _reset_non_finite(getattr(self, section_name), f"{section_name}.")

        if self.stabilization.update_interval < 1:
            Logger.log(f"stabilization.update_interval={self.stabilization.update_interval!r} "
                       f"is below 1, using 1", Logger.LogPriority.WARNING, Logger.Component.CONFIG)
            self.stabilization.update_interval = 1
        return self


_SECTION_TYPES = {
    "barnes_hut": BarnesHutConfig,
    "force_atlas2_based": ForceAtlas2BasedConfig,
    "repulsion": RepulsionConfig,
    "hierarchical_repulsion": HierarchicalRepulsionConfig,
    "stabilization": StabilizationConfig,
    "wind": WindConfig,
}


def config_from_dict(raw: Optional[dict]) -> PhysicsConfig:
    """
    Build a PhysicsConfig from a plain dict (e.g. parsed YAML).

    Missing keys take their defaults. Unknown keys raise ValueError.
    """
    raw = dict(raw or {})
    kwargs = {}

    for name, section_type in _SECTION_TYPES.items():
        section_raw = raw.pop(name, None) or {}
        known = {f.name for f in fields(section_type)}
        unknown = set(section_raw) - known
        if unknown:
            raise ValueError(f"Invalid configuration: unknown keys in {name}: {sorted(unknown)}")
        kwargs[name] = section_type(**section_raw)

    top_level = {f.name for f in fields(PhysicsConfig)} - set(_SECTION_TYPES)
    unknown = set(raw) - top_level
    if unknown:
        raise ValueError(f"Invalid configuration: unknown keys: {sorted(unknown)}")
    kwargs.update(raw)

    return PhysicsConfig(**kwargs)


def config_to_dict(config: PhysicsConfig) -> dict:
    """Convert config to serializable dict."""
    return asdict(config)


def load_config(path: Path) -> PhysicsConfig:
    """
    Load, normalize and validate configuration from YAML file.

    The file may hold the physics options at top level or under a
    ``physics`` key.

    Args:
        path: Path to YAML config file.

    Returns:
        Validated PhysicsConfig.

    Raises:
        ValueError: If config is invalid.
        FileNotFoundError: If file doesn't exist.
    """
    with open(path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    if "physics" in raw:
        raw = raw["physics"] or {}

    config = config_from_dict(raw).normalize()

    is_valid, error = config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {error}")

    Logger.log(f"Loaded physics config from {path} (solver={config.solver})",
               Logger.LogPriority.INFO, Logger.Component.CONFIG)
    return config
