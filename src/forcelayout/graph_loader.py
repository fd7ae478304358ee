"""
Load a graph description from YAML into a PhysicsBody.

File format:
    nodes:
      - id: a
        x: 0.0            # optional, both x and y make a predefined position
        y: 0.0
        mass: 1.0         # optional, > 0
        fixed: true       # optional, bool or {x: bool, y: bool}
        level: 0          # optional, hierarchical solvers only
        radius: 10        # optional, used by avoid_overlap
        physics: true     # optional
        hidden: false     # optional
    edges:
      - from: a
        to: b
        id: ab            # optional, defaults to e<index>
        length: 120       # optional rest length
        spring_constant: 0.05
"""

from pathlib import Path
from typing import Optional

import yaml

from .body import PhysicsBody
from .logger import Logger
from .state import FixedAxes, PhysicsEdge, PhysicsNode


NODE_KEYS = {"id", "x", "y", "mass", "fixed", "level", "radius", "physics", "hidden", "clustered"}
EDGE_KEYS = {"id", "from", "to", "length", "spring_constant", "physics", "hidden", "clustered"}


def _parse_fixed(value) -> FixedAxes:
    if isinstance(value, dict):
        return FixedAxes(x=bool(value.get("x", False)), y=bool(value.get("y", False)))
    return FixedAxes(bool(value), bool(value))


def node_from_dict(raw: dict) -> PhysicsNode:
    if "id" not in raw:
        raise ValueError(f"Invalid graph: node without id: {raw}")
    unknown = set(raw) - NODE_KEYS
    if unknown:
        raise ValueError(f"Invalid graph: unknown node keys {sorted(unknown)} on node {raw['id']!r}")
    return PhysicsNode(
        id=raw["id"],
        x=raw.get("x"),
        y=raw.get("y"),
        mass=raw.get("mass", 1.0),
        fixed=_parse_fixed(raw.get("fixed", False)),
        physics=raw.get("physics", True),
        hidden=raw.get("hidden", False),
        clustered=raw.get("clustered", False),
        radius=raw.get("radius", 0.0),
        level=raw.get("level"),
    )


def edge_from_dict(raw: dict, index: int) -> PhysicsEdge:
    if "from" not in raw or "to" not in raw:
        raise ValueError(f"Invalid graph: edge {index} needs 'from' and 'to'")
    unknown = set(raw) - EDGE_KEYS
    if unknown:
        raise ValueError(f"Invalid graph: unknown edge keys {sorted(unknown)} on edge {index}")
    return PhysicsEdge(
        id=raw.get("id", f"e{index}"),
        from_id=raw["from"],
        to_id=raw["to"],
        length=raw.get("length"),
        spring_constant=raw.get("spring_constant"),
        physics=raw.get("physics", True),
        hidden=raw.get("hidden", False),
        clustered=raw.get("clustered", False),
    )


def graph_from_dict(raw: Optional[dict], body: Optional[PhysicsBody] = None) -> PhysicsBody:
    """
    Build (or extend) a PhysicsBody from a parsed graph description.

    Raises:
        ValueError: On duplicate ids or malformed entries.
    """
    raw = raw or {}
    body = body if body is not None else PhysicsBody()

    for node_raw in raw.get("nodes") or []:
        node = node_from_dict(node_raw)
        if node.id in body.nodes:
            raise ValueError(f"Invalid graph: duplicate node id {node.id!r}")
        body.add_node(node)

    for index, edge_raw in enumerate(raw.get("edges") or []):
        edge = edge_from_dict(edge_raw, index)
        if edge.id in body.edges:
            raise ValueError(f"Invalid graph: duplicate edge id {edge.id!r}")
        for endpoint in (edge.from_id, edge.to_id):
            if endpoint not in body.nodes:
                Logger.log(f"Edge {edge.id!r} references unknown node {endpoint!r}; "
                           f"it stays disconnected", Logger.LogPriority.WARNING, Logger.Component.GRAPH)
        body.add_edge(edge)

    return body


def load_graph(path: Path) -> PhysicsBody:
    """
    Load a graph YAML file.

    Raises:
        ValueError: If the graph is malformed.
        FileNotFoundError: If file doesn't exist.
    """
    with open(path, 'r') as f:
        raw = yaml.safe_load(f)

    if raw is not None and not isinstance(raw, dict):
        raise ValueError("Invalid graph: top level must be a mapping with 'nodes' and 'edges'")

    body = graph_from_dict(raw)
    Logger.log(f"Loaded graph from {path}: {len(body.nodes)} nodes, {len(body.edges)} edges",
               Logger.LogPriority.INFO, Logger.Component.GRAPH)
    return body
