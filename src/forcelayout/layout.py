"""
Initial placement of nodes that arrive without coordinates.

Unpositioned nodes go on a circle of radius (count + 50) around the origin at
random angles, so larger batches start more spread out.
"""

from typing import Optional, Union

import numpy as np

from .logger import Logger


BASE_RADIUS = 50.0


def seed_positions(body, seed: Optional[int] = None,
                   rng: Optional[Union[np.random.Generator, int]] = None) -> int:
    """
    Give every node without a position a random starting point.

    Args:
        body: PhysicsBody whose nodes are seeded (hidden and clustered nodes
            included, so they are placed once they reappear).
        seed: Seed for a fresh generator when rng is not given.
        rng: Generator (or seed) to draw angles from; lets an engine keep one
            stream across data changes.

    Returns:
        Number of nodes that were positioned.
    """
    pending = [node for node in body.nodes.values() if not node.has_position]
    if not pending:
        return 0

    generator = np.random.default_rng(rng if rng is not None else seed)
    radius = len(pending) + BASE_RADIUS
    angles = 2 * np.pi * generator.random(len(pending))

    for node, angle in zip(pending, angles):
        # keep a coordinate that was given on one axis only
        if node.x is None:
            node.x = float(radius * np.cos(angle))
        if node.y is None:
            node.y = float(radius * np.sin(angle))

    Logger.log(f"Seeded initial positions for {len(pending)} nodes at radius {radius:g}",
               component=Logger.Component.LAYOUT)
    return len(pending)
