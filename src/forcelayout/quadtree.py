"""
Barnes-Hut quadtree over the current node positions.

Each branch covers a square region and stores the total mass and the center of
mass of every node placed below it. A leaf holds exactly one node. The tree is
rebuilt from scratch every tick and never kept across ticks.

Region order is NW, NE, SW, SE with y growing downwards (screen coordinates):
NW covers the low-x/low-y quarter.
"""

from typing import Iterator, List, Optional, Sequence

import numpy as np

from .state import PhysicsNode


NW, NE, SW, SE = 0, 1, 2, 3
REGION_NAMES = ("NW", "NE", "SW", "SE")

MINIMUM_TREE_SIZE = 1e-5


class Branch:
    """One square region of the tree."""

    __slots__ = (
        "min_x", "max_x", "min_y", "max_y",
        "size", "calc_size", "level",
        "mass", "center_x", "center_y",
        "children", "children_count", "data",
    )

    def __init__(self, min_x: float, max_x: float, min_y: float, max_y: float,
                 size: float, calc_size: float, level: int) -> None:
        self.min_x = min_x
        self.max_x = max_x
        self.min_y = min_y
        self.max_y = max_y
        self.size = size
        self.calc_size = calc_size  # 1 / size, the traversal compares distance * calc_size
        self.level = level
        self.mass = 0.0
        self.center_x = 0.0
        self.center_y = 0.0
        self.children: List["Branch"] = []
        # 0 = empty, 1 = leaf (data holds the node), 4 = split
        self.children_count = 0
        self.data: Optional[PhysicsNode] = None

    def is_leaf(self) -> bool:
        return self.children_count == 1

    def __repr__(self):
        return (f"Branch(level={self.level}, size={self.size:.3g}, mass={self.mass:.3g}, "
                f"children_count={self.children_count})")


class BarnesHutTree:
    """
    Quadtree built from a sequence of physics nodes.

    A node at exactly the same position as an already placed node is nudged
    by a random offset in [0, 1) on both axes and kept out of this tree; it
    is listed in `skipped`. The nudge is applied to the node itself, so the
    two are apart when the tree is rebuilt next tick.
    """

    def __init__(self, root: Branch, rng: np.random.Generator):
        self.root = root
        self._rng = rng
        self.skipped: List[PhysicsNode] = []

    @classmethod
    def build(cls, nodes: Sequence[PhysicsNode], rng: Optional[np.random.Generator] = None) -> "BarnesHutTree":
        if rng is None:
            rng = np.random.default_rng()
        if not nodes:
            root = Branch(0.0, MINIMUM_TREE_SIZE, 0.0, MINIMUM_TREE_SIZE,
                          MINIMUM_TREE_SIZE, 1.0 / MINIMUM_TREE_SIZE, 0)
            return cls(root, rng)

        min_x = max_x = nodes[0].x
        min_y = max_y = nodes[0].y
        for node in nodes[1:]:
            min_x = min(min_x, node.x)
            max_x = max(max_x, node.x)
            min_y = min(min_y, node.y)
            max_y = max(max_y, node.y)

        # make the root region square
        size_diff = abs(max_x - min_x) - abs(max_y - min_y)
        if size_diff > 0:
            min_y -= 0.5 * size_diff
            max_y += 0.5 * size_diff
        else:
            min_x += 0.5 * size_diff
            max_x -= 0.5 * size_diff

        root_size = max(MINIMUM_TREE_SIZE, abs(max_x - min_x))
        half_size = 0.5 * root_size
        center_x = 0.5 * (min_x + max_x)
        center_y = 0.5 * (min_y + max_y)

        root = Branch(center_x - half_size, center_x + half_size,
                      center_y - half_size, center_y + half_size,
                      root_size, 1.0 / root_size, 0)
        tree = cls(root, rng)
        tree._split_branch(root)
        for node in nodes:
            tree._place_in_tree(root, node)
        return tree

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _update_branch_mass(self, branch: Branch, node: PhysicsNode) -> None:
        total_mass = branch.mass + node.mass
        total_mass_inv = 1.0 / total_mass
        branch.center_x = (branch.center_x * branch.mass + node.x * node.mass) * total_mass_inv
        branch.center_y = (branch.center_y * branch.mass + node.y * node.mass) * total_mass_inv
        branch.mass = total_mass

    def _place_in_tree(self, branch: Branch, node: PhysicsNode) -> None:
        self._update_branch_mass(branch, node)

        nw = branch.children[NW]
        if nw.max_x > node.x:
            region = NW if nw.max_y > node.y else SW
        else:
            region = NE if nw.max_y > node.y else SE
        self._place_in_region(branch, node, region)

    def _place_in_region(self, branch: Branch, node: PhysicsNode, region: int) -> None:
        child = branch.children[region]
        if child.children_count == 0:
            child.data = node
            child.children_count = 1
            self._update_branch_mass(child, node)
        elif child.children_count == 1:
            occupant = child.data
            if occupant.x == node.x and occupant.y == node.y:
                # the nudge may push the node outside the root region, so it
                # is left out of this tick's tree (ancestors keep its mass)
                node.x += self._rng.random()
                node.y += self._rng.random()
                self.skipped.append(node)
            else:
                self._split_branch(child)
                self._place_in_tree(child, node)
        else:
            self._place_in_tree(child, node)

    def _split_branch(self, branch: Branch) -> None:
        contained = None
        if branch.children_count == 1:
            contained = branch.data
            branch.mass = 0.0
            branch.center_x = 0.0
            branch.center_y = 0.0

        branch.children_count = 4
        branch.data = None
        branch.children = [self._make_region(branch, region) for region in (NW, NE, SW, SE)]

        if contained is not None:
            self._place_in_tree(branch, contained)

    @staticmethod
    def _make_region(parent: Branch, region: int) -> Branch:
        child_size = 0.5 * parent.size
        if region in (NW, SW):
            min_x, max_x = parent.min_x, parent.min_x + child_size
        else:
            min_x, max_x = parent.min_x + child_size, parent.max_x
        if region in (NW, NE):
            min_y, max_y = parent.min_y, parent.min_y + child_size
        else:
            min_y, max_y = parent.min_y + child_size, parent.max_y
        return Branch(min_x, max_x, min_y, max_y,
                      child_size, 2.0 * parent.calc_size, parent.level + 1)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def iter_leaves(self) -> Iterator[Branch]:
        stack = [self.root]
        while stack:
            branch = stack.pop()
            if branch.children_count == 1:
                yield branch
            elif branch.children_count == 4:
                stack.extend(branch.children)

    def depth(self) -> int:
        deepest = 0
        for leaf in self.iter_leaves():
            deepest = max(deepest, leaf.level)
        return deepest
