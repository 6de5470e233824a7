"""
Deterministic hierarchical layout.

Outer containers (VPC / VNet / network) stack in a left column. Inside each,
inner containers (subnets) sit in rows with their leaves on a two-column grid,
and resources attached straight to the outer container fill a three-column
grid below them. Everything without a parent goes in a column to the right,
grouped by type. Child positions are relative to their parent.
"""
import math
from typing import Dict, List, Tuple

from infragraph.models.graph import GraphNode, Position, Size
from infragraph.providers import ProviderConfig

OUTER_PAD_X = 30
OUTER_PAD_Y = 50
OUTER_GAP = 60
OUTER_MIN_W = 500
OUTER_DIRECT_COLS = 3

INNER_GAP_X = 40
INNER_GAP_Y = 40
INNER_PAD_X = 20
INNER_PAD_Y = 50
INNER_COLS = 2
INNER_PER_ROW = 3
INNER_PAD_BOTTOM = 20
INNER_MIN_W = 260
INNER_MIN_H = 120

RESOURCE_W = 210
RESOURCE_H = 100
RESOURCE_GAP_X = 20
RESOURCE_GAP_Y = 20

ROOT_GAP = 130
ROOT_GROUP_GAP = 60
ROOT_COLUMN_GAP = 60


def inner_size(n_children: int) -> Tuple[int, int]:
    """Width and height of an inner container holding n leaves."""
    cols = min(n_children, INNER_COLS)
    rows = max(1, math.ceil(n_children / INNER_COLS))
    width = INNER_PAD_X * 2 + cols * RESOURCE_W + max(0, cols - 1) * RESOURCE_GAP_X
    height = INNER_PAD_Y + rows * RESOURCE_H + max(0, rows - 1) * RESOURCE_GAP_Y + INNER_PAD_BOTTOM
    return max(width, INNER_MIN_W), max(height, INNER_MIN_H)


def _place_leaf(node: GraphNode, x: float, y: float) -> None:
    node.position = Position(x, y)
    node.size = None


def _layout_inner(inner: GraphNode, leaves: List[GraphNode]) -> None:
    for k, leaf in enumerate(leaves):
        col, row = k % INNER_COLS, k // INNER_COLS
        _place_leaf(
            leaf,
            INNER_PAD_X + col * (RESOURCE_W + RESOURCE_GAP_X),
            INNER_PAD_Y + row * (RESOURCE_H + RESOURCE_GAP_Y),
        )
    width, height = inner_size(len(leaves))
    inner.size = Size(width, height)


def _layout_outer(
    outer: GraphNode, inners: List[GraphNode], direct: List[GraphNode]
) -> None:
    content_right = 0
    inner_bottom = 0
    y = OUTER_PAD_Y
    for start in range(0, len(inners), INNER_PER_ROW):
        row = inners[start:start + INNER_PER_ROW]
        x = OUTER_PAD_X
        row_h = 0
        for inner in row:
            inner.position = Position(x, y)
            x += inner.size.width + INNER_GAP_X
            row_h = max(row_h, inner.size.height)
        content_right = max(content_right, x - INNER_GAP_X)
        inner_bottom = y + row_h
        y = inner_bottom + INNER_GAP_Y

    direct_y = inner_bottom + INNER_GAP_Y if inners else OUTER_PAD_Y
    bottom = inner_bottom if inners else OUTER_PAD_Y
    for k, child in enumerate(direct):
        col, row = k % OUTER_DIRECT_COLS, k // OUTER_DIRECT_COLS
        cy = direct_y + row * (RESOURCE_H + RESOURCE_GAP_Y)
        _place_leaf(child, OUTER_PAD_X + col * (RESOURCE_W + RESOURCE_GAP_X), cy)
        bottom = max(bottom, cy + RESOURCE_H)

    direct_cols = min(len(direct), OUTER_DIRECT_COLS)
    direct_width = (
        OUTER_PAD_X * 2 + direct_cols * RESOURCE_W
        + max(0, direct_cols - 1) * RESOURCE_GAP_X
    )
    content_width = content_right + OUTER_PAD_X if inners else 0
    outer.size = Size(max(content_width, direct_width, OUTER_MIN_W), bottom + OUTER_PAD_Y)


def apply_layout(nodes: List[GraphNode], provider: ProviderConfig) -> List[GraphNode]:
    """Assign position (and size, for containers) to every node, in place."""
    outer_type = provider.outer_container.type
    inner_type = provider.inner_container.type
    containers = provider.container_type_names

    children: Dict[str, List[GraphNode]] = {}
    for node in nodes:
        if node.parent is not None:
            children.setdefault(node.parent, []).append(node)

    def is_container(node: GraphNode) -> bool:
        return node.resource.type in containers

    # inner containers first so outer rows know their sizes
    for node in nodes:
        if node.resource.type == inner_type:
            leaves = [c for c in children.get(node.id, []) if not is_container(c)]
            _layout_inner(node, leaves)

    column: List[GraphNode] = []
    for node in nodes:
        if node.resource.type == outer_type:
            kids = children.get(node.id, [])
            _layout_outer(
                node,
                [c for c in kids if c.resource.type == inner_type],
                [c for c in kids if not is_container(c)],
            )
            column.append(node)
    # inner containers that found no outer container share the same column
    column.extend(n for n in nodes if n.resource.type == inner_type and n.parent is None)

    y = 0
    right_edge = 0
    for node in column:
        node.position = Position(0, y)
        y += node.size.height + OUTER_GAP
        right_edge = max(right_edge, node.size.width)

    roots = [n for n in nodes if n.parent is None and not is_container(n)]
    groups: Dict[str, List[GraphNode]] = {}
    for node in roots:
        groups.setdefault(node.resource.type, []).append(node)

    root_x = max(OUTER_MIN_W, right_edge) + ROOT_COLUMN_GAP
    y = 0
    for g, members in enumerate(groups.values()):
        if g > 0:
            y += ROOT_GROUP_GAP
        for node in members:
            _place_leaf(node, root_x, y)
            y += ROOT_GAP

    return nodes
