"""Predicates that classify nodes for block matching."""

from flowgraph.models.flow_graph import BLOCK_HEAD_KINDS, Node


def is_block_head(node: Node | None) -> bool:
    """True if the node opens a branching block (condition, parallel, loop)."""
    return node is not None and node.type in BLOCK_HEAD_KINDS


def is_merge_node(node: Node | None) -> bool:
    """True if the node is flagged as the rejoin point of a block.

    Independent of the node's type: a populated join point can be a block
    head and a merge node at the same time.
    """
    if node is None:
        return False
    return bool(node.data.is_merge_placeholder or node.data.is_merge_node)
