"""Block structure queries over flow snapshots."""

from flowgraph.analysis.blocks import is_block_head, is_merge_node
from flowgraph.analysis.graph_index import GraphIndex
from flowgraph.analysis.merge_resolver import (
    BlockExtent,
    MergeResolver,
    find_block_starter,
    find_merge_node,
    nodes_in_block,
)

__all__ = [
    # classification
    "is_block_head",
    "is_merge_node",
    # graph view
    "GraphIndex",
    # resolver
    "BlockExtent",
    "MergeResolver",
    "find_block_starter",
    "find_merge_node",
    "nodes_in_block",
]
