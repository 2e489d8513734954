"""flowgraph - block structure resolution for visual workflow graphs."""

from flowgraph.analysis.merge_resolver import (
    BlockExtent,
    MergeResolver,
    find_block_starter,
    find_merge_node,
    nodes_in_block,
)
from flowgraph.editing.mutator import EditResult, GraphMutator
from flowgraph.models.flow_graph import (
    Edge,
    FlowGraph,
    Node,
    NodeData,
    NodeKind,
)

__all__ = [
    # models
    "Edge",
    "FlowGraph",
    "Node",
    "NodeData",
    "NodeKind",
    # queries
    "BlockExtent",
    "MergeResolver",
    "find_block_starter",
    "find_merge_node",
    "nodes_in_block",
    # edits
    "EditResult",
    "GraphMutator",
]
