"""Core data models for flow snapshots."""

from flowgraph.models.flow_graph import (
    BLOCK_HEAD_KINDS,
    FALSE_BRANCH,
    LOOP_BODY_BRANCH,
    LOOP_BYPASS_BRANCH,
    TRUE_BRANCH,
    Edge,
    FlowGraph,
    Node,
    NodeData,
    NodeKind,
)

__all__ = [
    "BLOCK_HEAD_KINDS",
    "FALSE_BRANCH",
    "LOOP_BODY_BRANCH",
    "LOOP_BYPASS_BRANCH",
    "TRUE_BRANCH",
    "Edge",
    "FlowGraph",
    "Node",
    "NodeData",
    "NodeKind",
]
