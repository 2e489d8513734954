"""Utility functions for flowgraph."""

from flowgraph.utils.identifiers import (
    edge_id,
    generate_node_id,
)

__all__ = [
    "edge_id",
    "generate_node_id",
]
