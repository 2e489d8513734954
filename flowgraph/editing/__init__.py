"""Graph edits that depend on block structure."""

from flowgraph.editing.mutator import (
    DEFAULT_PARALLEL_BRANCHES,
    EditResult,
    GraphMutator,
)

__all__ = [
    "DEFAULT_PARALLEL_BRANCHES",
    "EditResult",
    "GraphMutator",
]
