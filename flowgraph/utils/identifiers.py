"""ID generation utilities."""

import uuid


def generate_node_id() -> str:
    """Generate a short node ID (12-char hex string)."""
    return uuid.uuid4().hex[:12]


def edge_id(source: str, target: str) -> str:
    """Deterministic edge ID in the editor's `e-<source>-<target>` form."""
    return f"e-{source}-{target}"
