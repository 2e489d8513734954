#!/usr/bin/env python3
"""CLI script to report the block structure of a saved flow.

Usage:
    python -m flowgraph.analysis.inspect_flow <flow.json>

    # only some block heads, as JSON
    python -m flowgraph.analysis.inspect_flow <flow.json> --node cond-1 --json
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass
from pathlib import Path

from flowgraph.analysis.blocks import is_block_head
from flowgraph.analysis.graph_index import GraphIndex
from flowgraph.analysis.merge_resolver import MergeResolver
from flowgraph.config import configure_logging
from flowgraph.models.flow_graph import FlowGraph

logger = logging.getLogger(__name__)


@dataclass
class BlockReport:
    """Merge resolution result for one block head."""

    head_id: str
    kind: str | None
    merge_id: str | None
    cached: bool
    body_size: int = 0


def load_flow(flow_file: Path) -> FlowGraph:
    """Load a flow snapshot (``{"nodes": [...], "edges": [...]}``) from JSON."""
    with open(flow_file) as f:
        return FlowGraph.model_validate(json.load(f))


def inspect_blocks(graph: FlowGraph, node_ids: list[str] | None = None) -> list[BlockReport]:
    """Resolve the merge node and body size of each requested block head.

    With no node_ids, every block head in the flow is reported in node order.
    """
    resolver = MergeResolver(GraphIndex.from_graph(graph))
    if node_ids:
        heads = [n for n in (graph.node(i) for i in node_ids) if n is not None]
    else:
        heads = [n for n in graph.nodes if is_block_head(n)]

    reports = []
    for head in heads:
        merge_id = resolver.find_merge_node(head.id)
        body_size = (
            len(resolver.nodes_in_block(head.id, merge_id, include_merge=False))
            if merge_id is not None
            else 0
        )
        reports.append(BlockReport(
            head_id=head.id,
            kind=head.type,
            merge_id=merge_id,
            cached=bool(head.data.merge_node_id),
            body_size=body_size,
        ))
    return reports


def format_reports(reports: list[BlockReport]) -> str:
    """Format block reports for human-readable output."""
    lines = []
    lines.append("=" * 60)
    lines.append("BLOCK STRUCTURE")
    lines.append("=" * 60)

    if not reports:
        lines.append("  (no block heads found)")

    for report in reports:
        if report.merge_id is None:
            lines.append(f"  • {report.head_id} [{report.kind}] -> OPEN (no merge node reachable)")
            continue
        source = " (cached)" if report.cached else ""
        lines.append(
            f"  • {report.head_id} [{report.kind}] -> {report.merge_id}{source}, "
            f"{report.body_size} node(s) in block"
        )

    open_count = sum(1 for r in reports if r.merge_id is None)
    lines.append("-" * 40)
    if open_count:
        lines.append(f"⚠ {open_count} open block(s)")
    else:
        lines.append("✓ All blocks closed")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Report the merge node closing each block head in a flow."
    )
    parser.add_argument(
        "flow_file",
        type=Path,
        help="path to the flow JSON file",
    )
    parser.add_argument(
        "--node",
        action="append",
        dest="nodes",
        help="block head id to inspect (repeatable, default: all block heads)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="output reports as JSON instead of human-readable format",
    )

    args = parser.parse_args()
    configure_logging()

    if not args.flow_file.exists():
        print(f"Error: flow file not found: {args.flow_file}", file=sys.stderr)
        sys.exit(1)

    graph = load_flow(args.flow_file)
    reports = inspect_blocks(graph, args.nodes)
    logger.debug("inspected %d block head(s) in %s", len(reports), args.flow_file)

    if args.json:
        print(json.dumps([asdict(r) for r in reports], indent=2))
    else:
        print(format_reports(reports))


if __name__ == "__main__":
    main()
