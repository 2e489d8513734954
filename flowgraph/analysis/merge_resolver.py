"""Matching block heads to the merge nodes that close them.

A flow encodes if/else, parallel fan-out and loops as plain nodes and
edges: a block head (condition, parallel, loop) fans out into branches and
the branches rejoin at a node flagged as a merge. Branches may contain
fully nested blocks, so the nearest merge-flagged node is not necessarily
the one closing the outer block.

The search is a depth-first walk that carries a per-path depth counter:
entering a block head adds one, passing a merge node removes one, and only
a merge that brings the counter back to zero closes the starting block.
Every walk is bounded by a visited set and an iteration cap, so cyclic or
malformed graphs yield ``None`` instead of hanging.
"""

import logging
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from flowgraph import config
from flowgraph.analysis.blocks import is_block_head, is_merge_node
from flowgraph.analysis.graph_index import GraphIndex
from flowgraph.models.flow_graph import Edge, Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockExtent:
    """A block head, the merge node closing it, and every node in between."""

    head_id: str
    merge_id: str
    node_ids: frozenset[str]


class MergeResolver:
    """Block queries over one graph snapshot.

    Holds no state between calls; a resolver can be reused for any number
    of queries as long as the underlying snapshot is not mutated.
    """

    def __init__(
        self,
        index: GraphIndex,
        max_iterations: int | None = None,
        scan_limit: int | None = None,
    ) -> None:
        self.index = index
        self.max_iterations = (
            max_iterations if max_iterations is not None else config.MAX_ITERATIONS
        )
        self.scan_limit = scan_limit if scan_limit is not None else config.BLOCK_SCAN_LIMIT

    def find_merge_node(self, start_id: str, use_cache: bool = True) -> str | None:
        """Return the id of the merge node closing the block opened at start_id.

        A ``mergeNodeId`` cached on the start node is trusted as-is unless
        use_cache is False. Returns None when no closing merge is reachable
        within the iteration cap.
        """
        start = self.index.node_by_id(start_id)
        if use_cache and start is not None and start.data.merge_node_id:
            logger.debug("merge of %s from cache: %s", start_id, start.data.merge_node_id)
            return start.data.merge_node_id

        stack: list[tuple[str, int]] = [(start_id, 0)]
        visited: set[str] = set()
        iterations = 0

        while stack and iterations < self.max_iterations:
            iterations += 1
            node_id, depth = stack.pop()
            node = self.index.node_by_id(node_id)
            closes = is_merge_node(node)

            new_depth = depth
            if is_block_head(node):
                new_depth += 1
            if closes:
                new_depth -= 1

            if new_depth == 0 and closes:
                logger.debug("merge of %s resolved to %s", start_id, node_id)
                return node_id

            # closed a block this path never opened
            if new_depth < 0:
                continue

            if node_id in visited:
                continue
            visited.add(node_id)

            for child in self.index.adjacency(node_id):
                stack.append((child, new_depth))

        if stack:
            logger.warning(
                "merge search from %s stopped after %d iterations", start_id, iterations
            )
        return None

    def find_block_starter(self, merge_id: str) -> str | None:
        """Return the block head whose block the given merge node closes.

        Walks upward along first parents. Merge nodes passed on the way
        open a nested level, block heads close one; the head that drives the
        balance negative is the answer.
        """
        visited = {merge_id}
        parents = self.index.parents(merge_id)
        current = parents[0] if parents else None
        balance = 0
        iterations = 0

        while current is not None and iterations < self.max_iterations:
            iterations += 1
            if current in visited:
                break
            visited.add(current)

            node = self.index.node_by_id(current)
            if is_merge_node(node):
                balance += 1
            elif is_block_head(node):
                balance -= 1

            if balance < 0:
                return current

            parents = self.index.parents(current)
            current = parents[0] if parents else None

        return None

    def nodes_in_block(
        self, head_id: str, merge_id: str, include_merge: bool = True
    ) -> set[str]:
        """Collect the head, every node on its branches, and optionally the merge.

        Traversal never continues past the merge node. The merge is only
        included when it exists in the snapshot.
        """
        members = {head_id}
        if include_merge and self.index.has_node(merge_id):
            members.add(merge_id)

        queue = deque([head_id])
        visited = {head_id}
        iterations = 0

        while queue and iterations < self.scan_limit:
            iterations += 1
            current = queue.popleft()
            if current == merge_id:
                continue

            for child in self.index.adjacency(current):
                if child in visited:
                    continue
                visited.add(child)
                if child == merge_id:
                    continue
                members.add(child)
                queue.append(child)

        if queue:
            logger.warning(
                "block scan from %s stopped after %d iterations", head_id, iterations
            )
        return members

    def block_extent(self, head_id: str) -> BlockExtent | None:
        """The block opened at head_id, or None if it has no closing merge."""
        merge_id = self.find_merge_node(head_id)
        if merge_id is None:
            return None
        return BlockExtent(
            head_id=head_id,
            merge_id=merge_id,
            node_ids=frozenset(self.nodes_in_block(head_id, merge_id)),
        )


def find_merge_node(
    nodes: Sequence[Node],
    edges: Iterable[Edge],
    start_node_id: str,
    max_iterations: int | None = None,
) -> str | None:
    """Find the merge node closing the block that starts at start_node_id.

    Pure and total: never raises for well-typed input and never mutates the
    graph. A cached ``mergeNodeId`` on the start node is returned without
    looking at the edges.
    """
    start = next((n for n in nodes if n.id == start_node_id), None)
    if start is not None and start.data.merge_node_id:
        return start.data.merge_node_id

    resolver = MergeResolver(GraphIndex(nodes, edges), max_iterations=max_iterations)
    return resolver.find_merge_node(start_node_id)


def find_block_starter(
    nodes: Sequence[Node],
    edges: Iterable[Edge],
    merge_node_id: str,
    max_iterations: int | None = None,
) -> str | None:
    """Find the block head whose block is closed by merge_node_id."""
    resolver = MergeResolver(GraphIndex(nodes, edges), max_iterations=max_iterations)
    return resolver.find_block_starter(merge_node_id)


def nodes_in_block(
    nodes: Sequence[Node],
    edges: Iterable[Edge],
    head_id: str,
    merge_id: str,
    include_merge: bool = True,
) -> set[str]:
    """Ids of the head, its branch nodes and (optionally) its merge node."""
    return MergeResolver(GraphIndex(nodes, edges)).nodes_in_block(
        head_id, merge_id, include_merge=include_merge
    )
