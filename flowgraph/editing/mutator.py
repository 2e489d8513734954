"""Structural edits on a flow snapshot.

Every edit takes the snapshot the mutator was built with and returns a new
FlowGraph inside an EditResult; the input graph is never modified. Edits
that would corrupt the block structure are refused with ``applied=False``
and a warning instead of raising.

A ``mergeNodeId`` cache never outlives the node it names: every edited
snapshot drops caches pointing at removed nodes.
"""

import logging
from dataclasses import dataclass, field

from flowgraph.analysis.blocks import is_block_head, is_merge_node
from flowgraph.analysis.graph_index import GraphIndex
from flowgraph.analysis.merge_resolver import MergeResolver
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
from flowgraph.utils.identifiers import edge_id, generate_node_id

logger = logging.getLogger(__name__)

DEFAULT_PARALLEL_BRANCHES = ["Branch 1", "Branch 2"]
PLACEHOLDER_LABEL = "Add Step"


@dataclass
class EditResult:
    """Outcome of one edit."""

    graph: FlowGraph
    applied: bool = True
    removed_node_ids: list[str] = field(default_factory=list)
    added_node_ids: list[str] = field(default_factory=list)
    warning: str | None = None


def _kind_value(kind: NodeKind | str) -> str:
    return kind.value if isinstance(kind, NodeKind) else kind


def _placeholder(sub_label: str, *, branch: bool = False, merge: bool = False) -> Node:
    return Node(
        id=generate_node_id(),
        type=NodeKind.custom.value,
        data=NodeData(
            label=PLACEHOLDER_LABEL,
            sub_label=sub_label,
            is_placeholder=True,
            is_branch_placeholder=branch,
            is_merge_placeholder=merge,
        ),
    )


def _connect(source: str, target: str, branch_id: str | None = None) -> Edge:
    return Edge(id=edge_id(source, target), source=source, target=target, branch_id=branch_id)


def _branch_label(head: Node | None, branch_id: str | None) -> str:
    """Sub-label for a placeholder restored on an emptied branch."""
    if head is not None and head.type == NodeKind.condition.value:
        return "True Path" if branch_id == TRUE_BRANCH else "False Path"
    if head is not None and head.type == NodeKind.loop.value:
        return "Loop Body"
    return branch_id or "Branch Step"


def _with_data(node: Node, **changes) -> Node:
    return node.model_copy(update={"data": node.data.model_copy(update=changes)})


@dataclass
class _NewStep:
    """A freshly built step: its head, any branch/merge nodes, and inner edges."""

    head: Node
    parts: list[Node]
    edges: list[Edge]
    exit_id: str  # node the rest of the flow continues from


def _build_step(
    kind: str,
    label: str | None = None,
    params: dict | None = None,
    branches: list[str] | None = None,
) -> _NewStep:
    head = Node(id=generate_node_id(), type=kind, data=NodeData(label=label or kind, params=params))
    if kind not in BLOCK_HEAD_KINDS:
        return _NewStep(head=head, parts=[], edges=[], exit_id=head.id)

    merge = _placeholder("Merge", merge=True)
    head = _with_data(head, merge_node_id=merge.id)

    if kind == NodeKind.condition.value:
        arms = [("True Path", TRUE_BRANCH), ("False Path", FALSE_BRANCH)]
    elif kind == NodeKind.parallel.value:
        names = list(branches or DEFAULT_PARALLEL_BRANCHES)
        head = _with_data(head, params={**(head.data.params or {}), "branches": names})
        arms = [(name, name) for name in names]
    else:
        arms = [("Loop Body", LOOP_BODY_BRANCH)]

    parts: list[Node] = []
    edges: list[Edge] = []
    for sub_label, branch_id in arms:
        placeholder = _placeholder(sub_label, branch=True)
        parts.append(placeholder)
        edges.append(_connect(head.id, placeholder.id, branch_id))
        edges.append(_connect(placeholder.id, merge.id))

    if kind == NodeKind.loop.value:
        edges.append(_connect(head.id, merge.id, LOOP_BYPASS_BRANCH))

    parts.append(merge)
    return _NewStep(head=head, parts=parts, edges=edges, exit_id=merge.id)


class GraphMutator:
    """Applies editor operations (delete, swap, insert) to a flow snapshot."""

    def __init__(self, graph: FlowGraph, max_iterations: int | None = None) -> None:
        self.graph = graph
        self.index = GraphIndex.from_graph(graph)
        self.resolver = MergeResolver(self.index, max_iterations=max_iterations)

    def _refuse(self, message: str) -> EditResult:
        logger.warning(message)
        return EditResult(graph=self.graph, applied=False, warning=message)

    def _rebuild(
        self, nodes: list[Node], edges: list[Edge], moved: dict[str, str] | None = None
    ) -> FlowGraph:
        """New snapshot with merge caches re-pointed via moved and stale ones dropped."""
        moved = moved or {}
        alive = {n.id for n in nodes}
        fixed = []
        for node in nodes:
            cached = node.data.merge_node_id
            if cached is not None:
                target = moved.get(cached, cached)
                if target not in alive:
                    logger.debug("dropped stale merge cache %s on %s", cached, node.id)
                    target = None
                if target != cached:
                    node = _with_data(node, merge_node_id=target)
            fixed.append(node)
        return self.graph.model_copy(update={"nodes": fixed, "edges": edges})

    def _replace_node(self, replacement: Node) -> FlowGraph:
        nodes = [replacement if n.id == replacement.id else n for n in self.graph.nodes]
        return self._rebuild(nodes, list(self.graph.edges))

    def _is_join(self, node_id: str, removed: set[str]) -> bool:
        """True if node_id is a merge or still has an incoming edge after removal."""
        if is_merge_node(self.index.node_by_id(node_id)):
            return True
        return any(e.source not in removed for e in self.index.edges_to(node_id))

    def _bridge(
        self, in_edge: Edge, target: str, into_join: bool
    ) -> tuple[list[Node], list[Edge]]:
        """Reconnect in_edge's source to target, keeping its branch id.

        A block head is never wired straight into a join point; an emptied
        branch gets a fresh branch placeholder instead.
        """
        source = self.index.node_by_id(in_edge.source)
        if into_join and is_block_head(source):
            placeholder = _placeholder(_branch_label(source, in_edge.branch_id), branch=True)
            return [placeholder], [
                _connect(in_edge.source, placeholder.id, in_edge.branch_id),
                _connect(placeholder.id, target),
            ]
        return [], [_connect(in_edge.source, target, in_edge.branch_id)]

    def _closing_head(self, merge_id: str) -> str | None:
        """The block head whose block merge_id currently closes, if any."""
        for node in self.graph.nodes:
            if node.id != merge_id and is_block_head(node) and node.data.merge_node_id == merge_id:
                return node.id
        head_id = self.resolver.find_block_starter(merge_id)
        if head_id is not None and self.resolver.find_merge_node(head_id) == merge_id:
            return head_id
        return None

    # deletion

    def delete_node(self, node_id: str) -> EditResult:
        """Delete a step, keeping the flow single-entry/single-exit.

        Block heads take their whole branch body with them; populated
        steps are reverted to placeholders so their slot survives.
        """
        node = self.index.node_by_id(node_id)
        if node is None:
            return self._refuse(f"node not found: {node_id}")

        if node.type == NodeKind.trigger.value:
            reset = node.model_copy(
                update={"data": NodeData(label="Select Trigger", is_placeholder=True)}
            )
            logger.info("reset trigger %s to placeholder", node_id)
            return EditResult(graph=self._replace_node(reset))

        if is_block_head(node):
            return self._delete_block(node)

        incoming = self.index.edges_to(node_id)
        outgoing = self.index.edges_from(node_id)

        # populated join point goes back to being a merge placeholder
        if len(incoming) > 1 and not node.data.is_placeholder:
            reverted = node.model_copy(
                update={
                    "type": NodeKind.custom.value,
                    "data": NodeData(
                        label=PLACEHOLDER_LABEL,
                        sub_label="Merge",
                        is_placeholder=True,
                        is_merge_placeholder=True,
                    ),
                }
            )
            logger.info("reverted merge %s to placeholder", node_id)
            return EditResult(graph=self._replace_node(reverted))

        # populated linear step keeps its slot
        if len(incoming) <= 1 and len(outgoing) <= 1 and not node.data.is_placeholder:
            reverted = _with_data(
                node,
                label=PLACEHOLDER_LABEL,
                sub_label="",
                params=None,
                is_placeholder=True,
                is_branch_placeholder=False,
                is_merge_placeholder=False,
            ).model_copy(update={"type": NodeKind.custom.value})
            logger.info("reverted %s to placeholder", node_id)
            return EditResult(graph=self._replace_node(reverted))

        if is_merge_node(node):
            head_id = self._closing_head(node_id)
            if head_id is not None:
                return self._refuse(
                    f"merge node {node_id} closes block {head_id}; delete the block instead"
                )

        return self._remove_and_bridge(node, incoming, outgoing)

    def _remove_and_bridge(
        self, node: Node, incoming: list[Edge], outgoing: list[Edge]
    ) -> EditResult:
        nodes = [n for n in self.graph.nodes if n.id != node.id]
        edges = [e for e in self.graph.edges if node.id not in (e.source, e.target)]
        added: list[str] = []

        if incoming and len(outgoing) == 1:
            target = outgoing[0].target
            into_join = len(incoming) == 1 and self._is_join(target, {node.id})

            for in_edge in incoming:
                new_nodes, new_edges = self._bridge(in_edge, target, into_join)
                nodes.extend(new_nodes)
                added.extend(n.id for n in new_nodes)
                edges.extend(new_edges)

        logger.info("removed %s (%d placeholder(s) added)", node.id, len(added))
        return EditResult(
            graph=self._rebuild(nodes, edges),
            removed_node_ids=[node.id],
            added_node_ids=added,
        )

    def _delete_block(self, head: Node) -> EditResult:
        merge_id = self.resolver.find_merge_node(head.id)
        if merge_id is not None and not self.index.has_node(merge_id):
            logger.debug("cached merge %s of %s is gone, searching again", merge_id, head.id)
            merge_id = self.resolver.find_merge_node(head.id, use_cache=False)
        if merge_id is None:
            return self._refuse(
                f"block {head.id} has no reachable merge node (open/unterminated block)"
            )
        if merge_id == head.id:
            return self._refuse(f"block {head.id} resolves to invalid merge node {merge_id}")

        body = self.resolver.nodes_in_block(head.id, merge_id, include_merge=False)
        # a head that is itself a join hands its merging role to its own merge
        head_merges = is_merge_node(head)
        shared = head_merges or self._merge_is_shared(merge_id, body)
        removed = set(body) if shared else body | {merge_id}

        nodes = [n for n in self.graph.nodes if n.id not in removed]
        edges = [
            e for e in self.graph.edges if e.source not in removed and e.target not in removed
        ]

        if shared:
            targets = [merge_id]
        else:
            targets = [e.target for e in self.index.edges_from(merge_id) if e.target not in removed]

        added: list[str] = []
        for in_edge in self.index.edges_to(head.id):
            if in_edge.source in removed:
                continue
            for target in targets:
                new_nodes, new_edges = self._bridge(
                    in_edge, target, self._is_join(target, removed)
                )
                nodes.extend(new_nodes)
                added.extend(n.id for n in new_nodes)
                edges.extend(new_edges)

        removed_ids = [n.id for n in self.graph.nodes if n.id in removed]
        logger.info(
            "removed block %s (%d nodes, merge %s %s)",
            head.id,
            len(removed_ids),
            merge_id,
            "kept" if shared else "removed",
        )
        moved = {head.id: merge_id} if head_merges else None
        return EditResult(
            graph=self._rebuild(nodes, edges, moved),
            removed_node_ids=removed_ids,
            added_node_ids=added,
        )

    def _merge_is_shared(self, merge_id: str, body: set[str]) -> bool:
        """True if something outside the block still depends on the merge node."""
        if is_block_head(self.index.node_by_id(merge_id)):
            return True
        for other in self.graph.nodes:
            if other.id in body:
                continue
            if is_block_head(other) and other.data.merge_node_id == merge_id:
                return True
        return any(e.source not in body for e in self.index.edges_to(merge_id))

    # swapping

    def swap_node(
        self,
        node_id: str,
        kind: NodeKind | str,
        label: str | None = None,
        params: dict | None = None,
    ) -> EditResult:
        """Replace a step's kind and content in place.

        A block head can only become another block head; its merge node
        stays valid and is pinned into the ``mergeNodeId`` cache.
        """
        node = self.index.node_by_id(node_id)
        if node is None:
            return self._refuse(f"node not found: {node_id}")

        kind = _kind_value(kind)
        was_block = is_block_head(node)
        if was_block != (kind in BLOCK_HEAD_KINDS):
            return self._refuse(
                f"cannot swap {node_id} from {node.type} to {kind}; insert or delete the block instead"
            )

        changes: dict = {"is_placeholder": False}
        if label is not None:
            changes["label"] = label
        if params is not None:
            changes["params"] = params
        if was_block:
            merge_id = self.resolver.find_merge_node(node_id)
            if merge_id is not None:
                changes["merge_node_id"] = merge_id

        swapped = _with_data(node, **changes).model_copy(update={"type": kind})
        logger.info("swapped %s from %s to %s", node_id, node.type, kind)
        return EditResult(graph=self._replace_node(swapped))

    # insertion

    def insert_step(
        self,
        source_id: str,
        target_id: str,
        kind: NodeKind | str,
        label: str | None = None,
        branches: list[str] | None = None,
    ) -> EditResult:
        """Insert a step on the edge source_id -> target_id.

        Block kinds come with their branch placeholders and a merge
        placeholder that reconnects to the old target.
        """
        edge = next(
            (e for e in self.index.edges_from(source_id) if e.target == target_id), None
        )
        if edge is None:
            return self._refuse(f"edge not found: {source_id} -> {target_id}")

        kind = _kind_value(kind)
        step = _build_step(kind, label=label, branches=branches)
        new_edges = [
            _connect(source_id, step.head.id, edge.branch_id),
            *step.edges,
            _connect(step.exit_id, target_id),
        ]

        nodes = [*self.graph.nodes, step.head, *step.parts]
        edges = [e for e in self.graph.edges if e is not edge] + new_edges
        logger.info("inserted %s %s between %s and %s", kind, step.head.id, source_id, target_id)
        return EditResult(
            graph=self._rebuild(nodes, edges),
            added_node_ids=[step.head.id] + [n.id for n in step.parts],
        )

    def replace_placeholder(
        self,
        node_id: str,
        kind: NodeKind | str,
        label: str | None = None,
        params: dict | None = None,
        branches: list[str] | None = None,
    ) -> EditResult:
        """Fill an "Add Step" placeholder with a real step or a whole block.

        Plain kinds fill the placeholder in place. Block kinds take the
        placeholder's slot: every incoming edge now enters the new head and
        its merge continues to the placeholder's successor. Filling a merge
        placeholder with a block makes the new head the join point, so the
        block the placeholder closed is re-pointed at it.
        """
        node = self.index.node_by_id(node_id)
        if node is None:
            return self._refuse(f"node not found: {node_id}")
        if not node.data.is_placeholder:
            return self._refuse(f"{node_id} is not a placeholder; swap it instead")

        kind = _kind_value(kind)
        if kind not in BLOCK_HEAD_KINDS:
            changes: dict = {
                "label": label or kind,
                "is_placeholder": False,
                "is_branch_placeholder": False,
            }
            if params is not None:
                changes["params"] = params
            filled = _with_data(node, **changes).model_copy(update={"type": kind})
            logger.info("filled placeholder %s with %s", node_id, kind)
            return EditResult(graph=self._replace_node(filled))

        incoming = self.index.edges_to(node_id)
        if not incoming:
            return self._refuse(f"placeholder {node_id} has no incoming edge")

        step = _build_step(kind, label=label, params=params, branches=branches)
        head = step.head
        moved: dict[str, str] = {}
        closing_head = None
        if is_merge_node(node) and len(incoming) > 1:
            closing_head = self._closing_head(node_id)
            head = _with_data(head, is_merge_node=True)
            moved[node_id] = head.id

        new_edges = [_connect(e.source, head.id, e.branch_id) for e in incoming]
        new_edges += step.edges
        new_edges += [_connect(step.exit_id, e.target) for e in self.index.edges_from(node_id)[:1]]

        nodes = [n for n in self.graph.nodes if n.id != node_id] + [head, *step.parts]
        if closing_head is not None:
            # pin the outer block, whose structural search cannot close on a head
            nodes = [
                _with_data(n, merge_node_id=head.id) if n.id == closing_head else n
                for n in nodes
            ]
        edges = [e for e in self.graph.edges if node_id not in (e.source, e.target)] + new_edges

        logger.info("replaced placeholder %s with %s %s", node_id, kind, head.id)
        return EditResult(
            graph=self._rebuild(nodes, edges, moved),
            removed_node_ids=[node_id],
            added_node_ids=[head.id] + [n.id for n in step.parts],
        )

    # branch reconciliation

    def set_parallel_branches(self, node_id: str, branches: list[str]) -> EditResult:
        """Make a parallel (or loop) node's branches match the given names.

        Existing branches are relabelled in edge order. Surplus branch
        placeholders are removed; surplus real steps are only disconnected.
        New branches get a placeholder wired to the block's merge node.
        """
        node = self.index.node_by_id(node_id)
        if node is None:
            return self._refuse(f"node not found: {node_id}")
        if node.type not in (NodeKind.parallel.value, NodeKind.loop.value):
            return self._refuse(f"{node_id} is not a parallel or loop node")
        if not branches:
            return self._refuse(f"{node_id} needs at least one branch")

        merge_id = self.resolver.find_merge_node(node_id)
        if merge_id is None:
            return self._refuse(f"block {node_id} has no reachable merge node")

        positions = [
            i
            for i, e in enumerate(self.graph.edges)
            if e.source == node_id and e.branch_id != LOOP_BYPASS_BRANCH
        ]
        edges: list[Edge | None] = list(self.graph.edges)
        nodes = list(self.graph.nodes)
        removed: set[str] = set()
        added: list[str] = []

        for i in positions[len(branches):]:
            target = self.index.node_by_id(self.graph.edges[i].target)
            edges[i] = None
            if target is not None and target.data.is_branch_placeholder:
                removed.add(target.id)

        for name, i in zip(branches, positions):
            edge = self.graph.edges[i]
            if edge.branch_id != name:
                edges[i] = edge.model_copy(update={"branch_id": name})
            target = self.index.node_by_id(edge.target)
            if target is not None and target.data.is_branch_placeholder and target.data.sub_label != name:
                relabelled = _with_data(target, sub_label=name)
                nodes = [relabelled if n.id == target.id else n for n in nodes]

        for name in branches[len(positions):]:
            placeholder = _placeholder(name, branch=True)
            nodes.append(placeholder)
            added.append(placeholder.id)
            edges.append(_connect(node_id, placeholder.id, name))
            edges.append(_connect(placeholder.id, merge_id))

        head = _with_data(node, params={**(node.data.params or {}), "branches": list(branches)})
        nodes = [head if n.id == node_id else n for n in nodes if n.id not in removed]
        kept_edges = [
            e for e in edges if e is not None and e.source not in removed and e.target not in removed
        ]

        logger.info(
            "set %d branch(es) on %s (+%d, -%d)", len(branches), node_id, len(added), len(removed)
        )
        return EditResult(
            graph=self._rebuild(nodes, kept_edges),
            removed_node_ids=[n.id for n in self.graph.nodes if n.id in removed],
            added_node_ids=added,
        )
