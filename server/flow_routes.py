"""API routes for block queries and structural edits on a flow snapshot.

Every request carries the full flow; nothing is stored server-side.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from flowgraph.analysis.graph_index import GraphIndex
from flowgraph.analysis.merge_resolver import MergeResolver
from flowgraph.editing.mutator import EditResult, GraphMutator
from flowgraph.models.flow_graph import FlowGraph

router = APIRouter(prefix="/flows")


class CamelModel(BaseModel):
    """Base for request and response bodies: camelCase on the wire, like the flow itself."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class NodeRequest(CamelModel):
    """request body naming one node of a flow."""

    flow: FlowGraph
    node_id: str


class SwapNodeRequest(NodeRequest):
    type: str
    label: str | None = None
    params: dict | None = None


class ReplacePlaceholderRequest(SwapNodeRequest):
    branches: list[str] | None = None


class InsertStepRequest(CamelModel):
    """request body for inserting a step on an existing edge."""

    flow: FlowGraph
    source: str
    target: str
    type: str
    label: str | None = None
    branches: list[str] | None = None


class BranchesRequest(NodeRequest):
    branches: list[str]


class MergeNodeResponse(CamelModel):
    node_id: str
    merge_node_id: str | None = None


class BlockResponse(CamelModel):
    head_id: str
    merge_node_id: str | None = None
    node_ids: list[str] = []


class BlockStarterResponse(CamelModel):
    merge_node_id: str
    head_id: str | None = None


class EditResponse(CamelModel):
    flow: FlowGraph
    applied: bool
    removed_node_ids: list[str] = []
    added_node_ids: list[str] = []
    warning: str | None = None


def _require_node(flow: FlowGraph, node_id: str) -> None:
    if flow.node(node_id) is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")


def _edit_response(result: EditResult) -> EditResponse:
    return EditResponse(
        flow=result.graph,
        applied=result.applied,
        removed_node_ids=result.removed_node_ids,
        added_node_ids=result.added_node_ids,
        warning=result.warning,
    )


@router.post("/merge-node")
def merge_node(request: NodeRequest) -> MergeNodeResponse:
    """find the merge node closing the block opened at node_id."""
    _require_node(request.flow, request.node_id)
    resolver = MergeResolver(GraphIndex.from_graph(request.flow))
    return MergeNodeResponse(
        node_id=request.node_id,
        merge_node_id=resolver.find_merge_node(request.node_id),
    )


@router.post("/block")
def block(request: NodeRequest) -> BlockResponse:
    """list the nodes covered by the block opened at node_id.

    An open block (no merge node) comes back with an empty node list.
    """
    _require_node(request.flow, request.node_id)
    resolver = MergeResolver(GraphIndex.from_graph(request.flow))
    extent = resolver.block_extent(request.node_id)
    if extent is None:
        return BlockResponse(head_id=request.node_id)
    order = [n.id for n in request.flow.nodes if n.id in extent.node_ids]
    return BlockResponse(head_id=request.node_id, merge_node_id=extent.merge_id, node_ids=order)


@router.post("/block-starter")
def block_starter(request: NodeRequest) -> BlockStarterResponse:
    """find the block head whose block the merge node node_id closes."""
    _require_node(request.flow, request.node_id)
    resolver = MergeResolver(GraphIndex.from_graph(request.flow))
    return BlockStarterResponse(
        merge_node_id=request.node_id,
        head_id=resolver.find_block_starter(request.node_id),
    )


@router.post("/delete-node")
def delete_node(request: NodeRequest) -> EditResponse:
    """delete a step (or a whole block when node_id is a block head)."""
    _require_node(request.flow, request.node_id)
    return _edit_response(GraphMutator(request.flow).delete_node(request.node_id))


@router.post("/swap-node")
def swap_node(request: SwapNodeRequest) -> EditResponse:
    """replace a step's kind and content, keeping its connections."""
    _require_node(request.flow, request.node_id)
    result = GraphMutator(request.flow).swap_node(
        request.node_id, request.type, label=request.label, params=request.params
    )
    return _edit_response(result)


@router.post("/insert-step")
def insert_step(request: InsertStepRequest) -> EditResponse:
    """insert a step (or a new block) on the edge source -> target."""
    result = GraphMutator(request.flow).insert_step(
        request.source,
        request.target,
        request.type,
        label=request.label,
        branches=request.branches,
    )
    if not result.applied:
        raise HTTPException(status_code=404, detail=result.warning)
    return _edit_response(result)


@router.post("/parallel-branches")
def parallel_branches(request: BranchesRequest) -> EditResponse:
    """reconcile a parallel or loop node's branches with a new branch list."""
    _require_node(request.flow, request.node_id)
    result = GraphMutator(request.flow).set_parallel_branches(request.node_id, request.branches)
    return _edit_response(result)


@router.post("/replace-placeholder")
def replace_placeholder(request: ReplacePlaceholderRequest) -> EditResponse:
    """fill an "Add Step" placeholder with a step, or put a new block in its slot."""
    _require_node(request.flow, request.node_id)
    result = GraphMutator(request.flow).replace_placeholder(
        request.node_id,
        request.type,
        label=request.label,
        params=request.params,
        branches=request.branches,
    )
    return _edit_response(result)
