"""Tests for flow snapshot models and their tolerance of editor payloads."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from flowgraph.analysis.blocks import is_block_head, is_merge_node
from flowgraph.models.flow_graph import Edge, FlowGraph, Node, NodeData, NodeKind

FIXTURE = Path(__file__).parent / "fixtures" / "nested_flow.json"


class TestNodeData:
    """Test the open data record attached to nodes."""

    def test_reads_camel_case_keys(self):
        """Editor payloads use camelCase keys."""
        data = NodeData.model_validate({
            "isMergePlaceholder": True,
            "mergeNodeId": "m-1",
            "subLabel": "Merge",
        })
        assert data.is_merge_placeholder is True
        assert data.merge_node_id == "m-1"
        assert data.sub_label == "Merge"

    def test_accepts_field_names(self):
        """Python callers can use snake_case field names."""
        data = NodeData(is_merge_node=True, label="Join")
        assert data.is_merge_node is True
        assert data.label == "Join"

    def test_null_flags_are_false(self):
        """A null flag is read as unset rather than rejected."""
        data = NodeData.model_validate({"isMergePlaceholder": None, "isMergeNode": None})
        assert data.is_merge_placeholder is False
        assert data.is_merge_node is False

    def test_keeps_unknown_fields(self):
        """Editor-specific fields survive a dump with aliases."""
        data = NodeData.model_validate({"label": "Send", "appId": "gmail", "icon": "Mail"})
        dumped = data.model_dump(by_alias=True, exclude_none=True)
        assert dumped["appId"] == "gmail"
        assert dumped["icon"] == "Mail"
        assert dumped["label"] == "Send"


class TestNode:
    """Test node validation for malformed or minimal nodes."""

    def test_missing_data_defaults_to_empty(self):
        """A node without data is a plain pass-through node."""
        node = Node.model_validate({"id": "a"})
        assert node.data == NodeData()
        assert not is_block_head(node)
        assert not is_merge_node(node)

    def test_null_data_defaults_to_empty(self):
        """data: null is treated like missing data."""
        node = Node.model_validate({"id": "a", "type": "action", "data": None})
        assert node.data.label is None

    def test_unknown_type_is_accepted(self):
        """Node kinds are an open set."""
        node = Node.model_validate({"id": "w", "type": "webhook-responder", "data": {}})
        assert node.type == "webhook-responder"
        assert not is_block_head(node)

    def test_requires_id(self):
        """A node must carry an id."""
        with pytest.raises(ValidationError) as exc_info:
            Node.model_validate({"type": "action", "data": {}})
        assert "id" in str(exc_info.value)

    def test_keeps_position(self):
        """Layout fields on the node itself are preserved."""
        node = Node.model_validate({"id": "a", "position": {"x": 10, "y": 20}})
        assert node.model_dump()["position"] == {"x": 10, "y": 20}


class TestClassifier:
    """Test block head and merge node predicates."""

    @pytest.mark.parametrize("kind", ["condition", "parallel", "loop"])
    def test_block_head_kinds(self, kind):
        assert is_block_head(Node(id="h", type=kind))

    @pytest.mark.parametrize("kind", ["trigger", "action", "merge", "end", "placeholder", None])
    def test_other_kinds_are_not_block_heads(self, kind):
        assert not is_block_head(Node(id="n", type=kind))

    def test_enum_value_matches(self):
        """NodeKind values compare equal to the raw type strings."""
        assert is_block_head(Node(id="h", type=NodeKind.parallel.value))

    def test_merge_type_alone_is_not_a_merge(self):
        """Merge status comes from the data flags, not the node type."""
        assert not is_merge_node(Node(id="m", type="merge"))

    def test_either_flag_marks_a_merge(self):
        assert is_merge_node(Node(id="m", data=NodeData(is_merge_placeholder=True)))
        assert is_merge_node(Node(id="m", data=NodeData(is_merge_node=True)))

    def test_node_can_be_both(self):
        """A populated join point can also open its own block."""
        node = Node(id="c2", type="condition", data=NodeData(is_merge_node=True))
        assert is_block_head(node)
        assert is_merge_node(node)

    def test_missing_node_is_neither(self):
        assert not is_block_head(None)
        assert not is_merge_node(None)


class TestFlowGraph:
    """Test loading a full flow snapshot."""

    def test_loads_fixture(self):
        """Sample flow should validate and expose its nodes and edges."""
        with open(FIXTURE) as f:
            graph = FlowGraph.model_validate(json.load(f))

        assert graph.flow_id == "order-review"
        assert len(graph.nodes) == 12
        assert len(graph.edges) == 14
        assert graph.node("loop-done").data.is_merge_placeholder is True
        assert graph.node("end").data == NodeData()

    def test_edge_branch_id_alias(self):
        edge = Edge.model_validate({"source": "a", "target": "b", "branchId": "true"})
        assert edge.branch_id == "true"
        assert edge.model_dump(by_alias=True)["branchId"] == "true"

    def test_node_lookup_returns_first_match(self):
        graph = FlowGraph(nodes=[
            Node(id="a", type="action"),
            Node(id="a", type="condition"),
        ])
        assert graph.node("a").type == "action"
        assert graph.node("missing") is None
