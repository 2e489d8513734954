"""Tests for the flow HTTP routes."""

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from server.app import app

FIXTURE = Path(__file__).parent / "fixtures" / "nested_flow.json"


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def flow() -> dict:
    return json.loads(FIXTURE.read_text())


def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestQueries:
    """Test the read-only block queries."""

    def test_merge_node(self, client, flow):
        response = client.post(
            "/api/flows/merge-node", json={"flow": flow, "nodeId": "check-total"}
        )
        assert response.status_code == 200
        assert response.json() == {"nodeId": "check-total", "mergeNodeId": "join"}

    def test_block_lists_nodes_in_flow_order(self, client, flow):
        response = client.post("/api/flows/block", json={"flow": flow, "nodeId": "check-total"})
        body = response.json()
        assert body["mergeNodeId"] == "join"
        assert body["nodeIds"] == [
            "check-total", "notify", "fan-out", "sheet", "doc", "fan-in", "join",
        ]

    def test_open_block(self, client):
        flow = {
            "nodes": [{"id": "c", "type": "condition"}, {"id": "a"}],
            "edges": [{"source": "c", "target": "a"}],
        }
        body = client.post("/api/flows/block", json={"flow": flow, "nodeId": "c"}).json()
        assert body["mergeNodeId"] is None
        assert body["nodeIds"] == []

    def test_block_starter(self, client, flow):
        response = client.post(
            "/api/flows/block-starter", json={"flow": flow, "nodeId": "fan-in"}
        )
        assert response.json() == {"mergeNodeId": "fan-in", "headId": "fan-out"}

    def test_unknown_node(self, client, flow):
        response = client.post("/api/flows/merge-node", json={"flow": flow, "node_id": "nope"})
        assert response.status_code == 404

    def test_missing_flow_is_rejected(self, client):
        response = client.post("/api/flows/merge-node", json={"node_id": "a"})
        assert response.status_code == 422


class TestEdits:
    """Test the edit routes."""

    def test_delete_block(self, client, flow):
        """Field names are accepted alongside the camelCase aliases."""
        response = client.post(
            "/api/flows/delete-node", json={"flow": flow, "node_id": "fan-out"}
        )
        body = response.json()

        assert body["applied"] is True
        assert body["removedNodeIds"] == ["fan-out", "sheet", "doc", "fan-in"]
        assert body["flow"]["flowId"] == "order-review"
        (placeholder_id,) = body["addedNodeIds"]
        refilled = [
            e for e in body["flow"]["edges"]
            if e["source"] == "check-total" and e["target"] == placeholder_id
        ]
        assert refilled[0]["branchId"] == "false"

    def test_refused_delete_is_not_an_error(self, client):
        flow = {
            "nodes": [{"id": "c", "type": "condition"}, {"id": "a"}],
            "edges": [{"source": "c", "target": "a"}],
        }
        response = client.post("/api/flows/delete-node", json={"flow": flow, "nodeId": "c"})
        assert response.status_code == 200
        assert response.json()["applied"] is False
        assert response.json()["warning"]

    def test_swap_node(self, client, flow):
        response = client.post(
            "/api/flows/swap-node",
            json={"flow": flow, "nodeId": "notify", "type": "action", "label": "Post to Slack"},
        )
        nodes = {n["id"]: n for n in response.json()["flow"]["nodes"]}
        assert nodes["notify"]["data"]["label"] == "Post to Slack"
        assert nodes["notify"]["data"]["appId"] == "gmail"

    def test_insert_step(self, client, flow):
        response = client.post(
            "/api/flows/insert-step",
            json={"flow": flow, "source": "join", "target": "each-item", "type": "condition"},
        )
        body = response.json()
        assert body["applied"] is True
        assert len(body["addedNodeIds"]) == 4

    def test_insert_on_missing_edge(self, client, flow):
        response = client.post(
            "/api/flows/insert-step",
            json={"flow": flow, "source": "1", "target": "end", "type": "action"},
        )
        assert response.status_code == 404

    def test_parallel_branches(self, client, flow):
        response = client.post(
            "/api/flows/parallel-branches",
            json={"flow": flow, "nodeId": "fan-out", "branches": ["A", "B", "C"]},
        )
        body = response.json()
        assert len(body["addedNodeIds"]) == 1
        fan_out = next(n for n in body["flow"]["nodes"] if n["id"] == "fan-out")
        assert fan_out["data"]["params"]["branches"] == ["A", "B", "C"]

    def test_replace_placeholder(self, client, flow):
        response = client.post(
            "/api/flows/replace-placeholder",
            json={"flow": flow, "nodeId": "loop-body", "type": "parallel", "branches": ["A", "B"]},
        )
        body = response.json()

        assert body["applied"] is True
        assert body["removedNodeIds"] == ["loop-body"]
        assert len(body["addedNodeIds"]) == 4
