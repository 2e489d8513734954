"""Tests for the block structure CLI."""

import json
import sys
from pathlib import Path

import pytest

from flowgraph.analysis.inspect_flow import (
    BlockReport,
    format_reports,
    inspect_blocks,
    load_flow,
    main,
)

FIXTURE = Path(__file__).parent / "fixtures" / "nested_flow.json"


class TestInspectBlocks:
    """Test block reports built from a flow."""

    def test_reports_every_block_head(self):
        reports = inspect_blocks(load_flow(FIXTURE))

        assert [(r.head_id, r.merge_id, r.body_size) for r in reports] == [
            ("check-total", "join", 6),
            ("fan-out", "fan-in", 3),
            ("each-item", "loop-done", 2),
        ]
        assert not any(r.cached for r in reports)

    def test_selected_nodes_only(self):
        reports = inspect_blocks(load_flow(FIXTURE), ["fan-out", "missing"])
        assert [r.head_id for r in reports] == ["fan-out"]

    def test_format_open_block(self):
        text = format_reports([BlockReport(head_id="c", kind="condition", merge_id=None, cached=False)])
        assert "c [condition] -> OPEN" in text
        assert "1 open block(s)" in text

    def test_format_closed_blocks(self):
        text = format_reports([
            BlockReport(head_id="c", kind="condition", merge_id="m", cached=True, body_size=4),
        ])
        assert "c [condition] -> m (cached), 4 node(s) in block" in text
        assert "All blocks closed" in text

    def test_format_empty(self):
        assert "(no block heads found)" in format_reports([])


class TestMain:
    """Test the command line entry point."""

    def test_json_output(self, monkeypatch, capsys):
        monkeypatch.setattr(
            sys, "argv", ["inspect_flow", str(FIXTURE), "--node", "each-item", "--json"]
        )
        main()

        reports = json.loads(capsys.readouterr().out)
        assert reports == [{
            "head_id": "each-item",
            "kind": "loop",
            "merge_id": "loop-done",
            "cached": False,
            "body_size": 2,
        }]

    def test_text_output(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["inspect_flow", str(FIXTURE)])
        main()
        assert "BLOCK STRUCTURE" in capsys.readouterr().out

    def test_missing_file(self, monkeypatch, capsys, tmp_path):
        monkeypatch.setattr(sys, "argv", ["inspect_flow", str(tmp_path / "nope.json")])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "flow file not found" in capsys.readouterr().err
