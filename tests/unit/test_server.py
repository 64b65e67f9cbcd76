"""
Tests for the MCP tool dispatch in specgraph.server.
"""

import pytest

from specgraph.config import EngineConfig
from specgraph.server import create_server, dispatch_action


@pytest.fixture
def config():
    return EngineConfig(log_level="ERROR")


@pytest.fixture
def call(config, snapshot_data):
    def _call(action, **payload):
        payload.setdefault("snapshot", snapshot_data)
        return dispatch_action(action=action, payload=payload, config=config)

    return _call


class TestDispatch:
    def test_graph(self, call):
        response = call("graph")
        assert response["success"] is True
        assert response["meta"]["version"] == "response-v2"
        assert response["data"]["summary"]["node_count"] == 3

    def test_cycles(self, call, cyclic_specs):
        response = call("cycles", snapshot={"specs": [s.to_dict() for s in cyclic_specs]})
        assert response["data"]["count"] == 1
        assert response["data"]["cycles"][0]["path"] == "1 → 2 → 3 → 1"

    def test_chain(self, call):
        response = call("chain", spec_id="1")
        assert response["data"]["downstream"] == ["1", "2", "3"]
        assert response["data"]["dependents"] == ["2", "3"]

    def test_chain_requires_spec_id(self, call):
        response = call("chain")
        assert response["success"] is False
        assert response["data"]["error_code"] == "MISSING_REQUIRED"

    def test_validate_snapshot_and_spec(self, call):
        assert call("validate")["data"]["isValid"] is True
        single = call("validate", spec_id="2")["data"]
        assert single["is_valid"] is True
        assert single["issues"] == []

    def test_validation_errors_are_a_successful_response(self, call, spec_factory):
        snapshot = {"specs": [spec_factory("1", ["1"]).to_dict()]}
        response = call("validate", spec_id="1", snapshot=snapshot)
        assert response["success"] is True
        assert response["data"]["is_valid"] is False
        assert response["data"]["issues"][0]["code"] == "dependencies.self"

    def test_suggest(self, call, spec_factory):
        snapshot = {
            "specs": [
                spec_factory("1", title="Graph view", content="Extends spec:2.").to_dict(),
                spec_factory("2", title="Layout engine").to_dict(),
            ]
        }
        response = call("suggest", spec_id="1", snapshot=snapshot)
        suggestion = response["data"]["suggestions"][0]
        assert suggestion["targetSpecId"] == "2"
        assert suggestion["type"] == "extends"

    def test_suggest_negative_limit(self, call):
        response = call("suggest", spec_id="1", limit=-5)
        assert response["success"] is False
        assert response["data"]["error_code"] == "VALIDATION_ERROR"

    def test_broken_links(self, call, spec_factory):
        snapshot = {"specs": [spec_factory("1", content="See Spec 999 for details").to_dict()]}
        response = call("broken-links", snapshot=snapshot)
        assert response["data"]["count"] == 1
        assert response["data"]["broken_links"][0]["lineNumber"] == 1

    def test_unknown_spec(self, call):
        response = call("validate", spec_id="42")
        assert response["success"] is False
        assert response["data"]["error_code"] == "SPEC_NOT_FOUND"

    def test_unknown_action(self, call):
        response = call("render")
        assert response["success"] is False
        assert response["data"]["error_code"] == "UNKNOWN_ACTION"
        assert "broken-links" in response["error"]


class TestSnapshotResolution:
    def test_snapshot_path(self, config, snapshot_file):
        response = dispatch_action(
            action="graph", payload={"snapshot_path": str(snapshot_file)}, config=config
        )
        assert response["success"] is True

    def test_config_snapshot_path(self, snapshot_file):
        config = EngineConfig(snapshot_path=snapshot_file)
        response = dispatch_action(action="cycles", payload={}, config=config)
        assert response["success"] is True

    def test_no_snapshot(self, config):
        response = dispatch_action(action="graph", payload={}, config=config)
        assert response["data"]["error_code"] == "MISSING_REQUIRED"

    def test_missing_file(self, config, tmp_path):
        response = dispatch_action(
            action="graph", payload={"snapshot_path": str(tmp_path / "x.json")}, config=config
        )
        assert response["data"]["error_code"] == "SNAPSHOT_NOT_FOUND"
        assert response["data"]["error_type"] == "not_found"

    def test_malformed_inline_snapshot(self, config):
        response = dispatch_action(
            action="graph", payload={"snapshot": {"specs": 3}}, config=config
        )
        assert response["data"]["error_code"] == "INVALID_FORMAT"


def test_create_server(config):
    server = create_server(config)
    assert server.name == "specgraph"
