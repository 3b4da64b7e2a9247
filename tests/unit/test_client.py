"""Unit tests for the backend client."""

from unittest.mock import MagicMock

import pytest
import requests

from crafttree.client import BackendClient
from crafttree.core.types import Algorithm


def response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return BackendClient("http://backend/api/", "ws://backend/ws/animation", timeout=5, session=session)


class TestRunSearch:
    def test_bfs_url_and_params(self, client, session):
        session.get.return_value = response(payload={"paths": []})

        result = client.run_search("Brick", Algorithm.BFS, count=3)

        assert result.is_ok()
        assert result.unwrap() == {"paths": []}
        session.get.assert_called_once_with(
            "http://backend/api/bfs-tree/Brick", params={"count": 3}, timeout=5
        )

    def test_bidirectional_flags(self, client, session):
        session.get.return_value = response(payload={})
        client.run_search("Mud", "bidir")

        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url == "http://backend/api/bidirectional/Mud"
        assert params == {"count": 1, "multithreaded": "true", "tree": "true"}

    def test_target_is_quoted(self, client, session):
        session.get.return_value = response(payload={})
        client.run_search("Hot Dog", "dfs")
        assert session.get.call_args.args[0] == "http://backend/api/dfs-tree/Hot%20Dog"

    def test_http_error(self, client, session):
        session.get.return_value = response(status=404, text="element not found")

        result = client.run_search("Unobtainium", Algorithm.BFS)

        assert result.is_err()
        assert result.error.status_code == 404
        assert "element not found" in str(result.error)

    def test_connection_error(self, client, session):
        session.get.side_effect = requests.ConnectionError("refused")

        result = client.run_search("Brick", Algorithm.BFS)

        assert result.is_err()
        assert "unreachable" in result.error.message
        assert isinstance(result.error.cause, requests.ConnectionError)

    def test_invalid_json(self, client, session):
        session.get.return_value = response(payload=ValueError("bad json"))
        result = client.run_search("Brick", Algorithm.BFS)
        assert result.is_err()
        assert "invalid JSON" in result.error.message


class TestLoadCatalog:
    def test_parses_elements(self, client, session):
        session.get.return_value = response(payload=[
            {"name": "Fire", "tier": 0},
            {"name": "Mud", "tier": 1, "recipes": [{"ingredients": ["Water", "Earth"]}]},
            {"tier": 3},
        ])

        result = client.load_catalog()

        assert result.is_ok()
        elements = result.unwrap()
        assert [e.name for e in elements] == ["Fire", "Mud"]
        assert elements[0].is_base_element
        session.get.assert_called_once_with("http://backend/api/elements", params=None, timeout=5)

    def test_null_fields_keep_entries(self, client, session):
        session.get.return_value = response(payload=[
            {"name": "Water", "tier": None, "recipes": None},
            {"name": "Mud", "tier": 1, "recipes": [{"ingredients": None}, {"ingredients": ["Water", "Earth"]}]},
        ])

        elements = client.load_catalog().unwrap()

        assert [e.name for e in elements] == ["Water", "Mud"]
        assert elements[0].tier == 0 and elements[0].recipes == []
        assert [r.ingredients for r in elements[1].recipes] == [[], ["Water", "Earth"]]

    def test_unexpected_payload(self, client, session):
        session.get.return_value = response(payload="nope")
        assert client.load_catalog().is_err()


class TestStreamUrl:
    def test_stream_url(self, client):
        assert client.stream_url("Brick", "bidire") == "ws://backend/ws/animation/Brick?algorithm=bidirectional"
