"""Tests for the HTTP and websocket surface."""

from __future__ import annotations

import textwrap

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from livebid.config import get_server_config, load_server_config
from livebid.main import app


@pytest.fixture
def client(tmp_path, monkeypatch):
    config_path = tmp_path / "server.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            state:
              backend: in_memory
            channel:
              backend: in_memory
              resubscribe_delay_seconds: 0.05
            persistence:
              backend: in_memory
            auction:
              duration_seconds: 60
              tick_seconds: 3600
            """
        )
    )
    monkeypatch.setenv("LIVEBID_CONFIG_PATH", str(config_path))
    get_server_config.cache_clear()
    with TestClient(app) as test_client:
        yield test_client
    get_server_config.cache_clear()


def test_config_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("{}\n")

    config = load_server_config(path)

    assert config.state.backend == "in_memory"
    assert config.auction.duration_seconds == 60
    assert config.auction.snipe_threshold_seconds == 10
    assert config.auction.house_bidder == "House"
    assert config.auction.sold_message == "SOLD!"


def test_missing_config_file_fails(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_server_config(tmp_path / "absent.yaml")


def test_greeting_on_connect(client):
    with client.websocket_connect("/ws") as ws:
        greeting = ws.receive_json()

    assert greeting["type"] == "update"
    assert greeting["price"] == 0


def test_start_bid_flow_reaches_every_viewer(client):
    with client.websocket_connect("/ws") as bidder, client.websocket_connect("/ws") as watcher:
        bidder.receive_json()
        watcher.receive_json()

        bidder.send_json({"type": "start", "item_name": "GPU", "opening_price": 500})
        for ws in (bidder, watcher):
            started = ws.receive_json()
            assert (started["item_name"], started["price"], started["bidder"]) == ("GPU", 500, "House")
            assert started["time_left"] == 60

        bidder.send_json({"type": "bid", "bidder": "alice", "amount": 600})
        for ws in (bidder, watcher):
            update = ws.receive_json()
            assert (update["price"], update["bidder"]) == (600, "alice")

        watcher.send_json({"type": "bid", "bidder": "bob", "amount": 600})
        rejection = watcher.receive_json()
        assert rejection["type"] == "error"
        assert "600" in rejection["message"]

    state = client.get("/auction").json()
    assert (state["price"], state["bidder"]) == (600, "alice")

    stats = client.get("/admin/stats").json()
    assert stats["bids_by_bidder"] == {"alice": 1}
    assert stats["current_price"] == 600


def test_malformed_message_closes_connection(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("this is not json")
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()

    assert exc_info.value.code == 1003


def test_admin_endpoints(client):
    health = client.get("/admin/health").json()
    config = client.get("/admin/config").json()
    root = client.get("/").json()

    assert health["status"] == "healthy"
    assert health["state_store_reachable"] is True
    assert config["state_backend"] == "in_memory"
    assert config["auction"]["tick_seconds"] == 3600
    assert root["service"] == "livebid"
