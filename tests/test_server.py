"""End-to-end tests for the WebSocket transport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from kanban_sync.authority import Authority
from kanban_sync.server import WebSocketChannel, create_app
from kanban_sync.view_model import BoardViewModel


@pytest.fixture
def app_authority() -> Authority:
    return Authority()


@pytest.fixture
def client(app_authority: Authority) -> TestClient:
    return TestClient(create_app(app_authority))


def test_connect_receives_empty_snapshot(client: TestClient) -> None:
    """Test a new connection is greeted with the collection."""
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"event": "snapshot", "data": []}


def test_create_move_scenario(client: TestClient) -> None:
    """Test the create then move flow through a real connection."""
    view = BoardViewModel()
    with client.websocket_connect("/ws") as ws:
        message = ws.receive_json()
        view.handle_event(message["event"], message["data"])
        assert view.tasks == []

        ws.send_json({"event": "create", "data": {"title": "Buy milk"}})
        message = ws.receive_json()
        assert message == {
            "event": "snapshot",
            "data": [
                {
                    "id": "1",
                    "title": "Buy milk",
                    "description": "",
                    "status": "todo",
                    "priority": "Medium",
                    "category": "Feature",
                    "attachments": [],
                }
            ],
        }
        before = message["data"][0]

        ws.send_json({"event": "move", "data": {"id": "1", "status": "done"}})
        message = ws.receive_json()
        after = message["data"][0]
        assert after == {**before, "status": "done"}

        view.handle_event(message["event"], message["data"])
        assert view.progress().completion == 100


def test_broadcast_reaches_other_clients(client: TestClient) -> None:
    """Test a mutation from one client is pushed to every client."""
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        first.receive_json()
        second.receive_json()

        first.send_json({"event": "create", "data": {"title": "Shared"}})
        from_first = first.receive_text()
        from_second = second.receive_text()
        assert from_first == from_second


def test_malformed_and_no_op_commands_are_dropped(client: TestClient, app_authority: Authority) -> None:
    """Test rejected frames produce no snapshot."""
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("this is not json")
        ws.send_json({"event": "explode", "data": {}})
        ws.send_json({"event": "delete", "data": {"id": "404"}})
        ws.send_json({"event": "update", "data": {"title": "no id"}})
        ws.send_json({"event": "create", "data": {"title": "Real"}})

        message = ws.receive_json()
        assert [task["title"] for task in message["data"]] == ["Real"]
    assert len(app_authority.snapshot()) == 1


def test_request_snapshot(client: TestClient, app_authority: Authority) -> None:
    """Test an explicit snapshot request is answered."""
    app_authority.create({"title": "Existing"})
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"event": "requestSnapshot"})
        message = ws.receive_json()
        assert message["event"] == "snapshot"
        assert message["data"][0]["title"] == "Existing"


def test_disconnect_unregisters_channel(client: TestClient, app_authority: Authority) -> None:
    """Test closed connections leave the broadcast set."""
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        assert len(app_authority.channels) == 1
    assert app_authority.channels == ()


def test_binary_frames_keep_connection_open(client: TestClient, app_authority: Authority) -> None:
    """Test binary frames are parsed like text and bad ones are dropped."""
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_bytes(b"\x80 not json")
        ws.send_bytes(b'{"event": "create", "data": {"title": "Binary"}}')
        assert [task["title"] for task in ws.receive_json()["data"]] == ["Binary"]

        ws.send_json({"event": "create", "data": {"title": "Real"}})
        assert [task["title"] for task in ws.receive_json()["data"]] == ["Binary", "Real"]
        assert len(app_authority.channels) == 1


def test_pump_stops_when_socket_write_fails() -> None:
    """Test a socket error while writing ends the writer without raising."""
    websocket = MagicMock()
    websocket.send_text = AsyncMock(side_effect=OSError("client went away"))

    async def run() -> None:
        channel = WebSocketChannel(websocket)
        channel.send("frame")
        await asyncio.wait_for(channel.pump(), timeout=1)

    asyncio.run(run())
    websocket.send_text.assert_awaited_once_with("frame")
