"""Tests for the wire protocol."""

import json

import pytest

from kanban_sync.protocol import (
    CreateTask,
    DeleteTask,
    MoveTask,
    RequestSnapshot,
    UpdateTask,
    decode_message,
    encode_command,
    encode_message,
    parse_command,
)


def frame(event: str, data: object = None) -> str:
    return json.dumps({"event": event, "data": data})


def test_encode_message() -> None:
    """Test frames are JSON objects with event and data."""
    assert json.loads(encode_message("snapshot", [])) == {"event": "snapshot", "data": []}


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"data": {}}', '{"event": 5}', b"\x80abc"])
def test_decode_message_rejects_malformed_frames(text: str | bytes) -> None:
    """Test malformed frames decode to None."""
    assert decode_message(text) is None


def test_parse_create() -> None:
    """Test parsing a create command."""
    command = parse_command(frame("create", {"title": "Buy milk"}))
    assert command == CreateTask(fields={"title": "Buy milk"})


def test_parse_update_separates_id() -> None:
    """Test the id of an update is carried apart from the fields."""
    command = parse_command(frame("update", {"id": "1", "title": "New", "status": "done"}))
    assert command == UpdateTask(task_id="1", fields={"title": "New", "status": "done"})


def test_parse_commands_with_missing_fields() -> None:
    """Test missing fields are carried as None rather than rejected."""
    assert parse_command(frame("update", None)) == UpdateTask(task_id=None, fields={})
    assert parse_command(frame("move", {"id": "1"})) == MoveTask(task_id="1", status=None)
    assert parse_command(frame("delete", {})) == DeleteTask(task_id=None)


def test_parse_request_snapshot() -> None:
    """Test parsing a snapshot request."""
    assert parse_command(frame("requestSnapshot")) == RequestSnapshot()


def test_parse_rejects_unknown_and_server_events() -> None:
    """Test clients cannot send events outside the command set."""
    assert parse_command(frame("snapshot", [])) is None
    assert parse_command(frame("task:archive", {"id": "1"})) is None
    assert parse_command("garbage") is None


def test_encode_command_matches_parser() -> None:
    """Test client frames parse back into the same commands."""
    commands = [
        CreateTask(fields={"title": "Buy milk"}),
        UpdateTask(task_id="1", fields={"title": "Buy oat milk"}),
        MoveTask(task_id="1", status="done"),
        DeleteTask(task_id="1"),
        RequestSnapshot(),
    ]
    for command in commands:
        assert parse_command(encode_command(command)) == command


def test_encode_update_puts_id_in_payload() -> None:
    """Test update frames carry the id beside the fields."""
    message = json.loads(encode_command(UpdateTask(task_id="7", fields={"title": "x"})))
    assert message == {"event": "update", "data": {"title": "x", "id": "7"}}
