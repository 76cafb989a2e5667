"""Event vocabulary and wire framing shared by the authority and its clients.

Every frame is a JSON object ``{"event": <name>, "data": <payload>}`` sent as
one text message. The authority only ever sends ``snapshot``; clients send
the command events below. There are no acknowledgements: a command either
shows up in the next snapshot or it never happened.
"""

import json
from dataclasses import dataclass
from typing import Any, Union

import structlog

logger = structlog.get_logger()

SNAPSHOT = "snapshot"
REQUEST_SNAPSHOT = "requestSnapshot"
CREATE = "create"
UPDATE = "update"
MOVE = "move"
DELETE = "delete"

COMMAND_EVENTS = (REQUEST_SNAPSHOT, CREATE, UPDATE, MOVE, DELETE)


@dataclass(frozen=True)
class CreateTask:
    """Request a new task built from the given (possibly partial) fields."""

    fields: dict[str, Any]


@dataclass(frozen=True)
class UpdateTask:
    """Request a merge of ``fields`` into the task identified by ``task_id``."""

    task_id: Any
    fields: dict[str, Any]


@dataclass(frozen=True)
class MoveTask:
    """Request a status-only change."""

    task_id: Any
    status: Any


@dataclass(frozen=True)
class DeleteTask:
    task_id: Any


@dataclass(frozen=True)
class RequestSnapshot:
    pass


Command = Union[CreateTask, UpdateTask, MoveTask, DeleteTask, RequestSnapshot]


def encode_message(event: str, data: Any = None) -> str:
    """Encode one frame as JSON text."""
    return json.dumps({"event": event, "data": data})


def decode_message(text: str | bytes) -> tuple[str, Any] | None:
    """Decode a frame into ``(event, data)``.

    Returns:
        The event name and payload, or None if the frame is not a JSON object
        with a string ``event`` key.
    """
    try:
        message = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug("Dropping undecodable frame", error=str(e))
        return None

    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        logger.debug("Dropping frame without event name")
        return None
    return message["event"], message.get("data")


def parse_command(text: str | bytes) -> Command | None:
    """Parse a client frame into a command.

    Missing fields inside a known command are carried as None; deciding that
    such a command is a no-op is the authority's job.

    Returns:
        The command, or None when the frame is malformed or names an event
        clients may not send.
    """
    decoded = decode_message(text)
    if decoded is None:
        return None
    event, data = decoded
    payload = data if isinstance(data, dict) else {}

    if event == CREATE:
        return CreateTask(fields=dict(payload))
    if event == UPDATE:
        fields = {key: value for key, value in payload.items() if key != "id"}
        return UpdateTask(task_id=payload.get("id"), fields=fields)
    if event == MOVE:
        return MoveTask(task_id=payload.get("id"), status=payload.get("status"))
    if event == DELETE:
        return DeleteTask(task_id=payload.get("id"))
    if event == REQUEST_SNAPSHOT:
        return RequestSnapshot()

    logger.debug("Dropping unknown event", event_name=event)
    return None


def encode_command(command: Command) -> str:
    """Encode a command as the frame a client sends."""
    match command:
        case CreateTask(fields=fields):
            return encode_message(CREATE, fields)
        case UpdateTask(task_id=task_id, fields=fields):
            return encode_message(UPDATE, {**fields, "id": task_id})
        case MoveTask(task_id=task_id, status=status):
            return encode_message(MOVE, {"id": task_id, "status": status})
        case DeleteTask(task_id=task_id):
            return encode_message(DELETE, {"id": task_id})
        case RequestSnapshot():
            return encode_message(REQUEST_SNAPSHOT)
        case _:
            raise TypeError(f"Unknown command: {command!r}")
