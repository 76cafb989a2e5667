"""The authority: sole owner of the task collection."""

from typing import Any

import structlog

from kanban_sync.channel import Channel
from kanban_sync.models import DEFAULT_CATEGORY, DEFAULT_PRIORITY, DEFAULT_STATUS, Task
from kanban_sync.protocol import (
    SNAPSHOT,
    Command,
    CreateTask,
    DeleteTask,
    MoveTask,
    RequestSnapshot,
    UpdateTask,
    encode_message,
)

logger = structlog.get_logger()

_CREATE_DEFAULTS: dict[str, str] = {
    "title": "",
    "description": "",
    "status": DEFAULT_STATUS,
    "priority": DEFAULT_PRIORITY,
    "category": DEFAULT_CATEGORY,
}


class Authority:
    """Holds the canonical task list and fans out snapshots.

    All methods are synchronous and never await, so on a single event loop
    one command always runs to completion before the next one starts.
    Mutations that are rejected (missing or unknown id) are silent: nothing
    changes and nothing is broadcast.
    """

    def __init__(self) -> None:
        self._tasks: list[Task] = []
        self._next_id = 1
        self._channels: list[Channel] = []

    @property
    def channels(self) -> tuple[Channel, ...]:
        return tuple(self._channels)

    def snapshot(self) -> list[dict[str, Any]]:
        """Return a serialized copy of the collection."""
        return [task.to_dict() for task in self._tasks]

    def connect(self, channel: Channel) -> None:
        """Register a connection and send it the current snapshot."""
        if channel not in self._channels:
            self._channels.append(channel)
        logger.info("Client connected", channel=channel.name, clients=len(self._channels))
        channel.send(encode_message(SNAPSHOT, self.snapshot()))

    def disconnect(self, channel: Channel) -> None:
        if channel in self._channels:
            self._channels.remove(channel)
            logger.info("Client disconnected", channel=channel.name, clients=len(self._channels))

    def handle(self, channel: Channel, command: Command) -> None:
        """Apply one command received from ``channel``."""
        match command:
            case CreateTask(fields=fields):
                self.create(fields)
            case UpdateTask(task_id=task_id, fields=fields):
                self.update(task_id, fields)
            case MoveTask(task_id=task_id, status=status):
                self.move(task_id, status)
            case DeleteTask(task_id=task_id):
                self.delete(task_id)
            case RequestSnapshot():
                self.request_snapshot(channel)
            case _:
                raise TypeError(f"Unknown command: {command!r}")

    def create(self, fields: dict[str, Any]) -> Task:
        """Append a new task with defaults for missing fields, then broadcast."""
        values = {key: default if fields.get(key) is None else fields[key] for key, default in _CREATE_DEFAULTS.items()}
        attachments = fields.get("attachments")
        values["attachments"] = list(attachments) if isinstance(attachments, list) else []

        task = Task(id=self._allocate_id(), **values)
        self._tasks.append(task)
        logger.info("Task created", task_id=task.id, title=task.title)
        self.broadcast()
        return task

    def update(self, task_id: Any, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into a stored task; the stored id always wins."""
        if not task_id:
            logger.debug("Ignoring update without id")
            return
        task = self._find(task_id)
        if task is None:
            logger.debug("Ignoring update for unknown task", task_id=task_id)
            return

        merged = [key for key in fields if key != "id"]
        for key in merged:
            task.set_field(key, fields[key])
        logger.info("Task updated", task_id=task.id, fields=sorted(merged))
        self.broadcast()

    def move(self, task_id: Any, status: Any) -> None:
        """Overwrite only the status of a task."""
        if not task_id or not status:
            logger.debug("Ignoring move with missing arguments", task_id=task_id, status=status)
            return
        task = self._find(task_id)
        if task is None:
            logger.debug("Ignoring move for unknown task", task_id=task_id)
            return

        task.status = status
        logger.info("Task moved", task_id=task.id, status=status)
        self.broadcast()

    def delete(self, task_id: Any) -> None:
        """Remove the first task with ``task_id``; broadcast only if one was removed."""
        if not task_id:
            logger.debug("Ignoring delete without id")
            return
        task = self._find(task_id)
        if task is None:
            logger.debug("Ignoring delete for unknown task", task_id=task_id)
            return

        self._tasks.remove(task)
        logger.info("Task deleted", task_id=task_id, remaining=len(self._tasks))
        self.broadcast()

    def request_snapshot(self, channel: Channel) -> None:
        """Reply to one client with the current collection."""
        logger.debug("Snapshot requested", channel=channel.name)
        channel.send(encode_message(SNAPSHOT, self.snapshot()))

    def broadcast(self) -> None:
        """Send the same snapshot frame to every connected client."""
        frame = encode_message(SNAPSHOT, self.snapshot())
        logger.debug("Broadcasting snapshot", tasks=len(self._tasks), clients=len(self._channels))
        for channel in list(self._channels):
            channel.send(frame)

    def _allocate_id(self) -> str:
        task_id = str(self._next_id)
        self._next_id += 1
        return task_id

    def _find(self, task_id: Any) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None
