"""Client-side view model: mirror, local edit overrides and derived views."""

import dataclasses
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import structlog

from kanban_sync.models import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    STATUSES,
    Attachment,
    Task,
    field_names,
)
from kanban_sync.protocol import (
    SNAPSHOT,
    Command,
    CreateTask,
    DeleteTask,
    MoveTask,
    RequestSnapshot,
    UpdateTask,
    encode_command,
)

logger = structlog.get_logger()

Sender = Callable[[str], None]


def empty_draft() -> dict[str, Any]:
    """Field values of a blank new-task form."""
    return {
        "title": "",
        "description": "",
        "status": DEFAULT_STATUS,
        "priority": DEFAULT_PRIORITY,
        "category": DEFAULT_CATEGORY,
        "attachments": [],
    }


@dataclass(frozen=True)
class Progress:
    """Counts per column and the share of done tasks, in percent."""

    counts: dict[str, int]
    total: int
    completion: int


class BoardViewModel:
    """Local state of one connected client.

    The view is two layers: ``mirror`` is the last snapshot received from the
    authority, ``overrides`` holds copies of the tasks this client is
    editing. Snapshots always replace the mirror, but a task with an override
    keeps rendering the override until the edit is saved or cancelled.
    """

    def __init__(self, send: Sender | None = None) -> None:
        """Initialize the view model.

        Args:
            send: Callable that delivers an encoded frame to the authority
        """
        self._send = send
        self.mirror: list[Task] = []
        self.overrides: dict[str, Task] = {}
        self.connected = False
        self.loading = True
        self.draft: dict[str, Any] = empty_draft()
        self.title_error = False

    def bind(self, send: Sender) -> None:
        self._send = send

    # Connection lifecycle

    def connection_opened(self) -> None:
        """Mark the client connected and ask for the current state."""
        self.connected = True
        logger.debug("Connection opened")
        self._emit(RequestSnapshot())

    def connection_lost(self) -> None:
        self.connected = False
        logger.warning("Connection lost")

    def connection_failed(self) -> None:
        self.connected = False
        self.loading = False
        logger.warning("Connection failed")

    def loading_timed_out(self) -> None:
        """Stop waiting for the first snapshot and show whatever we have."""
        if self.loading:
            logger.info("No snapshot received, showing empty board")
        self.loading = False

    # Inbound events

    def handle_event(self, event: str, data: Any) -> bool:
        """Apply one inbound event.

        Returns:
            True if the event was a snapshot and the view changed
        """
        if event != SNAPSHOT:
            logger.debug("Ignoring unexpected event", event_name=event)
            return False
        self.apply_snapshot(data or [])
        return True

    def apply_snapshot(self, records: Iterable[dict[str, Any]]) -> None:
        """Replace the mirror, keeping any task under local edit untouched."""
        self.mirror = [Task.from_dict(record) for record in records if isinstance(record, dict)]
        self.loading = False

        present = {task.id for task in self.mirror}
        for task_id in list(self.overrides):
            if task_id not in present:
                logger.info("Edited task was removed remotely, dropping local edit", task_id=task_id)
                del self.overrides[task_id]
        logger.debug("Snapshot applied", tasks=len(self.mirror), editing=sorted(self.overrides))

    # Editing state machine

    def is_editing(self, task_id: str) -> bool:
        return task_id in self.overrides

    def start_edit(self, task_id: str) -> bool:
        """Begin a local edit of a task (viewing -> editing)."""
        if task_id in self.overrides:
            return True
        task = self._mirror_task(task_id)
        if task is None:
            logger.debug("Cannot edit unknown task", task_id=task_id)
            return False
        self.overrides[task_id] = dataclasses.replace(task, attachments=list(task.attachments), extra=dict(task.extra))
        return True

    def edit_field(self, task_id: str, field: str, value: Any) -> None:
        """Change one field of a task under edit.

        Raises:
            KeyError: If the task is not being edited
            ValueError: If the field does not exist or is the id
        """
        if field == "id" or field not in field_names():
            raise ValueError(f"Field cannot be edited: {field}")
        setattr(self.overrides[task_id], field, value)

    def save_edit(self, task_id: str) -> bool:
        """Send the edited fields and return the card to viewing (commit).

        The mirror is updated optimistically; the next snapshot is authoritative.
        """
        override = self.overrides.get(task_id)
        if override is None:
            return False
        fields = {key: value for key, value in override.to_dict().items() if key != "id"}
        if not self._emit(UpdateTask(task_id=task_id, fields=fields)):
            return False

        del self.overrides[task_id]
        self.mirror = [override if task.id == task_id else task for task in self.mirror]
        return True

    def cancel_edit(self, task_id: str) -> None:
        """Drop local edits and pull the authoritative state (discard)."""
        self.overrides.pop(task_id, None)
        if self.connected:
            self._emit(RequestSnapshot())

    # New task form

    def set_draft_field(self, field: str, value: Any) -> None:
        if field not in self.draft:
            raise ValueError(f"Unknown task field: {field}")
        self.draft[field] = value
        if field == "title":
            self.title_error = False

    def attach_files(self, files: Iterable[tuple[str, str]]) -> list[Attachment]:
        """Replace the draft's attachments with records for the picked files."""
        attachments = [Attachment.from_file(name, content_type, index) for index, (name, content_type) in enumerate(files)]
        self.draft["attachments"] = [attachment.to_dict() for attachment in attachments]
        return attachments

    def submit_create(self) -> bool:
        """Send the draft as a create command and reset the form.

        Returns:
            False if the title is blank or the client is not connected
        """
        self.title_error = False
        if not str(self.draft.get("title") or "").strip():
            self.title_error = True
            return False
        if not self._emit(CreateTask(fields=dict(self.draft))):
            return False
        self.draft = empty_draft()
        return True

    # Other commands

    def move(self, task_id: str, status: str) -> bool:
        """Move a task to another column (drag and drop)."""
        if status not in STATUSES:
            raise ValueError(f"Unknown column: {status}")
        return self._emit(MoveTask(task_id=task_id, status=status))

    def delete(self, task_id: str) -> bool:
        return self._emit(DeleteTask(task_id=task_id))

    def request_snapshot(self) -> bool:
        return self._emit(RequestSnapshot())

    # Derived views

    @property
    def tasks(self) -> list[Task]:
        """Tasks as displayed: the mirror with local edits substituted."""
        return [self.overrides.get(task.id, task) for task in self.mirror]

    def task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def columns(self) -> dict[str, list[Task]]:
        columns: dict[str, list[Task]] = {status: [] for status in STATUSES}
        for task in self.tasks:
            columns[task.column].append(task)
        return columns

    def progress(self) -> Progress:
        counts = {status: len(tasks) for status, tasks in self.columns().items()}
        total = len(self.mirror)
        # Round half up.
        completion = (counts["done"] * 200 + max(total, 1)) // (2 * max(total, 1))
        return Progress(counts=counts, total=total, completion=completion)

    def _mirror_task(self, task_id: str) -> Task | None:
        for task in self.mirror:
            if task.id == task_id:
                return task
        return None

    def _emit(self, command: Command) -> bool:
        if not self.connected or self._send is None:
            logger.warning("Not connected, command not sent", command=type(command).__name__)
            return False
        self._send(encode_command(command))
        return True
