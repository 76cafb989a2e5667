"""Data models for the task board."""

import time
from dataclasses import asdict, dataclass, field, fields
from typing import Any

STATUSES: dict[str, str] = {
    "todo": "To Do",
    "in-progress": "In Progress",
    "done": "Done",
}
PRIORITIES = ("Low", "Medium", "High")
CATEGORIES = ("Bug", "Feature", "Enhancement")

DEFAULT_STATUS = "todo"
DEFAULT_PRIORITY = "Medium"
DEFAULT_CATEGORY = "Feature"


@dataclass
class Task:
    """A work item on the board.

    Attachments are kept as plain records; their content is never inspected.
    Keys a client sends beyond the task fields are kept in ``extra`` and
    flattened back into the record by ``to_dict``.
    """

    id: str
    title: str = ""
    description: str = ""
    status: str = DEFAULT_STATUS
    priority: str = DEFAULT_PRIORITY
    category: str = DEFAULT_CATEGORY
    attachments: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Build a task from a snapshot record."""
        names = field_names()
        known = {name: data[name] for name in names if name in data}
        extra = {key: value for key, value in data.items() if key not in names}
        return cls(**known, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra")
        data.update(extra)
        return data

    def set_field(self, key: str, value: Any) -> None:
        """Set a task field, or an extra key when ``key`` is not a field."""
        if key in field_names():
            setattr(self, key, value)
        else:
            self.extra[key] = value

    @property
    def column(self) -> str:
        """Column the task renders in; unrecognized statuses fall back to todo."""
        if isinstance(self.status, str) and self.status in STATUSES:
            return self.status
        return DEFAULT_STATUS


@dataclass
class Attachment:
    """An attachment record produced by the file picker."""

    id: str
    name: str
    type: str = ""
    url: str | None = None

    @classmethod
    def from_file(cls, name: str, content_type: str, index: int = 0, now_ms: int | None = None) -> "Attachment":
        """Create a record for a picked file; no bytes are read or uploaded."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return cls(id=f"{name}-{index}-{now_ms}", name=name, type=content_type)

    @property
    def is_image(self) -> bool:
        return self.type.startswith("image/")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def field_names() -> tuple[str, ...]:
    """Names of the task fields, in wire order."""
    return tuple(f.name for f in fields(Task) if f.name != "extra")
