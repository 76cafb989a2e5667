"""Plain-text rendering of a board view."""

from kanban_sync.models import STATUSES, Task
from kanban_sync.view_model import BoardViewModel

PRIORITY_MARKERS = {"High": "▲", "Medium": "●", "Low": "▽"}


def format_task(task: Task, editing: bool = False) -> list[str]:
    marker = PRIORITY_MARKERS.get(task.priority, "●") if isinstance(task.priority, str) else "●"
    suffix = " (editing)" if editing else ""
    lines = [f"  {marker} {task.id}: {task.title} [{task.priority}, {task.category}]{suffix}"]
    if task.description:
        lines.append(f"      {task.description}")
    attachments = task.attachments if isinstance(task.attachments, list) else []
    for attachment in attachments:
        if isinstance(attachment, dict):
            lines.append(f"      + {attachment.get('name', '?')} ({attachment.get('type') or 'unknown'})")
    return lines


def format_board(view: BoardViewModel) -> str:
    """Render columns, progress and connection state as text."""
    lines = ["Kanban Board"]
    if view.loading:
        lines.append("Loading tasks...")
    elif not view.connected:
        lines.append("Not connected to server.")

    progress = view.progress()
    counts = ", ".join(f"{STATUSES[status]}: {count}" for status, count in progress.counts.items())
    lines.append(f"Completion: {progress.completion}% done ({counts})")

    for status, tasks in view.columns().items():
        lines.append("")
        lines.append(f"{STATUSES[status]} ({len(tasks)})")
        if not tasks:
            lines.append("  (empty)")
        for task in tasks:
            lines.extend(format_task(task, editing=view.is_editing(task.id)))
    return "\n".join(lines)
