"""CLI for kanban-sync."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Annotated, Literal, TypeVar

import structlog
import uvicorn
from cyclopts import App, Parameter

from kanban_sync.authority import Authority
from kanban_sync.client import BoardClient, BoardConnectionError
from kanban_sync.config import client_settings, server_settings
from kanban_sync.config_commands import config_app
from kanban_sync.render import format_board
from kanban_sync.server import create_app

logger = structlog.get_logger()

Status = Literal["todo", "in-progress", "done"]
Priority = Literal["Low", "Medium", "High"]
Category = Literal["Bug", "Feature", "Enhancement"]

T = TypeVar("T")

app = App(
    help="kanban-sync - A real-time collaborative task board",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def parse_attachment(item: str) -> tuple[str, str]:
    """Split a NAME:TYPE attachment argument."""
    name, _, content_type = item.partition(":")
    return name, content_type


def load_settings(resolve: Callable[[], T]) -> T:
    """Resolve settings, exiting with a message when the config is invalid."""
    try:
        return resolve()
    except ValueError as e:
        logger.error("Invalid configuration", error=str(e))
        print(f"Invalid configuration: {e}")
        raise SystemExit(1) from e


@contextmanager
def open_board() -> Iterator[BoardClient]:
    """Connect to the configured authority and wait for the current board."""
    settings = load_settings(client_settings)
    client = BoardClient(settings.endpoint, snapshot_timeout=settings.snapshot_timeout)
    try:
        client.open()
    except BoardConnectionError as e:
        logger.error("Failed to connect", endpoint=settings.endpoint, error=str(e))
        print(f"Not connected to server at {settings.endpoint}. Start it with: kanban-sync serve")
        raise SystemExit(1) from e

    try:
        client.wait_for_snapshot()
        client.settle()
        yield client
    finally:
        client.close()


@app.command
def serve(host: str | None = None, port: int | None = None) -> None:
    """Run the board authority."""
    settings = load_settings(server_settings)
    host = host or settings.host
    port = port or settings.port
    logger.info("Starting authority", host=host, port=port, cors_origins=settings.cors_origins)
    uvicorn.run(create_app(Authority(), cors_origins=settings.cors_origins), host=host, port=port)


@app.command
def board() -> None:
    """Print the current board."""
    with open_board() as client:
        print(format_board(client.view))


@app.command
def watch() -> None:
    """Print the board every time it changes."""
    with open_board() as client:
        print(format_board(client.view))
        try:
            for view in client.listen():
                print()
                print(format_board(view))
        except BoardConnectionError as e:
            print(f"Not connected: {e}")
        except KeyboardInterrupt:
            pass


@app.command
def create(
    title: str,
    description: str = "",
    status: Status = "todo",
    priority: Priority = "Medium",
    category: Category = "Feature",
    attach: list[str] | None = None,
) -> None:
    """Create a new task.

    Args:
        title: Task title
        description: Task description
        status: Column to create the task in
        priority: Task priority
        category: Task category
        attach: Attachment as NAME or NAME:TYPE (repeatable)
    """
    with open_board() as client:
        view = client.view
        view.set_draft_field("title", title)
        view.set_draft_field("description", description)
        view.set_draft_field("status", status)
        view.set_draft_field("priority", priority)
        view.set_draft_field("category", category)
        if attach:
            view.attach_files(parse_attachment(item) for item in attach)

        if not view.submit_create():
            if view.title_error:
                print("Title is required")
            else:
                print("Not connected, task not created")
            return
        client.settle()
        print(f"Created task: {title}")
        print(format_board(view))


@app.command
def update(
    task_id: str,
    title: str | None = None,
    description: str | None = None,
    priority: Priority | None = None,
    category: Category | None = None,
) -> None:
    """Edit the fields of a task."""
    changes = {"title": title, "description": description, "priority": priority, "category": category}
    if title is not None and not title.strip():
        print("Title is required")
        return

    with open_board() as client:
        view = client.view
        if not view.start_edit(task_id):
            print(f"Task {task_id} not found")
            return
        for field, value in changes.items():
            if value is not None:
                view.edit_field(task_id, field, value)

        if not view.save_edit(task_id):
            print("Not connected, task not updated")
            return
        client.settle()
        print(f"Updated task {task_id}")


@app.command
def move(task_id: str, status: Status) -> None:
    """Move a task to another column."""
    with open_board() as client:
        if client.view.task(task_id) is None:
            print(f"Task {task_id} not found")
            return
        client.view.move(task_id, status)
        client.settle()
        print(f"Moved task {task_id} to {status}")


@app.command
def delete(task_id: str) -> None:
    """Delete a task."""
    with open_board() as client:
        if client.view.task(task_id) is None:
            print(f"Task {task_id} not found")
            return
        client.view.delete(task_id)
        client.settle()
        print(f"Deleted task {task_id}")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
