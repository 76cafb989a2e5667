"""Configuration commands for kanban-sync CLI."""

from cyclopts import App

from kanban_sync.config import DEFAULTS, get_config

config_app = App(name="config", help="Manage server and client settings")


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Store a setting.

    Args:
        key: Setting name, one of the keys shown by ``config list``
        value: New value
        global_: Write to ~/.kanban-sync instead of the current directory
    """
    if key not in DEFAULTS:
        print(f"Unknown key {key}. Known keys: {', '.join(DEFAULTS)}")
        return
    get_config(use_global=global_).set(key, value)
    print(f"Set {key} = {value} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a stored setting so its default applies again."""
    get_config(use_global=global_).unset(key)
    print(f"Unset {key} ({_scope(global_)})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Print the value a setting resolves to, environment included."""
    value = get_config(use_global=global_).get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {value}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """Print every known setting with its effective value.

    Values stored in a config file are marked with ``*``.
    """
    config = get_config(use_global=global_)
    stored = config.list()
    print(f"Settings ({_scope(global_)}):\n")
    for key in DEFAULTS:
        marker = "*" if key in stored else " "
        print(f"{marker} {key} = {config.get(key)}")
