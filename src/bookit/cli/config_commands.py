"""CLI commands for configuration management."""

import json
import sys
from typing import Any

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.markup import escape  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from bookit.core.config import ConfigManager

console = Console()
error_console = Console(stderr=True)


def _config_manager(ctx: click.Context) -> ConfigManager:
    return ctx.obj["config"]


@click.group()  # type: ignore[misc]
def config() -> None:
    """Manage bookit configuration.

    Configuration is stored in config.yml under $BOOKIT_DIR or ~/.bookit
    """
    pass


@config.command("show")  # type: ignore[misc]
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show all configuration settings.

    Example:
        bookit config show
        bookit config show --json
    """
    config_mgr = _config_manager(ctx)

    if as_json:
        print(json.dumps(config_mgr.to_dict(), indent=2))
        return

    table = Table(title="Bookit Configuration")
    table.add_column("Section", style="cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for section, settings in config_mgr.to_dict().items():
        if not isinstance(settings, dict):
            table.add_row("", escape(section), escape(str(settings)))
            continue
        for name, value in settings.items():
            table.add_row(escape(section), escape(name), escape(str(value)))

    console.print(table)
    console.print(f"\nConfig file: {escape(str(config_mgr.config_path))}")


@config.command("get")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_get(ctx: click.Context, key: str) -> None:
    """Get a specific configuration value.

    Uses dot notation to access nested values.

    Example:
        bookit config get billing.currency
    """
    value = _config_manager(ctx).get(key)

    if value is None:
        error_console.print(f"[red]Error:[/red] Configuration key '{escape(key)}' not found")
        sys.exit(1)

    if isinstance(value, dict):
        console.print(escape(json.dumps(value, indent=2)))
    else:
        console.print(escape(str(value)))


def _convert(current: Any, value: str) -> Any:
    """Convert a command-line value to the type of the current setting."""
    if isinstance(current, bool):
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False
        raise ValueError(f"Expected true or false, got '{value}'")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Expected an integer, got '{value}'")
    return value


@config.command("set")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.argument("value")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value.

    The value is read as the type of the current setting: true/false for
    switches, whole numbers for counts, text otherwise.

    Example:
        bookit config set billing.currency USD
        bookit config set advanced.backup_on_delete true
    """
    config_mgr = _config_manager(ctx)
    try:
        converted = _convert(config_mgr.get(key), value)
        config_mgr.set(key, converted)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Set {escape(key)} = {escape(str(converted))}")


@config.command("reset")  # type: ignore[misc]
@click.confirmation_option(prompt="Reset configuration to defaults?")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_reset(ctx: click.Context) -> None:
    """Reset configuration to defaults.

    Example:
        bookit config reset --yes
    """
    _config_manager(ctx).reset()
    console.print("[green]✓[/green] Configuration reset to defaults")
