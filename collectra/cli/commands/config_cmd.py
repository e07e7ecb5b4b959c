"""Config command for viewing and managing collectra configuration."""

import typer

from ... import config as config_module
from ...config import get_config, reset_config
from ...core.models.entry import PickMode, TagInheritance
from ..app import app, console


VALID_KEYS = {
    "resolution.default_pick_mode",
    "resolution.default_tag_inheritance",
    "resolution.include_zero_weight",
    "defaults.library_path",
    "defaults.log_level",
    "defaults.seed",
}

INT_FIELDS = {"seed"}
BOOL_FIELDS = {"include_zero_weight"}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. resolution.default_pick_mode, defaults.seed)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify collectra configuration.

    Examples:
        collectra config show
        collectra config set resolution.default_pick_mode random
        collectra config set resolution.default_tag_inheritance asset,collection
        collectra config set defaults.seed 42
        collectra config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] collectra config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    console.print()
    console.print("[bold]Collectra Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Resolution[/bold cyan]")
    console.print(f"  default_pick_mode       = {config.resolution.default_pick_mode}")
    inheritance = config.resolution.default_tag_inheritance or "[dim](none)[/dim]"
    console.print(f"  default_tag_inheritance = {inheritance}")
    console.print(f"  include_zero_weight     = {config.resolution.include_zero_weight}")

    console.print()
    console.print("[bold cyan]Defaults[/bold cyan]")
    console.print(f"  library_path = {config.defaults.library_path}")
    console.print(f"  log_level    = {config.defaults.log_level}")
    console.print(f"  seed         = {config.defaults.seed}")

    console.print()
    config_file = config_module.CONFIG_FILE
    if config_file.exists():
        console.print(f"Config file: {config_file}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({config_file})")
    console.print()


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print()
        console.print("Available keys:")
        for k in sorted(VALID_KEYS):
            console.print(f"  {k}")
        raise typer.Exit(1)

    config = get_config()
    zone, field_name = key.split(".", 1)
    target = config.resolution if zone == "resolution" else config.defaults

    if field_name in INT_FIELDS:
        try:
            parsed: object = int(value)
        except ValueError:
            console.print(f"[red]Invalid integer value:[/red] {value}")
            raise typer.Exit(1)
    elif field_name in BOOL_FIELDS:
        if value.lower() not in ("true", "false", "1", "0", "yes", "no"):
            console.print(f"[red]Invalid boolean value:[/red] {value}")
            raise typer.Exit(1)
        parsed = value.lower() in ("true", "1", "yes")
    elif field_name == "default_pick_mode":
        try:
            parsed = PickMode(value).value
        except ValueError:
            console.print(f"[red]Invalid pick mode:[/red] {value}")
            console.print(f"Valid modes: {', '.join(m.value for m in PickMode)}")
            raise typer.Exit(1)
    elif field_name == "default_tag_inheritance":
        try:
            TagInheritance.parse(value)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        parsed = value
    elif field_name == "log_level":
        if value.upper() not in config_module.LOG_LEVELS:
            console.print(f"[red]Invalid log level:[/red] {value}")
            raise typer.Exit(1)
        parsed = value.upper()
    else:
        parsed = value

    setattr(target, field_name, parsed)
    config.save()
    reset_config()  # Clear cached singleton so next get_config() reloads

    console.print(f"[green]✓[/green] Set {key} = {parsed}")
    console.print(f"  Saved to {config_module.CONFIG_FILE}")


def _reset_config():
    """Reset config to defaults."""
    config_file = config_module.CONFIG_FILE
    if config_file.exists():
        config_file.unlink()
        reset_config()
        console.print("[green]✓[/green] Config reset to defaults")
        console.print(f"  Removed {config_file}")
    else:
        console.print("Config already at defaults (no config file exists)")
