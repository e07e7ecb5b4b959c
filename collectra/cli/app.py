"""Core CLI app definition and global state."""

from typing import Annotated

import typer
from rich.console import Console

from .utils import setup_logging

app = typer.Typer(
    name="collectra",
    help="Inspect, resolve and flatten weighted collection libraries.",
    no_args_is_help=True,
)

console = Console()

# Global state for JSON mode (set by callback)
_json_mode = False


def get_json_mode() -> bool:
    """Get current JSON mode state."""
    return _json_mode


def _version_callback(value: bool) -> None:
    if value:
        from .. import __version__

        print(f"collectra {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output machine-readable JSON instead of human-friendly text",
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log at DEBUG level"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
):
    """Collectra: weighted, hierarchical collection resolution.

    Use --json for machine-readable output suitable for scripting.
    """
    global _json_mode
    _json_mode = json_output

    from ..config import get_config

    setup_logging("DEBUG" if verbose else get_config().defaults.log_level, console)


# Import commands to register them with the app
from .commands import (  # noqa: E402, F401
    config_cmd,
    flatten,
    inspect,
    pick,
    validate,
)
