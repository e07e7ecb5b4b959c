"""Validate command: report cycles and dangling references in a library."""

from pathlib import Path

import typer

from ...core.models.library import LibrarySpec
from ...library import CollectionLibrary
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output


@app.command("validate")
def validate_command(
    library_file: Path = typer.Argument(..., help="Library YAML file to validate"),
):
    """
    Validate a library file.

    Reports unknown collection kinds, invalid entries, references to
    collections that do not exist, and references that would form a cycle.

    EXIT CODES:
        0 = Success (valid library)
        1 = Validation error
        3 = File not found
    """
    out = Output(console=console, json_mode=get_json_mode())

    if not library_file.exists():
        out.error(
            f"File not found: {library_file}",
            exit_code=ExitCode.FILE_NOT_FOUND,
            suggestion=f"Check the file path: {library_file.absolute()}",
        )
        raise typer.Exit(out.finish())

    try:
        library = CollectionLibrary.from_spec(LibrarySpec.from_yaml(library_file), link=False)
    except (ValueError, KeyError) as e:
        out.error(f"Invalid library: {e}")
        raise typer.Exit(out.finish())

    problems = library.link()
    for problem in problems:
        out.error(problem)
    out.set_data("problems", problems)

    if not problems:
        out.success(
            f"{library_file} is valid ({len(library)} collections)",
            collections=len(library),
        )
    raise typer.Exit(out.finish())
