"""Inspect command: summarize the collections of a library."""

from pathlib import Path

import typer

from ...core.grammar import collection_grammar_size
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, format_size, load_library_or_exit


@app.command("inspect")
def inspect_command(
    library_file: Path = typer.Argument(..., help="Library YAML file"),
    collection: str | None = typer.Option(
        None, "--collection", "-c", help="Show the entries of one collection"
    ),
):
    """
    Show collections, entry counts, weights and grammar sizes.

    EXAMPLES:
        collectra inspect library.yaml
        collectra inspect library.yaml -c rocks
    """
    out = Output(console=console, json_mode=get_json_mode())

    library = load_library_or_exit(library_file, out)
    if library is None:
        raise typer.Exit(out.finish())

    if collection is None:
        rows = []
        for item in library:
            registry = item.load_cache()
            rows.append(
                [
                    item.name,
                    item.type_id,
                    str(item.num_entries()),
                    str(len(registry.main)),
                    str(registry.total_weight),
                    ", ".join(sorted(registry.categories)) or "-",
                    format_size(collection_grammar_size(item)),
                ]
            )
        out.table(
            "Collections",
            ["Name", "Kind", "Entries", "Included", "Weight", "Categories", "Size"],
            rows,
        )
        out.success(f"{len(library)} collections", count=len(library))
        raise typer.Exit(out.finish())

    target = library.get(collection)
    if target is None:
        out.error(
            f"Unknown collection: {collection}",
            exit_code=ExitCode.RESOLUTION_ERROR,
            suggestion=f"Available: {', '.join(library.names)}",
        )
        raise typer.Exit(out.finish())

    registry = target.load_cache()
    included = set(registry.main.order_indices)
    rows = []
    for index, entry in enumerate(target.entries):
        if entry.is_sub_collection:
            payload = f"-> {entry.sub_collection_ref or '?'}"
        else:
            payload = entry.asset_path or "-"
        rows.append(
            [
                str(index),
                payload,
                str(entry.weight),
                entry.category or "-",
                ", ".join(sorted(entry.tags)) or "-",
                "yes" if index in included else "no",
            ]
        )
    out.table(
        target.name,
        ["#", "Entry", "Weight", "Category", "Tags", "Included"],
        rows,
        data_key="entries",
    )
    out.success(
        f"{target.name}: {len(included)}/{target.num_entries()} entries included",
        collection=target.name,
        total_weight=registry.total_weight,
    )
    raise typer.Exit(out.finish())
