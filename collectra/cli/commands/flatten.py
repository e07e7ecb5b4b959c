"""Flatten command: write a collection's hierarchy as one flat collection."""

from pathlib import Path

import typer

from ...core.hierarchy import flatten
from ...library import CollectionLibrary
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, load_library_or_exit


@app.command("flatten")
def flatten_command(
    library_file: Path = typer.Argument(..., help="Library YAML file"),
    collection: str = typer.Option(..., "--collection", "-c", help="Collection to flatten"),
    output: Path = typer.Option(..., "--output", "-o", help="Output library YAML"),
    name: str | None = typer.Option(None, "--name", help="Name of the flat collection"),
):
    """
    Flatten a collection and every sub-collection it reaches into one collection.

    Leaves keep their fields and gain the tags of the sub-collection entries
    and collections above them.

    EXAMPLES:
        collectra flatten library.yaml -c forest -o forest_flat.yaml
    """
    out = Output(console=console, json_mode=get_json_mode())

    library = load_library_or_exit(library_file, out)
    if library is None:
        raise typer.Exit(out.finish())

    source = library.get(collection)
    if source is None:
        out.error(
            f"Unknown collection: {collection}",
            exit_code=ExitCode.RESOLUTION_ERROR,
            suggestion=f"Available: {', '.join(library.names)}",
        )
        raise typer.Exit(out.finish())

    target = type(source)(
        name=name or f"{source.name}_flat",
        collection_tags=set(source.collection_tags),
        do_not_ignore_invalid_entries=source.do_not_ignore_invalid_entries,
        global_asset_grammar=source.global_asset_grammar,
        global_grammar_rule=source.global_grammar_rule,
        collection_grammar=source.collection_grammar,
    )
    if not flatten(source, target):
        out.error(f"Could not flatten {source.name}")
        raise typer.Exit(out.finish())

    flat_library = CollectionLibrary(meta=library.meta.model_copy())
    flat_library.add(target)
    flat_library.save(output)

    out.success(
        f"Flattened {source.name} into {target.name}: {target.num_entries()} leaves → {output}",
        collection=target.name,
        leaves=target.num_entries(),
        output=str(output),
    )
    raise typer.Exit(out.finish())
