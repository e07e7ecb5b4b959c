"""Pick command: resolve entries from a collection."""

from enum import Enum
from pathlib import Path

import typer

from ...config import get_config
from ...core.models.entry import PickMode, TagInheritance
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, load_library_or_exit


class PickStrategy(str, Enum):
    INDEX = "index"
    RANDOM = "random"
    WEIGHTED = "weighted"


@app.command("pick")
def pick_command(
    library_file: Path = typer.Argument(..., help="Library YAML file"),
    collection: str = typer.Option(..., "--collection", "-c", help="Collection to pick from"),
    mode: PickStrategy = typer.Option(
        PickStrategy.WEIGHTED, "--mode", "-m", help="index, random or weighted"
    ),
    pick_mode: PickMode | None = typer.Option(
        None, "--pick-mode", help="Policy for index picks (default from config)"
    ),
    seed: int | None = typer.Option(None, "--seed", "-s", help="First seed"),
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of picks"),
    category: str | None = typer.Option(None, "--category", help="Restrict to a category"),
    tags: str | None = typer.Option(
        None, "--tags", help="Tag inheritance flags, e.g. asset,hierarchy,collection"
    ),
):
    """
    Resolve COUNT entries with seeds SEED..SEED+COUNT-1 (indices 0..COUNT-1 in index mode).

    EXIT CODES:
        0 = Success
        1 = Invalid option
        3 = File not found
        4 = Unknown collection

    EXAMPLES:
        collectra pick library.yaml -c rocks --seed 42 -n 10
        collectra pick library.yaml -c rocks --mode index --pick-mode weight_descending -n 3
        collectra pick library.yaml -c rocks --tags asset,collection
    """
    out = Output(console=console, json_mode=get_json_mode())
    config = get_config()

    try:
        tag_inheritance = (
            TagInheritance.parse(tags)
            if tags is not None
            else config.resolution.tag_inheritance()
        )
    except ValueError as e:
        out.error(str(e))
        raise typer.Exit(out.finish())

    library = load_library_or_exit(library_file, out)
    if library is None:
        raise typer.Exit(out.finish())

    target = library.get(collection)
    if target is None:
        out.error(
            f"Unknown collection: {collection}",
            exit_code=ExitCode.RESOLUTION_ERROR,
            suggestion=f"Available: {', '.join(library.names)}",
        )
        raise typer.Exit(out.finish())

    base_seed = seed if seed is not None else config.defaults.seed
    index_mode = pick_mode or config.resolution.pick_mode()

    rows = []
    misses = 0
    for i in range(count):
        current_seed = base_seed + i
        picked_tags: set[str] = set()
        tag_arg = picked_tags if tag_inheritance else None

        if mode == PickStrategy.INDEX:
            if category:
                result = target.get_entry_in_category(
                    category, i, current_seed, index_mode, tag_inheritance, tag_arg
                )
            else:
                result = target.get_entry(i, current_seed, index_mode, tag_inheritance, tag_arg)
        elif mode == PickStrategy.RANDOM:
            if category:
                result = target.get_entry_random_in_category(
                    category, current_seed, tag_inheritance, tag_arg
                )
            else:
                result = target.get_entry_random(current_seed, tag_inheritance, tag_arg)
        else:
            if category:
                result = target.get_entry_weighted_random_in_category(
                    category, current_seed, tag_inheritance, tag_arg
                )
            else:
                result = target.get_entry_weighted_random(
                    current_seed, tag_inheritance, tag_arg
                )

        request = str(i) if mode == PickStrategy.INDEX else str(current_seed)
        if result is None:
            misses += 1
            rows.append([request, "-", "-", "-"])
            continue
        rows.append(
            [
                request,
                result.entry.asset_path or "-",
                result.host.name,
                ", ".join(sorted(picked_tags)) or "-",
            ]
        )

    out.table("Picks", ["Request", "Entry", "Host", "Tags"], rows)
    if misses:
        out.warning(f"{misses} of {count} requests resolved to nothing")
    out.success(f"Resolved {count - misses}/{count} picks", resolved=count - misses)
    raise typer.Exit(out.finish())
