"""Populate a collection from tabular rows (an "attribute set").

Each row becomes one leaf entry. Column names for path, weight and category
are configurable; tags may come from a delimited column.
"""

import csv
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import BaseModel

from .core.collection import Collection

logger = logging.getLogger(__name__)


class IngestionColumns(BaseModel):
    """Which columns feed which entry fields."""

    path: str = "path"
    weight: str = "weight"
    category: str = "category"
    tags: str | None = "tags"
    tag_separator: str = ","


def _parse_row(row: Mapping[str, Any], columns: IngestionColumns) -> dict[str, Any] | None:
    path = row.get(columns.path)
    path = str(path).strip() if path is not None else ""
    if not path:
        return None

    raw_weight = row.get(columns.weight)
    if raw_weight is None or (isinstance(raw_weight, str) and not raw_weight.strip()):
        weight = 1
    else:
        try:
            weight = int(float(raw_weight))
        except (TypeError, ValueError):
            return None
        if weight < 0:
            return None

    category = row.get(columns.category)
    category = str(category).strip() if category is not None else ""

    tags: set[str] = set()
    if columns.tags and (raw_tags := row.get(columns.tags)):
        tags = {t.strip() for t in str(raw_tags).split(columns.tag_separator) if t.strip()}

    return {"path": path, "weight": weight, "category": category or None, "tags": tags}


def ingest_rows(
    collection: Collection,
    rows: Iterable[Mapping[str, Any]],
    columns: IngestionColumns | None = None,
) -> int:
    """Replace the collection's entries with one leaf per valid row.

    Rows with an empty path or a non-numeric or negative weight are dropped.
    Returns the number of entries written.
    """
    columns = columns or IngestionColumns()

    parsed = []
    dropped = 0
    for row in rows:
        values = _parse_row(row, columns)
        if values is None:
            dropped += 1
            continue
        parsed.append(values)

    if dropped:
        logger.info("Dropped %d invalid rows while ingesting '%s'", dropped, collection.name)

    collection.init_num_entries(0)
    collection.init_num_entries(len(parsed))

    def _populate(entry, index):
        values = parsed[index]
        entry.set_asset_path(values["path"])
        entry.weight = values["weight"]
        entry.category = values["category"]
        entry.tags = values["tags"]

    collection.for_each_entry(_populate)
    collection.rebuild_staging()

    if not parsed:
        logger.warning("No valid rows to ingest into '%s'", collection.name)
    return len(parsed)


def ingest_csv(
    collection: Collection,
    path: Path | str,
    columns: IngestionColumns | None = None,
) -> int:
    """Read a CSV file with a header row and ingest it."""
    with open(path, newline="") as f:
        return ingest_rows(collection, csv.DictReader(f), columns)
