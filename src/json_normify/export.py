"""Null-type resolution, Arrow conversion and Parquet output for a Database."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq

from json_normify.columns import Database, Schema
from json_normify.errors import ExportError

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Null-type resolution
# ---------------------------------------------------------------------------

_DEFAULT_TYPE = pl.Utf8


def resolve_null_types(
    df: pl.DataFrame,
    default: pl.DataType = _DEFAULT_TYPE,
) -> pl.DataFrame:
    """Give the untyped columns of a built table a concrete type.

    A field that is null in every row builds as ``Null``, and an array field
    holding only nulls builds as ``List(Null)``. Parquet cannot store
    either, so they are cast to *default* (or ``List(default)``).
    """
    schema = df.schema
    resolved = {name: _resolve_dtype(dtype, default) for name, dtype in schema.items()}
    casts = [pl.col(n).cast(t) for n, t in resolved.items() if t != schema[n]]
    return df.with_columns(casts) if casts else df


def _resolve_dtype(dtype: pl.DataType, default: pl.DataType) -> pl.DataType:
    if dtype == pl.Null:
        return default
    # The column builder only nests one level: List(<scalar>) or List(Null)
    if isinstance(dtype, pl.List) and dtype.inner == pl.Null:
        return pl.List(default)
    return dtype


# ---------------------------------------------------------------------------
# Polars → Arrow → Parquet
# ---------------------------------------------------------------------------


def dataframe_to_arrow(df: pl.DataFrame, schema: Schema) -> pa.Table:
    """Convert one built table to Arrow, tagging each field with its kind.

    Field metadata carries ``normify.kind`` (e.g. ``uint``, ``list<string>``)
    and ``normify.fallback`` so readers can tell degraded columns apart.
    """
    arrow_table = resolve_null_types(df).to_arrow()

    fields: list[pa.Field] = []
    for arrow_field in arrow_table.schema:
        col_type = schema.get(arrow_field.name)
        if col_type is None:
            fields.append(arrow_field)
            continue
        fields.append(
            arrow_field.with_metadata(
                {
                    "normify.kind": col_type.name,
                    "normify.fallback": "true" if col_type.fallback else "false",
                }
            )
        )

    return pa.Table.from_arrays(arrow_table.columns, schema=pa.schema(fields))


def database_to_arrow(db: Database) -> dict[str, pa.Table]:
    """Convert every table of *db* to an Arrow table."""
    return {
        name: dataframe_to_arrow(table.frame, table.schema)
        for name, table in db.iter_tables()
    }


def _file_stem(table_name: str, taken: set[str]) -> str:
    """Turn a table name (built from JSON keys) into a safe, unused file stem."""
    stem = re.sub(r"[\\/\x00]", "_", table_name).lstrip(".") or "_"
    candidate, n = stem, 1
    while candidate in taken:
        n += 1
        candidate = f"{stem}_{n}"
    taken.add(candidate)
    return candidate


def write_parquet(db: Database, directory: Path) -> list[Path]:
    """Write each table of *db* to ``<directory>/<table>.parquet``.

    Path separators and leading dots in table names are replaced, so every
    file lands directly inside *directory*.

    Returns:
        The paths written, in table order.

    Raises:
        ExportError: A file name would resolve outside *directory*.
    """
    directory.mkdir(parents=True, exist_ok=True)
    root = directory.resolve()
    taken: set[str] = set()
    written: list[Path] = []
    for name, arrow_table in database_to_arrow(db).items():
        path = directory / f"{_file_stem(name, taken)}.parquet"
        if path.resolve().parent != root:
            raise ExportError(f"Table '{name}' would be written outside {directory}")
        pq.write_table(arrow_table, path)
        log.info("Wrote %d rows of '%s' to %s", arrow_table.num_rows, name, path)
        written.append(path)
    return written
