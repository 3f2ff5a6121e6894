"""Column type inference and typed Polars assembly for normalized tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import polars as pl
from polars.exceptions import PolarsError

from json_normify.config import Config
from json_normify.dtype import Kind, Value
from json_normify.errors import ColumnBuildError
from json_normify.normalizer import (
    IdFactory,
    NormalizedTables,
    Relationship,
    Table,
    normalize,
)

log = logging.getLogger(__name__)

_POLARS_TYPES: dict[Kind, pl.DataType] = {
    Kind.NULL: pl.Null,
    Kind.BOOL: pl.Boolean,
    Kind.UINT: pl.UInt64,
    Kind.INT: pl.Int64,
    Kind.FLOAT: pl.Float64,
    Kind.STRING: pl.Utf8,
}


# ---------------------------------------------------------------------------
# Resolved schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnType:
    """The resolved representation of one column.

    ``kind`` is ``Kind.ARRAY`` for list columns, with the element kind in
    ``inner``. ``fallback`` marks columns that degraded to strings.
    """

    kind: Kind
    inner: Kind | None = None
    fallback: bool = False

    @property
    def dtype(self) -> pl.DataType:
        if self.kind is Kind.ARRAY:
            return pl.List(_POLARS_TYPES[self.inner or Kind.NULL])
        return _POLARS_TYPES[self.kind]

    @property
    def name(self) -> str:
        """Short kind name such as ``uint`` or ``list<string>``."""
        if self.kind is Kind.ARRAY:
            return f"list<{self.inner}>"
        return str(self.kind)

    def __str__(self) -> str:
        return f"{self.name} (fallback)" if self.fallback else self.name


Schema = dict[str, ColumnType]


# ---------------------------------------------------------------------------
# Series construction
# ---------------------------------------------------------------------------


def _first_non_null(values: Iterable[Value]) -> Value | None:
    return next((v for v in values if not v.is_null()), None)


def _is_normal(values: Iterable[Value], kind: Kind) -> bool:
    """True when every non-null value is tagged *kind*."""
    return all(v.is_null() or v.kind is kind for v in values)


def _typed(values: Sequence[Value], kind: Kind) -> list[Any]:
    return [None if v.is_null() else v.convert_to(kind) for v in values]


def _rendered(values: Sequence[Value]) -> list[str | None]:
    return [None if v.is_null() else v.render() for v in values]


def _build_list_series(
    name: str, values: Sequence[Value]
) -> tuple[ColumnType, pl.Series]:
    # Rows that do not hold an array contribute an empty list
    inner = [list(v.data) if v.is_array() else [] for v in values]
    determinant = _first_non_null(item for items in inner for item in items)

    if determinant is None:
        col_type = ColumnType(Kind.ARRAY, Kind.NULL)
        data: list[list[Any]] = [[None] * len(items) for items in inner]
    elif determinant.kind is not Kind.ARRAY and all(
        _is_normal(items, determinant.kind) for items in inner
    ):
        col_type = ColumnType(Kind.ARRAY, determinant.kind)
        data = [_typed(items, determinant.kind) for items in inner]
    else:
        log.debug("Column '%s' degrades to list<string>", name)
        col_type = ColumnType(Kind.ARRAY, Kind.STRING, fallback=True)
        data = [_rendered(items) for items in inner]

    return col_type, pl.Series(name, data, dtype=col_type.dtype)


def build_series(name: str, values: Sequence[Value]) -> tuple[ColumnType, pl.Series]:
    """Infer the type of one column and build its Polars Series.

    The first non-null value (the determinant) picks the kind. If any other
    non-null value has a different kind the whole column is rendered to
    strings instead. Array columns repeat the same decision for their
    elements, keeping each row's list boundaries.
    """
    determinant = _first_non_null(values)

    if determinant is None:
        col_type = ColumnType(Kind.NULL)
        return col_type, pl.Series(name, [None] * len(values), dtype=pl.Null)

    if determinant.is_array():
        return _build_list_series(name, values)

    if _is_normal(values, determinant.kind):
        col_type = ColumnType(determinant.kind)
        data = _typed(values, determinant.kind)
    else:
        log.debug(
            "Column '%s' mixes kinds (determinant %s), falling back to string",
            name,
            determinant.kind,
        )
        col_type = ColumnType(Kind.STRING, fallback=True)
        data = _rendered(values)

    return col_type, pl.Series(name, data, dtype=col_type.dtype)


def build_dataframe(table: Table) -> tuple[Schema, pl.DataFrame]:
    """Build every column of *table*, padding absent fields with nulls.

    Raises:
        ColumnBuildError: A column could not be assembled.
    """
    schema: Schema = {}
    series: list[pl.Series] = []
    height = len(table)

    for name in table.columns:
        values = list(table.iter_column(name))
        try:
            col_type, s = build_series(name, values)
        except (PolarsError, TypeError, ValueError, OverflowError) as exc:
            raise ColumnBuildError(table.name, name, str(exc)) from exc
        if len(s) != height:
            raise ColumnBuildError(
                table.name, name, f"expected {height} values, got {len(s)}"
            )
        schema[name] = col_type
        series.append(s)

    return schema, pl.DataFrame(series)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Diagnostic:
    """Why a table was left out of a :class:`Database`."""

    table: str
    column: str | None
    message: str


@dataclass(frozen=True)
class ResolvedTable:
    name: str
    schema: Schema
    frame: pl.DataFrame


@dataclass
class Database:
    """Typed, columnar tables plus the diagnostics of the ones that failed."""

    tables: dict[str, ResolvedTable] = field(default_factory=dict)
    relationships: list[Relationship] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def __getitem__(self, name: str) -> ResolvedTable:
        return self.tables[name]

    def __contains__(self, name: object) -> bool:
        return name in self.tables

    def __len__(self) -> int:
        return len(self.tables)

    @property
    def schema(self) -> dict[str, Schema]:
        return {name: t.schema for name, t in self.tables.items()}

    def iter_tables(self):
        yield from self.tables.items()

    def frame(self, name: str) -> pl.DataFrame:
        return self.tables[name].frame


def build_columns(normalized: NormalizedTables) -> Database:
    """Build a typed :class:`Database` from a normalized table set.

    Tables are independent: one that fails to build is dropped and recorded
    in :attr:`Database.diagnostics` while the rest are still built.
    """
    db = Database(relationships=list(normalized.relationships))

    for name, table in normalized.iter_tables():
        try:
            schema, frame = build_dataframe(table)
        except ColumnBuildError as exc:
            log.warning("Dropping table '%s': %s", name, exc)
            db.diagnostics.append(Diagnostic(exc.table, exc.column, str(exc)))
            continue
        db.tables[name] = ResolvedTable(name, schema, frame)
        log.debug("Built table '%s' with %d rows × %d columns", name, frame.height, frame.width)

    log.info(
        "Built %d of %d tables (%d dropped)",
        len(db.tables),
        len(normalized),
        len(db.diagnostics),
    )
    return db


def convert(
    document: Any,
    cfg: Config | None = None,
    *,
    id_factory: IdFactory | None = None,
) -> Database:
    """Normalize a parsed JSON document and build its typed tables."""
    return build_columns(normalize(document, cfg, id_factory=id_factory))
