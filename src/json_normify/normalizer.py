"""Recursive decomposition of nested JSON into related, row-oriented tables."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from json_normify.config import Config
from json_normify.dtype import NULL, Value
from json_normify.errors import InputShapeError

log = logging.getLogger(__name__)

Row = dict[str, Value]
IdFactory = Callable[[], str]


def _uuid4() -> str:
    return str(uuid.uuid4())


@dataclass
class Table:
    """A named, growable list of rows whose field sets may differ."""

    name: str
    rows: list[Row] = field(default_factory=list)

    def append_row(self, row: Row) -> None:
        self.rows.append(row)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def columns(self) -> list[str]:
        """Every field name seen across the rows, in first-seen order."""
        seen: dict[str, None] = {}
        for row in self.rows:
            for name in row:
                seen.setdefault(name, None)
        return list(seen)

    def iter_column(self, name: str) -> Iterator[Value]:
        """Yield the value of *name* for each row, ``null`` where absent."""
        for row in self.rows:
            yield row.get(name, NULL)

    def iter_columns(self) -> Iterator[tuple[str, Iterator[Value]]]:
        for name in self.columns:
            yield name, self.iter_column(name)

    def iter_rows(self) -> Iterator[tuple[Value, ...]]:
        """Yield each row as a tuple aligned with :attr:`columns`."""
        columns = self.columns
        for row in self.rows:
            yield tuple(row.get(name, NULL) for name in columns)


@dataclass(frozen=True)
class Relationship:
    """A parent → child table link discovered during decomposition."""

    parent: str
    child: str
    fk_field: str


@dataclass
class NormalizedTables:
    """The complete table set produced by :func:`normalize`."""

    tables: dict[str, Table] = field(default_factory=dict)
    relationships: list[Relationship] = field(default_factory=list)

    def __getitem__(self, name: str) -> Table:
        return self.tables[name]

    def __contains__(self, name: object) -> bool:
        return name in self.tables

    def __len__(self) -> int:
        return len(self.tables)

    @property
    def table_names(self) -> list[str]:
        return list(self.tables)

    def iter_tables(self) -> Iterator[tuple[str, Table]]:
        yield from self.tables.items()


class _NormifyContext:
    """Mutable accumulator owned by a single :func:`normalize` call."""

    def __init__(self, cfg: Config, id_factory: IdFactory) -> None:
        self.cfg = cfg
        self.id_factory = id_factory
        self.tables: dict[str, Table] = {}
        self.relationships: list[Relationship] = []

    def _table(self, name: str) -> Table:
        table = self.tables.get(name)
        if table is None:
            log.debug("Creating table '%s'", name)
            table = self.tables[name] = Table(name)
        return table

    def _relate(self, parent: str, child: str) -> None:
        rel = Relationship(parent=parent, child=child, fk_field=f"{parent}_id")
        if rel not in self.relationships:
            self.relationships.append(rel)

    def decompose(
        self,
        table_name: str,
        obj: dict[str, Any],
        parent_id: str | None = None,
        parent_table: str | None = None,
        depth: int = 1,
    ) -> None:
        """Turn *obj* into one row of *table_name*, recursing into children.

        Nested objects and arrays of objects become rows of ``<key>_table``
        carrying ``<table_name>_id``; every other value is stored inline.
        """
        if depth > self.cfg.max_depth:
            raise InputShapeError(
                f"Document nesting exceeds max_depth={self.cfg.max_depth} "
                f"at table '{table_name}'"
            )
        # Registered up front so parents are listed before their children
        table = self._table(table_name)

        row_id = self.id_factory()
        row: Row = {"id": Value.string(row_id)}
        if parent_table is not None:
            row[f"{parent_table}_id"] = Value.string(parent_id)

        for key, value in obj.items():
            if isinstance(value, dict):
                child = self.cfg.child_table_name(key)
                self._relate(table_name, child)
                self.decompose(child, value, row_id, table_name, depth + 1)
            elif isinstance(value, list) and all(isinstance(v, dict) for v in value):
                if not value:
                    continue
                child = self.cfg.child_table_name(key)
                self._relate(table_name, child)
                for item in value:
                    self.decompose(child, item, row_id, table_name, depth + 1)
            else:
                if isinstance(value, list) and any(isinstance(v, dict) for v in value):
                    raise InputShapeError(
                        f"Field '{key}' of table '{table_name}' mixes objects "
                        "with other values"
                    )
                # Arrays stored inline share the object nesting budget
                row[_free_field_name(row, key)] = Value.from_json(
                    value, max_depth=self.cfg.max_depth - depth
                )

        table.append_row(row)


def _free_field_name(row: Row, key: str) -> str:
    """Return *key*, suffixed with ``_src`` until it clashes with nothing."""
    name = key
    while name in row:
        name = f"{name}_src"
    if name != key:
        log.debug("Field '%s' collides with a generated key, storing as '%s'", key, name)
    return name


def normalize(
    document: Any,
    cfg: Config | None = None,
    *,
    id_factory: IdFactory | None = None,
) -> NormalizedTables:
    """Decompose a parsed JSON document into related tables.

    Args:
        document: The output of :func:`json.loads`; an object or an array of
            objects.
        cfg: Configuration; loaded from the environment when omitted.
        id_factory: Source of unique row ids (defaults to UUID4 strings).

    Returns:
        The complete table set. Nothing is returned if any part fails.

    Raises:
        InputShapeError: The document or a nested array has an unsupported
            shape.
        ObjectTypeError: An object is buried inside a nested scalar array.
    """
    cfg = cfg or Config()
    ctx = _NormifyContext(cfg, id_factory or _uuid4)
    root = cfg.root_table_name

    if isinstance(document, dict):
        ctx.decompose(root, document)
    elif isinstance(document, list):
        for index, item in enumerate(document):
            if not isinstance(item, dict):
                raise InputShapeError(
                    f"Root array element {index} is {type(item).__name__}, "
                    "expected an object"
                )
            ctx.decompose(root, item)
    else:
        raise InputShapeError(
            f"Unexpected JSON root type: {type(document).__name__}"
        )

    log.info(
        "Normalized document into %d tables (%d rows)",
        len(ctx.tables),
        sum(len(t) for t in ctx.tables.values()),
    )
    return NormalizedTables(tables=ctx.tables, relationships=ctx.relationships)


def normalize_text(
    content: str,
    cfg: Config | None = None,
    *,
    id_factory: IdFactory | None = None,
) -> NormalizedTables:
    """Parse JSON text and :func:`normalize` it."""
    return normalize(json.loads(content), cfg, id_factory=id_factory)
