"""Tests for json_normify.export."""

from __future__ import annotations

from pathlib import Path

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq

from json_normify.columns import convert
from json_normify.export import (
    _resolve_dtype,
    database_to_arrow,
    dataframe_to_arrow,
    resolve_null_types,
    write_parquet,
)


# ── _resolve_dtype ──────────────────────────────────────────────────────────


class TestResolveDtype:
    def test_null_becomes_default(self):
        assert _resolve_dtype(pl.Null, pl.Utf8) == pl.Utf8

    def test_concrete_type_unchanged(self):
        assert _resolve_dtype(pl.UInt64, pl.Utf8) == pl.UInt64

    def test_list_of_null(self):
        assert _resolve_dtype(pl.List(pl.Null), pl.Utf8) == pl.List(pl.Utf8)

    def test_list_of_concrete_unchanged(self):
        assert _resolve_dtype(pl.List(pl.Float64), pl.Utf8) == pl.List(pl.Float64)


# ── resolve_null_types ──────────────────────────────────────────────────────


class TestResolveNullTypes:
    def test_all_null_column_becomes_utf8(self):
        df = pl.DataFrame({"a": [None, None]}, schema={"a": pl.Null})
        resolved = resolve_null_types(df)
        assert resolved.schema["a"] == pl.Utf8
        assert resolved["a"].to_list() == [None, None]

    def test_concrete_columns_unchanged(self):
        df = pl.DataFrame({"x": [1, 2], "y": ["a", "b"]})
        resolved = resolve_null_types(df)
        assert resolved.equals(df)

    def test_built_null_columns(self, cfg):
        db = convert({"n": None, "e": [None]}, cfg)
        resolved = resolve_null_types(db.frame("root"))
        assert resolved.schema["n"] == pl.Utf8
        assert resolved.schema["e"] == pl.List(pl.Utf8)


# ── Arrow conversion ────────────────────────────────────────────────────────


class TestDataframeToArrow:
    def test_field_metadata(self, cfg):
        db = convert([{"age": 30, "x": 1}, {"age": 31, "x": "one"}], cfg)
        root = db["root"]
        table = dataframe_to_arrow(root.frame, root.schema)

        assert isinstance(table, pa.Table)
        assert table.num_rows == 2
        assert table.schema.field("age").type == pa.uint64()
        assert table.schema.field("age").metadata == {
            b"normify.kind": b"uint",
            b"normify.fallback": b"false",
        }
        assert table.schema.field("x").metadata[b"normify.fallback"] == b"true"
        assert table.column("x").to_pylist() == ["1", "one"]

    def test_database_to_arrow(self, cfg, nested_document):
        tables = database_to_arrow(convert(nested_document, cfg))
        assert list(tables) == ["root", "customer_table", "address_table", "items_table"]
        assert tables["items_table"].num_rows == 2


# ── write_parquet ───────────────────────────────────────────────────────────


class TestWriteParquet:
    def test_one_file_per_table(self, cfg, nested_document, tmp_path: Path):
        db = convert(nested_document, cfg)
        out = tmp_path / "out"
        paths = write_parquet(db, out)

        assert [p.name for p in paths] == [
            "root.parquet",
            "customer_table.parquet",
            "address_table.parquet",
            "items_table.parquet",
        ]
        items = pq.read_table(out / "items_table.parquet")
        assert items.num_rows == 2
        assert items.column("sku").to_pylist() == ["X1", "Y2"]

    def test_table_names_cannot_leave_the_directory(self, cfg, tmp_path: Path):
        db = convert({"../x": {"v": 1}, "a/b": {"v": 2}, "a_b": {"v": 3}}, cfg)
        out = tmp_path / "out"
        paths = write_parquet(db, out)

        assert [p.name for p in paths] == [
            "root.parquet",
            "_x_table.parquet",
            "a_b_table.parquet",
            "a_b_table_2.parquet",
        ]
        assert all(p.resolve().parent == out.resolve() for p in paths)
        assert not (tmp_path / "x_table.parquet").exists()
        assert pq.read_table(out / "a_b_table_2.parquet").column("v").to_pylist() == [3]
