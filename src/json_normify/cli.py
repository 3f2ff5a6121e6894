"""CLI entrypoint for json-normify."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from json_normify.columns import Database, convert
from json_normify.config import Config
from json_normify.errors import NormifyError
from json_normify.export import write_parquet

log = logging.getLogger("json_normify")


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i",
        "--input",
        required=True,
        type=Path,
        help="Path to the JSON file",
    )
    parser.add_argument(
        "-r",
        "--root",
        default=None,
        help="Root table name (overrides NORMIFY_ROOT_TABLE env var)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="json-normify",
        description="Normalize nested JSON into related, typed tables.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="Print the tables built from a JSON file")
    _add_common(inspect)

    export = sub.add_parser("export", help="Write one Parquet file per table")
    _add_common(export)
    export.add_argument(
        "-o",
        "--output",
        required=True,
        type=Path,
        help="Directory to write the Parquet files to",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    overrides: dict[str, str] = {}
    if args.root:
        overrides["root_table_name"] = args.root
    try:
        cfg = Config(**overrides)
    except ValueError as exc:
        log.error("Invalid configuration: %s", exc)
        return 1

    log.info("Loading JSON from %s", args.input)
    try:
        with open(args.input, "r", encoding="utf-8") as f:
            document = json.load(f)
        db = convert(document, cfg)
    except (NormifyError, json.JSONDecodeError) as exc:
        log.error("Could not convert %s: %s", args.input, exc)
        return 1

    if args.command == "inspect":
        _print_database(db)
    elif args.command == "export":
        try:
            paths = write_parquet(db, args.output)
        except NormifyError as exc:
            log.error("Could not export to %s: %s", args.output, exc)
            return 1
        log.info("Wrote %d Parquet files to %s", len(paths), args.output)

    for diag in db.diagnostics:
        log.warning("Table '%s' was dropped: %s", diag.table, diag.message)
    return 0


def _print_database(db: Database) -> None:
    """Print each table's shape and schema, then the relationships."""
    for name, table in db.iter_tables():
        print(f"Table: {name} ({table.frame.height} rows × {table.frame.width} columns)")
        for column, col_type in table.schema.items():
            print(f"\t{column}: {col_type}")
    for rel in db.relationships:
        print(f"{rel.parent} -> {rel.child} via {rel.fk_field}")


if __name__ == "__main__":
    sys.exit(main())
