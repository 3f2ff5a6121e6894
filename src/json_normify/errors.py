"""Exception hierarchy for json-normify."""

from __future__ import annotations


class NormifyError(Exception):
    """Base class for every error raised by json-normify."""


class InputShapeError(NormifyError, ValueError):
    """The document (or a nested node) has a shape that cannot be normalized.

    Raised for a root that is neither an object nor an array, arrays that mix
    objects with other values, and documents nested deeper than allowed.
    """


class ObjectTypeError(NormifyError, TypeError):
    """An object node reached direct value conversion.

    Objects are decomposed into child tables before any value conversion, so
    this only happens for objects buried inside nested scalar arrays.
    """


class ConversionError(NormifyError, TypeError):
    """A value was converted to a kind other than its own."""


class ColumnBuildError(NormifyError):
    """Assembling the columns of one table failed."""

    def __init__(self, table: str, column: str | None, message: str) -> None:
        self.table = table
        self.column = column
        location = f"{table}.{column}" if column else table
        super().__init__(f"{location}: {message}")


class ExportError(NormifyError):
    """A built table could not be written out."""
