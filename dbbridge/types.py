"""
Column type normalization

Drivers report column types in their own vocabulary (Postgres OIDs, MySQL
field codes, ODBC type objects, Oracle DB types). Adapters first turn those
into a native type name; the helpers here fold native names into the
conventional set used by ResultSet.column_types and ColumnInfo.type.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Optional

INTEGER = "integer"
FLOAT = "float"
STRING = "string"
BOOLEAN = "boolean"
NULL = "null"
DATETIME = "datetime"

CONVENTIONAL_TYPES = (INTEGER, FLOAT, STRING, BOOLEAN, NULL, DATETIME)

# Checked in order; the first fragment found in the native name wins.
_NATIVE_FRAGMENTS = (
    ("blob", STRING),
    ("point", STRING),
    ("bool", BOOLEAN),
    ("bit", BOOLEAN),
    ("interval", STRING),
    ("timestamp", DATETIME),
    ("datetime", DATETIME),
    ("date", DATETIME),
    ("time", DATETIME),
    ("year", INTEGER),
    ("bigint", INTEGER),
    ("smallint", INTEGER),
    ("tinyint", INTEGER),
    ("int", INTEGER),
    ("serial", INTEGER),
    ("long", INTEGER),
    ("short", INTEGER),
    ("tiny", INTEGER),
    ("float", FLOAT),
    ("double", FLOAT),
    ("real", FLOAT),
    ("numeric", FLOAT),
    ("decimal", FLOAT),
    ("number", FLOAT),
    ("money", FLOAT),
    ("null", NULL),
)

# Engine type names used when creating tables from inferred types.
DDL_TYPES = {
    INTEGER: "BIGINT",
    FLOAT: "DOUBLE",
    STRING: "TEXT",
    BOOLEAN: "BOOLEAN",
    DATETIME: "TIMESTAMP",
    NULL: "TEXT",
}


def normalize_type(native: Optional[str]) -> str:
    """
    Map a native type name to the conventional set.

    Unknown or empty names fall back to "string".
    """
    if not native:
        return STRING

    name = str(native).lower()
    for fragment, conventional in _NATIVE_FRAGMENTS:
        if fragment in name:
            return conventional
    return STRING


def infer_type(value: Any) -> str:
    """Conventional type of a single Python value."""
    if value is None:
        return NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, (float, Decimal)):
        return FLOAT
    if isinstance(value, (datetime, date, time)):
        return DATETIME
    return STRING


def infer_column_type(values: Iterable[Any]) -> str:
    """
    Conventional type for a column of values.

    Nulls are skipped; integers mixed with floats widen to float; any other
    mix falls back to string. An all-null column is "null".
    """
    seen = set()
    for value in values:
        kind = infer_type(value)
        if kind != NULL:
            seen.add(kind)

    if not seen:
        return NULL
    if len(seen) == 1:
        return seen.pop()
    if seen == {INTEGER, FLOAT}:
        return FLOAT
    return STRING
