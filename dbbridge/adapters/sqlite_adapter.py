"""
SQLite Adapter for dbbridge

SQLite is ideal for:
- Local development and testing
- Single-file embedded databases
- In-memory scratch stores for pipelines

Requirements:
    None - sqlite3 is included in Python standard library
"""

import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from dbbridge.adapters.base import BaseAdapter
from dbbridge.params import SQLiteParams

logger = logging.getLogger(__name__)


class SQLiteAdapter(BaseAdapter):
    """
    Adapter for SQLite databases.

    Params:
        path: Path to SQLite file or ':memory:' (required)
        timeout: Busy timeout in seconds (default: sqlite3's 5.0)

    Example (File):
        handle = open_connection("sqlite", {"path": "/path/to/data.db"})

    Example (In-Memory):
        handle = open_connection("sqlite", {"path": ":memory:"})
    """

    ENGINE = "sqlite"
    DIALECT = "sqlite"
    PLACEHOLDER = "?"  # SQLite uses ? for parameters
    PARAMS_CLASS = SQLiteParams

    TABLES_SQL = (
        "SELECT name FROM sqlite_master "
        "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
        "ORDER BY name"
    )
    COLUMNS_SQL = (
        "SELECT name, type, CASE WHEN \"notnull\" = 0 THEN 1 ELSE 0 END AS nullable "
        "FROM pragma_table_info(?) ORDER BY cid"
    )
    VERSION_SQL = "SELECT sqlite_version()"

    def describe_target(self) -> str:
        return self.params.path

    def _driver_connect(self):
        path = self.params.path
        if not self.params.is_memory:
            parent = Path(path).expanduser().absolute().parent
            if not parent.exists():
                raise FileNotFoundError(f"Directory does not exist: {parent}")
            path = str(Path(path).expanduser())

        kwargs = {"isolation_level": None}  # autocommit
        if self.params.timeout is not None:
            kwargs["timeout"] = self.params.timeout

        connection = sqlite3.connect(path, **kwargs)
        logger.debug(f"SQLite {sqlite3.sqlite_version} opened {path}")
        return connection

    def _native_type_name(self, type_code: Any) -> Optional[str]:
        # sqlite3 does not report column types in cursor.description
        return None

    def _bind_value(self, value: Any) -> Any:
        # sqlite3 has no Decimal adapter, and its date adapters are deprecated
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, datetime):
            return value.isoformat(" ")
        if isinstance(value, date):
            return value.isoformat()
        return value
