"""
dbbridge

A thin, uniform client over SQLite, PostgreSQL, MySQL/MariaDB, SQL Server,
Oracle and any ODBC driver.

Example:
    from dbbridge import open_connection, table
    from dbbridge.datasets import mtcars

    with open_connection("sqlite", {"path": ":memory:"}) as handle:
        handle.write_table("mtcars", mtcars())

        # Run SQL
        result = handle.execute("SELECT * FROM mtcars WHERE cyl = 4")

        # Stream in batches
        with handle.execute_cursor("SELECT * FROM mtcars") as cursor:
            for batch in cursor.iter_batches(10):
                ...

        # Build SQL from a pipeline
        by_cyl = (
            table(handle, "mtcars")
            .group_by("cyl")
            .summarize(mpg="AVG(mpg)")
            .arrange("mpg", direction="desc")
        )
        df = by_cyl.collect().to_dataframe()
"""

from .adapters import (
    BaseAdapter,
    ColumnInfo,
    ResultSet,
    open_connection,
    open_source,
    register_adapter,
    list_kinds,
)
from .cursor import ResultCursor
from .errors import (
    DBBridgeError,
    ConfigurationError,
    ConnectionError,
    AuthenticationError,
    UnreachableError,
    NotFoundError,
    ConflictError,
    QueryError,
    UseAfterReleaseError,
)
from .params import DatabaseKind, build_params
from .query import Pipeline, table

__version__ = "0.1.0"
__all__ = [
    "BaseAdapter",
    "ColumnInfo",
    "ResultSet",
    "ResultCursor",
    "Pipeline",
    "DatabaseKind",
    "open_connection",
    "open_source",
    "register_adapter",
    "list_kinds",
    "build_params",
    "table",
    "DBBridgeError",
    "ConfigurationError",
    "ConnectionError",
    "AuthenticationError",
    "UnreachableError",
    "NotFoundError",
    "ConflictError",
    "QueryError",
    "UseAfterReleaseError",
]
