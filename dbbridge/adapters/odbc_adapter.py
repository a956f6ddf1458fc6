"""
Generic ODBC Adapters for dbbridge

Two ways to reach a database through an installed ODBC driver manager:

- ODBCAdapter: names the driver and the server directly
- DSNAdapter: refers to a data source pre-registered in odbc.ini

Metadata comes from the ODBC catalog functions (SQLTables / SQLColumns), so
it works against any backend the driver supports. Generated SQL uses the
``dialect`` param when given, generic SQL otherwise.

Requirements:
    pip install pyodbc
    # plus the vendor's ODBC driver and unixODBC / iODBC on Linux and macOS
"""

import logging
from typing import Any, List, Optional

try:
    import pyodbc
    PYODBC_AVAILABLE = True
except ImportError:
    PYODBC_AVAILABLE = False
    pyodbc = None

from dbbridge.adapters.base import BaseAdapter, ColumnInfo
from dbbridge.errors import ConfigurationError, NotFoundError, QueryError
from dbbridge.params import DSNParams, ODBCParams

logger = logging.getLogger(__name__)


class _PyODBCAdapter(BaseAdapter):
    """Shared pyodbc plumbing for driver-name and DSN connections."""

    PLACEHOLDER = "?"  # ODBC uses ? for parameters
    # SQLSTATE 28000: invalid authorization
    AUTH_ERROR_MARKERS = ("28000", "login failed", "access denied", "authentication failed")

    def __init__(self, params):
        super().__init__(params)

        if not PYODBC_AVAILABLE:
            raise ConfigurationError(
                "pyodbc not installed. Run: pip install pyodbc",
                engine=self.ENGINE
            )

    @property
    def dialect(self) -> str:
        return self.params.dialect or self.DIALECT

    def _get_connection_string(self) -> str:
        raise NotImplementedError

    def _driver_connect(self):
        kwargs = {"autocommit": True}
        if self.params.timeout is not None:
            kwargs["timeout"] = int(self.params.timeout)
        return pyodbc.connect(self._get_connection_string(), **kwargs)

    def _catalog(self, method: str, **kwargs) -> List[Any]:
        """Run an ODBC catalog function and return its rows."""
        self._ensure_open()
        cursor = None
        try:
            cursor = self._connection.cursor()
            return list(getattr(cursor, method)(**kwargs))
        except Exception as e:
            raise QueryError(
                f"Catalog lookup failed: {e}",
                engine=self.ENGINE,
                original_error=e
            ) from e
        finally:
            if cursor is not None:
                try:
                    cursor.close()
                except Exception as e:
                    logger.debug(f"Error closing {self.ENGINE} cursor: {e}")

    def list_tables(self) -> List[str]:
        return [row.table_name for row in self._catalog("tables", tableType="TABLE")]

    def list_columns(self, table: str) -> List[ColumnInfo]:
        rows = self._catalog("columns", table=table)
        if not rows:
            raise NotFoundError(f"Table not found: {table}", engine=self.ENGINE)
        return [
            self._column_info((row.column_name, row.type_name, row.nullable))
            for row in rows
        ]

    def server_version(self) -> str:
        self._ensure_open()
        try:
            name = self._connection.getinfo(pyodbc.SQL_DBMS_NAME)
            version = self._connection.getinfo(pyodbc.SQL_DBMS_VER)
        except Exception as e:
            raise QueryError(
                f"Version lookup failed: {e}",
                engine=self.ENGINE,
                original_error=e
            ) from e
        return f"{name} {version}"

    def _native_type_name(self, type_code: Any) -> Optional[str]:
        """pyodbc reports the Python type of the column (e.g. <class 'int'>)."""
        if type_code is None:
            return None
        return getattr(type_code, "__name__", str(type_code))


class ODBCAdapter(_PyODBCAdapter):
    """
    Adapter for any database reachable through a named ODBC driver.

    Params:
        driver_name, server, port, database, uid, pwd (required)
        dialect: sqlglot dialect for generated SQL (e.g. "tsql", "postgres")
        timeout: Login timeout in seconds

    Example:
        handle = open_connection("odbc", {
            "driverName": "ODBC Driver 18 for SQL Server",
            "server": "sqlserver.company.com",
            "port": 1433,
            "database": "analytics",
            "uid": os.environ["ODBC_UID"],
            "pwd": os.environ["ODBC_PWD"],
            "dialect": "tsql",
        })
    """

    ENGINE = "odbc"
    PARAMS_CLASS = ODBCParams

    def describe_target(self) -> str:
        p = self.params
        return f"{p.driver_name}://{p.server}:{p.port}/{p.database}"

    def _get_connection_string(self) -> str:
        """Build ODBC connection string."""
        p = self.params
        parts = [
            f"DRIVER={{{p.driver_name}}}",
            f"SERVER={p.server}",
            f"PORT={p.port}",
            f"DATABASE={p.database}",
            f"UID={p.uid}",
            f"PWD={p.pwd}",
        ]
        return ";".join(parts)


class DSNAdapter(_PyODBCAdapter):
    """
    Adapter for a pre-registered ODBC data source.

    Params:
        dsn_name (required)
        uid, pwd: Override the credentials stored with the DSN
        dialect: sqlglot dialect for generated SQL
        timeout: Login timeout in seconds
    """

    ENGINE = "dsn"
    PARAMS_CLASS = DSNParams

    def describe_target(self) -> str:
        return f"DSN={self.params.dsn_name}"

    def _get_connection_string(self) -> str:
        p = self.params
        parts = [f"DSN={p.dsn_name}"]
        if p.uid is not None:
            parts.append(f"UID={p.uid}")
        if p.pwd is not None:
            parts.append(f"PWD={p.pwd}")
        return ";".join(parts)
