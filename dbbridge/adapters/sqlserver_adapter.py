"""
Microsoft SQL Server Adapter for dbbridge

Supports SQL Server 2012+ and Azure SQL Database.

Requirements:
    pip install pymssql
    # or, with an installed Microsoft ODBC driver:
    pip install pyodbc
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

# Try pymssql first (simpler, no ODBC config needed)
try:
    import pymssql
    PYMSSQL_AVAILABLE = True
except ImportError:
    PYMSSQL_AVAILABLE = False
    pymssql = None

# Fall back to pyodbc
try:
    import pyodbc
    PYODBC_AVAILABLE = True
except ImportError:
    PYODBC_AVAILABLE = False
    pyodbc = None

from dbbridge.adapters.base import BaseAdapter
from dbbridge.errors import ConfigurationError
from dbbridge.params import SQLServerParams

logger = logging.getLogger(__name__)


# pymssql DB-API type objects
PYMSSQL_TYPE_NAMES = {
    1: "varchar",
    2: "varbinary",
    4: "datetime",
    5: "decimal",
}

PREFERRED_ODBC_DRIVERS = (
    "ODBC Driver 18 for SQL Server",
    "ODBC Driver 17 for SQL Server",
    "ODBC Driver 13.1 for SQL Server",
    "ODBC Driver 13 for SQL Server",
    "SQL Server Native Client 11.0",
    "SQL Server",
)


class SQLServerAdapter(BaseAdapter):
    """
    Adapter for Microsoft SQL Server.

    Params:
        host, port, user, password, database (required)
        schema: Schema used for metadata lookups (default: dbo)
        timeout: Login timeout in seconds

    Example:
        handle = open_connection("mssql", {
            "host": "sqlserver.company.com",
            "port": 1433,
            "database": "analytics",
            "user": os.environ["MSSQL_USER"],
            "password": os.environ["MSSQL_PASSWORD"],
        })
    """

    ENGINE = "sqlserver"
    DIALECT = "tsql"
    PLACEHOLDER = "%s"  # pymssql uses %s; pyodbc keeps ?
    PARAMS_CLASS = SQLServerParams
    AUTH_ERROR_MARKERS = ("login failed", "18456")

    TABLES_SQL = (
        "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
        "WHERE TABLE_SCHEMA = ? AND TABLE_TYPE = 'BASE TABLE' "
        "ORDER BY TABLE_NAME"
    )
    COLUMNS_SQL = (
        "SELECT COLUMN_NAME, DATA_TYPE, IS_NULLABLE FROM INFORMATION_SCHEMA.COLUMNS "
        "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? "
        "ORDER BY ORDINAL_POSITION"
    )
    VERSION_SQL = "SELECT @@VERSION"

    def __init__(self, params: SQLServerParams):
        """Initialize SQL Server adapter."""
        super().__init__(params)

        if PYMSSQL_AVAILABLE:
            self.use_pyodbc = False
        elif PYODBC_AVAILABLE:
            self.use_pyodbc = True
            logger.info("pymssql not available, using pyodbc")
        else:
            raise ConfigurationError(
                "Neither pymssql nor pyodbc installed. Run: pip install pymssql",
                engine=self.ENGINE
            )

    def describe_target(self) -> str:
        p = self.params
        return f"{p.host}:{p.port}/{p.database}"

    def _detect_driver(self) -> str:
        """Pick the newest installed SQL Server ODBC driver."""
        available = pyodbc.drivers()
        for driver in PREFERRED_ODBC_DRIVERS:
            if driver in available:
                return driver

        for driver in available:
            if "sql" in driver.lower():
                return driver

        return "ODBC Driver 17 for SQL Server"

    def _get_pyodbc_connection_string(self) -> str:
        """Build ODBC connection string."""
        p = self.params
        parts = [
            f"DRIVER={{{self._detect_driver()}}}",
            f"SERVER={p.host},{p.port}",
            f"DATABASE={p.database}",
            f"UID={p.user}",
            f"PWD={p.password}",
        ]
        return ";".join(parts)

    def _driver_connect(self):
        p = self.params
        if self.use_pyodbc:
            kwargs = {"autocommit": True}
            if p.timeout is not None:
                kwargs["timeout"] = int(p.timeout)
            return pyodbc.connect(self._get_pyodbc_connection_string(), **kwargs)

        conn_params = {
            "server": p.host,
            "port": str(p.port),
            "database": p.database,
            "user": p.user,
            "password": p.password,
            "autocommit": True,
            "as_dict": False,  # rows are converted by the base adapter
        }
        if p.timeout is not None:
            conn_params["login_timeout"] = int(p.timeout)
        return pymssql.connect(**conn_params)

    def convert_placeholders(self, sql: str, params: Optional[Sequence[Any]] = None) -> Tuple[str, Any]:
        """Convert ? placeholders to %s for pymssql; pyodbc takes ? as-is."""
        if self.use_pyodbc:
            return sql, list(params or [])
        # pymssql expects a tuple of parameters
        return sql.replace("?", "%s"), tuple(params or ())

    def _metadata_args(self) -> List[Any]:
        return [self.params.schema]

    def _native_type_name(self, type_code: Any) -> Optional[str]:
        if type_code is None:
            return None
        if self.use_pyodbc:
            return str(type_code)
        # NUMBER (3) covers both integers and floats; values decide
        return PYMSSQL_TYPE_NAMES.get(type_code)
