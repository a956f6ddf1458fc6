"""
MySQL / MariaDB Adapter for dbbridge

Works against MySQL 5.7+, MySQL 8 and MariaDB 10+ through the MySQL wire
protocol.

Requirements:
    pip install mysql-connector-python
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

try:
    import mysql.connector
    MYSQL_AVAILABLE = True
except ImportError:
    MYSQL_AVAILABLE = False
    mysql = None

from dbbridge.adapters.base import BaseAdapter
from dbbridge.errors import ConfigurationError
from dbbridge.params import MySQLParams

logger = logging.getLogger(__name__)


# MySQL field type constants
MYSQL_TYPE_NAMES = {
    0: "DECIMAL",
    1: "TINY",
    2: "SHORT",
    3: "LONG",
    4: "FLOAT",
    5: "DOUBLE",
    6: "NULL",
    7: "TIMESTAMP",
    8: "LONGLONG",
    9: "INT24",
    10: "DATE",
    11: "TIME",
    12: "DATETIME",
    13: "YEAR",
    14: "NEWDATE",
    15: "VARCHAR",
    16: "BIT",
    245: "JSON",
    246: "NEWDECIMAL",
    247: "ENUM",
    248: "SET",
    249: "TINY_BLOB",
    250: "MEDIUM_BLOB",
    251: "LONG_BLOB",
    252: "BLOB",
    253: "VAR_STRING",
    254: "STRING",
    255: "GEOMETRY",
}


class MySQLAdapter(BaseAdapter):
    """
    Adapter for MySQL and MariaDB.

    Params:
        host, port, user, password, database (required)
        timeout: Connect timeout in seconds

    Example:
        handle = open_connection("mariadb", {
            "host": "mysql.example.com",
            "port": 3306,
            "database": "analytics",
            "user": os.environ["MYSQL_USER"],
            "password": os.environ["MYSQL_PASSWORD"],
        })
    """

    ENGINE = "mysql"
    DIALECT = "mysql"
    PLACEHOLDER = "%s"  # MySQL uses %s for parameters
    PARAMS_CLASS = MySQLParams
    AUTH_ERROR_MARKERS = ("access denied", "1045")

    TABLES_SQL = (
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = DATABASE() AND table_type = 'BASE TABLE' "
        "ORDER BY table_name"
    )
    COLUMNS_SQL = (
        "SELECT column_name, data_type, is_nullable FROM information_schema.columns "
        "WHERE table_schema = DATABASE() AND table_name = ? "
        "ORDER BY ordinal_position"
    )
    VERSION_SQL = "SELECT VERSION()"

    def __init__(self, params: MySQLParams):
        """Initialize MySQL adapter."""
        super().__init__(params)

        if not MYSQL_AVAILABLE:
            raise ConfigurationError(
                "mysql-connector-python not installed. "
                "Run: pip install mysql-connector-python",
                engine=self.ENGINE
            )

    def describe_target(self) -> str:
        p = self.params
        return f"{p.host}:{p.port}/{p.database}"

    def _build_connection_params(self) -> dict:
        p = self.params
        connection_params = {
            "host": p.host,
            "port": p.port,
            "user": p.user,
            "password": p.password,
            "database": p.database,
            "charset": "utf8mb4",
            "autocommit": True,
        }
        if p.timeout is not None:
            connection_params["connect_timeout"] = max(1, int(p.timeout))
        return connection_params

    def _driver_connect(self):
        return mysql.connector.connect(**self._build_connection_params())

    def convert_placeholders(self, sql: str, params: Optional[Sequence[Any]] = None) -> Tuple[str, List[Any]]:
        """Convert ? placeholders to MySQL %s format."""
        converted_sql = sql.replace("?", "%s")
        return converted_sql, list(params or [])

    def _native_type_name(self, type_code: Any) -> Optional[str]:
        if type_code is None:
            return None
        return MYSQL_TYPE_NAMES.get(type_code)
