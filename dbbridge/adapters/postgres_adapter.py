"""
PostgreSQL Adapter for dbbridge

Requirements:
    pip install psycopg2-binary
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

try:
    import psycopg2
    PSYCOPG2_AVAILABLE = True
except ImportError:
    PSYCOPG2_AVAILABLE = False
    psycopg2 = None

from dbbridge.adapters.base import BaseAdapter
from dbbridge.errors import ConfigurationError
from dbbridge.params import PostgresParams

logger = logging.getLogger(__name__)


# Built-in type OIDs reported in cursor.description
PG_TYPE_NAMES = {
    16: "boolean",
    20: "bigint",
    21: "smallint",
    23: "integer",
    25: "text",
    700: "real",
    701: "double precision",
    1042: "char",
    1043: "varchar",
    1082: "date",
    1083: "time",
    1114: "timestamp",
    1184: "timestamptz",
    1700: "numeric",
}


class PostgresAdapter(BaseAdapter):
    """
    Adapter for PostgreSQL database.

    Params:
        host, port, user, password, database (required)
        timeout: Connect timeout in seconds, passed as connect_timeout

    Example:
        handle = open_connection("postgres", {
            "host": "localhost",
            "port": 5432,
            "database": "analytics",
            "user": os.environ["PGUSER"],
            "password": os.environ["PGPASSWORD"],
        })
        result = handle.execute("SELECT * FROM orders WHERE tenant_id = ?", ["tenant_a"])
    """

    ENGINE = "postgres"
    DIALECT = "postgres"
    PLACEHOLDER = "%s"  # PostgreSQL uses %s for parameters
    PARAMS_CLASS = PostgresParams
    AUTH_ERROR_MARKERS = (
        "password authentication failed",
        "no password supplied",
        "role \"",
    )

    TABLES_SQL = (
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE' "
        "ORDER BY table_name"
    )
    COLUMNS_SQL = (
        "SELECT column_name, data_type, is_nullable FROM information_schema.columns "
        "WHERE table_schema = current_schema() AND table_name = ? "
        "ORDER BY ordinal_position"
    )
    VERSION_SQL = "SHOW server_version"

    def __init__(self, params: PostgresParams):
        """Initialize PostgreSQL adapter."""
        super().__init__(params)

        if not PSYCOPG2_AVAILABLE:
            raise ConfigurationError(
                "psycopg2 not installed. Run: pip install psycopg2-binary",
                engine=self.ENGINE
            )

    def describe_target(self) -> str:
        p = self.params
        return f"{p.host}:{p.port}/{p.database}"

    def _driver_connect(self):
        p = self.params
        kwargs = {
            "host": p.host,
            "port": p.port,
            "dbname": p.database,
            "user": p.user,
            "password": p.password,
        }
        if p.timeout is not None:
            # libpq takes whole seconds
            kwargs["connect_timeout"] = max(1, int(p.timeout))

        connection = psycopg2.connect(**kwargs)
        connection.autocommit = True
        return connection

    def convert_placeholders(self, sql: str, params: Optional[Sequence[Any]] = None) -> Tuple[str, List[Any]]:
        """Convert ? placeholders to PostgreSQL %s format."""
        converted_sql = sql.replace("?", "%s")
        return converted_sql, list(params or [])

    def _native_type_name(self, type_code: Any) -> Optional[str]:
        if type_code is None:
            return None
        return PG_TYPE_NAMES.get(type_code)
