"""
Oracle Database Adapter for dbbridge

Uses python-oracledb in thin mode: no Oracle Instant Client needed.

Requirements:
    pip install oracledb
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

try:
    import oracledb
    ORACLEDB_AVAILABLE = True
except ImportError:
    ORACLEDB_AVAILABLE = False
    oracledb = None

from dbbridge import types as dbtypes
from dbbridge.adapters.base import BaseAdapter, ColumnInfo
from dbbridge.errors import ConfigurationError
from dbbridge.params import OracleParams

logger = logging.getLogger(__name__)


class OracleAdapter(BaseAdapter):
    """
    Adapter for Oracle Database.

    Params:
        host, port, user, password (required)
        database: Service name (required)
        timeout: TCP connect timeout in seconds

    Example:
        handle = open_connection("oracle", {
            "host": "oracle.company.com",
            "port": 1521,
            "database": "ORCLPDB1",
            "user": os.environ["ORACLE_USER"],
            "password": os.environ["ORACLE_PASSWORD"],
        })
    """

    ENGINE = "oracle"
    DIALECT = "oracle"
    PLACEHOLDER = ":"  # Oracle uses :1, :2 or :name for parameters
    PARAMS_CLASS = OracleParams
    AUTH_ERROR_MARKERS = ("ora-01017", "ora-01005", "ora-28000")

    TABLES_SQL = "SELECT table_name FROM user_tables ORDER BY table_name"
    COLUMNS_SQL = (
        "SELECT column_name, data_type, nullable FROM user_tab_columns "
        "WHERE table_name = ? ORDER BY column_id"
    )
    VERSION_SQL = "SELECT banner FROM v$version WHERE ROWNUM = 1"
    HEALTH_SQL = "SELECT 1 FROM DUAL"

    def __init__(self, params: OracleParams):
        """Initialize Oracle adapter."""
        super().__init__(params)

        if not ORACLEDB_AVAILABLE:
            raise ConfigurationError(
                "oracledb not installed. Run: pip install oracledb",
                engine=self.ENGINE
            )

    def _build_dsn(self) -> str:
        """Easy Connect string: host:port/service_name."""
        p = self.params
        return f"{p.host}:{p.port}/{p.database}"

    def describe_target(self) -> str:
        return self._build_dsn()

    def _driver_connect(self):
        p = self.params
        connect_params = {
            "user": p.user,
            "password": p.password,
            "dsn": self._build_dsn(),
        }
        if p.timeout is not None:
            connect_params["tcp_connect_timeout"] = p.timeout

        connection = oracledb.connect(**connect_params)
        connection.autocommit = True
        return connection

    def convert_placeholders(self, sql: str, params: Optional[Sequence[Any]] = None) -> Tuple[str, Dict[str, Any]]:
        """
        Convert placeholders for Oracle.

        ? becomes :1, :2, ... and the values are bound by position name.
        """
        if not params:
            return sql, {}

        result = []
        param_count = 0
        for char in sql:
            if char == "?":
                param_count += 1
                result.append(f":{param_count}")
            else:
                result.append(char)

        param_dict = {str(i + 1): v for i, v in enumerate(params)}
        return "".join(result), param_dict

    def _native_type_name(self, type_code: Any) -> Optional[str]:
        """DbType objects render as e.g. <DbType DB_TYPE_NUMBER>."""
        if type_code is None:
            return None
        name = str(type_code).lower()
        # NUMBER covers integers and floats; values decide
        if "number" in name:
            return "number"
        # LONG and LONG RAW hold character or binary data
        if "long" in name:
            return "clob"
        return name

    def _column_info(self, row: tuple) -> ColumnInfo:
        info = super()._column_info(row)
        if info.native_type.upper().startswith("LONG"):
            info.type = dbtypes.STRING
        return info
