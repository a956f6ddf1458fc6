"""
Connection parameter records

Each database kind has its own frozen record with its own required-field
set, checked when the record is built. Unknown keys are ignored so a single
sources file can carry extra annotations.

Usage:
    params = build_params("postgres", {
        "host": "db.internal",
        "port": 5432,
        "user": os.environ["PGUSER"],
        "password": os.environ["PGPASSWORD"],
        "database": "analytics",
    })
"""

from dataclasses import dataclass, fields, asdict
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type, Union

from dbbridge.errors import ConfigurationError


class DatabaseKind(str, Enum):
    """Database families a handle can be opened against."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLSERVER = "sqlserver"
    ORACLE = "oracle"
    ODBC = "odbc"
    DSN = "dsn"


KIND_ALIASES: Dict[str, DatabaseKind] = {
    "sqlite3": DatabaseKind.SQLITE,
    "postgresql": DatabaseKind.POSTGRES,
    "mariadb": DatabaseKind.MYSQL,
    "mssql": DatabaseKind.SQLSERVER,
    "oracledb": DatabaseKind.ORACLE,
}

# camelCase spellings accepted alongside the field names
KEY_ALIASES: Dict[str, str] = {
    "driverName": "driver_name",
    "dsnName": "dsn_name",
}

SECRET_KEYS = ("password", "pwd")


def resolve_kind(kind: Union[str, DatabaseKind]) -> DatabaseKind:
    """Turn a kind name or alias into a DatabaseKind."""
    if isinstance(kind, DatabaseKind):
        return kind
    name = str(kind).strip().lower()
    if name in KIND_ALIASES:
        return KIND_ALIASES[name]
    try:
        return DatabaseKind(name)
    except ValueError:
        available = ", ".join(k.value for k in DatabaseKind)
        raise ConfigurationError(
            f"Unsupported database kind: {kind}. Available: {available}"
        )


@dataclass(frozen=True)
class ConnectionParams:
    """Base record. Subclasses declare KIND and REQUIRED."""

    KIND: ClassVar[DatabaseKind]
    REQUIRED: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> "ConnectionParams":
        """
        Build the record from a loose parameter mapping.

        Raises:
            ConfigurationError: If a required key is absent or None
        """
        normalized = {KEY_ALIASES.get(k, k): v for k, v in params.items()}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in normalized.items() if k in known})

    def __post_init__(self):
        missing = [k for k in self.REQUIRED if getattr(self, k) is None]
        if missing:
            raise ConfigurationError(
                f"Missing required parameter(s): {', '.join(missing)}",
                engine=self.KIND.value
            )

        for name in ("port", "timeout"):
            if not hasattr(self, name):
                continue
            value = getattr(self, name)
            if value is None:
                continue
            try:
                coerced = int(value) if name == "port" else float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"Parameter '{name}' must be numeric, got {value!r}",
                    engine=self.KIND.value
                )
            object.__setattr__(self, name, coerced)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def redacted(self) -> Dict[str, Any]:
        """Parameters safe to log."""
        return {
            k: ("***" if k in SECRET_KEYS and v is not None else v)
            for k, v in asdict(self).items()
        }


@dataclass(frozen=True)
class SQLiteParams(ConnectionParams):
    """Embedded database file, or ':memory:'."""

    KIND: ClassVar[DatabaseKind] = DatabaseKind.SQLITE
    REQUIRED: ClassVar[Tuple[str, ...]] = ("path",)

    path: str = None
    timeout: Optional[float] = None

    @property
    def is_memory(self) -> bool:
        return self.path == ":memory:"


@dataclass(frozen=True)
class NetworkParams(ConnectionParams):
    """Host/port/credentials for a family-specific network driver."""

    REQUIRED: ClassVar[Tuple[str, ...]] = ("host", "port", "user", "password", "database")

    host: str = None
    port: int = None
    user: str = None
    password: str = None
    database: str = None
    timeout: Optional[float] = None


@dataclass(frozen=True)
class PostgresParams(NetworkParams):
    KIND: ClassVar[DatabaseKind] = DatabaseKind.POSTGRES


@dataclass(frozen=True)
class MySQLParams(NetworkParams):
    KIND: ClassVar[DatabaseKind] = DatabaseKind.MYSQL


@dataclass(frozen=True)
class SQLServerParams(NetworkParams):
    KIND: ClassVar[DatabaseKind] = DatabaseKind.SQLSERVER

    schema: str = "dbo"


@dataclass(frozen=True)
class OracleParams(NetworkParams):
    """For Oracle, ``database`` is the service name."""

    KIND: ClassVar[DatabaseKind] = DatabaseKind.ORACLE


@dataclass(frozen=True)
class ODBCParams(ConnectionParams):
    """Generic ODBC connection selected by installed driver name."""

    KIND: ClassVar[DatabaseKind] = DatabaseKind.ODBC
    REQUIRED: ClassVar[Tuple[str, ...]] = ("driver_name", "server", "port", "database", "uid", "pwd")

    driver_name: str = None
    server: str = None
    port: int = None
    database: str = None
    uid: str = None
    pwd: str = None
    dialect: Optional[str] = None
    timeout: Optional[float] = None


@dataclass(frozen=True)
class DSNParams(ConnectionParams):
    """Pre-registered ODBC data source name."""

    KIND: ClassVar[DatabaseKind] = DatabaseKind.DSN
    REQUIRED: ClassVar[Tuple[str, ...]] = ("dsn_name",)

    dsn_name: str = None
    uid: Optional[str] = None
    pwd: Optional[str] = None
    dialect: Optional[str] = None
    timeout: Optional[float] = None


PARAMS_BY_KIND: Dict[DatabaseKind, Type[ConnectionParams]] = {
    DatabaseKind.SQLITE: SQLiteParams,
    DatabaseKind.POSTGRES: PostgresParams,
    DatabaseKind.MYSQL: MySQLParams,
    DatabaseKind.SQLSERVER: SQLServerParams,
    DatabaseKind.ORACLE: OracleParams,
    DatabaseKind.ODBC: ODBCParams,
    DatabaseKind.DSN: DSNParams,
}


def build_params(
    kind: Union[str, DatabaseKind],
    params: Union[Mapping[str, Any], ConnectionParams]
) -> ConnectionParams:
    """Validate ``params`` against the record for ``kind``."""
    resolved = resolve_kind(kind)
    record_class = PARAMS_BY_KIND[resolved]

    if isinstance(params, ConnectionParams):
        if not isinstance(params, record_class):
            raise ConfigurationError(
                f"{type(params).__name__} cannot be used for kind '{resolved.value}'",
                engine=resolved.value
            )
        return params

    return record_class.from_mapping(params)
