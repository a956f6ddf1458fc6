"""
Connection Provider for dbbridge

Turns a database kind plus connection parameters into a connected handle.
Every call opens a fresh, independent connection; nothing is cached or
pooled, and the caller owns (and must release) what it gets back.

Usage:
    from dbbridge import open_connection

    handle = open_connection("sqlite", {"path": ":memory:"})

    # Or use a named entry from the sources registry
    handle = open_source("warehouse")
"""

import dataclasses
import logging
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from dbbridge.adapters.base import BaseAdapter
from dbbridge.adapters.mysql_adapter import MySQLAdapter
from dbbridge.adapters.odbc_adapter import DSNAdapter, ODBCAdapter
from dbbridge.adapters.oracle_adapter import OracleAdapter
from dbbridge.adapters.postgres_adapter import PostgresAdapter
from dbbridge.adapters.sqlite_adapter import SQLiteAdapter
from dbbridge.adapters.sqlserver_adapter import SQLServerAdapter
from dbbridge.core.config import settings
from dbbridge.errors import ConfigurationError
from dbbridge.params import KIND_ALIASES, ConnectionParams, DatabaseKind

logger = logging.getLogger(__name__)


# =============================================================================
# ADAPTER REGISTRY
# =============================================================================

# Map of kind name -> adapter class
_ADAPTER_REGISTRY: Dict[str, Type[BaseAdapter]] = {}


def register_adapter(kind: Union[str, DatabaseKind], adapter_class: Type[BaseAdapter]) -> None:
    """
    Register an adapter class for a database kind.

    Args:
        kind: Kind name (e.g., "postgres") or DatabaseKind
        adapter_class: BaseAdapter subclass serving this kind
    """
    name = kind.value if isinstance(kind, DatabaseKind) else str(kind).lower()
    _ADAPTER_REGISTRY[name] = adapter_class
    logger.debug(f"Registered adapter for kind: {name}")


def list_kinds() -> List[str]:
    """Get list of registered kind names."""
    return list(_ADAPTER_REGISTRY.keys())


def is_kind_supported(kind: Union[str, DatabaseKind]) -> bool:
    """Check if a kind (or alias) has a registered adapter."""
    try:
        _resolve_adapter_class(kind)
        return True
    except ConfigurationError:
        return False


def _resolve_adapter_class(kind: Union[str, DatabaseKind]) -> Type[BaseAdapter]:
    if isinstance(kind, DatabaseKind):
        name = kind.value
    else:
        name = str(kind).strip().lower()
        if name in KIND_ALIASES:
            name = KIND_ALIASES[name].value

    if name not in _ADAPTER_REGISTRY:
        available = ", ".join(list_kinds())
        raise ConfigurationError(f"Unsupported database kind: {kind}. Available: {available}")
    return _ADAPTER_REGISTRY[name]


# =============================================================================
# CONNECTION PROVIDER
# =============================================================================

def open_connection(
    kind: Union[str, DatabaseKind],
    params: Union[Mapping[str, Any], ConnectionParams]
) -> BaseAdapter:
    """
    Open a connected handle for the specified database kind.

    Args:
        kind: Database kind or alias (e.g., "sqlite", "postgresql", "mssql")
        params: Connection parameters as a mapping or a parameter record

    Returns:
        Connected handle; release it with ``handle.release()`` or ``with``

    Raises:
        ConfigurationError: Unknown kind, missing parameter or missing driver
        AuthenticationError: Credentials rejected
        UnreachableError: Any other connection failure
    """
    adapter_class = _resolve_adapter_class(kind)
    record_class = adapter_class.PARAMS_CLASS

    if isinstance(params, ConnectionParams):
        if not isinstance(params, record_class):
            raise ConfigurationError(
                f"{type(params).__name__} cannot be used with {adapter_class.__name__}",
                engine=adapter_class.ENGINE
            )
        record = params
    else:
        record = record_class.from_mapping(params)

    if getattr(record, "timeout", None) is None and settings.connect_timeout is not None:
        record = dataclasses.replace(record, timeout=settings.connect_timeout)

    logger.debug(f"Opening {adapter_class.ENGINE} connection with {record.redacted()}")

    handle = adapter_class(record)
    handle.connect()
    return handle


def open_source(name: str, registry: Optional[Mapping[str, Mapping[str, Any]]] = None) -> BaseAdapter:
    """
    Open a connection to a named source.

    Args:
        name: Source name
        registry: Mapping of source name -> {"kind": ..., **params}
            (default: the sources file plus DBBRIDGE_SOURCES)

    Raises:
        ConfigurationError: If the source is unknown or has no kind
    """
    if registry is None:
        from dbbridge.sources import load_sources
        registry = load_sources()

    if name not in registry:
        available = ", ".join(sorted(registry)) or "none"
        raise ConfigurationError(f"Unknown source: {name}. Available: {available}")

    source = dict(registry[name])
    kind = source.pop("kind", None) or source.pop("type", None)
    if not kind:
        raise ConfigurationError(f"Source {name} has no kind specified")

    return open_connection(kind, source)


# =============================================================================
# AUTO-REGISTER BUILT-IN ADAPTERS
# =============================================================================

def _register_builtin_adapters():
    """Register all built-in adapters."""
    register_adapter(DatabaseKind.SQLITE, SQLiteAdapter)
    register_adapter(DatabaseKind.POSTGRES, PostgresAdapter)
    register_adapter(DatabaseKind.MYSQL, MySQLAdapter)
    register_adapter(DatabaseKind.SQLSERVER, SQLServerAdapter)
    register_adapter(DatabaseKind.ORACLE, OracleAdapter)
    register_adapter(DatabaseKind.ODBC, ODBCAdapter)
    register_adapter(DatabaseKind.DSN, DSNAdapter)


_register_builtin_adapters()
