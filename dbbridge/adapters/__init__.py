"""
Database Adapters for dbbridge

This package provides a unified interface for connecting to different databases.
Each adapter handles:
- Connection management
- Query execution
- Parameter placeholder conversion
- Metadata lookups

Supported Kinds:
- SQLite (built-in, zero dependencies)
- PostgreSQL
- MySQL / MariaDB
- SQL Server / Azure SQL
- Oracle Database
- Any ODBC driver, by driver name or by DSN
"""

from dbbridge.adapters.base import BaseAdapter, ColumnInfo, ResultSet
from dbbridge.adapters.factory import (
    open_connection,
    open_source,
    register_adapter,
    list_kinds,
    is_kind_supported,
)

__all__ = [
    "BaseAdapter",
    "ColumnInfo",
    "ResultSet",
    "open_connection",
    "open_source",
    "register_adapter",
    "list_kinds",
    "is_kind_supported",
]
