"""
Base Adapter Interface for dbbridge

Every database kind is served by an adapter implementing this interface. A
connected adapter instance *is* the connection handle: callers receive it
from ``open_connection`` and use its methods directly.

DESIGN PRINCIPLES:
-----------------
1. One adapter instance = one driver connection (no pooling, no sharing)
2. SQL text is passed to the driver verbatim
3. Results returned as list of dicts in column order (engine-agnostic)
4. Driver errors wrapped in the dbbridge taxonomy, never swallowed
5. Release is idempotent; any other call after release fails
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from dbbridge import types as dbtypes
from dbbridge.errors import (
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    ConnectionError,
    DBBridgeError,
    NotFoundError,
    QueryError,
    UnreachableError,
    UseAfterReleaseError,
)
from dbbridge.params import ConnectionParams
from dbbridge.query import builder

logger = logging.getLogger(__name__)


@dataclass
class ColumnInfo:
    """Column descriptor returned by ``list_columns``."""
    name: str
    type: str
    native_type: str = ""
    nullable: bool = True


@dataclass
class ResultSet:
    """
    Fully materialized result of ``execute``.

    Attributes:
        rows: Result rows as dicts, keys in column order
        columns: Column names
        column_types: Column name -> conventional type
        row_count: Number of rows returned
        execution_time_ms: Wall time spent in the driver
        engine: Database engine name
        sql: Executed SQL
    """
    rows: List[Dict[str, Any]]
    columns: List[str]
    column_types: Dict[str, str] = field(default_factory=dict)
    row_count: int = 0
    execution_time_ms: float = 0.0
    engine: str = ""
    sql: str = ""

    def __post_init__(self):
        self.row_count = len(self.rows)

    def __len__(self) -> int:
        return self.row_count

    def __iter__(self):
        return iter(self.rows)

    def __getitem__(self, index):
        return self.rows[index]

    def to_tuples(self) -> List[tuple]:
        """Return rows as tuples in column order."""
        return [tuple(row[c] for c in self.columns) for row in self.rows]

    def to_dataframe(self):
        """
        Convert result to a pandas DataFrame.

        Requires pandas to be installed.
        """
        try:
            import pandas as pd
        except ImportError:
            raise ImportError(
                "pandas is required for to_dataframe(). "
                "Install it with: pip install dbbridge[pandas]"
            )

        return pd.DataFrame(self.rows, columns=self.columns)


def column_type(native: Optional[str], values: Sequence[Any]) -> str:
    """
    Conventional type for a result column.

    Uses the driver's native type when it has one; otherwise looks at the
    values. Numeric columns whose values are all integers report "integer".
    """
    inferred = dbtypes.infer_column_type(values)
    if not native:
        return inferred
    conventional = dbtypes.normalize_type(native)
    if conventional == dbtypes.FLOAT and inferred == dbtypes.INTEGER:
        return dbtypes.INTEGER
    return conventional


class BaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Each adapter must implement:
    - _driver_connect(): Open the driver connection
    - TABLES_SQL / COLUMNS_SQL: Metadata queries (or override list_*)

    Usage:
        handle = open_connection("sqlite", {"path": ":memory:"})
        handle.write_table("mtcars", rows)

        result = handle.execute("SELECT * FROM mtcars WHERE cyl = 4")

        with handle.execute_cursor("SELECT * FROM mtcars") as cursor:
            while not cursor.is_complete():
                batch = cursor.fetch(10)

        handle.release()
    """

    # Engine identifier (e.g., "sqlite", "postgres")
    ENGINE: str = "base"

    # sqlglot dialect used for generated SQL
    DIALECT: str = ""

    # Placeholder format used by this engine's driver
    PLACEHOLDER: str = "?"

    # Parameter record accepted by this adapter
    PARAMS_CLASS = ConnectionParams

    # Lower-case fragments of driver errors that mean "credentials rejected"
    AUTH_ERROR_MARKERS: Tuple[str, ...] = ()

    # Metadata queries, ? placeholders
    TABLES_SQL: str = ""
    COLUMNS_SQL: str = ""
    VERSION_SQL: str = ""

    # Liveness probe used by health_check
    HEALTH_SQL: str = "SELECT 1"

    def __init__(self, params: ConnectionParams):
        """
        Initialize adapter with validated connection parameters.

        Args:
            params: Parameter record for this adapter's database kind
        """
        if not isinstance(params, self.PARAMS_CLASS):
            raise ConfigurationError(
                f"{type(self).__name__} requires {self.PARAMS_CLASS.__name__}, "
                f"got {type(params).__name__}",
                engine=self.ENGINE
            )
        self.params = params
        self._connection = None
        self._connected = False
        self._released = False
        self._last_used = None
        self._cursors: Set[Any] = set()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @abstractmethod
    def _driver_connect(self):
        """Open and return a DB-API connection (autocommit enabled)."""
        pass

    def describe_target(self) -> str:
        """Human-readable connection target, without credentials."""
        return ""

    def connect(self) -> None:
        """
        Establish connection to database.

        Raises:
            AuthenticationError: If the credentials are rejected
            UnreachableError: For any other connection failure
        """
        if self._released:
            raise UseAfterReleaseError("Connection handle has been released", engine=self.ENGINE)
        if self._connected:
            return

        try:
            self._connection = self._driver_connect()
        except DBBridgeError:
            raise
        except Exception as e:
            raise self._classify_connect_error(e) from e

        self._connected = True
        logger.info(f"{self.ENGINE} connected: {self.describe_target()}")

    def _classify_connect_error(self, error: Exception) -> ConnectionError:
        message = str(error)
        lowered = message.lower()
        if any(marker in lowered for marker in self.AUTH_ERROR_MARKERS):
            return AuthenticationError(
                f"Credentials rejected: {message}",
                engine=self.ENGINE,
                original_error=error
            )
        return UnreachableError(
            f"Failed to connect: {message}",
            engine=self.ENGINE,
            original_error=error
        )

    def disconnect(self) -> None:
        """Close the driver connection. Safe to call when not connected."""
        try:
            if self._connection is not None:
                self._connection.close()
        except Exception as e:
            logger.warning(f"Error closing {self.ENGINE} connection: {e}")
        finally:
            self._connection = None
            self._connected = False

    def release(self) -> None:
        """
        Release the handle and every cursor still open on it.

        Releasing twice is a no-op.
        """
        if self._released:
            return

        for cursor in list(self._cursors):
            cursor.release()
        self.disconnect()
        self._released = True
        logger.info(f"{self.ENGINE} handle released: {self.describe_target()}")

    @property
    def is_released(self) -> bool:
        return self._released

    def is_connected(self) -> bool:
        """Check if adapter has an active connection."""
        return self._connected

    def _ensure_open(self) -> None:
        if self._released:
            raise UseAfterReleaseError("Connection handle has been released", engine=self.ENGINE)
        if not self._connected:
            raise UnreachableError(f"Not connected to {self.ENGINE}", engine=self.ENGINE)

    def _update_last_used(self):
        """Update last used timestamp."""
        self._last_used = datetime.now(timezone.utc)

    def _forget_cursor(self, cursor) -> None:
        self._cursors.discard(cursor)

    def __enter__(self):
        """Context manager support."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager cleanup."""
        self.release()
        return False

    def __repr__(self):
        state = "released" if self._released else ("open" if self._connected else "closed")
        return f"<{type(self).__name__} {self.describe_target()} ({state})>"

    # =========================================================================
    # Query execution
    # =========================================================================

    @property
    def dialect(self) -> str:
        return self.DIALECT

    def convert_placeholders(self, sql: str, params: Optional[Sequence[Any]] = None) -> Tuple[str, Any]:
        """
        Convert ? placeholders to engine-specific format.

        Default implementation returns sql unchanged.
        Override in adapters that need different placeholder formats:
        - PostgreSQL / MySQL / pymssql: %s
        - Oracle: :1, :2 (positional)

        Returns:
            (converted_sql, params)
        """
        return sql, list(params or [])

    def _native_type_name(self, type_code: Any) -> Optional[str]:
        """Driver type code from cursor.description -> native type name."""
        if type_code is None:
            return None
        return str(type_code)

    def _run(self, cursor, sql: str, params: Optional[Sequence[Any]]) -> None:
        if params:
            final_sql, final_params = self.convert_placeholders(sql, params)
            cursor.execute(final_sql, final_params)
        else:
            cursor.execute(sql)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ResultSet:
        """
        Execute SQL and return all rows.

        Args:
            sql: SQL text, passed to the driver verbatim when ``params`` is empty
            params: Optional values for ? placeholders

        Returns:
            ResultSet with rows, columns and conventional column types

        Raises:
            QueryError: If the driver rejects the query
        """
        self._ensure_open()
        self._update_last_used()
        start_time = time.perf_counter()

        cursor = None
        try:
            cursor = self._connection.cursor()
            self._run(cursor, sql, params)

            description = cursor.description or []
            columns = [desc[0] for desc in description]
            data = cursor.fetchall() if description else []
        except Exception as e:
            raise QueryError(
                f"Query failed: {e}",
                engine=self.ENGINE,
                original_error=e
            ) from e
        finally:
            if cursor is not None:
                try:
                    cursor.close()
                except Exception as e:
                    logger.debug(f"Error closing {self.ENGINE} cursor: {e}")

        rows = [dict(zip(columns, row)) for row in data]
        column_types = {
            desc[0]: column_type(
                self._native_type_name(desc[1] if len(desc) > 1 else None),
                [row[i] for row in data]
            )
            for i, desc in enumerate(description)
        }

        execution_time = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{self.ENGINE} query returned {len(rows)} rows in {execution_time:.1f}ms")

        return ResultSet(
            rows=rows,
            columns=columns,
            column_types=column_types,
            execution_time_ms=execution_time,
            engine=self.ENGINE,
            sql=sql,
        )

    def execute_cursor(self, sql: str, params: Optional[Sequence[Any]] = None):
        """
        Start executing SQL without materializing the rows.

        The returned cursor must be released (or used as a context manager).
        It is released automatically when this handle is released.

        Raises:
            QueryError: If the driver rejects the query
        """
        from dbbridge.cursor import ResultCursor

        self._ensure_open()
        self._update_last_used()

        cursor = None
        try:
            cursor = self._connection.cursor()
            self._run(cursor, sql, params)
        except Exception as e:
            try:
                if cursor is not None:
                    cursor.close()
            except Exception as close_error:
                logger.debug(f"Error closing {self.ENGINE} cursor: {close_error}")
            raise QueryError(
                f"Query failed: {e}",
                engine=self.ENGINE,
                original_error=e
            ) from e

        result_cursor = ResultCursor(self, cursor, sql)
        self._cursors.add(result_cursor)
        return result_cursor

    def _executemany(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        if not rows:
            return
        final_sql, _ = self.convert_placeholders(sql, rows[0])
        batch = [self.convert_placeholders(sql, row)[1] for row in rows]

        cursor = None
        try:
            cursor = self._connection.cursor()
            cursor.executemany(final_sql, batch)
        except Exception as e:
            raise QueryError(
                f"Insert failed: {e}",
                engine=self.ENGINE,
                original_error=e
            ) from e
        finally:
            if cursor is not None:
                try:
                    cursor.close()
                except Exception as e:
                    logger.debug(f"Error closing {self.ENGINE} cursor: {e}")

    def health_check(self) -> bool:
        """
        Check if the connection is alive and usable.

        Raises:
            UseAfterReleaseError: If the handle has been released
        """
        if self._released:
            raise UseAfterReleaseError("Connection handle has been released", engine=self.ENGINE)
        if not self._connected:
            return False
        try:
            self.execute(self.HEALTH_SQL)
            return True
        except QueryError:
            return False

    # =========================================================================
    # Metadata
    # =========================================================================

    def _metadata_args(self) -> List[Any]:
        """Leading parameters for TABLES_SQL / COLUMNS_SQL (e.g. schema)."""
        return []

    def list_tables(self) -> List[str]:
        """Names of the tables visible to this connection."""
        self._ensure_open()
        args = self._metadata_args()
        result = self.execute(self.TABLES_SQL, args or None)
        return [row[result.columns[0]] for row in result.rows]

    def list_columns(self, table: str) -> List[ColumnInfo]:
        """
        Column descriptors for ``table``, in table order.

        Raises:
            NotFoundError: If the table does not exist
        """
        self._ensure_open()
        result = self.execute(self.COLUMNS_SQL, self._metadata_args() + [table])
        if not result.rows:
            raise NotFoundError(f"Table not found: {table}", engine=self.ENGINE)
        return [self._column_info(row) for row in result.to_tuples()]

    def _column_info(self, row: tuple) -> ColumnInfo:
        """(name, native_type, nullable) row -> ColumnInfo."""
        name, native, nullable = row[0], row[1], row[2]
        if isinstance(nullable, str):
            nullable = nullable.upper() in ("YES", "Y")
        return ColumnInfo(
            name=name,
            type=dbtypes.normalize_type(native),
            native_type=str(native or ""),
            nullable=bool(nullable),
        )

    def exists_table(self, table: str) -> bool:
        return table in self.list_tables()

    def server_version(self) -> str:
        """Version string reported by the server."""
        result = self.execute(self.VERSION_SQL)
        if not result.rows:
            return ""
        return str(result.rows[0][result.columns[0]])

    # =========================================================================
    # Table writing
    # =========================================================================

    def write_table(self, table: str, rows: Any, overwrite: bool = False) -> None:
        """
        Materialize in-memory rows as a new table.

        A failed write leaves the store as it was: a table created for the
        write is dropped again, and with ``overwrite`` the rows are loaded
        into a scratch table before the existing table is replaced.

        Args:
            table: Table name
            rows: Sequence of mappings, or a pandas DataFrame
            overwrite: Replace the table if it already exists

        Raises:
            ConflictError: If the table exists and ``overwrite`` is False
            ConfigurationError: If ``rows`` is empty
            QueryError: If the driver rejects the rows
        """
        self._ensure_open()
        records = _as_records(rows)
        if not records:
            raise ConfigurationError(
                f"Cannot write table '{table}' from an empty row set",
                engine=self.ENGINE
            )

        columns: List[str] = []
        for record in records:
            for name in record:
                if name not in columns:
                    columns.append(name)

        column_types = {
            name: dbtypes.infer_column_type(record.get(name) for record in records)
            for name in columns
        }
        values = [tuple(self._bind_value(r.get(c)) for c in columns) for r in records]

        if not self.exists_table(table):
            self._load_table(table, column_types, columns, values)
        elif not overwrite:
            raise ConflictError(f"Table already exists: {table}", engine=self.ENGINE)
        else:
            scratch = f"dbbridge_tmp_{uuid.uuid4().hex[:12]}"
            self._load_table(scratch, column_types, columns, values)
            try:
                self.execute(builder.drop_table_sql(table, self.dialect))
                self.execute(builder.create_table_sql(table, column_types, self.dialect))
                self.execute(builder.copy_rows_sql(scratch, table, columns, self.dialect))
            finally:
                self._discard_table(scratch)
        logger.info(f"{self.ENGINE} wrote {len(records)} rows to {table}")

    def _bind_value(self, value: Any) -> Any:
        """Value as handed to the driver on insert."""
        return value

    def _load_table(
        self,
        table: str,
        column_types: Dict[str, str],
        columns: List[str],
        values: List[Tuple[Any, ...]],
    ) -> None:
        """CREATE ``table`` and insert ``values``; drop it again if the insert fails."""
        self.execute(builder.create_table_sql(table, column_types, self.dialect))
        try:
            self._executemany(builder.insert_sql(table, columns, self.dialect), values)
        except QueryError:
            self._discard_table(table)
            raise

    def _discard_table(self, table: str) -> None:
        try:
            self.execute(builder.drop_table_sql(table, self.dialect))
        except QueryError as e:
            logger.warning(f"{self.ENGINE} could not drop {table}: {e}")

    def remove_table(self, table: str) -> None:
        """
        Drop ``table``.

        Raises:
            NotFoundError: If the table does not exist
        """
        if not self.exists_table(table):
            raise NotFoundError(f"Table not found: {table}", engine=self.ENGINE)
        self.execute(builder.drop_table_sql(table, self.dialect))

    # =========================================================================
    # Pipelines
    # =========================================================================

    def table(self, name: str):
        """Start a lazy query pipeline over ``name``. No I/O is performed."""
        from dbbridge.query.pipeline import Pipeline

        if self._released:
            raise UseAfterReleaseError("Connection handle has been released", engine=self.ENGINE)
        return Pipeline(self, name)


def _as_records(rows: Any) -> List[Mapping[str, Any]]:
    """Accept a DataFrame or any iterable of mappings."""
    if hasattr(rows, "to_dict") and hasattr(rows, "columns"):
        return rows.to_dict(orient="records")
    return [dict(row) for row in rows]
