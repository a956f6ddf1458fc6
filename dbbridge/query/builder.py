"""
SQL Builder using SQLGlot

Provides dialect-aware SQL generation for dbbridge: identifier quoting,
expression parsing for pipelines, and the DDL / INSERT statements used by
``write_table``. Nothing here touches a connection.

Usage:
    builder = SQLBuilder(dialect="postgres")
    ddl = builder.create_table("mtcars", {"mpg": "float", "cyl": "integer"})
    insert = builder.insert("mtcars", ["mpg", "cyl"])
"""

import logging
from typing import Dict, List, Optional, Sequence

import sqlglot
from sqlglot import expressions as exp
from sqlglot.errors import ParseError, SqlglotError

from dbbridge.errors import QueryError
from dbbridge.types import DDL_TYPES, STRING

logger = logging.getLogger(__name__)


class SQLBuilderError(QueryError):
    """Base exception for SQL builder errors."""
    pass


class SQLBuilder:
    """
    Dialect-aware SQL builder using SQLGlot.

    Supports:
    - Automatic dialect selection from engine names
    - Quoted identifiers (schema.table, table.column)
    - Expression parsing with column quoting
    - DDL and INSERT statements for table writes
    """

    # Map of engine names to SQLGlot dialects
    DIALECT_MAP = {
        "sqlite": "sqlite",
        "sqlite3": "sqlite",
        "postgres": "postgres",
        "postgresql": "postgres",
        "mysql": "mysql",
        "mariadb": "mysql",
        "sqlserver": "tsql",
        "mssql": "tsql",
        "tsql": "tsql",
        "oracle": "oracle",
        "duckdb": "duckdb",
        "snowflake": "snowflake",
        "bigquery": "bigquery",
        "redshift": "redshift",
        "trino": "trino",
        "presto": "presto",
        "spark": "spark",
        "databricks": "databricks",
        "clickhouse": "clickhouse",
    }

    def __init__(self, dialect: Optional[str] = None):
        """
        Initialize SQL builder with target dialect.

        Args:
            dialect: Engine or sqlglot dialect name; None or "" for generic SQL
        """
        self.dialect = self._normalize_dialect(dialect or "")
        self.target_dialect = self.DIALECT_MAP.get(self.dialect) or None

    def _normalize_dialect(self, dialect: str) -> str:
        """Normalize dialect name to standard form."""
        return dialect.lower().replace("_", "").replace("-", "")

    # =========================================================================
    # Identifiers and expressions
    # =========================================================================

    def table(self, table_name: str) -> exp.Table:
        """Parse table name (supports schema.table format)."""
        parts = table_name.split(".", 1)
        if len(parts) == 2:
            return exp.Table(
                this=exp.Identifier(this=parts[1], quoted=True),
                db=exp.Identifier(this=parts[0], quoted=True)
            )
        return exp.Table(this=exp.Identifier(this=table_name, quoted=True))

    def column(self, column_name: str) -> exp.Column:
        """Parse column name (supports table.column format)."""
        parts = column_name.split(".", 1)
        if len(parts) == 2:
            return exp.Column(
                this=exp.Identifier(this=parts[1], quoted=True),
                table=exp.Identifier(this=parts[0], quoted=True)
            )
        return exp.Column(this=exp.Identifier(this=column_name, quoted=True))

    def identifier(self, name: str) -> str:
        """Render a single quoted identifier."""
        return exp.Identifier(this=name, quoted=True).sql(dialect=self.target_dialect)

    def expression(self, text: str) -> exp.Expression:
        """
        Parse a SQL expression (e.g. "AVG(mpg)", "cyl = 4").

        Column references are quoted so they resolve the same way as the
        identifiers generated for tables written by dbbridge.

        Raises:
            SQLBuilderError: If the text is not a valid expression
        """
        try:
            parsed = sqlglot.parse_one(text, read=self.target_dialect)
        except (ParseError, SqlglotError) as e:
            raise SQLBuilderError(f"Invalid SQL expression {text!r}: {e}") from e
        if parsed is None or isinstance(parsed, (exp.Select, exp.Command)):
            raise SQLBuilderError(f"Invalid SQL expression {text!r}")
        return quote_columns(parsed)

    # =========================================================================
    # Statements
    # =========================================================================

    def create_table(self, table_name: str, column_types: Dict[str, str]) -> str:
        """CREATE TABLE statement from conventional column types."""
        column_defs = [
            exp.ColumnDef(
                this=exp.Identifier(this=name, quoted=True),
                kind=exp.DataType.build(DDL_TYPES.get(kind, DDL_TYPES[STRING]))
            )
            for name, kind in column_types.items()
        ]
        create = exp.Create(
            this=exp.Schema(this=self.table(table_name), expressions=column_defs),
            kind="TABLE"
        )
        return create.sql(dialect=self.target_dialect)

    def drop_table(self, table_name: str) -> str:
        """DROP TABLE statement."""
        target = self.table(table_name).sql(dialect=self.target_dialect)
        return f"DROP TABLE {target}"

    def insert(self, table_name: str, columns: Sequence[str]) -> str:
        """INSERT statement with one ? placeholder per column."""
        target = self.table(table_name).sql(dialect=self.target_dialect)
        names = ", ".join(self.identifier(c) for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        return f"INSERT INTO {target} ({names}) VALUES ({placeholders})"

    def copy_rows(self, source_name: str, target_name: str, columns: Sequence[str]) -> str:
        """INSERT ... SELECT moving ``columns`` from one table into another."""
        source = self.table(source_name).sql(dialect=self.target_dialect)
        target = self.table(target_name).sql(dialect=self.target_dialect)
        names = ", ".join(self.identifier(c) for c in columns)
        return f"INSERT INTO {target} ({names}) SELECT {names} FROM {source}"

    def render(self, query: exp.Expression) -> str:
        """Render an expression tree in the target dialect."""
        try:
            return query.sql(dialect=self.target_dialect, pretty=False)
        except SqlglotError as e:
            logger.error(f"SQL rendering failed: {e}")
            raise SQLBuilderError(f"Failed to render SQL: {e}") from e


def quote_columns(expression: exp.Expression) -> exp.Expression:
    """Mark every column identifier in ``expression`` as quoted (in place)."""
    for column in expression.find_all(exp.Column):
        if isinstance(column.this, exp.Identifier):
            column.this.set("quoted", True)
    return expression


def create_table_sql(table_name: str, column_types: Dict[str, str], dialect: Optional[str] = None) -> str:
    return SQLBuilder(dialect).create_table(table_name, column_types)


def drop_table_sql(table_name: str, dialect: Optional[str] = None) -> str:
    return SQLBuilder(dialect).drop_table(table_name)


def insert_sql(table_name: str, columns: List[str], dialect: Optional[str] = None) -> str:
    return SQLBuilder(dialect).insert(table_name, columns)


def copy_rows_sql(source_name: str, target_name: str, columns: List[str], dialect: Optional[str] = None) -> str:
    return SQLBuilder(dialect).copy_rows(source_name, target_name, columns)
