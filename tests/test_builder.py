"""
Tests for the sqlglot SQL builder.
"""

import pytest

from dbbridge.errors import QueryError
from dbbridge.query.builder import (
    SQLBuilder,
    SQLBuilderError,
    copy_rows_sql,
    create_table_sql,
    drop_table_sql,
    insert_sql,
)


class TestDialects:
    """Tests for dialect selection."""

    @pytest.mark.parametrize("name,expected", [
        ("sqlite", "sqlite"),
        ("postgresql", "postgres"),
        ("mariadb", "mysql"),
        ("mssql", "tsql"),
        ("oracle", "oracle"),
        ("", None),
        (None, None),
    ])
    def test_target_dialect(self, name, expected):
        assert SQLBuilder(name).target_dialect == expected


class TestIdentifiers:
    """Tests for quoting."""

    def test_identifier_quoting_per_dialect(self):
        assert SQLBuilder("postgres").identifier("mpg") == '"mpg"'
        assert SQLBuilder("mysql").identifier("mpg") == "`mpg`"

    def test_schema_qualified_table(self):
        builder = SQLBuilder("postgres")
        assert builder.table("sales.orders").sql(dialect="postgres") == '"sales"."orders"'


class TestExpressions:
    """Tests for parsing user expressions."""

    def test_columns_are_quoted(self):
        builder = SQLBuilder("sqlite")
        assert builder.render(builder.expression("cyl = 4")) == '"cyl" = 4'

    def test_aggregate(self):
        builder = SQLBuilder("sqlite")
        assert builder.render(builder.expression("AVG(mpg)")) == 'AVG("mpg")'

    def test_invalid_expression(self):
        with pytest.raises(SQLBuilderError):
            SQLBuilder("sqlite").expression("AVG(mpg")

    def test_select_is_not_an_expression(self):
        with pytest.raises(SQLBuilderError):
            SQLBuilder("sqlite").expression("SELECT 1")

    def test_builder_errors_are_query_errors(self):
        assert issubclass(SQLBuilderError, QueryError)


class TestStatements:
    """Tests for DDL / DML generation."""

    def test_create_table(self):
        sql = create_table_sql("cars", {"model": "string", "cyl": "integer"}, "postgres")
        assert sql.startswith('CREATE TABLE "cars"')
        assert '"model" TEXT' in sql
        assert '"cyl" BIGINT' in sql

    def test_insert(self):
        sql = insert_sql("cars", ["model", "cyl"], "postgres")
        assert sql == 'INSERT INTO "cars" ("model", "cyl") VALUES (?, ?)'

    @pytest.mark.parametrize("dialect,expected", [
        ("sqlite", 'DROP TABLE "cars"'),
        ("postgres", 'DROP TABLE "cars"'),
        ("oracle", 'DROP TABLE "cars"'),
        ("mysql", "DROP TABLE `cars`"),
        (None, 'DROP TABLE "cars"'),
    ])
    def test_drop_table_names_its_target(self, dialect, expected):
        assert drop_table_sql("cars", dialect) == expected

    def test_drop_table_with_schema(self):
        assert SQLBuilder("postgres").drop_table("sales.cars") == 'DROP TABLE "sales"."cars"'

    def test_copy_rows(self):
        sql = copy_rows_sql("staging", "cars", ["model", "cyl"], "sqlite")
        assert sql == 'INSERT INTO "cars" ("model", "cyl") SELECT "model", "cyl" FROM "staging"'
