"""
Tests for lazy query pipelines.
"""

import logging

import pytest

from dbbridge import table
from dbbridge.errors import QueryError, UseAfterReleaseError
from dbbridge.query.pipeline import Pipeline


class DialectOnlyHandle:
    """Stands in for a handle when only compilation is exercised."""

    def __init__(self, dialect):
        self.dialect = dialect

    def execute(self, sql):
        raise AssertionError("to_sql must not touch the connection")


class TestCompile:
    """Tests for the SQL produced by to_sql."""

    def test_bare_table(self, handle):
        assert table(handle, "mtcars").to_sql() == 'SELECT * FROM "mtcars"'

    def test_filter(self, handle):
        sql = table(handle, "mtcars").filter("cyl = 4").to_sql()
        assert sql == 'SELECT * FROM "mtcars" WHERE "cyl" = 4'

    def test_filters_are_combined(self, handle):
        sql = table(handle, "mtcars").filter("cyl = 4").filter("hp > 90").to_sql()
        assert sql == 'SELECT * FROM "mtcars" WHERE "cyl" = 4 AND "hp" > 90'

    def test_group_by_alone_changes_nothing(self, handle):
        mtcars = table(handle, "mtcars")
        assert mtcars.group_by("cyl").to_sql() == mtcars.to_sql()

    def test_summarize(self, handle):
        sql = (
            table(handle, "mtcars")
            .group_by("cyl")
            .summarize(mpg="AVG(mpg)", n="COUNT(*)")
            .to_sql()
        )
        assert sql == 'SELECT "cyl", AVG("mpg") AS "mpg", COUNT(*) AS "n" FROM "mtcars" GROUP BY "cyl"'

    def test_summarize_mapping(self, handle):
        sql = table(handle, "mtcars").summarize({"total hp": "SUM(hp)"}).to_sql()
        assert sql == 'SELECT SUM("hp") AS "total hp" FROM "mtcars"'

    def test_clause_order(self, handle):
        sql = (
            table(handle, "mtcars")
            .filter("hp > 100")
            .group_by("cyl")
            .summarize(mpg="AVG(mpg)", n="COUNT(*)")
            .filter("n > 2")
            .arrange("mpg", direction="desc")
            .head(2)
            .to_sql()
        )
        positions = [sql.index(clause) for clause in (
            "FROM", "WHERE", "GROUP BY", "HAVING", "ORDER BY", "LIMIT"
        )]
        assert positions == sorted(positions)
        assert 'WHERE "hp" > 100' in sql
        assert "HAVING COUNT(*) > 2" in sql
        assert 'ORDER BY "mpg" DESC' in sql
        assert sql.endswith("LIMIT 2")

    def test_filter_after_summarize_uses_aggregate(self, handle):
        sql = (
            table(handle, "mtcars")
            .group_by("cyl")
            .summarize(mpg="AVG(mpg)")
            .filter("mpg > 20")
            .to_sql()
        )
        assert 'HAVING AVG("mpg") > 20' in sql
        assert "WHERE" not in sql

    def test_latest_arrange_wins(self, handle):
        sql = table(handle, "mtcars").arrange("mpg").arrange("hp", direction="desc").to_sql()
        assert sql == 'SELECT * FROM "mtcars" ORDER BY "hp" DESC'

    def test_arrange_mixed_directions(self, handle):
        sql = table(handle, "mtcars").arrange(("cyl", "asc"), ("mpg", "desc")).to_sql()
        assert 'ORDER BY "cyl"' in sql
        assert sql.endswith('"mpg" DESC')

    def test_arrange_before_summarize_is_dropped(self, handle, caplog):
        with caplog.at_level(logging.WARNING, logger="dbbridge.query.pipeline"):
            sql = (
                table(handle, "mtcars")
                .arrange("mpg")
                .group_by("cyl")
                .summarize(n="COUNT(*)")
                .to_sql()
            )
        assert "ORDER BY" not in sql
        assert "arrange" in caplog.text

    def test_select_and_head(self, handle):
        sql = table(handle, "mtcars").select("model", "mpg").head(3).to_sql()
        assert sql == 'SELECT "model", "mpg" FROM "mtcars" LIMIT 3'

    def test_consecutive_heads_take_smallest(self, handle):
        sql = table(handle, "mtcars").head(10).head(3).head(5).to_sql()
        assert sql == 'SELECT * FROM "mtcars" LIMIT 3'

    def test_filter_after_head_wraps(self, handle):
        sql = table(handle, "mtcars").head(5).filter("cyl = 4").to_sql()
        assert sql.startswith('SELECT * FROM (SELECT * FROM "mtcars" LIMIT 5) AS')
        assert "q01" in sql
        assert sql.endswith('WHERE "cyl" = 4')

    def test_summarize_after_summarize_wraps(self, handle):
        sql = (
            table(handle, "mtcars")
            .group_by("cyl", "gear")
            .summarize(n="COUNT(*)")
            .summarize(groups="COUNT(*)")
            .to_sql()
        )
        inner = 'SELECT "cyl", "gear", COUNT(*) AS "n" FROM "mtcars" GROUP BY "cyl", "gear"'
        assert sql.startswith(f'SELECT "cyl", COUNT(*) AS "groups" FROM ({inner}) AS')
        assert sql.endswith('GROUP BY "cyl"')

    def test_nested_subqueries_are_numbered(self, handle):
        sql = (
            table(handle, "mtcars")
            .head(20)
            .filter("cyl = 8")
            .head(10)
            .filter("hp > 200")
            .to_sql()
        )
        assert "q01" in sql
        assert "q02" in sql

    def test_deterministic(self, handle):
        pipeline = (
            table(handle, "mtcars")
            .filter("hp > 100")
            .group_by("cyl")
            .summarize(mpg="AVG(mpg)")
            .arrange("mpg")
        )
        assert pipeline.to_sql() == pipeline.to_sql()

    def test_pipelines_are_immutable(self, handle):
        base = table(handle, "mtcars")
        filtered = base.filter("cyl = 4")
        assert base.to_sql() == 'SELECT * FROM "mtcars"'
        assert filtered is not base
        assert base.operations == ()
        assert filtered.operations == (("filter", "cyl = 4"),)

    def test_invalid_expression(self, handle):
        pipeline = table(handle, "mtcars").filter("cyl = (")
        with pytest.raises(QueryError):
            pipeline.to_sql()

    def test_no_io(self):
        pipeline = Pipeline(DialectOnlyHandle("sqlite"), "mtcars").filter("cyl = 4")
        assert pipeline.to_sql() == 'SELECT * FROM "mtcars" WHERE "cyl" = 4'

    def test_dialect_quoting(self):
        pipeline = Pipeline(DialectOnlyHandle("mysql"), "mtcars").filter("cyl = 4")
        assert pipeline.to_sql() == "SELECT * FROM `mtcars` WHERE `cyl` = 4"

    def test_dialect_limit(self):
        sql = Pipeline(DialectOnlyHandle("tsql"), "mtcars").head(5).to_sql()
        assert "TOP 5" in sql
        assert "LIMIT" not in sql

    def test_repr(self, handle):
        pipeline = table(handle, "mtcars").filter("cyl = 4").head(2)
        assert repr(pipeline) == "<Pipeline mtcars: filter -> head>"


class TestArguments:
    """Tests for argument validation."""

    @pytest.mark.parametrize("build", [
        lambda p: p.filter(""),
        lambda p: p.group_by(),
        lambda p: p.summarize(),
        lambda p: p.summarize(n=""),
        lambda p: p.arrange(),
        lambda p: p.arrange("mpg", direction="sideways"),
        lambda p: p.select(),
        lambda p: p.head(-1),
        lambda p: p.head(2.5),
    ])
    def test_invalid_arguments(self, handle, build):
        with pytest.raises(ValueError):
            build(table(handle, "mtcars"))


class TestCollect:
    """Tests for executing pipelines."""

    def test_collect_matches_execute(self, handle):
        pipeline = table(handle, "mtcars").filter("cyl = 4")
        result = pipeline.collect()
        assert result.row_count == 11
        assert result.row_count == handle.execute(pipeline.to_sql()).row_count

    def test_count_by_cylinders(self, handle):
        result = (
            table(handle, "mtcars")
            .group_by("cyl")
            .summarize(n="COUNT(*)")
            .arrange("cyl")
            .collect()
        )
        assert result.rows == [{"cyl": 4, "n": 11}, {"cyl": 6, "n": 7}, {"cyl": 8, "n": 14}]

    def test_mean_mpg_descending(self, handle):
        result = (
            table(handle, "mtcars")
            .group_by("cyl")
            .summarize(mpg="AVG(mpg)")
            .arrange("mpg", direction="desc")
            .collect()
        )
        assert [row["cyl"] for row in result] == [4, 6, 8]
        assert result[0]["mpg"] == pytest.approx(26.6636, abs=1e-3)

    def test_having(self, handle):
        result = (
            table(handle, "mtcars")
            .group_by("cyl")
            .summarize(n="COUNT(*)")
            .filter("n > 10")
            .arrange("cyl")
            .collect()
        )
        assert [row["cyl"] for row in result] == [4, 8]

    def test_summarize_without_groups(self, handle):
        result = table(handle, "mtcars").summarize(n="COUNT(*)").collect()
        assert result.rows == [{"n": 32}]

    def test_top_by_mpg(self, handle):
        result = (
            table(handle, "mtcars")
            .arrange("mpg", direction="desc")
            .select("model", "mpg")
            .head(2)
            .collect()
        )
        assert result.rows == [
            {"model": "Toyota Corolla", "mpg": 33.9},
            {"model": "Fiat 128", "mpg": 32.4},
        ]

    def test_summarize_peels_one_grouping_level(self, handle):
        result = (
            table(handle, "mtcars")
            .group_by("cyl", "gear")
            .summarize(n="COUNT(*)")
            .summarize(groups="COUNT(*)")
            .arrange("cyl")
            .collect()
        )
        assert result.rows == [
            {"cyl": 4, "groups": 3},
            {"cyl": 6, "groups": 3},
            {"cyl": 8, "groups": 2},
        ]

    def test_filter_after_head(self, handle):
        result = table(handle, "mtcars").head(5).filter("cyl = 6").collect()
        assert [row["model"] for row in result] == ["Mazda RX4", "Mazda RX4 Wag", "Hornet 4 Drive"]

    def test_collect_after_release(self, handle):
        pipeline = table(handle, "mtcars").filter("cyl = 4")
        handle.release()
        with pytest.raises(UseAfterReleaseError):
            pipeline.collect()
