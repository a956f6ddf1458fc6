"""
Tests for the bundled sample data.
"""

from collections import Counter

from dbbridge.datasets import MTCARS_COLUMNS, mtcars


def test_mtcars_shape():
    rows = mtcars()
    assert len(rows) == 32
    assert all(list(row) == list(MTCARS_COLUMNS) for row in rows)


def test_mtcars_cylinder_counts():
    assert Counter(row["cyl"] for row in mtcars()) == {4: 11, 6: 7, 8: 14}


def test_mtcars_returns_fresh_rows():
    rows = mtcars()
    rows[0]["mpg"] = 0
    assert mtcars()[0]["mpg"] == 21.0
