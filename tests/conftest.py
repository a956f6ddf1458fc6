"""
Pytest configuration and shared fixtures for dbbridge tests.
"""

import pytest

from dbbridge import open_connection
from dbbridge.datasets import mtcars


@pytest.fixture
def memory_handle():
    """An empty in-memory SQLite handle, released after the test."""
    handle = open_connection("sqlite", {"path": ":memory:"})
    yield handle
    handle.release()


@pytest.fixture
def mtcars_rows():
    """Return the 32 mtcars rows."""
    return mtcars()


@pytest.fixture
def handle(memory_handle, mtcars_rows):
    """In-memory SQLite handle preloaded with the mtcars table."""
    memory_handle.write_table("mtcars", mtcars_rows)
    return memory_handle


@pytest.fixture
def postgres_params():
    """Return a complete set of network connection parameters."""
    return {
        "host": "db.test",
        "port": 5432,
        "user": "tester",
        "password": "not-a-real-secret",
        "database": "analytics",
    }


class FakeCursor:
    """DB-API cursor that answers from canned results."""

    def __init__(self, connection):
        self.connection = connection
        self.description = None
        self._rows = []
        self.closed = False

    def execute(self, sql, params=None):
        self.connection.executed.append((sql, params))
        for fragment, (columns, rows) in self.connection.driver.results.items():
            if fragment in sql:
                self.description = [
                    column if isinstance(column, tuple) else (column, None)
                    for column in columns
                ]
                self._rows = list(rows)
                return
        self.description = None
        self._rows = []

    def executemany(self, sql, rows):
        self.connection.executed.append((sql, list(rows)))

    def tables(self, **kwargs):
        return list(self.connection.driver.catalog.get("tables", []))

    def columns(self, table=None, **kwargs):
        return list(self.connection.driver.catalog.get("columns", {}).get(table, []))

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def fetchmany(self, size):
        rows, self._rows = self._rows[:size], self._rows[size:]
        return rows

    def close(self):
        self.closed = True


class FakeConnection:
    """DB-API connection recording every statement it runs."""

    def __init__(self, driver, args, kwargs):
        self.driver = driver
        self.args = args
        self.kwargs = kwargs
        self.autocommit = False
        self.executed = []
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    def getinfo(self, key):
        return self.driver.info[key]

    def close(self):
        self.closed = True


class FakeDriver:
    """
    Module-shaped stand-in for a DB-API driver.

    Set ``error`` to make connect() fail; add ``results`` entries
    (sql fragment -> (columns, rows)) to answer queries. A column may be
    a (name, type_code) pair.
    """

    def __init__(self):
        self.connections = []
        self.error = None
        self.results = {}
        self.catalog = {}
        self.info = {}

    def connect(self, *args, **kwargs):
        if self.error is not None:
            raise self.error
        connection = FakeConnection(self, args, kwargs)
        self.connections.append(connection)
        return connection

    @property
    def last(self):
        return self.connections[-1]


@pytest.fixture
def fake_driver():
    """Return a fresh fake DB-API driver module."""
    return FakeDriver()
