"""
Tests for the connection provider and named sources.
"""

import pytest

from dbbridge import open_connection, open_source
from dbbridge.adapters.factory import is_kind_supported, list_kinds, register_adapter
from dbbridge.adapters.sqlite_adapter import SQLiteAdapter
from dbbridge.core.config import settings
from dbbridge.errors import ConfigurationError
from dbbridge.params import PostgresParams, SQLiteParams
from dbbridge.sources import expand_env, load_sources, read_sources_file


class TestRegistry:
    """Tests for the kind registry."""

    def test_builtin_kinds(self):
        assert set(list_kinds()) >= {
            "sqlite", "postgres", "mysql", "sqlserver", "oracle", "odbc", "dsn",
        }

    @pytest.mark.parametrize("kind", ["sqlite3", "postgresql", "mariadb", "mssql", "oracledb"])
    def test_aliases_are_supported(self, kind):
        assert is_kind_supported(kind)

    def test_unknown_kind(self):
        assert not is_kind_supported("db2")
        with pytest.raises(ConfigurationError, match="Unsupported database kind: db2"):
            open_connection("db2", {})

    def test_register_custom_kind(self, monkeypatch):
        from dbbridge.adapters import factory

        monkeypatch.setattr(factory, "_ADAPTER_REGISTRY", dict(factory._ADAPTER_REGISTRY))

        class ScratchAdapter(SQLiteAdapter):
            ENGINE = "scratch"

        register_adapter("Scratch", ScratchAdapter)
        assert "scratch" in list_kinds()
        with open_connection("scratch", {"path": ":memory:"}) as handle:
            assert isinstance(handle, ScratchAdapter)


class TestOpenConnection:
    """Tests for open_connection."""

    def test_accepts_params_record(self):
        with open_connection("sqlite", SQLiteParams(path=":memory:")) as handle:
            assert handle.params.path == ":memory:"

    def test_rejects_record_of_other_kind(self):
        record = PostgresParams(host="h", port=1, user="u", password="p", database="d")
        with pytest.raises(ConfigurationError, match="cannot be used"):
            open_connection("sqlite", record)

    def test_missing_path(self):
        with pytest.raises(ConfigurationError, match="path"):
            open_connection("sqlite", {})

    def test_explicit_timeout_wins_over_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "connect_timeout", 9.0)
        with open_connection("sqlite", {"path": ":memory:", "timeout": 1}) as handle:
            assert handle.params.timeout == 1.0
        with open_connection("sqlite", {"path": ":memory:"}) as handle:
            assert handle.params.timeout == 9.0


SOURCES_YAML = """
sources:
  scratch:
    kind: sqlite
    path: ":memory:"
  warehouse:
    kind: postgres
    host: db.internal
    port: 5432
    database: analytics
    user: ${DBBRIDGE_TEST_USER}
    password: ${DBBRIDGE_TEST_PASSWORD}
"""


@pytest.fixture
def sources_file(tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text(SOURCES_YAML, encoding="utf-8")
    return path


class TestSources:
    """Tests for the sources registry."""

    def test_read_sources_file(self, sources_file):
        sources = read_sources_file(sources_file)
        assert set(sources) == {"scratch", "warehouse"}
        assert sources["warehouse"]["user"] == "${DBBRIDGE_TEST_USER}"

    def test_bare_mapping(self, tmp_path):
        path = tmp_path / "bare.yaml"
        path.write_text("local:\n  kind: sqlite\n  path: ':memory:'\n", encoding="utf-8")
        assert read_sources_file(path) == {"local": {"kind": "sqlite", "path": ":memory:"}}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            read_sources_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("sources: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid sources file"):
            read_sources_file(path)

    def test_env_expansion(self, sources_file, monkeypatch):
        monkeypatch.setenv("DBBRIDGE_TEST_USER", "analyst")
        monkeypatch.setenv("DBBRIDGE_TEST_PASSWORD", "from-env")
        sources = load_sources(sources_file)
        assert sources["warehouse"]["user"] == "analyst"
        assert sources["warehouse"]["password"] == "from-env"
        assert sources["warehouse"]["port"] == 5432

    def test_unset_env_variable(self, sources_file, monkeypatch):
        monkeypatch.delenv("DBBRIDGE_TEST_USER", raising=False)
        monkeypatch.setenv("DBBRIDGE_TEST_PASSWORD", "from-env")
        with pytest.raises(ConfigurationError, match="DBBRIDGE_TEST_USER"):
            load_sources(sources_file)

    def test_expand_env_nested(self, monkeypatch):
        monkeypatch.setenv("DBBRIDGE_TEST_HOST", "db.test")
        assert expand_env({"a": ["${DBBRIDGE_TEST_HOST}:1", 2]}) == {"a": ["db.test:1", 2]}

    def test_settings_sources_override_file(self, sources_file, monkeypatch):
        monkeypatch.setattr(settings, "sources_file", str(sources_file))
        monkeypatch.setattr(settings, "sources", {
            "warehouse": {"kind": "sqlite", "path": ":memory:"},
        })
        sources = load_sources()
        assert sources["warehouse"] == {"kind": "sqlite", "path": ":memory:"}
        assert "scratch" in sources


class TestOpenSource:
    """Tests for open_source."""

    def test_open_named_source(self):
        registry = {"local": {"kind": "sqlite", "path": ":memory:"}}
        with open_source("local", registry) as handle:
            assert handle.ENGINE == "sqlite"
        assert registry["local"] == {"kind": "sqlite", "path": ":memory:"}

    def test_default_registry(self, sources_file, monkeypatch):
        monkeypatch.setattr(settings, "sources_file", str(sources_file))
        monkeypatch.setenv("DBBRIDGE_TEST_USER", "analyst")
        monkeypatch.setenv("DBBRIDGE_TEST_PASSWORD", "from-env")
        with open_source("scratch") as handle:
            assert handle.list_tables() == []

    def test_unknown_source(self):
        with pytest.raises(ConfigurationError, match="Unknown source: nope"):
            open_source("nope", {"local": {"kind": "sqlite", "path": ":memory:"}})

    def test_source_without_kind(self):
        with pytest.raises(ConfigurationError, match="no kind"):
            open_source("local", {"local": {"path": ":memory:"}})
