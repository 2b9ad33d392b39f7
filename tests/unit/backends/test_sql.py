"""Unit tests — SQLAlchemy backends (SQLite on disk, URL building for the rest)."""

from __future__ import annotations

from pathlib import Path

import pytest

from dbbridge.backends import create_database
from dbbridge.backends.sql import (
    MssqlDatabase,
    PostgresDatabase,
    SQLiteDatabase,
    adapt_placeholders,
    bind_parameters,
    get_driver_profile,
)
from dbbridge.exceptions import BackendError, DatabaseNotConnectedError, QueryExecutionError


@pytest.fixture
async def sqlite_db(sqlite_file: Path):
    db = create_database("sqlite", {"filename": str(sqlite_file), "createIfNotExists": True})
    await db.connect()
    await db.execute(
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, city TEXT DEFAULT 'Paris')"
    )
    yield db
    await db.disconnect()


@pytest.mark.unit
class TestAdaptPlaceholders:
    def test_qmark_untouched(self) -> None:
        assert adapt_placeholders("SELECT ? , '%'", "qmark") == "SELECT ? , '%'"

    def test_format_rewrites_question_marks(self) -> None:
        assert adapt_placeholders("SELECT * FROM t WHERE a = ? AND b = ?", "pyformat") == (
            "SELECT * FROM t WHERE a = %s AND b = %s"
        )

    def test_quoted_question_mark_kept(self) -> None:
        assert adapt_placeholders("SELECT '?' WHERE a = ?", "format") == "SELECT '?' WHERE a = %s"

    def test_percent_doubled(self) -> None:
        assert adapt_placeholders("SELECT 'a%' LIKE ?", "format") == "SELECT 'a%%' LIKE %s"

    def test_numbered_placeholders_on_pyformat(self) -> None:
        assert adapt_placeholders("SELECT * FROM t WHERE id = $1", "pyformat") == (
            "SELECT * FROM t WHERE id = %(p1)s"
        )

    def test_numbered_placeholders_left_alone_elsewhere(self) -> None:
        assert adapt_placeholders("SELECT $1", "qmark") == "SELECT $1"
        assert adapt_placeholders("SELECT $1", "format") == "SELECT $1"

    def test_dollar_in_quotes_and_identifiers_kept(self) -> None:
        statement = "SELECT col$1, '$2' FROM t WHERE a = $1"
        assert adapt_placeholders(statement, "pyformat") == (
            "SELECT col$1, '$2' FROM t WHERE a = %(p1)s"
        )


@pytest.mark.unit
class TestBindParameters:
    def test_question_marks_bind_a_tuple(self) -> None:
        assert bind_parameters("SELECT ?", [1], "pyformat") == ("SELECT %s", (1,))

    def test_numbered_placeholders_bind_a_mapping(self) -> None:
        statement, params = bind_parameters(
            "UPDATE t SET a = $2 WHERE id = $1 OR parent = $1", [7, "x"], "pyformat"
        )
        assert statement == "UPDATE t SET a = %(p2)s WHERE id = %(p1)s OR parent = %(p1)s"
        assert params == {"p1": 7, "p2": "x"}

    def test_qmark_driver_keeps_statement(self) -> None:
        assert bind_parameters("SELECT ?", ["a"], "qmark") == ("SELECT ?", ("a",))


@pytest.mark.unit
class TestSQLiteDatabase:
    async def test_query_with_params(self, sqlite_db) -> None:
        await sqlite_db.execute("INSERT INTO users (name) VALUES (?)", ["ada"])
        await sqlite_db.execute("INSERT INTO users (name, city) VALUES (?, ?)", ["bob", "Oslo"])

        rows = await sqlite_db.query("SELECT name, city FROM users WHERE name = ?", ["bob"])
        assert rows == [{"name": "bob", "city": "Oslo"}]

    async def test_query_without_rows(self, sqlite_db) -> None:
        assert await sqlite_db.query("SELECT * FROM users") == []

    async def test_failed_statement(self, sqlite_db) -> None:
        with pytest.raises(QueryExecutionError) as exc_info:
            await sqlite_db.query("SELECT * FROM missing")
        assert "no such table" in exc_info.value.message

    async def test_tables_and_schema(self, sqlite_db) -> None:
        assert await sqlite_db.get_tables() == ["users"]

        schema = await sqlite_db.get_table_schema("users")
        columns = {c.name: c for c in schema.columns}
        assert columns["id"].is_primary_key
        assert columns["name"].nullable is False
        assert columns["city"].default_value == "'Paris'"

    async def test_full_schema(self, sqlite_db, sqlite_file: Path) -> None:
        info = (await sqlite_db.get_schema()).to_dict()
        assert info["databaseName"] == str(sqlite_file)
        assert info["tables"][0]["tableName"] == "users"
        assert {"name", "type", "nullable", "isPrimaryKey", "defaultValue"} <= set(
            info["tables"][0]["columns"][0]
        )

    async def test_missing_file_without_create(self, tmp_path: Path) -> None:
        db = create_database("sqlite", {"filename": str(tmp_path / "nope.db")})
        with pytest.raises(BackendError, match="not found"):
            await db.connect()
        assert not db.is_connected

    async def test_read_only_rejects_writes(self, sqlite_db, sqlite_file: Path) -> None:
        ro = create_database("sqlite", {"filename": str(sqlite_file), "read_only": True})
        await ro.connect()
        try:
            assert await ro.query("SELECT COUNT(*) AS n FROM users") == [{"n": 0}]
            with pytest.raises(QueryExecutionError):
                await ro.execute("INSERT INTO users (name) VALUES ('x')")
        finally:
            await ro.disconnect()

    async def test_memory_database(self) -> None:
        db = create_database("sqlite", {"filename": ":memory:"})
        await db.connect()
        await db.execute("CREATE TABLE t (x INTEGER)")
        await db.execute("INSERT INTO t VALUES (1)")
        assert await db.query("SELECT x FROM t") == [{"x": 1}]
        await db.disconnect()

    async def test_not_connected(self, sqlite_file: Path) -> None:
        db = create_database("sqlite", {"filename": str(sqlite_file)})
        with pytest.raises(DatabaseNotConnectedError):
            await db.query("SELECT 1")

    async def test_disconnect_twice_is_safe(self, sqlite_file: Path) -> None:
        db = create_database("sqlite", {"filename": str(sqlite_file), "createIfNotExists": True})
        await db.connect()
        await db.disconnect()
        await db.disconnect()
        assert not db.is_connected


@pytest.mark.unit
class TestServerBackendUrls:
    def test_postgres_url_uses_default_port(self) -> None:
        db = create_database("postgres", {"host": "db", "database": "app", "user": "u"})
        assert isinstance(db, PostgresDatabase)
        url = db._build_url()
        assert url.drivername == "postgresql+psycopg2"
        assert url.port == 5432
        assert url.database == "app"

    def test_postgres_ssl(self) -> None:
        db = create_database("postgres", {"database": "app", "ssl": True})
        assert db._engine_kwargs()["connect_args"] == {"sslmode": "require"}

    def test_mssql_url(self) -> None:
        db = create_database(
            "mssql",
            {"server": "sql", "database": "app", "trustServerCertificate": True, "encrypt": False},
        )
        assert isinstance(db, MssqlDatabase)
        url = db._build_url()
        assert url.drivername == "mssql+pyodbc"
        assert url.port == 1433
        assert url.query["Encrypt"] == "no"
        assert url.query["TrustServerCertificate"] == "yes"

    def test_sqlite_profile_registered(self) -> None:
        assert get_driver_profile("sqlite").dialect == "sqlite"
        assert isinstance(create_database("sqlite", {"filename": "x.db"}), SQLiteDatabase)
