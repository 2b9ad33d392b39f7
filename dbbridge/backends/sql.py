"""Backends — SQLAlchemy implementation for SQL databases.

One :class:`SQLDatabase` class serves every SQL dialect.  A dialect is
described by a :class:`DriverProfile`; a concrete backend only says how to
turn its validated config into a SQLAlchemy URL.

Built-in backends:

=========  =====================  ============
type       dialect                default port
=========  =====================  ============
sqlite     ``sqlite``             —
postgres   ``postgresql+psycopg2``  5432
mssql      ``mssql+pyodbc``       1433
=========  =====================  ============

Statements are passed to the DBAPI driver unchanged through
``exec_driver_sql``, so positional ``?`` placeholders work on every backend;
for ``format``/``pyformat`` drivers they are rewritten to ``%s`` first, and
PostgreSQL's native ``$1, $2`` placeholders are accepted as well.

All SQLAlchemy I/O is synchronous and runs under a per-connection
``threading.Lock`` inside ``asyncio.to_thread()``.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ClassVar

import sqlalchemy as sa
from pydantic import BaseModel, Field
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.pool import StaticPool

from dbbridge.backends.base import BaseDatabase, ColumnInfo, ConnectionConfig, TableSchema
from dbbridge.backends.registry import register_backend
from dbbridge.exceptions import BackendError, BackendLoadError, QueryExecutionError
from dbbridge.logging import get_logger

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Driver profiles
# ---------------------------------------------------------------------------


@dataclass
class DriverProfile:
    """Describes a SQL dialect for automatic SQLAlchemy integration."""

    name: str
    """Backend type name, e.g. ``"postgres"``."""

    dialect: str
    """SQLAlchemy dialect string, e.g. ``"postgresql+psycopg2"``."""

    default_port: int | None = None

    engine_kwargs: dict[str, Any] = field(default_factory=dict)
    """Extra keyword arguments passed to ``sqlalchemy.create_engine()``."""

    post_connect_hook: Callable[[sa.Engine], None] | None = None
    """Optional hook called with the engine after connection (e.g. PRAGMAs)."""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("DriverProfile.name must be non-empty")
        if not self.dialect:
            raise ValueError("DriverProfile.dialect must be non-empty")
        if self.default_port is not None and not (1 <= self.default_port <= 65535):
            raise ValueError(
                f"DriverProfile.default_port must be 1-65535, got {self.default_port}"
            )


_DRIVER_PROFILES: dict[str, DriverProfile] = {}


def register_sql_driver(
    name: str,
    *,
    dialect: str,
    default_port: int | None = None,
    engine_kwargs: dict[str, Any] | None = None,
    post_connect_hook: Callable[[sa.Engine], None] | None = None,
) -> DriverProfile:
    """Register (or replace) the driver profile for *name*."""
    if name in _DRIVER_PROFILES:
        log.warning("sql_driver_registration_overwritten", driver=name)
    profile = DriverProfile(
        name=name,
        dialect=dialect,
        default_port=default_port,
        engine_kwargs=engine_kwargs or {},
        post_connect_hook=post_connect_hook,
    )
    _DRIVER_PROFILES[name] = profile
    return profile


def get_driver_profile(name: str) -> DriverProfile:
    try:
        return _DRIVER_PROFILES[name]
    except KeyError:
        raise BackendError(f"No SQL driver profile registered for '{name}'") from None


# ---------------------------------------------------------------------------
# Connection configs
# ---------------------------------------------------------------------------


class SQLiteConfig(ConnectionConfig):
    filename: str = Field(min_length=1)
    create_if_not_exists: bool = False
    read_only: bool = False


class PostgresConfig(ConnectionConfig):
    host: str = "localhost"
    port: int | None = Field(default=None, ge=1, le=65535)
    database: str
    user: str | None = None
    password: str | None = None
    ssl: bool = False


class MssqlConfig(ConnectionConfig):
    server: str
    port: int | None = Field(default=None, ge=1, le=65535)
    database: str
    user: str | None = None
    password: str | None = None
    encrypt: bool = True
    trust_server_certificate: bool = False
    odbc_driver: str = "ODBC Driver 18 for SQL Server"


# ---------------------------------------------------------------------------
# Placeholder handling
# ---------------------------------------------------------------------------


def adapt_placeholders(statement: str, paramstyle: str) -> str:
    """Rewrite placeholders for drivers that expect ``%s``.

    ``?`` becomes ``%s``.  On ``pyformat`` drivers PostgreSQL's native
    ``$N`` becomes ``%(pN)s``; see :func:`bind_parameters`.  Quoted literals
    and identifiers are left untouched; bare ``%`` is doubled so the driver
    does not read it as a format directive.
    """
    return _rewrite_placeholders(statement, paramstyle)[0]


def bind_parameters(
    statement: str, params: list[Any], paramstyle: str
) -> tuple[str, tuple[Any, ...] | dict[str, Any]]:
    """Return the driver-ready statement and its parameters.

    When ``$N`` placeholders were rewritten the parameters are passed as a
    mapping keyed ``p1``, ``p2``… so an index may repeat or appear out of
    order.
    """
    rewritten, numbered = _rewrite_placeholders(statement, paramstyle)
    if numbered:
        return rewritten, {f"p{i}": value for i, value in enumerate(params, start=1)}
    return rewritten, tuple(params)


def _rewrite_placeholders(statement: str, paramstyle: str) -> tuple[str, bool]:
    if paramstyle not in ("format", "pyformat"):
        return statement, False

    out: list[str] = []
    quote: str | None = None
    numbered = False
    i = 0
    while i < len(statement):
        ch = statement[i]
        if quote is not None:
            out.append("%%" if ch == "%" else ch)
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
            out.append(ch)
        elif ch == "?":
            out.append("%s")
        elif ch == "%":
            out.append("%%")
        elif ch == "$" and paramstyle == "pyformat" and _starts_numbered(statement, i):
            end = i + 1
            while end < len(statement) and statement[end].isdigit():
                end += 1
            out.append(f"%(p{statement[i + 1 : end]})s")
            numbered = True
            i = end
            continue
        else:
            out.append(ch)
        i += 1
    return "".join(out), numbered


def _starts_numbered(statement: str, index: int) -> bool:
    # ``col$1`` is an identifier, not a placeholder.
    if index > 0 and (statement[index - 1].isalnum() or statement[index - 1] in "_$"):
        return False
    return index + 1 < len(statement) and statement[index + 1].isdigit()


# ---------------------------------------------------------------------------
# SQLDatabase
# ---------------------------------------------------------------------------


class SQLDatabase(BaseDatabase):
    """Shared SQLAlchemy implementation; subclasses provide ``_build_url``."""

    driver: ClassVar[str] = ""

    def __init__(self, config: BaseModel) -> None:
        self.config = config
        self._profile = get_driver_profile(self.driver)
        self._engine: sa.Engine | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    def _build_url(self) -> sa.URL:
        raise NotImplementedError

    def _engine_kwargs(self) -> dict[str, Any]:
        return dict(self._profile.engine_kwargs)

    def _before_connect(self) -> None:
        """Validate preconditions before the engine is created."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def database_name(self) -> str:
        return str(getattr(self.config, "database", ""))

    async def connect(self) -> None:
        if self._engine is not None:
            return
        self._before_connect()
        self._engine = await asyncio.to_thread(self._connect_sync)
        log.info("database_connected", type=self.db_type, database=self.database_name)

    def _connect_sync(self) -> sa.Engine:
        url = self._build_url()
        try:
            engine = sa.create_engine(url, **self._engine_kwargs())
        except ImportError as exc:
            raise BackendLoadError(self.db_type, str(exc)) from exc
        try:
            with engine.connect():
                pass
            if self._profile.post_connect_hook is not None:
                self._profile.post_connect_hook(engine)
        except sa.exc.SQLAlchemyError as exc:
            engine.dispose()
            raise BackendError(
                f"Failed to connect to {self.db_type} database: {_driver_message(exc)}",
                context={"type": self.db_type, "database": self.database_name},
            ) from exc
        return engine

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        await asyncio.to_thread(engine.dispose)
        log.info("database_disconnected", type=self.db_type, database=self.database_name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query(self, query: str, params: list[Any] | None = None) -> list[dict[str, Any]]:
        self._ensure_connected()
        return await asyncio.to_thread(self._run, query, params, True)

    async def execute(self, query: str, params: list[Any] | None = None) -> None:
        self._ensure_connected()
        await asyncio.to_thread(self._run, query, params, False)

    def _run(
        self, statement: str, params: list[Any] | None, fetch: bool
    ) -> list[dict[str, Any]]:
        assert self._engine is not None
        try:
            with self._lock, self._engine.begin() as conn:
                if params:
                    driver_statement, driver_params = bind_parameters(
                        statement, params, self._engine.dialect.paramstyle
                    )
                    result = conn.exec_driver_sql(driver_statement, driver_params)
                else:
                    result = conn.exec_driver_sql(statement)
                if fetch and result.returns_rows:
                    return [dict(row._mapping) for row in result]
                return []
        except sa.exc.SQLAlchemyError as exc:
            raise QueryExecutionError(_driver_message(exc), statement) from exc

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def get_tables(self) -> list[str]:
        self._ensure_connected()
        return await asyncio.to_thread(self._get_tables_sync)

    async def get_table_schema(self, table_name: str) -> TableSchema:
        self._ensure_connected()
        return await asyncio.to_thread(self._get_table_schema_sync, table_name)

    def _get_tables_sync(self) -> list[str]:
        with self._lock:
            return sorted(sa_inspect(self._engine).get_table_names())

    def _get_table_schema_sync(self, table_name: str) -> TableSchema:
        with self._lock:
            inspector = sa_inspect(self._engine)
            try:
                columns_info = inspector.get_columns(table_name)
                pk_info = inspector.get_pk_constraint(table_name)
            except sa.exc.NoSuchTableError as exc:
                raise QueryExecutionError(f"Table not found: {table_name}") from exc
            except sa.exc.SQLAlchemyError as exc:
                raise QueryExecutionError(_driver_message(exc)) from exc

        pk_columns = set(pk_info.get("constrained_columns") or []) if pk_info else set()
        columns = [
            ColumnInfo(
                name=col["name"],
                type=str(col.get("type", "UNKNOWN")),
                nullable=bool(col.get("nullable", True)),
                is_primary_key=col["name"] in pk_columns,
                default_value=_safe_default(col.get("default")),
            )
            for col in columns_info
        ]
        return TableSchema(table_name=table_name, columns=columns)


def _driver_message(exc: sa.exc.SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _safe_default(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


# ---------------------------------------------------------------------------
# Concrete backends
# ---------------------------------------------------------------------------


def _sqlite_post_connect(engine: sa.Engine) -> None:
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()


register_sql_driver(
    "sqlite",
    dialect="sqlite",
    engine_kwargs={
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    },
    post_connect_hook=_sqlite_post_connect,
)
register_sql_driver("postgres", dialect="postgresql+psycopg2", default_port=5432)
register_sql_driver("mssql", dialect="mssql+pyodbc", default_port=1433)


@register_backend("sqlite", config_model=SQLiteConfig)
class SQLiteDatabase(SQLDatabase):
    db_type = "sqlite"
    driver = "sqlite"
    config: SQLiteConfig

    @property
    def database_name(self) -> str:
        return self.config.filename

    def _is_memory(self) -> bool:
        return self.config.filename == ":memory:"

    def _before_connect(self) -> None:
        if self._is_memory() or self.config.create_if_not_exists:
            return
        if not Path(self.config.filename).exists():
            raise BackendError(
                f"SQLite database file not found: {self.config.filename}",
                context={"filename": self.config.filename},
            )

    def _build_url(self) -> sa.URL:
        if self._is_memory():
            return sa.make_url("sqlite:///:memory:")
        path = Path(self.config.filename).expanduser().resolve()
        if self.config.read_only:
            return sa.make_url(f"sqlite:///file:{path}?mode=ro&uri=true")
        return sa.make_url(f"sqlite:///{path}")


@register_backend("postgres", config_model=PostgresConfig)
class PostgresDatabase(SQLDatabase):
    db_type = "postgres"
    driver = "postgres"
    config: PostgresConfig

    def _build_url(self) -> sa.URL:
        return sa.URL.create(
            self._profile.dialect,
            username=self.config.user,
            password=self.config.password,
            host=self.config.host,
            port=self.config.port or self._profile.default_port,
            database=self.config.database,
        )

    def _engine_kwargs(self) -> dict[str, Any]:
        kwargs = super()._engine_kwargs()
        if self.config.ssl:
            kwargs["connect_args"] = {"sslmode": "require"}
        return kwargs


@register_backend("mssql", config_model=MssqlConfig)
class MssqlDatabase(SQLDatabase):
    db_type = "mssql"
    driver = "mssql"
    config: MssqlConfig

    def _build_url(self) -> sa.URL:
        return sa.URL.create(
            self._profile.dialect,
            username=self.config.user,
            password=self.config.password,
            host=self.config.server,
            port=self.config.port or self._profile.default_port,
            database=self.config.database,
            query={
                "driver": self.config.odbc_driver,
                "Encrypt": "yes" if self.config.encrypt else "no",
                "TrustServerCertificate": "yes" if self.config.trust_server_certificate else "no",
            },
        )
