"""Backends — database implementations behind one async contract.

Importing this package registers the built-in backends: ``sqlite``,
``postgres``, ``mssql`` (SQLAlchemy) and ``mongodb`` (Motor).
"""

from dbbridge.backends.base import (
    BaseDatabase,
    ColumnInfo,
    ConnectionConfig,
    SchemaInfo,
    TableSchema,
)
from dbbridge.backends.registry import BackendRegistry, create_database, register_backend
from dbbridge.backends.sql import (
    DriverProfile,
    MssqlConfig,
    MssqlDatabase,
    PostgresConfig,
    PostgresDatabase,
    SQLDatabase,
    SQLiteConfig,
    SQLiteDatabase,
    register_sql_driver,
)
from dbbridge.backends.mongodb import MongoDBConfig, MongoDBDatabase

__all__ = [
    "BackendRegistry",
    "BaseDatabase",
    "ColumnInfo",
    "ConnectionConfig",
    "DriverProfile",
    "MongoDBConfig",
    "MongoDBDatabase",
    "MssqlConfig",
    "MssqlDatabase",
    "PostgresConfig",
    "PostgresDatabase",
    "SQLDatabase",
    "SQLiteConfig",
    "SQLiteDatabase",
    "SchemaInfo",
    "TableSchema",
    "create_database",
    "register_backend",
    "register_sql_driver",
]
