"""Callback chains, SQL dialects, column value types, error collections and a query logger for building an ORM."""

__version__ = "0.1.0"
__all__ = [
    "callback",
    "dialect",
    "dialect_mssql",
    "dialect_mysql",
    "dialect_postgres",
    "dialect_sqlite3",
    "errors",
    "logger",
    "postgres_types",
]