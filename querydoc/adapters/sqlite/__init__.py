"""SQLite adapter for querydoc."""

from querydoc.adapters.sqlite.engine import SqliteConnectionParams, SqliteCursor, SqliteEngine

__all__ = ("SqliteConnectionParams", "SqliteCursor", "SqliteEngine")
