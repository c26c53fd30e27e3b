"""SQLite query engine backed by the standard library driver."""

import contextlib
import sqlite3
from typing import TYPE_CHECKING, Any, Optional, Union

from typing_extensions import NotRequired, TypedDict

from querydoc.engine import QueryResult
from querydoc.exceptions import ExecutionError, ImproperConfigurationError
from querydoc.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

__all__ = ("SqliteConnectionParams", "SqliteCursor", "SqliteEngine")

logger = get_logger("adapters.sqlite")


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    uri: NotRequired[bool]


class SqliteCursor:
    """Context manager for SQLite cursor management."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self.cursor: Optional[sqlite3.Cursor] = None

    def __enter__(self) -> sqlite3.Cursor:
        self.cursor = self.connection.cursor()
        return self.cursor

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.cursor is not None:
            with contextlib.suppress(Exception):
                self.cursor.close()


class SqliteEngine:
    """Runs example queries on a SQLite database.

    Every query commits on success and rolls back on failure. Snapshots are
    in-memory copies made with the SQLite online backup API, so restoring
    the baseline is a page copy rather than a replay of the seed script.

    Args:
        connection_params: Arguments for :func:`sqlite3.connect`; an in-memory
            database when omitted.
    """

    __slots__ = ("_connection", "_snapshots")

    def __init__(self, connection_params: "Optional[Union[SqliteConnectionParams, dict[str, Any]]]" = None) -> None:
        params: dict[str, Any] = {"database": ":memory:"}
        params.update(connection_params or {})
        self._connection: Optional[sqlite3.Connection] = sqlite3.connect(**params)
        self._snapshots: list[sqlite3.Connection] = []

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            msg = "SQLite engine is closed"
            raise ImproperConfigurationError(msg)
        return self._connection

    def execute(self, query: str) -> QueryResult:
        connection = self.connection
        try:
            with SqliteCursor(connection) as cursor:
                cursor.execute(query)
                if cursor.description is None:
                    statistics = {"rows_affected": cursor.rowcount} if cursor.rowcount > 0 else {}
                    connection.commit()
                    return QueryResult(statistics=statistics)
                columns = [column[0] for column in cursor.description]
                rows = [dict(zip(columns, record)) for record in cursor.fetchall()]
                connection.commit()
                return QueryResult(columns, rows)
        except sqlite3.Error as exc:
            connection.rollback()
            raise ExecutionError(str(exc), query=query, code=type(exc).__name__) from exc

    def run_script(self, script: str) -> None:
        connection = self.connection
        try:
            connection.executescript(script)
        except sqlite3.Error as exc:
            connection.rollback()
            raise ExecutionError(str(exc), query=script, code=type(exc).__name__) from exc

    def snapshot(self) -> sqlite3.Connection:
        copy = sqlite3.connect(":memory:")
        self.connection.backup(copy)
        self._snapshots.append(copy)
        return copy

    def restore(self, snapshot: sqlite3.Connection) -> None:
        snapshot.backup(self.connection)

    def describe_state(self) -> str:
        """Return the database as the SQL statements recreating it."""
        return "\n".join(self.connection.iterdump())

    def close(self) -> None:
        for copy in self._snapshots:
            copy.close()
        self._snapshots.clear()
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.debug("Closed SQLite engine")

    def __enter__(self) -> "SqliteEngine":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()
