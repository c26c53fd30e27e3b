"""Query results and outcomes as seen by the execution driver."""

import time
from collections.abc import Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional

from mypy_extensions import mypyc_attr

from querydoc.exceptions import ExecutionError

if TYPE_CHECKING:
    from querydoc.protocols import QueryEngine

__all__ = ("QueryOutcome", "QueryResult", "execute_query")


@mypyc_attr(allow_interpreted_subclasses=True)
class QueryResult:
    """Rows returned by a successful query.

    Args:
        columns: Column names in the order the engine returned them.
        rows: One mapping per row, keyed by column name.
        statistics: Update counters reported by the engine (nodes created, rows affected, ...).
    """

    __slots__ = ("columns", "rows", "statistics")

    def __init__(
        self,
        columns: "Sequence[str]" = (),
        rows: "Sequence[Mapping[str, Any]]" = (),
        statistics: "Optional[Mapping[str, int]]" = None,
    ) -> None:
        self.columns: tuple[str, ...] = tuple(columns)
        self.rows: list[dict[str, Any]] = [dict(row) for row in rows]
        self.statistics: dict[str, int] = dict(statistics) if statistics else {}
        if not self.columns and self.rows:
            self.columns = tuple(self.rows[0])

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> "Iterator[dict[str, Any]]":
        return iter(self.rows)

    def __getitem__(self, index: int) -> "dict[str, Any]":
        return self.rows[index]

    def __repr__(self) -> str:
        return f"QueryResult(columns={self.columns!r}, rows={len(self.rows)}, statistics={self.statistics!r})"

    def is_empty(self) -> bool:
        return not self.rows

    def column(self, name: str) -> "list[Any]":
        """Return the values of one column in row order."""
        if name not in self.columns:
            msg = f"Unknown column {name!r}; result has {list(self.columns)}"
            raise KeyError(msg)
        return [row.get(name) for row in self.rows]


@mypyc_attr(allow_interpreted_subclasses=True)
class QueryOutcome:
    """What happened when a query ran: either a result or an execution error."""

    __slots__ = ("elapsed", "error", "query", "result")

    def __init__(
        self,
        query: str,
        result: "Optional[QueryResult]" = None,
        error: "Optional[ExecutionError]" = None,
        elapsed: float = 0.0,
    ) -> None:
        if (result is None) == (error is None):
            msg = "An outcome holds exactly one of result or error"
            raise ValueError(msg)
        self.query = query
        self.result = result
        self.error = error
        self.elapsed = elapsed

    @property
    def is_success(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        state = repr(self.result) if self.result is not None else repr(self.error)
        return f"QueryOutcome({state}, elapsed={self.elapsed:.4f})"


def execute_query(engine: "QueryEngine", query: str) -> QueryOutcome:
    """Run ``query`` and capture either its rows or its execution error.

    Only :class:`ExecutionError` is captured; anything else the engine raises
    is a broken collaborator and propagates.
    """
    start = time.perf_counter()
    try:
        result = engine.execute(query)
    except ExecutionError as exc:
        if exc.query is None:
            exc.query = query
        return QueryOutcome(query, error=exc, elapsed=time.perf_counter() - start)
    return QueryOutcome(query, result=result, elapsed=time.perf_counter() - start)
