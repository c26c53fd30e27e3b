"""Expected outcomes for documentation examples.

An assertion is evaluated once, right after its example ran. Predicates may
either return a boolean or raise :class:`AssertionError` the way a plain
``assert`` in a test does; both count as a mismatch, and the assertion message
becomes part of the diagnostic.
"""

from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Hashable, Iterable, Mapping
from difflib import ndiff
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional, Union

from mypy_extensions import mypyc_attr

if TYPE_CHECKING:
    from querydoc.engine import QueryOutcome, QueryResult
    from querydoc.exceptions import ExecutionError

__all__ = (
    "Assertion",
    "ErrorAssertions",
    "Mismatch",
    "NoAssertions",
    "ResultAssertions",
    "error_contains",
    "expect_empty",
    "expect_error",
    "expect_rows",
    "rows_equal",
)

ResultPredicate = Callable[["QueryResult"], Optional[bool]]
ErrorPredicate = Callable[["ExecutionError"], Optional[bool]]
Row = Mapping[str, Any]


class Mismatch:
    """Why an outcome failed its assertion."""

    __slots__ = ("diff", "reason")

    def __init__(self, reason: str, diff: str = "") -> None:
        self.reason = reason
        self.diff = diff

    def __repr__(self) -> str:
        return f"Mismatch({self.reason!r})"


@mypyc_attr(allow_interpreted_subclasses=True)
class Assertion(ABC):
    """Predicate over the outcome of an example."""

    __slots__ = ()

    expects_error: "ClassVar[bool]" = False

    @abstractmethod
    def evaluate(self, outcome: "QueryOutcome") -> "Optional[Mismatch]":
        """Return ``None`` when the outcome is as expected, else the mismatch."""


def _run_predicate(predicate: "Callable[[Any], Optional[bool]]", value: Any, description: str) -> "Optional[Mismatch]":
    try:
        verdict = predicate(value)
    except AssertionError as exc:
        return Mismatch(f"{description} did not hold", str(exc))
    if verdict is False:
        return Mismatch(f"{description} returned False")
    return None


class ResultAssertions(Assertion):
    """The query must succeed and its result must satisfy ``predicate``."""

    __slots__ = ("predicate",)

    def __init__(self, predicate: ResultPredicate) -> None:
        self.predicate = predicate

    def evaluate(self, outcome: "QueryOutcome") -> "Optional[Mismatch]":
        if outcome.error is not None:
            return Mismatch("expected rows but the query failed", f"Error: {outcome.error.message}")
        return _run_predicate(self.predicate, outcome.result, "result assertion")


class ErrorAssertions(Assertion):
    """The query must fail and its error must satisfy ``predicate``."""

    __slots__ = ("predicate",)

    expects_error = True

    def __init__(self, predicate: ErrorPredicate) -> None:
        self.predicate = predicate

    def evaluate(self, outcome: "QueryOutcome") -> "Optional[Mismatch]":
        if outcome.error is None:
            rows = len(outcome.result) if outcome.result is not None else 0
            return Mismatch("expected an error but the query succeeded", f"Returned {rows} row(s)")
        return _run_predicate(self.predicate, outcome.error, "error assertion")


class NoAssertions(Assertion):
    """Any successful outcome is accepted."""

    __slots__ = ()

    def evaluate(self, outcome: "QueryOutcome") -> "Optional[Mismatch]":
        if outcome.error is not None:
            return Mismatch("the query failed", f"Error: {outcome.error.message}")
        return None


def _freeze(value: Any) -> Hashable:
    if isinstance(value, Mapping):
        return frozenset((key, _freeze(item)) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(item) for item in value)
    return value


def _format_row(row: Row) -> str:
    return "{" + ", ".join(f"{key}: {value!r}" for key, value in row.items()) + "}"


def rows_equal(actual: "Iterable[Row]", expected: "Iterable[Row]", *, ordered: bool = False) -> None:
    """Assert that two row collections are equal.

    Without ``ordered`` rows are compared as multisets: order does not matter
    but duplicates do.

    Raises:
        AssertionError: With a diff of expected versus actual rows.
    """
    actual_rows = [dict(row) for row in actual]
    expected_rows = [dict(row) for row in expected]
    if ordered:
        if actual_rows == expected_rows:
            return
        diff = "\n".join(
            ndiff([_format_row(r) for r in expected_rows], [_format_row(r) for r in actual_rows])
        )
        msg = f"Rows differ (expected '-', actual '+'):\n{diff}"
        raise AssertionError(msg)

    actual_counts = Counter(_freeze(row) for row in actual_rows)
    expected_counts = Counter(_freeze(row) for row in expected_rows)
    if actual_counts == expected_counts:
        return
    lines: list[str] = []
    by_key = {_freeze(row): row for row in (*expected_rows, *actual_rows)}
    for key, count in (expected_counts - actual_counts).items():
        lines.extend(f"- {_format_row(by_key[key])}" for _ in range(count))
    for key, count in (actual_counts - expected_counts).items():
        lines.extend(f"+ {_format_row(by_key[key])}" for _ in range(count))
    msg = "Rows differ (missing '-', unexpected '+'):\n" + "\n".join(lines)
    raise AssertionError(msg)


def error_contains(error: "ExecutionError", fragment: str) -> None:
    """Assert that the error message contains ``fragment``."""
    if fragment not in error.message:
        msg = f"Expected error message to contain {fragment!r}, got {error.message!r}"
        raise AssertionError(msg)


def expect_rows(*rows: Row, ordered: bool = False) -> ResultAssertions:
    """Assertion comparing the result with ``rows``, as a multiset unless ``ordered``."""
    expected = [dict(row) for row in rows]
    return ResultAssertions(lambda result: rows_equal(result, expected, ordered=ordered))


def expect_empty() -> ResultAssertions:
    """Assertion requiring a successful query that returns no rows."""
    return ResultAssertions(lambda result: result.is_empty())


def expect_error(containing: "Union[str, Iterable[str]]") -> ErrorAssertions:
    """Assertion requiring a failure whose message contains every given fragment."""
    fragments = [containing] if isinstance(containing, str) else list(containing)

    def check(error: "ExecutionError") -> None:
        for fragment in fragments:
            error_contains(error, fragment)

    return ErrorAssertions(check)
