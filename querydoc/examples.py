"""Runnable example queries and the registry that orders them.

An example is a query embedded in documentation together with the outcome it
must produce. Examples are registered in the order they appear in the
document; that order is the execution order.
"""

import re
from collections.abc import Iterator, Sequence
from difflib import get_close_matches
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from mypy_extensions import mypyc_attr

from querydoc.exceptions import UnresolvedPlaceholderError

if TYPE_CHECKING:
    from querydoc.assertions import Assertion
    from querydoc.engine import QueryOutcome

__all__ = (
    "DEFAULT_PLACEHOLDER_PATTERN",
    "Example",
    "ExampleRegistry",
    "Presentation",
    "QueryTextReplacement",
    "StatePolicy",
    "apply_replacements",
    "validate_replacements",
)

DEFAULT_PLACEHOLDER_PATTERN = r"@[A-Za-z_][A-Za-z0-9_]*"


class StatePolicy(str, Enum):
    """What happens to database state after an example has run."""

    KEEP = "keep"
    """Leave the example's writes in place for the examples that follow."""
    CLEAR = "clear"
    """Restore the snapshot taken right after initialization."""


class Presentation(str, Enum):
    """How an executed example shows up in the assembled document."""

    RESULT_TABLE = "result_table"
    ERROR_ONLY = "error_only"
    QUERY_ONLY = "query_only"


@mypyc_attr(allow_interpreted_subclasses=True)
class QueryTextReplacement:
    """Literal substitution applied to query text before it runs.

    Args:
        placeholder: Text to look for, e.g. ``@csvFile``.
        value: Text that replaces every occurrence of the placeholder.
        resource: Optional file the replaced text refers to. The driver checks it
            exists and stages it with engines that read input files.
    """

    __slots__ = ("placeholder", "resource", "value")

    def __init__(self, placeholder: str, value: str, resource: "Optional[Path]" = None) -> None:
        if not placeholder:
            msg = "Replacement placeholder must not be empty"
            raise ValueError(msg)
        self.placeholder = placeholder
        self.value = value
        self.resource = resource

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryTextReplacement):
            return NotImplemented
        return (self.placeholder, self.value, self.resource) == (other.placeholder, other.value, other.resource)

    def __hash__(self) -> int:
        return hash((self.placeholder, self.value, self.resource))

    def __repr__(self) -> str:
        return f"QueryTextReplacement({self.placeholder!r}, {self.value!r}, resource={self.resource!r})"


def validate_replacements(
    query: str,
    replacements: "Sequence[QueryTextReplacement]",
    placeholder_pattern: "Optional[Union[str, re.Pattern[str]]]" = DEFAULT_PLACEHOLDER_PATTERN,
) -> None:
    """Check that placeholders in ``query`` and ``replacements`` match one to one.

    Args:
        query: Query text as authored.
        replacements: Substitutions declared for the query.
        placeholder_pattern: Pattern recognising placeholder tokens in the text.
            ``None`` only checks that every replacement is used.

    Raises:
        UnresolvedPlaceholderError: A replacement is declared twice or never used,
            or a placeholder in the text has no replacement.
    """
    declared: list[str] = []
    for replacement in replacements:
        if replacement.placeholder in declared:
            msg = f"Placeholder {replacement.placeholder!r} has more than one replacement"
            raise UnresolvedPlaceholderError(msg, replacement.placeholder, query)
        declared.append(replacement.placeholder)
        if replacement.placeholder not in query:
            msg = f"Replacement for {replacement.placeholder!r} does not occur in the query text"
            raise UnresolvedPlaceholderError(msg, replacement.placeholder, query)

    if placeholder_pattern is None:
        return
    pattern = re.compile(placeholder_pattern) if isinstance(placeholder_pattern, str) else placeholder_pattern
    for match in pattern.finditer(query):
        token = match.group(0)
        if token not in declared:
            suggestions = get_close_matches(token, declared, n=3, cutoff=0.6)
            msg = f"Placeholder {token!r} has no replacement"
            raise UnresolvedPlaceholderError(msg, token, query, suggestions=suggestions)


def apply_replacements(query: str, replacements: "Sequence[QueryTextReplacement]") -> str:
    """Substitute every replacement into ``query``.

    The substitution is a single pass over the authored text: longer
    placeholders win so ``@file`` never clobbers ``@fileName``, and values are
    inserted literally, never scanned for further placeholders.
    """
    if not replacements:
        return query
    values = {replacement.placeholder: replacement.value for replacement in replacements}
    alternation = "|".join(re.escape(placeholder) for placeholder in sorted(values, key=len, reverse=True))
    return re.sub(alternation, lambda match: values[match.group(0)], query)


@mypyc_attr(allow_interpreted_subclasses=True)
class Example:
    """A runnable query embedded in the document.

    ``outcome`` stays ``None`` until the execution driver records what the
    query produced; it is the only attribute that changes after the document
    is built.
    """

    __slots__ = ("assertion", "outcome", "position", "presentation", "query", "replacements", "state_policy")

    def __init__(
        self,
        position: int,
        query: str,
        assertion: "Assertion",
        replacements: "Sequence[QueryTextReplacement]" = (),
        state_policy: StatePolicy = StatePolicy.CLEAR,
        presentation: Presentation = Presentation.RESULT_TABLE,
    ) -> None:
        self.position = position
        self.query = query
        self.assertion = assertion
        self.replacements: tuple[QueryTextReplacement, ...] = tuple(replacements)
        self.state_policy = state_policy
        self.presentation = presentation
        self.outcome: Optional[QueryOutcome] = None

    @property
    def resolved_query(self) -> str:
        """Query text with every replacement applied."""
        return apply_replacements(self.query, self.replacements)

    @property
    def resources(self) -> "tuple[Path, ...]":
        return tuple(r.resource for r in self.replacements if r.resource is not None)

    @property
    def executed(self) -> bool:
        return self.outcome is not None

    def record(self, outcome: "QueryOutcome") -> None:
        """Attach the captured outcome of running this example."""
        self.outcome = outcome

    def __repr__(self) -> str:
        first_line = self.query.splitlines()[0] if self.query else ""
        return f"Example(#{self.position}, {first_line!r}, policy={self.state_policy.value})"


class ExampleRegistry:
    """Ordered collection of examples in declaration order."""

    __slots__ = ("_examples", "placeholder_pattern")

    def __init__(self, placeholder_pattern: "Optional[str]" = DEFAULT_PLACEHOLDER_PATTERN) -> None:
        self._examples: list[Example] = []
        self.placeholder_pattern: Optional[re.Pattern[str]] = (
            re.compile(placeholder_pattern) if placeholder_pattern is not None else None
        )

    def register_example(
        self,
        query: str,
        assertion: "Assertion",
        replacements: "Sequence[QueryTextReplacement]" = (),
        state_policy: StatePolicy = StatePolicy.CLEAR,
        presentation: Presentation = Presentation.RESULT_TABLE,
    ) -> Example:
        """Validate and append an example.

        Returns:
            The example, numbered by its position in declaration order (1-based).

        Raises:
            UnresolvedPlaceholderError: Placeholders and replacements disagree.
        """
        validate_replacements(query, replacements, self.placeholder_pattern)
        example = Example(
            position=len(self._examples) + 1,
            query=query,
            assertion=assertion,
            replacements=replacements,
            state_policy=state_policy,
            presentation=presentation,
        )
        self._examples.append(example)
        return example

    def get(self, position: int) -> Example:
        if position < 1 or position > len(self._examples):
            msg = f"No example at position {position}"
            raise IndexError(msg)
        return self._examples[position - 1]

    def __iter__(self) -> "Iterator[Example]":
        return iter(self._examples)

    def __len__(self) -> int:
        return len(self._examples)

    def __repr__(self) -> str:
        return f"ExampleRegistry({len(self._examples)} examples)"
