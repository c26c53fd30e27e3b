from collections.abc import Sequence
from typing import Any, Optional

__all__ = (
    "DocumentationAssertionFailedError",
    "DuplicateIdentifierError",
    "ExecutionError",
    "ImproperConfigurationError",
    "InitializationError",
    "MissingDependencyError",
    "QueryDocError",
    "RendererError",
    "ResourceError",
    "UnresolvedPlaceholderError",
)


class QueryDocError(Exception):
    """Base exception class from which all querydoc exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``QueryDocError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(QueryDocError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install querydoc[{install_package or package}]' to install querydoc with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(QueryDocError):
    """Improper Configuration error.

    Raised when the builder or a run is used in a way that cannot produce a document.
    """


# -- Build time errors --
class DuplicateIdentifierError(QueryDocError):
    """Two sibling nodes share the same slug."""

    slug: str
    parent: Optional[str]

    def __init__(self, slug: str, parent: Optional[str] = None) -> None:
        where = f"section {parent!r}" if parent else "the document root"
        super().__init__(detail=f"Duplicate identifier {slug!r} under {where}")
        self.slug = slug
        self.parent = parent


class UnresolvedPlaceholderError(QueryDocError):
    """A replacement and the query text disagree about a placeholder."""

    placeholder: str
    query: Optional[str]

    def __init__(
        self,
        message: str,
        placeholder: str,
        query: Optional[str] = None,
        suggestions: "Optional[Sequence[str]]" = None,
    ) -> None:
        detail_message = message
        if suggestions:
            detail_message = f"{message}. Did you mean: {', '.join(suggestions)}?"
        if query:
            detail_message = f"{detail_message}\nQuery: {query}"
        super().__init__(detail=detail_message)
        self.placeholder = placeholder
        self.query = query


# -- Execution errors --
class ExecutionError(QueryDocError):
    """The query engine reported a runtime failure.

    This is an outcome, not a framework failure: error assertions match on it.
    """

    query: Optional[str]
    code: Optional[str]

    def __init__(self, message: str, query: Optional[str] = None, code: Optional[str] = None) -> None:
        super().__init__(detail=message)
        self.query = query
        self.code = code

    @property
    def message(self) -> str:
        return self.detail


class InitializationError(QueryDocError):
    """A query of the initialization script failed, so no baseline exists."""


class DocumentationAssertionFailedError(QueryDocError):
    """The captured outcome of an example does not match its assertion."""

    position: int
    section_path: "tuple[str, ...]"
    query: str
    reason: str
    diff: str

    def __init__(
        self,
        position: int,
        query: str,
        reason: str,
        section_path: "Sequence[str]" = (),
        diff: str = "",
    ) -> None:
        location = f"example #{position}"
        if section_path:
            location = f"{location} in {' > '.join(section_path)}"
        detail_message = f"Documentation assertion failed for {location}: {reason}\nQuery:\n{query}"
        if diff:
            detail_message = f"{detail_message}\n{diff}"
        super().__init__(detail=detail_message)
        self.position = position
        self.section_path = tuple(section_path)
        self.query = query
        self.reason = reason
        self.diff = diff


# -- Output errors --
class RendererError(QueryDocError):
    """The document renderer could not produce the artifact."""


class ResourceError(QueryDocError):
    """Staging an example resource on disk failed."""
