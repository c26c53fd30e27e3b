"""Runtime-checkable protocols for the collaborators querydoc drives.

The query engine and the document renderer live outside this library. These
protocols are the narrow surface the execution driver and the emitter rely on.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from querydoc.assembler import AssembledDocument
    from querydoc.engine import QueryResult

__all__ = (
    "DocumentRenderer",
    "QueryEngine",
    "ResourceStager",
    "StateDescriber",
)


@runtime_checkable
class QueryEngine(Protocol):
    """A database that executes query text and can snapshot its contents."""

    def execute(self, query: str) -> "QueryResult":
        """Execute one query and return its rows.

        Raises:
            ExecutionError: The engine rejected or failed to run the query.
        """
        ...

    def run_script(self, script: str) -> None:
        """Run an initialization script that may contain several statements."""
        ...

    def snapshot(self) -> Any:
        """Capture the current database contents."""
        ...

    def restore(self, snapshot: Any) -> None:
        """Replace the database contents with ``snapshot``."""
        ...

    def close(self) -> None:
        """Release the database."""
        ...


@runtime_checkable
class StateDescriber(Protocol):
    """Engine that can print its current contents for state views."""

    def describe_state(self) -> str:
        """Describe the current database contents as text."""
        ...


@runtime_checkable
class ResourceStager(Protocol):
    """Engine that needs example input files copied where it can read them."""

    def stage_resource(self, path: Path) -> None:
        """Make ``path`` readable by queries run on this engine."""
        ...


@runtime_checkable
class DocumentRenderer(Protocol):
    """Turns an assembled document into an artifact on disk."""

    def render(self, document: "AssembledDocument", output_path: Path) -> Path:
        """Write ``document`` below ``output_path`` and return the artifact path."""
        ...
