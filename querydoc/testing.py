"""Pytest integration for documentation pages.

Subclass :class:`DocumentingTest` in a ``test_*.py`` module with a class name
starting with ``Test``; pytest then collects :meth:`DocumentingTest.test_document`,
which verifies the page against a fresh engine and emits it::

    class TestCallSubquery(DocumentingTest):
        output_path = "target/docs/dev/ql"

        def create_engine(self):
            return SqliteEngine()

        def doc(self):
            builder = self.builder()
            builder.doc("CALL {} (subquery)", "query-call-subquery")
            ...
            return builder.build()
"""

from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Optional, Union

from querydoc.base import QueryDoc
from querydoc.builder import DocBuilder
from querydoc.config import DEFAULT_OUTPUT_PATH, DocumentationConfig

if TYPE_CHECKING:
    from querydoc.document import Document
    from querydoc.protocols import DocumentRenderer, QueryEngine

__all__ = ("DocumentingTest",)


class DocumentingTest:
    """Base class for tests that verify and emit one documentation page."""

    output_path: "ClassVar[Union[str, Path]]" = DEFAULT_OUTPUT_PATH

    def doc(self) -> "Document":
        """Build the page. Subclasses must override."""
        raise NotImplementedError

    def create_engine(self) -> "QueryEngine":
        """Create the empty database the page's examples run against."""
        raise NotImplementedError

    def renderer(self) -> "Optional[DocumentRenderer]":
        """Renderer for the page; the configured default when ``None``."""
        return None

    def config(self) -> DocumentationConfig:
        renderer = self.renderer()
        if renderer is None:
            return DocumentationConfig(output_path=Path(self.output_path))
        return DocumentationConfig(output_path=Path(self.output_path), renderer=renderer)

    def builder(self) -> DocBuilder:
        return DocBuilder(self.config())

    def test_document(self) -> None:
        document = self.doc()
        try:
            engine = self.create_engine()
            try:
                QueryDoc(self.config()).verify(document, engine)
            finally:
                engine.close()
        finally:
            if document.resources is not None:
                document.resources.cleanup()
