from pathlib import Path
from typing import TYPE_CHECKING, Optional

from querydoc.assembler import emit
from querydoc.config import DocumentationConfig
from querydoc.driver import ExecutionDriver
from querydoc.utils.logging import get_logger

if TYPE_CHECKING:
    from querydoc.document import Document
    from querydoc.driver import ExecutionReport
    from querydoc.protocols import DocumentRenderer, QueryEngine

__all__ = ("QueryDoc",)

logger = get_logger()


class QueryDoc:
    """Entry point that verifies documents and emits them.

    Args:
        config: Output location and renderer; defaults when omitted.
    """

    __slots__ = ("config",)

    def __init__(self, config: "Optional[DocumentationConfig]" = None) -> None:
        self.config = config or DocumentationConfig()

    def run(self, document: "Document", engine: "QueryEngine") -> "ExecutionReport":
        """Execute every example of ``document`` on ``engine``, stopping at the first mismatch."""
        return ExecutionDriver(engine).run(document)

    def emit(self, document: "Document", renderer: "Optional[DocumentRenderer]" = None) -> Path:
        """Assemble an executed document and render it below the configured output path."""
        return emit(document, renderer or self.config.renderer, self.config.output_path)

    def verify(self, document: "Document", engine: "QueryEngine") -> Path:
        """Run and emit ``document``, releasing its staged resources afterwards.

        Resources are released whether the run succeeds or not. The engine
        stays open; it belongs to the caller.

        Returns:
            Path of the rendered artifact.
        """
        try:
            report = self.run(document, engine)
            logger.debug("%r", report)
            return self.emit(document)
        finally:
            if document.resources is not None:
                document.resources.cleanup()
