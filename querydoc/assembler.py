"""Assembly of a verified document into renderer input.

The assembler walks the document depth first, in declaration order, and turns
each node into a block. Example nodes become the substituted query text
followed by their captured outcome, shown according to the example's
presentation. The resulting tree is plain data: every block is a
``msgspec.Struct`` so renderers can serialize it directly.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

import msgspec

from querydoc.document import Callout, Paragraph, Section, StateView
from querydoc.examples import Example, Presentation
from querydoc.exceptions import ImproperConfigurationError, RendererError
from querydoc.utils.logging import get_logger

if TYPE_CHECKING:
    from querydoc.document import Document, Node
    from querydoc.engine import QueryResult
    from querydoc.exceptions import ExecutionError
    from querydoc.protocols import DocumentRenderer

__all__ = (
    "AssembledDocument",
    "Assembler",
    "Block",
    "CalloutBlock",
    "ErrorBlock",
    "ParagraphBlock",
    "QueryBlock",
    "ResourceBlock",
    "ResultTableBlock",
    "SectionBlock",
    "StateViewBlock",
    "emit",
)

logger = get_logger("assembler")


class Block(msgspec.Struct, tag=True, tag_field="type", kw_only=True):
    """Base class of assembled blocks."""


class ParagraphBlock(Block, tag="paragraph"):
    text: str
    role: Optional[str] = None


class CalloutBlock(Block, tag="callout"):
    kind: str
    paragraphs: "list[ParagraphBlock]"


class StateViewBlock(Block, tag="state_view"):
    caption: Optional[str] = None
    contents: Optional[str] = None


class ResultTableBlock(Block, tag="result_table"):
    columns: "list[str]"
    rows: "list[list[Any]]"
    statistics: "dict[str, int]" = msgspec.field(default_factory=dict)

    @property
    def summary(self) -> str:
        rows = f"Rows: {len(self.rows)}"
        if not self.statistics:
            return rows
        changes = ", ".join(f"{key.replace('_', ' ').capitalize()}: {value}" for key, value in self.statistics.items())
        return f"{rows}\n{changes}"


class ErrorBlock(Block, tag="error"):
    message: str
    code: Optional[str] = None


class QueryBlock(Block, tag="query"):
    position: int
    query: str
    outcome: "Optional[Union[ResultTableBlock, ErrorBlock]]" = None


class SectionBlock(Block, tag="section"):
    title: str
    slug: str
    level: int
    children: "list[Block]" = msgspec.field(default_factory=list)


class ResourceBlock(msgspec.Struct, kw_only=True):
    name: str
    contents: str


class AssembledDocument(msgspec.Struct, kw_only=True):
    title: str
    slug: str
    synopsis: Optional[str] = None
    children: "list[Block]" = msgspec.field(default_factory=list)
    resources: "list[ResourceBlock]" = msgspec.field(default_factory=list)

    def iter_blocks(self) -> "list[Block]":
        """All blocks in declaration order, sections before their children."""
        flat: list[Block] = []
        _flatten(self.children, flat)
        return flat


def _flatten(blocks: "list[Block]", into: "list[Block]") -> None:
    for block in blocks:
        into.append(block)
        if isinstance(block, SectionBlock):
            _flatten(block.children, into)


def _result_table(result: "QueryResult") -> ResultTableBlock:
    return ResultTableBlock(
        columns=list(result.columns),
        rows=[[row.get(column) for column in result.columns] for row in result.rows],
        statistics=dict(result.statistics),
    )


def _error(error: "ExecutionError") -> ErrorBlock:
    return ErrorBlock(message=error.message, code=error.code)


class Assembler:
    """Turns a document whose examples have run into an :class:`AssembledDocument`."""

    __slots__ = ("document",)

    def __init__(self, document: "Document") -> None:
        self.document = document

    def assemble(self) -> AssembledDocument:
        """Walk the document and build the renderer input.

        Raises:
            ImproperConfigurationError: An example has not been executed.
        """
        resources = []
        if self.document.resources is not None:
            resources = [
                ResourceBlock(name=staged.name, contents=staged.read_text()) for staged in self.document.resources.staged
            ]
        return AssembledDocument(
            title=self.document.title,
            slug=self.document.slug,
            synopsis=self.document.synopsis,
            children=self._blocks(self.document.children, level=1),
            resources=resources,
        )

    def _blocks(self, children: "tuple[Node, ...]", level: int) -> "list[Block]":
        return [self._block(child, level) for child in children]

    def _block(self, node: "Node", level: int) -> Block:
        if isinstance(node, Section):
            return SectionBlock(
                title=node.title, slug=node.slug, level=level, children=self._blocks(node.children, level + 1)
            )
        if isinstance(node, Paragraph):
            return ParagraphBlock(text=node.text, role=node.role)
        if isinstance(node, Callout):
            return CalloutBlock(
                kind=node.kind.value, paragraphs=[ParagraphBlock(text=p.text, role=p.role) for p in node.children]
            )
        if isinstance(node, StateView):
            return StateViewBlock(caption=node.caption, contents=node.captured)
        if isinstance(node, Example):
            return self._example(node)
        msg = f"Cannot assemble node of type {type(node).__name__}"
        raise ImproperConfigurationError(msg)

    def _example(self, example: Example) -> QueryBlock:
        outcome = example.outcome
        if outcome is None:
            msg = f"Example #{example.position} has not been executed"
            raise ImproperConfigurationError(msg)
        block = QueryBlock(position=example.position, query=example.resolved_query)
        if example.presentation is Presentation.QUERY_ONLY:
            return block
        if outcome.error is not None:
            block.outcome = _error(outcome.error)
        elif example.presentation is Presentation.RESULT_TABLE and outcome.result is not None:
            block.outcome = _result_table(outcome.result)
        return block


def emit(document: "Document", renderer: "DocumentRenderer", output_path: Path) -> Path:
    """Assemble ``document`` and hand it to ``renderer``.

    Raises:
        RendererError: The renderer failed; the original exception is chained.
    """
    assembled = Assembler(document).assemble()
    try:
        artifact = renderer.render(assembled, output_path)
    except RendererError:
        raise
    except Exception as exc:
        msg = f"Renderer {type(renderer).__name__} failed for {document.slug!r}: {exc}"
        raise RendererError(msg) from exc
    logger.info("Emitted %r to %s", document.slug, artifact)
    return artifact
