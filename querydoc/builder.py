"""Builder for documentation pages.

The builder keeps a cursor on the section currently being filled. Sections
and callouts are context managers, so a page reads top to bottom in the same
shape as the rendered output::

    builder = DocBuilder()
    builder.doc("CALL {} (subquery)", "query-call-subquery")
    builder.init_queries("CREATE (:Person {name: 'Alice'})")
    with builder.section("Introduction", "subquery-call-introduction"):
        builder.p("CALL allows to execute subqueries.")
        with builder.tip():
            builder.p("The CALL clause is also used for calling procedures.")
        builder.query("MATCH (p:Person) RETURN p.name", expect_rows({"p.name": "Alice"}))
    document = builder.build()
"""

from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from querydoc.assertions import NoAssertions
from querydoc.config import DocumentationConfig
from querydoc.document import Callout, CalloutKind, Document, Paragraph, Section, StateView
from querydoc.examples import Example, ExampleRegistry, Presentation, QueryTextReplacement, StatePolicy
from querydoc.exceptions import DuplicateIdentifierError, ImproperConfigurationError
from querydoc.resources import ResourceMaterializer
from querydoc.utils.logging import get_logger
from querydoc.utils.text import slugify

if TYPE_CHECKING:
    from querydoc.assertions import Assertion
    from querydoc.document import Node

__all__ = ("CalloutHandle", "DocBuilder", "SectionHandle")

logger = get_logger("builder")


class SectionHandle:
    """Mutable stand-in for a section while the document is being built."""

    __slots__ = ("_slugs", "children", "parent", "slug", "title")

    def __init__(self, title: str, slug: str, parent: "Optional[SectionHandle]") -> None:
        self.title = title
        self.slug = slug
        self.parent = parent
        self.children: list[Union[Node, SectionHandle, CalloutHandle]] = []
        self._slugs: set[str] = set()

    def claim(self, slug: str) -> None:
        if slug in self._slugs:
            raise DuplicateIdentifierError(slug, self.title if self.parent is not None else None)
        self._slugs.add(slug)

    def freeze(self) -> "tuple[Node, ...]":
        return tuple(_freeze(child) for child in self.children)

    def __repr__(self) -> str:
        return f"SectionHandle({self.title!r}, slug={self.slug!r})"


class CalloutHandle:
    __slots__ = ("kind", "paragraphs")

    def __init__(self, kind: CalloutKind) -> None:
        self.kind = kind
        self.paragraphs: list[Paragraph] = []

    def __repr__(self) -> str:
        return f"CalloutHandle({self.kind.value})"


def _freeze(child: "Union[Node, SectionHandle, CalloutHandle]") -> "Node":
    if isinstance(child, SectionHandle):
        return Section(child.title, child.slug, child.freeze())
    if isinstance(child, CalloutHandle):
        return Callout(child.kind, tuple(child.paragraphs))
    return child


class DocBuilder:
    """Assembles a :class:`~querydoc.document.Document` declaration by declaration.

    Args:
        config: Settings for placeholders, default state policy and resource staging.
    """

    __slots__ = (
        "_built",
        "_callout",
        "_cursor",
        "_init_queries",
        "_resources",
        "_root",
        "_synopsis",
        "config",
        "registry",
    )

    def __init__(self, config: "Optional[DocumentationConfig]" = None) -> None:
        self.config = config or DocumentationConfig()
        self.registry = ExampleRegistry(self.config.placeholder_pattern)
        self._root: Optional[SectionHandle] = None
        self._cursor: Optional[SectionHandle] = None
        self._callout: Optional[CalloutHandle] = None
        self._init_queries: list[str] = []
        self._synopsis: Optional[str] = None
        self._resources: Optional[ResourceMaterializer] = None
        self._built = False

    # -- document level --
    def doc(self, title: str, slug: str) -> None:
        """Start the document. Must be the first call."""
        if self._root is not None:
            msg = f"Document already started as {self._root.title!r}"
            raise ImproperConfigurationError(msg)
        self._root = SectionHandle(title, slug, None)
        self._cursor = self._root

    def init_queries(self, *queries: str) -> None:
        """Declare the queries seeding the database before any example runs."""
        self._require_open()
        self._init_queries.extend(queries)

    def synopsis(self, text: str) -> None:
        """Add the one-paragraph summary shown under the title."""
        self._require_open()
        if self._synopsis is not None:
            msg = "Synopsis already set"
            raise ImproperConfigurationError(msg)
        self._synopsis = text
        self.add_paragraph(self._synopsis, role="synopsis")

    # -- primitives with explicit parents --
    def add_section(
        self, title: str, slug: "Optional[str]" = None, parent: "Optional[SectionHandle]" = None
    ) -> SectionHandle:
        """Append a section to ``parent`` (the current section when omitted).

        Raises:
            DuplicateIdentifierError: A sibling already uses the slug.
        """
        target = self._target(parent)
        resolved_slug = slug or slugify(title)
        if not resolved_slug:
            msg = f"Cannot derive an identifier from section title {title!r}"
            raise ImproperConfigurationError(msg)
        target.claim(resolved_slug)
        handle = SectionHandle(title, resolved_slug, target)
        target.children.append(handle)
        return handle

    def add_paragraph(
        self, text: str, parent: "Optional[SectionHandle]" = None, role: "Optional[str]" = None
    ) -> Paragraph:
        paragraph = Paragraph(text, role=role)
        if parent is None and self._callout is not None:
            self._callout.paragraphs.append(paragraph)
        else:
            self._target(parent).children.append(paragraph)
        return paragraph

    def add_callout(
        self, kind: "Union[CalloutKind, str]", text: "Optional[str]" = None, parent: "Optional[SectionHandle]" = None
    ) -> CalloutHandle:
        """Append a callout box, optionally with a first paragraph."""
        if self._callout is not None and parent is None:
            msg = "Callouts cannot be nested"
            raise ImproperConfigurationError(msg)
        handle = CalloutHandle(CalloutKind(kind))
        if text is not None:
            handle.paragraphs.append(Paragraph(text))
        self._target(parent).children.append(handle)
        return handle

    # -- cursor based declarations --
    @contextmanager
    def section(self, title: str, slug: "Optional[str]" = None) -> "Iterator[SectionHandle]":
        """Declare a section; everything declared inside the block belongs to it."""
        if self._callout is not None:
            msg = "Sections cannot be declared inside a callout"
            raise ImproperConfigurationError(msg)
        handle = self.add_section(title, slug)
        previous = self._cursor
        self._cursor = handle
        try:
            yield handle
        finally:
            self._cursor = previous

    def p(self, text: str) -> Paragraph:
        return self.add_paragraph(text)

    @contextmanager
    def callout(self, kind: "Union[CalloutKind, str]") -> "Iterator[CalloutHandle]":
        handle = self.add_callout(kind)
        self._callout = handle
        try:
            yield handle
        finally:
            self._callout = None
        if not handle.paragraphs:
            msg = f"Empty {handle.kind.value} callout"
            raise ImproperConfigurationError(msg)

    def tip(self, text: "Optional[str]" = None) -> Any:
        return self._callout_shorthand(CalloutKind.TIP, text)

    def note(self, text: "Optional[str]" = None) -> Any:
        return self._callout_shorthand(CalloutKind.NOTE, text)

    def important(self, text: "Optional[str]" = None) -> Any:
        return self._callout_shorthand(CalloutKind.IMPORTANT, text)

    def warning(self, text: "Optional[str]" = None) -> Any:
        return self._callout_shorthand(CalloutKind.WARNING, text)

    def caution(self, text: "Optional[str]" = None) -> Any:
        return self._callout_shorthand(CalloutKind.CAUTION, text)

    def state_view(self, caption: "Optional[str]" = None) -> StateView:
        """Mark where the database contents at this point should be shown."""
        view = StateView(caption)
        self._target(None).children.append(view)
        return view

    # -- examples --
    def query(
        self,
        text: str,
        assertion: "Optional[Assertion]" = None,
        presentation: Presentation = Presentation.RESULT_TABLE,
        state_policy: "Optional[StatePolicy]" = None,
    ) -> Example:
        """Declare an example query with its expected outcome."""
        return self.add_query(text, assertions=assertion, presentation=presentation, state_policy=state_policy)

    def add_query(
        self,
        text: str,
        assertions: "Optional[Assertion]" = None,
        replacements: "Sequence[QueryTextReplacement]" = (),
        state_policy: "Optional[StatePolicy]" = None,
        presentation: Presentation = Presentation.RESULT_TABLE,
    ) -> Example:
        """Declare an example query, with text replacements applied before it runs.

        Raises:
            UnresolvedPlaceholderError: Placeholders and replacements disagree.
        """
        if self._callout is not None:
            msg = "Examples cannot be declared inside a callout"
            raise ImproperConfigurationError(msg)
        target = self._target(None)
        example = self.registry.register_example(
            text,
            assertions if assertions is not None else NoAssertions(),
            replacements=replacements,
            state_policy=state_policy or self.config.default_state_policy,
            presentation=presentation,
        )
        target.children.append(example)
        logger.debug("Registered example #%d in %r", example.position, target.title)
        return example

    # -- resources --
    @property
    def resources(self) -> ResourceMaterializer:
        if self._resources is None:
            self._resources = ResourceMaterializer(self.config.resource_root)
        return self._resources

    def create_dir(self, name: str) -> Path:
        """Create a directory for example input files."""
        return self.resources.create_dir(name)

    def csv_file(
        self, name: str, rows: "Iterable[Sequence[Any]]", directory: "Optional[Path]" = None, delimiter: str = ","
    ) -> Path:
        """Write a delimited fixture file that example queries can load."""
        return self.resources.write_delimited_file(name, rows, directory=directory, delimiter=delimiter)

    # -- finalization --
    def build(self) -> Document:
        """Freeze the declarations into an immutable document.

        Raises:
            ImproperConfigurationError: ``doc()`` was never called, a section is
                still open, or the builder was already used.
        """
        root = self._require_open()
        if self._cursor is not root or self._callout is not None:
            msg = "Cannot build while a section or callout is still open"
            raise ImproperConfigurationError(msg)
        self._built = True
        document = Document(
            title=root.title,
            slug=root.slug,
            children=root.freeze(),
            init_queries=tuple(self._init_queries),
            synopsis=self._synopsis,
            resources=self._resources,
        )
        logger.debug("Built document %r with %d example(s)", document.slug, len(self.registry))
        return document

    def _callout_shorthand(self, kind: CalloutKind, text: "Optional[str]") -> Any:
        if text is None:
            return self.callout(kind)
        return self.add_callout(kind, text)

    def _require_open(self) -> SectionHandle:
        if self._built:
            msg = "Document already built"
            raise ImproperConfigurationError(msg)
        if self._root is None:
            msg = "Call doc(title, slug) before declaring content"
            raise ImproperConfigurationError(msg)
        return self._root

    def _target(self, parent: "Optional[SectionHandle]") -> SectionHandle:
        self._require_open()
        if parent is not None:
            return parent
        if self._cursor is None:
            msg = "Call doc(title, slug) before declaring content"
            raise ImproperConfigurationError(msg)
        return self._cursor
