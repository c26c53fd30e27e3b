"""Immutable document tree.

Nodes are created by :class:`querydoc.builder.DocBuilder` and never change
afterwards, with two exceptions owned by the execution driver: examples record
their outcome and state views record the captured database contents.
"""

from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from mypy_extensions import mypyc_attr

from querydoc.examples import Example

if TYPE_CHECKING:
    from querydoc.resources import ResourceMaterializer

__all__ = (
    "Callout",
    "CalloutKind",
    "Document",
    "Node",
    "Paragraph",
    "Section",
    "StateView",
)


class CalloutKind(str, Enum):
    """Admonition boxes a callout can be rendered as."""

    TIP = "tip"
    NOTE = "note"
    IMPORTANT = "important"
    WARNING = "warning"
    CAUTION = "caution"


@mypyc_attr(allow_interpreted_subclasses=True)
class Paragraph:
    __slots__ = ("role", "text")

    def __init__(self, text: str, role: "Optional[str]" = None) -> None:
        self.text = text
        self.role = role

    def __repr__(self) -> str:
        return f"Paragraph({self.text[:40]!r})"


@mypyc_attr(allow_interpreted_subclasses=True)
class Callout:
    """Tip, note or warning box wrapping one or more paragraphs."""

    __slots__ = ("children", "kind")

    def __init__(self, kind: CalloutKind, children: "tuple[Paragraph, ...]") -> None:
        self.kind = kind
        self.children = children

    def __repr__(self) -> str:
        return f"Callout({self.kind.value}, {len(self.children)} paragraph(s))"


@mypyc_attr(allow_interpreted_subclasses=True)
class StateView:
    """Point where the current database contents are shown."""

    __slots__ = ("caption", "captured")

    def __init__(self, caption: "Optional[str]" = None) -> None:
        self.caption = caption
        self.captured: Optional[str] = None

    def record(self, description: str) -> None:
        self.captured = description

    def __repr__(self) -> str:
        return f"StateView(captured={self.captured is not None})"


Node = Union[Paragraph, Callout, StateView, Example, "Section"]


@mypyc_attr(allow_interpreted_subclasses=True)
class Section:
    __slots__ = ("children", "slug", "title")

    def __init__(self, title: str, slug: str, children: "tuple[Node, ...]") -> None:
        self.title = title
        self.slug = slug
        self.children = children

    def __repr__(self) -> str:
        return f"Section({self.title!r}, slug={self.slug!r}, {len(self.children)} children)"


@mypyc_attr(allow_interpreted_subclasses=True)
class Document:
    """A manual page: prose, example queries and the script seeding their database."""

    __slots__ = ("children", "init_queries", "resources", "slug", "synopsis", "title")

    def __init__(
        self,
        title: str,
        slug: str,
        children: "tuple[Node, ...]",
        init_queries: "tuple[str, ...]" = (),
        synopsis: "Optional[str]" = None,
        resources: "Optional[ResourceMaterializer]" = None,
    ) -> None:
        self.title = title
        self.slug = slug
        self.children = children
        self.init_queries = init_queries
        self.synopsis = synopsis
        self.resources = resources

    def walk(self) -> "Iterator[tuple[Node, tuple[str, ...]]]":
        """Depth-first, declaration-order walk.

        Yields:
            Each node with the titles of the sections enclosing it. Sections are
            yielded before their children; callout paragraphs are not yielded
            separately.
        """
        yield from _walk(self.children, ())

    @property
    def examples(self) -> "tuple[Example, ...]":
        return tuple(node for node, _ in self.walk() if isinstance(node, Example))

    def find_section(self, slug: str) -> Section:
        for node, _ in self.walk():
            if isinstance(node, Section) and node.slug == slug:
                return node
        msg = f"No section with slug {slug!r}"
        raise KeyError(msg)

    def __repr__(self) -> str:
        return f"Document({self.title!r}, slug={self.slug!r})"


def _walk(children: "tuple[Node, ...]", path: "tuple[str, ...]") -> "Iterator[tuple[Node, tuple[str, ...]]]":
    for child in children:
        yield child, path
        if isinstance(child, Section):
            yield from _walk(child.children, (*path, child.title))
