"""Renderers turning assembled documents into files.

Markup renderers (AsciiDoc, HTML) live outside this package and only need to
satisfy :class:`~querydoc.protocols.DocumentRenderer`. The JSON renderer here
writes the assembled tree as-is, together with the staged example files, so
an external toolchain can pick both up.
"""

from pathlib import Path
from typing import TYPE_CHECKING

import msgspec

from querydoc._serialization import encode_json
from querydoc.exceptions import RendererError
from querydoc.utils.logging import get_logger

if TYPE_CHECKING:
    from querydoc.assembler import AssembledDocument

__all__ = ("JsonRenderer",)

logger = get_logger("renderers")


class JsonRenderer:
    """Writes ``<slug>.json`` and the document's resources below the output path.

    Args:
        indent: Indentation of the written JSON; ``0`` writes it compact.
        write_resources: Also write staged example files next to the JSON.
    """

    __slots__ = ("indent", "write_resources")

    def __init__(self, indent: int = 2, write_resources: bool = True) -> None:
        self.indent = indent
        self.write_resources = write_resources

    def render(self, document: "AssembledDocument", output_path: Path) -> Path:
        output_path = Path(output_path)
        try:
            output_path.mkdir(parents=True, exist_ok=True)
            artifact = output_path / f"{document.slug}.json"
            payload = encode_json(document, as_bytes=True)
            if self.indent:
                payload = msgspec.json.format(payload, indent=self.indent)
            artifact.write_bytes(payload)
            if self.write_resources:
                for resource in document.resources:
                    target = output_path / resource.name
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_text(resource.contents, encoding="utf-8")
        except OSError as exc:
            msg = f"Could not write {document.slug!r} below {output_path}: {exc}"
            raise RendererError(msg) from exc
        logger.debug("Wrote %s", artifact)
        return artifact

    def __repr__(self) -> str:
        return f"JsonRenderer(indent={self.indent})"
