from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from querydoc.examples import DEFAULT_PLACEHOLDER_PATTERN, StatePolicy
from querydoc.utils.logging import get_logger

if TYPE_CHECKING:
    from querydoc.protocols import DocumentRenderer

__all__ = ("DEFAULT_OUTPUT_PATH", "DocumentationConfig")

logger = get_logger("config")

DEFAULT_OUTPUT_PATH = Path("target/docs/dev/ql")


def _default_renderer() -> "DocumentRenderer":
    from querydoc.renderers import JsonRenderer

    return JsonRenderer()


@dataclass
class DocumentationConfig:
    """Settings shared by building, verifying and emitting a document.

    Attributes:
        output_path: Directory the renderer writes artifacts into.
        placeholder_pattern: Regular expression recognising placeholders in
            query text. ``None`` disables the scan for undeclared placeholders.
        default_state_policy: Policy for examples that do not choose one.
        resource_root: Directory for staged example files. A temporary
            directory is used when omitted.
        renderer: Collaborator turning the assembled document into an artifact.
    """

    output_path: Path = DEFAULT_OUTPUT_PATH
    placeholder_pattern: Optional[str] = DEFAULT_PLACEHOLDER_PATTERN
    default_state_policy: StatePolicy = StatePolicy.CLEAR
    resource_root: Optional[Path] = None
    renderer: "DocumentRenderer" = field(default_factory=_default_renderer)

    def __post_init__(self) -> None:
        self.output_path = Path(self.output_path)
        if self.resource_root is not None:
            self.resource_root = Path(self.resource_root)
        if not isinstance(self.default_state_policy, StatePolicy):
            self.default_state_policy = StatePolicy(self.default_state_policy)
        logger.debug("Documentation output path: %s", self.output_path)
