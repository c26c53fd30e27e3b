"""Staging of input files referenced by example queries.

Examples such as ``LOAD CSV FROM '@csvFile'`` read fixtures from disk. The
materializer writes them below a scratch root before the run and removes
everything it created once the run is over, whether or not it succeeded.
"""

import csv
import shutil
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from types import TracebackType
from typing import Any, Optional

from querydoc.exceptions import ResourceError
from querydoc.utils.logging import get_logger

__all__ = ("ResourceMaterializer", "StagedResource")

logger = get_logger("resources")


def _delete_local_path(resolved: Path) -> None:
    if resolved.is_dir():
        shutil.rmtree(resolved)
    elif resolved.exists():
        resolved.unlink()


class StagedResource:
    """A file written by the materializer, remembered for emission."""

    __slots__ = ("name", "path")

    def __init__(self, name: str, path: Path) -> None:
        self.name = name
        self.path = path

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def __repr__(self) -> str:
        return f"StagedResource({self.name!r})"


class ResourceMaterializer:
    """Creates directories and delimited files for examples.

    Args:
        root: Directory to stage into. When omitted a temporary directory is
            created on first use and deleted by :meth:`cleanup`.
    """

    __slots__ = ("_created", "_owns_root", "_root", "_staged")

    def __init__(self, root: "Optional[Path]" = None) -> None:
        self._root = Path(root) if root is not None else None
        self._owns_root = root is None
        self._created: list[Path] = []
        self._staged: list[StagedResource] = []

    @property
    def root(self) -> Path:
        if self._root is None:
            self._root = Path(tempfile.mkdtemp(prefix="querydoc-"))
            logger.debug("Created resource root %s", self._root)
        return self._root

    @property
    def staged(self) -> "tuple[StagedResource, ...]":
        return tuple(self._staged)

    def create_dir(self, name: str) -> Path:
        """Create ``name`` below the root and return its path."""
        directory = self._resolve(name, self.root)
        try:
            existed = directory.exists()
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Could not create resource directory {directory}: {exc}"
            raise ResourceError(msg) from exc
        if not existed:
            self._created.append(directory)
        return directory

    def write_delimited_file(
        self,
        name: str,
        rows: "Iterable[Sequence[Any]]",
        directory: "Optional[Path]" = None,
        delimiter: str = ",",
    ) -> Path:
        """Write ``rows`` as a delimited text file.

        Args:
            name: File name, relative to ``directory``.
            rows: Records to write, one sequence of fields per line.
            directory: Target directory, the root when omitted.
            delimiter: Field separator.

        Returns:
            Path of the written file.
        """
        base = directory if directory is not None else self.root
        path = self._resolve(name, base)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as handle:
                writer = csv.writer(handle, delimiter=delimiter, lineterminator="\n")
                writer.writerows(rows)
        except OSError as exc:
            msg = f"Could not write resource file {path}: {exc}"
            raise ResourceError(msg) from exc
        self._created.append(path)
        self._staged.append(StagedResource(path.relative_to(self.root.resolve()).as_posix(), path))
        logger.debug("Staged resource %s", path)
        return path

    def cleanup(self) -> None:
        """Remove everything this materializer created."""
        if self._owns_root and self._root is not None:
            _delete_local_path(self._root)
            self._root = None
        else:
            for path in reversed(self._created):
                _delete_local_path(path)
        self._created.clear()
        self._staged.clear()

    def _resolve(self, name: str, base: Path) -> Path:
        path = (base / name).resolve()
        root = self.root.resolve()
        if path != root and root not in path.parents:
            msg = f"Resource {name!r} resolves outside of {root}"
            raise ResourceError(msg)
        return path

    def __enter__(self) -> "ResourceMaterializer":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.cleanup()
