"""Neo4j query engine backed by the official ``neo4j`` driver.

Queries run in auto-commit sessions, which ``CALL { ... } IN TRANSACTIONS``
requires. A snapshot is a copy of every node and relationship; restoring it
empties the database and recreates the copy, so examples see exactly the
seeded graph again.
"""

import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from typing_extensions import NotRequired, TypedDict

from querydoc.engine import QueryResult
from querydoc.exceptions import ExecutionError, ImproperConfigurationError, MissingDependencyError
from querydoc.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from neo4j import Driver

__all__ = ("GraphSnapshot", "Neo4jConnectionParams", "Neo4jEngine")

logger = get_logger("adapters.neo4j")

SNAPSHOT_KEY = "__querydoc_snapshot_id"

_EXPORT_NODES = "MATCH (n) RETURN elementId(n) AS id, labels(n) AS labels, properties(n) AS props"
_EXPORT_RELATIONSHIPS = (
    "MATCH (a)-[r]->(b) RETURN elementId(a) AS start, elementId(b) AS end, type(r) AS type, properties(r) AS props"
)
_DELETE_ALL = "MATCH (n) DETACH DELETE n"


class Neo4jConnectionParams(TypedDict, total=False):
    """Neo4j connection parameters."""

    uri: str
    auth: NotRequired["tuple[str, str]"]
    database: NotRequired[str]
    import_dir: NotRequired[str]


class GraphSnapshot:
    """Nodes and relationships of the graph at one point in time."""

    __slots__ = ("nodes", "relationships")

    def __init__(self, nodes: "list[dict[str, Any]]", relationships: "list[dict[str, Any]]") -> None:
        self.nodes = nodes
        self.relationships = relationships

    def __repr__(self) -> str:
        return f"GraphSnapshot(nodes={len(self.nodes)}, relationships={len(self.relationships)})"


def _quote(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def _statistics(counters: Any) -> "dict[str, int]":
    names = (
        "nodes_created",
        "nodes_deleted",
        "relationships_created",
        "relationships_deleted",
        "properties_set",
        "labels_added",
        "labels_removed",
    )
    return {name: getattr(counters, name) for name in names if getattr(counters, name, 0)}


class Neo4jEngine:
    """Runs example queries on a Neo4j database.

    Args:
        connection_params: ``uri`` plus optional ``auth``, ``database`` and
            ``import_dir``. ``import_dir`` is the server's import directory;
            files referenced by examples are copied there before they run.
        driver: An already created driver, used instead of ``connection_params``.
    """

    __slots__ = ("_driver", "_owns_driver", "_staged", "database", "import_dir")

    def __init__(
        self,
        connection_params: "Optional[Union[Neo4jConnectionParams, dict[str, Any]]]" = None,
        driver: "Optional[Driver]" = None,
    ) -> None:
        params = dict(connection_params or {})
        self.database: Optional[str] = params.get("database")
        import_dir = params.get("import_dir")
        self.import_dir: Optional[Path] = Path(import_dir) if import_dir else None
        self._staged: list[Path] = []
        if driver is not None:
            self._driver: Optional[Driver] = driver
            self._owns_driver = False
            return
        if "uri" not in params:
            msg = "Neo4jEngine needs a 'uri' connection parameter or a driver"
            raise ImproperConfigurationError(msg)
        try:
            from neo4j import GraphDatabase
        except ImportError as exc:
            raise MissingDependencyError(package="neo4j") from exc
        self._driver = GraphDatabase.driver(params["uri"], auth=params.get("auth"))
        self._owns_driver = True

    @property
    def driver(self) -> "Driver":
        if self._driver is None:
            msg = "Neo4j engine is closed"
            raise ImproperConfigurationError(msg)
        return self._driver

    def _run(self, query: str, parameters: "Optional[dict[str, Any]]" = None) -> QueryResult:
        from neo4j.exceptions import Neo4jError

        try:
            with self.driver.session(database=self.database) as session:
                result = session.run(query, parameters or {})
                keys = list(result.keys())
                rows = [record.data() for record in result]
                summary = result.consume()
        except Neo4jError as exc:
            raise ExecutionError(exc.message or str(exc), query=query, code=exc.code) from exc
        return QueryResult(keys, rows, _statistics(summary.counters))

    def execute(self, query: str) -> QueryResult:
        return self._run(query)

    def run_script(self, script: str) -> None:
        self._run(script)

    def snapshot(self) -> GraphSnapshot:
        nodes = self._run(_EXPORT_NODES).rows
        relationships = self._run(_EXPORT_RELATIONSHIPS).rows
        return GraphSnapshot(nodes, relationships)

    def restore(self, snapshot: GraphSnapshot) -> None:
        self._run(_DELETE_ALL)
        for node in snapshot.nodes:
            labels = "".join(f":{_quote(label)}" for label in node["labels"])
            self._run(
                f"CREATE (n{labels}) SET n = $props, n.{SNAPSHOT_KEY} = $id",
                {"props": node["props"], "id": node["id"]},
            )
        for rel in snapshot.relationships:
            self._run(
                f"MATCH (a {{{SNAPSHOT_KEY}: $start}}), (b {{{SNAPSHOT_KEY}: $end}}) "
                f"CREATE (a)-[r:{_quote(rel['type'])}]->(b) SET r = $props",
                {"start": rel["start"], "end": rel["end"], "props": rel["props"]},
            )
        self._run(f"MATCH (n) REMOVE n.{SNAPSHOT_KEY}")
        logger.debug("Restored %r", snapshot)

    def describe_state(self) -> str:
        """List nodes and relationships, one per line."""
        snapshot = self.snapshot()
        names = {}
        lines = []
        for index, node in enumerate(snapshot.nodes):
            names[node["id"]] = f"n{index}"
            labels = "".join(f":{label}" for label in node["labels"])
            lines.append(f"(n{index}{labels} {node['props']!r})")
        lines.extend(
            f"({names[rel['start']]})-[:{rel['type']}]->({names[rel['end']]})" for rel in snapshot.relationships
        )
        return "\n".join(lines)

    def stage_resource(self, path: Path) -> None:
        """Copy ``path`` into the server import directory, when one is configured."""
        if self.import_dir is None:
            logger.debug("No import directory configured; %s is used in place", path)
            return
        target = self.import_dir / path.name
        shutil.copy2(path, target)
        self._staged.append(target)

    def close(self) -> None:
        for target in self._staged:
            target.unlink(missing_ok=True)
        self._staged.clear()
        if self._driver is not None and self._owns_driver:
            self._driver.close()
        self._driver = None

    def __enter__(self) -> "Neo4jEngine":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()
