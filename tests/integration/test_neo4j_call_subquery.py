"""Verify the CALL {} manual page against a live Neo4j server.

Skipped unless ``NEO4J_URI`` points at a server; ``NEO4J_USER``,
``NEO4J_PASSWORD`` and ``NEO4J_IMPORT_DIR`` are read as well.
"""

import importlib.util
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from querydoc.base import QueryDoc
from querydoc.builder import DocBuilder
from querydoc.config import DocumentationConfig

pytest.importorskip("neo4j")
pytest.importorskip("rich")

pytestmark = pytest.mark.skipif("NEO4J_URI" not in os.environ, reason="NEO4J_URI is not set")

EXAMPLE_PATH = Path(__file__).parents[2] / "docs" / "examples" / "call_subquery.py"


def connection_params() -> "dict[str, Any]":
    params: dict[str, Any] = {
        "uri": os.environ["NEO4J_URI"],
        "auth": (os.environ.get("NEO4J_USER", "neo4j"), os.environ.get("NEO4J_PASSWORD", "password")),
    }
    if import_dir := os.environ.get("NEO4J_IMPORT_DIR"):
        params["import_dir"] = import_dir
    return params


@pytest.fixture
def neo4j_engine() -> Generator[Any, None, None]:
    from querydoc.adapters.neo4j import Neo4jEngine

    with Neo4jEngine(connection_params()) as engine:
        engine.execute("MATCH (n) DETACH DELETE n")
        yield engine
        engine.execute("MATCH (n) DETACH DELETE n")


def test_neo4j_snapshot_round_trip(neo4j_engine: Any) -> None:
    neo4j_engine.run_script("CREATE (:Person {name: 'Alice'})-[:FRIEND_OF {since: 2001}]->(:Person {name: 'Bob'})")
    baseline = neo4j_engine.snapshot()
    neo4j_engine.execute("MATCH (n) DETACH DELETE n")

    neo4j_engine.restore(baseline)

    result = neo4j_engine.execute(
        "MATCH (a:Person)-[r:FRIEND_OF]->(b:Person) RETURN a.name AS a, r.since AS since, b.name AS b"
    )
    assert result.rows == [{"a": "Alice", "since": 2001, "b": "Bob"}]
    leftovers = neo4j_engine.execute("MATCH (n) WHERE n.__querydoc_snapshot_id IS NOT NULL RETURN n")
    assert leftovers.is_empty()


def test_neo4j_error_codes(neo4j_engine: Any) -> None:
    from querydoc.exceptions import ExecutionError

    with pytest.raises(ExecutionError) as exc_info:
        neo4j_engine.execute("RETURN 1/0")
    assert "/ by zero" in exc_info.value.message
    assert exc_info.value.code is not None


@pytest.mark.skipif("NEO4J_IMPORT_DIR" not in os.environ, reason="NEO4J_IMPORT_DIR is not set")
def test_call_subquery_page(neo4j_engine: Any, tmp_path: Path) -> None:
    spec = importlib.util.spec_from_file_location("call_subquery_example", EXAMPLE_PATH)
    assert spec is not None
    assert spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    config = DocumentationConfig(output_path=tmp_path)
    document = module.build_call_subquery_doc(DocBuilder(config))

    artifact = QueryDoc(config).verify(document, neo4j_engine)

    assert artifact == tmp_path / "query-call-subquery.json"
    assert (tmp_path / "csv-files" / "artists.csv").exists()
