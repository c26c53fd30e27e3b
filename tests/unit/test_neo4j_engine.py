"""Unit tests for the Neo4j engine with a mocked driver."""

from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from querydoc.adapters.neo4j import GraphSnapshot, Neo4jEngine
from querydoc.exceptions import ImproperConfigurationError


def make_driver(*results: "tuple[list[str], list[dict[str, Any]], dict[str, int]]") -> MagicMock:
    """Driver whose session returns ``results`` one per ``run`` call."""
    session = MagicMock()
    driver = MagicMock()
    driver.session.return_value.__enter__.return_value = session

    mocked = []
    for keys, rows, counters in results:
        result = MagicMock()
        result.keys.return_value = keys
        result.__iter__.return_value = iter([SimpleNamespace(data=lambda row=row: row) for row in rows])
        result.consume.return_value = SimpleNamespace(counters=SimpleNamespace(**counters))
        mocked.append(result)
    session.run.side_effect = mocked
    return driver


def run_calls(driver: MagicMock) -> "list[str]":
    session = driver.session.return_value.__enter__.return_value
    return [call.args[0] for call in session.run.call_args_list]


def test_neo4j_engine_requires_uri() -> None:
    with pytest.raises(ImproperConfigurationError, match="uri"):
        Neo4jEngine({})


def test_neo4j_execute_maps_records_and_counters() -> None:
    pytest.importorskip("neo4j")
    driver = make_driver((["x", "y"], [{"x": 0, "y": 0}, {"x": 1, "y": 10}], {"nodes_created": 2, "labels_added": 0}))
    engine = Neo4jEngine({"database": "docs"}, driver=driver)

    result = engine.execute("UNWIND [0, 1] AS x RETURN x, x * 10 AS y")

    assert result.columns == ("x", "y")
    assert result.rows == [{"x": 0, "y": 0}, {"x": 1, "y": 10}]
    assert result.statistics == {"nodes_created": 2}
    driver.session.assert_called_with(database="docs")


def test_neo4j_snapshot_and_restore() -> None:
    """Test restore empties the graph and recreates every exported node and relationship."""
    pytest.importorskip("neo4j")
    nodes = [
        {"id": "4:a", "labels": ["Person", "Child"], "props": {"name": "Alice"}},
        {"id": "4:b", "labels": ["Person"], "props": {"name": "Bob"}},
    ]
    relationships = [{"start": "4:a", "end": "4:b", "type": "FRIEND_OF", "props": {}}]
    driver = make_driver(
        (["id", "labels", "props"], nodes, {}),
        (["start", "end", "type", "props"], relationships, {}),
        *[([], [], {})] * 5,
    )
    engine = Neo4jEngine(driver=driver, connection_params={})

    snapshot = engine.snapshot()
    assert isinstance(snapshot, GraphSnapshot)
    assert snapshot.nodes == nodes
    assert snapshot.relationships == relationships

    engine.restore(snapshot)

    queries = run_calls(driver)[2:]
    assert queries[0] == "MATCH (n) DETACH DELETE n"
    assert queries[1].startswith("CREATE (n:`Person`:`Child`) SET n = $props")
    assert queries[2].startswith("CREATE (n:`Person`) SET n = $props")
    assert "CREATE (a)-[r:`FRIEND_OF`]->(b)" in queries[3]
    assert queries[4] == "MATCH (n) REMOVE n.__querydoc_snapshot_id"


def test_neo4j_stage_resource_and_close(tmp_path: Path) -> None:
    import_dir = tmp_path / "import"
    import_dir.mkdir()
    source = tmp_path / "artists.csv"
    source.write_text("1,ABBA,1992\n", encoding="utf-8")
    driver = MagicMock()
    engine = Neo4jEngine({"import_dir": str(import_dir)}, driver=driver)

    engine.stage_resource(source)
    assert (import_dir / "artists.csv").read_text(encoding="utf-8") == "1,ABBA,1992\n"

    engine.close()
    assert not (import_dir / "artists.csv").exists()
    driver.close.assert_not_called()
    with pytest.raises(ImproperConfigurationError, match="closed"):
        _ = engine.driver


def test_neo4j_stage_resource_without_import_dir(tmp_path: Path) -> None:
    source = tmp_path / "artists.csv"
    source.write_text("1\n", encoding="utf-8")
    engine = Neo4jEngine(driver=MagicMock())
    engine.stage_resource(source)
    assert source.exists()
