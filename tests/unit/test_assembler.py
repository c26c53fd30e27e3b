"""Unit tests for document assembly, rendering and emission."""

from pathlib import Path
from typing import Any

import pytest

from querydoc._serialization import decode_json
from querydoc.assembler import (
    AssembledDocument,
    Assembler,
    CalloutBlock,
    ErrorBlock,
    ParagraphBlock,
    QueryBlock,
    ResultTableBlock,
    SectionBlock,
    StateViewBlock,
    emit,
)
from querydoc.assertions import expect_error, expect_rows
from querydoc.base import QueryDoc
from querydoc.builder import DocBuilder
from querydoc.config import DocumentationConfig
from querydoc.driver import ExecutionDriver
from querydoc.engine import QueryResult
from querydoc.examples import Presentation, QueryTextReplacement, StatePolicy
from querydoc.exceptions import (
    DocumentationAssertionFailedError,
    ExecutionError,
    ImproperConfigurationError,
    RendererError,
)
from querydoc.renderers import JsonRenderer


class RecordingRenderer:
    def __init__(self) -> None:
        self.rendered: list[AssembledDocument] = []

    def render(self, document: AssembledDocument, output_path: Path) -> Path:
        self.rendered.append(document)
        return output_path / f"{document.slug}.txt"


class BrokenRenderer:
    def render(self, document: AssembledDocument, output_path: Path) -> Path:
        raise KeyError("template")


def created_nodes(state: "dict[str, Any]") -> QueryResult:
    state["people"].append("Carol")
    return QueryResult(statistics={"nodes_created": 1, "properties_set": 1})


def divide_by_zero(state: "dict[str, Any]") -> None:
    raise ExecutionError("/ by zero", code="ArithmeticError")


def build_people_doc(config: "DocumentationConfig | None" = None) -> DocBuilder:
    builder = DocBuilder(config)
    builder.doc("People", "people")
    builder.init_queries("SEED")
    builder.synopsis("Managing people.")
    with builder.section("Reading", "reading"):
        builder.p("List everyone.")
        builder.query("LIST", expect_rows({"name": "Alice"}, {"name": "Bob"}))
        with builder.note():
            builder.p("Order is not guaranteed.")
    with builder.section("Writing", "writing"):
        with builder.section("Creating", "creating"):
            builder.query("CREATE Carol", state_policy=StatePolicy.KEEP)
            builder.state_view("After creating Carol")
        builder.query("RETURN 1/0", expect_error("/ by zero"), presentation=Presentation.ERROR_ONLY)
        builder.query("LIST", presentation=Presentation.QUERY_ONLY)
    return builder


@pytest.fixture
def people_engine(fake_engine):
    fake_engine.on("CREATE Carol", created_nodes)
    fake_engine.on("RETURN 1/0", divide_by_zero)
    return fake_engine


def test_assembly_preserves_declaration_order(people_engine) -> None:
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)

    assembled = Assembler(document).assemble()

    assert assembled.title == "People"
    assert assembled.synopsis == "Managing people."
    kinds = [type(block).__name__ for block in assembled.iter_blocks()]
    assert kinds == [
        "ParagraphBlock",
        "SectionBlock",
        "ParagraphBlock",
        "QueryBlock",
        "CalloutBlock",
        "SectionBlock",
        "SectionBlock",
        "QueryBlock",
        "StateViewBlock",
        "QueryBlock",
        "QueryBlock",
    ]
    positions = [block.position for block in assembled.iter_blocks() if isinstance(block, QueryBlock)]
    assert positions == [1, 2, 3, 4]


def test_section_levels(people_engine) -> None:
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)

    assembled = Assembler(document).assemble()

    levels = {block.slug: block.level for block in assembled.iter_blocks() if isinstance(block, SectionBlock)}
    assert levels == {"reading": 1, "writing": 1, "creating": 2}


def test_presentations(people_engine) -> None:
    """Test each presentation mode decides what follows the query text."""
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)

    queries = [block for block in Assembler(document).assemble().iter_blocks() if isinstance(block, QueryBlock)]
    listing, create, division, query_only = queries

    assert isinstance(listing.outcome, ResultTableBlock)
    assert listing.outcome.columns == ["name"]
    assert listing.outcome.rows == [["Alice"], ["Bob"]]
    assert listing.outcome.summary == "Rows: 2"

    assert isinstance(create.outcome, ResultTableBlock)
    assert create.outcome.summary == "Rows: 0\nNodes created: 1, Properties set: 1"

    assert isinstance(division.outcome, ErrorBlock)
    assert division.outcome.message == "/ by zero"
    assert division.outcome.code == "ArithmeticError"

    assert query_only.query == "LIST"
    assert query_only.outcome is None


def test_callouts_and_state_views(people_engine) -> None:
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)

    blocks = Assembler(document).assemble().iter_blocks()
    callout = next(block for block in blocks if isinstance(block, CalloutBlock))
    view = next(block for block in blocks if isinstance(block, StateViewBlock))

    assert callout.kind == "note"
    assert callout.paragraphs == [ParagraphBlock(text="Order is not guaranteed.")]
    assert view.caption == "After creating Carol"
    assert view.contents is not None
    assert "Carol" in view.contents


def test_substituted_query_text_is_assembled(fake_engine) -> None:
    fake_engine.on("RETURN 'file:///artists.csv'", lambda state: QueryResult(["v"], [{"v": 1}]))
    builder = DocBuilder()
    builder.doc("Replace", "replace")
    builder.init_queries("SEED")
    builder.add_query("RETURN '@csvFile'", replacements=[QueryTextReplacement("@csvFile", "file:///artists.csv")])
    document = builder.build()
    ExecutionDriver(fake_engine).run(document)

    block = Assembler(document).assemble().iter_blocks()[0]

    assert isinstance(block, QueryBlock)
    assert block.query == "RETURN 'file:///artists.csv'"


def test_unexecuted_example_cannot_be_assembled() -> None:
    builder = DocBuilder()
    builder.doc("Pending", "pending")
    builder.query("LIST")
    document = builder.build()

    with pytest.raises(ImproperConfigurationError, match="has not been executed"):
        Assembler(document).assemble()


def test_emit_hands_document_to_renderer(people_engine, tmp_path: Path) -> None:
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)
    renderer = RecordingRenderer()

    artifact = emit(document, renderer, tmp_path)

    assert artifact == tmp_path / "people.txt"
    assert renderer.rendered[0].slug == "people"


def test_renderer_failure_is_wrapped(people_engine, tmp_path: Path) -> None:
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)

    with pytest.raises(RendererError, match="BrokenRenderer failed for 'people'") as exc_info:
        emit(document, BrokenRenderer(), tmp_path)

    assert isinstance(exc_info.value.__cause__, KeyError)


def test_json_renderer_writes_document(people_engine, tmp_path: Path) -> None:
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)

    artifact = emit(document, JsonRenderer(), tmp_path)

    assert artifact == tmp_path / "people.json"
    raw = decode_json(artifact.read_bytes())
    assert raw["title"] == "People"
    assert raw["children"][0] == {"type": "paragraph", "text": "Managing people.", "role": "synopsis"}
    reading = raw["children"][1]
    assert reading["type"] == "section"
    assert reading["level"] == 1
    listing = reading["children"][1]
    assert listing["type"] == "query"
    assert listing["outcome"]["type"] == "result_table"
    assert listing["outcome"]["rows"] == [["Alice"], ["Bob"]]


def test_json_renderer_reports_unwritable_output(people_engine, tmp_path: Path) -> None:
    document = build_people_doc().build()
    ExecutionDriver(people_engine).run(document)
    blocker = tmp_path / "file"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(RendererError):
        emit(document, JsonRenderer(), blocker / "docs")


def test_verify_runs_emits_and_cleans_up(fake_engine, tmp_path: Path) -> None:
    fake_engine.on("LOAD file:///artists.csv", lambda state: QueryResult(["n"], [{"n": 2}]))
    config = DocumentationConfig(output_path=tmp_path / "out")
    builder = DocBuilder(config)
    builder.doc("Import", "import")
    builder.init_queries("SEED")
    csv_path = builder.csv_file("artists.csv", [[1, "ABBA"], [2, "Roxette"]])
    builder.add_query(
        "LOAD @csvFile",
        expect_rows({"n": 2}),
        replacements=[QueryTextReplacement("@csvFile", "file:///artists.csv", csv_path)],
    )
    document = builder.build()

    artifact = QueryDoc(config).verify(document, fake_engine)

    assert artifact == tmp_path / "out" / "import.json"
    assert (tmp_path / "out" / "artists.csv").read_text(encoding="utf-8") == "1,ABBA\n2,Roxette\n"
    assert not csv_path.exists()
    assert not fake_engine.closed


def test_verify_cleans_up_after_failure(fake_engine, tmp_path: Path) -> None:
    config = DocumentationConfig(output_path=tmp_path / "out")
    builder = DocBuilder(config)
    builder.doc("Import", "import")
    builder.init_queries("SEED")
    csv_path = builder.csv_file("artists.csv", [[1, "ABBA"]])
    builder.query("LIST", expect_rows({"name": "Nobody"}))
    document = builder.build()

    with pytest.raises(DocumentationAssertionFailedError):
        QueryDoc(config).verify(document, fake_engine)

    assert not csv_path.exists()
    assert not (tmp_path / "out").exists()
