"""querydoc: query-language manual pages with verified examples."""

from querydoc import adapters, assertions, builder, document, driver, examples, exceptions, utils
from querydoc.__metadata__ import __version__
from querydoc.assembler import AssembledDocument, Assembler, emit
from querydoc.assertions import (
    ErrorAssertions,
    NoAssertions,
    ResultAssertions,
    expect_empty,
    expect_error,
    expect_rows,
    rows_equal,
)
from querydoc.base import QueryDoc
from querydoc.builder import DocBuilder
from querydoc.config import DocumentationConfig
from querydoc.document import Callout, CalloutKind, Document, Paragraph, Section, StateView
from querydoc.driver import ExecutionDriver, ExecutionReport
from querydoc.engine import QueryOutcome, QueryResult
from querydoc.examples import Example, ExampleRegistry, Presentation, QueryTextReplacement, StatePolicy
from querydoc.exceptions import (
    DocumentationAssertionFailedError,
    DuplicateIdentifierError,
    ExecutionError,
    QueryDocError,
    RendererError,
    UnresolvedPlaceholderError,
)
from querydoc.protocols import DocumentRenderer, QueryEngine
from querydoc.renderers import JsonRenderer
from querydoc.resources import ResourceMaterializer

__all__ = (
    "AssembledDocument",
    "Assembler",
    "Callout",
    "CalloutKind",
    "DocBuilder",
    "Document",
    "DocumentRenderer",
    "DocumentationAssertionFailedError",
    "DocumentationConfig",
    "DuplicateIdentifierError",
    "ErrorAssertions",
    "Example",
    "ExampleRegistry",
    "ExecutionDriver",
    "ExecutionError",
    "ExecutionReport",
    "JsonRenderer",
    "NoAssertions",
    "Paragraph",
    "Presentation",
    "QueryDoc",
    "QueryDocError",
    "QueryEngine",
    "QueryOutcome",
    "QueryResult",
    "QueryTextReplacement",
    "RendererError",
    "ResourceMaterializer",
    "ResultAssertions",
    "Section",
    "StatePolicy",
    "StateView",
    "UnresolvedPlaceholderError",
    "__version__",
    "adapters",
    "assertions",
    "builder",
    "document",
    "driver",
    "emit",
    "examples",
    "exceptions",
    "expect_empty",
    "expect_error",
    "expect_rows",
    "rows_equal",
    "utils",
)
