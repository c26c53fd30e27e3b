"""Execution of documentation examples against a shared database.

The driver seeds the database once, snapshots it, then runs every example in
declaration order. Each assertion must hold before the next example starts;
the first mismatch aborts the run with
:class:`~querydoc.exceptions.DocumentationAssertionFailedError`.
"""

import logging
import time
import uuid
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from querydoc.document import StateView
from querydoc.engine import execute_query
from querydoc.examples import Example, StatePolicy
from querydoc.exceptions import (
    DocumentationAssertionFailedError,
    ExecutionError,
    ImproperConfigurationError,
    InitializationError,
    ResourceError,
)
from querydoc.protocols import ResourceStager, StateDescriber
from querydoc.utils.logging import bind_run_id, get_logger, log_with_context

if TYPE_CHECKING:
    from querydoc.document import Document
    from querydoc.engine import QueryOutcome
    from querydoc.protocols import QueryEngine

__all__ = ("ExecutionDriver", "ExecutionReport")

logger = get_logger("driver")


class ExecutionReport:
    """Summary of a completed run."""

    __slots__ = ("document_slug", "elapsed", "examples_run", "outcomes", "resets", "run_id")

    def __init__(self, document_slug: str, run_id: str) -> None:
        self.document_slug = document_slug
        self.run_id = run_id
        self.examples_run = 0
        self.resets = 0
        self.elapsed = 0.0
        self.outcomes: list[QueryOutcome] = []

    def __repr__(self) -> str:
        return (
            f"ExecutionReport({self.document_slug!r}, examples_run={self.examples_run}, "
            f"resets={self.resets}, elapsed={self.elapsed:.3f})"
        )


class ExecutionDriver:
    """Runs the examples of a document in order against one engine.

    Args:
        engine: The shared database. It must be empty; the driver seeds it.
    """

    __slots__ = ("_baseline", "_seeded", "engine")

    def __init__(self, engine: "QueryEngine") -> None:
        self.engine = engine
        self._baseline: Any = None
        self._seeded = False

    def initialize(self, init_queries: "Sequence[str]") -> None:
        """Run the initialization queries once and capture the baseline snapshot.

        Raises:
            InitializationError: A seeding query failed.
            ImproperConfigurationError: The engine was already seeded.
        """
        if self._seeded:
            msg = "Database already initialized for this driver"
            raise ImproperConfigurationError(msg)
        for index, script in enumerate(init_queries, start=1):
            try:
                self.engine.run_script(script)
            except ExecutionError as exc:
                msg = f"Initialization query #{index} failed: {exc.message}"
                raise InitializationError(msg) from exc
        self._baseline = self.engine.snapshot()
        self._seeded = True
        logger.debug("Seeded database with %d initialization query(ies)", len(init_queries))

    def reset(self) -> None:
        """Restore the snapshot taken right after initialization."""
        if not self._seeded:
            msg = "Cannot reset before the database is initialized"
            raise ImproperConfigurationError(msg)
        self.engine.restore(self._baseline)

    def run(self, document: "Document") -> ExecutionReport:
        """Seed the database and execute every example of ``document``.

        Returns:
            Report of the run; outcomes are also attached to each example.

        Raises:
            InitializationError: Seeding failed.
            DocumentationAssertionFailedError: An example's outcome did not match.
            ResourceError: A file an example depends on is missing.
        """
        report = ExecutionReport(document.slug, uuid.uuid4().hex)
        start = time.perf_counter()
        with bind_run_id(report.run_id):
            logger.info("Verifying document %r", document.slug)
            self.initialize(document.init_queries)
            try:
                for node, section_path in document.walk():
                    if isinstance(node, Example):
                        self._run_example(node, section_path, report)
                    elif isinstance(node, StateView):
                        self._capture_state(node)
            except DocumentationAssertionFailedError as exc:
                logger.error("Document %r failed at example #%d: %s", document.slug, exc.position, exc.reason)
                raise
            finally:
                report.elapsed = time.perf_counter() - start
            log_with_context(
                logger,
                logging.INFO,
                "Document verified",
                document=document.slug,
                examples=report.examples_run,
                resets=report.resets,
                elapsed=report.elapsed,
            )
        return report

    def _run_example(self, example: Example, section_path: "tuple[str, ...]", report: ExecutionReport) -> None:
        self._stage_resources(example)
        query = example.resolved_query
        logger.debug("Running example #%d", example.position)
        outcome = execute_query(self.engine, query)
        example.record(outcome)
        report.outcomes.append(outcome)
        report.examples_run += 1

        mismatch = example.assertion.evaluate(outcome)
        if mismatch is not None:
            raise DocumentationAssertionFailedError(
                example.position, query, mismatch.reason, section_path=section_path, diff=mismatch.diff
            )

        if example.state_policy is StatePolicy.CLEAR:
            self.reset()
            report.resets += 1
            logger.debug("Restored baseline after example #%d", example.position)

    def _stage_resources(self, example: Example) -> None:
        for resource in example.resources:
            if not resource.exists():
                msg = f"Example #{example.position} depends on missing file {resource}"
                raise ResourceError(msg)
            if isinstance(self.engine, ResourceStager):
                self.engine.stage_resource(resource)

    def _capture_state(self, view: StateView) -> None:
        if isinstance(self.engine, StateDescriber):
            view.record(self.engine.describe_state())
        else:
            logger.debug("Engine %s cannot describe its state; leaving view empty", type(self.engine).__name__)

    @property
    def baseline(self) -> Any:
        return self._baseline
