from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable

import pytest

from querydoc.engine import QueryResult
from querydoc.exceptions import ExecutionError

here = Path(__file__).parent
root_path = here.parent

Handler = Callable[[dict[str, Any]], "QueryResult | None"]


class FakeEngine:
    """In-memory engine whose queries are Python callables over a dict of lists.

    Each registered query text maps to a handler receiving the mutable state.
    Handlers return a ``QueryResult`` (or ``None`` for no rows) and may raise
    ``ExecutionError`` to simulate a failing query. Writes a handler makes
    before raising stay in the state, like batches the engine already committed.
    """

    def __init__(self) -> None:
        self.state: dict[str, Any] = {}
        self.handlers: dict[str, Handler] = {}
        self.executed: list[str] = []
        self.scripts: list[str] = []
        self.restores = 0
        self.closed = False

    def on(self, query: str, handler: Handler) -> FakeEngine:
        self.handlers[query] = handler
        return self

    def execute(self, query: str) -> QueryResult:
        self.executed.append(query)
        handler = self.handlers.get(query)
        if handler is None:
            raise ExecutionError(f"Unknown query: {query}")
        result = handler(self.state)
        return result if result is not None else QueryResult()

    def run_script(self, script: str) -> None:
        self.scripts.append(script)
        handler = self.handlers.get(script)
        if handler is None:
            raise ExecutionError(f"Unknown script: {script}")
        handler(self.state)

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.state)

    def restore(self, snapshot: dict[str, Any]) -> None:
        self.state = copy.deepcopy(snapshot)
        self.restores += 1

    def describe_state(self) -> str:
        return ", ".join(f"{key}={value!r}" for key, value in sorted(self.state.items()))

    def close(self) -> None:
        self.closed = True


def seed_people(state: dict[str, Any]) -> None:
    state["people"] = ["Alice", "Bob"]


def add_person(name: str) -> Handler:
    def handler(state: dict[str, Any]) -> None:
        state["people"].append(name)

    return handler


def list_people(state: dict[str, Any]) -> QueryResult:
    return QueryResult(["name"], [{"name": name} for name in state["people"]])


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Engine seeded by ``SEED`` with two people; ``ADD <name>`` and ``LIST`` are predefined."""
    engine = FakeEngine()
    engine.on("SEED", seed_people)
    engine.on("LIST", list_people)
    for name in ("Carol", "Dave", "Erin"):
        engine.on(f"ADD {name}", add_person(name))
    return engine


class StagingFakeEngine(FakeEngine):
    """Fake engine that also records the input files staged for it."""

    def __init__(self) -> None:
        super().__init__()
        self.staged: list[Path] = []

    def stage_resource(self, path: Path) -> None:
        self.staged.append(path)


@pytest.fixture
def staging_engine() -> StagingFakeEngine:
    engine = StagingFakeEngine()
    engine.on("SEED", seed_people)
    return engine
