"""Test fixtures — in-memory document store and shared test data."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from prompt_library.core.optimizer import PromptOptimizer
from prompt_library.core.project_store import ProjectStore
from prompt_library.core.prompt_store import PromptStore
from prompt_library.db.client import DocumentStore
from prompt_library.db.models import ExecutionHistory, Project, ProjectSettings, Prompt


class InMemoryDocumentStore(DocumentStore):
    """Document store that keeps JSON round-tripped documents in a dict."""

    def __init__(self):
        super().__init__(Path("/nonexistent"))
        self.documents: dict[str, dict[str, Any]] = {}
        self.saves = 0
        self.fail_saves = False

    def load(self, name: str) -> dict[str, Any] | None:
        state = self.documents.get(name)
        return None if state is None else json.loads(json.dumps(state))

    def save(self, name: str, state: dict[str, Any]) -> None:
        if self.fail_saves:
            raise OSError("disk full")
        self.documents[name] = json.loads(json.dumps(state))
        self.saves += 1


@pytest.fixture
def mock_db() -> InMemoryDocumentStore:
    """Fresh in-memory document store for each test."""
    return InMemoryDocumentStore()


@pytest.fixture
def prompt_store(mock_db) -> PromptStore:
    return PromptStore(mock_db)


@pytest.fixture
def project_store(mock_db, prompt_store) -> ProjectStore:
    return ProjectStore(mock_db, prompt_store)


def ts(day: int, hour: int = 0) -> datetime:
    """A fixed UTC timestamp in January 2024."""
    return datetime(2024, 1, day, hour, tzinfo=timezone.utc)


def make_execution(prompt_id: str, model: str, tokens: int, cost: float, day: int) -> ExecutionHistory:
    return ExecutionHistory(
        prompt_id=prompt_id,
        model=model,
        tokens_used=tokens,
        estimated_cost=cost,
        executed_at=ts(day),
    )


@pytest.fixture
def sample_project() -> Project:
    return Project(
        id="proj-1",
        name="Support Bot",
        description="Prompts for the support assistant",
        prompt_ids=["p1", "p2"],
        created_at=ts(1),
        updated_at=ts(1),
        settings=ProjectSettings(default_model="claude-3-5-sonnet-20241022"),
    )


@pytest.fixture
def sample_prompts() -> list[Prompt]:
    """Two member prompts: P1 ran on haiku twice, P2 on sonnet once."""
    p1 = Prompt(
        id="p1",
        title="Greeting",
        content="Greet the customer warmly.",
        tags=["support", "tone"],
        usage_count=5,
        created_at=ts(1),
        updated_at=ts(2),
        execution_history=[
            make_execution("p1", "claude-3-5-haiku-20241022", 100, 0.001, 3),
            make_execution("p1", "claude-3-5-haiku-20241022", 200, 0.002, 5),
        ],
    )
    p2 = Prompt(
        id="p2",
        title="Escalation",
        content="Decide whether to escalate the ticket.",
        category="Analysis",
        usage_count=2,
        created_at=ts(1),
        updated_at=ts(2),
        execution_history=[
            make_execution("p2", "claude-3-5-sonnet-20241022", 1000, 0.03, 4),
        ],
    )
    return [p1, p2]


@pytest.fixture
def app(mock_db):
    """FastAPI test app with mocked dependencies."""
    from prompt_library.core.optimizer import get_optimizer
    from prompt_library.core.project_store import get_project_store
    from prompt_library.core.prompt_store import get_prompt_store
    from prompt_library.main import app as _app

    prompts = PromptStore(mock_db)
    projects = ProjectStore(mock_db, prompts)
    optimizer = PromptOptimizer(api_key=None)

    _app.dependency_overrides[get_prompt_store] = lambda: prompts
    _app.dependency_overrides[get_project_store] = lambda: projects
    _app.dependency_overrides[get_optimizer] = lambda: optimizer

    yield _app

    _app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """HTTP test client."""
    return TestClient(app)
