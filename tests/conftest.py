"""
Pytest fixtures for Formflow testing.

This module provides:
1. Test settings (environment variables set before anything reads them)
2. Actors as the upstream auth collaborator would supply them
3. Element tree builders
4. In-memory engine collaborators
5. An aiosqlite-backed session for repository tests
6. A TestClient over the full app for router tests
"""

import os
from typing import Any, AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("FORMFLOW_ENVIRONMENT", "testing")
os.environ.setdefault("FORMFLOW_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from formflow.config import get_settings  # noqa: E402
from formflow.core import database  # noqa: E402
from formflow.core.auth import Actor  # noqa: E402
from formflow.main import create_app  # noqa: E402
from formflow.models.contracts.forms import FormElement  # noqa: E402
from formflow.models.enums import ActorRole  # noqa: E402
from formflow.models.orm import Base  # noqa: E402
from formflow.services.approvals import ApprovalWorkflow  # noqa: E402
from formflow.services.button_dispatcher import ButtonDispatcher  # noqa: E402
from formflow.services.events import InMemoryEventSink  # noqa: E402
from formflow.services.memory_stores import (  # noqa: E402
    InMemoryApprovalStore,
    InMemoryDataProvider,
    InMemorySubmissionStore,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings for every test so monkeypatched env vars apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ==================== ACTORS ====================


@pytest.fixture
def requester() -> Actor:
    return Actor(id="user-requester")


@pytest.fixture
def reviewer() -> Actor:
    return Actor(id="user-reviewer", role=ActorRole.ADMIN)


@pytest.fixture
def overriding_requester() -> Actor:
    return Actor(id="user-requester", capabilities=frozenset({"approvals:override"}))


# ==================== ELEMENT BUILDERS ====================


@pytest.fixture
def make_element() -> Callable[..., FormElement]:
    """Build an element from camelCase keys: make_element("text", "f1", name="title")."""

    def _make(element_type: str, element_id: str, **fields: Any) -> FormElement:
        return FormElement.model_validate({"id": element_id, "type": element_type, **fields})

    return _make


@pytest.fixture
def button_tree() -> Callable[..., list[FormElement]]:
    """A form with one required text field and one button configured by keyword."""

    def _build(**action: Any) -> list[FormElement]:
        return [
            FormElement.model_validate(
                {"id": "f_title", "type": "text", "name": "title", "label": "Title", "required": True}
            ),
            FormElement.model_validate(
                {"id": "btn", "type": "button", "label": "Go", "buttonAction": action}
            ),
        ]

    return _build


@pytest.fixture
def nested_tree_data() -> list[dict[str, Any]]:
    """section -> column -> section, with leaves at every level (persisted form)."""
    return [
        {
            "id": "sec_outer",
            "type": "section",
            "label": "Applicant",
            "description": "Who is asking",
            "elements": [
                {"id": "f_name", "type": "text", "name": "name", "label": "Name", "required": True},
                {
                    "id": "cols",
                    "type": "column",
                    "label": "Columns",
                    "gapSize": "medium",
                    "columns": [
                        {
                            "id": "col1_cols",
                            "elements": [
                                {
                                    "id": "sec_inner",
                                    "type": "section",
                                    "label": "Contact",
                                    "elements": [
                                        {
                                            "id": "f_email",
                                            "type": "email",
                                            "name": "email",
                                            "label": "Email",
                                            "validation": {"pattern": r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$"},
                                        },
                                    ],
                                },
                            ],
                        },
                        {
                            "id": "col2_cols",
                            "elements": [
                                {
                                    "id": "f_amount",
                                    "type": "number",
                                    "name": "amount",
                                    "label": "Amount",
                                    "validation": {"min": 0, "max": 10},
                                },
                            ],
                        },
                    ],
                },
            ],
        },
        {
            "id": "tabs1",
            "type": "tabs",
            "label": "More",
            "tabs": [
                {
                    "id": "tab1_tabs1",
                    "label": "Notes",
                    "elements": [
                        {"id": "f_notes", "type": "textarea", "name": "notes", "label": "Notes", "rows": 4},
                    ],
                },
            ],
        },
        {
            "id": "btn_submit",
            "type": "button",
            "label": "Submit",
            "buttonVariant": "primary",
            "buttonAction": {"type": "submit-form"},
        },
    ]


@pytest.fixture
def nested_tree(nested_tree_data) -> list[FormElement]:
    return [FormElement.model_validate(item) for item in nested_tree_data]


# ==================== ENGINE COLLABORATORS ====================


@pytest.fixture
def events() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def submission_store() -> InMemorySubmissionStore:
    return InMemorySubmissionStore()


@pytest.fixture
def approval_store() -> InMemoryApprovalStore:
    return InMemoryApprovalStore()


@pytest.fixture
def workflow(approval_store, events) -> ApprovalWorkflow:
    return ApprovalWorkflow(approval_store, events=events, settings=get_settings())


@pytest.fixture
def dispatcher(submission_store, workflow, events) -> ButtonDispatcher:
    return ButtonDispatcher(submission_store, workflow, events=events)


# ==================== DATABASE ====================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session on a fresh in-memory SQLite database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


# ==================== API ====================


@pytest.fixture
def data_provider() -> InMemoryDataProvider:
    return InMemoryDataProvider({
        "depts": [
            {"dept": "HR", "deptId": 1},
            {"dept": "IT", "deptId": 2},
            {"dept": "HR", "deptId": 1},
        ],
        "people": [
            {"name": "Carol", "age": 41, "city": "Leeds"},
            {"name": "alice", "age": None, "city": "York"},
            {"name": "Bob", "age": 9, "city": "leeds"},
            {"name": "Dave", "age": 30, "city": "Hull"},
        ],
    })


@pytest.fixture
def api_client(tmp_path, monkeypatch, data_provider, events) -> Generator[TestClient, None, None]:
    """
    TestClient over a fresh app and a file-backed SQLite database.

    Tables are created by the app's own startup; events land in the shared
    InMemoryEventSink fixture.
    """
    monkeypatch.setenv("FORMFLOW_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'formflow.db'}")
    monkeypatch.setenv("FORMFLOW_AUTO_CREATE_TABLES", "true")
    get_settings.cache_clear()
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_session_factory", None)

    app = create_app(data_provider=data_provider, event_sink=events)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-Id": "user-requester"}


@pytest.fixture
def reviewer_headers() -> dict[str, str]:
    return {"X-User-Id": "user-reviewer", "X-User-Role": "admin"}
