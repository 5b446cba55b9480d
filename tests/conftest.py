"""
Pytest configuration and shared fixtures.
"""

import pytest
from typing import Any, Dict

from jinder.api import create_app
from jinder.config import Settings
from jinder.database import get_session_factory, init_database
from jinder.logger import get_logger, reset_logger
from jinder.memory_store import MemoryJobStore
from jinder.store import SqlJobStore


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Route the global logger to a temp dir with console output off."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture
def valid_application() -> Dict[str, Any]:
    """Valid job application payload."""
    return {
        "company": "Acme",
        "position": "Software Engineer",
        "applicationDate": "2024-01-15",
        "location": "San Francisco, CA",
        "description": "Build distributed systems and user-facing products.",
        "salary": {"min": 120000, "max": 150000, "currency": "USD", "period": "annual"},
        "jobUrl": "https://careers.acme.example/jobs/123",
        "contactEmail": "recruiter@acme.example",
        "requirements": ["Python", "SQL"],
        "notes": "Referred by a friend",
    }


@pytest.fixture
def invalid_application() -> Dict[str, Any]:
    """Invalid job application (missing position and date)."""
    return {
        "company": "Acme",
        "location": "Remote",
    }


@pytest.fixture
def memory_store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture
def sql_store(tmp_path):
    engine = init_database(f"sqlite:///{tmp_path / 'jinder.db'}")
    store = SqlJobStore(get_session_factory(engine))
    yield store
    store.close()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store test runs against both implementations."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://")


@pytest.fixture
def app(store, settings):
    app = create_app(store=store, settings=settings)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def populated_store(store):
    """Store holding five applications across companies and statuses."""
    rows = [
        {"company": "Google", "position": "Software Engineer II", "applicationDate": "2024-01-15",
         "status": "interview", "location": "Mountain View, CA", "salary": "$180,000 - $220,000",
         "description": "Large-scale distributed systems"},
        {"company": "Microsoft", "position": "Frontend Developer", "applicationDate": "2024-01-22",
         "location": "Seattle, WA", "salary": "$165,000 - $195,000",
         "description": "React and TypeScript on Azure"},
        {"company": "Startup Inc", "position": "Full Stack Engineer", "applicationDate": "2024-01-08",
         "status": "offer", "location": "San Francisco, CA", "salary": 155000,
         "description": "Fintech startup, mentor juniors"},
        {"company": "Amazon", "position": "Software Development Engineer", "applicationDate": "2024-01-03",
         "status": "rejected", "location": "Austin, TX",
         "description": "E-commerce systems, performance work"},
        {"company": "google cloud", "position": "Site Reliability Engineer", "applicationDate": "2024-02-01",
         "status": "offer", "location": "Remote", "salary": {"min": 150000, "max": 190000}},
    ]
    for row in rows:
        store.create(row)
    return store
