import pytest
from fastapi.testclient import TestClient

from db.repository import InMemoryReportRepository
from orchestrator import Orchestrator
from web.api import app, get_repository, get_draft_store, get_orchestrator
from web.drafts import DraftStore


@pytest.fixture
def repository():
    return InMemoryReportRepository()


@pytest.fixture
def draft_store():
    return DraftStore(max_entries=10)


@pytest.fixture
def client(repository, draft_store, tmp_path):
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_draft_store] = lambda: draft_store
    app.dependency_overrides[get_orchestrator] = lambda: Orchestrator(repository, output_dir=str(tmp_path))
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
