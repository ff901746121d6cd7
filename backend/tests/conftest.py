import pytest
from fastapi.testclient import TestClient

from student_service.config import Settings
from student_service.database import connect_store
from student_service.main import create_app


@pytest.fixture
def store():
    """A fresh in-memory store per test."""
    store = connect_store("sqlite://")
    store.create_tables()
    yield store
    store.close()


@pytest.fixture
def app(store):
    return create_app(Settings(database_url="sqlite://", log_level="WARNING"), store=store)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sample_student():
    """A valid student payload."""
    return {
        "name": "Ada Lovelace",
        "address": "12 St James's Square",
        "city": "London",
        "state": "LDN",
        "email": "ada@example.com",
        "phone": "555-0100",
    }


@pytest.fixture
def make_student(client, sample_student):
    """Create a student through the API, overriding payload fields as needed."""
    def _make(**overrides):
        resp = client.post("/api/students", json={**sample_student, **overrides})
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make
