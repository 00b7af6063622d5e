"""pytest shared setup: in-memory store, fast bcrypt, fixed JWT secret."""

import copy
import os

os.environ["PERSIST_DATA"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret-for-deptdesk-0123456789abcdef"
os.environ["AUTO_ROUTE_INTERVAL_SECONDS"] = "0"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("ANTHROPIC_API_KEY", None)
os.environ.pop("ROUTING_RULES", None)

import pytest

from deptdesk.db import EMPTY_DB, reset_db
from deptdesk.directory import create_user
from deptdesk.policy import reset_policy

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def clean_state():
    """Every test starts with an empty store and the default routing policy."""
    reset_db()
    reset_policy()
    yield
    reset_policy()


@pytest.fixture
def db() -> dict:
    """A detached document for domain-level tests."""
    return copy.deepcopy(EMPTY_DB)


@pytest.fixture
def make_user(db):
    """Create a user in the detached document."""
    counter = {"n": 0}

    def _make(department: str, name: str = None) -> dict:
        counter["n"] += 1
        name = name or f"{department} User {counter['n']}"
        email = f"{department.lower()}{counter['n']}@example.com"
        return create_user(db, name, email, PASSWORD, department)

    return _make


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from deptdesk.server import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def signup(client):
    """Sign up through the API; returns (user, auth headers)."""
    counter = {"n": 0}

    def _signup(department: str, name: str = None):
        counter["n"] += 1
        name = name or f"{department} Person {counter['n']}"
        res = client.post("/api/auth/signup", json={
            "name": name,
            "email": f"api-{department.lower()}{counter['n']}@example.com",
            "password": PASSWORD,
            "department": department,
        })
        assert res.status_code == 201, res.text
        data = res.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _signup
