import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app


@pytest.fixture
def db():
    database = mongomock.MongoClient()["anon_messages_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in(client):
    """Register an account over HTTP and return (account, auth headers)."""

    def _sign_in(username="alice", email="a@x.com", password="secret1"):
        res = client.post("/sign-up", json={"username": username, "email": email, "password": password})
        assert res.status_code == 201, res.text
        res = client.post("/auth/login", json={"identifier": username, "password": password})
        assert res.status_code == 200, res.text
        return res.json()["user"], {"Authorization": f"Bearer {res.json()['token']}"}

    return _sign_in
