import os
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

ROOT_DIR = os.path.dirname(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# keep the app's own startup engine off disk
os.environ.setdefault("DATABASE_URL", "sqlite://")

from main import app, get_session  # noqa: E402
from config import DEFAULT_TIMEZONE  # noqa: E402


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
DBSession = Session


@pytest.fixture(scope="function")
def client():
    """Return a TestClient wired to a fresh in-memory database for each test."""
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    def override_get_session():
        with DBSession(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def db_session(client):
    """A session on the same in-memory database the client uses."""
    with DBSession(test_engine) as session:
        yield session


@pytest.fixture
def auth_helpers(client):
    """
    Common auth utilities shared across test modules.
    Provides register/login helpers and a token helper.
    """

    def session_factory():
        with DBSession(test_engine) as session:
            yield session

    def register_user(username: str, password: str):
        return client.post("/auth/register", json={"username": username, "password": password})

    def login_user(username: str, password: str):
        return client.post("/auth/login", json={"username": username, "password": password})

    def get_token(username: str, password: str) -> str:
        res_reg = register_user(username, password)
        assert res_reg.status_code in (200, 201, 400)
        res_login = login_user(username, password)
        assert res_login.status_code == 200
        data = res_login.json()
        assert "access_token" in data
        return data["access_token"]

    def auth_headers(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return {
        "register_user": register_user,
        "login_user": login_user,
        "get_token": get_token,
        "auth_headers": auth_headers,
        "session_factory": session_factory,
    }


@pytest.fixture
def headers(auth_helpers):
    """Bearer headers for a freshly registered user."""
    token = auth_helpers["get_token"]("alice", "SuperSecret123!")
    return auth_helpers["auth_headers"](token)


@pytest.fixture
def other_headers(auth_helpers):
    """Bearer headers for a second, unrelated user."""
    token = auth_helpers["get_token"]("mallory", "Other123!")
    return auth_helpers["auth_headers"](token)


@pytest.fixture
def user_today():
    """Today in the default profile timezone, which is what the API uses."""
    return datetime.now(ZoneInfo(DEFAULT_TIMEZONE)).date()


@pytest.fixture
def make_account(client, headers):
    def _make(name="Savings", type_="bank", balance="1000", auth=headers, **extra):
        payload = {"name": name, "type": type_, "balance": balance, **extra}
        res = client.post("/api/accounts", json=payload, headers=auth)
        assert res.status_code == 201, res.text
        return res.json()

    return _make


@pytest.fixture
def make_transaction(client, headers):
    def _make(account_id, amount, type_="expense", **extra):
        payload = {"account_id": account_id, "amount": amount, "type": type_, **extra}
        res = client.post("/api/transactions", json=payload, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()

    return _make
