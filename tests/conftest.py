"""
Shared fixtures: an app on in-memory SQLite, a client, and a few accounts.

alice and bob are linked partners; carol is on her own.
"""

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from keepsake.api.app import create_app
from keepsake.auth.context import AuthContext
from keepsake.config import Settings


@dataclass
class Account:
    id: int
    username: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    @property
    def ctx(self) -> AuthContext:
        return AuthContext(user_id=self.id, username=self.username)


def register(client: TestClient, username: str, password: str = "secret123") -> Account:
    response = client.post(
        "/api/auth?action=register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "display_name": username.title(),
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return Account(id=data["user"]["id"], username=username, token=data["token"])


def link(client: TestClient, account: Account, partner: Account) -> None:
    response = client.put(
        "/api/auth?action=link-partner",
        json={"partner_username": partner.username},
        headers=account.headers,
    )
    assert response.status_code == 200, response.text


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings(tmp_path):
    """Test settings: in-memory database, no CAPTCHA, uploads in tmp."""
    return Settings(
        environment="test",
        debug=False,
        database_url="sqlite://",
        jwt_secret_key="test-secret",
        recaptcha_enabled=False,
        upload_dir=str(tmp_path / "uploads"),
        sentry_dsn="",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Client with the lifespan running, so the schema exists."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app, client):
    """A session on the same in-memory database the client uses."""
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def alice(client):
    return register(client, "alice")


@pytest.fixture
def bob(client):
    return register(client, "bob")


@pytest.fixture
def carol(client):
    return register(client, "carol")


@pytest.fixture
def couple(client, alice, bob):
    """alice and bob, linked."""
    link(client, alice, bob)
    return alice, bob
