import re

import pytest
from fastapi.testclient import TestClient

from identity.application.oauth2.repositories import ClientRepository, ScopeRepository
from identity.application.oauth2.server import AuthorizationServer
from identity.main import create_app
from identity.presentation.dependencies import (
    get_app_settings,
    get_authorization_server,
    get_identity_manager,
    get_notifier,
)
from identity.settings import Settings
from tests.conftest import PASSWORD
from tests.fakes import InMemoryObjectStore

EMAIL = "user@example.com"

_TICKET_RE = re.compile(r"ticket=([A-Za-z0-9_-]+)")


def seeded_store(records: dict[str, dict]) -> InMemoryObjectStore:
    store = InMemoryObjectStore()
    store.data.update(records)
    return store


@pytest.fixture()
def api_server(confidential_client, public_client, auth_code_repo, token_repo):
    clients = ClientRepository(
        seeded_store({c.id: c.to_dict() for c in (confidential_client, public_client)})
    )
    scopes = ScopeRepository(
        seeded_store({name: {"name": name} for name in ("profile", "email")})
    )
    return AuthorizationServer(
        clients=clients, scopes=scopes, auth_codes=auth_code_repo, tokens=token_repo
    )


@pytest.fixture()
def app_settings():
    return Settings(_env_file=None)


@pytest.fixture()
def app(manager, notifier, api_server, app_settings):
    app = create_app()
    app.dependency_overrides[get_identity_manager] = lambda: manager
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_authorization_server] = lambda: api_server
    app.dependency_overrides[get_app_settings] = lambda: app_settings
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)


def last_ticket(email_fake) -> str:
    match = _TICKET_RE.search(email_fake.calls[-1]["html_body"])
    assert match, "no ticket link in the last email"
    return match.group(1)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def registered(client, email) -> dict:
    """A registered, email-verified user with a fresh session token."""
    r = client.post("/register", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 201, r.text
    r = client.get(
        "/email-verify/verify", params={"email": EMAIL, "ticket": last_ticket(email)}
    )
    assert r.status_code == 200, r.text
    r = client.post("/login", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return r.json()
