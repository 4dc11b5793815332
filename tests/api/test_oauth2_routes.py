from urllib.parse import parse_qs, urlsplit

from fastapi.testclient import TestClient

from tests.api.conftest import bearer
from tests.conftest import PKCE_CHALLENGE, PKCE_VERIFIER, REDIRECT_URI

AUTHORIZE = {"client_id": "web", "response_type": "code", "state": "st-1"}


def _query(location: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(location).query)


def _authorize_code(client: TestClient, token: str, **params) -> str:
    r = client.get(
        "/authorize",
        params={**AUTHORIZE, **params},
        headers=bearer(token),
        follow_redirects=False,
    )
    assert r.status_code == 302, r.text
    return _query(r.headers["location"])["code"][0]


def test_authorize_without_session_denies_via_redirect(client: TestClient):
    r = client.get("/authorize", params=AUTHORIZE, follow_redirects=False)
    assert r.status_code == 302
    location = r.headers["location"]
    assert location.startswith(REDIRECT_URI)
    query = _query(location)
    assert query["error"] == ["access_denied"]
    assert query["state"] == ["st-1"]


def test_authorize_with_bad_redirect_answers_json(client: TestClient, registered):
    r = client.get(
        "/authorize",
        params={**AUTHORIZE, "redirect_uri": "https://evil.example.com/cb"},
        headers=bearer(registered["token"]),
        follow_redirects=False,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_request"
    assert r.json()["state"] == "st-1"


def test_authorize_unknown_client(client: TestClient):
    r = client.get(
        "/authorize", params={**AUTHORIZE, "client_id": "nope"}, follow_redirects=False
    )
    assert r.status_code == 401
    assert r.json()["error"] == "invalid_client"


def test_code_exchange_with_client_secret_post(client: TestClient, registered):
    code = _authorize_code(client, registered["token"])

    r = client.post(
        "/token",
        data={
            "grant_type": "authorization_code",
            "code": code,
            "client_id": "web",
            "client_secret": "client-s3cret",
        },
    )
    assert r.status_code == 200, r.text
    assert r.headers["Cache-Control"] == "no-store"
    assert r.headers["Pragma"] == "no-cache"
    body = r.json()
    assert body["token_type"] == "Bearer"
    assert body["scope"] == "profile email"
    assert body["refresh_token"]

    # replay
    r = client.post(
        "/token",
        data={
            "grant_type": "authorization_code",
            "code": code,
            "client_id": "web",
            "client_secret": "client-s3cret",
        },
    )
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_grant"


def test_pkce_exchange_with_basic_auth_then_refresh_and_revoke(client: TestClient, registered):
    code = _authorize_code(
        client,
        registered["token"],
        code_challenge=PKCE_CHALLENGE,
        code_challenge_method="S256",
    )

    r = client.post(
        "/token",
        data={"grant_type": "authorization_code", "code": code, "code_verifier": PKCE_VERIFIER},
        auth=("web", "client-s3cret"),
    )
    assert r.status_code == 200, r.text
    first = r.json()

    r = client.post(
        "/token",
        data={"grant_type": "refresh_token", "refresh_token": first["refresh_token"]},
        auth=("web", "client-s3cret"),
    )
    assert r.status_code == 200, r.text
    second = r.json()
    assert second["refresh_token"] != first["refresh_token"]

    r = client.post(
        "/revoke",
        data={"token": second["refresh_token"], "token_type_hint": "refresh_token"},
        auth=("web", "client-s3cret"),
    )
    assert r.status_code == 200
    assert r.headers["Cache-Control"] == "no-store"

    r = client.post(
        "/token",
        data={"grant_type": "refresh_token", "refresh_token": second["refresh_token"]},
        auth=("web", "client-s3cret"),
    )
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_grant"


def test_public_client_pkce_flow(client: TestClient, registered):
    code = _authorize_code(
        client,
        registered["token"],
        client_id="spa",
        redirect_uri=REDIRECT_URI,
        code_challenge=PKCE_CHALLENGE,
    )
    r = client.post(
        "/token",
        data={
            "grant_type": "authorization_code",
            "client_id": "spa",
            "code": code,
            "redirect_uri": REDIRECT_URI,
            "code_verifier": PKCE_VERIFIER,
        },
    )
    assert r.status_code == 200, r.text
    assert "refresh_token" not in r.json()


def test_token_errors(client: TestClient):
    r = client.post("/token", data={"grant_type": "authorization_code", "code": "x"}, auth=("web", "bad"))
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Basic"
    assert r.json()["error"] == "invalid_client"

    r = client.post("/token", data={"grant_type": "password"})
    assert r.status_code == 400
    assert r.json()["error"] == "unsupported_grant_type"

    r = client.post("/token", data={"code": "x"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_request"


def test_revoke_unknown_token_is_ok(client: TestClient):
    r = client.post("/revoke", data={"token": "unknown"}, auth=("web", "client-s3cret"))
    assert r.status_code == 200
    assert r.content == b""
