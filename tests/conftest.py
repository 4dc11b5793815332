import pytest

from identity.application.identity_manager import IdentityManager
from identity.application.notifications import Notifier
from identity.application.oauth2.repositories import (
    AuthCodeRepository,
    ClientRepository,
    ScopeRepository,
    TokenRepository,
)
from identity.application.oauth2.server import AuthorizationServer
from identity.application.tickets import TicketEngine
from identity.application.user_registry import DirectoryUserRegistry, LocalUserRegistry
from identity.domain.oauth import OAuth2Client, Scope
from identity.infrastructure.security.tokens import SessionTokenIssuer
from tests.fakes import (
    FakeDenylist,
    FakeDirectory,
    FakeEmailOK,
    FakeSmsOK,
    InMemoryObjectStore,
)

PASSWORD = "Sup3rSecret!"
TEST_JWT_SECRET = "unit-test-secret-0123456789abcdef0123"
REDIRECT_URI = "https://app.example.com/callback"

# RFC 7636 appendix B
PKCE_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
PKCE_CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def fake_hash(plain: str) -> str:
    return "hashed-" + plain


def fake_verify(plain: str, hashed: str) -> bool:
    return hashed == "hashed-" + plain


@pytest.fixture()
def ticket_store():
    return InMemoryObjectStore()


@pytest.fixture()
def tickets(ticket_store):
    return TicketEngine(ticket_store)


@pytest.fixture()
def session_tokens():
    return SessionTokenIssuer(TEST_JWT_SECRET, ttl_seconds=3600)


@pytest.fixture()
def credential_store():
    return InMemoryObjectStore()


@pytest.fixture()
def user_store():
    return InMemoryObjectStore()


@pytest.fixture()
def denylist():
    return FakeDenylist()


@pytest.fixture()
def directory():
    return FakeDirectory()


def build_manager(credentials, users, tickets, tokens, denylist=None) -> IdentityManager:
    return IdentityManager(
        credentials=credentials,
        users=users,
        tickets=tickets,
        tokens=tokens,
        hash_password=fake_hash,
        verify_password=fake_verify,
        dummy_verify=lambda plain: False,
        denylist=denylist,
        min_password_length=10,
        ticket_ttl_seconds=3600,
        mobile_ticket_ttl_seconds=360,
    )


@pytest.fixture()
def manager(credential_store, user_store, tickets, session_tokens, denylist):
    return build_manager(
        credential_store, LocalUserRegistry(user_store), tickets, session_tokens, denylist
    )


@pytest.fixture()
def directory_manager(credential_store, directory, tickets, session_tokens, denylist):
    return build_manager(
        credential_store, DirectoryUserRegistry(directory), tickets, session_tokens, denylist
    )


@pytest.fixture()
def email():
    return FakeEmailOK()


@pytest.fixture()
def sms():
    return FakeSmsOK()


@pytest.fixture()
def notifier(email, sms):
    return Notifier(
        email=email,
        sms=sms,
        public_base_url="https://id.example.com",
        sender_name="Acme",
        ticket_ttl_seconds=3600,
    )


# -- OAuth2 ------------------------------------------------------------------


@pytest.fixture()
def confidential_client() -> OAuth2Client:
    return OAuth2Client(
        id="web",
        name="Web portal",
        secret="client-s3cret",
        redirect_uris=[REDIRECT_URI],
        allowed_grants=["authorization_code", "refresh_token"],
        scopes=["profile", "email"],
    )


@pytest.fixture()
def public_client() -> OAuth2Client:
    return OAuth2Client(
        id="spa",
        name="Single page app",
        redirect_uris=[REDIRECT_URI, "https://spa.example.com/cb"],
        allowed_grants=["authorization_code"],
        scopes=["profile"],
    )


@pytest.fixture()
def partner_client() -> OAuth2Client:
    return OAuth2Client(
        id="partner",
        name="Partner backend",
        secret="partner-s3cret",
        redirect_uris=["https://partner.example.com/cb"],
        allowed_grants=["authorization_code", "refresh_token"],
        scopes=["profile"],
    )


@pytest.fixture()
def auth_code_store():
    return InMemoryObjectStore()


@pytest.fixture()
def token_store():
    return InMemoryObjectStore()


@pytest.fixture()
def refresh_index_store():
    return InMemoryObjectStore()


@pytest.fixture()
def token_repo(token_store, refresh_index_store):
    return TokenRepository(token_store, refresh_index_store)


@pytest.fixture()
def auth_code_repo(auth_code_store):
    return AuthCodeRepository(auth_code_store)


@pytest.fixture()
async def oauth_server(
    confidential_client, public_client, partner_client, auth_code_repo, token_repo
):
    clients = ClientRepository(InMemoryObjectStore())
    scopes = ScopeRepository(InMemoryObjectStore())
    await clients.save(confidential_client)
    await clients.save(public_client)
    await clients.save(partner_client)
    for name in ("profile", "email", "admin"):
        await scopes.save(Scope(name=name))
    return AuthorizationServer(
        clients=clients,
        scopes=scopes,
        auth_codes=auth_code_repo,
        tokens=token_repo,
    )
