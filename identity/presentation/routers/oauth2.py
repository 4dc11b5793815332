from typing import Annotated
from urllib.parse import unquote_plus

from fastapi import APIRouter, Depends, Form, Query, Response
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from identity.application.oauth2.requests import (
    AuthorizationRequest,
    RevocationRequest,
    TokenRequest,
)
from identity.application.oauth2.server import TOKEN_RESPONSE_HEADERS, AuthorizationServer
from identity.domain.entities import User
from identity.domain.errors import OAuthAccessDeniedError
from identity.presentation.dependencies import get_authorization_server, get_optional_user

router = APIRouter(tags=["OAuth2"])
client_basic = HTTPBasic(auto_error=False)

Server = Annotated[AuthorizationServer, Depends(get_authorization_server)]
BasicCreds = Annotated[HTTPBasicCredentials | None, Depends(client_basic)]


def _client_credentials(
    basic: HTTPBasicCredentials | None,
    client_id: str | None,
    client_secret: str | None,
) -> tuple[str | None, str | None]:
    # client_secret_basic wins over client_secret_post; RFC 6749 2.3.1
    # form-encodes both parts before they go into the header
    if basic is not None and basic.username:
        return unquote_plus(basic.username), unquote_plus(basic.password)
    return client_id, client_secret


@router.get("/authorize")
async def get_authorize(
    server: Server,
    user: Annotated[User | None, Depends(get_optional_user)],
    client_id: Annotated[str | None, Query()] = None,
    response_type: Annotated[str | None, Query()] = None,
    redirect_uri: Annotated[str | None, Query()] = None,
    scope: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    code_challenge: Annotated[str | None, Query()] = None,
    code_challenge_method: Annotated[str | None, Query()] = None,
):
    validated = await server.validate_authorization_request(
        AuthorizationRequest(
            client_id=client_id,
            response_type=response_type,
            redirect_uri=redirect_uri,
            scope=scope,
            state=state,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )
    )
    if user is None:
        raise OAuthAccessDeniedError(
            "The resource owner is not signed in",
            state=validated.state,
            redirect_uri=validated.redirect_uri,
        )
    location = await server.complete_authorization_request(validated, user.id)
    return RedirectResponse(location, status_code=302)


@router.post("/token")
async def post_token(
    server: Server,
    basic: BasicCreds,
    grant_type: Annotated[str | None, Form()] = None,
    code: Annotated[str | None, Form()] = None,
    redirect_uri: Annotated[str | None, Form()] = None,
    code_verifier: Annotated[str | None, Form()] = None,
    refresh_token: Annotated[str | None, Form()] = None,
    scope: Annotated[str | None, Form()] = None,
    state: Annotated[str | None, Form()] = None,
    client_id: Annotated[str | None, Form()] = None,
    client_secret: Annotated[str | None, Form()] = None,
):
    client_id, client_secret = _client_credentials(basic, client_id, client_secret)
    body = await server.respond_to_token_request(
        TokenRequest(
            grant_type=grant_type,
            client_id=client_id,
            client_secret=client_secret,
            code=code,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
            refresh_token=refresh_token,
            scope=scope,
            state=state,
        )
    )
    return JSONResponse(body, headers=TOKEN_RESPONSE_HEADERS)


@router.post("/revoke")
async def post_revoke(
    server: Server,
    basic: BasicCreds,
    token: Annotated[str | None, Form()] = None,
    token_type_hint: Annotated[str | None, Form()] = None,
    client_id: Annotated[str | None, Form()] = None,
    client_secret: Annotated[str | None, Form()] = None,
) -> Response:
    client_id, client_secret = _client_credentials(basic, client_id, client_secret)
    await server.revoke_token(
        RevocationRequest(
            token=token,
            token_type_hint=token_type_hint,
            client_id=client_id,
            client_secret=client_secret,
        )
    )
    return Response(status_code=200, headers=TOKEN_RESPONSE_HEADERS)
