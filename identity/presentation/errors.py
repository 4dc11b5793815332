import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from identity.application.oauth2.grants import add_query_params
from identity.application.oauth2.server import TOKEN_RESPONSE_HEADERS
from identity.domain.errors import DomainError, InvalidTokenError, OAuth2Error

logger = logging.getLogger(__name__)


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    headers = None
    if isinstance(exc, InvalidTokenError):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error(
            "upstream failure",
            extra={"path": request.url.path, "code": exc.code, "error": exc.message},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message),
        headers=headers,
    )


async def handle_oauth2_error(request: Request, exc: OAuth2Error):
    """
    RFC 6749 4.1.2.1: once the redirect URI is validated, /authorize errors
    go back to the client as query parameters. Everything else is JSON
    per section 5.2.
    """
    logger.info(
        "oauth2 request rejected",
        extra={"path": request.url.path, "error": exc.error},
    )
    if exc.redirect_uri:
        return RedirectResponse(
            add_query_params(exc.redirect_uri, exc.to_dict()), status_code=302
        )
    headers = dict(TOKEN_RESPONSE_HEADERS)
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = "Basic"
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    # the most specific registered class wins, so OAuth2Error takes its subclasses
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(OAuth2Error, handle_oauth2_error)
