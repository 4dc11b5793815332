class DomainError(Exception):
    """Base class for all domain-level errors."""

    status_code: int = 400
    code: str = "domain_error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__doc__ or self.code
        super().__init__(self.message)


class ValidationError(DomainError):
    """Malformed or weak input."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(DomainError):
    """Bad credentials. Deliberately uninformative."""

    status_code = 401
    code = "unauthorized"


class NotFoundError(DomainError):
    """No record matches the lookup criteria."""

    status_code = 404
    code = "not_found"


class ConflictError(DomainError):
    """Record with the given identity already exists."""

    status_code = 409
    code = "conflict"


class TicketInvalidError(DomainError):
    """Ticket does not match, was already used, or was never issued."""

    status_code = 400
    code = "ticket_invalid"


class TicketExpiredError(DomainError):
    """Ticket matched but its deadline has passed."""

    status_code = 400
    code = "ticket_expired"


class InvalidTokenError(DomainError):
    """Session token has a bad signature, malformed payload, or is expired/revoked."""

    status_code = 401
    code = "invalid_token"


class DirectoryError(DomainError):
    """External user directory failed."""

    status_code = 502
    code = "directory_error"

    def __init__(self, message: str | None = None, *, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class DirectoryNotFoundError(DirectoryError):
    """External user directory has no such user."""

    status_code = 404
    code = "not_found"


class NotificationError(DomainError):
    """Email or SMS could not be delivered."""

    status_code = 502
    code = "notification_failed"


class OAuth2Error(DomainError):
    """
    Base for RFC 6749 errors. Carries enough context (state, redirect URI)
    for the HTTP layer to answer per OAuth2 error conventions.
    """

    error: str = "server_error"

    def __init__(
        self,
        description: str | None = None,
        *,
        state: str | None = None,
        redirect_uri: str | None = None,
    ) -> None:
        super().__init__(description)
        self.description = self.message
        self.state = state
        self.redirect_uri = redirect_uri

    @property
    def code(self) -> str:  # type: ignore[override]
        return self.error

    def to_dict(self) -> dict:
        body = {"error": self.error, "error_description": self.description}
        if self.state:
            body["state"] = self.state
        return body


class OAuthInvalidRequestError(OAuth2Error):
    """The request is missing a parameter or is otherwise malformed."""

    error = "invalid_request"


class OAuthInvalidClientError(OAuth2Error):
    """Client authentication failed."""

    status_code = 401
    error = "invalid_client"


class OAuthUnauthorizedClientError(OAuth2Error):
    """The client is not authorized to use this grant or response type."""

    error = "unauthorized_client"


class OAuthInvalidGrantError(OAuth2Error):
    """The authorization code or refresh token is invalid, expired, or revoked."""

    error = "invalid_grant"


class OAuthInvalidScopeError(OAuth2Error):
    """The requested scope is invalid, unknown, or exceeds what was granted."""

    error = "invalid_scope"


class OAuthUnsupportedGrantTypeError(OAuth2Error):
    """The grant type is not supported by the authorization server."""

    error = "unsupported_grant_type"


class OAuthAccessDeniedError(OAuth2Error):
    """The resource owner did not approve the request."""

    status_code = 403
    error = "access_denied"
