from __future__ import annotations

from http import HTTPStatus


class OAuthError(Exception):
    """Base for every error the engine reports to a client.

    ``code`` is the OAuth2 ``error`` value written on the wire and
    ``status_code`` the HTTP status the host should answer with.
    """

    code = "oauth_error"
    status_code = 500

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        if status_code is not None:
            self.status_code = status_code
        if not message:
            message = HTTPStatus(self.status_code).phrase
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict[str, str]:
        return {"error": self.code, "error_description": self.message}


class InvalidArgumentError(OAuthError):
    code = "invalid_argument"
    status_code = 400


class InvalidRequestError(OAuthError):
    code = "invalid_request"
    status_code = 400


class InvalidClientError(OAuthError):
    code = "invalid_client"
    status_code = 400


class UnauthorizedClientError(OAuthError):
    code = "unauthorized_client"
    status_code = 400


class InvalidGrantError(OAuthError):
    code = "invalid_grant"
    status_code = 400


class InvalidScopeError(OAuthError):
    code = "invalid_scope"
    status_code = 400


class AccessDeniedError(OAuthError):
    code = "access_denied"
    status_code = 400


class UnsupportedGrantTypeError(OAuthError):
    code = "unsupported_grant_type"
    status_code = 400


class InvalidTokenError(OAuthError):
    code = "invalid_token"
    status_code = 401


class UnauthorizedRequestError(OAuthError):
    code = "unauthorized_request"
    status_code = 401


class InsufficientScopeError(OAuthError):
    code = "insufficient_scope"
    status_code = 403


class ServerError(OAuthError):
    code = "server_error"
    status_code = 500

    @classmethod
    def wrap(cls, error: BaseException) -> "ServerError":
        wrapped = cls(str(error))
        wrapped.__cause__ = error
        return wrapped
