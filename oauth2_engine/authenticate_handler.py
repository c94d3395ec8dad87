from __future__ import annotations

from datetime import datetime
from typing import Any

from .abstract_grant import is_expired
from .constants import LOGGER
from .errors import (
    InsufficientScopeError,
    InvalidArgumentError,
    InvalidRequestError,
    InvalidTokenError,
    OAuthError,
    ServerError,
    UnauthorizedRequestError,
)
from .model_call import call_model, require_capabilities
from .models import Request, Response


def extract_bearer_token(authorization_header: str | None) -> str | None:
    if not authorization_header:
        return None
    scheme, _, token = authorization_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthenticateHandler:
    """Resolves the access token presented with a request."""

    def __init__(
        self,
        *,
        model: Any = None,
        scope: str | None = None,
        add_accepted_scopes_header: bool = False,
        add_authorized_scopes_header: bool = False,
        allow_bearer_tokens_in_query_string: bool = False,
        **options: Any,
    ) -> None:
        if not model:
            raise InvalidArgumentError("Missing parameter: `model`")
        require_capabilities(model, "get_access_token")
        if scope:
            require_capabilities(model, "verify_scope")

        self.model = model
        self.scope = scope
        self.add_accepted_scopes_header = add_accepted_scopes_header
        self.add_authorized_scopes_header = add_authorized_scopes_header
        self.allow_bearer_tokens_in_query_string = allow_bearer_tokens_in_query_string

    async def handle(self, request: Request, response: Response) -> Any:
        if not isinstance(request, Request):
            raise InvalidArgumentError("Invalid argument: `request` must be an instance of Request")
        if not isinstance(response, Response):
            raise InvalidArgumentError("Invalid argument: `response` must be an instance of Response")

        try:
            raw_token = self.get_token_from_request(request)
            token = await self.get_access_token(raw_token)
            self.validate_access_token(token)
            if self.scope:
                await self.verify_scope(token)
            self.update_response(response, token)
            return token
        except Exception as error:
            if not isinstance(error, OAuthError):
                LOGGER.exception("Unexpected error while authenticating request")
                raise self._reject(response, ServerError.wrap(error)) from error
            raise self._reject(response, error)

    def _reject(self, response: Response, error: OAuthError) -> OAuthError:
        if isinstance(error, UnauthorizedRequestError):
            response.set("WWW-Authenticate", 'Bearer realm="Service"')
        response.status_code = error.status_code
        response.body = error.as_dict()
        return error

    def get_token_from_request(self, request: Request) -> str:
        header_token = request.get("authorization")
        query_token = request.query.get("access_token")
        body_token = request.body.get("access_token")

        if sum(1 for value in (header_token, query_token, body_token) if value) > 1:
            raise InvalidRequestError("Invalid request: only one authentication method is allowed")

        if header_token:
            token = extract_bearer_token(header_token)
            if token is None:
                raise InvalidRequestError("Invalid request: malformed authorization header")
            return token

        if query_token:
            if not self.allow_bearer_tokens_in_query_string:
                raise InvalidRequestError("Invalid request: do not send bearer tokens in query URLs")
            return query_token

        if body_token:
            if request.method == "GET":
                raise InvalidRequestError(
                    "Invalid request: token may not be passed in the body when using the GET verb"
                )
            if not request.is_form():
                raise InvalidRequestError(
                    "Invalid request: content must be application/x-www-form-urlencoded"
                )
            return body_token

        raise UnauthorizedRequestError("Unauthorized request: no authentication given")

    async def get_access_token(self, raw_token: str) -> Any:
        token = await call_model(self.model.get_access_token, raw_token)
        if token is None:
            raise InvalidTokenError("Invalid token: access token is invalid")
        if getattr(token, "user", None) is None:
            raise ServerError("Server error: `get_access_token()` did not return a `user` object")
        return token

    def validate_access_token(self, token: Any) -> None:
        token_expires_at = getattr(token, "access_token_expires_at", None)
        if not isinstance(token_expires_at, datetime):
            raise ServerError("Server error: `access_token_expires_at` must be a datetime instance")
        if is_expired(token_expires_at):
            raise InvalidTokenError("Invalid token: access token has expired")

    async def verify_scope(self, token: Any) -> None:
        allowed = await call_model(self.model.verify_scope, token, self.scope)
        if not allowed:
            raise InsufficientScopeError("Insufficient scope: authorized scope is insufficient")

    def update_response(self, response: Response, token: Any) -> None:
        if self.scope and self.add_accepted_scopes_header:
            response.set("X-Accepted-OAuth-Scopes", self.scope)
        if self.scope and self.add_authorized_scopes_header:
            response.set("X-OAuth-Scopes", getattr(token, "scope", None) or "")
