from __future__ import annotations

import asyncio
from typing import Any

from . import validators
from .authenticate_handler import AuthenticateHandler
from .constants import GRANT_AUTHORIZATION_CODE, LOGGER
from .errors import (
    AccessDeniedError,
    InvalidArgumentError,
    InvalidClientError,
    InvalidRequestError,
    InvalidScopeError,
    OAuthError,
    ServerError,
    UnauthorizedClientError,
)
from .model_call import call_model, optional_capability, require_capabilities
from .models import Request, Response
from .response_types import RESPONSE_TYPES, ResponseType, registered_redirect_uri
from .urls import append_redirect_params


class AuthorizeHandler:
    """Handles the ``/authorize`` endpoint (RFC 6749 sections 4.1 and 4.2).

    Success and failure both end in a redirect to the client. The code flow
    puts its parameters in the query string and the implicit (token) flow in
    the fragment. Failures are still raised to the caller after the error
    redirect has been written to the response.
    """

    def __init__(
        self,
        *,
        model: Any = None,
        authorization_code_lifetime: int | None = None,
        access_token_lifetime: int | None = None,
        authenticate_handler: AuthenticateHandler | None = None,
        **options: Any,
    ) -> None:
        if not authorization_code_lifetime:
            raise InvalidArgumentError("Missing parameter: `authorization_code_lifetime`")
        if not model:
            raise InvalidArgumentError("Missing parameter: `model`")
        require_capabilities(
            model,
            "get_client",
            "save_authorization_code",
            "save_token",
            "validate_scope",
            "authorization_allowed",
        )

        self.model = model
        self.authorization_code_lifetime = authorization_code_lifetime
        self.access_token_lifetime = access_token_lifetime or 0

        self._get_user_from_request = optional_capability(model, "get_user_from_request")
        if authenticate_handler is None and self._get_user_from_request is None:
            authenticate_handler = AuthenticateHandler(model=model, **options)
        self.authenticate_handler = authenticate_handler

    async def handle(self, request: Request, response: Response) -> Any:
        if not isinstance(request, Request):
            raise InvalidArgumentError("Invalid argument: `request` must be an instance of Request")
        if not isinstance(response, Response):
            raise InvalidArgumentError("Invalid argument: `response` must be an instance of Response")

        client_result, user_result = await asyncio.gather(
            self.get_client(request),
            self.get_user(request, response),
            return_exceptions=True,
        )
        if isinstance(client_result, BaseException):
            # Without a verified client there is no redirect URI to report to.
            LOGGER.warning("Authorize request rejected: %s", client_result)
            raise client_result

        client, requested_redirect_uri = client_result
        redirect_uri = requested_redirect_uri or registered_redirect_uri(client)
        response_type: ResponseType | None = None
        state: str | None = None

        try:
            state = self.get_state(request)
            response_type = self.get_response_type(request)

            if isinstance(user_result, BaseException):
                raise user_result
            user = user_result

            await self.authorization_allowed(request)
            scope = await self.validate_scope(user, client, self.get_scope(request))
            artifact, url = await response_type.build_redirect_uri(
                client, user, scope, requested_redirect_uri
            )
        except Exception as error:
            oauth_error = error
            if not isinstance(error, OAuthError):
                LOGGER.exception("Unexpected error while authorizing client %s", client.id)
                oauth_error = ServerError.wrap(error)

            error_url = self.build_error_redirect_uri(response_type, redirect_uri, oauth_error)
            self.update_response(response_type, response, error_url, state)
            LOGGER.warning(
                "Authorize request for client %s redirected with %s: %s",
                client.id,
                oauth_error.code,
                oauth_error.message,
            )
            if oauth_error is error:
                raise
            raise oauth_error from error

        self.update_response(response_type, response, url, state)
        LOGGER.info("Authorized client %s (response_type=%s)", client.id, response_type.name)
        return artifact

    async def get_client(self, request: Request) -> tuple[Any, str | None]:
        """Look up the client and check any requested redirect URI against it.

        The redirect URI is returned only when the request supplied one.
        """
        client_id = request.param("client_id")
        if not client_id:
            raise InvalidRequestError("Missing parameter: `client_id`")
        if not validators.vschar(client_id):
            raise InvalidRequestError("Invalid parameter: `client_id`")

        redirect_uri = request.param("redirect_uri")
        if redirect_uri and not validators.uri(redirect_uri):
            raise InvalidRequestError("Invalid request: `redirect_uri` is not a valid URI")

        client = await call_model(self.model.get_client, client_id, None)
        if client is None:
            raise InvalidClientError("Invalid client: client credentials are invalid")

        grants = getattr(client, "grants", None)
        if not grants:
            raise InvalidClientError("Invalid client: missing client `grants`")
        if GRANT_AUTHORIZATION_CODE not in grants:
            raise UnauthorizedClientError("Unauthorized client: `grant_type` is invalid")

        registered = getattr(client, "redirect_uris", None)
        if not registered:
            raise InvalidClientError("Invalid client: missing client `redirect_uris`")

        if redirect_uri:
            allowed = [registered] if isinstance(registered, str) else list(registered)
            if redirect_uri not in allowed:
                raise InvalidClientError(
                    "Invalid client: `redirect_uri` does not match client value"
                )
            return client, redirect_uri

        return client, None

    async def get_user(self, request: Request, response: Response) -> Any:
        if self._get_user_from_request is not None:
            return await call_model(self._get_user_from_request, request, response)

        token = await self.authenticate_handler.handle(request, response)
        return token.user

    async def authorization_allowed(self, request: Request) -> Any:
        allowed = await call_model(self.model.authorization_allowed, request)
        if not allowed:
            raise AccessDeniedError("Access denied: user denied access to application")
        return allowed

    async def validate_scope(self, user: Any, client: Any, scope: str | None) -> str | None:
        result = await call_model(self.model.validate_scope, user, client, scope)
        if isinstance(result, str):
            return result
        if not result:
            raise InvalidScopeError("Invalid scope: scope is invalid")
        return scope

    def get_scope(self, request: Request) -> str | None:
        scope = request.param("scope")
        if scope and not validators.nqschar(scope):
            raise InvalidScopeError("Invalid parameter: `scope`")
        return scope

    def get_state(self, request: Request) -> str | None:
        state = request.param("state")
        if state and not validators.vschar(state):
            raise InvalidRequestError("Invalid parameter: `state`")
        return state

    def get_response_type(self, request: Request) -> ResponseType:
        name = request.param("response_type")
        if not name:
            raise InvalidRequestError("Missing parameter: `response_type`")
        if name not in RESPONSE_TYPES:
            raise InvalidRequestError("Invalid parameter: `response_type`")

        return RESPONSE_TYPES[name](
            model=self.model,
            authorization_code_lifetime=self.authorization_code_lifetime,
            access_token_lifetime=self.access_token_lifetime,
        )

    def build_error_redirect_uri(
        self,
        response_type: ResponseType | None,
        redirect_uri: str,
        error: OAuthError,
    ) -> str:
        params = {"error": error.code}
        if error.message:
            params["error_description"] = error.message
        return append_redirect_params(redirect_uri, params, fragment=_uses_fragment(response_type))

    def update_response(
        self,
        response_type: ResponseType | None,
        response: Response,
        url: str,
        state: str | None,
    ) -> None:
        if state:
            url = append_redirect_params(
                url, {"state": state}, fragment=_uses_fragment(response_type)
            )
        response.redirect(url)


def _uses_fragment(response_type: ResponseType | None) -> bool:
    return response_type is not None and response_type.uses_fragment
