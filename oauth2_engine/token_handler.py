from __future__ import annotations

import base64
from typing import Any

from . import validators
from .abstract_grant import lifetime_for
from .constants import LOGGER
from .errors import (
    InvalidArgumentError,
    InvalidClientError,
    InvalidRequestError,
    OAuthError,
    ServerError,
    UnauthorizedClientError,
    UnsupportedGrantTypeError,
)
from .grant_types import GRANT_TYPES
from .model_call import call_model, require_capabilities
from .models import Request, Response
from .token_types import BearerTokenType


def extract_basic_credentials(authorization_header: str | None) -> tuple[str | None, str | None]:
    if not authorization_header or not authorization_header.lower().startswith("basic "):
        return None, None

    raw = authorization_header.split(" ", 1)[1].strip()
    try:
        decoded = base64.b64decode(raw).decode("utf-8")
    except ValueError:
        return None, None

    if ":" not in decoded:
        return None, None
    client_id, client_secret = decoded.split(":", 1)
    return client_id, client_secret


class TokenHandler:
    """Handles the ``/token`` endpoint: client authentication, then grant dispatch."""

    def __init__(
        self,
        *,
        model: Any = None,
        access_token_lifetime: int | None = None,
        refresh_token_lifetime: int | None = None,
        require_client_authentication: dict[str, bool] | None = None,
        always_issue_new_refresh_token: bool = True,
        allow_extended_token_attributes: bool = False,
        **options: Any,
    ) -> None:
        if not access_token_lifetime:
            raise InvalidArgumentError("Missing parameter: `access_token_lifetime`")
        if not model:
            raise InvalidArgumentError("Missing parameter: `model`")
        if not refresh_token_lifetime:
            raise InvalidArgumentError("Missing parameter: `refresh_token_lifetime`")
        require_capabilities(model, "get_client")

        self.model = model
        self.access_token_lifetime = access_token_lifetime
        self.refresh_token_lifetime = refresh_token_lifetime
        self.require_client_authentication = require_client_authentication or {}
        self.always_issue_new_refresh_token = always_issue_new_refresh_token
        self.allow_extended_token_attributes = allow_extended_token_attributes

    async def handle(self, request: Request, response: Response) -> Any:
        if not isinstance(request, Request):
            raise InvalidArgumentError("Invalid argument: `request` must be an instance of Request")
        if not isinstance(response, Response):
            raise InvalidArgumentError("Invalid argument: `response` must be an instance of Response")

        try:
            if request.method != "POST":
                raise InvalidRequestError("Invalid request: method must be POST")
            if not request.is_form():
                raise InvalidRequestError(
                    "Invalid request: content must be application/x-www-form-urlencoded"
                )

            client = await self.get_client(request, response)
            token = await self.handle_grant_type(request, client)
            token_type = BearerTokenType.from_token(
                token,
                lifetime_for(client, "access_token_lifetime", self.access_token_lifetime),
                include_custom_attributes=self.allow_extended_token_attributes,
            )
        except Exception as error:
            oauth_error = error
            if not isinstance(error, OAuthError):
                LOGGER.exception("Unexpected error while issuing token")
                oauth_error = ServerError.wrap(error)

            self.update_error_response(response, oauth_error)
            LOGGER.warning(
                "Token request rejected with %s: %s", oauth_error.code, oauth_error.message
            )
            if oauth_error is error:
                raise
            raise oauth_error from error

        self.update_success_response(response, token_type)
        LOGGER.info(
            "Issued token for client %s (grant_type=%s)", client.id, request.body.get("grant_type")
        )
        return token

    async def get_client(self, request: Request, response: Response) -> Any:
        client_id, client_secret = self.get_client_credentials(request)
        try:
            if not client_id:
                raise InvalidRequestError("Missing parameter: `client_id`")
            if self.is_client_authentication_required(request) and not client_secret:
                raise InvalidRequestError("Missing parameter: `client_secret`")
            if not validators.vschar(client_id):
                raise InvalidRequestError("Invalid parameter: `client_id`")
            if client_secret and not validators.vschar(client_secret):
                raise InvalidRequestError("Invalid parameter: `client_secret`")

            client = await call_model(self.model.get_client, client_id, client_secret)
            if client is None:
                raise InvalidClientError("Invalid client: client is invalid")

            grants = getattr(client, "grants", None)
            if not grants:
                raise ServerError("Server error: missing client `grants`")
            if not isinstance(grants, (list, tuple, set, frozenset)):
                raise ServerError("Server error: `grants` must be an array")
            return client
        except InvalidClientError as error:
            # RFC 6749 section 5.2: failed HTTP Basic auth answers 401 with a challenge.
            if request.get("authorization"):
                response.set("WWW-Authenticate", 'Basic realm="Service"')
                raise InvalidClientError(error.message, status_code=401) from error
            raise

    def get_client_credentials(self, request: Request) -> tuple[str | None, str | None]:
        client_id, client_secret = extract_basic_credentials(request.get("authorization"))
        if client_id:
            return client_id, client_secret
        return request.body.get("client_id"), request.body.get("client_secret")

    def is_client_authentication_required(self, request: Request) -> bool:
        grant_type = request.body.get("grant_type")
        return self.require_client_authentication.get(grant_type, True)

    async def handle_grant_type(self, request: Request, client: Any) -> Any:
        grant_type = request.body.get("grant_type")
        if not grant_type:
            raise InvalidRequestError("Missing parameter: `grant_type`")
        if not validators.nchar(grant_type) and not validators.uri(grant_type):
            raise InvalidRequestError("Invalid parameter: `grant_type`")
        if grant_type not in GRANT_TYPES:
            raise UnsupportedGrantTypeError("Unsupported grant type: `grant_type` is invalid")
        if grant_type not in client.grants:
            raise UnauthorizedClientError("Unauthorized client: `grant_type` is invalid")

        grant = GRANT_TYPES[grant_type](
            model=self.model,
            access_token_lifetime=self.access_token_lifetime,
            refresh_token_lifetime=self.refresh_token_lifetime,
            always_issue_new_refresh_token=self.always_issue_new_refresh_token,
        )
        return await grant.handle(request, client)

    def update_success_response(self, response: Response, token_type: BearerTokenType) -> None:
        response.status_code = 200
        response.body = token_type.as_dict()
        response.set("Cache-Control", "no-store")
        response.set("Pragma", "no-cache")

    def update_error_response(self, response: Response, error: OAuthError) -> None:
        response.status_code = error.status_code
        response.body = error.as_dict()
