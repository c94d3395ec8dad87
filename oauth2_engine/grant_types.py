from __future__ import annotations

from datetime import datetime
from typing import Any

from . import validators
from .abstract_grant import AbstractGrantType, is_expired
from .constants import (
    GRANT_AUTHORIZATION_CODE,
    GRANT_CLIENT_CREDENTIALS,
    GRANT_PASSWORD,
    GRANT_REFRESH_TOKEN,
)
from .errors import (
    InvalidArgumentError,
    InvalidGrantError,
    InvalidRequestError,
    ServerError,
)
from .model_call import call_model, require_capabilities
from .models import Request, Token


def _require_request_and_client(request: Request | None, client: Any) -> None:
    if request is None:
        raise InvalidArgumentError("Missing parameter: `request`")
    if client is None:
        raise InvalidArgumentError("Missing parameter: `client`")


class AuthorizationCodeGrantType(AbstractGrantType):
    grant_type = GRANT_AUTHORIZATION_CODE

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        require_capabilities(
            self.model,
            "get_authorization_code",
            "revoke_authorization_code",
            "save_token",
        )

    async def handle(self, request: Request, client: Any) -> Any:
        _require_request_and_client(request, client)

        code = await self.get_authorization_code(request, client)
        self.validate_redirect_uri(request, code)
        await self.revoke_authorization_code(code)
        return await self.save_token(code.user, client, code.authorization_code, code.scope)

    async def get_authorization_code(self, request: Request, client: Any) -> Any:
        raw_code = request.body.get("code")
        if not raw_code:
            raise InvalidRequestError("Missing parameter: `code`")
        if not validators.vschar(raw_code):
            raise InvalidRequestError("Invalid parameter: `code`")

        code = await call_model(self.model.get_authorization_code, raw_code)
        if code is None:
            raise InvalidGrantError("Invalid grant: authorization code is invalid")
        if getattr(code, "client", None) is None:
            raise ServerError(
                "Server error: `get_authorization_code()` did not return a `client` object"
            )
        if getattr(code, "user", None) is None:
            raise ServerError(
                "Server error: `get_authorization_code()` did not return a `user` object"
            )
        # Same message as an unknown code so callers cannot probe other clients' codes.
        if code.client.id != client.id:
            raise InvalidGrantError("Invalid grant: authorization code is invalid")
        if not isinstance(getattr(code, "expires_at", None), datetime):
            raise ServerError("Server error: `expires_at` must be a datetime instance")
        if is_expired(code.expires_at):
            raise InvalidGrantError("Invalid grant: authorization code has expired")

        redirect_uri = getattr(code, "redirect_uri", None)
        if redirect_uri and not validators.uri(redirect_uri):
            raise InvalidGrantError("Invalid grant: `redirect_uri` is not a valid URI")
        return code

    def validate_redirect_uri(self, request: Request, code: Any) -> None:
        expected = getattr(code, "redirect_uri", None)
        if not expected:
            return

        redirect_uri = request.param("redirect_uri")
        if not validators.uri(redirect_uri):
            raise InvalidRequestError("Invalid request: `redirect_uri` is not a valid URI")
        if redirect_uri != expected:
            raise InvalidRequestError("Invalid request: `redirect_uri` is invalid")

    async def revoke_authorization_code(self, code: Any) -> Any:
        status = await call_model(self.model.revoke_authorization_code, code)
        if not status:
            raise InvalidGrantError("Invalid grant: authorization code is invalid")
        return code

    async def save_token(
        self,
        user: Any,
        client: Any,
        authorization_code: str,
        scope: str | None,
    ) -> Any:
        scope = await self.validate_scope(user, client, scope)
        token = Token(
            access_token=await self.generate_access_token(client, user, scope),
            access_token_expires_at=self.get_access_token_expires_at(client),
            refresh_token=await self.generate_refresh_token(client, user, scope),
            refresh_token_expires_at=self.get_refresh_token_expires_at(client),
            scope=scope,
            authorization_code=authorization_code,
        )
        return await call_model(self.model.save_token, token, client, user)


class RefreshTokenGrantType(AbstractGrantType):
    """Exchanges a refresh token for a new access/refresh pair.

    The presented refresh token is revoked before the new pair is saved, so
    every successful call rotates it exactly once.
    """

    grant_type = GRANT_REFRESH_TOKEN

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        require_capabilities(self.model, "get_refresh_token", "revoke_token", "save_token")

    async def handle(self, request: Request, client: Any) -> Any:
        _require_request_and_client(request, client)

        token = await self.get_refresh_token(request, client)
        await self.revoke_token(token)
        return await self.save_token(token.user, client, token.scope)

    async def get_refresh_token(self, request: Request, client: Any) -> Any:
        raw_token = request.body.get("refresh_token")
        if not raw_token:
            raise InvalidRequestError("Missing parameter: `refresh_token`")
        if not validators.vschar(raw_token):
            raise InvalidRequestError("Invalid parameter: `refresh_token`")

        token = await call_model(self.model.get_refresh_token, raw_token)
        if token is None:
            raise InvalidGrantError("Invalid grant: refresh token is invalid")
        if getattr(token, "client", None) is None:
            raise ServerError(
                "Server error: `get_refresh_token()` did not return a `client` object"
            )
        if getattr(token, "user", None) is None:
            raise ServerError(
                "Server error: `get_refresh_token()` did not return a `user` object"
            )
        if token.client.id != client.id:
            raise InvalidGrantError("Invalid grant: refresh token is invalid")

        token_expires_at = getattr(token, "refresh_token_expires_at", None)
        if token_expires_at is not None and not isinstance(token_expires_at, datetime):
            raise ServerError(
                "Server error: `refresh_token_expires_at` must be a datetime instance"
            )
        if is_expired(token_expires_at):
            raise InvalidGrantError("Invalid grant: refresh token has expired")
        return token

    async def revoke_token(self, token: Any) -> Any:
        if not self.always_issue_new_refresh_token:
            return token

        status = await call_model(self.model.revoke_token, token)
        if not status:
            raise InvalidGrantError("Invalid grant: refresh token is invalid")
        if not isinstance(getattr(status, "refresh_token_expires_at", None), datetime):
            raise ServerError(
                "Server error: `refresh_token_expires_at` must be a datetime instance"
            )
        return status

    async def save_token(self, user: Any, client: Any, scope: str | None) -> Any:
        token = Token(
            access_token=await self.generate_access_token(client, user, scope),
            access_token_expires_at=self.get_access_token_expires_at(client),
            scope=scope,
        )
        if self.always_issue_new_refresh_token:
            token.refresh_token = await self.generate_refresh_token(client, user, scope)
            token.refresh_token_expires_at = self.get_refresh_token_expires_at(client)
        return await call_model(self.model.save_token, token, client, user)


class PasswordGrantType(AbstractGrantType):
    grant_type = GRANT_PASSWORD

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        require_capabilities(self.model, "get_user", "save_token")

    async def handle(self, request: Request, client: Any) -> Any:
        _require_request_and_client(request, client)

        scope = self.get_scope(request)
        user = await self.get_user(request)
        return await self.save_token(user, client, scope)

    async def get_user(self, request: Request) -> Any:
        username = request.body.get("username")
        password = request.body.get("password")
        if not username:
            raise InvalidRequestError("Missing parameter: `username`")
        if not password:
            raise InvalidRequestError("Missing parameter: `password`")
        if not validators.uchar(username):
            raise InvalidRequestError("Invalid parameter: `username`")
        if not validators.uchar(password):
            raise InvalidRequestError("Invalid parameter: `password`")

        user = await call_model(self.model.get_user, username, password)
        if user is None:
            raise InvalidGrantError("Invalid grant: user credentials are invalid")
        return user

    async def save_token(self, user: Any, client: Any, scope: str | None) -> Any:
        scope = await self.validate_scope(user, client, scope)
        token = Token(
            access_token=await self.generate_access_token(client, user, scope),
            access_token_expires_at=self.get_access_token_expires_at(client),
            refresh_token=await self.generate_refresh_token(client, user, scope),
            refresh_token_expires_at=self.get_refresh_token_expires_at(client),
            scope=scope,
        )
        return await call_model(self.model.save_token, token, client, user)


class ClientCredentialsGrantType(AbstractGrantType):
    grant_type = GRANT_CLIENT_CREDENTIALS

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        require_capabilities(self.model, "get_user_from_client", "save_token")

    async def handle(self, request: Request, client: Any) -> Any:
        _require_request_and_client(request, client)

        scope = self.get_scope(request)
        user = await self.get_user_from_client(client)
        return await self.save_token(user, client, scope)

    async def get_user_from_client(self, client: Any) -> Any:
        user = await call_model(self.model.get_user_from_client, client)
        if user is None:
            raise InvalidGrantError("Invalid grant: user credentials are invalid")
        return user

    async def save_token(self, user: Any, client: Any, scope: str | None) -> Any:
        # No refresh token for this grant (RFC 6749 section 4.4.3).
        scope = await self.validate_scope(user, client, scope)
        token = Token(
            access_token=await self.generate_access_token(client, user, scope),
            access_token_expires_at=self.get_access_token_expires_at(client),
            scope=scope,
        )
        return await call_model(self.model.save_token, token, client, user)


GRANT_TYPES: dict[str, type[AbstractGrantType]] = {
    GRANT_AUTHORIZATION_CODE: AuthorizationCodeGrantType,
    GRANT_CLIENT_CREDENTIALS: ClientCredentialsGrantType,
    GRANT_PASSWORD: PasswordGrantType,
    GRANT_REFRESH_TOKEN: RefreshTokenGrantType,
}
