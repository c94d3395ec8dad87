from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

from .abstract_grant import expires_at, lifetime_for
from .errors import InvalidArgumentError, ServerError
from .model_call import call_model, optional_capability, require_capabilities
from .models import AuthorizationCode, Token
from .token_types import BearerTokenType
from .token_util import generate_random_token
from .urls import append_redirect_params


def registered_redirect_uri(client: Any) -> str | None:
    redirect_uris = getattr(client, "redirect_uris", None)
    if isinstance(redirect_uris, str):
        return redirect_uris
    if redirect_uris:
        return redirect_uris[0]
    return None


def _require_client_and_user(client: Any, user: Any) -> None:
    if client is None:
        raise InvalidArgumentError("Missing parameter: `client`")
    if user is None:
        raise InvalidArgumentError("Missing parameter: `user`")


class ResponseType(ABC):
    """An authorize-endpoint artifact and where it goes in the redirect.

    Codes travel in the query string. Tokens travel in the fragment, which
    the user agent never sends to a server.
    """

    name = ""
    uses_fragment = False

    def __init__(self, *, model: Any = None) -> None:
        if not model:
            raise InvalidArgumentError("Missing parameter: `model`")
        self.model = model

    @abstractmethod
    async def build_redirect_uri(
        self,
        client: Any,
        user: Any,
        scope: str | None,
        redirect_uri: str | None = None,
    ) -> tuple[Any, str]:
        """Save the artifact and return it with the success redirect URI.

        ``redirect_uri`` is the URI the authorize request named, if any; the
        client's registered URI is used for the redirect otherwise.
        """

    def add_params(self, url: str, params: dict[str, Any]) -> str:
        return append_redirect_params(url, params, fragment=self.uses_fragment)


class CodeResponseType(ResponseType):
    name = "code"
    uses_fragment = False

    def __init__(
        self,
        *,
        model: Any = None,
        authorization_code_lifetime: int | None = None,
        **options: Any,
    ) -> None:
        if not authorization_code_lifetime:
            raise InvalidArgumentError("Missing parameter: `authorization_code_lifetime`")
        super().__init__(model=model)
        require_capabilities(model, "save_authorization_code")

        self.authorization_code_lifetime = authorization_code_lifetime
        self._generate_authorization_code = optional_capability(
            model, "generate_authorization_code"
        )

    async def generate_authorization_code(self, client: Any, user: Any, scope: str | None) -> str:
        if self._generate_authorization_code is None:
            return generate_random_token()
        return await call_model(self._generate_authorization_code, client, user, scope)

    def get_authorization_code_expires_at(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=self.authorization_code_lifetime)

    async def save_authorization_code(
        self,
        authorization_code: str,
        code_expires_at: datetime,
        scope: str | None,
        redirect_uri: str | None,
        client: Any,
        user: Any,
    ) -> Any:
        code = AuthorizationCode(
            authorization_code=authorization_code,
            expires_at=code_expires_at,
            scope=scope,
            redirect_uri=redirect_uri,
        )
        saved = await call_model(self.model.save_authorization_code, code, client, user)
        if not saved:
            raise ServerError(
                "Server error: `save_authorization_code()` did not return an authorization code"
            )
        return saved

    async def build_redirect_uri(
        self,
        client: Any,
        user: Any,
        scope: str | None,
        redirect_uri: str | None = None,
    ) -> tuple[Any, str]:
        _require_client_and_user(client, user)

        authorization_code = await self.generate_authorization_code(client, user, scope)
        # Only a requested URI is stored; the token request must repeat it.
        code = await self.save_authorization_code(
            authorization_code,
            self.get_authorization_code_expires_at(),
            scope,
            redirect_uri,
            client,
            user,
        )

        url = self.add_params(
            redirect_uri or registered_redirect_uri(client), {"code": code.authorization_code}
        )
        return code, url


class TokenResponseType(ResponseType):
    name = "token"
    uses_fragment = True

    def __init__(
        self,
        *,
        model: Any = None,
        access_token_lifetime: int | None = None,
        **options: Any,
    ) -> None:
        super().__init__(model=model)
        require_capabilities(model, "save_token")

        self.access_token_lifetime = access_token_lifetime or 0
        self._generate_access_token = optional_capability(model, "generate_access_token")

    async def generate_access_token(self, client: Any, user: Any, scope: str | None) -> str:
        if self._generate_access_token is None:
            return generate_random_token()
        return await call_model(self._generate_access_token, client, user, scope)

    def get_access_token_lifetime(self, client: Any = None) -> int:
        return lifetime_for(client, "access_token_lifetime", self.access_token_lifetime)

    def get_access_token_expires_at(self, client: Any = None) -> datetime:
        return expires_at(self.get_access_token_lifetime(client))

    async def save_token(self, user: Any, client: Any, scope: str | None) -> Any:
        token = Token(
            access_token=await self.generate_access_token(client, user, scope),
            access_token_expires_at=self.get_access_token_expires_at(client),
            scope=scope,
        )
        saved = await call_model(self.model.save_token, token, client, user)
        if not saved:
            raise ServerError("Server error: `save_token()` did not return a token")
        return saved

    async def build_redirect_uri(
        self,
        client: Any,
        user: Any,
        scope: str | None,
        redirect_uri: str | None = None,
    ) -> tuple[Any, str]:
        _require_client_and_user(client, user)
        redirect_uri = redirect_uri or registered_redirect_uri(client)

        token = await self.save_token(user, client, scope)
        projection = BearerTokenType.from_token(token, self.get_access_token_lifetime(client))

        url = self.add_params(redirect_uri, projection.as_dict())
        return token, url


RESPONSE_TYPES: dict[str, type[ResponseType]] = {
    CodeResponseType.name: CodeResponseType,
    TokenResponseType.name: TokenResponseType,
}
