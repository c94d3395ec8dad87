from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass, replace
from typing import Any

from .constants import GRANT_AUTHORIZATION_CODE, GRANT_REFRESH_TOKEN
from .models import AuthorizationCode, Client, Request, Token


@dataclass
class User:
    username: str


class InMemoryModel:
    """Dict-backed model implementing every hook the engine calls.

    Intended for development servers and tests; nothing survives a restart.
    """

    def __init__(self, *, scopes: set[str] | None = None) -> None:
        self.scopes = scopes
        self.clients: dict[str, Client] = {}
        self.users: dict[str, tuple[str, User]] = {}
        self.client_users: dict[str, User] = {}
        self.codes: dict[str, AuthorizationCode] = {}
        self.tokens_by_access: dict[str, Token] = {}
        self.tokens_by_refresh: dict[str, Token] = {}

    # -- seeding ---------------------------------------------------------------

    def add_client(
        self,
        client_id: str,
        *,
        redirect_uris: str | list[str],
        grants: list[str] | None = None,
        secret: str | None = None,
        access_token_lifetime: int | None = None,
        refresh_token_lifetime: int | None = None,
    ) -> Client:
        client = Client(
            id=client_id,
            grants=grants or [GRANT_AUTHORIZATION_CODE, GRANT_REFRESH_TOKEN],
            redirect_uris=redirect_uris,
            secret=secret if secret is not None else secrets.token_urlsafe(32),
            access_token_lifetime=access_token_lifetime,
            refresh_token_lifetime=refresh_token_lifetime,
        )
        self.clients[client_id] = client
        return client

    def add_user(self, username: str, password: str) -> User:
        user = User(username=username)
        self.users[username] = (password, user)
        return user

    # -- clients and users -----------------------------------------------------

    async def get_client(self, client_id: str, client_secret: str | None) -> Client | None:
        client = self.clients.get(client_id)
        if client is None:
            return None
        if client_secret is not None and not hmac.compare_digest(
            client.secret or "", client_secret
        ):
            return None
        return client

    async def get_user(self, username: str, password: str) -> User | None:
        entry = self.users.get(username)
        if entry is None or not hmac.compare_digest(entry[0], password):
            return None
        return entry[1]

    async def get_user_from_client(self, client: Client) -> User:
        return self.client_users.setdefault(client.id, User(username=f"client:{client.id}"))

    # -- authorization codes ---------------------------------------------------

    async def save_authorization_code(
        self, code: AuthorizationCode, client: Client, user: Any
    ) -> AuthorizationCode:
        stored = replace(code, client=client, user=user)
        self.codes[stored.authorization_code] = stored
        return stored

    async def get_authorization_code(self, authorization_code: str) -> AuthorizationCode | None:
        return self.codes.get(authorization_code)

    async def revoke_authorization_code(self, code: AuthorizationCode) -> bool:
        return self.codes.pop(code.authorization_code, None) is not None

    # -- tokens ----------------------------------------------------------------

    async def save_token(self, token: Token, client: Client, user: Any) -> Token:
        stored = replace(token, client=client, user=user)
        self.tokens_by_access[stored.access_token] = stored
        if stored.refresh_token:
            self.tokens_by_refresh[stored.refresh_token] = stored
        return stored

    async def get_access_token(self, access_token: str) -> Token | None:
        return self.tokens_by_access.get(access_token)

    async def get_refresh_token(self, refresh_token: str) -> Token | None:
        return self.tokens_by_refresh.get(refresh_token)

    async def revoke_token(self, token: Token) -> Token | bool:
        stored = self.tokens_by_refresh.pop(token.refresh_token, None)
        if stored is None:
            return False
        self.tokens_by_access.pop(stored.access_token, None)
        return stored

    # -- scope and consent -----------------------------------------------------

    async def validate_scope(self, user: Any, client: Client, scope: str | None) -> bool:
        if not scope or self.scopes is None:
            return True
        return set(scope.split()) <= self.scopes

    async def verify_scope(self, token: Token, scope: str) -> bool:
        granted = set((token.scope or "").split())
        return set(scope.split()) <= granted

    async def authorization_allowed(self, request: Request) -> bool:
        return request.param("allowed") != "false"
