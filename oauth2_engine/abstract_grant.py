from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from . import validators
from .errors import InvalidArgumentError, InvalidScopeError
from .model_call import call_model, optional_capability
from .models import Request
from .token_util import generate_random_token

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def expires_at(lifetime: int) -> datetime:
    # A zero lifetime is stored as the epoch and means "never expires".
    if lifetime == 0:
        return EPOCH
    return datetime.now(timezone.utc) + timedelta(seconds=lifetime)


def is_expired(when: datetime | None) -> bool:
    if when is None:
        return False
    when = _utc(when)
    if when == EPOCH:
        return False
    return when < datetime.now(timezone.utc)


def lifetime_for(client: Any, attribute: str, default: int) -> int:
    value = getattr(client, attribute, None) if client is not None else None
    return default if value is None else value


class AbstractGrantType:
    """Token generation, expiry and scope handling shared by every grant."""

    grant_type = ""

    def __init__(
        self,
        *,
        model: Any = None,
        access_token_lifetime: int = 0,
        refresh_token_lifetime: int = 0,
        always_issue_new_refresh_token: bool = True,
    ) -> None:
        if not model:
            raise InvalidArgumentError("Missing parameter: `model`")

        self.model = model
        self.access_token_lifetime = access_token_lifetime or 0
        self.refresh_token_lifetime = refresh_token_lifetime or 0
        self.always_issue_new_refresh_token = always_issue_new_refresh_token

        self._generate_access_token = optional_capability(model, "generate_access_token")
        self._generate_refresh_token = optional_capability(model, "generate_refresh_token")
        self._validate_scope = optional_capability(model, "validate_scope")

    async def generate_access_token(self, client: Any = None, user: Any = None, scope: str | None = None) -> str:
        if self._generate_access_token is None:
            return generate_random_token()
        return await call_model(self._generate_access_token, client, user, scope)

    async def generate_refresh_token(self, client: Any = None, user: Any = None, scope: str | None = None) -> str:
        if self._generate_refresh_token is None:
            return generate_random_token()
        return await call_model(self._generate_refresh_token, client, user, scope)

    def get_access_token_lifetime(self, client: Any = None) -> int:
        return lifetime_for(client, "access_token_lifetime", self.access_token_lifetime)

    def get_refresh_token_lifetime(self, client: Any = None) -> int:
        return lifetime_for(client, "refresh_token_lifetime", self.refresh_token_lifetime)

    def get_access_token_expires_at(self, client: Any = None) -> datetime:
        return expires_at(self.get_access_token_lifetime(client))

    def get_refresh_token_expires_at(self, client: Any = None) -> datetime:
        return expires_at(self.get_refresh_token_lifetime(client))

    def get_scope(self, request: Request) -> str | None:
        scope = request.body.get("scope")
        if scope is not None and not validators.nqschar(scope):
            raise InvalidArgumentError("Invalid parameter: `scope`")
        return scope

    async def validate_scope(self, user: Any, client: Any, scope: str | None) -> str | None:
        if self._validate_scope is None:
            return scope

        result = await call_model(self._validate_scope, user, client, scope)
        if isinstance(result, str):
            return result
        if not result:
            raise InvalidScopeError("Invalid scope: Requested scope is invalid")
        return scope
