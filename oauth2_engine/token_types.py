from __future__ import annotations

from typing import Any

from .errors import InvalidArgumentError

_STANDARD_FIELDS = ("access_token", "token_type", "expires_in", "refresh_token", "scope")


class BearerTokenType:
    """Wire projection of a saved token (RFC 6749 section 5.1)."""

    def __init__(
        self,
        access_token: str | None,
        access_token_lifetime: int | None = None,
        refresh_token: str | None = None,
        scope: str | None = None,
        custom_attributes: dict[str, Any] | None = None,
    ) -> None:
        if not access_token:
            raise InvalidArgumentError("Missing parameter: `access_token`")

        self.access_token = access_token
        self.access_token_lifetime = access_token_lifetime
        self.refresh_token = refresh_token
        self.scope = scope
        self.custom_attributes = custom_attributes or {}

    @classmethod
    def from_token(
        cls,
        token: Any,
        access_token_lifetime: int | None,
        *,
        include_custom_attributes: bool = False,
    ) -> "BearerTokenType":
        custom_attributes = None
        if include_custom_attributes:
            custom_attributes = getattr(token, "custom_attributes", None)
        return cls(
            getattr(token, "access_token", None),
            access_token_lifetime,
            getattr(token, "refresh_token", None),
            getattr(token, "scope", None),
            custom_attributes,
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": "bearer",
        }
        if self.access_token_lifetime:
            payload["expires_in"] = self.access_token_lifetime
        if self.refresh_token:
            payload["refresh_token"] = self.refresh_token
        if self.scope:
            payload["scope"] = self.scope

        for key, value in self.custom_attributes.items():
            if key not in _STANDARD_FIELDS:
                payload[key] = value
        return payload
