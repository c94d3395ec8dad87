from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .constants import FORM_CONTENT_TYPE


@dataclass
class Request:
    body: dict[str, Any] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    method: str = "GET"

    def __post_init__(self) -> None:
        self.headers = {key.lower(): value for key, value in self.headers.items()}
        self.method = self.method.upper()

    def get(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def param(self, name: str) -> Any:
        return self.body.get(name) or self.query.get(name)

    def is_form(self) -> bool:
        content_type = self.get("content-type") or ""
        return content_type.split(";", 1)[0].strip().lower() == FORM_CONTENT_TYPE


@dataclass
class Response:
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = {key.lower(): value for key, value in self.headers.items()}

    def get(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def set(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    def redirect(self, url: str) -> None:
        self.set("Location", url)
        self.status_code = 302


@dataclass
class Client:
    id: str
    grants: list[str] = field(default_factory=list)
    redirect_uris: str | list[str] | None = None
    secret: str | None = None
    access_token_lifetime: int | None = None
    refresh_token_lifetime: int | None = None


@dataclass
class AuthorizationCode:
    authorization_code: str
    expires_at: datetime
    scope: str | None = None
    redirect_uri: str | None = None
    client: Any = None
    user: Any = None


@dataclass
class Token:
    access_token: str
    access_token_expires_at: datetime | None = None
    refresh_token: str | None = None
    refresh_token_expires_at: datetime | None = None
    scope: str | None = None
    client: Any = None
    user: Any = None
    authorization_code: str | None = None
    custom_attributes: dict[str, Any] = field(default_factory=dict)
