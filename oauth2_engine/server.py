from __future__ import annotations

from typing import Any

from .authenticate_handler import AuthenticateHandler
from .authorize_handler import AuthorizeHandler
from .constants import (
    DEFAULT_ACCESS_TOKEN_LIFETIME,
    DEFAULT_AUTHORIZATION_CODE_LIFETIME,
    DEFAULT_REFRESH_TOKEN_LIFETIME,
)
from .errors import InvalidArgumentError
from .models import Request, Response
from .token_handler import TokenHandler


class OAuth2Server:
    """Entry points for a host HTTP layer.

    Options given to a call override the server options, which override the
    per-endpoint defaults.
    """

    def __init__(self, *, model: Any = None, **options: Any) -> None:
        if not model:
            raise InvalidArgumentError("Missing parameter: `model`")
        self.options = {"model": model, **options}

    @property
    def model(self) -> Any:
        return self.options["model"]

    def _merge(self, defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
        return {**defaults, **self.options, **overrides}

    async def authenticate(self, request: Request, response: Response, **options: Any) -> Any:
        merged = self._merge(
            {"add_accepted_scopes_header": True, "add_authorized_scopes_header": True},
            options,
        )
        return await AuthenticateHandler(**merged).handle(request, response)

    async def authorize(self, request: Request, response: Response, **options: Any) -> Any:
        merged = self._merge(
            {
                "authorization_code_lifetime": DEFAULT_AUTHORIZATION_CODE_LIFETIME,
                "access_token_lifetime": DEFAULT_ACCESS_TOKEN_LIFETIME,
            },
            options,
        )
        return await AuthorizeHandler(**merged).handle(request, response)

    async def token(self, request: Request, response: Response, **options: Any) -> Any:
        merged = self._merge(
            {
                "access_token_lifetime": DEFAULT_ACCESS_TOKEN_LIFETIME,
                "refresh_token_lifetime": DEFAULT_REFRESH_TOKEN_LIFETIME,
            },
            options,
        )
        return await TokenHandler(**merged).handle(request, response)
