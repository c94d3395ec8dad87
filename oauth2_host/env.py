from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from oauth2_engine.constants import (
    DEFAULT_ACCESS_TOKEN_LIFETIME,
    DEFAULT_AUTHORIZATION_CODE_LIFETIME,
    DEFAULT_REFRESH_TOKEN_LIFETIME,
    LOGGER,
)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv_env(key: str) -> list[str]:
    raw = os.getenv(key, "")
    items: list[str] = []
    for item in raw.split(","):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return items


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")
    if value < 0:
        raise RuntimeError(f"{key} must not be negative.")
    return value


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=True)


def load_settings() -> dict[str, Any]:
    return {
        "access_token_lifetime": _get_env_int(
            "OAUTH2_ACCESS_TOKEN_LIFETIME", DEFAULT_ACCESS_TOKEN_LIFETIME
        ),
        "refresh_token_lifetime": _get_env_int(
            "OAUTH2_REFRESH_TOKEN_LIFETIME", DEFAULT_REFRESH_TOKEN_LIFETIME
        ),
        "authorization_code_lifetime": _get_env_int(
            "OAUTH2_AUTHORIZATION_CODE_LIFETIME", DEFAULT_AUTHORIZATION_CODE_LIFETIME
        ),
        "allow_bearer_tokens_in_query_string": is_truthy(
            os.getenv("OAUTH2_ALLOW_BEARER_TOKENS_IN_QUERY_STRING")
        ),
        "always_issue_new_refresh_token": is_truthy(
            os.getenv("OAUTH2_ALWAYS_ISSUE_NEW_REFRESH_TOKEN", "1")
        ),
    }


def validate_env() -> None:
    settings = load_settings()
    for key in ("access_token_lifetime", "refresh_token_lifetime", "authorization_code_lifetime"):
        if settings[key] == 0:
            raise RuntimeError(f"OAUTH2_{key.upper()} must be greater than zero.")

    if os.getenv("OAUTH2_DEV_CLIENT_ID", "").strip() and not parse_csv_env(
        "OAUTH2_DEV_REDIRECT_URIS"
    ):
        raise RuntimeError("OAUTH2_DEV_REDIRECT_URIS is required when OAUTH2_DEV_CLIENT_ID is set.")

    if settings["allow_bearer_tokens_in_query_string"]:
        LOGGER.warning(
            "OAUTH2_ALLOW_BEARER_TOKENS_IN_QUERY_STRING is enabled; tokens may leak into logs."
        )


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("OAUTH2_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
