from __future__ import annotations

import logging

LOGGER = logging.getLogger("oauth2_engine")
APP_VERSION = "0.1.0"

DEFAULT_AUTHORIZATION_CODE_LIFETIME = 5 * 60
DEFAULT_ACCESS_TOKEN_LIFETIME = 60 * 60
DEFAULT_REFRESH_TOKEN_LIFETIME = 60 * 60 * 24 * 14

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_CLIENT_CREDENTIALS = "client_credentials"
GRANT_PASSWORD = "password"
GRANT_REFRESH_TOKEN = "refresh_token"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
