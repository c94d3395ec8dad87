from __future__ import annotations

import os
from typing import TYPE_CHECKING

from oauth2_engine.constants import LOGGER
from oauth2_engine.memory_model import InMemoryModel
from oauth2_engine.server import OAuth2Server
from oauth2_host.env import load_env, load_settings, parse_csv_env, setup_logging, validate_env
from oauth2_host.http import mount_health_route, mount_routes

if TYPE_CHECKING:
    from fastmcp import FastMCP


def build_model() -> InMemoryModel:
    scopes = set(parse_csv_env("OAUTH2_SCOPES")) or None
    model = InMemoryModel(scopes=scopes)

    client_id = os.getenv("OAUTH2_DEV_CLIENT_ID", "").strip()
    if client_id:
        model.add_client(
            client_id,
            secret=os.getenv("OAUTH2_DEV_CLIENT_SECRET") or None,
            redirect_uris=parse_csv_env("OAUTH2_DEV_REDIRECT_URIS"),
            grants=parse_csv_env("OAUTH2_DEV_CLIENT_GRANTS") or None,
        )
        LOGGER.info("Seeded development client %s", client_id)

    username = os.getenv("OAUTH2_DEV_USERNAME", "").strip()
    password = os.getenv("OAUTH2_DEV_PASSWORD", "")
    if username and password:
        model.add_user(username, password)
        LOGGER.info("Seeded development user %s", username)

    return model


def create_mcp() -> "FastMCP":
    from fastmcp import FastMCP

    load_env()
    setup_logging()
    validate_env()

    oauth_server = OAuth2Server(model=build_model(), **load_settings())

    mcp = FastMCP(name="OAuth2 Engine")
    mount_routes(mcp, oauth_server)
    setattr(mcp, "_oauth_server", oauth_server)
    mount_health_route(mcp)
    return mcp


def main() -> None:
    host = os.getenv("MCP_HOST", "127.0.0.1")
    port = int(os.getenv("MCP_PORT", "8000"))
    mcp = create_mcp()
    mcp.run(transport="streamable-http", host=host, port=port)


if __name__ == "__main__":
    main()
