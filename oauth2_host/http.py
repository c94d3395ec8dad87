from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.requests import Request as StarletteRequest
from starlette.responses import JSONResponse, RedirectResponse
from starlette.responses import Response as StarletteResponse

from oauth2_engine.constants import APP_VERSION, FORM_CONTENT_TYPE, LOGGER
from oauth2_engine.errors import OAuthError
from oauth2_engine.models import Request, Response
from oauth2_engine.server import OAuth2Server

if TYPE_CHECKING:
    from fastmcp import FastMCP


async def to_engine_request(request: StarletteRequest) -> Request:
    body: dict[str, str] = {}
    content_type = request.headers.get("content-type", "")
    if request.method != "GET" and content_type.lower().startswith(FORM_CONTENT_TYPE):
        form = await request.form()
        body = {key: str(value) for key, value in form.multi_items()}

    return Request(
        body=body,
        query=dict(request.query_params),
        headers=dict(request.headers),
        method=request.method,
    )


def to_starlette_response(response: Response) -> StarletteResponse:
    headers = {key: value for key, value in response.headers.items() if key != "location"}
    location = response.get("location")
    if location is not None:
        return RedirectResponse(url=location, status_code=response.status_code, headers=headers)
    return JSONResponse(response.body, status_code=response.status_code, headers=headers)


def error_response(error: OAuthError) -> StarletteResponse:
    return JSONResponse(error.as_dict(), status_code=error.status_code)


async def handle_authorize(oauth_server: OAuth2Server, request: StarletteRequest) -> StarletteResponse:
    engine_request = await to_engine_request(request)
    engine_response = Response()
    try:
        await oauth_server.authorize(engine_request, engine_response)
    except OAuthError as error:
        if engine_response.get("location") is None:
            return error_response(error)
    return to_starlette_response(engine_response)


async def handle_token(oauth_server: OAuth2Server, request: StarletteRequest) -> StarletteResponse:
    engine_request = await to_engine_request(request)
    engine_response = Response()
    try:
        await oauth_server.token(engine_request, engine_response)
    except OAuthError as error:
        LOGGER.debug("Token endpoint answered %s", error.status_code)
    return to_starlette_response(engine_response)


def mount_routes(
    mcp: "FastMCP",
    oauth_server: OAuth2Server,
    *,
    authorize_path: str = "/authorize",
    token_path: str = "/token",
) -> None:
    @mcp.custom_route(authorize_path, methods=["GET", "POST"])
    async def authorize_route(request: StarletteRequest) -> StarletteResponse:
        return await handle_authorize(oauth_server, request)

    @mcp.custom_route(token_path, methods=["POST"])
    async def token_route(request: StarletteRequest) -> StarletteResponse:
        return await handle_token(oauth_server, request)


def mount_health_route(mcp: "FastMCP") -> None:
    @mcp.custom_route("/health", methods=["GET"])
    async def health_route(request: StarletteRequest) -> StarletteResponse:
        del request
        return JSONResponse({"status": "ok", "version": APP_VERSION})
