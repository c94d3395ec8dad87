from dataclasses import replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from fastmcp import FastMCP
from starlette.testclient import TestClient

from oauth2_engine.memory_model import InMemoryModel, User
from oauth2_engine.models import Client, Request, Token
from oauth2_engine.server import OAuth2Server
from oauth2_host.http import mount_health_route, mount_routes

REDIRECT_URI = "http://example.com/cb"
APP_REDIRECT_URI = "https://app.example.com/cb"
FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def future(seconds: int = 3600) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


def past(seconds: int = 60) -> datetime:
    return datetime.now(timezone.utc) - timedelta(seconds=seconds)


def form_request(body: dict, *, headers: dict | None = None, method: str = "POST") -> Request:
    return Request(body=body, query={}, headers={**FORM_HEADERS, **(headers or {})}, method=method)


def make_client(**overrides) -> Client:
    values = {
        "id": "client-1",
        "grants": ["authorization_code", "refresh_token", "password", "client_credentials"],
        "redirect_uris": REDIRECT_URI,
        "secret": "secret-1",
    }
    values.update(overrides)
    return Client(**values)


def authorize_model(client: Client | None = None, user: User | None = None, **overrides):
    client = client or make_client()
    user = user or User("alice")

    def _save_code(code, code_client, code_user):
        return replace(code, client=code_client, user=code_user)

    def _save_token(token, token_client, token_user):
        return replace(token, client=token_client, user=token_user)

    hooks = {
        "get_access_token": lambda raw: Token(
            access_token=raw, access_token_expires_at=future(), user=user
        ),
        "get_client": lambda client_id, secret: client if client_id == client.id else None,
        "save_authorization_code": _save_code,
        "save_token": _save_token,
        "validate_scope": lambda scope_user, scope_client, scope: True,
        "authorization_allowed": lambda request: True,
    }
    hooks.update(overrides)
    return SimpleNamespace(**hooks)


def bearer_request(query: dict, *, token: str = "foo", method: str = "GET") -> Request:
    return Request(
        body={},
        query=query,
        headers={"Authorization": f"Bearer {token}"},
        method=method,
    )


def _build_oauth_server(**options):
    model = InMemoryModel()
    model.add_client(
        "client-1",
        secret="secret-1",
        redirect_uris=[APP_REDIRECT_URI, "https://app.example.com/alt"],
        grants=["authorization_code", "refresh_token", "password", "client_credentials"],
    )
    model.add_user("alice", "wonderland")

    oauth = OAuth2Server(model=model, **options)
    mcp = FastMCP(name="test")
    mount_routes(mcp, oauth)
    mount_health_route(mcp)
    app = mcp.http_app(path="/mcp", transport="streamable-http")
    return oauth, TestClient(app), model


def _password_login(test_client) -> dict:
    response = test_client.post(
        "/token",
        data={
            "grant_type": "password",
            "client_id": "client-1",
            "client_secret": "secret-1",
            "username": "alice",
            "password": "wonderland",
        },
    )
    assert response.status_code == 200
    return response.json()
