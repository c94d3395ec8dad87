from dataclasses import replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from oauth2_engine.abstract_grant import EPOCH
from oauth2_engine.errors import InvalidArgumentError, ServerError
from oauth2_engine.memory_model import User
from oauth2_engine.response_types import (
    RESPONSE_TYPES,
    CodeResponseType,
    ResponseType,
    TokenResponseType,
    registered_redirect_uri,
)
from tests.oauth_helpers import make_client


def _model(**overrides):
    hooks = {
        "save_authorization_code": lambda code, client, user: replace(
            code, client=client, user=user
        ),
        "save_token": lambda token, client, user: replace(token, client=client, user=user),
    }
    hooks.update(overrides)
    return SimpleNamespace(**hooks)


def test_registry() -> None:
    assert RESPONSE_TYPES == {"code": CodeResponseType, "token": TokenResponseType}
    assert not CodeResponseType.uses_fragment
    assert TokenResponseType.uses_fragment


def test_base_response_type_is_abstract() -> None:
    with pytest.raises(TypeError):
        ResponseType(model=_model())


def test_registered_redirect_uri_uses_first_entry() -> None:
    assert registered_redirect_uri(make_client(redirect_uris="http://a.example/cb")) == (
        "http://a.example/cb"
    )
    assert registered_redirect_uri(
        make_client(redirect_uris=["http://a.example/cb", "http://b.example/cb"])
    ) == "http://a.example/cb"
    assert registered_redirect_uri(make_client(redirect_uris=None)) is None


def test_code_requires_lifetime() -> None:
    with pytest.raises(
        InvalidArgumentError, match="Missing parameter: `authorization_code_lifetime`"
    ):
        CodeResponseType(model=_model())


def test_code_requires_model() -> None:
    with pytest.raises(InvalidArgumentError, match="Missing parameter: `model`"):
        CodeResponseType(authorization_code_lifetime=120)


def test_code_requires_save_authorization_code() -> None:
    model = _model()
    del model.save_authorization_code

    with pytest.raises(InvalidArgumentError, match="`save_authorization_code\\(\\)`"):
        CodeResponseType(model=model, authorization_code_lifetime=120)


@pytest.mark.asyncio
async def test_code_redirect_keeps_existing_query() -> None:
    model = _model(generate_authorization_code=lambda client, user, scope: "foo")
    response_type = CodeResponseType(model=model, authorization_code_lifetime=120)

    code, url = await response_type.build_redirect_uri(
        make_client(), User("alice"), "read", "http://example.com/cb?foo=bar"
    )

    assert url == "http://example.com/cb?foo=bar&code=foo"
    assert code.authorization_code == "foo"


@pytest.mark.asyncio
async def test_code_is_saved_with_scope_and_expiry() -> None:
    saved = []

    def _save(code, client, user):
        saved.append((code, client, user))
        return code

    response_type = CodeResponseType(
        model=_model(save_authorization_code=_save), authorization_code_lifetime=120
    )
    client = make_client()

    _, url = await response_type.build_redirect_uri(client, User("alice"), "read", None)

    code, saved_client, saved_user = saved[0]
    assert code.scope == "read"
    assert code.redirect_uri is None
    assert url.startswith("http://example.com/cb?code=")
    assert saved_client is client
    assert saved_user == User("alice")
    now = datetime.now(timezone.utc)
    assert now < code.expires_at <= now + timedelta(seconds=120)


@pytest.mark.asyncio
async def test_code_save_failure_is_a_server_error() -> None:
    response_type = CodeResponseType(
        model=_model(save_authorization_code=lambda code, client, user: None),
        authorization_code_lifetime=120,
    )

    with pytest.raises(ServerError):
        await response_type.build_redirect_uri(make_client(), User("alice"), None)


@pytest.mark.asyncio
async def test_build_redirect_uri_requires_client_and_user() -> None:
    response_type = CodeResponseType(model=_model(), authorization_code_lifetime=120)

    with pytest.raises(InvalidArgumentError, match="Missing parameter: `client`"):
        await response_type.build_redirect_uri(None, User("alice"), None)
    with pytest.raises(InvalidArgumentError, match="Missing parameter: `user`"):
        await response_type.build_redirect_uri(make_client(), None, None)


def test_token_requires_model() -> None:
    with pytest.raises(InvalidArgumentError, match="Missing parameter: `model`"):
        TokenResponseType()


def test_token_requires_save_token() -> None:
    model = _model()
    del model.save_token

    with pytest.raises(InvalidArgumentError, match="`save_token\\(\\)`"):
        TokenResponseType(model=model)


@pytest.mark.asyncio
async def test_token_redirect_uses_fragment() -> None:
    model = _model(generate_access_token=lambda client, user, scope: "foo")
    response_type = TokenResponseType(model=model)

    token, url = await response_type.build_redirect_uri(
        make_client(), User("alice"), None, "http://example.com/cb?foo=bar"
    )

    assert url == "http://example.com/cb?foo=bar#access_token=foo&token_type=bearer"
    assert token.access_token_expires_at == EPOCH
    assert token.refresh_token is None


@pytest.mark.asyncio
async def test_token_redirect_includes_lifetime_and_scope() -> None:
    model = _model(generate_access_token=lambda client, user, scope: "foo")
    response_type = TokenResponseType(model=model, access_token_lifetime=3600)

    _, url = await response_type.build_redirect_uri(make_client(), User("alice"), "read")

    assert url == (
        "http://example.com/cb#access_token=foo&token_type=bearer&expires_in=3600&scope=read"
    )
