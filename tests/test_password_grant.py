from dataclasses import replace
from types import SimpleNamespace

import pytest

from oauth2_engine.errors import (
    InvalidArgumentError,
    InvalidGrantError,
    InvalidRequestError,
    InvalidScopeError,
)
from oauth2_engine.grant_types import PasswordGrantType
from oauth2_engine.memory_model import User
from tests.oauth_helpers import form_request, make_client


def _password_model(**overrides):
    users = {("alice", "wonderland"): User("alice")}
    hooks = {
        "get_user": lambda username, password: users.get((username, password)),
        "save_token": lambda token, client, user: replace(token, client=client, user=user),
    }
    hooks.update(overrides)
    return SimpleNamespace(**hooks)


def _grant(model) -> PasswordGrantType:
    return PasswordGrantType(model=model, access_token_lifetime=120, refresh_token_lifetime=240)


@pytest.mark.parametrize("missing", ["get_user", "save_token"])
def test_model_capabilities_are_required(missing) -> None:
    model = _password_model()
    delattr(model, missing)

    with pytest.raises(InvalidArgumentError, match=f"`{missing}\\(\\)`"):
        _grant(model)


@pytest.mark.asyncio
async def test_issues_access_and_refresh_tokens() -> None:
    token = await _grant(_password_model()).handle(
        form_request({"username": "alice", "password": "wonderland", "scope": "read"}),
        make_client(),
    )

    assert token.user == User("alice")
    assert token.scope == "read"
    assert token.access_token and token.refresh_token
    assert token.access_token_expires_at < token.refresh_token_expires_at


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"password": "wonderland"}, "Missing parameter: `username`"),
        ({"username": "alice"}, "Missing parameter: `password`"),
        ({"username": "al\x00ice", "password": "wonderland"}, "Invalid parameter: `username`"),
        ({"username": "alice", "password": "wonder\x00land"}, "Invalid parameter: `password`"),
    ],
)
async def test_credential_parameters_are_checked(body, message) -> None:
    with pytest.raises(InvalidRequestError) as error:
        await _grant(_password_model()).handle(form_request(body), make_client())

    assert error.value.message == message


@pytest.mark.asyncio
async def test_unknown_user() -> None:
    with pytest.raises(InvalidGrantError, match="Invalid grant: user credentials are invalid"):
        await _grant(_password_model()).handle(
            form_request({"username": "alice", "password": "wrong"}), make_client()
        )


@pytest.mark.asyncio
async def test_invalid_scope_is_rejected_by_model() -> None:
    model = _password_model(validate_scope=lambda user, client, scope: scope == "read")

    with pytest.raises(InvalidScopeError):
        await _grant(model).handle(
            form_request({"username": "alice", "password": "wonderland", "scope": "admin"}),
            make_client(),
        )
