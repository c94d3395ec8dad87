import pytest

from oauth2_engine.errors import InvalidArgumentError
from oauth2_engine.models import Token
from oauth2_engine.token_types import BearerTokenType


def test_missing_access_token() -> None:
    with pytest.raises(InvalidArgumentError, match="Missing parameter: `access_token`"):
        BearerTokenType(None)


def test_minimal_projection() -> None:
    assert BearerTokenType("foo").as_dict() == {"access_token": "foo", "token_type": "bearer"}


def test_full_projection() -> None:
    payload = BearerTokenType("foo", 3600, "bar", "read write").as_dict()

    assert payload == {
        "access_token": "foo",
        "token_type": "bearer",
        "expires_in": 3600,
        "refresh_token": "bar",
        "scope": "read write",
    }


def test_zero_lifetime_omits_expires_in() -> None:
    assert "expires_in" not in BearerTokenType("foo", 0).as_dict()


def test_custom_attributes_cannot_override_standard_fields() -> None:
    token_type = BearerTokenType(
        "foo", 60, custom_attributes={"token_type": "mac", "tenant": "acme"}
    )

    payload = token_type.as_dict()

    assert payload["token_type"] == "bearer"
    assert payload["tenant"] == "acme"


def test_from_token_ignores_custom_attributes_unless_asked() -> None:
    token = Token(access_token="foo", custom_attributes={"tenant": "acme"})

    assert "tenant" not in BearerTokenType.from_token(token, 60).as_dict()
    assert (
        BearerTokenType.from_token(token, 60, include_custom_attributes=True).as_dict()["tenant"]
        == "acme"
    )
