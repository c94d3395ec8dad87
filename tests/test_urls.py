from oauth2_engine.urls import append_fragment_params, append_query_params, append_redirect_params


def test_query_params_preserve_existing() -> None:
    url = append_query_params("http://example.com/cb?foo=bar", {"code": "foo"})

    assert url == "http://example.com/cb?foo=bar&code=foo"


def test_query_params_encode_spaces_as_percent_twenty() -> None:
    url = append_query_params(
        "http://example.com/cb", {"error_description": "Invalid parameter: `scope`"}
    )

    assert url == "http://example.com/cb?error_description=Invalid%20parameter%3A%20%60scope%60"


def test_query_params_replace_existing_key() -> None:
    url = append_query_params("http://example.com/cb?state=old", {"state": "new"})

    assert url == "http://example.com/cb?state=new"


def test_fragment_params_leave_query_alone() -> None:
    url = append_fragment_params(
        "http://example.com/cb?foo=bar", {"access_token": "foo", "token_type": "bearer"}
    )

    assert url == "http://example.com/cb?foo=bar#access_token=foo&token_type=bearer"


def test_fragment_params_extend_existing_fragment() -> None:
    url = append_fragment_params("http://example.com/cb#access_token=foo", {"state": "s"})

    assert url == "http://example.com/cb#access_token=foo&state=s"


def test_redirect_params_dispatch() -> None:
    assert append_redirect_params("http://example.com/cb", {"a": "1"}, fragment=False) == (
        "http://example.com/cb?a=1"
    )
    assert append_redirect_params("http://example.com/cb", {"a": "1"}, fragment=True) == (
        "http://example.com/cb#a=1"
    )


def test_existing_query_is_kept_verbatim() -> None:
    url = append_query_params("http://example.com/cb?x=a+b&flag&y=%7E", {"code": "foo"})

    assert url == "http://example.com/cb?x=a+b&flag&y=%7E&code=foo"


def test_existing_fragment_is_kept_verbatim() -> None:
    url = append_fragment_params("http://example.com/cb#view=a+b&flag", {"state": "s"})

    assert url == "http://example.com/cb#view=a+b&flag&state=s"
