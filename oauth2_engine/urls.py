from __future__ import annotations

import urllib.parse
from typing import Any


def _merge_params(encoded: str, params: dict[str, Any]) -> str:
    # Existing pairs stay byte-for-byte unless a new parameter replaces them.
    kept = [
        part
        for part in encoded.split("&")
        if part and urllib.parse.unquote_plus(part.split("=", 1)[0]) not in params
    ]
    added = urllib.parse.urlencode(params, quote_via=urllib.parse.quote)
    if added:
        kept.append(added)
    return "&".join(kept)


def append_query_params(url: str, params: dict[str, Any]) -> str:
    parsed = urllib.parse.urlparse(url)
    new_query = _merge_params(parsed.query, params)
    return urllib.parse.urlunparse(parsed._replace(query=new_query))


def append_fragment_params(url: str, params: dict[str, Any]) -> str:
    parsed = urllib.parse.urlparse(url)
    new_fragment = _merge_params(parsed.fragment, params)
    return urllib.parse.urlunparse(parsed._replace(fragment=new_fragment))


def append_redirect_params(url: str, params: dict[str, Any], *, fragment: bool) -> str:
    if fragment:
        return append_fragment_params(url, params)
    return append_query_params(url, params)
