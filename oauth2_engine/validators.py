"""Character-class checks from RFC 6749 Appendix A."""

from __future__ import annotations

import re

_NCHAR = re.compile(r"[-._\w]+", re.ASCII)
_NQCHAR = re.compile(r"[\x21\x23-\x5B\x5D-\x7E]+")
_NQSCHAR = re.compile(r"[\x20-\x21\x23-\x5B\x5D-\x7E]+")
_UCHAR = re.compile(r"[\x09\x20-\x7E\x80-\U0010FFFF]+")
_VSCHAR = re.compile(r"[\x20-\x7E]+")
_URI_SCHEME = re.compile(r"[a-zA-Z][a-zA-Z0-9+.-]+:")


def _matches(pattern: re.Pattern[str], value: object) -> bool:
    if not isinstance(value, str):
        return False
    return pattern.fullmatch(value) is not None


def nchar(value: object) -> bool:
    return _matches(_NCHAR, value)


def nqchar(value: object) -> bool:
    return _matches(_NQCHAR, value)


def nqschar(value: object) -> bool:
    return _matches(_NQSCHAR, value)


def uchar(value: object) -> bool:
    if not _matches(_UCHAR, value):
        return False
    # Lone surrogates and the two non-characters at the end of the BMP.
    return not any(0xD800 <= ord(ch) <= 0xDFFF or ord(ch) in (0xFFFE, 0xFFFF) for ch in value)


def vschar(value: object) -> bool:
    return _matches(_VSCHAR, value)


def uri(value: object) -> bool:
    # Only the scheme prefix is checked.
    if not isinstance(value, str):
        return False
    return _URI_SCHEME.match(value) is not None
