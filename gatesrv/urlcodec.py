"""Form-style URL encoding and request-target parsing."""

from __future__ import annotations

_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)
_HEX_DIGITS = "0123456789ABCDEF"
_CODEC = "utf-8"
_ERRORS = "surrogateescape"


def url_encode(text: str) -> str:
    """Percent-encode text byte by byte; spaces become '+'."""
    parts: list[str] = []
    for byte in text.encode(_CODEC, _ERRORS):
        if byte in _UNRESERVED:
            parts.append(chr(byte))
        elif byte == 0x20:
            parts.append("+")
        else:
            parts.append("%" + _HEX_DIGITS[byte >> 4] + _HEX_DIGITS[byte & 0x0F])
    return "".join(parts)


def url_decode(text: str) -> str:
    """Reverse url_encode; raises ValueError on a malformed escape."""
    raw = text.encode(_CODEC, _ERRORS)
    out = bytearray()
    chars = iter(range(len(raw)))
    for index in chars:
        byte = raw[index]
        if byte == ord("+"):
            out.append(0x20)
        elif byte == ord("%"):
            digits = raw[index + 1 : index + 3]
            if len(digits) < 2:
                raise ValueError(f"truncated escape at position {index}")
            try:
                out.append(int(digits.decode("ascii"), 16))
            except ValueError:
                raise ValueError(f"invalid escape at position {index}") from None
            if not all(chr(d) in "0123456789abcdefABCDEF" for d in digits):
                raise ValueError(f"invalid escape at position {index}")
            next(chars)
            next(chars)
        else:
            out.append(byte)
    return out.decode(_CODEC, _ERRORS)


def parse_target(target: str) -> tuple[str, dict[str, str]]:
    """Split a request target into its path and decoded query parameters.

    Pairs without '=' are ignored; a later key overwrites an earlier one.
    """
    path, sep, query = target.partition("?")
    params: dict[str, str] = {}
    if not sep:
        return path, params
    for pair in query.split("&"):
        key, eq, value = pair.partition("=")
        if eq:
            params[url_decode(key)] = url_decode(value)
    return path, params