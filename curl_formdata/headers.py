from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

from python_multipart.multipart import parse_options_header

__all__ = [
    "quote_param",
    "unquote_param",
    "parse_header_value",
    "format_header_value",
    "content_disposition",
]

# HTML5 form encoding of parameter values, same as browsers do.
_PARAM_ESCAPES = {'"': "%22", "\r": "%0D", "\n": "%0A"}


def quote_param(value: str) -> str:
    for char, escaped in _PARAM_ESCAPES.items():
        value = value.replace(char, escaped)
    return f'"{value}"'


def unquote_param(value: str) -> str:
    """Reverse the escapes of :func:`quote_param`."""
    for char, escaped in _PARAM_ESCAPES.items():
        value = value.replace(escaped, char)
    return value


def parse_header_value(value: Optional[str]) -> tuple[str, dict[str, str]]:
    """Split a header value like ``form-data; name="a"`` into its main value
    and a dict of parameters, parameter names lower cased and escaped
    characters restored."""
    if not value:
        return "", {}
    # the parser works on latin-1, keep utf-8 parameter values intact
    main, params = parse_options_header(value.encode("utf-8").decode("latin-1"))
    return main.decode("latin-1").strip().lower(), {
        k.decode("latin-1").lower(): unquote_param(v.decode("utf-8", errors="replace"))
        for k, v in params.items()
    }


def format_header_value(main: str, params: Mapping[str, str]) -> str:
    parts = [main]
    for key, value in params.items():
        parts.append(f"{key}={quote_param(value)}")
    return "; ".join(parts)


def content_disposition(
    disposition: str = "form-data",
    name: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    params = {}
    if name is not None:
        params["name"] = name
    if filename is not None:
        params["filename"] = filename
    return format_header_value(disposition, params)
