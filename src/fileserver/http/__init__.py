"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The protocol half of the file server: bytes in, HTTPRequest out;
HTTPResponse in, bytes out. Nothing here touches the filesystem.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket bytes ──► RequestParser ──► HTTPRequest                     │
    │                                           │                          │
    │                                   (handlers/static.py)               │
    │                                           │                          │
    │   socket bytes ◄── HTTPResponse.write_to ◄┘                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .status_codes import HTTPStatus, HTTPStatusError
from .request import HTTPRequest, RequestParser, RequestParseError, parse_request
from .response import (
    HTTPResponse,
    parse_status_line,
    ok_text,
    ok_binary,
    error_response,
    forbidden,
    not_found,
    internal_error,
)

__all__ = [
    "HTTPStatus",
    "HTTPStatusError",
    "HTTPRequest",
    "RequestParser",
    "RequestParseError",
    "parse_request",
    "HTTPResponse",
    "parse_status_line",
    "ok_text",
    "ok_binary",
    "error_response",
    "forbidden",
    "not_found",
    "internal_error",
]
