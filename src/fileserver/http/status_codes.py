"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The file server only ever answers with four status codes. They form a
closed set, so they are modelled as an IntEnum rather than free-form
integers or strings.

    ┌────────┬───────────────────────────┬───────────────────────────────┐
    │  Code  │  Reason phrase            │  When the file server sends it│
    ├────────┼───────────────────────────┼───────────────────────────────┤
    │  200   │  OK                       │  File contents or a listing   │
    │  403   │  Forbidden                │  Target escapes the root, or  │
    │        │                           │  is not a file/directory      │
    │  404   │  Not Found                │  Target does not exist        │
    │  500   │  Internal Server Error    │  Unparseable request, I/O     │
    │        │                           │  failure                      │
    └────────┴───────────────────────────┴───────────────────────────────┘

Conversion works both ways:

    >>> int(HTTPStatus.NOT_FOUND)
    404
    >>> HTTPStatus.from_code(404)
    <HTTPStatus.NOT_FOUND: 404>
    >>> HTTPStatus.from_code(418)
    Traceback (most recent call last):
      ...
    HTTPStatusError: 418 is not a valid HTTP status code for this server

=============================================================================
"""

from enum import IntEnum


class HTTPStatusError(ValueError):
    """Raised when a number (or status line) does not map to a known status."""


class HTTPStatus(IntEnum):
    """
    HTTP status codes served by the file server.

    Extends IntEnum so members compare equal to their numeric code:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    OK = 200                        # File or directory listing served
    FORBIDDEN = 403                 # Outside the root / not servable
    NOT_FOUND = 404                 # Nothing at that path
    INTERNAL_SERVER_ERROR = 500     # Parse failure or I/O error

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_error(self) -> bool:
        """Check if this is a 4xx or 5xx status (used for log levels)."""
        return self >= 400

    @classmethod
    def from_code(cls, code: int) -> "HTTPStatus":
        """
        Convert a numeric code into an HTTPStatus.

        Args:
            code: Numeric status code, e.g. 404.

        Returns:
            The matching HTTPStatus member.

        Raises:
            HTTPStatusError: If the code is not one the server knows.
        """
        try:
            return cls(code)
        except ValueError:
            raise HTTPStatusError(
                f"{code} is not a valid HTTP status code for this server"
            ) from None


# Every member must appear here; HTTPStatus.phrase indexes this directly.
_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
