"""
=============================================================================
HTTP RESPONSE SERIALIZER
=============================================================================

Builds the bytes that go back to the client.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n                   ← Status line
    Server: PyFileServer/1.0\r\n          ← Headers (any order)
    Connection: close\r\n
    Content-Length: 5\r\n                 ← Always last, always derived
    \r\n                                  ← End of headers
    hello                                 ← Text body, inline

A response carries EITHER text (body) OR raw bytes (contents):

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        BODY vs CONTENTS                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   body (str)                       contents (bytes)                  │
    │   ──────────                       ────────────────                  │
    │   Directory listings               Files that are not valid UTF-8    │
    │   Error pages                      (images, archives, ...)           │
    │   UTF-8 text files                                                   │
    │                                                                      │
    │   Encoded and appended to the      Written with a SEPARATE write     │
    │   header block                     after the header block            │
    │                                                                      │
    │   Content-Length = len(contents) if contents is set, else the        │
    │   UTF-8 byte length of body. Never the character count!              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional, Union

from .status_codes import HTTPStatus, HTTPStatusError


# Matches the request decoding so listing pages containing undecodable
# filenames encode back to the original bytes.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Attributes:
        status:   Status code (HTTPStatus member).
        headers:  Extra headers. Content-Length is always derived, so a
                  Content-Length entry here is ignored.
        body:     Text payload.
        contents: Binary payload. When set, body is not written.
        version:  HTTP version on the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    contents: Optional[bytes] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line without CRLF, e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def payload(self) -> bytes:
        """The bytes that follow the header block."""
        if self.contents is not None:
            return self.contents
        return self.body.encode(_ENCODING, _ERRORS)

    @property
    def content_length(self) -> int:
        """Length of the payload in bytes."""
        if self.contents is not None:
            return len(self.contents)
        return len(self.body.encode(_ENCODING, _ERRORS))

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header and return self for chaining."""
        self.headers[name] = value
        return self

    def head_bytes(self) -> bytes:
        """
        Serialize the status line, headers and (text) body.

        Binary contents are NOT included; write_to() sends them separately.
        """
        lines = [self.status_line]

        for name, value in self.headers.items():
            if name.lower() == "content-length":
                continue
            lines.append(f"{name}: {value}")

        lines.append(f"Content-Length: {self.content_length}")
        lines.append("")
        head = "\r\n".join(lines) + "\r\n"

        if self.contents is None:
            head += self.body

        return head.encode(_ENCODING, _ERRORS)

    def to_bytes(self) -> bytes:
        """Complete wire form: head_bytes() followed by any contents."""
        if self.contents is None:
            return self.head_bytes()
        return self.head_bytes() + self.contents

    def write_to(self, stream: BinaryIO) -> None:
        """
        Write the response to a binary stream and flush it.

        The header block (with any text body) goes out in one write, binary
        contents in a second one. I/O errors propagate to the caller.
        """
        stream.write(self.head_bytes())
        if self.contents is not None:
            stream.write(self.contents)
        stream.flush()


def parse_status_line(line: Union[str, bytes]) -> HTTPStatus:
    """
    Recover the status from a serialized status line.

    Accepts the line with or without its CRLF, or a whole response (only
    the first line is looked at).

    Raises:
        HTTPStatusError: If the line is malformed, the code is unknown, or
                         the reason phrase does not match the code.
    """
    if isinstance(line, bytes):
        line = line.decode("latin-1")
    line = line.split("\r\n", 1)[0]

    parts = line.split(" ", 2)
    if len(parts) != 3 or not (parts[1].isascii() and parts[1].isdigit()):
        raise HTTPStatusError(f"Malformed status line: {line!r}")

    _, code, reason = parts
    status = HTTPStatus.from_code(int(code))
    if reason != status.phrase:
        raise HTTPStatusError(
            f"Reason phrase {reason!r} does not match {int(status)} {status.phrase}"
        )
    return status


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def ok_text(body: str) -> HTTPResponse:
    """200 OK with a text body."""
    return HTTPResponse(status=HTTPStatus.OK, body=body)


def ok_binary(contents: bytes) -> HTTPResponse:
    """200 OK with binary contents."""
    return HTTPResponse(status=HTTPStatus.OK, contents=contents)


def error_response(status: HTTPStatus) -> HTTPResponse:
    """Error page of the form <h1>404: Not Found</h1>."""
    return HTTPResponse(
        status=status,
        body=f"<h1>{int(status)}: {status.phrase}</h1>",
    )


def forbidden() -> HTTPResponse:
    return error_response(HTTPStatus.FORBIDDEN)


def not_found() -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND)


def internal_error() -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
