"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes a client sends into a structured HTTPRequest.

=============================================================================
WHAT WE READ (AND WHAT WE DON'T)
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    GET /docs/readme.txt?raw=1 HTTP/1.1\r\n                     │ │
    │  │    ─┬─ ──────────┬─────────── ────┬────                        │ │
    │  │     │            │                │                             │ │
    │  │   Method   Request-target      Version                          │ │
    │  │                  │                                              │ │
    │  │         ┌────────┴────────┐                                    │ │
    │  │       path            query                                     │ │
    │  │  docs/readme.txt      raw=1        (leading "/" removed)        │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    User-Agent: curl/8.4.0\r\n                                  │ │
    │  │    Accept: */*\r\n                                             │ │
    │  │    \r\n                        ← empty line = end of headers    │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    NEVER READ. This is a read-only file server.                │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

1. REQUEST LINE
   Split on whitespace. Exactly three tokens or it is a parse error.
   An empty stream (client connected and hung up) is a parse error too.

2. REQUEST-TARGET
   Split on the FIRST "?". No percent-decoding happens: the path is
   handed to the filesystem byte-for-byte. Bytes that are not valid
   UTF-8 survive thanks to the "surrogateescape" error handler, which
   the os module knows how to turn back into the original bytes.

3. HEADERS
   Each line is split on ":". Only lines that split into EXACTLY two
   parts become headers. That means "Host: example.com:8080" is dropped.
   This is a known limitation of the format we accept, not a bug we
   hide: it keeps header parsing trivially predictable. Name and value
   are stored exactly as sent, so "Accept: */*" gives the value " */*".

4. LIMITS
   Every line is capped at max_line_length bytes, the header block at
   max_headers lines, and the request line plus headers together at
   max_request_size bytes. Exceeding any of them is a parse error, so a
   client cannot make us buffer without bound.

   Duplicate names: the last one wins. Names keep the case they were
   sent with.

=============================================================================
"""

import io
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional, Tuple


logger = logging.getLogger(__name__)

# Request bytes are decoded with this handler so that arbitrary bytes in
# the path round-trip back to the filesystem unchanged.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class RequestParseError(Exception):
    """
    Raised when the request line or headers cannot be read.

    The connection handler turns this into a 500 response.
    """


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    Built once per connection and never modified afterwards (frozen).

    Attributes:
        method:         Method token as sent ("GET", "HEAD", ...).
                        The file server does not interpret it.
        path:           Request path with its leading "/" removed.
                        "" means the document root.
        version:        Version token ("HTTP/1.1").
        query:          Everything after the first "?", or "".
        headers:        Header name → value, name case as received.
        body:           Always None; bodies are never read.
        client_address: (ip, port) of the peer, for logging.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    query: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    client_address: Tuple[str, int] = ("", 0)

    @property
    def target(self) -> str:
        """Rebuild the request-target as it appeared on the request line."""
        target = "/" + self.path
        if self.query:
            target += "?" + self.query
        return target

    @property
    def request_line(self) -> str:
        """The request line without CRLF, used in access logs."""
        return f"{self.method} {self.target} {self.version}"


class RequestParser:
    """
    Reads an HTTPRequest off a binary stream.

    The stream only needs readline(limit). In production it is a socket's
    makefile("rb"); in tests it is an io.BytesIO.

    Usage:
        parser = RequestParser()
        request = parser.parse(conn.reader, conn.address)
    """

    def __init__(
        self,
        max_line_length: int = 8192,
        max_headers: int = 100,
        max_request_size: int = 64 * 1024,
    ):
        """
        Args:
            max_line_length: Longest line (request line or header) accepted,
                             in bytes.
            max_headers: Most header lines accepted, malformed ones included.
            max_request_size: Cap on request line plus headers, in bytes.
        """
        self.max_line_length = max_line_length
        self.max_headers = max_headers
        self.max_request_size = max_request_size

    def parse(
        self,
        stream: BinaryIO,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one request from the stream.

        Args:
            stream: Binary stream positioned at the start of a request.
            client_address: Peer address stored on the request.

        Returns:
            The parsed request.

        Raises:
            RequestParseError: If the request line is missing or malformed,
                               a limit is exceeded, or reading fails.
        """
        # ─────────────────────────────────────────────────────────────────
        # REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        line, size = self._read_line(stream, self.max_request_size)
        if line is None:
            raise RequestParseError("Empty request: connection closed before request line")

        parts = line.split()
        if len(parts) != 3:
            raise RequestParseError(f"Invalid request line: {line!r}")

        method, target, version = parts
        path, query = self._split_target(target)

        # ─────────────────────────────────────────────────────────────────
        # HEADERS
        # ─────────────────────────────────────────────────────────────────
        headers = self._parse_headers(stream, self.max_request_size - size)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            query=query,
            headers=headers,
            client_address=client_address,
        )

    def _read_line(self, stream: BinaryIO, remaining: int) -> Tuple[Optional[str], int]:
        """
        Read one CRLF (or LF) terminated line.

        Args:
            stream: Stream to read from.
            remaining: Bytes left before max_request_size is reached.

        Returns:
            (line, size): the decoded line without its terminator and the
            number of bytes consumed, or (None, 0) at end of stream.
        """
        limit = min(self.max_line_length, remaining)
        try:
            raw = stream.readline(limit + 1)
        except OSError as e:
            # Covers timeouts, resets and half-closed sockets
            raise RequestParseError(f"Failed to read request: {e}") from e

        if not raw:
            return None, 0

        if len(raw) > limit:
            if limit < self.max_line_length:
                raise RequestParseError(
                    f"Request exceeds {self.max_request_size} bytes"
                )
            raise RequestParseError(
                f"Line exceeds {self.max_line_length} bytes"
            )

        return raw.rstrip(b"\r\n").decode(_ENCODING, _ERRORS), len(raw)

    @staticmethod
    def _split_target(target: str) -> Tuple[str, str]:
        """
        Split a request-target into (path, query).

            "/"               → ("", "")
            "/a.txt"          → ("a.txt", "")
            "/find?q=x?y"     → ("find", "q=x?y")
        """
        path, _, query = target.partition("?")
        if path.startswith("/"):
            path = path[1:]
        return path, query

    def _parse_headers(self, stream: BinaryIO, remaining: int) -> Dict[str, str]:
        """
        Read header lines up to the empty line (or end of stream).

        Lines that do not split into exactly two parts on ":" are skipped,
        but still count towards max_headers.
        """
        headers: Dict[str, str] = {}
        count = 0

        while True:
            line, size = self._read_line(stream, remaining)
            if not line:
                # None = end of stream, "" = end of headers
                break
            remaining -= size

            count += 1
            if count > self.max_headers:
                raise RequestParseError(f"More than {self.max_headers} header lines")

            parts = line.split(":")
            if len(parts) != 2:
                logger.debug(f"Dropping malformed header line: {line!r}")
                continue

            name, value = parts
            headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_line_length: int = 8192,
    max_headers: int = 100,
    max_request_size: int = 64 * 1024,
) -> HTTPRequest:
    """
    Parse a complete request held in memory.

    Convenience wrapper around RequestParser for tests and tools.
    """
    parser = RequestParser(
        max_line_length=max_line_length,
        max_headers=max_headers,
        max_request_size=max_request_size,
    )
    return parser.parse(io.BytesIO(data), client_address)
