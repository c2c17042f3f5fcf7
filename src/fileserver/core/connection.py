"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the file server
needs: a buffered reader for the request, a way to send one response,
and a clean close.

=============================================================================
ONE REQUEST, ONE RESPONSE
=============================================================================

The file server does not do keep-alive. Every connection goes through
the same straight line:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED
              │                                      ▲
              └──────────── (parse error) ───────────┘  (still one 500)

=============================================================================
WHY makefile()?
=============================================================================

TCP is a byte stream: a request line may arrive split across several
recv() calls. socket.makefile("rb") gives us a buffered file object whose
readline() keeps calling recv() until it sees "\n", which is exactly what
a line-oriented parser wants.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional

from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its single request/response cycle."""

    NEW = "new"                # Just accepted
    READING = "reading"        # Parsing the request
    PROCESSING = "processing"  # Building the response
    WRITING = "writing"        # Sending the response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port).
        id: Short identifier used in log lines.
        state: Current ConnectionState.
        created_at: When the connection was accepted.
        timeout: Socket timeout for reads and writes, None = blocking.
    """

    socket: socket.socket
    address: tuple
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    timeout: Optional[float] = 30.0

    _reader: Optional[BinaryIO] = field(default=None, repr=False)
    _writer: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Accepted sockets may inherit the listener's accept() timeout
        self.socket.settimeout(self.timeout)
        self._reader = self.socket.makefile("rb")
        self._writer = self.socket.makefile("wb")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary reader over the socket, for the request parser."""
        self.state = ConnectionState.READING
        return self._reader

    def send_response(self, response: HTTPResponse) -> bool:
        """
        Send a response to the client.

        Returns:
            True if the whole response was written, False if the client
            went away (the failure is logged, never raised).
        """
        self.state = ConnectionState.WRITING
        try:
            response.write_to(self._writer)
            return True
        except OSError as e:
            # Reset, broken pipe, timeout: only this connection is affected
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self):
        """
        Close the connection.

        1. Release the buffered reader/writer
        2. shutdown(SHUT_WR) so the client sees EOF after our response
        3. Briefly drain what the client still sends (e.g. an unread body),
           otherwise the kernel may answer with RST and the client could
           lose the tail of the response
        4. close() the socket
        """
        if self.state == ConnectionState.CLOSED:
            return

        for stream in (self._writer, self._reader):
            try:
                stream.close()
            except OSError:
                pass  # Unflushed data to a dead peer

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.2)
            while self.socket.recv(4096):
                pass
        except OSError:
            pass  # Timeout or reset, we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.age:.3f}s")
