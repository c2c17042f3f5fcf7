"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and hands every accepted connection to a
callback.

=============================================================================
BOUND VS UNBOUND
=============================================================================

The listener has two states, and listen() refuses to run in the wrong
one instead of failing somewhere deep inside the socket module:

    ┌─────────────┐    bind()     ┌─────────────┐   listen(handler)
    │   UNBOUND   │ ────────────► │    BOUND    │ ───────────────────┐
    │ _socket=None│               │ _socket=sock│                    │
    └─────────────┘ ◄──────────── └─────────────┘ ◄──────────────────┘
           ▲          close()                       accept loop ends
           │                                        (shutdown / error)
           │
    listen() here → NotBoundError

=============================================================================
ACCEPT LOOP
=============================================================================

    while running:
        accept()               ← times out every second so shutdown()
                                 is noticed
        Connection(...)        ← wrap the client socket
        handler(conn)          ← FileServer does parse/handle/respond

The loop itself is sequential: handler(conn) returns before the next
accept(). Whether the handler does the work inline or in a thread is
the caller's decision.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class NotBoundError(RuntimeError):
    """Raised when listen() is called before bind()."""


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        def handle(conn: Connection):
            ...

        server = SocketServer(config)
        server.bind()
        server.listen(handle)   # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig, poll_interval: float = 1.0):
        """
        Args:
            config: Server configuration (host, port, backlog, timeout).
            poll_interval: accept() timeout, i.e. how quickly the loop
                           notices shutdown().
        """
        self.config = config
        self.poll_interval = poll_interval

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port). With port 0 this is the port the OS chose.

        Raises:
            NotBoundError: If the listener is not bound.
        """
        if self._socket is None:
            raise NotBoundError("Listener is not bound")
        return self._socket.getsockname()[:2]

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting the server must not fail with "Address already in use"
        # while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are written in at most two chunks; send them right away
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(self.poll_interval)
        return sock

    def bind(self) -> "SocketServer":
        """
        Bind and start listening on (host, port).

        Returns:
            self, for chaining: server.bind().listen(handler)

        Raises:
            OSError: If the address cannot be bound.
        """
        if self._socket is not None:
            return self

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Bound to {host}:{port}")
        return self

    def listen(self, connection_handler: Callable[[Connection], None]) -> "SocketServer":
        """
        Run the accept loop. Blocks until shutdown() is called.

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            NotBoundError: If bind() has not been called.
        """
        if self._socket is None:
            raise NotBoundError("listen() called before bind()")

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()
        return self

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Re-check self._running
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    timeout=self.config.timeout,
                )
            except OSError as e:
                logger.warning(f"Could not set up connection from {client_address}: {e}")
                client_socket.close()
                continue

            connection_handler(conn)

    def _setup_signals(self):
        """
        Stop gracefully on SIGTERM / SIGINT.

        Python only allows installing signal handlers from the main thread,
        so a listener running in a background thread (tests, embedding)
        skips this.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def shutdown(self):
        """Ask the accept loop to stop. Safe to call more than once."""
        if self._running:
            logger.info("Shutting down listener...")
        self._running = False

    def close(self):
        """Release the listening socket, returning to the unbound state."""
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

    def _cleanup(self):
        self._running = False
        self._restore_signals()
        self.close()
        self._shutdown_event.set()
        logger.info("Listener stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has stopped. False on timeout."""
        return self._shutdown_event.wait(timeout)
