"""
=============================================================================
FILE SERVER
=============================================================================

Ties the pieces together: the listener accepts, the parser reads, the
static handler decides, the response goes out, the connection closes.

=============================================================================
PER-CONNECTION STATE MACHINE
=============================================================================

    ┌───────────────┐  RequestParseError
    │ ParseRequest  │ ─────────────────────────────────────┐
    └───────┬───────┘                                      │
            │                                              │
    ┌───────▼───────┐  not found / outside root / I/O     │
    │ ResolvePath   │ ──────────────────────────────┐      │
    └───────┬───────┘                               │      │
            │                                       │      │
    ┌───────▼───────────────────┐                   │      │
    │ ServeDirectory | ServeFile│                   │      │
    └───────┬───────────────────┘                   │      │
            │                                       ▼      ▼
    ┌───────▼───────┐                     ┌───────────────────────┐
    │   Respond     │                     │ RespondError(status)  │
    └───────┬───────┘                     └───────────┬───────────┘
            └─────────────────┬───────────────────────┘
                              ▼
                      close connection

Exactly one response is written per connection. Resolution and serving
live in StaticFileHandler; this module only does the bookkeeping around
them.

=============================================================================
FAILURE ISOLATION
=============================================================================

Nothing that happens inside one connection may stop the listener:

- a client that hangs up mid-write → send_response() returns False
- a bug or unexpected error while building the response → logged, 500
- anything else that escapes handle_connection() → logged, connection closed
- a slow client → socket timeout → parse error → 500

Only startup errors (bad config, failed bind) escape to the caller.

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .core.connection import Connection, ConnectionState
from .core.socket_server import SocketServer
from .handlers.static import StaticFileHandler
from .http.request import HTTPRequest, RequestParser, RequestParseError
from .http.response import HTTPResponse, internal_error


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("fileserver.access")


class FileServer:
    """
    Static file server over HTTP/1.1.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig.from_file("config.yaml")
        server = FileServer(config)
        server.run()                       # bind + listen, blocks

    Or step by step (tests do this to learn the ephemeral port):

        server = FileServer(ServerConfig(root="/srv/www", port=0))
        server.bind()
        host, port = server.address
        server.listen()                    # blocks until shutdown()

    =========================================================================
    """

    def __init__(self, config: ServerConfig, poll_interval: float = 1.0):
        """
        Args:
            config: Server configuration, validated here (fail-fast).
            poll_interval: How often the accept loop checks for shutdown.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        config.validate()
        self.config = config

        self._socket_server = SocketServer(config, poll_interval=poll_interval)
        self._parser = RequestParser(
            max_line_length=config.max_line_length,
            max_headers=config.max_headers,
            max_request_size=config.max_request_size,
        )
        self._handler = StaticFileHandler(config.root)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def is_bound(self) -> bool:
        return self._socket_server.is_bound

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). Raises NotBoundError when unbound."""
        return self._socket_server.address

    def bind(self) -> "FileServer":
        """Bind the listening socket. Raises OSError on failure."""
        self._socket_server.bind()
        return self

    def listen(self) -> "FileServer":
        """
        Serve connections until shutdown(). Raises NotBoundError if unbound.
        """
        mode = "threaded" if self.config.threaded else "sequential"
        logger.info(f"Serving {self.config.root} ({mode})")
        self._socket_server.listen(self._dispatch)
        return self

    def run(self):
        """Configure logging, bind, and serve (blocking)."""
        self._setup_logging()
        self.bind()
        try:
            self.listen()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._socket_server.close()
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting; the accept loop exits within poll_interval."""
        self._socket_server.shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("fileserver").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _dispatch(self, conn: Connection):
        """Handle a connection inline, or in its own thread if configured."""
        if self.config.threaded:
            thread = threading.Thread(
                target=self._handle_isolated,
                args=(conn,),
                name=f"conn-{conn.id}",
                daemon=True,
            )
            thread.start()
        else:
            self._handle_isolated(conn)

    def _handle_isolated(self, conn: Connection):
        try:
            self.handle_connection(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Connection error: {e}")
        finally:
            conn.close()

    def handle_connection(self, conn: Connection):
        """
        Run one connection through parse → handle → respond → close.
        """
        with conn:
            request: Optional[HTTPRequest] = None
            try:
                request = self._parser.parse(conn.reader, conn.address)
            except RequestParseError as e:
                logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                response = internal_error()
            else:
                conn.state = ConnectionState.PROCESSING
                try:
                    response = self.respond(request)
                except Exception as e:
                    # Nothing has been sent yet, so the client still gets a 500
                    logger.exception(f"[{conn.id}] Error handling {request.request_line!r}: {e}")
                    response = internal_error()

            self._add_connection_headers(response)
            sent = conn.send_response(response)
            self._log_access(conn, request, response, sent)

    def respond(self, request: HTTPRequest) -> HTTPResponse:
        """Build the response for a parsed request."""
        return self._handler.handle(request)

    def _add_connection_headers(self, response: HTTPResponse):
        response.headers.setdefault("Server", self.config.server_name)
        # No keep-alive: every response ends its connection
        response.headers["Connection"] = "close"

    def _log_access(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        sent: bool,
    ):
        # client "GET /a.txt HTTP/1.1" 200 5 (0.42ms)
        request_line = request.request_line if request else "-"
        duration_ms = conn.age * 1000
        level = logging.WARNING if response.status.is_error else logging.INFO
        access_logger.log(
            level,
            f'{conn.client_ip} "{request_line}" {int(response.status)} '
            f"{response.content_length} ({duration_ms:.2f}ms)"
            f"{'' if sent else ' not delivered'}",
        )
