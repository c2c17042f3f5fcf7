"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a parsed request into exactly one response: a directory listing,
a file, or an error page.

=============================================================================
FLOW
=============================================================================

    GET /docs/a.txt
         │
         ▼
    ┌──────────────────┐   PathNotFoundError ──────────► 404
    │  PathResolver    │── PathForbiddenError ─────────► 403
    │  .resolve()      │── PathResolutionError ────────► 500
    └────────┬─────────┘
             │ canonical path inside root
             ▼
    ┌──────────────────┐
    │  is directory?   │── yes ──► DirectoryRenderer ──► 200 (listing)
    └────────┬─────────┘
             │ no
             ▼
    ┌──────────────────┐
    │  regular file?   │── no ───► 403 (FIFO, socket, device...)
    └────────┬─────────┘
             │ yes
             ▼
    ┌──────────────────┐
    │  valid UTF-8?    │── yes ──► 200, body = text
    └────────┬─────────┘
             │ no
             ▼
         200, contents = raw bytes

Special files are refused instead of opened: reading a FIFO would block
the handler until some other process writes to it.

=============================================================================
"""

import logging
import stat
from pathlib import Path

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    error_response,
    forbidden,
    internal_error,
    not_found,
    ok_binary,
    ok_text,
)
from .listing import DirectoryRenderer
from .paths import PathResolutionError, PathResolver


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files and directory listings from a document root.

    Usage:
        handler = StaticFileHandler("/srv/www")
        response = handler.handle(request)
    """

    def __init__(self, root: str):
        """
        Args:
            root: Document root. Must already exist; ServerConfig.validate()
                  checks this before the server is built.
        """
        self.resolver = PathResolver(root)
        self.renderer = DirectoryRenderer(self.resolver.root)

    @property
    def root(self) -> Path:
        return self.resolver.root

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Build the response for a request.

        Never raises for filesystem problems; every outcome is a response.
        """
        try:
            target = self.resolver.resolve(request.path)
        except PathResolutionError as e:
            logger.debug(f"Resolution failed for {request.path!r}: {e}")
            return error_response(e.status)

        try:
            mode = target.stat().st_mode
        except FileNotFoundError:
            # Removed after resolve()
            return not_found()
        except PermissionError:
            return forbidden()
        except OSError as e:
            logger.error(f"Error reading status of {target}: {e}")
            return internal_error()

        if stat.S_ISDIR(mode):
            return self._serve_directory(target)

        if stat.S_ISREG(mode):
            return self._serve_file(target)

        logger.warning(f"Refusing to serve special file: {target}")
        return forbidden()

    def _serve_directory(self, path: Path) -> HTTPResponse:
        try:
            return ok_text(self.renderer.render(path))
        except FileNotFoundError:
            return not_found()
        except PermissionError:
            return forbidden()
        except OSError as e:
            logger.error(f"Error listing directory {path}: {e}")
            return internal_error()

    def _serve_file(self, path: Path) -> HTTPResponse:
        """
        Read a file; text if it decodes as UTF-8, raw bytes otherwise.
        """
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return not_found()
        except PermissionError:
            return forbidden()
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            return internal_error()

        try:
            return ok_text(data.decode("utf-8"))
        except UnicodeDecodeError:
            return ok_binary(data)
