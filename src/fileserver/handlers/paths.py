"""
=============================================================================
PATH RESOLUTION AND CONTAINMENT
=============================================================================

Maps a request path onto the filesystem, and refuses anything that ends
up outside the document root.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    ATTACK ATTEMPTS:
    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../etc/passwd HTTP/1.1          (dot-dot segments)         │
    │  GET //etc/passwd HTTP/1.1               (absolute path)            │
    │  GET /innocent-link HTTP/1.1             (symlink → /etc/passwd)    │
    │                                                                      │
    │  Our protection, in this order:                                     │
    │  1. Join root + request path                                        │
    │  2. Canonicalize: follow every symlink, collapse "..", "."          │
    │     (the target must exist, otherwise 404)                          │
    │  3. Check the CANONICAL path is still inside root, otherwise 403   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Checking the canonical path (not the string the client sent) is what
makes symlinks safe: a link inside the root pointing outside it is
resolved first and then rejected.

=============================================================================
PREFIX VS SEGMENT CONTAINMENT
=============================================================================

A plain string prefix test has a hole:

    root     = /srv/pub
    resolved = /srv/public/secret.txt
    "/srv/public/secret.txt".startswith("/srv/pub")  → True  (WRONG!)

We compare path SEGMENTS instead (Path.relative_to), so /srv/public is
not inside /srv/pub.

=============================================================================
OUTCOMES
=============================================================================

    ┌──────────────────────────────┬────────────────────────┬──────────┐
    │ Situation                    │ Exception              │ Status   │
    ├──────────────────────────────┼────────────────────────┼──────────┤
    │ Target does not exist        │ PathNotFoundError      │ 404      │
    │ Canonical path outside root  │ PathForbiddenError     │ 403      │
    │ Any other resolution failure │ PathResolutionError    │ 500      │
    │ (symlink loop, NUL byte,     │                        │          │
    │  not-a-directory, EACCES)    │                        │          │
    └──────────────────────────────┴────────────────────────┴──────────┘

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class PathResolutionError(Exception):
    """
    A request path could not be turned into a servable filesystem path.

    The status attribute is the HTTP status the client should get.
    """

    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, request_path: str = ""):
        super().__init__(message)
        self.request_path = request_path


class PathNotFoundError(PathResolutionError):
    """Nothing exists at the requested path."""

    status = HTTPStatus.NOT_FOUND


class PathForbiddenError(PathResolutionError):
    """The canonical path lies outside the document root."""

    status = HTTPStatus.FORBIDDEN


class PathResolver:
    """
    Resolves request paths against a document root.

    Usage:
        resolver = PathResolver("/srv/www")
        resolver.resolve("docs/readme.txt")   # → Path("/srv/www/docs/readme.txt")
        resolver.resolve("../etc/passwd")     # raises PathForbiddenError
    """

    def __init__(self, root: Union[str, Path]):
        """
        Args:
            root: Document root. Canonicalized here so the containment
                  check compares like with like.
        """
        self.root = Path(root).resolve()

    def resolve(self, request_path: str) -> Path:
        """
        Canonicalize a request path and check it stays inside the root.

        Args:
            request_path: Path from the request, leading "/" already
                          removed, NOT percent-decoded.

        Returns:
            Absolute, symlink-free path inside the root.

        Raises:
            PathNotFoundError: Target does not exist.
            PathForbiddenError: Target resolves outside the root.
            PathResolutionError: Any other canonicalization failure.
        """
        try:
            resolved = (self.root / request_path).resolve(strict=True)
        except FileNotFoundError as e:
            raise PathNotFoundError(f"No such file: {request_path!r}", request_path) from e
        except (OSError, RuntimeError, ValueError) as e:
            # RuntimeError: symlink loop on older Pythons
            # ValueError: embedded NUL byte
            raise PathResolutionError(
                f"Cannot resolve {request_path!r}: {e}", request_path
            ) from e

        if not self.contains(resolved):
            logger.warning(f"Path traversal attempt: {request_path!r} -> {resolved}")
            raise PathForbiddenError(
                f"{request_path!r} resolves outside the document root", request_path
            )

        return resolved

    def contains(self, path: Path) -> bool:
        """Check whether a canonical path is the root or lies below it."""
        try:
            path.relative_to(self.root)
        except ValueError:
            return False
        return True
