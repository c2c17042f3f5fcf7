"""
Request handlers.

Everything that touches the filesystem lives here: path resolution with
its containment check, directory listings, and the static file handler
that ties them together.
"""

from .paths import (
    PathResolver,
    PathResolutionError,
    PathNotFoundError,
    PathForbiddenError,
)
from .listing import DirectoryRenderer
from .static import StaticFileHandler

__all__ = [
    "PathResolver",
    "PathResolutionError",
    "PathNotFoundError",
    "PathForbiddenError",
    "DirectoryRenderer",
    "StaticFileHandler",
]
