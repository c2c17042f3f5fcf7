"""
=============================================================================
FILESERVER - Minimal HTTP/1.1 Static File Server
=============================================================================

Serves a directory tree over plain HTTP/1.1 using raw Python sockets:
directory listings for folders, file contents for files, and 403/404/500
for everything else.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m fileserver)
    ├── server.py            # FileServer: per-connection state machine
    ├── config.py            # ServerConfig dataclass + YAML loading
    ├── core/                # Transport
    │   ├── socket_server.py # TCP listener, bound/unbound state
    │   └── connection.py    # Client socket wrapper
    ├── http/                # Protocol
    │   ├── request.py       # Request line + header parsing
    │   ├── response.py      # Response serialization
    │   └── status_codes.py  # 200 / 403 / 404 / 500
    └── handlers/            # Filesystem
        ├── paths.py         # Canonicalization + containment check
        ├── listing.py       # HTML directory listings
        └── static.py        # Request → response decision

=============================================================================
QUICK START
=============================================================================

    from fileserver import FileServer, ServerConfig

    server = FileServer(ServerConfig(root="./public", port=8080))
    server.run()

Or from the shell, with a config.yaml:

    python -m fileserver --config config.yaml

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, ConfigError
from .server import FileServer

__all__ = ["FileServer", "ServerConfig", "ConfigError", "__version__"]
