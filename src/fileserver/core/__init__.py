"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The transport half of the file server:

    SocketServer   Binds, listens, accepts; one callback per connection
    Connection     One client socket: buffered reader, send, close

Neither knows anything about files. They move bytes and manage sockets;
server.FileServer plugs the HTTP logic in between.

=============================================================================
"""

from .socket_server import SocketServer, NotBoundError
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # TCP listener - accepts connections
    "NotBoundError",    # listen() before bind()
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
]
