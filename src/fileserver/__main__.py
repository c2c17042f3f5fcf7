"""
=============================================================================
FILE SERVER CLI ENTRY POINT
=============================================================================

    # Use ./config.yaml
    python -m fileserver

    # Use another config file
    python -m fileserver --config /etc/fileserver.yaml

Everything else (host, port, root, ...) comes from the config file.

=============================================================================
EXIT BEHAVIOR
=============================================================================

Any startup failure prints a one-line diagnostic to stderr and exits
with status 1:

    - config file missing or unreadable
    - invalid YAML
    - invalid values (bad port, root not a directory, ...)
    - socket bind failure (port in use, permission denied)

Once the server is listening, per-connection errors are only logged.
Ctrl+C / SIGTERM stop the server and exit with status 0.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from .config import DEFAULT_CONFIG_PATH, ConfigError, ServerConfig
from .server import FileServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Minimal HTTP/1.1 static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserver                           # Uses ./config.yaml
  python -m fileserver --config site.yaml        # Custom config file
        """,
    )
    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the YAML config file (default: {DEFAULT_CONFIG_PATH})",
    )
    return parser


def main(argv: Optional[List[str]] = None):
    """
    Main CLI entry point.

    Args:
        argv: Arguments without the program name. None = sys.argv[1:].
    """
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_file(args.config)
        server = FileServer(config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.run()
    except OSError as e:
        print(f"Error: could not start server on {config.host}:{config.port}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
