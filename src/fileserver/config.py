"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Loads and validates the settings the file server runs with.

=============================================================================
CONFIG FILE
=============================================================================

The server is configured from a YAML file (config.yaml by default):

    host: 127.0.0.1
    port: "8080"            # string or integer, both accepted
    root: ./public          # canonicalized to an absolute path
    # username: admin       # reserved, not enforced yet
    # password: secret      # reserved, not enforced yet

    # Optional tuning
    timeout: 30             # seconds a client may take to send/receive
    threaded: false         # true = one thread per connection
    log_level: INFO

=============================================================================
FAIL-FAST
=============================================================================

Every problem with the configuration is reported at startup, before the
socket is bound:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Unreadable file      → ConfigError("Could not read config file")  │
    │  Invalid YAML         → ConfigError("Could not parse YAML")        │
    │  Bad port / timeout   → ConfigError(...)                           │
    │  Root missing or not  → ConfigError("root ... is not a directory") │
    │  a directory                                                        │
    └─────────────────────────────────────────────────────────────────────┘

The config object is frozen: after startup it is shared read-only by
every connection (and every thread, in threaded mode).

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_BOOLEANS = {
    "true": True, "yes": True, "on": True, "1": True,
    "false": False, "no": False, "off": False, "0": False,
}


class ConfigError(ValueError):
    """Raised when the configuration cannot be loaded or is invalid."""


def _to_bool(name: str, value: Any) -> bool:
    """Accept real booleans and the usual spellings of them in strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOLEANS:
        return _BOOLEANS[value.strip().lower()]
    raise ConfigError(f"Invalid {name}: {value!r}. Use true or false.")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, timeout

    CONTENT
    - root

    PROTOCOL
    - max_line_length, max_headers, max_request_size, server_name

    CONCURRENCY
    - threaded

    LOGGING
    - log_level

    RESERVED
    - username, password (parsed, not enforced)

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on all interfaces."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    timeout: Optional[float] = 30.0
    """
    Read/write timeout for client sockets in seconds.
    None = block forever (a silent client then stalls a sequential server).
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """Document root. Stored in canonical (absolute, symlink-free) form."""

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL
    # ─────────────────────────────────────────────────────────────────────

    max_line_length: int = 8192
    """Longest request line or header line accepted, in bytes."""

    max_headers: int = 100
    """Most header lines accepted per request."""

    max_request_size: int = 64 * 1024
    """Cap on request line plus headers, in bytes."""

    server_name: str = "PyFileServer/1.0"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    threaded: bool = False
    """Handle each connection in its own thread instead of sequentially."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    # ─────────────────────────────────────────────────────────────────────
    # RESERVED
    # ─────────────────────────────────────────────────────────────────────

    username: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self):
        """Coerce numeric and boolean fields, canonicalize root. Range checks are in validate()."""
        # Frozen dataclass: bypass __setattr__ for normalization
        for name in ("port", "backlog", "max_line_length", "max_headers", "max_request_size"):
            value = getattr(self, name)
            try:
                object.__setattr__(self, name, int(value))
            except (TypeError, ValueError):
                raise ConfigError(f"Invalid {name}: {value!r}") from None

        if self.timeout is not None:
            try:
                object.__setattr__(self, "timeout", float(self.timeout))
            except (TypeError, ValueError):
                raise ConfigError(f"Invalid timeout: {self.timeout!r}") from None

        object.__setattr__(self, "threaded", _to_bool("threaded", self.threaded))

        object.__setattr__(self, "root", os.path.realpath(os.path.expanduser(str(self.root))))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        """
        Build a config from a mapping (usually parsed YAML).

        Unknown keys are ignored with a warning. "root" is required.

        Raises:
            ConfigError: If the mapping is not usable.
        """
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config must be a mapping, got {type(data).__name__}"
            )

        if data.get("root") is None:
            raise ConfigError("Missing required config key: root")

        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")

        values = {key: value for key, value in data.items() if key in known}
        for key in ("root", "host", "username", "password", "server_name", "log_level"):
            if values.get(key) is not None:
                values[key] = str(values[key])

        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigError(f"Invalid config: {e}") from e

    @classmethod
    def from_file(cls, path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> "ServerConfig":
        """
        Load a config from a YAML file.

        Raises:
            ConfigError: If the file cannot be read or parsed.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ConfigError(f"Could not read config file {str(path)!r}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse YAML in {str(path)!r}: {e}") from e

        return cls.from_dict(data if data is not None else {})

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by FileServer before anything is bound.

        Raises:
            ConfigError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ConfigError("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0")

        if self.max_line_length < 256:
            raise ConfigError("max_line_length must be >= 256")

        if self.max_headers < 1:
            raise ConfigError("max_headers must be >= 1")

        if self.max_request_size < self.max_line_length:
            raise ConfigError("max_request_size must be >= max_line_length")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(
                f"Invalid log_level: {self.log_level}. Use one of {', '.join(_LOG_LEVELS)}."
            )

        if not os.path.isdir(self.root):
            raise ConfigError(f"root {self.root!r} does not exist or is not a directory")
