"""
=============================================================================
CONFIGURATION
=============================================================================

sloth keeps two configuration objects apart:

    APIConfig       How requests are dispatched to resources.
                    Read on EVERY request, so changes made before start()
                    are always picked up.

    ServerConfig    How the process-level server listens and schedules
                    work. Read once when start() builds the server.

Both are plain dataclasses with a validate() method. Configuration is
validated eagerly (when the API is constructed) so a bad value fails at
setup time instead of on the first request.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    SLOTH_HOST          Interface to bind (default: 127.0.0.1)
    SLOTH_WORKERS       Max worker threads (default: 16)
    SLOTH_TIMEOUT       Socket timeout in seconds (default: 30)
    SLOTH_LOG_LEVEL     Logging level (default: INFO)

The port is deliberately NOT part of the configuration: it is the one
argument of API.start(port).

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class APIConfig:
    """
    Per-API dispatch settings.

    Attributes:
        parse_form: Parse query string and urlencoded bodies before every
            dispatch. A malformed form then answers 400 without reaching
            the resource.
        default_content_type: Content-Type added to responses whose payload
            went through structured (JSON) encoding and whose handler did
            not set one. The empty string disables the default.
    """

    parse_form: bool = True
    default_content_type: str = "application/json"

    def validate(self) -> None:
        if not isinstance(self.default_content_type, str):
            raise ValueError("default_content_type must be a string")
        if "\r" in self.default_content_type or "\n" in self.default_content_type:
            raise ValueError("default_content_type must not contain line breaks")


@dataclass
class ServerConfig:
    """
    Configuration for the process-level HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    THREADING   min_workers, max_workers, queue_size
    LOGGING     log_level
    IDENTITY    server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Interface to bind. Use "0.0.0.0" inside containers."""

    backlog: int = 128
    """Accept queue length handed to listen()."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for the first request on a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024  # 10 MB

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100
    """Connections waiting for a worker. A full queue answers 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "sloth/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from SLOTH_* environment variables.

        Example:
            SLOTH_LOG_LEVEL=DEBUG python -m sloth --port 3000
        """
        return cls(
            host=os.getenv("SLOTH_HOST", "127.0.0.1"),
            max_workers=int(os.getenv("SLOTH_WORKERS", "16")),
            timeout=float(os.getenv("SLOTH_TIMEOUT", "30")),
            log_level=os.getenv("SLOTH_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values (fail fast).

        Raises:
            ValueError: On the first invalid value.
        """
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")


def validate_port(port: int) -> None:
    """Port 0 asks the OS for an ephemeral port."""
    if not 0 <= port < 65536:
        raise ValueError(f"Invalid port: {port}. Must be 0-65535.")
