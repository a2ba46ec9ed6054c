"""
=============================================================================
SLOTH CLI ENTRY POINT
=============================================================================

Serves the built-in health resources, which makes it a quick way to check a
deployment or play with the dispatcher:

    python -m sloth                          # 127.0.0.1:8080
    python -m sloth --port 3000
    python -m sloth --host 0.0.0.0           # containers
    python -m sloth --gzip --log-level DEBUG

    curl -i localhost:8080/health
    curl -i -X POST localhost:8080/health    # 405, Allow: GET, HEAD

Environment variables (SLOTH_HOST, SLOTH_WORKERS, SLOTH_TIMEOUT,
SLOTH_LOG_LEVEL) provide the defaults; flags override them.

=============================================================================
"""

import argparse
import sys
from typing import Optional

from . import __version__
from .api import API
from .config import APIConfig, ServerConfig, LOG_LEVELS
from .errors import SlothError
from .middleware import CompressionMiddleware, LoggingMiddleware, chain
from .resources import HealthResource, LivenessResource


def build_parser(env: Optional[ServerConfig] = None) -> argparse.ArgumentParser:
    """CLI flags; defaults come from env (SLOTH_* variables when omitted)."""
    parser = argparse.ArgumentParser(
        prog="python -m sloth",
        description="Serve sloth's built-in health resources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sloth                         # Run with defaults
  python -m sloth --port 3000             # Custom port
  python -m sloth --host 0.0.0.0          # Listen on all interfaces
  python -m sloth --content-type ""       # No default Content-Type
        """
    )

    if env is None:
        env = ServerConfig.from_env()

    parser.add_argument(
        "--host", "-H",
        default=env.host,
        help=f"Host to bind to (default: {env.host})"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8080,
        help="Port to listen on (default: 8080)"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=env.max_workers,
        help=f"Maximum worker threads (default: {env.max_workers})"
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=env.log_level.upper(),
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--content-type",
        default="application/json",
        help="Default Content-Type of structured responses (default: application/json)"
    )
    parser.add_argument(
        "--no-parse-form",
        action="store_true",
        help="Do not parse query strings and form bodies before dispatch"
    )
    parser.add_argument(
        "--gzip",
        action="store_true",
        help="Gzip responses for clients that accept it"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"sloth {__version__}"
    )
    return parser


def main(argv=None) -> int:
    try:
        env = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid SLOTH_* environment variable: {e}", file=sys.stderr)
        return 2

    args = build_parser(env).parse_args(argv)

    try:
        server_config = ServerConfig(
            host=args.host,
            min_workers=min(4, args.workers),
            max_workers=args.workers,
            timeout=env.timeout,
            log_level=args.log_level,
        )
        api = API(
            APIConfig(
                parse_form=not args.no_parse_form,
                default_content_type=args.content_type,
            ),
            server_config,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    wrappers = [LoggingMiddleware()]
    if args.gzip:
        wrappers.append(CompressionMiddleware())
    wrapper = chain(*wrappers)

    api.add_resource_with_wrapper(
        HealthResource(include_system_info=True), wrapper, "/", "/health"
    )
    api.add_resource_with_wrapper(LivenessResource(), wrapper, "/health/live")

    try:
        api.start(args.port)
    except (SlothError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
