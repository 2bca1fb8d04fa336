"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

    python -m helloweb                           # query-params on :8080
    python -m helloweb --sample hello-name       # another sample
    python -m helloweb --port 0                  # any free port
    python -m helloweb --list-samples
    helloweb --log-format json                   # console script

Settings come from, in priority order: command-line flags, HELLOWEB_*
environment variables (see ServerConfig.from_env), dataclass defaults.

Exit status: 0 after a clean shutdown, 1 if the server could not start
(bad configuration, port in use), 2 for usage errors (argparse).

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .middleware import LoggingMiddleware
from .samples import SAMPLES, DEFAULT_SAMPLE, build_router
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helloweb",
        description="Minimal HTTP routing samples on a from-scratch HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m helloweb                          # query-params sample on :8080
  python -m helloweb --sample hello-world     # Hello World on /
  python -m helloweb --host 0.0.0.0 -p 3000   # all interfaces, port 3000
  python -m helloweb --log-format json        # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # SAMPLE SELECTION
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--sample", "-s",
        choices=sorted(SAMPLES),
        default=DEFAULT_SAMPLE,
        help=f"Sample router to serve (default: {DEFAULT_SAMPLE})"
    )

    parser.add_argument(
        "--list-samples",
        action="store_true",
        help="List available samples and their routes, then exit"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK / PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────
    # None means "not given", so environment values survive

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on, 0 for any free port (default: 8080)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Minimum worker threads; the maximum is twice this (default: 4)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"helloweb {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-derived config with command-line overrides applied."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = max(config.max_workers, args.workers * 2)
    if args.log_level is not None:
        config.log_level = args.log_level
    config.log_format = args.log_format

    return config


def list_samples() -> None:
    for name in sorted(SAMPLES):
        print(f"{name}:")
        for route in build_router(name).routes():
            print(f"  {route.method or 'ANY':6} {route.pattern}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    if args.list_samples:
        list_samples()
        return 0

    try:
        config = config_from_args(args)
        server = HTTPServer(config, router=build_router(args.sample))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    server.use(LoggingMiddleware(log_format=config.log_format))

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
