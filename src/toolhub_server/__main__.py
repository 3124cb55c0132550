"""CLI entry point for toolhub-server.

Invoked as `toolhub-server` (script entry point) or `python -m toolhub_server`.
Starts the API server, or with --list-servers prints the external tool
servers from the servers file and exits.
"""

import argparse
import logging
import sys

import uvicorn

from toolhub_server import __version__, create_app
from toolhub_server.config import ToolhubServerSettings
from toolhub_server.discovery import load_server_configs

# CLI flag -> settings field
_SETTINGS_FLAGS = {
    "host": "host",
    "port": "port",
    "data_dir": "data_dir",
    "servers_file": "servers_file",
    "cache_ttl": "cache_ttl_seconds",
    "log_level": "log_level",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolhub-server",
        description="Unified tool discovery, registry and execution routing server",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"toolhub-server {__version__}",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via TOOLHUB_HOST)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via TOOLHUB_PORT)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Base directory for servers file, cache and queue (can be set via TOOLHUB_DATA_DIR)",
    )
    parser.add_argument(
        "--servers-file",
        type=str,
        default=None,
        help="Servers file relative to the data dir (default: servers.json)",
    )
    parser.add_argument(
        "--cache-ttl",
        type=int,
        default=None,
        help="Seconds a discovered catalog stays fresh (default: 3600)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via TOOLHUB_LOG_LEVEL)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (uvicorn --reload)",
    )
    parser.add_argument(
        "--list-servers",
        action="store_true",
        help="Print the configured external tool servers and exit",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ToolhubServerSettings:
    """Build settings where CLI flags override environment variables."""
    overrides = {
        field: getattr(args, flag)
        for flag, field in _SETTINGS_FLAGS.items()
        if getattr(args, flag) is not None
    }
    return ToolhubServerSettings(**overrides)


def list_servers(settings: ToolhubServerSettings) -> int:
    """Print one line per configured server. Returns the exit code."""
    try:
        configs = load_server_configs(settings.resolved_servers_file)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if not configs:
        print(f"No tool servers configured in {settings.resolved_servers_file}")
        return 0

    for config in configs:
        state = "enabled" if config.enabled else "disabled"
        if not config.is_configured():
            missing = ", ".join(config.missing_env())
            state = f"not configured (missing: {missing})" if missing else "not configured"
        print(f"{config.name:<24} {config.transport:<8} {state}")
    return 0


def main() -> int:
    """Main entry point for the toolhub-server CLI."""
    args = build_parser().parse_args()
    settings = settings_from_args(args)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_servers:
        return list_servers(settings)

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
