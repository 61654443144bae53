"""Command-line interface for shellgate.

Provides the main entry point for running the gateway server and for
inspecting or validating the command registry without starting it.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="shellgate",
        description="Run operator-defined shell commands for remote clients",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/shellgate.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the gateway server")
    serve_parser.add_argument("--host", type=str, default=None, help="Override server.host")
    serve_parser.add_argument("--port", type=int, default=None, help="Override server.port")

    subparsers.add_parser("list", help="Print the command registry as JSON")
    subparsers.add_parser("check", help="Validate the command registry and exit")

    return parser.parse_args(argv)


def _load_store(settings):
    """Load the registry named by the settings, exiting on ConfigError."""
    from shellgate.registry.store import ConfigError, RegistryStore

    store = RegistryStore(
        path=settings.registry.path,
        poll_interval=settings.registry.poll_interval,
    )
    try:
        store.load()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)
    return store


def _serve(settings, args) -> None:
    import uvicorn
    from shellgate.gateway.server import create_app

    if args.host:
        settings.server.host = args.host
    if args.port:
        settings.server.port = args.port

    store = _load_store(settings)
    app = create_app(store=store, settings=settings)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )


def _list(settings) -> None:
    store = _load_store(settings)
    print(json.dumps(store.get().to_document(), indent=2))


def _check(settings) -> None:
    store = _load_store(settings)
    registry = store.get()
    print(f"OK: {len(registry)} commands in {store.path}")
    for name, schema in registry.items():
        params = ", ".join(f"{key}:{type_}" for key, type_ in schema.to_document().items())
        print(f"  {name}({params})")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the shellgate CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from shellgate.config.settings import load_settings
    from shellgate.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting gateway server")
        _serve(settings, args)

    elif args.command == "list":
        _list(settings)

    elif args.command == "check":
        _check(settings)


if __name__ == "__main__":
    main()
