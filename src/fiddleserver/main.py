"""Main entry point for fiddleserver."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from .config import ConfigError, create_default_config, get_config_path, load_config
from .server import create_app, load_registry
from .storage import RegistryError

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for fiddleserver."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def run_server(args: argparse.Namespace) -> int:
    """Run the HTTP server."""
    config = load_config(args.config)
    config.require_storage()

    host = args.host or config.server.host
    port = args.port or config.server.port

    logger.info(f"Starting fiddleserver on http://{host}:{port}")
    logger.info(f"Bucket: s3://{config.storage.bucket} ({config.storage.region})")

    app = create_app(config)

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=config.logging.level.lower(),
    )
    return 0


def init_config(args: argparse.Namespace) -> int:
    """Initialize the configuration file."""
    config_path = create_default_config(args.config)
    print(f"Configuration file created at: {config_path}")
    return 0


def list_versions(args: argparse.Namespace) -> int:
    """Print the published sandbox versions."""
    config = load_config(args.config)
    registry = load_registry(config)

    if not len(registry):
        print("No sandbox versions found")
        return 0

    for version in registry.versions:
        marker = "  (latest)" if version == registry.latest else ""
        print(f"{version}{marker}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="fiddleserver - host for the versioned playground bundle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fiddleserver                 # Run the server (same as 'serve')
  fiddleserver serve --port 3000
  fiddleserver init            # Write a default fiddleserver.yaml
  fiddleserver versions        # List published sandbox versions

Environment:
  S3_REGION, S3_BUCKET, GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET, PORT
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help=f"Configuration file (default: {get_config_path()})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to listen on")

    subparsers.add_parser("init", help="Initialize configuration")
    subparsers.add_parser("versions", help="List published sandbox versions")

    # Default (serve) uses these args
    parser.set_defaults(host=None, port=None)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    log_level = "DEBUG" if args.verbose else "INFO"
    setup_logging(log_level)

    commands = {
        "init": init_config,
        "versions": list_versions,
    }
    command = commands.get(args.command, run_server)

    try:
        exit_code = command(args)
    except (ConfigError, RegistryError) as e:
        logger.error(f"Startup failed: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
