"""Entry point for the bottle simulation service."""

import argparse
import logging
import os
import sys
from typing import Any, Optional

import uvicorn

from .config import BottleSimConfig, load_config

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    """Command line options. Unset options fall back to the config files."""
    parser = argparse.ArgumentParser(
        description="Bottle Thermal Simulation",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind API server to (default: api.host from config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind API server to (default: api.port from config)",
    )
    parser.add_argument(
        "--env",
        default=None,
        help="Configuration environment (default: BOTTLESIM_ENV or 'development')",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=LOG_LEVELS,
        help="Logging level (default: log_level from config)",
    )
    parser.add_argument(
        "--autostart",
        action="store_true",
        help="Start the simulation immediately instead of paused",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logging",
    )
    return parser


def server_settings(args: argparse.Namespace, config: BottleSimConfig) -> dict[str, Any]:
    """Merge command line options over the loaded configuration."""
    log_level = (args.log_level or config.log_level).upper()
    if log_level not in LOG_LEVELS:
        log_level = "INFO"
    return {
        "host": args.host or config.api_host,
        "port": args.port if args.port is not None else config.api_port,
        "log_level": log_level,
    }


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Configuration is read again inside the app lifespan, so pass options via env
    if args.autostart:
        os.environ["BOTTLESIM_AUTOSTART"] = "true"
    if args.env:
        os.environ["BOTTLESIM_ENV"] = args.env

    settings = server_settings(args, load_config(env=args.env))

    logging.basicConfig(
        level=getattr(logging, settings["log_level"]),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "bottlesim.api.app:app",
        host=settings["host"],
        port=settings["port"],
        reload=args.reload,
        log_level=settings["log_level"].lower(),
        access_log=not args.no_access_log,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
