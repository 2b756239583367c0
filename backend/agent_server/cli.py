#!/usr/bin/env python3
"""
Agent Server CLI

Command-line interface for running the relay server.
"""

import sys
import argparse
from aiohttp import web

from backend.agent_server.config import ServerConfig
from backend.agent_server.api import create_app
from backend.utils.logger import configure_logging, get_log_dir, get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Claude Agent relay server")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--workspace", default=None, help="Workspace directory for file commands")
    parser.add_argument("--log-level", default=None, help="Log level")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then command-line overrides."""
    config = ServerConfig.from_env(args.env_file)
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workspace is not None:
        config.workspace_dir = args.workspace
    if args.log_level is not None:
        config.log_level = args.log_level
    config.validate()
    return config


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(
        log_level=config.log_level,
        log_dir=config.log_dir,
        log_to_file=config.log_to_file,
        force=True,
    )
    logger = get_logger(__name__)
    if config.log_to_file:
        logger.info("Writing log file", log_dir=get_log_dir())

    app = create_app(config)

    logger.info("WebSocket server running", url=f"http://{config.host}:{config.port}")
    logger.info("Config endpoint", url=f"http://{config.host}:{config.port}/config")
    logger.info("WebSocket endpoint", url=f"ws://{config.host}:{config.port}/ws")

    web.run_app(app, host=config.host, port=config.port, print=None)


if __name__ == "__main__":
    main()
