#!/usr/bin/env python3
"""
Command line entry point for the bar|beat MCP server.

    chuk-mcp-barbeat                          # stdio, ./barbeat.yaml, ./output
    chuk-mcp-barbeat --transport http --port 9000
    chuk-mcp-barbeat --config studio.yaml --output-dir renders
"""

import argparse
import asyncio
import logging
import os

from chuk_mcp_barbeat.constants import CONFIG_ENV_VAR, OUTPUT_DIR_ENV_VAR

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Command line options for the server."""
    parser = argparse.ArgumentParser(description="bar|beat notation MCP server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport mode (default: stdio)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="HTTP port (http transport only)",
    )
    parser.add_argument(
        "--config",
        help="Notation config YAML (default: ./barbeat.yaml)",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory for exported MIDI files (default: ./output)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log parse and materialize details",
    )
    return parser


def apply_path_options(args: argparse.Namespace) -> None:
    """Hand --config and --output-dir to the server module, which reads them at import."""
    if args.config:
        os.environ[CONFIG_ENV_VAR] = args.config
    if args.output_dir:
        os.environ[OUTPUT_DIR_ENV_VAR] = args.output_dir


def main() -> None:
    """Parse options, then start the server on the chosen transport."""
    args = build_parser().parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    apply_path_options(args)

    from chuk_mcp_barbeat.async_server import mcp

    if args.transport == "stdio":
        logger.info("Serving bar|beat tools over stdio")
        asyncio.run(mcp.run_stdio())
    else:
        logger.info("Serving bar|beat tools over http on port %d", args.port)
        asyncio.run(mcp.run_http(port=args.port))


if __name__ == "__main__":
    main()
