#!/usr/bin/env python3
"""
Async bar|beat MCP Server using chuk-mcp-server

This server provides MCP tools for the bar|beat notation: a compact text
format for musical events, where every note is placed at a 1-based
bar|beat position and modifiers (velocity, duration, probability) stay in
effect until changed.

The server provides tools for:
- Parsing notation into notes (Ableton beats)
- Formatting notes back into minimal notation
- Converting between bar|beat positions and beats
- Exporting notation to MIDI files and importing MIDI files as notation
"""

import logging
import os
from pathlib import Path

from chuk_mcp_server import ChukMCPServer

from chuk_mcp_barbeat.constants import CONFIG_ENV_VAR, OUTPUT_DIR_ENV_VAR
from chuk_mcp_barbeat.models import NotationConfig
from chuk_mcp_barbeat.tools import register_notation_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer("chuk-mcp-barbeat")

# Paths - relative to the working directory unless set by the command line
BASE_PATH = Path.cwd()
CONFIG_PATH = Path(os.environ.get(CONFIG_ENV_VAR, BASE_PATH / "barbeat.yaml"))
OUTPUT_DIR = Path(os.environ.get(OUTPUT_DIR_ENV_VAR, BASE_PATH / "output"))

config = NotationConfig.load(CONFIG_PATH)

# Register all tools
notation_tools = register_notation_tools(mcp, config, OUTPUT_DIR)

# Export tool functions for direct access
barbeat_parse_notation = notation_tools["barbeat_parse_notation"]
barbeat_format_notes = notation_tools["barbeat_format_notes"]
barbeat_convert_time = notation_tools["barbeat_convert_time"]
barbeat_export_midi = notation_tools["barbeat_export_midi"]
barbeat_import_midi = notation_tools["barbeat_import_midi"]

logger.info("CHUK bar|beat MCP Server initialized")
logger.info(f"  Time signature: {config.time_signature}")
logger.info(f"  Output dir: {OUTPUT_DIR}")
