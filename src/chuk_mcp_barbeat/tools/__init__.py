"""
MCP tool implementations.

Tools are organized by domain:
- notation - Parse, format and convert bar|beat notation, MIDI exchange
"""

from chuk_mcp_barbeat.tools.notation import register_notation_tools

__all__ = [
    "register_notation_tools",
]
