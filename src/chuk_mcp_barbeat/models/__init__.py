"""
Pydantic models for configuration and tool input.

This module provides:
- NotationConfig: Time signature, tempo, defaults and limits (barbeat.yaml)
- NotationDefaults: Initial sticky velocity, duration and probability
- NoteModel: Validated note input for the formatting tools
"""

from chuk_mcp_barbeat.models.config import NotationConfig, NotationDefaults
from chuk_mcp_barbeat.models.notes import NoteModel

__all__ = [
    "NotationConfig",
    "NotationDefaults",
    "NoteModel",
]
