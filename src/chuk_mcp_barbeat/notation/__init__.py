"""
bar|beat notation - parse, materialize and serialize.

The pipeline:
    notation text → parse items (ParseEvent, BarCopy)
    → NoteRecords (Ableton beats, sorted)
    → notation text (minimal canonical form)
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from chuk_mcp_barbeat.core.time import TimeSignature
from chuk_mcp_barbeat.notation.events import BarCopy, NoteRecord, ParseEvent, ParseItem
from chuk_mcp_barbeat.notation.materializer import ModifierState, NoteMaterializer, materialize
from chuk_mcp_barbeat.notation.parser import NotationParser, parse_notation, tokenize
from chuk_mcp_barbeat.notation.serializer import NotationSerializer, serialize

if TYPE_CHECKING:
    from chuk_mcp_barbeat.models.config import NotationConfig


def interpret_notation(
    text: str,
    time_signature: TimeSignature = TimeSignature.COMMON_TIME,
    rng: random.Random | None = None,
    config: NotationConfig | None = None,
) -> list[NoteRecord]:
    """Parse and materialize notation text in one step."""
    return materialize(parse_notation(text, time_signature), time_signature, rng, config)


def format_notation(
    notes: list[NoteRecord],
    time_signature: TimeSignature = TimeSignature.COMMON_TIME,
    config: NotationConfig | None = None,
) -> str:
    """Serialize notes in canonical (start_time, pitch) order."""
    ordered = sorted(notes, key=NoteRecord.sort_key)
    return serialize(ordered, time_signature, config)


__all__ = [
    # Data model
    "BarCopy",
    "NoteRecord",
    "ParseEvent",
    "ParseItem",
    # Parser
    "NotationParser",
    "parse_notation",
    "tokenize",
    # Materializer
    "ModifierState",
    "NoteMaterializer",
    "materialize",
    # Serializer
    "NotationSerializer",
    "serialize",
    # One-step helpers
    "format_notation",
    "interpret_notation",
]
