"""
Notation tools - MCP tools for bar|beat text, notes and MIDI files.

Tools for parsing notation into notes, formatting notes back into notation,
converting times, and exchanging notation with Standard MIDI Files.
"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mido import MidiFile
from pydantic import ValidationError

from chuk_mcp_barbeat.compiler import midi_time_signature, midi_to_notes, notes_to_midi
from chuk_mcp_barbeat.constants import ErrorMessages, ErrorType, SuccessMessages
from chuk_mcp_barbeat.core.time import (
    BarBeatPosition,
    ableton_beats_to_bar_beat,
    ableton_beats_to_musical_beats,
    bar_beat_to_ableton_beats,
    bar_beat_to_musical_beats,
)
from chuk_mcp_barbeat.errors import NotationSemanticError, NotationSyntaxError
from chuk_mcp_barbeat.models import NotationConfig, NoteModel
from chuk_mcp_barbeat.notation import format_notation, interpret_notation

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def _error_type(error: Exception) -> ErrorType:
    if isinstance(error, NotationSyntaxError):
        return "syntax"
    if isinstance(error, NotationSemanticError):
        return "semantic"
    if isinstance(error, OSError):
        return "io"
    return "validation"


def _error_response(error: Exception) -> str:
    """JSON error payload, with location details for syntax errors."""
    payload: dict[str, Any] = {
        "status": "error",
        "message": str(error),
        "error_type": _error_type(error),
    }
    if isinstance(error, NotationSyntaxError):
        payload["token"] = error.token
        payload["line"] = error.line
        payload["column"] = error.column
    return json.dumps(payload)


def _rng(seed: int | None) -> random.Random | None:
    return random.Random(seed) if seed is not None else None


def register_notation_tools(
    mcp: ChukMCPServer,
    config: NotationConfig,
    output_dir: Path,
) -> dict[str, Any]:
    """
    Register notation tools with the MCP server.

    Args:
        mcp: The MCP server instance
        config: Notation defaults and limits
        output_dir: Directory for exported MIDI files

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}

    @mcp.tool  # type: ignore[arg-type]
    async def barbeat_parse_notation(
        notation: str,
        time_signature: str | None = None,
        seed: int | None = None,
    ) -> str:
        """
        Parse bar|beat notation into notes.

        Positions come first, then modifiers (v velocity, t duration,
        p probability), then pitches. Modifiers are sticky.

        Args:
            notation: bar|beat notation text
            time_signature: Time signature like '4/4' or '6/8' (default from config)
            seed: Optional seed so velocity ranges (v80-110) are reproducible

        Returns:
            JSON string with the notes (times in Ableton beats)

        Example:
            barbeat_parse_notation(notation="1|1 v100 C3 E3 G3 |3 t2 F3")
        """
        try:
            ts = config.resolve_time_signature(time_signature)
            notes = interpret_notation(notation, ts, rng=_rng(seed), config=config)

            return json.dumps(
                {
                    "status": "success",
                    "time_signature": str(ts),
                    "notes": [note.to_dict() for note in notes],
                    "count": len(notes),
                    "message": SuccessMessages.NOTATION_PARSED.format(count=len(notes)),
                }
            )
        except Exception as e:
            logger.exception("Failed to parse notation")
            return _error_response(e)

    tools["barbeat_parse_notation"] = barbeat_parse_notation

    @mcp.tool  # type: ignore[arg-type]
    async def barbeat_format_notes(
        notes: list[dict[str, Any]],
        time_signature: str | None = None,
    ) -> str:
        """
        Format notes as bar|beat notation.

        Notes are sorted by start time and pitch. Modifiers are only written
        where they change, so the output is the shortest equivalent text.

        Args:
            notes: Notes with pitch, start_time, duration (Ableton beats),
                velocity and probability
            time_signature: Time signature like '4/4' or '6/8' (default from config)

        Returns:
            JSON string with the notation text

        Example:
            barbeat_format_notes(notes=[{"pitch": 60, "start_time": 0, "duration": 1}])
        """
        try:
            ts = config.resolve_time_signature(time_signature)
            records = [NoteModel.model_validate(note).to_record() for note in notes]
            notation = format_notation(records, ts, config)

            return json.dumps(
                {
                    "status": "success",
                    "time_signature": str(ts),
                    "notation": notation,
                    "message": SuccessMessages.NOTES_FORMATTED.format(count=len(records)),
                }
            )
        except (ValidationError, ValueError) as e:
            logger.exception("Failed to format notes")
            return _error_response(e)

    tools["barbeat_format_notes"] = barbeat_format_notes

    @mcp.tool  # type: ignore[arg-type]
    async def barbeat_convert_time(
        value: str,
        time_signature: str | None = None,
    ) -> str:
        """
        Convert between bar|beat positions and Ableton beats.

        A value containing '|' is read as a position, anything else as
        Ableton beats (quarter notes from the clip start).

        Args:
            value: Position like '2|1.5' or a beat count like '4.5'
            time_signature: Time signature like '4/4' or '6/8' (default from config)

        Returns:
            JSON string with the position, Ableton beats and musical beats

        Example:
            barbeat_convert_time(value="2|1", time_signature="6/8")
        """
        try:
            ts = config.resolve_time_signature(time_signature)
            if "|" in value:
                position = BarBeatPosition.parse(value)
                ableton_beats = bar_beat_to_ableton_beats(position, ts)
                musical_beats = bar_beat_to_musical_beats(position, ts.numerator)
            else:
                ableton_beats = float(value)
                position = ableton_beats_to_bar_beat(ableton_beats, ts)
                musical_beats = ableton_beats_to_musical_beats(ableton_beats, ts.denominator)

            return json.dumps(
                {
                    "status": "success",
                    "time_signature": str(ts),
                    "bar_beat": str(position),
                    "ableton_beats": ableton_beats,
                    "musical_beats": musical_beats,
                }
            )
        except ValueError as e:
            logger.exception("Failed to convert time")
            return _error_response(e)

    tools["barbeat_convert_time"] = barbeat_convert_time

    @mcp.tool  # type: ignore[arg-type]
    async def barbeat_export_midi(
        notation: str,
        name: str,
        time_signature: str | None = None,
        tempo: int | None = None,
        seed: int | None = None,
    ) -> str:
        """
        Render notation to a MIDI file.

        Note probability cannot be stored in MIDI; every note is written.

        Args:
            notation: bar|beat notation text
            name: Output filename (without .mid extension)
            time_signature: Time signature like '4/4' or '6/8' (default from config)
            tempo: Tempo in BPM (default from config)
            seed: Optional seed for velocity ranges

        Returns:
            JSON string with the output path and note count

        Example:
            barbeat_export_midi(notation="1|1x4 C1", name="kick")
        """
        try:
            ts = config.resolve_time_signature(time_signature)
            bpm = tempo if tempo is not None else config.tempo
            if not 20 <= bpm <= 999:
                raise ValueError(ErrorMessages.INVALID_TEMPO.format(tempo=bpm))

            notes = interpret_notation(notation, ts, rng=_rng(seed), config=config)
            midi = notes_to_midi(notes, ts, tempo_bpm=bpm, ticks_per_beat=config.ticks_per_beat)

            output_path = output_dir / f"{name}.mid"
            output_dir.mkdir(parents=True, exist_ok=True)
            midi.save(str(output_path))

            return json.dumps(
                {
                    "status": "success",
                    "path": str(output_path),
                    "count": len(notes),
                    "message": SuccessMessages.MIDI_EXPORTED.format(
                        count=len(notes), path=output_path
                    ),
                }
            )
        except Exception as e:
            logger.exception("Failed to export MIDI")
            return _error_response(e)

    tools["barbeat_export_midi"] = barbeat_export_midi

    @mcp.tool  # type: ignore[arg-type]
    async def barbeat_import_midi(
        path: str,
        time_signature: str | None = None,
    ) -> str:
        """
        Read a MIDI file and write its notes as bar|beat notation.

        Args:
            path: Path to a .mid file
            time_signature: Time signature override (default: from the file,
                then from config)

        Returns:
            JSON string with the notation text and note count

        Example:
            barbeat_import_midi(path="output/kick.mid")
        """
        try:
            midi_path = Path(path)
            if not midi_path.exists():
                raise FileNotFoundError(ErrorMessages.FILE_NOT_FOUND.format(path=path))

            midi = MidiFile(str(midi_path))
            if time_signature:
                ts = config.resolve_time_signature(time_signature)
            else:
                ts = midi_time_signature(midi) or config.get_time_signature()

            notes = midi_to_notes(midi)
            notation = format_notation(notes, ts, config)

            return json.dumps(
                {
                    "status": "success",
                    "time_signature": str(ts),
                    "notation": notation,
                    "count": len(notes),
                    "message": SuccessMessages.MIDI_IMPORTED.format(count=len(notes), path=path),
                }
            )
        except Exception as e:
            logger.exception("Failed to import MIDI")
            return _error_response(e)

    tools["barbeat_import_midi"] = barbeat_import_midi

    return tools
