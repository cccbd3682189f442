"""
Constants for the bar|beat notation system.

No magic numbers - defaults and limits live here.
"""

from typing import Literal

# Sticky-state defaults (before any modifier is seen)
DEFAULT_VELOCITY = 100
DEFAULT_DURATION = 1.0  # musical beats
DEFAULT_PROBABILITY = 1.0

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127

# Ableton beats are quarter notes
QUARTER_NOTE_UNIT = 4

# Tolerance for comparing positions and durations
TIME_EPSILON = 1e-9

# Repeats producing more notes than this log a warning
MAX_REPEAT_NOTES = 100

# Fewest evenly spaced identical lines written as one repeat (1|1x4)
MIN_SERIALIZED_REPEAT = 3

# Largest denominator tried when rendering beats as fractions
MAX_FRACTION_DENOMINATOR = 960

# Standard ticks per beat (quarter note) for MIDI files
TICKS_PER_BEAT = 480

# Environment variables naming the config file and MIDI output directory
CONFIG_ENV_VAR = "BARBEAT_CONFIG"
OUTPUT_DIR_ENV_VAR = "BARBEAT_OUTPUT_DIR"

# Schema versions
SchemaVersion = Literal["barbeat-config/v1"]

ErrorType = Literal["syntax", "semantic", "validation", "io"]


class ErrorMessages:
    """Standardized error messages."""

    INVALID_TIME_SIGNATURE = "Invalid time signature: '{value}'. Expected format like '4/4' or '6/8'."
    NON_POSITIVE_TIME_SIGNATURE = (
        "Time signature {numerator}/{denominator} must have a positive numerator and denominator."
    )
    FILE_NOT_FOUND = "File not found: '{path}'."
    INVALID_TEMPO = "Invalid tempo: {tempo}. Must be between 20 and 999 BPM."


class SuccessMessages:
    """Standardized success messages."""

    NOTATION_PARSED = "Parsed {count} note(s)."
    NOTES_FORMATTED = "Formatted {count} note(s)."
    MIDI_EXPORTED = "Exported {count} note(s) to {path}."
    MIDI_IMPORTED = "Imported {count} note(s) from {path}."
