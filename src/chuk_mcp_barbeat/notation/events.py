"""
Notation data model - parse items and note records.

ParseEvent and BarCopy are the parser's output: what was written, with only
the modifiers that were stated explicitly. NoteRecord is the materializer's
output: a fully resolved note in Ableton beats, ready for a clip.

All types are immutable and live only for the duration of one call.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from chuk_mcp_barbeat.constants import MIDI_MAX, MIDI_MIN, TIME_EPSILON
from chuk_mcp_barbeat.core.time import BarBeatPosition


@dataclass(frozen=True)
class ParseEvent:
    """
    One group of pitches at a position, with the modifiers stated for it.

    Unset modifiers (None) inherit the sticky state during materialization.
    At most one of velocity and velocity_range is set.

    A repeat (repeat_count) places the pitches repeat_count times,
    repeat_interval musical beats apart (sticky duration when None).
    A range (range_end) sustains the pitches from position to range_end.
    A beat list (beat_list, from `1|1,3`) places the pitches at each of
    those beats in the position's bar; position holds the first of them.
    """

    position: BarBeatPosition
    pitches: tuple[int, ...] = ()
    velocity: int | None = None
    velocity_range: tuple[int, int] | None = None
    duration: float | None = None  # musical beats
    probability: float | None = None
    repeat_count: int | None = None
    repeat_interval: float | None = None  # musical beats
    range_end: BarBeatPosition | None = None
    beat_list: tuple[float, ...] = ()
    line: int = field(default=0, compare=False)


@dataclass(frozen=True)
class BarCopy:
    """
    Copy the notes of earlier bars into later bars.

    destination and source are inclusive (start_bar, end_bar) ranges.
    source None means "the bar before the destination".
    clear=True forgets every note recorded for copying.
    """

    destination: tuple[int, int] | None = None
    source: tuple[int, int] | None = None
    clear: bool = False
    line: int = field(default=0, compare=False)


ParseItem = ParseEvent | BarCopy


@dataclass(frozen=True, order=True)
class NoteRecord:
    """
    A fully materialized note.

    Ordered by: (start_time, pitch) for the canonical clip order; see sort_key
    for the order that treats nearly equal start times as equal.
    Times are Ableton beats (quarter notes) from the clip start.
    """

    start_time: float
    pitch: int
    duration: float
    velocity: int
    probability: float = 1.0

    def __post_init__(self) -> None:
        """Validate MIDI ranges."""
        if not (math.isfinite(self.start_time) and math.isfinite(self.duration)):
            raise ValueError(f"Times must be finite, got start {self.start_time}, duration {self.duration}")
        if not MIDI_MIN <= self.pitch <= MIDI_MAX:
            raise ValueError(f"Pitch must be 0-127, got {self.pitch}")
        if not MIDI_MIN <= self.velocity <= MIDI_MAX:
            raise ValueError(f"Velocity must be 0-127, got {self.velocity}")
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(f"Probability must be 0.0-1.0, got {self.probability}")
        if self.start_time < 0:
            raise ValueError(f"Start time must be >= 0, got {self.start_time}")
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")

    def sort_key(self) -> tuple[int, int]:
        """Canonical order key: start times within TIME_EPSILON tie, then pitch."""
        return (round(self.start_time / TIME_EPSILON), self.pitch)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "start_time": self.start_time,
            "pitch": self.pitch,
            "duration": self.duration,
            "velocity": self.velocity,
            "probability": self.probability,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NoteRecord:
        """Create from dictionary."""
        return cls(
            start_time=float(data["start_time"]),
            pitch=int(data["pitch"]),
            duration=float(data["duration"]),
            velocity=int(data["velocity"]),
            probability=float(data.get("probability", 1.0)),
        )
