"""
Note materializer - parse items to note records.

Folds the sticky modifier state over the parse items in source order and
expands every event into concrete notes in Ableton beats:

    parse items -> ModifierState fold -> expansion -> v0 deletion -> sorted notes

Bar copies (@2=1) replay notes already emitted into later bars.
"""

from __future__ import annotations

import logging
import math
import random
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from chuk_mcp_barbeat.constants import (
    DEFAULT_DURATION,
    DEFAULT_PROBABILITY,
    DEFAULT_VELOCITY,
    MAX_REPEAT_NOTES,
    TIME_EPSILON,
)
from chuk_mcp_barbeat.core.time import (
    TimeSignature,
    bar_beat_to_musical_beats,
    bar_of_ableton_beats,
    musical_beats_to_ableton_beats,
)
from chuk_mcp_barbeat.errors import NotationSemanticError
from chuk_mcp_barbeat.notation.events import BarCopy, NoteRecord, ParseEvent, ParseItem

if TYPE_CHECKING:
    from chuk_mcp_barbeat.models.config import NotationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModifierState:
    """
    Sticky modifiers in effect while materializing.

    A modifier stays in effect until the same kind is set again.
    velocity and velocity_range are exclusive: setting one clears the other.
    duration is in musical beats.
    """

    velocity: int = DEFAULT_VELOCITY
    velocity_range: tuple[int, int] | None = None
    duration: float = DEFAULT_DURATION
    probability: float = DEFAULT_PROBABILITY

    @classmethod
    def from_config(cls, config: NotationConfig | None) -> ModifierState:
        """Initial state from configured defaults (built-in defaults if None)."""
        if config is None:
            return cls()
        defaults = config.defaults
        return cls(
            velocity=defaults.velocity,
            duration=defaults.duration,
            probability=defaults.probability,
        )

    def apply(self, event: ParseEvent) -> ModifierState:
        """Return the state after the modifiers stated on an event."""
        state = self
        if event.velocity is not None:
            state = replace(state, velocity=event.velocity, velocity_range=None)
        if event.velocity_range is not None:
            state = replace(state, velocity_range=event.velocity_range)
        if event.duration is not None:
            state = replace(state, duration=event.duration)
        if event.probability is not None:
            state = replace(state, probability=event.probability)
        return state


class NoteMaterializer:
    """
    Expands parse items into NoteRecords.

    Example:
        materializer = NoteMaterializer(TimeSignature.COMMON_TIME)
        notes = materializer.materialize(parse_notation("1|1 C3 E3 G3"))
    """

    def __init__(
        self,
        time_signature: TimeSignature = TimeSignature.COMMON_TIME,
        rng: random.Random | None = None,
        config: NotationConfig | None = None,
    ):
        """
        Initialize the materializer.

        Args:
            time_signature: Time signature for position and duration conversion
            rng: Random source for velocity ranges (seed it for reproducible output)
            config: Notation config for defaults and repeat limits
        """
        self.time_signature = time_signature
        self.rng = rng or random.Random()
        self.config = config
        self.max_repeat_notes = config.max_repeat_notes if config else MAX_REPEAT_NOTES

    def materialize(self, items: list[ParseItem]) -> list[NoteRecord]:
        """
        Materialize parse items into notes sorted by (start_time, pitch).

        Raises:
            NotationSemanticError: On an empty range or an invalid bar copy
        """
        state = ModifierState.from_config(self.config)
        notes: list[NoteRecord] = []
        bar_notes: dict[int, list[NoteRecord]] = defaultdict(list)

        for item in items:
            if isinstance(item, BarCopy):
                self._copy_bars(item, notes, bar_notes)
                continue

            state = state.apply(item)
            for start_time, pitch, duration, velocity in self._expand(item, state):
                if velocity == 0:
                    if state.velocity_range is None:
                        # Explicit v0 removes the matching earlier note
                        self._delete(notes, bar_notes, pitch, start_time)
                    continue

                note = NoteRecord(
                    start_time=start_time,
                    pitch=pitch,
                    duration=duration,
                    velocity=velocity,
                    probability=state.probability,
                )
                notes.append(note)
                bar_notes[bar_of_ableton_beats(start_time, self.time_signature)].append(note)

        logger.debug("Materialized %d note(s) from %d item(s)", len(notes), len(items))
        return sorted(notes, key=NoteRecord.sort_key)

    def _expand(
        self, event: ParseEvent, state: ModifierState
    ) -> list[tuple[float, int, float, int]]:
        """Expand one event to (start, pitch, duration, velocity) in Ableton beats."""
        numerator = self.time_signature.numerator
        denominator = self.time_signature.denominator
        start = bar_beat_to_musical_beats(event.position, numerator)

        if event.range_end is not None:
            end = bar_beat_to_musical_beats(event.range_end, numerator)
            if end <= start + TIME_EPSILON:
                raise NotationSemanticError(
                    f"Range end {event.range_end} must be after start {event.position} (line {event.line})"
                )
            starts = [start]
            duration = end - start
        elif event.repeat_count is not None:
            interval = event.repeat_interval if event.repeat_interval is not None else state.duration
            starts = [start + i * interval for i in range(event.repeat_count)]
            duration = state.duration
            total = event.repeat_count * len(event.pitches)
            if total > self.max_repeat_notes:
                logger.warning(
                    "Repeat at %s (line %d) generates %d notes (limit %d)",
                    event.position,
                    event.line,
                    total,
                    self.max_repeat_notes,
                )
        elif event.beat_list:
            starts = [
                bar_beat_to_musical_beats(replace(event.position, beat=beat), numerator)
                for beat in event.beat_list
            ]
            duration = state.duration
        else:
            starts = [start]
            duration = state.duration

        duration_beats = musical_beats_to_ableton_beats(duration, denominator)
        expanded = []
        for musical_start in starts:
            start_time = musical_beats_to_ableton_beats(musical_start, denominator)
            for pitch in event.pitches:
                expanded.append((start_time, pitch, duration_beats, self._velocity(state)))
        return expanded

    def _velocity(self, state: ModifierState) -> int:
        if state.velocity_range is not None:
            low, high = state.velocity_range
            return self.rng.randint(low, high)
        return state.velocity

    @staticmethod
    def _delete(
        notes: list[NoteRecord],
        bar_notes: dict[int, list[NoteRecord]],
        pitch: int,
        start_time: float,
    ) -> None:
        def matches(note: NoteRecord) -> bool:
            return note.pitch == pitch and math.isclose(
                note.start_time, start_time, rel_tol=0, abs_tol=TIME_EPSILON
            )

        notes[:] = [n for n in notes if not matches(n)]
        for bar, recorded in bar_notes.items():
            bar_notes[bar] = [n for n in recorded if not matches(n)]

    def _copy_bars(
        self,
        copy: BarCopy,
        notes: list[NoteRecord],
        bar_notes: dict[int, list[NoteRecord]],
    ) -> None:
        """Apply a bar copy (or @clear) to the notes emitted so far."""
        if copy.clear:
            bar_notes.clear()
            logger.debug("Cleared bar copy buffer (line %d)", copy.line)
            return

        pairs = self._copy_pairs(copy)

        # Snapshot sources first so overlapping copies read the original bars
        sources = {source: list(bar_notes.get(source, [])) for source, _ in pairs}
        bar_length = self.time_signature.ableton_beats_per_bar

        for source, destination in pairs:
            recorded = sources[source]
            if not recorded:
                logger.warning(
                    "Bar %d is empty, nothing to copy to bar %d (line %d)",
                    source,
                    destination,
                    copy.line,
                )
                continue

            offset = (destination - source) * bar_length
            for note in recorded:
                copied = replace(note, start_time=note.start_time + offset)
                notes.append(copied)
                bar_notes[destination].append(copied)

            logger.debug("Copied %d note(s) from bar %d to bar %d", len(recorded), source, destination)

    @staticmethod
    def _copy_pairs(copy: BarCopy) -> list[tuple[int, int]]:
        """
        Resolve a bar copy to (source_bar, destination_bar) pairs.

        @N=M     -> [(M, N)]
        @N=      -> [(N-1, N)]
        @N-M=S   -> S into every bar N..M
        @N-M=A-B -> A..B tiled across N..M
        @N=A-B   -> A..B into N, N+1, ...
        """
        if copy.destination is None:
            raise NotationSemanticError(f"Bar copy has no destination bar (line {copy.line})")
        dest_start, dest_end = copy.destination
        if dest_start > dest_end:
            raise NotationSemanticError(
                f"Invalid destination bar range {dest_start}-{dest_end}: start is after end (line {copy.line})"
            )

        if copy.source is None:
            if dest_start == 1:
                raise NotationSemanticError(
                    f"Cannot copy the previous bar into bar 1: there is no bar 0 (line {copy.line})"
                )
            source = (dest_start - 1, dest_start - 1)
        else:
            source = copy.source

        src_start, src_end = source
        if src_start > src_end:
            raise NotationSemanticError(
                f"Invalid source bar range {src_start}-{src_end}: start is after end (line {copy.line})"
            )

        source_bars = list(range(src_start, src_end + 1))
        if dest_start == dest_end and len(source_bars) > 1:
            pairs = [(bar, dest_start + i) for i, bar in enumerate(source_bars)]
        else:
            pairs = [
                (source_bars[i % len(source_bars)], bar)
                for i, bar in enumerate(range(dest_start, dest_end + 1))
            ]

        for src, dest in pairs:
            if src == dest:
                raise NotationSemanticError(f"Cannot copy bar {src} to itself (line {copy.line})")

        return pairs


def materialize(
    items: list[ParseItem],
    time_signature: TimeSignature = TimeSignature.COMMON_TIME,
    rng: random.Random | None = None,
    config: NotationConfig | None = None,
) -> list[NoteRecord]:
    """
    Convenience function to materialize parse items.

    Args:
        items: Output of parse_notation
        time_signature: Time signature
        rng: Random source for velocity ranges
        config: Notation config

    Returns:
        Notes sorted by (start_time, pitch)
    """
    return NoteMaterializer(time_signature, rng, config).materialize(items)
