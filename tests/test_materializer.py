"""
Tests for the note materializer.

Tests cover:
- NoteRecord validation
- Sticky modifier state
- Repeats and ranges
- Velocity ranges and velocity 0
- Bar copies
- Output ordering
"""

import logging
import random

import pytest

from chuk_mcp_barbeat.core.time import BarBeatPosition, TimeSignature
from chuk_mcp_barbeat.errors import NotationSemanticError
from chuk_mcp_barbeat.models import NotationConfig, NotationDefaults
from chuk_mcp_barbeat.notation import (
    BarCopy,
    ModifierState,
    NoteRecord,
    ParseEvent,
    interpret_notation,
    materialize,
    parse_notation,
)


def starts(notes: list[NoteRecord]) -> list[tuple[float, int]]:
    """(start_time, pitch) pairs."""
    return [(n.start_time, n.pitch) for n in notes]


class TestNoteRecord:
    """Tests for NoteRecord."""

    def test_valid(self) -> None:
        """Can create a valid note."""
        note = NoteRecord(start_time=0.0, pitch=60, duration=1.0, velocity=100)
        assert note.probability == 1.0

    def test_validation(self) -> None:
        """Ranges are enforced."""
        with pytest.raises(ValueError, match="Pitch must be 0-127"):
            NoteRecord(start_time=0.0, pitch=128, duration=1.0, velocity=100)
        with pytest.raises(ValueError, match="Velocity must be 0-127"):
            NoteRecord(start_time=0.0, pitch=60, duration=1.0, velocity=-1)
        with pytest.raises(ValueError, match="Probability must be 0.0-1.0"):
            NoteRecord(start_time=0.0, pitch=60, duration=1.0, velocity=100, probability=1.5)
        with pytest.raises(ValueError, match="Start time must be >= 0"):
            NoteRecord(start_time=-1.0, pitch=60, duration=1.0, velocity=100)
        with pytest.raises(ValueError, match="Duration must be positive"):
            NoteRecord(start_time=0.0, pitch=60, duration=0.0, velocity=100)
        with pytest.raises(ValueError, match="must be finite"):
            NoteRecord(start_time=0.0, pitch=60, duration=float("inf"), velocity=100)
        with pytest.raises(ValueError, match="must be finite"):
            NoteRecord(start_time=float("nan"), pitch=60, duration=1.0, velocity=100)

    def test_dict_round_trip(self) -> None:
        """to_dict / from_dict."""
        note = NoteRecord(start_time=1.5, pitch=62, duration=0.5, velocity=80, probability=0.5)
        assert NoteRecord.from_dict(note.to_dict()) == note

    def test_from_dict_default_probability(self) -> None:
        """Probability is optional."""
        note = NoteRecord.from_dict({"start_time": 0, "pitch": 60, "duration": 1, "velocity": 90})
        assert note.probability == 1.0


class TestModifierState:
    """Tests for the sticky state accumulator."""

    def test_defaults(self) -> None:
        """v100, one beat, always plays."""
        state = ModifierState()
        assert (state.velocity, state.duration, state.probability) == (100, 1.0, 1.0)
        assert state.velocity_range is None

    def test_apply_keeps_unset(self) -> None:
        """Unset modifiers inherit."""
        state = ModifierState().apply(ParseEvent(BarBeatPosition(1, 1), duration=0.5))
        state = state.apply(ParseEvent(BarBeatPosition(1, 2), velocity=70))
        assert state.duration == 0.5
        assert state.velocity == 70

    def test_velocity_and_range_exclusive(self) -> None:
        """Setting one velocity form clears the other."""
        state = ModifierState().apply(ParseEvent(BarBeatPosition(1, 1), velocity_range=(60, 70)))
        assert state.velocity_range == (60, 70)
        state = state.apply(ParseEvent(BarBeatPosition(1, 2), velocity=90))
        assert state.velocity_range is None
        assert state.velocity == 90

    def test_from_config(self) -> None:
        """Configured defaults seed the state."""
        config = NotationConfig(defaults=NotationDefaults(velocity=90, duration=0.5, probability=0.8))
        state = ModifierState.from_config(config)
        assert (state.velocity, state.duration, state.probability) == (90, 0.5, 0.8)


class TestBasicScenarios:
    """End-to-end notation to notes."""

    def test_chord(self) -> None:
        """Three notes at the top of bar 1."""
        notes = interpret_notation("1|1 v100 t1.0 C3 E3 G3")
        assert notes == [
            NoteRecord(0.0, 60, 1.0, 100),
            NoteRecord(0.0, 64, 1.0, 100),
            NoteRecord(0.0, 67, 1.0, 100),
        ]

    def test_inherits_velocity(self) -> None:
        """A line without v inherits the previous velocity."""
        notes = interpret_notation("1|1 v100 C3\n1|2 D3")
        assert starts(notes) == [(0.0, 60), (1.0, 62)]
        assert all(n.velocity == 100 for n in notes)

    def test_fractional_position(self) -> None:
        """2|1.5 in 4/4 is beat 4.5."""
        (note,) = interpret_notation("2|1.5 v80 A3")
        assert note.start_time == 4.5
        assert note.pitch == 69
        assert note.velocity == 80

    def test_sticky_until_changed(self) -> None:
        """Velocity, duration and probability stay until set again."""
        notes = interpret_notation("1|1 v80 t0.5 p0.5 C3\n1|2 D3\n1|3 v60 E3\n1|4 F3")
        assert [n.velocity for n in notes] == [80, 80, 60, 60]
        assert all(n.duration == 0.5 for n in notes)
        assert all(n.probability == 0.5 for n in notes)

    def test_per_note_override_is_sticky(self) -> None:
        """An override after pitches applies to later notes too."""
        notes = interpret_notation("1|1 C3 v80 E3\n1|2 G3")
        assert [n.velocity for n in notes] == [100, 80, 80]

    def test_six_eight(self) -> None:
        """Durations and positions scale by the denominator."""
        notes = interpret_notation("1|1 t2 C3\n2|1 t1 D3", TimeSignature(6, 8))
        assert starts(notes) == [(0.0, 60), (3.0, 62)]
        assert [n.duration for n in notes] == [1.0, 0.5]

    def test_bar_beat_duration(self) -> None:
        """t1:2 in 4/4 is six beats."""
        (note,) = interpret_notation("1|1 t1:2 C3")
        assert note.duration == 6.0

    def test_config_defaults(self) -> None:
        """Configured defaults apply before any modifier."""
        config = NotationConfig(defaults=NotationDefaults(velocity=90, duration=0.5))
        (note,) = interpret_notation("1|1 C3", config=config)
        assert note.velocity == 90
        assert note.duration == 0.5


class TestRepeats:
    """Tests for xN repeats."""

    def test_explicit_interval(self) -> None:
        """x4@0.5 places four notes half a beat apart."""
        notes = interpret_notation("1|1x4@0.5 C1")
        assert starts(notes) == [(0.0, 36), (0.5, 36), (1.0, 36), (1.5, 36)]
        assert all(n.duration == 1.0 for n in notes)

    def test_interval_defaults_to_duration(self) -> None:
        """Without @ the sticky duration is the spacing."""
        notes = interpret_notation("1|1x4 t0.5 C1")
        assert [n.start_time for n in notes] == [0.0, 0.5, 1.0, 1.5]

    def test_six_eight_spacing(self) -> None:
        """Intervals are musical beats."""
        notes = interpret_notation("1|1x3@1 C1", TimeSignature(6, 8))
        assert [n.start_time for n in notes] == [0.0, 0.5, 1.0]

    def test_chord_repeat(self) -> None:
        """Every pitch repeats."""
        notes = interpret_notation("1|1x2@2 C3,G3")
        assert starts(notes) == [(0.0, 60), (0.0, 67), (2.0, 60), (2.0, 67)]

    def test_excessive_repeat_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Large repeats log a warning but still expand."""
        with caplog.at_level(logging.WARNING):
            notes = interpret_notation("1|1x5@0.25 C1", config=NotationConfig(max_repeat_notes=4))
        assert len(notes) == 5
        assert "generates 5 notes" in caplog.text


class TestBeatLists:
    """Tests for comma-separated beat lists."""

    def test_each_beat(self) -> None:
        """1|1,2,3,4 places the pitch on every beat."""
        notes = interpret_notation("1|1,2,3,4 C1")
        assert starts(notes) == [(0.0, 36), (1.0, 36), (2.0, 36), (3.0, 36)]
        assert all(n.duration == 1.0 for n in notes)

    def test_current_bar(self) -> None:
        """|2,4 stays in the bar of the previous position."""
        notes = interpret_notation("1|1 C1\n|2,4 D1")
        assert starts(notes) == [(0.0, 36), (1.0, 38), (3.0, 38)]

    def test_eighths(self) -> None:
        """Fractional beats in a list."""
        notes = interpret_notation("1|1,1.5,2,2.5 F#1")
        assert [n.start_time for n in notes] == [0.0, 0.5, 1.0, 1.5]

    def test_six_eight(self) -> None:
        """Beats are musical beats."""
        notes = interpret_notation("2|1,4 C3", TimeSignature(6, 8))
        assert [n.start_time for n in notes] == [3.0, 4.5]

    def test_per_note_override(self) -> None:
        """Both events of a split line use the whole list."""
        notes = interpret_notation("1|1,3 C1 v60 D1")
        assert [(n.start_time, n.pitch, n.velocity) for n in notes] == [
            (0.0, 36, 100),
            (0.0, 38, 60),
            (2.0, 36, 100),
            (2.0, 38, 60),
        ]

    def test_v0_removes_one_beat(self) -> None:
        """A later v0 removes a single hit of the list."""
        notes = interpret_notation("1|1,3 C1\n1|3 v0 C1")
        assert starts(notes) == [(0.0, 36)]

    def test_copied(self) -> None:
        """Beat list notes are recorded for bar copies."""
        notes = interpret_notation("1|1,3 C1 @2=1")
        assert [n.start_time for n in notes] == [0.0, 2.0, 4.0, 6.0]


class TestRanges:
    """Tests for start-end ranges."""

    def test_sustain(self) -> None:
        """1|1-2|1 sustains one note for a bar."""
        (note,) = interpret_notation("1|1-2|1 C3")
        assert note.start_time == 0.0
        assert note.duration == 4.0

    def test_end_exclusive(self) -> None:
        """No note is placed at the end position."""
        notes = interpret_notation("1|2-|4 C3")
        assert starts(notes) == [(1.0, 60)]
        assert notes[0].duration == 2.0

    def test_does_not_update_sticky_duration(self) -> None:
        """The range length applies only to its own notes."""
        notes = interpret_notation("1|1 t0.5 C3\n1|2-2|1 D3\n2|1 E3")
        assert [n.duration for n in notes] == [0.5, 3.0, 0.5]

    def test_six_eight(self) -> None:
        """Range lengths convert to Ableton beats."""
        (note,) = interpret_notation("1|1-2|1 C3", TimeSignature(6, 8))
        assert note.duration == 3.0

    def test_end_before_start(self) -> None:
        """Empty or reversed ranges are semantic errors."""
        with pytest.raises(NotationSemanticError, match="must be after start"):
            interpret_notation("2|1-1|3 C3")
        with pytest.raises(NotationSemanticError, match="must be after start"):
            interpret_notation("1|1-1|1 C3")


class TestVelocity:
    """Tests for velocity ranges and velocity 0."""

    def test_range_within_bounds(self, rng: random.Random) -> None:
        """Drawn velocities stay inside the range."""
        notes = interpret_notation("1|1x16@0.25 v80-90 C1", rng=rng)
        assert all(80 <= n.velocity <= 90 for n in notes)

    def test_range_reproducible(self) -> None:
        """Same seed, same velocities."""
        first = interpret_notation("1|1x8@0.5 v1-127 C1", rng=random.Random(7))
        second = interpret_notation("1|1x8@0.5 v1-127 C1", rng=random.Random(7))
        assert first == second

    def test_v0_removes_note(self) -> None:
        """An explicit v0 removes the earlier note at the same time and pitch."""
        notes = interpret_notation("1|1 C3 E3\n1|1 v0 E3")
        assert starts(notes) == [(0.0, 60)]

    def test_v0_alone(self) -> None:
        """A v0 note is never output."""
        assert interpret_notation("1|1 v0 C3") == []

    def test_v0_only_earlier_notes(self) -> None:
        """Notes written after the v0 stay."""
        notes = interpret_notation("1|1 v0 C3\n1|1 v100 C3")
        assert starts(notes) == [(0.0, 60)]

    def test_v0_other_pitch_untouched(self) -> None:
        """Only the matching pitch is removed."""
        notes = interpret_notation("1|1 C3\n1|1 v0 D3")
        assert starts(notes) == [(0.0, 60)]

    def test_v0_removes_copied_note(self) -> None:
        """Notes placed by a bar copy can be removed."""
        notes = interpret_notation("1|1 C3 E3 @2=1 2|1 v0 E3")
        assert starts(notes) == [(0.0, 60), (0.0, 64), (4.0, 60)]

    def test_range_draw_of_zero_dropped(self) -> None:
        """A velocity range landing on 0 drops the note without deleting others."""
        notes = interpret_notation("1|1 C3\n1|1 v0-0 C3")
        assert starts(notes) == [(0.0, 60)]
        assert notes[0].velocity == 100


class TestOrdering:
    """Output order."""

    def test_sorted_by_time_then_pitch(self) -> None:
        """Notes come back sorted by (start_time, pitch)."""
        notes = interpret_notation("1|3 E3\n1|1 G3 C3")
        assert starts(notes) == [(0.0, 60), (0.0, 67), (2.0, 64)]

    def test_stable_for_duplicates(self) -> None:
        """Equal keys keep source order."""
        notes = interpret_notation("1|1 v90 C3\n1|1 v80 C3")
        assert [n.velocity for n in notes] == [90, 80]

    def test_nearly_equal_starts_order_by_pitch(self) -> None:
        """Starts within float noise of each other count as equal."""
        notes = interpret_notation("1|1x2@0.1 D3\n1|1.1 C3")
        assert [n.pitch for n in notes] == [62, 60, 62]
        assert notes[1].start_time != notes[2].start_time

    def test_sort_key(self) -> None:
        """sort_key ties on start times closer than the time tolerance."""
        low = NoteRecord(0.10000000000000009, 60, 1.0, 100)
        high = NoteRecord(0.1, 62, 1.0, 100)
        assert low.sort_key() < high.sort_key()
        assert sorted([high, low], key=NoteRecord.sort_key) == [low, high]


class TestBarCopy:
    """Tests for @ bar copies."""

    def test_copy_single_bar(self) -> None:
        """@2=1 repeats bar 1 in bar 2."""
        notes = interpret_notation("1|1 C3\n1|3 E3\n@2=1")
        assert starts(notes) == [(0.0, 60), (2.0, 64), (4.0, 60), (6.0, 64)]

    def test_keeps_offset(self) -> None:
        """Offsets within the bar are preserved."""
        notes = interpret_notation("1|2.5 C3 @2=1")
        assert [n.start_time for n in notes] == [1.5, 5.5]

    def test_keeps_modifiers(self) -> None:
        """Copied notes keep velocity, duration and probability."""
        notes = interpret_notation("1|1 v70 t0.5 p0.5 C3 @2=1")
        assert notes[1] == NoteRecord(4.0, 60, 0.5, 70, 0.5)

    def test_previous_bar_chain(self) -> None:
        """@N= copies bar N-1, including notes copied into it."""
        notes = interpret_notation("1|1 C3 @2= @3=")
        assert [n.start_time for n in notes] == [0.0, 4.0, 8.0]

    def test_fill_range(self) -> None:
        """@2-4=1 fills bars 2 to 4 with bar 1."""
        notes = interpret_notation("1|1 C3 @2-4=1")
        assert [n.start_time for n in notes] == [0.0, 4.0, 8.0, 12.0]

    def test_tile(self) -> None:
        """@3-6=1-2 tiles two bars across four."""
        notes = interpret_notation("1|1 C3\n2|1 D3\n@3-6=1-2")
        assert starts(notes) == [
            (0.0, 60),
            (4.0, 62),
            (8.0, 60),
            (12.0, 62),
            (16.0, 60),
            (20.0, 62),
        ]

    def test_multi_source_single_destination(self) -> None:
        """@3=1-2 copies bars 1 and 2 to bars 3 and 4."""
        notes = interpret_notation("1|1 C3\n2|1 D3\n@3=1-2")
        assert starts(notes)[2:] == [(8.0, 60), (12.0, 62)]

    def test_overlapping_reads_original(self) -> None:
        """Sources are read before any destination is written."""
        notes = interpret_notation("1|1 C3\n2|1 D3\n@2=1-2")
        assert starts(notes) == [(0.0, 60), (4.0, 60), (4.0, 62), (8.0, 62)]

    def test_six_eight(self) -> None:
        """Bar length follows the time signature."""
        notes = interpret_notation("1|1 C3 @2=1", TimeSignature(6, 8))
        assert [n.start_time for n in notes] == [0.0, 3.0]

    def test_wrapped_beat_belongs_to_next_bar(self) -> None:
        """1|5 in 4/4 is a bar 2 note."""
        notes = interpret_notation("1|5 C3 @3=2")
        assert [n.start_time for n in notes] == [4.0, 8.0]

    def test_missing_destination(self) -> None:
        """A copy without a destination bar is rejected."""
        with pytest.raises(NotationSemanticError, match="no destination"):
            materialize([BarCopy()])

    def test_empty_source_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Copying an empty bar copies nothing."""
        with caplog.at_level(logging.WARNING):
            notes = interpret_notation("1|1 C3 @3=2")
        assert len(notes) == 1
        assert "is empty" in caplog.text

    def test_clear(self, caplog: pytest.LogCaptureFixture) -> None:
        """@clear forgets recorded bars but keeps emitted notes."""
        with caplog.at_level(logging.WARNING):
            notes = interpret_notation("1|1 C3 @clear 2|1 D3 @3=1")
        assert starts(notes) == [(0.0, 60), (4.0, 62)]
        assert "Bar 1 is empty" in caplog.text

    @pytest.mark.parametrize(
        "text",
        [
            "1|1 C3 @1=1",
            "1|1 C3 @1=",
            "1|1 C3 @3-2=1",
            "1|1 C3 @3=2-1",
            "1|1 C3 @1-2=1",
        ],
    )
    def test_invalid_copies(self, text: str) -> None:
        """Self copies, reversed ranges and @1= are semantic errors."""
        with pytest.raises(NotationSemanticError):
            interpret_notation(text)


class TestMaterializeFunction:
    """Tests for the materialize convenience function."""

    def test_takes_parse_items(self) -> None:
        """materialize works on parse_notation output."""
        ts = TimeSignature(3, 4)
        notes = materialize(parse_notation("2|1 C3", ts), ts)
        assert notes[0].start_time == 3.0

    def test_empty(self) -> None:
        """No items, no notes."""
        assert materialize([]) == []
