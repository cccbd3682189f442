"""
Notation parser - bar|beat text to parse items.

The grammar is position first:

    1|1 v100 t1 C3 E3 G3      // chord at the top of bar 1
    1|2 D3                    // inherits v100 t1
    |3 v80-110 p0.5 C1,E1     // same bar, random velocity, 50% chance
    2|1x8@0.5 Gb1             // eight hi-hats, half a beat apart
    3|1-5|1 C2                // one note sustained for two bars
    4|1,2.5,4 D1              // the same hit on three beats of bar 4
    @4=3                      // copy bar 3 into bar 4

Per line: a position, zero or more modifiers (v, t, p), then pitches.
A modifier after pitches starts a new event at the same position, which is
how per-note overrides are written: `1|1 C3 v80 E3`.

Parsing is all-or-nothing: the first bad token raises NotationSyntaxError.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from chuk_mcp_barbeat.constants import MIDI_MAX, MIDI_MIN
from chuk_mcp_barbeat.core.pitch import note_name_to_midi
from chuk_mcp_barbeat.core.time import (
    BarBeatPosition,
    TimeSignature,
    parse_beat_value,
    parse_duration,
)
from chuk_mcp_barbeat.errors import NotationSyntaxError
from chuk_mcp_barbeat.notation.events import BarCopy, ParseEvent, ParseItem

logger = logging.getLogger(__name__)

COMMENT_MARKER = "//"
RANGE_MARKER = "-"
REPEAT_MARKER = "x"
INTERVAL_MARKER = "@"
BEAT_LIST_MARKER = ","

# Pre-compiled patterns for token classification
_TOKEN_RE = re.compile(r"\S+")
_WHOLE_NUMBER_RE = re.compile(r"[0-9]+")
_POSITION_RE = re.compile(r"^(?P<bar>[^|]*)\|(?P<beat>.*)$")
_REPEAT_RE = re.compile(r"^(?P<beat>[^x@]+)x(?P<count>[^@]*)(?:@(?P<interval>.*))?$")
_VELOCITY_RE = re.compile(r"^v([0-9]+)$")
_VELOCITY_RANGE_RE = re.compile(r"^v([0-9]+)-([0-9]+)$")
_PROBABILITY_RE = re.compile(r"^p([0-9]+(?:\.[0-9]*)?|\.[0-9]+)$")
_BAR_COPY_RE = re.compile(r"^@(?P<dest>[0-9]+(?:-[0-9]+)?)=(?P<source>[0-9]+(?:-[0-9]+)?)?$")
_CLEAR_TOKEN = "@clear"

_PITCH_LETTERS = frozenset("ABCDEFGabcdefg")


class ParserState(str, Enum):
    """Where the parser is within a position group."""

    START = "start"  # no position yet (start of input, or after a bar copy)
    POSITION = "position"  # position seen, current segment has no pitches
    PITCHES = "pitches"  # current segment has pitches


@dataclass(frozen=True)
class Token:
    """A whitespace-delimited token with its 1-based location."""

    text: str
    line: int
    column: int


def tokenize(text: str) -> list[Token]:
    """
    Split notation text into tokens.

    `//` comments are stripped to the end of the line first.
    """
    tokens: list[Token] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        content = line.split(COMMENT_MARKER, 1)[0]
        for match in _TOKEN_RE.finditer(content):
            tokens.append(Token(match.group(), line_number, match.start() + 1))
    return tokens


@dataclass
class _Segment:
    """Mutable accumulator for the event being built."""

    position: BarBeatPosition
    line: int
    repeat_count: int | None = None
    repeat_interval: float | None = None
    range_end: BarBeatPosition | None = None
    beat_list: tuple[float, ...] = ()
    pitches: list[int] = field(default_factory=list)
    velocity: int | None = None
    velocity_range: tuple[int, int] | None = None
    duration: float | None = None
    probability: float | None = None

    def continuation(self, line: int) -> _Segment:
        """A fresh segment at the same position, repeat, range and beat list."""
        return _Segment(
            position=self.position,
            line=line,
            repeat_count=self.repeat_count,
            repeat_interval=self.repeat_interval,
            range_end=self.range_end,
            beat_list=self.beat_list,
        )

    def to_event(self) -> ParseEvent:
        return ParseEvent(
            position=self.position,
            pitches=tuple(self.pitches),
            velocity=self.velocity,
            velocity_range=self.velocity_range,
            duration=self.duration,
            probability=self.probability,
            repeat_count=self.repeat_count,
            repeat_interval=self.repeat_interval,
            range_end=self.range_end,
            beat_list=self.beat_list,
            line=self.line,
        )


class NotationParser:
    """
    Parses bar|beat notation into ParseEvent and BarCopy items.

    The parser only records what was written. Sticky modifiers, repeat
    expansion and range durations are resolved by the materializer.
    """

    def __init__(self, time_signature: TimeSignature = TimeSignature.COMMON_TIME):
        """
        Initialize the parser.

        Args:
            time_signature: Needed to resolve bar:beat durations like t1:2
        """
        self.time_signature = time_signature

    def parse(self, text: str) -> list[ParseItem]:
        """
        Parse notation text.

        Args:
            text: bar|beat notation

        Returns:
            Parse items in source order

        Raises:
            NotationSyntaxError: On the first malformed or misplaced token
        """
        items: list[ParseItem] = []
        state = ParserState.START
        segment: _Segment | None = None
        group_has_pitches = False
        current_bar = 1

        def close_group() -> None:
            if segment is None:
                return
            items.append(segment.to_event())
            if not group_has_pitches:
                logger.warning(
                    "Time position %s (line %d) has no pitches", segment.position, segment.line
                )

        for token in tokenize(text):
            head = token.text[0]
            pitch_text = token.text.strip(",")

            if token.text.startswith("@"):
                close_group()
                bar_copy = self._parse_bar_copy(token)
                items.append(bar_copy)
                if bar_copy.destination is not None:
                    current_bar = bar_copy.destination[0]
                segment = None
                group_has_pitches = False
                state = ParserState.START

            elif "|" in token.text:
                close_group()
                segment = self._parse_position_token(token, current_bar)
                current_bar = segment.position.bar
                group_has_pitches = False
                state = ParserState.POSITION

            elif head in "vtp":
                if state is ParserState.START or segment is None:
                    raise NotationSyntaxError(
                        "modifier must follow a bar|beat position",
                        token.text,
                        token.line,
                        token.column,
                    )
                if state is ParserState.PITCHES:
                    items.append(segment.to_event())
                    segment = segment.continuation(token.line)
                    state = ParserState.POSITION
                self._apply_modifier(token, segment)

            elif pitch_text and pitch_text[0] in _PITCH_LETTERS:
                if state is ParserState.START or segment is None:
                    raise NotationSyntaxError(
                        "pitch must follow a bar|beat position",
                        token.text,
                        token.line,
                        token.column,
                    )
                segment.pitches.extend(self._parse_pitches(token, pitch_text))
                group_has_pitches = True
                state = ParserState.PITCHES

            else:
                raise NotationSyntaxError("unknown token", token.text, token.line, token.column)

        close_group()

        logger.debug("Parsed %d item(s) from notation", len(items))
        return items

    def _error(self, message: str, token: Token) -> NotationSyntaxError:
        return NotationSyntaxError(message, token.text, token.line, token.column)

    def _parse_position(self, text: str, current_bar: int, token: Token) -> BarBeatPosition:
        """Parse 'bar|beat' or '|beat' (bar defaults to the current bar)."""
        match = _POSITION_RE.match(text)
        if not match:
            raise self._error(f"malformed bar|beat position '{text}'", token)

        bar_text = match.group("bar")
        if bar_text and not _WHOLE_NUMBER_RE.fullmatch(bar_text):
            raise self._error(f"bar must be a whole number, got '{bar_text}'", token)
        bar = int(bar_text) if bar_text else current_bar

        try:
            beat = parse_beat_value(match.group("beat"))
        except ValueError as e:
            raise self._error(str(e), token) from e

        if bar < 1:
            raise self._error(f"bar number must be 1 or greater, got: {bar}", token)
        if beat < 1:
            raise self._error(f"beat must be 1 or greater, got: {match.group('beat')}", token)

        return BarBeatPosition(bar, beat)

    def _parse_position_token(self, token: Token, current_bar: int) -> _Segment:
        """Parse a position, a beat list (1|1,3), a repeat (1|1x4@0.5) or a range (1|1-2|1)."""
        text = token.text

        if BEAT_LIST_MARKER in text:
            if RANGE_MARKER in text or REPEAT_MARKER in text:
                raise self._error("a beat list cannot also be a range or repeat", token)
            bar_text, _, beats_text = text.partition("|")
            positions = [
                self._parse_position(f"{bar_text}|{beat_text}", current_bar, token)
                for beat_text in beats_text.split(BEAT_LIST_MARKER)
            ]
            return _Segment(
                position=positions[0],
                line=token.line,
                beat_list=tuple(position.beat for position in positions),
            )

        if RANGE_MARKER in text:
            start_text, _, end_text = text.partition(RANGE_MARKER)
            if RANGE_MARKER in end_text:
                raise self._error("a range has exactly one start and one end", token)
            if REPEAT_MARKER in text:
                raise self._error("a range cannot also repeat", token)
            start = self._parse_position(start_text, current_bar, token)
            end = self._parse_position(end_text, start.bar, token)
            return _Segment(position=start, line=token.line, range_end=end)

        if REPEAT_MARKER in text:
            bar_text, _, repeat_text = text.partition("|")
            match = _REPEAT_RE.match(repeat_text)
            if not match:
                raise self._error("malformed repeat, expected 'bar|beatx<count>@<interval>'", token)
            position = self._parse_position(f"{bar_text}|{match.group('beat')}", current_bar, token)
            count_text = match.group("count")
            if not _WHOLE_NUMBER_RE.fullmatch(count_text) or int(count_text) < 1:
                raise self._error(f"repeat count must be a whole number >= 1, got '{count_text}'", token)
            interval = None
            if match.group("interval") is not None:
                try:
                    interval = parse_beat_value(match.group("interval"))
                except ValueError as e:
                    raise self._error(str(e), token) from e
                if interval <= 0:
                    raise self._error("repeat interval must be greater than 0", token)
            return _Segment(
                position=position,
                line=token.line,
                repeat_count=int(count_text),
                repeat_interval=interval,
            )

        return _Segment(position=self._parse_position(text, current_bar, token), line=token.line)

    def _apply_modifier(self, token: Token, segment: _Segment) -> None:
        """Record a v/t/p modifier on the segment (last one of a kind wins)."""
        text = token.text
        head = text[0]

        if head == "v":
            single = _VELOCITY_RE.match(text)
            ranged = _VELOCITY_RANGE_RE.match(text)
            if single:
                velocity = int(single.group(1))
                if not MIDI_MIN <= velocity <= MIDI_MAX:
                    raise self._error(f"MIDI velocity {velocity} outside valid range 0-127", token)
                segment.velocity = velocity
                segment.velocity_range = None
            elif ranged:
                low, high = int(ranged.group(1)), int(ranged.group(2))
                if not (MIDI_MIN <= low <= MIDI_MAX and MIDI_MIN <= high <= MIDI_MAX):
                    raise self._error(f"invalid velocity range {low}-{high}", token)
                segment.velocity_range = (min(low, high), max(low, high))
                segment.velocity = None
            else:
                raise self._error("malformed velocity, expected v<0-127> or v<low>-<high>", token)

        elif head == "t":
            try:
                duration = parse_duration(text[1:], self.time_signature.numerator)
            except ValueError as e:
                raise self._error(str(e), token) from e
            if duration <= 0:
                raise self._error("duration must be greater than 0", token)
            segment.duration = duration

        else:
            match = _PROBABILITY_RE.match(text)
            if not match:
                raise self._error("malformed probability, expected p<0.0-1.0>", token)
            probability = float(match.group(1))
            if not 0.0 <= probability <= 1.0:
                raise self._error(f"note probability {probability} outside valid range 0.0-1.0", token)
            segment.probability = probability

    def _parse_pitches(self, token: Token, text: str) -> list[int]:
        """Parse one pitch or a comma list of pitches."""
        pitches = []
        for name in text.split(","):
            if not name:
                continue
            try:
                pitches.append(note_name_to_midi(name))
            except ValueError as e:
                raise NotationSyntaxError(str(e), name, token.line, token.column) from e
        return pitches

    def _parse_bar_copy(self, token: Token) -> BarCopy:
        """Parse @dest=source, @dest= (previous bar) or @clear."""
        if token.text == _CLEAR_TOKEN:
            return BarCopy(clear=True, line=token.line)

        match = _BAR_COPY_RE.match(token.text)
        if not match:
            raise self._error("malformed bar copy, expected '@<bars>=<bars>' or '@clear'", token)

        destination = self._parse_bar_range(match.group("dest"), token)
        source = None
        if match.group("source"):
            source = self._parse_bar_range(match.group("source"), token)

        return BarCopy(destination=destination, source=source, line=token.line)

    def _parse_bar_range(self, text: str, token: Token) -> tuple[int, int]:
        start_text, _, end_text = text.partition("-")
        start = int(start_text)
        end = int(end_text) if end_text else start
        if start < 1 or end < 1:
            raise self._error(f"bar number must be 1 or greater in '{text}'", token)
        return (start, end)


def parse_notation(
    text: str,
    time_signature: TimeSignature = TimeSignature.COMMON_TIME,
) -> list[ParseItem]:
    """
    Convenience function to parse notation.

    Args:
        text: bar|beat notation
        time_signature: Time signature (for bar:beat durations)

    Returns:
        Parse items in source order
    """
    return NotationParser(time_signature).parse(text)
