"""
Time primitives - TimeSignature, BarBeatPosition and beat conversion.

Three coordinate systems are in play:
- bar|beat text: "2|1.5" (1-based, beats are musical beats)
- musical beats: linear beats in the time signature's beat unit
- Ableton beats: linear quarter notes, what Live stores clip times in

Musical beats and Ableton beats differ only by the denominator:
in 6/8, six musical beats (eighths) are three Ableton beats.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import ClassVar

from chuk_mcp_barbeat.constants import (
    MAX_FRACTION_DENOMINATOR,
    QUARTER_NOTE_UNIT,
    TIME_EPSILON,
    ErrorMessages,
)
from chuk_mcp_barbeat.errors import InvalidTimeSignatureError, NotationSemanticError

# Beat value: "2", "1.5", ".5", "4/3", "/4", "1+1/3"
BEAT_PATTERN = r"(?:[0-9]+\+[0-9]+/[0-9]+|[0-9]*/[0-9]+|[0-9]*\.[0-9]+|[0-9]+)"
_BEAT_RE = re.compile(rf"^{BEAT_PATTERN}$")
_BAR_BEAT_RE = re.compile(rf"^([0-9]+)\|({BEAT_PATTERN})$")
_BAR_BEAT_DURATION_RE = re.compile(rf"^([0-9]+):({BEAT_PATTERN})$")


def _check_denominator(denominator: int) -> None:
    if denominator <= 0:
        raise InvalidTimeSignatureError(f"Time signature denominator must be positive, got {denominator}")


def _check_numerator(numerator: int) -> None:
    if numerator <= 0:
        raise InvalidTimeSignatureError(f"Time signature numerator must be positive, got {numerator}")


@dataclass(frozen=True)
class TimeSignature:
    """
    A time signature: beats per bar over the beat unit.

    Examples:
        TimeSignature(4, 4) = 4/4
        TimeSignature(6, 8) = 6/8 (six eighth-note beats, three Ableton beats per bar)
    """

    numerator: int
    denominator: int

    # Common time signatures (defined after class)
    COMMON_TIME: ClassVar[TimeSignature]  # 4/4
    WALTZ: ClassVar[TimeSignature]  # 3/4
    SIX_EIGHT: ClassVar[TimeSignature]  # 6/8

    def __post_init__(self) -> None:
        if self.numerator <= 0 or self.denominator <= 0:
            raise InvalidTimeSignatureError(
                ErrorMessages.NON_POSITIVE_TIME_SIGNATURE.format(
                    numerator=self.numerator, denominator=self.denominator
                )
            )

    @property
    def ableton_beats_per_bar(self) -> float:
        """Length of one bar in Ableton beats (quarter notes)."""
        return self.numerator * QUARTER_NOTE_UNIT / self.denominator

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"

    @classmethod
    def parse(cls, notation: str) -> TimeSignature:
        """
        Parse a time signature from notation like '4/4', '3/4', '6/8'.

        Args:
            notation: Time signature string

        Returns:
            TimeSignature object
        """
        parts = notation.strip().split("/")
        if len(parts) != 2:
            raise InvalidTimeSignatureError(ErrorMessages.INVALID_TIME_SIGNATURE.format(value=notation))

        try:
            numerator = int(parts[0])
            denominator = int(parts[1])
        except ValueError as e:
            raise InvalidTimeSignatureError(
                ErrorMessages.INVALID_TIME_SIGNATURE.format(value=notation)
            ) from e

        return cls(numerator, denominator)


# Define common time signatures
TimeSignature.COMMON_TIME = TimeSignature(4, 4)
TimeSignature.WALTZ = TimeSignature(3, 4)
TimeSignature.SIX_EIGHT = TimeSignature(6, 8)


@dataclass(frozen=True, order=True)
class BarBeatPosition:
    """
    A position in musical time, as written in notation.

    Both bar and beat are 1-based: 1|1 is the start of the clip.
    Beat is in musical beats and may be fractional (2|1.5).
    Beats past the end of the bar are allowed and wrap when converted.
    """

    bar: int
    beat: float

    def __post_init__(self) -> None:
        if self.bar < 1:
            raise ValueError(f"Bar number must be 1 or greater, got: {self.bar}")
        if self.beat < 1:
            raise ValueError(f"Beat must be 1 or greater, got: {self.beat}")

    def __str__(self) -> str:
        return f"{self.bar}|{format_beat_value(self.beat)}"

    @classmethod
    def parse(cls, text: str) -> BarBeatPosition:
        """
        Parse a position like '1|1', '2|3.5', '1|4/3' or '1|2+1/3'.

        Raises:
            ValueError: If the text is not a valid position
        """
        match = _BAR_BEAT_RE.match(text.strip())
        if not match:
            raise ValueError(
                f'Invalid bar|beat format: "{text}". Expected "{{int}}|{{beat}}" like "1|2" or "2|3.5"'
            )
        return cls(int(match.group(1)), parse_beat_value(match.group(2)))


def parse_beat_value(text: str) -> float:
    """
    Parse a beat value.

    Supports integers ("2"), decimals ("1.5", ".5"), fractions ("4/3"),
    unit fractions without a numerator ("/4" = 1/4) and mixed numbers ("1+1/3").

    Raises:
        ValueError: On malformed text or division by zero
    """
    if not _BEAT_RE.match(text):
        raise ValueError(f'Invalid beat value: "{text}"')

    if "+" in text:
        whole, fraction = text.split("+")
        numerator, denominator = fraction.split("/")
        if int(denominator) == 0:
            raise ValueError(f'Invalid beat value: division by zero in "{text}"')
        return int(whole) + int(numerator) / int(denominator)

    if "/" in text:
        numerator, denominator = text.split("/")
        if int(denominator) == 0:
            raise ValueError(f'Invalid beat value: division by zero in "{text}"')
        return int(numerator or "1") / int(denominator)

    return float(text)


def parse_duration(text: str, numerator: int) -> float:
    """
    Parse a duration into musical beats.

    Accepts a beat value ("1.5", "1/3") or bar:beat ("1:2" = one bar plus two beats).

    Args:
        text: Duration text
        numerator: Time signature numerator (beats per bar)

    Returns:
        Duration in musical beats

    Raises:
        InvalidTimeSignatureError: If numerator is not positive
    """
    _check_numerator(numerator)
    match = _BAR_BEAT_DURATION_RE.match(text)
    if match:
        return int(match.group(1)) * numerator + parse_beat_value(match.group(2))
    if "|" in text:
        raise ValueError(f'Invalid duration format: "{text}". Use ":" for bar:beat format, not "|"')
    return parse_beat_value(text)


def _shortest_decimal(value: float) -> str:
    """Shortest exact decimal text for a float, without exponent notation."""
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_beat_value(value: float) -> str:
    """
    Format a beat value for notation output.

    Integers lose their decimals, short decimals are kept as is,
    thirds and other simple fractions become "n/d" or "a+n/d".
    The result always parses back with parse_beat_value, and a positive
    value never formats as "0".
    """
    nearest = round(value)
    if math.isclose(value, nearest, rel_tol=0, abs_tol=TIME_EPSILON) and (nearest or not value):
        return str(int(nearest))

    rounded = round(value, 6)
    if abs(rounded - value) <= TIME_EPSILON and rounded:
        return _shortest_decimal(rounded)

    fraction = Fraction(value).limit_denominator(MAX_FRACTION_DENOMINATOR)
    if abs(float(fraction) - value) <= TIME_EPSILON and fraction:
        whole, remainder = divmod(fraction, 1)
        if whole == 0:
            return f"{remainder.numerator}/{remainder.denominator}"
        return f"{int(whole)}+{remainder.numerator}/{remainder.denominator}"

    return _shortest_decimal(value)


def format_probability(value: float) -> str:
    """Format a probability exactly (0.8 -> '0.8', 1.0 -> '1')."""
    return _shortest_decimal(value)


def musical_beats_to_ableton_beats(musical_beats: float, denominator: int) -> float:
    """Convert musical beats to Ableton beats (quarter notes)."""
    _check_denominator(denominator)
    return musical_beats * QUARTER_NOTE_UNIT / denominator


def ableton_beats_to_musical_beats(ableton_beats: float, denominator: int) -> float:
    """Convert Ableton beats (quarter notes) to musical beats."""
    _check_denominator(denominator)
    return ableton_beats * denominator / QUARTER_NOTE_UNIT


def bar_beat_to_musical_beats(position: BarBeatPosition, numerator: int) -> float:
    """Linear musical-beat offset of a position from 1|1."""
    _check_numerator(numerator)
    return (position.bar - 1) * numerator + (position.beat - 1)


def bar_beat_to_ableton_beats(position: BarBeatPosition, time_signature: TimeSignature) -> float:
    """
    Convert a bar|beat position to Ableton beats.

    1|1 maps to 0. In 4/4, 2|1.5 maps to 4.5.
    """
    musical_beats = bar_beat_to_musical_beats(position, time_signature.numerator)
    return musical_beats_to_ableton_beats(musical_beats, time_signature.denominator)


def ableton_beats_to_bar_beat(ableton_beats: float, time_signature: TimeSignature) -> BarBeatPosition:
    """
    Convert Ableton beats to a bar|beat position.

    A remainder within TIME_EPSILON of a bar line snaps to it, so float
    noise never produces positions like 1|4.9999999 in 4/4.

    Raises:
        NotationSemanticError: If the time is negative or not finite
    """
    if not math.isfinite(ableton_beats):
        raise NotationSemanticError(f"Time must be a finite number, got: {ableton_beats}")
    if ableton_beats < -TIME_EPSILON:
        raise NotationSemanticError(f"Time cannot be negative, got: {ableton_beats}")

    musical_beats = max(0.0, ableton_beats_to_musical_beats(ableton_beats, time_signature.denominator))
    numerator = time_signature.numerator

    bar_index = math.floor((musical_beats + TIME_EPSILON) / numerator)
    beat_offset = musical_beats - bar_index * numerator
    if abs(beat_offset) <= TIME_EPSILON:
        beat_offset = 0.0

    return BarBeatPosition(bar_index + 1, beat_offset + 1)


def bar_of_ableton_beats(ableton_beats: float, time_signature: TimeSignature) -> int:
    """The 1-based bar containing a time."""
    return ableton_beats_to_bar_beat(ableton_beats, time_signature).bar
