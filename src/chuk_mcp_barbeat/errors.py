"""
Error types for the bar|beat notation subsystem.

Two families, so callers can tell the user different things:
- NotationSyntaxError: the text is malformed (bad token, value out of range)
- NotationSemanticError: the tokens are fine but the music doesn't make sense
  (range ending before it starts, invalid time signature, bad bar copy)

Both subclass ValueError, so existing `except ValueError` handlers keep working.
"""

from __future__ import annotations


class NotationError(ValueError):
    """Base class for all notation errors."""


class NotationSyntaxError(NotationError):
    """
    Malformed notation text.

    Carries the offending token and its location (1-based line and column).
    """

    def __init__(
        self,
        message: str,
        token: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.detail = message
        self.token = token
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line is None:
            return f"bar|beat syntax error: {self.detail}"
        location = f"line {self.line}"
        if self.column is not None:
            location += f", column {self.column}"
        if self.token is not None:
            location += f" ('{self.token}')"
        return f"bar|beat syntax error at {location}: {self.detail}"


class NotationSemanticError(NotationError):
    """Structurally valid notation that violates a musical invariant."""


class InvalidTimeSignatureError(NotationSemanticError):
    """Time signature with a non-positive numerator or denominator."""
