"""
Note input model - validates notes handed in by tool callers.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from chuk_mcp_barbeat.notation.events import NoteRecord


class NoteModel(BaseModel):
    """
    A note as it arrives over the wire.

    Times are Ableton beats (quarter notes) from the clip start.
    """

    pitch: int = Field(..., ge=0, le=127, description="MIDI pitch (C3 = 60)")
    start_time: float = Field(..., ge=0, description="Start in Ableton beats")
    duration: float = Field(..., gt=0, description="Length in Ableton beats")
    velocity: int = Field(100, ge=0, le=127, description="MIDI velocity")
    probability: float = Field(1.0, ge=0.0, le=1.0, description="Chance the note plays")

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    def to_record(self) -> NoteRecord:
        """Convert to a NoteRecord."""
        return NoteRecord(
            start_time=self.start_time,
            pitch=self.pitch,
            duration=self.duration,
            velocity=self.velocity,
            probability=self.probability,
        )
