"""
Notation configuration - defaults and limits, loaded from YAML.

Example barbeat.yaml:

    schema: barbeat-config/v1
    time_signature: 6/8
    tempo: 96
    defaults:
      velocity: 90
      duration: 0.5
    max_repeat_notes: 256
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chuk_mcp_barbeat.constants import (
    DEFAULT_DURATION,
    DEFAULT_PROBABILITY,
    DEFAULT_VELOCITY,
    MAX_REPEAT_NOTES,
    TICKS_PER_BEAT,
    SchemaVersion,
)
from chuk_mcp_barbeat.core.time import TimeSignature

logger = logging.getLogger(__name__)


class NotationDefaults(BaseModel):
    """Initial sticky modifiers for every parse."""

    velocity: int = Field(DEFAULT_VELOCITY, ge=0, le=127, description="Default velocity")
    duration: float = Field(DEFAULT_DURATION, gt=0, description="Default duration in musical beats")
    probability: float = Field(DEFAULT_PROBABILITY, ge=0.0, le=1.0, description="Default probability")

    model_config = ConfigDict(frozen=True)


class NotationConfig(BaseModel):
    """
    Configuration for notation parsing, formatting and MIDI export.

    Missing keys fall back to the built-in defaults.
    """

    schema_version: SchemaVersion = Field(
        "barbeat-config/v1", alias="schema", description="Schema version"
    )
    time_signature: str = Field("4/4", description="Default time signature")
    tempo: int = Field(120, ge=20, le=999, description="Tempo in BPM for MIDI export")
    defaults: NotationDefaults = Field(default_factory=NotationDefaults)
    max_repeat_notes: int = Field(
        MAX_REPEAT_NOTES, gt=0, description="Warn when one repeat generates more notes"
    )
    ticks_per_beat: int = Field(TICKS_PER_BEAT, gt=0, description="MIDI resolution")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("time_signature")
    @classmethod
    def validate_time_signature(cls, v: str) -> str:
        """Validate time signature format."""
        TimeSignature.parse(v)
        return v

    def get_time_signature(self) -> TimeSignature:
        """Get parsed TimeSignature object."""
        return TimeSignature.parse(self.time_signature)

    def resolve_time_signature(self, override: str | None) -> TimeSignature:
        """An explicit time signature if given, otherwise the configured one."""
        if override:
            return TimeSignature.parse(override)
        return self.get_time_signature()

    @classmethod
    def load(cls, path: Path) -> NotationConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the config file

        Returns:
            The loaded config, or defaults if the file does not exist
        """
        if not path.exists():
            logger.debug("No config at %s, using defaults", path)
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f)

        config = cls.model_validate(data or {})
        logger.info("Loaded notation config from %s", path)
        return config
