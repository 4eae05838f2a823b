"""Static ruleset: recognised events, their formats and the round-code table.

The ruleset is immutable configuration. ``get_ruleset()`` loads it once per
process, from ``ROUNDS_CORE_RULESET_PATH`` when set, otherwise from the
built-in table below.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import get_settings

logger = logging.getLogger(__name__)


class RoundCodes(BaseModel):
    """Code pair for one slot of the round table."""

    model_config = ConfigDict(frozen=True)

    uncombined: str = Field(..., min_length=1, max_length=4)
    # Used when the round has a soft cutoff
    combined: str = Field(..., min_length=1, max_length=4)


class EventSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, max_length=20)
    name: str
    formats: Tuple[str, ...]

    @field_validator("formats")
    @classmethod
    def validate_formats(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("event must allow at least one format")
        return v


class Ruleset(BaseModel):
    """Events, allowed formats per event and the supported round table.

    The length of ``supported_rounds`` is the maximum number of rounds an
    event may have; its last slot is the code of every final round.
    """

    model_config = ConfigDict(frozen=True)

    events: Tuple[EventSpec, ...]
    supported_rounds: Tuple[RoundCodes, ...]

    @field_validator("supported_rounds")
    @classmethod
    def validate_supported_rounds(cls, v: Tuple[RoundCodes, ...]) -> Tuple[RoundCodes, ...]:
        if not v:
            raise ValueError("supported_rounds cannot be empty")
        return v

    @field_validator("events")
    @classmethod
    def validate_unique_codes(cls, v: Tuple[EventSpec, ...]) -> Tuple[EventSpec, ...]:
        codes = [e.code for e in v]
        if len(codes) != len(set(codes)):
            raise ValueError("event codes must be unique")
        return v

    @property
    def max_rounds_per_event(self) -> int:
        return len(self.supported_rounds)

    @property
    def event_codes(self) -> Tuple[str, ...]:
        return tuple(e.code for e in self.events)

    def is_event(self, event_code: str | None) -> bool:
        return event_code is not None and event_code in self.event_codes

    def event(self, event_code: str) -> EventSpec | None:
        for e in self.events:
            if e.code == event_code:
                return e
        return None

    def formats_for(self, event_code: str) -> Tuple[str, ...]:
        e = self.event(event_code)
        return e.formats if e else ()

    def default_format(self, event_code: str) -> str:
        return self.formats_for(event_code)[0]


def _event(code: str, name: str, formats: str) -> EventSpec:
    return EventSpec(code=code, name=name, formats=tuple(formats))


# Format codes: a = average of 5, m = mean of 3, 1/2/3 = best of N
DEFAULT_RULESET = Ruleset(
    events=(
        _event("333", "Rubik's Cube", "a321"),
        _event("444", "4x4 Cube", "a321"),
        _event("555", "5x5 Cube", "a321"),
        _event("222", "2x2 Cube", "a321"),
        _event("333bf", "Rubik's Cube: Blindfolded", "321"),
        _event("333oh", "Rubik's Cube: One-handed", "a321"),
        _event("333fm", "Rubik's Cube: Fewest moves", "m21"),
        _event("333ft", "Rubik's Cube: With feet", "m321"),
        _event("minx", "Megaminx", "a321"),
        _event("pyram", "Pyraminx", "a321"),
        _event("sq1", "Square-1", "a321"),
        _event("clock", "Rubik's Clock", "a321"),
        _event("skewb", "Skewb", "a321"),
        _event("666", "6x6 Cube", "m321"),
        _event("777", "7x7 Cube", "m321"),
        _event("444bf", "4x4 Cube: Blindfolded", "321"),
        _event("555bf", "5x5 Cube: Blindfolded", "321"),
        _event("333mbf", "Rubik's Cube: Multiple blindfolded", "12"),
    ),
    supported_rounds=(
        RoundCodes(uncombined="1", combined="d"),  # first round
        RoundCodes(uncombined="2", combined="e"),  # second round
        RoundCodes(uncombined="3", combined="g"),  # semi final
        RoundCodes(uncombined="f", combined="c"),  # final
    ),
)


def load_ruleset(path: Path) -> Ruleset:
    """Load and validate a ruleset JSON file."""
    ruleset = Ruleset.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info(
        f"Loaded ruleset from {path}: {len(ruleset.events)} events, "
        f"{ruleset.max_rounds_per_event} rounds max"
    )
    return ruleset


@lru_cache()
def get_ruleset() -> Ruleset:
    path = get_settings().ruleset_path
    if path is None:
        return DEFAULT_RULESET
    return load_ruleset(path)
