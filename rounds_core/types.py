"""Type definitions for stored competition documents."""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, TypedDict


class CompetitionDoc(TypedDict, total=False):
    """A competition document in the ``competitions`` collection."""
    _id: str
    competitionName: str
    # Alternate public identity (e.g. "WorldChampionship2025")
    wcaCompetitionId: Optional[str]
    organizers: List[str]
    staff: List[str]
    listed: bool

    # Scheduling window
    startDate: Optional[datetime]
    numberOfDays: Optional[int]
    calendarStartMinutes: Optional[int]
    calendarEndMinutes: Optional[int]


class RoundDoc(TypedDict, total=False):
    """
    TypedDict representing a round.

    Event rounds carry eventCode/nthRound/roundCode/formatCode. Rounds that are
    not part of the ruleset (lunch, awards) only have the scheduling fields.
    """
    _id: str
    competitionId: str

    # Event rounds
    eventCode: Optional[str]
    nthRound: int  # 0-based ordinal within the event
    roundCode: str  # canonical position/cutoff code, see round_codes.py
    formatCode: str
    softCutoff: Optional[dict]

    # Scheduling
    title: Optional[str]
    nthDay: Optional[int]
    startMinutes: Optional[int]
    durationMinutes: Optional[int]


class ResultDoc(TypedDict, total=False):
    """One competitor's entry in a round."""
    _id: str
    competitionId: str
    roundId: str
    userId: str
    position: Optional[int]  # rank within the round, None until placed
    solves: List[Any]  # raw attempt outcomes, falsy = not attempted yet


class GroupDoc(TypedDict, total=False):
    """
    A scheduling subdivision of a round, keyed by (roundId, group).

    Other keys (scrambles, start times, ...) are stored as given.
    """
    _id: str
    competitionId: str
    roundId: str
    group: str


# Collection names used against the document store
COMPETITIONS = "competitions"
ROUNDS = "rounds"
RESULTS = "results"
GROUPS = "groups"
