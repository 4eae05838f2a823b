"""Round lifecycle: adding, removing and renumbering the rounds of an event.

For a fixed (competitionId, eventCode) the rounds always carry nthRound values
0..N-1 and a round code derived from their position (see round_codes.py).
Every operation that changes the shape of an event's round list ends with
``refresh_round_codes``, which is the only writer of nthRound and roundCode.

A round moves through three states:
- PROVISIONAL: just inserted, ordinal/code not yet canonical
- ACTIVE: ordinal and code match its position, may receive results
- REMOVED: deleted (terminal); only the tail round without results can get here
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Tuple

from .errors import CannotRemove, EventUnrecognized, Forbidden, InvalidFormat, NotFound, TooManyRounds
from .locks import EventLocks
from .permissions import PermissionGuard
from .round_codes import assign_code, final_round_code
from .ruleset import Ruleset, get_ruleset
from .store import DocumentStore
from .types import GROUPS, RESULTS, ROUNDS
from .validation import NonEventRoundInput, RoundUpdateInput, validate_input

logger = logging.getLogger(__name__)

# nthRound ascending, then rounds without a soft cutoff first
ROUND_ORDER = [("nthRound", 1), ("softCutoff", 1)]


class RoundState(str, Enum):
    PROVISIONAL = "provisional"
    ACTIVE = "active"
    REMOVED = "removed"


class RoundLifecycleManager:
    def __init__(
        self,
        store: DocumentStore,
        guard: PermissionGuard,
        locks: EventLocks | None = None,
        ruleset: Ruleset | None = None,
    ):
        self.store = store
        self.guard = guard
        self.locks = locks or EventLocks()
        self.ruleset = ruleset or get_ruleset()

    # ---------------- queries ----------------

    def event_rounds(self, competition_id: str, event_code: str) -> List[Dict[str, Any]]:
        return self.store.find(
            ROUNDS,
            {"competitionId": competition_id, "eventCode": event_code},
            sort=ROUND_ORDER,
        )

    def _get_round(self, round_id: str) -> Dict[str, Any]:
        round_doc = self.store.find_one(ROUNDS, {"_id": round_id})
        if not round_doc:
            raise NotFound(f"Unrecognized round id {round_id}")
        return round_doc

    def _is_tail_round(self, round_doc: Dict[str, Any]) -> bool:
        last = self.store.find_one(
            ROUNDS,
            {"competitionId": round_doc["competitionId"], "eventCode": round_doc["eventCode"]},
            sort=[("nthRound", -1)],
            fields=["_id"],
        )
        return last is not None and last["_id"] == round_doc["_id"]

    def _is_removable(self, round_doc: Dict[str, Any]) -> bool:
        if not round_doc.get("eventCode"):
            # Rounds outside the ruleset (lunch, awards) can always go.
            return True
        if not self._is_tail_round(round_doc):
            return False
        return self.store.count(RESULTS, {"roundId": round_doc["_id"]}) == 0

    def can_add_round(self, actor_id: str | None, competition_id: str, event_code: str) -> bool:
        """True if another round fits in the event.

        Raises the same access/event errors as ``add_round``; only the
        "event is full" case answers False.
        """
        if not competition_id:
            return False
        competition_id = self.guard.authorize(actor_id, competition_id)
        return self._event_round_count(competition_id, event_code) < self.ruleset.max_rounds_per_event

    def _event_round_count(self, competition_id: str, event_code: str) -> int:
        if not self.ruleset.is_event(event_code):
            raise EventUnrecognized(event_code)
        return self.store.count(ROUNDS, {"competitionId": competition_id, "eventCode": event_code})

    def can_remove_round(self, actor_id: str | None, round_id: str) -> bool:
        round_doc = self._get_round(round_id)
        self.guard.authorize(actor_id, round_doc["competitionId"])
        return self._is_removable(round_doc)

    def round_state(self, round_id: str) -> RoundState:
        round_doc = self.store.find_one(ROUNDS, {"_id": round_id})
        if not round_doc:
            return RoundState.REMOVED
        if not round_doc.get("eventCode"):
            return RoundState.ACTIVE
        rounds = self.event_rounds(round_doc["competitionId"], round_doc["eventCode"])
        expected = dict((rid, (n, code)) for rid, n, code in self._compute_assignments(rounds))
        current = (round_doc.get("nthRound"), round_doc.get("roundCode"))
        return RoundState.ACTIVE if expected.get(round_id) == current else RoundState.PROVISIONAL

    # ---------------- mutations ----------------

    def add_round(self, actor_id: str | None, competition_id: str, event_code: str) -> str:
        """Append a round to an event and renumber the event.

        Returns:
            The new round id

        Raises:
            Unauthenticated / Forbidden / NotFound: via PermissionGuard
            EventUnrecognized: event_code is not in the ruleset
            TooManyRounds: the event already has the maximum number of rounds
        """
        competition_id = self.guard.authorize(actor_id, competition_id)
        with self.locks.hold(competition_id, event_code):
            if self._event_round_count(competition_id, event_code) >= self.ruleset.max_rounds_per_event:
                raise TooManyRounds(
                    f"Event {event_code} already has {self.ruleset.max_rounds_per_event} rounds"
                )

            with self.store.transaction():
                # A concurrent delete_competition may have run since authorize.
                self.guard.require_competition(competition_id)
                round_id = self.store.insert(
                    ROUNDS,
                    {
                        "competitionId": competition_id,
                        "eventCode": event_code,
                        "formatCode": self.ruleset.default_format(event_code),
                        # Placeholders so the round sorts last until refresh_round_codes runs.
                        "roundCode": final_round_code(self.ruleset),
                        "nthRound": self.ruleset.max_rounds_per_event - 1,
                    },
                )
                self.refresh_round_codes(competition_id, event_code)

        logger.info(f"Added round {round_id} to {competition_id}/{event_code}")
        return round_id

    def add_non_event_round(
        self,
        actor_id: str | None,
        competition_id: str,
        title: str,
        start_minutes: int,
        duration_minutes: int,
        nth_day: int | None = None,
    ) -> str:
        """Add a schedule slot that belongs to no event. It never gets a code."""
        data = validate_input(
            NonEventRoundInput,
            {
                "title": title,
                "startMinutes": start_minutes,
                "durationMinutes": duration_minutes,
                "nthDay": nth_day,
            },
        )
        competition_id = self.guard.authorize(actor_id, competition_id)
        doc = {"competitionId": competition_id, **data.model_dump(exclude_none=True)}
        with self.locks.hold(competition_id, None):
            with self.store.transaction():
                self.guard.require_competition(competition_id)
                round_id = self.store.insert(ROUNDS, doc)
        logger.info(f"Added non-event round {round_id} ({data.title}) to {competition_id}")
        return round_id

    def remove_round(self, actor_id: str | None, round_id: str) -> None:
        """Delete a round and its groups, then renumber its event.

        Raises:
            NotFound: round_id does not exist
            CannotRemove: the round is not the last of its event, or has results
        """
        round_doc = self._get_round(round_id)
        competition_id = round_doc["competitionId"]
        event_code = round_doc.get("eventCode")

        with self.locks.hold(competition_id, event_code):
            # Re-read under the lock; another caller may have removed it meanwhile.
            round_doc = self._get_round(round_id)
            self.guard.authorize(actor_id, competition_id)
            if not self._is_removable(round_doc):
                raise CannotRemove()

            with self.store.transaction():
                self.store.remove(ROUNDS, {"_id": round_id})
                self.store.remove(GROUPS, {"roundId": round_id})
                if event_code:
                    self.refresh_round_codes(competition_id, event_code)

        logger.info(f"Removed round {round_id} from {competition_id}/{event_code}")

    def _compute_assignments(self, rounds: List[Dict[str, Any]]) -> List[Tuple[str, int, str]]:
        last = len(rounds) - 1
        return [
            (
                round_doc["_id"],
                # Ordinal is the index in sorted order, which also closes any gap.
                nth_round,
                assign_code(
                    nth_round,
                    nth_round == last,
                    bool(round_doc.get("softCutoff")),
                    self.ruleset,
                ),
            )
            for nth_round, round_doc in enumerate(rounds)
        ]

    def refresh_round_codes(self, competition_id: str, event_code: str) -> List[Tuple[str, int, str]]:
        """Recompute nthRound and roundCode for every round of an event.

        Idempotent: a second call without intervening changes writes nothing.

        Returns:
            List of (round_id, nthRound, roundCode) in round order

        Raises:
            TooManyRounds: the event holds more rounds than the table supports
        """
        with self.locks.hold(competition_id, event_code):
            rounds = self.event_rounds(competition_id, event_code)
            if len(rounds) > self.ruleset.max_rounds_per_event:
                raise TooManyRounds(f"Too many rounds for {competition_id}/{event_code}: {len(rounds)}")

            assignments = self._compute_assignments(rounds)
            with self.store.transaction():
                for round_doc, (round_id, nth_round, round_code) in zip(rounds, assignments):
                    if round_doc.get("nthRound") == nth_round and round_doc.get("roundCode") == round_code:
                        continue
                    self.store.update(
                        ROUNDS,
                        {"_id": round_id},
                        {"$set": {"roundCode": round_code, "nthRound": nth_round}},
                    )

        logger.debug(f"Refreshed round codes for {competition_id}/{event_code}: {assignments}")
        return assignments

    def update_round(self, actor_id: str | None, round_id: str, fields: Dict[str, Any]) -> None:
        """Edit allow-listed round fields. A None value unsets the field."""
        round_doc = self._get_round(round_id)
        self.guard.authorize(actor_id, round_doc["competitionId"])
        if not self.guard.filter_fields(actor_id, fields.keys(), "round"):
            raise Forbidden("Round field not editable")

        data = validate_input(RoundUpdateInput, fields).model_dump(exclude_unset=True)
        event_code = round_doc.get("eventCode")
        format_code = data.get("formatCode")
        if "formatCode" in data and format_code is None and event_code:
            raise InvalidFormat(f"Rounds of event {event_code!r} need a format")
        if format_code is not None:
            if not event_code or format_code not in self.ruleset.formats_for(event_code):
                raise InvalidFormat(f"Format {format_code!r} not allowed for event {event_code!r}")

        to_set = {k: v for k, v in data.items() if v is not None}
        to_unset = {k: "" for k, v in data.items() if v is None}
        modifier: Dict[str, Dict[str, Any]] = {}
        if to_set:
            modifier["$set"] = to_set
        if to_unset:
            modifier["$unset"] = to_unset
        if not modifier:
            return
        self.store.update(ROUNDS, {"_id": round_id}, modifier)
        logger.info(f"Updated round {round_id}: {sorted(data)}")
