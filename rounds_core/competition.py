"""Competition-level administration: creation, cascade deletion, field edits,
organizer/staff membership, group upserts and round progress figures."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Literal

from .errors import Forbidden, InvalidArgument, InvalidRound, NotFound, Unauthenticated
from .locks import EventLocks
from .permissions import IdentityResolver, PermissionGuard
from .store import DocumentStore
from .types import COMPETITIONS, GROUPS, RESULTS, ROUNDS
from .validation import CompetitionNameInput, GroupInput, validate_input

logger = logging.getLogger(__name__)

UserListField = Literal["organizers", "staff"]


class CompetitionAdmin:
    def __init__(
        self,
        store: DocumentStore,
        guard: PermissionGuard,
        identity: IdentityResolver,
        locks: EventLocks | None = None,
    ):
        self.store = store
        self.guard = guard
        self.identity = identity
        self.locks = locks or EventLocks()

    def create_competition(self, actor_id: str | None, competition_name: str) -> str:
        """Create a competition with the actor as its only organizer."""
        data = validate_input(CompetitionNameInput, {"competitionName": competition_name})
        if not actor_id:
            raise Unauthenticated("Must log in")
        if not self.identity.is_verified(actor_id):
            raise Unauthenticated("Must verify email")

        competition_id = self.store.insert(
            COMPETITIONS,
            {
                "competitionName": data.competitionName,
                "organizers": [actor_id],
                "staff": [],
                "listed": False,
                "startDate": datetime.now(timezone.utc),
            },
        )
        logger.info(f"Created competition {competition_id} ({data.competitionName}) for {actor_id}")
        return competition_id

    def delete_competition(self, actor_id: str | None, competition_id: str) -> None:
        """Delete a competition with all its rounds, results and groups."""
        competition_id = self.guard.authorize(actor_id, competition_id)
        event_codes = {
            r.get("eventCode")
            for r in self.store.find(ROUNDS, {"competitionId": competition_id}, fields=["eventCode"])
        }
        with self.locks.hold_many(competition_id, event_codes):
            with self.store.transaction():
                self.store.remove(COMPETITIONS, {"_id": competition_id})
                self.store.remove(ROUNDS, {"competitionId": competition_id})
                self.store.remove(RESULTS, {"competitionId": competition_id})
                self.store.remove(GROUPS, {"competitionId": competition_id})
        logger.info(f"Deleted competition {competition_id}")

    def update_competition(self, actor_id: str | None, competition_id: str, fields: Dict[str, Any]) -> None:
        """Set allow-listed fields; a falsy value unsets the field instead."""
        competition_id = self.guard.authorize(actor_id, competition_id)
        if not fields:
            return
        if not self.guard.filter_fields(actor_id, fields.keys(), "competition"):
            raise Forbidden("Competition field not editable")

        to_set = {k: v for k, v in fields.items() if v}
        to_unset = {k: "" for k, v in fields.items() if not v}
        modifier: Dict[str, Dict[str, Any]] = {}
        if to_set:
            modifier["$set"] = to_set
        if to_unset:
            modifier["$unset"] = to_unset
        self.store.update(COMPETITIONS, {"_id": competition_id}, modifier)
        logger.info(f"Updated competition {competition_id}: {sorted(fields)}")

    def toggle_listed(self, actor_id: str | None, competition_id: str) -> bool:
        """Flip the listed flag. Returns the new value."""
        competition_id = self.guard.authorize(actor_id, competition_id)
        competition = self.store.find_one(COMPETITIONS, {"_id": competition_id}, fields=["listed"])
        if not competition:
            raise NotFound("Competition does not exist")
        listed = not competition.get("listed")
        self.update_competition(actor_id, competition_id, {"listed": listed})
        return listed

    def add_competition_user(
        self, actor_id: str | None, competition_id: str, user_id: str, field: UserListField = "organizers"
    ) -> None:
        self._change_user_list(actor_id, competition_id, user_id, field, "$addToSet")

    def remove_competition_user(
        self, actor_id: str | None, competition_id: str, user_id: str, field: UserListField = "organizers"
    ) -> None:
        self._change_user_list(actor_id, competition_id, user_id, field, "$pull")

    def _change_user_list(self, actor_id, competition_id, user_id, field, operator) -> None:
        if field not in ("organizers", "staff"):
            raise InvalidArgument(f"Unknown user list {field!r}")
        if not user_id:
            raise InvalidArgument("user id required")
        competition_id = self.guard.authorize(actor_id, competition_id)
        if not self.guard.filter_fields(actor_id, [field], "competition"):
            raise Forbidden(f"Field {field} not editable")
        self.store.update(COMPETITIONS, {"_id": competition_id}, {operator: {field: user_id}})
        logger.info(f"{operator} {user_id} on {competition_id}.{field}")

    def put_group(self, actor_id: str | None, group: Dict[str, Any]) -> str:
        """Insert a group, or fully replace the one with the same (roundId, group) key.

        Returns:
            The group id

        Raises:
            InvalidRound: the round does not exist or belongs to another competition
        """
        payload = {k: v for k, v in group.items() if k != "_id"}
        data = validate_input(GroupInput, payload)
        competition_id = self.guard.authorize(actor_id, data.competitionId)
        new_group = {**data.model_dump(), "competitionId": competition_id}
        round_doc = self.store.find_one(ROUNDS, {"_id": data.roundId}, fields=["competitionId", "eventCode"])
        if not round_doc or round_doc["competitionId"] != competition_id:
            raise InvalidRound(f"Invalid roundId {data.roundId}")

        with self.locks.hold(competition_id, round_doc.get("eventCode")):
            existing = self.store.find_one(GROUPS, {"roundId": data.roundId, "group": data.group})
            if not existing:
                with self.store.transaction():
                    self.guard.require_competition(competition_id)
                    return self.store.insert(GROUPS, new_group)

            logger.warning(f"Clobbering existing group {existing['_id']} ({data.roundId}/{data.group})")
            logger.warning(f"Previous group: {existing}")
            stale_fields = {k: "" for k in existing if k != "_id" and k not in new_group}
            modifier: Dict[str, Dict[str, Any]] = {"$set": new_group}
            if stale_fields:
                modifier["$unset"] = stale_fields
            self.store.update(GROUPS, {"_id": existing["_id"]}, modifier)
            return existing["_id"]

    # ---------------- progress ----------------

    def competitor_count(self, round_id: str) -> int:
        return self.store.count(RESULTS, {"roundId": round_id})

    def round_progress_percentage(self, round_id: str) -> int:
        """Percent of attempts already done across all results of a round."""
        solves = []
        for result in self.store.find(RESULTS, {"roundId": round_id}, fields=["solves"]):
            solves.extend(result.get("solves") or [])
        if not solves:
            return 0
        done = sum(1 for solve in solves if solve)
        # Half rounds up, like the UI progress bars expect
        return int(100 * done / len(solves) + 0.5)
