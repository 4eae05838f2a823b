"""Advancing competitors from a round into the next round of the same event.

The next round's roster is reconciled against the top ``competitor_count``
results of the source round:

- results of competitors that no longer qualify are deleted
- an empty, unplaced result is inserted for each newly qualifying competitor
- competitors already present are not touched, so their attempts survive

Running it again with the same count is a no-op.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .errors import InvalidCount, NoNextRound, NotFound
from .locks import EventLocks
from .permissions import PermissionGuard
from .reconcile import MembershipDiff, diff_membership
from .store import DocumentStore
from .types import RESULTS, ROUNDS

logger = logging.getLogger(__name__)


class AdvancementEngine:
    def __init__(self, store: DocumentStore, guard: PermissionGuard, locks: EventLocks | None = None):
        self.store = store
        self.guard = guard
        self.locks = locks or EventLocks()

    def ranked_results(self, round_id: str) -> List[Dict[str, Any]]:
        """Results of a round, best placed first. Results without a position come last."""
        results = self.store.find(RESULTS, {"roundId": round_id}, sort=[("position", 1)])
        placed = [result for result in results if result.get("position") is not None]
        unplaced = [result for result in results if result.get("position") is None]
        return placed + unplaced

    def next_round(self, round_doc: Dict[str, Any]) -> Dict[str, Any] | None:
        if not round_doc.get("eventCode"):
            return None
        return self.store.find_one(
            ROUNDS,
            {
                "competitionId": round_doc["competitionId"],
                "eventCode": round_doc["eventCode"],
                "nthRound": round_doc.get("nthRound", -1) + 1,
            },
            fields=["competitionId"],
        )

    def advance(self, actor_id: str | None, source_round_id: str, competitor_count: int) -> MembershipDiff:
        """Make the next round hold exactly the top ``competitor_count`` of the source round.

        Args:
            actor_id: Acting user
            source_round_id: Round whose results are ranked by ``position``
            competitor_count: How many competitors qualify

        Returns:
            MembershipDiff of user ids added to / removed from the next round

        Raises:
            NotFound: source round does not exist
            InvalidCount: negative count, or more than the source round holds
            NoNextRound: the event has no round after the source round

        Ties at the cut line are broken by stored position order only.
        """
        source = self.store.find_one(ROUNDS, {"_id": source_round_id})
        if not source:
            raise NotFound(f"Unrecognized round id {source_round_id}")
        self.guard.authorize(actor_id, source["competitionId"])

        if isinstance(competitor_count, bool) or not isinstance(competitor_count, int):
            raise InvalidCount(f"Competitor count must be an integer, got {competitor_count!r}")
        if competitor_count < 0:
            raise InvalidCount("Cannot advance a negative number of competitors")

        with self.locks.hold(source["competitionId"], source.get("eventCode")):
            results = self.ranked_results(source_round_id)
            if competitor_count > len(results):
                raise InvalidCount(
                    f"Cannot advance {competitor_count} competitors, round only has {len(results)}"
                )

            next_round = self.next_round(source)
            if not next_round:
                raise NoNextRound(source_round_id)

            desired = [result["userId"] for result in results[:competitor_count]]
            actual = [
                result["userId"]
                for result in self.store.find(RESULTS, {"roundId": next_round["_id"]}, fields=["userId"])
            ]
            diff = diff_membership(desired, actual)
            if diff.is_empty:
                logger.debug(f"Round {next_round['_id']} already holds the top {competitor_count}")
                return diff

            competition_id = next_round["competitionId"]
            with self.store.transaction():
                # Deletes first: never two results for one competitor in a round.
                for user_id in diff.to_remove:
                    self.store.remove(
                        RESULTS,
                        {"competitionId": competition_id, "roundId": next_round["_id"], "userId": user_id},
                    )
                for user_id in diff.to_add:
                    self.store.insert(
                        RESULTS,
                        {"competitionId": competition_id, "roundId": next_round["_id"], "userId": user_id},
                    )

        logger.info(
            f"Advanced top {competitor_count} from {source_round_id} to {next_round['_id']}: "
            f"+{len(diff.to_add)} -{len(diff.to_remove)}"
        )
        return diff
