"""Who may change a competition, and which fields they may touch."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Literal, Protocol, Tuple

from .errors import AccessDenied, Forbidden, NotFound, Unauthenticated
from .store import DocumentStore
from .types import COMPETITIONS

logger = logging.getLogger(__name__)

FieldTarget = Literal["competition", "round"]

COMPETITION_FIELDS: FrozenSet[str] = frozenset(
    {
        "competitionName",
        "organizers",
        "staff",
        "startDate",
        "numberOfDays",
        "calendarStartMinutes",
        "calendarEndMinutes",
    }
)
# Identity reassignment and visibility are reserved to super-admins.
SUPER_ADMIN_COMPETITION_FIELDS: FrozenSet[str] = COMPETITION_FIELDS | {"listed", "wcaCompetitionId"}

ROUND_FIELDS: FrozenSet[str] = frozenset(
    {
        "formatCode",
        "nthDay",
        "startMinutes",
        "durationMinutes",
        "title",
    }
)


class IdentityResolver(Protocol):
    def is_super_admin(self, user_id: str) -> bool:
        ...

    def is_verified(self, user_id: str) -> bool:
        ...


@dataclass
class StaticIdentityResolver:
    """Identity resolver backed by fixed sets of user ids."""

    super_admins: FrozenSet[str] = field(default_factory=frozenset)
    # None means every user counts as verified
    verified: FrozenSet[str] | None = None

    def is_super_admin(self, user_id: str) -> bool:
        return user_id in self.super_admins

    def is_verified(self, user_id: str) -> bool:
        return self.verified is None or user_id in self.verified


class PermissionGuard:
    """Evaluates management rights. Only reads from the store."""

    def __init__(self, store: DocumentStore, identity: IdentityResolver):
        self.store = store
        self.identity = identity

    def find_competition(self, competition_ref: str) -> dict | None:
        """Look a competition up by ``_id`` or by its public ``wcaCompetitionId``."""
        if not competition_ref:
            return None
        return self.store.find_one(
            COMPETITIONS,
            {"$or": [{"_id": competition_ref}, {"wcaCompetitionId": competition_ref}]},
            fields=["organizers"],
        )

    def _resolve(
        self, actor_id: str | None, competition_ref: str
    ) -> Tuple[dict | None, AccessDenied | NotFound | None]:
        if not actor_id:
            return None, Unauthenticated("Must log in")
        competition = self.find_competition(competition_ref)
        if not competition:
            return None, NotFound("Competition does not exist")
        if self.identity.is_super_admin(actor_id):
            return competition, None
        if actor_id not in (competition.get("organizers") or []):
            return competition, Forbidden("Not an organizer for this competition")
        return competition, None

    def cannot_manage_reason(self, actor_id: str | None, competition_ref: str) -> AccessDenied | NotFound | None:
        """Return why ``actor_id`` may not manage the competition, or None if they may."""
        return self._resolve(actor_id, competition_ref)[1]

    def authorize(self, actor_id: str | None, competition_ref: str) -> str:
        """Raise unless ``actor_id`` may manage the competition.

        Returns:
            The competition's ``_id``, also when it was referenced by wcaCompetitionId
        """
        competition, reason = self._resolve(actor_id, competition_ref)
        if reason is not None:
            logger.warning(f"Denied {actor_id!r} on competition {competition_ref!r}: {reason.kind}")
            raise reason
        return competition["_id"]

    def require_competition(self, competition_id: str) -> None:
        """Raise NotFound if the competition was deleted. Call inside the write transaction."""
        if self.store.count(COMPETITIONS, {"_id": competition_id}) == 0:
            raise NotFound("Competition does not exist")

    def can_manage(self, actor_id: str | None, competition_ref: str) -> bool:
        return self.cannot_manage_reason(actor_id, competition_ref) is None

    def allowed_fields(self, actor_id: str | None, target: FieldTarget) -> FrozenSet[str]:
        if target == "round":
            return ROUND_FIELDS
        if target == "competition":
            if actor_id and self.identity.is_super_admin(actor_id):
                return SUPER_ADMIN_COMPETITION_FIELDS
            return COMPETITION_FIELDS
        raise ValueError(f"Unknown field target {target!r}")

    def filter_fields(self, actor_id: str | None, proposed_fields: Iterable[str], target: FieldTarget) -> bool:
        """True if every proposed field is on the allow-list for ``target``."""
        allowed = self.allowed_fields(actor_id, target)
        extra = set(proposed_fields) - allowed
        if extra:
            logger.warning(f"Rejected {target} fields {sorted(extra)} for {actor_id!r}")
            return False
        return True
