"""Caller-facing operations (no transport, no UI).

``RoundsService`` wires the guard, lifecycle manager, advancement engine and
competition admin around one store, identity resolver and ruleset, sharing a
single ``EventLocks`` registry. Every operation takes the acting user id
explicitly as its first argument and either returns a value or raises a
``RoundsCoreError``.

Typical use from an API layer:

    service = RoundsService(store, identity)
    competition_id = service.create_competition(user_id, "Spring Open")
    round_id = service.add_round(user_id, competition_id, "333")
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from .advancement import AdvancementEngine
from .competition import CompetitionAdmin, UserListField
from .lifecycle import RoundLifecycleManager, RoundState
from .locks import EventLocks
from .permissions import IdentityResolver, PermissionGuard
from .reconcile import MembershipDiff
from .ruleset import Ruleset, get_ruleset
from .store import DocumentStore


class RoundsService:
    def __init__(self, store: DocumentStore, identity: IdentityResolver, ruleset: Ruleset | None = None):
        self.store = store
        self.identity = identity
        self.ruleset = ruleset or get_ruleset()
        self.locks = EventLocks()
        self.guard = PermissionGuard(store, identity)
        self.lifecycle = RoundLifecycleManager(store, self.guard, self.locks, self.ruleset)
        self.advancement = AdvancementEngine(store, self.guard, self.locks)
        self.admin = CompetitionAdmin(store, self.guard, identity, self.locks)

    # Competitions

    def create_competition(self, actor_id: str | None, competition_name: str) -> str:
        return self.admin.create_competition(actor_id, competition_name)

    def delete_competition(self, actor_id: str | None, competition_id: str) -> None:
        self.admin.delete_competition(actor_id, competition_id)

    def update_competition(self, actor_id: str | None, competition_id: str, fields: Dict[str, Any]) -> None:
        self.admin.update_competition(actor_id, competition_id, fields)

    def toggle_listed(self, actor_id: str | None, competition_id: str) -> bool:
        return self.admin.toggle_listed(actor_id, competition_id)

    def add_competition_user(
        self, actor_id: str | None, competition_id: str, user_id: str, field: UserListField = "organizers"
    ) -> None:
        self.admin.add_competition_user(actor_id, competition_id, user_id, field)

    def remove_competition_user(
        self, actor_id: str | None, competition_id: str, user_id: str, field: UserListField = "organizers"
    ) -> None:
        self.admin.remove_competition_user(actor_id, competition_id, user_id, field)

    # Rounds

    def add_round(self, actor_id: str | None, competition_id: str, event_code: str) -> str:
        return self.lifecycle.add_round(actor_id, competition_id, event_code)

    def add_non_event_round(
        self,
        actor_id: str | None,
        competition_id: str,
        title: str,
        start_minutes: int,
        duration_minutes: int,
    ) -> str:
        return self.lifecycle.add_non_event_round(actor_id, competition_id, title, start_minutes, duration_minutes)

    def remove_round(self, actor_id: str | None, round_id: str) -> None:
        self.lifecycle.remove_round(actor_id, round_id)

    def refresh_round_codes(
        self, actor_id: str | None, competition_id: str, event_code: str
    ) -> List[Tuple[str, int, str]]:
        competition_id = self.guard.authorize(actor_id, competition_id)
        return self.lifecycle.refresh_round_codes(competition_id, event_code)

    def update_round(self, actor_id: str | None, round_id: str, fields: Dict[str, Any]) -> None:
        self.lifecycle.update_round(actor_id, round_id, fields)

    def can_add_round(self, actor_id: str | None, competition_id: str, event_code: str) -> bool:
        return self.lifecycle.can_add_round(actor_id, competition_id, event_code)

    def can_remove_round(self, actor_id: str | None, round_id: str) -> bool:
        return self.lifecycle.can_remove_round(actor_id, round_id)

    def round_state(self, round_id: str) -> RoundState:
        return self.lifecycle.round_state(round_id)

    # Results and groups

    def advance_competitors_from_round(
        self, actor_id: str | None, competitor_count: int, round_id: str
    ) -> MembershipDiff:
        return self.advancement.advance(actor_id, round_id, competitor_count)

    def put_group(self, actor_id: str | None, group: Dict[str, Any]) -> str:
        return self.admin.put_group(actor_id, group)

    def competitor_count(self, round_id: str) -> int:
        return self.admin.competitor_count(round_id)

    def round_progress_percentage(self, round_id: str) -> int:
        return self.admin.round_progress_percentage(round_id)
