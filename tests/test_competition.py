import pytest

from rounds_core import (
    Forbidden,
    InMemoryStore,
    InvalidArgument,
    InvalidRound,
    NotFound,
    RoundsService,
    StaticIdentityResolver,
    Unauthenticated,
)
from rounds_core.types import COMPETITIONS, GROUPS, RESULTS, ROUNDS


def _service(verified=None):
    return RoundsService(
        InMemoryStore(),
        StaticIdentityResolver(super_admins=frozenset({"admin"}), verified=verified),
    )


def _competition(service, competition_id):
    return service.store.find_one(COMPETITIONS, {"_id": competition_id})


def test_create_competition_makes_actor_sole_organizer():
    service = _service()
    cid = service.create_competition("org", "  Spring Open  ")
    competition = _competition(service, cid)
    assert competition["competitionName"] == "Spring Open"
    assert competition["organizers"] == ["org"]
    assert competition["listed"] is False
    assert competition["startDate"] is not None


def test_create_competition_rejects_bad_callers_and_names():
    service = _service(verified=frozenset({"org"}))
    with pytest.raises(InvalidArgument):
        service.create_competition("org", "   ")
    with pytest.raises(Unauthenticated):
        service.create_competition(None, "Spring Open")
    with pytest.raises(Unauthenticated):
        service.create_competition("unverified", "Spring Open")
    assert service.store.count(COMPETITIONS) == 0


def test_delete_competition_cascades_only_to_its_documents():
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    other = service.create_competition("org", "Autumn Open")
    for competition_id in (cid, other):
        round_id = service.add_round("org", competition_id, "333")
        service.add_non_event_round("org", competition_id, "Lunch", 720, 45)
        service.store.insert(RESULTS, {"competitionId": competition_id, "roundId": round_id, "userId": "A"})
        service.put_group("org", {"competitionId": competition_id, "roundId": round_id, "group": "A"})

    with pytest.raises(Forbidden):
        service.delete_competition("someone", cid)

    service.delete_competition("org", cid)

    assert _competition(service, cid) is None
    for collection in (ROUNDS, RESULTS, GROUPS):
        assert service.store.count(collection, {"competitionId": cid}) == 0
    assert service.store.count(ROUNDS, {"competitionId": other}) == 2
    assert service.store.count(RESULTS, {"competitionId": other}) == 1
    assert service.store.count(GROUPS, {"competitionId": other}) == 1


def test_put_group_inserts_then_fully_replaces(caplog):
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    round_id = service.add_round("org", cid, "333")

    group_id = service.put_group(
        "org",
        {"competitionId": cid, "roundId": round_id, "group": "A", "scrambles": ["R U"], "note": "old"},
    )
    with caplog.at_level("WARNING", logger="rounds_core.competition"):
        replaced_id = service.put_group(
            "org",
            {"competitionId": cid, "roundId": round_id, "group": "A", "scrambles": ["F2 L'"]},
        )

    assert replaced_id == group_id
    group = service.store.find_one(GROUPS, {"_id": group_id})
    assert group["scrambles"] == ["F2 L'"]
    assert "note" not in group
    assert service.store.count(GROUPS, {"roundId": round_id}) == 1
    assert "Clobbering existing group" in caplog.text

    service.put_group("org", {"competitionId": cid, "roundId": round_id, "group": "B"})
    assert service.store.count(GROUPS, {"roundId": round_id}) == 2


def test_put_group_rejects_foreign_or_missing_round():
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    other = service.create_competition("org", "Autumn Open")
    foreign_round = service.add_round("org", other, "333")

    with pytest.raises(InvalidRound):
        service.put_group("org", {"competitionId": cid, "roundId": foreign_round, "group": "A"})
    with pytest.raises(InvalidRound):
        service.put_group("org", {"competitionId": cid, "roundId": "missing", "group": "A"})
    with pytest.raises(InvalidArgument):
        service.put_group("org", {"competitionId": cid, "roundId": foreign_round})
    with pytest.raises(Forbidden):
        service.put_group("someone", {"competitionId": other, "roundId": foreign_round, "group": "A"})
    assert service.store.count(GROUPS) == 0


def test_update_competition_honors_allow_lists():
    service = _service()
    cid = service.create_competition("org", "Spring Open")

    service.update_competition("org", cid, {"competitionName": "Spring Open 2026", "numberOfDays": 2})
    competition = _competition(service, cid)
    assert competition["competitionName"] == "Spring Open 2026"
    assert competition["numberOfDays"] == 2

    with pytest.raises(Forbidden):
        service.update_competition("org", cid, {"listed": True})
    with pytest.raises(Forbidden):
        service.update_competition("org", cid, {"wcaCompetitionId": "SpringOpen2026"})

    service.update_competition("admin", cid, {"wcaCompetitionId": "SpringOpen2026"})
    assert _competition(service, cid)["wcaCompetitionId"] == "SpringOpen2026"

    service.update_competition("org", cid, {"numberOfDays": None})
    assert "numberOfDays" not in _competition(service, cid)


def test_toggle_listed_is_super_admin_only():
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    with pytest.raises(Forbidden):
        service.toggle_listed("org", cid)
    assert service.toggle_listed("admin", cid) is True
    assert _competition(service, cid)["listed"] is True
    assert service.toggle_listed("admin", cid) is False


def test_organizer_and_staff_membership():
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    service.add_competition_user("org", cid, "org-2")
    service.add_competition_user("org", cid, "org-2")
    service.add_competition_user("org", cid, "judge", field="staff")
    competition = _competition(service, cid)
    assert competition["organizers"] == ["org", "org-2"]
    assert competition["staff"] == ["judge"]

    # The new organizer can now manage the competition.
    service.add_round("org-2", cid, "333")

    service.remove_competition_user("org", cid, "org-2")
    assert _competition(service, cid)["organizers"] == ["org"]
    with pytest.raises(Forbidden):
        service.add_round("org-2", cid, "333")
    with pytest.raises(InvalidArgument):
        service.add_competition_user("org", cid, "x", field="owners")


def test_round_progress_figures():
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    round_id = service.add_round("org", cid, "333")
    assert service.competitor_count(round_id) == 0
    assert service.round_progress_percentage(round_id) == 0

    service.store.insert(RESULTS, {"competitionId": cid, "roundId": round_id, "userId": "A", "solves": [1200, 0, None]})
    service.store.insert(RESULTS, {"competitionId": cid, "roundId": round_id, "userId": "B", "solves": [1100, 1300, None]})
    service.store.insert(RESULTS, {"competitionId": cid, "roundId": round_id, "userId": "C"})

    assert service.competitor_count(round_id) == 3
    assert service.round_progress_percentage(round_id) == 50


def test_delete_during_add_round_leaves_no_orphan_round(monkeypatch):
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    service.add_round("org", cid, "333")
    authorize = service.guard.authorize
    pending_deletes = [cid]

    def authorize_then_delete(actor_id, competition_ref):
        competition_id = authorize(actor_id, competition_ref)
        if pending_deletes:
            service.delete_competition("org", pending_deletes.pop())
        return competition_id

    monkeypatch.setattr(service.guard, "authorize", authorize_then_delete)
    with pytest.raises(NotFound):
        service.add_round("org", cid, "444")

    assert _competition(service, cid) is None
    assert service.store.count(ROUNDS) == 0


def test_delete_during_add_non_event_round_leaves_no_orphan_round(monkeypatch):
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    authorize = service.guard.authorize
    pending_deletes = [cid]

    def authorize_then_delete(actor_id, competition_ref):
        competition_id = authorize(actor_id, competition_ref)
        if pending_deletes:
            service.delete_competition("org", pending_deletes.pop())
        return competition_id

    monkeypatch.setattr(service.guard, "authorize", authorize_then_delete)
    with pytest.raises(NotFound):
        service.add_non_event_round("org", cid, "Lunch", 720, 45)
    assert service.store.count(ROUNDS) == 0


def test_delete_competition_keeps_event_locks():
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    service.add_round("org", cid, "333")
    lock = service.locks.lock_for(cid, "333")

    service.delete_competition("org", cid)

    assert service.locks.lock_for(cid, "333") is lock


def test_public_id_resolves_to_canonical_competition_id():
    service = _service()
    cid = service.create_competition("org", "Spring Open")
    service.update_competition("admin", cid, {"wcaCompetitionId": "SpringOpen2026"})

    round_id = service.add_round("org", "SpringOpen2026", "333")
    lunch = service.add_non_event_round("org", "SpringOpen2026", "Lunch", 720, 45)
    group_id = service.put_group("org", {"competitionId": "SpringOpen2026", "roundId": round_id, "group": "A"})

    assert service.store.find_one(ROUNDS, {"_id": round_id})["competitionId"] == cid
    assert service.store.find_one(ROUNDS, {"_id": lunch})["competitionId"] == cid
    assert service.store.find_one(GROUPS, {"_id": group_id})["competitionId"] == cid
    assert service.can_add_round("org", "SpringOpen2026", "333")

    service.delete_competition("org", "SpringOpen2026")
    assert service.store.count(ROUNDS) == 0
    assert service.store.count(GROUPS) == 0
