import pytest

from rounds_core import (
    Forbidden,
    InMemoryStore,
    InvalidCount,
    NoNextRound,
    NotFound,
    RoundsService,
    StaticIdentityResolver,
    diff_membership,
)
from rounds_core.types import RESULTS


def _service_with_two_rounds():
    service = RoundsService(InMemoryStore(), StaticIdentityResolver())
    cid = service.create_competition("org", "Spring Open")
    first = service.add_round("org", cid, "333")
    final = service.add_round("org", cid, "333")
    return service, cid, first, final


def _add_result(service, cid, round_id, user_id, position=None, solves=None):
    doc = {"competitionId": cid, "roundId": round_id, "userId": user_id}
    if position is not None:
        doc["position"] = position
    if solves is not None:
        doc["solves"] = solves
    return service.store.insert(RESULTS, doc)


def _roster(service, round_id):
    return {r["userId"] for r in service.store.find(RESULTS, {"roundId": round_id})}


def _seed_example(service, cid, first, final):
    # Stored out of order on purpose; position decides the ranking.
    for user_id, position in [("X", 4), ("B", 2), ("A", 1), ("Y", 5), ("C", 3)]:
        _add_result(service, cid, first, user_id, position, solves=[900, 950])
    kept = _add_result(service, cid, final, "A", solves=[1234, None, None])
    _add_result(service, cid, final, "D")
    _add_result(service, cid, final, "Z")
    return kept


def test_advance_syncs_next_round_with_minimal_changes():
    service, cid, first, final = _service_with_two_rounds()
    kept = _seed_example(service, cid, first, final)

    diff = service.advance_competitors_from_round("org", 3, first)

    assert _roster(service, final) == {"A", "B", "C"}
    assert diff.to_add == ("B", "C")
    assert set(diff.to_remove) == {"D", "Z"}
    untouched = service.store.find_one(RESULTS, {"roundId": final, "userId": "A"})
    assert untouched["_id"] == kept
    assert untouched["solves"] == [1234, None, None]

    added = service.store.find_one(RESULTS, {"roundId": final, "userId": "B"})
    assert added["competitionId"] == cid
    assert "position" not in added


def test_advance_is_idempotent():
    service, cid, first, final = _service_with_two_rounds()
    _seed_example(service, cid, first, final)
    service.advance_competitors_from_round("org", 3, first)
    before = service.store.find(RESULTS, {"roundId": final}, sort=[("userId", 1)])

    diff = service.advance_competitors_from_round("org", 3, first)

    assert diff.is_empty
    assert service.store.find(RESULTS, {"roundId": final}, sort=[("userId", 1)]) == before


def test_advance_shrinking_count_removes_tail_qualifiers():
    service, cid, first, final = _service_with_two_rounds()
    _seed_example(service, cid, first, final)
    service.advance_competitors_from_round("org", 5, first)
    assert _roster(service, final) == {"A", "B", "C", "X", "Y"}

    diff = service.advance_competitors_from_round("org", 2, first)
    assert diff.to_add == ()
    assert _roster(service, final) == {"A", "B"}

    service.advance_competitors_from_round("org", 0, first)
    assert _roster(service, final) == set()


def test_advance_rejects_bad_counts():
    service, cid, first, final = _service_with_two_rounds()
    _seed_example(service, cid, first, final)
    with pytest.raises(InvalidCount):
        service.advance_competitors_from_round("org", -1, first)
    with pytest.raises(InvalidCount):
        service.advance_competitors_from_round("org", 6, first)
    assert _roster(service, final) == {"A", "D", "Z"}


def test_advance_from_last_round_has_no_next_round():
    service, cid, first, final = _service_with_two_rounds()
    _add_result(service, cid, final, "A", 1)
    with pytest.raises(NoNextRound) as exc:
        service.advance_competitors_from_round("org", 1, final)
    assert exc.value.round_id == final
    assert exc.value.status_code == 404


def test_advance_requires_organizer():
    service, cid, first, final = _service_with_two_rounds()
    _seed_example(service, cid, first, final)
    with pytest.raises(Forbidden):
        service.advance_competitors_from_round("someone", 3, first)
    assert _roster(service, final) == {"A", "D", "Z"}


def test_advance_unknown_round_is_not_found():
    service, _, _, _ = _service_with_two_rounds()
    with pytest.raises(NotFound):
        service.advance_competitors_from_round("org", 1, "missing")


def test_diff_membership_keeps_order_and_drops_duplicates():
    diff = diff_membership(["A", "B", "C", "B"], ["D", "A", "Z", "D"])
    assert diff.to_add == ("B", "C")
    assert diff.to_remove == ("D", "Z")
    assert not diff.is_empty
    assert diff_membership(["A"], ["A"]).is_empty


def test_unplaced_results_rank_after_placed_ones():
    service, cid, first, final = _service_with_two_rounds()
    _add_result(service, cid, first, "NOSHOW")
    for user_id, position in [("B", 2), ("A", 1), ("C", 3)]:
        _add_result(service, cid, first, user_id, position)

    assert [r["userId"] for r in service.advancement.ranked_results(first)] == ["A", "B", "C", "NOSHOW"]

    diff = service.advance_competitors_from_round("org", 2, first)
    assert diff.to_add == ("A", "B")
    assert _roster(service, final) == {"A", "B"}
