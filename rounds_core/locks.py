"""
Per-event serialization.

Adding, removing and renumbering rounds read the whole ordinal sequence of
an event and then write it back. Two such calls for the same
(competitionId, eventCode) must not interleave, or nthRound values can end
up duplicated. Calls for other events or other competitions never wait on
each other.

Usage:
    with locks.hold(competition_id, event_code):
        ...  # read rounds, validate, write

Locks are re-entrant: add_round holds the event lock and calls
refresh_round_codes, which takes the same lock again.

Registry entries are never dropped, not even after a competition is deleted,
so every caller of a key gets the same lock object.
"""
from __future__ import annotations

import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterable, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

EventKey = Tuple[str, Optional[str]]


class EventLocks:
    """Registry handing out one RLock per (competitionId, eventCode)."""

    def __init__(self) -> None:
        self._locks: Dict[EventKey, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, competition_id: str, event_code: str | None) -> threading.RLock:
        key = (competition_id, event_code)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, competition_id: str, event_code: str | None) -> Iterator[None]:
        lock = self.lock_for(competition_id, event_code)
        with lock:
            logger.debug(f"Holding event lock {competition_id}/{event_code}")
            yield

    @contextmanager
    def hold_many(self, competition_id: str, event_codes: Iterable[str | None]) -> Iterator[None]:
        """Hold several event locks of one competition.

        Acquired in sorted order (None first) so two callers locking
        overlapping sets cannot deadlock.
        """
        ordered = sorted(set(event_codes), key=lambda code: (code is not None, code or ""))
        with ExitStack() as stack:
            for code in ordered:
                stack.enter_context(self.hold(competition_id, code))
            yield
