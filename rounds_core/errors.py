"""Error taxonomy for round management.

Every failure is raised as a subclass of ``RoundsCoreError``. The ``kind`` and
``status_code`` attributes let the API layer map an error to a response
without isinstance chains.
"""
from __future__ import annotations


class RoundsCoreError(Exception):
    """Base class for all rounds_core failures."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.kind
        super().__init__(self.message)


# ============ Access ============


class AccessDenied(RoundsCoreError):
    """Actor may not manage this competition."""

    kind = "access_denied"
    status_code = 403


class Unauthenticated(AccessDenied):
    """Must log in."""

    kind = "unauthenticated"
    status_code = 401


class Forbidden(AccessDenied):
    """Not an organizer for this competition."""

    kind = "forbidden"
    status_code = 403


# ============ Lookup ============


class NotFound(RoundsCoreError):
    """Requested document does not exist."""

    kind = "not_found"
    status_code = 404


class NoNextRound(NotFound):
    """No next round found."""

    kind = "no_next_round"

    def __init__(self, round_id):
        self.round_id = round_id
        super().__init__(f"No next round found for roundId {round_id}")


# ============ Arguments ============


class InvalidArgument(RoundsCoreError):
    """Invalid argument."""

    kind = "invalid_argument"
    status_code = 400


class InvalidCount(InvalidArgument):
    """Invalid competitor count."""

    kind = "invalid_count"


class EventUnrecognized(InvalidArgument):
    """Unrecognized event code."""

    kind = "event_unrecognized"

    def __init__(self, event_code):
        self.event_code = event_code
        super().__init__(f"Unrecognized event code {event_code!r}")


class InvalidFormat(InvalidArgument):
    """Format not allowed for this event."""

    kind = "invalid_format"


class InvalidRound(InvalidArgument):
    """Invalid roundId."""

    kind = "invalid_round"


# ============ Round structure ============


class TooManyRounds(RoundsCoreError):
    """Cannot add another round."""

    kind = "too_many_rounds"
    status_code = 400


class CannotRemove(RoundsCoreError):
    """Cannot remove round. Make sure it is the last round for this event, and has no times entered."""

    kind = "cannot_remove"
    status_code = 400


class InvalidPosition(RoundsCoreError):
    """Round position outside the supported round table."""

    kind = "invalid_position"
    status_code = 400

    def __init__(self, position):
        self.position = position
        super().__init__(f"Round position {position} is outside the supported round table")


__all__ = [
    "RoundsCoreError",
    "AccessDenied",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "NoNextRound",
    "InvalidArgument",
    "InvalidCount",
    "EventUnrecognized",
    "InvalidFormat",
    "InvalidRound",
    "TooManyRounds",
    "CannotRemove",
    "InvalidPosition",
]
