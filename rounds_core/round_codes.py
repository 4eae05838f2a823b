"""Round code assignment.

A round code names a round by its role in the event ("first round",
"semi final", "final") and whether it has a soft cutoff ("combined"). Codes
come from the ruleset's ``supported_rounds`` table:

- a round that is not the last of its event uses the slot at its own position
- the last round always uses the final slot, however many rounds precede it
- inside the slot, ``combined`` is picked when there is a soft cutoff
"""
from __future__ import annotations

from .errors import InvalidPosition
from .ruleset import Ruleset, get_ruleset


def assign_code(
    position: int,
    is_final: bool,
    has_soft_cutoff: bool,
    ruleset: Ruleset | None = None,
) -> str:
    """Return the canonical round code for a round.

    Args:
        position: 0-based ordinal of the round within its event
        is_final: True for the last round of the event
        has_soft_cutoff: True if the round has a soft cutoff
        ruleset: Ruleset to read the table from (process ruleset by default)

    Raises:
        InvalidPosition: position is negative or past the last table slot

    Examples (default table):
        - (0, False, False) -> "1"
        - (1, False, True) -> "e"
        - (0, True, False) -> "f"
        - (2, True, True) -> "c"
    """
    ruleset = ruleset or get_ruleset()
    max_rounds = ruleset.max_rounds_per_event
    if isinstance(position, bool) or not isinstance(position, int):
        raise InvalidPosition(position)
    if position < 0 or position >= max_rounds:
        raise InvalidPosition(position)

    slot = max_rounds - 1 if is_final else position
    codes = ruleset.supported_rounds[slot]
    return codes.combined if has_soft_cutoff else codes.uncombined


def final_round_code(ruleset: Ruleset | None = None) -> str:
    """Uncombined final code, used as a placeholder until codes are refreshed."""
    ruleset = ruleset or get_ruleset()
    return ruleset.supported_rounds[-1].uncombined
