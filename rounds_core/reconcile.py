"""Membership reconciliation.

Given the members a set should have and the members it has, compute the
smallest change that makes them equal. Members present in both are left
alone, so any data attached to them survives.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, Tuple


@dataclass(frozen=True)
class MembershipDiff:
    to_add: Tuple[Hashable, ...]
    to_remove: Tuple[Hashable, ...]

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def _unique(items: Iterable[Hashable]) -> list:
    seen = set()
    out = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def diff_membership(desired: Iterable[Hashable], actual: Iterable[Hashable]) -> MembershipDiff:
    """Return ``desired - actual`` (to add) and ``actual - desired`` (to remove).

    Both tuples keep the order of their source iterable, duplicates dropped.
    """
    desired_list = _unique(desired)
    actual_list = _unique(actual)
    desired_set = set(desired_list)
    actual_set = set(actual_list)
    return MembershipDiff(
        to_add=tuple(m for m in desired_list if m not in actual_set),
        to_remove=tuple(m for m in actual_list if m not in desired_set),
    )
