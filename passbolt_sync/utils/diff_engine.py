"""
Diff engine for passbolt_sync.

Two pieces:
  * :func:`decide` compares a resolved desired representation with the prior
    observed one on a subset of keys and returns a :class:`Decision`
    (``CREATE``, ``UPDATE`` or ``NOOP``).
  * :func:`diff_members` computes the set-level membership delta for groups.
    It is a pure set difference, so ``diff_members(S, S)`` is always empty and
    the result does not depend on input order.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Literal, Mapping


Op = Literal["NOOP", "CREATE", "UPDATE"]


@dataclass(frozen=True)
class Decision:
    """Represents a diff outcome for a single entity.

    Attributes:
        op: One of ``"NOOP"``, ``"CREATE"`` or ``"UPDATE"``.
        reason: Human-friendly explanation of the decision.
        desired: Canonical desired representation (subset used for comparison).
        existing: Canonical existing representation (subset used for comparison).
    """
    op: Op
    reason: str
    desired: Dict[str, Any] | None = None
    existing: Dict[str, Any] | None = None

    @property
    def changed(self) -> List[str]:
        """Keys whose values differ (empty for NOOP/CREATE)."""
        if self.op != "UPDATE" or self.existing is None or self.desired is None:
            return []
        return [k for k in self.desired if self.desired.get(k) != self.existing.get(k)]


def decide(desired: Dict[str, Any], existing: Dict[str, Any] | None, *, compare_keys: List[str]) -> Decision:
    """Compute a :class:`Decision` from desired vs existing states.

    The comparison is limited to ``compare_keys`` so reconcilers can ignore
    server-managed fields.
    """
    if existing is None:
        return Decision(op="CREATE", reason="Not found", desired=desired)

    for k in compare_keys:
        if desired.get(k) != existing.get(k):
            return Decision(op="UPDATE", reason=f"Field differs: {k}", desired=desired, existing=existing)

    return Decision(op="NOOP", reason="Identical subset", desired=desired, existing=existing)


@dataclass(frozen=True)
class MembershipDiff:
    to_add: FrozenSet[str]
    to_remove: FrozenSet[str]

    @property
    def empty(self) -> bool:
        return not self.to_add and not self.to_remove


def diff_members(desired: Iterable[str], observed: Iterable[str]) -> MembershipDiff:
    """Return the members to add and to remove to turn ``observed`` into ``desired``."""
    want, have = frozenset(desired), frozenset(observed)
    return MembershipDiff(to_add=want - have, to_remove=have - want)


def manager_changes(desired: Mapping[str, bool], observed: Mapping[str, bool]) -> Dict[str, bool]:
    """Members kept on both sides whose manager flag differs, mapped to the desired flag.

    Flag flips are not structural changes for :func:`diff_members`; callers send
    them as in-place membership updates.
    """
    return {
        uid: flag
        for uid, flag in sorted(desired.items())
        if uid in observed and bool(observed[uid]) != bool(flag)
    }
