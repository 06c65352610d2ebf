"""
Groups reconciler.

Members are identified by user id. Update sends one group update carrying the
rename, the structural membership delta (adds/removes from
:func:`~passbolt_sync.utils.diff_engine.diff_members`) and in-place manager
flag changes for members kept on both sides.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.models import Group, GroupMember
from ..core.passbolt_client import MembershipOp
from ..utils.diff_engine import diff_members, manager_changes
from .base import BaseReconciler

logger = logging.getLogger(__name__)


class GroupReconciler(BaseReconciler):
    kind = "group"
    model = Group
    compare_keys = ("name", "members")

    @staticmethod
    def state_from(raw: Dict[str, Any], fallback: Optional[Group] = None) -> Group:
        if "groups_users" in raw:
            members = tuple(
                GroupMember(str(gu["user_id"]), bool(gu.get("is_admin", False)))
                for gu in raw.get("groups_users") or []
            )
        else:
            members = fallback.members if fallback else ()
        name = raw.get("name") or (fallback.name if fallback else "")
        return Group(name=name, members=members, id=str(raw["id"]))

    def create(self, desired: Any) -> Tuple[str, Group]:
        desired = self.coerce(desired)
        ops = [MembershipOp(m.user_id, m.is_manager) for m in desired.members]
        with self.remote(desired.name):
            raw = self.client.create_group(desired.name, ops)
        state = self.state_from(raw, fallback=desired)
        logger.info("CREATE group %r -> %s (%d members)", desired.name, state.id, len(state.members))
        return state.id, state

    def read(self, entity_id: str, prior: Any = None) -> Optional[Group]:
        raw = self.fetch(entity_id, self.client.get_group, entity_id)
        return None if raw is None else self.state_from(raw)

    def membership_ops(self, desired: Group, prior: Group) -> List[MembershipOp]:
        """Membership changes turning ``prior`` into ``desired``, adds first."""
        delta = diff_members(desired.member_ids(), prior.member_ids())
        want = desired.managers()
        ops = [MembershipOp(uid, want[uid]) for uid in sorted(delta.to_add)]
        ops += [MembershipOp(uid, flag) for uid, flag in manager_changes(want, prior.managers()).items()]
        ops += [MembershipOp(uid, delete=True) for uid in sorted(delta.to_remove)]
        return ops

    def update(self, entity_id: str, desired: Any, prior: Any = None) -> Group:
        desired = self.coerce(desired)
        prior = self.current(entity_id, prior)

        decision = self.plan({"name": desired.name, "members": desired.members}, prior)
        if decision.op == "NOOP":
            return prior

        ops = self.membership_ops(desired, prior)
        with self.remote(entity_id):
            self.client.update_group(entity_id, desired.name, ops)
        logger.info(
            "UPDATE group %s: %s (+%d/-%d members)",
            entity_id,
            decision.reason,
            sum(1 for op in ops if not op.delete and op.user_id not in prior.member_ids()),
            sum(1 for op in ops if op.delete),
        )
        return Group(name=desired.name, members=desired.members, id=entity_id)

    def delete(self, entity_id: str) -> None:
        self.delete_idempotent(entity_id, self.client.delete_group)
