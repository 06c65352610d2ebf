"""
Users reconciler.

``username`` is the stable lookup key and cannot change once the user exists;
an update that changes it raises :class:`~passbolt_sync.core.errors.ImmutableField`
before any remote call. Role and names are overwritten as a whole.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..core.errors import ImmutableField
from ..core.models import User
from .base import BaseReconciler

logger = logging.getLogger(__name__)


class UserReconciler(BaseReconciler):
    kind = "user"
    model = User
    compare_keys = ("first_name", "last_name", "role")

    @staticmethod
    def state_from(raw: Dict[str, Any], fallback: Optional[User] = None) -> User:
        profile = raw.get("profile") or {}
        role = raw.get("role") if isinstance(raw.get("role"), dict) else {}
        return User(
            id=str(raw["id"]),
            username=raw.get("username") or (fallback.username if fallback else ""),
            first_name=profile.get("first_name") or (fallback.first_name if fallback else ""),
            last_name=profile.get("last_name") or (fallback.last_name if fallback else ""),
            role=role.get("name") or (fallback.role if fallback else "user"),
        )

    def create(self, desired: Any) -> Tuple[str, User]:
        desired = self.coerce(desired)
        with self.remote(desired.username):
            raw = self.client.create_user(desired.username, desired.role, desired.first_name, desired.last_name)
        state = self.state_from(raw, fallback=desired)
        logger.info("CREATE user %r -> %s (role=%s)", desired.username, state.id, state.role)
        return state.id, state

    def read(self, entity_id: str, prior: Any = None) -> Optional[User]:
        raw = self.fetch(entity_id, self.client.get_user, entity_id)
        return None if raw is None else self.state_from(raw)

    def update(self, entity_id: str, desired: Any, prior: Any = None) -> User:
        desired = self.coerce(desired)
        prior = self.current(entity_id, prior)
        if desired.username != prior.username:
            raise ImmutableField(
                self.kind,
                entity_id,
                f"username cannot change ({prior.username!r} -> {desired.username!r}); delete and recreate the user",
            )

        decision = self.plan(self.canon(desired), prior)
        if decision.op == "NOOP":
            return prior

        with self.remote(entity_id):
            raw = self.client.update_user(entity_id, desired.role, desired.first_name, desired.last_name)
        logger.info("UPDATE user %s: %s", entity_id, decision.reason)
        target = User(desired.username, desired.first_name, desired.last_name, desired.role, entity_id)
        if not raw or "id" not in raw:
            return target
        return self.state_from(raw, fallback=target)

    def delete(self, entity_id: str) -> None:
        self.delete_idempotent(entity_id, self.client.delete_user)
