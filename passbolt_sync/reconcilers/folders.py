"""
Folders reconciler.

Behavior:
- ``folder_parent`` accepts a parent folder name or id; an absent parent means
  top-level, an unresolvable one is an error (never root placement).
- Update renames with a full overwrite of the name, and moves the folder only
  when the resolved parent differs from the prior parent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..core.models import Folder
from .base import BaseReconciler

logger = logging.getLogger(__name__)


class FolderReconciler(BaseReconciler):
    kind = "folder"
    model = Folder
    compare_keys = ("name", "folder_parent")

    @staticmethod
    def state_from(raw: Dict[str, Any]) -> Folder:
        return Folder(
            id=str(raw["id"]),
            name=raw.get("name") or "",
            folder_parent=raw.get("folder_parent_id") or None,
            personal=bool(raw.get("personal", False)),
        )

    def create(self, desired: Any) -> Tuple[str, Folder]:
        desired = self.coerce(desired)
        parent_id = self.resolver.resolve_folder(desired.folder_parent)

        with self.remote(desired.name):
            raw = self.client.create_folder(desired.name, parent_id)
        state = self.state_from({"name": desired.name, "folder_parent_id": parent_id, **raw})
        logger.info("CREATE folder %r -> %s (parent=%s)", desired.name, state.id, parent_id or "-")
        return state.id, state

    def read(self, entity_id: str, prior: Any = None) -> Optional[Folder]:
        raw = self.fetch(entity_id, self.client.get_folder, entity_id)
        return None if raw is None else self.state_from(raw)

    def update(self, entity_id: str, desired: Any, prior: Any = None) -> Folder:
        desired = self.coerce(desired)
        prior = self.current(entity_id, prior)
        parent_id = self.resolver.resolve_folder(desired.folder_parent)

        decision = self.plan({"name": desired.name, "folder_parent": parent_id}, prior)
        if decision.op == "NOOP":
            return prior

        with self.remote(entity_id):
            self.client.update_folder(entity_id, desired.name)
            if "folder_parent" in decision.changed:
                logger.info("MOVE folder %s: %s -> %s", entity_id, prior.folder_parent or "-", parent_id or "-")
                self.client.move_folder(entity_id, parent_id)
        logger.info("UPDATE folder %s: %s", entity_id, decision.reason)
        return Folder(name=desired.name, folder_parent=parent_id, id=entity_id, personal=prior.personal)

    def delete(self, entity_id: str) -> None:
        self.delete_idempotent(entity_id, self.client.delete_folder)
