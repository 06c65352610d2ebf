"""
Folder permissions reconciler: one group's access level on one folder.

Identity is the pair (folder id, group name), exposed as the composite id
``"<folder_id>:<group_name>"``. The permission symbol is mapped before any
reference is resolved, and both references are resolved before the share call,
so an invalid grant never reaches the server.

Behavior:
- ``delete`` as a permission symbol revokes the group's access.
- Update grants the new pair first, then revokes the old pair when the
  composite identity changed.
- Delete treats a vanished folder or group as already revoked.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from ..core.errors import (
    ClientError,
    ImportIdFormatError,
    NotFoundError,
    ReferenceNotFound,
    from_client_error,
)
from ..core.models import FolderPermission
from ..utils.permissions import REVOKE, to_level, to_symbol
from ..utils.validators import ValidationError
from .base import BaseReconciler

logger = logging.getLogger(__name__)

ID_FORMAT = "<folder_id>:<group_name>"


def parse_id(token: str) -> Tuple[str, str]:
    """Split a composite id on its first ``:``.

    Raises:
        ImportIdFormatError: Unless both halves are non-empty.
    """
    folder_id, sep, group_name = str(token).partition(":")
    if not sep or not folder_id or not group_name:
        raise ImportIdFormatError(
            "folder_permission", str(token), f"unexpected format of ID ({token!r}). Expected format: {ID_FORMAT}"
        )
    return folder_id, group_name


def make_id(folder_id: str, group_name: str) -> str:
    return f"{folder_id}:{group_name}"


class FolderPermissionReconciler(BaseReconciler):
    kind = "folder_permission"
    model = FolderPermission
    compare_keys = ("id", "permission")

    def _grant(self, desired: FolderPermission) -> FolderPermission:
        level = to_level(desired.permission, kind=self.kind)
        folder_id = self.resolver.resolve_folder(desired.folder)
        group_id = self.resolver.resolve_group(desired.group_name)
        if folder_id is None or group_id is None:
            raise ValidationError("folder_permission: both a folder and a group_name are required")
        pid = make_id(folder_id, desired.group_name)

        with self.remote(pid):
            self.client.share_folder(folder_id, [group_id], level)
        logger.info("SHARE folder %s with group %r: %s", folder_id, desired.group_name, desired.permission)
        return FolderPermission(folder=folder_id, group_name=desired.group_name, permission=desired.permission, id=pid)

    def create(self, desired: Any) -> Tuple[str, FolderPermission]:
        state = self._grant(self.coerce(desired))
        return state.id, state

    def read(self, entity_id: str, prior: Any = None) -> Optional[FolderPermission]:
        folder_id, group_name = parse_id(entity_id)
        try:
            group_id = self.resolver.resolve_group(group_name)
        except ReferenceNotFound:
            logger.info("folder_permission %s: group %r is gone", entity_id, group_name)
            return None

        folder = self.fetch(entity_id, self.client.get_folder, folder_id, with_permissions=True)
        if folder is None:
            return None
        for perm in folder.get("permissions") or []:
            if perm.get("aro") == "Group" and perm.get("aro_foreign_key") == group_id:
                level = int(perm.get("type", 0))
                break
        else:
            logger.info("folder_permission %s: no permission for group %r on the folder", entity_id, group_name)
            return None
        return FolderPermission(folder=folder_id, group_name=group_name, permission=to_symbol(level), id=entity_id)

    def update(self, entity_id: str, desired: Any, prior: Any = None) -> FolderPermission:
        desired = self.coerce(desired)
        to_level(desired.permission, kind=self.kind)
        prior = self.current(entity_id, prior)
        folder_id = self.resolver.resolve_folder(desired.folder)

        decision = self.plan({"id": make_id(folder_id, desired.group_name), "permission": desired.permission}, prior)
        if decision.op == "NOOP":
            return prior

        state = self._grant(desired)
        if state.id != entity_id:
            logger.info("folder_permission identity changed %s -> %s, revoking the old grant", entity_id, state.id)
            self.delete(entity_id)
        return state

    def delete(self, entity_id: str) -> None:
        folder_id, group_name = parse_id(entity_id)
        try:
            group_id = self.resolver.resolve_group(group_name)
        except ReferenceNotFound:
            logger.info("DELETE folder_permission %s: group %r already gone", entity_id, group_name)
            return
        try:
            self.client.share_folder(folder_id, [group_id], REVOKE)
        except NotFoundError:
            logger.info("DELETE folder_permission %s: folder already gone", entity_id)
            return
        except ClientError as exc:
            raise from_client_error(self.kind, entity_id, exc) from exc
        logger.info("DELETE folder_permission %s: done", entity_id)

    def import_state(self, entity_id: str) -> Optional[FolderPermission]:
        parse_id(entity_id)
        return self.read(entity_id)
