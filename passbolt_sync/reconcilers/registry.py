# passbolt_sync/reconcilers/registry.py
"""Reconciler registry for passbolt_sync."""

from __future__ import annotations
from dataclasses import dataclass
from importlib import import_module
from typing import Dict, Iterable


@dataclass(frozen=True)
class ReconcilerSpec:
    key: str                # entity kind, as passed to the Provider
    cli: str                # subcommand suffix (create-<cli>, read-<cli>, ...)
    help: str               # argparse help
    module: str             # module path
    class_name: str         # class symbol in module
    import_hint: str        # shape of the identifier accepted by import-<cli>

    def load_class(self):
        mod = import_module(self.module)
        return getattr(mod, self.class_name)


_RECONCILERS: Dict[str, ReconcilerSpec] = {
    # Folders
    "folder": ReconcilerSpec(
        key="folder",
        cli="folder",
        help="folder",
        module="passbolt_sync.reconcilers.folders",
        class_name="FolderReconciler",
        import_hint="folder id",
    ),
    # Passwords (credential records)
    "password": ReconcilerSpec(
        key="password",
        cli="password",
        help="password (credential record)",
        module="passbolt_sync.reconcilers.passwords",
        class_name="PasswordReconciler",
        import_hint="resource id",
    ),
    # Groups
    "group": ReconcilerSpec(
        key="group",
        cli="group",
        help="group and its memberships",
        module="passbolt_sync.reconcilers.groups",
        class_name="GroupReconciler",
        import_hint="group id",
    ),
    # Users
    "user": ReconcilerSpec(
        key="user",
        cli="user",
        help="user",
        module="passbolt_sync.reconcilers.users",
        class_name="UserReconciler",
        import_hint="user id",
    ),
    # Folder permissions
    "folder_permission": ReconcilerSpec(
        key="folder_permission",
        cli="folder-permission",
        help="group permission on a folder",
        module="passbolt_sync.reconcilers.folder_permissions",
        class_name="FolderPermissionReconciler",
        import_hint="<folder_id>:<group_name>",
    ),
}


def get_spec_by_key(key: str) -> ReconcilerSpec:
    return _RECONCILERS[key]


def iter_specs() -> Iterable[ReconcilerSpec]:
    return _RECONCILERS.values()
