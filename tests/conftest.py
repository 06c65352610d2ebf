import copy
from collections import Counter

import pytest

from passbolt_sync.core.errors import NotFoundError, RejectedError
from passbolt_sync.provider import Provider

_MUTATING = ("create_", "update_", "delete_", "move_", "share_")


class FakePassboltClient:
    """In-memory stand-in for PassboltClient.

    Stores plaintext secrets (no cipher) and counts every call in ``calls``.
    Assign an exception to ``fail[<method name>]`` to make that method raise.
    """

    supports_resource_update = True

    def __init__(self):
        self.folders = {}
        self.groups = {}
        self.users = {}
        self.resources = {}
        self.secrets = {}
        self.roles = {"admin", "user"}
        self.secret_readable = True
        self.calls = Counter()
        self.fail = {}
        self._seq = 0

    # ---------------- bookkeeping ----------------
    def _tick(self, name):
        self.calls[name] += 1
        exc = self.fail.get(name)
        if exc is not None:
            raise exc

    def _new_id(self, prefix):
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def _missing(self, what, entity_id):
        return NotFoundError(status=404, url=f"fake://{what}/{entity_id}", message=f"The {what} does not exist.")

    def mutations(self):
        return sum(n for name, n in self.calls.items() if name.startswith(_MUTATING))

    # ---------------- folders ----------------
    def _folder_out(self, folder, with_permissions):
        out = copy.deepcopy(folder)
        if not with_permissions:
            out.pop("permissions", None)
        return out

    def list_folders(self, *, with_permissions=False):
        self._tick("list_folders")
        return [self._folder_out(f, with_permissions) for f in self.folders.values()]

    def get_folder(self, folder_id, *, with_permissions=False):
        self._tick("get_folder")
        if folder_id not in self.folders:
            raise self._missing("folder", folder_id)
        return self._folder_out(self.folders[folder_id], with_permissions)

    def create_folder(self, name, parent_id=None):
        self._tick("create_folder")
        if parent_id and parent_id not in self.folders:
            raise RejectedError(status=400, url="fake://folders", message="The folder parent does not exist.")
        fid = self._new_id("folder")
        self.folders[fid] = {
            "id": fid,
            "name": name,
            "folder_parent_id": parent_id,
            "personal": False,
            "created": "2024-01-01T00:00:00+00:00",
            "modified": "2024-01-01T00:00:00+00:00",
            "created_by": "user-admin",
            "modified_by": "user-admin",
            "permissions": [],
        }
        return self._folder_out(self.folders[fid], False)

    def update_folder(self, folder_id, name):
        self._tick("update_folder")
        if folder_id not in self.folders:
            raise self._missing("folder", folder_id)
        self.folders[folder_id]["name"] = name
        return self._folder_out(self.folders[folder_id], False)

    def move_folder(self, folder_id, parent_id):
        self._tick("move_folder")
        if folder_id not in self.folders:
            raise self._missing("folder", folder_id)
        self.folders[folder_id]["folder_parent_id"] = parent_id

    def delete_folder(self, folder_id):
        self._tick("delete_folder")
        if folder_id not in self.folders:
            raise self._missing("folder", folder_id)
        del self.folders[folder_id]

    def share_folder(self, folder_id, group_ids, level):
        self._tick("share_folder")
        if folder_id not in self.folders:
            raise self._missing("folder", folder_id)
        perms = self.folders[folder_id]["permissions"]
        for gid in group_ids:
            current = [p for p in perms if p["aro"] == "Group" and p["aro_foreign_key"] == gid]
            if level == -1:
                for p in current:
                    perms.remove(p)
            elif current:
                current[0]["type"] = level
            else:
                perms.append({"id": self._new_id("perm"), "aro": "Group", "aro_foreign_key": gid, "type": level})

    # ---------------- groups ----------------
    def list_groups(self):
        self._tick("list_groups")
        return [{"id": g["id"], "name": g["name"]} for g in self.groups.values()]

    def get_group(self, group_id):
        self._tick("get_group")
        if group_id not in self.groups:
            raise self._missing("group", group_id)
        return copy.deepcopy(self.groups[group_id])

    def create_group(self, name, members):
        self._tick("create_group")
        if any(g["name"] == name for g in self.groups.values()):
            raise RejectedError(status=400, url="fake://groups", message="The name is already used by another group.")
        gid = self._new_id("group")
        self.groups[gid] = {
            "id": gid,
            "name": name,
            "groups_users": [
                {"id": self._new_id("gu"), "user_id": m.user_id, "is_admin": m.is_manager} for m in members
            ],
        }
        return copy.deepcopy(self.groups[gid])

    def update_group(self, group_id, name, ops):
        self._tick("update_group")
        if group_id not in self.groups:
            raise self._missing("group", group_id)
        group = self.groups[group_id]
        group["name"] = name
        for op in ops:
            current = [gu for gu in group["groups_users"] if gu["user_id"] == op.user_id]
            if op.delete:
                for gu in current:
                    group["groups_users"].remove(gu)
            elif current:
                current[0]["is_admin"] = op.is_manager
            else:
                group["groups_users"].append({"id": self._new_id("gu"), "user_id": op.user_id, "is_admin": op.is_manager})
        return copy.deepcopy(group)

    def delete_group(self, group_id):
        self._tick("delete_group")
        if group_id not in self.groups:
            raise self._missing("group", group_id)
        del self.groups[group_id]

    # ---------------- users ----------------
    def list_users(self, *, search=None):
        self._tick("list_users")
        return [
            copy.deepcopy(u) for u in self.users.values()
            if not search or search.lower() in u["username"].lower()
        ]

    def get_user(self, user_id):
        self._tick("get_user")
        if user_id not in self.users:
            raise self._missing("user", user_id)
        return copy.deepcopy(self.users[user_id])

    def _check_role(self, role):
        if role not in self.roles:
            raise RejectedError(status=400, url="fake://roles", message=f"unknown role {role!r}")

    def create_user(self, username, role, first_name, last_name):
        self._tick("create_user")
        self._check_role(role)
        uid = self._new_id("user")
        self.users[uid] = {
            "id": uid,
            "username": username,
            "role": {"name": role},
            "profile": {"first_name": first_name, "last_name": last_name},
        }
        return copy.deepcopy(self.users[uid])

    def update_user(self, user_id, role, first_name, last_name):
        self._tick("update_user")
        if user_id not in self.users:
            raise self._missing("user", user_id)
        self._check_role(role)
        user = self.users[user_id]
        user["role"] = {"name": role}
        user["profile"] = {"first_name": first_name, "last_name": last_name}
        return copy.deepcopy(user)

    def delete_user(self, user_id):
        self._tick("delete_user")
        if user_id not in self.users:
            raise self._missing("user", user_id)
        del self.users[user_id]

    # ---------------- resources ----------------
    def get_resource(self, resource_id):
        self._tick("get_resource")
        if resource_id not in self.resources:
            raise self._missing("resource", resource_id)
        return copy.deepcopy(self.resources[resource_id])

    def get_secret(self, resource_id):
        self._tick("get_secret")
        if resource_id not in self.resources:
            raise self._missing("resource", resource_id)
        return self.secrets.get(resource_id) if self.secret_readable else None

    def create_resource(self, *, name, username, uri, secret, description=None, folder_parent_id=None):
        self._tick("create_resource")
        rid = self._new_id("resource")
        self.resources[rid] = {
            "id": rid,
            "name": name,
            "username": username,
            "uri": uri,
            "description": description or "",
            "folder_parent_id": folder_parent_id,
            "shared_with": {},
        }
        self.secrets[rid] = secret
        return copy.deepcopy(self.resources[rid])

    def update_resource(self, resource_id, *, name, username, uri, secret=None, description=None):
        self._tick("update_resource")
        if resource_id not in self.resources:
            raise self._missing("resource", resource_id)
        self.resources[resource_id].update(
            {"name": name, "username": username, "uri": uri, "description": description or ""}
        )
        if secret is not None:
            self.secrets[resource_id] = secret
        return copy.deepcopy(self.resources[resource_id])

    def move_resource(self, resource_id, folder_parent_id):
        self._tick("move_resource")
        if resource_id not in self.resources:
            raise self._missing("resource", resource_id)
        self.resources[resource_id]["folder_parent_id"] = folder_parent_id

    def share_resource(self, resource_id, group_id, level):
        self._tick("share_resource")
        if resource_id not in self.resources:
            raise self._missing("resource", resource_id)
        self.resources[resource_id]["shared_with"][group_id] = level

    def delete_resource(self, resource_id):
        self._tick("delete_resource")
        if resource_id not in self.resources:
            raise self._missing("resource", resource_id)
        del self.resources[resource_id]
        self.secrets.pop(resource_id, None)


@pytest.fixture()
def client():
    return FakePassboltClient()


@pytest.fixture()
def provider(client):
    return Provider(client)


@pytest.fixture()
def seeded(client):
    """Two users and two groups already present remotely."""
    alice = client.create_user("alice@example.com", "user", "Alice", "Liddell")["id"]
    bob = client.create_user("bob@example.com", "admin", "Bob", "Builder")["id"]
    ops_group = client.create_group("ops", [])["id"]
    dev_group = client.create_group("dev", [])["id"]
    client.calls.clear()
    return {"alice": alice, "bob": bob, "ops": ops_group, "dev": dev_group}
