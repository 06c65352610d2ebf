import pytest

from passbolt_sync.core.errors import ImportIdFormatError, InvalidPermission, ReferenceNotFound
from passbolt_sync.reconcilers.folder_permissions import FolderPermissionReconciler, make_id, parse_id


@pytest.fixture()
def folder_id(client):
    fid = client.create_folder("Shared")["id"]
    client.calls.clear()
    return fid


def _perms(client, fid):
    return [(p["aro_foreign_key"], p["type"]) for p in client.folders[fid]["permissions"]]


def test_grant_then_read(client, seeded, folder_id):
    rec = FolderPermissionReconciler(client)
    pid, state = rec.create({"folder": "Shared", "group_name": "ops", "permission": "read"})
    assert pid == f"{folder_id}:ops"
    assert state.folder == folder_id
    assert _perms(client, folder_id) == [(seeded["ops"], 1)]
    assert rec.read(pid) == state


def test_permission_revoke_scenario(client, seeded, folder_id):
    rec = FolderPermissionReconciler(client)
    pid, prior = rec.create({"folder": folder_id, "group_name": "ops", "permission": "owner"})
    assert rec.read(pid).permission == "owner"

    rec.update(pid, {"folder": folder_id, "group_name": "ops", "permission": "delete"}, prior)
    assert _perms(client, folder_id) == []
    assert rec.read(pid) is None


def test_level_change_updates_in_place(client, seeded, folder_id):
    rec = FolderPermissionReconciler(client)
    pid, prior = rec.create({"folder": "Shared", "group_name": "ops", "permission": "read"})
    out = rec.update(pid, {"folder": "Shared", "group_name": "ops", "permission": "update"}, prior)
    assert out.id == pid
    assert _perms(client, folder_id) == [(seeded["ops"], 7)]


def test_identity_change_grants_new_then_revokes_old(client, seeded, folder_id):
    rec = FolderPermissionReconciler(client)
    pid, prior = rec.create({"folder": "Shared", "group_name": "ops", "permission": "read"})
    out = rec.update(pid, {"folder": "Shared", "group_name": "dev", "permission": "read"}, prior)
    assert out.id == make_id(folder_id, "dev")
    assert _perms(client, folder_id) == [(seeded["dev"], 1)]


def test_unchanged_grant_is_a_noop(client, seeded, folder_id):
    rec = FolderPermissionReconciler(client)
    pid, prior = rec.create({"folder": "Shared", "group_name": "ops", "permission": "read"})
    client.calls.clear()
    assert rec.update(pid, {"folder": "Shared", "group_name": "ops", "permission": "read"}, prior) == prior
    assert client.mutations() == 0


def test_invalid_permission_fails_before_any_remote_call(client, seeded, folder_id):
    with pytest.raises(InvalidPermission):
        FolderPermissionReconciler(client).create({"folder": "Shared", "group_name": "ops", "permission": "write"})
    assert sum(client.calls.values()) == 0


def test_unknown_group_fails_without_mutation(client, folder_id):
    with pytest.raises(ReferenceNotFound):
        FolderPermissionReconciler(client).create({"folder": "Shared", "group_name": "ghost", "permission": "read"})
    assert client.mutations() == 0


def test_read_treats_vanished_folder_or_group_as_absent(client, seeded, folder_id):
    rec = FolderPermissionReconciler(client)
    pid, _ = rec.create({"folder": "Shared", "group_name": "ops", "permission": "read"})
    assert rec.read("folder-404:ops") is None
    assert rec.read(f"{folder_id}:ghost") is None
    assert rec.read(f"{folder_id}:dev") is None


def test_delete_is_idempotent(client, seeded, folder_id):
    rec = FolderPermissionReconciler(client)
    pid, _ = rec.create({"folder": "Shared", "group_name": "ops", "permission": "read"})
    rec.delete(pid)
    rec.delete(pid)
    rec.delete("folder-404:ops")
    rec.delete(f"{folder_id}:ghost")
    assert _perms(client, folder_id) == []


def test_parse_id_splits_on_first_colon():
    assert parse_id("f1:ops") == ("f1", "ops")
    assert parse_id("f1:team:a") == ("f1", "team:a")


@pytest.mark.parametrize("token", ["f1", ":ops", "f1:", ""])
def test_malformed_import_id(client, token):
    with pytest.raises(ImportIdFormatError) as ei:
        FolderPermissionReconciler(client).import_state(token)
    assert "<folder_id>:<group_name>" in str(ei.value)


def test_import_reconstructs_state(client, seeded, folder_id):
    client.share_folder(folder_id, [seeded["dev"]], 15)
    state = FolderPermissionReconciler(client).import_state(f"{folder_id}:dev")
    assert (state.folder, state.group_name, state.permission) == (folder_id, "dev", "owner")
