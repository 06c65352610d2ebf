import json

import pytest

from passbolt_sync import main as cli
from passbolt_sync.core.errors import UnavailableError


@pytest.fixture()
def run(tmp_path, monkeypatch, client, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PASSBOLT_URL", "https://passbolt.example.local")
    monkeypatch.setenv("PASSBOLT_ACCESS_TOKEN", "TOKEN")
    monkeypatch.setenv("PASSBOLT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(cli, "build_client", lambda cfg, args: client)

    def _run(*argv):
        code = cli.main(["--format", "json", *argv])
        out = capsys.readouterr().out
        _run.out = out
        return code, (json.loads(out) if out.strip() else None)

    return _run


def _write(tmp_path, name, text):
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return str(p)


def test_subcommands_generated_from_registry():
    parser = cli.build_parser()
    args = parser.parse_args(["update-group", "g1", "--desired", "d.yml", "--prior", "p.yml"])
    assert (args.kind_key, args.action, args.id) == ("group", "update", "g1")

    args = parser.parse_args(["import-folder-permission", "f1:ops"])
    assert (args.kind_key, args.action) == ("folder_permission", "import")

    for cmd in ("read-password", "delete-user", "get-folder", "get-password", "get-user"):
        assert parser.parse_args([cmd, "x"]).func is not None
    assert parser.parse_args(["create-folder", "--desired", "d.yml"]).action == "create"
    assert parser.parse_args(["list-folders"]).func is cli.cmd_lookup


def test_create_read_update_delete_folder(run, tmp_path, client):
    code, rows = run("create-folder", "--desired", _write(tmp_path, "a.yml", "name: A\n"))
    assert code == cli.EXIT_OK
    fid = rows[0]["id"]
    assert rows[0]["result"] == "created"

    code, rows = run("read-folder", fid)
    assert code == cli.EXIT_OK and rows[0]["state"]["name"] == "A"
    prior = _write(tmp_path, "prior.json", run.out)

    code, rows = run("update-folder", fid, "--desired", _write(tmp_path, "a2.yml", "name: A2\n"), "--prior", prior)
    assert code == cli.EXIT_OK and rows[0]["result"] == "updated"
    assert client.folders[fid]["name"] == "A2"

    code, _ = run("delete-folder", fid)
    assert code == cli.EXIT_OK
    code, rows = run("read-folder", fid)
    assert code == cli.EXIT_NOT_FOUND and rows[0]["result"] == "not found"


def test_unresolved_reference_exit_code(run, tmp_path, client):
    code, _ = run("create-folder", "--desired", _write(tmp_path, "b.yml", "name: B\nfolder_parent: Nope\n"))
    assert code == cli.EXIT_VALIDATION_ERROR
    assert client.mutations() == 0


def test_bad_import_id_exit_code(run):
    code, _ = run("import-folder-permission", "no-colon")
    assert code == cli.EXIT_VALIDATION_ERROR


def test_remote_failure_exit_code(run, client):
    client.fail["list_folders"] = UnavailableError(status=503, url="fake://folders", message="down")
    code, _ = run("list-folders")
    assert code == cli.EXIT_REMOTE_ERROR


def test_malformed_desired_file_exit_code(run, tmp_path, client):
    code, _ = run("create-folder", "--desired", _write(tmp_path, "list.yml", "- A\n- B\n"))
    assert code == cli.EXIT_VALIDATION_ERROR

    code, _ = run("create-folder", "--desired", str(tmp_path / "missing.yml"))
    assert code == cli.EXIT_VALIDATION_ERROR
    assert client.mutations() == 0


def test_update_of_vanished_entity(run, tmp_path):
    code, _ = run("update-folder", "folder-404", "--desired", _write(tmp_path, "c.yml", "name: C\n"))
    assert code == cli.EXIT_NOT_FOUND


def test_missing_config_exit_code(run, monkeypatch):
    monkeypatch.delenv("PASSBOLT_ACCESS_TOKEN")
    code, _ = run("list-folders")
    assert code == cli.EXIT_CONFIG_ERROR


def test_lookups(run, client, seeded):
    client.create_folder("Infra")
    code, rows = run("get-folder", "Infra")
    assert code == cli.EXIT_OK and rows[0]["state"]["name"] == "Infra"

    code, rows = run("get-user", "alice@example.com")
    assert rows[0]["id"] == seeded["alice"]

    code, rows = run("list-folders")
    assert [r["state"]["name"] for r in rows] == ["Infra"]
