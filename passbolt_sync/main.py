# passbolt_sync/main.py
"""CLI: generic wiring for all reconcilers via a central registry.

Each entity kind declares itself in `passbolt_sync/reconcilers/registry.py`,
and `main.py` generates the lifecycle subcommands (create/read/update/delete/
import) automatically and routes them to a single handler. Read-only lookups
(list-folders, get-folder, get-password, get-user) are wired by hand.
"""
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Optional

from .core.config import Config, ConfigError, load_desired, load_prior
from .core.errors import (
    ImmutableField,
    ImportIdFormatError,
    InvalidPermission,
    NotFound,
    ReferenceNotFound,
    RemoteRejected,
    RemoteUnavailable,
)
from .core.logging_utils import get_logger, setup_logging
from .core.models import to_dict
from .core.passbolt_client import ClientOptions, PassboltClient
from .provider import Provider
from .reconcilers.lookups import Lookups
from .reconcilers.registry import get_spec_by_key, iter_specs
from .utils.reporting import print_rows
from .utils.validators import ValidationError


EXIT_OK = 0
EXIT_GENERIC_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_VALIDATION_ERROR = 3
EXIT_REMOTE_ERROR = 4
EXIT_NOT_FOUND = 5

ACTIONS = ("create", "read", "update", "delete", "import")

log = get_logger(__name__)


def build_client(cfg: Config, args) -> PassboltClient:
    """Build the remote client from the resolved configuration and CLI flags."""
    options = ClientOptions(
        verify=cfg.verify_tls and not args.no_verify,
        timeout_sec=cfg.timeout_sec,
        suppress_insecure_warning=cfg.suppress_tls_warnings,
    )
    return PassboltClient(cfg.base_url, cfg.access_token, options=options, cipher=cfg.build_cipher())


def _prepare_client(args, kind: str, action: str) -> PassboltClient:
    setup_logging(kind=kind, action=action)
    try:
        cfg = Config.from_env()
    except ConfigError as exc:
        log.error("Configuration error: %s", exc)
        raise
    return build_client(cfg, args)


def _row(kind: str, action: str, state: Any, result: str, entity_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "kind": kind,
        "action": action,
        "id": entity_id or (state.id if state is not None else None),
        "result": result,
        "state": to_dict(state) if state is not None else None,
    }


def _run(func, args) -> None:
    """Run a command body and map failures onto exit codes."""
    try:
        func(args)
    except ConfigError as exc:
        log.error("Configuration error: %s", exc)
        sys.exit(EXIT_CONFIG_ERROR)
    except (ValidationError, ReferenceNotFound, InvalidPermission, ImportIdFormatError, ImmutableField) as exc:
        log.error("Validation error (%s): %s", type(exc).__name__, exc)
        sys.exit(EXIT_VALIDATION_ERROR)
    except NotFound as exc:
        log.error("Not found: %s", exc)
        sys.exit(EXIT_NOT_FOUND)
    except (RemoteRejected, RemoteUnavailable) as exc:
        log.error("Remote error (%s): %s", type(exc).__name__, exc)
        sys.exit(EXIT_REMOTE_ERROR)
    except Exception as exc:  # pragma: no cover
        log.error("Unexpected error: %s", exc, exc_info=True)
        sys.exit(EXIT_GENERIC_ERROR)


# ----------------------- Generic lifecycle handler --------------------------

def _lifecycle(args) -> None:
    spec = get_spec_by_key(args.kind_key)
    action = args.action
    client = _prepare_client(args, spec.cli, action)
    provider = Provider(client)
    kind = spec.key

    if action == "create":
        new_id, state = provider.create(kind, load_desired(args.desired))
        rows = [_row(kind, action, state, "created", new_id)]
    elif action == "read":
        prior = load_prior(args.prior) if args.prior else None
        state = provider.read(kind, args.id, prior)
        rows = [_row(kind, action, state, "observed" if state is not None else "not found", args.id)]
    elif action == "update":
        prior = load_prior(args.prior) if args.prior else None
        state = provider.update(kind, args.id, load_desired(args.desired), prior)
        rows = [_row(kind, action, state, "updated" if state.id == args.id else "replaced")]
    elif action == "delete":
        provider.delete(kind, args.id)
        rows = [_row(kind, action, None, "deleted", args.id)]
    else:
        state = provider.import_state(kind, args.id)
        rows = [_row(kind, action, state, "imported" if state is not None else "not found", args.id)]

    print_rows(rows, args.format)
    if rows[0]["result"] == "not found":
        sys.exit(EXIT_NOT_FOUND)


def cmd_lifecycle(args) -> None:
    """Generic handler for every lifecycle subcommand generated from the registry."""
    _run(_lifecycle, args)


# ------------------------------- Lookups ------------------------------------

def _lookup(args) -> None:
    client = _prepare_client(args, "lookup", args.command)
    lookups = Lookups(client)

    if args.command == "list-folders":
        rows = [
            {"kind": "folder", "action": "list", "id": f["id"], "result": "found", "state": f}
            for f in lookups.list_folders()
        ]
    elif args.command == "get-folder":
        rows = [_row("folder", "get", lookups.get_folder(args.token), "found")]
    elif args.command == "get-password":
        rows = [_row("password", "get", lookups.get_password(args.id), "found")]
    else:
        rows = [_row("user", "get", lookups.get_user(args.username), "found")]
    print_rows(rows, args.format)


def cmd_lookup(args) -> None:
    """Handler for the read-only lookup subcommands."""
    _run(_lookup, args)


# ---------------------------- Argument parser -------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Passbolt declarative reconciliation")
    parser.add_argument("--no-verify", action="store_true", help="Disable SSL verification")
    parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Generate lifecycle subcommands from the registry
    for spec in iter_specs():
        for action in ACTIONS:
            sp = subparsers.add_parser(f"{action}-{spec.cli}", help=f"{action.capitalize()} a {spec.help}")
            sp.set_defaults(func=cmd_lifecycle, kind_key=spec.key, action=action)
            if action != "create":
                id_help = spec.import_hint if action == "import" else f"{spec.key} id"
                sp.add_argument("id", help=id_help)
            if action in ("create", "update"):
                sp.add_argument("--desired", required=True, help="YAML/JSON file with the desired state")
            if action in ("read", "update"):
                sp.add_argument("--prior", help="YAML/JSON file with the prior observed state")

    sp = subparsers.add_parser("list-folders", help="List every visible folder")
    sp.set_defaults(func=cmd_lookup)
    sp = subparsers.add_parser("get-folder", help="Find a folder by name or id")
    sp.add_argument("token", help="Folder name or id")
    sp.set_defaults(func=cmd_lookup)
    sp = subparsers.add_parser("get-password", help="Fetch a password by id, secret included")
    sp.add_argument("id", help="Resource id")
    sp.set_defaults(func=cmd_lookup)
    sp = subparsers.add_parser("get-user", help="Find a user by username")
    sp.add_argument("username", help="Exact username")
    sp.set_defaults(func=cmd_lookup)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
        return EXIT_OK
    except SystemExit as e:  # explicit exits above
        return int(e.code) if isinstance(e.code, int) else EXIT_GENERIC_ERROR
    except Exception as exc:  # pragma: no cover
        log.error("Fatal error: %s", exc, exc_info=True)
        return EXIT_GENERIC_ERROR


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
