"""
Reporting helpers (table or JSON) for reconciliation results.

`print_rows` auto-selects relevant columns and produces a compact table that
fits CLI usage. JSON output keeps the entity state nested under ``"state"`` so
it can be fed back as ``--prior``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

log = logging.getLogger(__name__)

SECRET_FIELDS = {"password"}
MASK = "********"


def _flatten_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten a result row for table output:
    - state fields are lifted to the top level (row keys win on clashes),
    - secret fields are masked,
    - group members are rendered as ``user_id*`` (``*`` marks a manager).
    """
    r = {k: v for k, v in row.items() if k != "state"}
    for k, v in (row.get("state") or {}).items():
        r.setdefault(k, v)

    for k in SECRET_FIELDS:
        if r.get(k):
            r[k] = MASK

    members = r.get("members")
    if isinstance(members, list):
        r["members"] = ", ".join(
            f"{m.get('user_id')}{'*' if m.get('is_manager') else ''}" for m in members if isinstance(m, dict)
        )

    return r


def print_rows(rows: List[Dict[str, Any]], fmt: str = "table") -> None:
    """Render result rows as a table or JSON.

    Args:
        rows: List of dict rows with common fields (kind, action, id, result)
            and an optional nested ``state`` mapping.
        fmt: Either ``"table"`` (default) or ``"json"``.
    """
    if fmt == "json":
        print(json.dumps(rows, indent=2, default=str))
        return

    norm_rows = [_flatten_row(r) for r in rows]

    def _present(v) -> bool:
        return not (v is None or v == "" or v == [])

    # Candidate columns in preferred order
    candidates = [
        "kind",
        "action",
        "id",
        "name",
        "username",
        "first_name",
        "last_name",
        "role",
        "uri",
        "password",
        "description",
        "folder",
        "folder_parent",
        "folder_parent_id",
        "group_name",
        "permission",
        "share_group",
        "members",
        "personal",
        "created",
        "modified",
        "result",
    ]
    mandatory = {"kind", "action", "result"}

    cols: List[str] = []
    for c in candidates:
        if (c in mandatory) or any(_present(r.get(c)) for r in norm_rows):
            cols.append(c)

    def _fmt(v, col):
        s = "" if v is None else str(v)
        if col == "id" and len(s) > 16 and ":" not in s:
            return f"{s[:8]}…{s[-4:]}"
        if s == "":
            return "—"
        if isinstance(v, bool):
            return "✓" if v else "✗"
        return s

    widths = {c: len(c) for c in cols}
    for r in norm_rows:
        for c in cols:
            w = len(_fmt(r.get(c), c))
            widths[c] = max(widths[c], w)

    header = "| " + " | ".join(c.ljust(widths[c]) for c in cols) + " |"
    sep = "| " + " | ".join("-" * widths[c] for c in cols) + " |"
    print(header)
    print(sep)
    for r in norm_rows:
        print("| " + " | ".join(_fmt(r.get(c), c).ljust(widths[c]) for c in cols) + " |")
    log.debug("reporting: %d row(s) rendered", len(norm_rows))
