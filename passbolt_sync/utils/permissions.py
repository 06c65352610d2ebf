"""
Permission codec: symbolic permission levels <-> Passbolt integer access types.

Passbolt stores permissions as integers (1 read, 7 update, 15 owner). ``delete``
is a sentinel (-1) meaning "revoke every level this grantee holds".
"""
from __future__ import annotations

from typing import Dict

from ..core.errors import InvalidPermission

READ = 1
UPDATE = 7
OWNER = 15
REVOKE = -1

UNKNOWN_SYMBOL = "unknown"

_LEVELS: Dict[str, int] = {
    "read": READ,
    "update": UPDATE,
    "owner": OWNER,
    "delete": REVOKE,
}
_SYMBOLS: Dict[int, str] = {v: k for k, v in _LEVELS.items()}


def to_level(symbol: str, *, kind: str = "folder_permission") -> int:
    """Map a symbolic permission to its integer level.

    Raises:
        InvalidPermission: If ``symbol`` is not one of read, update, owner, delete.
    """
    try:
        return _LEVELS[symbol]
    except (KeyError, TypeError):
        accepted = ", ".join(_LEVELS)
        raise InvalidPermission(
            kind, str(symbol), f"invalid permission {symbol!r} (must be {accepted})"
        ) from None


def to_symbol(level: int) -> str:
    """Map an integer level back to its symbol; unrecognised levels give ``"unknown"``."""
    return _SYMBOLS.get(level, UNKNOWN_SYMBOL)
