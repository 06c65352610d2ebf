"""
Reference resolution: human-readable names -> Passbolt UUIDs.

Every reference a desired state makes by name (parent folder, share group,
grantee group, user) goes through :class:`ReferenceResolver`, so the policy for
absence and ambiguity lives in one place:

- An *absent* reference (``None``, blank string or :data:`UNKNOWN`) resolves to
  ``None`` without touching the server. Absence means "no reference", e.g. a
  top-level folder.
- A *present* reference that matches nothing raises
  :class:`~passbolt_sync.core.errors.ReferenceNotFound` carrying the token
  verbatim. It is never treated as "no reference".

Design notes:
- No caching. Each call lists the candidates afresh, so one reconciliation that
  resolves a folder and a group makes two list calls. Reconciliation is rare and
  not latency-critical; resolutions are always current.
- Names are not unique in Passbolt. The first candidate in listing order wins.
  Two folders called "Shared" anywhere in the tree are indistinguishable here.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..core.errors import ClientError, ReferenceNotFound, from_client_error

logger = logging.getLogger(__name__)


class _Unknown:
    """Sentinel for a reference whose value is not known yet."""

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False


UNKNOWN = _Unknown()


def is_absent(token: Any) -> bool:
    """True when ``token`` expresses "no reference" rather than a reference to resolve."""
    if token is None or token is UNKNOWN:
        return True
    return isinstance(token, str) and not token.strip()


def _first_match(items: Iterable[Dict[str, Any]], token: str, keys: Sequence[str]) -> Optional[Dict[str, Any]]:
    for item in items:
        for key in keys:
            if item.get(key) == token:
                return item
    return None


class ReferenceResolver:
    """Resolves folder/group/user references against the remote client.

    Args:
        client: Object implementing ``list_folders()``, ``list_groups()`` and
            ``list_users(search=...)``.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def _resolve(
        self,
        kind: str,
        token: Any,
        lister: Callable[[], List[Dict[str, Any]]],
        keys: Sequence[str],
    ) -> Optional[str]:
        if is_absent(token):
            logger.debug("resolve %s: absent reference, nothing to resolve", kind)
            return None
        token = str(token).strip()
        try:
            candidates = lister() or []
        except ClientError as exc:
            raise from_client_error(kind, token, exc, not_found=ReferenceNotFound) from exc

        hit = _first_match(candidates, token, keys)
        if hit is None:
            logger.warning("resolve %s: no candidate matches %r among %d", kind, token, len(candidates))
            raise ReferenceNotFound(kind, token, f"{kind} with {' or '.join(keys)} {token!r} not found")
        logger.debug("resolve %s: %r -> %s", kind, token, hit.get("id"))
        return str(hit["id"])

    def resolve_folder(self, token: Any) -> Optional[str]:
        """Resolve a folder by exact id or exact name."""
        return self._resolve("folder", token, self.client.list_folders, ("id", "name"))

    def resolve_group(self, name: Any) -> Optional[str]:
        """Resolve a group by exact name."""
        return self._resolve("group", name, self.client.list_groups, ("name",))

    def resolve_user(self, username: Any) -> Optional[str]:
        """Resolve a user by exact username."""
        search = None if is_absent(username) else str(username).strip()
        return self._resolve("user", username, lambda: self.client.list_users(search=search), ("username",))
