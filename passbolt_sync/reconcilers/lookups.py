"""
Read-only lookups: list folders, find one folder, fetch a password with its
secret, find a user by username.

Unlike reconciler reads, a lookup that matches nothing is an error
(:class:`~passbolt_sync.core.errors.ReferenceNotFound`), not a ``None``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..core.errors import ClientError, ReferenceNotFound, from_client_error
from ..core.models import Folder, Password, User
from ..utils.resolvers import ReferenceResolver
from .folders import FolderReconciler
from .passwords import PasswordReconciler
from .users import UserReconciler

logger = logging.getLogger(__name__)

_FOLDER_FIELDS = (
    "id", "name", "folder_parent_id", "personal",
    "created", "modified", "created_by", "modified_by",
)


class Lookups:
    """Read-only queries against the remote client."""

    def __init__(self, client: Any, *, resolver: Optional[ReferenceResolver] = None) -> None:
        self.client = client
        self.resolver = resolver or ReferenceResolver(client)

    def list_folders(self) -> List[Dict[str, Any]]:
        """Every folder visible to the session, with audit fields."""
        try:
            items = self.client.list_folders()
        except ClientError as exc:
            raise from_client_error("folder", "*", exc) from exc
        logger.debug("list_folders: %d folder(s)", len(items))
        return [{k: item.get(k) for k in _FOLDER_FIELDS} for item in items]

    def get_folder(self, token: str) -> Folder:
        """One folder by exact id or exact name."""
        folder_id = self.resolver.resolve_folder(token)
        if folder_id is None:
            raise ReferenceNotFound("folder", str(token), "a folder name or id is required")
        state = FolderReconciler(self.client, resolver=self.resolver).read(folder_id)
        if state is None:
            raise ReferenceNotFound("folder", str(token), "folder vanished while being read")
        return state

    def get_password(self, resource_id: str) -> Password:
        """A password by id, including the decrypted secret when a cipher is configured."""
        state = PasswordReconciler(self.client, resolver=self.resolver).read(resource_id)
        if state is None:
            raise ReferenceNotFound("password", resource_id, "unable to read resource")
        return state

    def get_user(self, username: str) -> User:
        """A user by exact username."""
        user_id = self.resolver.resolve_user(username)
        if user_id is None:
            raise ReferenceNotFound("user", str(username), "a username is required")
        state = UserReconciler(self.client, resolver=self.resolver).read(user_id)
        if state is None:
            raise ReferenceNotFound("user", str(username), "user vanished while being read")
        return state
