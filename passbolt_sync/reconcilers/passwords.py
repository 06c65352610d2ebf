"""
Passwords (credential records) reconciler.

Behavior:
- ``folder_parent`` is resolved by name or id, ``share_group`` by group name.
  Both are resolved before the first write; a failure aborts with no mutation.
- The secret is write-mostly: when a read cannot materialise it (no cipher,
  no secret yet, not authorized) the prior observed value is kept.
- ``share_group`` is not reported by the server; reads carry it over from the
  prior state.
- Update has two strategies, picked by ``client.supports_resource_update``:
  in place (fields, then move, then re-share), or replace (delete then create,
  yielding a new id). A failed create after the delete raises
  :class:`~passbolt_sync.core.errors.PartialReplace`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..core.config import ConfigError
from ..core.errors import (
    ClientError,
    NotFoundError,
    PartialReplace,
    ReconcileError,
    RejectedError,
    UnavailableError,
    from_client_error,
)
from ..core.models import Password
from ..utils.permissions import UPDATE
from ..utils.validators import ValidationError
from .base import BaseReconciler

logger = logging.getLogger(__name__)

_FIELD_KEYS = ("name", "username", "uri", "description", "password")


class PasswordReconciler(BaseReconciler):
    kind = "password"
    model = Password
    compare_keys = ("name", "username", "uri", "description", "password", "folder_parent", "share_group")

    @staticmethod
    def state_from(raw: Dict[str, Any], *, secret: Optional[str], share_group: Optional[str]) -> Password:
        return Password(
            id=str(raw["id"]),
            name=raw.get("name") or "",
            username=raw.get("username") or "",
            uri=raw.get("uri") or "",
            password=secret,
            description=raw.get("description") or None,
            folder_parent=raw.get("folder_parent_id") or None,
            share_group=share_group or None,
        )

    def _read_secret(self, resource_id: str) -> Optional[str]:
        try:
            return self.client.get_secret(resource_id)
        except (NotFoundError, RejectedError) as exc:
            logger.debug("secret of %s not readable: %s", resource_id, exc)
            return None
        except UnavailableError as exc:
            if exc.status == 403:
                logger.debug("secret of %s not authorized: %s", resource_id, exc)
                return None
            raise from_client_error(self.kind, resource_id, exc) from exc
        except ClientError as exc:
            raise from_client_error(self.kind, resource_id, exc) from exc

    def _create(self, desired: Password, folder_id: Optional[str]) -> Tuple[str, Password]:
        with self.remote(desired.name):
            raw = self.client.create_resource(
                name=desired.name,
                username=desired.username,
                uri=desired.uri,
                secret=desired.password,
                description=desired.description,
                folder_parent_id=folder_id,
            )
        raw = {
            "name": desired.name,
            "username": desired.username,
            "uri": desired.uri,
            "description": desired.description,
            "folder_parent_id": folder_id,
            **raw,
        }
        state = self.state_from(raw, secret=desired.password, share_group=desired.share_group)
        logger.info("CREATE password %r -> %s (folder=%s)", desired.name, state.id, folder_id or "-")
        return state.id, state

    def _share_new(self, resource_id: str, group_id: str, group_name: str) -> None:
        try:
            self.client.share_resource(resource_id, group_id, UPDATE)
        except ClientError as exc:
            err = from_client_error(self.kind, resource_id, exc)
            raise type(err)(
                self.kind, resource_id, f"created but sharing with group {group_name!r} failed: {err.cause}"
            ) from exc
        logger.info("SHARE password %s with group %r", resource_id, group_name)

    def create(self, desired: Any) -> Tuple[str, Password]:
        desired = self.coerce(desired)
        if not desired.password:
            raise ValidationError(f"password '{desired.name}': 'password' is required to create a credential")
        folder_id = self.resolver.resolve_folder(desired.folder_parent)
        group_id = self.resolver.resolve_group(desired.share_group)
        new_id, state = self._create(desired, folder_id)
        if group_id:
            self._share_new(new_id, group_id, desired.share_group)
        return new_id, state

    def read(self, entity_id: str, prior: Any = None) -> Optional[Password]:
        raw = self.fetch(entity_id, self.client.get_resource, entity_id)
        if raw is None:
            return None
        prior = self.coerce_observed(prior) if prior is not None else None
        secret = self._read_secret(entity_id)
        if secret is None and prior is not None:
            secret = prior.password
        return self.state_from(raw, secret=secret, share_group=prior.share_group if prior else None)

    def update(self, entity_id: str, desired: Any, prior: Any = None) -> Password:
        desired = self.coerce(desired)
        prior = self.current(entity_id, prior)
        folder_id = self.resolver.resolve_folder(desired.folder_parent)
        group_id = self.resolver.resolve_group(desired.share_group)

        # an unmanaged secret keeps whatever was observed
        secret = desired.password if desired.password is not None else prior.password
        target = Password(
            name=desired.name,
            username=desired.username,
            uri=desired.uri,
            password=secret,
            description=desired.description or None,
            folder_parent=folder_id,
            share_group=desired.share_group or None,
        )
        decision = self.plan(self.canon(target), prior)
        if decision.op == "NOOP":
            return prior

        if getattr(self.client, "supports_resource_update", False):
            return self._update_in_place(entity_id, target, group_id, decision.changed)
        return self.replace(entity_id, target, group_id)

    def _update_in_place(self, entity_id: str, target: Password, group_id: Optional[str], changed: list) -> Password:
        with self.remote(entity_id):
            if any(k in changed for k in _FIELD_KEYS):
                self.client.update_resource(
                    entity_id,
                    name=target.name,
                    username=target.username,
                    uri=target.uri,
                    secret=target.password if "password" in changed else None,
                    description=target.description,
                )
            if "folder_parent" in changed:
                self.client.move_resource(entity_id, target.folder_parent)
            if group_id and "share_group" in changed:
                self.client.share_resource(entity_id, group_id, UPDATE)
        logger.info("UPDATE password %s: %s", entity_id, ", ".join(changed))
        return Password(**{**self.canon(target), "id": entity_id})

    def replace(self, entity_id: str, target: Password, group_id: Optional[str]) -> Password:
        """Delete then recreate; the returned state carries the new id."""
        if not target.password:
            raise ValidationError(
                f"password '{entity_id}': the secret is unknown, it must be given to replace the credential"
            )
        logger.warning("REPLACE password %s: client cannot update in place, deleting then recreating", entity_id)
        self.delete(entity_id)
        try:
            new_id, state = self._create(target, target.folder_parent)
        except (ReconcileError, ConfigError) as exc:
            cause = exc.cause if isinstance(exc, ReconcileError) else str(exc)
            raise PartialReplace(self.kind, target.name, cause, deleted_id=entity_id) from exc
        if group_id:
            self._share_new(new_id, group_id, target.share_group)
        logger.info("REPLACE password %s -> %s", entity_id, new_id)
        return state

    def delete(self, entity_id: str) -> None:
        self.delete_idempotent(entity_id, self.client.delete_resource)
