"""
Provider: the lifecycle boundary an orchestrator drives.

Dispatches ``create / read / update / delete / import_state`` by entity kind to
the reconciler declared in :mod:`passbolt_sync.reconcilers.registry`. Desired
and prior states may be model instances or plain mappings.

Example:
    provider = Provider(client)
    new_id, state = provider.create("folder", {"name": "Ops"})
    provider.update("folder", new_id, {"name": "Ops", "folder_parent": "Infra"}, state)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from .reconcilers.base import BaseReconciler
from .reconcilers.registry import get_spec_by_key, iter_specs
from .utils.resolvers import ReferenceResolver

logger = logging.getLogger(__name__)

KINDS = tuple(spec.key for spec in iter_specs())


class Provider:
    """Entry point holding the remote client for the duration of its calls.

    Args:
        client: Authenticated remote client shared by every reconciler.
    """

    def __init__(self, client: Any) -> None:
        self.client = client
        self.resolver = ReferenceResolver(client)
        self._reconcilers: Dict[str, BaseReconciler] = {}

    def reconciler(self, kind: str) -> BaseReconciler:
        """Return the reconciler for ``kind``.

        Raises:
            ValueError: If ``kind`` is not a known entity kind.
        """
        if kind not in self._reconcilers:
            try:
                spec = get_spec_by_key(kind)
            except KeyError:
                raise ValueError(f"Unknown entity kind {kind!r} (expected one of: {', '.join(KINDS)})") from None
            self._reconcilers[kind] = spec.load_class()(self.client, resolver=self.resolver)
        return self._reconcilers[kind]

    def create(self, kind: str, desired: Any) -> Tuple[str, Any]:
        logger.debug("create %s", kind)
        return self.reconciler(kind).create(desired)

    def read(self, kind: str, entity_id: str, prior: Any = None) -> Optional[Any]:
        """Return the actual state, or ``None`` when the entity is gone."""
        logger.debug("read %s %s", kind, entity_id)
        return self.reconciler(kind).read(entity_id, prior)

    def update(self, kind: str, entity_id: str, desired: Any, prior: Any = None) -> Any:
        """Converge onto ``desired``; the returned state's ``id`` is authoritative."""
        logger.debug("update %s %s", kind, entity_id)
        return self.reconciler(kind).update(entity_id, desired, prior)

    def delete(self, kind: str, entity_id: str) -> None:
        logger.debug("delete %s %s", kind, entity_id)
        self.reconciler(kind).delete(entity_id)

    def import_state(self, kind: str, entity_id: str) -> Optional[Any]:
        logger.debug("import %s %s", kind, entity_id)
        return self.reconciler(kind).import_state(entity_id)
