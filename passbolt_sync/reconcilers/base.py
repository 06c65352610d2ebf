""" BaseReconciler: resolve → compare → apply for a single entity.

Concrete reconcilers implement the four lifecycle hooks (``create``, ``read``,
``update``, ``delete``) and the canonical representations used by the diff
step. Error translation, NotFound handling, idempotent deletes and the NOOP
short-circuit live here.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Type

from ..core.errors import (
    ClientError,
    NotFound,
    NotFoundError,
    RemoteRejected,
    from_client_error,
)
from ..core.models import from_dict, with_id
from ..utils.diff_engine import Decision, decide
from ..utils.resolvers import ReferenceResolver

logger = logging.getLogger(__name__)


class BaseReconciler:
    """Abstract base class for all reconcilers.

    Subclasses must set the class attributes below and implement the hooks.

    Class Attributes:
        kind: Entity kind used in errors and logs (e.g. ``"folder"``).
        model: Dataclass from :mod:`passbolt_sync.core.models` for this kind.
        compare_keys: Keys used for subset comparison in the diff step.

    Args:
        client: Remote client (see :class:`~passbolt_sync.core.passbolt_client.PassboltClient`).
        resolver: Optional resolver; defaults to one built on ``client``.
    """

    kind: str = "resource"
    model: Type[Any] = object
    compare_keys: Tuple[str, ...] = ()

    def __init__(self, client: Any, *, resolver: Optional[ReferenceResolver] = None) -> None:
        self.client = client
        self.resolver = resolver or ReferenceResolver(client)

    # ----- hooks to implement --------------------------------------------
    def create(self, desired: Any) -> Tuple[str, Any]:
        """Create the entity and return ``(id, actual_state)``."""
        raise NotImplementedError

    def read(self, entity_id: str, prior: Any = None) -> Optional[Any]:
        """Return the actual state, or ``None`` when the entity no longer exists."""
        raise NotImplementedError

    def update(self, entity_id: str, desired: Any, prior: Any = None) -> Any:
        """Converge the entity onto ``desired`` and return the new actual state."""
        raise NotImplementedError

    def delete(self, entity_id: str) -> None:
        """Remove the entity; an already-absent entity is success."""
        raise NotImplementedError

    def import_state(self, entity_id: str) -> Optional[Any]:
        """Adopt an existing remote entity by identifier."""
        return self.read(entity_id)

    def canon(self, state: Any) -> Dict[str, Any]:
        """Return the comparable subset for an actual state."""
        return {k: getattr(state, k) for k in self.compare_keys}

    # ----- helpers --------------------------------------------------------
    def coerce(self, value: Any) -> Any:
        """Accept a model instance or a plain mapping."""
        return from_dict(self.model, value)

    def coerce_observed(self, value: Any) -> Any:
        """Like `coerce` for a prior observed state, whose fields may be blank."""
        return from_dict(self.model, value, validate=False)

    def current(self, entity_id: str, prior: Any) -> Any:
        """Return the prior state to diff against, reading it when not supplied.

        Raises:
            NotFound: If no prior was given and the entity is gone remotely.
        """
        if prior is not None:
            state = self.coerce_observed(prior)
            return state if state.id else with_id(state, entity_id)
        state = self.read(entity_id)
        if state is None:
            raise NotFound(self.kind, entity_id, "entity no longer exists remotely; create it again")
        return state

    def plan(self, desired_canon: Dict[str, Any], prior: Any) -> Decision:
        decision = decide(desired_canon, self.canon(prior), compare_keys=list(self.compare_keys))
        logger.debug("%s %s: %s (%s)", self.kind, prior.id, decision.op, decision.reason)
        return decision

    @contextmanager
    def remote(self, token: Any, *, not_found: type = RemoteRejected) -> Iterator[None]:
        """Translate client errors raised inside the block into reconciliation errors."""
        try:
            yield
        except ClientError as exc:
            raise from_client_error(self.kind, str(token), exc, not_found=not_found) from exc

    def fetch(self, token: Any, call: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Any]:
        """Run a read call; a remote 404 becomes ``None``."""
        try:
            return call(*args, **kwargs)
        except NotFoundError:
            logger.info("%s %s not found remotely", self.kind, token)
            return None
        except ClientError as exc:
            raise from_client_error(self.kind, str(token), exc) from exc

    def delete_idempotent(self, entity_id: str, call: Callable[[str], Any]) -> None:
        try:
            call(entity_id)
        except NotFoundError:
            logger.info("DELETE %s %s: already absent", self.kind, entity_id)
            return
        except ClientError as exc:
            raise from_client_error(self.kind, entity_id, exc) from exc
        logger.info("DELETE %s %s: done", self.kind, entity_id)
