"""
Error taxonomy for passbolt_sync.

Two layers:
  * Client-level errors (:class:`ClientError` and subclasses) are raised by the
    HTTP client and carry the HTTP status, URL and the server message.
  * Reconciliation errors (:class:`ReconcileError` and subclasses) are what
    reconcilers raise to callers. Every one names the entity kind, the
    identifying token and the proximate cause.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class ClientError(Exception):
    """HTTP/transport error with context."""
    status: int
    url: str
    message: str = ""

    def __str__(self) -> str:
        base = f"HTTP {self.status} {self.url}" if self.status else f"transport error {self.url}"
        if self.message:
            base += f": {self.message}"
        return base


class NotFoundError(ClientError):
    """The remote entity does not exist (HTTP 404)."""


class RejectedError(ClientError):
    """The server refused the request (4xx other than 401/403/404)."""


class UnavailableError(ClientError):
    """Transport failure, authentication failure (401/403) or server error (5xx)."""


class ReconcileError(Exception):
    """Base class for reconciliation failures.

    Args:
        kind: Entity kind (``folder``, ``password``, ...).
        token: The identifying token the caller supplied (name, id, composite id).
        cause: Proximate cause, usually the remote server message.
    """

    def __init__(self, kind: str, token: str, cause: str = "") -> None:
        self.kind = kind
        self.token = token
        self.cause = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        msg = f"{self.kind} '{self.token}'"
        if self.cause:
            msg += f": {self.cause}"
        return msg


class ReferenceNotFound(ReconcileError):
    """A named folder, group or user could not be resolved."""


class InvalidPermission(ReconcileError):
    """A symbolic permission level outside the recognised set."""


class RemoteRejected(ReconcileError):
    """The remote system refused a mutation (duplicate name, validation, ...)."""


class RemoteUnavailable(ReconcileError):
    """Transport or authentication failure talking to the remote system."""


class NotFound(ReconcileError):
    """The entity an update targets no longer exists remotely."""


class ImportIdFormatError(ReconcileError):
    """An import identifier does not have the expected shape."""


class ImmutableField(ReconcileError):
    """The desired state changes a field the remote system never lets change."""


class PartialReplace(RemoteRejected):
    """Replace-as-update deleted the old entity but could not create the new one.

    The remote state is now missing the entity; ``deleted_id`` is the identifier
    that no longer exists.
    """

    def __init__(self, kind: str, token: str, cause: str = "", *, deleted_id: str = "") -> None:
        self.deleted_id = deleted_id
        super().__init__(kind, token, cause)

    def __str__(self) -> str:
        return (
            f"{self.kind} '{self.token}': old entity {self.deleted_id} was deleted but the "
            f"replacement could not be created, remote state is now inconsistent: {self.cause}"
        )


def from_client_error(kind: str, token: str, exc: ClientError, *, not_found: type = RemoteRejected) -> ReconcileError:
    """Map a client-level error onto the reconciliation taxonomy.

    ``not_found`` picks the class used for a 404, which means different things
    depending on the call (a missing reference, a missing entity to mutate, ...).
    """
    cause = exc.message or str(exc)
    if isinstance(exc, UnavailableError):
        return RemoteUnavailable(kind, token, cause)
    if isinstance(exc, NotFoundError):
        return not_found(kind, token, cause)
    return RemoteRejected(kind, token, cause)
