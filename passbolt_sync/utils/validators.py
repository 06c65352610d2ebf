"""
Desired-state validators (required fields, required mapping shape).
"""
from __future__ import annotations

from typing import Any, Dict, Iterable


class ValidationError(Exception):
    """Raised when a desired-state document is missing fields or is malformed."""
    pass


def require_mapping(doc: Any, context: str | None = None) -> Dict[str, Any]:
    """Ensure that a loaded document is a mapping and return it."""
    if not isinstance(doc, dict):
        prefix = f"{context}: " if context else ""
        raise ValidationError(f"{prefix}expected a mapping, got {type(doc).__name__}")
    return doc


def require_fields(
    doc: Dict[str, Any],
    required: Iterable[str],
    context: str | None = None,
    allow_blank: bool = False,
) -> None:
    """Ensure that all required fields are present and non-empty in a mapping.

    Parameters
    ----------
    doc : dict
        The desired-state mapping to validate.
    required : Iterable[str]
        Field names that must be present in ``doc``.
    context : str, optional
        Extra information to prepend to the error message (e.g., the entity
        kind). If provided, it will be formatted as "{context}: ...".
    allow_blank : bool, default False
        Accept empty values as long as the field is present (observed state).

    Raises
    ------
    ValidationError
        If one or more required fields are missing or blank.
    """
    missing = [
        f for f in required
        if doc.get(f) is None or (not allow_blank and str(doc.get(f)).strip() == "")
    ]
    if missing:
        prefix = f"{context}: " if context else ""
        raise ValidationError(
            f"{prefix}Missing required fields: {', '.join(missing)}"
        )
