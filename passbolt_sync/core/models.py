"""
Entity models shared by desired state and actual state.

One dataclass per entity kind. Reference fields (``folder_parent``, ``folder``,
``share_group``, ``group_name``) hold a name-or-id token in desired state and
the resolved remote id in actual state (``share_group`` and ``group_name`` stay
names because the server never reports them back).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple, Type, TypeVar, Union

from ..utils.validators import ValidationError, require_fields, require_mapping

T = TypeVar("T")


@dataclass(frozen=True)
class Folder:
    name: str
    folder_parent: Optional[str] = None
    id: Optional[str] = None
    personal: bool = False


@dataclass(frozen=True)
class Password:
    """Credential record. ``password`` is the secret value (write-mostly)."""
    name: str
    username: str
    uri: str
    password: Optional[str] = None
    description: Optional[str] = None
    folder_parent: Optional[str] = None
    share_group: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True, order=True)
class GroupMember:
    user_id: str
    is_manager: bool = False


@dataclass(frozen=True)
class Group:
    name: str
    members: Tuple[GroupMember, ...] = ()
    id: Optional[str] = None

    def __post_init__(self) -> None:
        ids = [m.user_id for m in self.members]
        dups = sorted({u for u in ids if ids.count(u) > 1})
        if dups:
            raise ValidationError(f"group '{self.name}': duplicate member user id(s): {', '.join(dups)}")
        # canonical order so equal memberships compare equal
        object.__setattr__(self, "members", tuple(sorted(self.members)))

    def member_ids(self) -> frozenset:
        return frozenset(m.user_id for m in self.members)

    def managers(self) -> Dict[str, bool]:
        return {m.user_id: m.is_manager for m in self.members}


@dataclass(frozen=True)
class User:
    username: str
    first_name: str
    last_name: str
    role: str = "user"
    id: Optional[str] = None


@dataclass(frozen=True)
class FolderPermission:
    """Grant of ``permission`` on ``folder`` to the group ``group_name``."""
    folder: str
    group_name: str
    permission: str
    id: Optional[str] = None


Model = Union[Folder, Password, Group, User, FolderPermission]

_REQUIRED: Dict[type, Tuple[str, ...]] = {
    Folder: ("name",),
    Password: ("name", "username", "uri"),
    Group: ("name",),
    User: ("username", "first_name", "last_name"),
    FolderPermission: ("folder", "group_name", "permission"),
}


def _members_from(raw: Dict[str, Any]) -> Tuple[GroupMember, ...]:
    members = []
    for item in raw.get("members") or []:
        if isinstance(item, GroupMember):
            members.append(item)
        elif isinstance(item, dict):
            if not item.get("user_id"):
                raise ValidationError("group member entries need a 'user_id'")
            members.append(GroupMember(str(item["user_id"]), bool(item.get("is_manager", False))))
        else:
            members.append(GroupMember(str(item), False))
    # `managers: [ids]` shorthand
    for uid in raw.get("managers") or []:
        members.append(GroupMember(str(uid), True))
    return tuple(members)


def from_dict(model: Type[T], raw: Union[T, Dict[str, Any]], *, validate: bool = True) -> T:
    """Build a model instance from a plain dict (as loaded from YAML/JSON).

    Unknown keys are ignored; required keys must be present and non-empty.
    With ``validate=False`` (observed state) required keys may be blank.

    Raises:
        ValidationError: If a required key is missing.
    """
    if isinstance(raw, model):
        return raw
    require_mapping(raw, context=model.__name__)
    require_fields(raw, _REQUIRED[model], context=model.__name__, allow_blank=not validate)

    known = {f.name for f in fields(model)}
    kwargs = {k: v for k, v in raw.items() if k in known}
    if model is Group:
        kwargs["members"] = _members_from(raw)
    if model is Folder and "personal" in kwargs:
        kwargs["personal"] = bool(kwargs["personal"])
    return model(**kwargs)


def to_dict(obj: Model) -> Dict[str, Any]:
    """Return a JSON-friendly dict for a model instance."""
    out = asdict(obj)
    if isinstance(obj, Group):
        out["members"] = [asdict(m) for m in obj.members]
    return out


def with_id(obj: T, new_id: Optional[str]) -> T:
    return replace(obj, id=new_id)
