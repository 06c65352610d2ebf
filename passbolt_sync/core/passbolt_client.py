"""
PassboltClient: JSON-first HTTP client for the Passbolt REST API.

This module provides the single authenticated client every reconciler is
built on:
  * Consistent JSON helpers (`get_json`, `post_json`, `put_json`, `delete_json`)
    that unwrap Passbolt's ``{"header": ..., "body": ...}`` envelope
  * Entity helpers for folders, groups, users and resources (passwords)
  * Folder/resource sharing and moving

Design goals:
  * Hide HTTP details from reconcilers
  * Translate HTTP outcomes into :mod:`passbolt_sync.core.errors` client errors
    (404 -> NotFoundError, 401/403/5xx/transport -> UnavailableError,
    other 4xx -> RejectedError)
  * Never retry; retry policy belongs to the caller

Authentication (GPG login / JWT issuance) and OpenPGP encryption are out of
scope. The client takes an already-issued access token, and secrets go through
an injected *cipher* exposing ``encrypt(plaintext) -> armored`` and
``decrypt(armored) -> plaintext``.

Example:
    client = PassboltClient(base_url, token, options=ClientOptions(verify=False))
    folders = client.list_folders()
"""
from __future__ import annotations

import json
import os
import uuid
import warnings
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

import requests
import urllib3

from .config import ConfigError
from .errors import NotFoundError, RejectedError, UnavailableError
from .logging_utils import get_logger

log = get_logger(__name__)

JSON = Union[Dict[str, Any], List[Any]]

_LOG_PREVIEW = int(os.getenv("PASSBOLT_HTTP_PREVIEW", "600"))
_REDACT_KEYS = {"token", "authorization", "password", "secrets", "data", "passphrase"}


def _short_json(obj: Any, limit: int = _LOG_PREVIEW) -> str:
    try:
        if isinstance(obj, (dict, list)):
            s = json.dumps(obj, ensure_ascii=False)
        else:
            s = str(obj)
        return s[:limit]
    except (TypeError, ValueError):
        return f"<unserializable:{type(obj).__name__}>"


def _redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if str(k).lower() in _REDACT_KEYS:
                out[k] = "***REDACTED***"
            else:
                out[k] = _redact(v)
        return out
    if isinstance(obj, list):
        return [_redact(x) for x in obj]
    return obj


def _server_message(resp: requests.Response) -> str:
    """Pull the human-readable message out of a Passbolt error envelope."""
    try:
        payload = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(payload, dict):
        header = payload.get("header")
        if isinstance(header, dict) and header.get("message"):
            return str(header["message"])
        if payload.get("message"):
            return str(payload["message"])
    return resp.text[:200]


@dataclass(frozen=True)
class MembershipOp:
    """One group membership change for :meth:`PassboltClient.update_group`.

    ``delete=True`` removes ``user_id``; otherwise the membership is added or its
    manager flag set to ``is_manager``.
    """
    user_id: str
    is_manager: bool = False
    delete: bool = False


@dataclass
class ClientOptions:
    """Runtime options for :class:`PassboltClient`.

    Attributes:
        verify: If False, SSL certificate verification is disabled.
        timeout_sec: Per-request timeout (seconds).
        suppress_insecure_warning: Silence urllib3's InsecureRequestWarning when ``verify`` is False.
    """
    verify: bool = True
    timeout_sec: int = 60
    suppress_insecure_warning: bool = False


class PassboltClient:
    """High-level HTTP client for the Passbolt API.

    Args:
        base_url: Base URL of the Passbolt server (e.g., ``https://passbolt.local``).
        access_token: Session token passed as ``Authorization: Bearer``.
        options: Optional :class:`ClientOptions` to fine-tune behavior.
        cipher: Optional secret cipher. Without one, secrets read back as ``None``
            and writing a secret raises :class:`ConfigError`.
        session: Optional pre-built ``requests.Session``.
    """

    # Passbolt updates resource metadata in place (PUT /resources/{id}.json).
    supports_resource_update = True

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        options: Optional[ClientOptions] = None,
        cipher: Any = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url:
            raise ConfigError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        self.options = options or ClientOptions()
        self.cipher = cipher

        if not self.options.verify and self.options.suppress_insecure_warning:
            warnings.filterwarnings("ignore", category=urllib3.exceptions.InsecureRequestWarning)
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    # ---------------- low-level ----------------
    def _url(self, path: str) -> str:
        """Resolve an absolute URL from a relative *path*."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def _req(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform an HTTP request and return the envelope body (or ``{}``).

        Raises:
            UnavailableError: On connection errors, 401/403 and 5xx.
            NotFoundError: On 404.
            RejectedError: On any other 4xx.
        """
        url = self._url(path)
        corr = uuid.uuid4().hex[:8]
        log.debug("HTTP[%s] %s %s params=%s body=%s", corr, method, url, params, _short_json(_redact(json_body)))
        try:
            resp = self.session.request(
                method=method.upper(),
                url=url,
                params=params,
                json=json_body,
                timeout=self.options.timeout_sec,
                verify=self.options.verify,
            )
        except requests.RequestException as exc:
            log.error("HTTP[%s] %s %s failed: %s", corr, method, url, exc)
            raise UnavailableError(status=0, url=url, message=str(exc)) from exc

        if resp.status_code >= 400:
            message = _server_message(resp)
            log.warning("HTTP[%s] %s %s -> %s: %s", corr, method, url, resp.status_code, message)
            if resp.status_code == 404:
                raise NotFoundError(status=404, url=url, message=message)
            if resp.status_code in (401, 403) or resp.status_code >= 500:
                raise UnavailableError(status=resp.status_code, url=url, message=message)
            raise RejectedError(status=resp.status_code, url=url, message=message)

        log.debug("HTTP[%s] %s %s -> %s", corr, method, url, resp.status_code)
        if not resp.text:
            return {}
        try:
            payload = resp.json()
        except ValueError:
            log.warning("Non-JSON response from %s %s, returning empty dict", method, url)
            return {}
        if isinstance(payload, dict) and "body" in payload:
            return payload["body"] if payload["body"] is not None else {}
        return payload

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> JSON:
        """GET a JSON resource and return its body."""
        return self._req("GET", path, params=params)

    def post_json(self, path: str, data: Dict[str, Any]) -> JSON:
        """POST a JSON payload and return the response body."""
        return self._req("POST", path, json_body=data)

    def put_json(self, path: str, data: Dict[str, Any]) -> JSON:
        """PUT a JSON payload and return the response body."""
        return self._req("PUT", path, json_body=data)

    def delete_json(self, path: str) -> JSON:
        """DELETE a resource and return the response body (if any)."""
        return self._req("DELETE", path)

    @staticmethod
    def _as_list(body: Any) -> List[Dict[str, Any]]:
        if isinstance(body, list):
            return [i for i in body if isinstance(i, dict)]
        return []

    # ---------------- folders ----------------
    def list_folders(self, *, with_permissions: bool = False) -> List[Dict[str, Any]]:
        params = {"contain[permissions]": 1} if with_permissions else None
        return self._as_list(self.get_json("folders.json", params))

    def get_folder(self, folder_id: str, *, with_permissions: bool = False) -> Dict[str, Any]:
        params = {"contain[permissions]": 1} if with_permissions else None
        return self.get_json(f"folders/{folder_id}.json", params)

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> Dict[str, Any]:
        return self.post_json("folders.json", {"name": name, "folder_parent_id": parent_id})

    def update_folder(self, folder_id: str, name: str) -> Dict[str, Any]:
        return self.put_json(f"folders/{folder_id}.json", {"name": name})

    def move_folder(self, folder_id: str, parent_id: Optional[str]) -> None:
        self.post_json(f"move/folder/{folder_id}.json", {"folder_parent_id": parent_id})

    def delete_folder(self, folder_id: str) -> None:
        self.delete_json(f"folders/{folder_id}.json")

    def share_folder(self, folder_id: str, group_ids: Iterable[str], level: int) -> None:
        """Set the permission level of each group on a folder; level -1 revokes.

        Existing permissions are updated or deleted in place; groups without one
        get a new permission. Revoking a group with no permission is a no-op.
        """
        folder = self.get_folder(folder_id, with_permissions=True)
        current = {
            p.get("aro_foreign_key"): p
            for p in folder.get("permissions") or []
            if p.get("aro") == "Group"
        }
        changes: List[Dict[str, Any]] = []
        for gid in group_ids:
            perm = current.get(gid)
            if level == -1:
                if perm:
                    changes.append({"id": perm["id"], "delete": True})
            elif perm:
                if int(perm.get("type", 0)) != level:
                    changes.append({"id": perm["id"], "type": level})
            else:
                changes.append({"aro": "Group", "aro_foreign_key": gid, "type": level})
        if not changes:
            log.debug("share_folder: folder=%s already at requested level", folder_id)
            return
        self.put_json(f"share/folder/{folder_id}.json", {"permissions": changes})

    # ---------------- groups ----------------
    def list_groups(self) -> List[Dict[str, Any]]:
        return self._as_list(self.get_json("groups.json"))

    def get_group(self, group_id: str) -> Dict[str, Any]:
        return self.get_json(f"groups/{group_id}.json", {"contain[groups_users]": 1})

    def create_group(self, name: str, members: Iterable[MembershipOp]) -> Dict[str, Any]:
        groups_users = [{"user_id": m.user_id, "is_admin": m.is_manager} for m in members]
        return self.post_json("groups.json", {"name": name, "groups_users": groups_users})

    def update_group(self, group_id: str, name: str, ops: Iterable[MembershipOp]) -> Dict[str, Any]:
        """Rename a group and apply membership changes in one call.

        Passbolt addresses existing memberships by their own id, so the current
        membership list is fetched to map user ids onto membership ids.
        """
        ops = list(ops)
        memberships: Dict[str, str] = {}
        if ops:
            group = self.get_group(group_id)
            memberships = {gu["user_id"]: gu["id"] for gu in group.get("groups_users") or []}
        changes: List[Dict[str, Any]] = []
        for op in ops:
            mid = memberships.get(op.user_id)
            if op.delete:
                if mid:
                    changes.append({"id": mid, "delete": True})
            elif mid:
                changes.append({"id": mid, "is_admin": op.is_manager})
            else:
                changes.append({"user_id": op.user_id, "is_admin": op.is_manager})
        return self.put_json(f"groups/{group_id}.json", {"name": name, "groups_users": changes})

    def delete_group(self, group_id: str) -> None:
        self.delete_json(f"groups/{group_id}.json")

    # ---------------- users ----------------
    def list_users(self, *, search: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"filter[search]": search} if search else None
        return self._as_list(self.get_json("users.json", params))

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self.get_json(f"users/{user_id}.json")

    def _role_id(self, role: str) -> str:
        for r in self._as_list(self.get_json("roles.json")):
            if r.get("name") == role:
                return str(r["id"])
        raise RejectedError(status=400, url=self._url("roles.json"), message=f"unknown role {role!r}")

    def create_user(self, username: str, role: str, first_name: str, last_name: str) -> Dict[str, Any]:
        return self.post_json("users.json", {
            "username": username,
            "role_id": self._role_id(role),
            "profile": {"first_name": first_name, "last_name": last_name},
        })

    def update_user(self, user_id: str, role: str, first_name: str, last_name: str) -> Dict[str, Any]:
        return self.put_json(f"users/{user_id}.json", {
            "role_id": self._role_id(role),
            "profile": {"first_name": first_name, "last_name": last_name},
        })

    def delete_user(self, user_id: str) -> None:
        self.delete_json(f"users/{user_id}.json")

    # ---------------- resources (passwords) ----------------
    def _encrypt(self, secret: str) -> str:
        if self.cipher is None:
            raise ConfigError(
                "No secret cipher configured; set PASSBOLT_CIPHER to a 'module:factory' "
                "returning an object with encrypt()/decrypt()."
            )
        return self.cipher.encrypt(secret)

    def get_resource(self, resource_id: str) -> Dict[str, Any]:
        return self.get_json(f"resources/{resource_id}.json")

    def get_secret(self, resource_id: str) -> Optional[str]:
        """Return the decrypted secret, or ``None`` when it cannot be materialised."""
        if self.cipher is None:
            log.debug("get_secret: no cipher configured, secret of %s not read", resource_id)
            return None
        body = self.get_json(f"secrets/resource/{resource_id}.json")
        armored = body.get("data") if isinstance(body, dict) else None
        if not armored:
            return None
        return self.cipher.decrypt(armored)

    def create_resource(
        self,
        *,
        name: str,
        username: str,
        uri: str,
        secret: str,
        description: Optional[str] = None,
        folder_parent_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.post_json("resources.json", {
            "name": name,
            "username": username,
            "uri": uri,
            "description": description or "",
            "folder_parent_id": folder_parent_id,
            "secrets": [{"data": self._encrypt(secret)}],
        })

    def update_resource(
        self,
        resource_id: str,
        *,
        name: str,
        username: str,
        uri: str,
        secret: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": name,
            "username": username,
            "uri": uri,
            "description": description or "",
        }
        if secret is not None:
            payload["secrets"] = [{"data": self._encrypt(secret)}]
        return self.put_json(f"resources/{resource_id}.json", payload)

    def move_resource(self, resource_id: str, folder_parent_id: Optional[str]) -> None:
        self.post_json(f"move/resource/{resource_id}.json", {"folder_parent_id": folder_parent_id})

    def share_resource(self, resource_id: str, group_id: str, level: int) -> None:
        self.put_json(f"share/resource/{resource_id}.json", {
            "permissions": [{"aro": "Group", "aro_foreign_key": group_id, "type": level}],
        })

    def delete_resource(self, resource_id: str) -> None:
        self.delete_json(f"resources/{resource_id}.json")
