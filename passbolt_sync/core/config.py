"""
Configuration loader for passbolt_sync.

This module resolves the runtime configuration from the environment (`.env`)
and loads desired/prior state documents from YAML (JSON is accepted too, being
a subset of YAML).

Key rules:
  * `.env` provides PASSBOLT_URL and PASSBOLT_ACCESS_TOKEN (required)
  * PASSBOLT_VERIFY_TLS, PASSBOLT_TIMEOUT_SEC, PASSBOLT_SUPPRESS_TLS_WARNINGS tune the client
  * PASSBOLT_CIPHER optionally names a ``module:factory`` that builds the secret cipher
"""
from __future__ import annotations

import importlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from ..utils.validators import ValidationError, require_mapping
from .logging_utils import get_logger

log = get_logger(__name__)

_FALSY = {"0", "false", "no", "off"}


class ConfigError(Exception):
    """Raised when runtime configuration cannot be resolved."""
    pass


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() not in _FALSY


def resolve_factory(ref: str) -> Callable[..., Any]:
    """Import a ``module:callable`` reference.

    Raises:
        ConfigError: If the reference is malformed or cannot be imported.
    """
    if ":" not in ref:
        raise ConfigError(f"Expected 'module:callable', got {ref!r}")
    mod, func = ref.split(":", 1)
    try:
        module = importlib.import_module(mod)
        return getattr(module, func)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"Cannot import {ref!r}: {exc}") from exc


@dataclass
class Config:
    """Runtime configuration resolved from `.env`."""
    base_url: str
    access_token: str
    verify_tls: bool = True
    timeout_sec: int = 60
    suppress_tls_warnings: bool = False
    cipher_ref: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load `.env` and build a :class:`Config` instance.

        Raises:
            ConfigError: If required environment variables are missing or invalid.
        """
        env_path = find_dotenv(usecwd=True) or ""
        if env_path:
            load_dotenv(env_path, override=True)
        base_url = os.getenv("PASSBOLT_URL")
        token = os.getenv("PASSBOLT_ACCESS_TOKEN")

        missing = [k for k, v in {
            "PASSBOLT_URL": base_url,
            "PASSBOLT_ACCESS_TOKEN": token,
        }.items() if not v]
        if missing:
            hint = (
                "Create a .env in the working directory or export them in your shell. "
                "Example:\n"
                "  PASSBOLT_URL=https://passbolt.example.local\n"
                "  PASSBOLT_ACCESS_TOKEN=***\n"
            )
            raise ConfigError(
                "Missing required environment variables: "
                + ", ".join(missing)
                + ". " + hint
            )

        timeout_raw = os.getenv("PASSBOLT_TIMEOUT_SEC", "60")
        try:
            timeout = int(timeout_raw)
        except ValueError:
            raise ConfigError(f"PASSBOLT_TIMEOUT_SEC must be an integer, got {timeout_raw!r}") from None

        cfg = cls(
            base_url=base_url,
            access_token=token,
            verify_tls=_env_flag("PASSBOLT_VERIFY_TLS", True),
            timeout_sec=timeout,
            suppress_tls_warnings=_env_flag("PASSBOLT_SUPPRESS_TLS_WARNINGS", False),
            cipher_ref=os.getenv("PASSBOLT_CIPHER") or None,
        )
        log.debug("Config loaded: url=%s verify_tls=%s timeout=%s cipher=%s",
                  cfg.base_url, cfg.verify_tls, cfg.timeout_sec, cfg.cipher_ref or "-")
        return cfg

    def build_cipher(self) -> Any:
        """Instantiate the configured secret cipher, or return ``None``."""
        if not self.cipher_ref:
            return None
        return resolve_factory(self.cipher_ref)()


def _read_document(path: str | Path) -> Any:
    p = Path(path)
    if not p.is_file():
        raise ValidationError(f"State file not found: {path}")
    try:
        with open(p, "r", encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ValidationError(f"Cannot parse {path}: {exc}") from exc


def load_document(path: str | Path) -> Dict[str, Any]:
    """Read and parse a YAML/JSON state document into a dict.

    Raises:
        ValidationError: If the file is missing, unparsable or not a mapping.
    """
    return require_mapping(_read_document(path), context=str(path))


def load_desired(path: str | Path) -> Dict[str, Any]:
    """Load a desired-state document (the fields of one entity)."""
    return load_document(path)


def load_prior(path: str | Path) -> Dict[str, Any]:
    """Load a prior observed state, as printed by ``--format json``.

    The printed output is a list holding one result row, which wraps the state
    under ``"state"``. A single row or a bare state mapping is accepted too.
    """
    data = _read_document(path)
    if isinstance(data, list):
        if len(data) != 1:
            raise ValidationError(f"{path}: expected exactly one result row, got {len(data)}")
        data = data[0]
    data = require_mapping(data, context=str(path))
    state = data.get("state")
    return state if isinstance(state, dict) else data
