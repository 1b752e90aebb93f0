"""
Settings file loading, validation, and normalization.

This module answers one question:
    "What defaults does this repository want the tool to use?"

Responsibilities:
- Locate and load the optional `.repocrypt.yml` file
- Validate structure and version
- Normalize defaults

This module does NOT:
- Store credentials (those live in the git config)
- Encrypt data
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .ciphers import default_registry
from .config import (
    DEFAULT_CIPHER,
    DEFAULT_PASSWORD_BYTES,
    GPG_IMPORT_ATTEMPTS,
    SETTINGS_FILE_NAME,
    SUPPORTED_SETTINGS_VERSION,
    settings_path_override,
)
from .errors import SettingsError


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass
class GpgSettings:
    program: Optional[str] = None
    recipient: Optional[str] = None
    import_attempts: int = GPG_IMPORT_ATTEMPTS


@dataclass
class Settings:
    version: int = SUPPORTED_SETTINGS_VERSION
    default_cipher: str = DEFAULT_CIPHER
    password_length: int = DEFAULT_PASSWORD_BYTES
    gpg: GpgSettings = field(default_factory=GpgSettings)

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "Settings":
        """
        Load and validate a settings file.

        Raises:
            SettingsError: if the file is missing or invalid
        """

        path = Path(path)
        if not path.exists():
            raise SettingsError(f"Settings file not found: {path}")

        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise SettingsError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(raw, dict):
            raise SettingsError(f"Settings file must be a mapping: {path}")

        return cls._from_dict(raw)

    @classmethod
    def discover(cls, top_level: str | Path) -> "Settings":
        """
        Load settings from $REPOCRYPT_SETTINGS, else from the repository
        top level, else fall back to built-in defaults.
        """

        override = settings_path_override()
        if override:
            return cls.load(override)

        candidate = Path(top_level) / SETTINGS_FILE_NAME
        if candidate.exists():
            return cls.load(candidate)

        return cls()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Settings":
        version = data.get("version", SUPPORTED_SETTINGS_VERSION)
        if version != SUPPORTED_SETTINGS_VERSION:
            raise SettingsError(f"Unsupported settings version: {version}")

        cipher = data.get("default_cipher", DEFAULT_CIPHER)
        if not default_registry.is_supported(cipher):
            raise SettingsError(f"Unsupported default_cipher: {cipher!r}")

        length = data.get("password_length", DEFAULT_PASSWORD_BYTES)
        if not isinstance(length, int) or length < 1:
            raise SettingsError("password_length must be a positive integer")

        return cls(
            version=version,
            default_cipher=cipher,
            password_length=length,
            gpg=cls._parse_gpg(data.get("gpg") or {}),
        )

    @staticmethod
    def _parse_gpg(data: Dict[str, Any]) -> GpgSettings:
        if not isinstance(data, dict):
            raise SettingsError("'gpg' must be a mapping")

        attempts = data.get("import_attempts", GPG_IMPORT_ATTEMPTS)
        if not isinstance(attempts, int) or attempts < 1:
            raise SettingsError("gpg.import_attempts must be a positive integer")

        return GpgSettings(
            program=data.get("program"),
            recipient=data.get("recipient"),
            import_attempts=attempts,
        )
