"""
Global configuration and environment handling.

This module is responsible for:
- Defining global constants and defaults
- Naming the environment variables the tool honours
- Generating fresh passwords

Nothing in this file should depend on:
- the repository
- the credential store
- the envelope format internals
- CLI arguments

If something here changes, the *entire tool* behavior changes. In
particular PBKDF2_ITERATIONS is not stored in the envelope: changing it
makes every existing envelope unreadable.
"""

from __future__ import annotations

import base64
import os
import sys
from typing import Final

from Crypto.Random import get_random_bytes

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

TOOL_VERSION: Final[str] = "0.1.0"
FORMAT_VERSION: Final[str] = "1"
SUPPORTED_SETTINGS_VERSION: Final[int] = 1

# ---------------------------------------------------------------------------
# Envelope / key schedule
# ---------------------------------------------------------------------------

ENVELOPE_MAGIC: Final[bytes] = b"Salted__"
SALT_SIZE: Final[int] = 16
TAG_SIZE: Final[int] = 32
PBKDF2_ITERATIONS: Final[int] = 100_000
ARMOR_LINE_LENGTH: Final[int] = 64

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CIPHER: Final[str] = "aes-256-cbc"
DEFAULT_PASSWORD_BYTES: Final[int] = 30
GPG_IMPORT_ATTEMPTS: Final[int] = 3

# Name used for the git config section, the filter and the diff driver
FILTER_NAME: Final[str] = "repocrypt"
LIST_ALIAS: Final[str] = "ls-crypt"
LOCK_FILE_NAME: Final[str] = "repocrypt.lock"
SETTINGS_FILE_NAME: Final[str] = ".repocrypt.yml"

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_GIT: Final[str] = "REPOCRYPT_GIT"
ENV_GPG: Final[str] = "REPOCRYPT_GPG"
ENV_SETTINGS: Final[str] = "REPOCRYPT_SETTINGS"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def git_program() -> str:
    """Return the git executable to run."""
    return os.getenv(ENV_GIT) or "git"


def gpg_program() -> str:
    """Return the gpg executable to run."""
    return os.getenv(ENV_GPG) or "gpg"


def settings_path_override() -> str | None:
    return os.getenv(ENV_SETTINGS) or None


def filter_command(role: str) -> str:
    """
    Build the command line git runs for a filter role.

    The current interpreter is used so the registration keeps working
    inside virtualenvs where the console script is not on PATH.
    """

    python = sys.executable.replace("\\", "/")
    if " " in python:
        python = f'"{python}"'

    command = f"{python} -m repocrypt {role}"
    if role in ("clean", "smudge"):
        command += " %f"
    return command


def generate_password(num_bytes: int = DEFAULT_PASSWORD_BYTES) -> str:
    """
    Generate a random, printable password.

    Returns:
        str: base64 text of `num_bytes` random bytes
    """

    if num_bytes < 1:
        raise ValueError("Password length must be at least 1 byte")

    return base64.b64encode(get_random_bytes(num_bytes)).decode("ascii")
