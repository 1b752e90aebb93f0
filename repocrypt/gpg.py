"""
Credential export and import through GnuPG.

The credential travels as `key=value` lines encrypted to a public key.
Only the gpg executable is used; key management stays with the user.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .config import GPG_IMPORT_ATTEMPTS, gpg_program
from .credentials import Credential
from .errors import GpgError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_credential(credential: Credential) -> str:
    return f"cipher={credential.cipher}\npassword={credential.password}\n"


def parse_credential_lines(text: str) -> Tuple[str, str]:
    """
    Parse `key=value` lines back into (cipher, password).

    Raises:
        GpgError: if either field is missing
    """

    values = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.rstrip("\r")

    cipher = values.get("cipher", "")
    password = values.get("password", "")
    if not cipher or not password:
        raise GpgError("Decrypted credential is missing cipher or password")
    return cipher, password


# ---------------------------------------------------------------------------
# gpg invocation
# ---------------------------------------------------------------------------


class GpgRunner:
    def __init__(self, program: Optional[str] = None):
        self.program = program or gpg_program()

    def run(self, args: Sequence[str], input: Optional[bytes] = None) -> bytes:
        cmd = [self.program, *args]
        logger.debug("run: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd, input=input, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise GpgError(f"Cannot run {self.program}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise GpgError(f"{self.program} failed ({result.returncode}): {stderr}")
        return result.stdout

    def encrypt(self, data: bytes, recipient: str, output: Path) -> None:
        self.run(
            ["--batch", "--yes", "--armor", "--encrypt",
             "--recipient", recipient, "--output", str(output)],
            input=data,
        )

    def decrypt(self, path: Path) -> bytes:
        return self.run(["--quiet", "--decrypt", str(path)])


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def export_credential(
    credential: Credential,
    recipient: str,
    output: str | Path,
    runner: Optional[GpgRunner] = None,
) -> Path:
    runner = runner or GpgRunner()
    output = Path(output)
    runner.encrypt(serialize_credential(credential).encode("utf-8"), recipient, output)
    return output


def import_credential(
    path: str | Path,
    runner: Optional[GpgRunner] = None,
    attempts: int = GPG_IMPORT_ATTEMPTS,
) -> Tuple[str, str]:
    """
    Decrypt an exported credential file.

    gpg is retried (a pinentry timeout or agent hiccup is common) up to
    `attempts` times.

    Raises:
        GpgError: after the last failed attempt, or on malformed content
    """

    runner = runner or GpgRunner()
    path = Path(path)
    if not path.is_file():
        raise GpgError(f"Credential file not found: {path}")

    last_error: Optional[GpgError] = None
    for attempt in range(1, max(attempts, 1) + 1):
        try:
            plaintext = runner.decrypt(path)
        except GpgError as e:
            logger.debug("gpg decrypt attempt %d/%d failed: %s", attempt, attempts, e)
            last_error = e
            continue
        return parse_credential_lines(plaintext.decode("utf-8"))

    raise GpgError(f"Could not decrypt {path} after {attempts} attempt(s): {last_error}")
