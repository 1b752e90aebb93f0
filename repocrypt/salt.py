"""
Deterministic salt derivation.

The salt is a pseudorandom function of (filename, password, plaintext):
re-cleaning an unchanged file yields the same salt and therefore the same
envelope, while any change to the content or the path yields a new one.
"""

from __future__ import annotations

from Crypto.Hash import HMAC, SHA256

from .config import SALT_SIZE


def derive_salt(filename: str, password: str, plaintext: bytes) -> bytes:
    """
    Derive the salt for one file's content.

    `plaintext` must be the exact buffer that is about to be encrypted,
    never a second read of the file.

    Returns:
        bytes: the last SALT_SIZE bytes of HMAC-SHA256 keyed with
        "filename:password"
    """

    key = f"{filename}:{password}".encode("utf-8")
    mac = HMAC.new(key, plaintext, digestmod=SHA256).digest()
    return mac[-SALT_SIZE:]
