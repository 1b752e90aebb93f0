"""
Envelope codec: detection, encryption and decryption.

Wire format (armored as base64 text, 64 columns):

    b"Salted__" || salt (16) || body || tag (32)

`body` is the plaintext run through the named cipher; the key, IV and a
MAC key come from PBKDF2-HMAC-SHA256 over the password and salt. `tag` is
HMAC-SHA256 over everything before it, so a wrong credential is detected
for every cipher mode instead of yielding garbage.

This module is intentionally dumb about git and about where credentials
live. It never raises on a bad credential unless asked to be strict.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Tuple

from Crypto.Hash import HMAC, SHA256
from Crypto.Protocol.KDF import PBKDF2

from .ciphers import CipherRegistry, CipherSpec, default_registry
from .config import ENVELOPE_MAGIC, PBKDF2_ITERATIONS, SALT_SIZE, TAG_SIZE
from .credentials import Credential
from .errors import DecryptionFailure, EncryptionError, UnsupportedCipher
from .salt import derive_salt
from .utils import armor, dearmor

logger = logging.getLogger(__name__)

# First armored characters of every envelope: base64(b"Salted__") minus
# the characters that also depend on the salt.
ARMORED_MAGIC: bytes = base64.b64encode(ENVELOPE_MAGIC)[:10]


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Envelope:
    salt: bytes
    body: bytes
    tag: bytes

    @property
    def signed_part(self) -> bytes:
        return ENVELOPE_MAGIC + self.salt + self.body

    def pack(self) -> bytes:
        return armor(self.signed_part + self.tag)

    @classmethod
    def unpack(cls, data: bytes) -> "Envelope":
        """
        Parse armored envelope text.

        Raises:
            ValueError: if the text is not a well-formed envelope
        """

        raw = dearmor(data)
        header = len(ENVELOPE_MAGIC) + SALT_SIZE
        if not raw.startswith(ENVELOPE_MAGIC) or len(raw) < header + TAG_SIZE:
            raise ValueError("Truncated or malformed envelope")

        return cls(
            salt=raw[len(ENVELOPE_MAGIC):header],
            body=raw[header:-TAG_SIZE],
            tag=raw[-TAG_SIZE:],
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_envelope(data: bytes) -> bool:
    """Prefix test only; never attempts a decryption."""
    return data.startswith(ARMORED_MAGIC)


def derive_keys(spec: CipherSpec, password: str, salt: bytes) -> Tuple[bytes, bytes, bytes]:
    """Return (cipher key, iv, mac key) for one envelope."""

    material = PBKDF2(
        password.encode("utf-8"),
        salt,
        dkLen=spec.key_size + spec.iv_size + TAG_SIZE,
        count=PBKDF2_ITERATIONS,
        hmac_hash_module=SHA256,
    )
    key = material[: spec.key_size]
    iv = material[spec.key_size : spec.key_size + spec.iv_size]
    mac_key = material[spec.key_size + spec.iv_size :]
    return key, iv, mac_key


class EnvelopeCodec:
    def __init__(self, registry: CipherRegistry = default_registry):
        self.registry = registry

    def encrypt(self, plaintext: bytes, credential: Credential, filename: str) -> bytes:
        """
        Encrypt plaintext into armored envelope text.

        Empty input is returned unchanged. The salt is derived from the
        same buffer that gets encrypted, so the output is deterministic.

        Raises:
            EncryptionError: if the credential's cipher is not supported
        """

        if not plaintext:
            return plaintext

        try:
            spec = self.registry.get(credential.cipher)
        except UnsupportedCipher as e:
            raise EncryptionError(str(e)) from e

        salt = derive_salt(filename, credential.password, plaintext)
        key, iv, mac_key = derive_keys(spec, credential.password, salt)
        body = spec.encrypt(key, iv, plaintext)

        unsigned = Envelope(salt=salt, body=body, tag=b"")
        tag = HMAC.new(mac_key, unsigned.signed_part, digestmod=SHA256).digest()
        return Envelope(salt=salt, body=body, tag=tag).pack()

    def decrypt(self, data: bytes, credential: Credential, strict: bool = False) -> bytes:
        """
        Decrypt an envelope, passing anything else through.

        Non-envelope input is returned unchanged. When the envelope cannot
        be opened with `credential` the input is also returned unchanged,
        unless `strict` is set.

        Raises:
            DecryptionFailure: only in strict mode
        """

        if not data or not is_envelope(data):
            return data

        try:
            return self._open(data, credential)
        except (ValueError, UnsupportedCipher) as e:
            if strict:
                raise DecryptionFailure(f"Cannot decrypt envelope: {e}") from e
            logger.debug("Decryption failed, passing envelope through: %s", e)
            return data

    def _open(self, data: bytes, credential: Credential) -> bytes:
        envelope = Envelope.unpack(data)
        spec = self.registry.get(credential.cipher)
        key, iv, mac_key = derive_keys(spec, credential.password, envelope.salt)

        mac = HMAC.new(mac_key, envelope.signed_part, digestmod=SHA256)
        mac.verify(envelope.tag)

        return spec.decrypt(key, iv, envelope.body)


default_codec = EnvelopeCodec()


def encrypt(plaintext: bytes, credential: Credential, filename: str) -> bytes:
    return default_codec.encrypt(plaintext, credential, filename)


def decrypt(data: bytes, credential: Credential, strict: bool = False) -> bytes:
    return default_codec.decrypt(data, credential, strict=strict)
