"""
Symmetric cipher registry.

Maps OpenSSL-style cipher names onto PyCryptodome primitives. The key
derivation is fixed (see envelope.py); a cipher entry only describes the
key and IV sizes it needs and how to run the block/stream mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Dict, FrozenSet

from Crypto.Cipher import AES, DES3, Blowfish
from Crypto.Util.Padding import pad, unpad

from .errors import UnsupportedCipher


@dataclass(frozen=True)
class CipherSpec:
    name: str
    module: ModuleType
    mode: str
    key_size: int

    @property
    def iv_size(self) -> int:
        return self.module.block_size

    @property
    def padded(self) -> bool:
        return self.mode == "cbc"

    def _new(self, key: bytes, iv: bytes):
        if self.mode == "cbc":
            return self.module.new(key, self.module.MODE_CBC, iv=iv)
        if self.mode == "cfb":
            # OpenSSL's cfb is full-block feedback
            return self.module.new(
                key, self.module.MODE_CFB, iv=iv,
                segment_size=self.module.block_size * 8,
            )
        if self.mode == "ofb":
            return self.module.new(key, self.module.MODE_OFB, iv=iv)
        if self.mode == "ctr":
            return self.module.new(
                key, self.module.MODE_CTR, nonce=b"", initial_value=iv,
            )
        raise UnsupportedCipher(self.name)

    def encrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        if self.padded:
            data = pad(data, self.module.block_size)
        return self._new(key, iv).encrypt(data)

    def decrypt(self, key: bytes, iv: bytes, data: bytes) -> bytes:
        """
        Raises:
            ValueError: on a malformed body (bad length or padding)
        """
        plain = self._new(key, iv).decrypt(data)
        if self.padded:
            plain = unpad(plain, self.module.block_size)
        return plain


def _build_table() -> Dict[str, CipherSpec]:
    table: Dict[str, CipherSpec] = {}

    for bits in (128, 192, 256):
        for mode in ("cbc", "cfb", "ofb", "ctr"):
            name = f"aes-{bits}-{mode}"
            table[name] = CipherSpec(name, AES, mode, bits // 8)

    table["des-ede3-cbc"] = CipherSpec("des-ede3-cbc", DES3, "cbc", 24)
    table["bf-cbc"] = CipherSpec("bf-cbc", Blowfish, "cbc", 16)

    return table


class CipherRegistry:
    """Exact, case-sensitive lookup of the ciphers this tool can drive."""

    def __init__(self) -> None:
        self._table = _build_table()

    def supported_ciphers(self) -> FrozenSet[str]:
        return frozenset(self._table)

    def is_supported(self, name: str) -> bool:
        return name in self._table

    def validate(self, name: str) -> None:
        """
        Check that `name` is a supported cipher.

        Raises:
            UnsupportedCipher: if it is not
        """

        if not self.is_supported(name):
            raise UnsupportedCipher(name)

    def get(self, name: str) -> CipherSpec:
        try:
            return self._table[name]
        except KeyError:
            raise UnsupportedCipher(name) from None


default_registry = CipherRegistry()
