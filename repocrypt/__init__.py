"""
repocrypt

Transparent, deterministic per-file encryption for git repositories.
Files selected through .gitattributes are stored encrypted and checked
out as plaintext via clean/smudge/textconv filters.
"""

__version__ = "0.1.0"

from .ciphers import CipherRegistry
from .credentials import Credential, CredentialStore
from .envelope import EnvelopeCodec, decrypt, encrypt, is_envelope
from .filters import clean, smudge, textconv
from .rekey import rekey
from .salt import derive_salt

__all__ = [
    "CipherRegistry",
    "Credential",
    "CredentialStore",
    "EnvelopeCodec",
    "encrypt",
    "decrypt",
    "is_envelope",
    "clean",
    "smudge",
    "textconv",
    "rekey",
    "derive_salt",
]
