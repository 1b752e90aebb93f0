"""
The three filter roles git invokes: clean, smudge and textconv.

Each call is stateless: the credential is read fresh from the store, one
file's bytes go in and one file's bytes come out.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .credentials import CredentialStore
from .envelope import EnvelopeCodec, default_codec, is_envelope
from .errors import ManagedFileIOError, NotConfigured

logger = logging.getLogger(__name__)


def clean(
    filename: str,
    data: bytes,
    store: CredentialStore,
    codec: EnvelopeCodec = default_codec,
) -> bytes:
    """
    Working-tree content -> stored content.

    Raises:
        NotConfigured: when plaintext would otherwise be stored unencrypted
    """

    if not data:
        return data

    if is_envelope(data):
        logger.debug("clean %s: already an envelope", filename)
        return data

    credential = store.load()
    if credential is None:
        raise NotConfigured()

    logger.debug("clean %s: encrypting %d bytes", filename, len(data))
    return codec.encrypt(data, credential, filename)


def smudge(
    data: bytes,
    store: CredentialStore,
    filename: Optional[str] = None,
    strict: bool = False,
    codec: EnvelopeCodec = default_codec,
) -> bytes:
    """Stored content -> working-tree content. Fails soft unless `strict`."""

    if not data or not is_envelope(data):
        return data

    credential = store.load()
    if credential is None:
        if strict:
            raise NotConfigured()
        logger.debug("smudge %s: no credential, passing through", filename or "-")
        return data

    return codec.decrypt(data, credential, strict=strict)


def textconv(
    path: str | Path,
    store: CredentialStore,
    strict: bool = False,
    codec: EnvelopeCodec = default_codec,
) -> bytes:
    """
    Stored content at `path` -> display text for diffs.

    Only reads `path`; nothing is ever written back.
    """

    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ManagedFileIOError(str(path), str(e)) from e

    return smudge(data, store, filename=str(path), strict=strict, codec=codec)
