"""
Rekey orchestration.

Swaps the repository credential and re-encrypts every managed file under
the new one. Each stored blob is decrypted with the credential that was
active before the swap and re-encrypted with the new credential, then
staged directly into the index. Nothing is committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .credentials import Credential, CredentialStore
from .envelope import EnvelopeCodec, default_codec
from .errors import DecryptionFailure, GitError, ManagedFileIOError, RekeyError

logger = logging.getLogger(__name__)


@dataclass
class RekeyResult:
    credential: Credential
    staged: List[str] = field(default_factory=list)


def rekey(
    store: CredentialStore,
    cipher: str,
    password: str,
    codec: EnvelopeCodec = default_codec,
) -> RekeyResult:
    """
    Replace the credential and re-encrypt all managed files.

    The old credential is dropped from the store before the first file is
    touched; it only survives in this call to read the existing blobs.
    A file that cannot be read with the old credential stops the run;
    files handled before it stay staged.

    Raises:
        NotConfigured, UnsupportedCipher, DirtyWorkingTree, RekeyError
    """

    repo = store.repo

    with store.mutation():
        old = store.require()
        store.registry.validate(cipher)
        if not password:
            raise ValueError("Password must not be empty")
        store.require_clean_tree()

        new = Credential(cipher=cipher, password=password)
        paths = repo.managed_files()
        store.replace(new)

        result = RekeyResult(credential=new)

        for path in paths:
            try:
                stored = repo.read_index_blob(path)
                plaintext = codec.decrypt(stored, old, strict=True)
            except DecryptionFailure as e:
                raise RekeyError(path, str(e), staged=result.staged) from e
            except (GitError, ManagedFileIOError) as e:
                raise RekeyError(path, f"cannot read stored content: {e}", staged=result.staged) from e

            try:
                repo.stage_blob(path, codec.encrypt(plaintext, new, path))
            except (GitError, ManagedFileIOError) as e:
                raise RekeyError(path, f"cannot stage: {e}", staged=result.staged) from e

            result.staged.append(path)
            logger.debug("rekey: re-encrypted %s", path)

    return result
