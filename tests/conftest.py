"""Shared test fixtures for repocrypt."""

from typing import Dict, List, Optional, Sequence

import pytest

from repocrypt.credentials import Credential, CredentialStore
from repocrypt.errors import ManagedFileIOError
from repocrypt.filters import clean, smudge


class FakeRepository:
    """
    In-memory stand-in for GitRepository.

    Keeps a flat config, a HEAD tree, an index and a working tree of
    path -> bytes. Checkouts and commits drive the real filters the way
    git would.
    """

    lock_path = None

    def __init__(self) -> None:
        self.config: Dict[str, str] = {}
        self.head: Dict[str, bytes] = {}
        self.index: Dict[str, bytes] = {}
        self.worktree: Dict[str, bytes] = {}
        self.managed: List[str] = []
        self.edited: set = set()
        self.checkouts: List[List[str]] = []
        self.unreadable: set = set()

    # config ----------------------------------------------------------

    def config_get_section(self, section: str) -> Dict[str, str]:
        prefix = section + "."
        return {
            key[len(prefix):]: value
            for key, value in self.config.items()
            if key.startswith(prefix)
        }

    def config_set(self, key: str, value: str) -> None:
        self.config[key] = value

    def config_unset(self, key: str) -> None:
        self.config.pop(key, None)

    def config_remove_section(self, section: str) -> None:
        for key in list(self.config_get_section(section)):
            del self.config[f"{section}.{key}"]

    # tree ------------------------------------------------------------

    def has_head(self) -> bool:
        return bool(self.head)

    def has_uncommitted_changes(self) -> bool:
        return bool(self.edited) or self.index != self.head

    def managed_files(self) -> List[str]:
        return list(self.managed)

    def read_index_blob(self, path: str) -> bytes:
        if path in self.unreadable or path not in self.index:
            raise ManagedFileIOError(path, "not in the index")
        return self.index[path]

    def stage_blob(self, path: str, data: bytes) -> None:
        self.index[path] = data

    def force_checkout(self, paths: Sequence[str]) -> None:
        for path in paths:
            if path not in self.index:
                raise ManagedFileIOError(path, "not in the index")
        self.checkouts.append(list(paths))
        store = CredentialStore(self)
        for path in paths:
            self.worktree[path] = smudge(self.index[path], store, filename=path)

    # helpers for tests -----------------------------------------------

    def commit(self, path: str, content: bytes, managed: bool = True) -> None:
        """Write, stage (through clean) and commit one file."""
        if managed and path not in self.managed:
            self.managed.append(path)
        self.worktree[path] = content
        stored = clean(path, content, CredentialStore(self)) if managed else content
        self.index[path] = stored
        self.head[path] = stored

    def add(self, path: str, content: bytes) -> None:
        """Write and stage one managed file without committing it."""
        if path not in self.managed:
            self.managed.append(path)
        self.worktree[path] = content
        self.index[path] = clean(path, content, CredentialStore(self))

    def commit_index(self) -> None:
        self.head = dict(self.index)

    def edit(self, path: str, content: bytes) -> None:
        self.worktree[path] = content
        self.edited.add(path)


@pytest.fixture
def repo() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def store(repo) -> CredentialStore:
    return CredentialStore(repo)


@pytest.fixture
def configured_store(store) -> CredentialStore:
    store.configure("aes-256-cbc", "correct-horse")
    return store


@pytest.fixture
def credential() -> Credential:
    return Credential(cipher="aes-256-cbc", password="correct-horse")


class FakeGpgRunner:
    """Records gpg calls; fails the first `failures` decrypts."""

    def __init__(self, plaintext: bytes = b"", failures: int = 0):
        self.plaintext = plaintext
        self.failures = failures
        self.decrypt_calls = 0
        self.encrypted: Optional[tuple] = None

    def encrypt(self, data, recipient, output) -> None:
        self.encrypted = (data, recipient, output)
        output.write_bytes(b"-----BEGIN PGP MESSAGE-----\n")

    def decrypt(self, path) -> bytes:
        from repocrypt.errors import GpgError

        self.decrypt_calls += 1
        if self.decrypt_calls <= self.failures:
            raise GpgError("gpg: decryption failed: No secret key")
        return self.plaintext


@pytest.fixture
def gpg_runner_factory():
    return FakeGpgRunner
