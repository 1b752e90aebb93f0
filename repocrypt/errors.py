"""
Exception hierarchy.

Every error the tool raises on purpose derives from RepocryptError so the
CLI can report it as a clean message instead of a traceback.
"""

from __future__ import annotations

from typing import List, Optional


class RepocryptError(RuntimeError):
    """Base class for all expected failures."""


class UnsupportedCipher(RepocryptError):
    def __init__(self, name: str):
        super().__init__(f"Unsupported cipher: {name!r}")
        self.name = name


class EncryptionError(RepocryptError):
    pass


class DecryptionFailure(RepocryptError):
    pass


class AlreadyConfigured(RepocryptError):
    def __init__(self) -> None:
        super().__init__(
            "Repository is already configured; flush or uninstall first"
        )


class NotConfigured(RepocryptError):
    def __init__(self) -> None:
        super().__init__("Repository is not configured for encryption")


class DirtyWorkingTree(RepocryptError):
    def __init__(self) -> None:
        super().__init__(
            "Repository has uncommitted changes; commit or stash them first"
        )


class NothingCommitted(RepocryptError):
    def __init__(self) -> None:
        super().__init__(
            "Managed files are staged but nothing is committed yet; commit first"
        )


class ManagedFileIOError(RepocryptError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path


class RekeyError(ManagedFileIOError):
    def __init__(self, path: str, reason: str, staged: Optional[List[str]] = None):
        super().__init__(path, reason)
        self.staged = list(staged or [])


class GitError(RepocryptError):
    pass


class GpgError(RepocryptError):
    pass


class SettingsError(RepocryptError):
    pass
