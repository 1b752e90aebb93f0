"""
Credential store and lifecycle.

This module answers one question:
    "Which credential, if any, drives the filters of this repository?"

Responsibilities:
- Read the credential fresh from the repository config on every call
- Persist, replace and discard it (configure / rekey swap / flush / uninstall)
- Register and remove the filter, diff driver and helper alias
- Serialize every mutation behind one exclusive lock

This module does NOT:
- Encrypt or decrypt data
- Decide which files are managed
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, Optional

from .ciphers import CipherRegistry, default_registry
from .config import FILTER_NAME, FORMAT_VERSION, LIST_ALIAS, filter_command
from .errors import AlreadyConfigured, DirtyWorkingTree, NotConfigured, NothingCommitted
from .utils import exclusive_lock

if TYPE_CHECKING:
    from .git import GitRepository

logger = logging.getLogger(__name__)

SECTION = FILTER_NAME


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Credential:
    cipher: str
    password: str
    format_version: str = FORMAT_VERSION

    def __repr__(self) -> str:
        return (
            f"Credential(cipher={self.cipher!r}, password=<hidden>, "
            f"format_version={self.format_version!r})"
        )

    @classmethod
    def from_section(cls, values: Dict[str, str]) -> Optional["Credential"]:
        cipher = values.get("cipher", "")
        password = values.get("password", "")
        if not cipher or not password:
            return None
        return cls(
            cipher=cipher,
            password=password,
            format_version=values.get("version", FORMAT_VERSION),
        )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class CredentialStore:
    """
    The single credential slot of one repository.

    Filter roles only ever call load(); every other public method mutates
    and takes the mutation lock.
    """

    def __init__(self, repo: "GitRepository", registry: CipherRegistry = default_registry):
        self.repo = repo
        self.registry = registry

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def load(self) -> Optional[Credential]:
        """Read the current credential, or None when unconfigured."""
        return Credential.from_section(self.repo.config_get_section(SECTION))

    def is_configured(self) -> bool:
        return self.load() is not None

    def require(self) -> Credential:
        credential = self.load()
        if credential is None:
            raise NotConfigured()
        return credential

    def display(self) -> Credential:
        """
        Return the active credential so a clone can be configured the same way.

        Raises:
            NotConfigured
        """

        return self.require()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def mutation(self) -> Iterator[None]:
        with exclusive_lock(self.repo.lock_path):
            yield

    def configure(self, cipher: str, password: str) -> Credential:
        """
        Unconfigured -> Configured.

        Managed files already checked out encrypted are checked out again
        so they are decrypted with the new credential.

        Raises:
            AlreadyConfigured, UnsupportedCipher, DirtyWorkingTree, ValueError
        """

        with self.mutation():
            if self.is_configured():
                raise AlreadyConfigured()

            self.registry.validate(cipher)
            if not password:
                raise ValueError("Password must not be empty")
            self.require_clean_tree()

            credential = Credential(cipher=cipher, password=password)
            self._write(credential)
            self.register_filters()
            logger.debug("Configured repository with cipher %s", cipher)

            if self.repo.has_head():
                self.repo.force_checkout(self.repo.managed_files())

        return credential

    def replace(self, credential: Credential) -> None:
        """
        Swap the stored credential wholesale. Caller holds the mutation lock.

        Raises:
            NotConfigured, UnsupportedCipher, ValueError
        """

        if not self.is_configured():
            raise NotConfigured()

        self.registry.validate(credential.cipher)
        if not credential.password:
            raise ValueError("Password must not be empty")

        self._write(credential)
        logger.debug("Replaced credential, cipher now %s", credential.cipher)

    def flush(self) -> None:
        """
        Configured -> Unconfigured, then check managed files out again so
        they are left encrypted in the working tree.

        Raises:
            NotConfigured, NothingCommitted, DirtyWorkingTree
        """

        with self.mutation():
            self.require()
            managed = self.repo.managed_files()
            if managed and not self.repo.has_head():
                raise NothingCommitted()
            self.require_clean_tree()

            self.repo.config_remove_section(SECTION)
            logger.debug("Flushed credential")

            self.repo.force_checkout(managed)

    def uninstall(self) -> None:
        """
        Configured -> Unconfigured, removing filter registrations too.

        Working-tree files are left exactly as they are (decrypted).

        Raises:
            NotConfigured
        """

        with self.mutation():
            self.require()

            self.repo.config_remove_section(SECTION)
            self.unregister_filters()
            logger.debug("Uninstalled filters and credential")

    # ------------------------------------------------------------------
    # Filter registrations
    # ------------------------------------------------------------------

    def register_filters(self) -> None:
        self.repo.config_set(f"filter.{FILTER_NAME}.clean", filter_command("clean"))
        self.repo.config_set(f"filter.{FILTER_NAME}.smudge", filter_command("smudge"))
        self.repo.config_set(f"filter.{FILTER_NAME}.required", "true")
        self.repo.config_set(f"diff.{FILTER_NAME}.textconv", filter_command("textconv"))
        self.repo.config_set(f"alias.{LIST_ALIAS}", "!" + filter_command("list"))

    def unregister_filters(self) -> None:
        self.repo.config_remove_section(f"filter.{FILTER_NAME}")
        self.repo.config_remove_section(f"diff.{FILTER_NAME}")
        self.repo.config_unset(f"alias.{LIST_ALIAS}")

    def filters_registered(self) -> bool:
        return bool(self.repo.config_get_section(f"filter.{FILTER_NAME}"))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write(self, credential: Credential) -> None:
        self.repo.config_set(f"{SECTION}.version", credential.format_version)
        self.repo.config_set(f"{SECTION}.cipher", credential.cipher)
        self.repo.config_set(f"{SECTION}.password", credential.password)

    def require_clean_tree(self) -> None:
        if self.repo.has_head() and self.repo.has_uncommitted_changes():
            raise DirtyWorkingTree()
