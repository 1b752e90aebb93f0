"""
Git plumbing used by the credential lifecycle and the rekey orchestrator.

Only the handful of operations the tool consumes are wrapped here:
repository config, managed-file enumeration, raw index blobs and forced
checkouts. Nothing in this module knows about encryption.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import FILTER_NAME, LOCK_FILE_NAME, git_program
from .errors import GitError, ManagedFileIOError

logger = logging.getLogger(__name__)


class GitRepository:
    def __init__(self, path: str | Path = "."):
        self.cwd = Path(path)
        self._top_level: Optional[Path] = None
        self._git_dir: Optional[Path] = None

    @classmethod
    def discover(cls, path: str | Path = ".") -> "GitRepository":
        """Open the repository containing `path`, rooted at its top level."""
        repo = cls(path)
        return cls(repo.top_level)

    # ------------------------------------------------------------------
    # Process helpers
    # ------------------------------------------------------------------

    def run(
        self,
        args: Sequence[str],
        input: Optional[bytes] = None,
        ok_codes: Iterable[int] = (0,),
    ) -> subprocess.CompletedProcess:
        cmd = [git_program(), *args]
        logger.debug("run: %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                cwd=self.cwd,
                input=input,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise GitError(f"Cannot run {cmd[0]}: {e}") from e

        if result.returncode not in ok_codes:
            stderr = result.stderr.decode("utf-8", "replace").strip()
            raise GitError(f"git {args[0]} failed ({result.returncode}): {stderr}")

        return result

    def output(self, args: Sequence[str], input: Optional[bytes] = None) -> bytes:
        return self.run(args, input=input).stdout

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    @property
    def top_level(self) -> Path:
        if self._top_level is None:
            out = self.output(["rev-parse", "--show-toplevel"])
            self._top_level = Path(out.decode("utf-8").strip())
        return self._top_level

    @property
    def git_dir(self) -> Path:
        if self._git_dir is None:
            out = self.output(["rev-parse", "--absolute-git-dir"])
            self._git_dir = Path(out.decode("utf-8").strip())
        return self._git_dir

    @property
    def lock_path(self) -> Path:
        return self.git_dir / LOCK_FILE_NAME

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def config_get_section(self, section: str) -> Dict[str, str]:
        """
        Read every key under `section` in one call.

        Returns:
            dict mapping the key name (without the section prefix) to its value
        """

        pattern = "^" + re.escape(section) + r"\."
        result = self.run(
            ["config", "--local", "-z", "--get-regexp", pattern],
            ok_codes=(0, 1),
        )

        values: Dict[str, str] = {}
        for entry in result.stdout.split(b"\0"):
            if not entry:
                continue
            key, _, value = entry.decode("utf-8").partition("\n")
            values[key[len(section) + 1:]] = value
        return values

    def config_set(self, key: str, value: str) -> None:
        self.run(["config", "--local", key, value])

    def config_unset(self, key: str) -> None:
        # 5: key not present
        self.run(["config", "--local", "--unset-all", key], ok_codes=(0, 5))

    def config_remove_section(self, section: str) -> None:
        if not self.config_get_section(section):
            return
        self.run(["config", "--local", "--remove-section", section])

    # ------------------------------------------------------------------
    # Working tree / index
    # ------------------------------------------------------------------

    def has_head(self) -> bool:
        result = self.run(["rev-parse", "--verify", "--quiet", "HEAD"], ok_codes=(0, 1))
        return result.returncode == 0

    def has_uncommitted_changes(self) -> bool:
        out = self.output(["status", "--porcelain", "--untracked-files=no"])
        return bool(out.strip())

    def managed_files(self) -> List[str]:
        """
        Return the tracked paths whose `filter` attribute selects this tool.

        Queried from git on every call.
        """

        listed = self.output(["-c", "core.quotePath=false", "ls-files", "-z"])
        if not listed:
            return []

        out = self.output(["check-attr", "-z", "--stdin", "filter"], input=listed)
        fields = out.split(b"\0")

        paths: List[str] = []
        for i in range(0, len(fields) - 2, 3):
            path, _attr, value = fields[i : i + 3]
            if value.decode("utf-8") == FILTER_NAME:
                paths.append(path.decode("utf-8"))
        return paths

    def _index_entry(self, path: str) -> Tuple[str, str]:
        out = self.output(["--literal-pathspecs", "ls-files", "-s", "-z", "--", path])
        for entry in out.split(b"\0"):
            if not entry:
                continue
            meta, _, name = entry.decode("utf-8").partition("\t")
            if name == path:
                mode, sha, _stage = meta.split(" ")
                return mode, sha
        raise ManagedFileIOError(path, "not in the index")

    def read_index_blob(self, path: str) -> bytes:
        """Return the stored (clean-side) bytes of `path` without filters."""
        _mode, sha = self._index_entry(path)
        return self.output(["cat-file", "blob", sha])

    def stage_blob(self, path: str, data: bytes) -> None:
        """Store `data` verbatim as the staged content of `path`."""
        mode, _sha = self._index_entry(path)
        sha = self.output(["hash-object", "-w", "--no-filters", "--stdin"], input=data)
        sha_hex = sha.decode("ascii").strip()
        self.run(["update-index", "--cacheinfo", f"{mode},{sha_hex},{path}"])

    def force_checkout(self, paths: Sequence[str]) -> None:
        """
        Write `paths` out of the index again so the smudge filter runs with
        whatever credential is current.

        Working copies are moved aside first (git skips files whose stat
        data still matches the index) and put back if the checkout fails.
        """

        if not paths:
            return

        for path in paths:
            self._index_entry(path)

        backup_dir = Path(tempfile.mkdtemp(prefix="checkout-", dir=self.git_dir))
        moved: List[Tuple[Path, Path]] = []
        try:
            for i, path in enumerate(paths):
                src = self.cwd / path
                if not (src.exists() or src.is_symlink()):
                    continue
                dst = backup_dir / str(i)
                try:
                    os.replace(src, dst)
                except OSError as e:
                    raise ManagedFileIOError(path, str(e)) from e
                moved.append((src, dst))

            listed = b"".join(p.encode("utf-8") + b"\0" for p in paths)
            self.run(["checkout-index", "--force", "-u", "-z", "--stdin"], input=listed)
        except (GitError, ManagedFileIOError):
            for src, dst in moved:
                os.replace(dst, src)
            raise
        finally:
            shutil.rmtree(backup_dir, ignore_errors=True)

        logger.debug("Re-checked out %d managed file(s)", len(paths))
