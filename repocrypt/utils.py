"""
Shared utility helpers.

This module contains small, reusable helpers that do not belong
to the envelope format, the credential lifecycle, or git plumbing.
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import fcntl
import threading
from pathlib import Path
from typing import Iterator, Optional

from .config import ARMOR_LINE_LENGTH


# ---------------------------------------------------------------------------
# Text armor
# ---------------------------------------------------------------------------


def armor(data: bytes, width: int = ARMOR_LINE_LENGTH) -> bytes:
    """Base64-encode bytes, wrapped at `width` columns, newline terminated."""
    text = base64.b64encode(data)
    lines = [text[i : i + width] for i in range(0, len(text), width)]
    return b"\n".join(lines) + b"\n"


def dearmor(text: bytes) -> bytes:
    """
    Decode armored text produced by armor().

    Raises:
        ValueError: if the text is not valid base64
    """

    compact = b"".join(text.split())
    try:
        return base64.b64decode(compact, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid armor: {e}") from e


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory of a file exists."""
    path.parent.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Locking
# ---------------------------------------------------------------------------

_process_lock = threading.Lock()


@contextlib.contextmanager
def exclusive_lock(lock_path: Optional[Path]) -> Iterator[None]:
    """
    Hold the process-wide mutation lock and, if given, an flock on
    `lock_path` so other processes are serialized too.
    """

    with _process_lock:
        if lock_path is None:
            yield
            return

        ensure_parent_dir(lock_path)
        with lock_path.open("ab") as fh:
            fcntl.flock(fh, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)
