"""Tests for the clean / smudge / textconv filter roles."""

import pytest

from repocrypt.credentials import Credential
from repocrypt.envelope import decrypt, is_envelope
from repocrypt.errors import DecryptionFailure, ManagedFileIOError, NotConfigured
from repocrypt.filters import clean, smudge, textconv


class TestClean:
    """Plaintext in, envelope out; idempotent."""

    def test_secret_scenario(self, configured_store):
        """Clean wraps content in an envelope that smudge opens again."""
        stored = clean("secret.txt", b"secret\n", configured_store)
        assert stored.startswith(b"U2FsdGVkX1")
        assert smudge(stored, configured_store) == b"secret\n"

    def test_idempotent(self, configured_store):
        once = clean("a.txt", b"payload", configured_store)
        twice = clean("a.txt", once, configured_store)
        assert twice == once

    def test_repeated_clean_is_byte_identical(self, configured_store):
        a = clean("a.txt", b"payload", configured_store)
        b = clean("a.txt", b"payload", configured_store)
        assert a == b

    def test_empty_passes_through(self, configured_store):
        assert clean("empty", b"", configured_store) == b""

    def test_unconfigured_refuses_plaintext(self, store):
        with pytest.raises(NotConfigured):
            clean("a.txt", b"payload", store)

    def test_unconfigured_passes_envelope(self, store, credential, configured_store):
        envelope = clean("a.txt", b"payload", configured_store)
        configured_store.repo.config_remove_section("repocrypt")
        assert clean("a.txt", envelope, store) == envelope

    def test_uses_current_credential(self, configured_store):
        """The credential is read fresh on every call."""
        first = clean("a.txt", b"payload", configured_store)
        configured_store.repo.config_set("repocrypt.password", "another")
        second = clean("a.txt", b"payload", configured_store)
        assert first != second
        assert decrypt(second, Credential("aes-256-cbc", "another")) == b"payload"


class TestSmudge:
    """Envelope in, plaintext out; fail soft."""

    def test_plaintext_passes_through(self, configured_store):
        assert smudge(b"not encrypted", configured_store) == b"not encrypted"

    def test_empty(self, configured_store):
        assert smudge(b"", configured_store) == b""

    def test_wrong_password_passes_through(self, configured_store):
        envelope = clean("a.txt", b"payload", configured_store)
        configured_store.repo.config_set("repocrypt.password", "wrong")
        assert smudge(envelope, configured_store) == envelope

    def test_unconfigured_passes_through(self, store, configured_store):
        envelope = clean("a.txt", b"payload", configured_store)
        configured_store.repo.config_remove_section("repocrypt")
        assert smudge(envelope, store) == envelope

    def test_unconfigured_strict_raises(self, store, configured_store):
        envelope = clean("a.txt", b"payload", configured_store)
        configured_store.repo.config_remove_section("repocrypt")
        with pytest.raises(NotConfigured):
            smudge(envelope, store, strict=True)

    def test_strict_wrong_password_raises(self, configured_store):
        envelope = clean("a.txt", b"payload", configured_store)
        configured_store.repo.config_set("repocrypt.password", "wrong")
        with pytest.raises(DecryptionFailure):
            smudge(envelope, configured_store, strict=True)


class TestTextconv:
    """Reads a stored file for display, never writes it."""

    def test_decrypts_file(self, configured_store, tmp_path):
        stored = clean("notes.txt", b"top secret\n", configured_store)
        path = tmp_path / "blob"
        path.write_bytes(stored)

        assert textconv(path, configured_store) == b"top secret\n"
        assert path.read_bytes() == stored

    def test_plain_file(self, configured_store, tmp_path):
        path = tmp_path / "plain"
        path.write_bytes(b"hello")
        assert textconv(str(path), configured_store) == b"hello"

    def test_missing_file(self, configured_store, tmp_path):
        with pytest.raises(ManagedFileIOError):
            textconv(tmp_path / "missing", configured_store)

    def test_clean_textconv_clean_is_stable(self, configured_store, tmp_path):
        """Clean(TextConv(Clean(p))) == Clean(p)."""
        stored = clean("a.txt", b"some text\n", configured_store)
        path = tmp_path / "a.txt"
        path.write_bytes(stored)

        shown = textconv(path, configured_store)
        assert clean("a.txt", shown, configured_store) == stored
        assert is_envelope(stored)
