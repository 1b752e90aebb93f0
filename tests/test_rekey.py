"""Tests for the rekey orchestrator."""

import pytest

from repocrypt.credentials import Credential
from repocrypt.envelope import decrypt, encrypt
from repocrypt.errors import DirtyWorkingTree, NotConfigured, RekeyError, UnsupportedCipher
from repocrypt.rekey import rekey

OLD = Credential("aes-256-cbc", "old")
NEW = Credential("aes-256-cbc", "new")


@pytest.fixture
def old_store(store):
    store.configure(OLD.cipher, OLD.password)
    return store


class TestRekey:
    """Old credential reads, new credential writes, result staged."""

    def test_old_to_new(self, old_store, repo):
        repo.commit("secret.txt", b"secret\n")
        before = repo.index["secret.txt"]

        result = rekey(old_store, "aes-256-cbc", "new")

        staged = repo.index["secret.txt"]
        assert result.staged == ["secret.txt"]
        assert staged != before
        assert decrypt(staged, NEW) == b"secret\n"
        assert decrypt(staged, OLD) == staged

    def test_store_holds_new_credential(self, old_store, repo):
        repo.commit("a.txt", b"a")
        rekey(old_store, "aes-128-ctr", "new")
        assert old_store.load() == Credential("aes-128-ctr", "new")

    def test_stages_without_committing(self, old_store, repo):
        repo.commit("a.txt", b"a")
        head_before = dict(repo.head)
        rekey(old_store, "aes-256-cbc", "new")
        assert repo.head == head_before
        assert repo.has_uncommitted_changes()

    def test_working_tree_untouched(self, old_store, repo):
        repo.commit("a.txt", b"plain a")
        rekey(old_store, "aes-256-cbc", "new")
        assert repo.worktree["a.txt"] == b"plain a"

    def test_staged_matches_fresh_clean(self, old_store, repo):
        """After rekey the working tree cleans to exactly the staged blob."""
        from repocrypt.filters import clean

        repo.commit("a.txt", b"plain a")
        rekey(old_store, "aes-256-cbc", "new")
        assert clean("a.txt", repo.worktree["a.txt"], old_store) == repo.index["a.txt"]

    def test_plaintext_blob_gets_encrypted(self, old_store, repo):
        """A managed file committed before the filter applied is encrypted too."""
        repo.commit("legacy.txt", b"was plain", managed=False)
        repo.managed.append("legacy.txt")
        rekey(old_store, "aes-256-cbc", "new")
        assert decrypt(repo.index["legacy.txt"], NEW) == b"was plain"

    def test_no_managed_files(self, old_store):
        result = rekey(old_store, "aes-256-cbc", "new")
        assert result.staged == []
        assert old_store.load() == NEW


class TestRekeyPreconditions:
    """Misuse is surfaced before anything changes."""

    def test_unconfigured(self, store):
        with pytest.raises(NotConfigured):
            rekey(store, "aes-256-cbc", "new")

    def test_unsupported_cipher_keeps_old(self, old_store, repo):
        repo.commit("a.txt", b"a")
        with pytest.raises(UnsupportedCipher):
            rekey(old_store, "Aes-256-Cbc", "new")
        assert old_store.load() == OLD

    def test_empty_password(self, old_store):
        with pytest.raises(ValueError):
            rekey(old_store, "aes-256-cbc", "")
        assert old_store.load() == OLD

    def test_dirty_tree(self, old_store, repo):
        repo.commit("a.txt", b"a")
        repo.edit("a.txt", b"changed")
        with pytest.raises(DirtyWorkingTree):
            rekey(old_store, "aes-256-cbc", "new")
        assert old_store.load() == OLD


class TestRekeyFailure:
    """A file unreadable under the old credential stops the run."""

    def test_stops_at_failing_path(self, old_store, repo):
        repo.commit("a.txt", b"first")
        foreign = encrypt(b"second", Credential("aes-256-cbc", "someone-else"), "b.txt")
        repo.managed.append("b.txt")
        repo.index["b.txt"] = repo.head["b.txt"] = foreign
        repo.commit("c.txt", b"third")

        with pytest.raises(RekeyError) as exc:
            rekey(old_store, "aes-256-cbc", "new")

        assert exc.value.path == "b.txt"
        assert exc.value.staged == ["a.txt"]
        assert decrypt(repo.index["a.txt"], NEW) == b"first"
        assert repo.index["b.txt"] == foreign
        assert decrypt(repo.index["c.txt"], OLD) == b"third"
        assert old_store.load() == NEW

    def test_unreadable_index_entry(self, old_store, repo):
        repo.commit("a.txt", b"first")
        repo.unreadable.add("a.txt")
        with pytest.raises(RekeyError) as exc:
            rekey(old_store, "aes-256-cbc", "new")
        assert exc.value.path == "a.txt"
        assert exc.value.staged == []
