"""Tests for the optional YAML settings file."""

import pytest

from repocrypt.errors import SettingsError
from repocrypt.settings import Settings


class TestSettings:
    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("REPOCRYPT_SETTINGS", raising=False)
        settings = Settings.discover(tmp_path)
        assert settings.default_cipher == "aes-256-cbc"
        assert settings.password_length == 30
        assert settings.gpg.import_attempts == 3

    def test_load_from_top_level(self, tmp_path, monkeypatch):
        monkeypatch.delenv("REPOCRYPT_SETTINGS", raising=False)
        (tmp_path / ".repocrypt.yml").write_text(
            "version: 1\n"
            "default_cipher: aes-128-ctr\n"
            "password_length: 48\n"
            "gpg:\n"
            "  recipient: ops@example.com\n"
            "  import_attempts: 5\n"
        )
        settings = Settings.discover(tmp_path)
        assert settings.default_cipher == "aes-128-ctr"
        assert settings.password_length == 48
        assert settings.gpg.recipient == "ops@example.com"
        assert settings.gpg.import_attempts == 5

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "elsewhere.yml"
        path.write_text("default_cipher: bf-cbc\n")
        monkeypatch.setenv("REPOCRYPT_SETTINGS", str(path))
        assert Settings.discover(tmp_path / "repo").default_cipher == "bf-cbc"

    @pytest.mark.parametrize("body", [
        "version: 2\n",
        "default_cipher: AES-256-CBC\n",
        "password_length: 0\n",
        "gpg: [1, 2]\n",
        "gpg:\n  import_attempts: -1\n",
        "- just\n- a list\n",
        "key: [unclosed\n",
    ])
    def test_invalid(self, tmp_path, body):
        path = tmp_path / "bad.yml"
        path.write_text(body)
        with pytest.raises(SettingsError):
            Settings.load(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SettingsError):
            Settings.load(tmp_path / "missing.yml")
