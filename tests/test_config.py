"""Tests for oauthlet.config -- provider files and secret sources."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from oauthlet.config import load_provider, resolve_secret
from oauthlet.exceptions import ConfigurationError
from oauthlet.models import OAuthConfig


def _write_json(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadProvider:
    def test_minimal_file(self, tmp_path: Path) -> None:
        path = _write_json(
            tmp_path / "provider.json",
            {"auth_url": "https://p.example.com/auth", "token_url": "https://p.example.com/token"},
        )
        assert load_provider(path) == {
            "auth_url": "https://p.example.com/auth",
            "token_url": "https://p.example.com/token",
            "scope": "",
        }

    def test_full_file_builds_config(self, tmp_path: Path) -> None:
        path = _write_json(
            tmp_path / "provider.json",
            {
                "auth_url": "https://p.example.com/auth",
                "token_url": "https://p.example.com/token",
                "scope": "email profile",
                "redirect_url": "http://localhost:8080/cb",
                "token_scheme": "OAuth",
            },
        )
        config = OAuthConfig(client_id="id", client_secret="s", **load_provider(str(path)))
        assert config.scope == "email profile"
        assert config.redirect_uri == "http://localhost:8080/cb"
        assert config.token_scheme == "OAuth"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_provider(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "provider.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid provider file"):
            load_provider(path)

    def test_missing_endpoint(self, tmp_path: Path) -> None:
        path = _write_json(tmp_path / "provider.json", {"auth_url": "https://p.example.com/auth"})
        with pytest.raises(ConfigurationError, match="token_url"):
            load_provider(path)

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        path = _write_json(
            tmp_path / "provider.json",
            {
                "auth_url": "https://p.example.com/auth",
                "token_url": "https://p.example.com/token",
                "client_secret": "should not live here",
            },
        )
        with pytest.raises(ConfigurationError, match="client_secret"):
            load_provider(path)


class TestResolveSecret:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_SECRET", "from-env")
        assert resolve_secret("env:MY_SECRET") == "from-env"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_SECRET", raising=False)
        with pytest.raises(ConfigurationError, match="MY_SECRET"):
            resolve_secret("env:MY_SECRET")

    def test_file_is_stripped(self, tmp_path: Path) -> None:
        path = tmp_path / "secret.txt"
        path.write_text("  from-file\n", encoding="utf-8")
        assert resolve_secret(f"file:{path}") == "from-file"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_secret(f"file:{tmp_path / 'nope'}")

    def test_prompt_requires_tty(self) -> None:
        with patch("oauthlet.config.sys.stdin") as stdin:
            stdin.isatty.return_value = False
            with pytest.raises(ConfigurationError, match="not a TTY"):
                resolve_secret("prompt")

    def test_prompt_reads_with_getpass(self) -> None:
        with patch("oauthlet.config.sys.stdin") as stdin, patch(
            "oauthlet.config.getpass.getpass", return_value="typed"
        ) as getpass:
            stdin.isatty.return_value = True
            assert resolve_secret("prompt") == "typed"
        getpass.assert_called_once()

    def test_literal(self) -> None:
        assert resolve_secret("plain-secret") == "plain-secret"
