"""Unit tests for FileTokenAuthCapability."""

import json
import os
from unittest.mock import patch

from infrastructure.google.auth_capability import FileTokenAuthCapability


def write_tokens(path, tokens) -> None:
    path.write_text(json.dumps(tokens), encoding="utf-8")


def bump_mtime(path) -> None:
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))


class TestFileTokenAuthCapability:
    """Test token loading, reloading, refresh storage and invalidation."""

    def test_missing_file(self, tmp_path):
        """Test that a missing token file means not authenticated."""
        auth = FileTokenAuthCapability(tmp_path / "tokens.json")

        assert auth.is_authenticated() is False
        assert auth.access_token is None
        assert auth.status() == {"authenticated": False, "has_refresh_token": False}

    def test_loads_tokens(self, tmp_path):
        """Test reading access and refresh tokens."""
        path = tmp_path / "tokens.json"
        write_tokens(path, {"access_token": "ya29.abc", "refresh_token": "1//r"})
        auth = FileTokenAuthCapability(path)

        assert auth.is_authenticated() is True
        assert auth.access_token == "ya29.abc"
        assert auth.status() == {"authenticated": True, "has_refresh_token": True}

    def test_unchanged_file_read_once(self, tmp_path):
        """Test that an unchanged file is not read again."""
        path = tmp_path / "tokens.json"
        write_tokens(path, {"access_token": "first"})
        auth = FileTokenAuthCapability(path)

        with patch.object(auth, "_read", wraps=auth._read) as read:
            assert auth.access_token == "first"
            assert auth.access_token == "first"
            assert auth.is_authenticated() is True

        assert read.call_count == 1

    def test_rewritten_file_reloaded(self, tmp_path):
        """Test that tokens written after the first read are picked up."""
        path = tmp_path / "tokens.json"
        write_tokens(path, {"access_token": "first"})
        auth = FileTokenAuthCapability(path)
        assert auth.access_token == "first"

        write_tokens(path, {"access_token": "second"})
        bump_mtime(path)

        assert auth.access_token == "second"

    def test_file_written_after_missing(self, tmp_path):
        """Test that a token file created after startup is picked up."""
        path = tmp_path / "tokens.json"
        auth = FileTokenAuthCapability(path)
        assert auth.is_authenticated() is False

        write_tokens(path, {"access_token": "ya29", "refresh_token": "1//r"})

        assert auth.is_authenticated() is True
        assert auth.refresh_token == "1//r"

    def test_empty_access_token(self, tmp_path):
        """Test that a file without an access token is not authenticated."""
        path = tmp_path / "tokens.json"
        write_tokens(path, {"refresh_token": "1//r"})
        auth = FileTokenAuthCapability(path)

        assert auth.is_authenticated() is False
        assert auth.has_refresh_token is True

    def test_corrupt_file(self, tmp_path):
        """Test that an unreadable file is treated as no tokens."""
        path = tmp_path / "tokens.json"
        path.write_text("{not json", encoding="utf-8")
        auth = FileTokenAuthCapability(path)

        assert auth.is_authenticated() is False

    def test_invalidate(self, tmp_path):
        """Test that invalidate forgets the tokens and removes the file."""
        path = tmp_path / "tokens.json"
        write_tokens(path, {"access_token": "ya29.abc"})
        auth = FileTokenAuthCapability(path)
        assert auth.is_authenticated() is True

        auth.invalidate()

        assert auth.is_authenticated() is False
        assert not path.exists()

    def test_invalidate_without_file(self, tmp_path):
        """Test that invalidating twice is harmless."""
        auth = FileTokenAuthCapability(tmp_path / "tokens.json")

        auth.invalidate()
        auth.invalidate()

        assert auth.is_authenticated() is False

    def test_save(self, tmp_path):
        """Test that saved tokens are persisted and used."""
        path = tmp_path / "tokens.json"
        auth = FileTokenAuthCapability(path)

        auth.save({"access_token": "new"})

        assert auth.access_token == "new"
        assert json.loads(path.read_text(encoding="utf-8")) == {"access_token": "new"}

    def test_invalidate_then_new_login(self, tmp_path):
        """Test that tokens from a later login are used after logout."""
        path = tmp_path / "tokens.json"
        write_tokens(path, {"access_token": "old"})
        auth = FileTokenAuthCapability(path)
        assert auth.access_token == "old"

        auth.invalidate()
        write_tokens(path, {"access_token": "new"})

        assert auth.access_token == "new"

    def test_update_tokens_keeps_refresh_token(self, tmp_path):
        """Test that a refresh response replaces the access token only."""
        path = tmp_path / "tokens.json"
        write_tokens(path, {"access_token": "expired", "refresh_token": "1//r", "scope": "gmail.send"})
        auth = FileTokenAuthCapability(path)

        auth.update_tokens({"access_token": "fresh", "expires_in": 3599, "refresh_token": None})

        assert auth.access_token == "fresh"
        assert auth.refresh_token == "1//r"
        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored["scope"] == "gmail.send"
        assert stored["expires_in"] == 3599
        assert isinstance(stored["expiry_date"], int)
