"""Google credential holder backed by a local token file.

The OAuth consent flow writes the tokens to disk. This module reads them,
re-reads the file when it changes, stores refreshed access tokens and
forgets everything on logout.
"""

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class FileTokenAuthCapability:
    """Reads Google OAuth tokens from a JSON file.

    Tokens are cached against the file's modification time, so a file written
    by the consent flow after startup is picked up on the next call.
    `invalidate()` clears the cache and removes the file.
    """

    def __init__(self, token_path: Union[str, Path]) -> None:
        self._token_path = Path(token_path)
        self._tokens: Optional[dict[str, Any]] = None
        self._mtime_ns: Optional[int] = None
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def token_path(self) -> Path:
        return self._token_path

    def _file_mtime_ns(self) -> Optional[int]:
        try:
            return self._token_path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def load(self) -> Optional[dict[str, Any]]:
        """Return the cached tokens, reading the file again if it changed."""
        with self._lock:
            mtime_ns = self._file_mtime_ns()
            if not self._loaded or mtime_ns != self._mtime_ns:
                if mtime_ns is None:
                    logger.info(f"No Google tokens at {self._token_path}")
                    self._tokens = None
                else:
                    self._tokens = self._read()
                self._mtime_ns = mtime_ns
                self._loaded = True
            return self._tokens

    def _read(self) -> Optional[dict[str, Any]]:
        try:
            data = json.loads(self._token_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable Google token file {self._token_path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Google token file {self._token_path} does not hold a JSON object")
            return None
        logger.info("🔑 Google tokens loaded")
        return data

    def is_authenticated(self) -> bool:
        tokens = self.load()
        return bool(tokens and tokens.get("access_token"))

    @property
    def access_token(self) -> Optional[str]:
        tokens = self.load()
        return tokens.get("access_token") if tokens else None

    @property
    def refresh_token(self) -> Optional[str]:
        tokens = self.load()
        return tokens.get("refresh_token") if tokens else None

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    def save(self, tokens: dict[str, Any]) -> None:
        """Persist tokens obtained from the consent flow."""
        with self._lock:
            self._write(dict(tokens))
        logger.info(f"Google tokens saved to {self._token_path}")

    def update_tokens(self, refreshed: dict[str, Any]) -> None:
        """Merge a token endpoint response into the stored tokens.

        Google omits the refresh token from refresh responses, so the stored
        one is kept unless a new one is returned.
        """
        current = self.load()
        with self._lock:
            tokens = dict(current or {})
            tokens.update({key: value for key, value in refreshed.items() if value is not None})
            expires_in = refreshed.get("expires_in")
            if isinstance(expires_in, (int, float)):
                tokens["expiry_date"] = int((time.time() + expires_in) * 1000)
            self._write(tokens)

    def _write(self, tokens: dict[str, Any]) -> None:
        self._token_path.write_text(json.dumps(tokens, indent=2), encoding="utf-8")
        self._tokens = tokens
        self._mtime_ns = self._file_mtime_ns()
        self._loaded = True

    def invalidate(self) -> None:
        """Forget the tokens and delete the token file."""
        with self._lock:
            self._tokens = None
            self._token_path.unlink(missing_ok=True)
            self._mtime_ns = None
            self._loaded = True
        logger.info("Google tokens cleared")

    def status(self) -> dict[str, bool]:
        """Connection status as reported to the client."""
        return {"authenticated": self.is_authenticated(), "has_refresh_token": self.has_refresh_token}
