"""
Persistent token slot for the session client.

The stores mirror browser local storage: a string value under a well-known
key, read and written synchronously.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..config import ClientConfig

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_KEY = "token"


class TokenStorage(ABC):
    """Single-slot token storage."""

    @abstractmethod
    def get_token(self) -> Optional[str]:
        """Return the persisted token, or None."""

    @abstractmethod
    def set_token(self, token: str) -> None:
        """Persist the token, replacing any previous one."""

    @abstractmethod
    def remove_token(self) -> None:
        """Forget the persisted token. Never fails if none is stored."""


class MemoryTokenStorage(TokenStorage):
    """Token storage that lives as long as the process."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def remove_token(self) -> None:
        self._token = None


class FileTokenStorage(TokenStorage):
    """
    Token storage backed by a JSON file shared with other keys.

    Unreadable or corrupt files are treated as empty so that a damaged file
    degrades to an anonymous session instead of a crash.
    """

    def __init__(self, path: str, key: str = DEFAULT_TOKEN_KEY):
        self.path = Path(path).expanduser()
        self.key = key

    @classmethod
    def from_config(cls, config: ClientConfig) -> "FileTokenStorage":
        return cls(config.storage_path, config.token_key)

    def _read(self) -> Dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable token storage {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def get_token(self) -> Optional[str]:
        value = self._read().get(self.key)
        return value if isinstance(value, str) and value else None

    def set_token(self, token: str) -> None:
        data = self._read()
        data[self.key] = token
        self._write(data)

    def remove_token(self) -> None:
        data = self._read()
        if self.key not in data:
            return
        del data[self.key]
        try:
            self._write(data)
        except OSError as e:
            logger.error(f"Failed to remove token from {self.path}: {e}")
