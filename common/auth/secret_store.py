"""
Secret storage backends for App Store Connect credentials.

The monitor keeps exactly one credential set. It only needs three operations
from a store: get, store and delete by key. InMemorySecretStore is meant for
tests and embedding hosts that bring their own persistence; DotenvSecretStore
keeps the values in a private dotenv file.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from dotenv import get_key, set_key, unset_key

logger = logging.getLogger(__name__)


class SecretStore(ABC):
    """Minimal async key-value interface for secrets."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    async def store(self, key: str, value: str) -> None:
        """Create or replace a value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value; missing keys are ignored."""


class InMemorySecretStore(SecretStore):
    """Process-local secret store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def store(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)


def dotenv_variable_name(key: str) -> str:
    """Map a dotted camelCase secret key to an upper snake case variable name.

    >>> dotenv_variable_name("xcodeCloud.apiKeyId")
    'XCODE_CLOUD_API_KEY_ID'
    """
    snake = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", key)
    return re.sub(r"[^A-Za-z0-9]+", "_", snake).upper()


class DotenvSecretStore(SecretStore):
    """Secret store backed by a dotenv file readable only by the owner."""

    def __init__(self, path: str):
        """Initialize the store.

        Args:
            path: Location of the dotenv file (created on first write)
        """
        self.path = Path(path).expanduser()

    def _ensure_file(self) -> None:
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(mode=0o600)
        logger.info(f"Created secrets file at {self.path}")

    async def get(self, key: str) -> Optional[str]:
        if not self.path.exists():
            return None
        value = get_key(str(self.path), dotenv_variable_name(key))
        return value or None

    async def store(self, key: str, value: str) -> None:
        self._ensure_file()
        set_key(str(self.path), dotenv_variable_name(key), value, quote_mode="always")
        os.chmod(self.path, 0o600)

    async def delete(self, key: str) -> None:
        if not self.path.exists():
            return
        name = dotenv_variable_name(key)
        if get_key(str(self.path), name) is None:
            return
        unset_key(str(self.path), name)
