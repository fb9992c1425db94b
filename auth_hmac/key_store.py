"""
Credential lookups for AuthHMAC.

AuthHMAC only needs ``get(key_id) -> secret | None``, so a plain dict works.
KeyStore adds thread-safe key rotation on top of that, and CallableLookup
wraps a function such as a call to a remote secret store.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialLookup(Protocol):
    """Anything that resolves a key id to its secret."""

    def get(self, key_id: str) -> Optional[str]:
        ...


@dataclass
class StoredKey:
    """A secret registered in a KeyStore."""

    key_id: str
    secret: str
    is_valid: bool = True  # Revoked keys stay listed but no longer resolve


class KeyStore:
    """
    Thread-safe in-memory credential store with rotation support.

    Usage:
        store = KeyStore()
        store.add_key("key-v1", "secret-v1")
        store.add_key("key-v2", "secret-v2")

        auth = AuthHMAC(store)

        # Once every client signs with key-v2
        store.revoke_key("key-v1")
        store.remove_key("key-v1")
    """

    def __init__(self):
        self._keys: dict[str, StoredKey] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_mapping(cls, credentials: Mapping[str, str]) -> "KeyStore":
        """Build a store from a key id -> secret mapping."""
        store = cls()
        for key_id, secret in credentials.items():
            store.add_key(key_id, secret)
        return store

    def add_key(self, key_id: str, secret: str) -> None:
        """
        Register (or replace) the secret for a key id.

        Raises:
            ValueError: If key_id or secret is empty
        """
        if not key_id:
            raise ValueError("key_id is required")
        if not secret:
            raise ValueError(f"Secret for key '{key_id}' is empty")

        with self._lock:
            self._keys[key_id] = StoredKey(key_id=key_id, secret=secret)
        logger.debug("Added key '%s'", key_id)

    def get(self, key_id: str) -> Optional[str]:
        """Secret for key_id, or None if unknown or revoked."""
        with self._lock:
            key = self._keys.get(key_id)
            if key is None or not key.is_valid:
                return None
            return key.secret

    def revoke_key(self, key_id: str) -> None:
        """
        Stop a key from resolving while keeping it listed.

        Raises:
            ValueError: If the key doesn't exist
        """
        with self._lock:
            if key_id not in self._keys:
                raise ValueError(f"Key '{key_id}' not found")
            self._keys[key_id].is_valid = False
        logger.info("Revoked key '%s'", key_id)

    def remove_key(self, key_id: str) -> None:
        """Forget a key. Removing an unknown key is a no-op."""
        with self._lock:
            self._keys.pop(key_id, None)

    def list_keys(self) -> dict[str, dict[str, Any]]:
        """
        List all keys with their status.

        Returns:
            Dictionary of key_id -> {is_valid}; secrets are never included
        """
        with self._lock:
            return {key_id: {"is_valid": key.is_valid} for key_id, key in self._keys.items()}

    def __contains__(self, key_id: object) -> bool:
        with self._lock:
            return key_id in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


class CallableLookup:
    """Adapts a function ``key_id -> secret | None`` to the lookup interface."""

    def __init__(self, fetch: Callable[[str], Optional[str]]):
        self._fetch = fetch

    def get(self, key_id: str) -> Optional[str]:
        # AuthHMAC.sign propagates exceptions from fetch; authenticated returns False
        return self._fetch(key_id)
