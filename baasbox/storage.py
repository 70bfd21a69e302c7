"""
BaasBox SDK Storage Implementations

Key-value stores for the persisted session and credential record, and the
installation-scoped identifier the credential vault derives its key from.
"""

import logging
import os
import re
import threading
import uuid
from pathlib import Path
from typing import Dict, Optional

from .types import KeyValueStore


logger = logging.getLogger("baasbox")

INSTALLATION_ID_KEY = "baasbox.installation_id"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class MemoryStore:
    """In-memory store (default, non-persistent)."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data


class FileStore:
    """File-based store (persistent across restarts), one file per key."""

    def __init__(self, directory: Optional[str] = None) -> None:
        """
        Initialize file storage.

        Args:
            directory: Directory holding the entries. Defaults to ~/.baasbox
        """
        if directory:
            self._directory = Path(directory)
        else:
            self._directory = Path.home() / ".baasbox"

        self._lock = threading.Lock()
        self._directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self._directory / key

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        with self._lock:
            try:
                return path.read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                logger.warning("Could not read %s: %s", path, e)
                return None

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        tmp_path = path.with_name(path.name + ".tmp")
        with self._lock:
            with open(tmp_path, "wb") as f:
                f.write(value)
            # Set restrictive permissions (owner read/write only)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                pass


class InstallationId:
    """
    Random identifier generated on first use and persisted in the store.

    Stable for as long as the store survives, which scopes the vault key to
    this installation: copying the ciphertext elsewhere does not decrypt it.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._cached: Optional[str] = None

    def get_device_id(self) -> str:
        with self._lock:
            if self._cached is None:
                raw = self._store.get(INSTALLATION_ID_KEY)
                if raw:
                    self._cached = raw.decode("utf-8", errors="replace")
                else:
                    self._cached = str(uuid.uuid4())
                    self._store.set(INSTALLATION_ID_KEY, self._cached.encode("utf-8"))
            return self._cached


class StaticDeviceId:
    """Caller-provided identifier (e.g. a platform vendor id)."""

    def __init__(self, value: str) -> None:
        if not value:
            raise ValueError("device id cannot be empty")
        self._value = value

    def get_device_id(self) -> str:
        return self._value
