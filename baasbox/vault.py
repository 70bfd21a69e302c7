"""
Credential vault: the single cached secret used to re-login silently.

The secret (password or social token) is sealed with ChaCha20-Poly1305 under
a key derived from the installation identifier, never from user input.
"""

import base64
import binascii
import json
import logging
import os
import threading
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .types import DeviceIdSource, KeyValueStore


logger = logging.getLogger("baasbox")

CREDENTIAL_KEY = "baasbox.credential"
RECORD_VERSION = 1
NONCE_SIZE = 12

_KDF_SALT = b"baasbox-sdk/credential"
_KDF_INFO = b"baasbox-credential-vault"


def derive_key(device_id: str) -> bytes:
    """Deterministic 32-byte key for a device identifier."""
    return HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_KDF_SALT,
        info=_KDF_INFO,
    ).derive(device_id.encode("utf-8"))


class CredentialVault:
    """Encrypts, persists and recovers exactly one cached secret."""

    def __init__(self, store: KeyValueStore, device_id: DeviceIdSource) -> None:
        self._store = store
        self._device_id = device_id
        self._lock = threading.Lock()

    def _cipher(self) -> ChaCha20Poly1305:
        return ChaCha20Poly1305(derive_key(self._device_id.get_device_id()))

    def store(self, secret: str) -> None:
        """Overwrite the cached secret."""
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._cipher().encrypt(nonce, secret.encode("utf-8"), CREDENTIAL_KEY.encode())
        record = {
            "version": RECORD_VERSION,
            "nonce": base64.b64encode(nonce).decode("ascii"),
            "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
        }
        with self._lock:
            self._store.set(CREDENTIAL_KEY, json.dumps(record).encode("utf-8"))

    def load(self) -> Optional[str]:
        """
        Return the cached secret, or None when absent or undecryptable.

        A corrupt record or one sealed under another installation's key
        degrades to "no cached credential".
        """
        with self._lock:
            raw = self._store.get(CREDENTIAL_KEY)
        if raw is None:
            return None

        try:
            record = json.loads(raw.decode("utf-8"))
            if not isinstance(record, dict) or record.get("version") != RECORD_VERSION:
                raise ValueError("unsupported credential record")
            nonce = base64.b64decode(record["nonce"], validate=True)
            ciphertext = base64.b64decode(record["ciphertext"], validate=True)
            if len(nonce) != NONCE_SIZE:
                raise ValueError("bad nonce length")
            plaintext = self._cipher().decrypt(nonce, ciphertext, CREDENTIAL_KEY.encode())
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError, KeyError, TypeError, binascii.Error) as e:
            logger.warning("Cached credential could not be decrypted: %s", type(e).__name__)
            return None

    def clear(self) -> None:
        """Delete the cached secret. Safe to call when nothing is cached."""
        with self._lock:
            self._store.delete(CREDENTIAL_KEY)
