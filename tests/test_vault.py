"""
Tests for the credential vault.
"""

import base64
import json

import pytest

from baasbox import CredentialVault, InstallationId, MemoryStore, StaticDeviceId
from baasbox.vault import CREDENTIAL_KEY, derive_key


@pytest.fixture
def vault(store: MemoryStore) -> CredentialVault:
    return CredentialVault(store, StaticDeviceId("device-1234"))


class TestCredentialVault:
    """Store, load and clear of the single cached secret."""

    def test_empty(self, vault: CredentialVault, store: MemoryStore):
        assert vault.load() is None
        assert CREDENTIAL_KEY not in store

    def test_store_and_load(self, vault: CredentialVault, store: MemoryStore):
        vault.store("secret")

        assert vault.load() == "secret"
        record = json.loads(store.get(CREDENTIAL_KEY))
        assert record["version"] == 1
        assert base64.b64decode(record["ciphertext"]) != b"secret"
        assert b"secret" not in store.get(CREDENTIAL_KEY)

    def test_overwrite(self, vault: CredentialVault):
        vault.store("first")
        vault.store("second")
        assert vault.load() == "second"

    def test_fresh_nonce_per_store(self, vault: CredentialVault, store: MemoryStore):
        vault.store("secret")
        first = store.get(CREDENTIAL_KEY)
        vault.store("secret")
        assert store.get(CREDENTIAL_KEY) != first

    def test_clear_is_idempotent(self, vault: CredentialVault, store: MemoryStore):
        vault.store("secret")

        vault.clear()
        vault.clear()

        assert vault.load() is None
        assert CREDENTIAL_KEY not in store

    def test_clear_when_empty(self, vault: CredentialVault):
        vault.clear()
        assert vault.load() is None

    def test_other_device_cannot_decrypt(self, store: MemoryStore):
        CredentialVault(store, StaticDeviceId("device-A")).store("secret")
        assert CredentialVault(store, StaticDeviceId("device-B")).load() is None

    @pytest.mark.parametrize("raw", [
        b"not json",
        b"[]",
        b'{"version": 2, "nonce": "", "ciphertext": ""}',
        b'{"version": 1}',
        b'{"version": 1, "nonce": "!!!", "ciphertext": "AAAA"}',
        b'{"version": 1, "nonce": "AAAA", "ciphertext": "AAAA"}',
        b"\xff\xfe",
    ])
    def test_corrupt_record_degrades_to_empty(self, vault: CredentialVault, store: MemoryStore, raw):
        store.set(CREDENTIAL_KEY, raw)
        assert vault.load() is None

    def test_tampered_ciphertext(self, vault: CredentialVault, store: MemoryStore):
        vault.store("secret")
        record = json.loads(store.get(CREDENTIAL_KEY))
        ciphertext = bytearray(base64.b64decode(record["ciphertext"]))
        ciphertext[0] ^= 0x01
        record["ciphertext"] = base64.b64encode(bytes(ciphertext)).decode()
        store.set(CREDENTIAL_KEY, json.dumps(record).encode())

        assert vault.load() is None

    def test_installation_scoped_key(self, store: MemoryStore):
        vault = CredentialVault(store, InstallationId(store))
        vault.store("secret")

        assert CredentialVault(store, InstallationId(store)).load() == "secret"
        copied = MemoryStore()
        copied.set(CREDENTIAL_KEY, store.get(CREDENTIAL_KEY))
        assert CredentialVault(copied, InstallationId(copied)).load() is None

    def test_key_derivation_is_deterministic(self):
        assert derive_key("device-1") == derive_key("device-1")
        assert derive_key("device-1") != derive_key("device-2")
        assert len(derive_key("device-1")) == 32
