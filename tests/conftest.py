"""
Shared fixtures for the BaasBox SDK tests.
"""

from typing import Any, Dict, List

import pytest

from baasbox import BaasConfig, MemoryStore, StaticDeviceId


BASE_URL = "https://baas.example.com"
APPCODE = "1234567890"


def envelope(data: Any) -> Dict[str, Any]:
    """Successful BaasBox response body."""
    return {"result": "ok", "data": data, "http_code": 200}


def login_data(token: str = "tok123", name: str = "alice") -> Dict[str, Any]:
    """Payload returned by /login, /social/* and /user."""
    return {
        "id": "1",
        "user": {"name": name, "status": "ACTIVE", "roles": [{"name": "registered"}]},
        "X-BB-SESSION": token,
        "visibleByTheUser": {"email": f"{name}@example.com"},
        "visibleByFriends": {},
        "visibleByAnonymousUsers": {},
        "visibleByRegisteredUsers": {},
    }


class RecordingLogoutStrategy:
    """Counts hook invocations."""

    def __init__(self) -> None:
        self.not_authorized_calls: List[Any] = []
        self.logout_calls: List[Any] = []

    def not_authorized(self, client: Any) -> None:
        self.not_authorized_calls.append(client)

    def logout(self, client: Any) -> None:
        self.logout_calls.append(client)
        client.session_state.clear()
        client.vault.clear()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def logout_strategy() -> RecordingLogoutStrategy:
    return RecordingLogoutStrategy()


@pytest.fixture
def valid_config(store: MemoryStore, logout_strategy: RecordingLogoutStrategy) -> BaasConfig:
    """Valid configuration for testing."""
    return BaasConfig(
        base_url=BASE_URL,
        appcode=APPCODE,
        timeout=5.0,
        store=store,
        device_id=StaticDeviceId("device-1234"),
        logout_strategy=logout_strategy,
        debug=True,
    )
