"""
BaasBox SDK Type Definitions

Configuration, session data model, the tri-state request result and the
collaborator interfaces (storage, device identity, strategies).
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Optional,
    Protocol,
    Tuple,
    runtime_checkable,
)

from .errors import BaasError, ProtocolError

if TYPE_CHECKING:
    from .client import AsyncBaasClient, BaasClient


SESSION_HEADER = "X-BB-SESSION"
SESSION_SCHEMA_VERSION = 1


class SocialProvider(str, Enum):
    """Social platforms accepted by the social login endpoint."""
    FACEBOOK = "facebook"
    GOOGLE = "google"


# =============================================================================
# Collaborator Interfaces
# =============================================================================

@runtime_checkable
class KeyValueStore(Protocol):
    """Persistent key-value store: opaque bytes in, opaque bytes out."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        """Remove the key. Removing a missing key is not an error."""
        ...


@runtime_checkable
class DeviceIdSource(Protocol):
    """Stable, installation-scoped identifier used for key derivation."""

    def get_device_id(self) -> str:
        ...


@runtime_checkable
class LoginStrategy(Protocol):
    """Primary authentication for the synchronous client."""

    def login(self, client: "BaasClient", username: str, password: str) -> "Result":
        ...

    def social_login(self, client: "BaasClient", provider: SocialProvider, token: str) -> "Result":
        ...


@runtime_checkable
class AsyncLoginStrategy(Protocol):
    """Primary authentication for the asynchronous client."""

    async def login(self, client: "AsyncBaasClient", username: str, password: str) -> "Result":
        ...

    async def social_login(
        self, client: "AsyncBaasClient", provider: SocialProvider, token: str
    ) -> "Result":
        ...


@runtime_checkable
class SignupStrategy(Protocol):
    """User creation for the synchronous client."""

    def signup(self, client: "BaasClient", data: "SignupData") -> "Result":
        ...


@runtime_checkable
class AsyncSignupStrategy(Protocol):
    """User creation for the asynchronous client."""

    async def signup(self, client: "AsyncBaasClient", data: "SignupData") -> "Result":
        ...


@runtime_checkable
class LogoutStrategy(Protocol):
    """UI-layer hooks fired on forced and explicit logout."""

    def not_authorized(self, client: Any) -> None:
        """Called once when re-authentication cannot proceed or fails."""
        ...

    def logout(self, client: Any) -> None:
        """Called after a successful server-side logout."""
        ...


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class BaasConfig:
    """SDK configuration, constructed once and handed to the client."""

    # BaasBox server URL (e.g. https://baasbox.example.com)
    base_url: str
    # Application code sent with every request
    appcode: str
    # Per-request timeout in seconds; the replay uses the same value
    timeout: float = 10.0
    # Cache the secret encrypted and re-login when the server returns 401
    retry_login: bool = True
    # Strategies (None selects the defaults matching the client flavour)
    login_strategy: Optional[Any] = None
    signup_strategy: Optional[Any] = None
    logout_strategy: Optional[LogoutStrategy] = None
    # Store for the session and the credential record (default: MemoryStore)
    store: Optional[KeyValueStore] = None
    # Key derivation source (default: InstallationId over the store)
    device_id: Optional[DeviceIdSource] = None
    # Extra headers sent with every request
    headers: Optional[Dict[str, str]] = None
    # Enable debug logging
    debug: bool = False


# =============================================================================
# Session
# =============================================================================

def _require(data: Dict[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if not isinstance(value, kind):
        raise ProtocolError(f"Field {key!r} missing or not {kind.__name__}")
    return value


def _optional_map(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProtocolError(f"Field {key!r} is not an object")
    return value


@dataclass
class Identity:
    """Who the session belongs to."""

    id: str = ""
    username: str = ""
    # ACTIVE, SUSPENDED
    status: str = ""


@dataclass
class Session:
    """In-memory authenticated identity and bearer token."""

    token: str = ""
    identity: Identity = field(default_factory=Identity)
    push_token: str = ""
    push_enabled: bool = False
    social_provider: Optional[SocialProvider] = None
    visible_by_the_user: Dict[str, Any] = field(default_factory=dict)
    visible_by_friends: Dict[str, Any] = field(default_factory=dict)
    visible_by_anonymous_users: Dict[str, Any] = field(default_factory=dict)
    visible_by_registered_users: Dict[str, Any] = field(default_factory=dict)

    def is_authenticated(self) -> bool:
        return self.token != ""

    @classmethod
    def from_payload(
        cls,
        data: Any,
        push_token: str = "",
        push_enabled: bool = False,
        social_provider: Optional[SocialProvider] = None,
        token: Optional[str] = None,
    ) -> "Session":
        """
        Build a session from a login/signup/``/me`` payload.

        Args:
            data: The ``data`` member of the response envelope
            token: Keep this token instead of reading ``X-BB-SESSION``
                (used when refreshing a user, where no new token is issued)

        Raises:
            ProtocolError: If a required field is missing or mistyped
        """
        if not isinstance(data, dict):
            raise ProtocolError("User payload is not an object")
        user = _require(data, "user", dict)
        return cls(
            token=token if token else _require(data, SESSION_HEADER, str),
            identity=Identity(
                id=_require(data, "id", str),
                username=_require(user, "name", str),
                status=_require(user, "status", str),
            ),
            push_token=push_token,
            push_enabled=push_enabled,
            social_provider=social_provider,
            visible_by_the_user=_optional_map(data, "visibleByTheUser"),
            visible_by_friends=_optional_map(data, "visibleByFriends"),
            visible_by_anonymous_users=_optional_map(data, "visibleByAnonymousUsers"),
            visible_by_registered_users=_optional_map(data, "visibleByRegisteredUsers"),
        )

    def to_record(self) -> Dict[str, Any]:
        """Versioned record for persistence."""
        return {
            "version": SESSION_SCHEMA_VERSION,
            "token": self.token,
            "identity": {
                "id": self.identity.id,
                "username": self.identity.username,
                "status": self.identity.status,
            },
            "push_token": self.push_token,
            "push_enabled": self.push_enabled,
            "social_provider": self.social_provider.value if self.social_provider else None,
            "visible_by_the_user": self.visible_by_the_user,
            "visible_by_friends": self.visible_by_friends,
            "visible_by_anonymous_users": self.visible_by_anonymous_users,
            "visible_by_registered_users": self.visible_by_registered_users,
        }

    @classmethod
    def from_record(cls, record: Any) -> "Session":
        """
        Decode a persisted record.

        Raises:
            ProtocolError: On unknown version or invalid fields
        """
        if not isinstance(record, dict):
            raise ProtocolError("Session record is not an object")
        if record.get("version") != SESSION_SCHEMA_VERSION:
            raise ProtocolError(f"Unsupported session record version: {record.get('version')!r}")
        identity = _require(record, "identity", dict)
        push_enabled = record.get("push_enabled", False)
        if not isinstance(push_enabled, bool):
            raise ProtocolError("Field 'push_enabled' is not bool")
        provider = record.get("social_provider")
        try:
            social_provider = SocialProvider(provider) if provider else None
        except ValueError:
            social_provider = None
        return cls(
            token=_require(record, "token", str),
            identity=Identity(
                id=_require(identity, "id", str),
                username=_require(identity, "username", str),
                status=_require(identity, "status", str),
            ),
            push_token=_require(record, "push_token", str),
            push_enabled=push_enabled,
            social_provider=social_provider,
            visible_by_the_user=_optional_map(record, "visible_by_the_user"),
            visible_by_friends=_optional_map(record, "visible_by_friends"),
            visible_by_anonymous_users=_optional_map(record, "visible_by_anonymous_users"),
            visible_by_registered_users=_optional_map(record, "visible_by_registered_users"),
        )


@dataclass
class SignupData:
    """User creation data."""

    username: str
    password: str
    visible_by_the_user: Dict[str, Any] = field(default_factory=dict)
    visible_by_friends: Dict[str, Any] = field(default_factory=dict)
    visible_by_registered_users: Dict[str, Any] = field(default_factory=dict)
    visible_by_anonymous_users: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API requests."""
        return {
            "username": self.username,
            "password": self.password,
            "visibleByTheUser": self.visible_by_the_user,
            "visibleByFriends": self.visible_by_friends,
            "visibleByRegisteredUsers": self.visible_by_registered_users,
            "visibleByAnonymousUsers": self.visible_by_anonymous_users,
        }


# =============================================================================
# Requests and Results
# =============================================================================

@dataclass(frozen=True)
class OutboundRequest:
    """A fully built HTTP call. Immutable so that it can be replayed verbatim."""

    method: str
    url: str
    headers: Tuple[Tuple[str, str], ...]
    body: bytes = b""
    timeout: float = 10.0

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def with_session_token(self, token: str) -> "OutboundRequest":
        """Copy of this request whose session header carries ``token``."""
        headers = tuple(
            (key, value) for key, value in self.headers
            if key.lower() != SESSION_HEADER.lower()
        )
        if token:
            headers += ((SESSION_HEADER, token),)
        return replace(self, headers=headers)


@dataclass(frozen=True)
class Result:
    """Tri-state outcome of a request: success flag, payload, error."""

    success: bool
    data: Any = None
    error: Optional[BaasError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(True, data, None)

    @classmethod
    def fail(cls, error: BaasError) -> "Result":
        return cls(False, None, error)

    def unwrap(self) -> Any:
        """Return the payload or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.data
