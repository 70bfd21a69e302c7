"""
BaasBox Python SDK

A Python client for the BaasBox backend-as-a-service with sync and async
clients, encrypted credential caching and transparent re-login when the
session expires.
"""

from .client import (
    BaasClient,
    AsyncBaasClient,
    create_baasbox_client,
    create_async_baasbox_client,
    setup,
    get_client,
    reset_client,
)
from .types import (
    BaasConfig,
    Session,
    Identity,
    SocialProvider,
    SignupData,
    Result,
    OutboundRequest,
    KeyValueStore,
    DeviceIdSource,
    LoginStrategy,
    AsyncLoginStrategy,
    SignupStrategy,
    AsyncSignupStrategy,
    LogoutStrategy,
)
from .errors import (
    BaasError,
    NetworkError,
    ProtocolError,
    HttpError,
    UnauthenticatedError,
    ConfigurationError,
    is_baas_error,
    is_unauthenticated,
)
from .retry import RetryState
from .storage import MemoryStore, FileStore, InstallationId, StaticDeviceId
from .strategies import (
    DefaultLoginStrategy,
    AsyncDefaultLoginStrategy,
    DefaultSignupStrategy,
    AsyncDefaultSignupStrategy,
    DefaultLogoutStrategy,
)
from .vault import CredentialVault

__version__ = "1.0.0"
__all__ = [
    # Clients
    "BaasClient",
    "AsyncBaasClient",
    "create_baasbox_client",
    "create_async_baasbox_client",
    "setup",
    "get_client",
    "reset_client",
    # Types
    "BaasConfig",
    "Session",
    "Identity",
    "SocialProvider",
    "SignupData",
    "Result",
    "OutboundRequest",
    "KeyValueStore",
    "DeviceIdSource",
    "LoginStrategy",
    "AsyncLoginStrategy",
    "SignupStrategy",
    "AsyncSignupStrategy",
    "LogoutStrategy",
    "RetryState",
    # Errors
    "BaasError",
    "NetworkError",
    "ProtocolError",
    "HttpError",
    "UnauthenticatedError",
    "ConfigurationError",
    "is_baas_error",
    "is_unauthenticated",
    # Storage and strategies
    "MemoryStore",
    "FileStore",
    "InstallationId",
    "StaticDeviceId",
    "CredentialVault",
    "DefaultLoginStrategy",
    "AsyncDefaultLoginStrategy",
    "DefaultSignupStrategy",
    "AsyncDefaultSignupStrategy",
    "DefaultLogoutStrategy",
]
