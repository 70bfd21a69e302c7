"""
BaasBox SDK Client

Main client classes for the BaasBox backend. Every call goes through
``execute``, which attaches the session header, classifies the response and,
on a 401, hands over to the retry coordinator for one silent re-login and
replay.

Provides a synchronous, thread-safe client and an asyncio client.
"""

import logging
import threading
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import httpx

from .errors import ConfigurationError, ProtocolError, is_unauthenticated
from .pipeline import (
    JSON_CONTENT_TYPE,
    MULTIPART_CONTENT_TYPE,
    build_request,
    classify_response,
    encode_multipart,
    path_segment,
    transport_error,
)
from .retry import AsyncRetryCoordinator, RetryCoordinator
from .session import SessionState
from .storage import InstallationId, MemoryStore
from .strategies import (
    AsyncDefaultLoginStrategy,
    AsyncDefaultSignupStrategy,
    DefaultLoginStrategy,
    DefaultLogoutStrategy,
    DefaultSignupStrategy,
)
from .types import (
    BaasConfig,
    KeyValueStore,
    OutboundRequest,
    Result,
    Session,
    SignupData,
    SocialProvider,
)
from .vault import CredentialVault


logger = logging.getLogger("baasbox")


def validate_config(config: BaasConfig) -> None:
    """Reject configurations that indicate a broken integration."""
    if not config.base_url:
        raise ConfigurationError("base_url is required")
    parsed = urlparse(config.base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(
            "Invalid base_url. Expected http(s)://host[:port][/path]",
            {"base_url": config.base_url},
        )
    if not config.appcode:
        raise ConfigurationError("appcode is required")
    if config.timeout <= 0:
        raise ConfigurationError("timeout must be positive", {"timeout": config.timeout})


class _ClientState:
    """Configuration and collaborators shared by both client flavours."""

    def __init__(self, config: BaasConfig) -> None:
        validate_config(config)

        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._appcode = config.appcode
        self._timeout = config.timeout
        self._retry_login = config.retry_login
        self._debug = config.debug
        self._custom_headers = config.headers or {}

        store = config.store if config.store is not None else MemoryStore()
        self._bind_store(store)
        self.session_state = SessionState(store)
        self.logout_strategy = config.logout_strategy or DefaultLogoutStrategy()

    def _bind_store(self, store: KeyValueStore) -> None:
        self._store = store
        device_id = self._config.device_id or InstallationId(store)
        self.vault = CredentialVault(store, device_id)

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[BaasBox] {message}", *args)

    @property
    def appcode(self) -> str:
        return self._appcode

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def retry_login(self) -> bool:
        return self._retry_login

    def build_request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
        content: Optional[bytes] = None,
        content_type: str = JSON_CONTENT_TYPE,
        with_session: bool = True,
    ) -> OutboundRequest:
        """Build a request carrying the current session header (if any)."""
        return build_request(
            self._base_url,
            self._appcode,
            method,
            path,
            timeout=self._timeout,
            session_token=self.session_state.token if with_session else "",
            params=params,
            body=body,
            content=content,
            content_type=content_type,
            extra_headers=self._custom_headers,
        )

    def get_session(self) -> Session:
        """Snapshot of the current session."""
        return self.session_state.session

    def is_authenticated(self) -> bool:
        return self.session_state.is_authenticated()

    def _push_registration(self, device_token: str, platform: str) -> Optional[str]:
        """Remember the device token; return the enable path unless already registered."""
        if not device_token:
            raise ValueError("Device token for push notifications cannot be empty")
        current = self.session_state.session
        registered = current.push_enabled and current.push_token == device_token
        self.session_state.update(push_token=device_token, push_enabled=registered)
        if registered:
            return None
        return f"/push/enable/{path_segment(platform)}/{path_segment(device_token)}"

    def _reconfigure(
        self,
        login_strategy: Any,
        signup_strategy: Any,
        logout_strategy: Any,
        store: Optional[KeyValueStore],
    ) -> None:
        if login_strategy is not None:
            self.login_strategy = login_strategy
        if signup_strategy is not None:
            self.signup_strategy = signup_strategy
        if logout_strategy is not None:
            self.logout_strategy = logout_strategy
        if store is not None:
            self._bind_store(store)
            self.session_state.reload(store)
        self._log("Client reconfigured")


class BaasClient(_ClientState):
    """
    BaasBox Client - Synchronous SDK entry point.

    Safe to share between threads: session mutation is locked and the retry
    guard admits a single re-login chain at a time.
    """

    def __init__(self, config: BaasConfig) -> None:
        """Initialize the BaasBox client."""
        super().__init__(config)
        self.login_strategy = config.login_strategy or DefaultLoginStrategy()
        self.signup_strategy = config.signup_strategy or DefaultSignupStrategy()
        self.retry_coordinator = RetryCoordinator(self)

        self._http_client = httpx.Client(timeout=self._timeout)

        self._log(f"BaasClient initialized (base_url={self._base_url})")

    def configure(
        self,
        login_strategy: Any = None,
        signup_strategy: Any = None,
        logout_strategy: Any = None,
        store: Optional[KeyValueStore] = None,
    ) -> None:
        """Swap strategies and/or the credentials store."""
        self._reconfigure(login_strategy, signup_strategy, logout_strategy, store)

    # =========================================================================
    # Pipeline
    # =========================================================================

    def execute(self, request: OutboundRequest, retry: bool = True) -> Result:
        """
        Send ``request`` and return its result.

        A 401 is handed to the retry coordinator when re-login is enabled
        and ``retry`` is set. With ``retry=False`` it is returned as-is;
        otherwise, with re-login disabled, it fires the ``not_authorized`` hook.
        """
        result = self._send(request)
        if not is_unauthenticated(result.error):
            return result

        if not retry:
            return result
        if not self._retry_login:
            self.logout_strategy.not_authorized(self)
            return result
        return self.retry_coordinator.handle_unauthorized(request, result.error)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
        content: Optional[bytes] = None,
        content_type: str = JSON_CONTENT_TYPE,
        with_session: bool = True,
        retry: bool = True,
    ) -> Result:
        """Build and execute a request."""
        request = self.build_request(
            method, path, params, body, content, content_type, with_session
        )
        return self.execute(request, retry=retry)

    def _send(self, request: OutboundRequest) -> Result:
        """One network round trip, no retry."""
        self._log(f"{request.method} {request.url}")
        try:
            response = self._http_client.request(
                method=request.method,
                url=request.url,
                headers=dict(request.headers),
                content=request.body or None,
                timeout=request.timeout,
            )
        except httpx.RequestError as e:
            return Result.fail(transport_error(e, request.timeout))
        return classify_response(response.status_code, response.content)

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Result:
        """HTTP GET, e.g. to call plugins (path without the base URL)."""
        return self.request("GET", path, params=params)

    def post(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Result:
        """HTTP POST with a JSON body."""
        return self.request("POST", path, body=body)

    def put(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Result:
        """HTTP PUT with a JSON body."""
        return self.request("PUT", path, body=body)

    def delete(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Result:
        """HTTP DELETE with a JSON body."""
        return self.request("DELETE", path, body=body)

    def upload_file(
        self,
        data: bytes,
        attached_data: Optional[Mapping[str, Any]] = None,
        acl: Optional[Mapping[str, Any]] = None,
        filename: Optional[str] = None,
        mimetype: str = "application/octet-stream",
    ) -> Result:
        """Upload a file as a three-part multipart body."""
        return self.request(
            "POST",
            "/file",
            content=encode_multipart(data, attached_data, acl, filename, mimetype),
            content_type=MULTIPART_CONTENT_TYPE,
        )

    # =========================================================================
    # Authentication Methods
    # =========================================================================

    def login(self, username: str, password: str) -> Result:
        """Login with username and password through the login strategy."""
        self._log(f"Login attempt for: {username}")
        return self.login_strategy.login(self, username, password)

    def social_login(self, provider: SocialProvider, token: str) -> Result:
        """Login with a token obtained from a third party social SDK."""
        self._log(f"Social login attempt with: {provider.value}")
        return self.login_strategy.social_login(self, provider, token)

    def signup(self, data: SignupData) -> Result:
        """Create a user through the signup strategy."""
        self._log(f"Signup attempt for: {data.username}")
        return self.signup_strategy.signup(self, data)

    def logout(self, push_token: str = "") -> Result:
        """
        Logout on the server, then run the logout strategy.

        An expired session is renewed first like for any other call, so the
        logout can still complete.

        Args:
            push_token: Also unregister this device's push token
        """
        path = "/logout/" + path_segment(push_token) if push_token else "/logout"
        result = self.request("POST", path)
        if result.success:
            self.logout_strategy.logout(self)
            self._log("Logout successful")
        return result

    # =========================================================================
    # User Methods
    # =========================================================================

    def refresh_user(self) -> Result:
        """Reload the current user's data from ``/me``, keeping the token."""
        result = self.request("GET", "/me")
        return _apply_user_refresh(self, result)

    def change_password(self, old_password: str, new_password: str) -> Result:
        """Change the password; the server rotates the session, so log in again."""
        result = self.request("PUT", "/me/password", body={"old": old_password, "new": new_password})
        if not result.success:
            return result
        return self.login(self.session_state.session.identity.username, new_password)

    def link_social(self, provider: SocialProvider, token: str) -> Result:
        """Link the current user with a social account."""
        return self.request(
            "PUT",
            "/social/" + path_segment(provider.value),
            body={"oauth_token": token, "oauth_secret": token},
        )

    def enable_push(self, device_token: str, platform: str = "ios") -> Result:
        """
        Register this device for push notifications.

        The token is kept in the session; the server is only called when the
        token is new or push is not enabled yet.
        """
        path = self._push_registration(device_token, platform)
        if path is None:
            return Result.ok()
        result = self.request("PUT", path)
        if result.success:
            self.session_state.update(push_enabled=True)
        return result

    def close(self) -> None:
        """Close the HTTP client."""
        self._http_client.close()

    def __enter__(self) -> "BaasClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class AsyncBaasClient(_ClientState):
    """
    BaasBox Async Client - Asynchronous SDK entry point.

    All session mutation happens on the event loop; the retry guard is an
    ``asyncio.Lock`` so cancelling a task mid-chain releases it.
    """

    def __init__(self, config: BaasConfig) -> None:
        """Initialize the async BaasBox client."""
        super().__init__(config)
        self.login_strategy = config.login_strategy or AsyncDefaultLoginStrategy()
        self.signup_strategy = config.signup_strategy or AsyncDefaultSignupStrategy()
        self.retry_coordinator = AsyncRetryCoordinator(self)

        # HTTP client (created lazily)
        self._http_client: Optional[httpx.AsyncClient] = None

        self._log(f"AsyncBaasClient initialized (base_url={self._base_url})")

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def configure(
        self,
        login_strategy: Any = None,
        signup_strategy: Any = None,
        logout_strategy: Any = None,
        store: Optional[KeyValueStore] = None,
    ) -> None:
        """Swap strategies and/or the credentials store."""
        self._reconfigure(login_strategy, signup_strategy, logout_strategy, store)

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def execute(self, request: OutboundRequest, retry: bool = True) -> Result:
        """Send ``request``; see ``BaasClient.execute`` for the 401 rules."""
        result = await self._send(request)
        if not is_unauthenticated(result.error):
            return result

        if not retry:
            return result
        if not self._retry_login:
            self.logout_strategy.not_authorized(self)
            return result
        return await self.retry_coordinator.handle_unauthorized(request, result.error)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None,
        content: Optional[bytes] = None,
        content_type: str = JSON_CONTENT_TYPE,
        with_session: bool = True,
        retry: bool = True,
    ) -> Result:
        """Build and execute a request."""
        request = self.build_request(
            method, path, params, body, content, content_type, with_session
        )
        return await self.execute(request, retry=retry)

    async def _send(self, request: OutboundRequest) -> Result:
        """One network round trip, no retry."""
        self._log(f"{request.method} {request.url}")
        try:
            client = self._get_client()
            response = await client.request(
                method=request.method,
                url=request.url,
                headers=dict(request.headers),
                content=request.body or None,
                timeout=request.timeout,
            )
        except httpx.RequestError as e:
            return Result.fail(transport_error(e, request.timeout))
        return classify_response(response.status_code, response.content)

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Result:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Result:
        return await self.request("POST", path, body=body)

    async def put(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Result:
        return await self.request("PUT", path, body=body)

    async def delete(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Result:
        return await self.request("DELETE", path, body=body)

    async def upload_file(
        self,
        data: bytes,
        attached_data: Optional[Mapping[str, Any]] = None,
        acl: Optional[Mapping[str, Any]] = None,
        filename: Optional[str] = None,
        mimetype: str = "application/octet-stream",
    ) -> Result:
        """Upload a file as a three-part multipart body."""
        return await self.request(
            "POST",
            "/file",
            content=encode_multipart(data, attached_data, acl, filename, mimetype),
            content_type=MULTIPART_CONTENT_TYPE,
        )

    # =========================================================================
    # Authentication Methods
    # =========================================================================

    async def login(self, username: str, password: str) -> Result:
        """Login with username and password through the login strategy."""
        self._log(f"Login attempt for: {username}")
        return await self.login_strategy.login(self, username, password)

    async def social_login(self, provider: SocialProvider, token: str) -> Result:
        self._log(f"Social login attempt with: {provider.value}")
        return await self.login_strategy.social_login(self, provider, token)

    async def signup(self, data: SignupData) -> Result:
        self._log(f"Signup attempt for: {data.username}")
        return await self.signup_strategy.signup(self, data)

    async def logout(self, push_token: str = "") -> Result:
        """Logout on the server, then run the logout strategy."""
        path = "/logout/" + path_segment(push_token) if push_token else "/logout"
        result = await self.request("POST", path)
        if result.success:
            self.logout_strategy.logout(self)
            self._log("Logout successful")
        return result

    # =========================================================================
    # User Methods
    # =========================================================================

    async def refresh_user(self) -> Result:
        result = await self.request("GET", "/me")
        return _apply_user_refresh(self, result)

    async def change_password(self, old_password: str, new_password: str) -> Result:
        result = await self.request(
            "PUT", "/me/password", body={"old": old_password, "new": new_password}
        )
        if not result.success:
            return result
        return await self.login(self.session_state.session.identity.username, new_password)

    async def link_social(self, provider: SocialProvider, token: str) -> Result:
        return await self.request(
            "PUT",
            "/social/" + path_segment(provider.value),
            body={"oauth_token": token, "oauth_secret": token},
        )

    async def enable_push(self, device_token: str, platform: str = "ios") -> Result:
        """Register this device for push notifications."""
        path = self._push_registration(device_token, platform)
        if path is None:
            return Result.ok()
        result = await self.request("PUT", path)
        if result.success:
            self.session_state.update(push_enabled=True)
        return result

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "AsyncBaasClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _apply_user_refresh(client: _ClientState, result: Result) -> Result:
    if not result.success:
        return result
    current = client.session_state.session
    try:
        session = Session.from_payload(
            result.data,
            push_token=current.push_token,
            push_enabled=current.push_enabled,
            social_provider=current.social_provider,
            token=current.token,
        )
    except ProtocolError as e:
        return Result.fail(e)
    client.session_state.replace(session)
    return result


# =============================================================================
# Factory Functions
# =============================================================================

def create_baasbox_client(config: BaasConfig) -> BaasClient:
    """Create a new synchronous BaasBox client."""
    return BaasClient(config)


def create_async_baasbox_client(config: BaasConfig) -> AsyncBaasClient:
    """Create a new asynchronous BaasBox client."""
    return AsyncBaasClient(config)


_shared_client: Optional[BaasClient] = None
_shared_lock = threading.Lock()


def setup(config: BaasConfig) -> BaasClient:
    """
    Create the process-wide shared client.

    Optional convenience for applications that want a single global
    instance; passing a client around explicitly works just as well.

    Raises:
        ConfigurationError: If setup was already done
    """
    global _shared_client
    with _shared_lock:
        if _shared_client is not None:
            raise ConfigurationError("Cannot invoke setup, already done")
        _shared_client = BaasClient(config)
        return _shared_client


def get_client() -> BaasClient:
    """Return the shared client created by ``setup``."""
    with _shared_lock:
        if _shared_client is None:
            raise ConfigurationError("Setup not done, call baasbox.setup() first")
        return _shared_client


def reset_client() -> None:
    """Close and forget the shared client."""
    global _shared_client
    with _shared_lock:
        if _shared_client is not None:
            _shared_client.close()
        _shared_client = None
