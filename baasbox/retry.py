"""
Retry coordinator: one silent re-login and one replay per expired session.

On a 401 the coordinator takes a process-wide guard, reads the cached
secret, logs in again through the configured login strategy and replays the
original request with the new session header. The guard covers the whole
chain, so a 401 arriving on another request meanwhile (including the
re-login call itself) is surfaced as-is instead of starting a second chain.
An abandoned chain forgets the cached secret before firing ``not_authorized``.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from .errors import BaasError
from .types import OutboundRequest, Result

if TYPE_CHECKING:
    from .client import AsyncBaasClient, BaasClient


logger = logging.getLogger("baasbox")


class RetryState(str, Enum):
    """Coordinator states; REPLAYED and ABANDONED are per-chain outcomes."""
    IDLE = "idle"
    RETRYING = "retrying"
    REPLAYED = "replayed"
    ABANDONED = "abandoned"


class RetryCoordinator:
    """Retry chain for the synchronous, thread-safe client."""

    def __init__(self, client: "BaasClient") -> None:
        self._client = client
        self._guard = threading.Lock()
        self.state = RetryState.IDLE
        self.last_outcome: Optional[RetryState] = None

    def is_retrying(self) -> bool:
        return self._guard.locked()

    def handle_unauthorized(self, request: OutboundRequest, error: BaasError) -> Result:
        """
        Recover from ``error`` (a 401 for ``request``).

        Returns the replayed request's result, or ``error`` itself when the
        chain is abandoned or another chain already holds the guard.
        """
        if not self._guard.acquire(blocking=False):
            logger.debug("Re-login already in progress, surfacing 401 for %s", request.url)
            return Result.fail(error)
        try:
            self.state = RetryState.RETRYING
            logger.info("Session expired, attempting re-login")
            outcome, result = self._run(request, error)
            self.last_outcome = outcome
            return result
        finally:
            self.state = RetryState.IDLE
            self._guard.release()

    def _run(self, request: OutboundRequest, error: BaasError) -> Tuple[RetryState, Result]:
        client = self._client
        secret = client.vault.load()
        if secret is None:
            return self._abandon(error, "no cached credential")

        session = client.session_state.session
        if session.social_provider is not None:
            login = client.login_strategy.social_login(client, session.social_provider, secret)
        elif session.identity.username:
            login = client.login_strategy.login(client, session.identity.username, secret)
        else:
            return self._abandon(error, "no username to log in with")

        if not login.success:
            return self._abandon(error, "re-login failed")

        replay = request.with_session_token(client.session_state.token)
        logger.info("Re-login succeeded, replaying %s %s", replay.method, replay.url)
        return RetryState.REPLAYED, client._send(replay)

    def _abandon(self, error: BaasError, reason: str) -> Tuple[RetryState, Result]:
        logger.warning("Abandoning re-login: %s", reason)
        self._client.vault.clear()
        self._client.logout_strategy.not_authorized(self._client)
        return RetryState.ABANDONED, Result.fail(error)


class AsyncRetryCoordinator:
    """Retry chain for the asyncio client."""

    def __init__(self, client: "AsyncBaasClient") -> None:
        self._client = client
        self._guard = asyncio.Lock()
        self.state = RetryState.IDLE
        self.last_outcome: Optional[RetryState] = None

    def is_retrying(self) -> bool:
        return self._guard.locked()

    async def handle_unauthorized(self, request: OutboundRequest, error: BaasError) -> Result:
        # No await between the check and the acquire: the guard is taken
        # atomically with respect to other tasks on this loop.
        if self._guard.locked():
            logger.debug("Re-login already in progress, surfacing 401 for %s", request.url)
            return Result.fail(error)
        async with self._guard:
            try:
                self.state = RetryState.RETRYING
                logger.info("Session expired, attempting re-login")
                outcome, result = await self._run(request, error)
                self.last_outcome = outcome
                return result
            finally:
                self.state = RetryState.IDLE

    async def _run(self, request: OutboundRequest, error: BaasError) -> Tuple[RetryState, Result]:
        client = self._client
        secret = client.vault.load()
        if secret is None:
            return self._abandon(error, "no cached credential")

        session = client.session_state.session
        if session.social_provider is not None:
            login = await client.login_strategy.social_login(client, session.social_provider, secret)
        elif session.identity.username:
            login = await client.login_strategy.login(client, session.identity.username, secret)
        else:
            return self._abandon(error, "no username to log in with")

        if not login.success:
            return self._abandon(error, "re-login failed")

        replay = request.with_session_token(client.session_state.token)
        logger.info("Re-login succeeded, replaying %s %s", replay.method, replay.url)
        return RetryState.REPLAYED, await client._send(replay)

    def _abandon(self, error: BaasError, reason: str) -> Tuple[RetryState, Result]:
        logger.warning("Abandoning re-login: %s", reason)
        self._client.vault.clear()
        self._client.logout_strategy.not_authorized(self._client)
        return RetryState.ABANDONED, Result.fail(error)
