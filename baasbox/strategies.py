"""
Default login, signup and logout strategies.

Strategies are substitutable: anything satisfying the protocols in
``types.py`` can be passed through ``BaasConfig`` or ``configure()``. The
retry coordinator only relies on ``login``/``social_login`` returning a
``Result`` and on the session state holding the new token afterwards.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from .errors import ProtocolError
from .pipeline import path_segment
from .types import Result, Session, SignupData, SocialProvider

if TYPE_CHECKING:
    from .client import AsyncBaasClient, BaasClient


logger = logging.getLogger("baasbox")


def complete_login(
    client: Any,
    result: Result,
    secret: str,
    social_provider: Optional[SocialProvider] = None,
) -> Result:
    """
    Apply a successful login response.

    Caches the secret (when re-login is enabled), then overwrites and
    persists the session. Push settings of the previous session are kept.
    """
    if not result.success:
        return result

    current = client.session_state.session
    try:
        session = Session.from_payload(
            result.data,
            push_token=current.push_token,
            push_enabled=current.push_enabled,
            social_provider=social_provider,
        )
    except ProtocolError as e:
        return Result.fail(e)

    if client.retry_login:
        client.vault.store(secret)
    client.session_state.replace(session)
    return result


def _login_body(client: Any, username: str, password: str) -> dict:
    if not username or not password:
        raise ValueError("Username or password for user login cannot be empty")
    return {"username": username, "password": password, "appcode": client.appcode}


def _social_body(token: str) -> dict:
    if not token:
        raise ValueError("Token for social login cannot be empty")
    return {"oauth_token": token, "oauth_secret": token}


def _signup_body(data: SignupData) -> dict:
    if not data.username or not data.password:
        raise ValueError("Username or password for user creation cannot be empty")
    return data.to_dict()


class DefaultLoginStrategy:
    """Password and social login against the BaasBox endpoints."""

    def login(self, client: "BaasClient", username: str, password: str) -> Result:
        result = client.request(
            "POST",
            "/login",
            body=_login_body(client, username, password),
            with_session=False,
            retry=False,
        )
        return complete_login(client, result, password)

    def social_login(self, client: "BaasClient", provider: SocialProvider, token: str) -> Result:
        result = client.request(
            "POST",
            "/social/" + path_segment(provider.value),
            body=_social_body(token),
            with_session=False,
            retry=False,
        )
        return complete_login(client, result, token, provider)


class AsyncDefaultLoginStrategy:
    """Async variant of ``DefaultLoginStrategy``."""

    async def login(self, client: "AsyncBaasClient", username: str, password: str) -> Result:
        result = await client.request(
            "POST",
            "/login",
            body=_login_body(client, username, password),
            with_session=False,
            retry=False,
        )
        return complete_login(client, result, password)

    async def social_login(
        self, client: "AsyncBaasClient", provider: SocialProvider, token: str
    ) -> Result:
        result = await client.request(
            "POST",
            "/social/" + path_segment(provider.value),
            body=_social_body(token),
            with_session=False,
            retry=False,
        )
        return complete_login(client, result, token, provider)


class DefaultSignupStrategy:
    """Creates the user and signs in as them."""

    def signup(self, client: "BaasClient", data: SignupData) -> Result:
        result = client.request(
            "POST", "/user", body=_signup_body(data), with_session=False, retry=False
        )
        return complete_login(client, result, data.password)


class AsyncDefaultSignupStrategy:
    """Async variant of ``DefaultSignupStrategy``."""

    async def signup(self, client: "AsyncBaasClient", data: SignupData) -> Result:
        result = await client.request(
            "POST", "/user", body=_signup_body(data), with_session=False, retry=False
        )
        return complete_login(client, result, data.password)


class DefaultLogoutStrategy:
    """
    Default hooks.

    ``not_authorized`` only logs: override it to send the user back to the
    sign-in flow. ``logout`` forgets the session and the cached secret.
    """

    def not_authorized(self, client: Any) -> None:
        logger.warning("User is not authorized and the session could not be renewed")

    def logout(self, client: Any) -> None:
        client.session_state.clear()
        client.vault.clear()
