"""
BaasBox Python SDK - Basic Usage Example

This example demonstrates the basic usage of the BaasBox Python SDK.
"""

import asyncio
from typing import Any

from baasbox import (
    AsyncBaasClient,
    BaasClient,
    BaasConfig,
    FileStore,
    SignupData,
    is_unauthenticated,
)


class PrintingLogoutStrategy:
    """Tells the user to log in again when the session cannot be renewed."""

    def not_authorized(self, client: Any) -> None:
        print("Session expired and re-login failed; please log in again.")

    def logout(self, client: Any) -> None:
        client.session_state.clear()
        client.vault.clear()
        print("Logged out.")


def sync_example():
    """Synchronous client example."""
    print("=== Sync Client Example ===\n")

    # Persist the session and the encrypted password across restarts
    with BaasClient(BaasConfig(
        base_url="http://localhost:9000",
        appcode="1234567890",
        store=FileStore(),
        logout_strategy=PrintingLogoutStrategy(),
        debug=True,
    )) as client:
        print(f"Resumed session: {client.is_authenticated()}")

        # Login (would fail without a running server)
        result = client.login("alice", "SecurePassword123!")
        if not result.success:
            print(f"Login failed: {result.error!r}")
            return

        print(f"Logged in as: {client.get_session().identity.username}")

        # An expired session is renewed transparently with the cached password
        result = client.get("/document/posts", params={"recordsPerPage": 10})
        if is_unauthenticated(result.error):
            print("Not authorized")
        elif result.success:
            print(f"Posts: {result.data}")

        client.logout()


async def async_example():
    """Asynchronous client example."""
    print("\n=== Async Client Example ===\n")

    # Using context manager
    async with AsyncBaasClient(BaasConfig(
        base_url="http://localhost:9000",
        appcode="1234567890",
        debug=True,
    )) as client:
        result = await client.signup(SignupData(
            username="bob",
            password="SecurePassword123!",
            visible_by_the_user={"email": "bob@example.com"},
        ))
        if result.success:
            print(f"Registered: {client.get_session().identity.username}")
            upload = await client.upload_file(b"hello", filename="hello.txt", mimetype="text/plain")
            print(f"Upload: {upload.success}")
        else:
            print(f"Error (expected without a running server): {result.error!r}")


if __name__ == "__main__":
    sync_example()
    asyncio.run(async_example())

    print("\nExamples completed!")
