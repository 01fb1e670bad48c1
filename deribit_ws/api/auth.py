"""
Authentication session.

Exchanges client credentials for an access token and gates private calls.
The session does no I/O of its own: it is handed the client's call and
notify coroutines so every request goes through the same correlator.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from deribit_ws.api.errors import DeribitAuthError, DeribitProtocolError
from deribit_ws.lib.constants import METHOD_AUTH, METHOD_LOGOUT

logger = logging.getLogger(__name__)

CallFunc = Callable[..., Awaitable[Any]]
NotifyFunc = Callable[[str, dict], Awaitable[None]]


@dataclass
class Authentication:
    """Tokens returned by public/auth.

    Attributes:
        access_token: Token injected into private calls
        refresh_token: Token for public/auth with grant_type refresh_token
        expires_in: Access token lifetime in seconds
        scope: Granted scope
        token_type: Always "bearer"
    """
    access_token: str
    refresh_token: str
    expires_in: int = 0
    scope: str = ""
    token_type: str = "bearer"

    @classmethod
    def from_payload(cls, data: dict) -> "Authentication":
        """Create Authentication from a public/auth result."""
        return cls(
            access_token=str(data["access_token"]),
            refresh_token=str(data.get("refresh_token", "")),
            expires_in=int(data.get("expires_in", 0)),
            scope=str(data.get("scope", "")),
            token_type=str(data.get("token_type", "bearer")),
        )


class AuthSession:
    """Holds the tokens for one connection lifetime.

    Example:
        session = AuthSession(client.call, client.notify)
        await session.authenticate(api_key, secret_key)
        params = session.inject({"currency": "BTC"})
    """

    def __init__(self, call: CallFunc, notify: NotifyFunc):
        self._call = call
        self._notify = notify
        self._authentication: Optional[Authentication] = None

    @property
    def authentication(self) -> Optional[Authentication]:
        return self._authentication

    @property
    def access_token(self) -> Optional[str]:
        if self._authentication is None:
            return None
        return self._authentication.access_token

    @property
    def is_authenticated(self) -> bool:
        return self._authentication is not None

    def clear(self) -> None:
        """Forget the stored tokens."""
        self._authentication = None

    async def authenticate(self, api_key: str, secret_key: str) -> Authentication:
        """Authenticate with client credentials.

        Any previously stored token is discarded first, so a failed attempt
        leaves the session unauthenticated.

        Args:
            api_key: Client id
            secret_key: Client secret

        Returns:
            Stored Authentication

        Raises:
            DeribitAPIError: If the auth call fails
            DeribitProtocolError: If the result carries no access token
        """
        self._authentication = None

        result = await self._call(
            METHOD_AUTH,
            {
                "grant_type": "client_credentials",
                "client_id": api_key,
                "client_secret": secret_key,
            },
            private=False,
        )

        try:
            authentication = Authentication.from_payload(result)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DeribitProtocolError(
                f"Malformed {METHOD_AUTH} result: {type(e).__name__}: {e}"
            ) from e

        self._authentication = authentication
        logger.info(f"Authenticated (scope={self._authentication.scope})")
        return self._authentication

    async def logout(self) -> None:
        """Invalidate the session server-side.

        private/logout gets no response, so it is sent as a notification. The
        local tokens are kept if the send fails.

        Raises:
            DeribitAuthError: If not authenticated
        """
        token = self.access_token
        if token is None:
            raise DeribitAuthError("Not authenticated")

        await self._notify(METHOD_LOGOUT, {"access_token": token, "invalidate_token": True})
        self._authentication = None
        logger.info("Logged out")

    def inject(self, params: dict) -> dict:
        """Return a copy of params carrying the access token.

        Raises:
            DeribitAuthError: If no access token is stored
        """
        token = self.access_token
        if token is None:
            raise DeribitAuthError("Private call requires authentication")

        injected = dict(params)
        injected["access_token"] = token
        return injected
