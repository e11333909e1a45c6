"""
Credential Manager

Holds the current access/refresh token pair and hands out a valid bearer
token, refreshing it lazily when it has expired.

Expiry is recorded one minute early (issued_at + expires_in - 60s) so a
token never expires in flight. Concurrent callers that see an expired token
share a single refresh exchange.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .errors import AuthRefreshFailed, MoodDJError, Unauthorized

logger = logging.getLogger(__name__)

EXPIRY_MARGIN_SECONDS = 60.0
DEFAULT_EXPIRES_IN = 3600


class TokenExchanger(Protocol):
    """Anything that can trade a refresh token for a new token response."""

    def refresh(self, refresh_token: str) -> dict:
        ...


@dataclass(frozen=True)
class Credential:
    """An OAuth token pair and its (early) expiry in epoch seconds."""
    access_token: str
    refresh_token: Optional[str]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CredentialManager:
    """
    Owns one credential slot.

    An instance is created per service (or per user) and injected where it
    is needed instead of living in module state.
    """

    def __init__(
        self,
        exchanger: Optional[TokenExchanger] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            exchanger: Token endpoint client used for refreshes.
            clock: Time source returning epoch seconds.
        """
        self._exchanger = exchanger
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._refresh_lock = threading.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    @property
    def is_authorized(self) -> bool:
        return self._credential is not None

    def _build(
        self,
        token_response: dict,
        issued_at: float,
        previous_refresh_token: Optional[str] = None,
    ) -> Credential:
        access_token = token_response.get("access_token")
        if not access_token:
            raise AuthRefreshFailed("Token response did not include an access_token")
        expires_in = float(token_response.get("expires_in") or DEFAULT_EXPIRES_IN)
        return Credential(
            access_token=access_token,
            refresh_token=token_response.get("refresh_token") or previous_refresh_token,
            expires_at=issued_at + expires_in - EXPIRY_MARGIN_SECONDS,
        )

    def set_credential(self, token_response: dict, issued_at: Optional[float] = None) -> Credential:
        """
        Install a credential from a fresh authorization-code exchange.

        Args:
            token_response: {access_token, refresh_token?, expires_in}
            issued_at: When the token was issued (defaults to now).

        Returns:
            The installed Credential.
        """
        issued_at = self._clock() if issued_at is None else issued_at
        previous = self._credential.refresh_token if self._credential else None
        credential = self._build(token_response, issued_at, previous)
        self._credential = credential
        logger.info("Spotify credential installed")
        return credential

    def get_auth_token(self) -> str:
        """
        Return a currently valid access token.

        Raises:
            Unauthorized: No credential, or expired with no refresh token.
            AuthRefreshFailed: The refresh exchange failed.
        """
        credential = self._credential
        if credential is None:
            raise Unauthorized()
        if not credential.is_expired(self._clock()):
            return credential.access_token
        return self._refresh()

    def _refresh(self) -> str:
        with self._refresh_lock:
            # Another caller may have refreshed while we waited for the lock.
            credential = self._credential
            if credential is None:
                raise Unauthorized()
            if not credential.is_expired(self._clock()):
                return credential.access_token
            if not credential.refresh_token or self._exchanger is None:
                raise Unauthorized("Access token expired and cannot be refreshed. Reconnect Spotify.")

            logger.info("Refreshing Spotify access token")
            issued_at = self._clock()
            try:
                response = self._exchanger.refresh(credential.refresh_token)
            except MoodDJError:
                raise
            except Exception as e:
                raise AuthRefreshFailed(f"Token refresh failed: {e}") from e

            refreshed = self._build(response, issued_at, credential.refresh_token)
            self._credential = refreshed
            logger.info("Spotify access token refreshed")
            return refreshed.access_token

    def force_expire(self, rejected_token: Optional[str] = None) -> None:
        """
        Mark the current credential as expired so the next get_auth_token()
        refreshes it.

        Args:
            rejected_token: The token the catalog just rejected. If the stored
                token has already been replaced, nothing is expired.
        """
        with self._refresh_lock:
            credential = self._credential
            if credential is None:
                return
            if rejected_token is not None and rejected_token != credential.access_token:
                return
            self._credential = dataclasses.replace(credential, expires_at=self._clock() - 1.0)
            logger.info("Spotify access token force-expired")

    def clear(self) -> None:
        """Forget the credential (logout)."""
        self._credential = None
