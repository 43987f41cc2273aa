"""
BaseConnector — the token-refresh capability every provider implements.

A connector is a pure exchange: refresh token in, ``TokenGrant`` out.
It never touches the connection store; persisting the grant is the
refresher's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from utils.schemas import TokenGrant

DEFAULT_TIMEOUT_SECONDS = 20.0


class BaseConnector(ABC):
    """Abstract base for all OAuth2 refresh connectors."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug: 'youtube', 'google_ads', 'github'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable: 'YouTube', 'Google Ads', 'GitHub'."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """
        Exchange a refresh token for a fresh access token.

        Returns
        -------
        TokenGrant with the new access token, the provider-reported expiry
        and, when the provider rotates it, the new refresh token.

        Raises
        ------
        TerminalRefreshError  – the refresh token was rejected (invalid_grant)
        TransientRefreshError – anything else; safe to retry later
        """
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def is_configured(self) -> bool:
        """
        Return True if this connector has all required config
        (client IDs, secrets, etc.).
        """
        return True

    @property
    def reauth_hint(self) -> str:
        """Extra guidance logged when the refresh token is rejected for good."""
        return ""

    def _client(self) -> httpx.AsyncClient:
        """HTTP client bounded by this connector's timeout."""
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _expiry_from(expires_in: Any, now: Optional[datetime] = None) -> Optional[datetime]:
        """Absolute expiry from a provider's ``expires_in`` (seconds), or None if unreported."""
        if expires_in is None:
            return None
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError):
            return None
        return (now or datetime.now(timezone.utc)) + timedelta(seconds=seconds)
