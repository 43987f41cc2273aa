"""
GoogleOAuthConnector — refresh-token exchange against Google's OAuth2 endpoint.

Every Google product (Analytics, YouTube, Ads, Search Console, Business
Profile, Drive, Sheets) uses the same token endpoint but its own OAuth
client, so one instance is created per product.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from connectors.base import DEFAULT_TIMEOUT_SECONDS, BaseConnector
from connectors.errors import TerminalRefreshError, TransientRefreshError
from utils.schemas import TokenGrant


_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

REAUTH_HINT = 'Publish the Google OAuth app to "Production" in Google Cloud Console.'


class GoogleOAuthConnector(BaseConnector):
    """OAuth2 refresh connector for one Google product."""

    def __init__(
        self,
        provider_name: str,
        display_name: str,
        client_id: str,
        client_secret: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self._provider_name = provider_name
        self._display_name = display_name
        self._client_id = client_id
        self._client_secret = client_secret

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def reauth_hint(self) -> str:
        return REAUTH_HINT

    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Use the refresh token to get a new access token from Google."""
        try:
            async with self._client() as client:
                resp = await client.post(
                    _GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
        except httpx.TimeoutException as exc:
            raise TransientRefreshError(
                f"Google token endpoint timed out after {self.timeout}s",
                provider=self.provider_name,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientRefreshError(
                f"Google token request failed: {exc}", provider=self.provider_name
            ) from exc

        data = _json_or_empty(resp)

        if resp.status_code >= 400:
            error = data.get("error", "")
            detail = data.get("error_description") or error or resp.text[:200]
            if error == "invalid_grant":
                raise TerminalRefreshError(
                    f"invalid_grant: {detail}",
                    provider=self.provider_name,
                    status_code=resp.status_code,
                )
            raise TransientRefreshError(
                f"Google token endpoint returned HTTP {resp.status_code}: {detail}",
                provider=self.provider_name,
                status_code=resp.status_code,
            )

        access_token = data.get("access_token")
        if not access_token:
            raise TransientRefreshError(
                "No access token returned from Google", provider=self.provider_name
            )

        return TokenGrant(
            access_token=access_token,
            expires_at=self._expiry_from(data.get("expires_in")),
            refresh_token=data.get("refresh_token"),
        )


def _json_or_empty(resp: httpx.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
