"""
GitHubConnector — refresh-token exchange for GitHub App user tokens.

Only GitHub Apps with "Expire user authorization tokens" enabled hand out
refresh tokens; classic OAuth tokens never expire and never show up here.
GitHub reports OAuth errors with HTTP 200 and an ``error`` field.
"""

from __future__ import annotations

from typing import Optional

import httpx

from connectors.base import DEFAULT_TIMEOUT_SECONDS, BaseConnector
from connectors.errors import TerminalRefreshError, TransientRefreshError
from utils.schemas import TokenGrant


_GH_TOKEN_URL = "https://github.com/login/oauth/access_token"

_TERMINAL_ERRORS = {"bad_refresh_token", "invalid_grant"}


class GitHubConnector(BaseConnector):
    """OAuth2 refresh connector for GitHub."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self._client_id = client_id
        self._client_secret = client_secret

    @property
    def provider_name(self) -> str:
        return "github"

    @property
    def display_name(self) -> str:
        return "GitHub"

    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        try:
            async with self._client() as client:
                resp = await client.post(
                    _GH_TOKEN_URL,
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise TransientRefreshError(
                f"GitHub token endpoint returned HTTP {exc.response.status_code}",
                provider=self.provider_name,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientRefreshError(
                f"GitHub token request failed: {exc}", provider=self.provider_name
            ) from exc
        except ValueError as exc:
            raise TransientRefreshError(
                "GitHub returned a non-JSON token response", provider=self.provider_name
            ) from exc

        if "error" in data:
            detail = data.get("error_description", data["error"])
            if data["error"] in _TERMINAL_ERRORS:
                raise TerminalRefreshError(
                    f"GitHub token refresh error: {detail}", provider=self.provider_name
                )
            raise TransientRefreshError(
                f"GitHub token refresh error: {detail}", provider=self.provider_name
            )

        if not data.get("access_token"):
            raise TransientRefreshError(
                "No access token returned from GitHub", provider=self.provider_name
            )

        return TokenGrant(
            access_token=data["access_token"],
            expires_at=self._expiry_from(data.get("expires_in")),
            refresh_token=data.get("refresh_token"),
        )
