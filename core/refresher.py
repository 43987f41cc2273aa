"""
Token refresher — one connection through exchange, persist and classification.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from connectors.errors import TerminalRefreshError
from utils.schemas import ConnectionRecord, RefreshOutcome

if TYPE_CHECKING:
    from connectors.registry import ServiceEntry

logger = logging.getLogger(__name__)


class TokenRefresher:
    async def refresh_one(self, entry: "ServiceEntry", connection: ConnectionRecord) -> RefreshOutcome:
        """
        Refresh ``connection`` through ``entry.adapter`` and persist the result.

        On SUCCESS the access token and expiry are written together and
        ``connection`` is updated in place.  On any failure the stored row and
        ``connection`` are left exactly as they were.  Never raises for
        provider or persistence failures.
        """
        label = f"[TokenRefresh][{entry.name}][project:{connection.project_id}]"

        try:
            grant = await entry.adapter.refresh_access_token(connection.refresh_token)
        except TerminalRefreshError as exc:
            hint = entry.adapter.reauth_hint
            logger.warning(
                "%s Refresh token revoked or expired (%s). User must reconnect %s. %s",
                label,
                exc,
                entry.name,
                hint,
            )
            return RefreshOutcome.FAILED_TERMINAL
        except Exception as exc:
            logger.error("%s Token refresh failed: %s", label, exc)
            return RefreshOutcome.FAILED_TRANSIENT

        updated = connection.model_copy(
            update={
                "access_token": grant.access_token,
                "expires_at": grant.expires_at,
                "refresh_token": grant.refresh_token or connection.refresh_token,
            }
        )
        try:
            await entry.store.save(updated)
        except Exception as exc:
            logger.error("%s Refreshed token could not be saved: %s", label, exc)
            return RefreshOutcome.FAILED_TRANSIENT

        connection.access_token = updated.access_token
        connection.expires_at = updated.expires_at
        connection.refresh_token = updated.refresh_token

        if updated.expires_at is not None:
            minutes = round((updated.expires_at - datetime.now(timezone.utc)).total_seconds() / 60)
            logger.info("%s Token refreshed, expires in ~%d min", label, minutes)
        else:
            logger.info("%s Token refreshed, expiry unknown", label)
        return RefreshOutcome.SUCCESS
