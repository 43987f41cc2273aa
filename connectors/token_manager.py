"""
Token manager — get a usable access token for a project + provider.

This is the single interface data-fetching code uses to get an active
token.  When the stored token is close to expiry it is refreshed through
the same ``TokenRefresher`` the background worker uses, so both paths
persist the same shape.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from config.settings import config
from connectors.registry import ServiceRegistry
from core.refresher import TokenRefresher
from utils.schemas import RefreshOutcome

logger = logging.getLogger(__name__)


async def get_active_token(
    registry: ServiceRegistry,
    provider_id: str,
    project_id: str,
    *,
    buffer_minutes: Optional[int] = None,
    refresher: Optional[TokenRefresher] = None,
) -> Optional[str]:
    """
    Get a valid access token for the project + provider.

    1. Look up the connection in the provider's store.
    2. If the token is missing, expired, of unknown expiry or within the
       buffer, refresh it.
    3. Return the access_token string, or None if not connected or the
       refresh failed.
    """
    entry = registry.get(provider_id)
    if entry is None:
        logger.error("No connector for provider %s", provider_id)
        return None

    conn = await entry.store.get_by_project(project_id)
    if conn is None:
        return None

    if buffer_minutes is None:
        buffer_minutes = config.active_token_buffer_minutes
    cutoff = datetime.now(timezone.utc) + timedelta(minutes=buffer_minutes)

    # unknown expiry counts as expired
    if conn.access_token and conn.expires_at is not None and conn.expires_at > cutoff:
        return conn.access_token

    if not conn.refresh_token:
        logger.warning(
            "%s token for project %s expired and no refresh token available",
            provider_id,
            project_id,
        )
        return None

    outcome = await (refresher or TokenRefresher()).refresh_one(entry, conn)
    if outcome is RefreshOutcome.SUCCESS:
        logger.info("Refreshed %s token for project %s", provider_id, project_id)
        return conn.access_token
    return None
