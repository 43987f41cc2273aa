"""
Connection scanner — which connections of a provider are due for refresh.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from connectors.errors import ProviderScanError
from connectors.registry import ServiceRegistry
from utils.schemas import ConnectionRecord

logger = logging.getLogger(__name__)


def is_due(connection: ConnectionRecord, cutoff: datetime) -> bool:
    """
    A connection is due iff it has a refresh token and its expiry is either
    unknown or at/before ``cutoff``.  Unknown expiry counts as expired.
    """
    if not connection.refresh_token:
        return False
    return connection.expires_at is None or connection.expires_at <= cutoff


class ConnectionScanner:
    def __init__(self, registry: ServiceRegistry):
        self._registry = registry

    async def due_for_refresh(
        self,
        provider_id: str,
        buffer_minutes: int,
        now: Optional[datetime] = None,
    ) -> List[ConnectionRecord]:
        """
        Snapshot of the provider's connections expiring within ``buffer_minutes``
        of ``now`` (or already expired, or of unknown expiry), in store order.

        Raises ``KeyError`` for an unregistered provider and
        ``ProviderScanError`` when the store query fails.
        """
        entry = self._registry.get(provider_id)
        if entry is None:
            raise KeyError(provider_id)

        cutoff = (now or datetime.now(timezone.utc)) + timedelta(minutes=buffer_minutes)
        try:
            rows = await entry.store.find_due(cutoff)
        except Exception as exc:
            raise ProviderScanError(provider_id, exc) from exc

        due = [c for c in rows if is_due(c, cutoff)]
        if len(due) != len(rows):
            logger.debug(
                "[%s] store returned %d rows, %d actually due", provider_id, len(rows), len(due)
            )
        return due
