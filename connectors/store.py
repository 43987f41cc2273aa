"""
Connection store — query / update contract over one per-provider table.

The refresh worker only needs three things from persistence:

* ``find_due(cutoff)`` — rows with a refresh token whose expiry is unknown
  or at/before ``cutoff``
* ``save(connection)`` — overwrite access token + expiry (and a rotated
  refresh token) in one statement
* ``get_by_project(project_id)`` — for ad-hoc token lookups
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Type

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import TokenConnectionMixin
from utils.schemas import ConnectionRecord

logger = logging.getLogger(__name__)


class ConnectionStore(Protocol):
    async def find_due(self, cutoff: datetime) -> List[ConnectionRecord]: ...

    async def save(self, connection: ConnectionRecord) -> None: ...

    async def get_by_project(self, project_id: str) -> Optional[ConnectionRecord]: ...


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlConnectionStore:
    """``ConnectionStore`` backed by one SQLAlchemy model."""

    def __init__(
        self,
        provider_id: str,
        model: Type[TokenConnectionMixin],
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.provider_id = provider_id
        self.model = model
        self._session_factory = session_factory

    def _to_record(self, row: TokenConnectionMixin) -> ConnectionRecord:
        return ConnectionRecord(
            id=str(row.id),
            project_id=row.project_id,
            provider_id=self.provider_id,
            refresh_token=row.refresh_token,
            access_token=row.access_token,
            expires_at=_as_utc(row.expires_at),
        )

    async def find_due(self, cutoff: datetime) -> List[ConnectionRecord]:
        """Rows with a non-empty refresh token and ``expires_at`` NULL or <= cutoff."""
        model = self.model
        stmt = (
            select(model)
            .where(
                model.refresh_token.is_not(None),
                model.refresh_token != "",
                or_(model.expires_at.is_(None), model.expires_at <= cutoff),
            )
            .order_by(model.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_record(row) for row in result.scalars().all()]

    async def save(self, connection: ConnectionRecord) -> None:
        """Persist the connection's token fields in a single UPDATE."""
        values = {
            "access_token": connection.access_token,
            "expires_at": connection.expires_at,
            "updated_at": datetime.now(timezone.utc),
        }
        if connection.refresh_token:
            values["refresh_token"] = connection.refresh_token

        stmt = (
            update(self.model)
            .where(self.model.id == uuid.UUID(connection.id))
            .values(**values)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()

        if result.rowcount == 0:
            # disconnected while we were refreshing, nothing left to update
            logger.info(
                "[%s] connection %s vanished before save; dropping refreshed token",
                self.provider_id,
                connection.id,
            )

    async def get_by_project(self, project_id: str) -> Optional[ConnectionRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(self.model).where(self.model.project_id == project_id)
            )
            row = result.scalar_one_or_none()
            return self._to_record(row) if row else None
