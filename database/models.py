"""
SQLAlchemy ORM models — one connection table per OAuth provider.

Every table shares ``TokenConnectionMixin`` so the connection store can
query any of them with the same predicate.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TokenConnectionMixin:
    """Columns shared by every per-provider connection table."""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(String(64), nullable=False, unique=True, index=True)
    refresh_token = Column(Text, nullable=False)
    access_token = Column(Text)
    expires_at = Column(DateTime(timezone=True), index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class GAConnection(TokenConnectionMixin, Base):
    __tablename__ = "ga_connections"


class YouTubeConnection(TokenConnectionMixin, Base):
    __tablename__ = "youtube_connections"


class GoogleAdsConnection(TokenConnectionMixin, Base):
    __tablename__ = "google_ads_connections"


class SearchConsoleConnection(TokenConnectionMixin, Base):
    __tablename__ = "search_console_connections"


class BusinessProfileConnection(TokenConnectionMixin, Base):
    __tablename__ = "business_profile_connections"


class GoogleDriveConnection(TokenConnectionMixin, Base):
    __tablename__ = "google_drive_connections"


class GoogleSheetsConnection(TokenConnectionMixin, Base):
    __tablename__ = "google_sheets_connections"


class GitHubConnection(TokenConnectionMixin, Base):
    __tablename__ = "github_connections"
