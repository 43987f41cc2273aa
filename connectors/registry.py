"""
ServiceRegistry — the fixed, ordered list of providers the worker refreshes.

Each entry pairs a provider's connector (the token exchange) with the
connection store for that provider's table.  The registry is built once at
startup and never mutated; iteration follows registration order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from connectors.base import BaseConnector
from connectors.github import GitHubConnector
from connectors.google import GoogleOAuthConnector
from connectors.store import ConnectionStore, SqlConnectionStore
from database.models import (
    BusinessProfileConnection,
    GAConnection,
    GitHubConnection,
    GoogleAdsConnection,
    GoogleDriveConnection,
    GoogleSheetsConnection,
    SearchConsoleConnection,
    TokenConnectionMixin,
    YouTubeConnection,
)

logger = logging.getLogger(__name__)

# ── All known Google services ───────────────────────────────────────────

GOOGLE_SERVICES: List[Tuple[str, str, Type[TokenConnectionMixin]]] = [
    ("google_analytics", "Google Analytics", GAConnection),
    ("youtube", "YouTube", YouTubeConnection),
    ("google_ads", "Google Ads", GoogleAdsConnection),
    ("search_console", "Search Console", SearchConsoleConnection),
    ("business_profile", "Business Profile", BusinessProfileConnection),
    ("google_drive", "Google Drive", GoogleDriveConnection),
    ("google_sheets", "Google Sheets", GoogleSheetsConnection),
]


@dataclass(frozen=True)
class ServiceEntry:
    provider_id: str
    name: str
    store: ConnectionStore
    adapter: BaseConnector


class ServiceRegistry:
    """Read-only, ordered collection of ``ServiceEntry`` objects."""

    def __init__(self, entries: Sequence[ServiceEntry]) -> None:
        seen = set()
        for entry in entries:
            if entry.provider_id in seen:
                raise ValueError(f"Provider '{entry.provider_id}' registered twice")
            seen.add(entry.provider_id)
        self._entries: Tuple[ServiceEntry, ...] = tuple(entries)
        self._by_id: Dict[str, ServiceEntry] = {e.provider_id: e for e in self._entries}

    def __iter__(self) -> Iterator[ServiceEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, provider_id: str) -> Optional[ServiceEntry]:
        return self._by_id.get(provider_id)

    def provider_ids(self) -> List[str]:
        return [e.provider_id for e in self._entries]

    def list_providers(self) -> List[Dict[str, str]]:
        """Return info about all registered providers."""
        return [{"provider": e.provider_id, "display_name": e.name} for e in self._entries]


def build_default_registry(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> ServiceRegistry:
    """Register every configured provider; unconfigured ones are skipped."""
    timeout = settings.provider_timeout_seconds
    candidates: List[ServiceEntry] = []

    for provider_id, name, model in GOOGLE_SERVICES:
        client_id, client_secret = settings.google_client_for(provider_id)
        candidates.append(
            ServiceEntry(
                provider_id=provider_id,
                name=name,
                store=SqlConnectionStore(provider_id, model, session_factory),
                adapter=GoogleOAuthConnector(
                    provider_id, name, client_id, client_secret, timeout=timeout
                ),
            )
        )

    candidates.append(
        ServiceEntry(
            provider_id="github",
            name="GitHub",
            store=SqlConnectionStore("github", GitHubConnection, session_factory),
            adapter=GitHubConnector(
                settings.github_client_id, settings.github_client_secret, timeout=timeout
            ),
        )
    )

    entries: List[ServiceEntry] = []
    for entry in candidates:
        if entry.adapter.is_configured():
            entries.append(entry)
            logger.info("Provider registered: %s (%s)", entry.name, entry.provider_id)
        else:
            logger.warning(
                "Provider %s skipped: not configured (missing client_id/secret)",
                entry.provider_id,
            )
    return ServiceRegistry(entries)
