"""
Tests for refreshing a single connection.
"""

import logging
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from connectors.errors import TerminalRefreshError, TransientRefreshError
from core.refresher import TokenRefresher
from fakes import FakeConnector, FakeStore, make_connection, make_entry, utcnow
from utils.schemas import RefreshOutcome


class TestRefreshSuccess:
    @pytest.mark.asyncio
    async def test_expired_token_gets_provider_lifetime(self):
        conn = make_connection(expires_at=utcnow() - timedelta(hours=1))
        store = FakeStore([conn])
        entry = make_entry(store=store, adapter=FakeConnector(lifetime_seconds=3600))

        outcome = await TokenRefresher().refresh_one(entry, conn)

        assert outcome is RefreshOutcome.SUCCESS
        stored = store.rows[conn.id]
        assert stored.access_token == "youtube-access-1"
        expected = utcnow() + timedelta(seconds=3600)
        assert abs((stored.expires_at - expected).total_seconds()) < 5

    @pytest.mark.asyncio
    async def test_token_and_expiry_saved_together(self):
        conn = make_connection(expires_at=None)
        store = FakeStore([conn])
        entry = make_entry(store=store, adapter=FakeConnector(lifetime_seconds=600))

        await TokenRefresher().refresh_one(entry, conn)

        assert len(store.saved) == 1
        saved = store.saved[0]
        assert saved.access_token == "youtube-access-1"
        assert saved.expires_at is not None
        assert conn.access_token == saved.access_token
        assert conn.expires_at == saved.expires_at

    @pytest.mark.asyncio
    async def test_unreported_lifetime_stores_unknown_expiry(self):
        conn = make_connection(expires_at=utcnow() - timedelta(minutes=1))
        store = FakeStore([conn])
        entry = make_entry(store=store, adapter=FakeConnector(lifetime_seconds=None))

        assert await TokenRefresher().refresh_one(entry, conn) is RefreshOutcome.SUCCESS
        assert store.rows[conn.id].expires_at is None

    @pytest.mark.asyncio
    async def test_rotated_refresh_token_is_persisted(self):
        conn = make_connection(refresh_token="rt-old")
        store = FakeStore([conn])
        entry = make_entry(store=store, adapter=FakeConnector(rotate_refresh_token=True))

        await TokenRefresher().refresh_one(entry, conn)

        assert store.rows[conn.id].refresh_token == "rt-old-rotated"

    @pytest.mark.asyncio
    async def test_refresh_token_kept_when_not_rotated(self):
        conn = make_connection(refresh_token="rt-keep")
        store = FakeStore([conn])

        await TokenRefresher().refresh_one(make_entry(store=store), conn)

        assert store.rows[conn.id].refresh_token == "rt-keep"


class TestRefreshFailure:
    @pytest.mark.asyncio
    async def test_invalid_grant_is_terminal_and_leaves_record_untouched(self):
        conn = make_connection(expires_at=None, access_token="stale")
        before = conn.model_copy()
        store = FakeStore([conn])
        adapter = FakeConnector(error=TerminalRefreshError("invalid_grant", provider="youtube"))

        outcome = await TokenRefresher().refresh_one(make_entry(store=store, adapter=adapter), conn)

        assert outcome is RefreshOutcome.FAILED_TERMINAL
        assert store.saved == []
        assert store.rows[conn.id] == before
        assert conn == before

    @pytest.mark.asyncio
    async def test_invalid_grant_warning_carries_connector_hint(self, caplog):
        class HintedConnector(FakeConnector):
            @property
            def reauth_hint(self) -> str:
                return "Reconnect from the settings page."

        adapter = HintedConnector(error=TerminalRefreshError("invalid_grant", provider="youtube"))
        conn = make_connection(expires_at=None)

        with caplog.at_level(logging.WARNING):
            await TokenRefresher().refresh_one(make_entry(adapter=adapter, connections=[conn]), conn)

        assert any("Reconnect from the settings page." in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            TransientRefreshError("HTTP 503", provider="youtube"),
            RuntimeError("adapter bug"),
            TimeoutError(),
        ],
    )
    async def test_other_failures_are_transient(self, error):
        conn = make_connection(expires_at=utcnow() - timedelta(minutes=5))
        before = conn.model_copy()
        store = FakeStore([conn])

        outcome = await TokenRefresher().refresh_one(
            make_entry(store=store, adapter=FakeConnector(error=error)), conn
        )

        assert outcome is RefreshOutcome.FAILED_TRANSIENT
        assert store.rows[conn.id] == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            OperationalError("UPDATE", {}, Exception("locked")),
            ConnectionRefusedError("connection refused"),
            TimeoutError("pool timeout"),
        ],
    )
    async def test_save_failure_is_transient_and_connection_unchanged(self, error):
        conn = make_connection(expires_at=None)
        before = conn.model_copy()
        store = FakeStore([conn], save_error=error)

        outcome = await TokenRefresher().refresh_one(make_entry(store=store), conn)

        assert outcome is RefreshOutcome.FAILED_TRANSIENT
        assert conn == before
