"""
Tests for the service registry and interval/credential settings.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from config.settings import Settings, parse_interval
from connectors.github import GitHubConnector
from connectors.google import GoogleOAuthConnector
from connectors.registry import GOOGLE_SERVICES, ServiceRegistry, build_default_registry
from connectors.store import SqlConnectionStore
from fakes import make_entry


class TestServiceRegistry:
    def test_iterates_in_registration_order(self):
        registry = ServiceRegistry([make_entry("b", "B"), make_entry("a", "A"), make_entry("c", "C")])
        assert [e.provider_id for e in registry] == ["b", "a", "c"]
        assert registry.provider_ids() == ["b", "a", "c"]
        assert len(registry) == 3

    def test_get(self):
        entry = make_entry("youtube", "YouTube")
        registry = ServiceRegistry([entry])
        assert registry.get("youtube") is entry
        assert registry.get("missing") is None

    def test_duplicate_provider_rejected(self):
        with pytest.raises(ValueError, match="twice"):
            ServiceRegistry([make_entry("youtube"), make_entry("youtube")])

    def test_list_providers(self):
        registry = ServiceRegistry([make_entry("youtube", "YouTube")])
        assert registry.list_providers() == [{"provider": "youtube", "display_name": "YouTube"}]


class TestBuildDefaultRegistry:
    def test_shared_google_client_registers_all_google_services(self):
        settings = Settings(google_client_id="gid", google_client_secret="gsecret")

        registry = build_default_registry(settings, MagicMock())

        assert registry.provider_ids() == [pid for pid, _, _ in GOOGLE_SERVICES]
        for entry in registry:
            assert isinstance(entry.adapter, GoogleOAuthConnector)
            assert isinstance(entry.store, SqlConnectionStore)
            assert entry.store.provider_id == entry.provider_id

    def test_unconfigured_providers_skipped(self):
        settings = Settings(
            google_client_id="",
            google_client_secret="",
            youtube_client_id="yt-id",
            youtube_client_secret="yt-secret",
            github_client_id="gh",
            github_client_secret="gh-secret",
        )

        registry = build_default_registry(settings, MagicMock())

        assert registry.provider_ids() == ["youtube", "github"]
        assert isinstance(registry.get("github").adapter, GitHubConnector)

    def test_adapter_timeout_from_settings(self):
        settings = Settings(google_client_id="g", google_client_secret="s", provider_timeout_seconds=7)
        registry = build_default_registry(settings, MagicMock())
        assert all(entry.adapter.timeout == 7 for entry in registry)


class TestParseInterval:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("45m", timedelta(minutes=45)),
            ("1h30m", timedelta(minutes=90)),
            ("90s", timedelta(seconds=90)),
            ("2700", timedelta(seconds=2700)),
            (600, timedelta(seconds=600)),
            ("*/15 * * * *", timedelta(minutes=15)),
            ("0 */3 * * *", timedelta(hours=3)),
            ("0 * * * *", timedelta(hours=1)),
            # minute steps past 59 only match :00
            ("*/90 * * * *", timedelta(hours=1)),
            ("30 9 * * 1", timedelta(days=7)),
        ],
    )
    def test_accepted_forms(self, value, expected):
        assert parse_interval(value) == expected

    @pytest.mark.parametrize("value", ["", "soon", "0", "0m", "*/5 * * * * *", "61 * * * *"])
    def test_rejected_forms(self, value):
        with pytest.raises(ValueError):
            parse_interval(value)

    @pytest.mark.parametrize("value", ["*/45 * * * *", "0 */5 * * *", "0 0 1 * *"])
    def test_unevenly_spaced_cron_rejected(self, value):
        with pytest.raises(ValueError, match="fixed interval"):
            parse_interval(value)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.refresh_interval == timedelta(minutes=45)
        assert settings.token_refresh_buffer_minutes == 15
        assert settings.token_refresh_terminal_retry_minutes == 0

    def test_cron_alias(self):
        assert Settings(token_refresh_cron="*/10 * * * *").refresh_interval == timedelta(minutes=10)

    def test_invalid_interval_fails_validation(self):
        with pytest.raises(ValidationError):
            Settings(token_refresh_interval="whenever")

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValidationError):
            Settings(token_refresh_buffer_minutes=-1)

    def test_google_client_override_falls_back_to_shared(self):
        settings = Settings(
            google_client_id="shared",
            google_client_secret="shared-secret",
            google_ads_client_id="ads",
            google_ads_client_secret="ads-secret",
        )
        assert settings.google_client_for("google_ads") == ("ads", "ads-secret")
        assert settings.google_client_for("google_drive") == ("shared", "shared-secret")
