"""
Scheduler state

The single owned object holding everything the refresh scheduler needs
between sweeps: the provider registry, timing settings, the IDLE/SWEEPING
flag, the last sweep summary and terminal-failure bookkeeping.
Created once at startup, closed at shutdown.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from config.settings import Settings
from connectors.registry import ServiceRegistry
from utils.schemas import ConnectionRecord, SweepSummary


class SchedulerStatus(str, Enum):
    IDLE = "idle"
    SWEEPING = "sweeping"


def _fingerprint(refresh_token: Optional[str]) -> str:
    return hashlib.sha256((refresh_token or "").encode()).hexdigest()[:16]


class SchedulerState:
    def __init__(
        self,
        registry: ServiceRegistry,
        *,
        interval: timedelta,
        buffer_minutes: int = 15,
        terminal_retry_minutes: int = 0,
        enabled: bool = True,
    ):
        self.registry = registry
        self.interval = interval
        self.buffer_minutes = buffer_minutes
        self.terminal_retry_minutes = terminal_retry_minutes
        self.enabled = enabled

        self.status = SchedulerStatus.IDLE
        self.last_summary: Optional[SweepSummary] = None
        self.sweeps_completed = 0
        self.sweeps_dropped = 0
        self._terminal_failures: Dict[Tuple[str, str, str], datetime] = {}

    @classmethod
    def from_settings(cls, registry: ServiceRegistry, settings: Settings) -> "SchedulerState":
        return cls(
            registry,
            interval=settings.refresh_interval,
            buffer_minutes=settings.token_refresh_buffer_minutes,
            terminal_retry_minutes=settings.token_refresh_terminal_retry_minutes,
            enabled=settings.token_refresh_enabled,
        )

    # ── IDLE / SWEEPING ─────────────────────────────────────────────────

    @property
    def is_sweeping(self) -> bool:
        return self.status is SchedulerStatus.SWEEPING

    def try_begin(self) -> bool:
        """Move IDLE → SWEEPING. False (and the trigger is dropped) if already sweeping."""
        if self.status is SchedulerStatus.SWEEPING:
            self.sweeps_dropped += 1
            return False
        self.status = SchedulerStatus.SWEEPING
        return True

    def finish(self, summary: SweepSummary) -> None:
        self.last_summary = summary
        self.sweeps_completed += 1
        self.status = SchedulerStatus.IDLE

    # ── Terminal failure cool-down ──────────────────────────────────────

    @staticmethod
    def _key(provider_id: str, connection: ConnectionRecord) -> Tuple[str, str, str]:
        # a re-authorized connection carries a new refresh token, hence a new key
        return provider_id, connection.id, _fingerprint(connection.refresh_token)

    def record_terminal(self, provider_id: str, connection: ConnectionRecord, now: datetime) -> None:
        if self.terminal_retry_minutes > 0:
            self._terminal_failures[self._key(provider_id, connection)] = now

    def clear_terminal(self, provider_id: str, connection: ConnectionRecord) -> None:
        self._terminal_failures.pop(self._key(provider_id, connection), None)

    def in_terminal_cooldown(self, provider_id: str, connection: ConnectionRecord, now: datetime) -> bool:
        if self.terminal_retry_minutes <= 0:
            return False
        failed_at = self._terminal_failures.get(self._key(provider_id, connection))
        if failed_at is None:
            return False
        return now < failed_at + timedelta(minutes=self.terminal_retry_minutes)

    # ── Lifecycle ───────────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view for the status endpoint."""
        return {
            "enabled": self.enabled,
            "status": self.status.value,
            "interval_seconds": self.interval.total_seconds(),
            "buffer_minutes": self.buffer_minutes,
            "terminal_retry_minutes": self.terminal_retry_minutes,
            "providers": self.registry.provider_ids(),
            "sweeps_completed": self.sweeps_completed,
            "sweeps_dropped": self.sweeps_dropped,
            "last_summary": self.last_summary.model_dump(mode="json") if self.last_summary else None,
        }

    def close(self) -> None:
        self._terminal_failures.clear()
        self.last_summary = None
        self.status = SchedulerStatus.IDLE
