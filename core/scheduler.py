"""
Refresh scheduler

Runs a sweep once at startup and then on every interval tick.  A sweep walks
the registry in order: scan each provider for due connections, refresh them
one by one, count the outcomes, log a summary.

Only one sweep runs at a time.  A trigger (timer tick or manual) that
arrives while a sweep is in progress is dropped, not queued.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from connectors.errors import ProviderScanError, UnexpectedSweepError
from connectors.registry import ServiceEntry
from core.interval import IntervalTimer
from core.refresher import TokenRefresher
from core.scanner import ConnectionScanner
from core.state import SchedulerState
from utils.schemas import ProviderSweepResult, RefreshOutcome, SweepSummary

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenRefreshScheduler:
    def __init__(
        self,
        state: SchedulerState,
        *,
        scanner: Optional[ConnectionScanner] = None,
        refresher: Optional[TokenRefresher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._state = state
        self._scanner = scanner or ConnectionScanner(state.registry)
        self._refresher = refresher or TokenRefresher()
        self._clock = clock
        self._timer: Optional[IntervalTimer] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._timer is not None

    # ── Operational surface ─────────────────────────────────────────────

    def start(self) -> None:
        """
        Sweep immediately (to fix tokens that expired while we were down),
        then every ``state.interval``.  Must be called from a running loop.
        """
        if self._timer is not None:
            logger.info("[TokenRefresh] Worker already running")
            return
        if not self._state.enabled:
            logger.info("[TokenRefresh] Worker disabled (TOKEN_REFRESH_ENABLED=false)")
            return

        logger.info("[TokenRefresh] Running initial token refresh on startup...")
        self._spawn("startup")

        self._timer = IntervalTimer(
            self._state.interval,
            lambda: self._spawn("timer"),
            name="token-refresh-timer",
        )
        self._timer.start()
        logger.info(
            "[TokenRefresh] Worker started — sweeping every %s (%d providers, buffer %d min)",
            self._state.interval,
            len(self._state.registry),
            self._state.buffer_minutes,
        )

    def stop(self) -> None:
        """Stop the timer.  A sweep already in progress runs to completion."""
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
            logger.info("[TokenRefresh] Worker stopped")

    async def run_manual_refresh(self) -> Optional[SweepSummary]:
        """Manual trigger for testing/debugging.  Returns None if a sweep was already running."""
        logger.info("[TokenRefresh] Manual refresh triggered")
        return await self._run_guarded("manual")

    async def drain(self) -> None:
        """Wait for sweeps started by ``start()`` or the timer to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ── Sweep ───────────────────────────────────────────────────────────

    def _spawn(self, trigger: str) -> None:
        task = asyncio.get_running_loop().create_task(self._run_guarded(trigger))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run_guarded(self, trigger: str) -> Optional[SweepSummary]:
        if not self._state.try_begin():
            logger.info("[TokenRefresh] Scan already in progress, skipping %s trigger", trigger)
            return None

        summary = SweepSummary(started_at=self._clock())
        logger.info("[TokenRefresh] Starting proactive token refresh scan (%s)...", trigger)
        try:
            await self._sweep(summary)
        except Exception as exc:
            error = exc if isinstance(exc, UnexpectedSweepError) else UnexpectedSweepError(
                f"{type(exc).__name__}: {exc}"
            )
            summary.error = str(error)
            logger.error("[TokenRefresh] Unexpected error during scan: %s", error, exc_info=exc)
        finally:
            summary.finished_at = self._clock()
            self._state.finish(summary)

        logger.info(
            "[TokenRefresh] Scan complete in %.2fs — checked=%d refreshed=%d failed=%d",
            summary.duration_seconds,
            summary.checked,
            summary.refreshed,
            summary.failed,
        )
        return summary

    async def _sweep(self, summary: SweepSummary) -> None:
        for entry in self._state.registry:
            result = ProviderSweepResult(provider_id=entry.provider_id, name=entry.name)
            summary.providers.append(result)
            try:
                await self._sweep_provider(entry, result)
            except ProviderScanError as exc:
                result.error = str(exc)
                logger.error("[TokenRefresh][%s] Scan error: %s", entry.name, exc.cause)
                continue
            except Exception as exc:
                result.error = f"{type(exc).__name__}: {exc}"
                logger.error(
                    "[TokenRefresh][%s] Aborted after %d of %d connections: %s",
                    entry.name,
                    result.refreshed + result.failed + result.skipped,
                    result.checked,
                    exc,
                    exc_info=exc,
                )
                continue

            level = logging.INFO if result.checked else logging.DEBUG
            logger.log(
                level,
                "[TokenRefresh][%s] checked=%d refreshed=%d failed=%d skipped=%d",
                entry.name,
                result.checked,
                result.refreshed,
                result.failed,
                result.skipped,
            )

    async def _sweep_provider(self, entry: ServiceEntry, result: ProviderSweepResult) -> None:
        now = self._clock()
        connections = await self._scanner.due_for_refresh(
            entry.provider_id, self._state.buffer_minutes, now
        )
        result.checked = len(connections)

        for connection in connections:
            if self._state.in_terminal_cooldown(entry.provider_id, connection, now):
                result.skipped += 1
                continue

            # refresh_one may rotate the refresh token in place; bookkeeping uses the old one
            before = connection.model_copy()
            outcome = await self._refresher.refresh_one(entry, connection)
            if outcome is RefreshOutcome.SUCCESS:
                result.refreshed += 1
                self._state.clear_terminal(entry.provider_id, before)
            elif outcome is RefreshOutcome.FAILED_TERMINAL:
                result.failed += 1
                result.reauth_required += 1
                self._state.record_terminal(entry.provider_id, before, now)
            else:
                result.failed += 1
