"""
Pydantic schemas shared by the connectors and the refresh worker.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field


# ═══════════════════════════════════════════════════════════════════════════════
# Connections & provider responses
# ═══════════════════════════════════════════════════════════════════════════════


class ConnectionRecord(BaseModel):
    """Snapshot of one persisted connection row (never a live ORM object)."""

    id: str
    project_id: str
    provider_id: str
    refresh_token: Optional[str] = None
    access_token: Optional[str] = None
    expires_at: Optional[datetime] = None


class TokenGrant(BaseModel):
    """Result of a successful refresh exchange."""

    access_token: str
    expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None  # set only when the provider rotates it


class RefreshOutcome(str, Enum):
    SUCCESS = "success"
    FAILED_TRANSIENT = "failed_transient"
    FAILED_TERMINAL = "failed_terminal"


# ═══════════════════════════════════════════════════════════════════════════════
# Sweep results
# ═══════════════════════════════════════════════════════════════════════════════


class ProviderSweepResult(BaseModel):
    provider_id: str
    name: str
    checked: int = 0
    refreshed: int = 0
    failed: int = 0
    skipped: int = 0          # terminal failures still inside their cool-down
    reauth_required: int = 0  # subset of ``failed`` that hit invalid_grant
    error: Optional[str] = None


class SweepSummary(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    providers: List[ProviderSweepResult] = Field(default_factory=list)
    error: Optional[str] = None

    @computed_field
    @property
    def checked(self) -> int:
        return sum(p.checked for p in self.providers)

    @computed_field
    @property
    def refreshed(self) -> int:
        return sum(p.refreshed for p in self.providers)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(p.failed for p in self.providers)

    @computed_field
    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def for_provider(self, provider_id: str) -> Optional[ProviderSweepResult]:
        for result in self.providers:
            if result.provider_id == provider_id:
                return result
        return None

    def totals(self) -> Dict[str, int]:
        return {"checked": self.checked, "refreshed": self.refreshed, "failed": self.failed}
