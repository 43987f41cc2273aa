"""
Token refresh API routes — worker status and manual trigger.

Route prefix: /api/v1/token-refresh
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from config.settings import config
from core.scheduler import TokenRefreshScheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["token-refresh"])


def get_scheduler(request: Request) -> TokenRefreshScheduler:
    scheduler = getattr(request.app.state, "token_refresh_scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token refresh worker is not running",
        )
    return scheduler


async def require_admin_key(x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key")) -> None:
    """Only enforced when ADMIN_API_KEY is configured."""
    if config.admin_api_key and x_admin_key != config.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )


@router.get("/status")
async def refresh_status(
    scheduler: TokenRefreshScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    """Current IDLE/SWEEPING state and the last sweep summary."""
    data = scheduler.state.snapshot()
    data["started"] = scheduler.is_started
    return data


@router.post("/run", dependencies=[Depends(require_admin_key)])
async def run_refresh(
    scheduler: TokenRefreshScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    """
    Run a sweep now.  Goes through the same overlap guard as the timer, so
    it returns ``{"ran": false}`` when a sweep is already in progress.
    """
    summary = await scheduler.run_manual_refresh()
    if summary is None:
        return {"ran": False, "detail": "Scan already in progress"}
    return {"ran": True, "summary": summary.model_dump(mode="json")}
