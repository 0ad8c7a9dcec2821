"""
Bonus router.

Previews of the monthly and milestone bonus rules for dashboards, plus the
admin-only evaluation trigger and pending-bonus review list.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from seed_portal.models import (
    BonusEvaluationResult,
    MilestoneBonusResult,
    MilestoneProgress,
    MonthlyBonusResult,
)
from seed_portal.services import storage
from seed_portal.services.bonus_tracking import bonus_tracking_service
from seed_portal.services.commission import (
    calculate_milestone_bonus,
    calculate_monthly_bonus,
    get_next_milestone,
)
from seed_portal.services.obo_auth import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bonuses", tags=["bonuses"])


@router.get(
    "/monthly",
    response_model=MonthlyBonusResult,
    summary="Monthly bonus tier for a number of clients closed",
)
async def preview_monthly_bonus(
    clients_closed: int = Query(..., ge=0, description="Clients closed this month"),
) -> MonthlyBonusResult:
    return calculate_monthly_bonus(clients_closed)


@router.get(
    "/milestones",
    response_model=MilestoneBonusResult,
    summary="Milestone tiers achieved for a lifetime client count",
)
async def preview_milestone_bonus(
    total_clients: int = Query(..., ge=0, description="Clients closed all time"),
) -> MilestoneBonusResult:
    return calculate_milestone_bonus(total_clients)


@router.get(
    "/milestones/progress",
    response_model=MilestoneProgress,
    summary="Progress towards the next milestone",
)
async def milestone_progress(
    total_clients: int = Query(..., ge=0, description="Clients closed all time"),
) -> MilestoneProgress:
    return get_next_milestone(total_clients)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
@router.post(
    "/evaluate",
    response_model=BonusEvaluationResult,
    summary="Award every bonus earned so far (admin)",
)
async def evaluate_bonuses(
    request: Request,
    as_of: date | None = Query(None, description="Evaluation date (defaults to today)"),
) -> BonusEvaluationResult:
    """Award monthly and milestone bonuses for every rep with deals.

    Safe to re-run: already-awarded bonuses are skipped by storage.
    """
    require_admin(request)
    try:
        result = bonus_tracking_service.evaluate(today=as_of)
    except Exception as exc:
        logger.exception("Bonus evaluation failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    logger.info(
        "Bonus evaluation for %s: %d reps, %d monthly, %d milestone",
        result.month,
        result.reps_evaluated,
        result.monthly_bonuses_awarded,
        result.milestone_bonuses_awarded,
    )
    return result


@router.get(
    "/pending",
    summary="Bonuses awaiting payout review (admin)",
)
async def list_pending_bonuses(request: Request) -> dict[str, Any]:
    require_admin(request)
    try:
        rows = storage.get_pending_bonuses()
    except Exception as exc:
        logger.exception("Failed to fetch pending bonuses")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"count": len(rows), "data": rows}
