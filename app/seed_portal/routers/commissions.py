"""
Commission tracker router.

Closed-won deals arrive from the CRM sync; each one gets a year-one
commission schedule written once.  Reps read their own line items and
earnings totals; admins may read anyone's.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request

from seed_portal.models import (
    CommissionPreview,
    Deal,
    DealCommissionResult,
    EarningsSummary,
)
from seed_portal.services import storage
from seed_portal.services.bonus_tracking import bonus_tracking_service
from seed_portal.services.commission import (
    calculate_commissions,
    calculate_total_earnings,
    generate_commission_records,
)
from seed_portal.services.obo_auth import require_admin, resolve_sales_rep_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/commissions", tags=["commissions"])


def _evaluate_rep_bonuses(deal: Deal) -> None:
    """Background task: award any bonus the new deal unlocked."""
    for result in bonus_tracking_service.evaluate_after_deal(deal):
        logger.info(
            "Post-sync bonus evaluation for rep %s in %s: %d monthly, %d milestone",
            deal.sales_rep_id,
            result.month.strftime("%Y-%m"),
            result.monthly_bonuses_awarded,
            result.milestone_bonuses_awarded,
        )


# ---------------------------------------------------------------------------
# POST /preview
# ---------------------------------------------------------------------------
@router.post(
    "/preview",
    response_model=CommissionPreview,
    summary="Compute a deal's commission schedule without saving it",
)
async def preview_commissions(deal: Deal) -> CommissionPreview:
    if deal.first_payment_date is None:
        raise HTTPException(status_code=422, detail="firstPaymentDate is required")

    calculation = calculate_commissions(deal, deal.first_payment_date)
    records = generate_commission_records(calculation, deal.first_payment_date)
    return CommissionPreview(calculation=calculation, records=records)


# ---------------------------------------------------------------------------
# POST /deals
# ---------------------------------------------------------------------------
@router.post(
    "/deals",
    response_model=DealCommissionResult,
    summary="Record a closed-won deal and its commission schedule",
)
async def record_deal(
    request: Request,
    deal: Deal,
    background_tasks: BackgroundTasks,
) -> DealCommissionResult:
    """Persist *deal* and its commission line items (idempotent), then
    schedule a bonus evaluation for the deal's rep.
    """
    require_admin(request)
    if deal.first_payment_date is None:
        raise HTTPException(status_code=422, detail="firstPaymentDate is required")

    try:
        result = bonus_tracking_service.record_deal_commissions(deal)
    except Exception as exc:
        logger.exception("Failed to record commissions for deal %s", deal.deal_id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    background_tasks.add_task(_evaluate_rep_bonuses, deal)
    return result


# ---------------------------------------------------------------------------
# GET /
# ---------------------------------------------------------------------------
@router.get(
    "/",
    summary="Commission line items for a rep",
)
async def list_commissions(
    request: Request,
    sales_rep_id: int | None = Query(None, description="Rep to list (admins only)"),
) -> dict[str, Any]:
    try:
        rep_id = resolve_sales_rep_id(request, sales_rep_id)
        rows = storage.get_commissions_by_rep(rep_id)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Failed to fetch commissions (requested rep %s)", sales_rep_id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {
        "sales_rep_id": rep_id,
        "count": len(rows),
        "data": rows,
    }


# ---------------------------------------------------------------------------
# GET /earnings
# ---------------------------------------------------------------------------
@router.get(
    "/earnings",
    response_model=EarningsSummary,
    summary="Commission and bonus totals by payout status",
)
async def get_earnings(
    request: Request,
    sales_rep_id: int | None = Query(None, description="Rep to summarise (admins only)"),
) -> EarningsSummary:
    try:
        rep_id = resolve_sales_rep_id(request, sales_rep_id)
        return calculate_total_earnings(
            storage.get_commissions_by_rep(rep_id),
            storage.get_monthly_bonuses_by_rep(rep_id),
            storage.get_milestone_bonuses_by_rep(rep_id),
        )
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Failed to compute earnings (requested rep %s)", sales_rep_id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
