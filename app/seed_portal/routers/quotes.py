"""
Quote calculator router.

Prices a client intake form for bookkeeping and Tax-as-a-Service.  Used both
when a quote is being built and when a saved quote is displayed.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from seed_portal.models import (
    BookkeepingQuality,
    Industry,
    PricingInput,
    QuoteOptions,
    QuoteResponse,
    RevenueBand,
    TransactionBand,
)
from seed_portal.services.pricing import (
    calculate_combined_fees,
    missing_bookkeeping_fields,
    missing_taas_fields,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/quotes", tags=["quotes"])


# ---------------------------------------------------------------------------
# POST /calculate
# ---------------------------------------------------------------------------
@router.post(
    "/calculate",
    response_model=QuoteResponse,
    summary="Price an intake form",
)
async def calculate_quote(body: PricingInput) -> QuoteResponse:
    """Return per-line and combined fees.

    A line whose answers are incomplete prices at zero; its outstanding
    fields are listed so the form can tell "incomplete" from "free".
    """
    result = calculate_combined_fees(body)

    missing_bookkeeping = missing_bookkeeping_fields(body) if result.includes_bookkeeping else []
    missing_taas = missing_taas_fields(body) if result.includes_taas else []
    if missing_bookkeeping or missing_taas:
        logger.debug(
            "Incomplete quote: bookkeeping missing %s, taas missing %s",
            missing_bookkeeping,
            missing_taas,
        )

    return QuoteResponse(
        **result.model_dump(),
        missing_bookkeeping_fields=missing_bookkeeping,
        missing_taas_fields=missing_taas,
    )


# ---------------------------------------------------------------------------
# GET /options
# ---------------------------------------------------------------------------
@router.get(
    "/options",
    response_model=QuoteOptions,
    summary="Allowed values for the intake form's choice fields",
)
async def get_quote_options() -> QuoteOptions:
    return QuoteOptions(
        revenue_bands=[band.value for band in RevenueBand],
        transaction_bands=[band.value for band in TransactionBand],
        industries=[industry.value for industry in Industry],
        bookkeeping_qualities=[quality.value for quality in BookkeepingQuality],
    )
