"""
Fee pricing engine.

Maps a client's intake answers to monthly and setup fees for the two service
lines sold through the quote calculator:

1. **Bookkeeping** -- a base monthly fee scaled by revenue band, transaction
   volume and industry, plus a one-time cleanup (setup) fee for months of
   historical catch-up work.
2. **Tax-as-a-Service (TaaS)** -- a base monthly fee with per-unit upcharges
   for entities, states, owners and personal returns, scaled by industry and
   revenue tier; the setup fee covers prior unfiled years.

Everything here is pure and deterministic.  A service line whose required
answers are missing prices at zero rather than raising: the form is simply
not complete yet.  ``missing_bookkeeping_fields`` / ``missing_taas_fields``
report exactly which answers are outstanding.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from pydantic.alias_generators import to_camel

from seed_portal.models import (
    BookkeepingQuality,
    CombinedFeeResult,
    FeeResult,
    Industry,
    PricingInput,
    RevenueBand,
    TransactionBand,
)


class IndustryMultiplier(NamedTuple):
    monthly: float
    cleanup: float


# ---------------------------------------------------------------------------
# Bookkeeping tables
# ---------------------------------------------------------------------------
BASE_MONTHLY_FEE = 150

REVENUE_MULTIPLIERS: dict[RevenueBand, float] = {
    RevenueBand.UNDER_10K: 1.0,
    RevenueBand.FROM_10K_TO_25K: 1.0,
    RevenueBand.FROM_25K_TO_75K: 2.2,
    RevenueBand.FROM_75K_TO_250K: 3.5,
    RevenueBand.FROM_250K_TO_1M: 5.0,
    RevenueBand.OVER_1M: 7.0,
}

TRANSACTION_SURCHARGES: dict[TransactionBand, int] = {
    TransactionBand.UNDER_100: 0,
    TransactionBand.FROM_100_TO_300: 100,
    TransactionBand.FROM_300_TO_600: 500,
    TransactionBand.FROM_600_TO_1000: 800,
    TransactionBand.FROM_1000_TO_2000: 1200,
    TransactionBand.OVER_2000: 1600,
}

INDUSTRY_MULTIPLIERS: dict[Industry, IndustryMultiplier] = {
    Industry.SOFTWARE_SAAS: IndustryMultiplier(1.0, 1.0),
    Industry.PROFESSIONAL_SERVICES: IndustryMultiplier(1.0, 1.1),
    Industry.CONSULTING: IndustryMultiplier(1.0, 1.05),
    Industry.HEALTHCARE_MEDICAL: IndustryMultiplier(1.4, 1.3),
    Industry.REAL_ESTATE: IndustryMultiplier(1.25, 1.05),
    Industry.PROPERTY_MANAGEMENT: IndustryMultiplier(1.3, 1.2),
    Industry.ECOMMERCE_RETAIL: IndustryMultiplier(1.35, 1.15),
    Industry.RESTAURANT_FOOD_SERVICE: IndustryMultiplier(1.6, 1.4),
    Industry.HOSPITALITY: IndustryMultiplier(1.6, 1.4),
    Industry.CONSTRUCTION_TRADES: IndustryMultiplier(1.5, 1.08),
    Industry.MANUFACTURING: IndustryMultiplier(1.45, 1.25),
    Industry.TRANSPORTATION_LOGISTICS: IndustryMultiplier(1.4, 1.2),
    Industry.NONPROFIT: IndustryMultiplier(1.2, 1.15),
    Industry.LAW_FIRM: IndustryMultiplier(1.3, 1.35),
    Industry.ACCOUNTING_FINANCE: IndustryMultiplier(1.1, 1.1),
    Industry.MARKETING_ADVERTISING: IndustryMultiplier(1.15, 1.1),
    Industry.INSURANCE: IndustryMultiplier(1.35, 1.25),
    Industry.AUTOMOTIVE: IndustryMultiplier(1.4, 1.2),
    Industry.EDUCATION: IndustryMultiplier(1.25, 1.2),
    Industry.FITNESS_WELLNESS: IndustryMultiplier(1.3, 1.15),
    Industry.ENTERTAINMENT_EVENTS: IndustryMultiplier(1.5, 1.3),
    Industry.AGRICULTURE: IndustryMultiplier(1.45, 1.2),
    Industry.TECHNOLOGY_IT_SERVICES: IndustryMultiplier(1.1, 1.05),
    Industry.MULTI_ENTITY_HOLDING: IndustryMultiplier(1.35, 1.25),
    Industry.OTHER: IndustryMultiplier(1.2, 1.15),
}

DEFAULT_INDUSTRY_MULTIPLIER = INDUSTRY_MULTIPLIERS[Industry.OTHER]

# Only this override reason unlocks a hand-entered setup fee
CUSTOM_SETUP_FEE_REASON = "Other"

# ---------------------------------------------------------------------------
# TaaS tables
# ---------------------------------------------------------------------------
TAAS_BASE_MONTHLY_FEE = 150
TAAS_INCLUDED_ENTITIES = 5
TAAS_ENTITY_UPCHARGE = 75
TAAS_STATE_UPCHARGE = 50
TAAS_MAX_ADDITIONAL_STATES = 49
TAAS_INTERNATIONAL_UPCHARGE = 200
TAAS_INCLUDED_OWNERS = 5
TAAS_OWNER_UPCHARGE = 25
TAAS_PERSONAL_1040_FEE = 25
TAAS_SEED_CLIENT_DISCOUNT = 0.15
TAAS_PRIOR_YEAR_FEE = 2100

BOOKKEEPING_QUALITY_UPCHARGES: dict[BookkeepingQuality, int] = {
    BookkeepingQuality.CLEAN_SEED: 0,
    BookkeepingQuality.OUTSIDE_CPA: 75,
}
DEFAULT_QUALITY_UPCHARGE = 150

TAAS_INDUSTRY_MULTIPLIERS: dict[Industry, float] = {
    Industry.SOFTWARE_SAAS: 1.0,
    Industry.PROFESSIONAL_SERVICES: 1.1,
    Industry.CONSULTING: 1.1,
    Industry.REAL_ESTATE: 1.2,
    Industry.ECOMMERCE_RETAIL: 1.3,
    Industry.CONSTRUCTION_TRADES: 1.4,
    Industry.MULTI_ENTITY_HOLDING: 1.5,
}
DEFAULT_TAAS_INDUSTRY_MULTIPLIER = 1.0

# Representative average monthly revenue per band
AVERAGE_MONTHLY_REVENUE: dict[RevenueBand, int] = {
    RevenueBand.UNDER_10K: 5_000,
    RevenueBand.FROM_10K_TO_25K: 17_500,
    RevenueBand.FROM_25K_TO_75K: 50_000,
    RevenueBand.FROM_75K_TO_250K: 162_500,
    RevenueBand.FROM_250K_TO_1M: 625_000,
    RevenueBand.OVER_1M: 1_000_000,
}

# (upper bound inclusive, multiplier); anything above the last bound gets 2.0
TAAS_REVENUE_TIERS: list[tuple[int, float]] = [
    (10_000, 1.0),
    (25_000, 1.2),
    (75_000, 1.4),
    (250_000, 1.6),
    (1_000_000, 1.8),
]
TAAS_TOP_REVENUE_MULTIPLIER = 2.0


# ---------------------------------------------------------------------------
# Rounding helpers
# ---------------------------------------------------------------------------
def round_half_up(value: float) -> int:
    """Round to the nearest whole dollar, halves away from zero for positives."""
    return math.floor(value + 0.5)


def round_up_to_nearest_25(value: float) -> int:
    """Round *up* to the next multiple of $25."""
    return math.ceil(value / 25) * 25


# ---------------------------------------------------------------------------
# Completeness checks
# ---------------------------------------------------------------------------
def _wire_name(field_name: str) -> str:
    return PricingInput.model_fields[field_name].alias or to_camel(field_name)


def missing_bookkeeping_fields(data: PricingInput) -> list[str]:
    """Return the camelCase names of answers still needed to price bookkeeping."""
    missing = [
        _wire_name(name)
        for name in ("revenue_band", "monthly_transactions", "industry", "cleanup_months")
        if getattr(data, name) is None
    ]
    if data.cleanup_months and data.cleanup_complexity is None:
        missing.append(_wire_name("cleanup_complexity"))
    return missing


_TAAS_REQUIRED_VALUES = (
    "revenue_band",
    "industry",
    "international_filing",
    "bookkeeping_quality",
    "include_1040s",
    "prior_years_unfiled",
    "already_on_seed_bookkeeping",
)

# Zero is not a meaningful answer for these counts
_TAAS_REQUIRED_COUNTS = ("num_entities", "states_filed", "num_business_owners")


def missing_taas_fields(data: PricingInput) -> list[str]:
    """Return the camelCase names of answers still needed to price TaaS."""
    missing: list[str] = []
    if not data.entity_type:
        missing.append(_wire_name("entity_type"))
    for name in _TAAS_REQUIRED_COUNTS:
        if not getattr(data, name):
            missing.append(_wire_name(name))
    for name in _TAAS_REQUIRED_VALUES:
        if getattr(data, name) is None:
            missing.append(_wire_name(name))
    return missing


# ---------------------------------------------------------------------------
# Bookkeeping
# ---------------------------------------------------------------------------
def _has_custom_setup_fee(data: PricingInput) -> bool:
    return bool(
        data.cleanup_override
        and data.override_reason == CUSTOM_SETUP_FEE_REASON
        and data.custom_setup_fee
        and data.custom_setup_fee > 0
    )


def calculate_bookkeeping_fees(data: PricingInput) -> FeeResult:
    """Price the bookkeeping line.

    ``monthly = round((150 * revenue_mult + tx_surcharge) * industry.monthly)``

    The setup fee is a hand-entered override when one is authorised,
    otherwise the cleanup estimate (never less than one month's fee) rounded
    up to $25, or zero when no cleanup months are needed.
    """
    if missing_bookkeeping_fields(data):
        return FeeResult()

    revenue_multiplier = REVENUE_MULTIPLIERS.get(data.revenue_band, 1.0)
    tx_surcharge = TRANSACTION_SURCHARGES.get(data.monthly_transactions, 0)
    industry = INDUSTRY_MULTIPLIERS.get(data.industry, DEFAULT_INDUSTRY_MULTIPLIER)

    monthly_fee = round_half_up(
        (BASE_MONTHLY_FEE * revenue_multiplier + tx_surcharge) * industry.monthly
    )

    setup_fee: float = 0
    if _has_custom_setup_fee(data):
        setup_fee = data.custom_setup_fee
    elif data.cleanup_months > 0:
        cleanup_multiplier = data.cleanup_complexity * industry.cleanup
        setup_fee = round_up_to_nearest_25(
            max(monthly_fee, monthly_fee * cleanup_multiplier * data.cleanup_months)
        )

    return FeeResult(monthly_fee=monthly_fee, setup_fee=setup_fee)


# ---------------------------------------------------------------------------
# Tax-as-a-Service
# ---------------------------------------------------------------------------
def _taas_revenue_multiplier(band: RevenueBand) -> float:
    avg_monthly_revenue = AVERAGE_MONTHLY_REVENUE.get(band, 5_000)
    for upper_bound, multiplier in TAAS_REVENUE_TIERS:
        if avg_monthly_revenue <= upper_bound:
            return multiplier
    return TAAS_TOP_REVENUE_MULTIPLIER


def calculate_taas_fees(data: PricingInput) -> FeeResult:
    """Price the Tax-as-a-Service line.

    Only priced when ``includes_taas`` is set and every TaaS answer is in.
    Custom counts (the form's "more than listed" inputs) take precedence over
    the bucketed ones.
    """
    if not data.includes_taas or missing_taas_fields(data):
        return FeeResult()

    entities = data.custom_num_entities or data.num_entities
    states = data.custom_states_filed or data.states_filed
    owners = data.custom_num_business_owners or data.num_business_owners

    entity_upcharge = max(entities - TAAS_INCLUDED_ENTITIES, 0) * TAAS_ENTITY_UPCHARGE
    additional_states = min(max(states - 1, 0), TAAS_MAX_ADDITIONAL_STATES)
    state_upcharge = additional_states * TAAS_STATE_UPCHARGE
    intl_upcharge = TAAS_INTERNATIONAL_UPCHARGE if data.international_filing else 0
    owner_upcharge = max(owners - TAAS_INCLUDED_OWNERS, 0) * TAAS_OWNER_UPCHARGE
    quality_upcharge = BOOKKEEPING_QUALITY_UPCHARGES.get(
        data.bookkeeping_quality, DEFAULT_QUALITY_UPCHARGE
    )
    personal_1040 = owners * TAAS_PERSONAL_1040_FEE if data.include_1040s else 0

    industry_multiplier = TAAS_INDUSTRY_MULTIPLIERS.get(
        data.industry, DEFAULT_TAAS_INDUSTRY_MULTIPLIER
    )
    revenue_multiplier = _taas_revenue_multiplier(data.revenue_band)

    raw_fee = (
        TAAS_BASE_MONTHLY_FEE
        + entity_upcharge
        + state_upcharge
        + intl_upcharge
        + owner_upcharge
        + quality_upcharge
        + personal_1040
    ) * industry_multiplier * revenue_multiplier

    if data.already_on_seed_bookkeeping:
        raw_fee *= 1 - TAAS_SEED_CLIENT_DISCOUNT
    monthly_fee = round_up_to_nearest_25(raw_fee)

    setup_fee = data.prior_years_unfiled * TAAS_PRIOR_YEAR_FEE

    return FeeResult(monthly_fee=monthly_fee, setup_fee=setup_fee)


# ---------------------------------------------------------------------------
# Combined
# ---------------------------------------------------------------------------
def service_lines(data: PricingInput) -> tuple[bool, bool]:
    """Return ``(includes_bookkeeping, includes_taas)`` for a quote.

    Bookkeeping is assumed unless the quote includes TaaS and explicitly
    opts out of bookkeeping.
    """
    includes_taas = data.includes_taas is True
    includes_bookkeeping = not (includes_taas and data.includes_bookkeeping is False)
    return includes_bookkeeping, includes_taas


def calculate_combined_fees(data: PricingInput) -> CombinedFeeResult:
    """Price both service lines and their sum."""
    includes_bookkeeping, includes_taas = service_lines(data)

    bookkeeping = calculate_bookkeeping_fees(data) if includes_bookkeeping else FeeResult()
    taas = calculate_taas_fees(data) if includes_taas else FeeResult()

    return CombinedFeeResult(
        bookkeeping=bookkeeping,
        taas=taas,
        combined=FeeResult(
            monthly_fee=bookkeeping.monthly_fee + taas.monthly_fee,
            setup_fee=bookkeeping.setup_fee + taas.setup_fee,
        ),
        includes_bookkeeping=includes_bookkeeping,
        includes_taas=includes_taas,
    )
