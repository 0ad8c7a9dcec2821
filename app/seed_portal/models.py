"""
Pydantic data models for the Seed pricing portal API.

All request / response schemas are defined here so they can be shared across
routers, services, and tests.  Fields are snake_case in Python and camelCase
on the wire.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Intake enumerations
# ---------------------------------------------------------------------------
class RevenueBand(str, Enum):
    """Average monthly revenue bucket."""

    UNDER_10K = "<$10K"
    FROM_10K_TO_25K = "10K-25K"
    FROM_25K_TO_75K = "25K-75K"
    FROM_75K_TO_250K = "75K-250K"
    FROM_250K_TO_1M = "250K-1M"
    OVER_1M = "1M+"


class TransactionBand(str, Enum):
    """Monthly transaction volume bucket."""

    UNDER_100 = "<100"
    FROM_100_TO_300 = "100-300"
    FROM_300_TO_600 = "300-600"
    FROM_600_TO_1000 = "600-1000"
    FROM_1000_TO_2000 = "1000-2000"
    OVER_2000 = "2000+"


class Industry(str, Enum):
    SOFTWARE_SAAS = "Software/SaaS"
    PROFESSIONAL_SERVICES = "Professional Services"
    CONSULTING = "Consulting"
    HEALTHCARE_MEDICAL = "Healthcare/Medical"
    REAL_ESTATE = "Real Estate"
    PROPERTY_MANAGEMENT = "Property Management"
    ECOMMERCE_RETAIL = "E-commerce/Retail"
    RESTAURANT_FOOD_SERVICE = "Restaurant/Food Service"
    HOSPITALITY = "Hospitality"
    CONSTRUCTION_TRADES = "Construction/Trades"
    MANUFACTURING = "Manufacturing"
    TRANSPORTATION_LOGISTICS = "Transportation/Logistics"
    NONPROFIT = "Nonprofit"
    LAW_FIRM = "Law Firm"
    ACCOUNTING_FINANCE = "Accounting/Finance"
    MARKETING_ADVERTISING = "Marketing/Advertising"
    INSURANCE = "Insurance"
    AUTOMOTIVE = "Automotive"
    EDUCATION = "Education"
    FITNESS_WELLNESS = "Fitness/Wellness"
    ENTERTAINMENT_EVENTS = "Entertainment/Events"
    AGRICULTURE = "Agriculture"
    TECHNOLOGY_IT_SERVICES = "Technology/IT Services"
    MULTI_ENTITY_HOLDING = "Multi-entity/Holding Companies"
    OTHER = "Other"


class BookkeepingQuality(str, Enum):
    """State of the client's books, as seen by the tax team."""

    CLEAN_SEED = "Clean (Seed)"
    OUTSIDE_CPA = "Outside CPA"
    SELF_MANAGED = "Self-Managed"
    NOT_DONE = "Not Done"


# ---------------------------------------------------------------------------
# Quote request / response
# ---------------------------------------------------------------------------
# Upper bounds keep every answer within what the fee formulas can price
MAX_CLEANUP_MONTHS = 120
MAX_CLEANUP_COMPLEXITY = 10.0
MAX_CUSTOM_SETUP_FEE = 1_000_000.0
MAX_COUNT = 1_000
MAX_PRIOR_YEARS = 50


class PricingInput(_CamelModel):
    """Client intake snapshot sent by the quote form.

    Every field is optional: a missing value means the question has not been
    answered yet, and the affected service line prices at zero.
    """

    # Bookkeeping
    revenue_band: RevenueBand | None = None
    monthly_transactions: TransactionBand | None = None
    industry: Industry | None = None
    cleanup_months: int | None = Field(None, ge=0, le=MAX_CLEANUP_MONTHS)
    cleanup_complexity: float | None = Field(
        None,
        ge=0,
        le=MAX_CLEANUP_COMPLEXITY,
        allow_inf_nan=False,
        description="Cleanup complexity factor (e.g. 0.75)",
    )
    cleanup_override: bool | None = None
    override_reason: str | None = None
    custom_setup_fee: float | None = Field(
        None,
        ge=0,
        le=MAX_CUSTOM_SETUP_FEE,
        allow_inf_nan=False,
        description="Manual setup fee used verbatim when overridden",
    )

    # Service selection
    includes_bookkeeping: bool | None = None
    includes_taas: bool | None = None

    # Tax-as-a-Service
    entity_type: str | None = None
    num_entities: int | None = Field(None, ge=0, le=MAX_COUNT)
    custom_num_entities: int | None = Field(None, ge=0, le=MAX_COUNT)
    states_filed: int | None = Field(None, ge=0, le=MAX_COUNT)
    custom_states_filed: int | None = Field(None, ge=0, le=MAX_COUNT)
    international_filing: bool | None = None
    num_business_owners: int | None = Field(None, ge=0, le=MAX_COUNT)
    custom_num_business_owners: int | None = Field(None, ge=0, le=MAX_COUNT)
    bookkeeping_quality: BookkeepingQuality | None = None
    include_1040s: bool | None = Field(None, alias="include1040s")
    prior_years_unfiled: int | None = Field(None, ge=0, le=MAX_PRIOR_YEARS)
    already_on_seed_bookkeeping: bool | None = None


class FeeResult(_CamelModel):
    """Monthly and setup fee for one service line."""

    monthly_fee: float = 0.0
    setup_fee: float = 0.0


class CombinedFeeResult(_CamelModel):
    """Per-line fees, their sum, and which lines are active."""

    bookkeeping: FeeResult
    taas: FeeResult
    combined: FeeResult
    includes_bookkeeping: bool
    includes_taas: bool


class QuoteResponse(CombinedFeeResult):
    """Fee result plus the intake fields still blocking each active line."""

    missing_bookkeeping_fields: list[str] = Field(default_factory=list)
    missing_taas_fields: list[str] = Field(default_factory=list)


class QuoteOptions(_CamelModel):
    """Closed value sets the intake form may submit."""

    revenue_bands: list[str]
    transaction_bands: list[str]
    industries: list[str]
    bookkeeping_qualities: list[str]


# ---------------------------------------------------------------------------
# Deals & commissions
# ---------------------------------------------------------------------------
class CommissionType(str, Enum):
    INITIAL_MONTHLY = "initial_monthly"
    SETUP_FEE = "setup_fee"
    RESIDUAL = "residual"


class Deal(_CamelModel):
    """A closed-won deal as synced from the CRM."""

    deal_id: int
    sales_rep_id: int
    deal_name: str = ""
    company_name: str | None = None
    monthly_value: float = Field(..., ge=0, allow_inf_nan=False)
    setup_fee: float = Field(0.0, ge=0, allow_inf_nan=False)
    close_date: date | None = None
    first_payment_date: date | None = None


class ResidualCommission(_CamelModel):
    month: int
    amount: float
    payment_date: date


class CommissionCalculation(_CamelModel):
    """Year-one commission schedule for a single deal."""

    deal_id: int
    sales_rep_id: int
    monthly_value: float
    setup_fee: float
    total_commission_year1: float
    initial_month_commission: float
    setup_fee_commission: float
    residual_commissions: list[ResidualCommission]


class CommissionRecord(_CamelModel):
    """One payable commission line item, ready for persistence."""

    deal_id: int
    sales_rep_id: int
    commission_type: CommissionType
    commission_rate: float
    base_amount: float
    commission_amount: float
    month_number: int = Field(..., ge=1, le=12)
    payment_month: date


class CommissionPreview(_CamelModel):
    calculation: CommissionCalculation
    records: list[CommissionRecord]


class DealCommissionResult(_CamelModel):
    """Outcome of persisting a deal's commission schedule."""

    deal_id: int
    records_generated: int
    records_inserted: int
    already_recorded: bool


# ---------------------------------------------------------------------------
# Bonuses
# ---------------------------------------------------------------------------
class MonthlyBonusResult(_CamelModel):
    """Monthly bonus tier reached (if any) for a number of clients closed."""

    clients_closed: int
    eligible_bonus: str | None = None
    bonus_amount: float = 0.0
    reward_options: list[str] = Field(default_factory=list)


class AchievedMilestone(_CamelModel):
    milestone: str
    threshold: int
    amount: float
    equity_offer: bool = False


class MilestoneBonusResult(_CamelModel):
    """Lifetime milestone tiers achieved plus progress towards the next one."""

    total_clients_closed: int
    achieved_milestones: list[AchievedMilestone]
    next_milestone: str | None = None
    clients_to_next_milestone: int = 0
    upcoming_bonus_amount: float = 0.0


class MilestoneProgress(_CamelModel):
    next_milestone: int
    progress: float = Field(..., ge=0.0, le=100.0, description="Percent complete")
    remaining: int


class RepMetrics(_CamelModel):
    """Closed-client counts for one rep, as aggregated by storage."""

    sales_rep_id: int
    sales_rep_name: str = ""
    clients_closed_this_month: int = 0
    total_clients_all_time: int = 0


class BonusEvaluationResult(_CamelModel):
    """Awards created by one evaluation run."""

    month: date
    reps_evaluated: int
    monthly_bonuses_awarded: int
    milestone_bonuses_awarded: int


class EarningsSummary(_CamelModel):
    total_earned: float
    total_paid: float
    total_pending: float
    total_processing: float
