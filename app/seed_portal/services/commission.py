"""
Commission and bonus accrual engine.

Commission plan for a closed deal:

* 40 % of the monthly deal value in month 1
* 20 % of the setup fee in month 1
* 10 % residual of the monthly value for months 2 through 12

Monthly bonuses (one per rep per calendar month, highest tier wins):
5 / 10 / 15+ clients closed -> $500 / $1,000 / $1,500, each payable in cash
or as a gift.

Milestone bonuses (each tier at most once per rep, tiers are cumulative):
25 / 40 / 60 / 100 lifetime clients -> $1,000 / $5,000 / $7,500 / $10,000,
the last one with an equity offer.

All functions are pure; persisting awards exactly once is the job of
``seed_portal.services.bonus_tracking`` and the storage layer.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any, NamedTuple

from dateutil.relativedelta import relativedelta

from seed_portal.models import (
    AchievedMilestone,
    CommissionCalculation,
    CommissionRecord,
    CommissionType,
    Deal,
    EarningsSummary,
    MilestoneBonusResult,
    MilestoneProgress,
    MonthlyBonusResult,
    ResidualCommission,
)

INITIAL_MONTH_RATE = 0.40
SETUP_FEE_RATE = 0.20
RESIDUAL_RATE = 0.10
FIRST_RESIDUAL_MONTH = 2
LAST_RESIDUAL_MONTH = 12


class MonthlyBonusTier(NamedTuple):
    threshold: int
    name: str
    amount: float
    reward_options: tuple[str, ...]


class MilestoneTier(NamedTuple):
    threshold: int
    name: str
    amount: float
    equity_offer: bool = False


# Highest threshold first: the first match wins
MONTHLY_BONUS_TIERS: tuple[MonthlyBonusTier, ...] = (
    MonthlyBonusTier(15, "15_clients", 1500, ("cash", "macbook_air")),
    MonthlyBonusTier(10, "10_clients", 1000, ("cash", "apple_watch")),
    MonthlyBonusTier(5, "5_clients", 500, ("cash", "airpods")),
)

MILESTONE_TIERS: tuple[MilestoneTier, ...] = (
    MilestoneTier(25, "25_clients", 1000),
    MilestoneTier(40, "40_clients", 5000),
    MilestoneTier(60, "60_clients", 7500),
    MilestoneTier(100, "100_clients", 10000, equity_offer=True),
)

EARNING_STATUSES = ("paid", "pending", "processing")


def first_of_month(value: date) -> date:
    return value.replace(day=1)


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------
def calculate_commissions(deal: Deal, first_payment_date: date) -> CommissionCalculation:
    """Compute the year-one commission schedule for *deal*.

    Residual payment dates are ``first_payment_date`` plus ``month - 1``
    calendar months; days past the end of a shorter month clip to its last
    day.  Inputs are not validated here.
    """
    initial_month_commission = deal.monthly_value * INITIAL_MONTH_RATE
    setup_fee_commission = deal.setup_fee * SETUP_FEE_RATE

    residual_commissions = [
        ResidualCommission(
            month=month,
            amount=deal.monthly_value * RESIDUAL_RATE,
            payment_date=first_payment_date + relativedelta(months=month - 1),
        )
        for month in range(FIRST_RESIDUAL_MONTH, LAST_RESIDUAL_MONTH + 1)
    ]

    total_residual = sum(r.amount for r in residual_commissions)

    return CommissionCalculation(
        deal_id=deal.deal_id,
        sales_rep_id=deal.sales_rep_id,
        monthly_value=deal.monthly_value,
        setup_fee=deal.setup_fee,
        total_commission_year1=initial_month_commission
        + setup_fee_commission
        + total_residual,
        initial_month_commission=initial_month_commission,
        setup_fee_commission=setup_fee_commission,
        residual_commissions=residual_commissions,
    )


def generate_commission_records(
    calculation: CommissionCalculation,
    first_payment_date: date,
) -> list[CommissionRecord]:
    """Materialise *calculation* into payable line items.

    Month-1 items with a zero amount are left out; the eleven residual items
    are always present.  ``payment_month`` is the first day of the month the
    item becomes payable.
    """
    records: list[CommissionRecord] = []
    first_month = first_of_month(first_payment_date)

    if calculation.initial_month_commission > 0:
        records.append(
            CommissionRecord(
                deal_id=calculation.deal_id,
                sales_rep_id=calculation.sales_rep_id,
                commission_type=CommissionType.INITIAL_MONTHLY,
                commission_rate=INITIAL_MONTH_RATE,
                base_amount=calculation.monthly_value,
                commission_amount=round(calculation.initial_month_commission, 2),
                month_number=1,
                payment_month=first_month,
            )
        )

    if calculation.setup_fee_commission > 0:
        records.append(
            CommissionRecord(
                deal_id=calculation.deal_id,
                sales_rep_id=calculation.sales_rep_id,
                commission_type=CommissionType.SETUP_FEE,
                commission_rate=SETUP_FEE_RATE,
                base_amount=calculation.setup_fee,
                commission_amount=round(calculation.setup_fee_commission, 2),
                month_number=1,
                payment_month=first_month,
            )
        )

    for residual in calculation.residual_commissions:
        records.append(
            CommissionRecord(
                deal_id=calculation.deal_id,
                sales_rep_id=calculation.sales_rep_id,
                commission_type=CommissionType.RESIDUAL,
                commission_rate=RESIDUAL_RATE,
                base_amount=calculation.monthly_value,
                commission_amount=round(residual.amount, 2),
                month_number=residual.month,
                payment_month=first_of_month(residual.payment_date),
            )
        )

    return records


# ---------------------------------------------------------------------------
# Bonuses
# ---------------------------------------------------------------------------
def calculate_monthly_bonus(clients_closed_this_month: int) -> MonthlyBonusResult:
    """Return the single monthly bonus tier reached, if any."""
    for tier in MONTHLY_BONUS_TIERS:
        if clients_closed_this_month >= tier.threshold:
            return MonthlyBonusResult(
                clients_closed=clients_closed_this_month,
                eligible_bonus=tier.name,
                bonus_amount=tier.amount,
                reward_options=list(tier.reward_options),
            )
    return MonthlyBonusResult(clients_closed=clients_closed_this_month)


def calculate_milestone_bonus(total_clients_closed: int) -> MilestoneBonusResult:
    """Return every milestone tier reached plus the next one to aim for."""
    achieved = [
        AchievedMilestone(
            milestone=tier.name,
            threshold=tier.threshold,
            amount=tier.amount,
            equity_offer=tier.equity_offer,
        )
        for tier in MILESTONE_TIERS
        if total_clients_closed >= tier.threshold
    ]
    upcoming = next(
        (tier for tier in MILESTONE_TIERS if total_clients_closed < tier.threshold),
        None,
    )

    return MilestoneBonusResult(
        total_clients_closed=total_clients_closed,
        achieved_milestones=achieved,
        next_milestone=upcoming.name if upcoming else None,
        clients_to_next_milestone=upcoming.threshold - total_clients_closed if upcoming else 0,
        upcoming_bonus_amount=upcoming.amount if upcoming else 0.0,
    )


def get_next_milestone(total_clients_closed: int) -> MilestoneProgress:
    """Progress towards the next milestone threshold, for dashboard display."""
    for tier in MILESTONE_TIERS:
        if total_clients_closed < tier.threshold:
            return MilestoneProgress(
                next_milestone=tier.threshold,
                progress=max(total_clients_closed, 0) / tier.threshold * 100,
                remaining=tier.threshold - total_clients_closed,
            )
    top = MILESTONE_TIERS[-1].threshold
    return MilestoneProgress(next_milestone=top, progress=100.0, remaining=0)


# ---------------------------------------------------------------------------
# Earnings
# ---------------------------------------------------------------------------
def calculate_total_earnings(
    commissions: Iterable[dict[str, Any]],
    monthly_bonuses: Iterable[dict[str, Any]],
    milestone_bonuses: Iterable[dict[str, Any]],
) -> EarningsSummary:
    """Sum commission and bonus amounts by payout status.

    Commission rows carry ``amount``; bonus rows carry ``bonus_amount``.
    Rows in any other status (e.g. ``cancelled``) are not counted.
    """
    totals = dict.fromkeys(EARNING_STATUSES, 0.0)

    def _add(rows: Iterable[dict[str, Any]], amount_key: str) -> None:
        for row in rows:
            status = row.get("status")
            if status in totals:
                totals[status] += float(row.get(amount_key) or 0)

    _add(commissions, "amount")
    _add(monthly_bonuses, "bonus_amount")
    _add(milestone_bonuses, "bonus_amount")

    return EarningsSummary(
        total_earned=round(sum(totals.values()), 2),
        total_paid=round(totals["paid"], 2),
        total_pending=round(totals["pending"], 2),
        total_processing=round(totals["processing"], 2),
    )
