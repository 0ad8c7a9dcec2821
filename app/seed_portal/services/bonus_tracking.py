"""
Bonus and commission award service.

Glue between the pure accrual rules in ``seed_portal.services.commission``
and the storage layer.  Runs after each deal sync (for that deal's rep) and
on demand from the admin API (for every rep).  Awards are written with
upsert-or-ignore, so running an evaluation twice never pays a bonus twice.
"""

from __future__ import annotations

import logging
from datetime import date

from seed_portal.models import BonusEvaluationResult, Deal, DealCommissionResult, RepMetrics
from seed_portal.services import storage
from seed_portal.services.commission import (
    MILESTONE_TIERS,
    MONTHLY_BONUS_TIERS,
    calculate_commissions,
    calculate_milestone_bonus,
    calculate_monthly_bonus,
    first_of_month,
    generate_commission_records,
)

logger = logging.getLogger(__name__)

_MONTHLY_TIERS_BY_NAME = {tier.name: tier for tier in MONTHLY_BONUS_TIERS}
_MILESTONE_TIERS_BY_NAME = {tier.name: tier for tier in MILESTONE_TIERS}


class BonusTrackingService:
    """Awards monthly and milestone bonuses and records deal commissions."""

    # ------------------------------------------------------------------
    # Commissions
    # ------------------------------------------------------------------
    def record_deal_commissions(self, deal: Deal) -> DealCommissionResult:
        """Persist *deal* and its year-one commission schedule.

        A deal with neither a monthly value nor a setup fee earns nothing and
        gets no line items.  Line items already on file are left untouched.
        """
        if deal.first_payment_date is None:
            raise ValueError(f"Deal {deal.deal_id} has no first payment date")

        storage.upsert_deal(deal)

        if deal.monthly_value <= 0 and deal.setup_fee <= 0:
            logger.warning("Deal %s has no billable value; no commissions generated", deal.deal_id)
            return DealCommissionResult(
                deal_id=deal.deal_id,
                records_generated=0,
                records_inserted=0,
                already_recorded=False,
            )

        calculation = calculate_commissions(deal, deal.first_payment_date)
        records = generate_commission_records(calculation, deal.first_payment_date)
        inserted = storage.insert_commission_records(records)

        if inserted == 0:
            logger.info("Commissions already recorded for deal %s", deal.deal_id)
        logger.info(
            "Recorded %d/%d commission items for deal %s (rep %s, year-one total $%.2f)",
            inserted,
            len(records),
            deal.deal_id,
            deal.sales_rep_id,
            calculation.total_commission_year1,
        )
        return DealCommissionResult(
            deal_id=deal.deal_id,
            records_generated=len(records),
            records_inserted=inserted,
            already_recorded=inserted == 0,
        )

    # ------------------------------------------------------------------
    # Bonuses
    # ------------------------------------------------------------------
    def process_monthly_bonus(self, rep: RepMetrics, month: date) -> bool:
        bonus = calculate_monthly_bonus(rep.clients_closed_this_month)
        if bonus.eligible_bonus is None:
            return False

        tier = _MONTHLY_TIERS_BY_NAME[bonus.eligible_bonus]
        awarded = storage.award_monthly_bonus(
            rep.sales_rep_id, month, rep.clients_closed_this_month, tier
        )
        if awarded:
            logger.info(
                "Monthly bonus awarded: rep %s earned %s ($%s) for %d clients in %s",
                rep.sales_rep_id,
                tier.name,
                tier.amount,
                rep.clients_closed_this_month,
                month.strftime("%Y-%m"),
            )
        else:
            logger.info(
                "Monthly bonus already awarded for rep %s in %s",
                rep.sales_rep_id,
                month.strftime("%Y-%m"),
            )
        return awarded

    def process_milestone_bonuses(self, rep: RepMetrics, today: date) -> int:
        """Award every milestone tier reached; returns how many were new.

        A failing tier is logged and the remaining tiers are still tried.
        """
        result = calculate_milestone_bonus(rep.total_clients_all_time)
        awarded = 0
        for achieved in result.achieved_milestones:
            tier = _MILESTONE_TIERS_BY_NAME[achieved.milestone]
            try:
                is_new = storage.award_milestone_bonus(
                    rep.sales_rep_id, rep.total_clients_all_time, tier, today
                )
            except Exception:
                logger.exception(
                    "Milestone %s failed for rep %s", tier.name, rep.sales_rep_id
                )
                continue
            if is_new:
                awarded += 1
                logger.info(
                    "Milestone bonus awarded: rep %s reached %s ($%s%s)",
                    rep.sales_rep_id,
                    tier.name,
                    tier.amount,
                    " + equity offer" if tier.equity_offer else "",
                )
        return awarded

    def evaluate(
        self,
        today: date | None = None,
        sales_rep_id: int | None = None,
    ) -> BonusEvaluationResult:
        """Award every bonus earned as of *today*.

        Limited to one rep when *sales_rep_id* is given.  A failure for one
        rep is logged and does not stop the others.
        """
        today = today or date.today()
        month = first_of_month(today)
        metrics = storage.get_rep_metrics(month, sales_rep_id=sales_rep_id)

        monthly_awarded = 0
        milestone_awarded = 0
        for rep in metrics:
            try:
                if self.process_monthly_bonus(rep, month):
                    monthly_awarded += 1
                milestone_awarded += self.process_milestone_bonuses(rep, today)
            except Exception:
                logger.exception("Bonus evaluation failed for rep %s", rep.sales_rep_id)

        return BonusEvaluationResult(
            month=month,
            reps_evaluated=len(metrics),
            monthly_bonuses_awarded=monthly_awarded,
            milestone_bonuses_awarded=milestone_awarded,
        )

    def evaluate_after_deal(
        self,
        deal: Deal,
        today: date | None = None,
    ) -> list[BonusEvaluationResult]:
        """Award what *deal* may have unlocked for its rep.

        A deal counts towards the month it closed in, which can be earlier
        than the month it is synced in, so both months are evaluated.
        """
        today = today or date.today()
        deal_date = deal.close_date or deal.first_payment_date or today

        results: list[BonusEvaluationResult] = []
        if first_of_month(deal_date) != first_of_month(today):
            results.append(self.evaluate(today=deal_date, sales_rep_id=deal.sales_rep_id))
        results.append(self.evaluate(today=today, sales_rep_id=deal.sales_rep_id))
        return results


bonus_tracking_service = BonusTrackingService()
