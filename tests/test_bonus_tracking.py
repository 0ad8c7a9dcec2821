"""
Tests for the bonus/commission award service with storage mocked out.
"""

from __future__ import annotations

import os
import sys
from datetime import date
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "app"))

from seed_portal.models import Deal, RepMetrics  # noqa: E402
from seed_portal.services.bonus_tracking import BonusTrackingService  # noqa: E402


@pytest.fixture()
def mock_storage():
    with patch("seed_portal.services.bonus_tracking.storage") as storage:
        storage.get_rep_metrics.return_value = []
        storage.award_monthly_bonus.return_value = True
        storage.award_milestone_bonus.return_value = True
        storage.insert_commission_records.return_value = 13
        yield storage


@pytest.fixture()
def service() -> BonusTrackingService:
    return BonusTrackingService()


def _deal(**overrides) -> Deal:
    data = {
        "deal_id": 101,
        "sales_rep_id": 7,
        "monthly_value": 1000,
        "setup_fee": 2000,
        "first_payment_date": date(2024, 1, 15),
    }
    data.update(overrides)
    return Deal(**data)


# ---------------------------------------------------------------------------
# Deal commissions
# ---------------------------------------------------------------------------
class TestRecordDealCommissions:
    def test_records_full_schedule(self, service, mock_storage):
        result = service.record_deal_commissions(_deal())

        mock_storage.upsert_deal.assert_called_once()
        records = mock_storage.insert_commission_records.call_args.args[0]
        assert len(records) == 13
        assert result.records_generated == 13
        assert result.records_inserted == 13
        assert result.already_recorded is False

    def test_replay_inserts_nothing(self, service, mock_storage):
        mock_storage.insert_commission_records.return_value = 0
        result = service.record_deal_commissions(_deal())
        assert result.records_inserted == 0
        assert result.already_recorded is True

    def test_valueless_deal_gets_no_records(self, service, mock_storage):
        result = service.record_deal_commissions(_deal(monthly_value=0, setup_fee=0))
        mock_storage.insert_commission_records.assert_not_called()
        assert result.records_generated == 0

    def test_requires_first_payment_date(self, service, mock_storage):
        with pytest.raises(ValueError):
            service.record_deal_commissions(_deal(first_payment_date=None))
        mock_storage.upsert_deal.assert_not_called()


# ---------------------------------------------------------------------------
# Bonus evaluation
# ---------------------------------------------------------------------------
class TestEvaluate:
    def test_awards_monthly_and_milestones(self, service, mock_storage):
        mock_storage.get_rep_metrics.return_value = [
            RepMetrics(sales_rep_id=7, clients_closed_this_month=12, total_clients_all_time=41)
        ]
        # 25-client tier already on file, 40-client tier is new
        mock_storage.award_milestone_bonus.side_effect = [False, True]

        result = service.evaluate(today=date(2024, 3, 20))

        mock_storage.get_rep_metrics.assert_called_once_with(date(2024, 3, 1), sales_rep_id=None)
        monthly_args = mock_storage.award_monthly_bonus.call_args.args
        assert monthly_args[0] == 7
        assert monthly_args[1] == date(2024, 3, 1)
        assert monthly_args[3].name == "10_clients"

        milestone_tiers = [c.args[2].name for c in mock_storage.award_milestone_bonus.call_args_list]
        assert milestone_tiers == ["25_clients", "40_clients"]

        assert result.reps_evaluated == 1
        assert result.monthly_bonuses_awarded == 1
        assert result.milestone_bonuses_awarded == 1

    def test_no_awards_below_thresholds(self, service, mock_storage):
        mock_storage.get_rep_metrics.return_value = [
            RepMetrics(sales_rep_id=7, clients_closed_this_month=4, total_clients_all_time=24)
        ]
        result = service.evaluate(today=date(2024, 3, 20))

        mock_storage.award_monthly_bonus.assert_not_called()
        mock_storage.award_milestone_bonus.assert_not_called()
        assert result.monthly_bonuses_awarded == 0
        assert result.milestone_bonuses_awarded == 0

    def test_duplicate_monthly_award_not_counted(self, service, mock_storage):
        mock_storage.get_rep_metrics.return_value = [
            RepMetrics(sales_rep_id=7, clients_closed_this_month=5, total_clients_all_time=5)
        ]
        mock_storage.award_monthly_bonus.return_value = False

        result = service.evaluate(today=date(2024, 3, 20))
        assert result.monthly_bonuses_awarded == 0

    def test_one_rep_failure_does_not_stop_others(self, service, mock_storage):
        mock_storage.get_rep_metrics.return_value = [
            RepMetrics(sales_rep_id=7, clients_closed_this_month=5, total_clients_all_time=5),
            RepMetrics(sales_rep_id=8, clients_closed_this_month=15, total_clients_all_time=15),
        ]
        mock_storage.award_monthly_bonus.side_effect = [RuntimeError("warehouse down"), True]

        result = service.evaluate(today=date(2024, 3, 20))

        assert mock_storage.award_monthly_bonus.call_count == 2
        assert result.reps_evaluated == 2
        assert result.monthly_bonuses_awarded == 1

    def test_single_rep_scope(self, service, mock_storage):
        service.evaluate(today=date(2024, 3, 20), sales_rep_id=7)
        mock_storage.get_rep_metrics.assert_called_once_with(date(2024, 3, 1), sales_rep_id=7)

    def test_failing_milestone_tier_keeps_earlier_awards(self, service, mock_storage):
        mock_storage.get_rep_metrics.return_value = [
            RepMetrics(sales_rep_id=7, clients_closed_this_month=0, total_clients_all_time=60)
        ]
        mock_storage.award_milestone_bonus.side_effect = [
            True,
            RuntimeError("warehouse down"),
            True,
        ]

        result = service.evaluate(today=date(2024, 3, 20))

        assert mock_storage.award_milestone_bonus.call_count == 3
        assert result.milestone_bonuses_awarded == 2


# ---------------------------------------------------------------------------
# Evaluation after a deal sync
# ---------------------------------------------------------------------------
class TestEvaluateAfterDeal:
    def test_late_synced_deal_evaluates_its_close_month(self, service, mock_storage):
        deal = _deal(close_date=date(2024, 1, 28), first_payment_date=date(2024, 2, 5))

        results = service.evaluate_after_deal(deal, today=date(2024, 2, 10))

        months = [c.args[0] for c in mock_storage.get_rep_metrics.call_args_list]
        assert months == [date(2024, 1, 1), date(2024, 2, 1)]
        assert [r.month for r in results] == months
        for call in mock_storage.get_rep_metrics.call_args_list:
            assert call.kwargs == {"sales_rep_id": 7}

    def test_close_month_bonus_awarded_for_that_month(self, service, mock_storage):
        mock_storage.get_rep_metrics.side_effect = lambda month, sales_rep_id: [
            RepMetrics(
                sales_rep_id=sales_rep_id,
                clients_closed_this_month=5 if month == date(2024, 1, 1) else 0,
                total_clients_all_time=5,
            )
        ]
        deal = _deal(close_date=date(2024, 1, 28))

        service.evaluate_after_deal(deal, today=date(2024, 2, 10))

        mock_storage.award_monthly_bonus.assert_called_once()
        assert mock_storage.award_monthly_bonus.call_args.args[1] == date(2024, 1, 1)

    def test_same_month_evaluated_once(self, service, mock_storage):
        deal = _deal(close_date=date(2024, 2, 3))

        results = service.evaluate_after_deal(deal, today=date(2024, 2, 10))

        assert len(results) == 1
        mock_storage.get_rep_metrics.assert_called_once_with(date(2024, 2, 1), sales_rep_id=7)

    def test_falls_back_to_first_payment_month(self, service, mock_storage):
        deal = _deal(close_date=None, first_payment_date=date(2023, 12, 15))

        service.evaluate_after_deal(deal, today=date(2024, 2, 10))

        months = [c.args[0] for c in mock_storage.get_rep_metrics.call_args_list]
        assert months == [date(2023, 12, 1), date(2024, 2, 1)]
