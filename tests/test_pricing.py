"""
Tests for the fee pricing engine (bookkeeping, TaaS and combined quotes).
"""

from __future__ import annotations

import os
import sys

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "app"))

from seed_portal.models import (  # noqa: E402
    MAX_CLEANUP_COMPLEXITY,
    MAX_CLEANUP_MONTHS,
    MAX_COUNT,
    MAX_PRIOR_YEARS,
    Industry,
    PricingInput,
)
from seed_portal.services.pricing import (  # noqa: E402
    INDUSTRY_MULTIPLIERS,
    calculate_bookkeeping_fees,
    calculate_combined_fees,
    calculate_taas_fees,
    missing_bookkeeping_fields,
    missing_taas_fields,
    round_half_up,
    round_up_to_nearest_25,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def bookkeeping_answers() -> dict:
    return {
        "revenue_band": "25K-75K",
        "monthly_transactions": "100-300",
        "industry": "Software/SaaS",
        "cleanup_months": 3,
        "cleanup_complexity": 0.75,
    }


@pytest.fixture()
def taas_answers() -> dict:
    return {
        "includes_taas": True,
        "revenue_band": "<$10K",
        "industry": "Software/SaaS",
        "entity_type": "LLC",
        "num_entities": 1,
        "states_filed": 1,
        "international_filing": False,
        "num_business_owners": 1,
        "bookkeeping_quality": "Clean (Seed)",
        "include_1040s": False,
        "prior_years_unfiled": 0,
        "already_on_seed_bookkeeping": False,
    }


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------
class TestRounding:
    def test_round_up_to_nearest_25(self):
        assert round_up_to_nearest_25(967.5) == 975
        assert round_up_to_nearest_25(975) == 975
        assert round_up_to_nearest_25(0.01) == 25
        assert round_up_to_nearest_25(0) == 0

    def test_round_half_up_rounds_halves_up(self):
        # Banker's rounding would give 312
        assert round_half_up(312.5) == 313
        assert round_half_up(187.5) == 188
        assert round_half_up(430.4) == 430


# ---------------------------------------------------------------------------
# Bookkeeping
# ---------------------------------------------------------------------------
class TestBookkeepingFees:
    """Tests for ``calculate_bookkeeping_fees``."""

    def test_reference_quote(self, bookkeeping_answers):
        """(150 * 2.2 + 100) * 1.0 = 430; ceil25(430 * 0.75 * 1.0 * 3) = 975."""
        fees = calculate_bookkeeping_fees(PricingInput(**bookkeeping_answers))
        assert fees.monthly_fee == 430
        assert fees.setup_fee == 975

    def test_no_cleanup_means_no_setup_fee(self, bookkeeping_answers):
        bookkeeping_answers.update(cleanup_months=0, cleanup_complexity=None)
        fees = calculate_bookkeeping_fees(PricingInput(**bookkeeping_answers))
        assert fees.monthly_fee == 430
        assert fees.setup_fee == 0

    def test_setup_fee_never_below_one_month(self, bookkeeping_answers):
        bookkeeping_answers.update(cleanup_months=1, cleanup_complexity=0.5)
        fees = calculate_bookkeeping_fees(PricingInput(**bookkeeping_answers))
        # max(430, 215) rounded up to 25
        assert fees.setup_fee == 450

    def test_industry_multiplier_rounds_half_up(self):
        fees = calculate_bookkeeping_fees(
            PricingInput(
                revenue_band="<$10K",
                monthly_transactions="100-300",
                industry="Real Estate",
                cleanup_months=0,
            )
        )
        assert fees.monthly_fee == 313

    def test_custom_setup_fee_used_verbatim(self, bookkeeping_answers):
        bookkeeping_answers.update(
            cleanup_override=True, override_reason="Other", custom_setup_fee=1234
        )
        fees = calculate_bookkeeping_fees(PricingInput(**bookkeeping_answers))
        assert fees.setup_fee == 1234
        assert fees.monthly_fee == 430

    def test_custom_setup_fee_applies_without_cleanup(self, bookkeeping_answers):
        bookkeeping_answers.update(
            cleanup_months=0,
            cleanup_complexity=None,
            cleanup_override=True,
            override_reason="Other",
            custom_setup_fee=600,
        )
        fees = calculate_bookkeeping_fees(PricingInput(**bookkeeping_answers))
        assert fees.setup_fee == 600

    @pytest.mark.parametrize(
        "override",
        [
            {"cleanup_override": False, "override_reason": "Other", "custom_setup_fee": 1234},
            {"cleanup_override": True, "override_reason": "Brand new business", "custom_setup_fee": 1234},
            {"cleanup_override": True, "override_reason": "Other", "custom_setup_fee": 0},
            {"cleanup_override": True, "override_reason": "Other", "custom_setup_fee": None},
        ],
    )
    def test_override_ignored_unless_fully_authorised(self, bookkeeping_answers, override):
        bookkeeping_answers.update(override)
        fees = calculate_bookkeeping_fees(PricingInput(**bookkeeping_answers))
        assert fees.setup_fee == 975

    @pytest.mark.parametrize(
        "field", ["revenue_band", "monthly_transactions", "industry", "cleanup_months"]
    )
    def test_missing_required_field_prices_at_zero(self, bookkeeping_answers, field):
        bookkeeping_answers.pop(field)
        data = PricingInput(**bookkeeping_answers)
        fees = calculate_bookkeeping_fees(data)
        assert (fees.monthly_fee, fees.setup_fee) == (0, 0)
        assert missing_bookkeeping_fields(data)

    def test_cleanup_requires_complexity(self, bookkeeping_answers):
        bookkeeping_answers.pop("cleanup_complexity")
        data = PricingInput(**bookkeeping_answers)
        fees = calculate_bookkeeping_fees(data)
        assert (fees.monthly_fee, fees.setup_fee) == (0, 0)
        assert missing_bookkeeping_fields(data) == ["cleanupComplexity"]

    def test_every_industry_is_tabulated(self):
        assert set(INDUSTRY_MULTIPLIERS) == set(Industry)

    @pytest.mark.parametrize("industry", list(Industry))
    @pytest.mark.parametrize("months", [1, 4, 12])
    def test_computed_setup_fee_is_multiple_of_25(self, industry, months):
        fees = calculate_bookkeeping_fees(
            PricingInput(
                revenue_band="75K-250K",
                monthly_transactions="300-600",
                industry=industry,
                cleanup_months=months,
                cleanup_complexity=1.0,
            )
        )
        assert fees.setup_fee % 25 == 0
        assert fees.setup_fee >= fees.monthly_fee


# ---------------------------------------------------------------------------
# TaaS
# ---------------------------------------------------------------------------
class TestTaasFees:
    """Tests for ``calculate_taas_fees``."""

    def test_base_fee(self, taas_answers):
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        assert fees.monthly_fee == 150
        assert fees.setup_fee == 0

    def test_all_upcharges(self, taas_answers):
        taas_answers.update(
            revenue_band="25K-75K",
            industry="Real Estate",
            num_entities=7,
            states_filed=3,
            international_filing=True,
            num_business_owners=6,
            bookkeeping_quality="Self-Managed",
            include_1040s=True,
            prior_years_unfiled=2,
        )
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        # (150 + 150 + 100 + 200 + 25 + 150 + 150) * 1.2 * 1.4 = 1554
        assert fees.monthly_fee == 1575
        assert fees.setup_fee == 4200

    def test_existing_bookkeeping_client_discount(self, taas_answers):
        taas_answers.update(
            revenue_band="25K-75K",
            industry="Real Estate",
            num_entities=7,
            states_filed=3,
            international_filing=True,
            num_business_owners=6,
            bookkeeping_quality="Self-Managed",
            include_1040s=True,
            already_on_seed_bookkeeping=True,
        )
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        # 1554 * 0.85 = 1320.9
        assert fees.monthly_fee == 1325

    def test_state_upcharge_capped_at_fifty_states(self, taas_answers):
        taas_answers.update(custom_states_filed=60)
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        assert fees.monthly_fee == 150 + 49 * 50

    def test_custom_counts_take_precedence(self, taas_answers):
        taas_answers.update(num_entities=5, custom_num_entities=8)
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        assert fees.monthly_fee == 150 + 3 * 75

    @pytest.mark.parametrize(
        "quality, upcharge",
        [("Clean (Seed)", 0), ("Outside CPA", 75), ("Not Done", 150)],
    )
    def test_bookkeeping_quality_upcharge(self, taas_answers, quality, upcharge):
        taas_answers.update(bookkeeping_quality=quality)
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        assert fees.monthly_fee == round_up_to_nearest_25(150 + upcharge)

    def test_unlisted_industry_uses_neutral_multiplier(self, taas_answers):
        taas_answers.update(industry="Healthcare/Medical")
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        assert fees.monthly_fee == 150

    @pytest.mark.parametrize(
        "band, expected",
        [
            ("<$10K", 150),
            ("10K-25K", 200),
            ("25K-75K", 225),
            ("75K-250K", 250),
            ("250K-1M", 275),
            ("1M+", 275),
        ],
    )
    def test_revenue_tier_multiplier(self, taas_answers, band, expected):
        taas_answers.update(revenue_band=band)
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        assert fees.monthly_fee == expected

    def test_not_priced_unless_included(self, taas_answers):
        taas_answers.update(includes_taas=False)
        fees = calculate_taas_fees(PricingInput(**taas_answers))
        assert (fees.monthly_fee, fees.setup_fee) == (0, 0)

    def test_zero_entities_counts_as_unanswered(self, taas_answers):
        taas_answers.update(num_entities=0)
        data = PricingInput(**taas_answers)
        assert calculate_taas_fees(data).monthly_fee == 0
        assert missing_taas_fields(data) == ["numEntities"]


# ---------------------------------------------------------------------------
# Combined
# ---------------------------------------------------------------------------
class TestCombinedFees:
    """Tests for ``calculate_combined_fees``."""

    def test_bookkeeping_only_by_default(self, bookkeeping_answers):
        result = calculate_combined_fees(PricingInput(**bookkeeping_answers))
        assert result.includes_bookkeeping is True
        assert result.includes_taas is False
        assert result.taas.monthly_fee == 0
        assert result.combined.monthly_fee == 430
        assert result.combined.setup_fee == 975

    def test_both_lines_sum(self, bookkeeping_answers, taas_answers):
        answers = {**taas_answers, **bookkeeping_answers}
        answers.update(prior_years_unfiled=1)
        result = calculate_combined_fees(PricingInput(**answers))

        assert result.includes_bookkeeping and result.includes_taas
        assert result.combined.monthly_fee == (
            result.bookkeeping.monthly_fee + result.taas.monthly_fee
        )
        assert result.combined.setup_fee == (
            result.bookkeeping.setup_fee + result.taas.setup_fee
        )
        assert result.taas.setup_fee == 2100

    def test_taas_only_quote(self, bookkeeping_answers, taas_answers):
        answers = {**taas_answers, **bookkeeping_answers, "includes_bookkeeping": False}
        result = calculate_combined_fees(PricingInput(**answers))
        assert result.includes_bookkeeping is False
        assert result.bookkeeping.monthly_fee == 0
        assert result.bookkeeping.setup_fee == 0
        assert result.combined.monthly_fee == result.taas.monthly_fee

    def test_bookkeeping_opt_out_ignored_without_taas(self, bookkeeping_answers):
        answers = {**bookkeeping_answers, "includes_bookkeeping": False}
        result = calculate_combined_fees(PricingInput(**answers))
        assert result.includes_bookkeeping is True
        assert result.bookkeeping.monthly_fee == 430

    def test_empty_form(self):
        result = calculate_combined_fees(PricingInput())
        assert result.combined.monthly_fee == 0
        assert result.combined.setup_fee == 0

    def test_accepts_camel_case_payload(self):
        data = PricingInput.model_validate(
            {
                "revenueBand": "25K-75K",
                "monthlyTransactions": "100-300",
                "industry": "Software/SaaS",
                "cleanupMonths": 3,
                "cleanupComplexity": "0.75",
                "include1040s": True,
            }
        )
        assert data.include_1040s is True
        assert calculate_combined_fees(data).combined.setup_fee == 975


class TestInputBounds:
    """Answers outside the priceable range are rejected before pricing."""

    @pytest.mark.parametrize(
        "field, value",
        [
            ("cleanup_complexity", float("inf")),
            ("cleanup_complexity", float("nan")),
            ("cleanup_complexity", 1e308),
            ("custom_setup_fee", float("inf")),
            ("custom_setup_fee", -1),
            ("cleanup_months", MAX_CLEANUP_MONTHS + 1),
            ("custom_num_entities", 10**400),
            ("states_filed", MAX_COUNT + 1),
            ("prior_years_unfiled", MAX_PRIOR_YEARS + 1),
        ],
    )
    def test_rejected(self, field, value):
        with pytest.raises(ValidationError):
            PricingInput(**{field: value})

    def test_largest_answers_still_price(self, bookkeeping_answers, taas_answers):
        answers = {**taas_answers, **bookkeeping_answers}
        answers.update(
            revenue_band="1M+",
            monthly_transactions="2000+",
            cleanup_months=MAX_CLEANUP_MONTHS,
            cleanup_complexity=MAX_CLEANUP_COMPLEXITY,
            custom_num_entities=MAX_COUNT,
            custom_states_filed=MAX_COUNT,
            custom_num_business_owners=MAX_COUNT,
            prior_years_unfiled=MAX_PRIOR_YEARS,
        )
        result = calculate_combined_fees(PricingInput(**answers))

        assert result.combined.monthly_fee > 0
        assert result.bookkeeping.setup_fee % 25 == 0
        assert result.taas.setup_fee == MAX_PRIOR_YEARS * 2100
