"""Smoke tests for schema validation.

These tests verify that:
1. All schemas can be imported
2. Basic instantiation works
3. Field validation catches obvious errors
4. camelCase aliases exist only at the serialization boundary
"""

import pytest
from decimal import Decimal
from pydantic import ValidationError as PydanticValidationError

from waterfall_domain.schemas import (
    # Tiers
    Tier,
    TierOverride,
    TierSplit,
    TierResult,
    # Investors
    InvestorPosition,
    # Distributions
    Distribution,
    AllocationLine,
    WaterfallResult,
    # Settings
    WaterfallSettings,
)


class TestBasicInstantiation:
    """Test that basic schema instantiation works."""

    def test_bounded_tier(self):
        """Test creating a return-of-capital tier."""
        tier = Tier(
            structure_id="fund_i",
            tier_number=1,
            tier_type="ReturnOfCapital",
            lp_share_percent=Decimal("100"),
            gp_share_percent=Decimal("0"),
            threshold_amount=Decimal("1000000.00"),
        )
        assert tier.tier_number == 1
        assert not tier.is_unbounded
        assert tier.display_name == "Tier 1"

    def test_residual_tier_is_unbounded(self):
        """Test that a tier without threshold is unbounded."""
        tier = Tier(
            structure_id="fund_i",
            tier_number=4,
            tier_type="Residual",
            tier_name="Carried Interest",
            lp_share_percent=Decimal("80"),
            gp_share_percent=Decimal("20"),
        )
        assert tier.is_unbounded
        assert tier.display_name == "Carried Interest"
        assert tier.share_total() == Decimal("100")

    def test_investor_position_defaults(self):
        """Test investor position defaults to percent basis and active."""
        position = InvestorPosition(investor_id="lp_a", structure_id="fund_i", weight=Decimal("60"))
        assert position.weight_basis == "percent"
        assert position.is_active

    def test_distribution_starts_in_draft(self):
        """Test a new distribution is an unapplied Draft at version 0."""
        distribution = Distribution(id="d1", structure_id="fund_i", total_amount=Decimal("100.00"))
        assert distribution.status == "Draft"
        assert distribution.waterfall_applied is False
        assert distribution.version == 0
        assert distribution.currency == "USD"

    def test_settings_defaults(self):
        """Test engine settings defaults."""
        settings = WaterfallSettings()
        assert settings.currency_quantum == Decimal("0.01")
        assert settings.rounding_mode == "ROUND_HALF_UP"
        assert settings.gp_investor_id == "gp"
        assert settings.require_terminal_residual is False


class TestFieldValidation:
    """Test that field validation catches errors."""

    def test_unknown_tier_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            Tier(
                structure_id="fund_i",
                tier_number=1,
                tier_type="HighWaterMark",
                lp_share_percent=Decimal("100"),
                gp_share_percent=Decimal("0"),
            )

    def test_tier_number_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            Tier(
                structure_id="fund_i",
                tier_number=0,
                tier_type="Residual",
                lp_share_percent=Decimal("80"),
                gp_share_percent=Decimal("20"),
            )

    def test_share_percent_above_100_rejected(self):
        with pytest.raises(PydanticValidationError):
            TierOverride(tier_number=1, lp_share_percent=Decimal("120"))

    def test_negative_weight_rejected(self):
        with pytest.raises(PydanticValidationError):
            InvestorPosition(investor_id="lp_a", structure_id="fund_i", weight=Decimal("-1"))

    def test_distribution_amount_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            Distribution(id="d1", structure_id="fund_i", total_amount=Decimal("0"))

    def test_draft_cannot_be_flagged_applied(self):
        """Test status and waterfall_applied must agree."""
        with pytest.raises(PydanticValidationError, match="waterfall_applied"):
            Distribution(
                id="d1",
                structure_id="fund_i",
                total_amount=Decimal("100.00"),
                waterfall_applied=True,
            )

    def test_applied_requires_flag(self):
        with pytest.raises(PydanticValidationError, match="requires waterfall_applied"):
            Distribution(
                id="d1",
                structure_id="fund_i",
                total_amount=Decimal("100.00"),
                status="WaterfallApplied",
            )

    def test_allocation_line_is_frozen(self):
        line = AllocationLine(
            distribution_id="d1", tier_number=1, investor_id="lp_a", lp_amount=Decimal("10.00")
        )
        with pytest.raises(PydanticValidationError):
            line.lp_amount = Decimal("11.00")

    def test_empty_split_name_rejected(self):
        with pytest.raises(PydanticValidationError):
            TierSplit(name="", gp_split=Decimal("20"))

    def test_invalid_rounding_mode_rejected(self):
        with pytest.raises(PydanticValidationError):
            WaterfallSettings(rounding_mode="ROUND_CEILING")


class TestOverrides:
    """Test per-run tier overrides."""

    def test_override_replaces_only_given_fields(self):
        tier = Tier(
            structure_id="fund_i",
            tier_number=2,
            tier_type="PreferredReturn",
            lp_share_percent=Decimal("100"),
            gp_share_percent=Decimal("0"),
            threshold_amount=Decimal("80000.00"),
        )
        overridden = tier.with_override(TierOverride(tier_number=2, threshold_amount=Decimal("90000.00")))

        assert overridden.threshold_amount == Decimal("90000.00")
        assert overridden.lp_share_percent == Decimal("100")
        assert tier.threshold_amount == Decimal("80000.00")


class TestSerializationBoundary:
    """Test camelCase aliases are generated, snake_case stays in Python."""

    def test_dump_by_alias_is_camel_case(self):
        tier = Tier(
            structure_id="fund_i",
            tier_number=1,
            tier_type="ReturnOfCapital",
            lp_share_percent=Decimal("100"),
            gp_share_percent=Decimal("0"),
            threshold_amount=Decimal("10.00"),
        )
        payload = tier.model_dump(by_alias=True)
        assert payload["tierNumber"] == 1
        assert payload["lpSharePercent"] == Decimal("100")
        assert "tier_number" not in payload

    def test_populate_by_camel_case_name(self):
        position = InvestorPosition.model_validate(
            {"investorId": "lp_a", "structureId": "fund_i", "weight": "40", "weightBasis": "percent"}
        )
        assert position.investor_id == "lp_a"
        assert position.weight == Decimal("40")

    def test_result_payload_shape(self):
        result = WaterfallResult(
            distribution_id="d1",
            structure_id="fund_i",
            total_amount=Decimal("100.00"),
            tier_breakdown=[
                TierResult(
                    tier_number=1,
                    tier_type="Residual",
                    tier_name="Tier 1",
                    prior_allocated=Decimal("0"),
                    capacity_left=None,
                    tier_amount=Decimal("100.00"),
                    lp_pool=Decimal("80.00"),
                    gp_pool=Decimal("20.00"),
                    remaining_after=Decimal("0"),
                )
            ],
            allocations=[
                AllocationLine(
                    distribution_id="d1", tier_number=1, investor_id="lp_a", lp_amount=Decimal("80.00")
                ),
                AllocationLine(
                    distribution_id="d1", tier_number=1, investor_id="gp", party="GP",
                    gp_amount=Decimal("20.00"),
                ),
            ],
        )

        payload = result.to_payload()

        assert payload["tierBreakdown"] == [{"tierNumber": 1, "lpPool": "80.00", "gpPool": "20.00"}]
        assert payload["allocations"] == [
            {"investorId": "lp_a", "tierNumber": 1, "amount": "80.00"},
            {"investorId": "gp", "tierNumber": 1, "amount": "20.00"},
        ]
        assert result.lp_total == Decimal("80.00")
        assert result.gp_total == Decimal("20.00")
