"""Tests for default and split-based tier builders."""

import pytest
from decimal import Decimal

from waterfall_domain.engine import TierSet, build_default_tiers, build_tiers_from_splits
from waterfall_domain.errors import ValidationError
from waterfall_domain.schemas import TierSplit, WaterfallSettings


class TestDefaultTiers:
    """The standard four-tier European waterfall."""

    def test_thresholds_and_splits(self):
        tiers = build_default_tiers("fund_i", Decimal("1000000.00"))

        assert [t.tier_type for t in tiers] == [
            "ReturnOfCapital", "PreferredReturn", "Catchup", "Residual",
        ]
        assert [t.threshold_amount for t in tiers] == [
            Decimal("1000000.00"), Decimal("80000.00"), Decimal("20000.00"), None,
        ]
        assert tiers[2].gp_share_percent == Decimal("100")
        assert tiers[3].lp_share_percent == Decimal("80")
        assert tiers[3].gp_share_percent == Decimal("20")
        assert tiers[1].threshold_irr == Decimal("8")

    def test_custom_terms(self):
        tiers = build_default_tiers(
            "fund_i", Decimal("500000.00"), hurdle_rate=Decimal("10"), carried_interest=Decimal("25")
        )
        # pref = 50,000; catch-up = 50,000 * 25 / 75
        assert tiers[1].threshold_amount == Decimal("50000.00")
        assert tiers[2].threshold_amount == Decimal("16666.67")
        assert tiers[3].gp_share_percent == Decimal("25")

    def test_zero_carry_has_empty_catchup(self):
        tiers = build_default_tiers("fund_i", Decimal("100.00"), carried_interest=Decimal("0"))
        assert tiers[2].threshold_amount == Decimal("0.00")
        assert tiers[3].lp_share_percent == Decimal("100")

    def test_result_is_a_valid_tier_set(self):
        tier_set = TierSet.from_tiers(
            "fund_i",
            build_default_tiers("fund_i", Decimal("1000000.00")),
            WaterfallSettings(require_terminal_residual=True),
        )
        assert len(tier_set) == 4

    @pytest.mark.parametrize("kwargs, message", [
        ({"contributed_capital": Decimal("0")}, "contributed capital"),
        ({"contributed_capital": Decimal("100"), "hurdle_rate": Decimal("-1")}, "hurdle rate"),
        ({"contributed_capital": Decimal("100"), "carried_interest": Decimal("100")}, "carried interest"),
    ])
    def test_invalid_terms(self, kwargs, message):
        with pytest.raises(ValidationError, match=message):
            build_default_tiers("fund_i", **kwargs)


class TestTiersFromSplits:
    """Bulk tier creation from GP splits."""

    def test_lp_share_is_complement(self):
        tiers = build_tiers_from_splits("fund_i", [
            TierSplit(name="Return of Capital", gp_split=Decimal("0"), threshold_amount=Decimal("1000.00")),
            TierSplit(name="Carry", gp_split=Decimal("20")),
        ])

        assert [t.tier_number for t in tiers] == [1, 2]
        assert tiers[0].tier_type == "ReturnOfCapital"
        assert tiers[0].lp_share_percent == Decimal("100")
        assert tiers[1].tier_type == "Residual"
        assert tiers[1].lp_share_percent == Decimal("80")
        assert tiers[1].tier_name == "Carry"

    def test_types_inferred_by_position(self):
        tiers = build_tiers_from_splits("fund_i", [
            TierSplit(name="ROC", gp_split=Decimal("0"), threshold_amount=Decimal("100.00")),
            TierSplit(name="Pref", gp_split=Decimal("0"), threshold_amount=Decimal("8.00"),
                      irr_hurdle=Decimal("8")),
            TierSplit(name="Catch-up", gp_split=Decimal("100"), threshold_amount=Decimal("2.00")),
            TierSplit(name="Carry", gp_split=Decimal("20")),
        ])
        assert [t.tier_type for t in tiers] == [
            "ReturnOfCapital", "PreferredReturn", "Catchup", "Residual",
        ]
        assert tiers[1].threshold_irr == Decimal("8")

    def test_description_from_fee_terms(self):
        tiers = build_tiers_from_splits("fund_i", [
            TierSplit(
                name="Carry",
                gp_split=Decimal("20"),
                management_fee=Decimal("2"),
                preferred_return=Decimal("8"),
            ),
        ])
        assert tiers[0].description == "Management Fee: 2% | Preferred Return: 8%"

    def test_empty_splits(self):
        with pytest.raises(ValidationError, match="at least one"):
            build_tiers_from_splits("fund_i", [])

    def test_too_many_splits(self):
        splits = [
            TierSplit(name=f"T{i}", gp_split=Decimal("0"), threshold_amount=Decimal("1.00"))
            for i in range(5)
        ]
        with pytest.raises(ValidationError, match="at most 4"):
            build_tiers_from_splits("fund_i", splits)

    def test_explicit_residual_with_threshold(self):
        with pytest.raises(ValidationError, match="Residual tier cannot have a threshold"):
            build_tiers_from_splits("fund_i", [
                TierSplit(name="Carry", gp_split=Decimal("20"), tier_type="Residual",
                          threshold_amount=Decimal("5.00")),
            ])

    def test_explicit_bounded_type_without_threshold(self):
        with pytest.raises(ValidationError, match="needs a threshold"):
            build_tiers_from_splits("fund_i", [
                TierSplit(name="Pref", gp_split=Decimal("0"), tier_type="PreferredReturn"),
            ])
