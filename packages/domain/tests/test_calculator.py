"""Tests for the waterfall calculator and cumulative tier state.

Tests cover:
- Capacity consumption against prior cumulative state
- LP/GP split rounding
- Staging vs. committing tier state
- Cash left over without an unbounded tier
"""

import pytest
from decimal import Decimal

from waterfall_domain.engine import TierSet, TierStateStore, WaterfallCalculator
from waterfall_domain.errors import ConflictError, ValidationError, WaterfallArithmeticError
from waterfall_domain.repositories import InMemoryStore
from waterfall_domain.schemas import Tier, WaterfallSettings


# =============================================================================
# Test Data Builders
# =============================================================================

def build_two_tier_set(threshold="100000.00", lp="80", gp="20") -> TierSet:
    """Tier 1: 100% LP up to the threshold. Tier 2: residual at lp/gp."""
    return TierSet.from_tiers("fund_i", [
        Tier(
            structure_id="fund_i",
            tier_number=1,
            tier_type="ReturnOfCapital",
            lp_share_percent=Decimal("100"),
            gp_share_percent=Decimal("0"),
            threshold_amount=Decimal(threshold),
        ),
        Tier(
            structure_id="fund_i",
            tier_number=2,
            tier_type="Residual",
            lp_share_percent=Decimal(lp),
            gp_share_percent=Decimal(gp),
        ),
    ])


def build_state(prior=None) -> TierStateStore:
    store = InMemoryStore()
    for tier_number, amount in (prior or {}).items():
        store.tier_state.increment("fund_i", tier_number, Decimal(amount))
    return TierStateStore(store.tier_state, "fund_i")


# =============================================================================
# Tier walk
# =============================================================================

class TestCapacity:
    """Bounded tiers absorb only their remaining capacity."""

    def test_partial_capacity_spills_into_next_tier(self):
        """Threshold 100,000 with 80,000 already allocated leaves 20,000."""
        calculator = WaterfallCalculator()
        results = calculator.apply(
            Decimal("50000.00"), build_two_tier_set(), build_state({1: "80000.00"})
        )

        tier1, tier2 = results
        assert tier1.prior_allocated == Decimal("80000.00")
        assert tier1.capacity_left == Decimal("20000.00")
        assert tier1.tier_amount == Decimal("20000.00")
        assert tier1.lp_pool == Decimal("20000.00")
        assert tier1.gp_pool == Decimal("0.00")
        assert tier2.capacity_left is None
        assert tier2.tier_amount == Decimal("30000.00")
        assert tier2.lp_pool == Decimal("24000.00")
        assert tier2.gp_pool == Decimal("6000.00")
        assert tier2.remaining_after == Decimal("0")

    def test_exhausted_tier_absorbs_nothing(self):
        results = WaterfallCalculator().apply(
            Decimal("500.00"), build_two_tier_set(), build_state({1: "100000.00"})
        )
        assert results[0].tier_amount == Decimal("0")
        assert results[0].capacity_left == Decimal("0")
        assert results[1].tier_amount == Decimal("500.00")

    def test_stops_once_cash_is_placed(self):
        """Tiers after the one that absorbs the last unit are not reported."""
        results = WaterfallCalculator().apply(Decimal("1000.00"), build_two_tier_set(), build_state())
        assert [r.tier_number for r in results] == [1]
        assert results[0].remaining_after == Decimal("0")

    def test_tier_amounts_sum_to_total(self):
        total = Decimal("123456.78")
        results = WaterfallCalculator().apply(total, build_two_tier_set(), build_state({1: "99999.99"}))
        assert sum(r.tier_amount for r in results) == total
        for r in results:
            assert r.lp_pool + r.gp_pool == r.tier_amount

    def test_leftover_cash_without_unbounded_tier(self):
        tier_set = TierSet.from_tiers("fund_i", [
            Tier(
                structure_id="fund_i",
                tier_number=1,
                tier_type="ReturnOfCapital",
                lp_share_percent=Decimal("100"),
                gp_share_percent=Decimal("0"),
                threshold_amount=Decimal("100.00"),
            )
        ])
        with pytest.raises(WaterfallArithmeticError, match="exceeds tier capacity by 50.00"):
            WaterfallCalculator().apply(Decimal("150.00"), tier_set, build_state())


class TestSplitRounding:
    """The LP side is rounded; the GP side is the exact remainder."""

    def test_half_up_on_whole_units(self):
        """80% of 100,001 = 80,000.8 rounds to 80,001 LP and leaves 20,000 GP."""
        settings = WaterfallSettings(currency_quantum=Decimal("1"))
        results = WaterfallCalculator(settings).apply(
            Decimal("100001"), build_two_tier_set(threshold="0"), build_state()
        )
        residual = results[-1]
        assert residual.lp_pool == Decimal("80001")
        assert residual.gp_pool == Decimal("20000")

    def test_half_up_on_cents(self):
        results = WaterfallCalculator().apply(
            Decimal("1000.01"), build_two_tier_set(threshold="0"), build_state()
        )
        assert results[-1].lp_pool == Decimal("800.01")
        assert results[-1].gp_pool == Decimal("200.00")

    def test_round_down_mode(self):
        settings = WaterfallSettings(rounding_mode="ROUND_DOWN")
        results = WaterfallCalculator(settings).apply(
            Decimal("1000.01"), build_two_tier_set(threshold="0"), build_state()
        )
        assert results[-1].lp_pool == Decimal("800.00")
        assert results[-1].gp_pool == Decimal("200.01")


class TestAmountValidation:
    """Amounts are checked before any tier is touched."""

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    def test_non_positive_amount(self, amount):
        with pytest.raises(ValidationError):
            WaterfallCalculator().apply(amount, build_two_tier_set(), build_state())

    def test_sub_cent_amount(self):
        with pytest.raises(ValidationError, match="not a whole multiple"):
            WaterfallCalculator().apply(Decimal("10.001"), build_two_tier_set(), build_state())

    def test_float_amount_refused(self):
        with pytest.raises(ValidationError, match="floats"):
            WaterfallCalculator().apply(10.5, build_two_tier_set(), build_state())

    def test_state_for_another_structure(self):
        store = InMemoryStore()
        state = TierStateStore(store.tier_state, "fund_ii")
        with pytest.raises(ValidationError, match="tier state is for structure fund_ii"):
            WaterfallCalculator().apply(Decimal("10.00"), build_two_tier_set(), state)


# =============================================================================
# Tier state
# =============================================================================

class TestTierStateStore:
    """Increments are staged by the calculator and persisted on commit."""

    def test_calculator_only_stages(self):
        store = InMemoryStore()
        state = TierStateStore(store.tier_state, "fund_i")

        WaterfallCalculator().apply(Decimal("150000.00"), build_two_tier_set(), state)

        assert state.pending() == {1: Decimal("100000.00"), 2: Decimal("50000.00")}
        assert store.tier_state.get("fund_i", 1) == Decimal("0")

    def test_commit_persists_increments(self):
        store = InMemoryStore()
        state = TierStateStore(store.tier_state, "fund_i")
        WaterfallCalculator().apply(Decimal("150000.00"), build_two_tier_set(), state)

        totals = state.commit()

        assert totals == {1: Decimal("100000.00"), 2: Decimal("50000.00")}
        assert store.tier_state.get("fund_i", 1) == Decimal("100000.00")

    def test_commit_detects_concurrent_change(self):
        store = InMemoryStore()
        state = TierStateStore(store.tier_state, "fund_i")
        WaterfallCalculator().apply(Decimal("1000.00"), build_two_tier_set(), state)

        # Another writer consumes tier 1 capacity after it was read
        store.tier_state.increment("fund_i", 1, Decimal("5.00"))

        with pytest.raises(ConflictError, match="changed concurrently"):
            state.commit()

    def test_commit_twice_rejected(self):
        state = build_state()
        state.stage(1, Decimal("1.00"))
        state.commit()
        with pytest.raises(ValidationError, match="already committed"):
            state.commit()

    def test_negative_stage_rejected(self):
        with pytest.raises(ValidationError):
            build_state().stage(1, Decimal("-1.00"))

    def test_discard(self):
        state = build_state({1: "10.00"})
        state.stage(1, Decimal("5.00"))
        assert state.allocated_to_date(1) == Decimal("15.00")
        state.discard()
        assert state.allocated_to_date(1) == Decimal("10.00")


# =============================================================================
# Sum property
# =============================================================================

@pytest.mark.parametrize("total", ["0.01", "19999.99", "20000.00", "20000.01", "123456.78", "5000000.00"])
@pytest.mark.parametrize("prior", [None, "80000.00", "100000.00"])
@pytest.mark.parametrize("lp,gp", [("80", "20"), ("66.667", "33.333"), ("99.999", "0.001"), ("0", "100")])
def test_tier_walk_always_places_total(total, prior, lp, gp):
    """Tier amounts sum to the total and each tier's pools sum to its amount."""
    total = Decimal(total)
    prior_state = {1: prior} if prior else None

    results = WaterfallCalculator().apply(total, build_two_tier_set(lp=lp, gp=gp), build_state(prior_state))

    assert sum(r.tier_amount for r in results) == total
    for r in results:
        assert r.lp_pool + r.gp_pool == r.tier_amount
        assert r.lp_pool >= 0 and r.gp_pool >= 0
        if r.capacity_left is not None:
            assert r.tier_amount <= r.capacity_left
