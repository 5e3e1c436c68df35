"""Waterfall calculator.

Pours a distribution amount through a structure's tiers:

    remaining = total
    for each active tier, ascending:
        capacity_left = remaining                      (unbounded tier)
                      = max(0, threshold - prior)      (bounded tier)
        tier_amount   = min(remaining, capacity_left)
        lp_pool       = round(tier_amount * lp% / 100)
        gp_pool       = tier_amount - lp_pool
        remaining    -= tier_amount
        stop once remaining == 0

gp_pool is derived by subtraction so lp_pool + gp_pool == tier_amount exactly.
Cash left after the last tier is an error, never silently dropped.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from ..errors import ValidationError, WaterfallArithmeticError
from ..schemas import Tier, TierResult, WaterfallSettings
from .money import Number, require_money
from .tier_set import TierSet
from .tier_state import TierStateStore

logger = logging.getLogger(__name__)


class WaterfallCalculator:
    """Splits a distribution amount across tiers and LP/GP.

    The calculator is pure apart from staging increments in the TierStateStore
    it is given; nothing is persisted until the caller commits that store.

    Example:
        calculator = WaterfallCalculator(settings)
        state = TierStateStore(store.tier_state, "fund_i")
        results = calculator.apply(Decimal("1000000.00"), tier_set, state)
        assert sum(r.tier_amount for r in results) == Decimal("1000000.00")
    """

    def __init__(self, settings: Optional[WaterfallSettings] = None):
        self.settings = settings or WaterfallSettings()

    def split(self, tier: Tier, tier_amount: Decimal) -> Tuple[Decimal, Decimal]:
        """Split a tier amount into (lp_pool, gp_pool)."""
        quantum = self.settings.currency_quantum
        lp_pool = (tier_amount * tier.lp_share_percent / Decimal("100")).quantize(
            quantum, rounding=self.settings.decimal_rounding
        )
        # Shares within tolerance of 100 can round the LP side past the tier amount
        lp_pool = min(lp_pool, tier_amount)
        return lp_pool, tier_amount - lp_pool

    def apply(
        self,
        total_amount: Number,
        tier_set: TierSet,
        tier_state: TierStateStore,
    ) -> List[TierResult]:
        """Pour ``total_amount`` through the tier set.

        Args:
            total_amount: Cash to distribute (> 0, whole currency units)
            tier_set: Validated tiers of the structure
            tier_state: Cumulative state of the same structure; increments are staged

        Returns:
            One TierResult per tier reached, in tier order

        Raises:
            ValidationError: If the amount is not positive or not whole currency units
            WaterfallArithmeticError: If cash remains after the last active tier
        """
        quantum = self.settings.currency_quantum
        total = require_money(total_amount, quantum, "distribution amount")
        if total <= 0:
            raise ValidationError(f"distribution amount must be positive, got {total}")
        if tier_state.structure_id != tier_set.structure_id:
            raise ValidationError(
                f"tier state is for structure {tier_state.structure_id}, "
                f"tiers are for {tier_set.structure_id}"
            )

        remaining = total
        results: List[TierResult] = []

        for tier in tier_set:
            if remaining == 0:
                break

            prior = tier_state.allocated_to_date(tier.tier_number)
            if tier.is_unbounded:
                capacity_left = None
                tier_amount = remaining
            else:
                capacity_left = max(Decimal("0"), tier.threshold_amount - prior)
                tier_amount = min(remaining, capacity_left)

            lp_pool, gp_pool = self.split(tier, tier_amount)
            if tier_amount > 0:
                tier_state.stage(tier.tier_number, tier_amount)
            remaining -= tier_amount

            results.append(TierResult(
                tier_number=tier.tier_number,
                tier_type=tier.tier_type,
                tier_name=tier.display_name,
                prior_allocated=prior,
                capacity_left=capacity_left,
                tier_amount=tier_amount,
                lp_pool=lp_pool,
                gp_pool=gp_pool,
                remaining_after=remaining,
            ))
            logger.debug(
                "Tier %s (%s): absorbed %s of %s capacity, lp=%s gp=%s, remaining=%s",
                tier.tier_number, tier.tier_type, tier_amount,
                "unbounded" if capacity_left is None else capacity_left,
                lp_pool, gp_pool, remaining,
            )

        if remaining > 0:
            raise WaterfallArithmeticError(
                f"distribution of {total} for structure {tier_set.structure_id} exceeds "
                f"tier capacity by {remaining}; the waterfall has no active unbounded tier"
            )

        return results
