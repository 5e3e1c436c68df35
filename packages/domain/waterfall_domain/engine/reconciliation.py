"""Exact-sum checks run on a waterfall result before it is committed."""

from decimal import Decimal
from typing import List

from ..errors import WaterfallArithmeticError
from ..schemas import WaterfallResult


def reconcile(result: WaterfallResult) -> None:
    """Verify a result to the penny.

    Checks:
        - tier amounts sum to the distribution total
        - lp_pool + gp_pool == tier_amount for every tier
        - LP lines of a tier sum to its lp_pool, GP lines to its gp_pool

    Raises:
        WaterfallArithmeticError: Listing every mismatch
    """
    problems: List[str] = []

    tier_total = sum((t.tier_amount for t in result.tier_breakdown), Decimal("0"))
    if tier_total != result.total_amount:
        problems.append(f"tiers absorbed {tier_total}, distribution is {result.total_amount}")

    for tier in result.tier_breakdown:
        if tier.lp_pool + tier.gp_pool != tier.tier_amount:
            problems.append(
                f"tier {tier.tier_number}: lp {tier.lp_pool} + gp {tier.gp_pool} "
                f"!= {tier.tier_amount}"
            )
        lines = result.lines_for_tier(tier.tier_number)
        lp_lines = sum((line.lp_amount for line in lines), Decimal("0"))
        gp_lines = sum((line.gp_amount for line in lines), Decimal("0"))
        if lp_lines != tier.lp_pool:
            problems.append(f"tier {tier.tier_number}: LP lines {lp_lines} != pool {tier.lp_pool}")
        if gp_lines != tier.gp_pool:
            problems.append(f"tier {tier.tier_number}: GP lines {gp_lines} != pool {tier.gp_pool}")

    if problems:
        raise WaterfallArithmeticError(
            f"distribution {result.distribution_id} does not reconcile: " + "; ".join(problems)
        )
