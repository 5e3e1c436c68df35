"""Tier breakdown block.

Turns the tier results of a waterfall run into one DataFrame row per tier
reached. Money columns keep their Decimal values so the report reconciles to
the penny; percentages are floats for display.
"""

from decimal import Decimal
from typing import List

import pandas as pd

from .base import Block, BlockContext
from ..schemas import WaterfallResult

TIER_BREAKDOWN_COLUMNS = [
    "tier_number",
    "tier_name",
    "tier_type",
    "prior_allocated",
    "capacity_left",
    "tier_amount",
    "lp_pool",
    "gp_pool",
    "remaining_after",
    "pct_of_distribution",
]


class TierBreakdownBlock(Block):
    """Per-tier view of a waterfall result.

    Inputs (from context):
        - waterfall_result: WaterfallResult

    Outputs (to context):
        - tier_breakdown: DataFrame, one row per tier reached:
            * tier_number, tier_name, tier_type
            * prior_allocated: cumulative amount before this distribution
            * capacity_left: capacity available (None for the unbounded tier)
            * tier_amount, lp_pool, gp_pool, remaining_after
            * pct_of_distribution: tier_amount / distribution total * 100
    """

    def __init__(self, result_key: str = "waterfall_result"):
        self.result_key = result_key

    def inputs(self) -> List[str]:
        return [self.result_key]

    def outputs(self) -> List[str]:
        return ["tier_breakdown"]

    def execute(self, context: BlockContext) -> None:
        result: WaterfallResult = context.get(self.result_key)
        context.set("tier_breakdown", self._compute(result))

    def _compute(self, result: WaterfallResult) -> pd.DataFrame:
        if not result.tier_breakdown:
            return pd.DataFrame(columns=TIER_BREAKDOWN_COLUMNS)

        rows = []
        for tier in result.tier_breakdown:
            rows.append({
                "tier_number": tier.tier_number,
                "tier_name": tier.tier_name,
                "tier_type": tier.tier_type,
                "prior_allocated": tier.prior_allocated,
                "capacity_left": tier.capacity_left,
                "tier_amount": tier.tier_amount,
                "lp_pool": tier.lp_pool,
                "gp_pool": tier.gp_pool,
                "remaining_after": tier.remaining_after,
                "pct_of_distribution": float(
                    tier.tier_amount / result.total_amount * Decimal("100")
                ),
            })

        return pd.DataFrame(rows, columns=TIER_BREAKDOWN_COLUMNS)
