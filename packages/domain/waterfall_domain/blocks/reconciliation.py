"""Reconciliation summary block.

Condenses a waterfall run into a single audit row: what came in, what each
side received, and whether the lines add back up to the distribution.
"""

from decimal import Decimal
from typing import List

import pandas as pd

from .base import Block, BlockContext
from ..schemas import WaterfallResult


class ReconciliationBlock(Block):
    """Single-row distribution summary with a reconciliation flag.

    Inputs (from context):
        - waterfall_result: WaterfallResult
        - tier_breakdown: DataFrame (from TierBreakdownBlock)
        - allocation_lines: DataFrame (from AllocationBlock)

    Outputs (to context):
        - distribution_summary: DataFrame with one row:
            * distribution_id, structure_id
            * total_amount: distribution amount
            * tiers_reached: number of tiers that absorbed cash
            * lp_total, gp_total: pool totals across tiers
            * allocated_total: sum of every allocation line
            * investor_count: LP investors receiving a line
            * difference: total_amount - allocated_total
            * reconciled: True when tiers, pools and lines all agree
    """

    def __init__(
        self,
        result_key: str = "waterfall_result",
        tiers_key: str = "tier_breakdown",
        lines_key: str = "allocation_lines",
    ):
        self.result_key = result_key
        self.tiers_key = tiers_key
        self.lines_key = lines_key

    def inputs(self) -> List[str]:
        return [self.result_key, self.tiers_key, self.lines_key]

    def outputs(self) -> List[str]:
        return ["distribution_summary"]

    def execute(self, context: BlockContext) -> None:
        result: WaterfallResult = context.get(self.result_key)
        tiers_df: pd.DataFrame = context.get(self.tiers_key)
        lines_df: pd.DataFrame = context.get(self.lines_key)

        tier_total = sum(tiers_df["tier_amount"], Decimal("0"))
        lp_total = sum(tiers_df["lp_pool"], Decimal("0"))
        gp_total = sum(tiers_df["gp_pool"], Decimal("0"))
        allocated_total = sum(lines_df["amount"], Decimal("0"))
        lp_lines = lines_df[lines_df["party"] == "LP"]

        reconciled = (
            tier_total == result.total_amount
            and lp_total + gp_total == tier_total
            and allocated_total == result.total_amount
        )

        summary = pd.DataFrame([{
            "distribution_id": result.distribution_id,
            "structure_id": result.structure_id,
            "total_amount": result.total_amount,
            "tiers_reached": int((tiers_df["tier_amount"] > 0).sum()) if len(tiers_df) else 0,
            "lp_total": lp_total,
            "gp_total": gp_total,
            "allocated_total": allocated_total,
            "investor_count": int(lp_lines["investor_id"].nunique()),
            "difference": result.total_amount - allocated_total,
            "reconciled": reconciled,
        }])
        context.set("distribution_summary", summary)
