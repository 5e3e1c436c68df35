"""Allocation blocks.

Flattens allocation lines into a DataFrame and pivots them into an
investor-by-tier matrix. The pivot is summed in Decimal rather than through
pandas aggregation, which would coerce the money columns to float.
"""

from decimal import Decimal
from typing import Dict, List, Tuple

import pandas as pd

from .base import Block, BlockContext
from ..schemas import WaterfallResult

ALLOCATION_LINE_COLUMNS = [
    "distribution_id",
    "tier_number",
    "investor_id",
    "party",
    "ownership_percent",
    "lp_amount",
    "gp_amount",
    "amount",
]


def tier_column(tier_number: int) -> str:
    return f"tier_{tier_number}"


class AllocationBlock(Block):
    """Investor-level view of a waterfall result.

    Inputs (from context):
        - waterfall_result: WaterfallResult

    Outputs (to context):
        - allocation_lines: DataFrame, one row per allocation line, ordered by
          tier then party (LP before GP) then investor id
        - allocations_by_investor: DataFrame, one row per investor (GP last):
            * investor_id, party
            * tier_<n>: amount received from tier n (0 when none)
            * total: sum across tiers
            * pct_of_distribution: total / distribution total * 100

    Example:
        context.set("waterfall_result", result)
        AllocationBlock().execute(context)

        by_investor = context.get("allocations_by_investor")
        by_investor.loc[by_investor["investor_id"] == "lp_a", "total"]
    """

    def __init__(self, result_key: str = "waterfall_result"):
        self.result_key = result_key

    def inputs(self) -> List[str]:
        return [self.result_key]

    def outputs(self) -> List[str]:
        return ["allocation_lines", "allocations_by_investor"]

    def execute(self, context: BlockContext) -> None:
        result: WaterfallResult = context.get(self.result_key)
        context.set("allocation_lines", self._compute_lines(result))
        context.set("allocations_by_investor", self._compute_by_investor(result))

    def _compute_lines(self, result: WaterfallResult) -> pd.DataFrame:
        ordered = sorted(
            result.allocations,
            key=lambda line: (line.tier_number, line.party != "LP", line.investor_id),
        )
        rows = [
            {
                "distribution_id": line.distribution_id,
                "tier_number": line.tier_number,
                "investor_id": line.investor_id,
                "party": line.party,
                "ownership_percent": line.ownership_percent,
                "lp_amount": line.lp_amount,
                "gp_amount": line.gp_amount,
                "amount": line.amount,
            }
            for line in ordered
        ]
        return pd.DataFrame(rows, columns=ALLOCATION_LINE_COLUMNS)

    def _compute_by_investor(self, result: WaterfallResult) -> pd.DataFrame:
        tier_numbers = [tier.tier_number for tier in result.tier_breakdown]
        columns = (
            ["investor_id", "party"]
            + [tier_column(n) for n in tier_numbers]
            + ["total", "pct_of_distribution"]
        )

        # (investor_id, party) -> tier_number -> amount
        matrix: Dict[Tuple[str, str], Dict[int, Decimal]] = {}
        for line in result.allocations:
            cells = matrix.setdefault((line.investor_id, line.party), {})
            cells[line.tier_number] = cells.get(line.tier_number, Decimal("0")) + line.amount

        if not matrix:
            return pd.DataFrame(columns=columns)

        rows = []
        for (investor_id, party), cells in sorted(matrix.items(), key=lambda kv: (kv[0][1] != "LP", kv[0][0])):
            row = {"investor_id": investor_id, "party": party}
            for n in tier_numbers:
                row[tier_column(n)] = cells.get(n, Decimal("0"))
            total = sum(cells.values(), Decimal("0"))
            row["total"] = total
            row["pct_of_distribution"] = float(total / result.total_amount * Decimal("100"))
            rows.append(row)

        return pd.DataFrame(rows, columns=columns)
