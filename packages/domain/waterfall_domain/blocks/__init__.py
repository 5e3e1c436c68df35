"""Reporting blocks for applied distributions.

Architecture:
    WaterfallResult (schema) → Blocks (computation) → DataFrames (output)

Available blocks:
- TierBreakdownBlock: one row per tier reached
- AllocationBlock: allocation lines and the investor-by-tier matrix
- ReconciliationBlock: single-row audit summary

Usage:
    from waterfall_domain.blocks import (
        BlockContext, BlockExecutor, TierBreakdownBlock, AllocationBlock, ReconciliationBlock,
    )

    context = BlockContext()
    context.set("waterfall_result", result)
    BlockExecutor([ReconciliationBlock(), TierBreakdownBlock(), AllocationBlock()]).execute(context)
"""

from .base import Block, BlockContext, BlockExecutor, CircularDependencyError, topological_sort
from .tier_breakdown import TierBreakdownBlock
from .allocations import AllocationBlock
from .reconciliation import ReconciliationBlock


def default_report_blocks():
    """The blocks that make up a full distribution report."""
    return [TierBreakdownBlock(), AllocationBlock(), ReconciliationBlock()]


__all__ = [
    "Block",
    "BlockContext",
    "BlockExecutor",
    "CircularDependencyError",
    "topological_sort",
    "TierBreakdownBlock",
    "AllocationBlock",
    "ReconciliationBlock",
    "default_report_blocks",
]
