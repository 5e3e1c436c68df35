"""Tests for the reporting blocks.

Tests cover:
- BlockContext get/set/has operations
- Dependency ordering and executor validation
- TierBreakdownBlock, AllocationBlock, ReconciliationBlock on an applied waterfall
"""

import pytest
from decimal import Decimal

from waterfall_domain.blocks import (
    AllocationBlock,
    Block,
    BlockContext,
    BlockExecutor,
    ReconciliationBlock,
    TierBreakdownBlock,
    default_report_blocks,
)
from waterfall_domain.blocks.base import CircularDependencyError, topological_sort
from waterfall_domain.engine import DistributionLifecycle, build_default_tiers
from waterfall_domain.repositories import InMemoryStore
from waterfall_domain.schemas import InvestorPosition


# =============================================================================
# Test Data Builders
# =============================================================================

def build_result(amount=Decimal("1200000.00")):
    """Apply one distribution to the default waterfall on 1,000,000 of capital."""
    store = InMemoryStore()
    store.structures.set_tiers("fund_i", build_default_tiers("fund_i", Decimal("1000000.00")))
    store.structures.set_positions("fund_i", [
        InvestorPosition(investor_id="lp_a", structure_id="fund_i", weight=Decimal("60")),
        InvestorPosition(investor_id="lp_b", structure_id="fund_i", weight=Decimal("40")),
    ])
    lifecycle = DistributionLifecycle.from_store(store)
    distribution = lifecycle.create_distribution("fund_i", amount, distribution_id="d-1")
    return lifecycle.apply_waterfall(distribution.id)


def run_report(result) -> BlockContext:
    context = BlockContext()
    context.set("waterfall_result", result)
    BlockExecutor(default_report_blocks()).execute(context)
    return context


class SimpleBlock(Block):
    """Block writing '<name>_output' to each of its outputs."""

    def __init__(self, name, inputs, outputs):
        self.name = name
        self._inputs = inputs
        self._outputs = outputs

    def inputs(self):
        return self._inputs

    def outputs(self):
        return self._outputs

    def execute(self, context):
        for output in self._outputs:
            context.set(output, f"{self.name}_output")

    def __repr__(self):
        return f"SimpleBlock({self.name})"


# =============================================================================
# BlockContext
# =============================================================================

def test_block_context_get_set():
    context = BlockContext()
    context.set("key1", "value1")
    assert context.get("key1") == "value1"
    assert context.has("key1")
    assert not context.has("key2")
    assert context.keys() == ["key1"]


def test_block_context_get_missing_key():
    with pytest.raises(KeyError, match="'missing' is not in the report context"):
        BlockContext().get("missing")


# =============================================================================
# Dependency resolution
# =============================================================================

def test_topological_sort_linear_chain():
    """A -> B -> C sorts the same regardless of input order."""
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    assert topological_sort([block_c, block_a, block_b]) == [block_a, block_b, block_c]


def test_topological_sort_circular_dependency():
    block_a = SimpleBlock("A", ["data_c"], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    with pytest.raises(CircularDependencyError, match="form a cycle"):
        topological_sort([block_a, block_b, block_c])


def test_topological_sort_duplicate_output():
    with pytest.raises(ValueError, match="written by both"):
        topological_sort([SimpleBlock("A", [], ["data_a"]), SimpleBlock("B", [], ["data_a"])])


def test_report_blocks_order_reconciliation_last():
    ordered = topological_sort([ReconciliationBlock(), AllocationBlock(), TierBreakdownBlock()])
    assert isinstance(ordered[-1], ReconciliationBlock)


def test_executor_missing_input():
    with pytest.raises(KeyError, match="missing inputs \\['waterfall_result'\\]"):
        BlockExecutor([TierBreakdownBlock()]).execute(BlockContext())


def test_executor_missing_output():
    class BadBlock(Block):
        def inputs(self):
            return []

        def outputs(self):
            return ["output"]

        def execute(self, context):
            pass

    with pytest.raises(ValueError, match="did not write declared outputs"):
        BlockExecutor([BadBlock()]).execute(BlockContext())


# =============================================================================
# Reporting blocks
# =============================================================================

class TestTierBreakdownBlock:
    """One row per tier reached, money kept as Decimal."""

    def test_rows(self):
        context = run_report(build_result())
        df = context.get("tier_breakdown")

        assert list(df["tier_number"]) == [1, 2, 3, 4]
        assert list(df["tier_amount"]) == [
            Decimal("1000000.00"), Decimal("80000.00"), Decimal("20000.00"), Decimal("100000.00"),
        ]
        assert df.iloc[3]["gp_pool"] == Decimal("20000.00")
        assert df.iloc[3]["capacity_left"] is None
        assert df["pct_of_distribution"].sum() == pytest.approx(100.0)

    def test_names(self):
        df = run_report(build_result()).get("tier_breakdown")
        assert list(df["tier_name"]) == [
            "Return of Capital", "Preferred Return", "GP Catch-up", "Carried Interest",
        ]


class TestAllocationBlock:
    """Allocation lines and the investor-by-tier pivot."""

    def test_lines_order(self):
        df = run_report(build_result()).get("allocation_lines")

        assert list(zip(df["tier_number"], df["investor_id"])) == [
            (1, "lp_a"), (1, "lp_b"),
            (2, "lp_a"), (2, "lp_b"),
            (3, "gp"),
            (4, "lp_a"), (4, "lp_b"), (4, "gp"),
        ]

    def test_by_investor_pivot(self):
        df = run_report(build_result()).get("allocations_by_investor")

        assert list(df["investor_id"]) == ["lp_a", "lp_b", "gp"]
        lp_a = df[df["investor_id"] == "lp_a"].iloc[0]
        assert lp_a["tier_1"] == Decimal("600000.00")
        assert lp_a["tier_3"] == Decimal("0")
        assert lp_a["total"] == Decimal("696000.00")

        gp = df[df["investor_id"] == "gp"].iloc[0]
        assert gp["tier_3"] == Decimal("20000.00")
        assert gp["total"] == Decimal("40000.00")
        assert sum(df["total"]) == Decimal("1200000.00")

    def test_partial_distribution_has_only_tiers_reached(self):
        df = run_report(build_result(Decimal("500.00"))).get("allocations_by_investor")
        assert [c for c in df.columns if c.startswith("tier_")] == ["tier_1"]
        assert list(df["investor_id"]) == ["lp_a", "lp_b"]


class TestReconciliationBlock:
    """Single-row audit summary."""

    def test_summary_reconciles(self):
        summary = run_report(build_result()).get("distribution_summary")

        assert len(summary) == 1
        row = summary.iloc[0]
        assert row["distribution_id"] == "d-1"
        assert row["tiers_reached"] == 4
        assert row["lp_total"] == Decimal("1160000.00")
        assert row["gp_total"] == Decimal("40000.00")
        assert row["allocated_total"] == Decimal("1200000.00")
        assert row["difference"] == Decimal("0")
        assert row["investor_count"] == 2
        assert bool(row["reconciled"])

    def test_detects_tampered_lines(self):
        """A line dropped after the fact shows up as an unreconciled difference."""
        result = build_result()
        context = BlockContext()
        context.set("waterfall_result", result)
        BlockExecutor([TierBreakdownBlock(), AllocationBlock()]).execute(context)

        lines = context.get("allocation_lines")
        context.set("allocation_lines", lines[lines["investor_id"] != "gp"])
        ReconciliationBlock().execute(context)

        row = context.get("distribution_summary").iloc[0]
        assert row["difference"] == Decimal("40000.00")
        assert not bool(row["reconciled"])
