"""Distribution events, cumulative tier state and allocation output.

A Distribution is one cash event for a structure. It moves through:

    Draft ──apply_waterfall──▶ WaterfallApplied ──mark_paid──▶ Paid

The waterfall is applied exactly once. Applying it produces AllocationLines
(immutable) and increments TierCumulativeState for every tier that absorbed
cash, all inside a single transaction.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from pydantic import ConfigDict, Field, model_validator

from .base import (
    DomainModel,
    DistributionId,
    InvestorId,
    MoneyAmount,
    StructureId,
    TierNumber,
)
from .tiers import TierResult


DistributionStatus = Literal["Draft", "WaterfallApplied", "Paid"]

AllocationParty = Literal["LP", "GP"]


# =============================================================================
# Distribution
# =============================================================================

class Distribution(DomainModel):
    """One distribution event for a structure.

    Status flags:
        ``waterfall_applied`` is False while Draft and True afterwards; the
        record store refuses to flip it back. ``version`` is bumped by every
        save and is what compare-and-set writes are checked against.

    Totals recorded on application:
        tier_amounts: tier number -> amount the tier absorbed
        lp_total_amount / gp_total_amount: LP and GP sides across all tiers
    """

    id: DistributionId

    structure_id: StructureId

    distribution_number: Optional[str] = Field(
        default=None,
        description="Human-facing reference (e.g., 'D-001')"
    )

    total_amount: Decimal = Field(
        gt=0,
        description="Cash to pour through the waterfall"
    )

    currency: str = Field(default="USD")

    distribution_date: Optional[date] = None

    status: DistributionStatus = Field(default="Draft")

    waterfall_applied: bool = Field(default=False)

    version: int = Field(
        default=0,
        ge=0,
        description="Optimistic concurrency counter, incremented by the record store"
    )

    tier_amounts: Dict[int, MoneyAmount] = Field(default_factory=dict)

    lp_total_amount: MoneyAmount = Field(default=Decimal("0"))

    gp_total_amount: MoneyAmount = Field(default=Decimal("0"))

    applied_at: Optional[datetime] = None

    paid_at: Optional[datetime] = None

    notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_status_flags(self):
        """Keep waterfall_applied consistent with status."""
        if self.status == "Draft" and self.waterfall_applied:
            raise ValueError("Draft distribution cannot have waterfall_applied set")
        if self.status != "Draft" and not self.waterfall_applied:
            raise ValueError(f"{self.status} distribution requires waterfall_applied")
        return self


# =============================================================================
# Tier Cumulative State
# =============================================================================

class TierCumulativeState(DomainModel):
    """Amount a tier has absorbed across every committed distribution."""

    structure_id: StructureId
    tier_number: TierNumber
    amount_allocated_to_date: MoneyAmount = Field(default=Decimal("0"))
    updated_at: Optional[datetime] = None


# =============================================================================
# Allocation Line
# =============================================================================

class AllocationLine(DomainModel):
    """Per-investor, per-tier output of an applied waterfall.

    LP lines carry ``lp_amount``; the GP side of a tier is recorded as one line
    for the GP pseudo-investor carrying ``gp_amount``. Summing every line of a
    tier therefore reproduces the tier amount.
    """

    model_config = ConfigDict(frozen=True)

    distribution_id: DistributionId
    tier_number: TierNumber
    investor_id: InvestorId

    party: AllocationParty = Field(default="LP")

    lp_amount: MoneyAmount = Field(default=Decimal("0"))
    gp_amount: MoneyAmount = Field(default=Decimal("0"))

    ownership_percent: Optional[Decimal] = Field(
        default=None,
        description="Normalized ownership percentage used for the LP split"
    )

    @property
    def amount(self) -> Decimal:
        return self.lp_amount + self.gp_amount


# =============================================================================
# Waterfall Result
# =============================================================================

class WaterfallResult(DomainModel):
    """Complete, reconciled outcome of running a distribution's waterfall."""

    model_config = ConfigDict(frozen=True)

    distribution_id: DistributionId
    structure_id: StructureId
    total_amount: MoneyAmount

    tier_breakdown: List[TierResult] = Field(default_factory=list)
    allocations: List[AllocationLine] = Field(default_factory=list)

    @property
    def lp_total(self) -> Decimal:
        return sum((t.lp_pool for t in self.tier_breakdown), Decimal("0"))

    @property
    def gp_total(self) -> Decimal:
        return sum((t.gp_pool for t in self.tier_breakdown), Decimal("0"))

    def tier_amounts(self) -> Dict[int, Decimal]:
        return {t.tier_number: t.tier_amount for t in self.tier_breakdown}

    def lines_for_tier(self, tier_number: int) -> List[AllocationLine]:
        return [line for line in self.allocations if line.tier_number == tier_number]

    def to_payload(self) -> Dict[str, Any]:
        """Render the result in the shape exposed to collaborators.

        Returns:
            {
                "tierBreakdown": [{"tierNumber", "lpPool", "gpPool"}, ...],
                "allocations": [{"investorId", "tierNumber", "amount"}, ...],
            }
            Money is rendered as decimal strings so no precision is lost.
        """
        return {
            "distributionId": self.distribution_id,
            "tierBreakdown": [
                tier.model_dump(
                    by_alias=True,
                    mode="json",
                    include={"tier_number", "lp_pool", "gp_pool"},
                )
                for tier in self.tier_breakdown
            ],
            "allocations": [
                {
                    "investorId": line.investor_id,
                    "tierNumber": line.tier_number,
                    "amount": str(line.amount),
                }
                for line in self.allocations
            ],
        }


# =============================================================================
# Structure Distribution Summary
# =============================================================================

class StructureDistributionSummary(DomainModel):
    """Roll-up of every distribution recorded for a structure."""

    structure_id: StructureId
    distribution_count: int = 0
    draft_count: int = 0
    applied_count: int = 0
    paid_count: int = 0

    total_distributed: MoneyAmount = Field(
        default=Decimal("0"),
        description="Sum of total_amount over distributions with the waterfall applied"
    )
    lp_total_amount: MoneyAmount = Field(default=Decimal("0"))
    gp_total_amount: MoneyAmount = Field(default=Decimal("0"))
    tier_totals: Dict[int, MoneyAmount] = Field(default_factory=dict)


class InvestorDistributionTotal(DomainModel):
    """What one investor has received from a structure's applied distributions."""

    structure_id: StructureId
    investor_id: InvestorId
    total_amount: MoneyAmount = Field(default=Decimal("0"))
    distribution_count: int = Field(
        default=0,
        description="Applied or paid distributions with at least one line for the investor"
    )
