"""Waterfall tier models.

A tier is one layer of a distribution waterfall. Cash is poured through the
tiers of a structure in ascending tier number; each tier absorbs up to its
remaining capacity and splits what it absorbs between LPs and the GP.

Tier types:
    - ReturnOfCapital: LPs get their contributed capital back first
    - PreferredReturn: LPs receive the hurdle (preferred return) amount
    - Catchup: the GP receives an accelerated share until the carry split is reached
    - Residual: everything left over, split at the carried-interest ratio
"""

from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import ConfigDict, Field

from .base import DomainModel, MoneyAmount, SharePercent, StructureId, TierNumber


TierType = Literal["ReturnOfCapital", "PreferredReturn", "Catchup", "Residual"]

TIER_TYPES = ("ReturnOfCapital", "PreferredReturn", "Catchup", "Residual")


# =============================================================================
# Tier
# =============================================================================

class Tier(DomainModel):
    """One ordered layer of a structure's distribution waterfall.

    Capacity:
        Bounded tiers carry an absolute ``threshold_amount``: the total the tier
        may absorb across *all* distributions of the structure. The cumulative
        amount already absorbed lives in TierCumulativeState, not here.

        The Residual tier has no threshold and absorbs whatever reaches it.

    Hurdle metadata:
        ``threshold_irr`` and ``threshold_date`` record the hurdle the threshold
        amount was derived from. The engine never recomputes an IRR; it only
        uses ``threshold_amount``.

    Example:
        Tier(
            structure_id="fund_i",
            tier_number=2,
            tier_type="PreferredReturn",
            lp_share_percent=Decimal("100"),
            gp_share_percent=Decimal("0"),
            threshold_amount=Decimal("800000.00"),
            threshold_irr=Decimal("8"),
        )

    Note:
        The LP/GP sum, contiguity and terminal-tier rules are checked by
        TierSet, which sees the whole configuration and reports every
        violation together.
    """

    structure_id: StructureId = Field(
        description="Structure this tier belongs to"
    )

    tier_number: TierNumber = Field(
        description="Evaluation order, unique per structure, contiguous from 1"
    )

    tier_type: TierType = Field(
        description="Role of the tier in the waterfall"
    )

    tier_name: Optional[str] = Field(
        default=None,
        description="Display name (defaults to 'Tier N')"
    )

    lp_share_percent: SharePercent = Field(
        description="Share of the tier amount paid to limited partners"
    )

    gp_share_percent: SharePercent = Field(
        description="Share of the tier amount paid to the general partner"
    )

    threshold_amount: Optional[MoneyAmount] = Field(
        default=None,
        description="Total capacity of the tier across all distributions. None = unbounded."
    )

    threshold_irr: Optional[Decimal] = Field(
        default=None,
        description="Hurdle rate the threshold was derived from (informational)"
    )

    threshold_date: Optional[date] = Field(
        default=None,
        description="Date the hurdle threshold was measured at (informational)"
    )

    description: str = Field(
        default="",
        description="Free-form notes (management fee, preferred return terms, ...)"
    )

    is_active: bool = Field(
        default=True,
        description="Inactive tiers are skipped only when explicitly excluded"
    )

    @property
    def is_unbounded(self) -> bool:
        """True if the tier absorbs everything that reaches it."""
        return self.threshold_amount is None

    @property
    def display_name(self) -> str:
        return self.tier_name or f"Tier {self.tier_number}"

    def share_total(self) -> Decimal:
        return self.lp_share_percent + self.gp_share_percent

    def with_override(self, override: "TierOverride") -> "Tier":
        """Return a copy of this tier with the override's fields applied."""
        update = override.model_dump(exclude_none=True, exclude={"tier_number"})
        return self.model_copy(update=update)


# =============================================================================
# Tier Override
# =============================================================================

class TierOverride(DomainModel):
    """Per-run override of a tier's terms.

    Overrides let a caller run a single distribution against adjusted terms
    (e.g., a negotiated split) without editing the stored configuration.
    The overridden tier set is validated exactly like a stored one.
    """

    tier_number: TierNumber

    lp_share_percent: Optional[SharePercent] = None
    gp_share_percent: Optional[SharePercent] = None
    threshold_amount: Optional[MoneyAmount] = None
    is_active: Optional[bool] = None


# =============================================================================
# Tier Split (bulk tier creation input)
# =============================================================================

class TierSplit(DomainModel):
    """Compact description of a tier used for bulk tier creation.

    Only the GP split is given; the LP share is its complement.
    """

    name: str = Field(min_length=1)

    gp_split: SharePercent = Field(
        description="GP share of the tier (LP share = 100 - gp_split)"
    )

    tier_type: Optional[TierType] = Field(
        default=None,
        description="Explicit tier type. Inferred from position and threshold when omitted."
    )

    threshold_amount: Optional[MoneyAmount] = None
    irr_hurdle: Optional[Decimal] = None
    preferred_return: Optional[Decimal] = None
    management_fee: Optional[Decimal] = None
    is_active: bool = True


# =============================================================================
# Tier Result
# =============================================================================

class TierResult(DomainModel):
    """Outcome of pouring a distribution through one tier."""

    model_config = ConfigDict(frozen=True)

    tier_number: TierNumber
    tier_type: TierType
    tier_name: str

    prior_allocated: MoneyAmount = Field(
        description="Cumulative amount the tier had absorbed before this distribution"
    )

    capacity_left: Optional[MoneyAmount] = Field(
        description="Capacity available to this distribution (None = unbounded)"
    )

    tier_amount: MoneyAmount = Field(
        description="Amount absorbed by the tier (lp_pool + gp_pool)"
    )

    lp_pool: MoneyAmount
    gp_pool: MoneyAmount

    remaining_after: MoneyAmount = Field(
        description="Cash still to place after this tier"
    )


# =============================================================================
# Waterfall Summary
# =============================================================================

class TierSummaryRow(DomainModel):
    tier_number: int
    tier_name: str
    tier_type: TierType
    lp_share_percent: Decimal
    gp_share_percent: Decimal
    threshold_amount: Optional[Decimal] = None
    is_active: bool


class WaterfallSummary(DomainModel):
    """Overview of a structure's tier configuration."""

    structure_id: str
    total_tiers: int
    active_tiers: int
    bounded_capacity: Decimal = Field(
        description="Sum of thresholds of active bounded tiers"
    )
    has_residual: bool = Field(
        description="True if an active unbounded tier terminates the waterfall"
    )
    tiers: List[TierSummaryRow] = Field(default_factory=list)
