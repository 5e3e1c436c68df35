"""Waterfall domain schemas.

This package contains all Pydantic models for the waterfall domain layer:
- Base types and conventions
- Tiers, per-run overrides and tier results
- Investor positions (ownership weights)
- Distributions, cumulative tier state and allocation lines
- Engine settings

Usage:
    from waterfall_domain.schemas import (
        Tier, TierOverride, InvestorPosition, Distribution,
        AllocationLine, WaterfallResult, WaterfallSettings
    )
"""

# Base types
from .base import (
    DomainModel,
    MoneyAmount,
    SharePercent,
    Weight,
    TierNumber,
    StructureId,
    InvestorId,
    DistributionId,
)

# Tiers
from .tiers import (
    TierType,
    TIER_TYPES,
    Tier,
    TierOverride,
    TierSplit,
    TierResult,
    TierSummaryRow,
    WaterfallSummary,
)

# Investors
from .investors import (
    WeightBasis,
    InvestorPosition,
)

# Distributions
from .distributions import (
    DistributionStatus,
    AllocationParty,
    Distribution,
    TierCumulativeState,
    AllocationLine,
    WaterfallResult,
    StructureDistributionSummary,
    InvestorDistributionTotal,
)

# Settings
from .settings import (
    RoundingMode,
    WaterfallSettings,
)

__all__ = [
    # Base types
    "DomainModel",
    "MoneyAmount",
    "SharePercent",
    "Weight",
    "TierNumber",
    "StructureId",
    "InvestorId",
    "DistributionId",
    # Tiers
    "TierType",
    "TIER_TYPES",
    "Tier",
    "TierOverride",
    "TierSplit",
    "TierResult",
    "TierSummaryRow",
    "WaterfallSummary",
    # Investors
    "WeightBasis",
    "InvestorPosition",
    # Distributions
    "DistributionStatus",
    "AllocationParty",
    "Distribution",
    "TierCumulativeState",
    "AllocationLine",
    "WaterfallResult",
    "StructureDistributionSummary",
    "InvestorDistributionTotal",
    # Settings
    "RoundingMode",
    "WaterfallSettings",
]
