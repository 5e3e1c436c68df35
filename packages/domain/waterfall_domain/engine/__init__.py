"""Waterfall engine.

Leaf-first:
- money: fixed-point helpers
- tier_set: TierSet validation and loading (with per-run overrides)
- tier_state: cumulative tier state with staged, compare-and-set commits
- calculator: WaterfallCalculator (tier walk and LP/GP split)
- allocator: InvestorAllocator (largest-remainder pro-rata)
- reconciliation: exact-sum checks
- lifecycle: DistributionLifecycle (apply-once state machine)
- tier_templates: default and split-based tier builders
"""

from .money import as_decimal, to_units, from_units, require_money
from .tier_set import TierSet, TierSetLoader, validate_tiers, apply_overrides, summarize_tiers
from .tier_state import TierStateStore
from .calculator import WaterfallCalculator
from .allocator import InvestorAllocator, InvestorShare, resolve_weights, ownership_percentages
from .reconciliation import reconcile
from .lifecycle import DistributionLifecycle
from .tier_templates import build_default_tiers, build_tiers_from_splits

__all__ = [
    "as_decimal",
    "to_units",
    "from_units",
    "require_money",
    "TierSet",
    "TierSetLoader",
    "validate_tiers",
    "apply_overrides",
    "summarize_tiers",
    "TierStateStore",
    "WaterfallCalculator",
    "InvestorAllocator",
    "InvestorShare",
    "resolve_weights",
    "ownership_percentages",
    "reconcile",
    "DistributionLifecycle",
    "build_default_tiers",
    "build_tiers_from_splits",
]
