"""Fund distribution waterfall engine.

Splits a structure's distribution across ordered preference tiers (return of
capital, preferred return, GP catch-up, residual carry), allocates each tier's
LP pool across investors to the penny, and commits the result exactly once.

Usage:
    from waterfall_domain import DistributionLifecycle, InMemoryStore, build_default_tiers

    store = InMemoryStore()
    store.structures.set_tiers("fund_i", build_default_tiers("fund_i", Decimal("1000000.00")))
    store.structures.set_positions("fund_i", positions)

    lifecycle = DistributionLifecycle.from_store(store)
    distribution = lifecycle.create_distribution("fund_i", Decimal("250000.00"))
    result = lifecycle.apply_waterfall(distribution.id)
"""

from .schemas import *  # noqa: F401,F403
from .schemas import __all__ as _schema_names
from .errors import (
    DistributionError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidTransitionError,
    CommitTimeoutError,
    WaterfallArithmeticError,
)
from .engine import (
    TierSet,
    TierSetLoader,
    TierStateStore,
    WaterfallCalculator,
    InvestorAllocator,
    DistributionLifecycle,
    reconcile,
    resolve_weights,
    summarize_tiers,
    build_default_tiers,
    build_tiers_from_splits,
)
from .repositories import InMemoryStore

__version__ = "0.1.0"

__all__ = list(_schema_names) + [
    "DistributionError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "CommitTimeoutError",
    "WaterfallArithmeticError",
    "TierSet",
    "TierSetLoader",
    "TierStateStore",
    "WaterfallCalculator",
    "InvestorAllocator",
    "DistributionLifecycle",
    "reconcile",
    "resolve_weights",
    "summarize_tiers",
    "build_default_tiers",
    "build_tiers_from_splits",
    "InMemoryStore",
]
