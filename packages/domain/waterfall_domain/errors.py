"""Error taxonomy for the distribution waterfall engine.

Every error raised by the engine derives from DistributionError so callers can
catch the whole family at the transport boundary. The concrete classes also
derive from the closest built-in exception so generic handlers keep working:

- ValidationError (ValueError): malformed tier configuration, overrides,
  investor weights or amounts. Raised before any mutation.
- NotFoundError (LookupError): missing distribution, or a structure with no tiers.
- ConflictError: re-application of an applied waterfall, a lost concurrent
  write, or an illegal status transition.
- WaterfallArithmeticError (ArithmeticError): cash left over after the last
  tier, or an allocation that does not reconcile to the penny.
"""

from typing import Iterable, List, Optional


class DistributionError(Exception):
    """Base class for all waterfall engine errors."""
    pass


class ValidationError(DistributionError, ValueError):
    """Raised when tiers, overrides, weights or amounts are malformed.

    Collects every violation found so a caller can fix the configuration in
    one pass instead of discovering problems one at a time.
    """

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        self.errors: List[str] = list(errors) if errors is not None else [message]
        super().__init__(message)

    @classmethod
    def from_errors(cls, context: str, errors: Iterable[str]) -> "ValidationError":
        errors = list(errors)
        return cls(f"{context}: " + "; ".join(errors), errors)


class NotFoundError(DistributionError, LookupError):
    """Raised when a referenced structure, distribution or tier does not exist."""
    pass


class ConflictError(DistributionError):
    """Raised when a write loses to another writer or repeats a single-shot operation."""
    pass


class InvalidTransitionError(ConflictError):
    """Raised when a distribution is asked to move to a status it cannot reach."""

    def __init__(self, distribution_id: str, current: str, target: str):
        self.distribution_id = distribution_id
        self.current = current
        self.target = target
        super().__init__(
            f"distribution {distribution_id} cannot move from {current} to {target}"
        )


class CommitTimeoutError(ConflictError):
    """Raised when the transaction boundary could not be entered in time."""
    pass


class WaterfallArithmeticError(DistributionError, ArithmeticError):
    """Raised when cash cannot be placed or an allocation fails to reconcile."""
    pass
