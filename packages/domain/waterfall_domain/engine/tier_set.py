"""Validated, ordered tier configuration for one structure.

A TierSet is only ever built from a configuration that passed every check;
there is no such thing as a partially valid tier set. Checks:

1. Each tier's LP and GP shares sum to 100 (within ``share_tolerance``)
2. Tier numbers form the contiguous sequence 1..N with no duplicates
3. At most one tier is unbounded, and it is the highest-numbered active tier
4. Bounded tiers have a threshold; the Residual tier does not
5. Every tier is active, unless the caller explicitly excludes inactive tiers
"""

import logging
from decimal import Decimal
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

from ..errors import NotFoundError, ValidationError
from ..repositories.base import StructureRepository
from ..schemas import Tier, TierOverride, TierSummaryRow, WaterfallSettings, WaterfallSummary
from .money import to_units

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


# =============================================================================
# Validation
# =============================================================================

def validate_tiers(
    structure_id: str,
    tiers: Sequence[Tier],
    settings: WaterfallSettings,
    exclude_inactive: bool = False,
) -> List[str]:
    """Check a tier configuration and return every violation found.

    Args:
        structure_id: Structure the tiers must belong to
        tiers: Tier definitions in any order
        settings: Tolerances and currency quantum
        exclude_inactive: Allow inactive tiers (they are skipped in evaluation)

    Returns:
        List of human-readable violations (empty if the configuration is valid)
    """
    errors: List[str] = []

    if not tiers:
        return ["no tiers configured"]

    for tier in tiers:
        label = f"tier {tier.tier_number}"
        if tier.structure_id != structure_id:
            errors.append(f"{label} belongs to structure {tier.structure_id}")
        if abs(tier.share_total() - HUNDRED) > settings.share_tolerance:
            errors.append(
                f"{label} LP and GP shares sum to {tier.share_total()}, expected 100"
            )
        if tier.tier_type == "Residual" and tier.threshold_amount is not None:
            errors.append(f"{label} is Residual and cannot have a threshold amount")
        if tier.tier_type != "Residual" and tier.threshold_amount is None:
            errors.append(f"{label} is {tier.tier_type} and requires a threshold amount")
        if tier.threshold_amount is not None:
            try:
                to_units(tier.threshold_amount, settings.currency_quantum, f"{label} threshold")
            except ValidationError as exc:
                errors.append(str(exc))
        if not tier.is_active and not exclude_inactive:
            errors.append(f"{label} is inactive and was not explicitly excluded")

    # Contiguity over every configured tier, active or not
    numbers = [tier.tier_number for tier in tiers]
    duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
    if duplicates:
        errors.append(f"duplicate tier numbers: {duplicates}")
    missing = sorted(set(range(1, max(numbers) + 1)) - set(numbers))
    if missing:
        errors.append(f"tier numbers must be contiguous from 1, missing: {missing}")

    unbounded = [tier for tier in tiers if tier.is_unbounded]
    if len(unbounded) > 1:
        errors.append(
            f"at most one unbounded tier allowed, found tiers {[t.tier_number for t in unbounded]}"
        )

    active = [tier for tier in tiers if tier.is_active]
    if active:
        last_active = max(tier.tier_number for tier in active)
        for tier in unbounded:
            if tier.is_active and tier.tier_number != last_active:
                errors.append(
                    f"unbounded tier {tier.tier_number} must be the last active tier "
                    f"(last is {last_active})"
                )
    else:
        errors.append("no active tiers")

    if settings.require_terminal_residual and not any(t.is_active for t in unbounded):
        errors.append("missing an active unbounded terminal tier")

    return errors


def apply_overrides(
    tiers: Sequence[Tier],
    overrides: Optional[Mapping[int, TierOverride]],
) -> List[Tier]:
    """Apply per-run overrides to stored tiers.

    Raises:
        ValidationError: If an override names a tier number that does not exist,
            or is keyed under a different tier number than it names
    """
    if not overrides:
        return list(tiers)

    by_number = {tier.tier_number: tier for tier in tiers}
    errors = [f"no tier {n} to override" for n in sorted(overrides) if n not in by_number]
    errors += [
        f"override keyed as tier {n} names tier {override.tier_number}"
        for n, override in sorted(overrides.items())
        if override.tier_number != n
    ]
    if errors:
        raise ValidationError.from_errors("invalid tier overrides", errors)

    result = []
    for tier in tiers:
        override = overrides.get(tier.tier_number)
        result.append(tier.with_override(override) if override else tier)
    return result


# =============================================================================
# TierSet
# =============================================================================

class TierSet:
    """Immutable, validated tier configuration of a structure.

    Iterating a TierSet yields the *active* tiers in ascending tier number,
    which is the order cash flows through them.

    Example:
        tier_set = TierSet.from_tiers("fund_i", tiers, settings)
        for tier in tier_set:
            ...
    """

    def __init__(self, structure_id: str, tiers: Sequence[Tier]):
        # Use from_tiers() unless the tiers were already validated
        self.structure_id = structure_id
        self._tiers: Tuple[Tier, ...] = tuple(sorted(tiers, key=lambda t: t.tier_number))

    @classmethod
    def from_tiers(
        cls,
        structure_id: str,
        tiers: Sequence[Tier],
        settings: Optional[WaterfallSettings] = None,
        exclude_inactive: bool = False,
    ) -> "TierSet":
        """Validate tiers and build a TierSet.

        Raises:
            ValidationError: Listing every violation if the configuration is invalid
        """
        settings = settings or WaterfallSettings()
        errors = validate_tiers(structure_id, tiers, settings, exclude_inactive)
        if errors:
            raise ValidationError.from_errors(
                f"invalid tier configuration for structure {structure_id}", errors
            )
        return cls(structure_id, tiers)

    @property
    def tiers(self) -> Tuple[Tier, ...]:
        """All tiers, including inactive ones."""
        return self._tiers

    @property
    def active_tiers(self) -> Tuple[Tier, ...]:
        return tuple(tier for tier in self._tiers if tier.is_active)

    @property
    def unbounded_tier(self) -> Optional[Tier]:
        return next((t for t in self.active_tiers if t.is_unbounded), None)

    @property
    def bounded_capacity(self) -> Decimal:
        """Total capacity of active bounded tiers (before cumulative state)."""
        return sum(
            (t.threshold_amount for t in self.active_tiers if not t.is_unbounded),
            Decimal("0"),
        )

    def get(self, tier_number: int) -> Tier:
        for tier in self._tiers:
            if tier.tier_number == tier_number:
                return tier
        raise NotFoundError(f"structure {self.structure_id} has no tier {tier_number}")

    def __iter__(self) -> Iterator[Tier]:
        return iter(self.active_tiers)

    def __len__(self) -> int:
        return len(self.active_tiers)

    def __repr__(self) -> str:
        numbers = [t.tier_number for t in self.active_tiers]
        return f"TierSet(structure_id={self.structure_id!r}, active={numbers})"


# =============================================================================
# Loader
# =============================================================================

class TierSetLoader:
    """Loads and validates a structure's tiers from the structure repository."""

    def __init__(
        self,
        structures: StructureRepository,
        settings: Optional[WaterfallSettings] = None,
    ):
        self.structures = structures
        self.settings = settings or WaterfallSettings()

    def load(
        self,
        structure_id: str,
        tier_overrides: Optional[Mapping[int, TierOverride]] = None,
        exclude_inactive: bool = False,
    ) -> TierSet:
        """Load a structure's tier set, applying optional per-run overrides.

        Args:
            structure_id: Structure whose tiers to load
            tier_overrides: Tier number -> override for this run only
            exclude_inactive: Skip inactive tiers instead of rejecting them

        Returns:
            Validated TierSet

        Raises:
            NotFoundError: If the structure has no tiers
            ValidationError: If the (overridden) configuration is invalid
        """
        tiers = self.structures.get_tiers(structure_id)
        if not tiers:
            raise NotFoundError(f"no waterfall tiers configured for structure {structure_id}")

        tiers = apply_overrides(tiers, tier_overrides)
        tier_set = TierSet.from_tiers(structure_id, tiers, self.settings, exclude_inactive)
        logger.debug("Loaded %r", tier_set)
        return tier_set


# =============================================================================
# Summary
# =============================================================================

def summarize_tiers(structure_id: str, tiers: Sequence[Tier]) -> WaterfallSummary:
    """Summarize a tier configuration without validating it.

    Useful for configuration screens, where an incomplete waterfall still
    needs to be shown.
    """
    ordered = sorted(tiers, key=lambda t: t.tier_number)
    active = [t for t in ordered if t.is_active]
    rows = [
        TierSummaryRow(
            tier_number=t.tier_number,
            tier_name=t.display_name,
            tier_type=t.tier_type,
            lp_share_percent=t.lp_share_percent,
            gp_share_percent=t.gp_share_percent,
            threshold_amount=t.threshold_amount,
            is_active=t.is_active,
        )
        for t in ordered
    ]
    return WaterfallSummary(
        structure_id=structure_id,
        total_tiers=len(ordered),
        active_tiers=len(active),
        bounded_capacity=sum(
            (t.threshold_amount for t in active if t.threshold_amount is not None),
            Decimal("0"),
        ),
        has_residual=bool(active) and active[-1].is_unbounded,
        tiers=rows,
    )
