"""Investor pro-rata allocation with exact-sum rounding.

Uses the largest-remainder method in integer minimal currency units:

1. raw_i  = pool_units * weight_i / total_weight   (exact rational)
2. base_i = floor(raw_i)
3. leftover = pool_units - sum(base_i)             (always < number of investors)
4. Order investors by fractional part (raw_i - base_i) descending, ties by
   investor id ascending, and give one unit to each of the first ``leftover``.

The allocations always sum to the pool, each is within one unit of the exact
share, and identical inputs give identical output.
"""

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Dict, List, Mapping, Optional, Sequence

from ..errors import ValidationError, WaterfallArithmeticError
from ..schemas import InvestorPosition, WaterfallSettings
from .money import Number, from_units, to_units

PERCENT_PLACES = Decimal("0.000001")


@dataclass(frozen=True)
class InvestorShare:
    investor_id: str
    amount: Decimal
    ownership_percent: Decimal


def resolve_weights(
    positions: Sequence[InvestorPosition],
    tolerance: Decimal = Decimal("0.01"),
    structure_id: Optional[str] = None,
    gp_investor_id: Optional[str] = None,
) -> Dict[str, Decimal]:
    """Validate investor positions and return active weights by investor id.

    Percent-basis weights must sum to 100 within ``tolerance``. Contribution
    weights only need a positive total; they are normalized when allocating.
    When given, every position must belong to ``structure_id`` and no LP may
    use ``gp_investor_id``, which carries the GP side of each tier.

    Raises:
        ValidationError: Listing every problem with the positions
    """
    active = [p for p in positions if p.is_active]
    if not active:
        raise ValidationError("no active investor positions to allocate to")

    errors = []
    bases = sorted({p.weight_basis for p in active})
    if len(bases) > 1:
        errors.append(f"positions mix weight bases {bases}")

    ids = [p.investor_id for p in active]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        errors.append(f"duplicate investor positions: {duplicates}")

    if structure_id is not None:
        foreign = sorted({p.investor_id for p in active if p.structure_id != structure_id})
        if foreign:
            errors.append(f"positions {foreign} do not belong to structure {structure_id}")

    if gp_investor_id is not None and gp_investor_id in ids:
        errors.append(f"investor id {gp_investor_id!r} is reserved for the GP line")

    total = sum((p.weight for p in active), Decimal("0"))
    if total <= 0:
        errors.append("investor weights sum to zero")
    elif bases == ["percent"] and abs(total - Decimal("100")) > tolerance:
        errors.append(f"ownership percentages sum to {total}, expected 100")

    if errors:
        raise ValidationError.from_errors("invalid investor weights", errors)

    return {p.investor_id: p.weight for p in sorted(active, key=lambda p: p.investor_id)}


def ownership_percentages(weights: Mapping[str, Decimal]) -> Dict[str, Decimal]:
    """Normalize weights to percentages (display precision, not used for money)."""
    total = sum(weights.values(), Decimal("0"))
    return {
        investor_id: (weight * Decimal("100") / total).quantize(PERCENT_PLACES)
        for investor_id, weight in weights.items()
    }


class InvestorAllocator:
    """Allocates an LP pool across investors by weight."""

    def __init__(self, settings: Optional[WaterfallSettings] = None):
        self.settings = settings or WaterfallSettings()

    def allocate(self, lp_pool: Number, investor_weights: Mapping[str, Decimal]) -> List[InvestorShare]:
        """Split ``lp_pool`` across investors in proportion to their weights.

        Args:
            lp_pool: Amount to allocate (whole currency units)
            investor_weights: investor id -> weight (percentages or contributions)

        Returns:
            One InvestorShare per investor, ordered by investor id

        Raises:
            ValidationError: If the pool or weights are malformed
            WaterfallArithmeticError: If the shares fail to sum to the pool
        """
        quantum = self.settings.currency_quantum
        pool_units = to_units(lp_pool, quantum, "LP pool")
        if pool_units < 0:
            raise ValidationError(f"LP pool must not be negative, got {lp_pool}")
        if not investor_weights:
            raise ValidationError("no investor weights to allocate against")
        if any(w < 0 for w in investor_weights.values()):
            raise ValidationError("investor weights must not be negative")

        total_weight = sum((Fraction(w) for w in investor_weights.values()), Fraction(0))
        if total_weight == 0:
            raise ValidationError("investor weights sum to zero")

        ordered_ids = sorted(investor_weights)
        base: Dict[str, int] = {}
        fractional: Dict[str, Fraction] = {}
        for investor_id in ordered_ids:
            raw = Fraction(pool_units) * Fraction(investor_weights[investor_id]) / total_weight
            floor = raw.numerator // raw.denominator
            base[investor_id] = floor
            fractional[investor_id] = raw - floor

        leftover = pool_units - sum(base.values())
        eligible = [i for i in ordered_ids if investor_weights[i] > 0]
        if leftover < 0 or leftover > len(eligible):
            raise WaterfallArithmeticError(
                f"largest-remainder leftover {leftover} out of range for {len(eligible)} investors"
            )

        # sort is stable and ordered_ids is ascending, so ties keep id order
        by_remainder = sorted(eligible, key=lambda i: fractional[i], reverse=True)
        for investor_id in by_remainder[:leftover]:
            base[investor_id] += 1

        if sum(base.values()) != pool_units:
            raise WaterfallArithmeticError(
                f"allocation sums to {sum(base.values())} units, expected {pool_units}"
            )

        percentages = ownership_percentages(investor_weights)
        return [
            InvestorShare(
                investor_id=investor_id,
                amount=from_units(base[investor_id], quantum),
                ownership_percent=percentages[investor_id],
            )
            for investor_id in ordered_ids
        ]
