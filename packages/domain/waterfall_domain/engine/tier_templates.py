"""Builders for common tier configurations.

build_default_tiers produces the standard four-tier European waterfall from a
fund's contributed capital, hurdle rate and carried interest.
build_tiers_from_splits turns a compact list of GP splits (up to four) into
full Tier records.

Both return tiers that still have to pass TierSet validation before use.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from ..errors import ValidationError
from ..schemas import Tier, TierSplit, WaterfallSettings
from .money import Number, as_decimal

logger = logging.getLogger(__name__)

MAX_SPLITS = 4

HUNDRED = Decimal("100")

# Position-based type for split lists whose tiers all carry thresholds
_BOUNDED_SEQUENCE = ("ReturnOfCapital", "PreferredReturn", "Catchup")


# =============================================================================
# Default four-tier waterfall
# =============================================================================

def build_default_tiers(
    structure_id: str,
    contributed_capital: Number,
    hurdle_rate: Number = Decimal("8"),
    carried_interest: Number = Decimal("20"),
    settings: Optional[WaterfallSettings] = None,
) -> List[Tier]:
    """Build the standard ROC / Preferred / Catch-up / Residual waterfall.

    Thresholds:
        Tier 1 (ReturnOfCapital):  contributed capital, 100% LP
        Tier 2 (PreferredReturn):  capital * hurdle / 100, 100% LP
        Tier 3 (Catchup):          pref * carry / (100 - carry), 100% GP
        Tier 4 (Residual):         unbounded, (100 - carry)% LP / carry% GP

    The catch-up threshold is what brings the GP to ``carry`` percent of all
    profit (preferred return + catch-up) once the tier is full.

    Args:
        structure_id: Structure the tiers belong to
        contributed_capital: Total LP capital contributed
        hurdle_rate: Preferred return in percent (simple, not compounded)
        carried_interest: GP carry in percent, 0 <= carry < 100

    Returns:
        Four tiers numbered 1..4

    Raises:
        ValidationError: If any input is out of range

    Example:
        tiers = build_default_tiers("fund_i", Decimal("1000000.00"))
        # thresholds: 1,000,000.00 / 80,000.00 / 20,000.00 / None
    """
    settings = settings or WaterfallSettings()
    quantum = settings.currency_quantum
    rounding = settings.decimal_rounding

    capital = as_decimal(contributed_capital)
    hurdle = as_decimal(hurdle_rate)
    carry = as_decimal(carried_interest)

    errors = []
    if capital <= 0:
        errors.append(f"contributed capital must be positive, got {capital}")
    if hurdle < 0:
        errors.append(f"hurdle rate must not be negative, got {hurdle}")
    if not Decimal("0") <= carry < HUNDRED:
        errors.append(f"carried interest must be in [0, 100), got {carry}")
    if errors:
        raise ValidationError.from_errors("invalid default waterfall terms", errors)

    capital = capital.quantize(quantum, rounding=rounding)
    preferred = (capital * hurdle / HUNDRED).quantize(quantum, rounding=rounding)
    catchup = (preferred * carry / (HUNDRED - carry)).quantize(quantum, rounding=rounding)

    tiers = [
        Tier(
            structure_id=structure_id,
            tier_number=1,
            tier_type="ReturnOfCapital",
            tier_name="Return of Capital",
            lp_share_percent=HUNDRED,
            gp_share_percent=Decimal("0"),
            threshold_amount=capital,
        ),
        Tier(
            structure_id=structure_id,
            tier_number=2,
            tier_type="PreferredReturn",
            tier_name="Preferred Return",
            lp_share_percent=HUNDRED,
            gp_share_percent=Decimal("0"),
            threshold_amount=preferred,
            threshold_irr=hurdle,
            description=f"Preferred Return: {hurdle}%",
        ),
        Tier(
            structure_id=structure_id,
            tier_number=3,
            tier_type="Catchup",
            tier_name="GP Catch-up",
            lp_share_percent=Decimal("0"),
            gp_share_percent=HUNDRED,
            threshold_amount=catchup,
        ),
        Tier(
            structure_id=structure_id,
            tier_number=4,
            tier_type="Residual",
            tier_name="Carried Interest",
            lp_share_percent=HUNDRED - carry,
            gp_share_percent=carry,
            description=f"Carried Interest: {carry}%",
        ),
    ]

    logger.info(
        "Built default waterfall for %s: capital=%s pref=%s catchup=%s carry=%s%%",
        structure_id, capital, preferred, catchup, carry,
    )
    return tiers


# =============================================================================
# Tiers from GP splits
# =============================================================================

def _describe(split: TierSplit) -> str:
    parts = []
    if split.management_fee is not None:
        parts.append(f"Management Fee: {split.management_fee}%")
    if split.preferred_return is not None:
        parts.append(f"Preferred Return: {split.preferred_return}%")
    return " | ".join(parts)


def _infer_type(split: TierSplit, position: int) -> str:
    if split.tier_type is not None:
        return split.tier_type
    if split.threshold_amount is None:
        return "Residual"
    return _BOUNDED_SEQUENCE[min(position, len(_BOUNDED_SEQUENCE) - 1)]


def build_tiers_from_splits(structure_id: str, splits: Sequence[TierSplit]) -> List[Tier]:
    """Create tiers 1..N from GP splits, where LP share = 100 - GP split.

    A split without a threshold becomes a Residual tier unless a type is
    given; bounded splits are typed by position (ROC, Preferred, Catch-up).

    Raises:
        ValidationError: If no splits, more than four, or a split is malformed
    """
    if not splits:
        raise ValidationError("at least one tier split is required")
    if len(splits) > MAX_SPLITS:
        raise ValidationError(f"at most {MAX_SPLITS} tier splits are supported, got {len(splits)}")

    errors = []
    tiers: List[Tier] = []
    for position, split in enumerate(splits):
        tier_type = _infer_type(split, position)
        if tier_type == "Residual" and split.threshold_amount is not None:
            errors.append(f"split {split.name!r}: a Residual tier cannot have a threshold")
            continue
        if tier_type != "Residual" and split.threshold_amount is None:
            errors.append(f"split {split.name!r}: a {tier_type} tier needs a threshold")
            continue

        tiers.append(Tier(
            structure_id=structure_id,
            tier_number=position + 1,
            tier_type=tier_type,
            tier_name=split.name,
            lp_share_percent=HUNDRED - split.gp_split,
            gp_share_percent=split.gp_split,
            threshold_amount=split.threshold_amount,
            threshold_irr=split.irr_hurdle,
            description=_describe(split),
            is_active=split.is_active,
        ))

    if errors:
        raise ValidationError.from_errors("invalid tier splits", errors)

    logger.info("Built %d tiers for %s from splits", len(tiers), structure_id)
    return tiers
