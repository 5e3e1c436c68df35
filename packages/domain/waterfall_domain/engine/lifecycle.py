"""Distribution lifecycle: the apply-once state machine around the waterfall.

    Draft ──apply_waterfall──▶ WaterfallApplied ──mark_paid──▶ Paid

apply_waterfall runs entirely inside one repository transaction:

1. Read the distribution and refuse anything but an unapplied Draft
2. Load and validate tiers (with per-run overrides) and investor weights
3. Run the calculator against the structure's cumulative tier state
4. Allocate each tier's LP pool to investors; book the GP pool to the GP line
5. Reconcile the whole result to the penny
6. Commit tier-state increments, allocation lines and the distribution status

A failure at any step raises before or during the transaction and leaves every
persisted record as it was.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from ..errors import (
    ConflictError,
    DistributionError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..repositories.base import (
    AllocationRepository,
    DistributionRepository,
    StructureRepository,
    TierStateRepository,
    UnitOfWork,
)
from ..schemas import (
    AllocationLine,
    Distribution,
    InvestorDistributionTotal,
    StructureDistributionSummary,
    TierOverride,
    TierResult,
    WaterfallResult,
    WaterfallSettings,
)
from .allocator import InvestorAllocator, resolve_weights
from .calculator import WaterfallCalculator
from .money import Number, require_money
from .reconciliation import reconcile
from .tier_set import TierSetLoader
from .tier_state import TierStateStore

logger = logging.getLogger(__name__)


class DistributionLifecycle:
    """Creates distributions and drives them through their status transitions.

    All collaborators are injected; the lifecycle keeps no state between calls.

    Example:
        store = InMemoryStore()
        lifecycle = DistributionLifecycle.from_store(store)

        distribution = lifecycle.create_distribution("fund_i", Decimal("250000.00"))
        result = lifecycle.apply_waterfall(distribution.id)
        lifecycle.mark_paid(distribution.id)
    """

    def __init__(
        self,
        structures: StructureRepository,
        tier_state: TierStateRepository,
        distributions: DistributionRepository,
        allocations: AllocationRepository,
        unit_of_work: UnitOfWork,
        settings: Optional[WaterfallSettings] = None,
    ):
        self.settings = settings or WaterfallSettings()
        self._structures = structures
        self._tier_state = tier_state
        self._distributions = distributions
        self._allocations = allocations
        self._unit_of_work = unit_of_work

        self._loader = TierSetLoader(structures, self.settings)
        self._calculator = WaterfallCalculator(self.settings)
        self._allocator = InvestorAllocator(self.settings)

    @classmethod
    def from_store(cls, store, settings: Optional[WaterfallSettings] = None) -> "DistributionLifecycle":
        """Wire a lifecycle to an InMemoryStore (or any store exposing the same attributes)."""
        return cls(
            structures=store.structures,
            tier_state=store.tier_state,
            distributions=store.distributions,
            allocations=store.allocations,
            unit_of_work=store,
            settings=settings,
        )

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def create_distribution(
        self,
        structure_id: str,
        total_amount: Number,
        distribution_id: Optional[str] = None,
        distribution_number: Optional[str] = None,
        distribution_date: Optional[date] = None,
        currency: str = "USD",
        notes: Optional[str] = None,
    ) -> Distribution:
        """Record a new Draft distribution.

        Raises:
            ValidationError: If the amount is not positive whole currency units
            ConflictError: If ``distribution_id`` is already taken
        """
        amount = require_money(total_amount, self.settings.currency_quantum, "distribution amount")
        if amount <= 0:
            raise ValidationError(f"distribution amount must be positive, got {amount}")

        distribution = Distribution(
            id=distribution_id or str(uuid.uuid4()),
            structure_id=structure_id,
            distribution_number=distribution_number,
            total_amount=amount,
            currency=currency,
            distribution_date=distribution_date,
            notes=notes,
        )
        with self._unit_of_work.transaction(timeout=self.settings.commit_timeout_seconds):
            saved = self._distributions.save(distribution, expected_version=0)
        logger.info(
            "Created distribution %s for structure %s (%s %s)",
            saved.id, structure_id, amount, currency,
        )
        return saved

    # ------------------------------------------------------------------ #
    # Waterfall
    # ------------------------------------------------------------------ #

    def preview_waterfall(
        self,
        distribution_id: str,
        tier_overrides: Optional[Mapping[int, TierOverride]] = None,
        exclude_inactive: bool = False,
    ) -> WaterfallResult:
        """Compute what apply_waterfall would produce, without persisting anything."""
        with self._unit_of_work.transaction(timeout=self.settings.commit_timeout_seconds):
            distribution = self._require(distribution_id)
            self._ensure_can_apply(distribution)
            tier_state = TierStateStore(self._tier_state, distribution.structure_id)
            return self._compute(distribution, tier_state, tier_overrides, exclude_inactive)

    def apply_waterfall(
        self,
        distribution_id: str,
        tier_overrides: Optional[Mapping[int, TierOverride]] = None,
        exclude_inactive: bool = False,
    ) -> WaterfallResult:
        """Apply the waterfall to a Draft distribution, exactly once.

        Args:
            distribution_id: Distribution to apply
            tier_overrides: Tier number -> override for this run only
            exclude_inactive: Skip inactive tiers instead of rejecting the configuration

        Returns:
            The committed, reconciled WaterfallResult

        Raises:
            NotFoundError: Unknown distribution, or structure without tiers
            ConflictError: Waterfall already applied, or a concurrent writer won
            InvalidTransitionError: Distribution is not in Draft
            ValidationError: Tier configuration, overrides or weights are invalid
            WaterfallArithmeticError: Cash left over, or the result fails to reconcile
        """
        try:
            with self._unit_of_work.transaction(timeout=self.settings.commit_timeout_seconds):
                distribution = self._require(distribution_id)
                self._ensure_can_apply(distribution)

                tier_state = TierStateStore(self._tier_state, distribution.structure_id)
                result = self._compute(distribution, tier_state, tier_overrides, exclude_inactive)

                tier_state.commit()
                self._allocations.save_many(result.allocations)
                self._distributions.save(
                    distribution.model_copy(update={
                        "status": "WaterfallApplied",
                        "waterfall_applied": True,
                        "tier_amounts": result.tier_amounts(),
                        "lp_total_amount": result.lp_total,
                        "gp_total_amount": result.gp_total,
                        "applied_at": datetime.now(timezone.utc),
                    }),
                    expected_version=distribution.version,
                )
        except DistributionError as exc:
            logger.warning("Waterfall not applied to distribution %s: %s", distribution_id, exc)
            raise

        logger.info(
            "Applied waterfall to distribution %s: %d tiers, %d allocation lines, lp=%s gp=%s",
            distribution_id, len(result.tier_breakdown), len(result.allocations),
            result.lp_total, result.gp_total,
        )
        return result

    def mark_paid(self, distribution_id: str) -> Distribution:
        """Move an applied distribution to Paid.

        Raises:
            NotFoundError: Unknown distribution
            InvalidTransitionError: Distribution is not in WaterfallApplied
        """
        with self._unit_of_work.transaction(timeout=self.settings.commit_timeout_seconds):
            distribution = self._require(distribution_id)
            if distribution.status != "WaterfallApplied":
                raise InvalidTransitionError(distribution_id, distribution.status, "Paid")
            paid = self._distributions.save(
                distribution.model_copy(update={
                    "status": "Paid",
                    "paid_at": datetime.now(timezone.utc),
                }),
                expected_version=distribution.version,
            )
        logger.info("Distribution %s marked paid", distribution_id)
        return paid

    # ------------------------------------------------------------------ #
    # Reporting
    # ------------------------------------------------------------------ #

    def get_allocations(self, distribution_id: str) -> List[AllocationLine]:
        self._require(distribution_id)
        return self._allocations.find_by_distribution(distribution_id)

    def summarize_structure(self, structure_id: str) -> StructureDistributionSummary:
        """Roll up every distribution of a structure."""
        distributions = self._distributions.find_by_structure(structure_id)
        summary = StructureDistributionSummary(structure_id=structure_id)

        tier_totals: Dict[int, Decimal] = {}
        for distribution in distributions:
            summary.distribution_count += 1
            if distribution.status == "Draft":
                summary.draft_count += 1
                continue
            if distribution.status == "Paid":
                summary.paid_count += 1
            else:
                summary.applied_count += 1
            summary.total_distributed += distribution.total_amount
            summary.lp_total_amount += distribution.lp_total_amount
            summary.gp_total_amount += distribution.gp_total_amount
            for tier_number, amount in distribution.tier_amounts.items():
                tier_totals[tier_number] = tier_totals.get(tier_number, Decimal("0")) + amount

        summary.tier_totals = dict(sorted(tier_totals.items()))
        return summary

    def investor_total(self, structure_id: str, investor_id: str) -> InvestorDistributionTotal:
        """Total an investor has been allocated across a structure's applied distributions.

        Draft distributions are ignored. The GP pseudo-investor id totals the GP side.
        """
        total = InvestorDistributionTotal(structure_id=structure_id, investor_id=investor_id)
        for distribution in self._distributions.find_by_structure(structure_id):
            if not distribution.waterfall_applied:
                continue
            lines = [
                line for line in self._allocations.find_by_distribution(distribution.id)
                if line.investor_id == investor_id
            ]
            if not lines:
                continue
            total.distribution_count += 1
            total.total_amount += sum((line.amount for line in lines), Decimal("0"))
        return total

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _require(self, distribution_id: str) -> Distribution:
        distribution = self._distributions.get(distribution_id)
        if distribution is None:
            raise NotFoundError(f"distribution {distribution_id} not found")
        return distribution

    def _ensure_can_apply(self, distribution: Distribution) -> None:
        if distribution.waterfall_applied:
            raise ConflictError("waterfall already applied")
        if distribution.status != "Draft":
            raise InvalidTransitionError(distribution.id, distribution.status, "WaterfallApplied")

    def _compute(
        self,
        distribution: Distribution,
        tier_state: TierStateStore,
        tier_overrides: Optional[Mapping[int, TierOverride]],
        exclude_inactive: bool,
    ) -> WaterfallResult:
        structure_id = distribution.structure_id

        # Validate every input before touching tier state
        tier_set = self._loader.load(structure_id, tier_overrides, exclude_inactive)
        weights = resolve_weights(
            self._structures.get_investor_weights(structure_id),
            self.settings.weight_tolerance,
            structure_id=structure_id,
            gp_investor_id=self.settings.gp_investor_id,
        )

        tier_breakdown = self._calculator.apply(distribution.total_amount, tier_set, tier_state)

        allocations: List[AllocationLine] = []
        for tier_result in tier_breakdown:
            allocations.extend(self._allocate_tier(distribution.id, tier_result, weights))

        result = WaterfallResult(
            distribution_id=distribution.id,
            structure_id=structure_id,
            total_amount=distribution.total_amount,
            tier_breakdown=tier_breakdown,
            allocations=allocations,
        )
        reconcile(result)
        return result

    def _allocate_tier(
        self,
        distribution_id: str,
        tier_result: TierResult,
        weights: Mapping[str, Decimal],
    ) -> List[AllocationLine]:
        lines: List[AllocationLine] = []

        if tier_result.lp_pool > 0:
            for share in self._allocator.allocate(tier_result.lp_pool, weights):
                lines.append(AllocationLine(
                    distribution_id=distribution_id,
                    tier_number=tier_result.tier_number,
                    investor_id=share.investor_id,
                    party="LP",
                    lp_amount=share.amount,
                    ownership_percent=share.ownership_percent,
                ))

        if tier_result.gp_pool > 0:
            lines.append(AllocationLine(
                distribution_id=distribution_id,
                tier_number=tier_result.tier_number,
                investor_id=self.settings.gp_investor_id,
                party="GP",
                gp_amount=tier_result.gp_pool,
            ))

        return lines
