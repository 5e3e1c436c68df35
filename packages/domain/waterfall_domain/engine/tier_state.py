"""Cumulative tier state for one structure during one waterfall run.

The store reads each tier's amount-to-date once, lets the calculator stage
increments in memory, and writes them back only on commit(). Every write is a
compare-and-set against the amount that was read, so two runs against the
same structure cannot both consume the same capacity.
"""

import logging
from decimal import Decimal
from typing import Dict

from ..errors import ValidationError
from ..repositories.base import TierStateRepository

logger = logging.getLogger(__name__)


class TierStateStore:
    """Read-through view of TierCumulativeState with staged increments.

    Example:
        state = TierStateStore(repository, "fund_i")
        state.allocated_to_date(1)     # -> Decimal("80000.00")
        state.stage(1, Decimal("20000.00"))
        state.allocated_to_date(1)     # -> Decimal("100000.00") (staged)
        state.commit()                 # persists the increment
    """

    def __init__(self, repository: TierStateRepository, structure_id: str):
        self.repository = repository
        self.structure_id = structure_id
        self._prior: Dict[int, Decimal] = {}
        self._staged: Dict[int, Decimal] = {}
        self._committed = False

    def prior(self, tier_number: int) -> Decimal:
        """Amount the tier had absorbed before this run (read once, then cached)."""
        if tier_number not in self._prior:
            self._prior[tier_number] = self.repository.get(self.structure_id, tier_number)
        return self._prior[tier_number]

    def allocated_to_date(self, tier_number: int) -> Decimal:
        """Prior amount plus anything staged by this run."""
        return self.prior(tier_number) + self._staged.get(tier_number, Decimal("0"))

    def stage(self, tier_number: int, amount: Decimal) -> None:
        if amount < 0:
            raise ValidationError(f"cannot stage negative amount {amount} for tier {tier_number}")
        if self._committed:
            raise ValidationError("tier state already committed")
        self.prior(tier_number)
        self._staged[tier_number] = self._staged.get(tier_number, Decimal("0")) + amount

    def pending(self) -> Dict[int, Decimal]:
        """Staged increments by tier number."""
        return dict(self._staged)

    def discard(self) -> None:
        self._staged.clear()

    def commit(self) -> Dict[int, Decimal]:
        """Write staged increments through the repository.

        Must run inside the caller's transaction so a later failure rolls the
        increments back with everything else.

        Returns:
            New cumulative amount per incremented tier

        Raises:
            ConflictError: If another writer changed a tier since it was read
        """
        if self._committed:
            raise ValidationError("tier state already committed")
        totals = {}
        for tier_number in sorted(self._staged):
            amount = self._staged[tier_number]
            if amount == 0:
                continue
            totals[tier_number] = self.repository.increment(
                self.structure_id,
                tier_number,
                amount,
                expected=self._prior[tier_number],
            )
            logger.debug(
                "Tier %s of structure %s now at %s",
                tier_number, self.structure_id, totals[tier_number],
            )
        self._committed = True
        return totals
