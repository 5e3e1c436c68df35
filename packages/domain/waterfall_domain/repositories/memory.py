"""In-memory record store implementing every repository contract.

Used by the test suite and by callers embedding the engine without a
database. Transactions are serialized with one re-entrant lock (serializable
isolation); the outermost transaction snapshots every table on entry and
restores the snapshot if the block raises.

Usage:
    store = InMemoryStore()
    store.structures.set_tiers("fund_i", tiers)
    store.structures.set_positions("fund_i", positions)

    lifecycle = DistributionLifecycle.from_store(store)
"""

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..errors import CommitTimeoutError, ConflictError, ValidationError
from ..schemas import (
    AllocationLine,
    Distribution,
    InvestorPosition,
    Tier,
    TierCumulativeState,
)
from .base import (
    AllocationRepository,
    DistributionRepository,
    StructureRepository,
    TierStateRepository,
    UnitOfWork,
)

logger = logging.getLogger(__name__)


class _Tables:
    """Raw storage shared by the repositories of one store."""

    def __init__(self):
        self.tiers: Dict[str, List[Tier]] = {}
        self.positions: Dict[str, List[InvestorPosition]] = {}
        self.tier_state: Dict[Tuple[str, int], TierCumulativeState] = {}
        self.distributions: Dict[str, Distribution] = {}
        self.allocations: Dict[str, List[AllocationLine]] = {}


# =============================================================================
# Repositories
# =============================================================================

class InMemoryStructureRepository(StructureRepository):
    def __init__(self, store: "InMemoryStore"):
        self._store = store

    def set_tiers(self, structure_id: str, tiers: Sequence[Tier]) -> None:
        """Replace the structure's tier configuration."""
        with self._store.lock:
            self._store.tables.tiers[structure_id] = list(tiers)

    def set_positions(self, structure_id: str, positions: Sequence[InvestorPosition]) -> None:
        """Replace the structure's investor positions."""
        with self._store.lock:
            self._store.tables.positions[structure_id] = list(positions)

    def get_tiers(self, structure_id: str) -> List[Tier]:
        with self._store.lock:
            tiers = self._store.tables.tiers.get(structure_id, [])
            return sorted(tiers, key=lambda t: t.tier_number)

    def get_investor_weights(self, structure_id: str) -> List[InvestorPosition]:
        with self._store.lock:
            return list(self._store.tables.positions.get(structure_id, []))


class InMemoryTierStateRepository(TierStateRepository):
    def __init__(self, store: "InMemoryStore"):
        self._store = store

    def get(self, structure_id: str, tier_number: int) -> Decimal:
        with self._store.lock:
            state = self._store.tables.tier_state.get((structure_id, tier_number))
            return state.amount_allocated_to_date if state else Decimal("0")

    def increment(
        self,
        structure_id: str,
        tier_number: int,
        amount: Decimal,
        expected: Optional[Decimal] = None,
    ) -> Decimal:
        if amount < 0:
            raise ValidationError(
                f"tier state for structure {structure_id} tier {tier_number} "
                f"can only be incremented, got {amount}"
            )
        with self._store.lock:
            key = (structure_id, tier_number)
            current = self.get(structure_id, tier_number)
            if expected is not None and current != expected:
                raise ConflictError(
                    f"tier {tier_number} of structure {structure_id} changed concurrently "
                    f"(expected {expected}, found {current})"
                )
            total = current + amount
            self._store.tables.tier_state[key] = TierCumulativeState(
                structure_id=structure_id,
                tier_number=tier_number,
                amount_allocated_to_date=total,
                updated_at=datetime.now(timezone.utc),
            )
            return total

    def find_by_structure(self, structure_id: str) -> List[TierCumulativeState]:
        with self._store.lock:
            rows = [
                state for (sid, _), state in self._store.tables.tier_state.items()
                if sid == structure_id
            ]
            return sorted(rows, key=lambda s: s.tier_number)


class InMemoryDistributionRepository(DistributionRepository):
    def __init__(self, store: "InMemoryStore"):
        self._store = store

    def get(self, distribution_id: str) -> Optional[Distribution]:
        with self._store.lock:
            return self._store.tables.distributions.get(distribution_id)

    def save(
        self,
        distribution: Distribution,
        expected_version: Optional[int] = None,
    ) -> Distribution:
        with self._store.lock:
            stored = self._store.tables.distributions.get(distribution.id)
            current_version = stored.version if stored else 0

            if expected_version is not None and current_version != expected_version:
                raise ConflictError(
                    f"distribution {distribution.id} was modified concurrently "
                    f"(expected version {expected_version}, found {current_version})"
                )
            if stored is not None and stored.waterfall_applied and not distribution.waterfall_applied:
                raise ConflictError(
                    f"distribution {distribution.id}: waterfall_applied cannot be cleared"
                )

            saved = distribution.model_copy(update={"version": current_version + 1})
            self._store.tables.distributions[distribution.id] = saved
            return saved

    def find_by_structure(self, structure_id: str) -> List[Distribution]:
        with self._store.lock:
            return [
                d for d in self._store.tables.distributions.values()
                if d.structure_id == structure_id
            ]


class InMemoryAllocationRepository(AllocationRepository):
    def __init__(self, store: "InMemoryStore"):
        self._store = store

    def save_many(self, lines: Sequence[AllocationLine]) -> None:
        with self._store.lock:
            allocations = self._store.tables.allocations
            for line in lines:
                existing = allocations.setdefault(line.distribution_id, [])
                key = (line.tier_number, line.investor_id)
                if any((e.tier_number, e.investor_id) == key for e in existing):
                    raise ConflictError(
                        f"allocation for distribution {line.distribution_id} tier "
                        f"{line.tier_number} investor {line.investor_id} already exists"
                    )
                existing.append(line)

    def find_by_distribution(self, distribution_id: str) -> List[AllocationLine]:
        with self._store.lock:
            return list(self._store.tables.allocations.get(distribution_id, []))


# =============================================================================
# Store
# =============================================================================

class InMemoryStore(UnitOfWork):
    """Record store holding structures, tier state, distributions and allocations."""

    def __init__(self):
        self.lock = threading.RLock()
        self.tables = _Tables()
        self._depth = 0

        self.structures = InMemoryStructureRepository(self)
        self.tier_state = InMemoryTierStateRepository(self)
        self.distributions = InMemoryDistributionRepository(self)
        self.allocations = InMemoryAllocationRepository(self)

    @contextmanager
    def transaction(self, timeout: Optional[float] = None) -> Iterator["InMemoryStore"]:
        """Serialize the block against other transactions and roll back on error.

        Args:
            timeout: Seconds to wait for the lock (None = wait indefinitely)

        Raises:
            CommitTimeoutError: If the lock was not acquired in time
        """
        acquired = self.lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise CommitTimeoutError(f"could not enter transaction within {timeout}s")
        try:
            self._depth += 1
            snapshot = self._snapshot() if self._depth == 1 else None
            try:
                yield self
            except Exception:
                if snapshot is not None:
                    self.tables = snapshot
                    logger.warning("Transaction rolled back")
                raise
        finally:
            self._depth -= 1
            self.lock.release()

    def _snapshot(self) -> _Tables:
        # Stored models are replaced, never mutated, so copying the containers is enough
        snapshot = _Tables()
        snapshot.tiers = {k: list(v) for k, v in self.tables.tiers.items()}
        snapshot.positions = {k: list(v) for k, v in self.tables.positions.items()}
        snapshot.tier_state = copy.copy(self.tables.tier_state)
        snapshot.distributions = copy.copy(self.tables.distributions)
        snapshot.allocations = {k: list(v) for k, v in self.tables.allocations.items()}
        return snapshot
