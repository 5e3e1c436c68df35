"""Repository contracts consumed by the engine.

The engine never talks to storage directly. Collaborators implement these
abstract contracts (a SQL-backed store in production, InMemoryStore in tests) and are
passed to the engine explicitly at construction time.

Concurrency contract:
    - UnitOfWork.transaction() provides the atomic boundary: every write made
      inside it is committed together or not at all.
    - DistributionRepository.save() is compare-and-set on ``version``.
    - TierStateRepository.increment() is compare-and-set on the prior amount
      when ``expected`` is given.
    A lost compare-and-set raises ConflictError.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from decimal import Decimal
from typing import List, Optional, Sequence

from ..schemas import AllocationLine, Distribution, InvestorPosition, Tier


class StructureRepository(ABC):
    @abstractmethod
    def get_tiers(self, structure_id: str) -> List[Tier]:
        """Return every tier configured for the structure (empty if none)."""
        pass

    @abstractmethod
    def get_investor_weights(self, structure_id: str) -> List[InvestorPosition]:
        """Return every investor position held in the structure."""
        pass


class TierStateRepository(ABC):
    @abstractmethod
    def get(self, structure_id: str, tier_number: int) -> Decimal:
        """Return the cumulative amount allocated to a tier (zero if never used)."""
        pass

    @abstractmethod
    def increment(
        self,
        structure_id: str,
        tier_number: int,
        amount: Decimal,
        expected: Optional[Decimal] = None,
    ) -> Decimal:
        """Add to a tier's cumulative amount and return the new total.

        Raises:
            ConflictError: If ``expected`` is given and differs from the stored amount
        """
        pass


class DistributionRepository(ABC):
    @abstractmethod
    def get(self, distribution_id: str) -> Optional[Distribution]:
        pass

    @abstractmethod
    def save(
        self,
        distribution: Distribution,
        expected_version: Optional[int] = None,
    ) -> Distribution:
        """Store a distribution and return it with its new version.

        Raises:
            ConflictError: If ``expected_version`` is given and differs from the
                stored version, or if the save would clear waterfall_applied
        """
        pass

    @abstractmethod
    def find_by_structure(self, structure_id: str) -> List[Distribution]:
        pass


class AllocationRepository(ABC):
    @abstractmethod
    def save_many(self, lines: Sequence[AllocationLine]) -> None:
        pass

    @abstractmethod
    def find_by_distribution(self, distribution_id: str) -> List[AllocationLine]:
        pass


class UnitOfWork(ABC):
    @abstractmethod
    def transaction(self, timeout: Optional[float] = None) -> AbstractContextManager:
        """Atomic boundary for a read-modify-write sequence.

        Raises:
            CommitTimeoutError: If the boundary cannot be entered within ``timeout``
        """
        pass
