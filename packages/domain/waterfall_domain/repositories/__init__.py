"""Repository contracts and the in-memory record store."""

from .base import (
    StructureRepository,
    TierStateRepository,
    DistributionRepository,
    AllocationRepository,
    UnitOfWork,
)
from .memory import (
    InMemoryStore,
    InMemoryStructureRepository,
    InMemoryTierStateRepository,
    InMemoryDistributionRepository,
    InMemoryAllocationRepository,
)

__all__ = [
    "StructureRepository",
    "TierStateRepository",
    "DistributionRepository",
    "AllocationRepository",
    "UnitOfWork",
    "InMemoryStore",
    "InMemoryStructureRepository",
    "InMemoryTierStateRepository",
    "InMemoryDistributionRepository",
    "InMemoryAllocationRepository",
]
