"""Investor positions used to weight LP allocations.

A position states how much of a structure's LP economics an investor holds.
Weights come in one of two bases:

- percent: an ownership percentage; active positions must sum to 100%
- contribution: capital contributed; normalized to a percentage when a
  distribution is allocated
"""

from typing import Literal
from pydantic import Field

from .base import DomainModel, InvestorId, StructureId, Weight


WeightBasis = Literal["percent", "contribution"]


class InvestorPosition(DomainModel):
    """An investor's economic interest in a structure.

    Examples:
        Ownership percentage:
            investor_id="inv_alice", weight=60, weight_basis="percent"

        Capital contribution (normalized at allocation time):
            investor_id="inv_bob", weight=250000, weight_basis="contribution"
    """

    investor_id: InvestorId = Field(
        description="Investor holding the position"
    )

    structure_id: StructureId = Field(
        description="Structure the position is held in"
    )

    weight: Weight = Field(
        description="Ownership percentage or capital contribution, per weight_basis"
    )

    weight_basis: WeightBasis = Field(
        default="percent",
        description="How to interpret weight"
    )

    is_active: bool = Field(
        default=True,
        description="Inactive positions are left out of allocations"
    )
