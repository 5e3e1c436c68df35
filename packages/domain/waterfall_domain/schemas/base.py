"""Base classes and type system for waterfall domain models.

This module provides the foundational types, validators, and base classes
used throughout the waterfall schema system.

Naming convention:
    Python attributes are snake_case. The camelCase names used by the record
    store and API payloads are generated by the base model's alias generator,
    so ``model_dump(by_alias=True)`` is the single serialization boundary.
"""

from decimal import Decimal
from typing import Annotated
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

# =============================================================================
# Base Model
# =============================================================================

class DomainModel(BaseModel):
    """Base class for all domain models.

    Provides common configuration for all Pydantic models in the domain layer:
    - Validation on assignment for runtime safety
    - Support for Decimal and date types
    - camelCase aliases for the serialization boundary, snake_case in Python
    """

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        use_enum_values=True,
        arbitrary_types_allowed=True,
        alias_generator=to_camel,  # tierNumber <-> tier_number
        populate_by_name=True,  # Accept both names on input
    )


# =============================================================================
# Type Aliases - Numeric
# =============================================================================

MoneyAmount = Annotated[
    Decimal,
    Field(ge=0, description="Currency amount (non-negative)")
]

SharePercent = Annotated[
    Decimal,
    Field(ge=0, le=100, description="Percentage on a 0-100 scale (e.g., 80 = 80%)")
]

Weight = Annotated[
    Decimal,
    Field(ge=0, description="Ownership percentage or capital contribution (non-negative)")
]

TierNumber = Annotated[
    int,
    Field(ge=1, description="Position of a tier in the waterfall (1 = paid first)")
]


# =============================================================================
# ID Conventions
# =============================================================================

StructureId = Annotated[
    str,
    Field(min_length=1, description="Identifier of a fund/vehicle (UUID in the record store)")
]

InvestorId = Annotated[
    str,
    Field(min_length=1, description="Identifier of an investor in a structure")
]

DistributionId = Annotated[
    str,
    Field(min_length=1, description="Identifier of a distribution event")
]
