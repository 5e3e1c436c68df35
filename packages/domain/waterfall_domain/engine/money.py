"""Fixed-point money helpers.

Amounts are Decimals that must be whole multiples of the currency quantum.
Allocation works in integer minimal units so rounding is explicit.
"""

from decimal import Decimal
from typing import Union

from ..errors import ValidationError

Number = Union[Decimal, int, str]


def as_decimal(value: Number) -> Decimal:
    # float is refused: a binary float has already lost the cents
    if isinstance(value, float):
        raise ValidationError(f"monetary amounts must not be floats, got {value!r}")
    return value if isinstance(value, Decimal) else Decimal(value)


def to_units(amount: Number, quantum: Decimal, label: str = "amount") -> int:
    """Convert an amount to a whole number of minimal currency units.

    Raises:
        ValidationError: If the amount has precision finer than the quantum
    """
    units = as_decimal(amount) / quantum
    if units != units.to_integral_value():
        raise ValidationError(f"{label} {amount} is not a whole multiple of {quantum}")
    return int(units)


def from_units(units: int, quantum: Decimal) -> Decimal:
    return (Decimal(units) * quantum).quantize(quantum)


def require_money(amount: Number, quantum: Decimal, label: str = "amount") -> Decimal:
    """Validate an amount and return it quantized to the currency quantum."""
    return from_units(to_units(amount, quantum, label), quantum)
