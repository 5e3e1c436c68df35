"""Engine configuration.

WaterfallSettings is constructed once at process start (directly, or from
``WATERFALL_*`` environment variables) and passed to the engine components.
"""

import os
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, ROUND_HALF_UP
from typing import Literal
from pydantic import Field

from .base import DomainModel


RoundingMode = Literal["ROUND_HALF_UP", "ROUND_HALF_EVEN", "ROUND_DOWN"]

_ROUNDING = {
    "ROUND_HALF_UP": ROUND_HALF_UP,
    "ROUND_HALF_EVEN": ROUND_HALF_EVEN,
    "ROUND_DOWN": ROUND_DOWN,
}


class WaterfallSettings(DomainModel):
    """Configuration for waterfall calculation and commit behavior.

    Example:
        # Whole-unit currency (e.g., JPY) with banker's rounding
        WaterfallSettings(
            currency_quantum=Decimal("1"),
            rounding_mode="ROUND_HALF_EVEN",
        )
    """

    currency_quantum: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Minimal currency unit; every amount is a whole number of these"
    )

    rounding_mode: RoundingMode = Field(
        default="ROUND_HALF_UP",
        description="Rounding applied to the LP side of a tier split"
    )

    share_tolerance: Decimal = Field(
        default=Decimal("0.001"),
        ge=0,
        description="Allowed deviation of lp% + gp% from 100"
    )

    weight_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Allowed deviation of percent-basis investor weights from 100"
    )

    gp_investor_id: str = Field(
        default="gp",
        min_length=1,
        description="Pseudo-investor id carrying the GP side of each tier"
    )

    require_terminal_residual: bool = Field(
        default=False,
        description="Reject tier sets without an active unbounded last tier at load time"
    )

    commit_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Maximum wait to enter the transaction boundary"
    )

    @property
    def decimal_rounding(self) -> str:
        return _ROUNDING[self.rounding_mode]

    @classmethod
    def from_env(cls, prefix: str = "WATERFALL_") -> "WaterfallSettings":
        """Build settings from environment variables.

        Recognized variables (with the default prefix):
            WATERFALL_CURRENCY_QUANTUM, WATERFALL_ROUNDING_MODE,
            WATERFALL_SHARE_TOLERANCE, WATERFALL_WEIGHT_TOLERANCE,
            WATERFALL_GP_INVESTOR_ID, WATERFALL_REQUIRE_TERMINAL_RESIDUAL,
            WATERFALL_COMMIT_TIMEOUT_SECONDS

        Unset variables keep their defaults.
        """
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is None:
                continue
            if name == "require_terminal_residual":
                values[name] = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                values[name] = raw.strip()
        return cls(**values)
