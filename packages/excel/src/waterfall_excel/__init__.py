"""Excel rendering for applied distributions."""

from .statement_renderer import DistributionStatementRenderer

__all__ = ["DistributionStatementRenderer"]
