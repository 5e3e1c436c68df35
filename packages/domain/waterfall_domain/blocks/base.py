"""Block framework for distribution reporting.

Reports are produced by small blocks that each read named values from a
shared context and write named DataFrames back to it. The executor orders
blocks by the keys they consume and produce, so a report can be assembled
from any subset of blocks as long as its inputs are seeded.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# =============================================================================
# Block Context
# =============================================================================

@dataclass
class BlockContext:
    """Named values shared by the blocks of one report run.

    Example:
        context = BlockContext()
        context.set("waterfall_result", result)

        TierBreakdownBlock().execute(context)
        tiers_df = context.get("tier_breakdown")
    """

    _data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``.

        Raises:
            KeyError: If nothing was stored under ``key``
        """
        if key not in self._data:
            raise KeyError(f"'{key}' is not in the report context (have: {sorted(self._data)})")
        return self._data[key]

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data.keys())


# =============================================================================
# Block Base Class
# =============================================================================

class Block(ABC):
    """One reporting step.

    A block names the context keys it reads (``inputs``) and writes
    (``outputs``); ``execute`` does the work. Keys not produced by another
    block in the same run must be seeded by the caller.
    """

    @abstractmethod
    def inputs(self) -> List[str]:
        """Context keys this block reads."""

    @abstractmethod
    def outputs(self) -> List[str]:
        """Context keys this block writes."""

    @abstractmethod
    def execute(self, context: BlockContext) -> None:
        """Read inputs from ``context`` and write every declared output."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(inputs={self.inputs()}, outputs={self.outputs()})"


# =============================================================================
# Dependency Resolution
# =============================================================================

class CircularDependencyError(Exception):
    """Raised when report blocks depend on each other in a cycle."""
    pass


def topological_sort(blocks: List[Block]) -> List[Block]:
    """Order blocks so every producer runs before its consumers.

    Kahn's algorithm; blocks with no pending dependencies keep their given
    order, which makes the result deterministic.

    Raises:
        ValueError: If two blocks write the same key
        CircularDependencyError: If the dependency graph has a cycle
    """
    producers: Dict[str, Block] = {}
    for block in blocks:
        for key in block.outputs():
            if key in producers:
                raise ValueError(f"'{key}' is written by both {producers[key]} and {block}")
            producers[key] = block

    pending: Dict[Block, int] = {block: 0 for block in blocks}
    consumers: Dict[Block, List[Block]] = {block: [] for block in blocks}
    for block in blocks:
        for key in block.inputs():
            producer = producers.get(key)
            if producer is not None:
                consumers[producer].append(block)
                pending[block] += 1

    ready = [block for block in blocks if pending[block] == 0]
    ordered: List[Block] = []
    while ready:
        block = ready.pop(0)
        ordered.append(block)
        for consumer in consumers[block]:
            pending[consumer] -= 1
            if pending[consumer] == 0:
                ready.append(consumer)

    if len(ordered) != len(blocks):
        stuck = [block for block in blocks if pending[block] > 0]
        raise CircularDependencyError(f"report blocks form a cycle: {stuck}")

    return ordered


# =============================================================================
# Block Executor
# =============================================================================

class BlockExecutor:
    """Runs a set of blocks in dependency order against one context.

    Example:
        executor = BlockExecutor([
            ReconciliationBlock(),
            TierBreakdownBlock(),
            AllocationBlock(),
        ])
        context = BlockContext()
        context.set("waterfall_result", result)
        executor.execute(context)

        summary_df = context.get("distribution_summary")
    """

    def __init__(self, blocks: List[Block]):
        self.blocks = blocks
        self._order: Optional[List[Block]] = None

    def execute(self, context: BlockContext) -> BlockContext:
        """Run every block and return the context holding all outputs.

        Raises:
            CircularDependencyError: If the blocks form a cycle
            KeyError: If a block's input is neither seeded nor produced
            ValueError: If a block did not write a declared output
        """
        if self._order is None:
            self._order = topological_sort(self.blocks)

        for block in self._order:
            missing = [key for key in block.inputs() if not context.has(key)]
            if missing:
                raise KeyError(
                    f"{block} is missing inputs {missing}; context has {context.keys()}"
                )

            block.execute(context)

            unwritten = [key for key in block.outputs() if not context.has(key)]
            if unwritten:
                raise ValueError(f"{block} did not write declared outputs {unwritten}")

        return context
