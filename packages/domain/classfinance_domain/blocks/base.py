"""Base classes for report computation blocks.

This module provides the foundation for the blocks architecture:
- Block abstract base class
- BlockContext for passing registrations, configuration and results
- BlockExecutor for dependency resolution and execution
- Topological sort for DAG execution order
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, Dict, List, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


# =============================================================================
# Block Context
# =============================================================================

@dataclass
class BlockContext:
    """Shared key/value store the blocks read from and write to.

    Example:
        context = BlockContext()
        context.set("registration_lines", lines)
        context.set("finance_cfg", FinanceReportCFG())

        PricingBlock().execute(context)
        pricing_df = context.get("line_pricing")
    """

    _data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Get value from context.

        Raises:
            KeyError: If key not found in context
        """
        if key not in self._data:
            raise KeyError(f"Key '{key}' not found in context. Available keys: {list(self._data.keys())}")
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
    """Abstract base class for report computation blocks.

    A Block:
    1. Declares the context keys it reads (inputs)
    2. Declares the context keys it writes (outputs)
    3. Computes in execute()

    Subclass example:
        class SeatCountBlock(Block):
            def inputs(self) -> List[str]:
                return ["priced_lines"]

            def outputs(self) -> List[str]:
                return ["seat_count"]

            def execute(self, context: BlockContext) -> None:
                priced = context.get("priced_lines")
                context.set("seat_count", sum(p.pricing.seats for p in priced))
    """

    @abstractmethod
    def inputs(self) -> List[str]:
        """Context keys this block reads."""
        pass

    @abstractmethod
    def outputs(self) -> List[str]:
        """Context keys this block writes."""
        pass

    @abstractmethod
    def execute(self, context: BlockContext) -> None:
        """Read inputs from context, compute, write outputs to context.

        Raises:
            KeyError: If required inputs not available in context
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(inputs={self.inputs()}, outputs={self.outputs()})"


# =============================================================================
# Dependency Resolution
# =============================================================================

class CircularDependencyError(Exception):
    """Raised when blocks have circular dependencies."""
    pass


def topological_sort(blocks: List[Block]) -> List[Block]:
    """Order blocks so every producer runs before its consumers.

    Kahn's algorithm. Inputs no block produces are expected in the initial
    context. Blocks with no mutual dependency keep their input order.

    Raises:
        ValueError: If two blocks produce the same key
        CircularDependencyError: If blocks depend on each other in a cycle

    Example:
        PricingBlock.outputs() = ["priced_lines", "line_pricing"]
        AgingBlock.inputs() = ["priced_lines", "as_of", "finance_cfg"]

        topological_sort([AgingBlock(), PricingBlock()])
        → [PricingBlock, AgingBlock]
    """
    producers: Dict[str, Block] = {}
    for block in blocks:
        for key in block.outputs():
            if key in producers:
                raise ValueError(
                    f"Multiple blocks produce '{key}': {producers[key]} and {block}"
                )
            producers[key] = block

    pending_inputs: Dict[int, int] = {id(block): 0 for block in blocks}
    consumers: Dict[int, List[Block]] = {id(block): [] for block in blocks}

    for block in blocks:
        for key in block.inputs():
            producer = producers.get(key)
            if producer is not None:
                consumers[id(producer)].append(block)
                pending_inputs[id(block)] += 1

    ready: Deque[Block] = deque(block for block in blocks if pending_inputs[id(block)] == 0)
    ordered: List[Block] = []

    while ready:
        current = ready.popleft()
        ordered.append(current)
        for consumer in consumers[id(current)]:
            pending_inputs[id(consumer)] -= 1
            if pending_inputs[id(consumer)] == 0:
                ready.append(consumer)

    if len(ordered) != len(blocks):
        stuck = [block for block in blocks if pending_inputs[id(block)] > 0]
        raise CircularDependencyError(
            f"Circular dependency detected among blocks: {stuck}"
        )

    return ordered


# =============================================================================
# Block Executor
# =============================================================================

class BlockExecutor:
    """Runs blocks in dependency order and checks their contracts.

    Example:
        executor = BlockExecutor([RollupBlock(), AgingBlock(), PricingBlock()])
        context = BlockContext()
        context.set("registration_lines", lines)
        context.set("finance_cfg", FinanceReportCFG())
        context.set("as_of", date(2025, 6, 15))

        executor.execute(context)

        summary_df = context.get("rollup_summary")
        aging_df = context.get("aging_buckets")
    """

    def __init__(self, blocks: List[Block]):
        self.blocks = blocks
        self._sorted_blocks: Optional[List[Block]] = None

    def execute(self, context: BlockContext) -> BlockContext:
        """Execute all blocks in dependency order.

        Raises:
            CircularDependencyError: If blocks have circular dependencies
            KeyError: If a required input is missing from context
            ValueError: If a block did not write a declared output
        """
        if self._sorted_blocks is None:
            self._sorted_blocks = topological_sort(self.blocks)

        for block in self._sorted_blocks:
            self._validate_inputs(block, context)
            logger.debug("Executing %r", block)
            block.execute(context)
            self._validate_outputs(block, context)

        return context

    def _validate_inputs(self, block: Block, context: BlockContext) -> None:
        for key in block.inputs():
            if not context.has(key):
                raise KeyError(
                    f"Block {block} requires input '{key}' but it's not in context. "
                    f"Available keys: {context.keys()}"
                )

    def _validate_outputs(self, block: Block, context: BlockContext) -> None:
        for key in block.outputs():
            if not context.has(key):
                raise ValueError(
                    f"Block {block} declared output '{key}' but didn't write it to context"
                )
