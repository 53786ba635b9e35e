"""Index-following allocation math."""

from polyengine.index.allocation import IndexAllocationCalculator

__all__ = [
    "IndexAllocationCalculator",
]
