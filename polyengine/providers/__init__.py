"""
External data providers.

- gamma: Polymarket market snapshots
- spmc: index compositions
"""

from polyengine.providers.gamma import (
    GammaMarketProvider,
    MarketProvider,
    snapshot_from_gamma,
)
from polyengine.providers.spmc import (
    IndexProvider,
    SpmcIndexProvider,
    composition_from_spmc,
)

__all__ = [
    # Markets
    "GammaMarketProvider",
    "MarketProvider",
    "snapshot_from_gamma",
    # Index
    "IndexProvider",
    "SpmcIndexProvider",
    "composition_from_spmc",
]
