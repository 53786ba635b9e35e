"""
Trading Strategies

Strategies produce opportunities, not orders. Opportunities are gated
and sized by the OpportunityEvaluator.

Available strategies:
- ThresholdStrategy: Fixed price thresholds, optionally news-confirmed
- InteractiveStrategy: Weighted price/volume/news signals
- ExpiringMarketsStrategy: Near-certain outcomes close to expiry
- IndexStrategy: Follows an external index composition
"""

from polyengine.strategies.base import (
    BaseStrategy,
    StrategyManager,
)
from polyengine.strategies.threshold import ThresholdStrategy
from polyengine.strategies.interactive import (
    InteractiveStrategy,
    news_sentiment_signal,
    price_signal,
    volume_signal,
)
from polyengine.strategies.expiring import ExpiringMarketsStrategy
from polyengine.strategies.index import IndexStrategy
from polyengine.strategies.factory import create_strategies

__all__ = [
    # Base
    "BaseStrategy",
    "StrategyManager",
    # Threshold
    "ThresholdStrategy",
    # Interactive
    "InteractiveStrategy",
    "news_sentiment_signal",
    "price_signal",
    "volume_signal",
    # Expiring
    "ExpiringMarketsStrategy",
    # Index
    "IndexStrategy",
    # Factory
    "create_strategies",
]
