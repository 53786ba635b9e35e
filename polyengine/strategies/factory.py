"""Build the enabled strategy set from an EngineConfig."""

from typing import List, Optional
import logging

from polyengine.config import EngineConfig
from polyengine.index.allocation import IndexAllocationCalculator
from polyengine.news.service import NewsSignalService
from polyengine.providers.gamma import MarketProvider
from polyengine.providers.spmc import IndexProvider
from polyengine.scoring.hybrid import HybridConfidenceScorer
from polyengine.strategies.base import BaseStrategy
from polyengine.strategies.expiring import ExpiringMarketsStrategy
from polyengine.strategies.index import IndexStrategy
from polyengine.strategies.interactive import InteractiveStrategy
from polyengine.strategies.threshold import ThresholdStrategy

logger = logging.getLogger(__name__)


def create_strategies(
    config: EngineConfig,
    market_provider: Optional[MarketProvider] = None,
    news_service: Optional[NewsSignalService] = None,
    hybrid_scorer: Optional[HybridConfidenceScorer] = None,
    index_provider: Optional[IndexProvider] = None,
    calculator: Optional[IndexAllocationCalculator] = None,
) -> List[BaseStrategy]:
    """
    Factory function for the strategies enabled in config.

    The index strategy is skipped (with a warning) when no index
    provider is available.
    """
    strategies: List[BaseStrategy] = []
    workers = config.max_workers

    if config.threshold.enabled:
        strategies.append(ThresholdStrategy(
            config.threshold,
            market_provider=market_provider,
            news_service=news_service,
            hybrid_scorer=hybrid_scorer or HybridConfidenceScorer(config.hybrid),
            max_workers=workers,
        ))

    if config.interactive.enabled:
        strategies.append(InteractiveStrategy(
            config.interactive,
            market_provider=market_provider,
            news_service=news_service,
            max_workers=workers,
        ))

    if config.expiring.enabled:
        strategies.append(ExpiringMarketsStrategy(
            config.expiring,
            market_provider=market_provider,
            max_workers=workers,
        ))

    if config.index.enabled:
        if index_provider is None:
            logger.warning("Index strategy enabled but no index provider configured, skipping")
        else:
            strategies.append(IndexStrategy(
                config.index,
                index_provider=index_provider,
                market_provider=market_provider,
                calculator=calculator or IndexAllocationCalculator(config.allocation),
                max_workers=workers,
            ))

    logger.info(f"Enabled strategies: {', '.join(s.name for s in strategies) or 'none'}")
    return strategies
