"""
Threshold Mispricing Strategy

Trades on simple price thresholds:
- Buy an outcome priced below buy_threshold by more than min_edge
- Buy NO when YES trades above sell_threshold by more than min_edge
  and NO is itself cheap

When a news signal with articles is available, the price edge is fused
with it by the HybridConfidenceScorer, and opportunities the hybrid
scorer rejects are dropped.
"""

from typing import List, Mapping, Optional
import logging

from polyengine.config import ThresholdConfig
from polyengine.models import NO, YES, MarketOpportunity, MarketSnapshot, NewsSignal, Position
from polyengine.news.service import NewsSignalService
from polyengine.providers.gamma import MarketProvider
from polyengine.scoring.hybrid import HybridConfidenceScorer
from polyengine.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)

# Float tolerance for the strict edge comparison
EDGE_EPSILON = 1e-9


class ThresholdStrategy(BaseStrategy):
    """
    Buys cheap outcomes relative to fixed price thresholds.

    An edge exactly equal to min_edge does not qualify.
    """

    def __init__(
        self,
        config: Optional[ThresholdConfig] = None,
        market_provider: Optional[MarketProvider] = None,
        news_service: Optional[NewsSignalService] = None,
        hybrid_scorer: Optional[HybridConfidenceScorer] = None,
        max_workers: int = 1,
    ):
        super().__init__(
            name="threshold",
            description="Trades based on simple price thresholds with optional news signals",
            config=config or ThresholdConfig(),
            market_provider=market_provider,
            max_workers=max_workers,
        )
        self._news_service = news_service
        self._hybrid_scorer = hybrid_scorer or HybridConfidenceScorer()

    def find_opportunities(self, open_positions: Mapping[str, Position]) -> List[MarketOpportunity]:
        if not self.is_active():
            return []

        market_ids = self._market_ids()
        if not market_ids:
            logger.warning("No markets configured for threshold strategy")
            return []

        logger.info(f"Threshold strategy: checking {len(market_ids)} markets")
        opportunities = self._scan(market_ids, open_positions)
        logger.info(f"Found {len(opportunities)} threshold strategy opportunities")
        return opportunities

    def _news_signal(self, market: MarketSnapshot) -> Optional[NewsSignal]:
        if not self._config.use_news_signals or self._news_service is None:
            return None
        try:
            signal = self._news_service.get_market_signal(market.question, market.rules)
        except Exception as e:
            logger.warning(f"Failed to get news signals: {e}")
            return None
        if signal.has_articles:
            logger.info(f"  Found {len(signal.articles)} news articles for market analysis")
        return signal

    @staticmethod
    def _qualifies(edge: float, min_edge: float) -> bool:
        return edge - min_edge > EDGE_EPSILON

    def analyze_market(self, market: MarketSnapshot) -> List[MarketOpportunity]:
        cfg = self._config
        logger.debug(f"Analyzing market: {market.question}")
        news_signal = self._news_signal(market)

        opportunities: List[MarketOpportunity] = []
        seen = set()

        def add(opportunity: Optional[MarketOpportunity]) -> None:
            if opportunity is not None and opportunity.outcome not in seen:
                seen.add(opportunity.outcome)
                opportunities.append(opportunity)

        for i, outcome in enumerate(market.outcomes):
            price = market.price_for(i)

            # Cheap outcome
            if price <= cfg.buy_threshold:
                edge = cfg.buy_threshold - price
                if self._qualifies(edge, cfg.min_edge):
                    add(self._create_opportunity(market, outcome, price, edge, news_signal, False))

            # Expensive YES means cheap NO
            if outcome == YES and price >= cfg.sell_threshold:
                no_price = 1.0 - price
                edge = price - cfg.sell_threshold
                if self._qualifies(edge, cfg.min_edge) and no_price <= cfg.buy_threshold:
                    add(self._create_opportunity(market, NO, no_price, edge, news_signal, True))

        return opportunities

    def _create_opportunity(
        self,
        market: MarketSnapshot,
        outcome: str,
        price: float,
        edge: float,
        news_signal: Optional[NewsSignal],
        is_inverse: bool,
    ) -> Optional[MarketOpportunity]:
        confidence = self._config.default_confidence
        if is_inverse:
            signals = [f"Price edge: NO at {price * 100:.1f}% (YES expensive)"]
        else:
            signals = [f"Price edge: {outcome} at {price * 100:.1f}%"]

        if news_signal is not None and news_signal.has_articles:
            hybrid = self._hybrid_scorer.combine(edge, news_signal, outcome)
            if not hybrid.should_trade:
                logger.info(f"Opportunity rejected by hybrid scorer: {market.question} - {outcome}")
                return None
            confidence = hybrid.combined_confidence
            signals.append(hybrid.reasoning)
            signals.extend(f"News: {article.title}" for article in hybrid.supporting_articles)

        logger.info(f"Threshold opportunity: {market.question}")
        logger.info(f"  {outcome} at {price * 100:.1f}% with {confidence * 100:.1f}% confidence")

        return MarketOpportunity(
            market_id=market.id,
            question=market.question,
            outcome=outcome,
            current_price=price,
            predicted_probability=price + edge,
            confidence=confidence,
            expected_value=edge * 100 * confidence,
            risk_score=self._risk_score(market, edge),
            signals=tuple(signals),
            strategy_name=self.name,
        )
