"""
Interactive (Multi-Signal) Strategy

Scores every outcome with three independent signals in [0, 1]:

1. Price extremity: cheap outcomes score high, expensive ones low,
   mid-range prices are neutral
2. Volume: step function of 24h volume
3. News sentiment: average article sentiment seen from the outcome

The weighted average is compared with 0.5. A score far enough above
0.5 buys the outcome; far enough below buys the complement.
"""

from datetime import datetime
from typing import List, Mapping, Optional
import logging

from polyengine.config import InteractiveConfig
from polyengine.models import (
    NEGATIVE,
    POSITIVE,
    YES,
    MarketOpportunity,
    MarketSnapshot,
    NewsSignal,
    Position,
    complement_outcome,
)
from polyengine.news.service import NewsSignalService
from polyengine.providers.gamma import MarketProvider
from polyengine.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)

NEUTRAL_SIGNAL = 0.5

# (price below, signal) for cheap outcomes and (price above, signal) for expensive ones
CHEAP_PRICE_SIGNALS = ((0.2, 0.8), (0.35, 0.65))
EXPENSIVE_PRICE_SIGNALS = ((0.8, 0.2), (0.65, 0.35))

# (volume above, signal), highest first
VOLUME_SIGNALS = ((1_000_000, 0.9), (500_000, 0.75), (100_000, 0.6), (50_000, 0.5))
LOW_VOLUME_SIGNAL = 0.3

ARTICLE_SENTIMENT = {POSITIVE: 0.7, NEGATIVE: 0.3}

# Confidence construction
BASE_CONFIDENCE = 0.5
EDGE_FACTOR = 0.3
HIGH_VOLUME_BOOST = (500_000, 0.2)
MEDIUM_VOLUME_BOOST = (100_000, 0.1)
PER_ARTICLE_BOOST = 0.05
MAX_ARTICLE_BOOST = 0.2
STRONG_PRICE_BOOST = 0.1
MAX_CONFIDENCE = 0.95

HEADLINES_IN_SIGNALS = 2
EXPIRY_NOTICE_HOURS = 168


def price_signal(price: float) -> float:
    """Opportunity signal from price extremity (outcome-agnostic)."""
    for limit, signal in CHEAP_PRICE_SIGNALS:
        if price < limit:
            return signal
    for limit, signal in EXPENSIVE_PRICE_SIGNALS:
        if price > limit:
            return signal
    return NEUTRAL_SIGNAL


def volume_signal(volume: float) -> float:
    """Higher volume = stronger signal."""
    for limit, signal in VOLUME_SIGNALS:
        if volume > limit:
            return signal
    return LOW_VOLUME_SIGNAL


def news_sentiment_signal(news_signal: Optional[NewsSignal], outcome: str) -> float:
    """Average article sentiment, inverted for any outcome other than YES."""
    if news_signal is None or not news_signal.has_articles:
        return NEUTRAL_SIGNAL

    total = 0.0
    for article in news_signal.articles:
        score = ARTICLE_SENTIMENT.get(article.sentiment, NEUTRAL_SIGNAL)
        total += score if outcome == YES else 1.0 - score
    return total / len(news_signal.articles)


class InteractiveStrategy(BaseStrategy):
    """
    Multi-signal strategy combining price, volume and news.

    Results across all markets are ranked by expected_value * confidence
    and truncated to max_results.
    """

    def __init__(
        self,
        config: Optional[InteractiveConfig] = None,
        market_provider: Optional[MarketProvider] = None,
        news_service: Optional[NewsSignalService] = None,
        max_workers: int = 1,
    ):
        super().__init__(
            name="interactive",
            description="Multi-signal trading strategy with news and sentiment analysis",
            config=config or InteractiveConfig(),
            market_provider=market_provider,
            max_workers=max_workers,
        )
        self._news_service = news_service

    def find_opportunities(self, open_positions: Mapping[str, Position]) -> List[MarketOpportunity]:
        if not self.is_active():
            return []

        market_ids = self._market_ids()
        logger.info(f"Interactive strategy: analyzing {len(market_ids)} markets with multi-signal analysis")

        opportunities = self._scan(market_ids, open_positions)
        opportunities.sort(key=lambda o: o.rank_score, reverse=True)

        logger.info(f"Found {len(opportunities)} interactive strategy opportunities")
        return opportunities[:self._config.max_results]

    def _news_signal(self, market: MarketSnapshot) -> Optional[NewsSignal]:
        if not self._config.use_news_signals or self._news_service is None:
            return None
        try:
            return self._news_service.get_market_signal(market.question, market.rules)
        except Exception as e:
            logger.debug(f"Could not fetch news for market: {e}")
            return None

    def analyze_market(self, market: MarketSnapshot) -> List[MarketOpportunity]:
        cfg = self._config
        if market.volume_24h < cfg.volume_threshold:
            logger.debug(f"Skipping low volume market {market.id[:10]}... (${market.volume_24h:,.0f})")
            return []

        news_signal = self._news_signal(market)
        weight_total = cfg.price_weight + cfg.volume_weight + cfg.sentiment_weight
        opportunities: List[MarketOpportunity] = []

        for i, outcome in enumerate(market.outcomes):
            price = market.price_for(i)

            p_signal = price_signal(price)
            v_signal = volume_signal(market.volume_24h)
            n_signal = news_sentiment_signal(news_signal, outcome)

            combined = (
                p_signal * cfg.price_weight
                + v_signal * cfg.volume_weight
                + n_signal * cfg.sentiment_weight
            )
            score = combined / weight_total
            edge = abs(score - 0.5)

            if edge < cfg.price_edge_threshold:
                continue

            confidence = self._confidence(edge, news_signal, market.volume_24h, p_signal)
            if confidence < cfg.min_confidence:
                continue

            # Below 0.5 the signals favour the other side
            if score > 0.5:
                target_outcome, target_price, predicted = outcome, price, score
            else:
                target_outcome, target_price, predicted = complement_outcome(outcome), 1.0 - price, 1.0 - score

            opportunities.append(MarketOpportunity(
                market_id=market.id,
                question=market.question,
                outcome=target_outcome,
                current_price=target_price,
                predicted_probability=predicted,
                confidence=confidence,
                expected_value=edge * 100 * confidence,
                risk_score=self._risk_score(market, edge),
                signals=tuple(self._build_signals(market, p_signal, v_signal, n_signal, news_signal)),
                strategy_name=self.name,
            ))

            logger.info(f"Interactive opportunity: {market.question[:50]}...")
            logger.info(
                f"   {target_outcome} at {target_price * 100:.1f}% | "
                f"Confidence: {confidence * 100:.1f}% | Score: {score:.3f}"
            )

        return opportunities

    @staticmethod
    def _confidence(
        edge: float,
        news_signal: Optional[NewsSignal],
        volume: float,
        p_signal: float,
    ) -> float:
        confidence = BASE_CONFIDENCE + edge * EDGE_FACTOR

        if volume > HIGH_VOLUME_BOOST[0]:
            confidence += HIGH_VOLUME_BOOST[1]
        elif volume > MEDIUM_VOLUME_BOOST[0]:
            confidence += MEDIUM_VOLUME_BOOST[1]

        if news_signal is not None and news_signal.has_articles:
            confidence += min(len(news_signal.articles) * PER_ARTICLE_BOOST, MAX_ARTICLE_BOOST)

        if p_signal > 0.7 or p_signal < 0.3:
            confidence += STRONG_PRICE_BOOST

        return min(confidence, MAX_CONFIDENCE)

    @staticmethod
    def _build_signals(
        market: MarketSnapshot,
        p_signal: float,
        v_signal: float,
        n_signal: float,
        news_signal: Optional[NewsSignal],
        now: Optional[datetime] = None,
    ) -> List[str]:
        signals = [
            f"Price signal: {p_signal * 100:.1f}%",
            f"Volume: ${market.volume_24h / 1000:.0f}k (signal: {v_signal * 100:.0f}%)",
        ]

        if news_signal is not None and news_signal.has_articles:
            signals.append(f"News sentiment: {n_signal * 100:.0f}% ({len(news_signal.articles)} articles)")
            signals.extend(f"News: {a.title}" for a in news_signal.articles[:HEADLINES_IN_SIGNALS])

        hours = market.hours_to_expiry(now)
        if hours is not None and hours < EXPIRY_NOTICE_HOURS:
            signals.append(f"Expires in {hours:.0f} hours")

        return signals
