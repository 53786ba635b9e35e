"""
Hybrid price + news confidence.

Fuses a confidence derived from the price edge with the news signal's
view of the candidate outcome, applies an agreement bonus or a
disagreement penalty, and decides whether the trade should go ahead.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from polyengine.config import HybridScoringConfig
from polyengine.models import BEARISH, BULLISH, NEUTRAL, NO, YES, NewsSignal, ScoredArticle

logger = logging.getLogger(__name__)

ALIGNED = "aligned"
OPPOSED = "opposed"


@dataclass(frozen=True, slots=True)
class HybridConfidenceScore:
    price_confidence: float
    news_confidence: float
    combined_confidence: float
    should_trade: bool
    reasoning: str
    supporting_articles: Tuple[ScoredArticle, ...] = ()

    def __repr__(self) -> str:
        verdict = "TRADE" if self.should_trade else "PASS"
        return (
            f"Hybrid({verdict}: combined={self.combined_confidence:.2f}, "
            f"price={self.price_confidence:.2f}, news={self.news_confidence:.2f})"
        )


def signal_alignment(signal: str, outcome: str) -> str:
    """Bullish news supports YES and opposes NO; bearish the reverse."""
    if signal == BULLISH:
        return ALIGNED if outcome == YES else OPPOSED
    if signal == BEARISH:
        return ALIGNED if outcome == NO else OPPOSED
    return NEUTRAL


class HybridConfidenceScorer:
    """
    Combines price-edge confidence with news confidence.

    Combined confidence is monotone in the price edge for a fixed news
    signal: the disagreement penalty never pushes the score below the
    value it had when the price side first crossed the conflict gap.
    """

    def __init__(self, config: Optional[HybridScoringConfig] = None):
        self._config = config or HybridScoringConfig()

    @property
    def config(self) -> HybridScoringConfig:
        return self._config

    def price_confidence(self, price_edge: float) -> float:
        cfg = self._config
        confidence = cfg.base_confidence + price_edge * cfg.edge_multiplier
        return min(cfg.max_confidence, max(0.0, confidence))

    def news_confidence(self, news_signal: NewsSignal, outcome: str) -> float:
        if not news_signal.has_articles:
            return 0.5
        alignment = signal_alignment(news_signal.signal, outcome)
        if alignment == ALIGNED:
            return news_signal.confidence
        if alignment == OPPOSED:
            return 1.0 - news_signal.confidence
        return 0.5

    def _weighted(self, price_conf: float, news_conf: float) -> float:
        cfg = self._config
        return price_conf * cfg.price_weight + news_conf * cfg.news_weight

    def _adjust(self, price_conf: float, news_conf: float, signal: str) -> float:
        """First matching rule wins: agreement bonus, conflict penalty, neutral penalty."""
        cfg = self._config
        combined = self._weighted(price_conf, news_conf)
        neutral_factor = cfg.neutral_news_penalty if signal == NEUTRAL else 1.0

        if price_conf > cfg.agreement_level and news_conf > cfg.agreement_level:
            combined *= cfg.agreement_bonus
            logger.debug("  Applied alignment bonus for strong agreement")
        elif abs(price_conf - news_conf) > cfg.conflict_gap:
            penalized = combined * cfg.conflict_penalty
            if price_conf > news_conf:
                # Hold the value reached at the edge of the conflict zone
                boundary = self._weighted(news_conf + cfg.conflict_gap, news_conf) * neutral_factor
                penalized = max(penalized, boundary)
            combined = penalized
            logger.debug("  Applied penalty for conflicting signals")
        elif signal == NEUTRAL:
            combined *= cfg.neutral_news_penalty
            logger.debug("  Applied penalty for neutral news")

        return min(cfg.max_confidence, max(0.0, combined))

    def _should_trade(
        self,
        price_conf: float,
        news_conf: float,
        combined: float,
        article_count: int,
    ) -> bool:
        cfg = self._config
        if combined < cfg.min_combined_confidence:
            return False
        if price_conf > cfg.strong_price_confidence:
            return True
        if news_conf > cfg.strong_news_confidence and article_count >= cfg.min_supporting_articles:
            return True
        return price_conf >= cfg.min_price_confidence and news_conf >= cfg.min_news_confidence

    def combine(self, price_edge: float, news_signal: NewsSignal, outcome: str) -> HybridConfidenceScore:
        """Hybrid confidence for buying `outcome` with the given price edge."""
        price_conf = self.price_confidence(price_edge)
        news_conf = self.news_confidence(news_signal, outcome)
        combined = self._adjust(price_conf, news_conf, news_signal.signal)
        should_trade = self._should_trade(price_conf, news_conf, combined, len(news_signal.articles))
        reasoning = self._reasoning(price_edge, price_conf, news_conf, combined, news_signal, outcome, should_trade)

        logger.info(f"Hybrid confidence for {outcome}: {combined * 100:.1f}%")
        logger.info(f"  Price confidence: {price_conf * 100:.1f}%, News confidence: {news_conf * 100:.1f}%")

        return HybridConfidenceScore(
            price_confidence=price_conf,
            news_confidence=news_conf,
            combined_confidence=combined,
            should_trade=should_trade,
            reasoning=reasoning,
            supporting_articles=tuple(news_signal.articles[: self._config.supporting_articles]),
        )

    def _reasoning(
        self,
        price_edge: float,
        price_conf: float,
        news_conf: float,
        combined: float,
        news_signal: NewsSignal,
        outcome: str,
        should_trade: bool,
    ) -> str:
        cfg = self._config
        parts = [f"Price edge of {price_edge * 100:.1f}% gives {price_conf * 100:.0f}% confidence"]

        count = len(news_signal.articles)
        if count:
            alignment = signal_alignment(news_signal.signal, outcome)
            if alignment == ALIGNED:
                parts.append(f"News is {news_signal.signal} ({count} articles), supporting {outcome}")
            elif alignment == OPPOSED:
                parts.append(f"News is {news_signal.signal} but we're considering {outcome} (contrarian)")
            else:
                parts.append(f"News sentiment is neutral ({count} articles)")
        else:
            parts.append("No recent news found")

        parts.append(f"Combined confidence: {combined * 100:.0f}%")

        if should_trade:
            parts.append("Trade approved - signals aligned")
        elif combined < cfg.min_combined_confidence:
            parts.append(f"Below minimum confidence threshold ({cfg.min_combined_confidence * 100:.0f}%)")
        elif price_conf < cfg.min_price_confidence:
            parts.append("Price edge too small")
        elif news_conf < cfg.min_news_confidence:
            parts.append("News signal too weak or conflicting")

        return ". ".join(parts)
