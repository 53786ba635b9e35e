"""
Expiring Markets Strategy

Targets markets close to resolution where one outcome already trades
as near-certain (>= min_probability). The bet is that such markets
have effectively resolved, so the small remaining discount is profit.

Confidence blends how far the price sits past min_probability with how
close the market is to expiry.
"""

from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional
import logging

from polyengine.config import ExpiringMarketsConfig
from polyengine.models import MarketOpportunity, MarketSnapshot, Position, complement_outcome
from polyengine.providers.gamma import MarketProvider
from polyengine.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExpiringMarketsStrategy(BaseStrategy):
    """Near-certain outcomes in markets expiring within the configured window."""

    def __init__(
        self,
        config: Optional[ExpiringMarketsConfig] = None,
        market_provider: Optional[MarketProvider] = None,
        max_workers: int = 1,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(
            name="expiring_markets",
            description="Targets shortly expiring markets with near-certain outcomes",
            config=config or ExpiringMarketsConfig(),
            market_provider=market_provider,
            max_workers=max_workers,
        )
        self._clock = clock

    def find_opportunities(self, open_positions: Mapping[str, Position]) -> List[MarketOpportunity]:
        if not self.is_active():
            return []

        market_ids = self._market_ids()
        logger.info(f"Expiring markets strategy: checking {len(market_ids)} markets")
        opportunities = self._scan(market_ids, open_positions)
        logger.info(f"Found {len(opportunities)} expiring market opportunities")
        return opportunities

    def _price_confidence(self, price: float) -> float:
        span = 1.0 - self._config.min_probability
        if span <= 0:
            return 1.0
        return (price - self._config.min_probability) / span

    def analyze_market(self, market: MarketSnapshot) -> List[MarketOpportunity]:
        cfg = self._config
        hours = market.hours_to_expiry(self._clock())
        if hours is None:
            return []

        if hours > cfg.max_hours_to_expiry or hours < cfg.min_hours_to_expiry:
            return []

        if market.volume_24h < cfg.min_volume:
            logger.debug(f"Market {market.question[:50]}... has low volume: {market.volume_24h}")
            return []

        time_confidence = 1.0 - hours / cfg.max_hours_to_expiry
        opportunities: List[MarketOpportunity] = []
        seen = set()

        for i, outcome in enumerate(market.outcomes):
            price = market.price_for(i)

            if price >= cfg.min_probability and outcome not in seen:
                seen.add(outcome)
                opportunities.append(self._opportunity(
                    market, outcome, price, hours, time_confidence,
                    f"Current price: {price * 100:.1f}%",
                ))

            # A near-worthless outcome means its complement is near-certain
            other = complement_outcome(outcome)
            if price <= 1.0 - cfg.min_probability and other not in seen:
                seen.add(other)
                other_price = 1.0 - price
                opportunities.append(self._opportunity(
                    market, other, other_price, hours, time_confidence,
                    f"{other} price: {other_price * 100:.1f}% ({outcome} at {price * 100:.1f}%)",
                ))

        return opportunities

    def _opportunity(
        self,
        market: MarketSnapshot,
        outcome: str,
        price: float,
        hours: float,
        time_confidence: float,
        price_note: str,
    ) -> MarketOpportunity:
        expected_return = (1.0 - price) * 100
        confidence = (self._price_confidence(price) + time_confidence) / 2

        logger.info(f"Expiring opportunity: {market.question[:50]}...")
        logger.info(
            f"   {outcome} at {price * 100:.1f}% | Expires in {hours:.1f}h | Return: {expected_return:.1f}%"
        )

        return MarketOpportunity(
            market_id=market.id,
            question=market.question,
            outcome=outcome,
            current_price=price,
            predicted_probability=self._config.predicted_probability,
            confidence=min(confidence, self._config.max_confidence),
            expected_value=expected_return,
            risk_score=1.0 - price,
            signals=(
                f"Expiring in {hours:.1f} hours",
                price_note,
                f"Expected return: {expected_return:.1f}%",
            ),
            strategy_name=self.name,
        )
