"""
Index-Following Strategy

Does not score markets. It diffs the external index's target
allocations against the open positions and reports:

- a BUY or SELL for every member whose relative deviation from its
  target exceeds rebalance_threshold
- an EXIT (SELL) for every held position that is no longer in the index

These are the only opportunities reported for markets already held.
"""

from decimal import Decimal
from typing import List, Mapping, Optional
import logging

from polyengine.config import IndexStrategyConfig
from polyengine.index.allocation import IndexAllocationCalculator
from polyengine.models import (
    BUY,
    SELL,
    AllocationTarget,
    MarketOpportunity,
    MarketSnapshot,
    Position,
)
from polyengine.providers.gamma import MarketProvider
from polyengine.providers.spmc import IndexProvider
from polyengine.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)


class IndexStrategy(BaseStrategy):
    """
    Follows an external index composition.

    Capital not yet deployed is supplied with set_available_balance();
    the total balance is that plus the value of every open position.
    """

    def __init__(
        self,
        config: Optional[IndexStrategyConfig] = None,
        index_provider: Optional[IndexProvider] = None,
        market_provider: Optional[MarketProvider] = None,
        calculator: Optional[IndexAllocationCalculator] = None,
        max_workers: int = 1,
    ):
        super().__init__(
            name="index",
            description="Follows index allocations and maintains portfolio alignment",
            config=config or IndexStrategyConfig(),
            market_provider=market_provider,
            max_workers=max_workers,
        )
        self._index_provider = index_provider
        self._calculator = calculator or IndexAllocationCalculator()
        self._available_balance = Decimal("0")

    @property
    def available_balance(self) -> Decimal:
        return self._available_balance

    def set_available_balance(self, amount: Decimal) -> None:
        self._available_balance = Decimal(str(amount))

    def analyze_market(self, market: MarketSnapshot) -> List[MarketOpportunity]:
        # Index following works on the whole portfolio, not single markets
        return []

    def find_opportunities(self, open_positions: Mapping[str, Position]) -> List[MarketOpportunity]:
        if not self.is_active() or self._index_provider is None:
            return []

        cfg = self._config
        logger.info("Index strategy: checking for rebalancing opportunities")

        index = self._index_provider.get_index(cfg.index_id)
        if index is None:
            logger.warning(f"Index strategy: could not fetch index {cfg.index_id}")
            return []

        positions = list(open_positions.values())
        total_balance = self._available_balance + sum(
            (Decimal(str(p.amount)) for p in positions), Decimal("0")
        )
        result = self._calculator.calculate_allocations(
            index, total_balance, self._available_balance, positions,
        )

        opportunities: List[MarketOpportunity] = []
        for alloc in result.allocations:
            if alloc.weight == 0:
                opportunity = self._exit(alloc, open_positions.get(alloc.market_id))
            else:
                opportunity = self._rebalance(alloc)
            if opportunity is not None:
                opportunities.append(opportunity)

        logger.info(f"Found {len(opportunities)} index rebalancing opportunities")
        return opportunities

    @staticmethod
    def deviation(alloc: AllocationTarget) -> float:
        """Relative gap between target and current allocation."""
        target = alloc.target_amount or Decimal("1")
        return float(abs(alloc.target_amount - alloc.current_amount) / target)

    def _rebalance(self, alloc: AllocationTarget) -> Optional[MarketOpportunity]:
        cfg = self._config
        if self.deviation(alloc) <= cfg.rebalance_threshold:
            return None

        market = self._fetch_market(alloc.market_id)
        if market is None:
            return None

        side = BUY if alloc.delta > 0 else SELL
        price = market.price_for(0)
        logger.info(f"Index opportunity: {market.question} - {side} ${abs(alloc.delta):.2f}")

        return MarketOpportunity(
            market_id=alloc.market_id,
            question=market.question,
            outcome=self._calculator.config.outcome_id,
            current_price=price,
            predicted_probability=price,  # Follows the index, no prediction
            confidence=cfg.rebalance_confidence,
            expected_value=0.0,
            risk_score=0.0,
            signals=(
                f"Index rebalancing: {side} ${abs(alloc.delta):.2f} to match "
                f"{cfg.index_id} allocation ({alloc.weight * 100:.1f}% target)",
            ),
            strategy_name=self.name,
            side=side,
        )

    def _exit(self, alloc: AllocationTarget, position: Optional[Position]) -> Optional[MarketOpportunity]:
        market = self._fetch_market(alloc.market_id)
        if market is None:
            return None

        outcome = position.outcome_id if position else self._calculator.config.outcome_id
        logger.info(f"Index exit opportunity: {market.question} - SELL entire position (not in index)")

        return MarketOpportunity(
            market_id=alloc.market_id,
            question=market.question,
            outcome=outcome,
            current_price=market.price_for(0),
            predicted_probability=0.0,
            confidence=self._config.exit_confidence,
            expected_value=0.0,
            risk_score=0.0,
            signals=(f"Index rebalancing: EXIT position not in {self._config.index_id}",),
            strategy_name=self.name,
            side=SELL,
        )
