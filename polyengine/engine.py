"""
Decision Engine

The composition root that wires together:
- Confidence and hybrid scoring
- The cached news signal service
- The enabled strategies
- The opportunity evaluator
- The index allocation calculator

Each call is a single synchronous pass over the providers' current
data; nothing is persisted between calls apart from the news cache.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import logging

from polyengine.config import EngineConfig, get_default_config
from polyengine.evaluation.evaluator import OpportunityEvaluator
from polyengine.index.allocation import IndexAllocationCalculator
from polyengine.models import (
    AllocationResult,
    IndexComposition,
    MarketOpportunity,
    Position,
    RebalanceOrder,
    TradingDecision,
)
from polyengine.news.service import NewsSignalService
from polyengine.news.sources import NewsProvider
from polyengine.providers.gamma import MarketProvider
from polyengine.providers.spmc import IndexProvider
from polyengine.scoring.confidence import ConfidenceScorer, RiskContext
from polyengine.scoring.hybrid import HybridConfidenceScorer
from polyengine.strategies.base import StrategyManager
from polyengine.strategies.factory import create_strategies
from polyengine.strategies.index import IndexStrategy

logger = logging.getLogger(__name__)

Positions = Union[Mapping[str, Position], Iterable[Position], None]


@dataclass
class EngineStats:
    """Counters for the engine session."""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    scans: int = 0
    opportunities_found: int = 0
    decisions_made: int = 0
    trades_approved: int = 0
    trades_rejected: int = 0
    trades_capped: int = 0
    rebalances_planned: int = 0
    rebalance_orders: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "runtime_seconds": (datetime.now(timezone.utc) - self.started_at).total_seconds(),
            "scans": self.scans,
            "opportunities_found": self.opportunities_found,
            "decisions_made": self.decisions_made,
            "trades_approved": self.trades_approved,
            "trades_rejected": self.trades_rejected,
            "trades_capped": self.trades_capped,
            "rebalances_planned": self.rebalances_planned,
            "rebalance_orders": self.rebalance_orders,
        }


def positions_by_market(positions: Positions) -> Dict[str, Position]:
    """Normalize a position list or mapping to market_id -> Position."""
    if positions is None:
        return {}
    if isinstance(positions, Mapping):
        return dict(positions)
    return {p.market_id: p for p in positions}


class DecisionEngine:
    """
    Scans markets, ranks opportunities and turns them into decisions.

    Pipeline for decide():
    1. Every enabled strategy scans its markets
    2. Opportunities are deduplicated per market/outcome and ranked
       by expected_value * confidence
    3. The evaluator sizes and gates each one
    4. Approvals beyond the daily trade and open position limits are
       converted to rejections
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        market_provider: Optional[MarketProvider] = None,
        news_provider: Optional[NewsProvider] = None,
        index_provider: Optional[IndexProvider] = None,
    ):
        """
        Initialize the decision engine.

        Args:
            config: Engine configuration
            market_provider: Market snapshot source
            news_provider: Article source (None = neutral news)
            index_provider: Index composition source
        """
        self._config = config or get_default_config()
        cfg = self._config

        self.scorer = ConfidenceScorer(cfg.confidence)
        self.hybrid_scorer = HybridConfidenceScorer(cfg.hybrid)
        self.news_service = NewsSignalService(news_provider, cfg.news)
        self.evaluator = OpportunityEvaluator(cfg.trading, self.scorer)
        self.calculator = IndexAllocationCalculator(cfg.allocation)
        self.strategies = StrategyManager(create_strategies(
            cfg,
            market_provider=market_provider,
            news_service=self.news_service,
            hybrid_scorer=self.hybrid_scorer,
            index_provider=index_provider,
            calculator=self.calculator,
        ))
        self.stats = EngineStats()

        logger.info(
            f"Decision engine ready with {len(self.strategies.enabled_strategies)} strategies"
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    def scan(
        self,
        open_positions: Positions = None,
        available_balance: Optional[Decimal] = None,
    ) -> List[MarketOpportunity]:
        """
        Ranked opportunities across all enabled strategies.

        Args:
            open_positions: Held positions (list or market_id mapping)
            available_balance: Free capital, used by the index strategy
        """
        held = positions_by_market(open_positions)
        if available_balance is not None:
            for strategy in self.strategies.strategies:
                if isinstance(strategy, IndexStrategy):
                    strategy.set_available_balance(available_balance)

        found = self.strategies.find_all(held)

        best: Dict[Tuple[str, str], MarketOpportunity] = {}
        for opp in found:
            key = (opp.market_id, opp.outcome)
            current = best.get(key)
            if current is None or opp.rank_score > current.rank_score:
                best[key] = opp

        ranked = sorted(best.values(), key=lambda o: o.rank_score, reverse=True)

        self.stats.scans += 1
        self.stats.opportunities_found += len(ranked)
        logger.info(f"Scan found {len(ranked)} opportunities ({len(found)} before deduplication)")
        return ranked

    def decide(
        self,
        open_positions: Positions = None,
        portfolio_value: Optional[Decimal] = None,
        available_balance: Optional[Decimal] = None,
    ) -> List[TradingDecision]:
        """
        Evaluate every ranked opportunity.

        With portfolio_value supplied, each evaluation also runs the
        confidence scorer's risk adjustment for that portfolio.
        """
        held = positions_by_market(open_positions)
        opportunities = self.scan(held, available_balance)

        trading = self._config.trading
        slots = min(trading.max_daily_trades, max(0, trading.max_open_positions - len(held)))

        decisions: List[TradingDecision] = []
        approved = 0
        for opp in opportunities:
            context = None
            if portfolio_value is not None:
                context = RiskContext(
                    position_size=self.evaluator.position_size(opp),
                    portfolio_value=portfolio_value,
                    existing_positions=len(held),
                )
            decision = self.evaluator.evaluate(opp, context)

            if decision.should_trade:
                if approved >= slots:
                    decision = replace(
                        decision,
                        should_trade=False,
                        size=Decimal("0"),
                        reasoning=f"{decision.reasoning}. Trade limit reached",
                    )
                    self.stats.trades_capped += 1
                else:
                    approved += 1

            if decision.should_trade:
                self.stats.trades_approved += 1
            else:
                self.stats.trades_rejected += 1
            decisions.append(decision)

        self.stats.decisions_made += len(decisions)
        logger.info(f"Approved {approved} of {len(decisions)} opportunities")
        return decisions

    def plan_rebalance(
        self,
        index: IndexComposition,
        positions: Positions,
        available_balance: Decimal,
        market_prices: Optional[Mapping[str, float]] = None,
    ) -> Tuple[AllocationResult, List[RebalanceOrder]]:
        """
        Allocation targets and orders to bring positions in line with index.

        No orders are generated when the portfolio does not need a
        rebalance.
        """
        held = list(positions_by_market(positions).values())
        available = Decimal(str(available_balance))
        total = available + sum((Decimal(str(p.amount)) for p in held), Decimal("0"))

        result = self.calculator.calculate_allocations(index, total, available, held)
        self.stats.rebalances_planned += 1

        if not result.needs_rebalance:
            logger.info("Portfolio is balanced, no trades needed")
            return result, []

        orders = self.calculator.generate_rebalance_orders(
            result.allocations, available, market_prices=market_prices,
        )
        self.stats.rebalance_orders += len(orders)
        logger.info(self.calculator.allocation_summary(result.allocations))
        return result, orders
