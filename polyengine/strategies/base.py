"""
Strategy Base Classes

Every strategy turns market snapshots into MarketOpportunity records;
none of them size or place trades.

Key design:
- Strategies produce OPPORTUNITIES, not orders
- Opportunities are gated and sized by the OpportunityEvaluator
- A strategy never reports a market already in open_positions
  (the index strategy is the one exception: it manages held positions)
- A failure on one market is logged and skipped, never raised
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional
import logging

from polyengine.models import MarketOpportunity, MarketSnapshot, Position
from polyengine.providers.gamma import MarketProvider

logger = logging.getLogger(__name__)

# Risk score components
LOW_VOLUME = 50_000
LOW_VOLUME_RISK = 0.3
SHORT_EXPIRY_HOURS = 24
SHORT_EXPIRY_RISK = 0.3
SMALL_EDGE = 0.1
SMALL_EDGE_RISK = 0.4


class BaseStrategy(ABC):
    """
    Abstract base class for all trading strategies.

    Subclasses must implement:
    - find_opportunities(): Scan the strategy's markets
    - analyze_market(): Analyze a single market snapshot

    Shared helpers cover market discovery, fetching, the per-market
    scan loop and the risk score.
    """

    def __init__(
        self,
        name: str,
        description: str,
        config: Any,
        market_provider: Optional[MarketProvider] = None,
        max_workers: int = 1,
    ):
        self._name = name
        self._description = description
        self._config = config
        self._enabled = getattr(config, "enabled", True)
        self._market_provider = market_provider
        self._max_workers = max_workers

    @property
    def name(self) -> str:
        """Strategy identifier."""
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def config(self) -> Any:
        return self._config

    @property
    def enabled(self) -> bool:
        """Whether strategy is active."""
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_active(self) -> bool:
        return self._enabled

    @abstractmethod
    def find_opportunities(self, open_positions: Mapping[str, Position]) -> List[MarketOpportunity]:
        """
        Scan this strategy's markets.

        Args:
            open_positions: Held positions keyed by market id

        Returns:
            Opportunities found (may be empty)
        """
        pass

    @abstractmethod
    def analyze_market(self, market: MarketSnapshot) -> List[MarketOpportunity]:
        """Opportunities for one market snapshot."""
        pass

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _market_ids(self) -> List[str]:
        """
        Configured watchlist, plus provider discovery when the watchlist
        is empty or trending markets are requested. Order preserved,
        duplicates removed.
        """
        ids = list(getattr(self._config, "market_ids", ()) or ())
        discover = not ids or getattr(self._config, "include_trending", False)

        if discover and self._market_provider is not None:
            try:
                ids.extend(self._market_provider.list_market_ids(
                    limit=getattr(self._config, "discovery_limit", 20),
                    min_volume=getattr(self._config, "discovery_min_volume", 0),
                ))
            except Exception as e:
                logger.error(f"{self.name}: market discovery failed: {e}")

        return list(dict.fromkeys(ids))

    def _fetch_market(self, market_id: str) -> Optional[MarketSnapshot]:
        """Market snapshot, or None when unavailable."""
        if self._market_provider is None:
            return None
        try:
            return self._market_provider.get_market(market_id)
        except Exception as e:
            logger.error(f"Error fetching market {market_id}: {e}")
            return None

    def _analyze_id(self, market_id: str) -> List[MarketOpportunity]:
        market = self._fetch_market(market_id)
        if market is None:
            logger.debug(f"Market {market_id[:10]}... unavailable, skipping")
            return []
        try:
            return self.analyze_market(market)
        except Exception as e:
            logger.error(f"{self.name}: error analyzing market {market_id}: {e}")
            return []

    def _scan(
        self,
        market_ids: Iterable[str],
        open_positions: Mapping[str, Position],
    ) -> List[MarketOpportunity]:
        """Analyze every market not already held, in market order."""
        pending = []
        for market_id in market_ids:
            if market_id in open_positions:
                logger.debug(f"Skipping {market_id[:10]}... - already have position")
                continue
            pending.append(market_id)

        if self._max_workers > 1 and len(pending) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                results = list(pool.map(self._analyze_id, pending))
        else:
            results = [self._analyze_id(market_id) for market_id in pending]

        return [opp for batch in results for opp in batch]

    @staticmethod
    def _risk_score(market: MarketSnapshot, edge: float, now: Optional[datetime] = None) -> float:
        """0 (safe) to 1 (risky) from volume, time to expiry and edge size."""
        risk = 0.0
        if market.volume_24h < LOW_VOLUME:
            risk += LOW_VOLUME_RISK
        hours = market.hours_to_expiry(now)
        if hours is not None and hours < SHORT_EXPIRY_HOURS:
            risk += SHORT_EXPIRY_RISK
        if edge < SMALL_EDGE:
            risk += SMALL_EDGE_RISK
        return min(risk, 1.0)

    def __repr__(self) -> str:
        status = "enabled" if self._enabled else "disabled"
        return f"{self.__class__.__name__}(name={self._name}, {status})"


class StrategyManager:
    """
    Registry of opportunity generators, scanned together by the engine.

    Strategy names are unique keys for lookup and removal.
    """

    def __init__(self, strategies: Optional[Iterable[BaseStrategy]] = None):
        self._strategies: List[BaseStrategy] = list(strategies or [])

    def add_strategy(self, strategy: BaseStrategy) -> None:
        """Register a strategy; it joins the next find_all() pass if active."""
        self._strategies.append(strategy)

    def remove_strategy(self, name: str) -> bool:
        """Unregister the strategy called `name`. False when none matched."""
        for i, s in enumerate(self._strategies):
            if s.name == name:
                self._strategies.pop(i)
                return True
        return False

    def get_strategy(self, name: str) -> Optional[BaseStrategy]:
        """Registered strategy called `name`, or None."""
        for s in self._strategies:
            if s.name == name:
                return s
        return None

    @property
    def strategies(self) -> List[BaseStrategy]:
        """Snapshot of the registry, enabled or not."""
        return list(self._strategies)

    @property
    def enabled_strategies(self) -> List[BaseStrategy]:
        """Strategies that find_all() will scan."""
        return [s for s in self._strategies if s.is_active()]

    def find_all(self, open_positions: Mapping[str, Position]) -> List[MarketOpportunity]:
        """
        Run all enabled strategies.

        Returns all opportunities (may be empty).
        """
        opportunities: List[MarketOpportunity] = []
        for strategy in self.enabled_strategies:
            try:
                found = strategy.find_opportunities(open_positions)
                opportunities.extend(found)
            except Exception as e:
                # Log but don't crash on strategy errors
                logger.error(f"Strategy {strategy.name} error: {e}")
        return opportunities
