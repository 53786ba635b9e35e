"""
Prediction Market Decision Engine

Decides whether to trade a prediction market, which outcome, how much
capital to commit and how to sequence index rebalance orders.

Components:
- config: Validated configuration dataclasses
- models: Immutable value records passed between stages
- news: Keyword extraction and cached news signal fusion
- scoring: Multi-factor confidence and hybrid price/news scoring
- strategies: Threshold, interactive, expiring-markets and index strategies
- evaluation: Kelly sizing and trade gating
- index: Index allocation and rebalance order generation
- providers: Gamma market and SPMC index adapters
- engine: Composition root
"""

from polyengine.config import (
    EngineConfig,
    ConfidenceConfig,
    NewsConfig,
    HybridScoringConfig,
    ThresholdConfig,
    InteractiveConfig,
    ExpiringMarketsConfig,
    IndexStrategyConfig,
    TradingConfig,
    AllocationConfig,
    get_default_config,
    get_aggressive_config,
    get_conservative_config,
)
from polyengine.models import (
    MarketSnapshot,
    NewsSignal,
    MarketOpportunity,
    TradingDecision,
    Position,
    IndexComposition,
    IndexMember,
    AllocationTarget,
    AllocationResult,
    RebalanceOrder,
)
from polyengine.engine import DecisionEngine, EngineStats
from polyengine.evaluation.evaluator import OpportunityEvaluator
from polyengine.index.allocation import IndexAllocationCalculator
from polyengine.news.service import NewsSignalService
from polyengine.scoring.confidence import ConfidenceScorer
from polyengine.scoring.hybrid import HybridConfidenceScorer
from polyengine.strategies.base import BaseStrategy, StrategyManager

__version__ = "1.0.0"
__all__ = [
    # Config
    "EngineConfig",
    "ConfidenceConfig",
    "NewsConfig",
    "HybridScoringConfig",
    "ThresholdConfig",
    "InteractiveConfig",
    "ExpiringMarketsConfig",
    "IndexStrategyConfig",
    "TradingConfig",
    "AllocationConfig",
    "get_default_config",
    "get_aggressive_config",
    "get_conservative_config",
    # Models
    "MarketSnapshot",
    "NewsSignal",
    "MarketOpportunity",
    "TradingDecision",
    "Position",
    "IndexComposition",
    "IndexMember",
    "AllocationTarget",
    "AllocationResult",
    "RebalanceOrder",
    # Engine
    "DecisionEngine",
    "EngineStats",
    # Components
    "OpportunityEvaluator",
    "IndexAllocationCalculator",
    "NewsSignalService",
    "ConfidenceScorer",
    "HybridConfidenceScorer",
    "BaseStrategy",
    "StrategyManager",
]
