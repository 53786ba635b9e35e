"""
Decision Engine Data Model

Plain value records passed between the engine stages:

- MarketSnapshot: per-fetch view of a market (never mutated)
- NewsArticle / ScoredArticle / NewsSignal: news inputs and the fused signal
- MarketOpportunity: candidate trade produced by a strategy
- TradingDecision: final verdict from the opportunity evaluator
- Position: read-only view of a held position
- IndexMember / IndexComposition: external index target weights
- AllocationTarget / AllocationResult / RebalanceOrder: index rebalancing

Probabilities, prices and confidences are floats in [0, 1].
Dollar amounts are Decimal.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

YES = "YES"
NO = "NO"

BUY = "BUY"
SELL = "SELL"
HOLD = "HOLD"

BULLISH = "bullish"
BEARISH = "bearish"
NEUTRAL = "neutral"

POSITIVE = "positive"
NEGATIVE = "negative"


def complement_outcome(outcome: str) -> str:
    """YES <-> NO; any other label is returned unchanged."""
    if outcome == YES:
        return NO
    if outcome == NO:
        return YES
    return outcome


@dataclass(frozen=True, slots=True)
class MarketSnapshot:
    """
    Immutable view of a binary market at fetch time.

    outcomes and prices are parallel tuples; prices are implied
    probabilities that sum to roughly 1.
    """
    id: str
    question: str
    outcomes: Tuple[str, ...] = (YES, NO)
    prices: Tuple[float, ...] = ()
    volume_24h: float = 0.0
    end_date: Optional[datetime] = None
    rules: Optional[str] = None

    def price_for(self, index: int) -> float:
        """Price of outcome `index`, inferring the other side of a binary market."""
        if index < len(self.prices):
            return self.prices[index]
        if len(self.outcomes) == 2 and len(self.prices) == 1:
            return 1.0 - self.prices[0]
        return 0.5

    def hours_to_expiry(self, now: Optional[datetime] = None) -> Optional[float]:
        if self.end_date is None:
            return None
        # Naive timestamps are UTC
        end = self.end_date if self.end_date.tzinfo else self.end_date.replace(tzinfo=timezone.utc)
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return (end - now).total_seconds() / 3600

    def days_to_resolution(self, now: Optional[datetime] = None) -> Optional[float]:
        hours = self.hours_to_expiry(now)
        return None if hours is None else hours / 24

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "outcomes": list(self.outcomes),
            "prices": list(self.prices),
            "volume_24h": self.volume_24h,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


@dataclass(frozen=True, slots=True)
class NewsArticle:
    """Raw article as returned by a news provider."""
    title: str
    description: str = ""
    url: str = ""
    source: str = ""
    published_at: Optional[datetime] = None

    @property
    def text(self) -> str:
        return f"{self.title} {self.description}"


@dataclass(frozen=True, slots=True)
class ScoredArticle:
    """Article with sentiment, relevance and matched categories attached."""
    title: str
    description: str
    url: str
    source: str
    published_at: Optional[datetime]
    sentiment: str                        # positive / negative / neutral
    relevance_score: float
    categories: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "source": self.source,
            "url": self.url,
            "sentiment": self.sentiment,
            "relevance_score": round(self.relevance_score, 3),
            "categories": list(self.categories),
        }


@dataclass(frozen=True, slots=True)
class NewsSignal:
    """Aggregated news opinion about a market's topic."""
    market_question: str
    signal: str = NEUTRAL                 # bullish / bearish / neutral
    confidence: float = 0.0
    articles: Tuple[ScoredArticle, ...] = ()

    @classmethod
    def empty(cls, market_question: str) -> "NewsSignal":
        return cls(market_question=market_question, signal=NEUTRAL, confidence=0.0, articles=())

    @property
    def has_articles(self) -> bool:
        return len(self.articles) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_question": self.market_question,
            "signal": self.signal,
            "confidence": round(self.confidence, 4),
            "articles": [a.to_dict() for a in self.articles],
        }


@dataclass(frozen=True, slots=True)
class MarketOpportunity:
    """
    A candidate trade produced by a strategy.

    expected_value is in percentage points; risk_score is in [0, 1]
    with higher meaning riskier.
    """
    market_id: str
    question: str
    outcome: str
    current_price: float
    predicted_probability: float
    confidence: float
    expected_value: float
    risk_score: float
    signals: Tuple[str, ...] = ()
    strategy_name: str = ""
    side: str = BUY

    def __repr__(self) -> str:
        return (
            f"Opportunity({self.strategy_name}: {self.side} {self.outcome} "
            f"@ {self.current_price:.3f}, conf={self.confidence:.2f}, ev={self.expected_value:.2f})"
        )

    @property
    def edge(self) -> float:
        return abs(self.predicted_probability - self.current_price)

    @property
    def rank_score(self) -> float:
        return self.expected_value * self.confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_id": self.market_id,
            "question": self.question,
            "outcome": self.outcome,
            "side": self.side,
            "current_price": self.current_price,
            "predicted_probability": self.predicted_probability,
            "confidence": round(self.confidence, 4),
            "expected_value": round(self.expected_value, 4),
            "risk_score": round(self.risk_score, 4),
            "signals": list(self.signals),
            "strategy": self.strategy_name,
        }


@dataclass(frozen=True, slots=True)
class TradingDecision:
    """Final trade / no-trade verdict with size in USD."""
    should_trade: bool
    market_id: str
    outcome: str
    size: Decimal
    price: float
    confidence: float
    reasoning: str
    side: str = BUY
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        verdict = "TRADE" if self.should_trade else "SKIP"
        return (
            f"Decision({verdict} {self.side} ${self.size} {self.outcome} "
            f"@ {self.price:.3f}, conf={self.confidence:.2f})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "should_trade": self.should_trade,
            "market_id": self.market_id,
            "outcome": self.outcome,
            "side": self.side,
            "size": float(self.size),
            "price": self.price,
            "confidence": round(self.confidence, 4),
            "reasoning": self.reasoning,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Position:
    """Held position supplied by the portfolio collaborator (read-only)."""
    market_id: str
    outcome_id: str
    amount: Decimal                       # Current USD value held
    avg_price: float = 0.0
    title: Optional[str] = None


@dataclass(frozen=True, slots=True)
class IndexMember:
    market_id: str
    weight: float
    title: Optional[str] = None


@dataclass(frozen=True, slots=True)
class IndexComposition:
    """External index: market -> target weight (not necessarily normalized)."""
    index_id: str
    members: Tuple[IndexMember, ...] = ()
    name: str = ""

    @property
    def total_weight(self) -> float:
        return sum(m.weight for m in self.members if m.weight > 0)

    def normalized(self) -> "IndexComposition":
        """Copy with non-positive weights dropped and the rest summing to 1.0."""
        total = self.total_weight
        if total <= 0:
            return IndexComposition(self.index_id, (), self.name)
        members = tuple(
            IndexMember(m.market_id, m.weight / total, m.title)
            for m in self.members
            if m.weight > 0
        )
        return IndexComposition(self.index_id, members, self.name)

    def weight_of(self, market_id: str) -> float:
        for m in self.normalized().members:
            if m.market_id == market_id:
                return m.weight
        return 0.0


@dataclass(frozen=True, slots=True)
class AllocationTarget:
    """
    Target vs current dollar allocation for one market.

    action is HOLD iff |delta| < min_position_size; markets held but
    absent from the index always carry weight 0 and action SELL.
    """
    market_id: str
    weight: float
    target_amount: Decimal
    current_amount: Decimal
    delta: Decimal
    action: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_id": self.market_id,
            "weight": round(self.weight, 6),
            "target_amount": float(self.target_amount),
            "current_amount": float(self.current_amount),
            "delta": float(self.delta),
            "action": self.action,
        }


@dataclass(frozen=True, slots=True)
class AllocationResult:
    allocations: Tuple[AllocationTarget, ...]
    total_value: Decimal
    needs_rebalance: bool
    tracking_error: float
    available_balance: Decimal = Decimal("0")

    @property
    def actionable(self) -> Tuple[AllocationTarget, ...]:
        return tuple(a for a in self.allocations if a.action != HOLD)


@dataclass(frozen=True, slots=True)
class RebalanceOrder:
    """Directive to move a dollar amount in one market toward its target."""
    market_id: str
    side: str
    amount: Decimal
    reason: str
    outcome_id: str = YES
    estimated_shares: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"RebalanceOrder({self.side} ${self.amount} {self.market_id[:10]}: {self.reason})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_id": self.market_id,
            "outcome_id": self.outcome_id,
            "side": self.side,
            "amount": float(self.amount),
            "estimated_shares": float(self.estimated_shares) if self.estimated_shares is not None else None,
            "reason": self.reason,
        }
