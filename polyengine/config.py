"""
Decision Engine Configuration

Immutable dataclass configuration for every stage of the engine:
confidence scoring, news analysis, hybrid scoring, the four strategies,
opportunity evaluation and index allocation.

All monetary values use Decimal for precision.
All configs are frozen (immutable) so one instance can be shared by
every component built for a scoring pass.
Environment variables are only read by EngineConfig.from_env().
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging
import math
import os

logger = logging.getLogger(__name__)

RECOMMENDATIONS = ("strong_yes", "yes", "neutral", "no", "strong_no")

# Factors the scorer knows how to compute from market data
NEWS_SENTIMENT = "newsSentiment"
MARKET_VOLUME = "marketVolume"
TIME_TO_RESOLUTION = "timeToResolution"
TECHNICAL_INDICATORS = "technicalIndicators"
SOCIAL_SENTIMENT = "socialSentiment"


# ---------------------------------------------------------------------------
# Confidence scoring
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ConfidenceBand:
    """Named score range (inclusive on both ends) mapped to a recommendation."""
    name: str
    min_score: int
    max_score: int
    recommendation: str
    description: str

    def __post_init__(self) -> None:
        if self.min_score > self.max_score:
            raise ValueError(f"band {self.name}: min_score {self.min_score} > max_score {self.max_score}")
        if self.recommendation not in RECOMMENDATIONS:
            raise ValueError(f"band {self.name}: unknown recommendation {self.recommendation}")

    def contains(self, score: float) -> bool:
        return self.min_score <= score <= self.max_score


@dataclass(frozen=True, slots=True)
class FactorWeight:
    name: str
    weight: float
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"factor {self.name} weight must be non-negative: {self.weight}")


@dataclass(frozen=True, slots=True)
class VolumeThreshold:
    level: str                  # high / medium / low / very_low
    min_volume: float           # 24h USD volume
    score: float
    description: str


@dataclass(frozen=True, slots=True)
class TimeUrgencyThreshold:
    urgency: str                # immediate / urgent / normal / distant
    max_days: float
    score: float
    description: str


@dataclass(frozen=True, slots=True)
class EdgeThreshold:
    level: str                  # strong / good / moderate / weak
    min_edge: float
    min_confidence: float       # on the 0-100 scale
    description: str


@dataclass(frozen=True, slots=True)
class RiskAdjustment:
    factor: str
    threshold: float
    adjustment: float           # multiplier applied when the rule matches
    description: str

    def __post_init__(self) -> None:
        if not (0 < self.adjustment <= 1):
            raise ValueError(f"risk adjustment {self.factor} must be in (0, 1]: {self.adjustment}")


DEFAULT_CONFIDENCE_BANDS: Tuple[ConfidenceBand, ...] = (
    ConfidenceBand("very_high", 85, 100, "strong_yes", "Very high confidence - strong trading signal"),
    ConfidenceBand("high", 70, 84, "yes", "High confidence - good trading opportunity"),
    ConfidenceBand("moderate", 50, 69, "neutral", "Moderate confidence - consider other factors"),
    ConfidenceBand("low", 30, 49, "no", "Low confidence - avoid trading"),
    ConfidenceBand("very_low", 0, 29, "strong_no", "Very low confidence - strong avoid signal"),
)

DEFAULT_FACTOR_WEIGHTS: Tuple[FactorWeight, ...] = (
    FactorWeight(NEWS_SENTIMENT, 0.40),
    FactorWeight(MARKET_VOLUME, 0.30),
    FactorWeight(TIME_TO_RESOLUTION, 0.30),
    FactorWeight(TECHNICAL_INDICATORS, 0.0, enabled=False),
    FactorWeight(SOCIAL_SENTIMENT, 0.0, enabled=False),
)

DEFAULT_VOLUME_THRESHOLDS: Tuple[VolumeThreshold, ...] = (
    VolumeThreshold("high", 100_000, 0.90, "$100k+ daily volume - excellent liquidity"),
    VolumeThreshold("medium", 25_000, 0.70, "$25k-100k daily volume - good liquidity"),
    VolumeThreshold("low", 5_000, 0.50, "$5k-25k daily volume - acceptable liquidity"),
    VolumeThreshold("very_low", 0, 0.30, "Under $5k daily volume - poor liquidity"),
)

DEFAULT_TIME_THRESHOLDS: Tuple[TimeUrgencyThreshold, ...] = (
    TimeUrgencyThreshold("immediate", 1, 0.95, "Resolution within 24 hours - maximum clarity"),
    TimeUrgencyThreshold("urgent", 7, 0.85, "Resolution within a week - high clarity"),
    TimeUrgencyThreshold("normal", 30, 0.70, "Resolution within a month - moderate clarity"),
    TimeUrgencyThreshold("distant", math.inf, 0.40, "Resolution beyond a month - low clarity"),
)

DEFAULT_EDGE_THRESHOLDS: Tuple[EdgeThreshold, ...] = (
    EdgeThreshold("strong", 0.15, 80, "15%+ edge with high confidence"),
    EdgeThreshold("good", 0.08, 70, "8%+ edge with good confidence"),
    EdgeThreshold("moderate", 0.05, 60, "5%+ edge with moderate confidence"),
    EdgeThreshold("weak", 0.03, 50, "3%+ edge - minimum threshold"),
)

DEFAULT_RISK_ADJUSTMENTS: Tuple[RiskAdjustment, ...] = (
    RiskAdjustment("large_position", 0.20, 0.90, "Position > 20% of portfolio"),
    RiskAdjustment("portfolio_concentration", 3, 0.85, "3+ existing positions"),
    RiskAdjustment("high_volatility", 0.30, 0.92, "Market volatility > 30%"),
    RiskAdjustment("low_liquidity", 10_000, 0.88, "Volume < $10k"),
    RiskAdjustment("news_uncertainty", 0.5, 0.95, "Mixed news signals"),
)


@dataclass(frozen=True, slots=True)
class ConfidenceConfig:
    """
    Configuration for the multi-factor confidence scorer.

    Bands must cover every integer score from 0 to 100 exactly once.
    Enabled factor weights are expected to sum to 1.0; use normalized()
    to rescale them (the scorer does this on construction).
    """
    bands: Tuple[ConfidenceBand, ...] = DEFAULT_CONFIDENCE_BANDS
    factor_weights: Tuple[FactorWeight, ...] = DEFAULT_FACTOR_WEIGHTS
    volume_thresholds: Tuple[VolumeThreshold, ...] = DEFAULT_VOLUME_THRESHOLDS
    time_thresholds: Tuple[TimeUrgencyThreshold, ...] = DEFAULT_TIME_THRESHOLDS
    edge_thresholds: Tuple[EdgeThreshold, ...] = DEFAULT_EDGE_THRESHOLDS
    risk_adjustments: Tuple[RiskAdjustment, ...] = DEFAULT_RISK_ADJUSTMENTS

    min_confidence_threshold: float = 70     # Min score to consider trading
    max_confidence_score: float = 95         # Never claim 100% certainty
    enable_risk_adjustment: bool = True

    def __post_init__(self) -> None:
        """Validate band layout and score limits."""
        if not self.bands:
            raise ValueError("at least one confidence band is required")
        ordered = sorted(self.bands, key=lambda b: b.min_score)
        if ordered[0].min_score != 0:
            raise ValueError(f"bands must start at 0, lowest starts at {ordered[0].min_score}")
        if ordered[-1].max_score != 100:
            raise ValueError(f"bands must end at 100, highest ends at {ordered[-1].max_score}")
        for lower, upper in zip(ordered, ordered[1:]):
            if upper.min_score != lower.max_score + 1:
                raise ValueError(
                    f"bands {lower.name} and {upper.name} must be contiguous and non-overlapping"
                )
        if not (0 < self.max_confidence_score <= 100):
            raise ValueError(f"max_confidence_score must be 0-100: {self.max_confidence_score}")
        if not (0 <= self.min_confidence_threshold <= 100):
            raise ValueError(f"min_confidence_threshold must be 0-100: {self.min_confidence_threshold}")
        if not self.volume_thresholds:
            raise ValueError("at least one volume threshold is required")
        if not self.time_thresholds:
            raise ValueError("at least one time urgency threshold is required")

    @property
    def enabled_factors(self) -> List[FactorWeight]:
        return [f for f in self.factor_weights if f.enabled]

    def normalized(self) -> "ConfidenceConfig":
        """Return a copy whose enabled factor weights sum to 1.0."""
        total = sum(f.weight for f in self.enabled_factors)
        if total <= 0 or abs(total - 1.0) <= 0.001:
            return self
        logger.warning(f"Factor weights sum to {total:.3f}, normalizing to 1.0")
        weights = tuple(
            replace(f, weight=f.weight / total) if f.enabled else f
            for f in self.factor_weights
        )
        return replace(self, factor_weights=weights)


# ---------------------------------------------------------------------------
# News analysis
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class NewsCategory:
    """Category of news with matching keywords and a relevance weight."""
    name: str
    keywords: Tuple[str, ...]
    weight: float = 1.0
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class NewsSourceConfig:
    """Article source credentials and per-request limits."""
    name: str
    api_key_env_var: str
    enabled: bool = True
    max_articles: int = 100


DEFAULT_NEWS_CATEGORIES: Tuple[NewsCategory, ...] = (
    NewsCategory("political", (
        "election", "president", "congress", "senate", "vote", "poll", "campaign",
        "trump", "biden", "desantis", "ukraine", "russia", "putin", "zelensky",
        "china", "taiwan", "israel", "gaza", "iran", "sanctions", "nato", "un",
        "diplomacy", "treaty", "ambassador", "summit", "g7", "g20",
    ), 1.2),
    NewsCategory("economic", (
        "fed", "federal reserve", "interest rate", "inflation", "recession",
        "gdp", "unemployment", "stock market", "crypto", "bitcoin", "ethereum",
        "earnings", "ipo", "merger", "acquisition", "bankruptcy", "bailout",
        "treasury", "bond", "yield", "dollar", "euro", "yen", "commodity",
        "oil price", "gold", "silver", "futures", "options", "derivatives",
    ), 1.1),
    NewsCategory("sports", (
        "nfl", "nba", "mlb", "nhl", "world cup", "olympics", "championship",
        "super bowl", "playoffs", "retirement", "injury", "trade", "draft",
        "soccer", "football", "basketball", "baseball", "hockey", "tennis",
        "golf", "boxing", "mma", "ufc", "formula 1", "nascar", "tournament",
    ), 0.9),
    NewsCategory("technology", (
        "ai", "artificial intelligence", "machine learning", "chatgpt", "llm",
        "tesla", "apple", "google", "microsoft", "amazon", "meta", "twitter",
        "spacex", "openai", "nvidia", "semiconductor", "chip", "quantum",
        "cybersecurity", "hack", "breach", "software", "hardware", "startup",
        "venture capital", "funding", "unicorn", "blockchain", "web3", "metaverse",
    ), 1.0),
    NewsCategory("climate_energy", (
        "climate change", "global warming", "hurricane", "earthquake", "wildfire",
        "flood", "drought", "oil", "gas", "renewable", "solar", "wind", "nuclear",
        "electric vehicle", "ev", "battery", "carbon", "emissions", "net zero",
        "paris agreement", "cop", "fossil fuel", "green energy", "sustainability",
    ), 0.8),
    NewsCategory("entertainment", (
        "movie", "film", "oscar", "grammy", "emmy", "box office", "streaming",
        "netflix", "disney", "hollywood", "celebrity", "music", "album", "tour",
        "concert", "festival", "broadway", "theater", "television", "series",
    ), 0.6),
    NewsCategory("health", (
        "covid", "pandemic", "vaccine", "fda", "cdc", "who", "drug", "pharmaceutical",
        "clinical trial", "hospital", "healthcare", "medicare", "medicaid", "insurance",
        "mental health", "epidemic", "outbreak", "treatment", "therapy", "diagnosis",
    ), 0.7),
)

DEFAULT_NEWS_SOURCES: Tuple[NewsSourceConfig, ...] = (
    NewsSourceConfig("NewsAPI", "NEWS_API_KEY", True, 100),
)

DEFAULT_POSITIVE_WORDS: Tuple[str, ...] = (
    "win", "success", "profit", "gain", "up", "rise", "increase", "surge",
    "breakthrough", "achievement", "victory", "positive", "growth", "record",
    "improve", "better", "exceed", "outperform", "rally", "boom", "bullish",
    "optimistic", "strong", "robust", "healthy", "advance", "recovery",
    "expansion", "upgrade", "benefit", "opportunity", "innovative", "leading",
)

DEFAULT_NEGATIVE_WORDS: Tuple[str, ...] = (
    "lose", "loss", "fail", "down", "fall", "decrease", "decline", "crash",
    "crisis", "defeat", "negative", "recession", "collapse", "plunge", "bearish",
    "worse", "underperform", "weak", "concern", "risk", "threat", "warning",
    "pessimistic", "vulnerable", "struggle", "deficit", "shortfall", "cut",
    "layoff", "bankruptcy", "default", "miss", "disappoint", "scandal",
)

DEFAULT_TOPIC_KEYWORDS: Tuple[str, ...] = (
    # Economic
    "recession", "inflation", "deflation", "growth", "gdp", "unemployment",
    "rate", "hike", "cut", "interest", "stimulus", "budget", "deficit",
    "trade", "tariff", "sanctions", "economy", "market", "stock", "crypto",
    # Political
    "election", "vote", "poll", "campaign", "president", "congress", "senate",
    "impeachment", "nomination", "confirmation", "legislation", "bill", "law",
    # Events
    "announce", "release", "report", "meeting", "summit", "conference",
    "decision", "ruling", "verdict", "approval", "rejection",
    # Outcomes
    "win", "lose", "pass", "fail", "approve", "reject", "confirm", "deny",
    "increase", "decrease", "rise", "fall", "exceed", "below", "above",
)


@dataclass(frozen=True, slots=True)
class NewsConfig:
    """
    Configuration for the news signal service.

    Categories drive article relevance, the word lists drive lexical
    sentiment, and topic keywords drive market keyword extraction.
    """
    categories: Tuple[NewsCategory, ...] = DEFAULT_NEWS_CATEGORIES
    sources: Tuple[NewsSourceConfig, ...] = DEFAULT_NEWS_SOURCES
    positive_words: Tuple[str, ...] = DEFAULT_POSITIVE_WORDS
    negative_words: Tuple[str, ...] = DEFAULT_NEGATIVE_WORDS
    topic_keywords: Tuple[str, ...] = DEFAULT_TOPIC_KEYWORDS

    relevance_threshold: float = 0.3          # Category relevance floor
    keyword_relevance_threshold: float = 0.3  # Market keyword overlap floor
    max_relevant_articles: int = 10
    max_signal_articles: int = 5
    signal_ratio_threshold: float = 0.6       # Weighted ratio needed for a direction
    neutral_confidence: float = 0.5
    article_bonus: float = 0.02               # Per surviving article
    max_article_bonus: float = 0.2
    max_confidence: float = 0.95
    search_days_back: int = 7
    cache_seconds: int = 1800
    max_cache_size: int = 100

    def __post_init__(self) -> None:
        """Validate thresholds."""
        if not (0 <= self.relevance_threshold <= 1):
            raise ValueError(f"relevance_threshold must be 0-1: {self.relevance_threshold}")
        if not (0 <= self.keyword_relevance_threshold <= 1):
            raise ValueError(f"keyword_relevance_threshold must be 0-1: {self.keyword_relevance_threshold}")
        if self.max_signal_articles > self.max_relevant_articles:
            raise ValueError("max_signal_articles must be <= max_relevant_articles")
        if self.max_cache_size <= 0:
            raise ValueError(f"max_cache_size must be positive: {self.max_cache_size}")
        if self.cache_seconds < 0:
            raise ValueError(f"cache_seconds must be non-negative: {self.cache_seconds}")

    @property
    def enabled_categories(self) -> List[NewsCategory]:
        return [c for c in self.categories if c.enabled]

    def source(self, name: str) -> Optional[NewsSourceConfig]:
        for s in self.sources:
            if s.name == name:
                return s
        return None


# ---------------------------------------------------------------------------
# Hybrid price + news scoring
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class HybridScoringConfig:
    """Thresholds for fusing price-edge confidence with news confidence."""
    min_price_confidence: float = 0.6
    min_news_confidence: float = 0.5
    min_combined_confidence: float = 0.7
    news_weight: float = 0.4
    base_confidence: float = 0.5
    edge_multiplier: float = 4.0              # Each 1% edge adds 4% confidence
    max_confidence: float = 0.95
    agreement_level: float = 0.7              # Both above this earns the bonus
    agreement_bonus: float = 1.10
    conflict_gap: float = 0.4
    conflict_penalty: float = 0.90
    neutral_news_penalty: float = 0.95
    strong_price_confidence: float = 0.85     # Price alone can approve a trade
    strong_news_confidence: float = 0.8
    min_supporting_articles: int = 3
    supporting_articles: int = 3

    def __post_init__(self) -> None:
        if not (0 <= self.news_weight <= 1):
            raise ValueError(f"news_weight must be 0-1: {self.news_weight}")
        if not (0 < self.max_confidence <= 1):
            raise ValueError(f"max_confidence must be 0-1: {self.max_confidence}")
        if self.conflict_gap <= 0:
            raise ValueError(f"conflict_gap must be positive: {self.conflict_gap}")

    @property
    def price_weight(self) -> float:
        return 1.0 - self.news_weight


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ThresholdConfig:
    """
    Threshold mispricing strategy.

    Buys an outcome priced below buy_threshold by more than min_edge, and
    buys NO when YES sits above sell_threshold by more than min_edge.
    """
    enabled: bool = True
    buy_threshold: float = 0.3
    sell_threshold: float = 0.7
    min_edge: float = 0.15
    use_news_signals: bool = True
    default_confidence: float = 0.8
    market_ids: Tuple[str, ...] = ()          # Watchlist, empty = discover
    include_trending: bool = False
    discovery_limit: int = 20
    discovery_min_volume: float = 50_000

    def __post_init__(self) -> None:
        if not (0 < self.buy_threshold < self.sell_threshold < 1):
            raise ValueError(
                f"thresholds must satisfy 0 < buy < sell < 1: {self.buy_threshold}, {self.sell_threshold}"
            )
        if self.min_edge < 0:
            raise ValueError(f"min_edge must be non-negative: {self.min_edge}")
        if not (0 <= self.default_confidence <= 1):
            raise ValueError(f"default_confidence must be 0-1: {self.default_confidence}")


@dataclass(frozen=True, slots=True)
class InteractiveConfig:
    """Multi-signal strategy combining price extremity, volume and news."""
    enabled: bool = True
    use_news_signals: bool = True
    min_confidence: float = 0.7
    price_edge_threshold: float = 0.15
    volume_threshold: float = 50_000
    sentiment_weight: float = 0.3
    price_weight: float = 0.4
    volume_weight: float = 0.3
    max_results: int = 10
    market_ids: Tuple[str, ...] = ()
    include_trending: bool = False
    discovery_limit: int = 50
    discovery_min_volume: float = 100_000

    def __post_init__(self) -> None:
        weights = (self.sentiment_weight, self.price_weight, self.volume_weight)
        if any(w < 0 for w in weights):
            raise ValueError(f"signal weights must be non-negative: {weights}")
        if sum(weights) <= 0:
            raise ValueError("at least one signal weight must be positive")
        if not (0 <= self.min_confidence <= 1):
            raise ValueError(f"min_confidence must be 0-1: {self.min_confidence}")
        if self.max_results <= 0:
            raise ValueError(f"max_results must be positive: {self.max_results}")


@dataclass(frozen=True, slots=True)
class ExpiringMarketsConfig:
    """Near-expiry markets where one outcome is priced as near-certain."""
    enabled: bool = True
    min_probability: float = 0.95
    max_hours_to_expiry: float = 48
    min_hours_to_expiry: float = 2
    min_volume: float = 10_000
    predicted_probability: float = 0.99
    max_confidence: float = 0.95
    market_ids: Tuple[str, ...] = ()
    include_trending: bool = False
    discovery_limit: int = 100
    discovery_min_volume: float = 0

    def __post_init__(self) -> None:
        if not (0.5 < self.min_probability <= 1):
            raise ValueError(f"min_probability must be in (0.5, 1]: {self.min_probability}")
        if self.max_hours_to_expiry <= 0:
            raise ValueError(f"max_hours_to_expiry must be positive: {self.max_hours_to_expiry}")
        if self.min_hours_to_expiry > self.max_hours_to_expiry:
            raise ValueError("min_hours_to_expiry must be <= max_hours_to_expiry")


@dataclass(frozen=True, slots=True)
class IndexStrategyConfig:
    """Index-following strategy (disabled until an index id is configured)."""
    enabled: bool = False
    index_id: str = ""
    rebalance_threshold: float = 0.05         # Relative deviation from target
    rebalance_confidence: float = 0.9
    exit_confidence: float = 0.95

    def __post_init__(self) -> None:
        if self.rebalance_threshold < 0:
            raise ValueError(f"rebalance_threshold must be non-negative: {self.rebalance_threshold}")
        if self.enabled and not self.index_id:
            raise ValueError("index_id is required when the index strategy is enabled")


# ---------------------------------------------------------------------------
# Evaluation and allocation
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TradingConfig:
    """
    Position sizing and trade gating.

    Position size is quarter Kelly of max_position_size, capped at
    risk_limit_per_trade and floored to whole dollars.
    """
    max_position_size: Decimal = Decimal("100")
    min_confidence_threshold: float = 0.7
    risk_limit_per_trade: Decimal = Decimal("50")
    kelly_fraction: Decimal = Decimal("0.25")
    min_expected_value: float = 5.0
    max_daily_trades: int = 10
    max_open_positions: int = 20

    def __post_init__(self) -> None:
        """Validate sizing limits."""
        if self.max_position_size <= Decimal("0"):
            raise ValueError(f"max_position_size must be positive: {self.max_position_size}")
        if not (0 <= self.min_confidence_threshold <= 1):
            raise ValueError(f"min_confidence_threshold must be 0-1: {self.min_confidence_threshold}")
        if self.risk_limit_per_trade <= Decimal("0") or self.risk_limit_per_trade > self.max_position_size:
            raise ValueError(
                f"risk_limit_per_trade must be positive and <= max_position_size: {self.risk_limit_per_trade}"
            )
        if not (Decimal("0") < self.kelly_fraction <= Decimal("1")):
            raise ValueError(f"kelly_fraction must be 0-1: {self.kelly_fraction}")
        if self.max_daily_trades <= 0:
            raise ValueError(f"max_daily_trades must be positive: {self.max_daily_trades}")
        if self.max_open_positions <= 0:
            raise ValueError(f"max_open_positions must be positive: {self.max_open_positions}")


@dataclass(frozen=True, slots=True)
class AllocationConfig:
    """Index allocation and rebalancing limits."""
    min_position_size: Decimal = Decimal("10")
    rebalance_threshold_pct: float = 5.0      # Tracking error that forces a rebalance
    outcome_id: str = "YES"                   # Index positions always hold YES

    def __post_init__(self) -> None:
        if self.min_position_size < Decimal("0"):
            raise ValueError(f"min_position_size must be non-negative: {self.min_position_size}")
        if self.rebalance_threshold_pct < 0:
            raise ValueError(f"rebalance_threshold_pct must be non-negative: {self.rebalance_threshold_pct}")


# ---------------------------------------------------------------------------
# Master config
# ---------------------------------------------------------------------------

# Strategy sets used by each agent persona when no explicit flags are set
CHARACTER_STRATEGIES: Dict[str, Tuple[str, ...]] = {
    "pamela": ("interactive",),
    "chalk-eater": ("expiring_markets",),
    "chalk": ("expiring_markets",),
    "lib-out": ("index",),
    "index-follower": ("index",),
    "spmc": ("index",),
    "nothing-ever-happens": ("threshold",),
    "trumped-up": ("threshold",),
}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_decimal(name: str, default: str) -> Decimal:
    return Decimal(os.getenv(name) or default)


def _env_list(name: str) -> Tuple[str, ...]:
    value = os.getenv(name, "")
    return tuple(v.strip() for v in value.split(",") if v.strip())


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """
    Master configuration for the decision engine.

    Combines all sub-configurations with sensible defaults.
    """
    confidence: ConfidenceConfig = field(default_factory=ConfidenceConfig)
    news: NewsConfig = field(default_factory=NewsConfig)
    hybrid: HybridScoringConfig = field(default_factory=HybridScoringConfig)
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)
    interactive: InteractiveConfig = field(default_factory=InteractiveConfig)
    expiring: ExpiringMarketsConfig = field(default_factory=ExpiringMarketsConfig)
    index: IndexStrategyConfig = field(default_factory=IndexStrategyConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    allocation: AllocationConfig = field(default_factory=AllocationConfig)

    max_workers: int = 1                      # >1 fans market fetches out to threads
    spmc_api_url: str = "https://api.spmc.dev"
    gamma_api_url: str = "https://gamma-api.polymarket.com"

    def __post_init__(self) -> None:
        if self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive: {self.max_workers}")

    @property
    def enabled_strategies(self) -> List[str]:
        names = []
        if self.threshold.enabled:
            names.append("threshold")
        if self.interactive.enabled:
            names.append("interactive")
        if self.expiring.enabled:
            names.append("expiring_markets")
        if self.index.enabled:
            names.append("index")
        return names

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Create config from environment variables.

        Explicit *_ENABLED flags select strategies. Without any, the
        AGENT_CHARACTER persona picks the strategy set.
        """
        flags = {
            "index": _env_bool("INDEX_TRADING_ENABLED", False),
            "threshold": _env_bool("SIMPLE_STRATEGY_ENABLED", False),
            "expiring_markets": _env_bool("EXPIRING_MARKETS_ENABLED", False),
            "interactive": _env_bool("INTERACTIVE_STRATEGY_ENABLED", False),
        }
        if not any(flags.values()):
            character = os.getenv("AGENT_CHARACTER", "pamela").lower()
            chosen = CHARACTER_STRATEGIES.get(character)
            if chosen is None:
                chosen = ("threshold",) if _env_bool("TRADING_ENABLED", False) else ()
            flags = {name: name in chosen for name in flags}
            logger.info(f"Strategies for agent {character}: {', '.join(chosen) or 'none'}")

        watchlist = _env_list("MONITORED_MARKET_IDS")
        use_news = _env_bool("USE_NEWS_SIGNALS", True)
        min_confidence = _env_float("MIN_CONFIDENCE_THRESHOLD", 0.7)

        return cls(
            confidence=ConfidenceConfig(
                min_confidence_threshold=_env_float("MIN_CONFIDENCE_SCORE", 70),
            ),
            threshold=ThresholdConfig(
                enabled=flags["threshold"],
                buy_threshold=_env_float("SIMPLE_BUY_THRESHOLD", 0.3),
                sell_threshold=_env_float("SIMPLE_SELL_THRESHOLD", 0.7),
                min_edge=_env_float("SIMPLE_MIN_EDGE", 0.15),
                use_news_signals=use_news,
                market_ids=watchlist,
            ),
            interactive=InteractiveConfig(
                enabled=flags["interactive"],
                use_news_signals=use_news,
                min_confidence=min_confidence,
                price_edge_threshold=_env_float("INTERACTIVE_PRICE_EDGE", 0.15),
                volume_threshold=_env_float("INTERACTIVE_MIN_VOLUME", 50_000),
                sentiment_weight=_env_float("SENTIMENT_WEIGHT", 0.3),
                price_weight=_env_float("PRICE_WEIGHT", 0.4),
                volume_weight=_env_float("VOLUME_WEIGHT", 0.3),
                market_ids=watchlist,
                include_trending=_env_bool("CHECK_TRENDING_TOPICS", False),
            ),
            expiring=ExpiringMarketsConfig(
                enabled=flags["expiring_markets"],
                min_probability=_env_float("EXPIRING_MIN_PROBABILITY", 0.95),
                max_hours_to_expiry=_env_float("EXPIRING_MAX_HOURS", 48),
                min_hours_to_expiry=_env_float("EXPIRING_MIN_HOURS", 2),
                min_volume=_env_float("EXPIRING_MIN_VOLUME", 10_000),
                market_ids=() if _env_bool("EXPIRING_CHECK_ALL_MARKETS", False) else watchlist,
            ),
            index=IndexStrategyConfig(
                enabled=flags["index"],
                index_id=os.getenv("SPMC_INDEX_ID", ""),
                rebalance_threshold=_env_float("INDEX_REBALANCE_THRESHOLD", 0.05),
            ),
            trading=TradingConfig(
                max_position_size=_env_decimal("MAX_POSITION_SIZE", "100"),
                min_confidence_threshold=min_confidence,
                risk_limit_per_trade=_env_decimal("RISK_LIMIT_PER_TRADE", "50"),
                max_daily_trades=_env_int("MAX_DAILY_TRADES", 10),
                max_open_positions=_env_int("MAX_OPEN_POSITIONS", 20),
            ),
            allocation=AllocationConfig(
                min_position_size=_env_decimal("MIN_POSITION_SIZE", "10"),
                rebalance_threshold_pct=_env_float("REBALANCE_THRESHOLD_PCT", 5.0),
            ),
            max_workers=_env_int("SCAN_MAX_WORKERS", 1),
            spmc_api_url=os.getenv("SPMC_API_URL", "https://api.spmc.dev"),
        )


def get_default_config() -> EngineConfig:
    """Get default engine configuration."""
    return EngineConfig()


def get_aggressive_config() -> EngineConfig:
    """Get aggressive trading configuration (higher risk/reward)."""
    return EngineConfig(
        threshold=ThresholdConfig(min_edge=0.10),
        interactive=InteractiveConfig(
            min_confidence=0.6,            # Lower threshold
            price_edge_threshold=0.10,
        ),
        expiring=ExpiringMarketsConfig(min_probability=0.92),
        trading=TradingConfig(
            max_position_size=Decimal("200"),
            min_confidence_threshold=0.6,
            risk_limit_per_trade=Decimal("100"),
            kelly_fraction=Decimal("0.50"),  # Half Kelly
        ),
    )


def get_conservative_config() -> EngineConfig:
    """Get conservative trading configuration (lower risk)."""
    return EngineConfig(
        threshold=ThresholdConfig(min_edge=0.20),
        interactive=InteractiveConfig(
            min_confidence=0.8,            # Higher threshold
            price_edge_threshold=0.20,
        ),
        expiring=ExpiringMarketsConfig(min_probability=0.97, min_volume=50_000),
        trading=TradingConfig(
            max_position_size=Decimal("50"),
            min_confidence_threshold=0.8,
            risk_limit_per_trade=Decimal("25"),
            kelly_fraction=Decimal("0.125"),  # 1/8 Kelly
        ),
        allocation=AllocationConfig(min_position_size=Decimal("25")),
    )
