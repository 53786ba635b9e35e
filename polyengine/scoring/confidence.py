"""
Multi-factor Confidence Scorer

Combines independently weighted factors (news sentiment, 24h volume,
time to resolution, plus optional externally computed factors) into a
0-100 score, maps it to a confidence band and a coarse recommendation,
and offers an opt-in risk adjustment pass for position sizing.

Key rules:
- Enabled factor weights are normalized to sum to 1.0
- An edge of sufficient quality overrides the band recommendation
- Risk adjustment never touches the stored total score
- No usable factors -> neutral 50/100 instead of an error
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union
import logging
import math

from polyengine.config import (
    MARKET_VOLUME,
    NEWS_SENTIMENT,
    TIME_TO_RESOLUTION,
    ConfidenceBand,
    ConfidenceConfig,
    EdgeThreshold,
    FactorWeight,
    TimeUrgencyThreshold,
    VolumeThreshold,
)
from polyengine.models import BEARISH, BULLISH, NEUTRAL, NEGATIVE, POSITIVE, NewsSignal

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50
NO_NEWS_SCORE = 0.3
NEUTRAL_NEWS_SCORE = 0.5
DIRECTIONAL_NEWS_BASE = 0.6
DIRECTIONAL_NEWS_SLOPE = 0.4
MANY_ARTICLES = 5
MANY_ARTICLES_BOOST = 1.1


@dataclass(frozen=True, slots=True)
class FactorScore:
    """One factor's contribution; weight is the normalized weight used."""
    name: str
    score: float
    weight: float
    label: str                 # sentiment / volume level / urgency
    description: str = ""


@dataclass(frozen=True, slots=True)
class ConfidenceInputs:
    """
    Domain values for each factor.

    A missing news signal scores as "no news"; a missing resolution date
    counts as distant; missing volume or extra factors are skipped.
    """
    news_signal: Optional[NewsSignal] = None
    volume_24h: Optional[float] = None
    days_to_resolution: Optional[float] = None
    current_price: Optional[float] = None
    predicted_probability: Optional[float] = None
    extra_factors: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ConfidenceResult:
    total_score: int
    factors: Tuple[FactorScore, ...]
    recommendation: str
    reasoning: str
    confidence_band: str
    edge_quality: Optional[str] = None
    edge: Optional[float] = None

    def __repr__(self) -> str:
        return (
            f"Confidence({self.total_score}/100 {self.confidence_band}, "
            f"{self.recommendation}, edge={self.edge_quality})"
        )

    @property
    def confidence(self) -> float:
        """Total score on the 0-1 scale."""
        return self.total_score / 100

    @property
    def weight_sum(self) -> float:
        return sum(f.weight for f in self.factors)

    def factor(self, name: str) -> Optional[FactorScore]:
        for f in self.factors:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True, slots=True)
class RiskContext:
    """Portfolio/market context used by adjust_for_risk()."""
    position_size: Union[Decimal, float] = 0
    portfolio_value: Union[Decimal, float] = 0
    existing_positions: int = 0
    volatility: Optional[float] = None
    volume_24h: Optional[float] = None
    news_signal: Optional[NewsSignal] = None


class ConfidenceScorer:
    """
    Configuration-driven confidence scorer.

    Built once by the composition root and shared; it holds no mutable
    state after construction.
    """

    def __init__(self, config: Optional[ConfidenceConfig] = None):
        self._config = (config or ConfidenceConfig()).normalized()
        self._log_configuration()

    @property
    def config(self) -> ConfidenceConfig:
        return self._config

    def _log_configuration(self) -> None:
        enabled = ", ".join(
            f"{f.name}({f.weight * 100:.0f}%)" for f in self._config.enabled_factors
        )
        logger.info(f"Confidence factors: {enabled or 'none'}")
        logger.info(f"Min confidence threshold: {self._config.min_confidence_threshold}")
        logger.info(
            f"Risk adjustment: {'enabled' if self._config.enable_risk_adjustment else 'disabled'}"
        )

    # ------------------------------------------------------------------
    # Table lookups
    # ------------------------------------------------------------------

    def band_for(self, score: float) -> Optional[ConfidenceBand]:
        for band in self._config.bands:
            if band.contains(score):
                return band
        return None

    def volume_level(self, volume: float) -> VolumeThreshold:
        for threshold in self._config.volume_thresholds:
            if volume >= threshold.min_volume:
                return threshold
        return self._config.volume_thresholds[-1]

    def time_urgency(self, days: float) -> TimeUrgencyThreshold:
        for threshold in self._config.time_thresholds:
            if days <= threshold.max_days:
                return threshold
        return self._config.time_thresholds[-1]

    def edge_level(self, edge: float, score: float) -> Optional[EdgeThreshold]:
        """Best edge quality whose edge AND confidence minimums are both met."""
        for threshold in self._config.edge_thresholds:
            if abs(edge) >= threshold.min_edge and score >= threshold.min_confidence:
                return threshold
        return None

    # ------------------------------------------------------------------
    # Factor scoring
    # ------------------------------------------------------------------

    def _score_news(self, signal: Optional[NewsSignal]) -> Tuple[float, str]:
        cap = self._config.max_confidence_score / 100
        if signal is None or not signal.has_articles:
            return NO_NEWS_SCORE, NEUTRAL

        if signal.signal == BULLISH:
            score, label = min(cap, DIRECTIONAL_NEWS_BASE + signal.confidence * DIRECTIONAL_NEWS_SLOPE), POSITIVE
        elif signal.signal == BEARISH:
            score, label = min(cap, DIRECTIONAL_NEWS_BASE + signal.confidence * DIRECTIONAL_NEWS_SLOPE), NEGATIVE
        else:
            score, label = NEUTRAL_NEWS_SCORE, NEUTRAL

        # Several confirming articles
        if len(signal.articles) >= MANY_ARTICLES:
            score = min(cap, score * MANY_ARTICLES_BOOST)
        return score, label

    def _score_factor(self, factor: FactorWeight, inputs: ConfidenceInputs) -> Optional[FactorScore]:
        if factor.name == NEWS_SENTIMENT:
            score, label = self._score_news(inputs.news_signal)
            return FactorScore(factor.name, score, factor.weight, label)

        if factor.name == MARKET_VOLUME:
            if inputs.volume_24h is None:
                return None
            level = self.volume_level(inputs.volume_24h)
            return FactorScore(factor.name, level.score, factor.weight, level.level, level.description)

        if factor.name == TIME_TO_RESOLUTION:
            days = inputs.days_to_resolution
            urgency = self.time_urgency(math.inf if days is None else days)
            return FactorScore(factor.name, urgency.score, factor.weight, urgency.urgency, urgency.description)

        if factor.name in inputs.extra_factors:
            score = max(0.0, min(1.0, inputs.extra_factors[factor.name]))
            return FactorScore(factor.name, score, factor.weight, "external")

        logger.debug(f"No input for factor {factor.name}, skipping")
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def score(self, inputs: ConfidenceInputs) -> ConfidenceResult:
        """Score a market from its factor inputs."""
        used: List[FactorScore] = []
        for factor in self._config.enabled_factors:
            if factor.weight <= 0:
                continue
            scored = self._score_factor(factor, inputs)
            if scored is not None:
                used.append(scored)

        total_weight = sum(f.weight for f in used)
        if total_weight <= 0:
            return self._neutral_result()

        factors = tuple(
            FactorScore(f.name, f.score, f.weight / total_weight, f.label, f.description)
            for f in used
        )
        weighted = sum(f.score * f.weight for f in factors)
        total_score = max(0, min(100, int(math.floor(weighted * 100 + 0.5))))

        band = self.band_for(total_score)
        band_name = band.name if band else "unknown"

        edge = None
        edge_quality = None
        if inputs.predicted_probability is not None and inputs.current_price is not None:
            edge = inputs.predicted_probability - inputs.current_price
            level = self.edge_level(edge, total_score)
            edge_quality = level.level if level else None

        news_direction = inputs.news_signal.signal if inputs.news_signal else None
        recommendation = self._recommend(total_score, edge, edge_quality, news_direction)
        reasoning = self._reasoning(factors, total_score, band)

        return ConfidenceResult(
            total_score=total_score,
            factors=factors,
            recommendation=recommendation,
            reasoning=reasoning,
            confidence_band=band_name,
            edge_quality=edge_quality,
            edge=edge,
        )

    def _neutral_result(self) -> ConfidenceResult:
        band = self.band_for(NEUTRAL_SCORE)
        return ConfidenceResult(
            total_score=NEUTRAL_SCORE,
            factors=(),
            recommendation="neutral",
            reasoning="No confidence factors available - neutral score.",
            confidence_band=band.name if band else "unknown",
        )

    def _recommend(
        self,
        total_score: int,
        edge: Optional[float],
        edge_quality: Optional[str],
        news_direction: Optional[str],
    ) -> str:
        if edge is not None:
            if edge_quality == "strong":
                return "strong_yes" if edge > 0 else "strong_no"
            if edge_quality == "good":
                return "yes" if edge > 0 else "no"

        band = self.band_for(total_score)
        if band is None:
            return "neutral"
        # Bearish news downgrades a bullish band one notch
        if news_direction == BEARISH and band.recommendation in ("yes", "strong_yes"):
            return "yes" if band.recommendation == "strong_yes" else "neutral"
        return band.recommendation

    def _reasoning(
        self,
        factors: Tuple[FactorScore, ...],
        total_score: int,
        band: Optional[ConfidenceBand],
    ) -> str:
        parts = []
        for f in factors:
            if f.name == NEWS_SENTIMENT:
                if f.label == POSITIVE:
                    parts.append(f"positive news ({round(f.score * 100)}%)")
                elif f.label == NEGATIVE:
                    parts.append(f"negative news ({round(f.score * 100)}%)")
                else:
                    parts.append("neutral news")
            elif f.description:
                parts.append(f.description.lower())
            else:
                parts.append(f"{f.name} ({round(f.score * 100)}%)")

        assessment = band.description if band else f"Confidence score: {total_score}/100"
        return f"{assessment} based on {', '.join(parts)}."

    def is_confident_enough(self, score: float) -> bool:
        return score >= self._config.min_confidence_threshold

    def recommendation_for_score(self, score: float) -> str:
        band = self.band_for(score)
        return band.recommendation if band else "neutral"

    def adjust_for_risk(self, base_confidence: float, context: RiskContext) -> float:
        """
        Apply every matching risk rule to a 0-100 confidence.

        The result is capped at max_confidence_score.
        """
        cfg = self._config
        if not cfg.enable_risk_adjustment:
            return base_confidence

        adjusted = base_confidence
        for rule in cfg.risk_adjustments:
            if self._rule_matches(rule.factor, rule.threshold, context):
                adjusted *= rule.adjustment
                logger.info(f"Applied risk adjustment: {rule.description} ({rule.adjustment}x)")

        return min(cfg.max_confidence_score, adjusted)

    @staticmethod
    def _rule_matches(factor: str, threshold: float, context: RiskContext) -> bool:
        if factor == "large_position":
            portfolio = float(context.portfolio_value)
            if portfolio <= 0:
                return False
            return float(context.position_size) / portfolio > threshold
        if factor == "portfolio_concentration":
            return context.existing_positions >= threshold
        if factor == "high_volatility":
            return context.volatility is not None and context.volatility > threshold
        if factor == "low_liquidity":
            return context.volume_24h is not None and context.volume_24h < threshold
        if factor == "news_uncertainty":
            signal = context.news_signal
            if signal is None or not signal.has_articles:
                return False
            return signal.signal == NEUTRAL or signal.confidence < threshold
        logger.debug(f"Unknown risk adjustment factor: {factor}")
        return False
