"""
Opportunity Evaluator

Final gate between a strategy's opportunity and a trade:
- Sizes the position with fractional Kelly (quarter Kelly by default)
- Discounts confidence by the opportunity's risk score
- Requires confidence, size and expected value to all clear their floors

This is the GATEKEEPER - a rejected decision always carries size 0.
"""

from decimal import Decimal, ROUND_FLOOR
from typing import List, Optional
import logging

from polyengine.config import TradingConfig
from polyengine.models import MarketOpportunity, TradingDecision
from polyengine.scoring.confidence import ConfidenceScorer, RiskContext

logger = logging.getLogger(__name__)

HIGH_RISK_SCORE = 0.5


class OpportunityEvaluator:
    """
    Turns MarketOpportunity records into TradingDecisions.

    When a ConfidenceScorer is supplied, evaluate() can additionally
    run the scorer's risk adjustment over the final confidence.
    """

    def __init__(
        self,
        config: Optional[TradingConfig] = None,
        scorer: Optional[ConfidenceScorer] = None,
    ):
        self._config = config or TradingConfig()
        self._scorer = scorer

    @property
    def config(self) -> TradingConfig:
        return self._config

    def position_size(self, opportunity: MarketOpportunity) -> Decimal:
        """
        Kelly-inspired size in whole dollars.

        kelly = edge / (1 - price); size = floor(min(kelly * fraction *
        max_position_size, risk_limit_per_trade)). A price of 1 or more
        has no payout and sizes to 0.
        """
        price = Decimal(str(opportunity.current_price))
        if price >= Decimal("1"):
            return Decimal("0")

        edge = abs(Decimal(str(opportunity.predicted_probability)) - price)
        kelly = edge / (Decimal("1") - price)
        raw = kelly * self._config.kelly_fraction * self._config.max_position_size
        capped = min(raw, self._config.risk_limit_per_trade)
        return max(Decimal("0"), capped.to_integral_value(rounding=ROUND_FLOOR))

    def final_confidence(
        self,
        opportunity: MarketOpportunity,
        risk_context: Optional[RiskContext] = None,
    ) -> float:
        confidence = opportunity.confidence * (1 - opportunity.risk_score)
        if risk_context is not None and self._scorer is not None:
            confidence = self._scorer.adjust_for_risk(confidence * 100, risk_context) / 100
        return confidence

    def evaluate(
        self,
        opportunity: MarketOpportunity,
        risk_context: Optional[RiskContext] = None,
    ) -> TradingDecision:
        """
        Decide whether to trade an opportunity and how much.

        Args:
            opportunity: Candidate from a strategy
            risk_context: Optional portfolio context for risk adjustment

        Returns:
            TradingDecision (size 0 unless should_trade)
        """
        size = self.position_size(opportunity)
        confidence = self.final_confidence(opportunity, risk_context)

        confident = confidence >= self._config.min_confidence_threshold
        valuable = opportunity.expected_value > self._config.min_expected_value
        should_trade = confident and valuable and size > 0

        reasoning = self._reasoning(opportunity, confidence, size, should_trade)
        if should_trade:
            logger.info(
                f"Approved {opportunity.outcome} on {opportunity.market_id[:10]}...: "
                f"${size} at {opportunity.current_price:.3f}"
            )
        else:
            logger.debug(f"Rejected {opportunity.market_id[:10]}...: {reasoning}")

        return TradingDecision(
            should_trade=should_trade,
            market_id=opportunity.market_id,
            outcome=opportunity.outcome,
            size=size if should_trade else Decimal("0"),
            price=opportunity.current_price,
            confidence=confidence,
            reasoning=reasoning,
            side=opportunity.side,
        )

    def _reasoning(
        self,
        opportunity: MarketOpportunity,
        confidence: float,
        size: Decimal,
        should_trade: bool,
    ) -> str:
        reasons: List[str] = []

        if should_trade:
            reasons.append(f"High confidence trade ({confidence * 100:.1f}%)")
            reasons.append(f"Expected value: ${opportunity.expected_value:.2f}")
            if opportunity.signals:
                reasons.append(f"Supported by {len(opportunity.signals)} signals")
            reasons.append(f"Predicted probability: {opportunity.predicted_probability * 100:.1f}%")
            reasons.append(f"Current price: {opportunity.current_price * 100:.1f}%")
        else:
            if confidence < self._config.min_confidence_threshold:
                reasons.append(f"Confidence too low ({confidence * 100:.1f}%)")
            if opportunity.expected_value <= self._config.min_expected_value:
                reasons.append(f"Expected value too small (${opportunity.expected_value:.2f})")
            if size <= 0:
                reasons.append("Position size rounds to zero")
            if opportunity.risk_score > HIGH_RISK_SCORE:
                reasons.append(f"Risk score too high ({opportunity.risk_score * 100:.1f}%)")

        return ". ".join(reasons)
