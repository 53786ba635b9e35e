"""
Confidence scoring.

- confidence: multi-factor 0-100 scorer with bands and risk adjustment
- hybrid: price-edge + news fusion used by discretionary strategies
"""

from polyengine.scoring.confidence import (
    ConfidenceInputs,
    ConfidenceResult,
    ConfidenceScorer,
    FactorScore,
    RiskContext,
)
from polyengine.scoring.hybrid import (
    HybridConfidenceScore,
    HybridConfidenceScorer,
    signal_alignment,
)

__all__ = [
    # Confidence
    "ConfidenceInputs",
    "ConfidenceResult",
    "ConfidenceScorer",
    "FactorScore",
    "RiskContext",
    # Hybrid
    "HybridConfidenceScore",
    "HybridConfidenceScorer",
    "signal_alignment",
]
